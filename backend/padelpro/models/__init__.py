from padelpro.models.match import Match
from padelpro.models.pair import TournamentPair
from padelpro.models.player import Player
from padelpro.models.tournament import Tournament, TournamentStatus

__all__ = [
    "Player",
    "Tournament",
    "TournamentStatus",
    "TournamentPair",
    "Match",
]
