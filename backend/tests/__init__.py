# Force SQLModel table registration at test discovery time
# This ensures all models are registered before any test database creation
from padelpro.models.match import Match  # noqa: F401
from padelpro.models.pair import TournamentPair  # noqa: F401
from padelpro.models.player import Player  # noqa: F401
from padelpro.models.tournament import Tournament  # noqa: F401
