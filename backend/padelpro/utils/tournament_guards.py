"""
Tournament guards for route handlers.

- Existence (404)
- Lifecycle status (409)
- Service error translation
"""

from contextlib import contextmanager
from typing import Iterator

from fastapi import HTTPException
from sqlmodel import Session

from padelpro.models.tournament import Tournament
from padelpro.services.playoff_engine import RoundAdvanceError
from padelpro.services.tournament_service import EntityNotFoundError, TournamentLifecycleError


def require_tournament(session: Session, tournament_id: int) -> Tournament:
    """Return the tournament or raise HTTPException 404."""
    tournament = session.get(Tournament, tournament_id)
    if not tournament:
        raise HTTPException(status_code=404, detail="Tournament not found")
    return tournament


def require_status(tournament: Tournament, *statuses: str) -> Tournament:
    """
    Require the tournament to be in one of `statuses`.

    Raises:
        HTTPException 409: Tournament is in another lifecycle status
    """
    allowed = [getattr(s, "value", s) for s in statuses]
    if tournament.status not in allowed:
        raise HTTPException(
            status_code=409,
            detail=f"TOURNAMENT_STATUS_CONFLICT: tournament is '{tournament.status}', expected one of {allowed}",
        )
    return tournament


@contextmanager
def service_errors() -> Iterator[None]:
    """
    Translate tournament service errors into HTTP errors.

    - EntityNotFoundError -> 404
    - TournamentLifecycleError / RoundAdvanceError -> 409
    - ValueError (bad enum values and the like) -> 422
    """
    try:
        yield
    except EntityNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except (TournamentLifecycleError, RoundAdvanceError) as e:
        raise HTTPException(status_code=409, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))
