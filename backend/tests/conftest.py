from typing import Callable, List, Optional

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.pool import StaticPool
from sqlmodel import Session, SQLModel, create_engine

from padelpro.database import get_session
from padelpro.main import app
from padelpro.models.pair import TournamentPair
from padelpro.models.player import Player

TEST_DATABASE_URL = "sqlite:///:memory:"

# ============================================================================
# Test Database Setup with StaticPool
# ============================================================================
# 1. sqlite:///:memory: with StaticPool so ALL sessions share the same DB
# 2. check_same_thread=False required for TestClient/threaded access
# 3. All models MUST be imported before create_all() (see session_fixture)
# 4. App dependency overridden to use test_engine (see client_fixture)
# 5. Tables are dropped after each test so ids start from 1 again
test_engine = create_engine(
    TEST_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)


def override_get_session():
    """Override session to use test engine"""
    with Session(test_engine) as session:
        yield session


@pytest.fixture(name="session", scope="function")
def session_fixture():
    """Provide a test database session on a fresh schema"""
    from padelpro.models.match import Match  # noqa: F401
    from padelpro.models.pair import TournamentPair  # noqa: F401
    from padelpro.models.player import Player  # noqa: F401
    from padelpro.models.tournament import Tournament  # noqa: F401

    SQLModel.metadata.create_all(test_engine)

    with Session(test_engine) as session:
        yield session

    SQLModel.metadata.drop_all(test_engine)


@pytest.fixture(name="client")
def client_fixture(session: Session):
    """Provide a test client with overridden database session

    Override is set BEFORE TestClient() and stays in place for the entire
    duration, so the app never touches its own engine.
    """
    app.dependency_overrides[get_session] = override_get_session

    with TestClient(app) as client:
        yield client

    app.dependency_overrides.clear()


@pytest.fixture
def register_pairs(session: Session) -> Callable[..., List[TournamentPair]]:
    """Create `count` pairs of fresh players in a tournament, in registration order."""

    def _register(tournament_id: int, count: int, global_rating: Optional[float] = None) -> List[TournamentPair]:
        pairs = []
        for i in range(count):
            p1 = Player(name=f"T{tournament_id} P{i}a", global_rating=global_rating)
            p2 = Player(name=f"T{tournament_id} P{i}b", global_rating=global_rating)
            session.add(p1)
            session.add(p2)
            session.commit()
            session.refresh(p1)
            session.refresh(p2)
            pair = TournamentPair(tournament_id=tournament_id, player1_id=p1.id, player2_id=p2.id)
            session.add(pair)
            session.commit()
            session.refresh(pair)
            pairs.append(pair)
        return pairs

    return _register
