from datetime import datetime, timedelta, UTC
from types import SimpleNamespace

import pytest
from fastapi.testclient import TestClient
from sqlmodel import Session, SQLModel, create_engine
from sqlmodel.pool import StaticPool

from main import app
from app import models  # noqa: F401
from app.database import get_session
from app.dependencies import get_current_user
from app.models import Match, Player, Team, Tournament, TournamentTeam, User, Venue

# Create in-memory database for testing
TEST_DATABASE_URL = "sqlite:///:memory:"

engine = create_engine(
    TEST_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)

POSITIONS = ["GK", "DF", "DF", "DF", "DF", "MF", "MF", "MF", "MF", "FW", "FW", "GK", "DF", "FW"]
KICKOFF = datetime(2025, 3, 1, 15, 0, tzinfo=UTC)


@pytest.fixture(name="session")
def session_fixture():
    SQLModel.metadata.create_all(engine)
    with Session(engine) as session:
        yield session
    SQLModel.metadata.drop_all(engine)


@pytest.fixture(name="client")
def client_fixture(session: Session):
    def get_session_override():
        return session

    app.dependency_overrides[get_session] = get_session_override
    client = TestClient(app)
    yield client
    app.dependency_overrides.clear()


def create_squad(session: Session, team: Team, size: int = 14):
    players = [
        Player(team_id=team.id, name=f"{team.short_name} Player {i + 1}", jersey_number=i + 1, position=POSITIONS[i])
        for i in range(size)
    ]
    session.add_all(players)
    session.commit()
    for player in players:
        session.refresh(player)
    return players


@pytest.fixture(name="league")
def league_fixture(session: Session):
    """Tournament with three registered teams (home, away, third) and full squads."""
    tournament = Tournament(name="Test League", points_win=3, points_draw=1, points_loss=0)
    home = Team(name="Home FC", short_name="HOM")
    away = Team(name="Away United", short_name="AWA")
    third = Team(name="Third Town", short_name="THI")
    venue = Venue(name="Main Ground", city="Springfield")
    session.add_all([tournament, home, away, third, venue])
    session.commit()

    for team in (home, away, third):
        session.add(TournamentTeam(tournament_id=tournament.id, team_id=team.id))
    session.commit()

    squads = {team.id: create_squad(session, team) for team in (home, away, third)}

    return SimpleNamespace(
        tournament=tournament,
        home=home,
        away=away,
        third=third,
        venue=venue,
        squads=squads,
    )


@pytest.fixture(name="make_match")
def make_match_fixture(session: Session, league):
    """Factory creating a match directly in a given status."""
    counter = {"n": 0}

    def factory(home=None, away=None, status="scheduled", home_score=0, away_score=0, **extra):
        counter["n"] += 1
        scheduled = extra.pop("scheduled_datetime", KICKOFF + timedelta(days=counter["n"]))
        match = Match(
            tournament_id=league.tournament.id,
            home_team_id=(home or league.home).id,
            away_team_id=(away or league.away).id,
            venue_id=league.venue.id,
            scheduled_datetime=scheduled,
            status=status,
            home_score=home_score,
            away_score=away_score,
            **extra
        )
        session.add(match)
        session.commit()
        session.refresh(match)
        return match

    return factory


@pytest.fixture(name="operator")
def operator_fixture(session: Session):
    user = User(username="commentator", password_hash="not-a-hash", role="commentator")
    session.add(user)
    session.commit()
    session.refresh(user)
    return user


@pytest.fixture(name="as_user")
def as_user_fixture(client: TestClient):
    """Authenticate the test client as the given user."""
    def login(user: User):
        app.dependency_overrides[get_current_user] = lambda: user
        return client

    return login
