"""
Pytest configuration and fixtures for the teamgraph test suite.
"""
from typing import Generator, List, Optional

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker, Session

import teamgraph.models  # noqa: F401  registers every table with Base metadata
from teamgraph.core.rate_limit import limiter
from teamgraph.db.session import Base, build_engine, get_db
from teamgraph.main import create_app
from teamgraph.models.team import Team, TeamMember, TeamRole
from teamgraph.models.user import User
from teamgraph.schemas.user import Identity


# In-memory SQLite database shared through a single connection
engine = build_engine("sqlite://")
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture(scope="function")
def db() -> Generator[Session, None, None]:
    """
    Create a fresh database for each test function.
    """
    Base.metadata.create_all(bind=engine)
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


class RecordingNotifier:
    """Notifier that remembers what it was asked to send."""

    def __init__(self, fail: bool = False):
        self.fail = fail
        self.sent: List[dict] = []

    def send_invitation(self, to_email, invite_link, team_name, inviter_name=None):
        if self.fail:
            raise ConnectionError("SMTP relay unreachable")
        self.sent.append(
            {
                "to_email": to_email,
                "invite_link": invite_link,
                "team_name": team_name,
                "inviter_name": inviter_name,
            }
        )


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def failing_notifier() -> RecordingNotifier:
    return RecordingNotifier(fail=True)


class Factory:
    """Creates users, teams and members directly, bypassing the services."""

    def __init__(self, db: Session):
        self.db = db

    def user(self, user_id: str, email: Optional[str] = None, full_name: Optional[str] = None) -> User:
        user = User(id=user_id, email=email or f"{user_id}@test.com", full_name=full_name)
        self.db.add(user)
        self.db.commit()
        return user

    def team(self, owner: User, name: str = "Team", parent: Optional[Team] = None, **fields) -> Team:
        team = Team(
            name=name,
            owner_id=owner.id,
            parent_team_id=parent.id if parent else None,
            **fields,
        )
        self.db.add(team)
        self.db.commit()
        return team

    def member(self, team: Team, user: User, role: TeamRole = TeamRole.MEMBER, **fields) -> TeamMember:
        member = TeamMember(team_id=team.id, user_id=user.id, role=role, **fields)
        self.db.add(member)
        self.db.commit()
        return member

    @staticmethod
    def identity(user: User) -> Identity:
        return Identity(user_id=user.id, email=user.email)


@pytest.fixture
def factory(db: Session) -> Factory:
    return Factory(db)


@pytest.fixture(scope="function")
def client(db: Session, notifier: RecordingNotifier) -> Generator[TestClient, None, None]:
    """
    Create a test client bound to the test database.
    """
    app = create_app(session_factory=TestingSessionLocal, notifier=notifier)

    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db

    # Rate limits are per process; start every test with a clean slate
    limiter.reset()

    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()
