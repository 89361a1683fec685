"""Pytest fixtures and configuration for planTogether tests."""

import pytest
from datetime import date, datetime, time
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import StaticPool

from plantogether.database.database import Base
from plantogether.database import models  # noqa: F401  (registers tables)
from plantogether.database.availability_repository import AvailabilityRepository
from plantogether.database.circle_repository import CircleRepository
from plantogether.database.event_repository import EventRepository
from plantogether.database.friendship_repository import FriendshipRepository
from plantogether.database.models import UserDB
from plantogether.database.user_repository import UserRepository
from plantogether.models.recurrence import AvailabilityStatus, RecurrenceKind, RecurrenceRule


# Use in-memory SQLite database for tests
TEST_DATABASE_URL = "sqlite:///:memory:"


@pytest.fixture
def test_user_id():
    """The user on whose behalf tests act."""
    return "user-alice"


@pytest.fixture
def friend_user_id():
    return "user-bob"


@pytest.fixture
def stranger_user_id():
    return "user-carol"


@pytest.fixture(scope="function")
def db_session(test_user_id, friend_user_id, stranger_user_id):
    """Create a database session for testing.

    Uses an in-memory SQLite database that is created fresh for each test,
    seeded with three users and no relationships between them.
    """
    engine = create_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        echo=False,
    )

    @event.listens_for(engine, "connect")
    def set_sqlite_pragmas(dbapi_conn, connection_record):
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    Base.metadata.create_all(bind=engine)

    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    session = TestingSessionLocal()

    now = datetime.utcnow()
    for user_id, first, last in [
        (test_user_id, "Alice", "Anders"),
        (friend_user_id, "Bob", "Baker"),
        (stranger_user_id, "Carol", "Chen"),
    ]:
        session.add(
            UserDB(
                id=user_id,
                email=f"{first.lower()}@example.com",
                first_name=first,
                last_name=last,
                display_name=f"{first} {last}",
                created_at=now,
                updated_at=now,
            )
        )
    session.commit()

    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture
def availability_repository(db_session: Session):
    return AvailabilityRepository(db_session)


@pytest.fixture
def friendship_repository(db_session: Session):
    return FriendshipRepository(db_session)


@pytest.fixture
def circle_repository(db_session: Session):
    return CircleRepository(db_session)


@pytest.fixture
def user_repository(db_session: Session):
    return UserRepository(db_session)


@pytest.fixture
def event_repository(db_session: Session):
    return EventRepository(db_session)


@pytest.fixture
def make_friends(friendship_repository):
    """Return a helper that makes two users accepted friends."""

    def _make(user_a: str, user_b: str) -> None:
        request = friendship_repository.send_request(user_a, user_b)
        assert friendship_repository.accept(user_b, request.id)

    return _make


@pytest.fixture
def sample_rule_base():
    """Base rule fields; override per test."""
    return {
        "kind": RecurrenceKind.ONCE,
        "interval": 1,
        "start_date": date(2024, 1, 1),
        "end_date": None,
        "anchor_weekday": None,
        "start_time": time(9, 0),
        "end_time": time(17, 0),
        "status": AvailabilityStatus.FREE,
        "notes": None,
    }


@pytest.fixture
def make_rule(sample_rule_base):
    """Return a helper that builds a RecurrenceRule from the base plus overrides."""

    def _make(**overrides) -> RecurrenceRule:
        return RecurrenceRule(**{**sample_rule_base, **overrides})

    return _make
