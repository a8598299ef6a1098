"""Pytest fixtures for API, service and client tests."""

import os
from collections.abc import AsyncGenerator, Callable, Generator, Sequence
from datetime import datetime

os.environ.setdefault("SECRET_KEY", "test-secret-key")

import httpx
import pytest
import pytest_asyncio
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, event, func, select
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from app.api.deps import get_db
from app.core.security import create_access_token, get_password_hash
from app.db import models  # noqa: F401  # Imported for side effects
from app.db.base import Base
from app.db.models import Flashcard, FlashcardSet, StudyEvent, User
from app.main import create_app
from app.services.progress import ProgressService


def _enable_sqlite_foreign_keys(dbapi_connection, _connection_record) -> None:
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


@pytest.fixture()
def db_engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    event.listen(engine, "connect", _enable_sqlite_foreign_keys)
    Base.metadata.create_all(bind=engine)
    try:
        yield engine
    finally:
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture()
def db_session(db_engine) -> Generator[Session, None, None]:
    TestingSessionLocal = sessionmaker(
        autocommit=False, autoflush=False, bind=db_engine, expire_on_commit=False
    )
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture()
def app(db_session: Session):
    application = create_app()

    def override_get_db() -> Generator[Session, None, None]:
        yield db_session

    application.dependency_overrides[get_db] = override_get_db
    return application


@pytest.fixture()
def client(app) -> Generator[TestClient, None, None]:
    with TestClient(app) as test_client:
        yield test_client


@pytest_asyncio.fixture()
async def async_client(app) -> AsyncGenerator[httpx.AsyncClient, None]:
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://testserver") as client:
        yield client


@pytest.fixture()
def make_user(db_session: Session) -> Callable[..., User]:
    def _make_user(username: str = "learner", password: str = "verysecure") -> User:
        user = User(
            username=username,
            email=f"{username}@example.com",
            hashed_password=get_password_hash(password),
        )
        db_session.add(user)
        db_session.commit()
        db_session.refresh(user)
        return user

    return _make_user


@pytest.fixture()
def user(make_user) -> User:
    return make_user("learner")


@pytest.fixture()
def other_user(make_user) -> User:
    return make_user("someone_else")


@pytest.fixture()
def auth_headers(user: User) -> dict[str, str]:
    return {"Authorization": f"Bearer {create_access_token(str(user.id))}"}


@pytest.fixture()
def make_set(db_session: Session) -> Callable[..., FlashcardSet]:
    """Create a set with one card per entry of ``fronts``; cards keep list order."""

    def _make_set(owner: User, title: str, fronts: Sequence[str] = ("one", "two", "three")) -> FlashcardSet:
        flashcard_set = FlashcardSet(user_id=owner.id, title=title)
        db_session.add(flashcard_set)
        db_session.flush()
        for front in fronts:
            db_session.add(Flashcard(set_id=flashcard_set.id, front=front, back=f"{front} back"))
            db_session.flush()
        db_session.commit()
        db_session.refresh(flashcard_set)
        return flashcard_set

    return _make_set


@pytest.fixture()
def record(db_session: Session) -> Callable[..., StudyEvent]:
    service = ProgressService(db_session)

    def _record(owner: User, card: Flashcard, status: str, timestamp: datetime | None = None) -> StudyEvent:
        return service.record(
            user_id=owner.id,
            set_id=card.set_id,
            card_id=card.id,
            status=status,
            timestamp=timestamp,
        )

    return _record


@pytest.fixture()
def count_events(db_session: Session) -> Callable[..., int]:
    def _count(owner: User, card: Flashcard | None = None) -> int:
        stmt = select(func.count(StudyEvent.id)).where(StudyEvent.user_id == owner.id)
        if card is not None:
            stmt = stmt.where(StudyEvent.card_id == card.id)
        return int(db_session.scalar(stmt) or 0)

    return _count
