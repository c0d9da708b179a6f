# tests/conftest.py
from __future__ import annotations

import os
from collections.abc import Generator, Iterator
from datetime import timedelta

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

os.environ.setdefault("SECRET_KEY", "test-secret-key-for-freelance-chat")
os.environ.setdefault("DATABASE_URL", "sqlite://")

from freelance_chat.core.security import create_access_token
from freelance_chat.db.session import Base
from freelance_chat.db.session import get_db as app_get_session
from freelance_chat.db.time import utcnow
from freelance_chat.main import app as fastapi_app
from freelance_chat.models import Application, Job, Message, User

TEST_DB_URL = "sqlite://"


@pytest.fixture(scope="session")
def engine() -> Generator[Engine, None, None]:
    engine = create_engine(
        TEST_DB_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    try:
        yield engine
    finally:
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture()
def db_session(engine: Engine) -> Iterator[Session]:
    SessionLocal = sessionmaker(
        bind=engine,
        autocommit=False,
        autoflush=False,
        expire_on_commit=False,
    )
    session = SessionLocal()
    try:
        yield session
    finally:
        session.rollback()
        session.close()

        # The store commits, so wipe every table for the next test.
        with engine.begin() as cleanup_conn:
            for table in reversed(Base.metadata.sorted_tables):
                cleanup_conn.execute(table.delete())


@pytest.fixture(scope="session")
def app() -> FastAPI:
    return fastapi_app


@pytest.fixture(autouse=True)
def override_session_dependency(app: FastAPI, db_session: Session) -> Iterator[None]:
    def _get_session_override() -> Generator[Session, None, None]:
        yield db_session

    app.dependency_overrides[app_get_session] = _get_session_override
    try:
        yield
    finally:
        app.dependency_overrides.pop(app_get_session, None)


@pytest.fixture()
def client(app: FastAPI) -> Iterator[TestClient]:
    with TestClient(app, base_url="http://test") as test_client:
        yield test_client


def _make_user(db: Session, name: str, email: str, role: str) -> User:
    user = User(name=name, email=email, role=role)
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


@pytest.fixture()
def employer(db_session: Session) -> User:
    """Create the employer side of a conversation."""
    return _make_user(db_session, "Erin Employer", "erin@example.com", "employer")


@pytest.fixture()
def freelancer(db_session: Session) -> User:
    """Create the freelancer side of a conversation."""
    return _make_user(db_session, "Frank Freelancer", "frank@example.com", "freelancer")


@pytest.fixture()
def outsider(db_session: Session) -> User:
    """Create a user who takes part in neither conversation."""
    return _make_user(db_session, "Olive Outsider", "olive@example.com", "freelancer")


@pytest.fixture()
def job(db_session: Session, employer: User) -> Job:
    job = Job(title="Build a landing page", employer_id=employer.id)
    db_session.add(job)
    db_session.commit()
    db_session.refresh(job)
    return job


@pytest.fixture()
def application(db_session: Session, job: Job, freelancer: User) -> Application:
    application = Application(
        job_id=job.id,
        freelancer_id=freelancer.id,
        proposal="I can do this",
        bid=500,
    )
    db_session.add(application)
    db_session.commit()
    db_session.refresh(application)
    return application


@pytest.fixture()
def employer_token(employer: User) -> str:
    return create_access_token(employer.id)


@pytest.fixture()
def freelancer_token(freelancer: User) -> str:
    return create_access_token(freelancer.id)


@pytest.fixture()
def employer_headers(employer_token: str) -> dict[str, str]:
    """Return authorization headers for the employer."""
    return {"Authorization": f"Bearer {employer_token}"}


@pytest.fixture()
def freelancer_headers(freelancer_token: str) -> dict[str, str]:
    """Return authorization headers for the freelancer."""
    return {"Authorization": f"Bearer {freelancer_token}"}


@pytest.fixture()
def outsider_headers(outsider: User) -> dict[str, str]:
    return {"Authorization": f"Bearer {create_access_token(outsider.id)}"}


@pytest.fixture()
def make_message(db_session: Session):
    """Insert a message directly, spacing timestamps so ordering is deterministic."""
    base = utcnow() - timedelta(hours=1)
    created: list[Message] = []

    def _make(
        sender: User,
        receiver: User,
        content: str = "hello",
        job_id: str | None = None,
        read: bool = False,
    ) -> Message:
        message = Message(
            sender_id=sender.id,
            receiver_id=receiver.id,
            job_id=job_id,
            content=content,
            read=read,
            created_at=base + timedelta(seconds=len(created)),
        )
        db_session.add(message)
        db_session.commit()
        db_session.refresh(message)
        created.append(message)
        return message

    return _make
