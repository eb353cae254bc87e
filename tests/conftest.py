from datetime import datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from geoattend.api.deps import get_db
from geoattend.core import clock
from geoattend.core.security import create_access_token, get_password_hash
from geoattend.db import Base
from geoattend.db.models.user import User
from geoattend.main import app

DEPARTMENT = "CSE"
YEAR = 2

CHROME_WINDOWS = {
    "user_agent": "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/124.0 Safari/537.36",
    "screen_resolution": "1920x1080x24",
    "timezone": "Asia/Kolkata",
    "language": "en-IN",
    "platform": "Win32",
}
SAFARI_IPHONE = {
    "user_agent": "Mozilla/5.0 (iPhone; CPU iPhone OS 17_4 like Mac OS X) AppleWebKit/605.1.15 (KHTML, like Gecko) Version/17.4 Mobile/15E148 Safari/604.1",
    "screen_resolution": "390x844x32",
    "timezone": "Asia/Kolkata",
    "language": "en-IN",
    "platform": "iPhone",
}


class FrozenClock:
    def __init__(self, now):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, **kwargs):
        self.now = self.now + timedelta(**kwargs)


@pytest.fixture(autouse=True)
def frozen_clock(monkeypatch):
    # Start from real time so bearer tokens are not already expired.
    fc = FrozenClock(datetime.now(timezone.utc).replace(tzinfo=None, microsecond=0))
    monkeypatch.setattr(clock, "utcnow", fc)
    return fc


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def make_user(db):
    counter = {"n": 0}

    def _make(role="student", department=DEPARTMENT, year=YEAR, email=None, full_name=None):
        counter["n"] += 1
        n = counter["n"]
        user = User(
            email=email or f"{role}{n}@college.test",
            hashed_password=get_password_hash("secret"),
            full_name=full_name or f"{role.title()} {n}",
            role=role,
            department=department if role == "student" else None,
            year=year if role == "student" else None,
        )
        db.add(user)
        db.commit()
        db.refresh(user)
        return user

    return _make


@pytest.fixture
def teacher(make_user):
    return make_user(role="teacher")


@pytest.fixture
def student(make_user):
    return make_user(role="student")


@pytest.fixture
def client(session_factory):
    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


def auth_headers(user):
    return {"Authorization": f"Bearer {create_access_token(user.email)}"}
