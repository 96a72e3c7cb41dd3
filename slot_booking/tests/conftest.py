import os
from datetime import datetime, timedelta, timezone

os.environ.setdefault('DATABASE_URL', 'sqlite://')

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from slot_booking.app import create_app  # noqa: E402
from slot_booking.app.dependencies import get_clock, get_db, get_session_factory, get_sweep_lock  # noqa: E402
from slot_booking.app.locks import NullSweepLock  # noqa: E402
from slot_booking.app.models import Base, Client, Provider  # noqa: E402

# Two days before the 2024-08-23 08:00 UTC availability window used throughout the tests
NOW = datetime(2024, 8, 21, 8, 0, tzinfo=timezone.utc)


class FakeClock:
    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs):
        self.now += timedelta(**kwargs)


@pytest.fixture
def clock():
    return FakeClock(NOW)


@pytest.fixture
def session_factory():
    engine = create_engine(
        'sqlite://',
        connect_args={'check_same_thread': False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    try:
        yield sessionmaker(autocommit=False, autoflush=False, bind=engine)
    finally:
        engine.dispose()


@pytest.fixture
def file_session_factory(tmp_path):
    engine = create_engine(
        f"sqlite:///{tmp_path / 'slots.db'}",
        connect_args={'check_same_thread': False, 'timeout': 30},
    )
    Base.metadata.create_all(bind=engine)
    try:
        yield sessionmaker(autocommit=False, autoflush=False, bind=engine)
    finally:
        engine.dispose()


@pytest.fixture
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def provider(db):
    provider = Provider(name="Dr. Rivera")
    db.add(provider)
    db.commit()
    return provider


@pytest.fixture
def patient(db):
    patient = Client(name="Sam Lee", email="sam@example.com", phone_number="555-0100")
    db.add(patient)
    db.commit()
    return patient


@pytest.fixture
def client(session_factory, clock):
    app = create_app()

    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_session_factory] = lambda: session_factory
    app.dependency_overrides[get_clock] = lambda: clock
    app.dependency_overrides[get_sweep_lock] = NullSweepLock

    with TestClient(app) as test_client:
        yield test_client
