import pytest
from sqlalchemy.orm import sessionmaker

from vaccine_scheduler.core.database import build_engine, init_db
from vaccine_scheduler.core.security import IdentityKind
from vaccine_scheduler.services.auth_service import AuthService
from vaccine_scheduler.services.reservation_service import ReservationService
from vaccine_scheduler.services.session import Identity, UserSession


class FakeRedis:
    """Dict-backed stand-in for the few Redis calls the API makes."""

    def __init__(self):
        self.data = {}

    def setex(self, key, ttl, value):
        self.data[key] = str(value)
        return True

    def get(self, key):
        return self.data.get(key)

    def incr(self, key):
        self.data[key] = str(int(self.data.get(key, 0)) + 1)
        return int(self.data[key])


@pytest.fixture
def engine(tmp_path):
    test_engine = build_engine(f"sqlite:///{tmp_path / 'scheduler.db'}")
    init_db(bind=test_engine)
    yield test_engine
    test_engine.dispose()


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
def fake_redis():
    return FakeRedis()


@pytest.fixture
def make_service(db):
    """Build a reservation engine acting as the given identity."""
    def _make(kind=None, username=None):
        principal = Identity(kind=kind, username=username) if kind else None
        return ReservationService(db, UserSession(principal))
    return _make


@pytest.fixture
def clinic(db, make_service):
    """Caregiver alice open on 2024-01-10, one Pfizer dose, patients bob and carol."""
    auth = AuthService(db)
    auth.register(IdentityKind.CAREGIVER, "alice", "alice-pass")
    auth.register(IdentityKind.PATIENT, "bob", "bob-pass")
    auth.register(IdentityKind.PATIENT, "carol", "carol-pass")

    alice = make_service(IdentityKind.CAREGIVER, "alice")
    alice.upload_availability("2024-01-10")
    alice.add_doses("Pfizer", 1)
    return {
        "alice": alice,
        "bob": make_service(IdentityKind.PATIENT, "bob"),
        "carol": make_service(IdentityKind.PATIENT, "carol"),
    }


@pytest.fixture
def client(session_factory, fake_redis):
    """API client bound to the per-test database and an in-memory Redis."""
    from fastapi.testclient import TestClient

    from vaccine_scheduler.core.database import get_db, get_redis
    from vaccine_scheduler.main import app

    def override_get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_redis] = lambda: fake_redis
    with TestClient(app, base_url="http://testserver") as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def register(client):
    """Register an account over HTTP and return its auth headers."""
    def _register(kind, username, password="pw"):
        response = client.post(
            "/api/v1/auth/register",
            json={"kind": kind, "username": username, "password": password}
        )
        assert response.status_code == 200, response.text
        return {"Authorization": f"Bearer {response.json()['access_token']}"}
    return _register
