# tests/conftest.py
import os

# must be set before any app module reads them
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["ENABLE_SCHEDULER"] = "0"
os.environ["ENABLE_CREATE_ALL"] = "1"
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ["ACCESS_FAIL_CLOSED"] = "0"
os.environ.setdefault("SECRET_KEY", "test-secret-key")

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

from app.crud.studio import create_studio  # noqa: E402
from app.crud.user_profile import update_profile  # noqa: E402
from app.db.session import SessionLocal, engine  # noqa: E402
from app.main import app  # noqa: E402
from app.models import Base  # noqa: E402
from app.models.user_profile import ROLE_STUDIO_MEMBER, STATUS_ACTIVE  # noqa: E402
from app.schemas.studio import StudioCreate  # noqa: E402
from app.schemas.user_profile import ProfileUpdate  # noqa: E402
from app.services.identity import IdentityProvider  # noqa: E402

PASSWORD = "segreta123"


@pytest.fixture(autouse=True)
def _fresh_schema():
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield


@pytest.fixture
def db():
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def client():
    return TestClient(app)


# --- factories ---
@pytest.fixture
def make_user(db):
    """Self-signed-up user: studio_admin, active, no studio."""

    def _make(email: str, full_name: str = None, password: str = PASSWORD):
        identity, err = IdentityProvider(db).register(email, password, full_name)
        assert err is None, err
        return identity

    return _make


@pytest.fixture
def make_studio(db):
    def _make(owner, name: str = "Ink & Art", **fields):
        data = StudioCreate(name=name, email=fields.pop("email", owner.email), **fields)
        studio, err = create_studio(db, data, owner.id)
        assert err is None, err
        return studio

    return _make


@pytest.fixture
def make_member(db, make_user):
    """Active member bound to `studio` with `role`."""

    def _make(studio, email: str, role: str = ROLE_STUDIO_MEMBER):
        identity = make_user(email)
        update_profile(
            db,
            identity.id,
            ProfileUpdate(role=role, studio_id=studio.id, status=STATUS_ACTIVE),
        )
        return identity

    return _make


@pytest.fixture
def auth_headers(db):
    def _headers(identity):
        token = IdentityProvider(db).issue_session(identity)
        return {"Authorization": f"Bearer {token}"}

    return _headers
