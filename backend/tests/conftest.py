import pytest
from fastapi.testclient import TestClient

from archiver.backends import SqlBackend, TreeBackend
from archiver.config import settings
from archiver.database import get_engine, init_db
from archiver.dependencies import get_backend
from archiver.filestore import LocalFileStore
from archiver.main import app
from archiver.services.auth_service import SessionRegistry
from archiver.store.realtime import MemoryTree
from archiver.utils.security import hash_password

ADMIN_USERNAME = "admin"
ADMIN_PASSWORD = "test-password-123"


@pytest.fixture(scope="session")
def admin_password_hash():
    return hash_password(ADMIN_PASSWORD)


@pytest.fixture
def admin_settings(admin_password_hash):
    original = (settings.admin_username, settings.admin_password_hash)
    settings.admin_username = ADMIN_USERNAME
    settings.admin_password_hash = admin_password_hash
    yield settings
    settings.admin_username, settings.admin_password_hash = original


@pytest.fixture
def files(tmp_path):
    return LocalFileStore(tmp_path / "files")


@pytest.fixture
def sql_backend(tmp_path, files):
    engine = get_engine(f"sqlite:///{tmp_path / 'archive.sqlite'}")
    init_db(engine)
    backend = SqlBackend(engine, files)
    yield backend
    backend.close()


@pytest.fixture
def realtime_backend(files):
    backend = TreeBackend(MemoryTree(), files)
    yield backend
    backend.close()


@pytest.fixture(params=["sql", "realtime"])
def backend(request):
    return request.getfixturevalue(f"{request.param}_backend")


@pytest.fixture
def store(backend):
    with backend.store() as s:
        yield s


@pytest.fixture
def sessions():
    original = app.state.sessions
    app.state.sessions = SessionRegistry(ttl_seconds=3600)
    yield app.state.sessions
    app.state.sessions = original


@pytest.fixture
def client(backend, admin_settings, sessions):
    app.dependency_overrides[get_backend] = lambda: backend
    c = TestClient(app)
    yield c
    app.dependency_overrides.clear()


@pytest.fixture
def credentials():
    return {"username": ADMIN_USERNAME, "password": ADMIN_PASSWORD}


@pytest.fixture
def token(client, credentials):
    r = client.post("/api/auth/login", json=credentials)
    assert r.status_code == 200
    return r.json()["token"]


@pytest.fixture
def headers(token):
    return {"Authorization": f"Bearer {token}"}
