import pytest
from fastapi.testclient import TestClient

import fakeredis
from fakeredis import FakeAsyncRedis

from recipebox.main import app
from recipebox.db import Base, get_db, init_engine, SessionLocal
from recipebox.deps import get_store
from recipebox.infra import redis_client
from recipebox.schemas import UploadDescriptorOut
from recipebox.seed import seed_taxonomy

# --- Test Database Setup ---

SQLALCHEMY_DATABASE_URL = "sqlite:///:memory:"

engine = init_engine(SQLALCHEMY_DATABASE_URL)
TestingSessionLocal = SessionLocal()

USER_ID = "user-1"
OTHER_USER_ID = "user-2"


def override_get_db():
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()


class FakeStore:
    """In-memory stand-in for the S3 object store."""

    def __init__(self):
        self.uploads = []
        self.downloads = []
        self.delete_attempts = []
        self.fail_upload = False
        self.fail_download = False
        self.fail_delete = False

    def upload_url(self, owner_id, recipe_id, metadata, key):
        if self.fail_upload:
            raise RuntimeError("signing unavailable")
        self.uploads.append((owner_id, recipe_id, key))
        return UploadDescriptorOut(
            upload_url="https://s3.test/recipebox-images",
            fields={"key": f"{owner_id}/{recipe_id}/{key}", "Content-Type": metadata.type},
            key=key,
        )

    def download_url(self, owner_id, recipe_id, key, cache_bucket):
        if self.fail_download:
            raise RuntimeError("object store unavailable")
        self.downloads.append((owner_id, recipe_id, key))
        return f"https://s3.test/recipebox-images/{owner_id}/{recipe_id}/{key}?b={cache_bucket}"

    def delete(self, owner_id, recipe_id, key):
        self.delete_attempts.append((owner_id, recipe_id, key))
        if self.fail_delete:
            raise RuntimeError("delete failed")

    def healthcheck(self):
        return True


@pytest.fixture(autouse=True)
def setup_database():
    """Create tables before each test, drop after."""
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def store():
    return FakeStore()


@pytest.fixture
def client(store):
    """Test client with DB and object store overrides."""
    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_store] = lambda: store
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture
def db_session():
    """Direct database session for setup."""
    session = TestingSessionLocal()
    yield session
    session.close()


@pytest.fixture
def taxonomy(db_session):
    """Seeded taxonomy rows."""
    seed_taxonomy(db_session)


@pytest.fixture
def auth():
    return {"X-User-Id": USER_ID}


@pytest.fixture
def other_auth():
    return {"X-User-Id": OTHER_USER_ID}


@pytest.fixture(autouse=True)
def mock_redis():
    server = fakeredis.FakeServer()
    redis_client._redis_async = FakeAsyncRedis(server=server, decode_responses=True)
    yield
    redis_client._redis_async = None
