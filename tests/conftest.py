import io
import os

# settings are read at import time
os.environ["APP_ENV"] = "test"
os.environ["DATABASE_URL"] = "sqlite://"
os.environ.pop("ADMIN_API_KEY", None)

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.pool import StaticPool
from sqlmodel import Session, SQLModel, create_engine

from docunlock.config import Settings, get_settings
from docunlock.database import get_session
from docunlock.main import app
from docunlock.models import Textbook
from docunlock.services.r2_client import get_blob_store

KIB = 1024
MIB = 1024 * 1024


class InMemoryBlobStore:
    """Test double with the R2Storage surface, keyed in a dict."""

    def __init__(self):
        self.objects = {}
        self.metadata = {}
        self.fail_puts = set()
        self.fail_deletes = set()

    def put_pdf(self, key, data, metadata=None):
        if key in self.fail_puts:
            raise RuntimeError(f"put failed for {key}")
        self.objects[key] = bytes(data)
        self.metadata[key] = dict(metadata or {})
        return key

    def get(self, key):
        return self.objects.get(key)

    def head(self, key):
        if key not in self.objects:
            return None
        return {"key": key, "size": len(self.objects[key])}

    def delete(self, key):
        if key in self.fail_deletes:
            raise RuntimeError(f"delete failed for {key}")
        self.objects.pop(key, None)

    def list_keys(self, prefix=""):
        return sorted(k for k in self.objects if k.startswith(prefix))

    def public_url(self, key):
        return f"https://pub-test.r2.dev/{key}"


def fake_pdf(size: int) -> bytes:
    header = b"%PDF-1.4\n"
    footer = b"\n%%EOF\n"
    return header + b"0" * max(0, size - len(header) - len(footer)) + footer


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    from docunlock import models  # noqa: F401
    SQLModel.metadata.create_all(engine)
    yield engine
    SQLModel.metadata.drop_all(engine)


@pytest.fixture
def db_session(engine):
    with Session(engine) as session:
        yield session


@pytest.fixture
def blob_store():
    return InMemoryBlobStore()


@pytest.fixture
def test_settings():
    return Settings(app_env="test", database_url="sqlite://", admin_api_key=None)


@pytest.fixture
def client(engine, blob_store, test_settings):
    """TestClient with its own sqlite database and an in-memory bucket."""

    def override_get_session():
        with Session(engine) as session:
            yield session

    app.dependency_overrides[get_session] = override_get_session
    app.dependency_overrides[get_blob_store] = lambda: blob_store
    app.dependency_overrides[get_settings] = lambda: test_settings
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def textbook(db_session):
    book = Textbook(slug="blockchain-fundamentals", title="Blockchain Fundamentals", author="A. Writer")
    db_session.add(book)
    db_session.commit()
    db_session.refresh(book)
    return book


@pytest.fixture
def upload(client):
    """Upload a PDF of ``size`` bytes through the admin endpoint."""

    def _upload(size, section_number=1, slug="blockchain-fundamentals",
                filename="Introduction_to_Blockchain.pdf", price=1500):
        files = {"file": (filename, io.BytesIO(fake_pdf(size)), "application/pdf")}
        data = {
            "textbook_slug": slug,
            "section_number": str(section_number),
            "price_minor_units": str(price),
        }
        return client.post("/admin/upload", files=files, data=data)

    return _upload
