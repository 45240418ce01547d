"""Add backend to path so tests can use direct imports; in-memory DB and a fake S3 client."""
import os
import sys
import threading
from io import BytesIO

_backend_dir = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if _backend_dir not in sys.path:
    sys.path.insert(0, _backend_dir)

# Must be set before db.session is imported anywhere
os.environ["DATABASE_URL"] = "sqlite://"
os.environ.setdefault("S3_BUCKET", "test-bucket")

import pytest
from botocore.exceptions import ClientError
from PIL import Image

PUBLIC_BASE = "https://cdn.test"


class FakeS3Client:
    """Dict-backed stand-in for the boto3 S3 client calls ObjectStore makes."""

    def __init__(self):
        self.objects: dict[str, dict] = {}
        self.fail_put: set[str] = set()
        self.fail_delete: set[str] = set()
        self.put_count = 0
        self._lock = threading.Lock()

    @staticmethod
    def _error(code: str, op: str) -> ClientError:
        return ClientError({"Error": {"Code": code, "Message": f"{op} failed"}}, op)

    def put_object(self, Bucket, Key, Body, ContentType, **kwargs):
        if Key in self.fail_put:
            raise self._error("500", "PutObject")
        with self._lock:
            self.put_count += 1
            self.objects[Key] = {"Body": bytes(Body), "ContentType": ContentType}
        return {}

    def delete_object(self, Bucket, Key):
        if Key in self.fail_delete:
            raise self._error("500", "DeleteObject")
        self.objects.pop(Key, None)
        return {}

    def head_object(self, Bucket, Key):
        if Key not in self.objects:
            raise self._error("404", "HeadObject")
        return {"ContentLength": len(self.objects[Key]["Body"])}


def make_logo(width: int = 200, height: int = 100, color=(220, 20, 60, 255), fmt: str = "PNG") -> bytes:
    img = Image.new("RGBA", (width, height), color)
    buf = BytesIO()
    if fmt == "JPEG":
        img = img.convert("RGB")
    img.save(buf, format=fmt)
    return buf.getvalue()


@pytest.fixture
def s3():
    return FakeS3Client()


@pytest.fixture
def store(s3):
    from s3_client import ObjectStore
    return ObjectStore(s3, "test-bucket", PUBLIC_BASE)


@pytest.fixture
def logo_png() -> bytes:
    return make_logo()


@pytest.fixture
def store_fetcher(s3):
    """Fetcher that serves objects already in the fake bucket by public URL."""
    from assets.errors import SourceFetchError

    def fetch(url: str) -> bytes:
        key = url[len(PUBLIC_BASE) + 1:] if url.startswith(PUBLIC_BASE + "/") else None
        if key is None or key not in s3.objects:
            raise SourceFetchError(f"not found: {url}")
        return s3.objects[key]["Body"]

    return fetch


@pytest.fixture
def db_session():
    from db.session import Base, SessionLocal, engine
    from db import models  # noqa: F401

    Base.metadata.create_all(bind=engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def claims():
    """Caller identity for route tests; mutate fields to switch user or role."""
    from auth import ClerkClaims
    return ClerkClaims(sub="user_1", org_id="org_clerk_1", org_role="admin", org_slug="acme")


@pytest.fixture
def sync(store, store_fetcher):
    from assets.synchronizer import AssetSynchronizer
    return AssetSynchronizer(store, max_workers=2, fetcher=store_fetcher)


@pytest.fixture
def client(db_session, store, sync, claims):
    from fastapi.testclient import TestClient

    from auth import require_auth
    from main import app
    from routes.deps import get_synchronizer
    from s3_client import get_store

    app.dependency_overrides[get_store] = lambda: store
    app.dependency_overrides[get_synchronizer] = lambda: sync
    app.dependency_overrides[require_auth] = lambda: claims
    try:
        with TestClient(app) as c:
            yield c
    finally:
        app.dependency_overrides.clear()


@pytest.fixture
def small_catalog(monkeypatch):
    """Three splash screens instead of the full iOS set, to keep rendering fast."""
    from assets import planner
    monkeypatch.setattr(planner, "SPLASH_DIMENSIONS", ((750, 1334), (1170, 2532), (1334, 750)))
    return planner.catalog()
