"""
Pytest configuration and fixtures for the focus group study API.
"""
import json
import struct
import sys
import zlib
from datetime import timedelta
from io import BytesIO
from pathlib import Path

import pytest
from fastapi.testclient import TestClient
from PIL import Image

# Add project root to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

import config
from app import create_app
from auth.identity import IdentityProvider
from database.connection import Database
from database.models import Profile, utcnow
from storage.local_store import LocalObjectStore

TEST_SECRET = "test-signing-secret"


@pytest.fixture
def database():
    """Fresh in-memory SQLite database per test."""
    db = Database("sqlite://")
    db.create_tables()
    yield db
    db.drop_tables()
    db.dispose()


@pytest.fixture
def identity():
    return IdentityProvider(TEST_SECRET, audience=config.AUTH_JWT_AUDIENCE)


@pytest.fixture
def store(tmp_path):
    return LocalObjectStore(tmp_path / "uploads", signing_key=TEST_SECRET)


@pytest.fixture
def client(database, identity, store):
    app = create_app(database=database, identity=identity, store=store)
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def make_user(identity):
    """Create an identity user and return (user, auth headers)."""
    def _make(email: str):
        user = identity.create_confirmed_user(email)
        token = identity.issue_access_token(user)
        return user, {"Authorization": f"Bearer {token}"}
    return _make


@pytest.fixture
def participant(client, make_user):
    """Enrolled participant: identity user, headers and profile JSON."""
    user, headers = make_user("participant@example.com")
    response = client.post("/api/focus-group/profile", json={"age_range": "25-34", "image_consent": True}, headers=headers)
    assert response.status_code == 201
    return {"user": user, "headers": headers, "profile": response.json()["data"]}


@pytest.fixture
def admin(database, make_user):
    """Administrator with a flagged profile."""
    user, headers = make_user("coordinator@example.com")
    with database.get_session() as session:
        profile = Profile(user_id=user.id, email=user.email, is_admin=True)
        session.add(profile)
        session.flush()
        profile_id = profile.id
    return {"user": user, "headers": headers, "profile_id": profile_id}


@pytest.fixture
def backdate_enrollment(database):
    """Move a profile's enrollment back by a number of days."""
    def _backdate(profile_id: str, days: float):
        with database.get_session() as session:
            profile = session.query(Profile).filter(Profile.id == profile_id).one()
            profile.created_at = utcnow() - timedelta(days=days)
    return _backdate


def make_jpeg(size=(32, 24), color=(200, 120, 80), exif=None) -> bytes:
    buf = BytesIO()
    image = Image.new("RGB", size, color)
    if exif is not None:
        image.save(buf, format="JPEG", exif=exif)
    else:
        image.save(buf, format="JPEG")
    return buf.getvalue()


def make_png_with_alpha(size=(16, 16)) -> bytes:
    buf = BytesIO()
    Image.new("RGBA", size, (0, 0, 255, 128)).save(buf, format="PNG")
    return buf.getvalue()


def make_truncated_png() -> bytes:
    """PNG signature followed by an IHDR chunk too short to describe an image."""
    body = b"\x00" * 9
    chunk = struct.pack(">I", len(body)) + b"IHDR" + body
    return b"\x89PNG\r\n\x1a\n" + chunk + struct.pack(">I", zlib.crc32(b"IHDR" + body))


def cookie_header(token: str, as_json: bool = False) -> dict:
    value = json.dumps({"access_token": token}, separators=(",", ":")) if as_json else token
    return {"Cookie": f"{config.SESSION_COOKIE_NAME}={value}"}
