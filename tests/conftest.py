"""
Pytest configuration and fixtures
"""
import json
import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path
from unittest.mock import MagicMock

import httpx
import pytest

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from satarknity.backend.auth_api import AuthSession, User
from satarknity.core.config import Settings
from satarknity.incidents.attachments import MediaFile, PreviewRegistry
from satarknity.incidents.feed import FeedInvalidation
from satarknity.incidents.form import IncidentForm
from satarknity.session.holder import SessionHolder

SUPABASE_URL = "https://project.supabase.test"
GEOCODER_URL = "https://geocoder.test"
ANON_KEY = "anon-key"


class FakeSupabase:
    """
    In-memory stand-in for the hosted auth, storage and table endpoints.

    Plugged into httpx through MockTransport; also answers reverse geocoding
    requests for GEOCODER_URL.
    """

    TABLE = "satarknity_incidents"
    BASE_TIME = datetime(2025, 3, 1, 12, 0, tzinfo=timezone.utc)

    def __init__(self):
        self.users = {}
        self.tokens = {}
        self.objects = {}
        self.rows = []
        self.requests = []
        self.fail_upload_number = None
        self.fail_insert = False
        self.fail_select = False
        self.confirm_signups = False
        self.geocode_status = 200
        self.geocode_address = "5th & Main, Springfield"
        self.uploads = 0
        self.transport = httpx.MockTransport(self.handle)

    # -- helpers ---------------------------------------------------------

    def add_user(self, email, password, user_id):
        self.users[email] = {"password": password, "id": user_id}

    def add_row(self, description, location, minutes, media_urls=None, user_id="u0"):
        row = {
            "id": len(self.rows) + 1,
            "description": description,
            "location": location,
            "created_at": (self.BASE_TIME + timedelta(minutes=minutes)).isoformat(),
            "media_urls": media_urls or [],
            "user_id": user_id,
        }
        self.rows.append(row)
        return row

    def _session(self, email):
        user_id = self.users[email]["id"]
        token = f"token-{user_id}-{len(self.tokens)}"
        self.tokens[token] = {"id": user_id, "email": email}
        return {
            "access_token": token,
            "refresh_token": "refresh",
            "expires_in": 3600,
            "user": self.tokens[token],
        }

    def _bearer(self, request):
        return request.headers.get("Authorization", "").replace("Bearer ", "")

    def paths(self, method=None):
        return [
            r.url.path for r in self.requests
            if method is None or r.method == method
        ]

    # -- request handling ------------------------------------------------

    def handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path

        if str(request.url).startswith(GEOCODER_URL):
            if self.geocode_status != 200:
                return httpx.Response(self.geocode_status, json={"error": "unavailable"})
            return httpx.Response(200, json={"display_name": self.geocode_address})

        if path == "/auth/v1/token":
            body = json.loads(request.content)
            user = self.users.get(body["email"])
            if not user or user["password"] != body["password"]:
                return httpx.Response(
                    400,
                    json={"error": "invalid_grant", "error_description": "Invalid login credentials"},
                )
            return httpx.Response(200, json=self._session(body["email"]))

        if path == "/auth/v1/signup":
            body = json.loads(request.content)
            if body["email"] in self.users:
                return httpx.Response(422, json={"msg": "User already registered"})
            self.add_user(body["email"], body["password"], f"u{len(self.users) + 1}")
            if self.confirm_signups:
                user_id = self.users[body["email"]]["id"]
                return httpx.Response(200, json={"id": user_id, "email": body["email"]})
            return httpx.Response(200, json=self._session(body["email"]))

        if path == "/auth/v1/logout":
            self.tokens.pop(self._bearer(request), None)
            return httpx.Response(204)

        if path == "/auth/v1/user":
            user = self.tokens.get(self._bearer(request))
            if user is None:
                return httpx.Response(401, json={"msg": "invalid JWT"})
            return httpx.Response(200, json=user)

        if path.startswith("/storage/v1/object/"):
            self.uploads += 1
            if self.fail_upload_number == self.uploads:
                return httpx.Response(500, json={"message": "storage unavailable"})
            key = path[len("/storage/v1/object/"):]
            self.objects[key] = request.content
            return httpx.Response(200, json={"Key": key})

        if path == f"/rest/v1/{self.TABLE}":
            if request.method == "POST":
                if self.fail_insert:
                    return httpx.Response(500, json={"message": "insert failed"})
                body = json.loads(request.content)
                row = self.add_row(
                    body["description"],
                    body["location"],
                    minutes=len(self.rows) * 10,
                    media_urls=body["media_urls"],
                    user_id=body["user_id"],
                )
                return httpx.Response(201, json=[row])
            if self.fail_select:
                return httpx.Response(503, json={"message": "database offline"})
            rows = sorted(self.rows, key=lambda r: r["created_at"], reverse=True)
            return httpx.Response(200, json=rows)

        return httpx.Response(404, json={"message": f"unknown path {path}"})


@pytest.fixture
def fake_supabase():
    """Fake backend with one registered user."""
    fake = FakeSupabase()
    fake.add_user("alice@example.com", "s3cret", "u1")
    return fake


@pytest.fixture
def test_settings():
    """Settings pointing at the fake backend."""
    return Settings(
        _env_file=None,
        supabase_url=SUPABASE_URL,
        supabase_anon_key=ANON_KEY,
        geocoding_url=GEOCODER_URL,
        log_level="WARNING",
    )


@pytest.fixture
def previews():
    return PreviewRegistry()


@pytest.fixture
def form(previews):
    return IncidentForm(previews)


@pytest.fixture
def image_file():
    return MediaFile(filename="street.jpg", content_type="image/jpeg", data=b"\xff\xd8jpeg")


@pytest.fixture
def video_file():
    return MediaFile(filename="clip.mp4", content_type="video/mp4", data=b"\x00mp4")


@pytest.fixture
def text_file():
    return MediaFile(filename="notes.txt", content_type="text/plain", data=b"hello")


@pytest.fixture
def mock_backend():
    """MagicMock backend whose calls succeed for user u1."""
    backend = MagicMock()
    user = User(id="u1", email="alice@example.com")
    backend.auth.sign_in_with_password.return_value = AuthSession(
        access_token="tok-u1", user=user
    )
    backend.auth.get_user.return_value = user
    backend.storage.get_public_url.side_effect = (
        lambda bucket, path: f"https://cdn.test/{bucket}/{path}"
    )
    backend.tables.insert.side_effect = lambda table, row, access_token=None: [
        dict(row, id=42, created_at="2025-03-01T12:00:00+00:00")
    ]
    return backend


@pytest.fixture
def signed_in_session(mock_backend):
    session = SessionHolder(mock_backend)
    session.sign_in("alice@example.com", "s3cret")
    return session


@pytest.fixture
def invalidation():
    return FeedInvalidation()
