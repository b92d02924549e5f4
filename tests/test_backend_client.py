"""
Tests for the hosted backend client
"""
import httpx
import pytest

from satarknity.backend.client import BackendClient
from satarknity.core.errors import BackendError, ConfigurationError

from conftest import ANON_KEY, SUPABASE_URL


class TestBackendClient:
    """Test suite for BackendClient."""

    @pytest.fixture(autouse=True)
    def setup_client(self, fake_supabase):
        self.fake = fake_supabase
        self.client = BackendClient(SUPABASE_URL, ANON_KEY, transport=fake_supabase.transport)
        yield
        self.client.close()

    def test_requires_url_and_key(self):
        """Test missing credentials raise a configuration error."""
        with pytest.raises(ConfigurationError):
            BackendClient("", ANON_KEY)
        with pytest.raises(ConfigurationError):
            BackendClient(SUPABASE_URL, None)

    def test_from_settings(self, test_settings):
        client = BackendClient.from_settings(test_settings, transport=self.fake.transport)
        assert client.url == SUPABASE_URL
        assert client.timeout == test_settings.http_timeout_seconds
        client.close()

    def test_sign_in_returns_session(self):
        session = self.client.auth.sign_in_with_password("alice@example.com", "s3cret")

        assert session.user.id == "u1"
        assert session.access_token.startswith("token-u1")
        request = self.fake.requests[-1]
        assert request.url.params["grant_type"] == "password"
        assert request.headers["apikey"] == ANON_KEY

    def test_sign_in_failure_surfaces_provider_message(self):
        with pytest.raises(BackendError) as exc_info:
            self.client.auth.sign_in_with_password("alice@example.com", "wrong")

        assert exc_info.value.message == "Invalid login credentials"
        assert exc_info.value.http_status == 400

    def test_sign_up_without_confirmation_returns_session(self):
        user, session = self.client.auth.sign_up("bob@example.com", "pw123456")
        assert session is not None
        assert session.user.id == user.id

    def test_sign_up_with_confirmation_pending(self):
        self.fake.confirm_signups = True
        user, session = self.client.auth.sign_up("carol@example.com", "pw123456")
        assert session is None
        assert user.email == "carol@example.com"

    def test_get_user_uses_bearer_token(self):
        session = self.client.auth.sign_in_with_password("alice@example.com", "s3cret")
        user = self.client.auth.get_user(session.access_token)

        assert user.id == "u1"
        assert self.fake.requests[-1].headers["Authorization"] == f"Bearer {session.access_token}"

    def test_anon_key_is_default_bearer(self):
        self.client.tables.select("satarknity_incidents")
        assert self.fake.requests[-1].headers["Authorization"] == f"Bearer {ANON_KEY}"

    def test_upload_and_public_url(self):
        key = self.client.storage.upload(
            "incidentmedia", "u1/abc.jpg", b"data", content_type="image/jpeg"
        )

        assert key == "incidentmedia/u1/abc.jpg"
        assert self.fake.objects["incidentmedia/u1/abc.jpg"] == b"data"
        assert self.fake.requests[-1].headers["Content-Type"] == "image/jpeg"
        assert self.client.storage.get_public_url("incidentmedia", "u1/abc.jpg") == (
            f"{SUPABASE_URL}/storage/v1/object/public/incidentmedia/u1/abc.jpg"
        )

    def test_insert_returns_representation(self):
        rows = self.client.tables.insert(
            "satarknity_incidents",
            {"user_id": "u1", "description": "d", "location": "l", "media_urls": []},
        )

        assert rows[0]["id"] == 1
        assert self.fake.requests[-1].headers["Prefer"] == "return=representation"

    def test_select_orders_newest_first(self):
        self.fake.add_row("old", "a", minutes=0)
        self.fake.add_row("new", "b", minutes=30)

        rows = self.client.tables.select("satarknity_incidents")

        assert [r["description"] for r in rows] == ["new", "old"]
        params = self.fake.requests[-1].url.params
        assert params["order"] == "created_at.desc"
        assert params["select"] == "*"

    def test_http_error_raises_backend_error(self):
        self.fake.fail_select = True
        with pytest.raises(BackendError) as exc_info:
            self.client.tables.select("satarknity_incidents")
        assert exc_info.value.message == "database offline"
        assert exc_info.value.http_status == 503

    def test_transport_error_raises_backend_error(self):
        def broken(request):
            raise httpx.ConnectError("connection refused", request=request)

        client = BackendClient(SUPABASE_URL, ANON_KEY, transport=httpx.MockTransport(broken))
        with pytest.raises(BackendError) as exc_info:
            client.tables.select("satarknity_incidents")
        assert "connection refused" in exc_info.value.message
        client.close()

    def test_non_json_error_body(self):
        client = BackendClient(
            SUPABASE_URL,
            ANON_KEY,
            transport=httpx.MockTransport(lambda r: httpx.Response(502, text="Bad Gateway")),
        )
        with pytest.raises(BackendError) as exc_info:
            client.auth.get_user("token")
        assert exc_info.value.message == "Bad Gateway"
        client.close()
