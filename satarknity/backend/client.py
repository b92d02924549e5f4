"""
Satarknity - Backend Client
HTTP client for the hosted backend (Supabase-style auth, storage and tables).

The client is constructed once at application startup and passed to the
session holder, the submission workflow and the feed.

API Documentation: https://supabase.com/docs/guides/api
"""

import logging
from typing import Any, Dict, Optional

import httpx

from satarknity.backend.auth_api import AuthAPI
from satarknity.backend.storage_api import StorageAPI
from satarknity.backend.table_api import TableAPI
from satarknity.core.config import Settings
from satarknity.core.errors import BackendError, ConfigurationError

logger = logging.getLogger(__name__)


def _extract_message(response: httpx.Response) -> str:
    """Pull the provider's human-readable message out of an error response."""
    try:
        data = response.json()
    except ValueError:
        return response.text or f"HTTP {response.status_code}"

    if isinstance(data, dict):
        for key in ("error_description", "msg", "message", "error"):
            value = data.get(key)
            if value:
                return str(value)
    return f"HTTP {response.status_code}"


class BackendClient:
    """
    Client for the hosted backend.

    Usage:
        with BackendClient(url, anon_key) as backend:
            session = backend.auth.sign_in_with_password(email, password)
            rows = backend.tables.select("satarknity_incidents")

    Requests are authorised with the anon key unless a user access token is
    passed, in which case row-level security applies to that user.
    """

    def __init__(
        self,
        url: Optional[str],
        anon_key: Optional[str],
        timeout: float = 30.0,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        """
        Initialize backend client.

        Args:
            url: Project URL (e.g. https://xyz.supabase.co)
            anon_key: Public anon API key
            timeout: HTTP request timeout in seconds
            transport: Optional httpx transport (used by tests)
        """
        if not url or not anon_key:
            raise ConfigurationError(
                "Supabase URL and anon key are required. Set SUPABASE_URL and "
                "SUPABASE_ANON_KEY."
            )

        self.url = url.rstrip("/")
        self.anon_key = anon_key
        self.timeout = timeout
        self._client = httpx.Client(
            base_url=self.url,
            timeout=timeout,
            headers={"apikey": anon_key},
            transport=transport,
        )

        self.auth = AuthAPI(self)
        self.storage = StorageAPI(self)
        self.tables = TableAPI(self)

        logger.info(f"Backend client initialized for {self.url}")

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> "BackendClient":
        """Build a client from application settings."""
        return cls(
            settings.supabase_url,
            settings.supabase_anon_key,
            timeout=settings.http_timeout_seconds,
            transport=transport,
        )

    def __enter__(self):
        return self

    def __exit__(self, *args):
        self.close()

    def close(self) -> None:
        self._client.close()

    def _headers(
        self,
        access_token: Optional[str] = None,
        extra: Optional[Dict[str, str]] = None,
    ) -> Dict[str, str]:
        headers = {"Authorization": f"Bearer {access_token or self.anon_key}"}
        if extra:
            headers.update(extra)
        return headers

    def request(
        self,
        method: str,
        path: str,
        access_token: Optional[str] = None,
        headers: Optional[Dict[str, str]] = None,
        **kwargs: Any,
    ) -> httpx.Response:
        """
        Send a request and raise BackendError on transport or HTTP failure.

        Args:
            method: HTTP method
            path: Path relative to the project URL
            access_token: User JWT, defaults to the anon key
            headers: Extra request headers
            **kwargs: Passed through to httpx (json, params, content...)

        Returns:
            Successful httpx.Response
        """
        try:
            response = self._client.request(
                method,
                path,
                headers=self._headers(access_token, headers),
                **kwargs,
            )
        except httpx.HTTPError as e:
            logger.error(f"{method} {path} failed: {e}")
            raise BackendError(f"Could not reach backend: {e}") from e

        if response.is_error:
            message = _extract_message(response)
            logger.warning(f"{method} {path} -> {response.status_code}: {message}")
            raise BackendError(message, http_status=response.status_code)

        return response
