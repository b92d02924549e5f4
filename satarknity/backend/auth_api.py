"""
Identity provider endpoints (GoTrue).
Email and password sign-in, sign-up, sign-out and user lookup.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional, Tuple

logger = logging.getLogger(__name__)


@dataclass
class User:
    """Authenticated identity."""
    id: str
    email: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "User":
        return cls(id=str(data["id"]), email=data.get("email"))

    def to_dict(self) -> Dict[str, Any]:
        return {"id": self.id, "email": self.email}


@dataclass
class AuthSession:
    """Tokens issued by the identity provider."""
    access_token: str
    user: User
    refresh_token: Optional[str] = None
    expires_in: Optional[int] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "AuthSession":
        return cls(
            access_token=data["access_token"],
            refresh_token=data.get("refresh_token"),
            expires_in=data.get("expires_in"),
            user=User.from_dict(data["user"]),
        )


class AuthAPI:
    """Thin wrapper over the /auth/v1 endpoints."""

    def __init__(self, backend):
        self._backend = backend

    def sign_in_with_password(self, email: str, password: str) -> AuthSession:
        """
        Exchange email and password for a session.

        Raises:
            BackendError: provider rejected the credentials or was unreachable
        """
        response = self._backend.request(
            "POST",
            "/auth/v1/token",
            params={"grant_type": "password"},
            json={"email": email, "password": password},
        )
        return AuthSession.from_dict(response.json())

    def sign_up(self, email: str, password: str) -> Tuple[User, Optional[AuthSession]]:
        """
        Create an identity.

        Returns:
            The new user, plus a session when the project does not require
            email confirmation
        """
        response = self._backend.request(
            "POST",
            "/auth/v1/signup",
            json={"email": email, "password": password},
        )
        data = response.json()

        if data.get("access_token"):
            session = AuthSession.from_dict(data)
            return session.user, session

        # Confirmation pending: the body is the user object itself
        user_data = data.get("user", data)
        return User.from_dict(user_data), None

    def sign_out(self, access_token: str) -> None:
        self._backend.request("POST", "/auth/v1/logout", access_token=access_token)

    def get_user(self, access_token: str) -> User:
        response = self._backend.request("GET", "/auth/v1/user", access_token=access_token)
        return User.from_dict(response.json())
