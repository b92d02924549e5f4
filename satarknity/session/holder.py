"""
Satarknity - Session Holder
Tracks the authenticated identity for one client session.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

from satarknity.backend.auth_api import AuthSession, User
from satarknity.core.errors import BackendError

logger = logging.getLogger(__name__)


@dataclass
class AuthResult:
    """Outcome of a sign-in or sign-up attempt."""
    success: bool
    message: str
    user: Optional[User] = None
    confirmation_required: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": self.success,
            "message": self.message,
            "user": self.user.to_dict() if self.user else None,
            "confirmation_required": self.confirmation_required,
        }


class SessionHolder:
    """
    Holds the current session for one user of the application.

    Backed entirely by the external identity provider. Failures are reported
    in the returned AuthResult and leave the previous state untouched.
    """

    def __init__(self, backend: Optional[Any] = None):
        """
        Initialize session holder.

        Args:
            backend: BackendClient, or None when the backend is not configured
        """
        self.backend = backend
        self._session: Optional[AuthSession] = None

    @property
    def is_authenticated(self) -> bool:
        return self._session is not None

    @property
    def access_token(self) -> Optional[str]:
        return self._session.access_token if self._session else None

    def _unavailable(self) -> AuthResult:
        return AuthResult(
            success=False,
            message="Authentication is unavailable: backend is not configured",
        )

    def sign_in(self, email: str, password: str) -> AuthResult:
        """
        Sign in with email and password.

        Returns:
            AuthResult; on failure the message is the provider's
        """
        if self.backend is None:
            return self._unavailable()

        try:
            session = self.backend.auth.sign_in_with_password(email, password)
        except BackendError as e:
            logger.info(f"Sign-in rejected for {email}: {e.message}")
            return AuthResult(success=False, message=e.message)

        self._session = session
        logger.info(f"User {session.user.id} signed in")
        return AuthResult(
            success=True,
            message="You have been signed in successfully",
            user=session.user,
        )

    def sign_up(self, email: str, password: str) -> AuthResult:
        """
        Create an account. Signs in immediately when the provider issues a session.
        """
        if self.backend is None:
            return self._unavailable()

        try:
            user, session = self.backend.auth.sign_up(email, password)
        except BackendError as e:
            logger.info(f"Sign-up rejected for {email}: {e.message}")
            return AuthResult(success=False, message=e.message)

        if session is None:
            return AuthResult(
                success=True,
                message="Account created. Check your email to confirm it before signing in",
                user=user,
                confirmation_required=True,
            )

        self._session = session
        logger.info(f"User {user.id} signed up")
        return AuthResult(
            success=True,
            message="Your account has been created successfully",
            user=user,
        )

    def sign_out(self) -> None:
        """Clear the local session. A failed remote logout is only logged."""
        if self._session is None:
            return

        token = self._session.access_token
        self._session = None

        if self.backend is None:
            return
        try:
            self.backend.auth.sign_out(token)
        except BackendError as e:
            logger.warning(f"Remote sign-out failed, local session cleared: {e.message}")

    def current_user(self) -> Optional[User]:
        """
        Return the active identity, confirmed with the provider.

        A token the provider rejects clears the session. A transport failure
        keeps the cached identity.
        """
        if self._session is None or self.backend is None:
            return None

        try:
            user = self.backend.auth.get_user(self._session.access_token)
        except BackendError as e:
            if e.http_status in (401, 403):
                logger.info("Session token rejected by provider, clearing session")
                self._session = None
                return None
            logger.warning(f"Could not confirm session, using cached user: {e.message}")
            return self._session.user

        self._session.user = user
        return user
