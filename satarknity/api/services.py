"""
Application services, built once at startup and shared by every request.
"""

import logging
import secrets
import threading
import time
from collections import OrderedDict
from dataclasses import dataclass, field
from typing import Callable, List, Optional, Tuple

import httpx

from satarknity.backend.client import BackendClient
from satarknity.core.config import Settings
from satarknity.core.errors import ConfigurationError
from satarknity.geo.geocoding import ReverseGeocoder
from satarknity.incidents.attachments import PreviewRegistry
from satarknity.incidents.feed import FeedInvalidation, IncidentFeed
from satarknity.incidents.form import IncidentForm
from satarknity.incidents.submission import IncidentSubmitter
from satarknity.session.holder import SessionHolder

logger = logging.getLogger(__name__)


@dataclass
class Workspace:
    """Per-browser state: who is signed in and their draft report."""
    session: SessionHolder
    form: IncidentForm


class WorkspaceRegistry:
    """
    Workspaces keyed by an opaque session cookie value.

    A workspace idle for longer than `ttl_seconds` is evicted, and the least
    recently used one goes first once `max_size` is reached. Eviction clears
    the draft so its previews are released.
    """

    def __init__(
        self,
        backend: Optional[BackendClient],
        previews: PreviewRegistry,
        ttl_seconds: float = 3600,
        max_size: int = 1000,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.backend = backend
        self.previews = previews
        self.ttl_seconds = ttl_seconds
        self.max_size = max_size
        self._clock = clock
        self._workspaces: "OrderedDict[str, Tuple[Workspace, float]]" = OrderedDict()
        self._lock = threading.Lock()

    def __len__(self) -> int:
        return len(self._workspaces)

    def get(self, session_id: Optional[str]) -> Optional[Workspace]:
        """Look up a live workspace without creating one."""
        with self._lock:
            evicted = self._evict_expired()
            workspace = self._touch(session_id)
        self._release(evicted)
        return workspace

    def get_or_create(self, session_id: Optional[str]) -> Tuple[str, Workspace, bool]:
        """
        Look up a workspace, creating one for unknown or missing ids.

        Returns:
            (session id, workspace, created)
        """
        created = False
        with self._lock:
            evicted = self._evict_expired()
            workspace = self._touch(session_id)
            if workspace is None:
                session_id, workspace = self._create(evicted)
                created = True

        self._release(evicted)
        return session_id, workspace, created

    def _create(self, evicted: List[Workspace]) -> Tuple[str, Workspace]:
        while self._workspaces and len(self._workspaces) >= self.max_size:
            _, (oldest, _) = self._workspaces.popitem(last=False)
            evicted.append(oldest)

        new_id = secrets.token_urlsafe(24)
        workspace = Workspace(
            session=SessionHolder(self.backend),
            form=IncidentForm(self.previews),
        )
        self._workspaces[new_id] = (workspace, self._clock())
        return new_id, workspace

    def close_all(self) -> None:
        with self._lock:
            workspaces = [ws for ws, _ in self._workspaces.values()]
            self._workspaces.clear()
        self._release(workspaces)

    def _touch(self, session_id: Optional[str]) -> Optional[Workspace]:
        if not session_id or session_id not in self._workspaces:
            return None
        workspace, _ = self._workspaces.pop(session_id)
        self._workspaces[session_id] = (workspace, self._clock())
        return workspace

    def _evict_expired(self) -> List[Workspace]:
        # Entries are kept in last-used order, oldest first
        cutoff = self._clock() - self.ttl_seconds
        evicted = []
        while self._workspaces:
            session_id, (workspace, last_used) = next(iter(self._workspaces.items()))
            if last_used > cutoff:
                break
            del self._workspaces[session_id]
            evicted.append(workspace)
        return evicted

    def _release(self, workspaces: List[Workspace]) -> None:
        for workspace in workspaces:
            workspace.form.clear()
        if workspaces:
            logger.debug(f"Released {len(workspaces)} workspace(s)")


@dataclass
class AppServices:
    """Explicitly constructed collaborators for one application instance."""
    settings: Settings
    backend: Optional[BackendClient]
    geocoder: ReverseGeocoder
    previews: PreviewRegistry = field(default_factory=PreviewRegistry)
    invalidation: FeedInvalidation = field(default_factory=FeedInvalidation)
    config_error: Optional[str] = None

    def __post_init__(self):
        self.feed = IncidentFeed(
            self.backend, self.invalidation, table=self.settings.incidents_table
        )
        self.submitter = IncidentSubmitter(
            self.backend,
            self.invalidation,
            bucket=self.settings.storage_bucket,
            table=self.settings.incidents_table,
        )
        self.workspaces = WorkspaceRegistry(
            self.backend,
            self.previews,
            ttl_seconds=self.settings.workspace_ttl_seconds,
            max_size=self.settings.max_workspaces,
        )

    @property
    def is_configured(self) -> bool:
        return self.backend is not None

    def close(self) -> None:
        self.workspaces.close_all()
        self.geocoder.close()
        if self.backend is not None:
            self.backend.close()
        logger.info("Application services closed")


def build_services(
    settings: Settings,
    transport: Optional[httpx.BaseTransport] = None,
) -> AppServices:
    """
    Build services from settings.

    Missing backend credentials disable the incident features with a warning
    instead of failing startup.
    """
    backend = None
    config_error = None
    try:
        backend = BackendClient.from_settings(settings, transport=transport)
    except ConfigurationError as e:
        config_error = e.message
        logger.warning(f"Incident features disabled: {e.message}")

    geocoder = ReverseGeocoder(
        base_url=settings.geocoding_url,
        api_key=settings.geocoding_api_key,
        user_agent=settings.geocoding_user_agent,
        transport=transport,
    )

    return AppServices(
        settings=settings,
        backend=backend,
        geocoder=geocoder,
        config_error=config_error,
    )
