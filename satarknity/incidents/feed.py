"""
Incident feed: newest-first list of reports and per-attachment render modes.
"""

import logging
import re
import threading
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional, Union

from satarknity.core.config import settings
from satarknity.core.constants import IMAGE_EXTENSIONS, VIDEO_EXTENSIONS
from satarknity.core.errors import BackendError, FetchError
from satarknity.incidents.models import Incident, parse_timestamp

logger = logging.getLogger(__name__)

_IMAGE_URL = re.compile(r"\.(%s)$" % "|".join(IMAGE_EXTENSIONS), re.IGNORECASE)
_VIDEO_URL = re.compile(r"\.(%s)$" % "|".join(VIDEO_EXTENSIONS), re.IGNORECASE)

_OLDEST = datetime.min.replace(tzinfo=timezone.utc)


class MediaKind(str, Enum):
    """How an attachment URL is rendered."""
    IMAGE = "image"
    VIDEO = "video"
    UNSUPPORTED = "unsupported"


class FeedStatus(str, Enum):
    LOADING = "loading"
    READY = "ready"
    ERROR = "error"


def classify_media(url: str) -> MediaKind:
    """
    Pick a render mode from the URL's extension alone.

    Content is never sniffed: an extensionless or mislabeled URL is
    UNSUPPORTED.
    """
    if _IMAGE_URL.search(url):
        return MediaKind.IMAGE
    if _VIDEO_URL.search(url):
        return MediaKind.VIDEO
    return MediaKind.UNSUPPORTED


def format_timestamp(value: Union[str, datetime, None]) -> str:
    """Format like 'Mar 4, 2025 • 9:05 PM'; unparseable input is returned as-is."""
    dt = parse_timestamp(value)
    if dt is None:
        return "" if value is None else str(value)

    hour = dt.hour % 12 or 12
    return f"{dt:%b} {dt.day}, {dt.year} • {hour}:{dt:%M} {dt:%p}"


def _sort_key(incident: Incident) -> datetime:
    dt = incident.created_at_dt
    if dt is None:
        return _OLDEST
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt


def sort_newest_first(incidents: List[Incident]) -> List[Incident]:
    """Order by created_at, non-increasing. Ties keep their incoming order."""
    return sorted(incidents, key=_sort_key, reverse=True)


class FeedInvalidation:
    """
    Single-writer stale flag.

    The submission workflow marks the feed stale after each successful insert;
    the feed consumes the flag on its next read and re-fetches.
    """

    def __init__(self):
        self._stale = False
        self._version = 0
        self._lock = threading.Lock()

    @property
    def version(self) -> int:
        return self._version

    @property
    def is_stale(self) -> bool:
        return self._stale

    def invalidate(self) -> None:
        with self._lock:
            self._stale = True
            self._version += 1

    def consume(self) -> bool:
        """Return True once per invalidation, clearing the flag."""
        with self._lock:
            stale = self._stale
            self._stale = False
            return stale


@dataclass
class FeedSnapshot:
    """What the feed currently shows."""
    status: FeedStatus
    incidents: List[Incident] = field(default_factory=list)
    error: Optional[str] = None

    @property
    def is_empty(self) -> bool:
        return self.status == FeedStatus.READY and not self.incidents

    def to_dict(self) -> Dict[str, Any]:
        return {
            "status": self.status.value,
            "count": len(self.incidents),
            "error": self.error,
            "incidents": [render_incident(i) for i in self.incidents],
        }


def render_incident(incident: Incident) -> Dict[str, Any]:
    """Incident plus display fields for the feed."""
    data = incident.to_dict()
    data.pop("user_id", None)
    data["created_at_display"] = format_timestamp(incident.created_at)
    data["media"] = [
        {"url": url, "kind": classify_media(url).value}
        for url in incident.media_urls
    ]
    return data


class IncidentFeed:
    """
    Read path for incident records.

    Keeps the last successful result. Fetches on first read, after an
    invalidation, and after a failed fetch; otherwise serves the cache.
    """

    def __init__(
        self,
        backend: Optional[Any],
        invalidation: FeedInvalidation,
        table: Optional[str] = None,
    ):
        """
        Initialize the feed.

        Args:
            backend: BackendClient, or None when the backend is not configured
            invalidation: Stale flag shared with the submission workflow
            table: Incidents table name
        """
        self.backend = backend
        self.invalidation = invalidation
        self.table = table or settings.incidents_table

        self._incidents: Optional[List[Incident]] = None
        self._error: Optional[str] = None
        self._lock = threading.Lock()

    def snapshot(self) -> FeedSnapshot:
        """Current state without fetching."""
        if self._error is not None:
            return FeedSnapshot(FeedStatus.ERROR, list(self._incidents or []), self._error)
        if self._incidents is None:
            return FeedSnapshot(FeedStatus.LOADING)
        return FeedSnapshot(FeedStatus.READY, list(self._incidents))

    def list_incidents(self) -> FeedSnapshot:
        """Return the feed, re-fetching when it is stale."""
        with self._lock:
            stale = self.invalidation.consume()
            if stale or self._incidents is None or self._error is not None:
                self._refresh()
            return self.snapshot()

    def refresh(self) -> FeedSnapshot:
        """Force a fetch regardless of the stale flag."""
        with self._lock:
            self.invalidation.consume()
            self._refresh()
            return self.snapshot()

    def fetch(self) -> List[Incident]:
        """
        Query every record, newest first.

        Raises:
            FetchError: backend missing or query failed
        """
        if self.backend is None:
            raise FetchError("Incident feed is unavailable: backend is not configured")

        try:
            rows = self.backend.tables.select(self.table, order_by="created_at", ascending=False)
        except BackendError as e:
            raise FetchError(f"Could not load incident reports: {e.message}") from e

        incidents = []
        for row in rows:
            try:
                incidents.append(Incident.from_row(row))
            except (KeyError, TypeError, ValueError) as e:
                logger.warning(f"Skipping malformed incident row: {e}")

        return sort_newest_first(incidents)

    def _refresh(self) -> None:
        try:
            incidents = self.fetch()
        except FetchError as e:
            logger.error(f"Error fetching incidents: {e.message}")
            self._error = e.message
            return

        self._incidents = incidents
        self._error = None
        logger.info(f"Feed refreshed with {len(incidents)} incidents")
