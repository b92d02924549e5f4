"""
Incident record as stored in the tabular backend.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional, Union

logger = logging.getLogger(__name__)


def parse_timestamp(value: Union[str, datetime, None]) -> Optional[datetime]:
    """Parse a store timestamp (ISO 8601, possibly with a trailing Z)."""
    if value is None or isinstance(value, datetime):
        return value
    try:
        return datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    except ValueError:
        return None


@dataclass
class Incident:
    """
    A persisted community safety report.

    Created once by a submission and never mutated or deleted afterwards.
    """
    id: Optional[int]
    description: str
    location: str
    created_at: Union[datetime, str, None] = None
    media_urls: List[str] = field(default_factory=list)
    user_id: Optional[str] = None

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "Incident":
        """Build from a row returned by the store."""
        created = row.get("created_at")
        return cls(
            id=int(row["id"]),
            description=row.get("description") or "",
            location=row.get("location") or "",
            created_at=parse_timestamp(created) or created,
            media_urls=list(row.get("media_urls") or []),
            user_id=row.get("user_id"),
        )

    @property
    def created_at_dt(self) -> Optional[datetime]:
        return parse_timestamp(self.created_at)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        created = self.created_at
        return {
            "id": self.id,
            "description": self.description,
            "location": self.location,
            "created_at": created.isoformat() if isinstance(created, datetime) else created,
            "media_urls": list(self.media_urls),
            "user_id": self.user_id,
        }
