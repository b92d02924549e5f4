"""
Incident form state: text fields, location lock and staged attachments.
"""

import logging
import threading
from typing import Any, Dict, Optional

from satarknity.core.errors import LocationLockedError, SubmissionInProgressError
from satarknity.geo.geocoding import Coordinates, ResolvedLocation, ReverseGeocoder
from satarknity.incidents.attachments import AttachmentStager, PreviewRegistry

logger = logging.getLogger(__name__)


class IncidentForm:
    """
    Client-side draft of one incident report.

    The location becomes read-only once it has been filled from device
    coordinates, until the form is reset.
    """

    def __init__(self, previews: PreviewRegistry):
        self.description = ""
        self.location = ""
        self.location_locked = False
        self.resolved_location: Optional[ResolvedLocation] = None
        self.attachments = AttachmentStager(previews)
        self.is_submitting = False
        self.last_submission = None
        self._submit_lock = threading.Lock()

    def begin_submission(self) -> bool:
        """Claim the form for one submission; False if one is already running."""
        with self._submit_lock:
            if self.is_submitting:
                return False
            self.is_submitting = True
            return True

    def end_submission(self) -> None:
        with self._submit_lock:
            self.is_submitting = False

    @property
    def last_outcome(self) -> Optional[str]:
        """Terminal state of the most recent submission, if any."""
        run = self.last_submission
        if run is None or run.outcome is None:
            return None
        return run.outcome.value

    def ensure_editable(self) -> None:
        """Edits are refused while a submission is reading the draft."""
        if self.is_submitting:
            raise SubmissionInProgressError(
                "The report is being submitted and cannot be changed"
            )

    def update(
        self,
        description: Optional[str] = None,
        location: Optional[str] = None,
    ) -> None:
        """Set text fields; None leaves a field unchanged."""
        self.ensure_editable()
        if location is not None and location != self.location:
            if self.location_locked:
                raise LocationLockedError(
                    "Location was set from your device position and cannot be edited"
                )
            self.location = location
        if description is not None:
            self.description = description

    def auto_locate(
        self,
        geocoder: ReverseGeocoder,
        coordinates: Optional[Coordinates],
    ) -> Optional[ResolvedLocation]:
        """
        Fill the location from device coordinates.

        No coordinates (geolocation unavailable or denied) leaves the field
        empty and editable.
        """
        self.ensure_editable()
        if coordinates is None:
            logger.debug("No device position available, location left editable")
            return None

        resolved = geocoder.resolve(coordinates)
        self.location = resolved.text
        self.location_locked = True
        self.resolved_location = resolved
        return resolved

    def reset(self) -> None:
        """Clear every field and release all previews."""
        self.ensure_editable()
        self.clear()

    def clear(self) -> None:
        """Drop the draft regardless of submission state."""
        self.description = ""
        self.location = ""
        self.location_locked = False
        self.resolved_location = None
        self.attachments.clear()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "description": self.description,
            "location": self.location,
            "location_read_only": self.location_locked,
            "location_source": self.resolved_location.source if self.resolved_location else None,
            "attachments": [a.to_dict() for a in self.attachments],
            "attachment_slots_left": self.attachments.max_attachments - len(self.attachments),
            "is_submitting": self.is_submitting,
            "last_outcome": self.last_outcome,
        }
