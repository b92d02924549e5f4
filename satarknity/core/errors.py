"""
Satarknity - Error Taxonomy
Every failure is recoverable by user action; none is process-fatal.
"""

from typing import Any, Dict, Optional


class SatarknityError(Exception):
    """Base class for all application errors."""

    code = "error"
    status_code = 500

    def __init__(self, message: str, detail: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.detail = detail or {}

    def to_dict(self) -> Dict[str, Any]:
        payload = {"detail": self.message, "code": self.code}
        if self.detail:
            payload["context"] = self.detail
        return payload


class ConfigurationError(SatarknityError):
    """Backend credentials are missing; the feature is disabled."""
    code = "configuration_error"
    status_code = 503


class ValidationError(SatarknityError):
    """A required field is missing. Raised before any external call."""
    code = "validation_error"
    status_code = 422

    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(message, {"field": field} if field else None)
        self.field = field


class AuthenticationRequiredError(SatarknityError):
    code = "authentication_required"
    status_code = 401


class AuthError(SatarknityError):
    """The identity provider refused a sign-in, sign-up or lookup."""
    code = "auth_error"
    status_code = 400


class BackendError(SatarknityError):
    """Transport or HTTP failure talking to the hosted backend."""
    code = "backend_error"
    status_code = 502

    def __init__(self, message: str, http_status: Optional[int] = None):
        super().__init__(message, {"http_status": http_status} if http_status else None)
        self.http_status = http_status


class UploadError(SatarknityError):
    code = "upload_error"
    status_code = 502


class InsertError(SatarknityError):
    code = "insert_error"
    status_code = 502


class FetchError(SatarknityError):
    code = "fetch_error"
    status_code = 502


class GeocodingError(SatarknityError):
    code = "geocoding_error"
    status_code = 502


class AttachmentError(SatarknityError):
    code = "attachment_error"
    status_code = 400


class AttachmentLimitError(AttachmentError):
    code = "too_many_files"


class AttachmentTypeError(AttachmentError):
    code = "invalid_file_type"


class AttachmentIndexError(AttachmentError, IndexError):
    code = "attachment_not_found"
    status_code = 404


class LocationLockedError(SatarknityError):
    """Location was filled from device coordinates and is read-only."""
    code = "location_locked"
    status_code = 409


class SubmissionInProgressError(SatarknityError):
    code = "submission_in_progress"
    status_code = 409
