"""
Satarknity - Core Utilities
Central configuration, logging, constants and errors.
"""

from satarknity.core.config import settings, get_settings, Settings
from satarknity.core.constants import (
    MAX_ATTACHMENTS,
    ALLOWED_MIME_PREFIXES,
    IMAGE_EXTENSIONS,
    VIDEO_EXTENSIONS,
)
from satarknity.core.errors import (
    SatarknityError,
    ConfigurationError,
    ValidationError,
    AuthenticationRequiredError,
    AuthError,
    BackendError,
    UploadError,
    InsertError,
    FetchError,
)

__all__ = [
    "settings",
    "get_settings",
    "Settings",
    "MAX_ATTACHMENTS",
    "ALLOWED_MIME_PREFIXES",
    "IMAGE_EXTENSIONS",
    "VIDEO_EXTENSIONS",
    "SatarknityError",
    "ConfigurationError",
    "ValidationError",
    "AuthenticationRequiredError",
    "AuthError",
    "BackendError",
    "UploadError",
    "InsertError",
    "FetchError",
]
