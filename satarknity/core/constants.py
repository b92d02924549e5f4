"""
Satarknity - Constants
Static values shared by the submission workflow and the feed.
"""

from typing import Tuple

# =============================================================================
# ATTACHMENTS
# =============================================================================

MAX_ATTACHMENTS: int = 2

# Declared MIME type prefixes accepted at staging time
ALLOWED_MIME_PREFIXES: Tuple[str, ...] = ("image/", "video/")

# =============================================================================
# FEED RENDERING
# =============================================================================

# Matched against the end of the public URL, case-insensitive
IMAGE_EXTENSIONS: Tuple[str, ...] = ("jpeg", "jpg", "gif", "png")
VIDEO_EXTENSIONS: Tuple[str, ...] = ("mp4", "webm", "ogg", "mov")

# =============================================================================
# UPLOAD NAMING
# =============================================================================

UPLOAD_TOKEN_ALPHABET = "0123456789abcdefghijklmnopqrstuvwxyz"
UPLOAD_TOKEN_LENGTH = 11

# Precision used when a raw coordinate pair stands in for an address
COORDINATE_DECIMALS = 6
