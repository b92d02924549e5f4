"""
Attachment staging for the incident form.

Staged files live only client-side until the form is submitted or reset.
Each staged file holds an ephemeral preview reference that must be released
when the file leaves the staging area.
"""

import logging
import secrets
import threading
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional

from satarknity.core.constants import ALLOWED_MIME_PREFIXES, MAX_ATTACHMENTS
from satarknity.core.errors import AttachmentIndexError, AttachmentLimitError

logger = logging.getLogger(__name__)


@dataclass
class MediaFile:
    """Raw file offered for staging."""
    filename: str
    content_type: str
    data: bytes

    @property
    def is_image(self) -> bool:
        return self.content_type.startswith("image/")

    @property
    def is_allowed(self) -> bool:
        return self.content_type.startswith(ALLOWED_MIME_PREFIXES)

    @property
    def extension(self) -> str:
        """Text after the last dot, or the whole name when there is none."""
        return self.filename.split(".")[-1]


class PreviewRegistry:
    """
    Ephemeral local references to staged file bytes.

    A token resolves to its file until it is revoked. Shared by all forms of
    one application so previews can be served over HTTP.
    """

    def __init__(self):
        self._files: Dict[str, MediaFile] = {}
        self._lock = threading.Lock()

    def create(self, media: MediaFile) -> str:
        token = secrets.token_urlsafe(16)
        with self._lock:
            self._files[token] = media
        return token

    def resolve(self, token: str) -> Optional[MediaFile]:
        with self._lock:
            return self._files.get(token)

    def revoke(self, token: str) -> None:
        with self._lock:
            self._files.pop(token, None)

    def __len__(self) -> int:
        with self._lock:
            return len(self._files)

    def __contains__(self, token: str) -> bool:
        with self._lock:
            return token in self._files


@dataclass
class Attachment:
    """A staged file plus its preview reference."""
    file: MediaFile
    preview: str

    def to_dict(self) -> Dict[str, object]:
        return {
            "filename": self.file.filename,
            "content_type": self.file.content_type,
            "size": len(self.file.data),
            "preview": self.preview,
            "kind": "image" if self.file.is_image else "video",
        }


@dataclass
class StagingResult:
    """Outcome of one add_attachments call."""
    accepted: List[Attachment] = field(default_factory=list)
    rejected: List[MediaFile] = field(default_factory=list)

    @property
    def messages(self) -> List[str]:
        return [
            f"{f.filename}: only images and videos are allowed"
            for f in self.rejected
        ]


class AttachmentStager:
    """
    Ordered staging area holding at most MAX_ATTACHMENTS files.

    A batch that would push the count over the cap is rejected as a whole.
    Within an accepted batch, files that are not images or videos are dropped
    one by one while the rest are staged.
    """

    def __init__(self, previews: PreviewRegistry, max_attachments: int = MAX_ATTACHMENTS):
        self.previews = previews
        self.max_attachments = max_attachments
        self._items: List[Attachment] = []

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self):
        return iter(list(self._items))

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.clear()

    @property
    def attachments(self) -> List[Attachment]:
        return list(self._items)

    @property
    def is_full(self) -> bool:
        return len(self._items) >= self.max_attachments

    def add_attachments(self, files: Iterable[MediaFile]) -> StagingResult:
        """
        Stage a batch of files.

        Raises:
            AttachmentLimitError: the batch would exceed the cap; nothing staged
        """
        batch = list(files)
        if not batch:
            return StagingResult()

        if len(self._items) + len(batch) > self.max_attachments:
            raise AttachmentLimitError(
                f"You can only upload up to {self.max_attachments} media files",
                {"staged": len(self._items), "offered": len(batch)},
            )

        result = StagingResult()
        for media in batch:
            if not media.is_allowed:
                logger.info(f"Dropping {media.filename}: type {media.content_type!r} not allowed")
                result.rejected.append(media)
                continue
            attachment = Attachment(file=media, preview=self.previews.create(media))
            self._items.append(attachment)
            result.accepted.append(attachment)

        return result

    def remove_attachment(self, index: int) -> Attachment:
        """Release and remove the attachment at index, keeping the others in order."""
        if not 0 <= index < len(self._items):
            raise AttachmentIndexError(f"No staged attachment at index {index}")

        attachment = self._items.pop(index)
        self.previews.revoke(attachment.preview)
        return attachment

    def clear(self) -> None:
        """Release every preview and empty the staging area."""
        for attachment in self._items:
            self.previews.revoke(attachment.preview)
        self._items = []
