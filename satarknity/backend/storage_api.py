"""
Object storage endpoints.
Path-addressed binary upload and public URL resolution.
"""

import logging
from typing import Optional
from urllib.parse import quote

logger = logging.getLogger(__name__)


class StorageAPI:
    """Thin wrapper over the /storage/v1 endpoints."""

    def __init__(self, backend):
        self._backend = backend

    def upload(
        self,
        bucket: str,
        path: str,
        data: bytes,
        content_type: str = "application/octet-stream",
        access_token: Optional[str] = None,
    ) -> str:
        """
        Upload a file to a bucket.

        Args:
            bucket: Bucket name
            path: Object path inside the bucket
            data: File bytes
            content_type: Declared MIME type
            access_token: Uploading user's JWT

        Returns:
            Object key reported by the backend
        """
        response = self._backend.request(
            "POST",
            f"/storage/v1/object/{bucket}/{quote(path)}",
            access_token=access_token,
            headers={"Content-Type": content_type, "x-upsert": "false"},
            content=data,
        )
        key = response.json().get("Key", f"{bucket}/{path}")
        logger.debug(f"Uploaded {len(data)} bytes to {key}")
        return key

    def get_public_url(self, bucket: str, path: str) -> str:
        """Resolve the public URL of an object. No request is made."""
        return f"{self._backend.url}/storage/v1/object/public/{bucket}/{quote(path)}"
