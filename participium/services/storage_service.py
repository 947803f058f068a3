"""
Storage Service - report photos and profile pictures in Firebase Storage.
"""

from typing import Optional
from urllib.parse import unquote, urlparse
import logging

from participium.config.firebase import get_bucket
from participium.core.exceptions import StorageError

logger = logging.getLogger(__name__)


class StorageService:
    """Upload and delete public objects in the default bucket."""

    def __init__(self):
        self.bucket = get_bucket()

    def upload_file(self, path: str, data: bytes, content_type: str) -> str:
        """
        Upload bytes and return their public URL.

        Raises:
            StorageError: when the bucket rejects the upload
        """
        try:
            blob = self.bucket.blob(path)
            blob.upload_from_string(data, content_type=content_type)
            blob.make_public()
            logger.info(f"Uploaded {path} ({len(data)} bytes)")
            return blob.public_url
        except Exception as e:
            logger.error(f"Failed to upload {path}: {e}", exc_info=True)
            raise StorageError("Failed to upload images to storage") from e

    def delete_file(self, path: str) -> None:
        try:
            self.bucket.blob(path).delete()
            logger.info(f"Deleted {path}")
        except Exception as e:
            logger.error(f"Failed to delete {path}: {e}", exc_info=True)
            raise StorageError("Failed to delete images from storage") from e

    def path_from_url(self, url: str) -> Optional[str]:
        """
        Object path of a public URL produced by upload_file, or None when the
        URL does not point into this bucket.
        """
        parsed = urlparse(url)
        prefix = f"/{self.bucket.name}/"
        if not parsed.path.startswith(prefix):
            return None
        return unquote(parsed.path[len(prefix):])


# Global service instance (singleton pattern)
_storage_service = None


def get_storage_service() -> StorageService:
    """Get or create StorageService singleton."""
    global _storage_service
    if _storage_service is None:
        _storage_service = StorageService()
    return _storage_service
