"""Object storage gateway for uploaded documents.

Files live either on local disk under ``UPLOAD_DIR`` (development and tests)
or in a GCP Cloud Storage bucket, selected by ``STORAGE_BACKEND``.
"""

import os
import secrets
import time
from datetime import timedelta
from pathlib import Path
from typing import Optional
from urllib.parse import quote

from google.cloud import storage
from google.cloud.exceptions import NotFound

from app.config import settings
from app.core.logging import logger
from app.shared.errors import StorageError


def build_object_path(user_id: str, filename: str) -> str:
    """Storage key for a user's upload: ``<user_id>/<random>_<filename>``."""
    safe_name = Path(filename or "upload").name.replace(" ", "_")
    return f"{user_id}/{secrets.token_hex(6)}_{safe_name}"


class StorageService:
    """Service for storing document files and handing out URLs to them."""

    _client: Optional[storage.Client] = None

    # ============ GCS CLIENT ============

    @classmethod
    def get_client(cls) -> storage.Client:
        """Get or create GCP Storage client."""
        if cls._client is None:
            if not settings.GCP_PROJECT_ID or not settings.GCP_STORAGE_BUCKET_NAME:
                raise StorageError(
                    "GCP_PROJECT_ID and GCP_STORAGE_BUCKET_NAME must be set for the gcs storage backend"
                )

            if settings.GOOGLE_APPLICATION_CREDENTIALS:
                if not os.path.exists(settings.GOOGLE_APPLICATION_CREDENTIALS):
                    raise StorageError(
                        f"Service account key file not found: {settings.GOOGLE_APPLICATION_CREDENTIALS}"
                    )
                cls._client = storage.Client.from_service_account_json(
                    settings.GOOGLE_APPLICATION_CREDENTIALS,
                    project=settings.GCP_PROJECT_ID,
                )
                logger.info("GCP Storage client initialized with service account")
            else:
                cls._client = storage.Client(project=settings.GCP_PROJECT_ID)
                logger.info("GCP Storage client initialized with default credentials")
        return cls._client

    @classmethod
    def _bucket(cls):
        return cls.get_client().bucket(settings.GCP_STORAGE_BUCKET_NAME)

    @staticmethod
    def _use_gcs() -> bool:
        return settings.STORAGE_BACKEND.lower() == "gcs"

    @staticmethod
    def _local_path(path: str) -> Path:
        root = Path(settings.UPLOAD_DIR).resolve()
        target = (root / path).resolve()
        if root not in target.parents:
            raise StorageError(f"Invalid storage path: {path}")
        return target

    # ============ GATEWAY OPERATIONS ============

    @classmethod
    async def upload(cls, path: str, data: bytes, content_type: Optional[str] = None) -> str:
        """Store ``data`` under ``path`` and return the stored path."""
        if cls._use_gcs():
            try:
                blob = cls._bucket().blob(path)
                blob.upload_from_string(data, content_type=content_type or "application/octet-stream")
            except StorageError:
                raise
            except Exception as e:
                logger.error(f"Error uploading {path} to GCP: {e}")
                raise StorageError(f"Failed to upload file: {e}") from e
        else:
            target = cls._local_path(path)
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_bytes(data)

        logger.info(f"Stored file at {path} ({len(data)} bytes)")
        return path

    @classmethod
    def get_public_url(cls, path: str) -> str:
        """Stable public URL for a stored object."""
        if cls._use_gcs():
            return f"https://storage.googleapis.com/{settings.GCP_STORAGE_BUCKET_NAME}/{quote(path)}"
        return f"{settings.PUBLIC_BASE_URL.rstrip('/')}/{quote(path)}"

    @classmethod
    def create_signed_url(cls, path: str, ttl: Optional[int] = None) -> str:
        """Time-limited URL for a stored object."""
        ttl = ttl or settings.SIGNED_URL_TTL_SECONDS
        if cls._use_gcs():
            blob = cls._bucket().blob(path)
            return blob.generate_signed_url(
                version="v4",
                expiration=timedelta(seconds=ttl),
                method="GET",
            )
        expires = int(time.time()) + ttl
        return f"{cls.get_public_url(path)}?expires={expires}"

    @classmethod
    async def delete(cls, path: str) -> bool:
        """
        Delete a stored object.
        Returns False instead of raising so callers can treat it as best-effort.
        """
        try:
            if cls._use_gcs():
                cls._bucket().blob(path).delete()
            else:
                cls._local_path(path).unlink()
            logger.info(f"Deleted stored file: {path}")
            return True
        except (NotFound, FileNotFoundError):
            logger.warning(f"File not found for deletion: {path}")
            return True
        except Exception as e:
            logger.error(f"Error deleting file {path}: {e}")
            return False
