# logistics_backend/shared/services/storage_service.py
import logging
import re
import uuid
from typing import Any, Dict, Iterable, Optional

import cloudinary
import cloudinary.uploader
from fastapi import UploadFile

from logistics_backend.config.settings import settings
from logistics_backend.core.exceptions import PersistenceError, ValidationError
from logistics_backend.shared.utils.dates import utcnow

logger = logging.getLogger(__name__)


class StorageService:
    """Opaque blob store: bytes + metadata in, public URL out"""

    def __init__(self):
        if not all([settings.cloudinary_cloud_name, settings.cloudinary_api_key, settings.cloudinary_api_secret]):
            logger.warning("⚠️ Cloudinary is not fully configured, uploads will be rejected")
            self.configured = False
            return

        cloudinary.config(
            cloud_name=settings.cloudinary_cloud_name,
            api_key=settings.cloudinary_api_key,
            api_secret=settings.cloudinary_api_secret,
            secure=True
        )
        self.configured = True
        logger.info("✅ Cloudinary configured")

    async def upload(
        self,
        content: bytes,
        folder: str,
        filename: str,
        content_type: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None
    ) -> str:
        """
        Upload a blob and return its secure URL.

        Args:
            content: raw file bytes
            folder: sub-folder under the configured root folder
            filename: original file name, used to build the public id
            content_type: MIME type reported by the client
            metadata: stored as Cloudinary context (values are stringified)
        """
        if not self.configured:
            raise PersistenceError("File storage is not configured")

        public_id = f"{_sanitize(filename)}_{utcnow():%Y%m%d_%H%M%S}_{uuid.uuid4().hex[:8]}"
        context = {key: str(value) for key, value in (metadata or {}).items()}
        if content_type:
            context["content_type"] = content_type

        try:
            logger.info(f"📤 Uploading {folder}/{public_id}")
            result = cloudinary.uploader.upload(
                content,
                public_id=public_id,
                folder=f"{settings.cloudinary_folder}/{folder}",
                resource_type="auto",
                context=context,
                overwrite=False,
                unique_filename=True,
                use_filename=False
            )
        except Exception as e:
            logger.error(f"❌ Cloudinary upload failed: {e}")
            raise PersistenceError(f"Error uploading file: {e}")

        if "secure_url" not in result:
            raise PersistenceError("File storage did not return a URL")

        logger.info(f"✅ Uploaded {result['secure_url']} ({result.get('bytes', 0)} bytes)")
        return result["secure_url"]


async def read_upload(upload: UploadFile, allowed_types: Iterable[str], field: str = "file") -> bytes:
    """Read an UploadFile after checking its MIME type and size"""
    if upload.content_type not in set(allowed_types):
        raise ValidationError(f"Unsupported file type: {upload.content_type}", field)

    content = await upload.read()
    if len(content) > settings.max_upload_size:
        raise ValidationError(
            f"File must not exceed {settings.max_upload_size // (1024 * 1024)}MB", field
        )
    if not content:
        raise ValidationError("File is empty", field)
    return content


def _sanitize(filename: str) -> str:
    stem = filename.rsplit(".", 1)[0] if filename else "file"
    return re.sub(r"[^a-zA-Z0-9_-]", "_", stem)[:50] or "file"


storage_service: Optional[StorageService] = None


def get_storage_service() -> StorageService:
    """FastAPI dependency; tests override it with an in-memory store"""
    global storage_service
    if storage_service is None:
        storage_service = StorageService()
    return storage_service

