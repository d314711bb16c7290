"""
Media uploads backed by Cloudinary.

Post attachments are pushed to Cloudinary and referenced by their secure
URL; the resource kind (image or video) is derived from the content type.
"""

import asyncio
from typing import BinaryIO, Optional

import cloudinary
import structlog
from cloudinary.uploader import upload as cld_upload

from core.config import Settings
from core.exceptions import DependencyError, ValidationError
from models.cosmos_documents import MediaItem, MediaKind

logger = structlog.get_logger(__name__)


def media_kind_for(content_type: Optional[str]) -> MediaKind:
    """Videos by content type, everything else is stored as an image."""
    if content_type and content_type.startswith("video"):
        return MediaKind.VIDEO
    if content_type and not content_type.startswith("image"):
        raise ValidationError(
            f"Unsupported media type '{content_type}'",
            code="unsupported_media_type",
        )
    return MediaKind.IMAGE


class MediaService:
    """Uploads files to the blob store and returns retrievable references."""

    def __init__(self, settings: Settings):
        self._folder = settings.CLOUDINARY_UPLOAD_FOLDER
        self._configured = bool(
            settings.CLOUDINARY_CLOUD_NAME and settings.CLOUDINARY_API_KEY and settings.CLOUDINARY_API_SECRET
        )
        if self._configured:
            cloudinary.config(
                cloud_name=settings.CLOUDINARY_CLOUD_NAME,
                api_key=settings.CLOUDINARY_API_KEY,
                api_secret=settings.CLOUDINARY_API_SECRET,
                secure=True,
            )

    @property
    def is_available(self) -> bool:
        return self._configured

    async def upload(self, file: BinaryIO, content_type: Optional[str], filename: Optional[str] = None) -> MediaItem:
        """
        Upload one file.

        Raises:
            ValidationError: unsupported content type
            DependencyError: blob store not configured or upload failed
        """
        kind = media_kind_for(content_type)
        if not self._configured:
            raise DependencyError("Media storage is not configured", code="media_unavailable")

        try:
            result = await asyncio.to_thread(
                cld_upload,
                file,
                folder=self._folder,
                resource_type="video" if kind == MediaKind.VIDEO else "image",
            )
        except Exception as e:
            logger.error("media_upload_failed", filename=filename, error=str(e))
            raise DependencyError("Media upload failed", code="media_upload_failed")

        url = result.get("secure_url")
        if not url:
            logger.error("media_upload_failed", filename=filename, error="missing secure_url")
            raise DependencyError("Media upload failed", code="media_upload_failed")

        logger.info("media_uploaded", public_id=result.get("public_id"), kind=kind.value)
        return MediaItem(url=url, kind=kind)
