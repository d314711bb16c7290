"""
Media upload endpoint.

Files are stored in the blob store and the returned references are then
attached to posts.
"""

from typing import Annotated

from fastapi import APIRouter, Depends, File, UploadFile, status

from api.deps import get_current_user, get_media_service
from core.exceptions import ValidationError
from models.cosmos_documents import UserDocument
from schemas.content import MediaItemSchema
from services.media_service import MediaService

router = APIRouter()

MAX_FILES_PER_UPLOAD = 10


@router.post("", response_model=list[MediaItemSchema], status_code=status.HTTP_201_CREATED)
async def upload_media(
    current_user: Annotated[UserDocument, Depends(get_current_user)],
    media: Annotated[MediaService, Depends(get_media_service)],
    files: list[UploadFile] = File(...),
) -> list[MediaItemSchema]:
    """Upload images or videos; each comes back as ``{url, kind}``."""
    if len(files) > MAX_FILES_PER_UPLOAD:
        raise ValidationError(
            f"At most {MAX_FILES_PER_UPLOAD} files can be uploaded at once",
            code="too_many_files",
        )

    uploaded = []
    for upload in files:
        item = await media.upload(upload.file, upload.content_type, filename=upload.filename)
        uploaded.append(MediaItemSchema(url=item.url, kind=item.kind))
    return uploaded
