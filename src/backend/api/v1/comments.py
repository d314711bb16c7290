"""
Comment endpoints.
"""

from typing import Annotated

from fastapi import APIRouter, Depends, status

from api.deps import get_content_service, get_current_user
from models.cosmos_documents import UserDocument
from schemas.content import CommentResponse, CommentUpdate
from services.content_service import ContentService

router = APIRouter()


@router.patch("/{comment_id}", response_model=CommentResponse)
async def update_comment(
    comment_id: str,
    comment_data: CommentUpdate,
    current_user: Annotated[UserDocument, Depends(get_current_user)],
    content: Annotated[ContentService, Depends(get_content_service)],
) -> CommentResponse:
    comment = await content.edit_comment(current_user.id, comment_id, comment_data.text)
    return CommentResponse.model_validate(comment)


@router.delete("/{comment_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_comment(
    comment_id: str,
    current_user: Annotated[UserDocument, Depends(get_current_user)],
    content: Annotated[ContentService, Depends(get_content_service)],
) -> None:
    await content.delete_comment(current_user.id, comment_id)
