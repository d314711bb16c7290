"""
Post endpoints: read, partial edit, cascading delete and comments.
"""

from typing import Annotated

from fastapi import APIRouter, Depends, status

from api.deps import get_content_service, get_current_user
from models.cosmos_documents import MediaItem, UserDocument
from schemas.content import CommentCreate, CommentResponse, PostResponse, PostUpdate
from services.content_service import ContentService

router = APIRouter()


@router.get("/{post_id}", response_model=PostResponse)
async def get_post(
    post_id: str,
    current_user: Annotated[UserDocument, Depends(get_current_user)],
    content: Annotated[ContentService, Depends(get_content_service)],
) -> PostResponse:
    post = await content.get_post(current_user.id, post_id)
    return PostResponse.model_validate(post)


@router.patch("/{post_id}", response_model=PostResponse)
async def update_post(
    post_id: str,
    post_data: PostUpdate,
    current_user: Annotated[UserDocument, Depends(get_current_user)],
    content: Annotated[ContentService, Depends(get_content_service)],
) -> PostResponse:
    """Update only the supplied fields of a post (author only)."""
    media = None
    if post_data.media is not None:
        media = [MediaItem(url=m.url, kind=m.kind) for m in post_data.media]

    post = await content.edit_post(
        user_id=current_user.id,
        post_id=post_id,
        title=post_data.title,
        body=post_data.body,
        media=media,
    )
    return PostResponse.model_validate(post)


@router.delete("/{post_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_post(
    post_id: str,
    current_user: Annotated[UserDocument, Depends(get_current_user)],
    content: Annotated[ContentService, Depends(get_content_service)],
) -> None:
    """Delete a post with its comments and votes (author or community admin)."""
    await content.delete_post(current_user.id, post_id)


@router.get("/{post_id}/comments", response_model=list[CommentResponse])
async def list_comments(
    post_id: str,
    current_user: Annotated[UserDocument, Depends(get_current_user)],
    content: Annotated[ContentService, Depends(get_content_service)],
) -> list[CommentResponse]:
    comments = await content.list_comments(current_user.id, post_id)
    return [CommentResponse.model_validate(c) for c in comments]


@router.post("/{post_id}/comments", response_model=CommentResponse, status_code=status.HTTP_201_CREATED)
async def add_comment(
    post_id: str,
    comment_data: CommentCreate,
    current_user: Annotated[UserDocument, Depends(get_current_user)],
    content: Annotated[ContentService, Depends(get_content_service)],
) -> CommentResponse:
    comment = await content.add_comment(current_user.id, post_id, comment_data.text)
    return CommentResponse.model_validate(comment)
