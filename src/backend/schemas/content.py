"""
Post and comment Pydantic schemas.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from models.cosmos_documents import MediaKind


class MediaItemSchema(BaseModel):
    """Uploaded media reference."""

    url: str
    kind: MediaKind = MediaKind.IMAGE

    model_config = {"from_attributes": True}


class PostCreate(BaseModel):
    """JSON body for creating a post with already-uploaded media."""

    title: str = Field(..., max_length=300)
    body: str
    media: list[MediaItemSchema] = []


class PostUpdate(BaseModel):
    """
    Partial post update.

    Omitted fields are left untouched; ``media`` replaces the whole list
    when supplied.
    """

    title: Optional[str] = Field(None, max_length=300)
    body: Optional[str] = None
    media: Optional[list[MediaItemSchema]] = None


class PostResponse(BaseModel):
    id: str
    community_id: str
    author_id: str
    title: str
    body: str
    media: list[MediaItemSchema] = []
    comment_ids: list[str] = []
    vote_count: int = 0
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class CommentCreate(BaseModel):
    text: str


class CommentUpdate(BaseModel):
    text: str


class CommentResponse(BaseModel):
    id: str
    post_id: str
    author_id: str
    text: str
    vote_count: int = 0
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = {"from_attributes": True}
