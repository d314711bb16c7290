"""
Community-related Pydantic schemas.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from models.cosmos_documents import AccessMode


class CommunityCreate(BaseModel):
    """Schema for creating a community."""

    name: str = Field(..., min_length=1, max_length=100)
    description: Optional[str] = Field(None, max_length=2000)
    access: AccessMode = AccessMode.PUBLIC
    banner_image: Optional[str] = None


class CommunityResponse(BaseModel):
    """
    Community as seen by API clients.

    Role lists are exposed as user ids; ``member_count`` always equals the
    length of ``member_ids``.
    """

    id: str
    name: str
    description: Optional[str] = None
    banner_image: Optional[str] = None
    access: AccessMode
    owner_id: str
    admin_ids: list[str] = []
    member_ids: list[str] = []
    join_request_ids: list[str] = []
    post_ids: list[str] = []
    member_count: int
    created_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class JoinResponse(BaseModel):
    """Result of a join attempt."""

    status: str = Field(..., description="'joined' for public communities, 'requested' for private ones")
    message: str
    community: CommunityResponse
