"""
Vote-related Pydantic schemas.

Vote and target types are accepted as plain strings and checked by the
vote engine, which reports an unknown value as a validation error.
"""

from typing import Optional

from pydantic import BaseModel, Field


class VoteCreate(BaseModel):
    """Schema for casting a vote."""

    target_id: str
    target_type: str = Field(..., description="'Post' or 'Comment'")
    vote_type: str = Field(..., description="'up' or 'down'")


class VoteResponse(BaseModel):
    """Response after casting, flipping or retracting a vote."""

    state: str = Field(..., description="'recorded', 'removed' or 'updated'")
    net_delta: int
    vote_count: int
    vote_type: Optional[str] = None

    model_config = {"from_attributes": True}


class VoteRecord(BaseModel):
    """One user's vote on a target."""

    user_id: str
    vote_type: str

    model_config = {"from_attributes": True}


class TargetVotesResponse(BaseModel):
    """Per-user vote summary of a target."""

    target_id: str
    target_type: str
    vote_count: int
    upvotes: int
    downvotes: int
    votes: list[VoteRecord] = []
    my_vote: Optional[str] = None

    model_config = {"from_attributes": True}
