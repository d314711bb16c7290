"""
Vote endpoints.

Casting the same vote twice retracts it; casting the opposite vote flips
it. Only members of the community owning the target may vote.
"""

from typing import Annotated

from fastapi import APIRouter, Depends

from api.deps import get_current_user, get_vote_engine
from models.cosmos_documents import UserDocument
from schemas.vote import TargetVotesResponse, VoteCreate, VoteRecord, VoteResponse
from services.vote_service import VoteReconciliationEngine

router = APIRouter()


@router.post("", response_model=VoteResponse)
async def cast_vote(
    vote_data: VoteCreate,
    current_user: Annotated[UserDocument, Depends(get_current_user)],
    engine: Annotated[VoteReconciliationEngine, Depends(get_vote_engine)],
) -> VoteResponse:
    """
    Cast, flip or retract a vote on a post or comment.

    The response reports the resulting state, the delta applied to the
    target's vote count (and its author's karma) and the new vote count.
    """
    result = await engine.cast_vote(
        user_id=current_user.id,
        target_id=vote_data.target_id,
        target_type=vote_data.target_type,
        vote_type=vote_data.vote_type,
    )
    return VoteResponse.model_validate(result)


@router.get("/{target_type}/{target_id}", response_model=TargetVotesResponse)
async def get_target_votes(
    target_type: str,
    target_id: str,
    current_user: Annotated[UserDocument, Depends(get_current_user)],
    engine: Annotated[VoteReconciliationEngine, Depends(get_vote_engine)],
) -> TargetVotesResponse:
    """Who voted what on a target."""
    summary = await engine.target_votes(current_user.id, target_id, target_type)
    return TargetVotesResponse(
        target_id=summary.target_id,
        target_type=summary.target_type,
        vote_count=summary.vote_count,
        upvotes=summary.upvotes,
        downvotes=summary.downvotes,
        votes=[VoteRecord.model_validate(v) for v in summary.votes],
        my_vote=summary.my_vote,
    )
