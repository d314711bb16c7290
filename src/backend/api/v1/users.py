"""
User profile endpoints.
"""

from typing import Annotated

from fastapi import APIRouter, Depends

from api.deps import get_current_user, get_membership_service
from models.cosmos_documents import UserDocument
from schemas.community import CommunityResponse
from schemas.user import UserResponse
from services.membership_service import MembershipService

router = APIRouter()


@router.get("/me", response_model=UserResponse)
async def get_me(
    current_user: Annotated[UserDocument, Depends(get_current_user)],
) -> UserResponse:
    """Get the current user's profile, including karma."""
    return UserResponse.model_validate(current_user)


@router.get("/me/communities", response_model=list[CommunityResponse])
async def get_my_communities(
    current_user: Annotated[UserDocument, Depends(get_current_user)],
    membership: Annotated[MembershipService, Depends(get_membership_service)],
) -> list[CommunityResponse]:
    """Communities the current user is a member of."""
    communities = await membership.list_user_communities(current_user.id)
    return [CommunityResponse.model_validate(c) for c in communities]
