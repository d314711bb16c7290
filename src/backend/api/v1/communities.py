"""
Community endpoints.

Creation and listing, the join / accept / decline / remove membership
flow, owner-only deletion, and the community's posts.
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Query, status

from api.deps import get_content_service, get_current_user, get_membership_service
from models.cosmos_documents import MediaItem, UserDocument
from schemas.community import CommunityCreate, CommunityResponse, JoinResponse
from schemas.content import PostCreate, PostResponse
from services.content_service import ContentService
from services.membership_service import MembershipService

router = APIRouter()

JOIN_MESSAGES = {
    "joined": "Joined community successfully",
    "requested": "Join request sent to admins",
}


@router.post("", response_model=CommunityResponse, status_code=status.HTTP_201_CREATED)
async def create_community(
    community_data: CommunityCreate,
    current_user: Annotated[UserDocument, Depends(get_current_user)],
    membership: Annotated[MembershipService, Depends(get_membership_service)],
) -> CommunityResponse:
    community = await membership.create_community(
        user_id=current_user.id,
        name=community_data.name,
        description=community_data.description,
        access=community_data.access,
        banner_image=community_data.banner_image,
    )
    return CommunityResponse.model_validate(community)


@router.get("", response_model=list[CommunityResponse])
async def list_communities(
    current_user: Annotated[UserDocument, Depends(get_current_user)],
    membership: Annotated[MembershipService, Depends(get_membership_service)],
    offset: int = Query(0, ge=0),
    limit: int = Query(50, ge=1, le=100),
) -> list[CommunityResponse]:
    communities = await membership.list_communities(offset=offset, limit=limit)
    return [CommunityResponse.model_validate(c) for c in communities]


@router.get("/{community_id}", response_model=CommunityResponse)
async def get_community(
    community_id: str,
    current_user: Annotated[UserDocument, Depends(get_current_user)],
    membership: Annotated[MembershipService, Depends(get_membership_service)],
) -> CommunityResponse:
    community = await membership.get_community(community_id)
    return CommunityResponse.model_validate(community)


@router.delete("/{community_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_community(
    community_id: str,
    current_user: Annotated[UserDocument, Depends(get_current_user)],
    membership: Annotated[MembershipService, Depends(get_membership_service)],
) -> None:
    """Delete a community with all of its posts, comments and votes (owner only)."""
    await membership.delete_community(current_user.id, community_id)


# =============================================================================
# Membership
# =============================================================================


@router.post("/{community_id}/join", response_model=JoinResponse)
async def join_community(
    community_id: str,
    current_user: Annotated[UserDocument, Depends(get_current_user)],
    membership: Annotated[MembershipService, Depends(get_membership_service)],
) -> JoinResponse:
    """Join a public community, or request to join a private one."""
    result = await membership.join(current_user.id, community_id)
    return JoinResponse(
        status=result.status,
        message=JOIN_MESSAGES[result.status],
        community=CommunityResponse.model_validate(result.community),
    )


@router.post("/{community_id}/requests/{user_id}/accept", response_model=CommunityResponse)
async def accept_join_request(
    community_id: str,
    user_id: str,
    current_user: Annotated[UserDocument, Depends(get_current_user)],
    membership: Annotated[MembershipService, Depends(get_membership_service)],
) -> CommunityResponse:
    community = await membership.accept_join(current_user.id, community_id, user_id)
    return CommunityResponse.model_validate(community)


@router.delete("/{community_id}/requests/{user_id}", response_model=CommunityResponse)
async def decline_join_request(
    community_id: str,
    user_id: str,
    current_user: Annotated[UserDocument, Depends(get_current_user)],
    membership: Annotated[MembershipService, Depends(get_membership_service)],
) -> CommunityResponse:
    community = await membership.decline_join(current_user.id, community_id, user_id)
    return CommunityResponse.model_validate(community)


@router.delete("/{community_id}/members/{user_id}", response_model=CommunityResponse)
async def remove_member(
    community_id: str,
    user_id: str,
    current_user: Annotated[UserDocument, Depends(get_current_user)],
    membership: Annotated[MembershipService, Depends(get_membership_service)],
) -> CommunityResponse:
    community = await membership.remove_member(current_user.id, community_id, user_id)
    return CommunityResponse.model_validate(community)


# =============================================================================
# Posts
# =============================================================================


@router.get("/{community_id}/posts", response_model=list[PostResponse])
async def list_posts(
    community_id: str,
    current_user: Annotated[UserDocument, Depends(get_current_user)],
    content: Annotated[ContentService, Depends(get_content_service)],
) -> list[PostResponse]:
    posts = await content.list_posts(current_user.id, community_id)
    return [PostResponse.model_validate(p) for p in posts]


@router.post("/{community_id}/posts", response_model=PostResponse, status_code=status.HTTP_201_CREATED)
async def create_post(
    community_id: str,
    post_data: PostCreate,
    current_user: Annotated[UserDocument, Depends(get_current_user)],
    content: Annotated[ContentService, Depends(get_content_service)],
) -> PostResponse:
    """
    Create a post in a community the caller belongs to.

    Media must be uploaded first through ``/media``; the returned references
    are passed in ``media``.
    """
    post = await content.create_post(
        user_id=current_user.id,
        community_id=community_id,
        title=post_data.title,
        body=post_data.body,
        media=[MediaItem(url=m.url, kind=m.kind) for m in post_data.media],
    )
    return PostResponse.model_validate(post)
