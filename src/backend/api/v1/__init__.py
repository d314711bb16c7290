"""
API v1 router aggregating all endpoints.
"""

from fastapi import APIRouter

from api.v1.auth import router as auth_router
from api.v1.comments import router as comments_router
from api.v1.communities import router as communities_router
from api.v1.media import router as media_router
from api.v1.posts import router as posts_router
from api.v1.users import router as users_router
from api.v1.votes import router as votes_router

router = APIRouter()

router.include_router(auth_router, prefix="/auth", tags=["Authentication"])
router.include_router(users_router, prefix="/users", tags=["Users"])
router.include_router(communities_router, prefix="/communities", tags=["Communities"])
router.include_router(posts_router, prefix="/posts", tags=["Posts"])
router.include_router(comments_router, prefix="/comments", tags=["Comments"])
router.include_router(votes_router, prefix="/votes", tags=["Votes"])
router.include_router(media_router, prefix="/media", tags=["Media"])
