"""Schemas module initialization."""

from schemas.auth import LoginRequest, MessageResponse, TokenResponse, VerifyEmailRequest
from schemas.community import CommunityCreate, CommunityResponse, JoinResponse
from schemas.content import (
    CommentCreate,
    CommentResponse,
    CommentUpdate,
    MediaItemSchema,
    PostCreate,
    PostResponse,
    PostUpdate,
)
from schemas.user import UserCreate, UserResponse
from schemas.vote import TargetVotesResponse, VoteCreate, VoteResponse

__all__ = [
    "UserCreate",
    "UserResponse",
    "LoginRequest",
    "TokenResponse",
    "VerifyEmailRequest",
    "MessageResponse",
    "CommunityCreate",
    "CommunityResponse",
    "JoinResponse",
    "PostCreate",
    "PostUpdate",
    "PostResponse",
    "MediaItemSchema",
    "CommentCreate",
    "CommentUpdate",
    "CommentResponse",
    "VoteCreate",
    "VoteResponse",
    "TargetVotesResponse",
]
