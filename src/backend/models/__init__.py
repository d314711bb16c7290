"""Document models module."""

from models.cosmos_documents import (
    AccessMode,
    CommentDocument,
    CommunityDocument,
    MediaItem,
    MediaKind,
    PostDocument,
    TargetType,
    UserDocument,
    UserOTPDocument,
    VoteDocument,
    VoteType,
)

__all__ = [
    "AccessMode",
    "CommentDocument",
    "CommunityDocument",
    "MediaItem",
    "MediaKind",
    "PostDocument",
    "TargetType",
    "UserDocument",
    "UserOTPDocument",
    "VoteDocument",
    "VoteType",
]
