"""
Cosmos DB document models for Townsquare.

These Pydantic models define the document structure stored in Cosmos DB.
Relationships are stored as id references; a child always carries a pointer
to its parent (post -> community, comment -> post, vote -> target) and the
parent keeps an ordered id list for display order.

Container Strategy:
- users: User profiles, credentials and karma (partition: /id)
- email-lookup / username-lookup: uniqueness indexes -> user_id (partition: /id)
- communities: Community roles and membership (partition: /id)
- community-name-lookup: uniqueness index -> community_id (partition: /id)
- posts: Posts with vote counter (partition: /id)
- comments: Comments with vote counter (partition: /id)
- votes: One document per (user, target) (partition: /target_id)
- user-otps: Hashed email verification codes (partition: /user_id)
- revoked-tokens: Session tokens invalidated by logout (partition: /id)
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Optional
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# ============================================================================
# Enums
# ============================================================================


class AccessMode(str, Enum):
    """Who may join a community without approval."""

    PUBLIC = "Public"
    PRIVATE = "Private"


class MediaKind(str, Enum):
    """Resource kind of an uploaded media file."""

    IMAGE = "Image"
    VIDEO = "Video"


class TargetType(str, Enum):
    """Kind of content a vote is cast on."""

    POST = "Post"
    COMMENT = "Comment"


class VoteType(str, Enum):
    """Direction of a vote."""

    UP = "up"
    DOWN = "down"


def vote_value(vote_type: str) -> int:
    """Numeric weight of a vote: +1 for up, -1 for down."""
    return 1 if vote_type == VoteType.UP else -1


# ============================================================================
# Base Document Model
# ============================================================================


class CosmosDocument(BaseModel):
    """
    Base class for Cosmos DB documents.

    All documents have:
    - id: Unique identifier (also used as partition key for most containers)
    - _etag: ETag for optimistic concurrency (managed by Cosmos DB, never written back)
    """

    model_config = ConfigDict(
        # Ignore other Cosmos DB system properties (_ts, _rid, _self...)
        extra="ignore",
        populate_by_name=True,
        use_enum_values=True,
    )

    id: str = Field(default_factory=lambda: str(uuid4()))
    etag: Optional[str] = Field(default=None, alias="_etag", exclude=True)


# ============================================================================
# User Documents
# ============================================================================


class UserDocument(CosmosDocument):
    """
    User document stored in the 'users' container.

    Partition key: /id
    ``karma`` is only changed by vote reconciliation and ``is_verified`` only
    by the email verification flow.
    """

    email: str  # Unique, indexed via email-lookup container
    username: str  # Unique, indexed via username-lookup container
    hashed_password: str

    karma: int = 0
    is_verified: bool = False
    is_active: bool = True

    # Profile
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    country: Optional[str] = None
    phone_number: Optional[str] = None  # E.164
    profile_pic: Optional[str] = None

    # Timestamps
    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime = Field(default_factory=_utcnow)
    last_login_at: Optional[datetime] = None


class EmailLookupDocument(CosmosDocument):
    """
    Secondary index: email -> user_id lookup.

    The id is the lower-cased email, so a second registration of the same
    address fails on create.
    """

    user_id: str


class UsernameLookupDocument(CosmosDocument):
    """Secondary index: lower-cased username -> user_id lookup."""

    user_id: str


class UserOTPDocument(CosmosDocument):
    """
    Hashed email verification code stored in the 'user-otps' container.

    Partition key: /user_id
    At most one live code per unverified user; older ones are purged when a
    new code is issued.
    """

    user_id: str
    hashed_code: str
    created_at: datetime = Field(default_factory=_utcnow)
    expires_at: datetime

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        now = now or _utcnow()
        expires_at = self.expires_at
        if expires_at.tzinfo is None:
            expires_at = expires_at.replace(tzinfo=timezone.utc)
        return expires_at <= now


class RevokedTokenDocument(CosmosDocument):
    """Session token revoked through logout; the id is the token's jti."""

    user_id: str
    revoked_at: datetime = Field(default_factory=_utcnow)


# ============================================================================
# Community Documents
# ============================================================================


class CommunityDocument(CosmosDocument):
    """
    Community document stored in the 'communities' container.

    Partition key: /id
    Invariants:
    - ``member_count == len(member_ids)``, maintained incrementally
    - a user is never in both ``member_ids`` and ``join_request_ids``
    - the owner is implicitly an admin
    """

    name: str
    description: Optional[str] = None
    banner_image: Optional[str] = None
    access: AccessMode = AccessMode.PUBLIC

    owner_id: str
    admin_ids: list[str] = Field(default_factory=list)
    member_ids: list[str] = Field(default_factory=list)
    join_request_ids: list[str] = Field(default_factory=list)
    post_ids: list[str] = Field(default_factory=list)
    member_count: int = 1

    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime = Field(default_factory=_utcnow)

    def is_owner(self, user_id: str) -> bool:
        return self.owner_id == user_id

    def is_admin(self, user_id: str) -> bool:
        return self.is_owner(user_id) or user_id in self.admin_ids

    def is_member(self, user_id: str) -> bool:
        return user_id in self.member_ids

    def has_requested(self, user_id: str) -> bool:
        return user_id in self.join_request_ids


class CommunityNameLookupDocument(CosmosDocument):
    """Secondary index: lower-cased community name -> community_id lookup."""

    community_id: str


# ============================================================================
# Content Documents
# ============================================================================


class MediaItem(BaseModel):
    """Embedded media reference within PostDocument."""

    model_config = ConfigDict(use_enum_values=True)

    url: str
    kind: MediaKind = MediaKind.IMAGE


class PostDocument(CosmosDocument):
    """
    Post document stored in the 'posts' container.

    Partition key: /id
    ``vote_count`` is the net of all Vote documents targeting the post.
    """

    community_id: str  # Immutable
    author_id: str
    title: str
    body: str
    media: list[MediaItem] = Field(default_factory=list)
    comment_ids: list[str] = Field(default_factory=list)
    vote_count: int = 0

    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime = Field(default_factory=_utcnow)


class CommentDocument(CosmosDocument):
    """
    Comment document stored in the 'comments' container.

    Partition key: /id
    """

    post_id: str  # Immutable
    author_id: str
    text: str
    vote_count: int = 0

    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime = Field(default_factory=_utcnow)


# ============================================================================
# Vote Documents
# ============================================================================


class VoteDocument(CosmosDocument):
    """
    Vote document stored in the 'votes' container.

    Partition key: /target_id
    The id is derived from (user_id, target_id), so at most one vote per
    user per target can exist.
    """

    user_id: str
    target_id: str  # Partition key
    target_type: TargetType
    vote_type: VoteType

    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime = Field(default_factory=_utcnow)
