"""
Pytest fixtures for Townsquare backend tests.

Service tests run against in-memory repositories that honour the same
contract as the Cosmos ones: reads return copies, ``mutate`` stores nothing
when the mutator raises, and vote writes are conditional on the version
that was read.
"""

import os
from collections.abc import AsyncGenerator
from datetime import datetime, timedelta, timezone
from types import SimpleNamespace
from typing import Any, Callable, Optional
from unittest.mock import AsyncMock, MagicMock

import pytest
from httpx import ASGITransport, AsyncClient

# Set test environment variables before importing app
os.environ.setdefault("SECRET_KEY", "test-secret-key-for-testing")
os.environ.setdefault("APP_ENV", "test")
os.environ.setdefault("DEBUG", "false")

from core.config import Settings  # noqa: E402
from core.exceptions import ConcurrencyError, ConflictError, DependencyError  # noqa: E402
from core.security import PasswordHasher, TokenIssuer  # noqa: E402
from models.cosmos_documents import (  # noqa: E402
    AccessMode,
    CommentDocument,
    CommunityDocument,
    PostDocument,
    RevokedTokenDocument,
    UserDocument,
    UserOTPDocument,
    VoteDocument,
    VoteType,
)

# =============================================================================
# In-memory repositories
# =============================================================================


class InMemoryRepository:
    """Id-keyed document storage mirroring CosmosDocumentRepository."""

    def __init__(self) -> None:
        self.items: dict[str, Any] = {}

    def add(self, document: Any) -> Any:
        self.items[document.id] = document.model_copy(deep=True)
        return document

    async def get_by_id(self, item_id: str) -> Optional[Any]:
        document = self.items.get(item_id)
        return document.model_copy(deep=True) if document else None

    async def insert(self, document: Any) -> Any:
        if document.id in self.items:
            raise ConflictError("Document already exists")
        return self.add(document)

    async def mutate(self, item_id: str, mutator: Callable[[Any], None]) -> Optional[Any]:
        current = self.items.get(item_id)
        if current is None:
            return None
        working = current.model_copy(deep=True)
        mutator(working)
        if hasattr(working, "updated_at"):
            working.updated_at = datetime.now(timezone.utc)
        self.items[item_id] = working
        return working.model_copy(deep=True)

    async def delete(self, item_id: str) -> bool:
        return self.items.pop(item_id, None) is not None


class InMemoryUserRepository(InMemoryRepository):
    async def get_by_email(self, email: str) -> Optional[UserDocument]:
        key = email.strip().lower()
        for user in self.items.values():
            if user.email == key:
                return user.model_copy(deep=True)
        return None

    async def create(
        self,
        email: str,
        username: str,
        hashed_password: str,
        first_name: Optional[str] = None,
        last_name: Optional[str] = None,
        country: Optional[str] = None,
        phone_number: Optional[str] = None,
    ) -> UserDocument:
        if await self.get_by_email(email):
            raise ConflictError("Email already registered", code="email_taken")
        if any(u.username.lower() == username.strip().lower() for u in self.items.values()):
            raise ConflictError("Username already taken", code="username_taken")
        user = UserDocument(
            email=email.strip().lower(),
            username=username.strip(),
            hashed_password=hashed_password,
            first_name=first_name,
            last_name=last_name,
            country=country,
            phone_number=phone_number,
        )
        return self.add(user)

    async def mark_verified(self, user_id: str) -> Optional[UserDocument]:
        return await self.mutate(user_id, lambda u: setattr(u, "is_verified", True))

    async def adjust_karma(self, user_id: str, delta: int) -> Optional[UserDocument]:
        def apply(user: UserDocument) -> None:
            user.karma += delta

        return await self.mutate(user_id, apply)

    async def update_last_login(self, user_id: str) -> Optional[UserDocument]:
        return await self.mutate(user_id, lambda u: setattr(u, "last_login_at", datetime.now(timezone.utc)))


class InMemoryCommunityRepository(InMemoryRepository):
    async def create(
        self,
        name: str,
        owner_id: str,
        access: AccessMode = AccessMode.PUBLIC,
        description: Optional[str] = None,
        banner_image: Optional[str] = None,
    ) -> CommunityDocument:
        if any(c.name.lower() == name.strip().lower() for c in self.items.values()):
            raise ConflictError("Community name already exists", code="community_name_taken")
        community = CommunityDocument(
            name=name.strip(),
            description=description,
            banner_image=banner_image,
            access=access,
            owner_id=owner_id,
            admin_ids=[owner_id],
            member_ids=[owner_id],
            member_count=1,
        )
        return self.add(community)

    async def list_all(self, offset: int = 0, limit: int = 50) -> list[CommunityDocument]:
        communities = sorted(self.items.values(), key=lambda c: c.created_at, reverse=True)
        return [c.model_copy(deep=True) for c in communities[offset : offset + limit]]

    async def list_for_member(self, user_id: str) -> list[CommunityDocument]:
        return [c.model_copy(deep=True) for c in self.items.values() if user_id in c.member_ids]

    async def remove(self, community: CommunityDocument) -> bool:
        return await self.delete(community.id)


class InMemoryVotableRepository(InMemoryRepository):
    async def apply_vote_delta(self, item_id: str, delta: int) -> Optional[Any]:
        def apply(document: Any) -> None:
            document.vote_count += delta

        return await self.mutate(item_id, apply)


class InMemoryPostRepository(InMemoryVotableRepository):
    async def list_by_community(self, community_id: str) -> list[PostDocument]:
        return [p.model_copy(deep=True) for p in self.items.values() if p.community_id == community_id]


class InMemoryCommentRepository(InMemoryVotableRepository):
    async def list_by_post(self, post_id: str) -> list[CommentDocument]:
        return [c.model_copy(deep=True) for c in self.items.values() if c.post_id == post_id]


class InMemoryVoteRepository:
    """Votes keyed by (user, target); writes are guarded by a version etag."""

    def __init__(self) -> None:
        self.items: dict[tuple[str, str], VoteDocument] = {}
        self._version = 0

    def _store(self, vote: VoteDocument) -> VoteDocument:
        self._version += 1
        stored = vote.model_copy(update={"etag": f'"{self._version}"'})
        self.items[(vote.user_id, vote.target_id)] = stored
        return stored.model_copy()

    def _check(self, vote: VoteDocument) -> None:
        current = self.items.get((vote.user_id, vote.target_id))
        if current is None or current.etag != vote.etag:
            raise ConcurrencyError("Vote was changed concurrently, please retry")

    async def get(self, user_id: str, target_id: str) -> Optional[VoteDocument]:
        vote = self.items.get((user_id, target_id))
        return vote.model_copy() if vote else None

    async def list_for_target(self, target_id: str) -> list[VoteDocument]:
        return [v.model_copy() for (_, t), v in self.items.items() if t == target_id]

    async def create(self, user_id: str, target_id: str, target_type: Any, vote_type: Any) -> VoteDocument:
        if (user_id, target_id) in self.items:
            raise ConcurrencyError("Vote was cast concurrently, please retry")
        return self._store(
            VoteDocument(user_id=user_id, target_id=target_id, target_type=target_type, vote_type=vote_type)
        )

    async def change_type(self, vote: VoteDocument, vote_type: Any) -> VoteDocument:
        self._check(vote)
        return self._store(vote.model_copy(update={"vote_type": VoteType(vote_type).value}))

    async def delete(self, vote: VoteDocument) -> None:
        self._check(vote)
        del self.items[(vote.user_id, vote.target_id)]

    async def discard(self, user_id: str, target_id: str) -> bool:
        return self.items.pop((user_id, target_id), None) is not None

    async def delete_for_target(self, target_id: str) -> int:
        keys = [key for key in self.items if key[1] == target_id]
        for key in keys:
            del self.items[key]
        return len(keys)


class InMemoryOTPRepository:
    def __init__(self) -> None:
        self.items: list[UserOTPDocument] = []

    async def list_for_user(self, user_id: str) -> list[UserOTPDocument]:
        records = [r for r in self.items if r.user_id == user_id]
        return sorted(records, key=lambda r: r.created_at, reverse=True)

    async def create(self, user_id: str, hashed_code: str, ttl_minutes: int) -> UserOTPDocument:
        now = datetime.now(timezone.utc)
        record = UserOTPDocument(
            user_id=user_id,
            hashed_code=hashed_code,
            created_at=now,
            expires_at=now + timedelta(minutes=ttl_minutes),
        )
        self.items.append(record)
        return record

    async def delete_for_user(self, user_id: str) -> int:
        before = len(self.items)
        self.items = [r for r in self.items if r.user_id != user_id]
        return before - len(self.items)


class InMemoryRevokedTokenRepository:
    def __init__(self) -> None:
        self.items: dict[str, RevokedTokenDocument] = {}

    async def revoke(self, jti: str, user_id: str) -> None:
        self.items.setdefault(jti, RevokedTokenDocument(id=jti, user_id=user_id))

    async def is_revoked(self, jti: str) -> bool:
        return jti in self.items


class RecordingEmailService:
    """Stands in for EmailService; keeps every code it was asked to send."""

    def __init__(self) -> None:
        self.sent: list[tuple[str, str]] = []
        self.fail = False

    async def send_verification_code(self, to_email: str, username: str, code: str, expires_minutes: int) -> None:
        if self.fail:
            raise DependencyError("Could not send verification email", code="email_send_failed")
        self.sent.append((to_email, code))

    def last_code_for(self, email: str) -> str:
        return [code for to, code in self.sent if to == email][-1]


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
def test_settings() -> Settings:
    return Settings(
        SECRET_KEY="test-secret-key-for-testing",
        BCRYPT_ROUNDS=4,
        OTP_LENGTH=4,
        OTP_EXPIRY_MINUTES=60,
    )


@pytest.fixture
def repos() -> SimpleNamespace:
    """One set of in-memory repositories shared by all services of a test."""
    return SimpleNamespace(
        users=InMemoryUserRepository(),
        communities=InMemoryCommunityRepository(),
        posts=InMemoryPostRepository(),
        comments=InMemoryCommentRepository(),
        votes=InMemoryVoteRepository(),
        otps=InMemoryOTPRepository(),
        revoked_tokens=InMemoryRevokedTokenRepository(),
    )


@pytest.fixture
def email_outbox() -> RecordingEmailService:
    return RecordingEmailService()


@pytest.fixture
def hasher() -> PasswordHasher:
    return PasswordHasher(rounds=4)


@pytest.fixture
def token_issuer(test_settings: Settings) -> TokenIssuer:
    return TokenIssuer.from_settings(test_settings)


@pytest.fixture
def authz(repos: SimpleNamespace):
    from services.authorization import AuthorizationService

    return AuthorizationService(repos.communities, repos.posts, repos.comments)


@pytest.fixture
def content_service(repos: SimpleNamespace, authz):
    from services.content_service import ContentService

    return ContentService(repos.communities, repos.posts, repos.comments, repos.votes, authz)


@pytest.fixture
def membership_service(repos: SimpleNamespace, authz, content_service):
    from services.membership_service import MembershipService

    return MembershipService(repos.communities, authz, content_service)


@pytest.fixture
def vote_engine(repos: SimpleNamespace, authz):
    from services.vote_service import VoteReconciliationEngine

    return VoteReconciliationEngine(repos.votes, repos.posts, repos.comments, repos.users, authz)


@pytest.fixture
def identity_service(repos, hasher, token_issuer, email_outbox, test_settings):
    from services.identity_service import IdentityService

    return IdentityService(
        repos.users,
        repos.otps,
        repos.revoked_tokens,
        hasher,
        token_issuer,
        email_outbox,
        test_settings,
    )


@pytest.fixture
def make_user(repos: SimpleNamespace) -> Callable[..., UserDocument]:
    """Seed a verified user."""

    def factory(username: str = "alice", **kwargs: Any) -> UserDocument:
        user = UserDocument(
            email=kwargs.pop("email", f"{username}@mail.com"),
            username=username,
            hashed_password=kwargs.pop("hashed_password", "not-a-real-hash"),
            is_verified=kwargs.pop("is_verified", True),
            **kwargs,
        )
        return repos.users.add(user)

    return factory


@pytest.fixture
def make_community(repos: SimpleNamespace) -> Callable[..., CommunityDocument]:
    """Seed a community with an owner and optional extra members/admins."""

    def factory(
        owner: UserDocument,
        members: tuple[UserDocument, ...] = (),
        admins: tuple[UserDocument, ...] = (),
        access: AccessMode = AccessMode.PUBLIC,
        name: Optional[str] = None,
    ) -> CommunityDocument:
        member_ids = [owner.id] + [u.id for u in members + admins if u.id != owner.id]
        community = CommunityDocument(
            name=name or f"community-{len(repos.communities.items) + 1}",
            access=access,
            owner_id=owner.id,
            admin_ids=[owner.id] + [u.id for u in admins],
            member_ids=member_ids,
            member_count=len(member_ids),
        )
        return repos.communities.add(community)

    return factory


@pytest.fixture
def mock_cosmos_container() -> MagicMock:
    """Mock async Cosmos container proxy."""
    container = MagicMock()
    container.read_item = AsyncMock()
    container.replace_item = AsyncMock()
    container.create_item = AsyncMock()
    container.delete_item = AsyncMock()
    return container


# =============================================================================
# API client
# =============================================================================


@pytest.fixture
async def app() -> Any:
    """Create FastAPI application for testing."""
    from main import app as fastapi_app

    yield fastapi_app
    fastapi_app.dependency_overrides.clear()


@pytest.fixture
def forum_app(app: Any, repos: SimpleNamespace, email_outbox, hasher, token_issuer) -> Any:
    """Application wired to the in-memory repositories."""
    from api import deps
    from repositories import provider

    overrides = {
        provider.get_user_repository: lambda: repos.users,
        provider.get_community_repository: lambda: repos.communities,
        provider.get_post_repository: lambda: repos.posts,
        provider.get_comment_repository: lambda: repos.comments,
        provider.get_vote_repository: lambda: repos.votes,
        provider.get_otp_repository: lambda: repos.otps,
        provider.get_revoked_token_repository: lambda: repos.revoked_tokens,
        deps.get_email_service: lambda: email_outbox,
        deps.get_password_hasher: lambda: hasher,
        deps.get_token_issuer: lambda: token_issuer,
    }
    app.dependency_overrides.update(overrides)
    return app


@pytest.fixture
def auth_headers(token_issuer: TokenIssuer) -> Callable[[UserDocument], dict[str, str]]:
    """Bearer headers for a seeded user."""

    def factory(user: UserDocument) -> dict[str, str]:
        return {"Authorization": f"Bearer {token_issuer.create_session_token(user.id)}"}

    return factory


@pytest.fixture
async def client(app: Any) -> AsyncGenerator[AsyncClient, None]:
    """Create async test client."""
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
        headers={"Origin": "http://localhost:3000"},
    ) as ac:
        yield ac
