"""
Vote reconciliation engine.

Records, flips and retracts votes on posts and comments and propagates the
net effect to the target's vote counter and its author's karma.

The Vote documents are the single source of truth for who voted what; the
target only keeps the net ``vote_count`` and per-user summaries are derived
from the Vote documents on read.

Transitions for a (user, target) pair:

    no vote      + up/down  -> recorded, delta = value(new)
    same type    + same     -> removed,  delta = -value(existing)
    other type   + new      -> updated,  delta = value(new) - value(existing)

Author karma always moves by exactly the delta applied to the target.
"""

from dataclasses import dataclass, field
from typing import Optional

import structlog

from core.exceptions import ConcurrencyError, NotFoundError, ValidationError
from models.cosmos_documents import TargetType, VoteDocument, VoteType, vote_value
from repositories.provider import (
    CommentRepositoryProtocol,
    PostRepositoryProtocol,
    UserRepositoryProtocol,
    VoteRepositoryProtocol,
)
from services.authorization import AuthorizationService, parse_target_type

logger = structlog.get_logger(__name__)

VOTE_RECORDED = "recorded"
VOTE_REMOVED = "removed"
VOTE_UPDATED = "updated"

DEFAULT_MAX_ATTEMPTS = 5


@dataclass
class VoteResult:
    """Outcome of ``cast_vote``."""

    state: str
    net_delta: int
    vote_count: int
    vote_type: Optional[str] = None


@dataclass
class TargetVotes:
    """Per-user vote summary of a target, derived from Vote documents."""

    target_id: str
    target_type: str
    vote_count: int
    upvotes: int
    downvotes: int
    votes: list[VoteDocument] = field(default_factory=list)
    my_vote: Optional[str] = None


def parse_vote_type(value: str) -> VoteType:
    try:
        return VoteType(value)
    except ValueError:
        raise ValidationError(
            f"Invalid vote type '{value}', expected 'up' or 'down'",
            code="invalid_vote_type",
        )


class VoteReconciliationEngine:
    """Applies vote transitions and keeps counters and karma in step."""

    def __init__(
        self,
        votes: VoteRepositoryProtocol,
        posts: PostRepositoryProtocol,
        comments: CommentRepositoryProtocol,
        users: UserRepositoryProtocol,
        authz: AuthorizationService,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
    ):
        self.votes = votes
        self.posts = posts
        self.comments = comments
        self.users = users
        self.authz = authz
        self.max_attempts = max_attempts

    def _target_repository(self, target_type: TargetType):
        return self.comments if target_type == TargetType.COMMENT else self.posts

    async def _apply_transition(
        self,
        user_id: str,
        target_id: str,
        target_type: TargetType,
        vote_type: VoteType,
    ) -> tuple[str, int, Optional[VoteDocument]]:
        """
        Move the user's Vote document to its next state.

        Each write is conditional on what was read; losing a race re-reads and
        re-decides, so the transition is always computed from the vote that
        is actually stored.

        Returns:
            The new state, the delta it implies and the vote it replaced
        """
        for attempt in range(1, self.max_attempts + 1):
            existing = await self.votes.get(user_id, target_id)
            try:
                if existing is None:
                    await self.votes.create(user_id, target_id, target_type, vote_type)
                    return VOTE_RECORDED, vote_value(vote_type), None

                if existing.vote_type == vote_type:
                    await self.votes.delete(existing)
                    return VOTE_REMOVED, -vote_value(existing.vote_type), existing

                await self.votes.change_type(existing, vote_type)
                return VOTE_UPDATED, vote_value(vote_type) - vote_value(existing.vote_type), existing
            except ConcurrencyError:
                logger.debug(
                    "vote_write_conflict",
                    target_id=target_id,
                    attempt=attempt,
                    max_attempts=self.max_attempts,
                )

        logger.warning("vote_write_gave_up", target_id=target_id, user_id=user_id)
        raise ConcurrencyError("The vote was modified concurrently, please retry")

    async def cast_vote(
        self,
        user_id: str,
        target_id: str,
        target_type: str,
        vote_type: str,
    ) -> VoteResult:
        """
        Cast, flip or retract the user's vote on a post or comment.

        Raises:
            ValidationError: invalid vote or target type
            NotFoundError: target, its post or its community missing
            ForbiddenError: caller is not a member of the owning community
            ConcurrencyError: the vote kept changing under us
        """
        parsed_vote = parse_vote_type(vote_type)
        parsed_target = parse_target_type(target_type)

        resolved = await self.authz.resolve_target(target_id, parsed_target)
        self.authz.require_member(user_id, resolved.community)

        state, delta, previous = await self._apply_transition(user_id, target_id, parsed_target, parsed_vote)

        try:
            updated_target = await self._target_repository(parsed_target).apply_vote_delta(target_id, delta)
        except Exception:
            await self._revert_transition(user_id, target_id, parsed_target, parsed_vote, state, previous)
            raise

        if updated_target is None:
            # Target deleted mid-vote; do not leave an orphan Vote behind
            await self.votes.discard(user_id, target_id)
            raise NotFoundError(f"{parsed_target.value} not found", code=f"{parsed_target.value.lower()}_not_found")

        await self._adjust_karma(resolved.author_id, delta)

        logger.info(
            "vote_cast",
            user_id=user_id,
            target_id=target_id,
            target_type=parsed_target.value,
            state=state,
            delta=delta,
        )
        return VoteResult(
            state=state,
            net_delta=delta,
            vote_count=updated_target.vote_count,
            vote_type=None if state == VOTE_REMOVED else parsed_vote.value,
        )

    async def _revert_transition(
        self,
        user_id: str,
        target_id: str,
        target_type: TargetType,
        vote_type: VoteType,
        state: str,
        previous: Optional[VoteDocument],
    ) -> None:
        """
        Put the Vote document back the way it was before a transition whose
        counter update failed.

        A vote that has moved on since then is left alone.
        """
        try:
            if state == VOTE_RECORDED:
                await self.votes.discard(user_id, target_id)
            elif state == VOTE_REMOVED:
                await self.votes.create(user_id, target_id, target_type, previous.vote_type)
            else:
                current = await self.votes.get(user_id, target_id)
                if current is not None and current.vote_type == vote_type:
                    await self.votes.change_type(current, previous.vote_type)
        except Exception:
            logger.exception("vote_revert_failed", user_id=user_id, target_id=target_id, state=state)
            return
        logger.info("vote_reverted", user_id=user_id, target_id=target_id, state=state)

    async def _adjust_karma(self, author_id: str, delta: int) -> None:
        """Karma is best-effort: a missing author never fails the vote."""
        if delta == 0:
            return
        try:
            author = await self.users.adjust_karma(author_id, delta)
        except ConcurrencyError:
            logger.warning("karma_update_gave_up", author_id=author_id, delta=delta)
            return
        if author is None:
            logger.info("karma_update_skipped", author_id=author_id, reason="author_not_found")

    async def target_votes(self, user_id: str, target_id: str, target_type: str) -> TargetVotes:
        """Summarise who voted what on a target (members only)."""
        parsed_target = parse_target_type(target_type)
        resolved = await self.authz.resolve_target(target_id, parsed_target)
        self.authz.require_member(user_id, resolved.community)

        votes = await self.votes.list_for_target(target_id)
        upvotes = sum(1 for v in votes if v.vote_type == VoteType.UP)
        my_vote = next((v.vote_type for v in votes if v.user_id == user_id), None)

        return TargetVotes(
            target_id=target_id,
            target_type=parsed_target.value,
            vote_count=resolved.target.vote_count,
            upvotes=upvotes,
            downvotes=len(votes) - upvotes,
            votes=votes,
            my_vote=my_vote,
        )
