"""
Content lifecycle manager.

Creates, edits and deletes posts and comments. Deletion always cascades
leaf-first (votes, then comments, then the parent link, then the document)
so that nothing is ever left referencing a deleted ancestor, and every step
tolerates an already-missing document so a failed cascade can be retried.
"""

from typing import Optional

import structlog

from core.exceptions import NotFoundError, ValidationError
from models.cosmos_documents import (
    CommentDocument,
    CommunityDocument,
    MediaItem,
    PostDocument,
)
from repositories.provider import (
    CommentRepositoryProtocol,
    CommunityRepositoryProtocol,
    PostRepositoryProtocol,
    VoteRepositoryProtocol,
)
from services.authorization import AuthorizationService

logger = structlog.get_logger(__name__)


def _require_text(value: Optional[str], field: str) -> str:
    if value is None or not value.strip():
        raise ValidationError(f"{field.capitalize()} cannot be empty", code=f"{field}_required")
    return value.strip()


def _ordered(documents: list, ids: list[str]) -> list:
    """Sort documents by their position in ``ids``; unknown ones go last."""
    position = {item_id: index for index, item_id in enumerate(ids)}
    return sorted(documents, key=lambda d: position.get(d.id, len(position)))


class ContentService:
    """Posts and comments, including their cascading deletion."""

    def __init__(
        self,
        communities: CommunityRepositoryProtocol,
        posts: PostRepositoryProtocol,
        comments: CommentRepositoryProtocol,
        votes: VoteRepositoryProtocol,
        authz: AuthorizationService,
    ):
        self.communities = communities
        self.posts = posts
        self.comments = comments
        self.votes = votes
        self.authz = authz

    async def _member_community(self, user_id: str, community_id: str) -> CommunityDocument:
        community = await self.authz.require_community(community_id)
        self.authz.require_member(user_id, community)
        return community

    # ========================================================================
    # Posts
    # ========================================================================

    async def create_post(
        self,
        user_id: str,
        community_id: str,
        title: str,
        body: str,
        media: Optional[list[MediaItem]] = None,
    ) -> PostDocument:
        """Create a post in a community the user belongs to."""
        title = _require_text(title, "title")
        body = _require_text(body, "body")
        await self._member_community(user_id, community_id)

        post = await self.posts.insert(
            PostDocument(
                community_id=community_id,
                author_id=user_id,
                title=title,
                body=body,
                media=media or [],
            )
        )

        def attach(community: CommunityDocument) -> None:
            if post.id not in community.post_ids:
                community.post_ids.append(post.id)

        if await self.communities.mutate(community_id, attach) is None:
            # Community vanished between the check and the attach
            await self.posts.delete(post.id)
            raise NotFoundError("Community not found", code="community_not_found")

        logger.info("post_created", post_id=post.id, community_id=community_id, author_id=user_id)
        return post

    async def edit_post(
        self,
        user_id: str,
        post_id: str,
        title: Optional[str] = None,
        body: Optional[str] = None,
        media: Optional[list[MediaItem]] = None,
    ) -> PostDocument:
        """
        Update the supplied fields of a post (author only).

        Fields left as None are untouched; a supplied media list replaces the
        existing one, even when empty.
        """
        if title is not None:
            title = _require_text(title, "title")
        if body is not None:
            body = _require_text(body, "body")

        post = await self.authz.require_post(post_id)
        await self._member_community(user_id, post.community_id)
        self.authz.require_author(user_id, post.author_id)

        def apply(post: PostDocument) -> None:
            if title is not None:
                post.title = title
            if body is not None:
                post.body = body
            if media is not None:
                post.media = list(media)

        updated = await self.posts.mutate(post_id, apply)
        if updated is None:
            raise NotFoundError("Post not found", code="post_not_found")

        logger.info("post_updated", post_id=post_id, author_id=user_id)
        return updated

    async def get_post(self, user_id: str, post_id: str) -> PostDocument:
        post = await self.authz.require_post(post_id)
        await self._member_community(user_id, post.community_id)
        return post

    async def list_posts(self, user_id: str, community_id: str) -> list[PostDocument]:
        """Posts of a community in display order (members only)."""
        community = await self._member_community(user_id, community_id)
        posts = await self.posts.list_by_community(community_id)
        return _ordered(posts, community.post_ids)

    async def delete_post(self, actor_id: str, post_id: str) -> None:
        """Delete a post and everything under it (member author or community admin)."""
        post = await self.authz.require_post(post_id)
        community = await self._member_community(actor_id, post.community_id)
        self.authz.require_author_or_admin(actor_id, post.author_id, community)

        await self.purge_post(post_id)
        logger.info("post_deleted", post_id=post_id, actor_id=actor_id)

    async def purge_post(self, post_id: str, detach: bool = True) -> bool:
        """
        Cascade-delete a post without any permission check.

        Order: each comment's votes and the comment, the post's own votes,
        the link from the community (unless ``detach`` is False because the
        community itself is going away), then the post. Comments and votes
        that land while the cascade runs are swept once the post is gone;
        after that no new child can attach to it.

        Returns:
            False if the post was already gone
        """
        post = await self.posts.get_by_id(post_id)
        if post is None:
            return False

        comment_ids = list(post.comment_ids)
        for comment in await self.comments.list_by_post(post_id):
            if comment.id not in comment_ids:
                comment_ids.append(comment.id)

        for comment_id in comment_ids:
            await self._purge_comment(comment_id)

        await self.votes.delete_for_target(post_id)

        if detach:

            def unlink(community: CommunityDocument) -> None:
                if post_id in community.post_ids:
                    community.post_ids.remove(post_id)

            await self.communities.mutate(post.community_id, unlink)

        await self.posts.delete(post_id)

        late_comments = await self.comments.list_by_post(post_id)
        for comment in late_comments:
            await self._purge_comment(comment.id)
        late_votes = await self.votes.delete_for_target(post_id)

        logger.debug(
            "post_purged",
            post_id=post_id,
            comments_deleted=len(comment_ids) + len(late_comments),
            late_votes_deleted=late_votes,
        )
        return True

    async def _purge_comment(self, comment_id: str) -> None:
        """Votes, the comment, then any vote that slipped in meanwhile."""
        await self.votes.delete_for_target(comment_id)
        await self.comments.delete(comment_id)
        await self.votes.delete_for_target(comment_id)

    # ========================================================================
    # Comments
    # ========================================================================

    async def add_comment(self, user_id: str, post_id: str, text: str) -> CommentDocument:
        """Comment on a post in a community the user belongs to."""
        text = _require_text(text, "text")
        post = await self.authz.require_post(post_id)
        await self._member_community(user_id, post.community_id)

        comment = await self.comments.insert(CommentDocument(post_id=post_id, author_id=user_id, text=text))

        def attach(post: PostDocument) -> None:
            if comment.id not in post.comment_ids:
                post.comment_ids.append(comment.id)

        if await self.posts.mutate(post_id, attach) is None:
            await self.comments.delete(comment.id)
            raise NotFoundError("Post not found", code="post_not_found")

        logger.info("comment_added", comment_id=comment.id, post_id=post_id, author_id=user_id)
        return comment

    async def edit_comment(self, user_id: str, comment_id: str, text: str) -> CommentDocument:
        """Replace a comment's text (author only)."""
        text = _require_text(text, "text")
        comment = await self.authz.require_comment(comment_id)
        self.authz.require_author(user_id, comment.author_id)

        def apply(comment: CommentDocument) -> None:
            comment.text = text

        updated = await self.comments.mutate(comment_id, apply)
        if updated is None:
            raise NotFoundError("Comment not found", code="comment_not_found")
        return updated

    async def list_comments(self, user_id: str, post_id: str) -> list[CommentDocument]:
        """Comments of a post in the post's comment order (members only)."""
        post = await self.authz.require_post(post_id)
        await self._member_community(user_id, post.community_id)
        comments = await self.comments.list_by_post(post_id)
        return _ordered(comments, post.comment_ids)

    async def delete_comment(self, actor_id: str, comment_id: str) -> None:
        """Delete a comment with its votes (author or community admin)."""
        comment = await self.authz.require_comment(comment_id)
        post = await self.posts.get_by_id(comment.post_id)
        community = await self.communities.get_by_id(post.community_id) if post else None
        self.authz.require_author_or_admin(actor_id, comment.author_id, community)

        await self.votes.delete_for_target(comment_id)

        def unlink(post: PostDocument) -> None:
            if comment_id in post.comment_ids:
                post.comment_ids.remove(comment_id)

        await self.posts.mutate(comment.post_id, unlink)
        await self.comments.delete(comment_id)
        await self.votes.delete_for_target(comment_id)
        logger.info("comment_deleted", comment_id=comment_id, actor_id=actor_id)
