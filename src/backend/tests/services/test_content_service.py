"""
Tests for post and comment lifecycle management.
"""

import pytest

from core.exceptions import ForbiddenError, NotFoundError, ValidationError
from models.cosmos_documents import MediaItem, MediaKind


@pytest.fixture
def board(make_user, make_community):
    owner = make_user("owner")
    author = make_user("author")
    member = make_user("member")
    outsider = make_user("outsider")
    community = make_community(owner, members=(author, member))
    return owner, author, member, outsider, community


@pytest.mark.unit
class TestPosts:
    async def test_create_links_post_to_community(self, content_service, repos, board) -> None:
        _, author, _, _, community = board
        media = [MediaItem(url="https://cdn.test/a.png", kind=MediaKind.IMAGE)]

        post = await content_service.create_post(author.id, community.id, " Title ", "Body", media=media)

        assert post.title == "Title"
        assert post.author_id == author.id
        assert post.vote_count == 0
        assert post.media[0].url == "https://cdn.test/a.png"
        stored = await repos.communities.get_by_id(community.id)
        assert stored.post_ids == [post.id]

    async def test_create_rejects_blank_title(self, content_service, board) -> None:
        _, author, _, _, community = board

        with pytest.raises(ValidationError) as exc_info:
            await content_service.create_post(author.id, community.id, "  ", "Body")
        assert exc_info.value.code == "title_required"

    async def test_create_requires_membership(self, content_service, repos, board) -> None:
        _, _, _, outsider, community = board

        with pytest.raises(ForbiddenError):
            await content_service.create_post(outsider.id, community.id, "Title", "Body")
        assert repos.posts.items == {}

    async def test_create_in_missing_community(self, content_service, board) -> None:
        _, author, *_ = board

        with pytest.raises(NotFoundError):
            await content_service.create_post(author.id, "missing", "Title", "Body")

    async def test_partial_edit_keeps_other_fields(self, content_service, board) -> None:
        _, author, _, _, community = board
        post = await content_service.create_post(author.id, community.id, "Title", "Body")

        updated = await content_service.edit_post(author.id, post.id, body="New body")

        assert updated.title == "Title"
        assert updated.body == "New body"

    async def test_edit_with_empty_media_clears_it(self, content_service, board) -> None:
        _, author, _, _, community = board
        media = [MediaItem(url="https://cdn.test/v.mp4", kind=MediaKind.VIDEO)]
        post = await content_service.create_post(author.id, community.id, "Title", "Body", media=media)

        updated = await content_service.edit_post(author.id, post.id, media=[])

        assert updated.media == []

    async def test_only_author_can_edit(self, content_service, board) -> None:
        owner, author, _, _, community = board
        post = await content_service.create_post(author.id, community.id, "Title", "Body")

        with pytest.raises(ForbiddenError):
            await content_service.edit_post(owner.id, post.id, title="Hijacked")

    async def test_list_posts_in_creation_order(self, content_service, board) -> None:
        _, author, member, _, community = board
        first = await content_service.create_post(author.id, community.id, "One", "1")
        second = await content_service.create_post(member.id, community.id, "Two", "2")

        posts = await content_service.list_posts(member.id, community.id)

        assert [p.id for p in posts] == [first.id, second.id]

    async def test_list_posts_requires_membership(self, content_service, board) -> None:
        *_, outsider, community = board

        with pytest.raises(ForbiddenError):
            await content_service.list_posts(outsider.id, community.id)


@pytest.mark.unit
class TestPostDeletion:
    async def test_author_delete_cascades(self, content_service, vote_engine, repos, board) -> None:
        _, author, member, _, community = board
        post = await content_service.create_post(author.id, community.id, "Title", "Body")
        comment = await content_service.add_comment(member.id, post.id, "Nice")
        await vote_engine.cast_vote(member.id, post.id, "Post", "up")
        await vote_engine.cast_vote(author.id, comment.id, "Comment", "up")

        await content_service.delete_post(author.id, post.id)

        assert await repos.posts.get_by_id(post.id) is None
        assert await repos.comments.get_by_id(comment.id) is None
        assert repos.votes.items == {}
        stored = await repos.communities.get_by_id(community.id)
        assert post.id not in stored.post_ids

    async def test_admin_may_delete(self, content_service, repos, board) -> None:
        owner, author, _, _, community = board
        post = await content_service.create_post(author.id, community.id, "Title", "Body")

        await content_service.delete_post(owner.id, post.id)

        assert await repos.posts.get_by_id(post.id) is None

    async def test_other_member_cannot_delete(self, content_service, repos, board) -> None:
        _, author, member, _, community = board
        post = await content_service.create_post(author.id, community.id, "Title", "Body")

        with pytest.raises(ForbiddenError):
            await content_service.delete_post(member.id, post.id)
        assert await repos.posts.get_by_id(post.id) is not None

    async def test_removed_author_cannot_delete(self, content_service, repos, board) -> None:
        _, author, _, _, community = board
        post = await content_service.create_post(author.id, community.id, "Title", "Body")
        await repos.communities.mutate(community.id, lambda c: c.member_ids.remove(author.id))

        with pytest.raises(ForbiddenError) as exc_info:
            await content_service.delete_post(author.id, post.id)
        assert exc_info.value.code == "not_a_member"
        assert await repos.posts.get_by_id(post.id) is not None

    async def test_vote_cast_during_cascade_is_swept(self, content_service, vote_engine, repos, board) -> None:
        _, author, member, _, community = board
        post = await content_service.create_post(author.id, community.id, "Title", "Body")
        delete = repos.posts.delete

        async def vote_then_delete(item_id):
            await vote_engine.cast_vote(member.id, post.id, "Post", "up")
            return await delete(item_id)

        repos.posts.delete = vote_then_delete

        await content_service.delete_post(author.id, post.id)

        assert await repos.posts.get_by_id(post.id) is None
        assert repos.votes.items == {}

    async def test_comment_added_during_cascade_is_swept(
        self, content_service, vote_engine, repos, board
    ) -> None:
        _, author, member, _, community = board
        post = await content_service.create_post(author.id, community.id, "Title", "Body")
        delete = repos.posts.delete

        async def comment_then_delete(item_id):
            comment = await content_service.add_comment(member.id, post.id, "Just in time")
            await vote_engine.cast_vote(author.id, comment.id, "Comment", "up")
            return await delete(item_id)

        repos.posts.delete = comment_then_delete

        await content_service.delete_post(author.id, post.id)

        assert repos.comments.items == {}
        assert repos.votes.items == {}

    async def test_purge_is_idempotent(self, content_service, board) -> None:
        _, author, _, _, community = board
        post = await content_service.create_post(author.id, community.id, "Title", "Body")

        assert await content_service.purge_post(post.id) is True
        assert await content_service.purge_post(post.id) is False


@pytest.mark.unit
class TestComments:
    async def test_add_links_comment_to_post(self, content_service, repos, board) -> None:
        _, author, member, _, community = board
        post = await content_service.create_post(author.id, community.id, "Title", "Body")

        comment = await content_service.add_comment(member.id, post.id, "Hello")

        assert comment.vote_count == 0
        stored = await repos.posts.get_by_id(post.id)
        assert stored.comment_ids == [comment.id]

    async def test_add_requires_membership(self, content_service, board) -> None:
        _, author, _, outsider, community = board
        post = await content_service.create_post(author.id, community.id, "Title", "Body")

        with pytest.raises(ForbiddenError):
            await content_service.add_comment(outsider.id, post.id, "Hello")

    async def test_add_rejects_blank_text(self, content_service, board) -> None:
        _, author, _, _, community = board
        post = await content_service.create_post(author.id, community.id, "Title", "Body")

        with pytest.raises(ValidationError) as exc_info:
            await content_service.add_comment(author.id, post.id, "")
        assert exc_info.value.code == "text_required"

    async def test_edit_by_author_only(self, content_service, board) -> None:
        owner, author, member, _, community = board
        post = await content_service.create_post(author.id, community.id, "Title", "Body")
        comment = await content_service.add_comment(member.id, post.id, "Hello")

        updated = await content_service.edit_comment(member.id, comment.id, "Edited")
        assert updated.text == "Edited"

        with pytest.raises(ForbiddenError):
            await content_service.edit_comment(owner.id, comment.id, "Nope")

    async def test_list_in_post_order(self, content_service, board) -> None:
        _, author, member, _, community = board
        post = await content_service.create_post(author.id, community.id, "Title", "Body")
        first = await content_service.add_comment(member.id, post.id, "1")
        second = await content_service.add_comment(author.id, post.id, "2")

        comments = await content_service.list_comments(member.id, post.id)

        assert [c.id for c in comments] == [first.id, second.id]

    async def test_delete_detaches_and_removes_votes(self, content_service, vote_engine, repos, board) -> None:
        owner, author, member, _, community = board
        post = await content_service.create_post(author.id, community.id, "Title", "Body")
        comment = await content_service.add_comment(member.id, post.id, "Hello")
        await vote_engine.cast_vote(owner.id, comment.id, "Comment", "up")

        await content_service.delete_comment(owner.id, comment.id)

        assert await repos.comments.get_by_id(comment.id) is None
        assert (await repos.posts.get_by_id(post.id)).comment_ids == []
        assert repos.votes.items == {}

    async def test_vote_cast_during_delete_is_swept(self, content_service, vote_engine, repos, board) -> None:
        owner, author, member, _, community = board
        post = await content_service.create_post(author.id, community.id, "Title", "Body")
        comment = await content_service.add_comment(member.id, post.id, "Hello")
        delete = repos.comments.delete

        async def vote_then_delete(item_id):
            await vote_engine.cast_vote(owner.id, comment.id, "Comment", "down")
            return await delete(item_id)

        repos.comments.delete = vote_then_delete

        await content_service.delete_comment(member.id, comment.id)

        assert repos.comments.items == {}
        assert repos.votes.items == {}

    async def test_delete_by_unrelated_member_forbidden(self, content_service, board) -> None:
        _, author, member, _, community = board
        post = await content_service.create_post(author.id, community.id, "Title", "Body")
        comment = await content_service.add_comment(member.id, post.id, "Hello")

        with pytest.raises(ForbiddenError):
            await content_service.delete_comment(author.id, comment.id)

    async def test_delete_missing_comment(self, content_service, board) -> None:
        _, author, *_ = board

        with pytest.raises(NotFoundError):
            await content_service.delete_comment(author.id, "missing")
