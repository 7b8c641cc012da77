"""Tests for CommentStore against a real SQLite database."""

import math
from unittest.mock import MagicMock

import pytest
from sqlalchemy.exc import OperationalError

from commentbox.comments.exceptions import StorageError
from commentbox.comments.service import (
    ADMIN_LIST_LIMIT,
    MAX_LIMIT,
    MAX_PAGE,
    CommentStore,
    clamp_pagination,
)


async def add(
    store: CommentStore,
    post: str = "/post",
    name: str = "Ann",
    message: str = "Hello",
    approved: bool = True,
    **extra: object,
) -> int:
    return await store.insert(
        post=post,
        name=name,
        website=extra.pop("website", None),
        message=message,
        approved=approved,
        **extra,
    )


class TestClampPagination:
    """Tests for clamp_pagination."""

    @pytest.mark.parametrize(
        "page,limit,expected",
        [
            (1, 10, (1, 10)),
            (0, 10, (1, 10)),
            (-5, 10, (1, 10)),
            (3, 0, (3, 1)),
            (3, -1, (3, 1)),
            (3, 51, (3, MAX_LIMIT)),
            (3, 50, (3, 50)),
            (10**30, 10, (MAX_PAGE, 10)),
        ],
    )
    def test_bounds(self, page: int, limit: int, expected: tuple[int, int]) -> None:
        assert clamp_pagination(page, limit) == expected


class TestInsert:
    """Tests for CommentStore.insert."""

    @pytest.mark.asyncio
    async def test_ids_strictly_increase(self, store: CommentStore) -> None:
        ids = [await add(store, message=f"m{i}") for i in range(5)]
        assert ids == sorted(ids)
        assert len(set(ids)) == 5

    @pytest.mark.asyncio
    async def test_ids_not_reused_after_delete(self, store: CommentStore) -> None:
        first = await add(store)
        second = await add(store)
        await store.delete(second)

        third = await add(store)

        assert first < second < third

    @pytest.mark.asyncio
    async def test_stores_all_fields(self, store: CommentStore) -> None:
        comment_id = await add(
            store,
            website="https://ann.dev",
            ip="203.0.113.7",
            user_agent="pytest",
            approved=False,
        )

        [row] = await store.list_all()

        assert row.id == comment_id
        assert row.post == "/post"
        assert row.name == "Ann"
        assert row.website == "https://ann.dev"
        assert row.message == "Hello"
        assert row.ip == "203.0.113.7"
        assert row.user_agent == "pytest"
        assert row.approved is False
        assert row.created_at is not None

    @pytest.mark.asyncio
    async def test_empty_ip_and_user_agent_stored_as_null(
        self, store: CommentStore
    ) -> None:
        await add(store, ip="", user_agent="")
        [row] = await store.list_all()
        assert row.ip is None
        assert row.user_agent is None


class TestQueryApproved:
    """Tests for CommentStore.query_approved."""

    @pytest.mark.asyncio
    async def test_returns_only_approved_rows(self, store: CommentStore) -> None:
        visible = await add(store, approved=True)
        await add(store, approved=False)

        items, total = await store.query_approved("/post", 1, 10)

        assert [c.id for c in items] == [visible]
        assert total == 1

    @pytest.mark.asyncio
    async def test_pending_rows_never_returned(self, store: CommentStore) -> None:
        for _ in range(3):
            await add(store, approved=False)

        for page, limit in [(1, 10), (0, 0), (2, 1), (1, 100)]:
            items, total = await store.query_approved("/post", page, limit)
            assert items == []
            assert total == 0

    @pytest.mark.asyncio
    async def test_post_must_match_exactly(self, store: CommentStore) -> None:
        await add(store, post="/a")
        await add(store, post="/a/")
        await add(store, post="/A")

        items, total = await store.query_approved("/a", 1, 10)

        assert total == 1
        assert items[0].post == "/a"

    @pytest.mark.asyncio
    async def test_newest_first_and_paginated(self, store: CommentStore) -> None:
        ids = [await add(store, message=f"m{i}") for i in range(25)]
        newest_first = list(reversed(ids))

        page1, total = await store.query_approved("/post", 1, 10)
        page3, _ = await store.query_approved("/post", 3, 10)

        assert total == 25
        assert [c.id for c in page1] == newest_first[:10]
        assert [c.id for c in page3] == newest_first[20:]

    @pytest.mark.asyncio
    async def test_page_past_the_end_is_empty_with_total(
        self, store: CommentStore
    ) -> None:
        for i in range(23):
            await add(store, message=f"m{i}")

        past_end = math.ceil(23 / 10) + 1
        items, total = await store.query_approved("/post", past_end, 10)

        assert items == []
        assert total == 23

    @pytest.mark.asyncio
    async def test_page_beyond_sqlite_range_is_empty(
        self, store: CommentStore
    ) -> None:
        await add(store)

        items, total = await store.query_approved("/post", 10**20, MAX_LIMIT)

        assert items == []
        assert total == 1

    @pytest.mark.asyncio
    async def test_limit_is_clamped(self, store: CommentStore) -> None:
        for i in range(55):
            await add(store, message=f"m{i}")

        items, total = await store.query_approved("/post", 1, 500)

        assert len(items) == MAX_LIMIT
        assert total == 55

    @pytest.mark.asyncio
    async def test_public_rows_hide_private_fields(self, store: CommentStore) -> None:
        await add(store, ip="198.51.100.1", user_agent="ua")

        [item], _ = await store.query_approved("/post", 1, 10)

        assert set(item.model_dump()) == {
            "id",
            "post",
            "name",
            "website",
            "message",
            "created_at",
        }


class TestListAll:
    """Tests for CommentStore.list_all."""

    @pytest.mark.asyncio
    async def test_includes_pending_newest_first(self, store: CommentStore) -> None:
        approved = await add(store, approved=True)
        pending = await add(store, approved=False, post="/other")

        rows = await store.list_all()

        assert [r.id for r in rows] == [pending, approved]
        assert [r.approved for r in rows] == [False, True]

    @pytest.mark.asyncio
    async def test_respects_limit(self, store: CommentStore) -> None:
        ids = [await add(store) for _ in range(4)]

        rows = await store.list_all(limit=2)

        assert [r.id for r in rows] == ids[:-3:-1]

    def test_admin_listing_caps_at_500(self) -> None:
        assert ADMIN_LIST_LIMIT == 500


class TestModeration:
    """Tests for approve and delete."""

    @pytest.mark.asyncio
    async def test_approve_makes_comment_visible(self, store: CommentStore) -> None:
        comment_id = await add(store, approved=False)
        assert (await store.query_approved("/post", 1, 10))[1] == 0

        await store.approve(comment_id)

        items, total = await store.query_approved("/post", 1, 10)
        assert total == 1
        assert items[0].id == comment_id

    @pytest.mark.asyncio
    async def test_approve_is_idempotent(self, store: CommentStore) -> None:
        comment_id = await add(store, approved=False)
        await store.approve(comment_id)
        await store.approve(comment_id)
        assert (await store.list_all())[0].approved is True

    @pytest.mark.asyncio
    async def test_approve_unknown_id_is_noop(self, store: CommentStore) -> None:
        await add(store, approved=False)
        await store.approve(9999)
        assert (await store.list_all())[0].approved is False

    @pytest.mark.asyncio
    async def test_delete_removes_row(self, store: CommentStore) -> None:
        keep = await add(store)
        gone = await add(store)

        await store.delete(gone)

        assert [r.id for r in await store.list_all()] == [keep]

    @pytest.mark.asyncio
    async def test_delete_twice_does_not_error(self, store: CommentStore) -> None:
        comment_id = await add(store)
        await store.delete(comment_id)
        await store.delete(comment_id)
        assert await store.list_all() == []


class TestStorageErrors:
    """Database failures surface as StorageError."""

    @pytest.mark.asyncio
    async def test_sqlalchemy_errors_are_wrapped(self) -> None:
        session_factory = MagicMock(
            side_effect=OperationalError("SELECT 1", {}, Exception("disk I/O error"))
        )
        failing = CommentStore(session_factory)

        with pytest.raises(StorageError) as exc_info:
            await failing.list_all()

        assert exc_info.value.message == "Server error"
        assert isinstance(exc_info.value.__cause__, OperationalError)
