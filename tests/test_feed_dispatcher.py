"""Tests for the feed dispatcher: cache keys, miss-fill and not-found handling."""

import asyncio
import xml.etree.ElementTree as ET
from datetime import date
from unittest.mock import AsyncMock, patch

import pytest

from src.api.schemas.boards import Board, BoardThreads, ThreadReplies
from src.api.services.feed_dispatcher import (
    SITEMAP_CACHE_KEY,
    FeedDispatcher,
    feed_cache_key,
)
from src.api.services.feed_renderer import FeedRenderError
from src.api.services.resource_cache import ABSENT, MISS, ResourceCache
from src.api.services.upstream_client import BoardApiClient, UpstreamFailure, UpstreamResult

SITE_URL = "https://site.test"
SITEMAP_NS = {"sm": "http://www.sitemaps.org/schemas/sitemap/0.9"}


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def client() -> AsyncMock:
    return AsyncMock(spec=BoardApiClient)


@pytest.fixture
def cache(clock) -> ResourceCache:
    return ResourceCache(ttl_seconds=60, clock=clock)


@pytest.fixture
def dispatcher(client: AsyncMock, cache: ResourceCache) -> FeedDispatcher:
    return FeedDispatcher(client=client, cache=cache, site_url=SITE_URL, today=lambda: date(2023, 8, 4))


def _unavailable() -> UpstreamResult:
    return UpstreamResult.failed(UpstreamFailure.TRANSPORT, "connection refused")


# ---------------------------------------------------------------------------
# Tests
# ---------------------------------------------------------------------------


@pytest.mark.parametrize(
    ("board", "thread_id", "expected"),
    [("a", None, "a-"), ("a", "", "a-"), ("a", "12", "a-12"), ("tech", "007", "tech-007")],
)
def test_feed_cache_key(board, thread_id, expected):
    assert feed_cache_key(board, thread_id) == expected


async def test_board_feed_example(dispatcher: FeedDispatcher, client: AsyncMock, anime_board: BoardThreads):
    client.fetch_board_threads.return_value = UpstreamResult.success(anime_board)

    response = await dispatcher.dispatch("a")

    assert response.status_code == 200
    assert response.media_type == "text/xml"
    channel = ET.fromstring(response.body.encode("utf-8")).find("channel")
    assert channel.findtext("title") == "/a/ - Anime"
    assert [item.findtext("link") for item in channel.findall("item")] == ["https://site.test/boards/a/1"]
    client.fetch_board_threads.assert_awaited_once_with("a")


async def test_board_feed_is_served_from_cache(
    dispatcher: FeedDispatcher,
    client: AsyncMock,
    cache: ResourceCache,
    anime_board: BoardThreads,
):
    client.fetch_board_threads.return_value = UpstreamResult.success(anime_board)

    first = await dispatcher.board_feed("a")
    second = await dispatcher.board_feed("a")

    assert first == second
    assert cache.get("a-") == first.body
    assert client.fetch_board_threads.await_count == 1


async def test_cache_expiry_triggers_refetch(
    dispatcher: FeedDispatcher,
    client: AsyncMock,
    clock,
    anime_board: BoardThreads,
):
    client.fetch_board_threads.return_value = UpstreamResult.success(anime_board)

    await dispatcher.board_feed("a")
    clock.advance(60)
    await dispatcher.board_feed("a")

    assert client.fetch_board_threads.await_count == 2


async def test_unavailable_upstream_is_cached_as_not_found(
    dispatcher: FeedDispatcher,
    client: AsyncMock,
    cache: ResourceCache,
    clock,
    anime_board: BoardThreads,
):
    client.fetch_board_threads.return_value = _unavailable()

    first = await dispatcher.board_feed("a")
    assert first.status_code == 404
    assert first.body == "Not found"
    assert first.media_type == "text/xml"
    assert cache.get("a-") is ABSENT

    # Upstream recovers, but the negative result is still live
    client.fetch_board_threads.return_value = UpstreamResult.success(anime_board)
    clock.advance(30)
    second = await dispatcher.board_feed("a")
    assert second.status_code == 404
    assert client.fetch_board_threads.await_count == 1

    clock.advance(30)
    third = await dispatcher.board_feed("a")
    assert third.status_code == 200
    assert client.fetch_board_threads.await_count == 2


@pytest.mark.parametrize("failure", list(UpstreamFailure))
async def test_every_upstream_failure_is_not_found(
    dispatcher: FeedDispatcher,
    client: AsyncMock,
    failure: UpstreamFailure,
):
    client.fetch_board_threads.return_value = UpstreamResult.failed(failure)

    assert (await dispatcher.board_feed("a")).status_code == 404


async def test_render_error_is_cached_as_not_found(
    dispatcher: FeedDispatcher,
    client: AsyncMock,
    cache: ResourceCache,
    anime_board: BoardThreads,
):
    client.fetch_board_threads.return_value = UpstreamResult.success(anime_board)

    with patch(
        "src.api.services.feed_dispatcher.render_board_feed",
        side_effect=FeedRenderError("bad shape"),
    ):
        response = await dispatcher.board_feed("a")

    assert response.status_code == 404
    assert cache.get("a-") is ABSENT


async def test_thread_feed(
    dispatcher: FeedDispatcher,
    client: AsyncMock,
    cache: ResourceCache,
    thread_with_replies: ThreadReplies,
):
    client.fetch_thread_replies.return_value = UpstreamResult.success(thread_with_replies)

    response = await dispatcher.dispatch("a", "7")

    assert response.status_code == 200
    channel = ET.fromstring(response.body.encode("utf-8")).find("channel")
    assert channel.findtext("title") == "Best openings/"
    assert channel.findtext("link") == "https://site.test/boards/a/7"
    assert [item.findtext("title") for item in channel.findall("item")] == ["third", "second", "first"]
    client.fetch_thread_replies.assert_awaited_once_with("a", 7)
    assert cache.get("a-7") == response.body
    assert cache.get("a-") is MISS


@pytest.mark.parametrize("thread_id", ["abc", "12abc", "-1", "１２"])
async def test_non_numeric_thread_id_is_not_found(
    dispatcher: FeedDispatcher,
    client: AsyncMock,
    thread_id: str,
):
    response = await dispatcher.thread_feed("a", thread_id)

    assert response.status_code == 404
    client.fetch_thread_replies.assert_not_awaited()


async def test_board_and_thread_feeds_use_separate_keys(
    dispatcher: FeedDispatcher,
    client: AsyncMock,
    anime_board: BoardThreads,
):
    client.fetch_board_threads.return_value = UpstreamResult.success(anime_board)
    client.fetch_thread_replies.return_value = _unavailable()

    assert (await dispatcher.dispatch("a", "1")).status_code == 404
    assert (await dispatcher.dispatch("a")).status_code == 200


async def test_sitemap_example(dispatcher: FeedDispatcher, client: AsyncMock, cache: ResourceCache):
    client.fetch_boards.return_value = UpstreamResult.success(
        [Board(name="Anime", slug="a"), Board(name="Bits", slug="b")]
    )

    response = await dispatcher.sitemap()

    assert response.status_code == 200
    entries = ET.fromstring(response.body.encode("utf-8")).findall("sm:sitemap", SITEMAP_NS)
    assert len(entries) == 2
    assert [entry.findtext("sm:lastmod", namespaces=SITEMAP_NS) for entry in entries] == [
        "2023-08-04",
        "2023-08-04",
    ]
    assert cache.get(SITEMAP_CACHE_KEY) == response.body


async def test_sitemap_unavailable(dispatcher: FeedDispatcher, client: AsyncMock):
    client.fetch_boards.return_value = _unavailable()

    response = await dispatcher.sitemap()

    assert response.status_code == 404
    assert response.body == "Not found"


async def test_concurrent_requests_share_one_fetch(
    dispatcher: FeedDispatcher,
    client: AsyncMock,
    anime_board: BoardThreads,
):
    async def slow_fetch(slug: str) -> UpstreamResult:
        await asyncio.sleep(0.01)
        return UpstreamResult.success(anime_board)

    client.fetch_board_threads.side_effect = slow_fetch

    results = await asyncio.gather(*(dispatcher.board_feed("a") for _ in range(3)))

    assert all(result.status_code == 200 for result in results)
    assert len({result.body for result in results}) == 1
    assert client.fetch_board_threads.await_count == 1
