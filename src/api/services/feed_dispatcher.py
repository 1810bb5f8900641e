"""Feed Dispatcher — cache lookup, generation and cache fill per request.

Maps a logical request (board feed, thread feed or sitemap) to a cache key,
serves hits straight from the ``ResourceCache`` and, on a miss, fetches the
upstream data, renders it and stores the result. Any failure on the way is
stored as an ``ABSENT`` marker and answered with a not-found outcome.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from typing import Callable, Optional

from src.api.services.feed_renderer import (
    FeedRenderError,
    render_board_feed,
    render_sitemap,
    render_thread_feed,
)
from src.api.services.resource_cache import ABSENT, CachedValue, ResourceCache
from src.api.services.upstream_client import BoardApiClient, UpstreamResult
from src.utils.logging_config import get_logger

logger = get_logger(__name__)

SITEMAP_CACHE_KEY = "sitemap.xml"
XML_MEDIA_TYPE = "text/xml"
NOT_FOUND_BODY = "Not found"


def feed_cache_key(board: str, thread_id: Optional[str] = None) -> str:
    """Cache key for a board feed (``"a-"``) or a thread feed (``"a-12"``)."""
    return f"{board}-{thread_id or ''}"


@dataclass(frozen=True)
class FeedResponse:
    status_code: int
    body: str
    media_type: str = XML_MEDIA_TYPE


NOT_FOUND = FeedResponse(status_code=404, body=NOT_FOUND_BODY)


class FeedDispatcher:
    """Serves board feeds, thread feeds and the sitemap through the cache."""

    def __init__(
        self,
        client: BoardApiClient,
        cache: ResourceCache,
        site_url: str,
        now: Callable[[], datetime] | None = None,
        today: Callable[[], date] | None = None,
    ) -> None:
        self.client = client
        self.cache = cache
        self.site_url = site_url
        self._now = now
        self._today = today or date.today

    async def board_feed(self, board: str) -> FeedResponse:
        key = feed_cache_key(board)
        return self._respond(await self.cache.get_or_fill(key, lambda: self._generate_board_feed(key, board)))

    async def thread_feed(self, board: str, thread_id: str) -> FeedResponse:
        if not (thread_id.isascii() and thread_id.isdigit()):
            logger.info("Rejected non-numeric thread id", board=board, thread_id=thread_id)
            return NOT_FOUND

        key = feed_cache_key(board, thread_id)
        return self._respond(
            await self.cache.get_or_fill(
                key,
                lambda: self._generate_thread_feed(key, board, int(thread_id)),
            )
        )

    async def sitemap(self) -> FeedResponse:
        return self._respond(await self.cache.get_or_fill(SITEMAP_CACHE_KEY, self._generate_sitemap))

    async def dispatch(self, board: str, thread_id: Optional[str] = None) -> FeedResponse:
        """Route a ``/{board}/{threadId?}`` request to the matching feed."""
        if thread_id:
            return await self.thread_feed(board, thread_id)
        return await self.board_feed(board)

    @staticmethod
    def _respond(value: CachedValue) -> FeedResponse:
        if value is ABSENT or not isinstance(value, str):
            return NOT_FOUND
        return FeedResponse(status_code=200, body=value)

    async def _generate_board_feed(self, key: str, board: str) -> CachedValue:
        logger.info("Generating feed", key=key, board=board)
        result = await self.client.fetch_board_threads(board)
        return self._render(
            key,
            result,
            lambda threads: render_board_feed(threads, board, self.site_url, now=self._current_time()),
        )

    async def _generate_thread_feed(self, key: str, board: str, thread_id: int) -> CachedValue:
        logger.info("Generating feed", key=key, board=board, thread_id=thread_id)
        result = await self.client.fetch_thread_replies(board, thread_id)
        return self._render(
            key,
            result,
            lambda replies: render_thread_feed(
                replies, board, thread_id, self.site_url, now=self._current_time()
            ),
        )

    async def _generate_sitemap(self) -> CachedValue:
        logger.info("Generating sitemap", key=SITEMAP_CACHE_KEY)
        result = await self.client.fetch_boards()
        return self._render(
            SITEMAP_CACHE_KEY,
            result,
            lambda boards: render_sitemap(boards, self.site_url, today=self._today()),
        )

    def _current_time(self) -> Optional[datetime]:
        return self._now() if self._now else None

    @staticmethod
    def _render(key: str, result: UpstreamResult, render: Callable[[object], str]) -> CachedValue:
        if not result.ok:
            logger.warning(
                "Upstream data unavailable",
                key=key,
                failure=result.failure.value if result.failure else None,
                detail=result.detail[:200],
            )
            return ABSENT

        try:
            return render(result.value)
        except FeedRenderError as e:
            logger.warning("Feed rendering failed", key=key, error=str(e))
            return ABSENT

