"""
Upstream Board API Client

Reads boards, board threads and thread replies from the message-board JSON
API. Every call performs exactly one GET request and never raises: transport
errors, timeouts, non-2xx statuses and payloads that do not match the
expected schema are all reported through ``UpstreamResult.failure``.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Generic, Optional, TypeVar
from urllib.parse import quote

import httpx
from pydantic import BaseModel, TypeAdapter, ValidationError

from src.api.schemas.boards import Board, BoardThreads, ThreadReplies
from src.utils.logging_config import get_logger

logger = get_logger(__name__)

T = TypeVar("T")

_BOARD_LIST_ADAPTER = TypeAdapter(list[Board])


class UpstreamFailure(str, Enum):
    """Why an upstream lookup produced no data."""

    TRANSPORT = "transport"
    NOT_FOUND = "not_found"
    HTTP_STATUS = "http_status"
    MALFORMED = "malformed"


@dataclass(frozen=True)
class UpstreamResult(Generic[T]):
    value: Optional[T] = None
    failure: Optional[UpstreamFailure] = None
    detail: str = ""

    @property
    def ok(self) -> bool:
        return self.failure is None

    @classmethod
    def success(cls, value: T) -> "UpstreamResult[T]":
        return cls(value=value)

    @classmethod
    def failed(cls, failure: UpstreamFailure, detail: str = "") -> "UpstreamResult[T]":
        return cls(failure=failure, detail=detail)


class BoardApiClient:
    """Async client for the board API rooted at ``{api_url}/boards``."""

    def __init__(
        self,
        api_url: str,
        timeout_seconds: float = 5.0,
        http_client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self._boards_url = f"{api_url.rstrip('/')}/boards"
        self._owns_client = http_client is None
        self._client = http_client or httpx.AsyncClient(
            timeout=httpx.Timeout(timeout_seconds),
            headers={"Accept": "application/json", "User-Agent": "BoardFeeds/1.0"},
        )

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def fetch_boards(self) -> UpstreamResult[list[Board]]:
        return await self._get(self._boards_url, _BOARD_LIST_ADAPTER)

    async def fetch_board_threads(self, slug: str) -> UpstreamResult[BoardThreads]:
        return await self._get(
            f"{self._boards_url}/{quote(slug, safe='')}",
            BoardThreads,
            params={"sortOrder": "creationDate"},
        )

    async def fetch_thread_replies(self, slug: str, thread_id: int) -> UpstreamResult[ThreadReplies]:
        return await self._get(f"{self._boards_url}/{quote(slug, safe='')}/threads/{thread_id}", ThreadReplies)

    async def _get(
        self,
        url: str,
        schema: type[BaseModel] | TypeAdapter,
        params: Optional[dict[str, str]] = None,
    ) -> UpstreamResult:
        try:
            response = await self._client.get(url, params=params)
        except httpx.HTTPError as e:
            logger.warning("Upstream request failed", url=url, error=str(e) or type(e).__name__)
            return UpstreamResult.failed(UpstreamFailure.TRANSPORT, str(e) or type(e).__name__)

        if response.status_code == 404:
            logger.info("Upstream resource not found", url=url)
            return UpstreamResult.failed(UpstreamFailure.NOT_FOUND, "404")

        if not response.is_success:
            logger.warning("Upstream returned error status", url=url, status_code=response.status_code)
            return UpstreamResult.failed(UpstreamFailure.HTTP_STATUS, str(response.status_code))

        try:
            if isinstance(schema, TypeAdapter):
                payload = schema.validate_json(response.content)
            else:
                payload = schema.model_validate_json(response.content)
        except ValidationError as e:
            logger.warning("Upstream payload did not match schema", url=url, errors=e.error_count())
            return UpstreamResult.failed(UpstreamFailure.MALFORMED, str(e))

        return UpstreamResult.success(payload)
