"""Feed routes: board/thread RSS feeds, the sitemap index and the feed stylesheet."""

from __future__ import annotations

from pathlib import Path

from fastapi import APIRouter, Depends, HTTPException, Request, status
from fastapi.responses import FileResponse, Response

from src.api.services.feed_dispatcher import FeedDispatcher, FeedResponse

router = APIRouter(tags=["feeds"])

PUBLIC_DIR = Path(__file__).resolve().parents[3] / "public"
STYLESHEET_PATH = PUBLIC_DIR / "xml-styles.css"


def get_feed_dispatcher(request: Request) -> FeedDispatcher:
    """Return the dispatcher created in the application lifespan."""
    dispatcher = getattr(request.app.state, "feed_dispatcher", None)
    if dispatcher is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Feed dispatcher is not initialized.",
        )
    return dispatcher


def _to_response(feed: FeedResponse) -> Response:
    return Response(content=feed.body, status_code=feed.status_code, media_type=feed.media_type)


@router.get("/xml-styles.css", include_in_schema=False)
async def feed_stylesheet() -> FileResponse:
    if not STYLESHEET_PATH.is_file():
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Not found")
    return FileResponse(STYLESHEET_PATH, media_type="text/css")


@router.get("/sitemap.xml")
async def sitemap(dispatcher: FeedDispatcher = Depends(get_feed_dispatcher)) -> Response:
    """Sitemap index with one entry per board."""
    return _to_response(await dispatcher.sitemap())


@router.get("/{board}")
@router.get("/{board}/", include_in_schema=False)
async def board_feed(
    board: str,
    dispatcher: FeedDispatcher = Depends(get_feed_dispatcher),
) -> Response:
    """RSS feed of a board's threads, as returned by the upstream API."""
    return _to_response(await dispatcher.dispatch(board))


@router.get("/{board}/{thread_id}")
async def thread_feed(
    board: str,
    thread_id: str,
    dispatcher: FeedDispatcher = Depends(get_feed_dispatcher),
) -> Response:
    """RSS feed of a thread's replies, newest first."""
    return _to_response(await dispatcher.dispatch(board, thread_id))
