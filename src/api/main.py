"""
FastAPI Application Entry Point

Serves message-board content from the upstream board API as RSS feeds and a
sitemap index, behind a short-lived in-memory cache.

Usage:
    uvicorn src.api.main:app --port 8080

Or with the CLI:
    python -m src.api.main
"""

from contextlib import asynccontextmanager
from typing import Optional

from dotenv import load_dotenv
from fastapi import FastAPI

from src.api.middleware import LoggingMiddleware
from src.api.routes import feeds_router
from src.api.services.feed_dispatcher import FeedDispatcher
from src.api.services.resource_cache import ResourceCache
from src.api.services.upstream_client import BoardApiClient
from src.config.settings import AppSettings, get_app_settings
from src.utils.logging_config import configure_logging, get_logger

# Load environment variables
load_dotenv()

# Initialize logging (must be called before creating loggers)
configure_logging()

logger = get_logger(__name__)


def build_feed_dispatcher(settings: AppSettings) -> FeedDispatcher:
    """Wire the upstream client and a fresh cache from *settings*."""
    cache = ResourceCache(
        ttl_seconds=settings.feed_cache.ttl_seconds,
        negative_ttl_seconds=settings.feed_cache.negative_ttl_seconds,
        check_period_seconds=settings.feed_cache.check_period_seconds,
    )
    client = BoardApiClient(
        api_url=settings.upstream.api_url,
        timeout_seconds=settings.upstream.timeout_seconds,
    )
    return FeedDispatcher(client=client, cache=cache, site_url=settings.upstream.site_url)


def create_app(
    settings: Optional[AppSettings] = None,
    dispatcher: Optional[FeedDispatcher] = None,
) -> FastAPI:
    """Create the feed application.

    A prebuilt *dispatcher* is used as-is (and left open on shutdown);
    otherwise one is built from *settings* during startup.
    """
    settings = settings or get_app_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        owned = dispatcher is None
        app.state.feed_dispatcher = dispatcher or build_feed_dispatcher(settings)
        logger.info(
            "Feed service ready",
            upstream=settings.upstream.api_url,
            cache_ttl_seconds=settings.feed_cache.ttl_seconds,
            negative_cache_ttl_seconds=settings.feed_cache.negative_ttl_seconds,
        )

        yield

        logger.info("Shutting down feed service")
        if owned:
            await app.state.feed_dispatcher.client.aclose()

    app = FastAPI(
        title="Board Feeds",
        description="RSS feeds and sitemap for the message board",
        version="1.0.0",
        lifespan=lifespan,
    )
    app.add_middleware(LoggingMiddleware)

    @app.get("/health")
    async def health_check():
        """Health check endpoint."""
        return {"status": "healthy", "service": "board-feeds"}

    # Catch-all /{board} routes, so registered after /health
    app.include_router(feeds_router)

    return app


app = create_app()


def main():
    """Run the API server."""
    import uvicorn

    api_settings = get_app_settings().api
    logger.info("Server starting", url=f"http://localhost:{api_settings.port}")

    uvicorn.run(
        "src.api.main:app",
        host=api_settings.host,
        port=api_settings.port,
        log_level="info",
    )


if __name__ == "__main__":
    main()
