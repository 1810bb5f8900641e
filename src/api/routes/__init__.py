"""API Routes."""

from src.api.routes.feeds import router as feeds_router

__all__ = ["feeds_router"]
