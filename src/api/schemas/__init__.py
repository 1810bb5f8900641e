"""API Schemas - Pydantic models for upstream board API payloads."""

from src.api.schemas.boards import Board, BoardThreads, Reply, Thread, ThreadReplies

__all__ = [
    "Board",
    "BoardThreads",
    "Reply",
    "Thread",
    "ThreadReplies",
]
