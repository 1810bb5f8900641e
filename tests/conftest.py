"""Shared fixtures for the feed service tests."""

import pytest

from src.api.schemas.boards import Board, BoardThreads, ThreadReplies

SITE_URL = "https://site.test"


class FakeClock:
    """Monotonic clock stand-in that only moves when told to."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def anime_board() -> BoardThreads:
    return BoardThreads.model_validate(
        {
            "slug": "a",
            "name": "Anime",
            "threads": [
                {
                    "id": 1,
                    "message": "hi",
                    "repliesCount": 2,
                    "createdAt": "2023-01-01T00:00:00Z",
                    "imageUrl": None,
                }
            ],
        }
    )


@pytest.fixture
def thread_with_replies() -> ThreadReplies:
    return ThreadReplies.model_validate(
        {
            "id": 7,
            "title": "Best openings",
            "createdAt": "2023-01-01T00:00:00Z",
            "replies": [
                {"id": 11, "message": "first", "createdAt": "2023-01-01T01:00:00Z"},
                {"id": 12, "message": "second", "createdAt": "2023-01-01T02:00:00Z"},
                {"id": 13, "message": "third", "createdAt": None},
            ],
        }
    )


@pytest.fixture
def boards() -> list[Board]:
    return [Board(name="Anime", slug="a"), Board(name="Technology", slug="g")]
