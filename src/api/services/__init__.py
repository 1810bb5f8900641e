"""API Services."""

from src.api.services.feed_dispatcher import FeedDispatcher, FeedResponse
from src.api.services.resource_cache import ABSENT, MISS, ResourceCache
from src.api.services.upstream_client import BoardApiClient, UpstreamFailure, UpstreamResult

__all__ = [
    "ABSENT",
    "MISS",
    "BoardApiClient",
    "FeedDispatcher",
    "FeedResponse",
    "ResourceCache",
    "UpstreamFailure",
    "UpstreamResult",
]
