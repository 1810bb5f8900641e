"""Application settings and runtime config resolution.

This module centralizes environment-backed defaults used by the API layer,
the upstream client and the feed cache.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Mapping

# API env names and defaults
ENV_API_HOST = "HOST"
ENV_API_PORT = "PORT"
DEFAULT_API_HOST = "0.0.0.0"
DEFAULT_API_PORT = 8080

# Upstream board API env names and defaults
ENV_UPSTREAM_API_URL = "UPSTREAM_API_URL"
ENV_SITE_URL = "SITE_URL"
ENV_UPSTREAM_TIMEOUT_SECONDS = "UPSTREAM_TIMEOUT_SECONDS"
DEFAULT_UPSTREAM_API_URL = "https://api.kolaczyn.com"
DEFAULT_SITE_URL = "https://4chan.kolaczyn.com"
DEFAULT_UPSTREAM_TIMEOUT_SECONDS = 5.0

# Feed cache env names and defaults
ENV_FEED_CACHE_TTL_SECONDS = "FEED_CACHE_TTL_SECONDS"
ENV_FEED_NEGATIVE_CACHE_TTL_SECONDS = "FEED_NEGATIVE_CACHE_TTL_SECONDS"
ENV_FEED_CACHE_CHECK_PERIOD_SECONDS = "FEED_CACHE_CHECK_PERIOD_SECONDS"
DEFAULT_FEED_CACHE_TTL_SECONDS = 60
DEFAULT_FEED_CACHE_CHECK_PERIOD_SECONDS = 120


def _clamp(value: float, minimum: float, maximum: float) -> float:
    return max(minimum, min(maximum, value))


def _read_int(env: Mapping[str, str], name: str, default: int) -> int:
    try:
        return int(env.get(name, str(default)))
    except ValueError:
        return default


def _read_float(env: Mapping[str, str], name: str, default: float) -> float:
    try:
        return float(env.get(name, str(default)))
    except ValueError:
        return default


@dataclass(frozen=True)
class APISettings:
    host: str
    port: int


@dataclass(frozen=True)
class UpstreamSettings:
    api_url: str
    site_url: str
    timeout_seconds: float


@dataclass(frozen=True)
class FeedCacheSettings:
    ttl_seconds: int
    negative_ttl_seconds: int
    check_period_seconds: int


@dataclass(frozen=True)
class AppSettings:
    api: APISettings
    upstream: UpstreamSettings
    feed_cache: FeedCacheSettings


def resolve_api_settings(env: Mapping[str, str] = os.environ) -> APISettings:
    host = env.get(ENV_API_HOST, DEFAULT_API_HOST)
    port = _read_int(env, ENV_API_PORT, DEFAULT_API_PORT)
    if not 0 < port < 65536:
        port = DEFAULT_API_PORT

    return APISettings(host=host, port=port)


def resolve_upstream_settings(env: Mapping[str, str] = os.environ) -> UpstreamSettings:
    api_url = (env.get(ENV_UPSTREAM_API_URL) or DEFAULT_UPSTREAM_API_URL).rstrip("/")
    site_url = (env.get(ENV_SITE_URL) or DEFAULT_SITE_URL).rstrip("/")
    timeout_seconds = _read_float(
        env,
        ENV_UPSTREAM_TIMEOUT_SECONDS,
        DEFAULT_UPSTREAM_TIMEOUT_SECONDS,
    )

    return UpstreamSettings(
        api_url=api_url,
        site_url=site_url,
        timeout_seconds=_clamp(timeout_seconds, 1.0, 60.0),
    )


def resolve_feed_cache_settings(
    env: Mapping[str, str] = os.environ,
) -> FeedCacheSettings:
    ttl_seconds = _read_int(env, ENV_FEED_CACHE_TTL_SECONDS, DEFAULT_FEED_CACHE_TTL_SECONDS)
    ttl_seconds = int(_clamp(ttl_seconds, 1, 86400))

    # Failed lookups share the success TTL unless configured otherwise
    negative_ttl_seconds = int(
        _clamp(_read_int(env, ENV_FEED_NEGATIVE_CACHE_TTL_SECONDS, ttl_seconds), 1, 86400)
    )

    check_period_seconds = int(
        _clamp(
            _read_int(
                env,
                ENV_FEED_CACHE_CHECK_PERIOD_SECONDS,
                DEFAULT_FEED_CACHE_CHECK_PERIOD_SECONDS,
            ),
            1,
            86400,
        )
    )

    return FeedCacheSettings(
        ttl_seconds=ttl_seconds,
        negative_ttl_seconds=negative_ttl_seconds,
        check_period_seconds=check_period_seconds,
    )


def get_app_settings(env: Mapping[str, str] = os.environ) -> AppSettings:
    return AppSettings(
        api=resolve_api_settings(env=env),
        upstream=resolve_upstream_settings(env=env),
        feed_cache=resolve_feed_cache_settings(env=env),
    )
