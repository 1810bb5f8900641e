"""Configuration module for the feed service."""

from src.config.settings import (
    AppSettings,
    get_app_settings,
    resolve_api_settings,
    resolve_feed_cache_settings,
    resolve_upstream_settings,
)

__all__ = [
    "AppSettings",
    "get_app_settings",
    "resolve_api_settings",
    "resolve_feed_cache_settings",
    "resolve_upstream_settings",
]
