"""Hardcoded default configuration values."""

from __future__ import annotations

from typing import Any

DEFAULT_CONFIG: dict[str, Any] = {
    "app_name": "animarr",
    "environment": "dev",
    "plugins": {
        "plugin_dir": "./plugins",
    },
    "http": {
        "timeout_seconds": 15.0,
        "follow_redirects": True,
        "user_agent": (
            "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
            "(KHTML, like Gecko) Chrome/124.0.0.0 Safari/537.36"
        ),
    },
    "logging": {
        "level": "INFO",
        "format": None,  # Derived from environment in schema.py
    },
    "cache": {
        "dir": "./.cache/animarr",
        "backend": "diskcache",
        "ttl_seconds": 3600,
    },
    "catalog": {
        "base_url": "https://api.jikan.moe/v4",
        "ttl_seconds": 86_400,
        "search_limit": 25,
    },
    "streaming": {
        "streaming_ttl_seconds": 1200,
        "resolved_url_ttl_seconds": 21_600,
        "delivery_code_ttl_seconds": 86_400,
        "catalog_detail_ttl_seconds": 1200,
        "listing_memo_ttl_seconds": 300,
        "home_feed_ttl_seconds": 21_600,
        "home_feed_max_titles": 60,
        "provider_timeout_seconds": 30.0,
        "extract_concurrency": 10,
    },
    "delivery": {
        "timeout_seconds": 30.0,
        "chunk_size": 65_536,
    },
    "archive": {
        "enabled": False,
        "event_type": "process_queue",
        "queue_ttl_seconds": 604_800,
    },
}
