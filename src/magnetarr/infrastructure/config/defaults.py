"""Hardcoded default configuration values."""

from __future__ import annotations

from typing import Any

DEFAULT_CONFIG: dict[str, Any] = {
    "app_name": "magnetarr",
    "environment": "dev",
    "http": {
        "timeout_seconds": 30.0,
        "user_agent": "Magnetarr/0.1.0",
    },
    "logging": {
        "level": "INFO",
        "format": None,  # Derived from environment in schema.py
    },
    "cache": {
        "dir": "./.cache/magnetarr",
        "ttl_seconds": 3600,
        "search_ttl_seconds": 300,
    },
    "engine": {
        "api_url": "http://localhost:3000/api",
        "min_seeders": 5,
        "min_seeders_fallback": 3,
        "title_match_threshold": 0.3,
        "title_match_threshold_fallback": 0.2,
        "alternatives_limit": 10,
        "candidates_to_try": 3,
        "add_timeout_seconds": 45.0,
        "attempt_delay_seconds": 1.0,
        "stream_cache_ttl_seconds": 300,
    },
}
