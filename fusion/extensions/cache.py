"""Centralized cache extension."""

from __future__ import annotations

import os
from typing import Any, Dict

from flask_caching import Cache

cache = Cache()


def init_cache(app) -> None:
    """Initialize the cache backing store based on environment configuration."""
    redis_url = os.getenv("REDIS_URL")
    config: Dict[str, Any] = {
        "CACHE_DEFAULT_TIMEOUT": int(os.getenv("CACHE_DEFAULT_TIMEOUT", "120")),
        "CACHE_KEY_PREFIX": os.getenv("CACHE_KEY_PREFIX", "fusion"),
        "CACHE_TYPE": "RedisCache" if redis_url else "SimpleCache",
    }
    if redis_url:
        config["CACHE_REDIS_URL"] = redis_url
        config["CACHE_IGNORE_ERRORS"] = True

    for key, value in config.items():
        app.config.setdefault(key, value)

    cache.init_app(app)
