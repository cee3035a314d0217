"""
Redis cache for dashboard aggregates.

Values are JSON documents stored under ``analytics:<branch>:<range>`` keys.
Every helper fails open: without Redis the wrapped call simply runs.
"""

import json
import logging
from functools import wraps
from typing import Any, Callable, Optional

from .rate_limiter import get_redis_client

logger = logging.getLogger(__name__)

ANALYTICS_PREFIX = "analytics"
DEFAULT_TTL_SECONDS = 300


def _redis():
    try:
        return get_redis_client()
    except Exception as e:
        logger.debug(f"⚠️ Redis cache unavailable: {e}")
        return None


def read_json(key: str) -> Optional[Any]:
    client = _redis()
    if client is None:
        return None
    try:
        raw = client.get(key)
    except Exception as e:
        logger.error(f"❌ Cache read failed for {key}: {e}")
        return None
    if not raw:
        return None
    logger.debug(f"✅ Cache hit {key}")
    return json.loads(raw)


def write_json(key: str, value: Any, ttl: int = DEFAULT_TTL_SECONDS) -> bool:
    client = _redis()
    if client is None:
        return False
    try:
        client.setex(key, ttl, json.dumps(value, default=str))
    except Exception as e:
        logger.error(f"❌ Cache write failed for {key}: {e}")
        return False
    return True


def delete_prefix(prefix: str) -> int:
    """Drop every key under ``prefix:``; returns how many were removed"""
    client = _redis()
    if client is None:
        return 0
    try:
        keys = list(client.scan_iter(match=f"{prefix}:*"))
        deleted = client.delete(*keys) if keys else 0
    except Exception as e:
        logger.error(f"❌ Cache purge failed for {prefix}: {e}")
        return 0
    if deleted:
        logger.info(f"🧹 Purged {deleted} cached {prefix} entries")
    return deleted


def cached(key_builder: Callable[..., str], ttl: int = DEFAULT_TTL_SECONDS):
    """Memoize a method's JSON result in Redis under ``key_builder(*args, **kwargs)``"""

    def decorator(func):
        @wraps(func)
        def wrapper(*args, **kwargs):
            key = key_builder(*args, **kwargs)
            hit = read_json(key)
            if hit is not None:
                return hit
            result = func(*args, **kwargs)
            if result is not None:
                write_json(key, result, ttl)
            return result

        return wrapper

    return decorator


def invalidate_analytics_cache() -> int:
    """Called after payments and manual clears so dashboards recompute"""
    return delete_prefix(ANALYTICS_PREFIX)
