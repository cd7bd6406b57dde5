"""Redis caching layer for AI answers and FX quotes.

Cache Keys:
- hslookup:explain:{payload_hash} → LLM explanation text (TTL: 24h)
- hslookup:assist:{payload_hash} → search-assist keywords (TTL: 24h)
- hslookup:fx:{payload_hash} → USD/VND quote (TTL: 1h)

Redis is optional. When it is disabled or unreachable every lookup is a miss
and the caller computes the value directly.
"""

from __future__ import annotations

import hashlib
import json
import logging
from typing import Any, Callable, Dict, Optional, TypeVar

import redis

from hslookup import config

logger = logging.getLogger(__name__)

KEY_PREFIX = "hslookup"
DEFAULT_TTL = 86400

T = TypeVar("T")


class RedisClient:
    """JSON get/set over a Redis connection that tolerates outages."""

    def __init__(self, url: Optional[str] = None):
        self.url = url or config.redis_url()
        self._client = redis.from_url(
            self.url,
            decode_responses=True,
            socket_keepalive=True,
            socket_connect_timeout=2,
            socket_timeout=2,
            retry_on_timeout=False,
        )

    @staticmethod
    def compute_key(namespace: str, payload: Dict[str, Any]) -> str:
        """Stable cache key for ``payload`` under ``namespace``."""
        canonical = json.dumps(payload, sort_keys=True, ensure_ascii=False)
        digest = hashlib.sha256(canonical.encode("utf-8")).hexdigest()
        return f"{KEY_PREFIX}:{namespace}:{digest}"

    def get_json(self, key: str) -> Optional[Any]:
        """Cached value or None on miss, decode error or connection trouble."""
        try:
            data = self._client.get(key)
        except redis.exceptions.RedisError as exc:
            logger.warning("Redis GET %s failed: %s", key, exc)
            return None
        if not data:
            return None
        try:
            return json.loads(data)
        except (json.JSONDecodeError, TypeError):
            return None

    def set_json(self, key: str, value: Any, ttl: int = DEFAULT_TTL) -> None:
        try:
            self._client.setex(key, ttl, json.dumps(value, ensure_ascii=False))
        except redis.exceptions.RedisError as exc:
            logger.warning("Redis SETEX %s failed: %s", key, exc)

    def ping(self) -> bool:
        """True when the server answers PING within the socket timeout."""
        try:
            return bool(self._client.ping())
        except redis.exceptions.RedisError:
            return False


_redis_client: Optional[RedisClient] = None


def get_redis_client() -> RedisClient:
    """Get singleton Redis client."""
    global _redis_client
    if _redis_client is None:
        _redis_client = RedisClient()
    return _redis_client


def reset_redis_client() -> None:
    global _redis_client
    _redis_client = None


def cached_call(
    namespace: str,
    payload: Dict[str, Any],
    compute: Callable[[], T],
    *,
    ttl: int = DEFAULT_TTL,
    should_cache: Optional[Callable[[T], bool]] = None,
) -> T:
    """Return the cached value for ``payload`` or compute and store it.

    Flow:
        1. Skip the cache entirely when ``HSLOOKUP_REDIS_CACHE`` is off
        2. Fall back to ``compute()`` when Redis does not answer a ping
        3. Return a hit, or compute, store (if ``should_cache``) and return
    """
    if not config.redis_cache_enabled():
        return compute()

    client = get_redis_client()
    if not client.ping():
        logger.warning("Redis unavailable, computing %s without cache", namespace)
        return compute()

    key = client.compute_key(namespace, payload)
    cached = client.get_json(key)
    if cached is not None:
        logger.info("Cache HIT %s", key[:32])
        return cached

    logger.info("Cache MISS %s", key[:32])
    value = compute()
    if should_cache is None or should_cache(value):
        client.set_json(key, value, ttl=ttl)
    return value
