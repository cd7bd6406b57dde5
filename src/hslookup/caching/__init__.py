"""Caching layer: optional Redis cache for AI answers and FX quotes."""

from hslookup.caching.redis_client import RedisClient, cached_call, get_redis_client

__all__ = ["RedisClient", "cached_call", "get_redis_client"]
