"""
Redis cache-aside for read-side aggregates (dashboard).

Keys look like {prefix}:{module}:{key}. Whenever Redis is disabled or
unreachable every call turns into a miss, so callers always fall back to SQL.
"""

import json
import logging
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Callable, Optional

import redis
from redis.exceptions import RedisError
from flask import Flask, current_app

logger = logging.getLogger(__name__)

SCAN_BATCH = 200


class _CacheEncoder(json.JSONEncoder):
    """JSON encoder that keeps Decimals exact and writes dates as ISO strings."""

    def default(self, obj):
        if isinstance(obj, Decimal):
            return {'__decimal__': str(obj)}
        if isinstance(obj, (date, datetime)):
            return obj.isoformat()
        return super().default(obj)


def _decode_hook(obj):
    if '__decimal__' in obj:
        return Decimal(obj['__decimal__'])
    return obj


class CacheService:
    """Thin wrapper over a Redis client with graceful degradation."""

    def __init__(self, url: Optional[str] = None, enabled: bool = True, prefix: str = 'pos', default_ttl: int = 60):
        self.prefix = prefix
        self.default_ttl = default_ttl
        self.client: Optional[redis.Redis] = None

        if not enabled or not url:
            logger.info("[CACHE] Cache is DISABLED via config")
            return

        try:
            client = redis.from_url(
                url,
                decode_responses=True,
                socket_connect_timeout=3,
                socket_timeout=3,
                health_check_interval=30
            )
            client.ping()
        except RedisError as e:
            logger.warning(f"[CACHE] Redis unreachable at {url}: {e}. Cache DISABLED.")
            return

        self.client = client
        logger.info(f"[CACHE] Redis connected: {url}")

    @classmethod
    def from_config(cls, config) -> 'CacheService':
        return cls(
            url=config.get('REDIS_URL'),
            enabled=config.get('CACHE_ENABLED', True),
            prefix=config.get('CACHE_KEY_PREFIX', 'pos'),
            default_ttl=config.get('CACHE_DEFAULT_TTL', 60),
        )

    @property
    def enabled(self) -> bool:
        return self.client is not None

    def is_available(self) -> bool:
        if self.client is None:
            return False
        try:
            return bool(self.client.ping())
        except RedisError:
            return False

    def key(self, module: str, key: str) -> str:
        return f"{self.prefix}:{module}:{key}"

    def get(self, module: str, key: str) -> Optional[Any]:
        if self.client is None:
            return None
        try:
            raw = self.client.get(self.key(module, key))
        except RedisError as e:
            logger.warning(f"[CACHE] GET {module}:{key} failed: {e}")
            return None
        if raw is None:
            return None
        try:
            return json.loads(raw, object_hook=_decode_hook)
        except ValueError:
            logger.warning(f"[CACHE] Dropping undecodable entry {module}:{key}")
            return None

    def set(self, module: str, key: str, value: Any, ttl: Optional[int] = None) -> bool:
        if self.client is None:
            return False
        try:
            payload = json.dumps(value, cls=_CacheEncoder)
            self.client.setex(self.key(module, key), ttl or self.default_ttl, payload)
        except (RedisError, TypeError) as e:
            logger.warning(f"[CACHE] SET {module}:{key} failed: {e}")
            return False
        return True

    def delete_pattern(self, module: str, pattern: str = '*') -> int:
        """Delete every key of a module matching a glob pattern. Returns the count."""
        if self.client is None:
            return 0
        full_pattern = self.key(module, pattern)
        deleted = 0
        batch = []
        try:
            for cache_key in self.client.scan_iter(match=full_pattern, count=SCAN_BATCH):
                batch.append(cache_key)
                if len(batch) >= SCAN_BATCH:
                    deleted += self.client.delete(*batch)
                    batch = []
            if batch:
                deleted += self.client.delete(*batch)
        except RedisError as e:
            logger.warning(f"[CACHE] Invalidate {full_pattern} failed: {e}")
            return deleted

        if deleted:
            logger.info(f"[CACHE] INVALIDATE: {full_pattern} ({deleted} keys)")
        return deleted

    def memoize(self, module: str, key: str, loader: Callable[[], Any], ttl: Optional[int] = None) -> Any:
        """Return the cached value, or call loader() and cache its result."""
        cached = self.get(module, key)
        if cached is not None:
            return cached
        value = loader()
        self.set(module, key, value, ttl)
        return value

    def invalidate_module(self, module: str) -> int:
        return self.delete_pattern(module)


def init_cache(app: Flask) -> CacheService:
    """Create the cache service and attach it to the app."""
    cache = CacheService.from_config(app.config)
    app.extensions['cache'] = cache
    return cache


def get_cache(app: Optional[Flask] = None) -> CacheService:
    app = app or current_app
    cache = app.extensions.get('cache')
    if cache is None:
        raise RuntimeError("Cache not initialized.")
    return cache


def invalidate_dashboard() -> None:
    """Drop cached dashboard aggregates after a write. Never fails the caller."""
    try:
        get_cache().invalidate_module('dashboard')
    except RuntimeError as e:
        logger.warning(f"[CACHE] Dashboard invalidation skipped: {e}")
