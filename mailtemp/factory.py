"""Choose the mail store from configuration."""

from __future__ import annotations

import logging

import redis

from mailtemp.config import Config
from mailtemp.redis_storage import RedisStorage
from mailtemp.storage import EmailStorage, MemoryStorage

_log = logging.getLogger(__name__)


def create_storage(config: Config) -> EmailStorage:
    """Return a Redis store when one is configured and reachable, else memory."""
    if config.redis_url:
        try:
            storage = RedisStorage.from_url(config.redis_url)
        except (ValueError, redis.RedisError) as exc:
            _log.warning("Redis storage unavailable, falling back to memory: %s", exc)
        else:
            _log.info("Using Redis storage at %s", config.redis_url)
            return storage
    _log.info("Using in-memory storage")
    return MemoryStorage()