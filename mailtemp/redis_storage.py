"""Mail store backed by Redis."""

from __future__ import annotations

import json
from datetime import timedelta
from typing import Any

import redis

from mailtemp.storage import EmailMessage

EMAIL_KEY_PREFIX = "email:"
ACTIVE_KEY_PREFIX = "active:"
DEFAULT_EXPIRATION = timedelta(hours=24)


def _text(value: Any) -> str:
    return value.decode() if isinstance(value, bytes) else value


def _decode_messages(raw: Any) -> list[EmailMessage]:
    items = json.loads(raw)
    if items is None:
        return []
    return [EmailMessage.from_dict(item or {}) for item in items]


class RedisStorage:
    """Store messages as JSON lists and active boxes as keys, all expiring after a day."""

    def __init__(self, client: Any) -> None:
        self._client = client

    @classmethod
    def from_url(cls, url: str) -> RedisStorage:
        """Connect to the Redis server at url and check that it answers.

        Raises ValueError for a malformed URL and redis.RedisError when the
        server cannot be reached.
        """
        client = redis.Redis.from_url(url, decode_responses=True)
        try:
            client.ping()
        except Exception:
            client.close()
            raise
        return cls(client)

    def save_email(self, username: str, message: EmailMessage) -> None:
        key = EMAIL_KEY_PREFIX + username
        raw = self._client.get(key)
        messages = [] if raw is None else _decode_messages(raw)
        messages.append(message)
        payload = json.dumps([m.to_dict() for m in messages], ensure_ascii=False)
        self._client.set(key, payload, ex=DEFAULT_EXPIRATION)

    def get_emails(self, username: str) -> list[EmailMessage]:
        raw = self._client.get(EMAIL_KEY_PREFIX + username)
        if raw is None:
            return []
        return _decode_messages(raw)

    def clear_emails(self, username: str) -> None:
        self._client.delete(EMAIL_KEY_PREFIX + username)

    def add_active_email(self, username: str) -> None:
        self._client.set(ACTIVE_KEY_PREFIX + username, "1", ex=DEFAULT_EXPIRATION)

    def is_active_email(self, username: str) -> bool:
        return self._client.exists(ACTIVE_KEY_PREFIX + username) > 0

    def get_active_emails(self) -> list[str]:
        return [
            _text(key)[len(ACTIVE_KEY_PREFIX):]
            for key in self._client.scan_iter(match=ACTIVE_KEY_PREFIX + "*")
        ]

    def delete_active_email(self, username: str) -> None:
        self._client.delete(ACTIVE_KEY_PREFIX + username)

    def close(self) -> None:
        self._client.close()