"""Creation and bookkeeping of temporary mailbox addresses."""

from __future__ import annotations

import logging
import secrets

import redis

from mailtemp.storage import EmailStorage

_log = logging.getLogger(__name__)

# Failures a store may report; they are logged and turned into safe defaults.
_STORAGE_ERRORS = (redis.RedisError, OSError, ValueError)


def username_of(address: str) -> str:
    """Return the part of address before the first '@', or '' if there is none."""
    local, sep, _ = address.partition("@")
    return local if sep else ""


def generate_random_string(length: int) -> str:
    """Return a random hex string built from length // 2 random bytes."""
    size = length // 2
    try:
        return secrets.token_hex(size)
    except (OSError, NotImplementedError):
        return f"temp{size}"


class EmailGenerator:
    """Hands out random addresses on a domain and tracks which are active."""

    def __init__(self, domain: str, storage: EmailStorage) -> None:
        self.domain = domain
        self._storage = storage

    def generate_email(self) -> str:
        """Create a new random address and mark it active."""
        username = generate_random_string(10)
        try:
            self._storage.add_active_email(username)
        except _STORAGE_ERRORS as exc:
            _log.warning("Failed to register active mailbox: %s", exc)
        return f"{username}@{self.domain}"

    def is_valid_email(self, address: str) -> bool:
        """Tell whether address belongs to an active mailbox."""
        try:
            return self._storage.is_active_email(username_of(address))
        except _STORAGE_ERRORS as exc:
            _log.warning("Failed to check mailbox: %s", exc)
            return False

    def active_emails(self) -> list[str]:
        """Return the full addresses of all active mailboxes."""
        try:
            usernames = self._storage.get_active_emails()
        except _STORAGE_ERRORS as exc:
            _log.warning("Failed to list active mailboxes: %s", exc)
            return []
        return [f"{username}@{self.domain}" for username in usernames]

    def delete_email(self, address: str) -> bool:
        """Deactivate the mailbox of address; True if it was active."""
        username = username_of(address)
        try:
            if not self._storage.is_active_email(username):
                return False
            self._storage.delete_active_email(username)
        except _STORAGE_ERRORS as exc:
            _log.warning("Failed to delete mailbox: %s", exc)
            return False
        return True