"""Message model, the storage interface and an in-memory store."""

from __future__ import annotations

import threading
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, Protocol


@dataclass
class EmailMessage:
    """A stored e-mail message."""

    sender: str = ""
    to: str = ""
    subject: str = ""
    body: str = ""
    html_content: str = ""
    timestamp: str = ""
    code: str = ""

    def to_dict(self) -> dict[str, str]:
        """Return the JSON form; empty htmlContent and code are omitted."""
        data = {
            "from": self.sender,
            "to": self.to,
            "subject": self.subject,
            "body": self.body,
        }
        if self.html_content:
            data["htmlContent"] = self.html_content
        data["timestamp"] = self.timestamp
        if self.code:
            data["code"] = self.code
        return data

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> EmailMessage:
        """Build a message from its JSON form; missing keys become empty."""
        return cls(
            sender=data.get("from") or "",
            to=data.get("to") or "",
            subject=data.get("subject") or "",
            body=data.get("body") or "",
            html_content=data.get("htmlContent") or "",
            timestamp=data.get("timestamp") or "",
            code=data.get("code") or "",
        )


class EmailStorage(Protocol):
    """What the service needs from a mail store."""

    def save_email(self, username: str, message: EmailMessage) -> None: ...

    def get_emails(self, username: str) -> list[EmailMessage]: ...

    def clear_emails(self, username: str) -> None: ...

    def add_active_email(self, username: str) -> None: ...

    def is_active_email(self, username: str) -> bool: ...

    def get_active_emails(self) -> list[str]: ...

    def delete_active_email(self, username: str) -> None: ...

    def close(self) -> None: ...


class MemoryStorage:
    """Thread-safe store that keeps everything in process memory."""

    def __init__(self) -> None:
        self._emails: dict[str, list[EmailMessage]] = {}
        self._active: dict[str, bool] = {}
        self._lock = threading.Lock()

    def save_email(self, username: str, message: EmailMessage) -> None:
        with self._lock:
            self._emails.setdefault(username, []).append(message)

    def get_emails(self, username: str) -> list[EmailMessage]:
        with self._lock:
            return list(self._emails.get(username, ()))

    def clear_emails(self, username: str) -> None:
        with self._lock:
            self._emails.pop(username, None)

    def add_active_email(self, username: str) -> None:
        with self._lock:
            self._active[username] = True

    def is_active_email(self, username: str) -> bool:
        with self._lock:
            return self._active.get(username, False)

    def get_active_emails(self) -> list[str]:
        with self._lock:
            return list(self._active)

    def delete_active_email(self, username: str) -> None:
        with self._lock:
            self._active.pop(username, None)

    def close(self) -> None:
        """Release everything the store holds."""
        with self._lock:
            self._emails.clear()
            self._active.clear()