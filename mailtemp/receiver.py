"""Storage of received mail and retrieval by mailbox address."""

from __future__ import annotations

import logging
import re
import threading
from datetime import datetime

import redis

from mailtemp.config import Config
from mailtemp.generator import EmailGenerator, username_of
from mailtemp.smtpserver import Mail, SMTPServer
from mailtemp.storage import EmailMessage, EmailStorage

_log = logging.getLogger(__name__)

DEFAULT_SMTP_PORT = 25
_STORAGE_ERRORS = (redis.RedisError, OSError, ValueError)
_RFC3339 = re.compile(
    r"\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}(?:\.\d+)?(?:Z|[+-]\d{2}:\d{2})", re.ASCII
)


def _parse_timestamp(text: str) -> datetime:
    """Parse an RFC 3339 timestamp; the current time if it is malformed."""
    if _RFC3339.fullmatch(text):
        try:
            return datetime.fromisoformat(text[:-1] + "+00:00" if text.endswith("Z") else text)
        except ValueError:
            pass
    return datetime.now().astimezone()


class EmailReceiver:
    """Runs the SMTP server and files what it receives in the store."""

    def __init__(self, config: Config, generator: EmailGenerator, storage: EmailStorage) -> None:
        self.config = config
        self.generator = generator
        self._storage = storage
        self.smtp_server: SMTPServer | None = None

    def connect(self) -> None:
        """Start the SMTP server in the background."""
        port = self.config.smtp_port if self.config.smtp_port > 0 else DEFAULT_SMTP_PORT
        server = SMTPServer(
            self.config.mail_domain,
            port,
            self.generator,
            api_url=self.config.ollama_api_url or None,
        )
        self.smtp_server = server
        threading.Thread(target=self._serve, args=(server,), name="smtp-server", daemon=True).start()

    @staticmethod
    def _serve(server: SMTPServer) -> None:
        try:
            server.start()
        except OSError as exc:
            _log.error("SMTP server failed to start: %s", exc)

    def close(self) -> None:
        """Stop the SMTP server."""
        if self.smtp_server is not None:
            self.smtp_server.stop()

    def start_listening(self) -> None:
        """Store incoming mail in the background.

        Raises RuntimeError when connect() has not been called.
        """
        server = self.smtp_server
        if server is None:
            raise RuntimeError("connect() must be called before start_listening()")
        threading.Thread(
            target=self._listen, args=(server,), name="mail-listener", daemon=True
        ).start()

    def _listen(self, server: SMTPServer) -> None:
        for mail in server.messages():
            self.handle_mail(mail)

    def handle_mail(self, mail: Mail) -> None:
        """Save one received mail under its recipient's mailbox."""
        message = EmailMessage.from_dict(mail.to_dict())
        try:
            self._storage.save_email(username_of(mail.to), message)
        except _STORAGE_ERRORS as exc:
            _log.warning("Failed to save mail: %s", exc)
        else:
            _log.info("New mail: from=%s to=%s subject=%s", mail.sender, mail.to, mail.subject)

    def get_emails(self, address: str) -> list[Mail]:
        """Return all mail stored for address; empty if the store fails."""
        try:
            messages = self._storage.get_emails(username_of(address))
        except _STORAGE_ERRORS as exc:
            _log.warning("Failed to read mail: %s", exc)
            return []
        return [
            Mail(
                sender=message.sender,
                to=message.to,
                subject=message.subject,
                body=message.body,
                html_content=message.html_content,
                code=message.code,
                timestamp=_parse_timestamp(message.timestamp),
            )
            for message in messages
        ]

    def clear_emails(self, address: str) -> None:
        """Remove all mail stored for address."""
        try:
            self._storage.clear_emails(username_of(address))
        except _STORAGE_ERRORS as exc:
            _log.warning("Failed to clear mail: %s", exc)