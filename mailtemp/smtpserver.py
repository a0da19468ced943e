"""A small SMTP server that turns incoming messages into Mail records."""

from __future__ import annotations

import logging
import queue
import re
import socketserver
import threading
from collections.abc import Iterator
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from mailtemp.codes import extract_code_with_ai
from mailtemp.generator import EmailGenerator
from mailtemp.mailparse import (
    MailParseError,
    clean_html_content,
    decode_base64_content,
    decode_email_subject,
    decode_quoted_printable,
    extract_header_field,
    parse_multipart_mail,
)

_log = logging.getLogger(__name__)

MAX_MESSAGE_BYTES = 1024 * 1024
MAX_RECIPIENTS = 50
IO_TIMEOUT = 10.0
QUEUE_SIZE = 100
_POLL_INTERVAL = 0.2
_PART_SEPARATOR = "\r\n\r\n"
_HTML_SECTION = re.compile(
    r"Content-Type: text/html[\s\S]*?\r\n\r\n([\s\S]+?)(?:\r\n-+|\Z)"
)


def _now() -> datetime:
    return datetime.now().astimezone()


def _rfc3339(moment: datetime) -> str:
    text = moment.replace(microsecond=0).isoformat()
    offset = moment.utcoffset()
    if offset is not None and not offset:
        return text[:-6] + "Z"
    return text


@dataclass
class Mail:
    """A message received for one of the managed mailboxes."""

    sender: str = ""
    to: str = ""
    subject: str = ""
    body: str = ""
    html_content: str = ""
    code: str = ""
    timestamp: datetime = field(default_factory=_now)

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
        if self.code:
            data["code"] = self.code
        data["timestamp"] = _rfc3339(self.timestamp)
        return data


def _extract_bodies(data: str) -> tuple[str, str]:
    """Return the (plain text, HTML) bodies found in a raw message."""
    content_type = extract_header_field(data, "Content-Type")
    encoding = extract_header_field(data, "Content-Transfer-Encoding")
    _log.debug("Content-Type: %s, Content-Transfer-Encoding: %s", content_type, encoding)

    if "multipart/" in content_type:
        try:
            return parse_multipart_mail(data)
        except MailParseError as exc:
            _log.warning("Cannot parse multipart message: %s", exc)
            return "", ""

    if "text/html" in content_type:
        _, sep, body = data.partition(_PART_SEPARATOR)
        if not sep:
            return "", ""
        if "base64" in encoding:
            body = decode_base64_content(body)
        elif "quoted-printable" in encoding:
            body = decode_quoted_printable(body)
        return "", clean_html_content(body)

    match = _HTML_SECTION.search(data)
    if not match:
        return "", ""
    html = match.group(1)
    if "Content-Transfer-Encoding: base64" in data:
        html = decode_base64_content(html)
    elif "Content-Transfer-Encoding: quoted-printable" in data:
        html = decode_quoted_printable(html)
    return "", clean_html_content(html)


class SMTPSession:
    """State of one SMTP transaction and the processing of its message."""

    def __init__(
        self,
        generator: EmailGenerator,
        outbox: queue.Queue[Mail],
        api_url: str | None = None,
    ) -> None:
        self._generator = generator
        self._outbox = outbox
        self.api_url = api_url
        self.sender = ""
        self.recipients: list[str] = []
        self.current_mail: Mail | None = None

    def mail(self, sender: str) -> None:
        """Start a transaction from sender."""
        self.sender = sender
        self.current_mail = Mail(sender=sender)

    def rcpt(self, recipient: str) -> None:
        """Add a recipient; every address is accepted.

        Raises RuntimeError when no transaction has been started.
        """
        if self.current_mail is None:
            raise RuntimeError("MAIL must precede RCPT")
        self.recipients.append(recipient)
        self.current_mail.to = recipient

    def data(self, raw: bytes | str) -> Mail | None:
        """Process a message body; queue it if its first recipient is managed.

        Returns the processed Mail, or None when there are no recipients.
        """
        mail = self.current_mail
        if not self.recipients or mail is None:
            return None
        text = raw.decode("utf-8", errors="replace") if isinstance(raw, (bytes, bytearray)) else raw

        mail.to = self.recipients[0]
        mail.body = text

        raw_subject = extract_header_field(text, "Subject")
        if raw_subject:
            mail.subject = decode_email_subject(raw_subject)
            _log.debug("Subject %r decoded as %r", raw_subject, mail.subject)

        plain_text, html_content = _extract_bodies(text)
        if html_content:
            mail.html_content = html_content

        mail.code = self._find_code(text, plain_text, html_content)
        if mail.code:
            _log.info("Extracted verification code: %s", mail.code)
        else:
            _log.info("No verification code found in message")

        if self._generator.is_valid_email(mail.to):
            self._outbox.put(mail)
        return mail

    def _find_code(self, data: str, plain_text: str, html_content: str) -> str:
        if not (plain_text or html_content):
            return extract_code_with_ai(data, self.api_url)
        code = extract_code_with_ai(html_content, self.api_url) if html_content else ""
        if not code and plain_text:
            code = extract_code_with_ai(plain_text, self.api_url)
        if not code:
            code = extract_code_with_ai(data, self.api_url)
        return code

    def reset(self) -> None:
        """Forget the current transaction."""
        self.sender = ""
        self.recipients = []
        self.current_mail = None


def _parse_path(arg: str, prefix: str) -> str | None:
    """Return the address of 'FROM:<addr>' or 'TO:<addr>', or None if malformed."""
    if not arg.upper().startswith(prefix):
        return None
    rest = arg[len(prefix):].strip()
    if rest.startswith("<"):
        end = rest.find(">")
        return rest[1:end] if end >= 0 else None
    return rest.split(" ", 1)[0] if rest else None


class _SMTPHandler(socketserver.StreamRequestHandler):
    timeout = IO_TIMEOUT
    disable_nagle_algorithm = True
    server: _TCPServer

    def setup(self) -> None:
        super().setup()
        owner = self.server.owner
        self._owner = owner
        self._session = SMTPSession(owner.generator, owner._outbox, owner.api_url)
        self._greeted = False

    def handle(self) -> None:
        try:
            self._reply(220, f"{self._owner.domain} ESMTP Service Ready")
            while True:
                line = self._read_line()
                if line is None or not self._dispatch(line):
                    break
        except OSError as exc:
            _log.debug("SMTP connection ended: %s", exc)

    def _read_line(self) -> str | None:
        raw = self.rfile.readline()
        if not raw:
            return None
        return raw.decode("utf-8", errors="replace").rstrip("\r\n")

    def _reply(self, code: int, text: str) -> None:
        self.wfile.write(f"{code} {text}\r\n".encode())

    def _reply_lines(self, code: int, lines: list[str]) -> None:
        *head, last = lines
        out = "".join(f"{code}-{line}\r\n" for line in head) + f"{code} {last}\r\n"
        self.wfile.write(out.encode())

    def _dispatch(self, line: str) -> bool:
        verb, _, arg = line.partition(" ")
        verb = verb.upper()
        arg = arg.strip()
        session = self._session
        match verb:
            case "HELO" | "EHLO":
                if not arg:
                    self._reply(501, f"Domain/address argument required for {verb}")
                    return True
                self._greeted = True
                session.reset()
                if verb == "HELO":
                    self._reply(250, f"Hello {arg}")
                else:
                    self._reply_lines(
                        250,
                        [
                            f"Hello {arg}",
                            "PIPELINING",
                            "8BITMIME",
                            "AUTH PLAIN",
                            f"SIZE {self._owner.max_message_bytes}",
                        ],
                    )
            case "MAIL":
                if not self._greeted:
                    self._reply(502, "Please introduce yourself first.")
                elif session.current_mail is not None:
                    self._reply(503, "Sender already specified")
                elif (sender := _parse_path(arg, "FROM:")) is None:
                    self._reply(501, "Was expecting MAIL arg syntax of FROM:<address>")
                else:
                    session.mail(sender)
                    self._reply(250, f"Roger, accepting mail from <{sender}>")
            case "RCPT":
                if session.current_mail is None:
                    self._reply(502, "Missing MAIL FROM command.")
                elif len(session.recipients) >= self._owner.max_recipients:
                    self._reply(
                        552, f"Maximum limit of {self._owner.max_recipients} recipients reached"
                    )
                elif (recipient := _parse_path(arg, "TO:")) is None:
                    self._reply(501, "Was expecting RCPT arg syntax of TO:<address>")
                else:
                    session.rcpt(recipient)
                    self._reply(250, f"I'll make sure <{recipient}> gets this")
            case "DATA":
                if not session.recipients:
                    self._reply(502, "Missing RCPT TO command.")
                    return True
                self._reply(354, "Go ahead. End your data with <CR><LF>.<CR><LF>")
                return self._receive_data()
            case "RSET":
                session.reset()
                self._reply(250, "Session reset")
            case "NOOP":
                self._reply(250, "OK")
            case "VRFY":
                self._reply(252, "Cannot VRFY user, but will accept message")
            case "AUTH":
                return self._authenticate(arg)
            case "QUIT":
                self._reply(221, "Bye")
                return False
            case _:
                self._reply(500, "Syntax errors, unrecognized command")
        return True

    def _authenticate(self, arg: str) -> bool:
        if not self._greeted:
            self._reply(502, "Please introduce yourself first.")
            return True
        mechanism, _, initial = arg.partition(" ")
        if mechanism.upper() != "PLAIN":
            self._reply(504, "Unsupported authentication mechanism")
            return True
        if not initial.strip():
            self._reply(334, "")
            if self._read_line() is None:
                return False
        self._reply(235, "Authentication succeeded")
        return True

    def _receive_data(self) -> bool:
        limit = self._owner.max_message_bytes
        chunks: list[bytes] = []
        size = 0
        too_big = False
        while True:
            line = self.rfile.readline()
            if not line:
                return False
            if line in (b".\r\n", b".\n"):
                break
            if line.startswith(b"."):
                line = line[1:]
            size += len(line)
            if size > limit:
                too_big = True
                chunks.clear()
            elif not too_big:
                chunks.append(line)

        try:
            if too_big:
                self._reply(552, "Maximum message size exceeded")
            else:
                self._session.data(b"".join(chunks))
                self._reply(250, "OK: queued")
        finally:
            self._session.reset()
        return True


class _TCPServer(socketserver.ThreadingMixIn, socketserver.TCPServer):
    allow_reuse_address = True
    daemon_threads = True
    block_on_close = False
    timeout = _POLL_INTERVAL

    def __init__(self, address: tuple[str, int], owner: SMTPServer) -> None:
        self.owner = owner
        super().__init__(address, _SMTPHandler)


class SMTPServer:
    """Accepts mail for generated mailboxes and queues it for delivery."""

    def __init__(
        self,
        domain: str,
        port: int,
        generator: EmailGenerator,
        host: str = "",
        api_url: str | None = None,
        max_message_bytes: int = MAX_MESSAGE_BYTES,
        max_recipients: int = MAX_RECIPIENTS,
    ) -> None:
        self.domain = domain
        self.port = port
        self.host = host
        self.generator = generator
        self.api_url = api_url
        self.max_message_bytes = max_message_bytes
        self.max_recipients = max_recipients
        self.ready = threading.Event()
        self.address: tuple[Any, ...] | None = None
        self._outbox: queue.Queue[Mail] = queue.Queue(QUEUE_SIZE)
        self._stopping = threading.Event()

    def start(self) -> None:
        """Listen and serve until stop() is called.

        Raises OSError when the address cannot be bound.
        """
        _log.info("SMTP server starting on port %d", self.port)
        try:
            tcp = _TCPServer((self.host, self.port), self)
        except OSError as exc:
            _log.error("SMTP server failed to start: %s", exc)
            if isinstance(exc, PermissionError) or "permission denied" in str(exc).lower():
                _log.error(
                    "Ports below 1024 need elevated privileges; try another port such as 2525"
                )
            raise
        self.address = tcp.server_address[:2]
        self.ready.set()
        with tcp:
            while not self._stopping.is_set():
                tcp.handle_request()

    def stop(self) -> None:
        """Stop accepting connections and end the message stream."""
        self._stopping.set()

    def messages(self) -> Iterator[Mail]:
        """Yield received mail as it arrives, until the server is stopped."""
        while True:
            try:
                mail = self._outbox.get(timeout=_POLL_INTERVAL)
            except queue.Empty:
                if self._stopping.is_set():
                    return
                continue
            yield mail