"""Helpers that pull subjects, headers and bodies out of raw messages."""

from __future__ import annotations

import base64
import binascii
import logging
import re

_log = logging.getLogger(__name__)

_SUBJECT_B64 = re.compile(r"=\?utf-8\?B\?([a-zA-Z0-9+/=]+)\?=")
_SUBJECT_QP = re.compile(r"=\?utf-8\?Q\?([^?]+)\?=")
_SUBJECT_QP_LOWER = re.compile(r"=\?utf-8\?q\?([^?]+)\?=")
_MULTIPART_BOUNDARY = re.compile(r"Content-Type: multipart/.*boundary=(.+)")
_NON_BASE64 = re.compile(r"[^A-Za-z0-9+/=]")
_QP_ESCAPE = re.compile(r"=([0-9A-F]{2})")
_PART_SEPARATOR = "\r\n\r\n"


class MailParseError(ValueError):
    """Raised when a message does not have the expected structure."""


def _b64decode(text: str) -> str:
    return base64.b64decode(text, validate=True).decode("utf-8", errors="replace")


def decode_quoted_printable(text: str) -> str:
    """Decode quoted-printable escapes; each =XX becomes the code point XX."""
    text = text.replace("=\r\n", "").replace("=\n", "")
    text = text.replace("=3D", "=")
    return _QP_ESCAPE.sub(lambda m: chr(int(m.group(1), 16)), text)


def decode_email_subject(subject: str) -> str:
    """Decode an RFC 2047 UTF-8 encoded subject, or return it unchanged."""
    match = _SUBJECT_B64.search(subject)
    if match:
        try:
            return _b64decode(match.group(1))
        except (binascii.Error, ValueError):
            pass
    for pattern in (_SUBJECT_QP, _SUBJECT_QP_LOWER):
        match = pattern.search(subject)
        if match:
            return decode_quoted_printable(match.group(1).replace("_", " "))
    return subject


def extract_part_content(part: str) -> str:
    """Return what follows the first blank line of a part, or the part itself."""
    _, sep, body = part.partition(_PART_SEPARATOR)
    return body if sep else part


def decode_base64_content(content: str) -> str:
    """Decode base64 text after dropping stray characters; keep it on failure."""
    cleaned = _NON_BASE64.sub("", content)
    try:
        return _b64decode(cleaned)
    except (binascii.Error, ValueError) as exc:
        _log.warning("Base64 decoding failed: %s", exc)
        return content


def clean_html_content(html: str) -> str:
    """Repair leftover encodings and client markers in HTML."""
    for old, new in (
        ("=3D", "="),
        ("=22", '"'),
        ("=27", "'"),
        ("=20", " "),
        ("(MISSING)", ""),
    ):
        html = html.replace(old, new)
    return html


def _decode_part(part: str, content: str) -> str:
    if "Content-Transfer-Encoding: quoted-printable" in part:
        return decode_quoted_printable(content)
    if "Content-Transfer-Encoding: base64" in part:
        return decode_base64_content(content)
    return content


def parse_multipart_mail(data: str) -> tuple[str, str]:
    """Split a multipart message and return its (plain text, HTML) bodies.

    Raises MailParseError when no multipart boundary is declared.
    """
    match = _MULTIPART_BOUNDARY.search(data)
    if not match:
        raise MailParseError("multipart boundary not found")
    boundary = match.group(1).strip("\"' ")
    _log.debug("Found multipart boundary: %s", boundary)

    plain_text = ""
    html_content = ""
    for part in data.split("--" + boundary):
        if "Content-Type: text/plain" in part:
            plain_text = _decode_part(part, extract_part_content(part))
        elif "Content-Type: text/html" in part:
            html_content = _decode_part(part, extract_part_content(part))
            html_content = clean_html_content(html_content)
    return plain_text, html_content


def extract_header_field(data: str, field_name: str) -> str:
    """Return the trimmed value of the first 'Name: value' line, or ''."""
    match = re.search(re.escape(field_name) + r": (.+)", data)
    return match.group(1).strip() if match else ""