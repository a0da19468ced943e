"""Application settings read from environment variables."""

from __future__ import annotations

import os
import re
from collections.abc import Mapping
from dataclasses import dataclass

_INTEGER = re.compile(r"[+-]?[0-9]+")
_TRUE_WORDS = frozenset({"1", "t", "T", "TRUE", "true", "True"})
_FALSE_WORDS = frozenset({"0", "f", "F", "FALSE", "false", "False"})


@dataclass(frozen=True)
class Config:
    """Runtime configuration of the temporary mail service."""

    mail_domain: str = "example.com"
    web_port: int = 8080
    debug_mode: bool = False
    smtp_port: int = 25
    ollama_api_url: str = ""
    redis_url: str = ""


def _parse_int(text: str) -> int:
    """Parse a decimal integer; anything malformed yields 0."""
    if _INTEGER.fullmatch(text):
        return int(text)
    return 0


def _parse_bool(text: str) -> bool:
    """Parse a boolean word; anything unrecognised yields False."""
    if text in _TRUE_WORDS:
        return True
    if text in _FALSE_WORDS:
        return False
    return False


def load_config(environ: Mapping[str, str] | None = None) -> Config:
    """Build a Config from environment variables, falling back to defaults."""
    env = os.environ if environ is None else environ
    return Config(
        mail_domain=env.get("MAIL_DOMAIN", "example.com"),
        web_port=_parse_int(env.get("WEB_PORT", "8080")),
        debug_mode=_parse_bool(env.get("DEBUG_MODE", "false")),
        smtp_port=_parse_int(env.get("SMTP_PORT", "25")),
        ollama_api_url=env.get("OLLAMA_API_URL", ""),
        redis_url=env.get("REDIS_URL", ""),
    )