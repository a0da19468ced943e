"""Find verification codes in message text."""

from __future__ import annotations

import logging
import os
import re
import time
from collections.abc import Mapping

import requests

_log = logging.getLogger(__name__)

MAX_RETRIES = 2
RETRY_DELAY = 0.5
REQUEST_TIMEOUT = 5.0
MAX_CONTENT_BYTES = 3000
MIN_CONTENT_BYTES = 50
MODEL = "gemma3:1b"
PROMPT = (
    "这是一封电子邮件内容，其中可能包含验证码。请只提取并回复邮件中的验证码数字"
    "（通常为4-8位数字），不要有任何其他解释，如果找不到验证码请回复'无法识别': \n\n"
)
DEFAULT_OLLAMA_URL = "http://172.17.0.1:11434/api/generate"

_FLAGS = re.IGNORECASE | re.ASCII
_LABELLED = re.compile(r"(验证码|校验码|确认码|code)[^0-9]{0,10}[: ：]?\s*?(\d{4,8})", _FLAGS)
_LABELLED_FALLBACK = re.compile(
    r"(验证码|verification code|code)[^0-9]{0,15}[: ：]?\s*?(\d{4,8})", _FLAGS
)
_IN_TAG = re.compile(r"<[^>]*>(\d{4,8})</", re.ASCII)
_ANY_CODE = re.compile(r"\b\d{4,8}\b", re.ASCII)


def _first_non_year(content: str) -> str:
    for match in _ANY_CODE.findall(content):
        if len(match) == 4 and "2020" <= match <= "2030":
            continue
        return match
    return ""


def extract_verification_code(content: str) -> str:
    """Find a code by label, then inside an HTML tag, then any 4-8 digit run."""
    match = _LABELLED.search(content)
    if match:
        return match.group(2)
    match = _IN_TAG.search(content)
    if match:
        return match.group(1)
    return _first_non_year(content)


def extract_verification_code_fallback(content: str) -> str:
    """Find a code by label, then any 4-8 digit run that is not a recent year."""
    match = _LABELLED_FALLBACK.search(content)
    if match:
        return match.group(2)
    return _first_non_year(content)


def ollama_api_url(environ: Mapping[str, str] | None = None) -> str:
    """Return the generation endpoint from OLLAMA_API_URL or HOST_ADDRESS."""
    env = os.environ if environ is None else environ
    url = env.get("OLLAMA_API_URL", "")
    if url:
        return url
    host = env.get("HOST_ADDRESS", "")
    if host:
        return f"http://{host}:11434/api/generate"
    return DEFAULT_OLLAMA_URL


def _ask_model(url: str, payload: dict[str, str]) -> requests.Response | None:
    for attempt in range(MAX_RETRIES):
        try:
            return requests.post(url, json=payload, timeout=REQUEST_TIMEOUT)
        except (
            requests.exceptions.MissingSchema,
            requests.exceptions.InvalidSchema,
            requests.exceptions.InvalidURL,
        ) as exc:
            _log.warning("Cannot build model request: %s", exc)
            return None
        except requests.RequestException as exc:
            _log.warning("Model request failed (attempt %d): %s", attempt, exc)
            time.sleep(RETRY_DELAY)
    _log.warning("Model request failed, retries exhausted")
    return None


def extract_code_with_ai(content: str, api_url: str | None = None) -> str:
    """Find a code with the regex rules, else ask the model; '' if none."""
    code = extract_verification_code_fallback(content)
    if code:
        return code

    raw = content.encode("utf-8")
    if len(raw) > MAX_CONTENT_BYTES:
        raw = raw[:MAX_CONTENT_BYTES]
        content = raw.decode("utf-8", errors="replace")
    if len(raw) < MIN_CONTENT_BYTES:
        _log.info("Content too short to hold a code")
        return ""

    url = api_url if api_url is not None else ollama_api_url()
    response = _ask_model(url, {"model": MODEL, "prompt": PROMPT + content})
    if response is None:
        return ""

    try:
        result = response.json()
    except ValueError as exc:
        _log.warning("Cannot decode model response: %s", exc)
        return ""
    if not isinstance(result, dict):
        return ""
    answer = result.get("response") or ""
    if not isinstance(answer, str):
        return ""
    answer = answer.strip()

    if "无法" in answer or "找不到" in answer:
        _log.info("Model found no code")
        return ""
    match = _ANY_CODE.search(answer)
    if match:
        return match.group(0)
    _log.info("No code in model response")
    return ""