from __future__ import annotations

import asyncio
import logging
import random
import re
import string
import time
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import date
from typing import Any, Dict, Optional
from urllib.parse import quote

import requests
from tenacity import retry, retry_if_exception, stop_after_attempt, wait_exponential

logger = logging.getLogger(__name__)

_DOI_PREFIXES = (
    "https://doi.org/",
    "http://doi.org/",
    "https://dx.doi.org/",
    "http://dx.doi.org/",
    "doi:",
)
_DATE_RE = re.compile(r"^\s*(\d{4})(?:-(\d{1,2})(?:-(\d{1,2}))?)?")
_BASE36 = string.digits + string.ascii_lowercase


def _to_base36(value: int) -> str:
    if value == 0:
        return "0"
    out = []
    while value:
        value, rem = divmod(value, 36)
        out.append(_BASE36[rem])
    return "".join(reversed(out))


def generate_id() -> str:
    """Synthesize an identifier for records whose source has no stable id."""
    suffix = "".join(random.choices(_BASE36, k=11))
    return _to_base36(int(time.time() * 1000)) + suffix


def normalize_doi(raw: Optional[str]) -> Optional[str]:
    """Strip resolver prefixes so DOIs compare equal regardless of how a source spells them."""
    if not raw:
        return None
    s = str(raw).strip()
    lowered = s.lower()
    for prefix in _DOI_PREFIXES:
        if lowered.startswith(prefix):
            s = s[len(prefix) :]
            break
    return s or None


def parse_date(value: Optional[str]) -> Optional[date]:
    """Best-effort parse of the date strings adapters produce.

    Accepts ``YYYY``, ``YYYY-MM``, ``YYYY-MM-DD`` and ISO timestamps. Returns None
    for anything else, including impossible calendar dates.
    """
    if not value:
        return None
    m = _DATE_RE.match(str(value))
    if not m:
        return None
    year = int(m.group(1))
    month = int(m.group(2) or 1)
    day = int(m.group(3) or 1)
    try:
        return date(year, month, day)
    except ValueError:
        return None


def parse_year(value: Optional[str]) -> Optional[int]:
    parsed = parse_date(value)
    return parsed.year if parsed else None


def truncate_text(text: str, max_length: int) -> str:
    if len(text) <= max_length:
        return text
    return text[:max_length].strip() + "..."


class RateLimiter:
    """Interval gate for one external API.

    ``acquire()`` suspends the caller until ``1 / requests_per_second`` seconds have
    elapsed since the previous grant. Callers sharing an instance are serialized;
    separate instances never wait on each other.
    """

    def __init__(self, requests_per_second: float) -> None:
        self.interval_seconds = 1.0 / requests_per_second if requests_per_second > 0 else 0.0
        self._last_grant: float | None = None
        self._lock = asyncio.Lock()

    async def acquire(self) -> None:
        async with self._lock:
            if self._last_grant is not None:
                wait_for = (self._last_grant + self.interval_seconds) - time.monotonic()
                if wait_for > 0:
                    await asyncio.sleep(wait_for)
            self._last_grant = time.monotonic()


def _is_retryable(exc: BaseException) -> bool:
    if not isinstance(exc, requests.HTTPError) or exc.response is None:
        return False
    status = exc.response.status_code
    return status == 429 or status >= 500


def build_url(url: str, params: Optional[Dict[str, Any]] = None) -> str:
    if not params:
        return url
    prepared = requests.Request("GET", url, params=params).prepare()
    return prepared.url or url


def via_proxy(proxy: str, url: str) -> str:
    """Route a fully-built URL through a CORS relay that takes the target as a query value."""
    return proxy + quote(url, safe="")


@retry(
    retry=retry_if_exception(_is_retryable),
    wait=wait_exponential(min=1, max=10),
    stop=stop_after_attempt(3),
    reraise=True,
)
def http_get(
    url: str,
    *,
    params: Optional[Dict[str, Any]] = None,
    headers: Optional[Dict[str, str]] = None,
    timeout_seconds: float = 30,
) -> requests.Response:
    """HTTP GET with ``raise_for_status``; 429 and 5xx responses are retried."""
    r = requests.get(url, params=params, headers=headers, timeout=timeout_seconds)
    r.raise_for_status()
    return r


def http_get_json(
    url: str,
    *,
    params: Optional[Dict[str, Any]] = None,
    headers: Optional[Dict[str, str]] = None,
    timeout_seconds: float = 30,
) -> Dict[str, Any]:
    """HTTP GET returning JSON.

    Non-dict payloads are wrapped as ``{"data": payload}`` for caller simplicity.
    """
    merged = {"Accept": "application/json", **(headers or {})}
    r = http_get(url, params=params, headers=merged, timeout_seconds=timeout_seconds)
    data = r.json()
    if data is None:
        return {}
    if not isinstance(data, dict):
        return {"data": data}
    return data


def http_get_text(
    url: str,
    *,
    params: Optional[Dict[str, Any]] = None,
    headers: Optional[Dict[str, str]] = None,
    timeout_seconds: float = 30,
) -> str:
    return http_get(url, params=params, headers=headers, timeout_seconds=timeout_seconds).text


@dataclass
class SourceCounters:
    succeeded: int = 0
    empty: int = 0
    failed: int = 0


@contextmanager
def telemetry_span(name: str, counters: Optional[SourceCounters] = None):
    start = time.time()
    try:
        yield
    finally:
        duration_ms = int((time.time() - start) * 1000)
        msg = f"telemetry span name={name} duration_ms={duration_ms}"
        if counters is not None:
            msg += (
                f" succeeded={counters.succeeded} empty={counters.empty}"
                f" failed={counters.failed}"
            )
        logger.info(msg)
