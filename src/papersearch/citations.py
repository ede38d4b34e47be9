from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any
from urllib.parse import quote

import requests

from .config import Settings
from .utils import RateLimiter, http_get_json

logger = logging.getLogger(__name__)

BASE_URL = "https://opencitations.net/index/api/v1"
MAX_NEIGHBORS = 10


@dataclass
class CitationData:
    citing: list[Any] = field(default_factory=list)
    cited: list[Any] = field(default_factory=list)
    network: dict[str, Any] = field(default_factory=dict)


class OpenCitationsClient:
    """Citation-graph lookups by DOI.

    Each HTTP call passes through the client's rate limiter. A failed call leaves
    its list empty; callers never see the transport error.
    """

    def __init__(
        self, settings: Settings | None = None, rate_limiter: RateLimiter | None = None
    ) -> None:
        self.settings = settings or Settings.from_env()
        self.rate_limiter = rate_limiter or RateLimiter(self.settings.rate_limit_opencitations)

    async def _fetch_list(self, url: str) -> list[Any]:
        await self.rate_limiter.acquire()
        try:
            data = await asyncio.to_thread(
                http_get_json, url, timeout_seconds=self.settings.request_timeout_seconds
            )
        except (requests.RequestException, ValueError) as exc:
            logger.warning("OpenCitations request failed url=%s: %s", url, exc)
            return []
        items = data.get("data")
        return items if isinstance(items, list) else []

    async def get_citation_data(self, doi: str) -> CitationData:
        """Papers citing ``doi`` and papers it references, ten of each at most."""
        encoded = quote(doi, safe="")
        citing, cited = await asyncio.gather(
            self._fetch_list(f"{BASE_URL}/citations/{encoded}"),
            self._fetch_list(f"{BASE_URL}/references/{encoded}"),
        )
        return CitationData(citing=citing[:MAX_NEIGHBORS], cited=cited[:MAX_NEIGHBORS])
