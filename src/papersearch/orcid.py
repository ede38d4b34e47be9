from __future__ import annotations

import asyncio
import logging
from typing import Any

import requests

from .config import Settings
from .connectors.base import AuthorInfo
from .utils import RateLimiter, http_get_json

logger = logging.getLogger(__name__)

BASE_URL = "https://pub.orcid.org/v3.0"


def build_orcid_query(author_name: str) -> str:
    parts = author_name.split(" ")
    return f"given-names:{parts[0]} AND family-name:{' '.join(parts[1:])}"


class OrcidClient:
    """Author-identity lookups against the public ORCID registry."""

    def __init__(
        self, settings: Settings | None = None, rate_limiter: RateLimiter | None = None
    ) -> None:
        self.settings = settings or Settings.from_env()
        self.rate_limiter = rate_limiter or RateLimiter(self.settings.rate_limit_orcid)

    async def _get(self, url: str, params: dict[str, str] | None = None) -> dict[str, Any] | None:
        await self.rate_limiter.acquire()
        try:
            return await asyncio.to_thread(
                http_get_json,
                url,
                params=params,
                timeout_seconds=self.settings.request_timeout_seconds,
            )
        except (requests.RequestException, ValueError) as exc:
            logger.warning("ORCID request failed url=%s: %s", url, exc)
            return None

    async def get_author_info(self, author_name: str) -> AuthorInfo:
        """Best match for ``author_name``; an unmatched name gives an empty ``AuthorInfo``."""
        info = AuthorInfo(name=author_name)
        data = await self._get(
            f"{BASE_URL}/search", params={"q": build_orcid_query(author_name), "rows": "1"}
        )
        results = (data or {}).get("result") or []
        if not results:
            return info

        orcid_id = ((results[0] or {}).get("orcid-identifier") or {}).get("path")
        if not orcid_id:
            return info
        info.orcid = orcid_id

        detail = await self._get(f"{BASE_URL}/{orcid_id}/person")
        if detail:
            institution = ((detail.get("name") or {}).get("institution-name") or {}).get("value")
            info.affiliation = institution or None
        return info
