from __future__ import annotations

import logging
import time
from collections.abc import Callable, Sequence
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Any

from sqlalchemy.engine import make_url
from sqlalchemy.orm import sessionmaker

from .config import Settings
from .connectors.base import Paper
from .db import Base, create_session_factory, ensure_schema
from .models import StoredValue

logger = logging.getLogger(__name__)

STORAGE_KEYS = {
    "bookmarks": "paper_search_bookmarks",
    "recent_searches": "paper_search_recent",
    "theme": "paper_search_theme",
    "filters": "paper_search_filters",
}
HISTORY_LIMIT = 10


@dataclass
class SearchHistoryEntry:
    query: str
    timestamp: int  # epoch milliseconds


def ensure_storage_dir(database_url: str) -> None:
    """Create the parent directory of a file-backed SQLite database."""
    url = make_url(database_url)
    if url.get_backend_name() != "sqlite" or not url.database or url.database == ":memory:":
        return
    Path(url.database).parent.mkdir(parents=True, exist_ok=True)


class PersistenceStore:
    """Key/value persistence for client-side state, plus history and bookmark helpers.

    The search engine only calls this interface; it never touches SQL itself.
    """

    def __init__(
        self, session_factory: sessionmaker, clock: Callable[[], float] = time.time
    ) -> None:
        self._session_factory = session_factory
        self._clock = clock

    @classmethod
    def from_settings(cls, settings: Settings) -> "PersistenceStore":
        ensure_storage_dir(settings.database_url)
        session_factory = create_session_factory(settings.database_url)
        with session_factory() as session:
            ensure_schema(Base, session.get_bind())
        return cls(session_factory)

    def get(self, key: str, default: Any = None) -> Any:
        with self._session_factory() as session:
            row = session.get(StoredValue, key)
            return default if row is None or row.value is None else row.value

    def set(self, key: str, value: Any) -> None:
        with self._session_factory() as session:
            row = session.get(StoredValue, key)
            if row is None:
                session.add(StoredValue(key=key, value=value))
            else:
                row.value = value
            session.commit()

    # Search history

    def load_history(self) -> list[SearchHistoryEntry]:
        raw = self.get(STORAGE_KEYS["recent_searches"], [])
        entries: list[SearchHistoryEntry] = []
        for item in raw if isinstance(raw, list) else []:
            if isinstance(item, dict) and isinstance(item.get("query"), str):
                timestamp = int(item.get("timestamp") or 0)
                entries.append(SearchHistoryEntry(query=item["query"], timestamp=timestamp))
        return entries

    def save_history(self, entries: Sequence[SearchHistoryEntry]) -> None:
        self.set(STORAGE_KEYS["recent_searches"], [asdict(e) for e in entries[:HISTORY_LIMIT]])

    def add_to_history(self, query: str) -> list[SearchHistoryEntry]:
        """Move ``query`` to the front of the history, keeping the newest ten."""
        history = self.load_history()
        if not query.strip():
            return history
        history = [e for e in history if e.query != query]
        history.insert(0, SearchHistoryEntry(query=query, timestamp=int(self._clock() * 1000)))
        history = history[:HISTORY_LIMIT]
        self.save_history(history)
        return history

    # Bookmarks

    def load_bookmarks(self) -> list[dict[str, Any]]:
        raw = self.get(STORAGE_KEYS["bookmarks"], [])
        return [b for b in raw if isinstance(b, dict)] if isinstance(raw, list) else []

    def save_bookmarks(self, entries: Sequence[dict[str, Any]]) -> None:
        self.set(STORAGE_KEYS["bookmarks"], list(entries))

    def is_bookmarked(self, paper_id: str) -> bool:
        return any(b.get("id") == paper_id for b in self.load_bookmarks())

    def toggle_bookmark(self, paper: Paper | dict[str, Any]) -> bool:
        """Add the paper if absent, remove it if present. Returns True when now bookmarked."""
        payload = paper.to_dict() if isinstance(paper, Paper) else dict(paper)
        bookmarks = self.load_bookmarks()
        remaining = [b for b in bookmarks if b.get("id") != payload.get("id")]
        if len(remaining) != len(bookmarks):
            self.save_bookmarks(remaining)
            logger.info("removed bookmark %s", payload.get("id"))
            return False
        self.save_bookmarks([*bookmarks, payload])
        logger.info("added bookmark %s", payload.get("id"))
        return True
