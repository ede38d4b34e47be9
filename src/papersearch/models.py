from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from sqlalchemy import JSON as GenericJSON
from sqlalchemy import DateTime, String
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from .db import Base


def _now_utc() -> datetime:
    return datetime.now(timezone.utc)


class StoredValue(Base):
    """One JSON value under a fixed logical key (history, bookmarks, theme, filters)."""

    __tablename__ = "stored_values"

    key: Mapped[str] = mapped_column(String(100), primary_key=True)
    value: Mapped[Any] = mapped_column(
        JSONB().with_variant(GenericJSON(), "sqlite"), nullable=True
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_now_utc, onupdate=_now_utc
    )
