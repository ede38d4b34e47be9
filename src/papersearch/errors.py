from __future__ import annotations


class PaperSearchError(Exception):
    """Base class for errors raised by the search engine."""


class AdapterError(PaperSearchError):
    """A single source failed (network, HTTP status, parse failure or timeout).

    Connectors raise this internally and convert it to an empty result at their
    boundary; it never reaches callers of the engine.
    """

    def __init__(
        self,
        source: str,
        message: str,
        *,
        status: int | None = None,
        timeout: bool = False,
    ) -> None:
        super().__init__(f"{source}: {message}")
        self.source = source
        self.status = status
        self.timeout = timeout

    @property
    def is_transport(self) -> bool:
        """True when no HTTP response was received at all (connection refused, DNS, timeout)."""
        return self.status is None


class AllSourcesUnavailable(PaperSearchError):
    """Every invoked source failed. Distinct from a search with zero results."""

    def __init__(self, attempted: int) -> None:
        super().__init__(
            f"All {attempted} search sources are currently unavailable. Please try again later."
        )
        self.attempted = attempted


class UnsupportedFormat(PaperSearchError):
    def __init__(self, fmt: str) -> None:
        super().__init__(f"Unsupported export format: {fmt!r}")
        self.format = fmt


class EnrichmentError(PaperSearchError):
    def __init__(self, paper_id: str, message: str) -> None:
        super().__init__(f"{paper_id}: {message}")
        self.paper_id = paper_id
