from ..config import Settings
from ..utils import RateLimiter
from .arxiv import ArxivConnector
from .base import AuthorInfo, Connector, ImpactMetrics, Paper, SearchFilters, Source
from .crossref import CrossRefConnector
from .doaj import DOAJConnector
from .openalex import OpenAlexConnector
from .pubmed import PubMedConnector
from .semanticscholar import SemanticScholarConnector

# Invocation order; also the order in which merged results are first seen
CONNECTOR_CLASSES: dict[str, type[Connector]] = {
    "arxiv": ArxivConnector,
    "crossref": CrossRefConnector,
    "semantic_scholar": SemanticScholarConnector,
    "openalex": OpenAlexConnector,
    "pubmed": PubMedConnector,
    "doaj": DOAJConnector,
}


def default_connectors(settings: Settings) -> dict[str, Connector]:
    """Build one connector per source, each with its own limiter where the API asks for pacing."""
    rates = {
        "semantic_scholar": settings.rate_limit_semantic_scholar,
        "openalex": settings.rate_limit_openalex,
        "pubmed": settings.rate_limit_pubmed,
        "doaj": settings.rate_limit_doaj,
    }
    return {
        name: cls(settings, RateLimiter(rates[name]) if name in rates else None)
        for name, cls in CONNECTOR_CLASSES.items()
    }


__all__ = [
    "AuthorInfo",
    "Connector",
    "ImpactMetrics",
    "Paper",
    "SearchFilters",
    "Source",
    "ArxivConnector",
    "CrossRefConnector",
    "DOAJConnector",
    "OpenAlexConnector",
    "PubMedConnector",
    "SemanticScholarConnector",
    "CONNECTOR_CLASSES",
    "default_connectors",
]
