import os
from dataclasses import dataclass


@dataclass
class Settings:
    database_url: str
    cache_ttl_seconds: float = 300
    default_per_page: int = 20
    request_timeout_seconds: int = 30
    crossref_timeout_seconds: int = 10
    cors_proxy: str = "https://api.allorigins.win/raw?url="
    contact_email: str = "your-email@example.com"
    # Enrichment policy
    enrich_max_results: int = 50
    enrich_max_citation_papers: int = 20
    # Requests per second, per external API
    rate_limit_semantic_scholar: float = 100
    rate_limit_openalex: float = 10
    rate_limit_pubmed: float = 3
    rate_limit_orcid: float = 24
    rate_limit_opencitations: float = 5
    rate_limit_doaj: float = 2
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "Settings":
        return cls(
            database_url=os.environ.get("DATABASE_URL", "sqlite:///./data/papersearch.db"),
            cache_ttl_seconds=float(os.environ.get("CACHE_TTL_SECONDS", "300")),
            default_per_page=int(os.environ.get("DEFAULT_PER_PAGE", "20")),
            request_timeout_seconds=int(os.environ.get("REQUEST_TIMEOUT_SECONDS", "30")),
            crossref_timeout_seconds=int(os.environ.get("CROSSREF_TIMEOUT_SECONDS", "10")),
            cors_proxy=os.environ.get("CORS_PROXY", "https://api.allorigins.win/raw?url="),
            contact_email=os.environ.get("CONTACT_EMAIL", "your-email@example.com"),
            enrich_max_results=int(os.environ.get("ENRICH_MAX_RESULTS", "50")),
            enrich_max_citation_papers=int(os.environ.get("ENRICH_MAX_CITATION_PAPERS", "20")),
            rate_limit_semantic_scholar=float(
                os.environ.get("RATE_LIMIT_SEMANTIC_SCHOLAR", "100")
            ),
            rate_limit_openalex=float(os.environ.get("RATE_LIMIT_OPENALEX", "10")),
            rate_limit_pubmed=float(os.environ.get("RATE_LIMIT_PUBMED", "3")),
            rate_limit_orcid=float(os.environ.get("RATE_LIMIT_ORCID", "24")),
            rate_limit_opencitations=float(os.environ.get("RATE_LIMIT_OPENCITATIONS", "5")),
            rate_limit_doaj=float(os.environ.get("RATE_LIMIT_DOAJ", "2")),
            log_level=os.environ.get("LOG_LEVEL", "INFO"),
        )
