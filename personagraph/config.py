"""Configuration for PersonaGraph.

Simple dataclass-based configuration with sensible defaults.
Override via environment variables with PERSONAGRAPH_ prefix.
"""

import os
from dataclasses import dataclass, field
from pathlib import Path

from dotenv import load_dotenv

from personagraph.log_config import get_logger

log = get_logger("config")

# Look for .env in the working directory and the package parent
_pkg_dir = Path(__file__).parent.parent
_env_loaded = load_dotenv(Path.cwd() / ".env") or load_dotenv(_pkg_dir / ".env")
log.debug(f"Loaded .env file: {_env_loaded}")


def _get_env(key: str, default: str) -> str:
    """Get environment variable with PERSONAGRAPH_ prefix."""
    return os.getenv(f"PERSONAGRAPH_{key}", default)


def _get_env_int(key: str, default: int) -> int:
    """Get integer environment variable."""
    return int(_get_env(key, str(default)))


def _get_env_float(key: str, default: float) -> float:
    """Get float environment variable."""
    return float(_get_env(key, str(default)))


def _get_env_bool(key: str, default: bool) -> bool:
    val = os.getenv(f"PERSONAGRAPH_{key}")
    if val is None:
        return default
    return val.lower() in ("true", "1", "yes")


def _get_env_list(key: str) -> list[str]:
    """Comma-separated environment variable, blanks dropped."""
    return [item.strip() for item in _get_env(key, "").split(",") if item.strip()]


@dataclass
class Config:
    """PersonaGraph configuration.

    Attributes:
        graph_backend: "auto", "falkordb" or "memory" (default: auto)
        falkor_host: FalkorDB host (default: localhost)
        falkor_port: FalkorDB port (default: 6379)
        falkor_password: Optional FalkorDB/Redis password
        graph_name: Name of the FalkorDB graph (default: personagraph)
        entity_lookup_limit: Candidates scanned for a natural-key match (default: 5)
        relationship_scan_limit: Outgoing edges scanned for a natural-key match (default: 100)
        enrichment_relationship_limit: Relationships attached per related entity (default: 5)
        context_relationship_limit: Relationships fetched per context entity (default: 10)
        search_candidate_limit: Entities fetched before lexical scoring (default: 1000)
        orphan_max_age_days: Minimum entity age before it can be reaped (default: 30)
        orphan_confidence_threshold: Orphans below this confidence are reaped (default: 0.5)
        reaper_enabled: Run orphan cleanup periodically (default: False)
        reaper_interval_hours: Hours between cleanup passes (default: 24)
        reaper_personas: Personas cleaned by the periodic pass (default: none)
        batch_concurrency: Items merged concurrently within a batch phase (default: 1)
    """

    graph_backend: str = field(default_factory=lambda: _get_env("GRAPH_BACKEND", "auto").lower())
    falkor_host: str = field(default_factory=lambda: _get_env("FALKOR_HOST", "localhost"))
    falkor_port: int = field(default_factory=lambda: _get_env_int("FALKOR_PORT", 6379))
    falkor_password: str | None = field(
        default_factory=lambda: os.getenv("PERSONAGRAPH_FALKOR_PASSWORD") or None
    )
    graph_name: str = field(default_factory=lambda: _get_env("GRAPH_NAME", "personagraph"))

    # Merge resolution
    entity_lookup_limit: int = field(default_factory=lambda: _get_env_int("ENTITY_LOOKUP_LIMIT", 5))
    relationship_scan_limit: int = field(
        default_factory=lambda: _get_env_int("RELATIONSHIP_SCAN_LIMIT", 100)
    )

    # Read paths
    enrichment_relationship_limit: int = field(
        default_factory=lambda: _get_env_int("ENRICHMENT_RELATIONSHIP_LIMIT", 5)
    )
    context_relationship_limit: int = field(
        default_factory=lambda: _get_env_int("CONTEXT_RELATIONSHIP_LIMIT", 10)
    )
    search_candidate_limit: int = field(
        default_factory=lambda: _get_env_int("SEARCH_CANDIDATE_LIMIT", 1000)
    )

    # Orphan reaping
    orphan_max_age_days: float = field(
        default_factory=lambda: _get_env_float("ORPHAN_MAX_AGE_DAYS", 30)
    )
    orphan_confidence_threshold: float = field(
        default_factory=lambda: _get_env_float("ORPHAN_CONFIDENCE_THRESHOLD", 0.5)
    )
    reaper_enabled: bool = field(default_factory=lambda: _get_env_bool("REAPER_ENABLED", False))
    reaper_interval_hours: float = field(
        default_factory=lambda: _get_env_float("REAPER_INTERVAL_HOURS", 24)
    )
    reaper_personas: list[str] = field(default_factory=lambda: _get_env_list("REAPER_PERSONAS"))

    batch_concurrency: int = field(default_factory=lambda: _get_env_int("BATCH_CONCURRENCY", 1))

    def __post_init__(self):
        """Validate settings and log the effective configuration."""
        log.trace("Initializing Config")

        if self.graph_backend not in ("auto", "falkordb", "memory"):
            raise ValueError(f"Unknown graph backend: {self.graph_backend}")
        if self.batch_concurrency < 1:
            raise ValueError("batch_concurrency must be >= 1")

        log.debug(f"graph_backend={self.graph_backend}")
        log.debug(f"falkor_host={self.falkor_host}, falkor_port={self.falkor_port}")
        log.debug(
            f"entity_lookup_limit={self.entity_lookup_limit}, "
            f"relationship_scan_limit={self.relationship_scan_limit}"
        )
        log.debug(
            f"orphan_max_age_days={self.orphan_max_age_days}, "
            f"orphan_confidence_threshold={self.orphan_confidence_threshold}"
        )

    @property
    def orphan_max_age_seconds(self) -> float:
        """Orphan age gate in seconds."""
        return self.orphan_max_age_days * 24 * 60 * 60
