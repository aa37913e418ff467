"""
Centralized configuration for GapCube.

All configuration values should be imported from this module.
Supports environment variable overrides for containerization.
"""

import os
from pathlib import Path
from typing import Optional
from dataclasses import dataclass, field
from dotenv import load_dotenv

# Load .env file if it exists
load_dotenv()


def _find_project_root() -> Path:
    """Find project root by looking for pyproject.toml or .git."""
    current = Path(__file__).resolve().parent
    for parent in [current] + list(current.parents):
        if (parent / "pyproject.toml").exists() or (parent / ".git").exists():
            return parent
    return current.parent


@dataclass
class Config:
    """GapCube configuration."""

    # ==========================================================================
    # Paths
    # ==========================================================================
    PROJECT_ROOT: Path = field(default_factory=_find_project_root)

    @property
    def DATA_DIR(self) -> Path:
        return Path(os.environ.get("GAPCUBE_DATA_DIR", str(self.PROJECT_ROOT / "data")))

    @property
    def SNAPSHOT_PATH(self) -> Path:
        return Path(os.environ.get("GAPCUBE_SNAPSHOT_PATH", str(self.DATA_DIR / "cube.json")))

    @property
    def SAMPLE_CACHE_PATH(self) -> Path:
        return Path(
            os.environ.get("GAPCUBE_SAMPLE_CACHE_PATH", str(self.DATA_DIR / "sample-cache.json"))
        )

    @property
    def RETRACTION_INDEX_PATH(self) -> Path:
        return Path(
            os.environ.get("GAPCUBE_RETRACTION_INDEX", str(self.DATA_DIR / "retraction-index.json"))
        )

    @property
    def LOG_DIR(self) -> Path:
        return Path(os.environ.get("GAPCUBE_LOG_DIR", str(self.PROJECT_ROOT / "logs")))

    # ==========================================================================
    # Sampling
    # ==========================================================================
    @property
    def SAMPLE_TARGET_TOTAL(self) -> int:
        return int(os.environ.get("SAMPLE_TARGET_TOTAL", "2700"))

    @property
    def SAMPLE_CACHE_TTL_SECONDS(self) -> int:
        return int(os.environ.get("SAMPLE_CACHE_TTL_SECONDS", "3600"))

    @property
    def SOURCE_TIMEOUT_SECONDS(self) -> float:
        return float(os.environ.get("SOURCE_TIMEOUT_SECONDS", "60"))

    @property
    def MIN_ABSTRACT_CHARS(self) -> int:
        return int(os.environ.get("MIN_ABSTRACT_CHARS", "0"))

    @property
    def REQUEST_TIMEOUT_SECONDS(self) -> float:
        return float(os.environ.get("REQUEST_TIMEOUT_SECONDS", "15"))

    @property
    def SOURCES_FACTORY(self) -> Optional[str]:
        """Adapter factory as "module:function", used by the CLI."""
        return os.environ.get("GAPCUBE_SOURCES")

    @property
    def CONTACT_EMAIL(self) -> str:
        return os.environ.get("GAPCUBE_CONTACT_EMAIL", "gapcube@example.com")

    # ==========================================================================
    # Shuffling
    # ==========================================================================
    @property
    def SHUFFLE_INTERVAL(self) -> int:
        return int(os.environ.get("SHUFFLE_INTERVAL", "50"))

    @property
    def MIN_DOCUMENTS(self) -> int:
        return int(os.environ.get("MIN_DOCUMENTS", "27"))

    @property
    def TOP_K_DOCUMENTS(self) -> int:
        return int(os.environ.get("TOP_K_DOCUMENTS", "5"))

    @property
    def ENRICH_CONCURRENCY(self) -> int:
        return int(os.environ.get("ENRICH_CONCURRENCY", "8"))

    # ==========================================================================
    # Observability
    # ==========================================================================
    @property
    def LOG_LEVEL(self) -> str:
        return os.environ.get("LOG_LEVEL", "INFO")

    @property
    def TELEMETRY_ENABLED(self) -> bool:
        return os.environ.get("GAPCUBE_TELEMETRY", "0") == "1"

    # ==========================================================================
    # Source weights (fraction of SAMPLE_TARGET_TOTAL, priority order)
    # ==========================================================================
    SOURCE_WEIGHTS = {
        "openalex": 0.40,
        "semanticscholar": 0.20,
        "pubmed": 0.15,
        "europepmc": 0.05,
        "preprints": 0.10,
        "github": 0.10,
    }

    # ==========================================================================
    # Rate Limits (requests per second)
    # ==========================================================================
    RATE_LIMITS = {
        "openalex": 9.0,
        "semanticscholar": 0.9,
        "pubmed": 3.0,
        "europepmc": 3.0,
        "biorxiv": 2.0,
        "arxiv": 0.32,
        "github": 0.5,
        "crossref": 10.0,
        "opencitations": 2.0,
    }

    # ==========================================================================
    # Cache TTLs (hours) per provider
    # ==========================================================================
    CACHE_TTL_HOURS = {
        "openalex": 6,
        "semanticscholar": 168,
        "pubmed": 24,
        "europepmc": 24,
        "biorxiv": 24,
        "arxiv": 24,
        "github": 1,
        "crossref": 168,
        "opencitations": 720,
    }

    # ==========================================================================
    # Validation
    # ==========================================================================
    def validate(self) -> list[str]:
        """Return list of configuration errors."""
        errors = []

        total_weight = sum(self.SOURCE_WEIGHTS.values())
        if abs(total_weight - 1.0) > 1e-6:
            errors.append(f"SOURCE_WEIGHTS must sum to 1.0 (got {total_weight:.3f})")

        for name, weight in self.SOURCE_WEIGHTS.items():
            if weight <= 0:
                errors.append(f"Source weight for {name} must be positive")

        for name, rate in self.RATE_LIMITS.items():
            if rate <= 0:
                errors.append(f"Rate limit for {name} must be positive")

        if self.SAMPLE_TARGET_TOTAL <= 0:
            errors.append("SAMPLE_TARGET_TOTAL must be positive")

        if self.MIN_ABSTRACT_CHARS < 0:
            errors.append("MIN_ABSTRACT_CHARS cannot be negative")

        if self.SHUFFLE_INTERVAL <= 0:
            errors.append("SHUFFLE_INTERVAL must be positive")

        if self.MIN_DOCUMENTS < 27:
            errors.append(
                f"MIN_DOCUMENTS={self.MIN_DOCUMENTS} cannot populate all 27 cells"
            )

        return errors

    def ensure_dirs(self):
        """Create required directories if they don't exist."""
        self.DATA_DIR.mkdir(parents=True, exist_ok=True)

    def __repr__(self) -> str:
        return (
            f"Config(\n"
            f"  PROJECT_ROOT={self.PROJECT_ROOT}\n"
            f"  SNAPSHOT_PATH={self.SNAPSHOT_PATH}\n"
            f"  SAMPLE_TARGET_TOTAL={self.SAMPLE_TARGET_TOTAL}\n"
            f"  SHUFFLE_INTERVAL={self.SHUFFLE_INTERVAL}\n"
            f"  SOURCES_FACTORY={self.SOURCES_FACTORY}\n"
            f")"
        )


# Global config instance
config = Config()


# Convenience exports
SHUFFLE_INTERVAL = config.SHUFFLE_INTERVAL
MIN_DOCUMENTS = config.MIN_DOCUMENTS
SAMPLE_TARGET_TOTAL = config.SAMPLE_TARGET_TOTAL
