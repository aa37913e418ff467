"""
Shuffle telemetry for GapCube.

Logs one JSONL record per shuffle attempt for debugging and for tracking
how the cube distribution drifts between generations.

Enable with: GAPCUBE_TELEMETRY=1
"""

import json
import logging
import time
import uuid
from dataclasses import dataclass, field, asdict
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from gapcube.config import config

logger = logging.getLogger(__name__)


def is_telemetry_enabled() -> bool:
    """Check if telemetry is enabled via environment variable."""
    return config.TELEMETRY_ENABLED


def default_log_path() -> Path:
    return config.LOG_DIR / "shuffle_runs.jsonl"


@dataclass
class ShuffleTelemetry:
    """Telemetry data for a single shuffle attempt."""

    # Identifiers
    run_id: str = field(default_factory=lambda: str(uuid.uuid4()))
    timestamp: str = field(default_factory=lambda: datetime.now(timezone.utc).isoformat())

    # Run info
    tick: int = 0
    generation: Optional[int] = None
    from_cache: bool = False
    queries_used: int = 0

    # Sample
    total_documents: int = 0
    source_breakdown: dict[str, int] = field(default_factory=dict)
    source_latency_ms: dict[str, float] = field(default_factory=dict)

    # Classification
    method_distribution: list[int] = field(default_factory=list)
    surprise_distribution: list[int] = field(default_factory=list)
    cluster_distribution: list[int] = field(default_factory=list)
    cluster_labels: list[str] = field(default_factory=list)
    avg_surprise: float = 0.0
    empty_cells: int = 0
    thin_cells: int = 0

    # Timing
    sample_latency_ms: float = 0.0
    enrich_latency_ms: float = 0.0
    classify_latency_ms: float = 0.0
    persist_latency_ms: float = 0.0
    total_latency_ms: float = 0.0

    # Errors
    errors: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        """Convert to JSON-serializable dict."""
        return asdict(self)


class TelemetryLogger:
    """
    Logger for shuffle telemetry.

    Usage:
        with TelemetryLogger(tick=150) as tl:
            with tl.time("sample"):
                result = await sampler.sample()
            tl.set_sample(result)
            # ... more stages
    """

    def __init__(self, tick: int = 0, log_path: Optional[Path] = None, enabled: Optional[bool] = None):
        """
        Initialize telemetry logger.

        Args:
            tick: Tick that triggered the shuffle
            log_path: Path to JSONL log file (default: logs/shuffle_runs.jsonl)
            enabled: Override the GAPCUBE_TELEMETRY switch
        """
        self.log_path = log_path or default_log_path()
        self.enabled = is_telemetry_enabled() if enabled is None else enabled
        self.telemetry = ShuffleTelemetry(tick=tick)
        self._start_time = time.perf_counter()
        self._timers: dict[str, float] = {}

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        if exc_type is not None:
            self.telemetry.errors.append(f"{exc_type.__name__}: {exc_val}")
        self.finalize()
        return False

    class _Timer:
        """Context manager for timing operations."""

        def __init__(self, logger: "TelemetryLogger", name: str):
            self.logger = logger
            self.name = name
            self.start = 0.0

        def __enter__(self):
            self.start = time.perf_counter()
            return self

        def __exit__(self, *args):
            elapsed_ms = (time.perf_counter() - self.start) * 1000
            self.logger._timers[self.name] = elapsed_ms

    def time(self, stage: str) -> "_Timer":
        """
        Time a shuffle stage (sample, enrich, classify, persist).

        Usage:
            with tl.time("classify"):
                batch = classify_all(documents)
        """
        return self._Timer(self, stage)

    def set_sample(self, result):
        """Record a SampleResult."""
        self.telemetry.from_cache = result.from_cache
        self.telemetry.queries_used = result.queries_used
        self.telemetry.total_documents = len(result.documents)
        self.telemetry.source_breakdown = dict(result.source_breakdown)
        self.telemetry.source_latency_ms = dict(result.source_latency_ms)
        self.telemetry.errors.extend(result.errors)

    def set_classification(self, batch):
        """Record a ClassificationBatch."""
        self.telemetry.method_distribution = list(batch.method_distribution)
        self.telemetry.surprise_distribution = list(batch.surprise_distribution)
        self.telemetry.cluster_distribution = list(batch.cluster_distribution)
        self.telemetry.cluster_labels = list(batch.cluster_labels)
        self.telemetry.avg_surprise = batch.avg_surprise

    def set_cells(self, empty: int, thin: int):
        self.telemetry.empty_cells = empty
        self.telemetry.thin_cells = thin

    def set_generation(self, generation: int):
        self.telemetry.generation = generation

    def add_error(self, error: str):
        """Record an error."""
        self.telemetry.errors.append(error)

    def finalize(self):
        """Calculate final timings and write to log."""
        if not self.enabled:
            return

        self.telemetry.sample_latency_ms = self._timers.get("sample", 0)
        self.telemetry.enrich_latency_ms = self._timers.get("enrich", 0)
        self.telemetry.classify_latency_ms = self._timers.get("classify", 0)
        self.telemetry.persist_latency_ms = self._timers.get("persist", 0)
        self.telemetry.total_latency_ms = (time.perf_counter() - self._start_time) * 1000

        self._write_log()

    def _write_log(self):
        """Append telemetry to JSONL log file."""
        try:
            self.log_path.parent.mkdir(parents=True, exist_ok=True)

            with open(self.log_path, "a") as f:
                json.dump(self.telemetry.to_dict(), f)
                f.write("\n")

            logger.debug(f"Telemetry logged: {self.telemetry.run_id}")

        except Exception as e:
            logger.warning(f"Failed to write telemetry: {e}")


def read_telemetry_logs(log_path: Optional[Path] = None, limit: int = 100) -> list[dict]:
    """
    Read the most recent shuffle telemetry records.

    Args:
        log_path: Path to log file (default: logs/shuffle_runs.jsonl)
        limit: Maximum number of records to return

    Returns:
        Records, oldest first
    """
    log_path = log_path or default_log_path()

    if not log_path.exists():
        return []

    results = []
    with open(log_path, "r") as f:
        for line in f:
            if not line.strip():
                continue
            try:
                results.append(json.loads(line))
            except json.JSONDecodeError:
                continue

    return results[-limit:]
