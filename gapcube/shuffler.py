"""
Cube shuffler for GapCube.

Orchestrates one generation:
1. Sample documents from all sources
2. Best-effort enrichment
3. Classify along three axes
4. Bucket into 27 cells (sorted by citation count)
5. Atomically persist the new generation

Cell index: z*9 + y*3 + x
    x = method (0=imaging/observation, 1=computational, 2=experimental)
    y = surprise (0=confirmatory, 1=deviation, 2=anomalous)
    z = semantic cluster (relabelled every generation)

Every shuffle resamples and reclassifies the whole cube.
"""

import logging
import time
from dataclasses import asdict
from datetime import datetime, timezone
from typing import Iterable, Optional

from gapcube import collision
from gapcube.classifier import ClassificationBatch, classify_all
from gapcube.config import config
from gapcube.enrichment import Enricher, enrich_documents
from gapcube.grid import cell_to_coords, validate_cell
from gapcube.models import (
    CELL_COUNT,
    METHOD_LABELS,
    SURPRISE_LABELS,
    Cell,
    CellDocument,
    ClassifiedDocument,
    CollisionScore,
    CubeSnapshot,
)
from gapcube.sampler import Sampler
from gapcube.store import SnapshotStore
from gapcube.telemetry import TelemetryLogger

logger = logging.getLogger(__name__)

THIN_CELL_THRESHOLD = 10


class InsufficientSampleError(Exception):
    """Raised when a sample is too small to populate the cube."""

    def __init__(self, count: int, minimum: int):
        self.count = count
        self.minimum = minimum
        super().__init__(f"Insufficient documents: {count} (need at least {minimum})")


def should_shuffle(
    current_tick: int,
    last_shuffle_tick: Optional[int],
    interval: Optional[int] = None,
) -> bool:
    """True if the cube has never been shuffled or the interval has elapsed."""
    interval = interval if interval is not None else config.SHUFFLE_INTERVAL
    if interval <= 0:
        raise ValueError("interval must be positive")
    if last_shuffle_tick is None:
        return True
    return current_tick - last_shuffle_tick >= interval


def populate_cells(
    classified: list[ClassifiedDocument],
    cluster_labels: list[str],
) -> tuple[list[Cell], int, int]:
    """
    Bucket classified documents into all 27 cells.

    Returns:
        (cells, empty_count, thin_count)
    """
    cells = []
    for index in range(CELL_COUNT):
        x, y, z = cell_to_coords(index)
        cells.append(Cell(
            index=index,
            x=x,
            y=y,
            z=z,
            method_label=METHOD_LABELS[x],
            surprise_label=SURPRISE_LABELS[y],
            cluster_label=cluster_labels[z] if z < len(cluster_labels) else f"cluster-{z}",
        ))

    for item in classified:
        cells[item.cell_index].documents.append(CellDocument.from_classified(item))

    empty = thin = 0
    for cell in cells:
        cell.documents.sort(key=lambda d: d.citation_count or 0, reverse=True)
        cell.paper_count = len(cell.documents)
        if cell.documents:
            cell.avg_surprise_score = round(
                sum(d.surprise_score for d in cell.documents) / cell.paper_count, 3
            )

        if cell.paper_count == 0:
            empty += 1
            logger.warning(
                f"Cell {cell.index} [{cell.method_label}, {cell.surprise_label}, "
                f"{cell.cluster_label}] is empty"
            )
        elif cell.paper_count < THIN_CELL_THRESHOLD:
            thin += 1
            logger.warning(
                f"Cell {cell.index} has only {cell.paper_count} documents (< {THIN_CELL_THRESHOLD})"
            )

    if empty:
        logger.warning(f"{empty} empty cells")
    if thin:
        logger.warning(f"{thin} thin cells (< {THIN_CELL_THRESHOLD} documents)")
    return cells, empty, thin


class Shuffler:
    """
    Owns the cube lifecycle: shuffling and querying the latest generation.

    Usage:
        shuffler = Shuffler(sampler, SnapshotStore(config.SNAPSHOT_PATH))
        if should_shuffle(tick, last_tick):
            snapshot = await shuffler.shuffle(tick, prior_generation)
        info = shuffler.get_cell_description(13)
    """

    def __init__(
        self,
        sampler: Optional[Sampler],
        store: Optional[SnapshotStore] = None,
        enrichers: Iterable[Enricher] = (),
        min_documents: Optional[int] = None,
        current_year: Optional[int] = None,
    ):
        """
        Args:
            sampler: Configured multi-source sampler (None for query-only use)
            store: Snapshot store (default: SNAPSHOT_PATH)
            enrichers: Optional structural-signal collaborators
            min_documents: Minimum sample size (never below 27)
            current_year: Reference year for surprise scoring (default: now)
        """
        self.sampler = sampler
        self.store = store or SnapshotStore(config.SNAPSHOT_PATH)
        self.enrichers = list(enrichers)
        self.min_documents = max(
            CELL_COUNT, min_documents if min_documents is not None else config.MIN_DOCUMENTS
        )
        self.current_year = current_year

    async def shuffle(self, tick: int, prior_generation: int = 0) -> CubeSnapshot:
        """
        Build and persist generation `prior_generation + 1`.

        Raises:
            InsufficientSampleError: Sample smaller than the minimum;
                the stored generation is left untouched
        """
        if self.sampler is None:
            raise RuntimeError("Shuffler was built without a sampler")

        start = time.perf_counter()
        generation = prior_generation + 1
        logger.info(f"Starting generation {generation} at tick {tick}")

        with TelemetryLogger(tick=tick) as tl:
            with tl.time("sample"):
                sample = await self.sampler.sample()
            tl.set_sample(sample)
            logger.info(
                f"Sampled {sample.total} documents ({sample.queries_used} queries, "
                f"from_cache={sample.from_cache})"
            )

            if sample.total < self.min_documents:
                raise InsufficientSampleError(sample.total, self.min_documents)

            documents = sample.documents
            if self.enrichers:
                with tl.time("enrich"):
                    documents = await enrich_documents(documents, self.enrichers)

            with tl.time("classify"):
                batch: ClassificationBatch = classify_all(documents, self.current_year)
            tl.set_classification(batch)

            cells, empty, thin = populate_cells(batch.documents, batch.cluster_labels)
            tl.set_cells(empty, thin)

            snapshot = CubeSnapshot(
                generation=generation,
                created_at_tick=tick,
                created_at=datetime.now(timezone.utc).isoformat(),
                total_documents=len(batch.documents),
                source_breakdown=dict(sample.source_breakdown),
                axis_labels={
                    "x": list(METHOD_LABELS),
                    "y": list(SURPRISE_LABELS),
                    "z": list(batch.cluster_labels),
                },
                cells=cells,
                from_cache=sample.from_cache,
                duration_ms=int((time.perf_counter() - start) * 1000),
            )

            with tl.time("persist"):
                self.store.write(snapshot)
            tl.set_generation(generation)

        logger.info(
            f"Generation {generation} complete: {snapshot.total_documents} documents "
            f"in {CELL_COUNT} cells ({snapshot.duration_ms}ms)"
        )
        return snapshot

    def latest(self) -> Optional[CubeSnapshot]:
        return self.store.read()

    def get_cell_description(self, cell_index: int, top_k: Optional[int] = None) -> Optional[dict]:
        """
        Labels, counts and top documents for one cell of the latest generation.

        Returns:
            Description dict, or None if no generation exists

        Raises:
            ValueError: If cell_index is not in 0..26
        """
        validate_cell(cell_index)
        top_k = top_k if top_k is not None else config.TOP_K_DOCUMENTS
        if top_k < 0:
            raise ValueError("top_k must be >= 0")

        snapshot = self.latest()
        if snapshot is None:
            return None

        cell = snapshot.cell(cell_index)
        return {
            "cell": cell.index,
            "generation": snapshot.generation,
            "x": cell.x,
            "y": cell.y,
            "z": cell.z,
            "method_label": cell.method_label,
            "surprise_label": cell.surprise_label,
            "cluster_label": cell.cluster_label,
            "paper_count": cell.paper_count,
            "avg_surprise_score": cell.avg_surprise_score,
            "top_documents": [asdict(d) for d in cell.documents[:top_k]],
            "description": cell.description,
        }

    def collision_score(self, cell_a: int, cell_b: int) -> CollisionScore:
        """Collision score for two cell indices (coordinates only)."""
        return collision.score_cells(cell_a, cell_b)

    def golden_pairs(self, limit: Optional[int] = None) -> list[tuple[int, int, CollisionScore]]:
        """All distinct unordered golden cell pairs, highest score first."""
        return collision.golden_pairs(limit)
