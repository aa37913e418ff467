"""
Weighted multi-source sampling for GapCube.

Pulls a diverse batch of documents from several independent sources:
1. Primary source fetched alone first (minimum viable sample)
2. Remaining sources fetched concurrently, one task per source
3. Results merged in priority order with cross-source dedup
4. Fallback keyword queries against the fallback source if under target
5. Whole batch cached (~1 hour) so repeated shuffles reuse it, once it can
   fill every cell

Documents whose abstract is shorter than MIN_ABSTRACT_CHARS are dropped as
they arrive (off by default).

Each source is bounded by its own timeout. A failing or slow source
contributes whatever it yielded and never stops the others.
"""

import asyncio
import importlib
import logging
import math
import time
from dataclasses import dataclass, field
from typing import Optional

from gapcube.config import config
from gapcube.models import CELL_COUNT, Document
from gapcube.queries import FALLBACK_QUERIES, build_query_list
from gapcube.sources.base import SourceAdapter
from gapcube.sources.cache import ApiCache
from gapcube.sources.identity import dedup_key, get_title_hash

logger = logging.getLogger(__name__)

DEFAULT_PER_QUERY = 25
WEIGHT_TOLERANCE = 1e-6


@dataclass
class WeightedSource:
    """One entry of the weight table, in priority order."""

    adapter: SourceAdapter
    weight: float
    label: str = ""
    queries: list[str] = field(default_factory=list)

    def __post_init__(self):
        if not self.label:
            self.label = self.adapter.name
        if self.weight <= 0:
            raise ValueError(f"Weight for source {self.label!r} must be positive")


@dataclass
class SourceFetch:
    """What one source yielded during a sampling run."""

    label: str
    documents: list[Document] = field(default_factory=list)
    queries_used: int = 0
    timed_out: bool = False
    error: Optional[str] = None
    elapsed_ms: float = 0.0


@dataclass
class SampleResult:
    """Deduplicated batch produced by one sampling run."""

    documents: list[Document]
    source_breakdown: dict[str, int]
    from_cache: bool = False
    queries_used: int = 0
    errors: list[str] = field(default_factory=list)
    source_latency_ms: dict[str, float] = field(default_factory=dict)

    @property
    def total(self) -> int:
        return len(self.documents)


def weighted_sources(
    adapters: dict[str, SourceAdapter],
    weights: Optional[dict[str, float]] = None,
) -> list[WeightedSource]:
    """
    Build a weight table for the given adapters.

    Priority follows the order of `weights` (default SOURCE_WEIGHTS). Adapters
    missing from the table are ignored; weights are renormalised to sum to 1.0.
    """
    weights = weights if weights is not None else config.SOURCE_WEIGHTS
    present = [(label, w) for label, w in weights.items() if label in adapters and w > 0]
    if not present:
        raise ValueError(f"No weighted source among adapters: {sorted(adapters)}")
    total = sum(w for _, w in present)
    return [
        WeightedSource(adapter=adapters[label], weight=w / total, label=label)
        for label, w in present
    ]


def load_sources(factory_path: str) -> list[WeightedSource]:
    """
    Resolve a "module:function" factory and call it for the weight table.

    The factory takes no arguments and returns a list of WeightedSource.
    """
    module_name, sep, attr = factory_path.partition(":")
    if not sep or not module_name or not attr:
        raise ValueError(f"Source factory must look like 'module:function', got {factory_path!r}")
    module = importlib.import_module(module_name)
    factory = getattr(module, attr)
    sources = list(factory())
    if not all(isinstance(s, WeightedSource) for s in sources):
        raise TypeError(f"{factory_path} must return WeightedSource instances")
    return sources


class _Merger:
    """Priority-ordered merge keyed by dedup id, then by normalized title."""

    def __init__(self):
        self.documents: list[Document] = []
        self._ids: set[str] = set()
        self._titles: set[str] = set()

    def add(self, document: Document) -> bool:
        key = dedup_key(document.id)
        title_hash = get_title_hash(document.title)
        if key in self._ids or (title_hash and title_hash in self._titles):
            return False
        self._ids.add(key)
        if title_hash:
            self._titles.add(title_hash)
        self.documents.append(document)
        return True

    def add_all(self, documents: list[Document]) -> int:
        return sum(1 for d in documents if self.add(d))

    def __len__(self) -> int:
        return len(self.documents)


class Sampler:
    """
    Weighted, priority-ordered sampler over a set of source adapters.

    Usage:
        sampler = Sampler([
            WeightedSource(openalex, 0.6),
            WeightedSource(pubmed, 0.4),
        ], target_total=2700)
        result = await sampler.sample()
    """

    def __init__(
        self,
        sources: list[WeightedSource],
        target_total: Optional[int] = None,
        per_query: int = DEFAULT_PER_QUERY,
        source_timeout: Optional[float] = None,
        fallback_label: Optional[str] = None,
        fallback_queries: Optional[list[str]] = None,
        cache: Optional[ApiCache] = None,
        min_abstract_chars: Optional[int] = None,
    ):
        """
        Args:
            sources: Weight table in priority order; weights must sum to 1.0
            target_total: Documents wanted (default SAMPLE_TARGET_TOTAL)
            per_query: Maximum documents requested per query
            source_timeout: Seconds allowed per source (default SOURCE_TIMEOUT_SECONDS)
            fallback_label: Source used for top-up queries (default: first source)
            fallback_queries: Top-up keyword queries (default FALLBACK_QUERIES)
            cache: Batch cache; None disables batch caching
            min_abstract_chars: Drop documents whose abstract is shorter
                (default MIN_ABSTRACT_CHARS; 0 keeps everything)
        """
        if not sources:
            raise ValueError("At least one source is required")

        total_weight = sum(s.weight for s in sources)
        if abs(total_weight - 1.0) > WEIGHT_TOLERANCE:
            raise ValueError(f"Source weights must sum to 1.0 (got {total_weight:.3f})")

        labels = [s.label for s in sources]
        if len(set(labels)) != len(labels):
            raise ValueError(f"Duplicate source labels: {labels}")

        self.sources = sources
        self.target_total = target_total if target_total is not None else config.SAMPLE_TARGET_TOTAL
        self.per_query = per_query
        self.source_timeout = (
            source_timeout if source_timeout is not None else config.SOURCE_TIMEOUT_SECONDS
        )
        self.fallback_queries = (
            fallback_queries if fallback_queries is not None else list(FALLBACK_QUERIES)
        )
        self.cache = cache
        self.min_abstract_chars = (
            min_abstract_chars if min_abstract_chars is not None else config.MIN_ABSTRACT_CHARS
        )

        fallback_label = fallback_label or sources[0].label
        matches = [s for s in sources if s.label == fallback_label]
        if not matches:
            raise ValueError(f"Unknown fallback source: {fallback_label!r}")
        self.fallback = matches[0]

    def targets(self) -> dict[str, int]:
        """Per-source document targets: ceil(weight * target_total)."""
        return {s.label: math.ceil(round(s.weight * self.target_total, 9)) for s in self.sources}

    def _keep(self, document: Document) -> bool:
        return len((document.abstract or "").strip()) >= self.min_abstract_chars

    @property
    def cache_key(self) -> str:
        return f"sample:{self.target_total}:{'+'.join(s.label for s in self.sources)}"

    # ------------------------------------------------------------------
    # Batch cache
    # ------------------------------------------------------------------

    def _read_cache(self) -> Optional[SampleResult]:
        if self.cache is None:
            return None
        try:
            cached = self.cache.get(self.cache_key)
            if not cached or not cached.get("documents"):
                return None
            documents = [Document.from_dict(d) for d in cached["documents"]]
        except Exception as e:
            logger.warning(f"Sample cache unreadable, resampling: {e}")
            return None

        logger.info(f"Using cached sample: {len(documents)} documents")
        return SampleResult(
            documents=documents,
            source_breakdown=dict(cached.get("source_breakdown", {})),
            from_cache=True,
            queries_used=int(cached.get("queries_used", 0)),
        )

    def _write_cache(self, result: SampleResult) -> None:
        if self.cache is None or not result.documents:
            return
        if result.total < CELL_COUNT:
            logger.info(f"Sample too small to cache ({result.total} documents)")
            return
        self.cache.set(self.cache_key, {
            "documents": [d.to_dict() for d in result.documents],
            "source_breakdown": result.source_breakdown,
            "queries_used": result.queries_used,
        })
        logger.debug(f"Sample cache written: {len(result.documents)} documents")

    # ------------------------------------------------------------------
    # Fetching
    # ------------------------------------------------------------------

    async def _collect(self, source: WeightedSource, target: int, fetch: SourceFetch) -> None:
        """Run queries for one source until its target is met or queries run out."""
        queries = source.queries or build_query_list()
        seen: set[str] = set()

        for query in queries:
            if len(fetch.documents) >= target:
                break
            limit = min(self.per_query, target - len(fetch.documents))
            try:
                batch = await source.adapter.search(query, limit)
            except Exception as e:
                logger.warning(f"[{source.label}] query failed {query[:50]!r}: {e}")
                batch = []
            fetch.queries_used += 1

            for doc in batch:
                key = dedup_key(doc.id)
                if key in seen:
                    continue
                seen.add(key)
                if not self._keep(doc):
                    continue
                fetch.documents.append(doc)

    async def _fetch_source(self, source: WeightedSource, target: int) -> SourceFetch:
        """Fetch one source under its timeout. Never raises."""
        fetch = SourceFetch(label=source.label)
        start = time.perf_counter()
        try:
            await asyncio.wait_for(self._collect(source, target, fetch), self.source_timeout)
        except asyncio.TimeoutError:
            fetch.timed_out = True
            fetch.error = f"{source.label}: timed out after {self.source_timeout:.0f}s"
            logger.warning(
                f"[{source.label}] timed out after {self.source_timeout:.0f}s "
                f"with {len(fetch.documents)} documents"
            )
        except Exception as e:
            fetch.error = f"{source.label}: {e}"
            logger.error(f"[{source.label}] fetch failed: {e}")
        fetch.elapsed_ms = (time.perf_counter() - start) * 1000

        logger.info(
            f"[{source.label}] {len(fetch.documents)}/{target} documents "
            f"from {fetch.queries_used} queries ({fetch.elapsed_ms:.0f}ms)"
        )
        return fetch

    async def _top_up(self, merger: _Merger, breakdown: dict[str, int]) -> int:
        """Fallback keyword queries until target is met. Returns queries used."""
        label = self.fallback.label
        used = 0
        for query in self.fallback_queries:
            if len(merger) >= self.target_total:
                break
            try:
                batch = await asyncio.wait_for(
                    self.fallback.adapter.search(query, self.per_query),
                    self.source_timeout,
                )
            except asyncio.TimeoutError:
                logger.warning(f"[{label}] fallback query timed out: {query!r}")
                batch = []
            except Exception as e:
                logger.warning(f"[{label}] fallback query failed {query!r}: {e}")
                batch = []
            used += 1
            breakdown[label] = breakdown.get(label, 0) + merger.add_all(
                [d for d in batch if self._keep(d)]
            )
        return used

    async def sample(self, use_cache: bool = True) -> SampleResult:
        """
        Produce one deduplicated sample.

        Args:
            use_cache: Reuse a fresh cached batch when available

        Returns:
            SampleResult (never raises for source failures)
        """
        if use_cache:
            cached = self._read_cache()
            if cached is not None:
                return cached

        targets = self.targets()
        primary, rest = self.sources[0], self.sources[1:]
        logger.info(
            f"Sampling {self.target_total} documents from {len(self.sources)} sources: "
            + ", ".join(f"{label}={t}" for label, t in targets.items())
        )

        fetches = [await self._fetch_source(primary, targets[primary.label])]
        if rest:
            fetches.extend(await asyncio.gather(
                *(self._fetch_source(s, targets[s.label]) for s in rest)
            ))

        merger = _Merger()
        breakdown: dict[str, int] = {}
        for fetch in fetches:
            breakdown[fetch.label] = merger.add_all(fetch.documents)

        queries_used = sum(f.queries_used for f in fetches)
        if len(merger) < self.target_total and self.fallback_queries:
            logger.info(
                f"Sample below target ({len(merger)}/{self.target_total}), "
                f"running fallback queries on {self.fallback.label}"
            )
            queries_used += await self._top_up(merger, breakdown)

        result = SampleResult(
            documents=merger.documents,
            source_breakdown=breakdown,
            from_cache=False,
            queries_used=queries_used,
            errors=[f.error for f in fetches if f.error],
            source_latency_ms={f.label: round(f.elapsed_ms, 1) for f in fetches},
        )
        logger.info(
            f"Sample complete: {result.total} unique documents from {queries_used} queries"
        )

        self._write_cache(result)
        return result
