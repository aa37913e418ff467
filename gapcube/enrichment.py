"""
Best-effort structural enrichment for sampled documents.

Enrichers are optional collaborators (retraction databases, citation graphs,
controlled-vocabulary method hints). Their payloads are validated and coerced
at this boundary; malformed fields are dropped. A failing enricher leaves the
document unchanged and never stops the shuffle.
"""

import asyncio
import dataclasses
import json
import logging
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Iterable, Mapping, Optional, Protocol, Union

from gapcube.config import config
from gapcube.models import Document, MethodHint
from gapcube.sources.cache import atomic_write_json
from gapcube.sources.identity import dedup_key, normalize_doi

logger = logging.getLogger(__name__)

RETRACTION_INDEX_TTL_SECONDS = 7 * 24 * 3600


@dataclass(frozen=True)
class EnrichmentSignals:
    """Structural signals for one document. None means "no information"."""

    is_retracted: Optional[bool] = None
    cites_retracted_count: Optional[int] = None
    citation_velocity_spike: Optional[bool] = None
    method_hint: Optional[MethodHint] = None

    @classmethod
    def from_payload(cls, payload: Any) -> "EnrichmentSignals":
        """
        Coerce an enricher payload into signals.

        Accepts an EnrichmentSignals instance or a mapping. Unknown keys are
        ignored; fields of the wrong type are dropped individually.
        """
        if isinstance(payload, cls):
            return payload
        if payload is None:
            return cls()
        if not isinstance(payload, Mapping):
            raise TypeError(f"Unsupported enrichment payload: {type(payload).__name__}")

        is_retracted = payload.get("is_retracted")
        if not isinstance(is_retracted, bool):
            is_retracted = None

        cites = payload.get("cites_retracted_count")
        if isinstance(cites, bool) or not isinstance(cites, int) or cites < 0:
            cites = None

        spike = payload.get("citation_velocity_spike")
        if not isinstance(spike, bool):
            spike = None

        return cls(
            is_retracted=is_retracted,
            cites_retracted_count=cites,
            citation_velocity_spike=spike,
            method_hint=_coerce_method_hint(payload.get("method_hint")),
        )

    @property
    def empty(self) -> bool:
        return all(getattr(self, f.name) is None for f in dataclasses.fields(self))

    def apply(self, document: Document) -> Document:
        """Return an annotated copy of `document`. Signals only ever add evidence."""
        changes: dict[str, Any] = {}
        if self.is_retracted:
            changes["is_retracted"] = True
        if self.cites_retracted_count is not None:
            changes["cites_retracted_count"] = max(
                document.cites_retracted_count, self.cites_retracted_count
            )
        if self.citation_velocity_spike:
            changes["citation_velocity_spike"] = True
        if self.method_hint is not None and (
            document.method_hint is None
            or self.method_hint.confidence > document.method_hint.confidence
        ):
            changes["method_hint"] = self.method_hint
        return dataclasses.replace(document, **changes) if changes else document


def _coerce_method_hint(value: Any) -> Optional[MethodHint]:
    if isinstance(value, MethodHint):
        return value if value.bucket in (0, 1, 2) else None
    if not isinstance(value, Mapping):
        return None
    bucket = value.get("bucket", value.get("method"))
    confidence = value.get("confidence")
    if isinstance(bucket, bool) or not isinstance(bucket, int) or bucket not in (0, 1, 2):
        return None
    if isinstance(confidence, bool) or not isinstance(confidence, (int, float)):
        return None
    if not 0.0 <= confidence <= 1.0:
        return None
    terms = value.get("matched_terms") or ()
    if not isinstance(terms, (list, tuple)):
        terms = ()
    return MethodHint(
        bucket=bucket,
        confidence=float(confidence),
        matched_terms=tuple(str(t) for t in terms),
    )


class Enricher(Protocol):
    """Optional collaborator returning structural signals for a document."""

    name: str

    async def enrich(self, document: Document) -> Union[EnrichmentSignals, Mapping[str, Any], None]:
        ...


async def enrich_documents(
    documents: list[Document],
    enrichers: Iterable[Enricher],
    concurrency: Optional[int] = None,
) -> list[Document]:
    """
    Run every enricher over every document with bounded concurrency.

    Args:
        documents: Sampled documents (not mutated)
        enrichers: Enricher instances; empty means no-op
        concurrency: Maximum in-flight enrich calls (default ENRICH_CONCURRENCY)

    Returns:
        Documents in input order, annotated where signals were found
    """
    enrichers = list(enrichers)
    if not enrichers or not documents:
        return list(documents)

    semaphore = asyncio.Semaphore(concurrency or config.ENRICH_CONCURRENCY)
    failures = 0

    async def _signals(enricher: Enricher, document: Document) -> Optional[EnrichmentSignals]:
        nonlocal failures
        name = getattr(enricher, "name", type(enricher).__name__)
        async with semaphore:
            try:
                payload = await enricher.enrich(document)
                return EnrichmentSignals.from_payload(payload)
            except Exception as e:
                failures += 1
                logger.debug(f"[{name}] enrichment failed for {document.id}: {e}")
                return None

    async def _enrich_one(document: Document) -> Document:
        results = await asyncio.gather(*(_signals(e, document) for e in enrichers))
        for signals in results:
            if signals is not None and not signals.empty:
                document = signals.apply(document)
        return document

    enriched = await asyncio.gather(*(_enrich_one(d) for d in documents))

    changed = sum(1 for before, after in zip(documents, enriched) if before is not after)
    logger.info(
        f"Enriched {changed}/{len(documents)} documents with {len(enrichers)} enrichers"
        + (f" ({failures} failures)" if failures else "")
    )
    return list(enriched)


class RetractionIndexEnricher:
    """
    Local enricher over a set of retracted DOIs.

    Marks retracted documents and counts references to retracted work.

    Usage:
        enricher = RetractionIndexEnricher.from_file(config.RETRACTION_INDEX_PATH)
        documents = await enrich_documents(documents, [enricher])
    """

    name = "retractions"

    def __init__(self, retracted_dois: Iterable[str] = ()):
        self.retracted = {normalize_doi(d) for d in retracted_dois if normalize_doi(d)}

    def __len__(self) -> int:
        return len(self.retracted)

    @classmethod
    def from_file(
        cls,
        path: Path,
        ttl_seconds: float = RETRACTION_INDEX_TTL_SECONDS,
        clock: Callable[[], float] = time.time,
    ) -> "RetractionIndexEnricher":
        """
        Load an index written by `save`. Missing, unreadable or stale files
        yield an empty index.
        """
        path = Path(path)
        if not path.exists():
            logger.info(f"No retraction index at {path}")
            return cls()
        try:
            with open(path, "r", encoding="utf-8") as f:
                data = json.load(f)
            age = clock() - float(data.get("timestamp", 0))
            if age > ttl_seconds:
                logger.warning(f"Retraction index {path} is stale ({age / 86400:.1f} days), ignoring")
                return cls()
            index = cls(data.get("dois", []))
        except Exception as e:
            logger.error(f"Failed to load retraction index {path}: {e}")
            return cls()

        logger.info(f"Loaded {len(index)} retracted DOIs from {path}")
        return index

    def save(self, path: Path, clock: Callable[[], float] = time.time) -> None:
        atomic_write_json(path, {"timestamp": clock(), "dois": sorted(self.retracted)})

    async def enrich(self, document: Document) -> EnrichmentSignals:
        doi = normalize_doi(document.doi) or dedup_key(document.id)
        cited = sum(1 for ref in document.referenced_ids if dedup_key(ref) in self.retracted)
        return EnrichmentSignals(
            is_retracted=doi in self.retracted,
            cites_retracted_count=cited,
        )
