"""
Shared typed records for GapCube.

Documents are produced by source adapters and never mutated; enrichment
returns annotated copies. Cells and snapshots are built wholesale by one
shuffle and superseded by the next.
"""

from dataclasses import dataclass, field, asdict
from typing import Any, Optional

METHOD_LABELS = ("imaging/observation", "computational", "experimental")
SURPRISE_LABELS = ("confirmatory", "deviation", "anomalous")

CELL_COUNT = 27


@dataclass(frozen=True)
class PrimaryTopic:
    """Field/subfield pair reported by the source (e.g. OpenAlex topics)."""

    field: str = ""
    subfield: str = ""


@dataclass(frozen=True)
class MethodHint:
    """Controlled-vocabulary method signal (e.g. derived from MeSH terms)."""

    bucket: int
    confidence: float
    matched_terms: tuple[str, ...] = ()


@dataclass(frozen=True)
class Document:
    """Normalized unit sampled from any source."""

    id: str
    title: str
    abstract: str = ""
    year: Optional[int] = None
    citation_count: int = 0
    influential_citation_count: int = 0
    concept_tags: tuple[str, ...] = ()
    fields_of_study: tuple[str, ...] = ()
    primary_topic: Optional[PrimaryTopic] = None
    source_name: str = "unknown"
    doc_type: str = "article"  # article, preprint, repository
    doi: Optional[str] = None

    # Structural signals (filled by enrichment)
    is_retracted: bool = False
    cites_retracted_count: int = 0
    citation_velocity_spike: bool = False
    referenced_ids: tuple[str, ...] = ()
    method_hint: Optional[MethodHint] = None

    @property
    def text(self) -> str:
        """Title and abstract joined, as used by the text classifiers."""
        return f"{self.title or ''} {self.abstract or ''}".strip()

    def to_dict(self) -> dict:
        """Convert to JSON-serializable dict."""
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Document":
        """Rebuild a Document from `to_dict` output."""
        topic = data.get("primary_topic")
        hint = data.get("method_hint")
        return cls(
            id=data["id"],
            title=data.get("title") or "",
            abstract=data.get("abstract") or "",
            year=data.get("year"),
            citation_count=int(data.get("citation_count") or 0),
            influential_citation_count=int(data.get("influential_citation_count") or 0),
            concept_tags=tuple(data.get("concept_tags") or ()),
            fields_of_study=tuple(data.get("fields_of_study") or ()),
            primary_topic=PrimaryTopic(**topic) if topic else None,
            source_name=data.get("source_name") or "unknown",
            doc_type=data.get("doc_type") or "article",
            doi=data.get("doi"),
            is_retracted=bool(data.get("is_retracted", False)),
            cites_retracted_count=int(data.get("cites_retracted_count") or 0),
            citation_velocity_spike=bool(data.get("citation_velocity_spike", False)),
            referenced_ids=tuple(data.get("referenced_ids") or ()),
            method_hint=MethodHint(
                bucket=int(hint["bucket"]),
                confidence=float(hint["confidence"]),
                matched_terms=tuple(hint.get("matched_terms") or ()),
            ) if hint else None,
        )


@dataclass(frozen=True)
class Classification:
    """Axis assignment for one document."""

    x: int
    y: int
    surprise_score: float
    z: int

    @property
    def cell_index(self) -> int:
        return self.z * 9 + self.y * 3 + self.x


@dataclass(frozen=True)
class ClassifiedDocument:
    document: Document
    classification: Classification

    @property
    def cell_index(self) -> int:
        return self.classification.cell_index


@dataclass
class CellDocument:
    """Compact document view stored inside a snapshot cell."""

    id: str
    title: str
    abstract: str = ""
    year: Optional[int] = None
    citation_count: int = 0
    doi: Optional[str] = None
    source_name: str = "unknown"
    fields_of_study: list[str] = field(default_factory=list)
    surprise_score: float = 0.0

    ABSTRACT_CHARS = 300

    @classmethod
    def from_classified(cls, item: ClassifiedDocument) -> "CellDocument":
        doc = item.document
        return cls(
            id=doc.id,
            title=doc.title,
            abstract=(doc.abstract or "")[: cls.ABSTRACT_CHARS],
            year=doc.year,
            citation_count=doc.citation_count,
            doi=doc.doi,
            source_name=doc.source_name,
            fields_of_study=list(doc.fields_of_study),
            surprise_score=item.classification.surprise_score,
        )


@dataclass
class Cell:
    """One bucket of the 3x3x3 grid."""

    index: int
    x: int
    y: int
    z: int
    method_label: str
    surprise_label: str
    cluster_label: str
    documents: list[CellDocument] = field(default_factory=list)
    paper_count: int = 0
    avg_surprise_score: float = 0.0

    @property
    def description(self) -> str:
        return (
            f"{self.method_label} | {self.surprise_label} | {self.cluster_label} "
            f"({self.paper_count} papers)"
        )

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Cell":
        docs = [CellDocument(**d) for d in data.get("documents", [])]
        return cls(
            index=data["index"],
            x=data["x"],
            y=data["y"],
            z=data["z"],
            method_label=data["method_label"],
            surprise_label=data["surprise_label"],
            cluster_label=data["cluster_label"],
            documents=docs,
            paper_count=data.get("paper_count", len(docs)),
            avg_surprise_score=data.get("avg_surprise_score", 0.0),
        )


@dataclass
class CubeSnapshot:
    """One immutable generation of the grid."""

    generation: int
    created_at_tick: int
    created_at: str
    total_documents: int
    source_breakdown: dict[str, int]
    axis_labels: dict[str, list[str]]
    cells: list[Cell]
    from_cache: bool = False
    duration_ms: int = 0

    def cell(self, index: int) -> Cell:
        return self.cells[index]

    @property
    def distribution(self) -> dict[int, int]:
        return {c.index: c.paper_count for c in self.cells}

    def to_dict(self) -> dict:
        """Convert to JSON-serializable dict."""
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "CubeSnapshot":
        cells = [Cell.from_dict(c) for c in data["cells"]]
        if len(cells) != CELL_COUNT:
            raise ValueError(f"Snapshot has {len(cells)} cells, expected {CELL_COUNT}")
        return cls(
            generation=int(data["generation"]),
            created_at_tick=int(data["created_at_tick"]),
            created_at=data.get("created_at", ""),
            total_documents=int(data["total_documents"]),
            source_breakdown=dict(data.get("source_breakdown", {})),
            axis_labels={k: list(v) for k, v in data.get("axis_labels", {}).items()},
            cells=cells,
            from_cache=bool(data.get("from_cache", False)),
            duration_ms=int(data.get("duration_ms", 0)),
        )


@dataclass(frozen=True)
class CollisionComponents:
    method_distance: float
    surprise_interaction: float
    semantic_distance: float


@dataclass(frozen=True)
class CollisionScore:
    """Pair score between two cells. Computed on demand, never persisted."""

    score: float
    golden: bool
    components: CollisionComponents

    def to_dict(self) -> dict:
        return asdict(self)
