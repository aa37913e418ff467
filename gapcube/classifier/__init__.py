"""
Three-axis document classifier for GapCube.

    x (method):    0=imaging/observation, 1=computational, 2=experimental
    y (surprise):  0=confirmatory, 1=deviation, 2=anomalous
    z (semantic):  0..2 via TF-IDF + k-means, relabelled every generation

Method and surprise are pure per-document functions; the semantic axis is
computed over the whole batch. All classification is keyword/statistics
based, with no model calls.
"""

import logging
from dataclasses import dataclass, field
from typing import Optional

from gapcube.classifier.method import classify_method, method_scores
from gapcube.classifier.semantic import cluster_labels, cluster_semantic, tokenize
from gapcube.classifier.surprise import classify_surprise, surprise_score
from gapcube.models import (
    METHOD_LABELS,
    SURPRISE_LABELS,
    Classification,
    ClassifiedDocument,
    Document,
)

logger = logging.getLogger(__name__)

__all__ = [
    "ClassificationBatch",
    "classify_all",
    "classify_method",
    "classify_surprise",
    "cluster_labels",
    "cluster_semantic",
    "method_scores",
    "surprise_score",
    "tokenize",
]


@dataclass
class ClassificationBatch:
    """Output of classifying one sample."""

    documents: list[ClassifiedDocument]
    cluster_labels: list[str]
    method_distribution: list[int] = field(default_factory=lambda: [0, 0, 0])
    surprise_distribution: list[int] = field(default_factory=lambda: [0, 0, 0])
    cluster_distribution: list[int] = field(default_factory=lambda: [0, 0, 0])

    @property
    def avg_surprise(self) -> float:
        if not self.documents:
            return 0.0
        total = sum(d.classification.surprise_score for d in self.documents)
        return round(total / len(self.documents), 3)


def classify_all(
    documents: list[Document],
    current_year: Optional[int] = None,
) -> ClassificationBatch:
    """
    Classify a batch along all three axes.

    Args:
        documents: Sampled (optionally enriched) documents
        current_year: Reference year for the citation-burst signal

    Returns:
        ClassificationBatch with per-axis distributions
    """
    logger.info(f"Classifying {len(documents)} documents on 3 axes")

    clusters = cluster_semantic(documents)
    labels = cluster_labels(documents, clusters)
    batch = ClassificationBatch(documents=[], cluster_labels=labels)

    for doc, z in zip(documents, clusters):
        x = classify_method(doc)
        y, score = classify_surprise(doc, current_year)
        batch.documents.append(ClassifiedDocument(doc, Classification(x=x, y=y, surprise_score=score, z=z)))
        batch.method_distribution[x] += 1
        batch.surprise_distribution[y] += 1
        batch.cluster_distribution[z] += 1

    logger.info(
        "Method:   " + " ".join(
            f"{label}={n}" for label, n in zip(METHOD_LABELS, batch.method_distribution)
        )
    )
    logger.info(
        "Surprise: " + " ".join(
            f"{label}={n}" for label, n in zip(SURPRISE_LABELS, batch.surprise_distribution)
        )
        + f" (avg {batch.avg_surprise})"
    )
    logger.info(
        "Semantic: " + " ".join(
            f"{label}={n}" for label, n in zip(labels, batch.cluster_distribution)
        )
    )
    return batch
