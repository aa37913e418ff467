"""
Surprise axis (y): how far the work departs from expectation.

Raw score:
    strong anomaly markers     2 points per distinct hit (max 2 hits)
    weak deviation markers     1 point per distinct hit (max 3 hits)
    retracted                  +3
    cites retracted work       +2
    citation velocity spike    +2
    citation burst             +2  (>= 50 citations, published within 2 years)
    influential ratio >= 0.1   +1  (with >= 10 citations)

The raw score goes through a logistic curve centred at 3 and is bucketed:
    y = 0 if score <= 0.33, 1 if score <= 0.66, else 2
"""

import math
import re
from datetime import datetime, timezone
from functools import lru_cache
from typing import Optional

from gapcube.models import Document

STRONG_MARKERS = [
    "unexpectedly", "unexpected", "contrary to", "surprisingly", "surprising",
    "paradoxically", "paradoxical", "challenges the assumption",
    "contradicts", "contradicted", "failed to replicate", "inconsistent with",
    "counterintuitive", "counter-intuitive", "overturns", "unprecedented",
    "first report of", "previously unknown", "novel mechanism",
    "challenges the", "defies", "anomalous", "anomaly",
    "contradict", "disprove", "refute", "overturn",
]

WEAK_MARKERS = [
    "additionally", "incidental finding", "serendipitously", "serendipitous",
    "unanticipated", "not previously reported", "novel finding",
    "unexpected finding", "unexpected observation", "unexplained",
    "intriguing", "noteworthy", "remarkable", "unconventional",
    "atypical", "rare finding", "unusual", "divergent",
]

STRONG_POINTS = 2
STRONG_MAX_HITS = 2
WEAK_POINTS = 1
WEAK_MAX_HITS = 3

RETRACTED_BONUS = 3
CITES_RETRACTED_BONUS = 2
VELOCITY_SPIKE_BONUS = 2
BURST_BONUS = 2
BURST_MIN_CITATIONS = 50
BURST_WINDOW_YEARS = 1  # publication year >= current year - 1
INFLUENTIAL_BONUS = 1
INFLUENTIAL_MIN_RATIO = 0.1
INFLUENTIAL_MIN_CITATIONS = 10

LOGISTIC_SLOPE = 0.9
LOGISTIC_MIDPOINT = 3.0

DEVIATION_THRESHOLD = 0.33
ANOMALOUS_THRESHOLD = 0.66


@lru_cache(maxsize=None)
def _marker_pattern(markers: tuple[str, ...]) -> re.Pattern:
    # Longest first so "unexpectedly" wins over "unexpected" at the same position.
    alternation = "|".join(re.escape(m) for m in sorted(set(markers), key=len, reverse=True))
    return re.compile(rf"\b(?:{alternation})")


def count_hits(text: str, markers: list[str]) -> int:
    """
    Number of distinct markers found in text.

    Matches start on a word boundary and never overlap, so one word is one hit
    ("surprisingly" does not also count as "surprising").
    """
    return len({m.group(0) for m in _marker_pattern(tuple(markers)).finditer(text)})


def raw_surprise(doc: Document, current_year: Optional[int] = None) -> int:
    """Unsquashed surprise points for a document."""
    text = doc.text.lower()
    raw = STRONG_POINTS * min(STRONG_MAX_HITS, count_hits(text, STRONG_MARKERS))
    raw += WEAK_POINTS * min(WEAK_MAX_HITS, count_hits(text, WEAK_MARKERS))

    if doc.is_retracted:
        raw += RETRACTED_BONUS
    if doc.cites_retracted_count > 0:
        raw += CITES_RETRACTED_BONUS
    if doc.citation_velocity_spike:
        raw += VELOCITY_SPIKE_BONUS

    if current_year is None:
        current_year = datetime.now(timezone.utc).year
    if (
        doc.year is not None
        and doc.citation_count >= BURST_MIN_CITATIONS
        and doc.year >= current_year - BURST_WINDOW_YEARS
    ):
        raw += BURST_BONUS

    if (
        doc.citation_count >= INFLUENTIAL_MIN_CITATIONS
        and doc.influential_citation_count / doc.citation_count >= INFLUENTIAL_MIN_RATIO
    ):
        raw += INFLUENTIAL_BONUS

    return raw


def surprise_score(doc: Document, current_year: Optional[int] = None) -> float:
    """Surprise score in [0, 1], rounded to 3 decimals."""
    raw = raw_surprise(doc, current_year)
    score = 1 / (1 + math.exp(-LOGISTIC_SLOPE * (raw - LOGISTIC_MIDPOINT)))
    return round(max(0.0, min(1.0, score)), 3)


def surprise_bucket(score: float) -> int:
    if score <= DEVIATION_THRESHOLD:
        return 0
    if score <= ANOMALOUS_THRESHOLD:
        return 1
    return 2


def classify_surprise(doc: Document, current_year: Optional[int] = None) -> tuple[int, float]:
    """Return (y, surprise_score) for a document. Pure given current_year."""
    score = surprise_score(doc, current_year)
    return surprise_bucket(score), score
