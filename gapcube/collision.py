"""
Golden collision scoring.

A collision pairs two cells. Higher score = more different method, more
surprising content, different semantic cluster = more potential for a novel
cross-domain gap.

Components:
    method_distance:       |x1 - x2| / 2                       (0-1)
    surprise_interaction:  floor + blend of mean and geometric mean of y/2
                           (rewards both anomalous, never zero)
    semantic_distance:     1.0 if z1 != z2 else 0.3

Golden threshold: score > 0.5
"""

import itertools
import math
from typing import Optional

from gapcube.grid import cell_to_coords
from gapcube.models import CELL_COUNT, CollisionComponents, CollisionScore

METHOD_WEIGHT = 0.45
SURPRISE_WEIGHT = 0.35
SEMANTIC_WEIGHT = 0.20

SURPRISE_FLOOR = 0.1
SAME_CLUSTER_DISTANCE = 0.3
DIFFERENT_CLUSTER_DISTANCE = 1.0

GOLDEN_THRESHOLD = 0.5
PRECISION = 3

Coords = tuple[int, int, int]


def surprise_interaction(y_a: int, y_b: int) -> float:
    a = y_a / 2
    b = y_b / 2
    blend = 0.5 * ((a + b) / 2) + 0.5 * math.sqrt(a * b)
    return SURPRISE_FLOOR + (1 - SURPRISE_FLOOR) * blend


def score(cell_a: Coords, cell_b: Coords) -> CollisionScore:
    """
    Score a collision between two cells given as (x, y, z) coordinates.

    Symmetric: score(a, b) == score(b, a).
    """
    xa, ya, za = cell_a
    xb, yb, zb = cell_b

    method_distance = abs(xa - xb) / 2
    surprise = surprise_interaction(ya, yb)
    semantic_distance = DIFFERENT_CLUSTER_DISTANCE if za != zb else SAME_CLUSTER_DISTANCE

    raw = (
        METHOD_WEIGHT * method_distance
        + SURPRISE_WEIGHT * surprise
        + SEMANTIC_WEIGHT * semantic_distance
    )
    value = round(max(0.0, min(1.0, raw)), PRECISION)

    return CollisionScore(
        score=value,
        golden=value > GOLDEN_THRESHOLD,
        components=CollisionComponents(
            method_distance=round(method_distance, PRECISION),
            surprise_interaction=round(surprise, PRECISION),
            semantic_distance=semantic_distance,
        ),
    )


def score_cells(cell_a: int, cell_b: int) -> CollisionScore:
    """Score two cells given by index (0-26)."""
    return score(cell_to_coords(cell_a), cell_to_coords(cell_b))


def golden_pairs(limit: Optional[int] = None) -> list[tuple[int, int, CollisionScore]]:
    """All distinct unordered golden cell pairs, highest score first."""
    pairs = []
    for a, b in itertools.combinations(range(CELL_COUNT), 2):
        result = score_cells(a, b)
        if result.golden:
            pairs.append((a, b, result))
    pairs.sort(key=lambda p: (-p[2].score, p[0], p[1]))
    return pairs[:limit] if limit is not None else pairs
