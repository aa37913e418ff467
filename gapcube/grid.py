"""
Cube mathematics for the 3x3x3 grid.

Cell mapping: cell = z*9 + y*3 + x where x, y, z are in {0, 1, 2}.

Neighbour types (by how many axes differ):
    face   - 1 axis differs
    edge   - 2 axes differ
    corner - 3 axes differ
"""

from functools import lru_cache
from typing import Optional

from gapcube.models import CELL_COUNT

FACE = "face"
EDGE = "edge"
CORNER = "corner"

_NEIGHBOR_TYPES = {1: FACE, 2: EDGE, 3: CORNER}


def validate_cell(cell: int) -> int:
    """Return cell unchanged, or raise ValueError if it is not in 0..26."""
    if isinstance(cell, bool) or not isinstance(cell, int) or not 0 <= cell < CELL_COUNT:
        raise ValueError(f"Cell index must be an integer in 0..{CELL_COUNT - 1}, got {cell!r}")
    return cell


def cell_to_coords(cell: int) -> tuple[int, int, int]:
    """Map a cell index to (x, y, z)."""
    validate_cell(cell)
    return cell % 3, (cell // 3) % 3, cell // 9


def coords_to_cell(x: int, y: int, z: int) -> int:
    """Map (x, y, z) to a cell index."""
    for axis, value in (("x", x), ("y", y), ("z", z)):
        if value not in (0, 1, 2):
            raise ValueError(f"{axis} must be 0, 1 or 2, got {value!r}")
    return z * 9 + y * 3 + x


def neighbor_type(cell_a: int, cell_b: int) -> Optional[str]:
    """
    Relation between two cells that touch in the cube.

    Returns None for the same cell or cells more than one step apart on any axis.
    """
    a = cell_to_coords(cell_a)
    b = cell_to_coords(cell_b)
    if any(abs(i - j) > 1 for i, j in zip(a, b)):
        return None
    diffs = sum(1 for i, j in zip(a, b) if i != j)
    return _NEIGHBOR_TYPES.get(diffs)


@lru_cache(maxsize=None)
def neighbors(cell: int) -> tuple[int, ...]:
    """All cells touching `cell` (up to 26 for the centre)."""
    return tuple(
        other for other in range(CELL_COUNT)
        if neighbor_type(cell, other) is not None
    )


def neighbors_by_type(cell: int) -> dict[str, list[int]]:
    grouped: dict[str, list[int]] = {FACE: [], EDGE: [], CORNER: []}
    for other in neighbors(cell):
        grouped[neighbor_type(cell, other)].append(other)
    return grouped


def render_layer(z: int, counts: dict[int, int]) -> str:
    """Text rendering of one z layer, highest y row first."""
    lines = [f"z={z}"]
    for y in (2, 1, 0):
        row = []
        for x in range(3):
            cell = coords_to_cell(x, y, z)
            row.append(f"[{cell:02d}:{counts.get(cell, 0):>4}]")
        lines.append(" ".join(row))
    return "\n".join(lines)


def render_cube(counts: dict[int, int]) -> str:
    return "\n\n".join(render_layer(z, counts) for z in (2, 1, 0))
