"""
Tests for cube coordinate math.
"""

import pytest

from gapcube.grid import (
    CORNER,
    EDGE,
    FACE,
    cell_to_coords,
    coords_to_cell,
    neighbor_type,
    neighbors,
    neighbors_by_type,
    render_cube,
    render_layer,
)


class TestCoordinates:
    """Tests for index <-> coordinate mapping."""

    def test_roundtrip_all_cells(self):
        """Every cell maps to coordinates and back."""
        for cell in range(27):
            assert coords_to_cell(*cell_to_coords(cell)) == cell

    def test_known_cells(self):
        """Spot-check the z*9 + y*3 + x layout."""
        assert cell_to_coords(0) == (0, 0, 0)
        assert cell_to_coords(5) == (2, 1, 0)
        assert cell_to_coords(13) == (1, 1, 1)
        assert coords_to_cell(2, 2, 2) == 26

    @pytest.mark.parametrize("bad", [-1, 27, 3.0, True, "1"])
    def test_rejects_invalid_index(self, bad):
        """Out-of-range or non-integer indices raise."""
        with pytest.raises(ValueError):
            cell_to_coords(bad)

    def test_rejects_invalid_coords(self):
        """Coordinates must be 0, 1 or 2."""
        with pytest.raises(ValueError):
            coords_to_cell(3, 0, 0)


class TestNeighbors:
    """Tests for neighbour relations."""

    def test_types(self):
        """Neighbour type depends on number of differing axes."""
        assert neighbor_type(13, 14) == FACE
        assert neighbor_type(13, 9) == EDGE
        assert neighbor_type(13, 0) == CORNER

    def test_not_neighbors(self):
        """Same cell and distant cells have no relation."""
        assert neighbor_type(0, 0) is None
        assert neighbor_type(0, 26) is None

    def test_centre_touches_everything(self):
        """The centre cell touches all 26 others."""
        assert len(neighbors(13)) == 26

    def test_corner_neighbors(self):
        """A corner cell has 3 face, 3 edge and 1 corner neighbour."""
        grouped = neighbors_by_type(0)
        assert len(grouped[FACE]) == 3
        assert len(grouped[EDGE]) == 3
        assert len(grouped[CORNER]) == 1


class TestRendering:
    """Tests for text rendering."""

    def test_layer_contains_counts(self):
        """Rendered layer lists each cell with its count."""
        text = render_layer(0, {0: 7, 8: 3})
        assert text.startswith("z=0")
        assert "[00:   7]" in text
        assert "[08:   3]" in text

    def test_cube_has_three_layers(self):
        """Cube rendering shows all three layers."""
        text = render_cube({})
        for z in range(3):
            assert f"z={z}" in text
