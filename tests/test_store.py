"""
Tests for snapshot persistence.
"""

import json

from gapcube.models import CubeSnapshot
from gapcube.shuffler import populate_cells
from gapcube.store import SnapshotStore


def _snapshot(generation=1):
    cells, _, _ = populate_cells([], ["alpha", "beta", "gamma"])
    return CubeSnapshot(
        generation=generation,
        created_at_tick=50 * generation,
        created_at="2026-01-01T00:00:00+00:00",
        total_documents=0,
        source_breakdown={"openalex": 0},
        axis_labels={"x": ["a", "b", "c"], "y": ["d", "e", "f"], "z": ["alpha", "beta", "gamma"]},
        cells=cells,
    )


class TestSnapshotStore:
    """Tests for SnapshotStore."""

    def test_missing(self, tmp_path):
        """No file means no generation."""
        store = SnapshotStore(tmp_path / "cube.json")
        assert store.exists() is False
        assert store.read() is None
        assert store.latest_generation() == 0

    def test_roundtrip(self, tmp_path):
        """A written snapshot reads back equal."""
        store = SnapshotStore(tmp_path / "cube.json")
        snapshot = _snapshot(3)
        store.write(snapshot)

        loaded = store.read()

        assert loaded == snapshot
        assert loaded.cell(13).cluster_label == "beta"
        assert store.latest_generation() == 3

    def test_replace(self, tmp_path):
        """A new write fully replaces the previous generation."""
        store = SnapshotStore(tmp_path / "cube.json")
        store.write(_snapshot(1))
        store.write(_snapshot(2))
        assert store.latest_generation() == 2
        assert sorted(p.name for p in tmp_path.iterdir()) == ["cube.json"]

    def test_corrupt_file(self, tmp_path):
        """An unreadable file reads as no generation."""
        path = tmp_path / "cube.json"
        path.write_text("{")
        assert SnapshotStore(path).read() is None

    def test_wrong_cell_count(self, tmp_path):
        """A snapshot without exactly 27 cells is rejected."""
        path = tmp_path / "cube.json"
        data = _snapshot().to_dict()
        data["cells"] = data["cells"][:26]
        path.write_text(json.dumps(data))
        assert SnapshotStore(path).read() is None
