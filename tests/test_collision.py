"""
Tests for golden collision scoring.
"""

import itertools

import pytest

from gapcube import collision
from gapcube.collision import golden_pairs, score, score_cells, surprise_interaction


class TestSurpriseInteraction:
    """Tests for the surprise component."""

    def test_floor_when_both_confirmatory(self):
        """Two confirmatory cells still get the floor."""
        assert surprise_interaction(0, 0) == pytest.approx(0.1)

    def test_max_when_both_anomalous(self):
        """Two anomalous cells get the full interaction."""
        assert surprise_interaction(2, 2) == pytest.approx(1.0)

    def test_one_sided(self):
        """One anomalous cell alone is rewarded, but less."""
        assert surprise_interaction(0, 2) == pytest.approx(0.1 + 0.9 * 0.25)
        assert surprise_interaction(0, 2) < surprise_interaction(1, 2)


class TestScore:
    """Tests for the pair score."""

    def test_known_value(self):
        """Observation/confirmatory vs experimental/anomalous in another cluster."""
        result = score((0, 0, 0), (2, 2, 1))
        assert result.score == pytest.approx(0.764, abs=1e-3)
        assert result.golden is True
        assert result.components.method_distance == 1.0
        assert result.components.semantic_distance == 1.0

    def test_maximum(self):
        """Opposite methods, both anomalous, different clusters score 1.0."""
        assert score((0, 2, 0), (2, 2, 1)).score == 1.0

    def test_self_collision_never_golden(self):
        """A cell colliding with itself is never golden."""
        for cell in range(27):
            result = score_cells(cell, cell)
            assert result.golden is False
            assert result.components.method_distance == 0.0
            assert result.components.semantic_distance == collision.SAME_CLUSTER_DISTANCE

    def test_symmetric(self):
        """score(a, b) == score(b, a) for every pair."""
        for a, b in itertools.combinations(range(27), 2):
            assert score_cells(a, b) == score_cells(b, a)

    def test_range(self):
        """Scores stay within [0, 1]."""
        for a, b in itertools.product(range(27), repeat=2):
            assert 0.0 <= score_cells(a, b).score <= 1.0

    def test_golden_iff_above_threshold(self):
        """golden is exactly score > 0.5."""
        for a, b in itertools.combinations(range(27), 2):
            result = score_cells(a, b)
            assert result.golden == (result.score > 0.5)

    def test_invalid_cell(self):
        """Invalid indices raise ValueError."""
        with pytest.raises(ValueError):
            score_cells(0, 27)


class TestGoldenPairs:
    """Tests for golden pair enumeration."""

    def test_sorted_and_distinct(self):
        """Pairs are golden, distinct, unordered and highest first."""
        pairs = golden_pairs()
        assert pairs
        scores = [s.score for _, _, s in pairs]
        assert scores == sorted(scores, reverse=True)
        assert all(a < b for a, b, _ in pairs)
        assert all(s.golden for _, _, s in pairs)
        assert pairs[0][2].score == 1.0

    def test_limit(self):
        """Limit truncates the list."""
        assert len(golden_pairs(5)) == 5
