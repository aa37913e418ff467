"""
Tests for the surprise axis classifier.
"""

import dataclasses

import pytest

from gapcube.classifier.surprise import (
    classify_surprise,
    raw_surprise,
    surprise_bucket,
    surprise_score,
)

YEAR = 2026


class TestRawScore:
    """Tests for raw point accumulation."""

    def test_plain_text(self, make_document):
        """No markers, no structural signals."""
        doc = make_document(title="Cohort study of diet", abstract="We measured intake.")
        assert raw_surprise(doc, YEAR) == 0

    def test_strong_markers_capped(self, make_document):
        """Strong markers count at most two hits."""
        doc = make_document(
            abstract="Surprisingly, paradoxically, this unprecedented anomaly defies theory."
        )
        assert raw_surprise(doc, YEAR) == 4

    def test_weak_markers_capped(self, make_document):
        """Weak markers count at most three hits."""
        doc = make_document(
            abstract="An intriguing, unusual, remarkable, noteworthy and atypical pattern."
        )
        assert raw_surprise(doc, YEAR) == 3

    @pytest.mark.parametrize(
        "abstract",
        [
            "Surprisingly, intake rose.",
            "Unexpectedly, intake rose.",
            "It contradicts earlier cohorts.",
            "This overturns earlier cohorts.",
            "This challenges the assumption of linear dose response.",
        ],
    )
    def test_one_strong_word_is_one_hit(self, make_document, abstract):
        """A marker nested in a longer marker is not counted twice."""
        doc = make_document(abstract=abstract)
        assert raw_surprise(doc, YEAR) == 2
        assert classify_surprise(doc, YEAR)[0] <= 1

    def test_inflected_marker_matches(self, make_document):
        """Markers match at the start of a word, so inflections still count."""
        doc = make_document(abstract="These data refuted the model.")
        assert raw_surprise(doc, YEAR) == 2

    def test_marker_inside_word_ignored(self, make_document):
        """A marker embedded mid-word is not a hit."""
        doc = make_document(abstract="Nonanomalous readings were discarded.")
        assert raw_surprise(doc, YEAR) == 0

    def test_structural_bonuses(self, make_document):
        """Retraction, retracted citations and velocity spikes add points."""
        doc = make_document(is_retracted=True)
        assert raw_surprise(doc, YEAR) == 3
        doc = make_document(cites_retracted_count=2)
        assert raw_surprise(doc, YEAR) == 2
        doc = make_document(citation_velocity_spike=True)
        assert raw_surprise(doc, YEAR) == 2

    def test_citation_burst(self, make_document):
        """Recent, highly cited work gets the burst bonus."""
        assert raw_surprise(make_document(year=2025, citation_count=60), YEAR) == 2
        assert raw_surprise(make_document(year=2023, citation_count=60), YEAR) == 0
        assert raw_surprise(make_document(year=2025, citation_count=49), YEAR) == 0

    def test_influential_ratio(self, make_document):
        """High influential-citation ratio adds a point."""
        doc = make_document(citation_count=20, influential_citation_count=2)
        assert raw_surprise(doc, YEAR) == 1
        doc = make_document(citation_count=5, influential_citation_count=5)
        assert raw_surprise(doc, YEAR) == 0


class TestScoreAndBucket:
    """Tests for the logistic score and bucketing."""

    def test_baseline_is_confirmatory(self, make_document):
        """Zero raw points gives a low score and y=0."""
        y, score = classify_surprise(make_document(), YEAR)
        assert score == pytest.approx(0.063)
        assert y == 0

    def test_midpoint_is_deviation(self, make_document):
        """Three raw points sit at the logistic midpoint."""
        doc = make_document(is_retracted=True)
        y, score = classify_surprise(doc, YEAR)
        assert score == 0.5
        assert y == 1

    def test_two_strong_markers_are_anomalous(self, make_document):
        """Two distinct strong markers reach y=2."""
        doc = make_document(abstract="Unexpectedly, the finding contradicts prior work.")
        assert classify_surprise(doc, YEAR)[0] == 2

    def test_recent_cited_anomaly_scenario(self, make_document):
        """Two strong phrases on a recent, well-cited paper reach y=2."""
        doc = make_document(
            abstract="Paradoxically, the effect failed to replicate in a second cohort.",
            is_retracted=False,
            year=2025,
            citation_count=120,
        )
        assert raw_surprise(doc, YEAR) == 6
        assert classify_surprise(doc, YEAR)[0] == 2

    def test_anomalous_scenario(self, anomalous_document):
        """Markers plus retraction and spike are clearly anomalous."""
        y, score = classify_surprise(anomalous_document, YEAR)
        assert y == 2
        assert score > 0.9

    def test_bucket_thresholds(self):
        """Thresholds are inclusive upper bounds."""
        assert surprise_bucket(0.33) == 0
        assert surprise_bucket(0.331) == 1
        assert surprise_bucket(0.66) == 1
        assert surprise_bucket(0.661) == 2

    def test_score_range(self, synthetic_batch):
        """Scores stay in [0, 1] with 3 decimals."""
        for doc in synthetic_batch:
            s = surprise_score(doc, YEAR)
            assert 0.0 <= s <= 1.0
            assert round(s, 3) == s


class TestMonotonicity:
    """Adding evidence never lowers surprise."""

    def test_signals_monotone(self, make_document):
        """Each added signal keeps or raises the score."""
        doc = make_document(title="A study", abstract="Results were intriguing.")
        previous = surprise_score(doc, YEAR)
        for change in (
            {"abstract": "Results were intriguing and unexpected."},
            {"citation_velocity_spike": True},
            {"cites_retracted_count": 1},
            {"is_retracted": True},
            {"year": 2026, "citation_count": 80},
        ):
            doc = dataclasses.replace(doc, **change)
            current = surprise_score(doc, YEAR)
            assert current >= previous
            previous = current

    def test_injected_year_is_deterministic(self, make_document):
        """The burst signal depends only on the injected reference year."""
        doc = make_document(year=2024, citation_count=100)
        assert surprise_score(doc, 2025) > surprise_score(doc, 2030)
