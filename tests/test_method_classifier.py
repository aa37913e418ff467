"""
Tests for the method axis classifier.
"""

from gapcube.classifier.method import classify_method, method_scores
from gapcube.models import MethodHint, PrimaryTopic


class TestMethodScores:
    """Tests for per-bucket scoring."""

    def test_no_signal_defaults_to_observation(self, make_document):
        """A document with no signals lands in bucket 0."""
        doc = make_document(title="A note", abstract="")
        assert method_scores(doc) == [0, 0, 0]
        assert classify_method(doc) == 0

    def test_free_text_terms(self, make_document):
        """Each matching term in title or abstract adds one point."""
        doc = make_document(
            title="Deep learning for histopathology",
            abstract="We train a neural network with a novel algorithm.",
        )
        scores = method_scores(doc)
        assert scores[1] == 3  # deep learning, neural network, algorithm
        assert classify_method(doc) == 1

    def test_declared_fields(self, make_document):
        """Declared fields add three points per matching bucket field."""
        doc = make_document(fields_of_study=("Chemistry",))
        assert method_scores(doc) == [0, 0, 3]
        assert classify_method(doc) == 2

    def test_concept_tags(self, make_document):
        """Concept tags add two points per matching concept."""
        doc = make_document(concept_tags=("Machine Learning", "Computational Biology"))
        assert method_scores(doc)[1] == 4

    def test_primary_topic(self, make_document):
        """A matching primary topic adds four points."""
        doc = make_document(
            primary_topic=PrimaryTopic(field="Computer Science", subfield="Artificial Intelligence")
        )
        assert method_scores(doc) == [0, 4, 0]

    def test_confident_hint(self, make_document):
        """A method hint above 0.3 confidence adds five points."""
        doc = make_document(
            fields_of_study=("Medicine",),
            method_hint=MethodHint(bucket=2, confidence=0.8),
        )
        assert classify_method(doc) == 2

    def test_weak_hint_ignored(self, make_document):
        """A method hint at 0.3 confidence or below is ignored."""
        doc = make_document(method_hint=MethodHint(bucket=2, confidence=0.3))
        assert method_scores(doc) == [0, 0, 0]

    def test_repository_baseline(self, make_document):
        """Code repositories get a computational baseline."""
        doc = make_document(title="A tool", doc_type="repository")
        assert classify_method(doc) == 1


class TestTies:
    """Tests for tie resolution."""

    def test_tie_resolves_to_lowest_bucket(self, make_document):
        """Tied buckets resolve to the lowest index."""
        doc = make_document(fields_of_study=("Computer Science", "Chemistry"))
        assert method_scores(doc) == [0, 3, 3]
        assert classify_method(doc) == 1

    def test_tie_with_observation(self, make_document):
        """Any tie involving bucket 0 gives 0."""
        doc = make_document(fields_of_study=("Medicine", "Computer Science"))
        assert classify_method(doc) == 0


class TestPurity:
    """Method classification is a pure function."""

    def test_repeatable(self, synthetic_batch):
        """Same input, same output."""
        first = [classify_method(d) for d in synthetic_batch]
        second = [classify_method(d) for d in synthetic_batch]
        assert first == second

    def test_range(self, synthetic_batch):
        """Always 0, 1 or 2; the synthetic topics map to their buckets."""
        buckets = [classify_method(d) for d in synthetic_batch]
        assert set(buckets) == {0, 1, 2}
        assert buckets[:12] == [0] * 12
        assert buckets[12:24] == [1] * 12
        assert buckets[24:] == [2] * 12
