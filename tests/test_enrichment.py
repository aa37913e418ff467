"""
Tests for best-effort structural enrichment.
"""

import asyncio
import logging

import pytest

from gapcube.enrichment import EnrichmentSignals, RetractionIndexEnricher, enrich_documents
from gapcube.models import MethodHint


class StaticEnricher:
    """Returns the same payload for every document."""

    def __init__(self, payload, name="static"):
        self.payload = payload
        self.name = name
        self.seen = []

    async def enrich(self, document):
        self.seen.append(document.id)
        return self.payload


class BrokenEnricher:
    name = "broken"

    async def enrich(self, document):
        raise ConnectionError("upstream down")


class TestSignals:
    """Tests for payload coercion."""

    def test_mapping_payload(self):
        """Well-typed mappings become signals."""
        signals = EnrichmentSignals.from_payload({
            "is_retracted": True,
            "cites_retracted_count": 2,
            "citation_velocity_spike": False,
            "method_hint": {"bucket": 1, "confidence": 0.9, "matched_terms": ["Algorithms"]},
            "ignored": "x",
        })
        assert signals.is_retracted is True
        assert signals.cites_retracted_count == 2
        assert signals.citation_velocity_spike is False
        assert signals.method_hint == MethodHint(1, 0.9, ("Algorithms",))

    def test_malformed_fields_dropped(self):
        """Wrongly typed fields are dropped one by one."""
        signals = EnrichmentSignals.from_payload({
            "is_retracted": "yes",
            "cites_retracted_count": -1,
            "citation_velocity_spike": 1,
            "method_hint": {"bucket": 5, "confidence": 0.9},
        })
        assert signals.empty

    def test_method_key_alias(self):
        """Hints may name the bucket as "method"."""
        signals = EnrichmentSignals.from_payload({"method_hint": {"method": 2, "confidence": 0.5}})
        assert signals.method_hint.bucket == 2

    def test_hint_confidence_range(self):
        """Confidence outside [0, 1] drops the hint."""
        signals = EnrichmentSignals.from_payload({"method_hint": {"bucket": 0, "confidence": 1.5}})
        assert signals.method_hint is None

    def test_none_payload(self):
        """None means no information."""
        assert EnrichmentSignals.from_payload(None).empty

    def test_non_mapping_payload(self):
        """Other payload types are rejected."""
        with pytest.raises(TypeError):
            EnrichmentSignals.from_payload(["is_retracted"])

    def test_apply_returns_copy(self, make_document):
        """apply() never mutates the input document."""
        doc = make_document()
        enriched = EnrichmentSignals(is_retracted=True, cites_retracted_count=1).apply(doc)
        assert doc.is_retracted is False
        assert enriched.is_retracted is True
        assert enriched.cites_retracted_count == 1

    def test_apply_only_adds_evidence(self, make_document):
        """False signals never clear existing evidence."""
        doc = make_document(is_retracted=True, cites_retracted_count=3)
        enriched = EnrichmentSignals(is_retracted=False, cites_retracted_count=1).apply(doc)
        assert enriched.is_retracted is True
        assert enriched.cites_retracted_count == 3

    def test_stronger_hint_wins(self, make_document):
        """A hint only replaces a weaker one."""
        doc = make_document(method_hint=MethodHint(0, 0.6))
        assert EnrichmentSignals(method_hint=MethodHint(2, 0.4)).apply(doc).method_hint.bucket == 0
        assert EnrichmentSignals(method_hint=MethodHint(2, 0.8)).apply(doc).method_hint.bucket == 2


class TestEnrichDocuments:
    """Tests for the enrichment pass."""

    def test_no_enrichers(self, synthetic_batch):
        """No enrichers is a no-op."""
        assert asyncio.run(enrich_documents(synthetic_batch, [])) == synthetic_batch

    def test_signals_applied_in_order(self, synthetic_batch):
        """Every document is enriched and order is kept."""
        enricher = StaticEnricher({"citation_velocity_spike": True})
        result = asyncio.run(enrich_documents(synthetic_batch, [enricher], concurrency=4))
        assert [d.id for d in result] == [d.id for d in synthetic_batch]
        assert all(d.citation_velocity_spike for d in result)
        assert sorted(enricher.seen) == sorted(d.id for d in synthetic_batch)

    def test_failing_enricher(self, synthetic_batch, caplog):
        """A failing enricher leaves documents unchanged and other enrichers still apply."""
        good = StaticEnricher({"is_retracted": True})
        with caplog.at_level(logging.INFO, logger="gapcube.enrichment"):
            result = asyncio.run(enrich_documents(synthetic_batch, [BrokenEnricher(), good]))
        assert all(d.is_retracted for d in result)
        assert f"({len(synthetic_batch)} failures)" in caplog.text

    def test_only_failures(self, synthetic_batch):
        """With only a failing enricher the batch comes back untouched."""
        result = asyncio.run(enrich_documents(synthetic_batch, [BrokenEnricher()]))
        assert result == synthetic_batch


class TestRetractionIndex:
    """Tests for the local retraction index."""

    def test_marks_retracted_and_citing(self, make_document):
        """Retracted DOIs and references to them are flagged."""
        index = RetractionIndexEnricher(["https://doi.org/10.1000/BAD"])
        docs = [
            make_document(id="10.1000/bad", doi="10.1000/bad"),
            make_document(id="10.1000/ok", referenced_ids=("doi:10.1000/bad", "10.1000/other")),
        ]
        result = asyncio.run(enrich_documents(docs, [index]))
        assert result[0].is_retracted is True
        assert result[1].is_retracted is False
        assert result[1].cites_retracted_count == 1

    def test_save_and_load(self, tmp_path):
        """An index round-trips through its file."""
        path = tmp_path / "retractions.json"
        RetractionIndexEnricher(["10.1/a", "10.1/b"]).save(path, clock=lambda: 1000.0)
        loaded = RetractionIndexEnricher.from_file(path, clock=lambda: 2000.0)
        assert loaded.retracted == {"10.1/a", "10.1/b"}

    def test_stale_file_ignored(self, tmp_path):
        """An index older than its TTL loads empty."""
        path = tmp_path / "retractions.json"
        RetractionIndexEnricher(["10.1/a"]).save(path, clock=lambda: 0.0)
        loaded = RetractionIndexEnricher.from_file(path, ttl_seconds=60, clock=lambda: 61.0)
        assert len(loaded) == 0

    def test_missing_or_corrupt_file(self, tmp_path):
        """Missing and unreadable files load empty."""
        assert len(RetractionIndexEnricher.from_file(tmp_path / "missing.json")) == 0
        corrupt = tmp_path / "corrupt.json"
        corrupt.write_text("[[[")
        assert len(RetractionIndexEnricher.from_file(corrupt)) == 0
