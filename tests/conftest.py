"""
Pytest configuration and fixtures for GapCube tests.
"""

import asyncio
import pytest
import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from gapcube.models import Document, PrimaryTopic  # noqa: E402
from gapcube.sources.base import SourceAdapter  # noqa: E402


# =============================================================================
# Fake collaborators
# =============================================================================


class FakeAdapter(SourceAdapter):
    """
    In-memory source: each search returns the next `limit` documents of its pool.

    Args:
        name: Source name
        documents: Pool served across successive searches
        delay: Seconds to sleep per search (for timeout tests)
        fail: Raise on every search (adapters must not, the sampler must cope)
        journal: Shared list recording the order of searches across adapters
    """

    def __init__(self, name, documents=(), delay=0.0, fail=False, journal=None):
        self.name = name
        self.pool = list(documents)
        self.delay = delay
        self.fail = fail
        self.calls: list[tuple[str, int]] = []
        self.journal = journal
        self._cursor = 0

    async def search(self, query, limit):
        self.calls.append((query, limit))
        if self.journal is not None:
            self.journal.append(self.name)
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.fail:
            raise RuntimeError(f"{self.name} is down")
        batch = self.pool[self._cursor:self._cursor + limit]
        self._cursor += len(batch)
        return batch


@pytest.fixture
def fake_adapter():
    """Factory for FakeAdapter instances."""
    return FakeAdapter


# =============================================================================
# Sample data fixtures
# =============================================================================


def _make_document(id="doc:1", title="A study", abstract="", **kwargs) -> Document:
    return Document(id=id, title=title, abstract=abstract, **kwargs)


@pytest.fixture
def make_document():
    """Factory for Document instances with sensible defaults."""
    return _make_document


TOPIC_TEXT = {
    "imaging": (
        "Fluorescence microscopy imaging of tumour tissue",
        "Confocal microscopy and histology staining reveal tissue architecture "
        "in biopsy sections imaged with fluorescence tomography.",
    ),
    "computational": (
        "Deep learning neural network algorithm for protein structure",
        "A transformer neural network algorithm trained on sequence databases "
        "predicts protein structure with bayesian simulation pipelines.",
    ),
    "experimental": (
        "CRISPR knockout in a xenograft mouse model",
        "CRISPR cas9 knockout cell lines were injected in vivo and measured with "
        "western blot assay and qpcr in a xenograft mouse model.",
    ),
}

ANOMALY_SENTENCE = " Unexpectedly, the effect contradicts the prevailing model and is surprising."


def build_batch(per_topic: int = 12, source: str = "openalex") -> list[Document]:
    """Three clearly separated topical groups with a spread of surprise."""
    documents = []
    for topic, (title, abstract) in TOPIC_TEXT.items():
        for i in range(per_topic):
            anomalous = i % 3 == 0
            documents.append(Document(
                id=f"10.1000/{topic}.{i}",
                title=f"{title} variant {i}",
                abstract=abstract + (ANOMALY_SENTENCE if anomalous else ""),
                year=2020,
                citation_count=100 - i,
                source_name=source,
                doi=f"10.1000/{topic}.{i}",
            ))
    return documents


@pytest.fixture
def synthetic_batch():
    """36 documents across three well-separated topics."""
    return build_batch()


@pytest.fixture
def anomalous_document():
    """Retracted, high-velocity document full of anomaly markers."""
    return Document(
        id="10.1000/anomaly",
        title="Unexpectedly, a paradoxical response contradicts the standard model",
        abstract="Surprisingly, the result was inconsistent with prior reports.",
        year=2021,
        citation_count=40,
        is_retracted=True,
        citation_velocity_spike=True,
        primary_topic=PrimaryTopic(field="Medicine", subfield="Oncology"),
    )


def cli_sources():
    """Source factory for CLI tests ("conftest:cli_sources")."""
    from gapcube.sampler import WeightedSource
    return [WeightedSource(FakeAdapter("openalex", build_batch()), 1.0)]


# =============================================================================
# Pytest markers
# =============================================================================


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers", "slow: marks tests as slow (deselect with -m 'not slow')"
    )
