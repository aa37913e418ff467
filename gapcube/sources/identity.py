"""
Document identity for GapCube.

Provides stable dedup keys based on content identifiers.
Priority: DOI > source-qualified native ID

This ensures:
1. The same work fetched from two sources collapses to one document
2. DOIs differing only by case or URL prefix compare equal
3. Works without a DOI still get a key that cannot collide across sources
"""

import hashlib
import re
import unicodedata
from typing import Optional

_DOI_PREFIXES = (
    "https://doi.org/",
    "http://doi.org/",
    "https://dx.doi.org/",
    "http://dx.doi.org/",
    "doi.org/",
    "doi:",
)

_DOI_PATTERN = re.compile(r"^10\.\d{4,}/\S+$")


def normalize_title(title: str) -> str:
    """
    Normalize a title for hashing.

    Transformations:
    - Lowercase
    - Remove accents/diacritics
    - Remove punctuation
    - Collapse whitespace

    Examples:
        "The Transformer Architecture" -> "the transformer architecture"
        "BERT: Pre-training..." -> "bert pre training"
    """
    if not title:
        return ""

    text = title.lower()

    text = unicodedata.normalize("NFKD", text)
    text = "".join(c for c in text if not unicodedata.combining(c))

    text = re.sub(r"[^\w\s]", " ", text)

    return " ".join(text.split())


def get_title_hash(title: str) -> str:
    """SHA256 hex digest of the normalized title ("" for an empty title)."""
    normalized = normalize_title(title)
    if not normalized:
        return ""
    return hashlib.sha256(normalized.encode("utf-8")).hexdigest()


def normalize_doi(doi: Optional[str]) -> str:
    """
    Normalize a DOI to lowercase canonical form.

    Handles:
    - Full URLs (https://doi.org/10.1234/...)
    - doi: prefix
    - Whitespace
    """
    if not doi:
        return ""

    doi = doi.strip().lower()

    for prefix in _DOI_PREFIXES:
        if doi.startswith(prefix):
            doi = doi[len(prefix):]
            break

    return doi.strip()


def is_doi(value: Optional[str]) -> bool:
    return bool(_DOI_PATTERN.match(normalize_doi(value)))


def normalize_arxiv_id(arxiv_id: Optional[str]) -> str:
    """
    Normalize an arXiv ID.

    Handles:
    - Full URLs (https://arxiv.org/abs/2301.12345)
    - arXiv: prefix
    - Version suffixes (v1, v2)
    """
    if not arxiv_id:
        return ""

    arxiv_id = arxiv_id.strip()

    for prefix in ["https://arxiv.org/abs/", "http://arxiv.org/abs/", "arxiv:"]:
        if arxiv_id.lower().startswith(prefix.lower()):
            arxiv_id = arxiv_id[len(prefix):]

    arxiv_id = re.sub(r"v\d+$", "", arxiv_id)

    return arxiv_id.strip().lower()


def make_document_id(
    source: str,
    native_id: Optional[str] = None,
    doi: Optional[str] = None,
) -> str:
    """
    Build the dedup id for a sampled document.

    Priority order:
    1. Normalized DOI (cross-source)
    2. "<source>:<native_id>" (source-qualified)

    Raises:
        ValueError: If neither identifier is usable
    """
    normalized = normalize_doi(doi)
    if normalized:
        return normalized

    if native_id and str(native_id).strip():
        return f"{source.strip().lower()}:{str(native_id).strip()}"

    raise ValueError("At least one identifier (doi or native_id) required")


def dedup_key(identifier: str) -> str:
    """
    Case- and prefix-insensitive key for an id produced by any adapter.

    "https://doi.org/10.1/ABC", "doi:10.1/abc" and "10.1/abc" share a key.
    """
    normalized = normalize_doi(identifier)
    return normalized or (identifier or "").strip().lower()
