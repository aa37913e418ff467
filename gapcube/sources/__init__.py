"""
Source adapter contract and shared provider plumbing for GapCube.

Concrete providers subclass SourceAdapter (or HttpSourceAdapter for HTTP
APIs) and are handed to the Sampler together with their weight.
"""

from .base import SourceAdapter, HttpSourceAdapter, RateLimitedError, SourceRequest
from .cache import ApiCache, atomic_write_json
from .identity import dedup_key, make_document_id, normalize_doi, normalize_title
from .rate_limiter import RateLimiter

__all__ = [
    "SourceAdapter",
    "HttpSourceAdapter",
    "SourceRequest",
    "RateLimitedError",
    "ApiCache",
    "atomic_write_json",
    "dedup_key",
    "make_document_id",
    "normalize_doi",
    "normalize_title",
    "RateLimiter",
]
