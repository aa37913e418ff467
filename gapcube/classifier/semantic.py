"""
Semantic axis (z): batch-wide topic clusters.

TF-IDF over title + abstract, restricted to the K heaviest terms in the
corpus, then k-means with k=3. Labels change every generation, derived from
the top TF-IDF terms of each cluster.
"""

import logging
import re

import numpy as np
from sklearn.cluster import KMeans
from sklearn.feature_extraction.text import TfidfVectorizer

from gapcube.models import Document

logger = logging.getLogger(__name__)

N_CLUSTERS = 3
MAX_FEATURES = 100
MAX_ITER = 100
RANDOM_STATE = 27
LABEL_TERMS = 3

_TOKEN_RE = re.compile(r"\w+")

STOPWORDS = frozenset([
    "the", "a", "an", "and", "or", "but", "in", "on", "at", "to", "for",
    "of", "with", "by", "from", "as", "is", "was", "are", "were", "been",
    "be", "have", "has", "had", "do", "does", "did", "will", "would",
    "could", "should", "may", "might", "shall", "can", "need", "dare",
    "this", "that", "these", "those", "it", "its", "they", "them", "their",
    "we", "our", "us", "he", "she", "him", "her", "his", "i", "me", "my",
    "not", "no", "nor", "so", "if", "then", "than", "too", "very", "also",
    "just", "about", "above", "after", "again", "all", "am", "any", "because",
    "before", "between", "both", "each", "few", "further", "here", "how",
    "into", "more", "most", "other", "out", "over", "own", "same", "some",
    "such", "through", "under", "until", "up", "what", "when", "where",
    "which", "while", "who", "whom", "why", "you", "your",
    # Academic boilerplate
    "study", "studies", "result", "results", "found", "showed", "show",
    "using", "used", "based", "however", "although", "among", "associated",
    "significant", "significantly", "compared", "respectively", "including",
    "included", "total", "group", "groups", "data", "analysis", "conclusion",
    "conclusions", "method", "methods", "background", "objective", "objectives",
    "purpose", "aim", "aims", "patients", "patient",
])


def tokenize(text: str, min_length: int = 3) -> list[str]:
    """Lowercased word tokens without stopwords or pure numbers."""
    return [
        t for t in _TOKEN_RE.findall((text or "").lower())
        if len(t) >= min_length and t not in STOPWORDS and not t.isdigit()
    ]


def _label_tokens(text: str) -> list[str]:
    return tokenize(text, min_length=4)


def round_robin(n: int) -> list[int]:
    return [i % N_CLUSTERS for i in range(n)]


def cluster_semantic(documents: list[Document], random_state: int = RANDOM_STATE) -> list[int]:
    """
    Assign each document a cluster in 0..2.

    Fewer than 3 documents with usable text, or any clustering failure,
    falls back to round-robin (index mod 3) for the whole batch.
    Documents without usable text join the largest cluster.

    Returns:
        Cluster per document, in input order
    """
    texts = [d.text for d in documents]
    valid = [i for i, text in enumerate(texts) if tokenize(text)]
    if len(valid) < N_CLUSTERS:
        logger.info(f"Only {len(valid)} documents with usable text, using round-robin clusters")
        return round_robin(len(documents))

    try:
        vectorizer = TfidfVectorizer(analyzer=tokenize)
        matrix = vectorizer.fit_transform([texts[i] for i in valid])

        n_features = min(MAX_FEATURES, 2 * len(valid))
        weights = np.asarray(matrix.sum(axis=0)).ravel()
        top = np.argsort(-weights, kind="stable")[:n_features]
        if len(top) < N_CLUSTERS:
            logger.info(f"Only {len(top)} feature terms, using round-robin clusters")
            return round_robin(len(documents))

        vectors = matrix[:, top].toarray()
        kmeans = KMeans(
            n_clusters=N_CLUSTERS,
            init="k-means++",
            max_iter=MAX_ITER,
            n_init=10,
            random_state=random_state,
        )
        labels = kmeans.fit_predict(vectors)
    except Exception as e:
        logger.error(f"k-means failed: {e}, falling back to round-robin")
        return round_robin(len(documents))

    largest = int(np.bincount(labels, minlength=N_CLUSTERS).argmax())
    assignments = [largest] * len(documents)
    for i, label in zip(valid, labels):
        assignments[i] = int(label)
    return assignments


def cluster_labels(documents: list[Document], assignments: list[int]) -> list[str]:
    """
    Human-readable label per cluster: top TF-IDF terms joined with "-".

    Empty clusters (or clusters with no usable terms) get "cluster-<z>".
    """
    members: list[list[str]] = [[] for _ in range(N_CLUSTERS)]
    for doc, z in zip(documents, assignments):
        members[z].append(doc.text)

    labels = []
    for z, texts in enumerate(members):
        label = f"cluster-{z}"
        if texts:
            try:
                vectorizer = TfidfVectorizer(analyzer=_label_tokens)
                matrix = vectorizer.fit_transform(texts)
                weights = np.asarray(matrix.sum(axis=0)).ravel()
                terms = vectorizer.get_feature_names_out()
                ranked = sorted(zip(terms, weights), key=lambda kv: -kv[1])
                top_terms = [term for term, _ in ranked[:LABEL_TERMS]]
                if top_terms:
                    label = "-".join(top_terms)
            except ValueError as e:
                logger.debug(f"No label terms for cluster {z}: {e}")
        labels.append(label)
    return labels
