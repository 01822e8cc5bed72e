"""Query scoring: TF-IDF cosine similarity over the chunk vectors."""

from __future__ import annotations

import time
from collections import Counter
from typing import Iterable, Mapping

import numpy as np

from markdown_retrieval.config import DEFAULT_MAX_RESULTS
from markdown_retrieval.models import (
    Chunk,
    Index,
    ScoredChunk,
    SearchResult,
    vector_norm,
)
from markdown_retrieval.tags import normalize_tag
from markdown_retrieval.tokenizer import tokenize


def query_vector(query: str, idf: Mapping[str, float]) -> dict[str, float]:
    """Weight query terms as ``tf * idf``; terms unseen at build time weigh ``tf``."""
    tf = Counter(tokenize(query))
    weights: dict[str, float] = {}
    for term, count in tf.items():
        weight = count * idf.get(term, 1.0)
        if weight > 0:
            weights[term] = weight
    return weights


def sparse_dot(left: Mapping[str, float], right: Mapping[str, float]) -> float:
    small, large = (left, right) if len(left) <= len(right) else (right, left)
    total = 0.0
    for term, weight in small.items():
        other = large.get(term)
        if other:
            total += weight * other
    return total


def rank_scores(scores: np.ndarray, limit: int | None) -> list[int]:
    """Positions of positive scores, highest first; ties keep input order."""
    order = np.argsort(-scores, kind="stable")
    ranked = [int(pos) for pos in order if scores[pos] > 0]
    return ranked if limit is None else ranked[:limit]


def score_chunks(query: str, index: Index) -> np.ndarray:
    weights = query_vector(query, index.idf)
    scores = np.zeros(len(index.chunks), dtype=np.float64)
    if not weights:
        return scores
    query_norm = vector_norm(weights)
    for pos, chunk in enumerate(index.chunks):
        dot = sparse_dot(weights, chunk.vector)
        if dot:
            scores[pos] = dot / (query_norm * (chunk.norm or 1.0))
    return scores


def search(
    index: Index,
    query: str,
    max_results: int | None = DEFAULT_MAX_RESULTS,
    *,
    tag: str | None = None,
) -> SearchResult:
    """Rank chunks of ``index`` against ``query`` by cosine similarity.

    Empty and all-stop-word queries return no chunks. ``tag`` keeps only chunks
    carrying that tag after normalization; the cap applies after filtering.
    """
    start = time.perf_counter()
    limit = None if max_results is None else max(0, int(max_results))
    if index.is_empty or not query.strip():
        return SearchResult(query=query, chunks=[], latency_ms=0.0)
    scores = score_chunks(query, index)
    wanted = normalize_tag(tag) if tag else ""
    if wanted:
        for pos, chunk in enumerate(index.chunks):
            if wanted not in chunk.tags:
                scores[pos] = 0.0
    ranked = [
        ScoredChunk(chunk=index.chunks[pos], score=float(scores[pos]))
        for pos in rank_scores(scores, limit)
    ]
    latency_ms = (time.perf_counter() - start) * 1000
    return SearchResult(query=query, chunks=ranked, latency_ms=latency_ms)


def tag_facets(
    chunks: Iterable[ScoredChunk | Chunk], limit: int | None = None
) -> list[tuple[str, int]]:
    """Tag counts over a result list, most frequent first, then by name."""
    counts: Counter[str] = Counter()
    for item in chunks:
        chunk = item.chunk if isinstance(item, ScoredChunk) else item
        counts.update(chunk.tags)
    facets = sorted(counts.items(), key=lambda item: (-item[1], item[0]))
    return facets if limit is None else facets[: max(0, limit)]
