"""Related-item ranking: cosine similarity blended with tag overlap."""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass
from typing import Iterable, Mapping

import numpy as np

from markdown_retrieval.config import DEFAULT_RELATED_K, DEFAULT_TAG_WEIGHT
from markdown_retrieval.models import (
    Chunk,
    Index,
    RelatedDocument,
    ScoredChunk,
    vector_norm,
)
from markdown_retrieval.retrieval import rank_scores, sparse_dot


def jaccard(left: Iterable[str], right: Iterable[str]) -> float:
    """Intersection over union; 0.0 when both sets are empty."""
    a, b = set(left), set(right)
    union = a | b
    if not union:
        return 0.0
    return len(a & b) / len(union)


def cosine(
    left: Mapping[str, float],
    right: Mapping[str, float],
    left_norm: float,
    right_norm: float,
) -> float:
    return sparse_dot(left, right) / ((left_norm or 1.0) * (right_norm or 1.0))


def blended_score(
    target: Chunk | "DocumentVector",
    candidate: Chunk | "DocumentVector",
    tag_weight: float,
) -> float:
    similarity = cosine(target.vector, candidate.vector, target.norm, candidate.norm)
    return similarity + tag_weight * jaccard(target.tags, candidate.tags)


def related_chunks(
    index: Index,
    chunk_id: str,
    *,
    k: int = DEFAULT_RELATED_K,
    tag_weight: float = DEFAULT_TAG_WEIGHT,
) -> list[ScoredChunk]:
    """Top-``k`` chunks related to ``chunk_id``, excluding the chunk itself.

    Negative ``k`` and ``tag_weight`` are clamped to zero; an unknown id
    yields no results.
    """
    k, tag_weight = _clamp(k, tag_weight)
    target = index.get(chunk_id)
    if target is None or k == 0:
        return []
    scores = np.zeros(len(index.chunks), dtype=np.float64)
    for pos, candidate in enumerate(index.chunks):
        if candidate.id == target.id:
            continue
        scores[pos] = blended_score(target, candidate, tag_weight)
    return [
        ScoredChunk(chunk=index.chunks[pos], score=float(scores[pos]))
        for pos in rank_scores(scores, k)
    ]


@dataclass(frozen=True)
class DocumentVector:
    rel_path: str
    href: str
    title: str
    date: str
    tags: tuple[str, ...]
    vector: Mapping[str, float]
    norm: float


def document_vectors(chunks: Iterable[Chunk]) -> dict[str, DocumentVector]:
    """Average chunk vectors per document; tags are the union over its chunks."""
    first: dict[str, Chunk] = {}
    sums: dict[str, defaultdict[str, float]] = {}
    counts: dict[str, int] = defaultdict(int)
    tags: dict[str, dict[str, None]] = {}
    for chunk in chunks:
        rel = chunk.rel_path
        if rel not in first:
            first[rel] = chunk
            sums[rel] = defaultdict(float)
            tags[rel] = {}
        counts[rel] += 1
        for term, weight in chunk.vector.items():
            sums[rel][term] += weight
        for tag in chunk.tags:
            tags[rel][tag] = None
    docs: dict[str, DocumentVector] = {}
    for rel, head in first.items():
        mean = {term: total / counts[rel] for term, total in sums[rel].items()}
        docs[rel] = DocumentVector(
            rel_path=rel,
            href=head.href,
            title=head.title,
            date=head.date,
            tags=tuple(tags[rel]),
            vector=mean,
            norm=vector_norm(mean),
        )
    return docs


def related_documents(
    index: Index,
    rel_path: str,
    *,
    k: int = DEFAULT_RELATED_K,
    tag_weight: float = DEFAULT_TAG_WEIGHT,
) -> list[RelatedDocument]:
    """Top-``k`` documents related to ``rel_path`` using mean chunk vectors."""
    k, tag_weight = _clamp(k, tag_weight)
    docs = document_vectors(index.chunks)
    target = docs.get(rel_path)
    if target is None or k == 0:
        return []
    candidates = [doc for rel, doc in docs.items() if rel != rel_path]
    scores = np.array(
        [blended_score(target, doc, tag_weight) for doc in candidates],
        dtype=np.float64,
    )
    return [
        RelatedDocument(
            rel_path=candidates[pos].rel_path,
            href=candidates[pos].href,
            title=candidates[pos].title,
            date=candidates[pos].date,
            tags=candidates[pos].tags,
            score=float(scores[pos]),
        )
        for pos in rank_scores(scores, k)
    ]


def _clamp(k: int, tag_weight: float) -> tuple[int, float]:
    return max(0, int(k)), max(0.0, float(tag_weight))
