"""Shared data models for the markdown retrieval layer."""

from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Mapping

import numpy as np


def vector_norm(weights: Mapping[str, float]) -> float:
    """Euclidean length of a sparse vector; 1.0 for an empty or zero vector."""
    if not weights:
        return 1.0
    norm = float(np.linalg.norm(np.fromiter(weights.values(), dtype=np.float64)))
    return norm or 1.0


@dataclass(frozen=True)
class LoadedDocument:
    rel_path: str
    href: str
    title: str
    date: str
    tags: tuple[str, ...]
    body: str
    conversation_id: str = ""


@dataclass(frozen=True)
class LoadReport:
    source_path: str
    bytes_total: int
    skip_reason: str | None


@dataclass(frozen=True)
class ChunkSpan:
    text: str
    offset: int


@dataclass(frozen=True)
class Chunk:
    """Atomic retrievable unit; ``norm`` always matches ``vector``."""

    id: str
    href: str
    rel_path: str
    title: str
    date: str
    tags: tuple[str, ...]
    snippet: str
    vector: Mapping[str, float]
    norm: float = field(init=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "vector", MappingProxyType(dict(self.vector)))
        object.__setattr__(self, "norm", vector_norm(self.vector))

    def to_dict(self) -> dict[str, Any]:
        ordered = sorted(self.vector.items(), key=lambda item: (-item[1], item[0]))
        return {
            "id": self.id,
            "href": self.href,
            "relPath": self.rel_path,
            "title": self.title,
            "date": self.date,
            "tags": list(self.tags),
            "snippet": self.snippet,
            "vector": [[term, weight] for term, weight in ordered],
            "norm": self.norm,
        }


@dataclass(frozen=True)
class Index:
    """Immutable snapshot of term statistics plus the ordered chunk sequence."""

    idf: Mapping[str, float]
    chunks: tuple[Chunk, ...]
    version: int = 1
    built_at: str = ""
    _by_id: dict[str, int] = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "idf", MappingProxyType(dict(self.idf)))
        object.__setattr__(
            self, "_by_id", {chunk.id: pos for pos, chunk in enumerate(self.chunks)}
        )

    @classmethod
    def empty(cls) -> "Index":
        return cls(idf={}, chunks=())

    @property
    def is_empty(self) -> bool:
        return not self.chunks

    def get(self, chunk_id: str) -> Chunk | None:
        pos = self._by_id.get(chunk_id)
        return None if pos is None else self.chunks[pos]

    def to_dict(self) -> dict[str, Any]:
        return {
            "version": self.version,
            "builtAt": self.built_at,
            "idf": {term: self.idf[term] for term in sorted(self.idf)},
            "chunksCount": len(self.chunks),
            "chunks": [chunk.to_dict() for chunk in self.chunks],
        }


@dataclass(frozen=True)
class ScoredChunk:
    chunk: Chunk
    score: float

    @property
    def chunk_id(self) -> str:
        return self.chunk.id

    def to_dict(self) -> dict[str, Any]:
        payload = self.chunk.to_dict()
        payload["score"] = self.score
        return payload


@dataclass(frozen=True)
class RelatedDocument:
    rel_path: str
    href: str
    title: str
    date: str
    tags: tuple[str, ...]
    score: float

    def to_dict(self) -> dict[str, Any]:
        return {
            "relPath": self.rel_path,
            "href": self.href,
            "title": self.title,
            "date": self.date,
            "tags": list(self.tags),
            "score": self.score,
        }


@dataclass
class SearchResult:
    query: str
    chunks: list[ScoredChunk]
    latency_ms: float


@dataclass
class IngestSummary:
    files_seen: int = 0
    documents_loaded: int = 0
    documents_empty: int = 0
    files_skipped: int = 0
    skip_reasons: dict[str, int] = field(default_factory=dict)

    def record_skip(self, reason: str) -> None:
        self.files_skipped += 1
        self.skip_reasons[reason] = self.skip_reasons.get(reason, 0) + 1

    def to_dict(self) -> dict[str, Any]:
        return {
            "files_seen": self.files_seen,
            "documents_loaded": self.documents_loaded,
            "documents_empty": self.documents_empty,
            "files_skipped": self.files_skipped,
            "skip_reasons": self.skip_reasons,
        }


@dataclass
class IndexSummary:
    documents_indexed: int
    chunks_indexed: int
    terms: int
    elapsed_ms: float
    ingest: IngestSummary

    def to_dict(self) -> dict[str, Any]:
        return {
            "documents_indexed": self.documents_indexed,
            "chunks_indexed": self.chunks_indexed,
            "terms": self.terms,
            "elapsed_ms": self.elapsed_ms,
            **self.ingest.to_dict(),
        }

