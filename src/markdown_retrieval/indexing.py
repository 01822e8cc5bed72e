"""TF-IDF index build helpers."""

from __future__ import annotations

import math
import time
from collections import Counter
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterable, Mapping

from markdown_retrieval.config import (
    CHUNK_MAX_CHARS,
    CHUNK_MIN_CHARS,
    MAX_TERMS_PER_CHUNK,
    SNIPPET_CHARS,
)
from markdown_retrieval.ingestion.chunking import chunk_text, make_snippet
from markdown_retrieval.ingestion.pipeline import load_corpus
from markdown_retrieval.models import (
    Chunk,
    Index,
    IndexSummary,
    IngestSummary,
    LoadedDocument,
)
from markdown_retrieval.telemetry import configure_logging, log_event
from markdown_retrieval.tokenizer import tokenize

INDEX_VERSION = 1


def inverse_document_frequency(df: int, total_chunks: int) -> float:
    """Smoothed IDF: ``ln((N + 1) / (df + 1)) + 1``.

    Always at least 1 for ``df <= N`` and strictly decreasing in ``df``.
    """
    return math.log((total_chunks + 1) / (df + 1)) + 1.0


def build_index(
    documents: Iterable[LoadedDocument],
    *,
    min_chars: int = CHUNK_MIN_CHARS,
    max_chars: int = CHUNK_MAX_CHARS,
    snippet_chars: int = SNIPPET_CHARS,
    max_terms_per_chunk: int = MAX_TERMS_PER_CHUNK,
    built_at: str | None = None,
    summary: IngestSummary | None = None,
) -> Index:
    pending: list[tuple[LoadedDocument, int, str, Counter[str]]] = []
    df: Counter[str] = Counter()
    for document in documents:
        spans = chunk_text(document.body, min_chars=min_chars, max_chars=max_chars)
        if not spans and summary is not None:
            summary.documents_empty += 1
        for span in spans:
            tf = Counter(tokenize(span.text))
            df.update(tf.keys())
            pending.append((document, span.offset, span.text, tf))

    total_chunks = len(pending)
    idf = {
        term: inverse_document_frequency(count, total_chunks)
        for term, count in df.items()
    }

    chunks: list[Chunk] = []
    vocab: set[str] = set()
    for document, offset, text, tf in pending:
        weights = _weigh_terms(tf, idf, max_terms=max_terms_per_chunk)
        vocab.update(weights)
        chunks.append(
            Chunk(
                id=f"{document.rel_path}#{offset}",
                href=document.href,
                rel_path=document.rel_path,
                title=document.title,
                date=document.date,
                tags=document.tags,
                snippet=make_snippet(text, limit=snippet_chars),
                vector=weights,
            )
        )
    return Index(
        idf={term: idf[term] for term in vocab},
        chunks=tuple(chunks),
        version=INDEX_VERSION,
        built_at=built_at or datetime.now(timezone.utc).isoformat(),
    )


def _weigh_terms(
    tf: Mapping[str, int], idf: Mapping[str, float], *, max_terms: int
) -> dict[str, float]:
    weights = [
        (term, count * idf.get(term, 1.0))
        for term, count in tf.items()
        if count * idf.get(term, 1.0) > 0
    ]
    if max_terms > 0 and len(weights) > max_terms:
        weights.sort(key=lambda item: (-item[1], item[0]))
        weights = weights[:max_terms]
    return dict(weights)


def build_index_from_path(
    corpus_dir: Path,
    *,
    min_chars: int = CHUNK_MIN_CHARS,
    max_chars: int = CHUNK_MAX_CHARS,
    snippet_chars: int = SNIPPET_CHARS,
    max_terms_per_chunk: int = MAX_TERMS_PER_CHUNK,
    tag_aliases: Mapping[str, str] | None = None,
) -> tuple[Index, IndexSummary]:
    start = time.perf_counter()
    logger = configure_logging()
    documents, ingest = load_corpus(corpus_dir, tag_aliases=tag_aliases)
    index = build_index(
        documents,
        min_chars=min_chars,
        max_chars=max_chars,
        snippet_chars=snippet_chars,
        max_terms_per_chunk=max_terms_per_chunk,
        summary=ingest,
    )
    elapsed_ms = (time.perf_counter() - start) * 1000
    summary = IndexSummary(
        documents_indexed=len({chunk.rel_path for chunk in index.chunks}),
        chunks_indexed=len(index.chunks),
        terms=len(index.idf),
        elapsed_ms=elapsed_ms,
        ingest=ingest,
    )
    log_event(logger, "index_built", corpus_dir=str(corpus_dir), **summary.to_dict())
    return index, summary
