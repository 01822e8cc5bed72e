"""Search service holding the current index snapshot."""

from __future__ import annotations

import threading
import time
from pathlib import Path

from markdown_retrieval.config import INDEX_PATH, UiSettings, load_ui_settings
from markdown_retrieval.errors import MalformedIndexFile
from markdown_retrieval.indexing import build_index_from_path
from markdown_retrieval.models import (
    Index,
    IndexSummary,
    RelatedDocument,
    ScoredChunk,
    SearchResult,
)
from markdown_retrieval.related import related_chunks, related_documents
from markdown_retrieval.retrieval import search
from markdown_retrieval.storage import load_index, write_capsule, write_index
from markdown_retrieval.telemetry import configure_logging, log_event


class SearchService:
    """Serves queries from an immutable index that is replaced wholesale.

    Readers grab the current ``Index`` reference once per call, so a concurrent
    ``swap`` never exposes a partially built index. Query-time failures are
    logged and answered with empty results.
    """

    def __init__(
        self,
        index_path: Path = INDEX_PATH,
        *,
        settings: UiSettings | None = None,
        index: Index | None = None,
    ) -> None:
        self.index_path = index_path
        self.settings = settings or load_ui_settings()
        self._index = index if index is not None else Index.empty()
        self._swap_lock = threading.Lock()
        self.logger = configure_logging()

    @property
    def index(self) -> Index:
        return self._index

    def swap(self, index: Index) -> None:
        with self._swap_lock:
            previous = self._index
            self._index = index
        log_event(
            self.logger,
            "index_swapped",
            previous_chunks=len(previous.chunks),
            chunks=len(index.chunks),
            built_at=index.built_at,
        )

    def reload(self) -> bool:
        """Load the persisted index; keep the current snapshot if it is unusable."""
        try:
            index = load_index(self.index_path)
        except MalformedIndexFile as exc:
            log_event(
                self.logger,
                "index_load_failed",
                path=str(self.index_path),
                error=str(exc),
                serving_chunks=len(self._index.chunks),
            )
            return False
        self.swap(index)
        return True

    def rebuild(
        self,
        corpus_dir: Path,
        *,
        capsule_path: Path | None = None,
    ) -> IndexSummary:
        """Build, persist and swap in a new index.

        The build and the write complete before the swap, so a failure leaves
        both the served snapshot and the file on disk as they were.
        """
        index, summary = build_index_from_path(
            corpus_dir, tag_aliases=self.settings.tag_aliases
        )
        write_index(index, self.index_path)
        if capsule_path is not None:
            write_capsule(index, capsule_path)
        self.swap(index)
        return summary

    def search(
        self, query: str, limit: int | None = None, *, tag: str | None = None
    ) -> SearchResult:
        index = self._index
        max_results = self.settings.search.max_results if limit is None else limit
        try:
            result = search(index, query, max_results, tag=tag)
        except Exception:
            self.logger.exception("search_failed", extra={"event": "search_failed"})
            return SearchResult(query=query, chunks=[], latency_ms=0.0)
        log_event(
            self.logger,
            "search",
            query=query,
            results=len(result.chunks),
            latency_ms=result.latency_ms,
        )
        return result

    def related(
        self,
        chunk_id: str,
        *,
        k: int | None = None,
        tag_weight: float | None = None,
    ) -> list[ScoredChunk]:
        index = self._index
        related = self.settings.related
        try:
            return related_chunks(
                index,
                chunk_id,
                k=related.k if k is None else k,
                tag_weight=related.tag_weight if tag_weight is None else tag_weight,
            )
        except Exception:
            self.logger.exception("related_failed", extra={"event": "related_failed"})
            return []

    def related_documents(
        self,
        rel_path: str,
        *,
        k: int | None = None,
        tag_weight: float | None = None,
    ) -> list[RelatedDocument]:
        index = self._index
        related = self.settings.related
        try:
            return related_documents(
                index,
                rel_path,
                k=related.k if k is None else k,
                tag_weight=related.tag_weight if tag_weight is None else tag_weight,
            )
        except Exception:
            self.logger.exception("related_failed", extra={"event": "related_failed"})
            return []


def open_service(
    index_path: Path = INDEX_PATH,
    *,
    settings_path: Path | None = None,
) -> SearchService:
    """Create a service and load the persisted index if one is available."""
    start = time.perf_counter()
    service = SearchService(index_path, settings=load_ui_settings(settings_path))
    loaded = service.reload()
    log_event(
        service.logger,
        "service_ready",
        index_path=str(index_path),
        loaded=loaded,
        chunks=len(service.index.chunks),
        elapsed_ms=(time.perf_counter() - start) * 1000,
    )
    return service

