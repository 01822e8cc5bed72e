"""Corpus traversal and per-document loading."""

from __future__ import annotations

from pathlib import Path
from typing import Mapping

from markdown_retrieval.config import HREF_PREFIX, MAX_DOC_BYTES, REL_PATH_PREFIX
from markdown_retrieval.errors import CorpusReadError
from markdown_retrieval.ingestion.loaders import SUPPORTED_SUFFIXES, load_document
from markdown_retrieval.models import IngestSummary, LoadedDocument
from markdown_retrieval.telemetry import configure_logging, log_event


def load_corpus(
    path: Path,
    *,
    max_doc_bytes: int = MAX_DOC_BYTES,
    rel_path_prefix: str = REL_PATH_PREFIX,
    href_prefix: str = HREF_PREFIX,
    tag_aliases: Mapping[str, str] | None = None,
) -> tuple[list[LoadedDocument], IngestSummary]:
    """Load every Markdown file under ``path`` in sorted order.

    Unreadable files are logged and skipped; a missing corpus directory yields
    an empty list.
    """
    logger = configure_logging()
    files = _collect_files(path)
    corpus_root = path if path.is_dir() else path.parent
    summary = IngestSummary(files_seen=len(files))
    documents: list[LoadedDocument] = []
    for file_path in files:
        try:
            doc, report = load_document(
                file_path,
                corpus_root=corpus_root,
                max_doc_bytes=max_doc_bytes,
                rel_path_prefix=rel_path_prefix,
                href_prefix=href_prefix,
                tag_aliases=tag_aliases,
            )
        except CorpusReadError as exc:
            summary.record_skip("read_error")
            log_event(
                logger,
                "document_skipped",
                source_path=exc.path,
                reason="read_error",
                detail=exc.reason,
            )
            continue
        if doc is None:
            reason = report.skip_reason or "load_failed"
            summary.record_skip(reason)
            log_event(
                logger,
                "document_skipped",
                source_path=report.source_path,
                reason=reason,
                bytes_total=report.bytes_total,
            )
            continue
        documents.append(doc)
        summary.documents_loaded += 1
    return documents, summary


def _collect_files(path: Path) -> list[Path]:
    if path.is_file():
        return [path] if path.suffix.lower() in SUPPORTED_SUFFIXES else []
    if not path.is_dir():
        return []
    files = [
        candidate
        for candidate in path.rglob("*")
        if candidate.is_file() and candidate.suffix.lower() in SUPPORTED_SUFFIXES
    ]
    return sorted(files, key=lambda candidate: candidate.relative_to(path).as_posix())
