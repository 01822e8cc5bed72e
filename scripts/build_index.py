"""Script to build the TF-IDF index from a Markdown corpus."""

from __future__ import annotations

import argparse
from pathlib import Path
import sys
import time

try:
    from markdown_retrieval.config import (
        CAPSULE_PATH,
        CHUNK_MAX_CHARS,
        CHUNK_MIN_CHARS,
        CORPUS_DIR,
        INDEX_PATH,
        MAX_TERMS_PER_CHUNK,
        load_ui_settings,
    )
    from markdown_retrieval.indexing import build_index_from_path
    from markdown_retrieval.storage import write_capsule, write_index
    from markdown_retrieval.telemetry import configure_logging, log_event
except ModuleNotFoundError:
    repo_root = Path(__file__).resolve().parents[1]
    sys.path.insert(0, str(repo_root / "src"))
    from markdown_retrieval.config import (  # type: ignore[reportMissingImports]
        CAPSULE_PATH,
        CHUNK_MAX_CHARS,
        CHUNK_MIN_CHARS,
        CORPUS_DIR,
        INDEX_PATH,
        MAX_TERMS_PER_CHUNK,
        load_ui_settings,
    )
    from markdown_retrieval.indexing import build_index_from_path  # type: ignore[reportMissingImports]
    from markdown_retrieval.storage import write_capsule, write_index  # type: ignore[reportMissingImports]
    from markdown_retrieval.telemetry import (  # type: ignore[reportMissingImports]
        configure_logging,
        log_event,
    )


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Build the TF-IDF search index from a Markdown corpus"
    )
    parser.add_argument(
        "--path",
        type=Path,
        default=CORPUS_DIR,
        help="Corpus directory to index (default from config)",
    )
    parser.add_argument(
        "--output",
        type=Path,
        default=INDEX_PATH,
        help="Where to write the JSON index",
    )
    parser.add_argument(
        "--min-chars",
        type=int,
        default=CHUNK_MIN_CHARS,
        help="Chunks shorter than this absorb the following chunk",
    )
    parser.add_argument(
        "--max-chars",
        type=int,
        default=CHUNK_MAX_CHARS,
        help="Target maximum chunk size in characters",
    )
    parser.add_argument(
        "--max-terms",
        type=int,
        default=MAX_TERMS_PER_CHUNK,
        help="Keep only the heaviest N terms per chunk (0 keeps all)",
    )
    parser.add_argument(
        "--settings",
        type=Path,
        default=None,
        help="Settings JSON providing tagAliases (default from config)",
    )
    parser.add_argument(
        "--capsule",
        action="store_true",
        help="Also write the PNG capsule",
    )
    parser.add_argument(
        "--capsule-path",
        type=Path,
        default=CAPSULE_PATH,
        help="Where to write the PNG capsule",
    )
    return parser.parse_args()


def main() -> None:
    args = parse_args()
    logger = configure_logging()
    start = time.perf_counter()
    settings = load_ui_settings(args.settings)
    index, summary = build_index_from_path(
        args.path,
        min_chars=args.min_chars,
        max_chars=args.max_chars,
        max_terms_per_chunk=args.max_terms,
        tag_aliases=settings.tag_aliases,
    )
    write_index(index, args.output)
    capsule_parts = write_capsule(index, args.capsule_path) if args.capsule else 0
    elapsed_ms = (time.perf_counter() - start) * 1000
    log_event(
        logger,
        "build_index",
        path=str(args.path),
        output=str(args.output),
        capsule_parts=capsule_parts,
        total_elapsed_ms=elapsed_ms,
        **summary.to_dict(),
    )
    print(
        "Index summary:",
        {
            "chunks": summary.chunks_indexed,
            "terms": summary.terms,
            "capsuleParts": capsule_parts,
            **summary.ingest.to_dict(),
        },
    )


if __name__ == "__main__":
    main()
