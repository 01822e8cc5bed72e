"""Script to query the markdown search index."""

from __future__ import annotations

import argparse
from pathlib import Path
import sys
import time

try:
    from markdown_retrieval.config import CORPUS_DIR, INDEX_PATH
    from markdown_retrieval.orchestration import SearchService, open_service
    from markdown_retrieval.retrieval import tag_facets
    from markdown_retrieval.telemetry import configure_logging, log_event
except ModuleNotFoundError:
    repo_root = Path(__file__).resolve().parents[1]
    sys.path.insert(0, str(repo_root / "src"))
    from markdown_retrieval.config import CORPUS_DIR, INDEX_PATH  # type: ignore[reportMissingImports]
    from markdown_retrieval.orchestration import (  # type: ignore[reportMissingImports]
        SearchService,
        open_service,
    )
    from markdown_retrieval.retrieval import tag_facets  # type: ignore[reportMissingImports]
    from markdown_retrieval.telemetry import (  # type: ignore[reportMissingImports]
        configure_logging,
        log_event,
    )


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Query the markdown search index")
    parser.add_argument("query", type=str, nargs="?", default="", help="Query string")
    parser.add_argument(
        "--top-k",
        type=int,
        default=None,
        help="Number of results to return (default: search.maxResults)",
    )
    parser.add_argument(
        "--tag", type=str, default=None, help="Only keep results carrying this tag"
    )
    parser.add_argument(
        "--related",
        type=str,
        default=None,
        metavar="CHUNK_ID",
        help="List chunks related to CHUNK_ID instead of running a query",
    )
    parser.add_argument(
        "--related-doc",
        type=str,
        default=None,
        metavar="REL_PATH",
        help="List documents related to REL_PATH instead of running a query",
    )
    parser.add_argument(
        "--tag-weight",
        type=float,
        default=None,
        help="Tag overlap weight for related lookups (default: related.tagWeight)",
    )
    parser.add_argument(
        "--index-path", type=Path, default=INDEX_PATH, help="JSON index to read"
    )
    parser.add_argument(
        "--settings", type=Path, default=None, help="Settings JSON path"
    )
    parser.add_argument(
        "--rebuild-index",
        action="store_true",
        help="Rebuild the index from --corpus before querying",
    )
    parser.add_argument(
        "--corpus", type=Path, default=CORPUS_DIR, help="Corpus directory"
    )
    return parser.parse_args()


def maybe_build_index(
    service: SearchService, rebuild: bool, *, corpus: Path
) -> dict | None:
    if not rebuild and service.index_path.exists():
        return None
    summary = service.rebuild(corpus)
    if summary.chunks_indexed == 0:
        print("Warning: no chunks found; the index is empty.")
    print(
        "Index summary:",
        {
            "chunks_indexed": summary.chunks_indexed,
            "terms": summary.terms,
            "elapsed_ms": round(summary.elapsed_ms, 2),
        },
    )
    return summary.to_dict()


def main() -> None:
    args = parse_args()
    logger = configure_logging()
    start = time.perf_counter()
    service = open_service(args.index_path, settings_path=args.settings)
    index_build = maybe_build_index(
        service, args.rebuild_index, corpus=args.corpus
    )

    if args.related:
        related = service.related(args.related, k=args.top_k, tag_weight=args.tag_weight)
        for idx, item in enumerate(related, start=1):
            print(f"#{idx} {item.chunk.id} score={item.score:.4f}")
            print(f"   {item.chunk.title} ({item.chunk.date})")
        mode, count = "related", len(related)
    elif args.related_doc:
        docs = service.related_documents(
            args.related_doc, k=args.top_k, tag_weight=args.tag_weight
        )
        for idx, doc in enumerate(docs, start=1):
            print(f"#{idx} {doc.rel_path} score={doc.score:.4f}")
            print(f"   {doc.title} ({doc.date})")
        mode, count = "related_doc", len(docs)
    else:
        result = service.search(args.query, args.top_k, tag=args.tag)
        facets = tag_facets(result.chunks, service.settings.search.max_tag_chips)
        if facets:
            print("Tags:", " ".join(f"#{tag}({count})" for tag, count in facets))
        for idx, scored in enumerate(result.chunks, start=1):
            chunk = scored.chunk
            print(f"#{idx} {chunk.rel_path} score={scored.score:.4f}")
            print(f"   {chunk.title} ({chunk.date}) {chunk.href}")
            print(f"   {chunk.snippet[:200].strip()}")
        if not result.chunks:
            print("No results.")
        mode, count = "search", len(result.chunks)

    log_event(
        logger,
        "query",
        mode=mode,
        query=args.query,
        related=args.related or args.related_doc,
        results=count,
        index_build=index_build,
        total_latency_ms=(time.perf_counter() - start) * 1000,
    )


if __name__ == "__main__":
    main()
