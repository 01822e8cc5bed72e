"""Index maintenance utilities (verify, capsule pack/extract)."""

from __future__ import annotations

import argparse
import math
from pathlib import Path
import sys

try:
    from markdown_retrieval.config import CAPSULE_PATH, INDEX_PATH
    from markdown_retrieval.errors import MalformedIndexFile
    from markdown_retrieval.models import Index
    from markdown_retrieval.storage import (
        load_index,
        read_capsule,
        write_capsule,
        write_index,
    )
except ModuleNotFoundError:
    repo_root = Path(__file__).resolve().parents[1]
    sys.path.insert(0, str(repo_root / "src"))
    from markdown_retrieval.config import CAPSULE_PATH, INDEX_PATH  # type: ignore[reportMissingImports]
    from markdown_retrieval.errors import MalformedIndexFile  # type: ignore[reportMissingImports]
    from markdown_retrieval.models import Index  # type: ignore[reportMissingImports]
    from markdown_retrieval.storage import (  # type: ignore[reportMissingImports]
        load_index,
        read_capsule,
        write_capsule,
        write_index,
    )


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Run index maintenance tasks")
    parser.add_argument(
        "--index-path", type=Path, default=INDEX_PATH, help="JSON index path"
    )
    parser.add_argument(
        "--capsule-path", type=Path, default=CAPSULE_PATH, help="PNG capsule path"
    )
    parser.add_argument(
        "--verify",
        action="store_true",
        help="Check norm and idf invariants of the JSON index",
    )
    parser.add_argument(
        "--pack-capsule",
        action="store_true",
        help="Write the PNG capsule from the JSON index",
    )
    parser.add_argument(
        "--extract-capsule",
        action="store_true",
        help="Restore the JSON index from the PNG capsule",
    )
    return parser.parse_args()


def verify_index(index: Index) -> list[str]:
    problems: list[str] = []
    for term, weight in index.idf.items():
        if weight < 0:
            problems.append(f"negative idf for {term!r}")
    for chunk in index.chunks:
        expected = math.sqrt(sum(w * w for w in chunk.vector.values())) or 1.0
        if not math.isclose(chunk.norm, expected, rel_tol=1e-9):
            problems.append(f"stale norm on {chunk.id}")
        for term, weight in chunk.vector.items():
            if weight <= 0:
                problems.append(f"non-positive weight {term!r} on {chunk.id}")
            if term not in index.idf:
                problems.append(f"term {term!r} on {chunk.id} has no idf")
    return problems


def main() -> None:
    args = parse_args()
    if not (args.verify or args.pack_capsule or args.extract_capsule):
        print(
            "No maintenance actions requested. Use --verify, --pack-capsule, or --extract-capsule."
        )
        return

    try:
        if args.extract_capsule:
            index = read_capsule(args.capsule_path)
            write_index(index, args.index_path)
            print(
                f"Extracted {args.index_path} with {len(index.chunks)} chunks"
            )
        if args.verify:
            problems = verify_index(load_index(args.index_path))
            if problems:
                for problem in problems:
                    print("Problem:", problem)
                sys.exit(1)
            print("Index verified.")
        if args.pack_capsule:
            parts = write_capsule(load_index(args.index_path), args.capsule_path)
            print(f"Capsule written to {args.capsule_path} ({parts} parts)")
    except MalformedIndexFile as exc:
        print(f"Error: {exc}", file=sys.stderr)
        sys.exit(2)


if __name__ == "__main__":
    main()
