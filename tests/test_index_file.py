import json
import math
import os
from pathlib import Path

import pytest

from markdown_retrieval.errors import MalformedIndexFile
from markdown_retrieval.indexing import build_index
from markdown_retrieval.models import Index, LoadedDocument
from markdown_retrieval.storage import index_from_dict, load_index, write_index


def _index() -> Index:
    docs = [
        LoadedDocument(
            rel_path="logs/a.md",
            href="/logs/a",
            title="A",
            date="2025-01-02",
            tags=("driver",),
            body="install nvidia driver",
        ),
        LoadedDocument(
            rel_path="logs/b.md",
            href="/logs/b",
            title="B",
            date="",
            tags=(),
            body="bake a cake",
        ),
    ]
    return build_index(docs, built_at="2025-01-03T00:00:00+00:00")


def test_write_then_load_preserves_index(tmp_path: Path) -> None:
    path = tmp_path / "nested" / "rag-index.json"
    original = _index()
    write_index(original, path)
    loaded = load_index(path)
    assert loaded.built_at == original.built_at
    assert dict(loaded.idf) == dict(original.idf)
    assert [chunk.to_dict() for chunk in loaded.chunks] == [
        chunk.to_dict() for chunk in original.chunks
    ]


def test_written_file_layout(tmp_path: Path) -> None:
    path = tmp_path / "rag-index.json"
    write_index(_index(), path)
    payload = json.loads(path.read_text(encoding="utf-8"))
    assert payload["version"] == 1
    assert payload["chunksCount"] == 2
    assert list(payload["idf"]) == sorted(payload["idf"])
    chunk = payload["chunks"][0]
    assert chunk["relPath"] == "logs/a.md"
    weights = [weight for _, weight in chunk["vector"]]
    assert weights == sorted(weights, reverse=True)


def test_missing_file_raises(tmp_path: Path) -> None:
    with pytest.raises(MalformedIndexFile):
        load_index(tmp_path / "absent.json")


def test_invalid_json_raises(tmp_path: Path) -> None:
    path = tmp_path / "rag-index.json"
    path.write_text("{not json", encoding="utf-8")
    with pytest.raises(MalformedIndexFile):
        load_index(path)


@pytest.mark.parametrize(
    "payload",
    [
        [],
        {"idf": [], "chunks": []},
        {"idf": {}, "chunks": {}},
        {"idf": {"x": -1.0}, "chunks": []},
        {"idf": {}, "chunks": [{"id": "a#0", "vector": [["x", 1.0]]}]},
        {"idf": {"x": 1.0}, "chunks": [{"vector": [["x", 1.0]]}]},
        {"idf": {"x": 1.0}, "chunks": [{"id": "a#0", "vector": [["x"]]}]},
    ],
)
def test_structurally_invalid_payloads_raise(payload: object) -> None:
    with pytest.raises(MalformedIndexFile):
        index_from_dict(payload)


def test_optional_chunk_fields_default() -> None:
    index = index_from_dict(
        {"idf": {"cake": 1.5}, "chunks": [{"id": "logs/b.md#0", "vector": [["cake", 1.5]]}]}
    )
    chunk = index.chunks[0]
    assert chunk.rel_path == "logs/b.md"
    assert chunk.tags == ()
    assert chunk.title == ""
    assert chunk.snippet == ""


def test_stale_norm_is_recomputed() -> None:
    index = index_from_dict(
        {
            "idf": {"x": 3.0, "y": 4.0},
            "chunks": [
                {"id": "a#0", "vector": [["x", 3.0], ["y", 4.0]], "norm": 42.0}
            ],
        }
    )
    assert math.isclose(index.chunks[0].norm, 5.0)


def test_failed_write_keeps_previous_file(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    path = tmp_path / "rag-index.json"
    write_index(_index(), path)
    before = path.read_text(encoding="utf-8")

    def fail_replace(src: str, dst: object) -> None:
        raise OSError("disk full")

    monkeypatch.setattr(os, "replace", fail_replace)
    with pytest.raises(OSError):
        write_index(Index.empty(), path)
    assert path.read_text(encoding="utf-8") == before
    assert [p.name for p in tmp_path.iterdir()] == ["rag-index.json"]
