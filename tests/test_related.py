import math

from markdown_retrieval.indexing import build_index
from markdown_retrieval.models import Index, LoadedDocument
from markdown_retrieval.related import (
    document_vectors,
    jaccard,
    related_chunks,
    related_documents,
)


def _doc(name: str, body: str, tags: tuple[str, ...] = ()) -> LoadedDocument:
    return LoadedDocument(
        rel_path=f"logs/{name}.md",
        href=f"/logs/{name}",
        title=name,
        date="",
        tags=tags,
        body=body,
    )


def _index() -> Index:
    return build_index(
        [
            _doc("c1", "install nvidia driver on linux", ("driver",)),
            _doc("c2", "uninstall nvidia driver windows", ("driver",)),
            _doc("c3", "bake a cake", ("cooking",)),
        ]
    )


def test_jaccard() -> None:
    assert jaccard([], []) == 0.0
    assert jaccard(["a"], ["a"]) == 1.0
    assert jaccard(["a", "b"], ["b", "c"]) == 1 / 3


def test_related_chunks_excludes_target_and_unrelated() -> None:
    related = related_chunks(_index(), "logs/c1.md#0", k=5, tag_weight=0.15)
    assert [item.chunk_id for item in related] == ["logs/c2.md#0"]
    assert related[0].score > 0.15


def test_shared_tags_relate_disjoint_text() -> None:
    index = build_index(
        [
            _doc("a", "nvidia driver", ("gpu",)),
            _doc("b", "bake cake", ("gpu",)),
        ]
    )
    related = related_chunks(index, "logs/a.md#0", k=5, tag_weight=0.15)
    assert len(related) == 1
    assert math.isclose(related[0].score, 0.15)


def test_zero_tag_weight_uses_cosine_only() -> None:
    index = build_index(
        [
            _doc("a", "nvidia driver", ("gpu",)),
            _doc("b", "bake cake", ("gpu",)),
        ]
    )
    assert related_chunks(index, "logs/a.md#0", k=5, tag_weight=0.0) == []


def test_unknown_chunk_and_non_positive_k() -> None:
    index = _index()
    assert related_chunks(index, "logs/missing.md#0") == []
    assert related_chunks(index, "logs/c1.md#0", k=0) == []
    assert related_chunks(index, "logs/c1.md#0", k=-2) == []


def test_related_chunks_respects_k() -> None:
    index = build_index(
        [
            _doc("a", "nvidia driver linux", ("gpu",)),
            _doc("b", "nvidia driver windows", ("gpu",)),
            _doc("c", "nvidia driver mac", ("gpu",)),
        ]
    )
    related = related_chunks(index, "logs/a.md#0", k=1)
    assert [item.chunk_id for item in related] == ["logs/b.md#0"]


def test_document_vectors_average_chunks_and_union_tags() -> None:
    index = build_index(
        [_doc("long", "alpha beta\n\ngamma", ("x",)), _doc("other", "delta", ("y",))],
        min_chars=0,
        max_chars=10,
    )
    docs = document_vectors(index.chunks)
    assert set(docs) == {"logs/long.md", "logs/other.md"}
    long_doc = docs["logs/long.md"]
    chunks = [chunk for chunk in index.chunks if chunk.rel_path == "logs/long.md"]
    assert len(chunks) == 2
    assert math.isclose(long_doc.vector["alpha"], chunks[0].vector["alpha"] / 2)
    assert long_doc.tags == ("x",)


def test_related_documents_ranks_other_documents() -> None:
    related = related_documents(_index(), "logs/c1.md", k=5, tag_weight=0.15)
    assert [doc.rel_path for doc in related] == ["logs/c2.md"]
    assert related[0].href == "/logs/c2"
    assert related_documents(_index(), "logs/missing.md") == []
