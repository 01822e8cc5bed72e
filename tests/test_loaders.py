from pathlib import Path

import pytest

from markdown_retrieval.errors import CorpusReadError
from markdown_retrieval.ingestion.loaders import load_document, parse_header


def _write(root: Path, rel: str, text: str) -> Path:
    path = root / rel
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")
    return path


def test_load_document_derives_provenance_from_path(tmp_path: Path) -> None:
    path = _write(
        tmp_path,
        "2025/01/02/chat.md",
        "---\ntags: Drivers, Linux\n---\n# Driver install\n\nbody text\n",
    )
    doc, report = load_document(path, corpus_root=tmp_path)
    assert report.skip_reason is None
    assert doc is not None
    assert doc.rel_path == "logs/2025/01/02/chat.md"
    assert doc.href == "/logs/2025/01/02/chat"
    assert doc.date == "2025-01-02"
    assert doc.title == "Driver install"
    assert doc.tags == ("drivers", "linux")
    assert "body text" in doc.body


def test_load_document_uses_received_at_outside_dated_folders(tmp_path: Path) -> None:
    path = _write(
        tmp_path,
        "notes/cake.md",
        "Conversation ID: abc-123\nReceived At: 2024-12-24T10:00:00Z\nTags: Cooking\n\ntext",
    )
    doc, _ = load_document(
        path, corpus_root=tmp_path, rel_path_prefix="", href_prefix=""
    )
    assert doc is not None
    assert doc.date == "2024-12-24T10:00:00Z"
    assert doc.conversation_id == "abc-123"
    assert doc.tags == ("cooking",)
    assert doc.title == "Chat Transcript"
    assert doc.rel_path == "notes/cake.md"
    assert doc.href == "/notes/cake"


def test_load_document_applies_tag_aliases(tmp_path: Path) -> None:
    path = _write(tmp_path, "a.md", "Tags: ML, python\n")
    doc, _ = load_document(
        path, corpus_root=tmp_path, tag_aliases={"ml": "machine learning"}
    )
    assert doc is not None
    assert doc.tags == ("machine learning", "python")


def test_load_document_skips_oversized_files(tmp_path: Path) -> None:
    path = _write(tmp_path, "big.md", "x" * 100)
    doc, report = load_document(path, corpus_root=tmp_path, max_doc_bytes=10)
    assert doc is None
    assert report.skip_reason == "file_too_large"
    assert report.bytes_total == 100


def test_load_document_raises_corpus_read_error_on_bad_encoding(tmp_path: Path) -> None:
    path = tmp_path / "broken.md"
    path.write_bytes(b"# title\n\xff\xfe\xfa not utf-8")
    with pytest.raises(CorpusReadError) as excinfo:
        load_document(path, corpus_root=tmp_path)
    assert excinfo.value.path == str(path)


def test_load_document_rejects_unsupported_suffix(tmp_path: Path) -> None:
    path = _write(tmp_path, "notes.txt", "hello")
    with pytest.raises(ValueError):
        load_document(path, corpus_root=tmp_path)


def test_parse_header_prefers_heading_over_front_matter_title() -> None:
    header = parse_header("---\ntitle: From front matter\nid: fm-1\n---\n# From heading\n")
    assert header["title"] == "From heading"
    assert header["conversation_id"] == "fm-1"


def test_parse_header_falls_back_to_front_matter_title_and_date() -> None:
    header = parse_header("---\ntitle: Only front matter\ndate: 2025-03-04\n---\nbody")
    assert header["title"] == "Only front matter"
    assert header["received_at"] == "2025-03-04"
    assert header["tags"] == ()
