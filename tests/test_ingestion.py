from pathlib import Path

from markdown_retrieval.ingestion.pipeline import _collect_files, load_corpus


def test_collect_files_filters_suffixes_in_sorted_order(tmp_path: Path) -> None:
    (tmp_path / "b.md").write_text("b")
    (tmp_path / "a.md").write_text("a")
    (tmp_path / "skip.txt").write_text("nope")
    (tmp_path / "sub").mkdir()
    (tmp_path / "sub" / "c.markdown").write_text("c")
    files = _collect_files(tmp_path)
    assert [path.relative_to(tmp_path).as_posix() for path in files] == [
        "a.md",
        "b.md",
        "sub/c.markdown",
    ]


def test_collect_files_missing_directory_is_empty(tmp_path: Path) -> None:
    assert _collect_files(tmp_path / "missing") == []


def test_load_corpus_skips_unreadable_documents(tmp_path: Path) -> None:
    (tmp_path / "good.md").write_text("# Good\n\nreadable text", encoding="utf-8")
    (tmp_path / "bad.md").write_bytes(b"\xff\xfe broken")
    documents, summary = load_corpus(tmp_path)
    assert [doc.title for doc in documents] == ["Good"]
    assert summary.files_seen == 2
    assert summary.documents_loaded == 1
    assert summary.files_skipped == 1
    assert summary.skip_reasons == {"read_error": 1}


def test_load_corpus_records_oversized_files(tmp_path: Path) -> None:
    (tmp_path / "big.md").write_text("x" * 50)
    documents, summary = load_corpus(tmp_path, max_doc_bytes=10)
    assert documents == []
    assert summary.skip_reasons == {"file_too_large": 1}


def test_load_corpus_missing_directory_is_empty(tmp_path: Path) -> None:
    documents, summary = load_corpus(tmp_path / "nothing-here")
    assert documents == []
    assert summary.files_seen == 0
