"""Markdown document loader."""

from __future__ import annotations

import re
from pathlib import Path, PurePosixPath
from typing import Mapping

from markdown_retrieval.config import HREF_PREFIX, MAX_DOC_BYTES, REL_PATH_PREFIX
from markdown_retrieval.errors import CorpusReadError
from markdown_retrieval.models import LoadedDocument, LoadReport
from markdown_retrieval.tags import (
    apply_tag_aliases,
    normalize_tags,
    split_tag_string,
)

SUPPORTED_SUFFIXES = {".md", ".markdown"}
DEFAULT_TITLE = "Chat Transcript"

# Front matter is only scanned this far into the file.
_FRONT_MATTER_MAX_LINES = 50
# Inline header fields (Conversation ID, Received At, Tags) live near the top.
_HEADER_LINES = 40

_FRONT_MATTER_FIELD_RE = re.compile(r"^(\w[\w-]*):\s*(.*)$")
_TITLE_RE = re.compile(r"^#\s*(.+)$", re.MULTILINE)
_CONVERSATION_ID_RE = re.compile(r"Conversation ID:\s*(.+)", re.IGNORECASE)
_RECEIVED_AT_RE = re.compile(r"Received At:\s*([^\n]+)", re.IGNORECASE)
_TAGS_RE = re.compile(r"Tags:\s*([^\n]+)", re.IGNORECASE)
_YEAR_RE = re.compile(r"^\d{4}$")
_MONTH_DAY_RE = re.compile(r"^\d{1,2}$")


def load_document(
    path: Path,
    *,
    corpus_root: Path,
    max_doc_bytes: int = MAX_DOC_BYTES,
    rel_path_prefix: str = REL_PATH_PREFIX,
    href_prefix: str = HREF_PREFIX,
    tag_aliases: Mapping[str, str] | None = None,
) -> tuple[LoadedDocument | None, LoadReport]:
    """Read one Markdown file and derive its provenance fields.

    Raises ``CorpusReadError`` when the file cannot be read or is not UTF-8.
    Oversized files are reported with ``skip_reason="file_too_large"``.
    """
    if path.suffix.lower() not in SUPPORTED_SUFFIXES:
        raise ValueError(f"Unsupported file type: {path.suffix}")

    try:
        bytes_total = path.stat().st_size
    except OSError as exc:
        raise CorpusReadError(str(path), exc.strerror or str(exc)) from exc
    if bytes_total > max_doc_bytes:
        return None, LoadReport(
            source_path=str(path),
            bytes_total=bytes_total,
            skip_reason="file_too_large",
        )

    markdown = _read_markdown(path)
    rel = path.relative_to(corpus_root).as_posix()
    header = parse_header(markdown, tag_aliases=tag_aliases)
    slug = re.sub(r"\.(md|markdown)$", "", rel, flags=re.IGNORECASE)
    date = _date_from_slug(slug) or header["received_at"]
    document = LoadedDocument(
        rel_path=_join(rel_path_prefix, rel),
        href=_join(href_prefix, slug) if href_prefix else "/" + slug,
        title=header["title"] or rel,
        date=date,
        tags=header["tags"],
        body=markdown,
        conversation_id=header["conversation_id"],
    )
    return document, LoadReport(
        source_path=str(path), bytes_total=bytes_total, skip_reason=None
    )


def parse_header(
    markdown: str, *, tag_aliases: Mapping[str, str] | None = None
) -> dict:
    lines = markdown.split("\n")
    front_matter = _parse_front_matter(lines)
    head = "\n".join(lines[:_HEADER_LINES])

    conversation_id = _first_group(_CONVERSATION_ID_RE, head) or front_matter.get(
        "id", ""
    )
    received_at = (
        _first_group(_RECEIVED_AT_RE, head)
        or front_matter.get("receivedat")
        or front_matter.get("date")
        or ""
    )
    title = (
        _first_group(_TITLE_RE, markdown)
        or front_matter.get("title")
        or DEFAULT_TITLE
    )
    tag_string = front_matter.get("tags") or _first_group(_TAGS_RE, head) or ""
    tags = normalize_tags(split_tag_string(tag_string))
    return {
        "conversation_id": conversation_id.strip(),
        "received_at": received_at.strip(),
        "title": title.strip(),
        "tags": apply_tag_aliases(tags, tag_aliases),
    }


def _read_markdown(path: Path) -> str:
    try:
        return path.read_text(encoding="utf-8")
    except UnicodeDecodeError as exc:
        raise CorpusReadError(str(path), f"not valid UTF-8 ({exc.reason})") from exc
    except OSError as exc:
        raise CorpusReadError(str(path), exc.strerror or str(exc)) from exc


def _parse_front_matter(lines: list[str]) -> dict[str, str]:
    fields: dict[str, str] = {}
    if not lines or lines[0].strip() != "---":
        return fields
    for line in lines[1:_FRONT_MATTER_MAX_LINES]:
        if line.strip() == "---":
            break
        match = _FRONT_MATTER_FIELD_RE.match(line)
        if match:
            fields[match.group(1).lower()] = match.group(2).strip()
    return fields


def _first_group(pattern: re.Pattern[str], text: str) -> str:
    match = pattern.search(text)
    return match.group(1).strip() if match else ""


def _date_from_slug(slug: str) -> str:
    parts = PurePosixPath(slug).parts
    if len(parts) < 3:
        return ""
    year, month, day = parts[:3]
    if not (
        _YEAR_RE.match(year) and _MONTH_DAY_RE.match(month) and _MONTH_DAY_RE.match(day)
    ):
        return ""
    return f"{year}-{month}-{day}"


def _join(prefix: str, rel: str) -> str:
    prefix = prefix.rstrip("/")
    return f"{prefix}/{rel}" if prefix else rel
