"""Tag normalization and alias mapping."""

from __future__ import annotations

import re
from typing import Any, Iterable, Mapping

_WHITESPACE_RE = re.compile(r"\s+")
_TRAILING_PUNCT_RE = re.compile(r"\s*[:;,.]$")


def normalize_tag(tag: Any) -> str:
    """Lowercase, collapse whitespace and drop one trailing ``:;,.``."""
    text = _WHITESPACE_RE.sub(" ", str(tag or "").lower()).strip()
    return _TRAILING_PUNCT_RE.sub("", text)


def normalize_tags(tags: Iterable[Any] | None) -> tuple[str, ...]:
    seen: set[str] = set()
    out: list[str] = []
    for tag in tags or ():
        normalized = normalize_tag(tag)
        if not normalized or normalized in seen:
            continue
        seen.add(normalized)
        out.append(normalized)
    return tuple(out)


def split_tag_string(raw: str) -> list[str]:
    return [part.strip() for part in raw.split(",") if part.strip()]


def load_tag_aliases(raw: Any) -> dict[str, str]:
    """Build a normalized alias table from a settings value.

    Non-mapping input yields an empty table; entries that normalize to empty
    strings or map a tag onto itself are dropped.
    """
    if not isinstance(raw, Mapping):
        return {}
    aliases: dict[str, str] = {}
    for key, value in raw.items():
        alias = normalize_tag(key)
        canonical = normalize_tag(value)
        if not alias or not canonical or alias == canonical:
            continue
        aliases[alias] = canonical
    return aliases


def apply_tag_aliases(
    tags: Iterable[str], aliases: Mapping[str, str] | None
) -> tuple[str, ...]:
    seen: set[str] = set()
    out: list[str] = []
    for tag in tags:
        normalized = normalize_tag(tag)
        if not normalized:
            continue
        mapped = aliases.get(normalized, normalized) if aliases else normalized
        if mapped not in seen:
            seen.add(mapped)
            out.append(mapped)
    return tuple(out)
