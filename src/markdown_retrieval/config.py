"""Configuration for markdown_retrieval (env-overridable)."""

from __future__ import annotations

import json
import logging
import math
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from markdown_retrieval.tags import load_tag_aliases
from markdown_retrieval.telemetry import log_event


def _env_path(key: str, default: Path) -> Path:
    return Path(os.getenv(key, str(default))).expanduser()


def _env_int(key: str, default: int) -> int:
    try:
        return int(os.getenv(key, default))
    except (TypeError, ValueError):
        return default


def _env_str(key: str, default: str) -> str:
    raw = os.getenv(key)
    if raw is None:
        return default
    return raw.strip()


PROJECT_ROOT = Path(__file__).resolve().parents[2]

DATA_DIR = _env_path("MRS_DATA_DIR", PROJECT_ROOT / "data")
CORPUS_DIR = _env_path("MRS_CORPUS_DIR", PROJECT_ROOT / "logs")
INDEX_PATH = _env_path("MRS_INDEX_PATH", DATA_DIR / "rag-index.json")
CAPSULE_PATH = _env_path("MRS_CAPSULE_PATH", DATA_DIR / "rag-capsule.png")
UI_CONFIG_PATH = _env_path("MRS_UI_CONFIG_PATH", DATA_DIR / "ui" / "config.json")

CHUNK_MIN_CHARS = _env_int("MRS_CHUNK_MIN_CHARS", 600)
CHUNK_MAX_CHARS = _env_int("MRS_CHUNK_MAX_CHARS", 1200)
SNIPPET_CHARS = _env_int("MRS_SNIPPET_CHARS", 280)
# 0 keeps every positive weight.
MAX_TERMS_PER_CHUNK = _env_int("MRS_MAX_TERMS_PER_CHUNK", 0)
MAX_DOC_BYTES = _env_int("MRS_MAX_DOC_BYTES", 5_000_000)

REL_PATH_PREFIX = _env_str("MRS_REL_PATH_PREFIX", "logs")
HREF_PREFIX = _env_str("MRS_HREF_PREFIX", "/logs")

DEFAULT_MAX_RESULTS = 50
DEFAULT_MAX_TAG_CHIPS = 12
DEFAULT_RELATED_K = 5
DEFAULT_TAG_WEIGHT = 0.15


@dataclass(frozen=True)
class SearchSettings:
    max_results: int = DEFAULT_MAX_RESULTS
    # Display-only; scoring never reads it.
    max_tag_chips: int = DEFAULT_MAX_TAG_CHIPS


@dataclass(frozen=True)
class RelatedSettings:
    k: int = DEFAULT_RELATED_K
    tag_weight: float = DEFAULT_TAG_WEIGHT


@dataclass(frozen=True)
class UiSettings:
    search: SearchSettings = field(default_factory=SearchSettings)
    related: RelatedSettings = field(default_factory=RelatedSettings)
    tag_aliases: dict[str, str] = field(default_factory=dict)


def load_ui_settings(path: Path | None = None) -> UiSettings:
    """Load the shared settings object, falling back to defaults.

    A missing or unparseable file yields the defaults. Out-of-range numbers are
    clamped to their nearest valid bound rather than rejected.
    """
    logger = logging.getLogger("markdown_retrieval.config")
    settings_path = path or UI_CONFIG_PATH
    raw = _read_settings_file(settings_path, logger)
    search_raw = _section(raw, "search")
    related_raw = _section(raw, "related")
    return UiSettings(
        search=SearchSettings(
            max_results=_clamped_int(
                search_raw, "maxResults", DEFAULT_MAX_RESULTS, logger
            ),
            max_tag_chips=_clamped_int(
                search_raw, "maxTagChips", DEFAULT_MAX_TAG_CHIPS, logger
            ),
        ),
        related=RelatedSettings(
            k=_clamped_int(related_raw, "k", DEFAULT_RELATED_K, logger),
            tag_weight=_clamped_float(
                related_raw, "tagWeight", DEFAULT_TAG_WEIGHT, logger
            ),
        ),
        tag_aliases=load_tag_aliases(raw.get("tagAliases")),
    )


def _read_settings_file(path: Path, logger: logging.Logger) -> dict[str, Any]:
    if not path.exists():
        return {}
    try:
        payload = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, UnicodeDecodeError, json.JSONDecodeError) as exc:
        log_event(logger, "settings_unreadable", path=str(path), error=str(exc))
        return {}
    return payload if isinstance(payload, dict) else {}


def _section(raw: dict[str, Any], key: str) -> dict[str, Any]:
    value = raw.get(key)
    return value if isinstance(value, dict) else {}


def _clamped_int(
    section: dict[str, Any], key: str, default: int, logger: logging.Logger
) -> int:
    value = section.get(key, default)
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return default
    if isinstance(value, float) and not math.isfinite(value):
        return default
    number = int(value)
    if number < 0:
        log_event(logger, "settings_clamped", key=key, value=value, clamped_to=0)
        return 0
    return number


def _clamped_float(
    section: dict[str, Any], key: str, default: float, logger: logging.Logger
) -> float:
    value = section.get(key, default)
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return default
    number = float(value)
    if not math.isfinite(number):
        return default
    if number < 0:
        log_event(logger, "settings_clamped", key=key, value=value, clamped_to=0.0)
        return 0.0
    return number
