"""Pack the index into PNG ``zTXt`` chunks and read it back.

The capsule is a valid 1x1 transparent PNG. The index JSON is deflated, cut
into segments, and each segment is stored base64-encoded in a compressed text
chunk keyed ``rag-000``, ``rag-001``, ... next to a ``rag-capsule`` chunk
carrying ``{"parts": n}``.
"""

from __future__ import annotations

import base64
import io
import json
import re
import zlib
from pathlib import Path
from typing import Any

from PIL import Image, UnidentifiedImageError
from PIL.PngImagePlugin import PngInfo

from markdown_retrieval.errors import MalformedIndexFile
from markdown_retrieval.models import Index
from markdown_retrieval.storage.index_file import index_from_dict
from markdown_retrieval.telemetry import configure_logging, log_event

SEGMENT_BYTES = 60 * 1024
META_KEYWORD = "rag-capsule"

_PART_KEYWORD_RE = re.compile(r"^rag-\d{3}$")


def _segment_payload(payload: dict[str, Any], segment_bytes: int) -> list[bytes]:
    if segment_bytes <= 0:
        raise ValueError("segment_bytes must be positive")
    compressed = zlib.compress(json.dumps(payload).encode("utf-8"))
    return [
        compressed[start : start + segment_bytes]
        for start in range(0, len(compressed), segment_bytes)
    ]


def encode_capsule(
    payload: dict[str, Any], *, segment_bytes: int = SEGMENT_BYTES
) -> bytes:
    return _assemble(_segment_payload(payload, segment_bytes))


def _assemble(segments: list[bytes]) -> bytes:
    info = PngInfo()
    info.add_text(META_KEYWORD, json.dumps({"parts": len(segments)}), zip=True)
    for pos, segment in enumerate(segments):
        info.add_text(
            f"rag-{pos:03d}", base64.b64encode(segment).decode("ascii"), zip=True
        )
    buffer = io.BytesIO()
    Image.new("RGBA", (1, 1), (0, 0, 0, 0)).save(buffer, "PNG", pnginfo=info)
    return buffer.getvalue()


def _read_text_chunks(data: bytes) -> dict[str, str]:
    try:
        with Image.open(io.BytesIO(data), formats=["PNG"]) as image:
            image.load()
            return dict(image.text)
    except UnidentifiedImageError as exc:
        raise MalformedIndexFile("Capsule is not a PNG file") from exc
    except (OSError, SyntaxError, ValueError, zlib.error) as exc:
        raise MalformedIndexFile(f"Capsule PNG is corrupt: {exc}") from exc


def decode_capsule(data: bytes) -> dict[str, Any]:
    text = _read_text_chunks(data)
    parts = [text[key] for key in sorted(text) if _PART_KEYWORD_RE.match(key)]
    if not parts:
        raise MalformedIndexFile("No rag-* parts found in capsule")
    meta: Any = None
    if META_KEYWORD in text:
        try:
            meta = json.loads(text[META_KEYWORD])
        except json.JSONDecodeError as exc:
            raise MalformedIndexFile("Capsule metadata is not JSON") from exc
    if isinstance(meta, dict) and meta.get("parts") not in (None, len(parts)):
        raise MalformedIndexFile(
            f"Capsule declares {meta.get('parts')} parts but holds {len(parts)}"
        )
    try:
        compressed = b"".join(base64.b64decode(part) for part in parts)
        return json.loads(zlib.decompress(compressed).decode("utf-8"))
    except (ValueError, zlib.error) as exc:
        raise MalformedIndexFile("Capsule payload does not decode") from exc


def write_capsule(index: Index, path: Path) -> int:
    """Write the capsule for ``index``; returns the number of segments."""
    segments = _segment_payload(index.to_dict(), SEGMENT_BYTES)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(_assemble(segments))
    log_event(
        configure_logging(),
        "capsule_written",
        path=str(path),
        chunks=len(index.chunks),
        capsule_parts=len(segments),
    )
    return len(segments)


def read_capsule(path: Path) -> Index:
    try:
        data = path.read_bytes()
    except OSError as exc:
        raise MalformedIndexFile(f"Capsule unreadable: {path}") from exc
    return index_from_dict(decode_capsule(data))
