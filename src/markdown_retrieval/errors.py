"""Exceptions raised by the indexing and storage layers."""

from __future__ import annotations


class CorpusReadError(OSError):
    """A source document could not be read or decoded."""

    def __init__(self, path: str, reason: str) -> None:
        super().__init__(f"Cannot read {path}: {reason}")
        self.path = path
        self.reason = reason


class MalformedIndexFile(ValueError):
    """The persisted index is missing or does not parse into a valid index."""
