"""Corpus loading and chunking."""

from .chunking import chunk_text, make_snippet
from .loaders import load_document, parse_header
from .pipeline import load_corpus

__all__ = [
    "chunk_text",
    "load_corpus",
    "load_document",
    "make_snippet",
    "parse_header",
]
