"""Tokenizer shared by index build and query scoring."""

from __future__ import annotations

import re

STOP_WORDS = frozenset(
    (
        "the of and to in a for is that on with as it by from at be an or are "
        "this was will can not have has had if then else do does did than "
        "which into over under between within without about after before "
        "since per each via"
    ).split()
)

_TERM_RE = re.compile(r"[a-z0-9_]+")


def tokenize(text: str) -> list[str]:
    """Split text into lowercase terms longer than one character, minus stop words.

    >>> tokenize("Install the NVIDIA driver on Linux")
    ['install', 'nvidia', 'driver', 'linux']
    """
    if not text:
        return []
    return [
        term
        for term in _TERM_RE.findall(text.lower())
        if len(term) > 1 and term not in STOP_WORDS
    ]
