"""Text normalization used to compare item names with category names."""

from __future__ import annotations

import re
from typing import Iterable, Sequence

_SEPARATORS = re.compile(r"[_\-./\\()\[\]{}]+")
_CAMEL_BOUNDARY = re.compile(r"([a-z])([A-Z])")
_WHITESPACE = re.compile(r"\s+")


def normalize_phrase(text: str) -> str:
    """Lowercase ``text`` and turn separators into single spaces.

    >>> normalize_phrase("Kitchen_Tools-(v2)")
    'kitchen tools v2'
    """
    spaced = _SEPARATORS.sub(" ", text)
    return _WHITESPACE.sub(" ", spaced).strip().lower()


def raw_tokens(text: str) -> list[str]:
    """Split ``text`` into lowercase words, splitting camelCase, without filtering."""
    spaced = _CAMEL_BOUNDARY.sub(r"\1 \2", _SEPARATORS.sub(" ", text))
    return [token for token in spaced.lower().split() if token]


def tokenize(text: str, noise_words: Iterable[str] = ()) -> list[str]:
    """Return the meaningful tokens of ``text``.

    Tokens of two characters or fewer and noise words are dropped.

    >>> tokenize("FreeDragonModel_v2.stl", ["free", "model", "stl"])
    ['dragon']
    """
    noise = set(noise_words)
    return [token for token in raw_tokens(text) if len(token) > 2 and token not in noise]


class SynonymIndex:
    """Expand tokens through groups of interchangeable words."""

    def __init__(self, groups: Sequence[Sequence[str]]) -> None:
        self._lookup: dict[str, frozenset[str]] = {}
        for group in groups:
            members = frozenset(word.lower() for word in group)
            for word in members:
                self._lookup[word] = self._lookup.get(word, frozenset()) | members

    def expand(self, tokens: Iterable[str]) -> set[str]:
        expanded: set[str] = set()
        for token in tokens:
            expanded.add(token)
            expanded.update(self._lookup.get(token, ()))
        return expanded


__all__ = ["normalize_phrase", "raw_tokens", "tokenize", "SynonymIndex"]
