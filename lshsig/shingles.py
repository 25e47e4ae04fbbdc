"""
Shingle (n-gram) extraction.

A ``ShingleSet`` is the set of character n-grams of a string, or a caller-supplied
set of tokens when custom tokenization (word shingles, q-grams over normalized
text, ...) is wanted. Duplicates collapse; order carries no meaning.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import AbstractSet, FrozenSet, Iterable, Iterator, List, Optional

from lshsig._config.config import require_positive_int

__all__ = ["ShingleSet", "char_ngrams"]


def char_ngrams(text: str, ngram_width: int) -> List[str]:
    """Return every contiguous substring of ``ngram_width`` code points, in order."""
    width = require_positive_int(ngram_width, "ngram_width")
    return [text[start : start + width] for start in range(len(text) - width + 1)]


@dataclass(frozen=True)
class ShingleSet:
    """Immutable set of shingles extracted from one row."""

    shingles: FrozenSet[str]

    @classmethod
    def from_text(cls, text: str, ngram_width: int) -> "ShingleSet":
        """
        Build the set of character n-grams of ``text``.

        Strings shorter than ``ngram_width`` produce the empty set.

        Raises:
            InvalidParameter: If ``ngram_width`` is not a positive integer.
        """
        return cls(frozenset(char_ngrams(text, ngram_width)))

    @classmethod
    def from_tokens(cls, tokens: Iterable[Optional[str]]) -> "ShingleSet":
        """Use ``tokens`` verbatim as shingles. ``None`` entries are skipped."""
        if isinstance(tokens, str):
            raise TypeError("from_tokens expects a sequence of strings, not a single string")
        return cls(frozenset(str(token) for token in tokens if token is not None))

    def __len__(self) -> int:
        return len(self.shingles)

    def __iter__(self) -> Iterator[str]:
        return iter(self.shingles)

    def __contains__(self, shingle: object) -> bool:
        return shingle in self.shingles

    @property
    def is_empty(self) -> bool:
        return not self.shingles

    def intersection(self, other: "ShingleSet") -> AbstractSet[str]:
        return self.shingles & other.shingles

    def union(self, other: "ShingleSet") -> AbstractSet[str]:
        return self.shingles | other.shingles
