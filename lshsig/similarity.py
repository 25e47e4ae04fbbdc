from __future__ import annotations

from typing import Optional, Sequence, Union

from lshsig.shingles import ShingleSet

TextOrTokens = Union[str, Sequence[Optional[str]]]


def jaccard(a: ShingleSet, b: ShingleSet) -> Optional[float]:
    """
    Return ``|A & B| / |A | B|`` for two shingle sets.

    Similarity between two empty sets is undefined and reported as ``None``;
    an empty set against a non-empty one scores ``0.0``.
    """
    if a.is_empty and b.is_empty:
        return None
    union = len(a.union(b))
    return len(a.intersection(b)) / union


def to_shingle_set(value: TextOrTokens, ngram_width: Optional[int]) -> ShingleSet:
    """Extract n-grams from a string, or take a token sequence as-is."""
    if isinstance(value, str):
        if ngram_width is None:
            raise TypeError("ngram_width is required when hashing text")
        return ShingleSet.from_text(value, ngram_width)
    return ShingleSet.from_tokens(value)


def jaccard_similarity(
    a: Optional[TextOrTokens],
    b: Optional[TextOrTokens],
    ngram_width: Optional[int] = None,
) -> Optional[float]:
    """Jaccard similarity of two strings (character n-grams) or two token lists."""
    if a is None or b is None:
        return None
    return jaccard(to_shingle_set(a, ngram_width), to_shingle_set(b, ngram_width))
