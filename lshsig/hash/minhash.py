"""
MinHash signatures with banding.

For every hash function of the family the hasher keeps the minimum permuted
value over the row's shingles, then folds each band of ``band_size`` minima
into one value. Rows whose shingle sets have Jaccard similarity ``s`` share a
given band with probability ``s ** band_size``.

An empty shingle set yields the width's sentinel (``2**bits - 1``) for every
function, so all empty rows produce the same signature.
"""

from __future__ import annotations

from typing import Iterable, List, Optional, Sequence, Union

import numpy as np

from lshsig._config.config import DEFAULT_SEED, HashSignatures
from lshsig.hash.banding import combine_bands, split_bands
from lshsig.hash.family import MinHashFamily, minhash_family
from lshsig.shingles import ShingleSet
from lshsig.similarity import to_shingle_set

# Byte budget of the (chunk, band_count, band_size) uint64 buffer per vectorized step.
_CHUNK_BYTES = 32 * 1024 * 1024

RowValue = Union[str, Sequence[Optional[str]], ShingleSet]


class MinHasher:
    """
    Banded MinHash hasher for one fixed parameter set.

    Typical usage:
        >>> hasher = MinHasher(band_count=3, band_size=2, seed=123)
        >>> sig = hasher.hash_text("Mike Wilson", ngram_width=2)
        >>> len(sig)
        3

    Attributes:
        band_count: Number of bands in every signature.
        band_size: Hash functions folded into each band.
        family: The (shared, read-only) permutation coefficients.
    """

    def __init__(
        self,
        band_count: int,
        band_size: int,
        *,
        seed: int = DEFAULT_SEED,
        bit_width: int = 64,
    ) -> None:
        self._init_family(minhash_family(seed, band_count, band_size, bit_width))

    @classmethod
    def from_family(cls, family: MinHashFamily) -> "MinHasher":
        """Build a hasher around an explicit (e.g. loaded from disk) family."""
        hasher = cls.__new__(cls)
        hasher._init_family(family)
        return hasher

    def _init_family(self, family: MinHashFamily) -> None:
        self.family = family
        self.band_count = family.band_count
        self.band_size = family.band_size
        self.width = family.width

    @property
    def num_hashes(self) -> int:
        return self.band_count * self.band_size

    @property
    def token_chunk_size(self) -> int:
        """Shingles permuted per vectorized step, at least one."""
        return max(1, _CHUNK_BYTES // (self.num_hashes * np.dtype(np.uint64).itemsize))

    def min_values(self, shingles: ShingleSet) -> np.ndarray:
        """
        Return the unbanded MinHash vector, in generation order.

        Returns:
            ``uint64`` array of length ``band_count * band_size``.
        """
        result = np.full(
            (self.band_count, self.band_size), self.width.sentinel, dtype=np.uint64
        )
        if shingles.is_empty:
            return result.reshape(-1)

        token_hashes = self.width.hash_tokens(shingles)
        a = self.family.multipliers[np.newaxis]
        b = self.family.increments[np.newaxis]
        step = self.token_chunk_size
        for start in range(0, token_hashes.shape[0], step):
            chunk = token_hashes[start : start + step, np.newaxis, np.newaxis]
            permuted = self.width.permute(chunk, a, b)
            np.minimum(result, permuted.min(axis=0), out=result)
        return result.reshape(-1)

    def hash_shingles(self, shingles: ShingleSet) -> HashSignatures:
        """Hash a prepared shingle set into ``band_count`` band values."""
        minima = split_bands(self.min_values(shingles), self.band_count, self.band_size)
        bands = self.width.to_output(combine_bands(minima, self.width))
        return HashSignatures(tuple(int(v) for v in bands), bit_width=self.width.bits)

    def hash_text(self, text: str, ngram_width: int) -> HashSignatures:
        return self.hash_shingles(ShingleSet.from_text(text, ngram_width))

    def hash_tokens(self, tokens: Iterable[Optional[str]]) -> HashSignatures:
        return self.hash_shingles(ShingleSet.from_tokens(tokens))

    def hash_batch(
        self,
        values: Iterable[Optional[RowValue]],
        ngram_width: Optional[int] = None,
    ) -> List[Optional[HashSignatures]]:
        """
        Hash many rows. ``None`` rows map to ``None``.

        Strings are split into ``ngram_width`` character n-grams; token
        sequences and ``ShingleSet`` instances are used as-is.
        """
        results: List[Optional[HashSignatures]] = []
        for value in values:
            if value is None:
                results.append(None)
            elif isinstance(value, ShingleSet):
                results.append(self.hash_shingles(value))
            else:
                results.append(self.hash_shingles(to_shingle_set(value, ngram_width)))
        return results


def estimate_jaccard(sig_a: Sequence[int], sig_b: Sequence[int]) -> float:
    """
    Estimate Jaccard similarity as the fraction of equal MinHash components.

    Meant for unbanded vectors from :meth:`MinHasher.min_values`.
    """
    if len(sig_a) != len(sig_b):
        raise ValueError("Signatures must have same length")
    if len(sig_a) == 0:
        raise ValueError("Signatures must not be empty")
    equal = np.count_nonzero(np.asarray(sig_a) == np.asarray(sig_b))
    return float(equal) / len(sig_a)
