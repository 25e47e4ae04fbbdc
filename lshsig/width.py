"""
Numeric width policies for 64-bit and 32-bit signatures.

The MinHash and Euclidean engines are written once against ``WidthPolicy``.
A policy fixes the modulus of every hash step, the token hash, the finalizer
used to mix values and the output dtype. ``WIDTH_32`` is a separate 32-bit
construction, not a truncation of ``WIDTH_64`` results.

All intermediate arithmetic runs on ``uint64`` arrays, where numpy wraps on
overflow; 32-bit results are masked after each multiplication.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Iterable, Tuple

import numpy as np
import xxhash

from lshsig._config.config import require_bit_width

__all__ = ["WidthPolicy", "WIDTH_64", "WIDTH_32", "resolve_width"]


@dataclass(frozen=True)
class WidthPolicy:
    """
    Arithmetic rules for one output width.

    Attributes:
        bits: Output width in bits.
        dtype: numpy dtype of emitted band values.
        basis: Initial accumulator of the band fold.
        shifts: Right-shift amounts of the MurmurHash3 finalizer.
        multipliers: Multiplication constants of the MurmurHash3 finalizer.
        token_hasher: Seedless hash of a shingle's UTF-8 bytes (lone surrogates
            pass through) into ``bits`` bits.
    """

    bits: int
    dtype: Any
    basis: int
    shifts: Tuple[int, int, int]
    multipliers: Tuple[int, int]
    token_hasher: Callable[[bytes], int]

    @property
    def mask(self) -> int:
        return (1 << self.bits) - 1

    @property
    def sentinel(self) -> int:
        """MinHash value of every function over an empty shingle set."""
        return self.mask

    def hash_tokens(self, tokens: Iterable[str]) -> np.ndarray:
        """Hash shingles to a ``uint64`` array of ``bits``-wide values."""
        return np.fromiter(
            (self.token_hasher(token.encode("utf-8", "surrogatepass")) for token in tokens),
            dtype=np.uint64,
        )

    def mix(self, values: np.ndarray) -> np.ndarray:
        """Apply the MurmurHash3 finalizer element-wise (a bijection on the width)."""
        mask = np.uint64(self.mask)
        s1, s2, s3 = (np.uint64(s) for s in self.shifts)
        m1, m2 = (np.uint64(m) for m in self.multipliers)

        h = np.asarray(values, dtype=np.uint64) & mask
        h = h ^ (h >> s1)
        h = (h * m1) & mask
        h = h ^ (h >> s2)
        h = (h * m2) & mask
        h = h ^ (h >> s3)
        return h

    def permute(self, x: np.ndarray, a: np.ndarray, b: np.ndarray) -> np.ndarray:
        """
        Evaluate ``mix((a * x + b) mod 2**bits)``.

        With odd ``a`` the affine step is a permutation of the width, and so is
        the finalizer, so every (a, b) pair acts as one pseudo-random permutation.
        ``x``, ``a`` and ``b`` broadcast against each other.
        """
        mask = np.uint64(self.mask)
        affine = ((x * a) + b) & mask
        return self.mix(affine)

    def encode_buckets(self, buckets: np.ndarray) -> np.ndarray:
        """
        Map signed bucket ids to unsigned values.

        Zig-zag encoding interleaves signs (0, -1, 1, -2 -> 0, 1, 2, 3) so small
        buckets of either sign stay distinct. The 32-bit policy folds the high
        word into the low word, which is the identity for |bucket| < 2**31.
        """
        signed = np.asarray(buckets, dtype=np.int64)
        encoded = ((signed << 1) ^ (signed >> 63)).astype(np.uint64)
        if self.bits < 64:
            encoded = (encoded ^ (encoded >> np.uint64(32))) & np.uint64(self.mask)
        return encoded

    def to_output(self, values: np.ndarray) -> np.ndarray:
        return np.asarray(values, dtype=np.uint64).astype(self.dtype)


WIDTH_64 = WidthPolicy(
    bits=64,
    dtype=np.uint64,
    basis=0x9E3779B97F4A7C15,
    shifts=(33, 33, 33),
    multipliers=(0xFF51AFD7ED558CCD, 0xC4CEB9FE1A85EC53),
    token_hasher=xxhash.xxh64_intdigest,
)

WIDTH_32 = WidthPolicy(
    bits=32,
    dtype=np.uint32,
    basis=0x9E3779B9,
    shifts=(16, 13, 16),
    multipliers=(0x85EBCA6B, 0xC2B2AE35),
    token_hasher=xxhash.xxh32_intdigest,
)

_POLICIES = {64: WIDTH_64, 32: WIDTH_32}


def resolve_width(bit_width: Any) -> WidthPolicy:
    """Return the policy for ``bit_width`` (32 or 64)."""
    if isinstance(bit_width, WidthPolicy):
        return bit_width
    return _POLICIES[require_bit_width(bit_width)]
