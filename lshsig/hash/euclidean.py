"""
Euclidean (p-stable) Locality-Sensitive Hashing

This module hashes dense vectors so that points close in L2 distance tend to
share band values. Each hash function projects the vector onto a random
standard-normal direction (the normal distribution is 2-stable), shifts it by
a random offset and quantizes the result into buckets of ``bucket_width``::

    bucket = floor(dot(v, direction) / bucket_width + offset)

with ``offset`` uniform in ``[0, 1)``. Bucket ids are zig-zag encoded into the
output width and every band of ``band_size`` buckets is folded into one value.

The banding technique (band_count × band_size) controls the trade-off between
recall and precision:
    - More bands → higher recall (more chances to collide)
    - More rows per band → higher precision (all rows must agree)
    - Larger bucket_width → distant points collide more often
"""

from __future__ import annotations

from typing import List

import numpy as np

from lshsig._config.config import DEFAULT_SEED, HashSignatures, require_bucket_width
from lshsig.errors import DimensionMismatch, InvalidVector
from lshsig.hash.banding import combine_bands
from lshsig.hash.family import EuclideanFamily, euclidean_family

# Quantized buckets are clipped here so zig-zag encoding cannot overflow int64.
_BUCKET_LIMIT = 2**62


class EuclideanHasher:
    """
    Random projection hasher for Euclidean distance.

    Typical usage:
        >>> hasher = EuclideanHasher(bucket_width=0.5, band_count=2, band_size=3, dim=4, seed=123)
        >>> sig = hasher.hash_vector([0.1, 0.2, 0.3, 0.4])
        >>> len(sig)
        2

    Attributes:
        bucket_width: Quantization step applied to every projection.
        band_count: Number of bands in every signature.
        band_size: Projections folded into each band.
        dim: Expected dimensionality of input vectors.
        family: Shared, read-only projection directions and offsets.
    """

    def __init__(
        self,
        bucket_width: float,
        band_count: int,
        band_size: int,
        dim: int,
        *,
        seed: int = DEFAULT_SEED,
        bit_width: int = 64,
    ) -> None:
        """
        Args:
            bucket_width: Width of one quantization bucket; must be > 0.
            band_count: Number of bands (independent candidate keys).
            band_size: Projections per band.
            dim: Dimensionality of input vectors (must match during hashing).
            seed: Seed of the projection family. Same seed, same family.
            bit_width: 64 or 32, the range of emitted band values.

        Raises:
            InvalidParameter: If any parameter is out of range.
        """
        bucket_width = require_bucket_width(bucket_width)
        family = euclidean_family(seed, band_count, band_size, dim, bit_width)
        self._init_family(family, bucket_width)

    @classmethod
    def from_family(cls, family: EuclideanFamily, bucket_width: float) -> "EuclideanHasher":
        hasher = cls.__new__(cls)
        hasher._init_family(family, require_bucket_width(bucket_width))
        return hasher

    def _init_family(self, family: EuclideanFamily, bucket_width: float) -> None:
        self.family = family
        self.bucket_width = bucket_width
        self.band_count = family.band_count
        self.band_size = family.band_size
        self.dim = family.dim
        self.width = family.width

    def bucket_ids(self, vector: np.ndarray) -> np.ndarray:
        """
        Return the signed bucket of every projection.

        Returns:
            ``int64`` array of shape ``(band_count, band_size)``.
        """
        vec = self._validate_vector(vector)
        projected = np.dot(self.family.directions, vec)
        return self._quantize(projected)

    def hash_vector(self, vector: np.ndarray) -> HashSignatures:
        """
        Hash a single vector into band values.

        Raises:
            DimensionMismatch: If the vector length differs from ``dim``.
            InvalidVector: If the vector contains NaN or infinity.
        """
        encoded = self.width.encode_buckets(self.bucket_ids(vector))
        bands = self.width.to_output(combine_bands(encoded, self.width))
        return HashSignatures(tuple(int(v) for v in bands), bit_width=self.width.bits)

    def hash_batch(self, vectors: np.ndarray) -> List[HashSignatures]:
        """
        Hash a 2D batch of vectors.

        Args:
            vectors: Array of shape ``(num_vectors, dim)``.

        Returns:
            One ``HashSignatures`` per row, in input order. Each row's result is
            identical to ``hash_vector`` on that row.
        """
        arr = np.asarray(vectors, dtype=np.float64)
        if arr.ndim != 2:
            raise ValueError("Batch input must be a 2D array")
        if arr.shape[1] != self.dim:
            raise DimensionMismatch(self.dim, arr.shape[1])
        if arr.shape[0] == 0:
            return []
        self._require_finite(arr)

        # Per-row products keep each row bit-identical to hash_vector regardless
        # of batch partitioning; quantization and folding run on the whole stack.
        projected = np.stack([np.dot(self.family.directions, row) for row in arr])
        encoded = self.width.encode_buckets(self._quantize(projected))
        bands = self.width.to_output(combine_bands(encoded, self.width))
        return [
            HashSignatures(tuple(int(v) for v in row), bit_width=self.width.bits)
            for row in bands
        ]

    def _quantize(self, projected: np.ndarray) -> np.ndarray:
        with np.errstate(over="ignore", invalid="ignore"):
            scaled = projected / self.bucket_width + self.family.offsets
        if not np.all(np.isfinite(scaled)):
            raise InvalidVector("Projection overflowed; vector magnitude too large")
        floored = np.clip(np.floor(scaled), -_BUCKET_LIMIT, _BUCKET_LIMIT)
        return floored.astype(np.int64)

    def _validate_vector(self, vector: np.ndarray) -> np.ndarray:
        vec = np.asarray(vector, dtype=np.float64).reshape(-1)
        if vec.shape[0] != self.dim:
            raise DimensionMismatch(self.dim, vec.shape[0])
        self._require_finite(vec)
        return vec

    @staticmethod
    def _require_finite(arr: np.ndarray) -> None:
        if not np.all(np.isfinite(arr)):
            raise InvalidVector("Vectors must not contain NaN or infinite components")
