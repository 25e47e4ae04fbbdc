"""
Locality-sensitive hash signatures for similarity joins.

Banded MinHash signatures over character n-grams or token sets, banded
p-stable signatures over dense vectors, both in 64-bit and 32-bit widths, and
exact Jaccard similarity over shingle sets.
"""

from __future__ import annotations

from lshsig._config.config import EuclideanConfig, HashSignatures, MinHashConfig
from lshsig.core.main import (
    lsh_euclidean,
    lsh_euclidean32,
    lsh_euclidean32_batch,
    lsh_euclidean_batch,
    lsh_jaccard,
    lsh_jaccard_batch,
    lsh_min,
    lsh_min32,
    lsh_min32_batch,
    lsh_min_batch,
    resolve_batch_function,
    signatures_from_parquet,
)
from lshsig.errors import DimensionMismatch, InvalidParameter, InvalidVector, LSHError
from lshsig.hash.euclidean import EuclideanHasher
from lshsig.hash.family import (
    clear_family_cache,
    configure_family_cache,
    family_cache_info,
    load_family,
    save_family,
)
from lshsig.hash.minhash import MinHasher, estimate_jaccard
from lshsig.shingles import ShingleSet
from lshsig.similarity import jaccard
from lshsig.utils.br import collision_probability, find_optimal_br, similarity_threshold

__version__ = "0.1.0"

__all__ = [
    "lsh_min",
    "lsh_min32",
    "lsh_euclidean",
    "lsh_euclidean32",
    "lsh_jaccard",
    "lsh_min_batch",
    "lsh_min32_batch",
    "lsh_euclidean_batch",
    "lsh_euclidean32_batch",
    "lsh_jaccard_batch",
    "resolve_batch_function",
    "signatures_from_parquet",
    "MinHasher",
    "EuclideanHasher",
    "ShingleSet",
    "HashSignatures",
    "MinHashConfig",
    "EuclideanConfig",
    "jaccard",
    "estimate_jaccard",
    "collision_probability",
    "similarity_threshold",
    "find_optimal_br",
    "save_family",
    "load_family",
    "configure_family_cache",
    "family_cache_info",
    "clear_family_cache",
    "LSHError",
    "InvalidParameter",
    "DimensionMismatch",
    "InvalidVector",
]
