"""
Seeded Hash-Family Generation

A hash family is the ordered list of ``band_count * band_size`` hash-function
descriptors that a MinHash or Euclidean hasher applies to every row. Families
are derived from the seed alone: each derivation builds a fresh
``numpy.random.default_rng(seed)``, so the result never depends on call order,
threads or wall-clock time.

Descriptors are stored as stacked arrays shaped ``(band_count, band_size, ...)``
so that band ``i`` is the slice ``[i * band_size, (i + 1) * band_size)`` of the
flat generation order.

Derived families are memoized in a bounded, thread-safe LRU table. The cache is
a pure optimization: a miss re-derives an identical family.
"""

from __future__ import annotations

import json
import logging
from collections import OrderedDict
from dataclasses import dataclass, field
from pathlib import Path
from threading import Lock
from typing import Any, Callable, Dict, Hashable, Tuple, Union

import numpy as np

from lshsig._config.config import (
    DEFAULT_FAMILY_CACHE_SIZE,
    require_bit_width,
    require_positive_int,
    require_seed,
)
from lshsig.width import WidthPolicy, resolve_width

logger = logging.getLogger(__name__)

FAMILY_FORMAT_VERSION = 1

__all__ = [
    "MinHashFamily",
    "EuclideanFamily",
    "FamilyCache",
    "derive_minhash_family",
    "derive_euclidean_family",
    "minhash_family",
    "euclidean_family",
    "configure_family_cache",
    "family_cache_info",
    "clear_family_cache",
    "save_family",
    "load_family",
]


def _freeze(array: np.ndarray) -> np.ndarray:
    array.setflags(write=False)
    return array


@dataclass(frozen=True, eq=False)
class MinHashFamily:
    """
    MinHash permutations ``h(x) = mix((a * x + b) mod 2**bits)``.

    Attributes:
        multipliers: Odd ``a`` coefficients, shape ``(band_count, band_size)``.
        increments: ``b`` coefficients, shape ``(band_count, band_size)``.
    """

    seed: int
    band_count: int
    band_size: int
    width: WidthPolicy = field(repr=False)
    multipliers: np.ndarray = field(repr=False)
    increments: np.ndarray = field(repr=False)

    kind = "minhash"

    @property
    def num_hashes(self) -> int:
        return self.band_count * self.band_size


@dataclass(frozen=True, eq=False)
class EuclideanFamily:
    """
    p-stable projections for L2 distance.

    Attributes:
        directions: Standard-normal projection vectors, shape ``(band_count, band_size, dim)``.
        offsets: Uniform ``[0, 1)`` offsets in units of bucket width, shape ``(band_count, band_size)``.
    """

    seed: int
    band_count: int
    band_size: int
    dim: int
    width: WidthPolicy = field(repr=False)
    directions: np.ndarray = field(repr=False)
    offsets: np.ndarray = field(repr=False)

    kind = "euclidean"

    @property
    def num_hashes(self) -> int:
        return self.band_count * self.band_size


Family = Union[MinHashFamily, EuclideanFamily]


def derive_minhash_family(
    seed: int, band_count: int, band_size: int, bit_width: int = 64
) -> MinHashFamily:
    """
    Derive MinHash coefficients from ``seed``.

    Both widths follow the same construction; the 32-bit family draws its
    coefficients from the 32-bit range.

    Raises:
        InvalidParameter: If a count is non-positive, the seed is outside
            ``[0, 2**64)`` or ``bit_width`` is not 32 or 64.
    """
    seed = require_seed(seed)
    band_count = require_positive_int(band_count, "band_count")
    band_size = require_positive_int(band_size, "band_size")
    width = resolve_width(bit_width)

    rng = np.random.default_rng(seed)
    shape = (band_count, band_size)
    high = np.uint64(width.mask)
    multipliers = rng.integers(0, high, size=shape, dtype=np.uint64, endpoint=True)
    multipliers |= np.uint64(1)
    increments = rng.integers(0, high, size=shape, dtype=np.uint64, endpoint=True)

    logger.debug(
        "Derived MinHash family seed=%d bands=%d rows=%d bits=%d",
        seed, band_count, band_size, width.bits,
    )
    return MinHashFamily(
        seed=seed,
        band_count=band_count,
        band_size=band_size,
        width=width,
        multipliers=_freeze(multipliers),
        increments=_freeze(increments),
    )


def derive_euclidean_family(
    seed: int, band_count: int, band_size: int, dim: int, bit_width: int = 64
) -> EuclideanFamily:
    """Derive projection directions and offsets for ``dim``-dimensional vectors."""
    seed = require_seed(seed)
    band_count = require_positive_int(band_count, "band_count")
    band_size = require_positive_int(band_size, "band_size")
    dim = require_positive_int(dim, "vector dimensionality")
    width = resolve_width(bit_width)

    rng = np.random.default_rng(seed)
    directions = rng.standard_normal((band_count, band_size, dim))
    offsets = rng.random((band_count, band_size))

    logger.debug(
        "Derived Euclidean family seed=%d bands=%d rows=%d dim=%d bits=%d",
        seed, band_count, band_size, dim, width.bits,
    )
    return EuclideanFamily(
        seed=seed,
        band_count=band_count,
        band_size=band_size,
        dim=dim,
        width=width,
        directions=_freeze(directions),
        offsets=_freeze(offsets),
    )


# ---------------------------------------------------------------------------
# Memoization
# ---------------------------------------------------------------------------


class FamilyCache:
    """
    Bounded LRU table of derived families, safe for concurrent use.

    Derivation runs outside the lock. When two threads miss on the same key
    at once both derive, and the first insert wins; the loser returns the
    stored entry so every caller observes one object per key.
    """

    def __init__(self, maxsize: int = DEFAULT_FAMILY_CACHE_SIZE) -> None:
        if maxsize < 0:
            raise ValueError("maxsize must be >= 0")
        self._maxsize = maxsize
        self._entries: "OrderedDict[Hashable, Family]" = OrderedDict()
        self._lock = Lock()
        self.hits = 0
        self.misses = 0

    def get_or_create(self, key: Hashable, factory: Callable[[], Family]) -> Family:
        with self._lock:
            family = self._entries.get(key)
            if family is not None:
                self._entries.move_to_end(key)
                self.hits += 1
                return family
            self.misses += 1
            if self._maxsize == 0:
                return factory()

        family = factory()

        with self._lock:
            existing = self._entries.get(key)
            if existing is not None:
                self._entries.move_to_end(key)
                return existing
            self._entries[key] = family
            self._evict()
        return family

    def resize(self, maxsize: int) -> None:
        if maxsize < 0:
            raise ValueError("maxsize must be >= 0")
        with self._lock:
            self._maxsize = maxsize
            self._evict()

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()
            self.hits = 0
            self.misses = 0

    def info(self) -> Dict[str, int]:
        with self._lock:
            return {
                "hits": self.hits,
                "misses": self.misses,
                "size": len(self._entries),
                "maxsize": self._maxsize,
            }

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def _evict(self) -> None:
        # caller holds the lock
        while len(self._entries) > self._maxsize:
            key, _ = self._entries.popitem(last=False)
            logger.debug("Evicted hash family %s", key)


_cache = FamilyCache()


def minhash_family(
    seed: int, band_count: int, band_size: int, bit_width: int = 64
) -> MinHashFamily:
    """Cached :func:`derive_minhash_family`."""
    key: Tuple[Any, ...] = ("minhash", seed, band_count, band_size, require_bit_width(bit_width))
    return _cache.get_or_create(
        key, lambda: derive_minhash_family(seed, band_count, band_size, bit_width)
    )


def euclidean_family(
    seed: int, band_count: int, band_size: int, dim: int, bit_width: int = 64
) -> EuclideanFamily:
    """Cached :func:`derive_euclidean_family`."""
    key = ("euclidean", seed, band_count, band_size, dim, require_bit_width(bit_width))
    return _cache.get_or_create(
        key, lambda: derive_euclidean_family(seed, band_count, band_size, dim, bit_width)
    )


def configure_family_cache(maxsize: int) -> None:
    """Change the capacity of the process-wide family cache (0 disables it)."""
    _cache.resize(maxsize)


def family_cache_info() -> Dict[str, int]:
    return _cache.info()


def clear_family_cache() -> None:
    _cache.clear()


# ---------------------------------------------------------------------------
# Persistence
# ---------------------------------------------------------------------------


def save_family(family: Family, path: Union[str, Path]) -> None:
    """
    Persist a family to a directory as ``metadata.json`` plus ``family.npz``.

    The JSON/NumPy format avoids pickle, so loading a family never executes code.
    """
    output_dir = Path(path)
    output_dir.mkdir(parents=True, exist_ok=True)

    metadata: Dict[str, Any] = {
        "version": FAMILY_FORMAT_VERSION,
        "kind": family.kind,
        "seed": family.seed,
        "band_count": family.band_count,
        "band_size": family.band_size,
        "bit_width": family.width.bits,
    }
    if isinstance(family, EuclideanFamily):
        metadata["dim"] = family.dim
        arrays = {"directions": family.directions, "offsets": family.offsets}
    else:
        arrays = {"multipliers": family.multipliers, "increments": family.increments}

    with open(output_dir / "metadata.json", "w") as f:
        json.dump(metadata, f, indent=2)
    np.savez_compressed(output_dir / "family.npz", **arrays)


def load_family(path: Union[str, Path]) -> Family:
    """
    Restore a family written by :func:`save_family`.

    Raises:
        FileNotFoundError: If the directory or one of its files is missing.
        ValueError: If the metadata is unsupported or the arrays do not match it.
    """
    input_dir = Path(path)
    if not input_dir.exists():
        raise FileNotFoundError(f"Directory not found: {input_dir}")

    with open(input_dir / "metadata.json", "r") as f:
        metadata = json.load(f)

    if metadata.get("version") != FAMILY_FORMAT_VERSION:
        raise ValueError(f"Unsupported family format version {metadata.get('version')!r}")

    band_count = metadata["band_count"]
    band_size = metadata["band_size"]
    width = resolve_width(metadata["bit_width"])

    with np.load(input_dir / "family.npz") as data:
        arrays = {name: data[name] for name in data.files}

    kind = metadata.get("kind")
    if kind == MinHashFamily.kind:
        multipliers = np.asarray(arrays["multipliers"], dtype=np.uint64)
        increments = np.asarray(arrays["increments"], dtype=np.uint64)
        _check_shape(multipliers, (band_count, band_size), "multipliers")
        _check_shape(increments, (band_count, band_size), "increments")
        return MinHashFamily(
            seed=metadata["seed"],
            band_count=band_count,
            band_size=band_size,
            width=width,
            multipliers=_freeze(multipliers),
            increments=_freeze(increments),
        )
    if kind == EuclideanFamily.kind:
        dim = metadata["dim"]
        directions = np.asarray(arrays["directions"], dtype=np.float64)
        offsets = np.asarray(arrays["offsets"], dtype=np.float64)
        _check_shape(directions, (band_count, band_size, dim), "directions")
        _check_shape(offsets, (band_count, band_size), "offsets")
        return EuclideanFamily(
            seed=metadata["seed"],
            band_count=band_count,
            band_size=band_size,
            dim=dim,
            width=width,
            directions=_freeze(directions),
            offsets=_freeze(offsets),
        )
    raise ValueError(f"Unknown family kind {kind!r}")


def _check_shape(array: np.ndarray, expected: Tuple[int, ...], name: str) -> None:
    if array.shape != expected:
        raise ValueError(f"Stored {name} has shape {array.shape}, expected {expected}")
