"""
The config module holds package-wide configurables and provides
a uniform API for working with them.
"""

from __future__ import annotations

import logging
import math
import operator
import os
from dataclasses import asdict, dataclass
from typing import Any, Dict, Iterator, List, Optional, Tuple

import numpy as np

from lshsig.errors import InvalidParameter

logger = logging.getLogger(__name__)

DEFAULT_SEED = 42
DEFAULT_BATCH_SIZE = 10_000


def _env_cache_size(name: str, default: int) -> int:
    """Read a non-negative cache capacity from the environment, else ``default``."""
    raw = os.environ.get(name)
    if raw is None:
        return default
    try:
        size = int(raw)
    except ValueError:
        size = -1
    if size < 0:
        logger.warning(
            "Ignoring %s=%r: expected a non-negative integer, using %d", name, raw, default
        )
        return default
    return size


DEFAULT_FAMILY_CACHE_SIZE = _env_cache_size("LSHSIG_FAMILY_CACHE_SIZE", 128)

SUPPORTED_BIT_WIDTHS = (32, 64)
MAX_SEED = 2**64 - 1


@dataclass(frozen=True)
class HashSignatures:
    """
    Container for the banded signature produced by a single row.

    Each row is hashed into ``band_count`` bands. Every band value is one unsigned
    integer of ``bit_width`` bits that folds ``band_size`` hash values together.
    Rows sharing the value at any band position are candidate matches.

    Attributes:
        bands: One unsigned integer per band, in band order.
        bit_width: 32 or 64, the numeric range of every band value.

    Example:
        >>> sigs = HashSignatures((17, 4242, 99), bit_width=64)
        >>> len(sigs)
        3
        >>> sigs[1]
        4242
    """

    bands: Tuple[int, ...]
    bit_width: int = 64

    def __iter__(self) -> Iterator[int]:
        return iter(self.bands)

    def __len__(self) -> int:
        return len(self.bands)

    def __getitem__(self, band_id: int) -> int:
        return self.bands[band_id]

    def as_tuple(self) -> Tuple[int, ...]:
        return self.bands

    def as_list(self) -> List[int]:
        return list(self.bands)

    def to_numpy(self) -> np.ndarray:
        """Return the bands as a ``uint64``/``uint32`` array matching ``bit_width``."""
        dtype = np.uint64 if self.bit_width == 64 else np.uint32
        return np.asarray(self.bands, dtype=dtype)


# ---------------------------------------------------------------------------
# Parameter validation
# ---------------------------------------------------------------------------


def require_positive_int(value: Any, name: str) -> int:
    """Coerce ``value`` to an ``int`` and reject non-positive values."""
    try:
        number = operator.index(value)
    except TypeError:
        raise InvalidParameter(f"{name} must be an integer, received {value!r}") from None
    if number <= 0:
        raise InvalidParameter(f"{name} must be greater than zero (received {number})")
    return number


def require_bucket_width(value: Any) -> float:
    try:
        width = float(value)
    except (TypeError, ValueError):
        raise InvalidParameter(f"bucket_width must be a number, received {value!r}") from None
    if not math.isfinite(width) or width <= 0:
        raise InvalidParameter(f"bucket_width must be greater than zero (received {value!r})")
    return width


def require_seed(value: Any) -> int:
    try:
        seed = operator.index(value)
    except TypeError:
        raise InvalidParameter(f"seed must be an integer, received {value!r}") from None
    if seed < 0 or seed > MAX_SEED:
        raise InvalidParameter(f"seed must fit in an unsigned 64-bit integer (received {seed})")
    return seed


def require_bit_width(value: Any) -> int:
    try:
        bits = operator.index(value)
    except TypeError:
        bits = None
    if bits not in SUPPORTED_BIT_WIDTHS:
        raise InvalidParameter(
            f"bit_width must be one of {SUPPORTED_BIT_WIDTHS}, received {value!r}"
        )
    return bits


@dataclass(frozen=True)
class MinHashConfig:
    """Fixed parameters of a MinHash call. ``ngram_width`` is ``None`` for shingle input."""

    band_count: int
    band_size: int
    seed: int = DEFAULT_SEED
    bit_width: int = 64
    ngram_width: Optional[int] = None

    def validate(self) -> "MinHashConfig":
        """Return a normalized copy, raising ``InvalidParameter`` on bad values."""
        return MinHashConfig(
            band_count=require_positive_int(self.band_count, "band_count"),
            band_size=require_positive_int(self.band_size, "band_size"),
            seed=require_seed(self.seed),
            bit_width=require_bit_width(self.bit_width),
            ngram_width=(
                None
                if self.ngram_width is None
                else require_positive_int(self.ngram_width, "ngram_width")
            ),
        )

    @property
    def num_hashes(self) -> int:
        return self.band_count * self.band_size

    def as_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class EuclideanConfig:
    """Fixed parameters of a Euclidean LSH call."""

    bucket_width: float
    band_count: int
    band_size: int
    seed: int = DEFAULT_SEED
    bit_width: int = 64

    def validate(self) -> "EuclideanConfig":
        return EuclideanConfig(
            bucket_width=require_bucket_width(self.bucket_width),
            band_count=require_positive_int(self.band_count, "band_count"),
            band_size=require_positive_int(self.band_size, "band_size"),
            seed=require_seed(self.seed),
            bit_width=require_bit_width(self.bit_width),
        )

    @property
    def num_hashes(self) -> int:
        return self.band_count * self.band_size

    def as_dict(self) -> Dict[str, Any]:
        return asdict(self)
