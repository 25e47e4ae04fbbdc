"""
Host-Facing Signature Functions

This module exposes the functions a query engine registers, in two forms:

- Row functions (``lsh_min``, ``lsh_min32``, ``lsh_euclidean``,
  ``lsh_euclidean32``, ``lsh_jaccard``) take one row value plus the fixed
  parameters and return a plain list of band values (or a float for Jaccard).
- Batch functions (``*_batch``) take a column of row values. Fixed parameters
  may be scalars or per-row columns; a column must hold one constant value.

Contract shared by every function:
    1. Fixed parameters are validated once, before any row is hashed. Invalid
       parameters raise ``InvalidParameter`` and abort the whole call.
    2. A ``None`` row yields ``None`` for that row; it is never an error.
    3. Every non-NULL signature has exactly ``band_count`` values, so callers can
       join on ``signature[i]`` directly.

``lsh_min`` / ``lsh_min32`` are overloaded by arity like their SQL
counterparts::

    lsh_min(text, ngram_width, band_count, band_size, seed)
    lsh_min(shingles, band_count, band_size, seed)
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Dict, Iterable, Iterator, List, Optional, Sequence, Tuple, Union

import numpy as np

from lshsig._config.config import (
    DEFAULT_BATCH_SIZE,
    EuclideanConfig,
    MinHashConfig,
    require_positive_int,
)
from lshsig.errors import DimensionMismatch, InvalidParameter
from lshsig.hash.euclidean import EuclideanHasher
from lshsig.hash.minhash import MinHasher
from lshsig.similarity import TextOrTokens, jaccard_similarity

logger = logging.getLogger(__name__)

Signature = List[int]
VectorLike = Union[Sequence[float], np.ndarray]
BatchFunction = Callable[..., List[Any]]

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
]


# ---------------------------------------------------------------------------
# Row functions
# ---------------------------------------------------------------------------


def lsh_min(value: Optional[TextOrTokens], *params: Any) -> Optional[Signature]:
    """
    64-bit banded MinHash of one row.

    Call as ``lsh_min(text, ngram_width, band_count, band_size, seed)`` for
    character n-grams or ``lsh_min(shingles, band_count, band_size, seed)``
    for a pre-tokenized row.

    Examples
    --------
    >>> sig = lsh_min("Mike Wilson", 2, 3, 2, 123)
    >>> len(sig)
    3
    >>> lsh_min(None, 2, 3, 2, 123) is None
    True
    """
    return _minhash_row(value, params, bit_width=64, name="lsh_min")


def lsh_min32(value: Optional[TextOrTokens], *params: Any) -> Optional[Signature]:
    """32-bit sibling of :func:`lsh_min`."""
    return _minhash_row(value, params, bit_width=32, name="lsh_min32")


def lsh_euclidean(
    vector: Optional[VectorLike],
    bucket_width: float,
    band_count: int,
    band_size: int,
    seed: int,
) -> Optional[Signature]:
    """
    64-bit banded Euclidean LSH of one vector.

    Raises
    ------
    InvalidParameter
        If ``bucket_width``, ``band_count`` or ``band_size`` is not positive,
        or the seed does not fit in 64 bits.
    InvalidVector
        If the vector holds NaN or infinite components.
    """
    return _euclidean_row(vector, bucket_width, band_count, band_size, seed, bit_width=64)


def lsh_euclidean32(
    vector: Optional[VectorLike],
    bucket_width: float,
    band_count: int,
    band_size: int,
    seed: int,
) -> Optional[Signature]:
    """32-bit sibling of :func:`lsh_euclidean`."""
    return _euclidean_row(vector, bucket_width, band_count, band_size, seed, bit_width=32)


def lsh_jaccard(
    a: Optional[TextOrTokens],
    b: Optional[TextOrTokens],
    ngram_width: Optional[int] = None,
) -> Optional[float]:
    """
    Exact Jaccard similarity of two rows.

    Strings are compared on their ``ngram_width`` character n-grams; two token
    sequences (with ``ngram_width`` omitted) are compared as sets. Returns
    ``None`` if either side is ``None`` or both shingle sets are empty.

    Examples
    --------
    >>> lsh_jaccard("Michael Wilson", "Mike Wilson", 2)
    0.4375
    >>> lsh_jaccard("Alice Johnson", None, 2) is None
    True
    """
    width = None if ngram_width is None else require_positive_int(ngram_width, "ngram_width")
    if a is None or b is None:
        return None
    return jaccard_similarity(a, b, width)


# ---------------------------------------------------------------------------
# Batch functions
# ---------------------------------------------------------------------------


def lsh_min_batch(values: Sequence[Optional[TextOrTokens]], *params: Any) -> List[Optional[Signature]]:
    """
    Column form of :func:`lsh_min`.

    ``params`` follow the same arity rule as the row function; each may be a
    scalar or a per-row column holding one constant value.
    """
    return _minhash_batch(values, params, bit_width=64, name="lsh_min")


def lsh_min32_batch(values: Sequence[Optional[TextOrTokens]], *params: Any) -> List[Optional[Signature]]:
    return _minhash_batch(values, params, bit_width=32, name="lsh_min32")


def lsh_euclidean_batch(
    vectors: Iterable[Optional[VectorLike]],
    bucket_width: Any,
    band_count: Any,
    band_size: Any,
    seed: Any,
) -> List[Optional[Signature]]:
    """
    Column form of :func:`lsh_euclidean`.

    Raises
    ------
    DimensionMismatch
        If non-NULL vectors in the batch differ in length.
    """
    return _euclidean_batch(vectors, bucket_width, band_count, band_size, seed, bit_width=64)


def lsh_euclidean32_batch(
    vectors: Iterable[Optional[VectorLike]],
    bucket_width: Any,
    band_count: Any,
    band_size: Any,
    seed: Any,
) -> List[Optional[Signature]]:
    return _euclidean_batch(vectors, bucket_width, band_count, band_size, seed, bit_width=32)


def lsh_jaccard_batch(
    left: Sequence[Optional[TextOrTokens]],
    right: Sequence[Optional[TextOrTokens]],
    ngram_width: Any = None,
) -> List[Optional[float]]:
    """Row-wise :func:`lsh_jaccard` over two equally long columns."""
    left_rows = list(left)
    right_rows = list(right)
    if len(left_rows) != len(right_rows):
        raise ValueError(
            f"Column lengths differ: {len(left_rows)} left rows, {len(right_rows)} right rows"
        )
    ngram_width = _constant_param(ngram_width, "ngram_width", len(left_rows))
    width = None if ngram_width is None else require_positive_int(ngram_width, "ngram_width")
    return [jaccard_similarity(a, b, width) for a, b in zip(left_rows, right_rows)]


_BATCH_FUNCTIONS: Dict[str, BatchFunction] = {
    "min": lsh_min_batch,
    "min32": lsh_min32_batch,
    "euclidean": lsh_euclidean_batch,
    "euclidean32": lsh_euclidean32_batch,
}


def resolve_batch_function(name: str) -> BatchFunction:
    """
    Map a function name (``min``, ``lsh_min32``, ``euclidean``, ...) to its batch form.

    Raises
    ------
    ValueError
        If the name is not a signature function.
    """
    normalized = name.lower()
    if normalized.startswith("lsh_"):
        normalized = normalized[len("lsh_"):]
    try:
        return _BATCH_FUNCTIONS[normalized]
    except KeyError:
        raise ValueError(f"Unsupported signature function '{name}'") from None


def signatures_from_parquet(
    source: Any,
    column: str,
    function: str,
    *params: Any,
    batch_size: int = DEFAULT_BATCH_SIZE,
) -> Iterator[Tuple[List[Any], List[Optional[Signature]]]]:
    """
    Stream ``(values, signatures)`` batches for one column of a Parquet file.

    Parameters
    ----------
    source : str or Path
        Parquet file to read.
    column : str
        Column holding strings, string lists or float lists.
    function : str
        Signature function name, see :func:`resolve_batch_function`.
    *params
        Fixed parameters of the function, without the row value.
    batch_size : int
        Rows per batch.
    """
    from lshsig.io.parquet import iter_parquet_column

    batch_fn = resolve_batch_function(function)
    for values in iter_parquet_column(source, column, batch_size=batch_size):
        yield values, batch_fn(values, *params)


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------


def _minhash_config(params: Sequence[Any], bit_width: int, name: str) -> MinHashConfig:
    if len(_minhash_param_names(len(params), name)) == 4:
        ngram_width, band_count, band_size, seed = params
        if ngram_width is None:
            raise InvalidParameter(f"{name}: ngram_width must not be NULL")
    else:
        ngram_width = None
        band_count, band_size, seed = params
    return MinHashConfig(
        band_count=band_count,
        band_size=band_size,
        seed=seed,
        bit_width=bit_width,
        ngram_width=ngram_width,
    ).validate()


def _check_row_form(value: Any, config: MinHashConfig, name: str) -> None:
    if config.ngram_width is None and isinstance(value, str):
        raise TypeError(f"{name}: shingle form expects a sequence of strings, received a string")
    if config.ngram_width is not None and not isinstance(value, str):
        raise TypeError(f"{name}: text form expects a string, received {type(value).__name__}")


def _minhash_row(value: Any, params: Sequence[Any], *, bit_width: int, name: str) -> Optional[Signature]:
    config = _minhash_config(params, bit_width, name)
    if value is None:
        return None
    _check_row_form(value, config, name)

    hasher = MinHasher(
        config.band_count, config.band_size, seed=config.seed, bit_width=config.bit_width
    )
    if config.ngram_width is None:
        return hasher.hash_tokens(value).as_list()
    return hasher.hash_text(value, config.ngram_width).as_list()


def _minhash_batch(
    values: Iterable[Any], params: Sequence[Any], *, bit_width: int, name: str
) -> List[Optional[Signature]]:
    rows = list(values)
    constants = [
        _constant_param(param, param_name, len(rows))
        for param, param_name in zip(params, _minhash_param_names(len(params), name))
    ]
    config = _minhash_config(constants, bit_width, name)
    for value in rows:
        if value is not None:
            _check_row_form(value, config, name)

    hasher = MinHasher(
        config.band_count, config.band_size, seed=config.seed, bit_width=config.bit_width
    )
    signatures = hasher.hash_batch(rows, config.ngram_width)
    logger.debug(
        "%s hashed %d rows (%d NULL) into %d bands",
        name, len(rows), sum(sig is None for sig in signatures), config.band_count,
    )
    return [None if sig is None else sig.as_list() for sig in signatures]


def _minhash_param_names(count: int, name: str) -> Tuple[str, ...]:
    names = ("band_count", "band_size", "seed")
    if count == 4:
        return ("ngram_width",) + names
    if count == 3:
        return names
    raise TypeError(
        f"{name}() takes (text, ngram_width, band_count, band_size, seed) "
        f"or (shingles, band_count, band_size, seed); got {count + 1} arguments"
    )


def _euclidean_row(
    vector: Any,
    bucket_width: Any,
    band_count: Any,
    band_size: Any,
    seed: Any,
    *,
    bit_width: int,
) -> Optional[Signature]:
    config = EuclideanConfig(bucket_width, band_count, band_size, seed, bit_width).validate()
    if vector is None:
        return None
    vec = _as_vector(vector)
    hasher = EuclideanHasher(
        config.bucket_width,
        config.band_count,
        config.band_size,
        vec.shape[0],
        seed=config.seed,
        bit_width=config.bit_width,
    )
    return hasher.hash_vector(vec).as_list()


def _euclidean_batch(
    vectors: Iterable[Any],
    bucket_width: Any,
    band_count: Any,
    band_size: Any,
    seed: Any,
    *,
    bit_width: int,
) -> List[Optional[Signature]]:
    rows = list(vectors)
    n = len(rows)
    config = EuclideanConfig(
        bucket_width=_constant_param(bucket_width, "bucket_width", n),
        band_count=_constant_param(band_count, "band_count", n),
        band_size=_constant_param(band_size, "band_size", n),
        seed=_constant_param(seed, "seed", n),
        bit_width=bit_width,
    ).validate()

    present: List[Tuple[int, np.ndarray]] = [
        (row_idx, _as_vector(row)) for row_idx, row in enumerate(rows) if row is not None
    ]
    results: List[Optional[Signature]] = [None] * n
    if not present:
        return results

    dim = max(vec.shape[0] for _, vec in present)
    for row_idx, vec in present:
        if vec.shape[0] != dim:
            raise DimensionMismatch(dim, vec.shape[0], row=row_idx)

    hasher = EuclideanHasher(
        config.bucket_width,
        config.band_count,
        config.band_size,
        dim,
        seed=config.seed,
        bit_width=config.bit_width,
    )
    signatures = hasher.hash_batch(np.stack([vec for _, vec in present]))
    for (row_idx, _), sig in zip(present, signatures):
        results[row_idx] = sig.as_list()

    logger.debug(
        "lsh_euclidean%s hashed %d rows (%d NULL), dim=%d",
        "" if bit_width == 64 else str(bit_width), n, n - len(present), dim,
    )
    return results


def _as_vector(vector: Any) -> np.ndarray:
    return np.asarray(vector, dtype=np.float64).reshape(-1)


def _constant_param(value: Any, name: str, rows: int) -> Any:
    """
    Collapse a fixed parameter given as a per-row column to its single value.

    Scalars pass through untouched.

    Raises
    ------
    InvalidParameter
        If the column length differs from ``rows`` or its values vary.
    """
    if isinstance(value, np.ndarray):
        value = value.tolist()
    if not isinstance(value, (list, tuple)):
        return value

    if len(value) != rows:
        raise InvalidParameter(f"{name} column has {len(value)} rows, expected {rows}")
    if not value:
        raise InvalidParameter(f"{name} column is empty; pass a scalar for empty batches")
    first = value[0]
    if any(item != first for item in value[1:]):
        raise InvalidParameter(f"{name} must be a constant value, not vary per row")
    return first
