"""
Error taxonomy for signature generation.

All errors derive from ``ValueError`` so callers that guard hashing calls with
``except ValueError`` keep working. Row-level NULLs are never errors; they
propagate as ``None``.
"""

from __future__ import annotations

__all__ = ["LSHError", "InvalidParameter", "DimensionMismatch", "InvalidVector"]


class LSHError(ValueError):
    """Base class for every error raised by lshsig."""


class InvalidParameter(LSHError):
    """A fixed parameter (width, count, seed, bucket width) is out of range."""


class DimensionMismatch(LSHError):
    """Vectors hashed together do not share one dimensionality."""

    def __init__(self, expected: int, received: int, *, row: int | None = None) -> None:
        self.expected = expected
        self.received = received
        self.row = row
        location = f" at row {row}" if row is not None else ""
        super().__init__(
            f"Vector dimensionality mismatch{location}: expected {expected}, got {received}"
        )


class InvalidVector(LSHError):
    """A vector contains NaN or infinite components."""
