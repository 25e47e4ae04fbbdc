"""
Band combination.

Hash values are laid out as ``(..., band_count, band_size)``; band ``i`` holds
generation slots ``[i * band_size, (i + 1) * band_size)``. Each band collapses
into one value with an order-sensitive fold::

    acc = width.basis
    for value in band:
        acc = width.mix(acc ^ value)
"""

from __future__ import annotations

import numpy as np

from lshsig.width import WidthPolicy


def combine_bands(values: np.ndarray, width: WidthPolicy) -> np.ndarray:
    """
    Fold the last axis of ``values`` into one value per band.

    Args:
        values: ``uint64`` array shaped ``(..., band_count, band_size)``.
        width: Policy whose finalizer mixes the accumulator.

    Returns:
        ``uint64`` array shaped ``(..., band_count)``.
    """
    arr = np.asarray(values, dtype=np.uint64)
    acc = np.full(arr.shape[:-1], width.basis, dtype=np.uint64)
    for row in range(arr.shape[-1]):
        acc = width.mix(acc ^ arr[..., row])
    return acc


def split_bands(flat: np.ndarray, band_count: int, band_size: int) -> np.ndarray:
    """Reshape a flat ``band_count * band_size`` vector into band rows."""
    arr = np.asarray(flat)
    if arr.shape[-1] != band_count * band_size:
        raise ValueError(
            f"Expected {band_count * band_size} hash values, received {arr.shape[-1]}"
        )
    return arr.reshape(arr.shape[:-1] + (band_count, band_size))
