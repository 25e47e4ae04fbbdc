"""
Band/row tuning helpers for banded signatures.

For a banded signature with ``b`` bands of ``r`` rows, two rows with per-hash
collision probability ``s`` share at least one band with probability::

    P(s) = 1 - (1 - s**r)**b

For MinHash ``s`` is the Jaccard similarity of the shingle sets. The S-curve
is steepest around ``(1/b)**(1/r)``. These helpers only suggest parameters;
deciding what counts as a match stays with the caller.
"""

from __future__ import annotations

from typing import List, Optional, Tuple

import numpy as np

from lshsig._config.config import require_positive_int


def collision_probability(similarity: float, band_count: int, band_size: int) -> float:
    """Probability that two rows with ``similarity`` share at least one band."""
    if not 0.0 <= similarity <= 1.0:
        raise ValueError("similarity must be within [0, 1]")
    band_count = require_positive_int(band_count, "band_count")
    band_size = require_positive_int(band_size, "band_size")
    return float(1.0 - (1.0 - similarity**band_size) ** band_count)


def similarity_threshold(band_count: int, band_size: int) -> float:
    """Approximate similarity at which the S-curve crosses 50%."""
    band_count = require_positive_int(band_count, "band_count")
    band_size = require_positive_int(band_size, "band_size")
    return (1.0 / band_count) ** (1.0 / band_size)


def estimate_error_rates(
    band_count: int,
    band_size: int,
    threshold: float,
    n_samples: int = 20,
) -> Tuple[float, float]:
    """
    Estimate false positive and false negative rates around ``threshold``.

    FPR is the mean collision probability below the threshold; FNR is the
    mean miss probability at or above it.
    """
    if threshold > 0:
        x = np.linspace(0.0, threshold, n_samples)
        y = 1.0 - (1.0 - x**band_size) ** band_count
        fpr = float(np.trapezoid(y, x) / threshold)
    else:
        fpr = 0.0

    if threshold < 1:
        x = np.linspace(threshold, 1.0, n_samples)
        y = (1.0 - x**band_size) ** band_count
        fnr = float(np.trapezoid(y, x) / (1.0 - threshold))
    else:
        fnr = 0.0

    return fpr, fnr


def _divisor_pairs(num_hashes: int) -> List[Tuple[int, int]]:
    return [
        (num_hashes // rows, rows)
        for rows in range(1, num_hashes + 1)
        if num_hashes % rows == 0
    ]


def find_optimal_br(
    num_hashes: int,
    target_threshold: float = 0.8,
    optimize_for: str = "balanced",
    max_bands: Optional[int] = None,
) -> Tuple[int, int]:
    """
    Pick ``(band_count, band_size)`` with ``band_count * band_size == num_hashes``.

    Args:
        num_hashes: Total number of hash functions.
        target_threshold: Similarity the S-curve should switch at.
        optimize_for: One of:
            - 'simple': sqrt(n) heuristic
            - 'balanced': minimize FPR + FNR at the target threshold
            - 'fpr': favour few false positives
            - 'fnr': favour few false negatives
            - 'threshold': match the S-curve midpoint to the target
        max_bands: Upper bound on ``band_count``.

    Returns:
        (band_count, band_size) tuple
    """
    num_hashes = require_positive_int(num_hashes, "num_hashes")
    if not 0.0 < target_threshold < 1.0:
        raise ValueError("target_threshold must be within (0, 1)")

    if optimize_for == "simple":
        bands = max(1, int(np.sqrt(num_hashes)))
        while num_hashes % bands != 0 and bands > 1:
            bands -= 1
        return bands, num_hashes // bands

    candidates = _divisor_pairs(num_hashes)
    if max_bands is not None:
        candidates = [(b, r) for b, r in candidates if b <= max_bands]
    if not candidates:
        return find_optimal_br(num_hashes, target_threshold, optimize_for="simple")

    best = candidates[0]
    best_score = float("inf")
    for bands, rows in candidates:
        if optimize_for == "threshold":
            score = abs(similarity_threshold(bands, rows) - target_threshold)
        elif optimize_for in ("balanced", "fpr", "fnr"):
            fpr, fnr = estimate_error_rates(bands, rows, target_threshold)
            if optimize_for == "fpr":
                score = fpr + 0.1 * fnr
            elif optimize_for == "fnr":
                score = 0.1 * fpr + fnr
            else:
                score = fpr + fnr
        else:
            raise ValueError(f"Unknown optimization target '{optimize_for}'")

        if score < best_score:
            best_score = score
            best = (bands, rows)

    return best


__all__ = [
    "collision_probability",
    "similarity_threshold",
    "estimate_error_rates",
    "find_optimal_br",
]
