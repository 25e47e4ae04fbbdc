"""Shared test fixtures."""

from __future__ import annotations

import numpy as np
import pytest

from lshsig._config.config import DEFAULT_FAMILY_CACHE_SIZE
from lshsig.hash.family import clear_family_cache, configure_family_cache


@pytest.fixture(autouse=True)
def fresh_family_cache():
    """Every test starts from an empty, default-sized family cache."""
    configure_family_cache(DEFAULT_FAMILY_CACHE_SIZE)
    clear_family_cache()
    yield
    configure_family_cache(DEFAULT_FAMILY_CACHE_SIZE)
    clear_family_cache()


@pytest.fixture
def rng() -> np.random.Generator:
    """Seeded random generator for deterministic tests."""
    return np.random.default_rng(12345)


@pytest.fixture
def names() -> list:
    """A small name column with a NULL and an empty string."""
    return [
        "Michael Wilson",
        "Mike Wilson",
        None,
        "Alice Johnson",
        "",
        "Alicia Johnson",
    ]
