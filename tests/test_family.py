from __future__ import annotations

import threading

import numpy as np
import pytest

from lshsig import InvalidParameter, configure_family_cache, family_cache_info
from lshsig.hash.family import (
    FamilyCache,
    derive_euclidean_family,
    derive_minhash_family,
    euclidean_family,
    minhash_family,
)


class TestMinHashDerivation:
    def test_same_seed_same_family(self):
        first = derive_minhash_family(123, 3, 2)
        second = derive_minhash_family(123, 3, 2)
        np.testing.assert_array_equal(first.multipliers, second.multipliers)
        np.testing.assert_array_equal(first.increments, second.increments)

    def test_different_seed_different_family(self):
        first = derive_minhash_family(1, 4, 4)
        second = derive_minhash_family(2, 4, 4)
        assert not np.array_equal(first.multipliers, second.multipliers)

    def test_shape_and_odd_multipliers(self):
        family = derive_minhash_family(7, 5, 3)
        assert family.multipliers.shape == (5, 3)
        assert family.increments.shape == (5, 3)
        assert family.num_hashes == 15
        assert np.all(family.multipliers & np.uint64(1) == 1)

    def test_32_bit_coefficients_in_range(self):
        family = derive_minhash_family(7, 8, 4, bit_width=32)
        assert int(family.multipliers.max()) <= 0xFFFFFFFF
        assert int(family.increments.max()) <= 0xFFFFFFFF

    def test_arrays_are_read_only(self):
        family = derive_minhash_family(7, 2, 2)
        with pytest.raises(ValueError):
            family.multipliers[0, 0] = 1

    def test_full_seed_range_accepted(self):
        derive_minhash_family(0, 1, 1)
        derive_minhash_family(2**64 - 1, 1, 1)

    @pytest.mark.parametrize("seed", [-1, 2**64])
    def test_seed_out_of_range(self, seed):
        with pytest.raises(InvalidParameter, match="seed"):
            derive_minhash_family(seed, 2, 2)

    @pytest.mark.parametrize(
        "band_count,band_size,match",
        [(0, 2, "band_count"), (2, 0, "band_size"), (-3, 2, "band_count")],
    )
    def test_non_positive_counts(self, band_count, band_size, match):
        with pytest.raises(InvalidParameter, match=match):
            derive_minhash_family(1, band_count, band_size)


class TestEuclideanDerivation:
    def test_shapes_and_ranges(self):
        family = derive_euclidean_family(123, 2, 3, 4)
        assert family.directions.shape == (2, 3, 4)
        assert family.offsets.shape == (2, 3)
        assert np.all((family.offsets >= 0.0) & (family.offsets < 1.0))

    def test_deterministic(self):
        first = derive_euclidean_family(9, 2, 2, 8)
        second = derive_euclidean_family(9, 2, 2, 8)
        np.testing.assert_array_equal(first.directions, second.directions)
        np.testing.assert_array_equal(first.offsets, second.offsets)

    def test_zero_dimension_rejected(self):
        with pytest.raises(InvalidParameter, match="dimensionality"):
            derive_euclidean_family(9, 2, 2, 0)


class TestFamilyCache:
    def test_same_key_returns_same_object(self):
        assert minhash_family(5, 3, 2) is minhash_family(5, 3, 2)
        info = family_cache_info()
        assert info["misses"] == 1
        assert info["hits"] == 1
        assert info["size"] == 1

    def test_widths_and_kinds_do_not_share_entries(self):
        assert minhash_family(5, 3, 2, 64) is not minhash_family(5, 3, 2, 32)
        euclidean_family(5, 3, 2, 4)
        assert family_cache_info()["size"] == 3

    def test_lru_eviction(self):
        cache = FamilyCache(maxsize=2)
        cache.get_or_create("a", lambda: derive_minhash_family(1, 1, 1))
        cache.get_or_create("b", lambda: derive_minhash_family(2, 1, 1))
        # touch "a" so "b" becomes the eviction candidate
        cache.get_or_create("a", lambda: derive_minhash_family(1, 1, 1))
        cache.get_or_create("c", lambda: derive_minhash_family(3, 1, 1))
        assert len(cache) == 2
        assert cache.info()["misses"] == 3

        calls = []
        cache.get_or_create("b", lambda: calls.append(1) or derive_minhash_family(2, 1, 1))
        assert calls == [1]

    def test_zero_size_disables_storage(self):
        configure_family_cache(0)
        first = minhash_family(5, 3, 2)
        second = minhash_family(5, 3, 2)
        assert first is not second
        np.testing.assert_array_equal(first.multipliers, second.multipliers)
        assert family_cache_info()["size"] == 0

    def test_shrinking_evicts(self):
        for seed in range(4):
            minhash_family(seed, 1, 1)
        configure_family_cache(1)
        assert family_cache_info()["size"] == 1

    def test_negative_size_rejected(self):
        with pytest.raises(ValueError):
            FamilyCache(maxsize=-1)

    def test_concurrent_first_population_yields_one_object(self):
        cache = FamilyCache(maxsize=8)
        barrier = threading.Barrier(8)
        results = []
        lock = threading.Lock()

        def factory():
            return derive_euclidean_family(11, 4, 4, 16)

        def worker():
            barrier.wait()
            family = cache.get_or_create("shared", factory)
            with lock:
                results.append(family)

        threads = [threading.Thread(target=worker) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert len(results) == 8
        assert all(family is results[0] for family in results)
        assert len(cache) == 1
