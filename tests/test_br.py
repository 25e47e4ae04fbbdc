import pytest

import lshsig
from lshsig.utils.br import (
    collision_probability,
    estimate_error_rates,
    find_optimal_br,
    similarity_threshold,
)


class TestCollisionProbability:
    def test_extremes(self):
        assert collision_probability(1.0, 4, 3) == 1.0
        assert collision_probability(0.0, 4, 3) == 0.0

    def test_monotone_in_similarity(self):
        values = [collision_probability(s / 10, 8, 4) for s in range(11)]
        assert values == sorted(values)

    def test_out_of_range(self):
        with pytest.raises(ValueError):
            collision_probability(1.5, 4, 3)


def test_similarity_threshold():
    assert similarity_threshold(16, 8) == pytest.approx(2 ** -0.5)


def test_error_rates_are_probabilities():
    fpr, fnr = estimate_error_rates(16, 8, 0.7)
    assert 0.0 <= fpr <= 1.0
    assert 0.0 <= fnr <= 1.0


class TestFindOptimalBr:
    def test_simple(self):
        assert find_optimal_br(128, optimize_for="simple") == (8, 16)

    @pytest.mark.parametrize("mode", ["balanced", "fpr", "fnr", "threshold"])
    def test_product_preserved(self, mode):
        bands, rows = find_optimal_br(120, target_threshold=0.6, optimize_for=mode)
        assert bands * rows == 120

    def test_threshold_mode_is_closest(self):
        bands, rows = find_optimal_br(64, target_threshold=0.5, optimize_for="threshold")
        best = abs(similarity_threshold(bands, rows) - 0.5)
        for b in (1, 2, 4, 8, 16, 32, 64):
            assert best <= abs(similarity_threshold(b, 64 // b) - 0.5)

    def test_max_bands(self):
        bands, _ = find_optimal_br(120, target_threshold=0.3, max_bands=10)
        assert bands <= 10

    def test_unknown_target(self):
        with pytest.raises(ValueError, match="Unknown"):
            find_optimal_br(64, optimize_for="recall")

    def test_threshold_range(self):
        with pytest.raises(ValueError):
            find_optimal_br(64, target_threshold=1.0)


def test_helpers_exported_from_package():
    assert lshsig.find_optimal_br is find_optimal_br
    assert lshsig.collision_probability is collision_probability
    assert lshsig.similarity_threshold is similarity_threshold
