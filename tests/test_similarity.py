from __future__ import annotations

import pytest

from lshsig import ShingleSet, jaccard, lsh_jaccard


class TestJaccard:
    def test_reference_example(self):
        assert lsh_jaccard("Michael Wilson", "Mike Wilson", 2) == 0.4375

    def test_null_side_returns_none(self):
        assert lsh_jaccard("Alice Johnson", None, 2) is None
        assert lsh_jaccard(None, "Alice Johnson", 2) is None
        assert lsh_jaccard(None, None, 2) is None

    def test_identical_non_empty_is_one(self):
        assert lsh_jaccard("Alice Johnson", "Alice Johnson", 3) == 1.0

    def test_both_empty_is_none(self):
        assert lsh_jaccard("a", "b", 2) is None
        assert lsh_jaccard("", "", 1) is None

    def test_one_empty_is_zero(self):
        assert lsh_jaccard("a", "abc", 2) == 0.0

    def test_disjoint_is_zero(self):
        assert lsh_jaccard("abc", "xyz", 2) == 0.0

    @pytest.mark.parametrize(
        "a,b",
        [
            ("Michael Wilson", "Mike Wilson"),
            ("Alice Johnson", "Alicia Johnson"),
            ("banana", "bandana"),
        ],
    )
    def test_symmetric_and_bounded(self, a, b):
        forward = lsh_jaccard(a, b, 2)
        backward = lsh_jaccard(b, a, 2)
        assert forward == backward
        assert 0.0 <= forward <= 1.0

    def test_token_form(self):
        assert lsh_jaccard(["a", "b"], ["b", "c"]) == pytest.approx(1 / 3)

    def test_text_without_width_rejected(self):
        with pytest.raises(TypeError, match="ngram_width"):
            lsh_jaccard("abc", "abd")

    def test_invalid_width_rejected_before_null_check(self):
        from lshsig import InvalidParameter

        with pytest.raises(InvalidParameter):
            lsh_jaccard(None, "abc", 0)

    def test_shingle_set_api(self):
        a = ShingleSet.from_tokens(["x", "y", "z"])
        b = ShingleSet.from_tokens(["y", "z"])
        assert jaccard(a, b) == pytest.approx(2 / 3)
