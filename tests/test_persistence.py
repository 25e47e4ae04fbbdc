import json

import numpy as np
import pytest

from lshsig import EuclideanHasher, MinHasher, load_family, save_family
from lshsig.hash.family import EuclideanFamily, MinHashFamily, derive_euclidean_family, derive_minhash_family


def test_minhash_round_trip(tmp_path):
    family = derive_minhash_family(123, 3, 2, bit_width=32)
    save_family(family, tmp_path / "family")

    loaded = load_family(tmp_path / "family")
    assert isinstance(loaded, MinHashFamily)
    assert (loaded.seed, loaded.band_count, loaded.band_size) == (123, 3, 2)
    assert loaded.width.bits == 32
    np.testing.assert_array_equal(loaded.multipliers, family.multipliers)
    assert not loaded.multipliers.flags.writeable

    text = "Michael Wilson"
    assert MinHasher.from_family(loaded).hash_text(text, 2) == MinHasher(
        3, 2, seed=123, bit_width=32
    ).hash_text(text, 2)


def test_euclidean_round_trip(tmp_path):
    family = derive_euclidean_family(9, 2, 3, 4)
    save_family(family, tmp_path)

    loaded = load_family(tmp_path)
    assert isinstance(loaded, EuclideanFamily)
    assert loaded.dim == 4
    vec = [0.1, 0.2, 0.3, 0.4]
    assert EuclideanHasher.from_family(loaded, 0.5).hash_vector(vec) == EuclideanHasher(
        0.5, 2, 3, 4, seed=9
    ).hash_vector(vec)


def test_metadata_is_plain_json(tmp_path):
    save_family(derive_minhash_family(5, 2, 2), tmp_path)
    metadata = json.loads((tmp_path / "metadata.json").read_text())
    assert metadata == {
        "version": 1,
        "kind": "minhash",
        "seed": 5,
        "band_count": 2,
        "band_size": 2,
        "bit_width": 64,
    }
    with np.load(tmp_path / "family.npz", allow_pickle=False) as data:
        assert sorted(data.files) == ["increments", "multipliers"]


def test_missing_directory(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_family(tmp_path / "nope")


def test_missing_arrays(tmp_path):
    save_family(derive_minhash_family(5, 2, 2), tmp_path)
    (tmp_path / "family.npz").unlink()
    with pytest.raises(FileNotFoundError):
        load_family(tmp_path)


def test_unsupported_version(tmp_path):
    save_family(derive_minhash_family(5, 2, 2), tmp_path)
    path = tmp_path / "metadata.json"
    metadata = json.loads(path.read_text())
    metadata["version"] = 99
    path.write_text(json.dumps(metadata))
    with pytest.raises(ValueError, match="version"):
        load_family(tmp_path)


def test_unknown_kind(tmp_path):
    save_family(derive_minhash_family(5, 2, 2), tmp_path)
    path = tmp_path / "metadata.json"
    metadata = json.loads(path.read_text())
    metadata["kind"] = "cosine"
    path.write_text(json.dumps(metadata))
    with pytest.raises(ValueError, match="kind"):
        load_family(tmp_path)


def test_shape_mismatch(tmp_path):
    save_family(derive_minhash_family(5, 2, 2), tmp_path)
    path = tmp_path / "metadata.json"
    metadata = json.loads(path.read_text())
    metadata["band_count"] = 3
    path.write_text(json.dumps(metadata))
    with pytest.raises(ValueError, match="shape"):
        load_family(tmp_path)
