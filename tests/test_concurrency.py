import threading
from typing import Any, Dict, List

import numpy as np

from lshsig import clear_family_cache, family_cache_info, lsh_euclidean_batch, lsh_min, lsh_min_batch
from lshsig.hash.family import minhash_family


def _run_threads(target, num_threads: int) -> None:
    threads = [threading.Thread(target=target, args=(i,)) for i in range(num_threads)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()


def test_concurrent_minhash_matches_serial():
    """
    Threads hashing the same rows from a cold cache produce the serial result.
    """
    rows = [f"customer {i} of {i * 7}" for i in range(200)]
    expected = [lsh_min(row, 3, 8, 4, 99) for row in rows]
    clear_family_cache()

    num_threads = 8
    barrier = threading.Barrier(num_threads)
    results: Dict[int, List[Any]] = {}
    errors: List[BaseException] = []
    lock = threading.Lock()

    def worker(thread_id):
        try:
            barrier.wait()
            # each thread walks its own slice so batches interleave
            out = lsh_min_batch(rows[thread_id::num_threads], 3, 8, 4, 99)
            with lock:
                results[thread_id] = out
        except BaseException as e:  # surfaced below
            with lock:
                errors.append(e)

    _run_threads(worker, num_threads)

    assert not errors
    for thread_id, out in results.items():
        assert out == expected[thread_id::num_threads]
    assert family_cache_info()["size"] == 1


def test_concurrent_euclidean_matches_serial():
    rng = np.random.default_rng(2024)
    vectors = list(rng.normal(size=(64, 32)))
    expected = lsh_euclidean_batch(vectors, 2.0, 6, 3, 5)
    clear_family_cache()

    num_threads = 6
    results: Dict[int, List[Any]] = {}
    lock = threading.Lock()

    def worker(thread_id):
        out = lsh_euclidean_batch(vectors, 2.0, 6, 3, 5)
        with lock:
            results[thread_id] = out

    _run_threads(worker, num_threads)

    assert len(results) == num_threads
    assert all(out == expected for out in results.values())


def test_cache_returns_one_family_per_key_under_contention():
    clear_family_cache()
    num_threads = 16
    barrier = threading.Barrier(num_threads)
    seen: List[Any] = []
    lock = threading.Lock()

    def worker(thread_id):
        barrier.wait()
        family = minhash_family(7, 64, 8)
        with lock:
            seen.append(family)

    _run_threads(worker, num_threads)

    assert len(seen) == num_threads
    assert all(family is seen[0] for family in seen)
