import threading
import time
from concurrent.futures import ThreadPoolExecutor

import pytest

from ndc_calculator.services.coalescer import RequestCoalescer


def test_concurrent_identical_calls_share_one_invocation():
    coalescer = RequestCoalescer()
    release = threading.Event()
    started = threading.Event()
    calls = []

    def slow():
        calls.append(1)
        started.set()
        release.wait(5)
        return "value"

    with ThreadPoolExecutor(max_workers=8) as pool:
        leader = pool.submit(coalescer.dedupe, "k", slow)
        assert started.wait(5)
        arrived = threading.Semaphore(0)

        def follower():
            arrived.release()
            return coalescer.dedupe("k", slow)

        followers = [pool.submit(follower) for _ in range(7)]
        for _ in range(7):
            assert arrived.acquire(timeout=5)
        time.sleep(0.1)  # let followers park on the shared future
        release.set()
        results = [leader.result(5)] + [f.result(5) for f in followers]

    assert results == ["value"] * 8
    assert len(calls) == 1
    assert not coalescer.in_flight("k")


def test_failure_is_shared_and_record_is_dropped():
    coalescer = RequestCoalescer()

    def boom():
        raise RuntimeError("upstream down")

    with pytest.raises(RuntimeError):
        coalescer.dedupe("k", boom)
    assert not coalescer.in_flight("k")

    # the next call runs fresh
    assert coalescer.dedupe("k", lambda: 42) == 42


def test_distinct_keys_do_not_share():
    coalescer = RequestCoalescer()
    assert coalescer.dedupe("a", lambda: 1) == 1
    assert coalescer.dedupe("b", lambda: 2) == 2
