"""并发合并测试。"""

from __future__ import annotations

import threading

import pytest

from emqx_topology.singleflight import SingleFlight


def test_sequential_calls_are_not_cached():
    sf = SingleFlight()
    counter = {"n": 0}

    def fn():
        counter["n"] += 1
        return counter["n"]

    assert sf.do("k", fn) == 1
    assert sf.do("k", fn) == 2
    assert not sf.in_flight("k")


def test_concurrent_calls_share_one_execution():
    sf = SingleFlight()
    started = threading.Event()
    release = threading.Event()
    calls = []

    def slow():
        calls.append(1)
        started.set()
        release.wait(5)
        return "ports"

    results = []
    leader = threading.Thread(target=lambda: results.append(sf.do("ns/emqx", slow)))
    leader.start()
    assert started.wait(5)

    followers = [
        threading.Thread(target=lambda: results.append(sf.do("ns/emqx", slow))) for _ in range(3)
    ]
    for t in followers:
        t.start()
    # 等待所有跟随者进入等待状态
    for _ in range(500):
        if sf._calls["ns/emqx"].waiters == 3:
            break
        threading.Event().wait(0.01)
    release.set()
    leader.join(5)
    for t in followers:
        t.join(5)

    assert calls == [1]
    assert results == ["ports"] * 4


def test_error_is_shared_and_cleared():
    sf = SingleFlight()

    def boom():
        raise RuntimeError("boom")

    with pytest.raises(RuntimeError, match="boom"):
        sf.do("k", boom)
    assert not sf.in_flight("k")
    assert sf.do("k", lambda: 1) == 1


def test_different_keys_run_independently():
    sf = SingleFlight()
    assert sf.do("a", lambda: "A") == "A"
    assert sf.do("b", lambda: "B") == "B"


def test_concurrent_error_is_shared_with_followers():
    """领头调用抛出异常时，并发跟随者收到同一个异常对象，记录随后被清除。"""

    sf = SingleFlight()
    started = threading.Event()
    release = threading.Event()
    calls = []
    err = RuntimeError("apiserver down")

    def failing():
        calls.append(1)
        started.set()
        release.wait(5)
        raise err

    raised = []

    def run():
        try:
            sf.do("ns/emqx", failing)
        except RuntimeError as exc:
            raised.append(exc)

    leader = threading.Thread(target=run)
    leader.start()
    assert started.wait(5)
    follower = threading.Thread(target=run)
    follower.start()
    for _ in range(500):
        if sf._calls["ns/emqx"].waiters == 1:
            break
        threading.Event().wait(0.01)
    assert sf.in_flight("ns/emqx")
    release.set()
    leader.join(5)
    follower.join(5)

    assert calls == [1]
    assert len(raised) == 2
    assert raised[0] is err and raised[1] is err
    assert not sf.in_flight("ns/emqx")
