# tests/test_session.py
"""
Tests for the exclusive device: acquire/release, seek clamping, reads.

Run: pytest -v
"""

from __future__ import annotations

import threading

import pytest

from fibengine.bignum import CAPACITY_NARROW, CapacityExceeded
from fibengine.fibonacci import FibonacciEngine
from fibengine.runtime import APPLY
from fibengine.session import (
    WRITE_ACCEPTED,
    Busy,
    ExclusiveResource,
    FibDevice,
    ReadResult,
    SessionStateError,
    Whence,
)


@pytest.fixture
def device():
    return FibDevice(FibonacciEngine("fast", capacity=CAPACITY_NARROW))


# ---------- exclusivity -------------------------------------------------------

def test_second_acquire_is_busy(device):
    h = device.acquire()
    assert device.held
    with pytest.raises(Busy):
        device.acquire()
    device.release(h)
    assert not device.held
    h2 = device.acquire()
    assert h2 != h
    device.release(h2)


def test_release_while_closed_is_fatal(device):
    h = device.acquire()
    device.release(h)
    with pytest.raises(SessionStateError):
        device.release(h)


def test_stale_handle_rejected(device):
    old = device.acquire()
    device.release(old)
    new = device.acquire()
    for op in (lambda: device.read(old), lambda: device.seek(old, 1), lambda: device.write(old, b"x")):
        with pytest.raises(SessionStateError):
            op()
    device.release(new)


def test_operations_need_an_open_session(device):
    h = device.acquire()
    device.release(h)
    with pytest.raises(SessionStateError):
        device.read(h)


def test_session_context_releases_on_error(device):
    with pytest.raises(RuntimeError, match="boom"):
        with device.session():
            raise RuntimeError("boom")
    assert not device.held


def test_concurrent_acquire_only_one_wins():
    res = ExclusiveResource()
    barrier = threading.Barrier(8)
    wins, busy = [], []

    def worker():
        barrier.wait()
        try:
            wins.append(res.try_acquire())
        except Busy:
            busy.append(1)

    threads = [threading.Thread(target=worker) for _ in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()
    assert len(wins) == 1
    assert len(busy) == 7


# ---------- seek --------------------------------------------------------------

SEEK_CASES = [
    # (delta, whence, expected) on a device with limit 99, starting at 0
    (0, Whence.FROM_START, 0),
    (42, Whence.FROM_START, 42),
    (99, Whence.FROM_START, 99),
    (99 + 100, Whence.FROM_START, 99),
    (-50, Whence.FROM_START, 0),
    (0, Whence.FROM_END, 99),
    (10, Whence.FROM_END, 89),
    (-10, Whence.FROM_END, 99),
    (500, Whence.FROM_END, 0),
    (7, Whence.FROM_CURRENT, 7),
    (-7, Whence.FROM_CURRENT, 0),
]


@pytest.mark.parametrize("delta,whence,expected", SEEK_CASES)
def test_seek_clamps(device, delta, whence, expected):
    with device.session() as h:
        assert device.seek(h, delta, whence) == expected
        assert device.position == expected


def test_seek_from_current_accumulates(device):
    with device.session() as h:
        device.seek(h, 10)
        assert device.seek(h, 5, Whence.FROM_CURRENT) == 15
        assert device.seek(h, -20, Whence.FROM_CURRENT) == 0
        assert device.seek(h, 1000, 1) == 99


def test_seek_accepts_plain_ints_and_rejects_unknown_modes(device):
    with device.session() as h:
        assert device.seek(h, 3, 0) == 3
        with pytest.raises(ValueError):
            device.seek(h, 3, 7)
        assert device.position == 3


def test_limit_defaults_to_capacity_minus_one():
    assert FibDevice(FibonacciEngine(capacity=500)).limit == 499
    assert FibDevice(FibonacciEngine(capacity=100), limit=20).limit == 20
    with pytest.raises(ValueError):
        FibDevice(limit=-1)


def test_position_survives_release(device):
    with device.session() as h:
        device.seek(h, 30)
    with device.session() as h:
        assert device.position == 30
        assert device.read(h).value == "832040"


# ---------- read / write ------------------------------------------------------

READ_CASES = [(0, "0"), (1, "1"), (2, "1"), (10, "55"), (30, "832040")]


@pytest.mark.parametrize("k,expected", READ_CASES)
def test_read_value(device, k, expected):
    with device.session() as h:
        device.seek(h, k)
        res = device.read(h)
    assert isinstance(res, ReadResult)
    assert res.value == expected
    assert res.elapsed_ns is None


def test_read_is_idempotent(device):
    with device.session() as h:
        device.seek(h, 77)
        first = device.read(h)
        second = device.read(h)
        assert device.position == 77
    assert first.value == second.value


def test_linear_read_reports_elapsed_ns():
    dev = FibDevice(FibonacciEngine("linear", capacity=CAPACITY_NARROW))
    with dev.session() as h:
        dev.seek(h, 50)
        res = dev.read(h)
    assert res.value == "12586269025"
    assert isinstance(res.elapsed_ns, int) and res.elapsed_ns >= 0


def test_write_is_accepted_noop(device):
    with device.session() as h:
        device.seek(h, 12)
        assert device.write(h, b"testing writing") == WRITE_ACCEPTED
        assert device.position == 12
        assert device.read(h).value == "144"


def test_read_beyond_digit_capacity_fails_cleanly():
    dev = FibDevice(FibonacciEngine("fast", capacity=10), limit=60)
    with dev.session() as h:
        dev.seek(h, 49)
        assert dev.read(h).value == "7778742049"
        dev.seek(h, 60)
        with pytest.raises(CapacityExceeded):
            dev.read(h)
        assert dev.position == 60
    assert not dev.held


# ---------- configuration -----------------------------------------------------

def test_from_settings_uses_active_profile():
    APPLY({
        "ENGINE": {"STRATEGY": "linear", "MAX_DIGITS": 100, "SUBTRACT": "complement"},
        "DEVICE": {"MAX_INDEX": 50},
    })
    dev = FibDevice.from_settings()
    assert dev.engine.strategy == "linear"
    assert dev.engine.capacity == 100
    assert dev.engine.subtract == "complement"
    assert dev.limit == 50


def test_from_settings_defaults():
    dev = FibDevice.from_settings()
    assert dev.engine.strategy == "fast"
    assert dev.engine.capacity == 500
    assert dev.limit == 499


def test_debug_traces_rejected_acquire(device, fresh_runtime, capsys):
    fresh_runtime.debug = True
    h = device.acquire()
    with pytest.raises(Busy):
        device.acquire()
    device.release(h)
    err = capsys.readouterr().err
    assert "[debug]" in err
    assert "in use" in err
