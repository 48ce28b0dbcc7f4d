# tests/test_client.py
"""
Tests for the benchmark client and the oracle cross-check.

Run: pytest -v
"""

from __future__ import annotations

import pytest

from fibengine.bignum import CapacityExceeded
from fibengine.client import BenchRow, bench, load_oracle, verify
from fibengine.fibonacci import FibonacciEngine
from fibengine.output_manager import OutputManager
from fibengine.session import Busy, FibDevice
from fibengine.utility import UserInputError


def _device(strategy: str, capacity: int = 100, limit: int | None = None) -> FibDevice:
    return FibDevice(FibonacciEngine(strategy, capacity=capacity), limit=limit)


def test_bench_linear_rows_split_transport_and_compute():
    dev = _device("linear")
    rows = bench(dev, 20)
    assert [r.index for r in rows] == list(range(21))
    for r in rows:
        assert r.total_ns >= 0
        assert r.compute_ns is not None and r.compute_ns >= 0
        assert r.transport_ns == r.total_ns - r.compute_ns
    assert not dev.held
    assert dev.position == 0  # the descending sweep ends at index 0


def test_bench_fast_has_no_compute_column():
    rows = bench(_device("fast"), 5)
    assert all(r.compute_ns is None and r.transport_ns is None for r in rows)


def test_bench_limit_is_clamped_to_device():
    rows = bench(_device("fast", limit=10), 1000)
    assert len(rows) == 11
    assert len(bench(_device("fast", limit=10), -3)) == 1


def test_bench_output_protocol():
    om = OutputManager(quiet=True)
    bench(_device("fast"), 3, om=om)
    lines = om.getvalue().splitlines()
    values = [ln for ln in lines if ln.startswith("Reading at offset")]
    assert values == [
        "Reading at offset 3, returned the sequence 2.",
        "Reading at offset 2, returned the sequence 1.",
        "Reading at offset 1, returned the sequence 1.",
        "Reading at offset 0, returned the sequence 0.",
    ]
    timed = [ln for ln in lines if ln[:1].isdigit()]
    assert [ln.split()[0] for ln in timed] == ["0", "1", "2", "3"]
    assert all(ln.split()[1] == "-" for ln in timed)


def test_bench_while_busy_raises():
    dev = _device("fast")
    h = dev.acquire()
    with pytest.raises(Busy):
        bench(dev, 3)
    dev.release(h)


def test_bench_row_transport():
    assert BenchRow(1, 500, 200).transport_ns == 300
    assert BenchRow(1, 500, None).transport_ns is None


@pytest.mark.parametrize("oracle", ["gmpy2", "sympy"])
def test_verify_narrow_range_clean(oracle):
    assert verify(FibonacciEngine(capacity=100), 99, oracle=oracle) == []


def test_verify_complement_engine_clean():
    assert verify(FibonacciEngine(capacity=500, subtract="complement"), 150, strategies=["fast"]) == []


def test_verify_propagates_capacity_errors():
    with pytest.raises(CapacityExceeded):
        verify(FibonacciEngine(capacity=5), 30)


def test_verify_unknown_oracle():
    with pytest.raises(UserInputError):
        verify(FibonacciEngine(), 3, oracle="oeis")


@pytest.mark.parametrize("name,k,expected", [("gmpy2", 50, "12586269025"), ("sympy", 12, "144")])
def test_load_oracle(name, k, expected):
    assert load_oracle(name)(k) == expected


def test_load_oracle_unknown():
    with pytest.raises(UserInputError, match="Available: gmpy2, sympy"):
        load_oracle("oeis")
