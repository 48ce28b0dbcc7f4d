# src/fibengine/client.py
"""
Clients of the device: the seek/read benchmark and the oracle cross-check.

The benchmark walks every index upwards, timing each read from the
outside and subtracting the compute time the device reports (timed
strategies only) to get the transport overhead. It then walks back down
and prints every value.
"""

from __future__ import annotations

import time
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from importlib import import_module

from fibengine.display import print_bench_header, print_bench_row, print_bench_value
from fibengine.fibonacci import STRATEGIES, FibonacciEngine, FibRequest
from fibengine.output_manager import OutputManager
from fibengine.session import FibDevice, Whence
from fibengine.utility import UserInputError, debug

# oracle name -> (module, function); imported only when verify runs
ORACLES: dict[str, tuple[str, str]] = {
    "gmpy2": ("gmpy2", "fib"),
    "sympy": ("sympy", "fibonacci"),
}


def load_oracle(name: str) -> Callable[[int], str]:
    """Return k -> str(F(k)) from the named oracle library."""
    if name not in ORACLES:
        raise UserInputError(f"unknown oracle '{name}'. Available: {', '.join(sorted(ORACLES))}.")
    module, attr = ORACLES[name]
    fn = getattr(import_module(module), attr)
    return lambda k: str(fn(k))


@dataclass(frozen=True)
class BenchRow:
    index: int
    total_ns: int
    compute_ns: int | None

    @property
    def transport_ns(self) -> int | None:
        if self.compute_ns is None:
            return None
        return self.total_ns - self.compute_ns


@dataclass(frozen=True)
class Mismatch:
    index: int
    strategy: str
    expected: str
    got: str


def bench(device: FibDevice, limit: int | None = None, *, om: OutputManager | None = None,
          show_values: bool = True) -> list[BenchRow]:
    """Timed ascending sweep 0..limit, then a descending sweep printing values."""
    top = device.limit if limit is None else min(max(int(limit), 0), device.limit)
    rows: list[BenchRow] = []

    with device.session() as h:
        if om:
            print_bench_header(device, om)
        for i in range(top + 1):
            device.seek(h, i, Whence.FROM_START)
            t1 = time.perf_counter_ns()
            res = device.read(h)
            t2 = time.perf_counter_ns()
            row = BenchRow(index=i, total_ns=max(0, t2 - t1), compute_ns=res.elapsed_ns)
            rows.append(row)
            if om:
                print_bench_row(row, om)

        for i in range(top, -1, -1):
            device.seek(h, i, Whence.FROM_START)
            res = device.read(h)
            if om and show_values:
                print_bench_value(i, res.value, om)

    debug(f"bench done: {len(rows)} timed reads")
    return rows


def verify(engine: FibonacciEngine, limit: int, *, oracle: str = "gmpy2",
           strategies: Iterable[str] | None = None) -> list[Mismatch]:
    """Compare every strategy against an independent oracle for k in [0, limit]."""
    ref = load_oracle(oracle)

    names = list(strategies) if strategies is not None else sorted(STRATEGIES)
    engines = [FibonacciEngine(name, engine.capacity, engine.subtract) for name in names]
    bad: list[Mismatch] = []
    for k in range(limit + 1):
        expected = ref(k)
        for eng in engines:
            got = eng.request(FibRequest(k)).value
            if got != expected:
                bad.append(Mismatch(k, eng.strategy, expected, got))
    debug(f"verify: {limit + 1} indices x {len(engines)} strategies against {oracle}, {len(bad)} mismatch(es)")
    return bad
