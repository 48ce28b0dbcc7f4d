# src/fibengine/fibonacci.py
from __future__ import annotations

import time
from collections.abc import Callable
from dataclasses import dataclass

from fibengine.bignum import (
    DEFAULT_CAPACITY,
    SUBTRACTORS,
    BigDecimal,
    Subtractor,
    add,
    multiply,
    subtract,
)
from fibengine.utility import UserInputError

DEFAULT_STRATEGY = "fast"

STRATEGIES: dict[str, Callable[..., BigDecimal]] = {}


def strategy(name: str, description: str = "", *, timed: bool = False):
    """
    Decorator registering a Fibonacci strategy under `name`.

    Timed strategies report their compute time with every read.
    """
    def wrapper(fn):
        fn.label = name
        fn.description = description
        fn.timed = timed
        STRATEGIES[name] = fn
        return fn
    return wrapper


def get_strategy(name: str) -> Callable[..., BigDecimal]:
    fn = STRATEGIES.get(str(name).strip().lower())
    if fn is None:
        raise UserInputError(
            f"unknown strategy '{name}'. Available: {', '.join(sorted(STRATEGIES))}."
        )
    return fn


def _check_index(k: int) -> None:
    if k < 0:
        raise ValueError(f"Fibonacci index must be non-negative, got {k}")


@strategy("linear", "Baseline: k-1 big-number additions, reports compute time.", timed=True)
def fib_linear(k: int, capacity: int = DEFAULT_CAPACITY, subtractor: Subtractor | None = None) -> BigDecimal:
    _check_index(k)
    prev = BigDecimal([0], capacity)
    curr = BigDecimal([1], capacity)
    if k == 0:
        return prev
    if k == 1:
        return curr
    for _ in range(k - 1):
        prev, curr = curr, add(prev, curr)
    return curr


@strategy("fast", "Fast doubling: one pass per bit of k, three multiplications each.")
def fib_fast_doubling(k: int, capacity: int = DEFAULT_CAPACITY, subtractor: Subtractor | None = None) -> BigDecimal:
    """
    F(2n)   = F(n) * (2*F(n+1) - F(n))
    F(2n+1) = F(n)^2 + F(n+1)^2

    Walks the bits of k from the highest set bit down. After each step
    (a, b) = (F(m), F(m+1)) where m is the prefix of k consumed so far.
    """
    _check_index(k)
    sub = subtractor or subtract
    a = BigDecimal([0], capacity)
    b = BigDecimal([1], capacity)
    if k == 0:
        return a

    for i in range(k.bit_length() - 1, 0, -1):
        t = sub(add(b, b), a)
        a, b = multiply(a, t), add(multiply(a, a), multiply(b, b))
        if (k >> i) & 1:
            a, b = b, add(a, b)
    # last bit: only the member that becomes F(k) is needed
    if k & 1:
        return add(multiply(a, a), multiply(b, b))
    return multiply(a, sub(add(b, b), a))


def format_decimal(value: BigDecimal) -> str:
    """Most-significant-first decimal string; its length equals the digit count."""
    return "".join(chr(48 + d) for d in reversed(value.digits))


# --- request / response ----------------------------------------------------

@dataclass(frozen=True)
class FibRequest:
    index: int


@dataclass(frozen=True)
class FibResponse:
    index: int
    value: str
    elapsed_ns: int | None = None  # set by timed strategies only

    @property
    def digits(self) -> int:
        return len(self.value)


class FibonacciEngine:
    """Computes F(k) with a selectable strategy inside a fixed digit capacity."""

    def __init__(self, strategy: str = DEFAULT_STRATEGY, capacity: int = DEFAULT_CAPACITY, subtract: str = "borrow"):
        if capacity < 1:
            raise ValueError(f"capacity must be positive, got {capacity}")
        self.capacity = int(capacity)
        self.strategy = strategy
        self.subtract = subtract

    @property
    def strategy(self) -> str:
        return self._strategy

    @strategy.setter
    def strategy(self, name: str) -> None:
        self._fn = get_strategy(name)
        self._strategy = self._fn.label

    @property
    def subtract(self) -> str:
        return self._subtract

    @subtract.setter
    def subtract(self, name: str) -> None:
        key = str(name).strip().lower()
        if key not in SUBTRACTORS:
            raise UserInputError(
                f"unknown subtraction '{name}'. Available: {', '.join(sorted(SUBTRACTORS))}."
            )
        self._subtract = key

    @property
    def timed(self) -> bool:
        return bool(getattr(self._fn, "timed", False))

    def compute(self, k: int) -> BigDecimal:
        return self._fn(int(k), self.capacity, SUBTRACTORS[self._subtract])

    def request(self, req: FibRequest) -> FibResponse:
        t0 = time.perf_counter_ns()
        value = format_decimal(self.compute(req.index))
        elapsed = time.perf_counter_ns() - t0
        return FibResponse(index=req.index, value=value, elapsed_ns=max(0, elapsed) if self.timed else None)

    def __repr__(self) -> str:
        return f"FibonacciEngine(strategy={self._strategy!r}, capacity={self.capacity}, subtract={self._subtract!r})"
