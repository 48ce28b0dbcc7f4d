# src/fibengine/bignum.py
"""
Arbitrary-precision non-negative decimal integers.

Digits are stored least-significant-first in a plain list, bounded by a
digit capacity. All primitives compute into a private buffer, check the
capacity and only then copy the result into the destination, so a failing
call never leaves a half-written value behind.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable

CAPACITY_WIDE = 500
CAPACITY_NARROW = 100
DEFAULT_CAPACITY = CAPACITY_WIDE
BASE = 10


class CapacityExceeded(ArithmeticError):
    """A value would need more decimal digits than its capacity allows."""

    def __init__(self, digits: int, capacity: int):
        self.digits = digits
        self.capacity = capacity
        super().__init__(f"result needs {digits} digits, capacity is {capacity}")


def _trim(digits: list[int]) -> list[int]:
    # drop most-significant zeros, keep a single 0 for zero
    while len(digits) > 1 and digits[-1] == 0:
        digits.pop()
    return digits


def _check(digits: list[int], capacity: int) -> list[int]:
    if len(digits) > capacity:
        raise CapacityExceeded(len(digits), capacity)
    return digits


class BigDecimal:
    __slots__ = ("capacity", "digits")

    def __init__(self, digits: Iterable[int] | None = None, capacity: int = DEFAULT_CAPACITY):
        if capacity < 1:
            raise ValueError(f"capacity must be positive, got {capacity}")
        ds = [0] if digits is None else list(digits)
        if not ds:
            ds = [0]
        for d in ds:
            if d < 0 or d >= BASE:
                raise ValueError(f"digit out of range: {d!r}")
        self.capacity = capacity
        self.digits = _check(_trim(ds), capacity)

    # --- constructors ----------------------------------------------------

    @classmethod
    def from_int(cls, n: int, capacity: int = DEFAULT_CAPACITY) -> BigDecimal:
        if n < 0:
            raise ValueError("BigDecimal holds non-negative values only")
        return cls.parse(str(n), capacity)

    @classmethod
    def parse(cls, text: str, capacity: int = DEFAULT_CAPACITY) -> BigDecimal:
        """Parse a most-significant-first string of ASCII digits."""
        s = text.strip()
        if not s or not (s.isascii() and s.isdigit()):
            raise ValueError(f"not a decimal digit string: {text!r}")
        return cls((ord(c) - 48 for c in reversed(s)), capacity)

    # --- views -----------------------------------------------------------

    @property
    def count(self) -> int:
        return len(self.digits)

    def is_zero(self) -> bool:
        return self.digits == [0]

    def to_decimal(self) -> str:
        return "".join(chr(48 + d) for d in reversed(self.digits))

    def copy(self) -> BigDecimal:
        return BigDecimal(self.digits, self.capacity)

    def _assign(self, digits: list[int]) -> None:
        self.digits = digits

    def __str__(self) -> str:
        return self.to_decimal()

    def __repr__(self) -> str:
        return f"BigDecimal('{self.to_decimal()}', capacity={self.capacity})"

    def __int__(self) -> int:
        return int(self.to_decimal())

    # --- comparison ------------------------------------------------------

    def _cmp(self, other: BigDecimal) -> int:
        if self.count != other.count:
            return -1 if self.count < other.count else 1
        for a, b in zip(reversed(self.digits), reversed(other.digits)):
            if a != b:
                return -1 if a < b else 1
        return 0

    def __eq__(self, other: object) -> bool:
        if isinstance(other, BigDecimal):
            return self.digits == other.digits
        if isinstance(other, int):
            return other >= 0 and self.to_decimal() == str(other)
        return NotImplemented

    def __hash__(self) -> int:
        return hash(tuple(self.digits))

    def __lt__(self, other: BigDecimal) -> bool:
        return self._cmp(other) < 0

    def __le__(self, other: BigDecimal) -> bool:
        return self._cmp(other) <= 0

    def __gt__(self, other: BigDecimal) -> bool:
        return self._cmp(other) > 0

    def __ge__(self, other: BigDecimal) -> bool:
        return self._cmp(other) >= 0

    # --- operators -------------------------------------------------------

    def __add__(self, other: BigDecimal) -> BigDecimal:
        return add(self, other)

    def __sub__(self, other: BigDecimal) -> BigDecimal:
        return subtract(self, other)

    def __mul__(self, other: BigDecimal) -> BigDecimal:
        return multiply(self, other)


def _result(digits: list[int], x: BigDecimal, y: BigDecimal, dest: BigDecimal | None) -> BigDecimal:
    capacity = dest.capacity if dest is not None else min(x.capacity, y.capacity)
    _check(digits, capacity)
    if dest is None:
        dest = BigDecimal(capacity=capacity)
    dest._assign(digits)
    return dest


# --- primitives --------------------------------------------------------------

def _add_digits(x: list[int], y: list[int]) -> list[int]:
    # precondition: the longer operand drives the loop
    if len(x) < len(y):
        x, y = y, x
    out: list[int] = []
    carry = 0
    for i in range(len(y)):
        s = x[i] + y[i] + carry
        carry = 1 if s >= BASE else 0
        out.append(s - BASE * carry)
    for i in range(len(y), len(x)):
        s = x[i] + carry
        carry = 1 if s >= BASE else 0
        out.append(s - BASE * carry)
    if carry:
        out.append(carry)
    return out


def add(x: BigDecimal, y: BigDecimal, dest: BigDecimal | None = None) -> BigDecimal:
    """Return x + y, written into `dest` when given."""
    return _result(_add_digits(x.digits, y.digits), x, y, dest)


def subtract(x: BigDecimal, y: BigDecimal, dest: BigDecimal | None = None) -> BigDecimal:
    """Return x - y (requires x >= y), borrowing digit by digit."""
    if x < y:
        raise ValueError(f"subtraction would go negative: {x} - {y}")
    xs, ys = x.digits, y.digits
    out: list[int] = []
    borrow = 0
    for i in range(len(xs)):
        d = xs[i] - borrow - (ys[i] if i < len(ys) else 0)
        borrow = 1 if d < 0 else 0
        out.append(d + BASE * borrow)
    return _result(_trim(out), x, y, dest)


def subtract_complement(x: BigDecimal, y: BigDecimal, dest: BigDecimal | None = None) -> BigDecimal:
    """
    Return x - y (requires x >= y) via the nines' complement:

        x - y = x + (9...9 - y) + 1   (dropping the carry out of the top digit)

    The complement is sized to x, so operands sharing any number of leading
    digits need no special casing.
    """
    if x < y:
        raise ValueError(f"subtraction would go negative: {x} - {y}")
    width = x.count
    ys = y.digits
    complement = [9 - (ys[i] if i < len(ys) else 0) for i in range(width)]
    total = _add_digits(_add_digits(x.digits, complement), [1])
    # x >= y means the sum is at least 10**width: drop that carry
    out = _trim(total[:width])
    return _result(out, x, y, dest)


def multiply(x: BigDecimal, y: BigDecimal, dest: BigDecimal | None = None) -> BigDecimal:
    """
    Return x * y by repeated addition.

    For each digit d at position i of the shorter operand, the longer
    operand is added d times, shifted left by i places and folded into a
    running sum. Cost grows with sum(d) * len(longer).
    """
    capacity = dest.capacity if dest is not None else min(x.capacity, y.capacity)
    longer, shorter = x.digits, y.digits
    if len(longer) < len(shorter):
        longer, shorter = shorter, longer

    total = [0]
    for i, d in enumerate(shorter):
        if d == 0:
            continue
        acc = [0]
        for _ in range(d):
            acc = _add_digits(acc, longer)
        total = _check(_add_digits(total, [0] * i + acc), capacity)
    return _result(_trim(total), x, y, dest)


Subtractor = Callable[..., BigDecimal]

SUBTRACTORS: dict[str, Subtractor] = {
    "borrow": subtract,
    "complement": subtract_complement,
}
