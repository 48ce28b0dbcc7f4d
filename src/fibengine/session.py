# src/fibengine/session.py
"""
Exclusive, index-addressed access to the Fibonacci engine.

One FibDevice is created at startup and passed to whoever needs it. A
caller acquires it (non-blocking, at most one holder), seeks to an index,
reads the decimal value at that index and releases it again. The position
belongs to the device, not to the session: a new holder starts wherever the
previous one left off.
"""

from __future__ import annotations

import itertools
import threading
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from enum import IntEnum
from typing import NamedTuple

from fibengine.bignum import DEFAULT_CAPACITY
from fibengine.fibonacci import DEFAULT_STRATEGY, FibonacciEngine, FibRequest
from fibengine.runtime import CFG
from fibengine.utility import debug

WRITE_ACCEPTED = 1


class Busy(Exception):
    """The device is already held by another session."""


class SessionStateError(RuntimeError):
    """Release without a matching acquire, or use of a stale handle."""


class Whence(IntEnum):
    FROM_START = 0    # os.SEEK_SET
    FROM_CURRENT = 1  # os.SEEK_CUR
    FROM_END = 2      # os.SEEK_END


@dataclass(frozen=True)
class SessionHandle:
    token: int


class ReadResult(NamedTuple):
    value: str
    elapsed_ns: int | None  # compute time for timed strategies, else None


class ExclusiveResource:
    """Try-acquire token holder: at most one SessionHandle is live at a time."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._tokens = itertools.count(1)
        self._holder: int | None = None

    @property
    def held(self) -> bool:
        return self._holder is not None

    def try_acquire(self) -> SessionHandle:
        if not self._lock.acquire(blocking=False):
            raise Busy("fibengine device is in use")
        self._holder = next(self._tokens)
        return SessionHandle(self._holder)

    def check(self, handle: SessionHandle) -> None:
        if self._holder is None:
            raise SessionStateError("device is not open")
        if handle.token != self._holder:
            raise SessionStateError(f"stale session handle #{handle.token}")

    def release(self, handle: SessionHandle) -> None:
        self.check(handle)
        self._holder = None
        self._lock.release()


class FibDevice:
    def __init__(self, engine: FibonacciEngine | None = None, *, limit: int | None = None,
                 resource: ExclusiveResource | None = None):
        self.engine = engine or FibonacciEngine()
        self.limit = self.engine.capacity - 1 if limit is None else int(limit)
        if self.limit < 0:
            raise ValueError(f"index limit must be non-negative, got {self.limit}")
        self._resource = resource or ExclusiveResource()
        self._position = 0

    @classmethod
    def from_settings(cls) -> FibDevice:
        """Build a device from the active profile (ENGINE.*, DEVICE.MAX_INDEX)."""
        engine = FibonacciEngine(
            strategy=str(CFG("ENGINE.STRATEGY", DEFAULT_STRATEGY)),
            capacity=int(CFG("ENGINE.MAX_DIGITS", DEFAULT_CAPACITY)),
            subtract=str(CFG("ENGINE.SUBTRACT", "borrow")),
        )
        limit = CFG("DEVICE.MAX_INDEX", None)
        return cls(engine, limit=None if limit is None else int(limit))

    @property
    def held(self) -> bool:
        return self._resource.held

    @property
    def position(self) -> int:
        return self._position

    # --- open / release ------------------------------------------------------

    def acquire(self) -> SessionHandle:
        try:
            handle = self._resource.try_acquire()
        except Busy:
            debug("device is in use, acquire rejected")
            raise
        debug(f"session #{handle.token} opened at position {self._position}")
        return handle

    def release(self, handle: SessionHandle) -> None:
        self._resource.release(handle)
        debug(f"session #{handle.token} released")

    @contextmanager
    def session(self) -> Iterator[SessionHandle]:
        handle = self.acquire()
        try:
            yield handle
        finally:
            self.release(handle)

    # --- file-like operations ------------------------------------------------

    def seek(self, handle: SessionHandle, delta: int, whence: Whence | int = Whence.FROM_START) -> int:
        self._resource.check(handle)
        mode = Whence(whence)
        if mode is Whence.FROM_START:
            pos = delta
        elif mode is Whence.FROM_CURRENT:
            pos = self._position + delta
        else:
            pos = self.limit - delta
        self._position = min(max(int(pos), 0), self.limit)
        debug(f"seek {mode.name}({delta}) -> {self._position}")
        return self._position

    def read(self, handle: SessionHandle) -> ReadResult:
        self._resource.check(handle)
        resp = self.engine.request(FibRequest(self._position))
        if resp.elapsed_ns is not None:
            debug(f"read F({resp.index}): {resp.digits} digits in {resp.elapsed_ns} ns")
        else:
            debug(f"read F({resp.index}): {resp.digits} digits")
        return ReadResult(resp.value, resp.elapsed_ns)

    def write(self, handle: SessionHandle, data: bytes) -> int:
        self._resource.check(handle)
        return WRITE_ACCEPTED

    def __repr__(self) -> str:
        state = "OPEN" if self.held else "CLOSED"
        return f"FibDevice({state}, position={self._position}, limit={self.limit}, engine={self.engine!r})"
