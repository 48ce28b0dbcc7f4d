from __future__ import annotations

from importlib.metadata import PackageNotFoundError
from importlib.metadata import version as _pkg_version

# Version
try:
    __version__ = _pkg_version("fibengine")
except PackageNotFoundError:
    __version__ = "0+unknown"

# Public API re-exports
from .bignum import CAPACITY_NARROW, CAPACITY_WIDE, BigDecimal, CapacityExceeded
from .config import has_profile, load_settings, read_current_profile
from .fibonacci import STRATEGIES, FibonacciEngine, FibRequest, FibResponse
from .runtime import APPLY, CFG
from .session import Busy, FibDevice, ReadResult, SessionHandle, SessionStateError, Whence
from .workspace import workspace_dir

__all__ = [
    "APPLY",
    "CAPACITY_NARROW",
    "CAPACITY_WIDE",
    "CFG",
    "STRATEGIES",
    "BigDecimal",
    "Busy",
    "CapacityExceeded",
    "FibDevice",
    "FibRequest",
    "FibResponse",
    "FibonacciEngine",
    "ReadResult",
    "SessionHandle",
    "SessionStateError",
    "Whence",
    "__version__",
    "has_profile",
    "load_settings",
    "read_current_profile",
    "workspace_dir"
]
