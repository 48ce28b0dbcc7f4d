# src/fibengine/fmt.py
from __future__ import annotations

import re

from fibengine.runtime import CFG

# Single source of truth for ANSI stripping
ANSI_RE = re.compile(r"\x1b\[[0-9;]*m")


def strip_ansi(s: str | None) -> str:
    """Return s with ANSI escape sequences removed."""
    return "" if s is None else ANSI_RE.sub("", s)


def abbr_decimal(s: str, head: int = 10, tail: int = 10, threshold: int = 35, ellipsis: str = "…") -> str:
    """Abbreviate a long decimal string as first<head>…last<tail>."""
    if len(s) <= threshold or head + tail >= len(s):
        return s
    return f"{s[:head]}{ellipsis}{s[-tail:]}"


def format_value(s: str, *, full: bool = False) -> str:
    """Screen form of a decimal value; FORMATTING.NUM_ABBR_* control abbreviation."""
    if full:
        return s
    return abbr_decimal(
        s,
        int(CFG("FORMATTING.NUM_ABBR_HEAD", 20)),
        int(CFG("FORMATTING.NUM_ABBR_TAIL", 20)),
        int(CFG("FORMATTING.NUM_ABBR_THRESHOLD", 60)),
        str(CFG("FORMATTING.ELLIPSIS", "…")),
    )


def format_ns(ns: int | None) -> str:
    """ns below 1 µs; µs below 1 ms; ms below 1 s; else seconds with millis."""
    if ns is None:
        return "-"
    if ns < 1_000:
        return f"{ns} ns"
    if ns < 1_000_000:
        return f"{ns / 1_000:.1f} µs"
    if ns < 1_000_000_000:
        return f"{ns / 1_000_000:.2f} ms"
    return f"{ns / 1_000_000_000:.3f} s"
