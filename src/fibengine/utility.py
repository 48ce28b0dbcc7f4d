# -----------------------------------------------------------------------------
#  Utility functions
# -----------------------------------------------------------------------------

from __future__ import annotations

import os
import re
import sys

from colorama import Fore, Style

from fibengine.runtime import current as _rt_current


class UserInputError(Exception):
    pass


def debug(msg: str) -> None:
    """Trace line on stderr, only when the active runtime has debug on."""
    if _rt_current().debug:
        print(f"{Fore.CYAN}[debug]{Style.RESET_ALL} {msg}", file=sys.stderr)


_INDEX_RE = re.compile(r"^[+-]?\d[\d_]*$")


def parse_index(text: str) -> int | None:
    """
    Parse a (possibly signed) integer such as '42', '-7' or '1_000'.
    Returns None when text is not an integer literal.
    """
    s = (text or "").strip()
    if not _INDEX_RE.match(s) or s.endswith("_"):
        return None
    return int(s.replace("_", ""))


def clear_screen(keep_scrollback: bool = False) -> None:
    """
    Clear the terminal screen.
    - On Windows: uses 'cls'
    - On POSIX: ANSI sequences; optionally clear scrollback
    """
    try:
        if os.name == "nt":
            os.system("cls")
        else:
            seq = "\033[H\033[2J" if keep_scrollback else "\033[3J\033[H\033[2J"
            sys.stdout.write(seq)
            sys.stdout.flush()
    except Exception:
        pass


def validate_output_setting(output_file: str | None) -> str | None:
    """
    Validate output setting.
    - None / "" => ok (screen only)
    - path/to/file => must not be a directory, a reserved device name or a source file
    Returns the output_file, or raises ValueError.
    """
    FORBIDDEN_FILENAMES = {
        "pyproject.toml",
        "LICENSE",
        # Windows reserved device names (case-insensitive on Windows)
        "con", "prn", "aux", "nul",
        "com1", "com2", "com3", "com4", "com5", "com6", "com7", "com8", "com9",
        "lpt1", "lpt2", "lpt3", "lpt4", "lpt5", "lpt6", "lpt7", "lpt8", "lpt9",
    }
    FORBIDDEN_EXTENSIONS = {".py", ".md", ".toml"}

    if not output_file:
        return output_file  # screen only

    if output_file in (".", "./") or output_file.endswith(("/", "\\")):
        raise ValueError(f"Output must be a file, not a directory: {output_file}")

    basename = os.path.basename(output_file)
    name_no_ext, ext = os.path.splitext(basename)
    if basename.lower() in FORBIDDEN_FILENAMES or name_no_ext.lower() in FORBIDDEN_FILENAMES:
        raise ValueError(f"Forbidden output filename: {basename}")
    if ext.lower() in FORBIDDEN_EXTENSIONS:
        raise ValueError(f"Forbidden output file extension: {ext}")

    return output_file


def typename(v: object) -> str:
    return type(v).__name__


def flatten_dotted(d: dict, prefix: str = "") -> dict[str, object]:
    out: dict[str, object] = {}
    for k, v in (d or {}).items():
        key = f"{prefix}.{k}" if prefix else str(k)
        if isinstance(v, dict):
            out.update(flatten_dotted(v, key))
        else:
            out[key] = v
    return out
