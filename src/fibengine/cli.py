# src/fibengine/cli.py

"""
fibengine - arbitrary-precision Fibonacci numbers behind an exclusive,
seekable device.

Description:
    Computes F(k) with a decimal big-number engine (linear baseline or fast
    doubling). One-shot reads, a seek/read benchmark, an oracle cross-check
    and an interactive session on the device.

usage: see fibengine -h
"""

from __future__ import annotations

import argparse
import faulthandler
import os
import sys
import textwrap
import threading
import traceback
from importlib.resources import files as pkg_files

from colorama import Fore, Style
from colorama import init as colorama_init

import fibengine.config as CONFIG
from fibengine import __version__ as _ver
from fibengine.bignum import CapacityExceeded
from fibengine.client import ORACLES, bench, verify
from fibengine.display import (
    print_device_status,
    print_profiles_with_descriptions,
    print_read_result,
    show_intro_help,
    show_strategy_list,
)
from fibengine.output_manager import OutputManager
from fibengine.runtime import APPLY, CFG, ensure_runtime_deps
from fibengine.runtime import current as _rt_current
from fibengine.session import Busy, FibDevice, SessionHandle, Whence
from fibengine.utility import (
    UserInputError,
    clear_screen,
    flatten_dotted,
    parse_index,
    typename,
    validate_output_setting,
)
from fibengine.workspace import ensure_workspace_seeded, seed_workspace, workspace_dir

COMMANDS = {"bench", "verify", "list", "profiles", "active", "init", "where"}

_WHENCE_WORDS = {
    "set": Whence.FROM_START, "start": Whence.FROM_START,
    "cur": Whence.FROM_CURRENT, "current": Whence.FROM_CURRENT,
    "end": Whence.FROM_END,
}


def _install_loud_error_handlers(debug: bool) -> None:
    if not debug:
        return
    faulthandler.enable()

    def _excepthook(exc_type, exc, tb):
        sys.stderr.write("\n[UNCAUGHT EXCEPTION]\n")
        traceback.print_exception(exc_type, exc, tb, file=sys.stderr)
        sys.stderr.flush()
    sys.excepthook = _excepthook

    def _thread_excepthook(args):
        sys.stderr.write("\n[UNCAUGHT THREAD EXCEPTION]\n")
        traceback.print_exception(args.exc_type, args.exc_value, args.exc_traceback, file=sys.stderr)
        sys.stderr.flush()
    threading.excepthook = _thread_excepthook


def _print_user_error(msg: str) -> None:
    """Uniform, one-line friendly error."""
    prefix = f"{Fore.RED}Error:{Style.RESET_ALL}"
    if not (msg.startswith("Invalid input:") or msg.startswith("Error:")):
        msg = f"{prefix} {msg}"
    print(msg, file=sys.stderr)


def _resolve_inputs(items: list[str]) -> tuple[str | None, int | None]:
    """Return (word, index) based on the first two positionals.

    Rules:
      - one item: integer -> index; else -> word (command or profile)
      - two items: word + integer -> (word, index); integer first -> (None, index)
    """
    if not items:
        return None, None
    if len(items) == 1:
        n = parse_index(items[0])
        return (None, n) if n is not None else (items[0], None)

    a, b = items[0], items[1]
    na, nb = parse_index(a), parse_index(b)
    if na is not None:
        return None, na
    return a, nb


# ---- argparse ----
def _build_parser() -> argparse.ArgumentParser:

    epilog = textwrap.dedent("""\
    commands:
      bench [LIMIT]
          Seek to every index 0..LIMIT and time each read (transport, total and
          compute nanoseconds), then read back down printing every value.

      verify [gmpy2|sympy]
          Cross-check all strategies against an independent oracle for every index.

      list
          List the available strategies.

      profiles | active
          List profiles / show the last used profile.

      init
          Create the workspace and copy the packaged profiles if missing.
          'init overwrite' requires FIBENGINE_DEV=1.

      where
          Show the workspace and package paths.
    """)

    p = argparse.ArgumentParser(
        description="fibengine — arbitrary-precision Fibonacci numbers",
        usage=(
            "fibengine [[profile] [index]] [--strategy S] [--output OUTPUT] [--quiet] [--full] [--debug]\n"
            "       fibengine [profile] COMMAND [ARG]\n"
            "       fibengine -h | --help\n"
        ),
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=epilog,
    )
    p.add_argument("items", nargs="*", metavar="[[profile] index]",
                   help="optional profile name followed by an index or a command")
    p.add_argument("--strategy", default=None, help="Override ENGINE.STRATEGY (fast or linear)")
    p.add_argument("--output", default=None, help="Append results to a file (also prints unless --quiet)")
    p.add_argument("--quiet", action="store_true", help="Suppress screen output")
    p.add_argument("--full", action="store_true", help="Never abbreviate long values")
    p.add_argument("--debug", action="store_true", help="Trace device operations and show tracebacks")
    p.add_argument("--version", action="version", version=f"fibengine {_ver}")
    return p


def main(argv=None) -> int:
    """Thin wrapper: catch friendly errors, hide tracebacks unless debug."""
    try:
        return _main_impl(argv)
    except (UserInputError, Busy, CapacityExceeded) as e:
        _print_user_error(str(e))
        return 2
    except KeyboardInterrupt:
        print("Aborted by user.", file=sys.stderr)
        return 130
    except Exception as e:
        debug = ("--debug" in (argv if argv is not None else sys.argv))
        if debug:
            raise
        print(f"Unexpected error: {e.__class__.__name__}: {e}", file=sys.stderr)
        print("Run with --debug for a full traceback.", file=sys.stderr)
        return 1


def _apply_profile(name: str, debug: bool) -> None:
    selected = CONFIG.load_settings(name)
    APPLY(selected)
    if debug:
        _rt_current().debug = True
        print(f"[debug] active profile: {selected.name}", file=sys.stderr)
        print(f"[debug] profile file: {selected._source}", file=sys.stderr)
        flat = flatten_dotted(selected.as_dict())
        for k in sorted(flat, key=str.lower):
            v = CFG(k, None)
            print(f"        {k:.<40} {v!r} ({typename(v)})", file=sys.stderr)


def _make_device(strategy: str | None) -> FibDevice:
    device = FibDevice.from_settings()
    if strategy:
        device.engine.strategy = strategy
    return device


def _workspace_command(word: str | None, rest: list[str]) -> int | None:
    """Run init/where/active/profiles; None when word is none of them."""
    if word == "init":
        if rest and rest[0] == "overwrite":
            if os.environ.get("FIBENGINE_DEV") != "1":
                print("Refusing to overwrite: set FIBENGINE_DEV=1 to enable developer overwrite.")
                return 2
            ws, copied = seed_workspace(overwrite=True)
            print(f"Workspace ready at: {ws} (overwrote existing files)")
        else:
            ws, _, copied = ensure_workspace_seeded()
            print(f"Workspace ready at: {ws}")
        print(f"Copied -> profiles: {copied.get('profiles', 0)}")
        return 0
    if word == "where":
        print(f"Workspace: {workspace_dir()}")
        print(f"Package:   {pkg_files('fibengine')}")
        return 0
    if word == "active":
        print(f"Active profile: {CONFIG.read_current_profile() or 'default'}")
        return 0
    if word == "profiles":
        print_profiles_with_descriptions()
        return 0
    return None


# ---- main ----
def _main_impl(argv=None) -> int:

    colorama_init(autoreset=True)

    parser = _build_parser()
    args = parser.parse_args(argv)
    rt = _rt_current()
    rt.debug = bool(args.debug)
    _install_loud_error_handlers(args.debug)

    ensure_workspace_seeded()

    word, index = _resolve_inputs(args.items)
    rest = args.items[1:]

    # --- workspace commands (no profile needed) ---
    code = _workspace_command(word, rest)
    if code is not None:
        return code

    # --- profile: explicit word (if not a command) → last used → default ---
    command = word if word in COMMANDS else None
    explicit = word if (word and command is None) else None
    if explicit and not CONFIG.has_profile(explicit):
        print(f"Unknown profile or command: '{explicit}'")
        print("Available profiles:", ", ".join(n for n, _ in CONFIG.list_profiles_with_descriptions()))
        return 2
    if command is None and len(args.items) > 1 and args.items[1] in COMMANDS:
        command = args.items[1]
    profile_name = explicit or CONFIG.read_current_profile() or "default"
    if not CONFIG.has_profile(profile_name):
        profile_name = "default"
    _apply_profile(profile_name, args.debug)
    if explicit:
        CONFIG.write_current_profile(explicit)
    if command is not None and command != word:
        code = _workspace_command(command, args.items[2:])
        if code is not None:
            return code

    try:
        output_target = validate_output_setting(args.output)
    except ValueError as e:
        print(f"Fatal error in --output: {e}", file=sys.stderr)
        return 1

    def make_output_manager() -> OutputManager:
        target = output_target if output_target is not None else CFG("OUTPUT.OUTPUT_FILE", None)
        return OutputManager(output_file=target, quiet=args.quiet)

    device = _make_device(args.strategy)

    if command == "list":
        om = make_output_manager()
        try:
            show_strategy_list(om, current=device.engine.strategy)
        finally:
            om.close()
        return 0

    if command == "bench":
        limit = _command_arg(args.items, "bench")
        om = make_output_manager()
        try:
            if limit is not None and parse_index(limit) is None:
                raise UserInputError(f"bench limit must be an integer, got '{limit}'")
            bench(device, None if limit is None else parse_index(limit), om=om)
        finally:
            om.close()
        return 0

    if command == "verify":
        oracle = _command_arg(args.items, "verify") or "gmpy2"
        if oracle in ORACLES and not ensure_runtime_deps(strict=True, required=(ORACLES[oracle][0],)):
            return 1
        bad = verify(device.engine, device.limit, oracle=oracle)
        if bad:
            for m in bad[:20]:
                print(f"{Fore.RED}MISMATCH{Style.RESET_ALL} F({m.index}) [{m.strategy}]: "
                      f"expected {m.expected}, got {m.got}")
            print(f"{len(bad)} mismatch(es) against {oracle}.")
            return 1
        print(f"{Fore.GREEN}OK{Style.RESET_ALL}: F(0)..F({device.limit}) match {oracle} for every strategy.")
        return 0

    # --- one-shot read ---
    if index is not None:
        om = make_output_manager()
        try:
            with device.session() as h:
                pos = device.seek(h, index, Whence.FROM_START)
                result = device.read(h)
            if pos != index:
                print(f"{Fore.YELLOW}Index {index} clamped to {pos}.{Style.RESET_ALL}", file=sys.stderr)
            print_read_result(pos, result, om, full=args.full)
        finally:
            om.close()
        return 0

    return _repl(device, profile_name, args, make_output_manager)


def _command_arg(items: list[str], command: str) -> str | None:
    i = items.index(command)
    return items[i + 1] if i + 1 < len(items) else None


# --- REPL ---
def _repl(device: FibDevice, profile_name: str, args, make_output_manager) -> int:
    if not _rt_current().debug:
        clear_screen()
    print(f"{Fore.YELLOW}{Style.BRIGHT}fibengine v{_ver} — arbitrary-precision Fibonacci numbers{Style.RESET_ALL}")

    current_profile = profile_name
    handle: SessionHandle = device.acquire()
    try:
        while True:
            try:
                prompt = (f"\nProfile: {current_profile} @ {device.position} — "
                          "Enter an index, command or profile (h=Help, q=Quit): ")
                user_input = input(prompt).strip()
                low = user_input.lower()
                parts = low.split()

                if low in {"", "q", "quit"}:
                    break

                om = make_output_manager()
                try:
                    if low in {"h", "help"}:
                        show_intro_help(om)
                    elif low in {"p", "list profiles", "profiles"}:
                        print_profiles_with_descriptions()
                    elif low in {"pos", "status"}:
                        print_device_status(device, om)
                    elif parts[0] == "strategy":
                        if len(parts) > 1:
                            device.engine.strategy = parts[1]
                        show_strategy_list(om, current=device.engine.strategy)
                    elif parts[0] == "seek":
                        _repl_seek(device, handle, parts, om)
                    elif low == "read":
                        print_read_result(device.position, device.read(handle), om, full=args.full)
                    elif parts[0] == "write":
                        device.write(handle, user_input[5:].strip().encode("utf-8"))
                        om.write("Accepted (write is a no-op).")
                    elif parse_index(user_input) is not None:
                        pos = device.seek(handle, parse_index(user_input), Whence.FROM_START)
                        print_read_result(pos, device.read(handle), om, full=args.full)
                    elif CONFIG.has_profile(user_input):
                        _apply_profile(user_input, args.debug)
                        fresh = _make_device(args.strategy)
                        device.release(handle)
                        device = fresh
                        handle = device.acquire()
                        CONFIG.write_current_profile(user_input)
                        current_profile = user_input
                        print(f"Applied profile: {current_profile}")
                    else:
                        print(f"{Fore.RED}Invalid input: {Style.RESET_ALL}'{user_input}'. Type H for help.")
                finally:
                    om.close()

            except (EOFError, KeyboardInterrupt):
                print()
                break
            except (UserInputError, CapacityExceeded, ValueError) as e:
                _print_user_error(str(e))
            except Exception as e:
                if _rt_current().debug:
                    traceback.print_exc()
                else:
                    _print_user_error(f"{e.__class__.__name__}: {e}")
    finally:
        if device.held:
            device.release(handle)
    return 0


def _repl_seek(device: FibDevice, handle: SessionHandle, parts: list[str], om: OutputManager) -> None:
    if len(parts) < 2 or parse_index(parts[1]) is None:
        raise UserInputError("usage: seek N [set|cur|end]")
    mode = _WHENCE_WORDS.get(parts[2] if len(parts) > 2 else "set")
    if mode is None:
        raise UserInputError(f"unknown seek mode '{parts[2]}', use set, cur or end")
    pos = device.seek(handle, parse_index(parts[1]), mode)
    om.write(f"Position: {pos}")


if __name__ == "__main__":
    raise SystemExit(main())
