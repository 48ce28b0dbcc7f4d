# src/fibengine/display.py
from __future__ import annotations

from typing import TYPE_CHECKING

from colorama import Fore, Style

from fibengine.config import list_profiles_with_descriptions, read_current_profile
from fibengine.fibonacci import STRATEGIES
from fibengine.fmt import format_ns, format_value

if TYPE_CHECKING:
    from fibengine.output_manager import OutputManager
    from fibengine.session import FibDevice, ReadResult

ALIGN_WIDTH = 14  # label column


def _line(label: str, value: str) -> str:
    return f"{Fore.GREEN}{label:<{ALIGN_WIDTH}}{Style.RESET_ALL}{value}"


def print_read_result(index: int, result: ReadResult, om: OutputManager, *, full: bool = False) -> None:
    """Pretty print one read: index, value, digit count and compute time if reported."""
    om.write(_line("Index", str(index)))
    om.write(_line("Value", format_value(result.value, full=full)))
    om.write(_line("Digits", str(len(result.value))))
    if result.elapsed_ns is not None:
        om.write(_line("Compute", f"{result.elapsed_ns} ns ({format_ns(result.elapsed_ns)})"))


def print_device_status(device: FibDevice, om: OutputManager) -> None:
    eng = device.engine
    state = f"{Fore.YELLOW}OPEN{Style.RESET_ALL}" if device.held else "CLOSED"
    om.write(_line("State", state))
    om.write(_line("Position", f"{device.position} (limit {device.limit})"))
    om.write(_line("Strategy", f"{eng.strategy}{' (timed)' if eng.timed else ''}"))
    om.write(_line("Capacity", f"{eng.capacity} digits, {eng.subtract} subtraction"))


# --- bench -------------------------------------------------------------------

def print_bench_header(device: FibDevice, om: OutputManager) -> None:
    eng = device.engine
    om.write(f"{Fore.YELLOW}{Style.BRIGHT}# strategy={eng.strategy} capacity={eng.capacity} "
             f"limit={device.limit}{Style.RESET_ALL}")
    om.write("# index transport_ns total_ns compute_ns")


def print_bench_row(row, om: OutputManager) -> None:
    def _ns(v: int | None) -> str:
        return "-" if v is None else str(v)
    om.write(f"{row.index} {_ns(row.transport_ns)} {row.total_ns} {_ns(row.compute_ns)}")


def print_bench_value(index: int, value: str, om: OutputManager) -> None:
    om.write(f"Reading at offset {index}, returned the sequence {value}.")


# --- lists -------------------------------------------------------------------

def show_strategy_list(om: OutputManager, current: str | None = None) -> None:
    om.write(f"\n{Fore.YELLOW}{Style.BRIGHT}Strategies{Style.RESET_ALL}")
    for name in sorted(STRATEGIES):
        fn = STRATEGIES[name]
        mark = "🡆" if name == current else " "
        timed = " [timed]" if fn.timed else ""
        om.write(f"{mark} {name:8} — {fn.description}{timed}")


def print_profiles_with_descriptions() -> None:
    pairs = list_profiles_with_descriptions()
    if not pairs:
        print("\nAvailable profiles: (none)")
        return

    current = read_current_profile()
    lines = []
    for name, desc in pairs:
        mark = "🡆" if current and name == current else " "
        lines.append(f"{mark} {name:13} — {desc}")
    print("\nAvailable profiles:\n  " + "\n  ".join(lines))


def show_intro_help(om: OutputManager) -> None:
    om.write(f"""
{Fore.YELLOW}{Style.BRIGHT}Commands{Style.RESET_ALL} (the device stays open until you quit)
  <n>                     seek to index n and read F(n)
  seek N [set|cur|end]    move the position (clamped to 0..limit)
  read                    read F(position)
  write TEXT              accepted and ignored
  pos | status            show position, strategy and capacity
  strategy [NAME]         show or switch the strategy
  p                       list profiles
  <profile>               switch profile (rebuilds the device)
  h                       this help
  q                       quit""")
