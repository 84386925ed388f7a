"""Console rows for round-trip checks (one row per check)."""

from __future__ import annotations

from decimal import Decimal
from typing import Callable, Iterable, Optional

from colorama import Fore, Style

from arbscan.checker import CheckResult
from arbscan.routes import route_pretty
from arbscan.units import to_display

HEADER = (
    f"{'from':<6} {'to':<6} {'in':>7} {'out':>7} {'diff':>7} {'time':>5}  timestamp"
)


def _color(text: str, color: str) -> str:
    return f"{color}{text}{Style.RESET_ALL}"


def _diff_cell(diff: Decimal) -> str:
    text = f"{diff:.2f}".rjust(7)
    return _color(text, Fore.RED if diff < 0 else Fore.GREEN)


def _time_cell(elapsed_s: float) -> str:
    return f"{elapsed_s:.1f}s".rjust(5)


def format_row(result: CheckResult) -> str:
    src = result.from_symbol.ljust(6)
    dst = result.to_symbol.ljust(6)
    amount_in = to_display(result.from_amount, result.from_decimals).rjust(7)
    if not result.ok:
        line = f"{src} {dst} {amount_in} {result.error}  {_time_cell(result.elapsed_s)}  {result.timestamp}"
        return _color(line, Fore.RED)

    amount_out = to_display(result.to_amount or 0, result.to_decimals or 0).rjust(7)
    diff = result.difference or Decimal(0)
    tail = f"{_time_cell(result.elapsed_s)}  {result.timestamp}"
    if result.is_profitable:
        # whole row green, so no nested reset from the diff cell
        return _color(f"{src} {dst} {amount_in} {amount_out} {diff:>7.2f} {tail}", Fore.GREEN)
    return f"{src} {dst} {amount_in} {amount_out} {_diff_cell(diff)} {tail}"


def format_routes(result: CheckResult, symbol_for: Optional[Callable[[str], str]] = None) -> str:
    return (
        f"    fwd: {route_pretty(result.first_route, symbol_for)}\n"
        f"    rev: {route_pretty(result.second_route, symbol_for)}"
    )


def print_header() -> None:
    print(_color(HEADER, Style.BRIGHT))


def print_row(result: CheckResult, symbol_for: Optional[Callable[[str], str]] = None) -> None:
    print(format_row(result))
    if result.ok and result.is_profitable:
        print(_color(format_routes(result, symbol_for), Fore.GREEN))


def summary(results: Iterable[CheckResult]) -> str:
    total = profitable = errors = 0
    for r in results:
        total += 1
        if not r.ok:
            errors += 1
        elif r.is_profitable:
            profitable += 1
    return f"checks={total} profitable={profitable} errors={errors}"
