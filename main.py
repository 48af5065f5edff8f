#!/usr/bin/env python3
"""
Route Optimizer — Entry Point
==============================

Validates the addresses in a spreadsheet and optionally orders them into a route.

Usage:
    OPENAI_API_KEY=sk-... python main.py addresses.xlsx
    OPENAI_API_KEY=sk-... python main.py addresses.xlsx --optimize --output results.xlsx
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path

from dotenv import load_dotenv

from route_optimizer.exceptions import RouteOptimizerError
from route_optimizer.models import AddressRecord, AddressStatus
from route_optimizer.pipeline import AddressSession
from route_optimizer.spreadsheet import EXPORT_FILENAME

load_dotenv()


# ─── ANSI Color Constants ───────────────────────────────────────────

_RED = "\033[91m"
_GREEN = "\033[92m"
_CYAN = "\033[96m"
_DIM = "\033[2m"
_BOLD = "\033[1m"
_RESET = "\033[0m"
_WIDTH = 72


# ─── Pretty Printer ─────────────────────────────────────────────────


def _print_progress(processed: int, total: int) -> None:
    print(f"\r  Validating addresses with AI... ({processed}/{total})", end="", flush=True)
    if processed == total:
        print()


def _print_address(record: AddressRecord) -> None:
    if record.status == AddressStatus.VALIDATED:
        print(f"  {_GREEN}[OK]{_RESET}  #{record.id:<4} {record.single_line()}")
    else:
        print(f"  {_RED}[ERR]{_RESET} #{record.id:<4} {record.full_address}")
        print(f"        {_DIM}{record.error}{_RESET}")


def print_report(session: AddressSession) -> None:
    """Pretty-print every address and the validation totals."""
    print(f"\n{'=' * _WIDTH}")
    print(f"{_BOLD}{_CYAN}  ADDRESS VALIDATION REPORT{_RESET}")
    print(f"{'=' * _WIDTH}")
    for record in session.records:
        _print_address(record)
    print(f"{'─' * _WIDTH}")
    print(
        f"  {len(session.records)} addresses: "
        f"{_GREEN}{session.validated_count} valid{_RESET}, "
        f"{_RED}{session.error_count} errors{_RESET}"
    )
    print(f"{'=' * _WIDTH}\n")


def print_route(route: list[AddressRecord]) -> None:
    print(f"{_BOLD}{_CYAN}  OPTIMIZED ROUTE ({len(route)} stops){_RESET}")
    for position, record in enumerate(route, start=1):
        marker = f"{_DIM}(start){_RESET}" if position == 1 else ""
        print(f"  {position:>3}. {record.single_line()} {marker}")
    print(f"{'=' * _WIDTH}\n")


# ─── Main ────────────────────────────────────────────────────────────


async def run(path: Path, optimize: bool, output: Path | None) -> int:
    print(f"\n  Reading {path.name}...")
    try:
        session = AddressSession()
        await session.ingest(path, on_progress=_print_progress)
    except RouteOptimizerError as e:
        print(f"\n  {_RED}{_BOLD}An error occurred:{_RESET} {e}")
        return 1

    print_report(session)

    exit_code = 0
    if optimize:
        print("  Optimizing route with AI...")
        try:
            print_route(await session.optimize())
        except RouteOptimizerError as e:
            print(f"  {_RED}{_BOLD}Error:{_RESET} {e}\n")
            exit_code = 1

    if output is not None:
        output.write_bytes(session.export())
        print(f"  Results written to {output}")

    return exit_code


def main() -> None:
    parser = argparse.ArgumentParser(description="Validate addresses and plan a route.")
    parser.add_argument("spreadsheet", type=Path, help=".xlsx file with 'Address Line 1' and 'City' columns")
    parser.add_argument("--optimize", action="store_true", help="also compute a visiting order")
    parser.add_argument(
        "--output",
        type=Path,
        nargs="?",
        const=Path(EXPORT_FILENAME),
        help=f"write processed addresses (default name: {EXPORT_FILENAME})",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="debug logging")
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    sys.exit(asyncio.run(run(args.spreadsheet, args.optimize, args.output)))


if __name__ == "__main__":
    main()
