from __future__ import annotations

import argparse


def _positive_int(value: str) -> int:
    try:
        number = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"expected an integer, got {value!r}") from None
    if number < 1:
        raise argparse.ArgumentTypeError(f"expected an integer >= 1, got {number}")
    return number


def _int_list(value: str) -> list[int]:
    numbers = [_positive_int(item.strip()) for item in value.split(",") if item.strip()]
    if not numbers:
        raise argparse.ArgumentTypeError(f"expected at least one integer, got {value!r}")
    return numbers


def _add_load_args(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "operation_set",
        nargs="?",
        default="ride_booking",
        help="Operation set id (default: ride_booking)",
    )
    parser.add_argument(
        "--requests",
        type=_positive_int,
        default=10,
        help="Requests issued by each virtual user",
    )
    parser.add_argument(
        "--limit",
        type=_positive_int,
        default=None,
        help="Max operations in flight per run in concurrent mode",
    )
    parser.add_argument(
        "--ramp-up",
        type=float,
        default=0.0,
        help="Seconds over which virtual users are launched",
    )
    parser.add_argument(
        "--json",
        action="store_true",
        help="Print results as JSON",
    )
    parser.add_argument(
        "--output",
        default=None,
        help="Write results to a .json or .csv file",
    )
    parser.add_argument(
        "--history",
        default=None,
        help="Append results to a rolling JSON history file",
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="fanbench")

    parser.add_argument(
        "--config",
        default=None,
        help="Path to config file (default: built-in ride_booking set)",
    )
    parser.add_argument(
        "--jitter-ms",
        type=float,
        default=0.0,
        help="Random latency added per statement by the built-in set",
    )
    parser.add_argument(
        "--seed",
        type=int,
        default=None,
        help="Seed for simulated latency jitter",
    )
    parser.add_argument(
        "--log-level",
        default="WARNING",
        help="Log level for stderr logging",
    )
    parser.add_argument(
        "--log-json",
        action="store_true",
        help="Emit logs as JSON lines",
    )

    subparsers = parser.add_subparsers(
        dest="command",
        required=True,
    )

    # book
    book = subparsers.add_parser("book", help="Run an operation set once and show each operation")
    book.add_argument(
        "operation_set",
        nargs="?",
        default="ride_booking",
        help="Operation set id (default: ride_booking)",
    )
    book.add_argument(
        "--mode",
        default="sequential",
        help="sequential or concurrent",
    )
    book.add_argument(
        "--limit",
        type=_positive_int,
        default=None,
        help="Max operations in flight in concurrent mode",
    )

    # run
    run = subparsers.add_parser("run", help="Load test one strategy")
    _add_load_args(run)
    run.add_argument(
        "--mode",
        default="concurrent",
        help="sequential or concurrent",
    )
    run.add_argument(
        "--users",
        type=_positive_int,
        default=10,
        help="Concurrent virtual users",
    )

    # compare
    compare = subparsers.add_parser(
        "compare", help="Load test both strategies and compare them"
    )
    _add_load_args(compare)
    compare.add_argument(
        "--users",
        type=_int_list,
        default=[10],
        help="Comma separated virtual user counts, one comparison each",
    )

    # list
    subparsers.add_parser("list", help="List operation sets")

    # show
    show = subparsers.add_parser("show", help="Show the operations of a set")
    show.add_argument("operation_set", help="Operation set id")

    # history
    history = subparsers.add_parser("history", help="Show a rolling history file")
    history.add_argument("path", help="History file")

    return parser
