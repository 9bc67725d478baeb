"""Command-line argument parsing for HubLights."""

from __future__ import annotations

import argparse
from typing import Optional, Sequence


def _positive_int(value: str) -> int:
    """Parse and validate a positive integer CLI value.

    Raises:
        argparse.ArgumentTypeError: If value is not a positive integer.
    """
    try:
        parsed = int(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError("must be an integer") from exc

    if parsed <= 0:
        raise argparse.ArgumentTypeError("must be greater than 0")

    return parsed


def _positive_float(value: str) -> float:
    try:
        parsed = float(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError("must be a number") from exc

    if not parsed > 0:
        raise argparse.ArgumentTypeError("must be greater than 0")

    return parsed


def _non_negative_int(value: str) -> int:
    try:
        parsed = int(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError("must be an integer") from exc

    if parsed < 0:
        raise argparse.ArgumentTypeError("must not be negative")

    return parsed


def _add_target_fields(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--org", help="GitHub organization or user (empty string clears).")
    parser.add_argument("--repo", help="Repository name; defaults to the organization name.")
    parser.add_argument("--branch", help="Branch to check; defaults to 'main'.")
    parser.add_argument("--title", help="Display title; defaults to org/repo/branch.")
    parser.add_argument(
        "--interval",
        type=float,
        help="Seconds between automatic checks (minimum 30).",
    )
    enabled = parser.add_mutually_exclusive_group()
    enabled.add_argument("--enable", dest="enabled", action="store_true", default=None)
    enabled.add_argument("--disable", dest="enabled", action="store_false")


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    """Parse command-line arguments.

    Returns:
        Parsed arguments; ``command`` names the selected subcommand.
    """
    parser = argparse.ArgumentParser(
        prog="hublights",
        description="Monitor GitHub check-suite status for a set of repositories.",
    )
    parser.add_argument(
        "--storage",
        help="Path of the JSON storage file (default: $HUBLIGHTS_STORAGE or ~/.config/hublights/storage.json).",
    )
    parser.add_argument(
        "--timeout",
        type=_positive_float,
        default=30.0,
        help="Per-request timeout in seconds (default: 30).",
    )
    parser.add_argument(
        "--workers",
        type=_positive_int,
        default=4,
        help="Number of concurrent status requests (default: 4).",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging.")

    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("list", help="Show configured repositories and their last status.")

    add_parser = subparsers.add_parser("add", help="Add a repository to monitor.")
    _add_target_fields(add_parser)

    remove_parser = subparsers.add_parser("remove", help="Stop monitoring repositories.")
    remove_parser.add_argument("targets", nargs="+", help="Target ids or unique id prefixes.")

    move_parser = subparsers.add_parser("move", help="Reorder a repository in the list.")
    move_parser.add_argument("target", help="Target id or unique id prefix.")
    move_parser.add_argument("--to", dest="position", type=_non_negative_int, required=True,
                             help="Zero-based position the target should end up at.")

    set_parser = subparsers.add_parser("set", help="Edit a monitored repository.")
    set_parser.add_argument("target", help="Target id or unique id prefix.")
    _add_target_fields(set_parser)

    check_parser = subparsers.add_parser("check", help="Check status now.")
    check_parser.add_argument(
        "targets",
        nargs="*",
        help="Targets to check (default: all enabled targets).",
    )

    watch_parser = subparsers.add_parser("watch", help="Poll enabled repositories on their intervals.")
    watch_parser.add_argument(
        "--cycles",
        type=_positive_int,
        default=None,
        help="Stop after this many poll ticks (default: run until interrupted).",
    )
    watch_parser.add_argument(
        "--tick",
        type=_positive_float,
        default=1.0,
        help="Seconds between poll ticks (default: 1).",
    )

    return parser.parse_args(argv)
