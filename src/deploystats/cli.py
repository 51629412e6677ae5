"""Command-line argument parsing for the GitHub deployment statistics tool."""

from __future__ import annotations

import argparse
import sys
from typing import NoReturn, Optional, Sequence

from .config import DEFAULT_TOTAL_DEPLOYMENTS


class _ArgumentParser(argparse.ArgumentParser):
    """Argument parser that exits with status 1 on usage errors."""

    def error(self, message: str) -> NoReturn:
        self.print_usage(sys.stderr)
        self.exit(1, f"{self.prog}: error: {message}\n")


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


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    """Parse command-line arguments for a statistics run.

    The cutoff may be given either as the fourth positional argument or with
    ``--cutoff``; giving both with different values is a usage error.

    Returns:
        Parsed CLI arguments containing owner, repo, environment, cutoff,
        deployments, max_concurrency and verbose.
    """
    parser = _ArgumentParser(
        prog="gh-deployment-stats",
        description=(
            "Report how long GitHub deployments of an environment take to reach "
            "their first success status (count, avg, min, max)."
        ),
    )

    parser.add_argument("owner", help="GitHub repository owner.")
    parser.add_argument("repo", help="GitHub repository name.")
    parser.add_argument("environment", help="Deployment environment, e.g. production.")
    parser.add_argument(
        "cutoff_positional",
        nargs="?",
        metavar="cutoff",
        help="Optional ISO8601 timestamp dividing results into old and new groups.",
    )
    parser.add_argument(
        "--cutoff",
        help="Same as the positional cutoff.",
    )
    parser.add_argument(
        "--deployments",
        type=_positive_int,
        default=DEFAULT_TOTAL_DEPLOYMENTS,
        help=f"Number of most recent deployments to consider (default: {DEFAULT_TOTAL_DEPLOYMENTS}).",
    )
    parser.add_argument(
        "--max-concurrency",
        type=_positive_int,
        default=None,
        help="Maximum number of GitHub API requests in flight (default: unlimited).",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable debug logging on stderr.",
    )

    args = parser.parse_args(argv)

    if args.cutoff and args.cutoff_positional and args.cutoff != args.cutoff_positional:
        parser.error("cutoff given twice with different values")
    args.cutoff = args.cutoff or args.cutoff_positional
    del args.cutoff_positional

    return args
