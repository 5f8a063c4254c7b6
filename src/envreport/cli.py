"""Command-line argument parsing for the environment reporter."""

from __future__ import annotations

import argparse
from typing import Optional, Sequence

from .query import MAX_PAGE_SIZE


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


def _page_size(value: str) -> int:
    parsed = _positive_int(value)
    if parsed > MAX_PAGE_SIZE:
        raise argparse.ArgumentTypeError(f"must be at most {MAX_PAGE_SIZE}")
    return parsed


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    """Parse command-line arguments.

    Returns:
        Parsed arguments; ``command`` is ``"serve"`` or ``"report"``.
    """
    parser = argparse.ArgumentParser(
        prog="envreport",
        description=(
            "Aggregate Azure DevOps environments, deployments, builds and "
            "variable groups into environment reports."
        ),
    )
    parser.add_argument(
        "--log-level",
        default=None,
        help="Logging level (default: LOG_LEVEL environment variable or INFO).",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    serve = subparsers.add_parser("serve", help="Run the HTTP API.")
    serve.add_argument("--host", default="0.0.0.0", help="Bind address (default: 0.0.0.0).")
    serve.add_argument(
        "--port",
        type=_positive_int,
        default=8080,
        help="Listen port (default: 8080).",
    )

    report = subparsers.add_parser("report", help="Print one page of environment reports as JSON.")
    report.add_argument("--environment-name", help="Environment name substring filter.")
    report.add_argument("--stage-name", help="Deployment stage name substring filter.")
    report.add_argument(
        "--result",
        default="succeeded",
        help="Deployment result filter (default: succeeded). Pass an empty string for all.",
    )
    report.add_argument("--page-number", type=_positive_int, default=1, help="Page number (default: 1).")
    report.add_argument("--page-size", type=_page_size, default=40, help="Page size, 1-100 (default: 40).")
    report.add_argument(
        "--sort-by",
        choices=["deploymentFinishTime", "buildStartTime"],
        default="deploymentFinishTime",
        help="Sort field (default: deploymentFinishTime).",
    )
    report.add_argument(
        "--sort-order",
        choices=["asc", "desc"],
        default="desc",
        help="Sort order (default: desc).",
    )
    report.add_argument(
        "--no-variable-groups",
        dest="include_variable_groups",
        action="store_false",
        help="Skip variable-group matching and portal URL derivation.",
    )

    return parser.parse_args(argv)
