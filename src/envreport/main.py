"""Application entry point: serve the API or print a report page."""

from __future__ import annotations

import argparse
import json
import logging
import sys
from typing import Optional, Sequence

import uvicorn
from dotenv import load_dotenv
from fastapi.encoders import jsonable_encoder

from .app import build_services, create_app
from .cli import parse_args
from .config import Settings, load_settings
from .errors import AuthenticationError, ConfigurationError, EnvReportError
from .logging_config import configure_logging
from .query import query

logger = logging.getLogger(__name__)


def run_server(settings: Settings, args: argparse.Namespace) -> int:
    app = create_app(build_services(settings), cors_origins=settings.cors_origins)
    logger.info("Starting API server", extra={"host": args.host, "port": args.port})
    uvicorn.run(app, host=args.host, port=args.port, log_level=settings.log_level.lower())
    return 0


def print_report(settings: Settings, args: argparse.Namespace) -> int:
    services = build_services(settings)
    reports = services.reports.build_reports(
        environment_name=args.environment_name,
        stage_name=args.stage_name,
        result=args.result or None,
        include_variable_groups=args.include_variable_groups,
    )
    page = query(reports, args.sort_by, args.sort_order, args.page_number, args.page_size)
    print(json.dumps(jsonable_encoder(page), indent=2))
    return 0


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Run the requested command and return a process exit code.

    Returns:
        ``0`` on success, ``2`` for configuration or credential problems and
        ``1`` for any other reporter error.
    """
    load_dotenv()
    args = parse_args(argv)

    try:
        settings = load_settings()
    except (ConfigurationError, AuthenticationError) as exc:
        print(f"ERROR: {exc}", file=sys.stderr)
        return 2

    configure_logging(args.log_level or settings.log_level)

    try:
        if args.command == "serve":
            return run_server(settings, args)
        return print_report(settings, args)
    except AuthenticationError as exc:
        print(f"ERROR: {exc}", file=sys.stderr)
        return 2
    except EnvReportError as exc:
        logger.error("Report generation failed", extra={"error": str(exc)})
        print(f"ERROR: {exc}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
