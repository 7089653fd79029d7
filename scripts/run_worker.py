#!/usr/bin/env python3
"""
Run a queue worker.

Usage:
    python scripts/run_worker.py regional --country PE
    python scripts/run_worker.py completion
"""

import argparse
import asyncio
import sys

import structlog

from medical_appointments.middleware.logging import configure_logging
from medical_appointments.schemas.appointments import CountryCode
from medical_appointments.workers.runner import run_worker


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description="Run an appointment queue worker",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("kind", choices=["regional", "completion"], help="Worker kind")
    parser.add_argument(
        "--country",
        choices=[country.value for country in CountryCode],
        help="Country served by a regional worker",
    )
    parser.add_argument("--log-level", default=None, help="Override LOG_LEVEL")
    args = parser.parse_args(argv)

    if args.kind == "regional" and not args.country:
        parser.error("regional workers need --country")
    return args


def main() -> int:
    """Run the worker selected on the command line."""
    args = parse_args()
    configure_logging(log_level=args.log_level)
    logger = structlog.get_logger()

    country = CountryCode(args.country) if args.country else None
    try:
        asyncio.run(run_worker(args.kind, country))
    except Exception as e:
        logger.error("worker_crashed", kind=args.kind, error=str(e), exc_info=True)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
