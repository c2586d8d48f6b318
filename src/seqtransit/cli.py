"""Command line entry point: process a feed or query published datasets."""

import argparse
import dataclasses
import json
import logging
import sys
from typing import List, Optional

from .config import MODES, get_mode_config
from .datasets import LocalDatasetStore
from .errors import FeedDownloadError, RouteLookupError
from .processor import ScheduleProcessor
from .query import RouteQueryService

logger = logging.getLogger(__name__)

DESCRIPTION = "TransLink SEQ ferry and train schedule processor"


def parse_args(args: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="seqtransit", description=DESCRIPTION)
    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="logging verbosity",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    process = subparsers.add_parser("process", help="build and publish per-origin datasets")
    process.add_argument("--mode", required=True, choices=sorted(MODES))
    process.add_argument("--output", default="data", help="directory to publish into")
    process.add_argument("--days", type=int, help="service horizon in days after today")
    process.add_argument("--gtfs", help="local GTFS zip or directory instead of downloading")

    query = subparsers.add_parser("query", help="departures between two stops or stations")
    query.add_argument("--mode", required=True, choices=sorted(MODES))
    query.add_argument("origin")
    query.add_argument("destination")
    query.add_argument("--hours", type=int, default=24)
    query.add_argument("--data", default="data", help="directory holding published datasets")

    return parser.parse_args(args)


def run_process(args: argparse.Namespace) -> int:
    mode = get_mode_config(args.mode)
    if args.days is not None:
        if args.days < 0:
            logger.error(f"--days must not be negative, got {args.days}")
            return 2
        mode = dataclasses.replace(mode, horizon_days=args.days)

    processor = ScheduleProcessor(mode, LocalDatasetStore(args.output))
    try:
        summary = processor.run(source=args.gtfs)
    except FeedDownloadError as e:
        logger.error(f"Processing aborted: {e}")
        return 1
    print(json.dumps(summary.to_dict(), indent=2))
    return 0 if summary.publish.failed == 0 else 1


def run_query(args: argparse.Namespace) -> int:
    mode = get_mode_config(args.mode)
    with LocalDatasetStore(args.data) as store:
        service = RouteQueryService(store, mode)
        try:
            response = service.query_route(args.origin, args.destination, hours=args.hours)
        except ValueError as e:
            logger.error(str(e))
            return 2
        except RouteLookupError as e:
            logger.error(str(e))
            return 1
    print(json.dumps(response, indent=2))
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)
    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    if args.command == "process":
        return run_process(args)
    return run_query(args)


if __name__ == "__main__":
    sys.exit(main())
