"""Algolia index size monitor: poll the record count, print build logs when it changes."""
import argparse
import logging
import os
import signal
import sys
import threading
from typing import List, Optional

from dotenv import load_dotenv

from . import __version__
from .algolia_client import AlgoliaClient, FatalRemoteError
from .monitor import IndexMonitor, MonitorConfig

load_dotenv()

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"


def configure_logging(verbosity: int) -> None:
    level = getattr(logging, (os.getenv("INDEX_MONITOR_LOG_LEVEL") or "WARNING").upper(), logging.WARNING)
    if verbosity == 1:
        level = logging.INFO
    elif verbosity >= 2:
        level = logging.DEBUG
    logging.basicConfig(stream=sys.stderr, level=level, format=LOG_FORMAT)


def _bounded_int(minimum: int):
    def parse(value: str) -> int:
        try:
            n = int(value)
        except ValueError:
            raise argparse.ArgumentTypeError(f"invalid integer: {value!r}")
        if n < minimum:
            raise argparse.ArgumentTypeError(f"must be >= {minimum}, got {n}")
        return n
    return parse


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="index-monitor",
        description="Algolia index size monitor. Prints the index build logs when the record count changes.",
    )
    parser.add_argument("app_id", metavar="APP_ID", help="Application ID")
    parser.add_argument("key", metavar="KEY", help="Algolia API key (needs the logs ACL)")
    parser.add_argument("index_name", metavar="INDEX_NAME", help="Name of the index to monitor")
    parser.add_argument(
        "-a", "--all-logs",
        action="store_true",
        help="Print every new build log entry each cycle instead of watching the record count.",
    )
    parser.add_argument(
        "-e", "--expected-records",
        type=_bounded_int(0),
        default=0,
        help="Starting record count (default: 0 = read it from the index on the first poll)",
    )
    parser.add_argument(
        "-d", "--delay",
        type=_bounded_int(1),
        default=30,
        help="Seconds between polls (default: 30)",
    )
    parser.add_argument(
        "--delta",
        type=_bounded_int(1),
        default=1000,
        help="Minimum absolute record count change that triggers a report (default: 1000)",
    )
    parser.add_argument("--raw", action="store_true", help="Print log entries as raw JSON records.")
    parser.add_argument("-v", "--verbose", action="count", default=0, help="-v for INFO, -vv for DEBUG")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser


def install_signal_handlers(stop_event: threading.Event) -> None:
    def handler(signum, frame):
        logger.info("Received signal %s, stopping", signum)
        stop_event.set()

    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            signal.signal(sig, handler)
        except (ValueError, OSError) as e:
            logger.warning("Could not register handler for %s: %s", sig, e)


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging(args.verbose)

    config = MonitorConfig(
        app_id=args.app_id,
        api_key=args.key,
        index_name=args.index_name,
        expected_records=args.expected_records,
        delay=args.delay,
        delta=args.delta,
        all_logs=args.all_logs,
        raw=args.raw,
    )
    logger.info("Starting with %s", config)

    stop_event = threading.Event()
    install_signal_handlers(stop_event)

    try:
        with AlgoliaClient(config.app_id, config.api_key, config.index_name) as client:
            IndexMonitor(client, config, stop_event=stop_event).run()
    except FatalRemoteError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
