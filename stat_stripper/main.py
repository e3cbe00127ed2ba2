"""Command line entry point: strip statistic categories from Alma users."""

from __future__ import annotations

import argparse
import logging
import os
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import List, Optional

from dotenv import load_dotenv

from . import __version__, config
from .errors import ConfigError, SourceError
from .extract.categories import load_category_set, read_identifiers
from .pipeline import RunSummary, process_users, run
from .source import AlmaUserSource, summaries_from_ids
from .utils.alma import AlmaClient

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_REMOTE_FAILURE = 1
EXIT_CONFIG_ERROR = 2


def _non_negative_int(value: str) -> int:
    try:
        number = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"expected a whole number, got {value!r}") from None
    if number < 0:
        raise argparse.ArgumentTypeError(f"offset must not be negative, got {number}")
    return number


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="stat-stripper",
        description="Remove user statistics of the listed categories from every Alma user",
    )
    parser.add_argument("categories", type=Path, help="File with one statistic category per line")
    parser.add_argument(
        "-f",
        "--from-offset",
        type=_non_negative_int,
        default=0,
        help="First page index to process (inclusive); use it to resume a failed run",
    )
    parser.add_argument(
        "-t",
        "--to-offset",
        type=_non_negative_int,
        help="Last page index to process (inclusive); default is until the user list runs out",
    )
    parser.add_argument(
        "--external-groups",
        type=Path,
        help="File of user groups whose internal-segment statistics are removed as well",
    )
    parser.add_argument(
        "--user-ids",
        type=Path,
        help="Process the user ids listed in this file instead of paging through all users",
    )
    parser.add_argument(
        "--log-level", default=config.DEFAULT_LOG_LEVEL, help="Logging level (DEBUG, INFO, WARNING, ...)"
    )
    parser.add_argument("-V", "--version", action="version", version=f"%(prog)s {__version__}")
    return parser


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    return build_parser().parse_args(argv)


def configure_logging(log_dir: Path, level: str) -> None:
    log_dir.mkdir(parents=True, exist_ok=True)
    log_path = log_dir / f"stat_stripper_{datetime.now(timezone.utc):%Y%m%d}.log"

    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
        handlers=[
            logging.StreamHandler(),
            logging.FileHandler(log_path, mode="a", encoding="utf-8"),
        ],
    )

    logger.info("Logging to %s", log_path)


def build_client() -> AlmaClient:
    region = os.getenv("ALMA_REGION")
    api_key = os.getenv("ALMA_APIKEY")
    if not region or not api_key:
        raise ConfigError("ALMA_REGION and ALMA_APIKEY must be configured (see .env)")
    return AlmaClient(region, api_key)


def main(argv: Optional[List[str]] = None) -> int:
    load_dotenv()

    args = parse_args(argv)
    configure_logging(Path(os.getenv("LOG_DIR", config.LOG_DIR)), args.log_level)

    try:
        categories = load_category_set(args.categories)
        external_groups = (
            frozenset(read_identifiers(args.external_groups)) if args.external_groups else frozenset()
        )
        user_ids = read_identifiers(args.user_ids) if args.user_ids else None
        client = build_client()
    except ConfigError as exc:
        logger.error("Configuration error: %s", exc)
        return EXIT_CONFIG_ERROR

    logger.info("Removing %s statistic categories: %s", len(categories), ", ".join(sorted(categories)))

    with client:
        source = AlmaUserSource(client)
        try:
            if user_ids is not None:
                updated = process_users(
                    source, summaries_from_ids(user_ids), categories, external_groups=external_groups
                )
                summary = RunSummary(users_seen=len(user_ids), users_updated=updated)
            else:
                summary = run(
                    source,
                    categories,
                    from_offset=args.from_offset,
                    to_offset=args.to_offset,
                    external_groups=external_groups,
                )
        except SourceError as exc:
            logger.error("%s", exc)
            if exc.offset is not None:
                logger.error("Run aborted; resume with --from-offset %s", exc.offset)
            return EXIT_REMOTE_FAILURE

    logger.info("%s of %s users updated", summary.users_updated, summary.users_seen)
    return EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
