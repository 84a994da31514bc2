"""
Main entry point for the progress harvester.
"""

import argparse
import logging
import sys
from dataclasses import replace
from datetime import date
from pathlib import Path
from typing import List, Optional

from dotenv import load_dotenv

from harvester.config import (
    HarvesterConfig,
    RateLimitConfig,
    load_settings,
    resolve_credentials,
)
from harvester.crawl_controller import CrawlController
from harvester.errors import ConfigurationError
from harvester.log_setup import configure_logging
from harvester.models import CrawlWindow, IndexBounds, RunSummary
from harvester.portal_driver import SeleniumBaseDriver
from harvester.storage_factory import create_artifact_store
from harvester.utils import yesterday

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_FATAL = 1
EXIT_CONFIG = 2


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description='Imagine Math certificate and avatar harvester',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Crawl the whole roster (credentials from HARVESTER_USERNAME/HARVESTER_PASSWORD)
  harvester

  # Credentials as arguments, only roster positions 300-305
  harvester teacher@example.org s3cret 300 305

  # Re-crawl a fixed window with a visible browser
  harvester --window-start 2026-09-01 --window-end 2026-09-30 --visible
"""
    )

    parser.add_argument('username', nargs='?', help='Portal username (HARVESTER_USERNAME wins)')
    parser.add_argument('password', nargs='?', help='Portal password (HARVESTER_PASSWORD wins)')
    parser.add_argument(
        'first_index', nargs='?', type=int, default=0,
        help='First roster position to crawl, 1-based inclusive (default: 0)'
    )
    parser.add_argument(
        'last_index', nargs='?', type=int, default=None,
        help='Last roster position to crawl, inclusive (default: end of roster)'
    )

    parser.add_argument(
        '--roster',
        type=str,
        default=HarvesterConfig.roster_path,
        help=f'Roster JSON or CSV file (default: {HarvesterConfig.roster_path})'
    )
    parser.add_argument(
        '--delay',
        type=float,
        default=RateLimitConfig.min_interval,
        help=f'Seconds between students (default: {RateLimitConfig.min_interval:g})'
    )
    parser.add_argument(
        '--window-start',
        type=date.fromisoformat,
        help='Usage report start date YYYY-MM-DD (default: last checkpoint)'
    )
    parser.add_argument(
        '--window-end',
        type=date.fromisoformat,
        help='Usage report end date YYYY-MM-DD (default: yesterday)'
    )
    parser.add_argument(
        '--visible',
        action='store_true',
        help='Show the browser window'
    )
    parser.add_argument(
        '--no-flush',
        action='store_true',
        help='Write the export only at the end of the run'
    )
    return parser


def build_window(start: Optional[date], end: Optional[date]) -> Optional[CrawlWindow]:
    """
    Turn CLI window options into a CrawlWindow.

    Raises:
        ConfigurationError: If only an end date is given or start is after end
    """
    if start is None:
        if end is not None:
            raise ConfigurationError("--window-end requires --window-start")
        return None
    try:
        return CrawlWindow(start=start, end=end or yesterday())
    except ValueError as e:
        raise ConfigurationError(str(e)) from e


def print_summary(summary: RunSummary):
    print("\n" + "=" * 60)
    print("CRAWL COMPLETE" if summary.success else "CRAWL ABORTED")
    print("=" * 60)
    if summary.window:
        print(f"Window:      {summary.window.start} to {summary.window.end}")
    print(f"Duration:    {summary.duration_seconds / 60:.1f} minutes")
    print(f"Delta:       {summary.delta_size} active students")
    print(f"Extracted:   {summary.total_extracted}")
    print(f"Skipped:     {summary.total_skipped}")
    print(f"Failed:      {summary.total_failed}")
    if summary.export_key:
        print(f"Export:      {summary.export_key}")
    print(f"Checkpoint:  {'advanced' if summary.checkpoint_advanced else 'unchanged'}")
    if summary.fatal_error:
        print(f"\nError: {summary.fatal_error}")


def main(argv: Optional[List[str]] = None) -> int:
    env_path = Path.cwd() / '.env'
    if env_path.exists():
        load_dotenv(env_path)

    args = build_parser().parse_args(argv)
    try:
        settings = load_settings()
    except ConfigurationError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return EXIT_CONFIG

    configure_logging(settings.log_dir, production=settings.is_production)

    try:
        credentials = resolve_credentials(settings, args.username, args.password)
        window = build_window(args.window_start, args.window_end)
        store = create_artifact_store(settings)
    except ConfigurationError as e:
        logger.error("Configuration error: %s", e)
        print(f"Configuration error: {e}", file=sys.stderr)
        return EXIT_CONFIG

    defaults = HarvesterConfig()
    config = replace(
        defaults,
        roster_path=args.roster,
        headless=settings.headless and not args.visible,
        rate_limit=RateLimitConfig(min_interval=args.delay),
        flush_every=0 if args.no_flush else defaults.flush_every,
    )
    driver = SeleniumBaseDriver(
        headless=config.headless,
        window_width=config.portal.window_width,
        window_height=config.portal.window_height
    )
    controller = CrawlController(driver, store, credentials, config)

    try:
        summary = controller.run(
            window=window,
            bounds=IndexBounds(first=args.first_index, last=args.last_index)
        )
    except KeyboardInterrupt:
        print("\nStopped. Rows written so far are in the partial export.")
        return EXIT_FATAL

    print_summary(summary)
    return EXIT_OK if summary.success else EXIT_FATAL


if __name__ == '__main__':
    sys.exit(main())
