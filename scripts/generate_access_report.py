#!/usr/bin/env python3
"""
CLI tool for generating access digests.

Usage:
    python3 scripts/generate_access_report.py [options]

Examples:
    # Send the daily digest (last 24 hours)
    python3 scripts/generate_access_report.py --period day

    # Preview last month's digest as text without sending
    python3 scripts/generate_access_report.py --period month --dry-run --format text

    # Custom window written to a file
    python3 scripts/generate_access_report.py --start 2024-01-01T00:00:00Z --end 2024-01-08T00:00:00Z \
        --dry-run --output digest.html
"""

import argparse
import logging
import sys
from pathlib import Path

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent))

from access_log import AccessLogStore, DigestError, configure_logging, load_config
from access_log.schema import parse_timestamp
from notifications import GiphyClient, build_mailer
from reporting import DAILY_TITLE, MONTHLY_TITLE, DigestRenderer, ReportGenerator
from reporting.windows import custom_window, last_24_hours, previous_calendar_month, resolve_timezone

logger = logging.getLogger("generate_access_report")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Generate and send access digests",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s --period day
  %(prog)s --period month --dry-run --format text
  %(prog)s --start 2024-01-01T00:00:00Z --end 2024-01-08T00:00:00Z --dry-run --output digest.html
        """,
    )

    parser.add_argument(
        "--period",
        choices=["day", "month"],
        default="day",
        help="Report window: last 24 hours or previous calendar month (default: day)",
    )

    parser.add_argument(
        "--start",
        type=str,
        metavar="ISO",
        help="Custom window start (ISO-8601, requires --end)",
    )

    parser.add_argument(
        "--end",
        type=str,
        metavar="ISO",
        help="Custom window end (ISO-8601, requires --start)",
    )

    parser.add_argument(
        "--format",
        choices=["html", "text"],
        default="html",
        help="Output format (default: html; text requires --dry-run)",
    )

    parser.add_argument(
        "--output",
        type=str,
        metavar="PATH",
        help="Also write the rendered document to this path",
    )

    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Render the digest without sending it",
    )

    parser.add_argument(
        "--no-gif",
        action="store_true",
        help="Skip the decorative GIF lookup",
    )

    parser.add_argument(
        "--config",
        type=str,
        metavar="PATH",
        help="Path to a JSON config file (environment variables still apply)",
    )

    parser.add_argument(
        "--log-level",
        type=str,
        metavar="LEVEL",
        help="Logging level (default: from config, INFO)",
    )

    return parser


def resolve_window(args, config):
    """Pick the report window and title from the arguments."""
    if args.start or args.end:
        if not (args.start and args.end):
            raise ValueError("--start and --end must be given together")
        window = custom_window(parse_timestamp(args.start), parse_timestamp(args.end))
        return window, "Access Report"

    if args.period == "month":
        return previous_calendar_month(zone=resolve_timezone(config.display_timezone)), MONTHLY_TITLE
    return last_24_hours(), DAILY_TITLE


def main(argv=None):
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.format == "text" and not args.dry_run:
        parser.error("--format text is only available with --dry-run")

    # Initialize generator
    try:
        config = load_config(Path(args.config) if args.config else None)
        configure_logging(args.log_level or config.log_level)
        if args.dry_run:
            config.require("table_name")
        else:
            config.require("table_name", "email_from", "email_to")

        window, title = resolve_window(args, config)
        generator = ReportGenerator(
            config,
            store=AccessLogStore(config.table_name),
            mailer=None if args.dry_run else build_mailer(config),
            gif_source=None if args.no_gif or not config.giphy_api_key else GiphyClient.from_config(config),
            renderer=DigestRenderer.from_config(config, format=args.format),
        )
    except (DigestError, ValueError) as e:
        print(f"Error: Failed to initialize report generator: {e}", file=sys.stderr)
        return 1

    # Generate digest
    try:
        if args.dry_run:
            result = generator.build_document(window, title)
        else:
            result = generator.run(window, title)
    except DigestError as e:
        logger.debug("Digest run failed", exc_info=True)
        print(f"Error: Failed during {e.stage}: {e}", file=sys.stderr)
        return 1

    if args.output:
        output_path = Path(args.output)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        output_path.write_text(result.document, encoding="utf-8")
        print(f"Digest written to: {args.output}", file=sys.stderr)
    elif args.dry_run:
        print(result.document)

    if not args.dry_run:
        print(f"{title} sent: {result.record_count} accesses across {result.app_count} apps", file=sys.stderr)

    return 0


if __name__ == "__main__":
    sys.exit(main())
