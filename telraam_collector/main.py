"""Command-line entry point for a collection run."""

import argparse
import logging
import sys
import time

import yaml
from pydantic import ValidationError

from .client import TelraamClient
from .collector import CollectionError, DataCollector
from .config import Settings, load_config, load_devices, setup_logging
from .file_store import StorageError
from .storage import PersistenceStore
from .timeutils import format_duration, utc_now_iso

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Collect hourly traffic counts into monthly JSON files",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Collect every device listed in config.yaml
  telraam-collector --config config.yaml

  # Backfill 90 days for a single device
  telraam-collector --config config.yaml --days 90 --device 9000008311
        """,
    )
    parser.add_argument(
        "--config",
        type=str,
        default="config.yaml",
        help="Path to configuration YAML file (default: config.yaml)",
    )
    parser.add_argument(
        "--days",
        type=int,
        default=None,
        help="Number of days to fetch, counting back from now",
    )
    parser.add_argument(
        "--device",
        action="append",
        default=None,
        help="Only collect this device id (repeatable)",
    )
    parser.add_argument(
        "--data-dir",
        type=str,
        default=None,
        help="Output directory for JSON files",
    )
    parser.add_argument(
        "--no-landing-page",
        action="store_true",
        help="Do not regenerate index.html",
    )
    return parser


def main(argv=None) -> None:
    """Parse arguments, run the collection and exit with its status."""
    args = build_parser().parse_args(argv)

    try:
        config = load_config(args.config)
        devices = load_devices(config)
        settings = Settings()
    except (OSError, yaml.YAMLError, ValueError, ValidationError) as exc:
        print(f"Error loading config: {exc}", file=sys.stderr)
        sys.exit(1)

    setup_logging(config.get("logging"))

    if args.device:
        wanted = set(args.device)
        devices = [d for d in devices if d.id in wanted]
        if not devices:
            logger.error("None of the requested devices are configured: %s", ", ".join(args.device))
            sys.exit(1)

    days = args.days if args.days is not None else settings.days_to_fetch
    data_dir = args.data_dir or settings.data_dir

    started = time.monotonic()
    logger.info("=" * 60)
    logger.info("Telraam Data Collector")
    logger.info("Start time: %s", utc_now_iso())
    logger.info("Devices to process: %d", len(devices))
    logger.info("Days to fetch: %d", days)
    logger.info("=" * 60)

    try:
        client = TelraamClient(
            api_url=settings.api_url,
            api_key=settings.api_key,
            timeout_sec=settings.request_timeout_sec,
            max_retries=settings.max_retries,
            initial_backoff_sec=settings.initial_backoff_sec,
            max_backoff_sec=settings.max_backoff_sec,
        )
        collector = DataCollector(
            client=client,
            store=PersistenceStore(data_dir),
            devices=devices,
            days_to_fetch=days,
            write_landing_page=not args.no_landing_page,
        )
        summary = collector.collect_all_devices()
    except CollectionError as exc:
        logger.error("COLLECTION FAILED: %s", exc)
        sys.exit(1)
    except (StorageError, ValueError) as exc:
        logger.error("COLLECTION FAILED: %s", exc, exc_info=True)
        sys.exit(1)

    logger.info("=" * 60)
    logger.info("Collection completed successfully!")
    logger.info("Duration: %s", format_duration(time.monotonic() - started))
    logger.info("Total data points: %d", summary.total_data_points)
    logger.info("=" * 60)
    sys.exit(0)


if __name__ == "__main__":
    main()
