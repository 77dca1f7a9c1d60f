#!/usr/bin/env python3
"""
Synchronization script for the local commit store.

This script runs one incremental sync cycle:
- Computes the fetch watermark from the newest stored commit
- Fetches one page of newer commits from the remote source
- Deduplicates authors and merges commits into the store in one transaction

Designed to be run on a schedule (e.g., via cron).

Usage:
    python scripts/sync_commits.py [--config CONFIG_PATH] [--async]
"""

import argparse
import asyncio
import sys

import structlog

from commitsync.providers import get_record_store, get_sync_engine
from commitsync.sync.models import SyncReport
from commitsync.utils.config_loader import ConfigLoader, ConfigurationError
from commitsync.utils.logging_config import configure_logging_from_config

log = structlog.stdlib.get_logger()


def perform_sync(config_path: str | None = None, use_async: bool = False) -> SyncReport:
    """
    Load configuration, wire the components and run one sync cycle.

    Args:
        config_path: Optional path to configuration file
        use_async: Run the fetch in a worker thread under asyncio

    Returns:
        SyncReport for the cycle

    Raises:
        ConfigurationError: If the configuration cannot be loaded
    """
    config_loader = ConfigLoader()
    config = config_loader.load_config(config_path)
    configure_logging_from_config(config.logging)
    config_loader.validate_config(config)

    store = get_record_store(config)
    engine = get_sync_engine(config, store)

    try:
        if use_async:
            return asyncio.run(engine.sync_async())
        return engine.sync()
    finally:
        store.close()


def print_summary(report: SyncReport) -> None:
    print("\n" + "=" * 60)
    print("SYNCHRONIZATION SUMMARY")
    print("=" * 60)
    print(f"Repository: {report.repository}")
    print(f"Since: {report.since.isoformat() if report.since else 'n/a'}")

    if report.success:
        print("Status: ✓ SUCCESS")
        print(f"Commits Fetched: {report.commits_fetched}")
        print(f"Commits Added: {report.commits_added}")
        print(f"Commits Updated: {report.commits_updated}")
        print(f"Authors Created: {report.authors_created}")
        print(f"Records Skipped: {report.records_skipped}")
        if report.warnings:
            print(f"Warnings: {len(report.warnings)}")
    else:
        print("Status: ✗ FAILED")
        for error in report.errors:
            print(f"Error: {error}")

    print(f"Duration: {report.duration_seconds:.2f} seconds")
    print("=" * 60)


def main() -> int:
    """Main entry point for the sync script."""
    parser = argparse.ArgumentParser(description="Sync remote commits into the local store")
    parser.add_argument(
        "--config",
        type=str,
        help="Path to configuration file",
        default=None,
    )
    parser.add_argument(
        "--async",
        dest="use_async",
        action="store_true",
        help="Fetch in a worker thread under asyncio",
    )

    args = parser.parse_args()

    try:
        report = perform_sync(config_path=args.config, use_async=args.use_async)
    except ConfigurationError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return 2

    print_summary(report)
    return 0 if report.success else 1


if __name__ == "__main__":
    sys.exit(main())
