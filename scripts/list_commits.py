#!/usr/bin/env python3
"""
Print the stored commits as a filtered, sorted and sectioned listing.

Usage:
    python scripts/list_commits.py [--config PATH] [--filter PRESET]
                                   [--sort {author_name,date}] [--flat]
                                   [--delete SHA]
"""

import argparse
import sys

import structlog

from commitsync.exceptions import StoreError
from commitsync.providers import get_query_view, get_record_store
from commitsync.query.query_view import QueryView
from commitsync.storage.predicates import FILTER_PRESETS, SortKey, preset
from commitsync.utils.config_loader import ConfigLoader, ConfigurationError
from commitsync.utils.logging_config import configure_logging_from_config

log = structlog.stdlib.get_logger()


def render(view: QueryView) -> None:
    snapshot = view.snapshot
    predicate = view.predicate
    print(f"Filter: {predicate.describe() if predicate else 'all commits'}")
    print(f"{len(snapshot)} commits")

    for section in snapshot.sections:
        if section.label is not None:
            print(f"\n== {section.label} ({len(section.commits)})")
        for commit in section.commits:
            first_line = commit.message.splitlines()[0] if commit.message else ""
            print(f"  {commit.sha[:10]}  {first_line}")
            print(f"              {commit.summary}")


def main() -> int:
    parser = argparse.ArgumentParser(description="List stored commits")
    parser.add_argument("--config", type=str, default=None, help="Path to configuration file")
    parser.add_argument(
        "--filter",
        choices=sorted(FILTER_PRESETS),
        default=None,
        help="Filter preset (defaults to view.filter_preset)",
    )
    parser.add_argument(
        "--sort",
        choices=[key.value for key in SortKey],
        default=None,
        help="Sort order (defaults to view.sort_key)",
    )
    parser.add_argument("--flat", action="store_true", help="Do not group by author")
    parser.add_argument("--delete", metavar="SHA", default=None, help="Delete a commit first")

    args = parser.parse_args()

    try:
        config = ConfigLoader().load_config(args.config)
    except ConfigurationError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return 2
    configure_logging_from_config(config.logging)

    store = get_record_store(config)
    try:
        view = get_query_view(config, store)
        if args.filter is not None:
            view.set_predicate(preset(args.filter))
        if args.sort is not None:
            view.set_sort_key(SortKey(args.sort))
        if args.flat:
            view.set_section_key(None)
        view.refresh()

        if args.delete:
            view.attach()
            store.delete_commit(args.delete)
            print(f"Deleted {args.delete}")

        render(view)
    except StoreError as e:
        print(f"Store error: {e}", file=sys.stderr)
        return 1
    finally:
        store.close()

    return 0


if __name__ == "__main__":
    sys.exit(main())
