"""Centralized provider module for the store engine, remote client and sync engine.

This module provides factory functions that turn an ``AppConfig`` into wired
components. Scripts and tests build everything through here so swapping an
implementation only touches this file.

Default implementations:
- Database: SQLite through SQLAlchemy (file path from ``store.url``)
- Remote source: GitHub REST API commits endpoint
"""

from datetime import timedelta

import structlog
from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.exc import ArgumentError

from commitsync.ingestion.github_client import GitHubClient
from commitsync.models.config import AppConfig, SourceConfig, StoreConfig
from commitsync.query.query_view import QueryView, SectionKey
from commitsync.storage.merge_policy import get_merge_policy
from commitsync.storage.predicates import SortKey, preset
from commitsync.storage.record_store import RecordStore
from commitsync.sync.identity_resolver import AuthorEmailPolicy
from commitsync.sync.sync_engine import SyncEngine
from commitsync.sync.watermark import WatermarkTracker

log = structlog.stdlib.get_logger()


def _casefold(value: str | None) -> str | None:
    return value.casefold() if value is not None else None


def _configure_sqlite_connection(dbapi_connection, connection_record) -> None:
    # SQLite's lower() folds ASCII only; casefold() backs MessageContains
    dbapi_connection.create_function("casefold", 1, _casefold, deterministic=True)
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def get_engine(config: StoreConfig) -> Engine:
    """Create the SQLAlchemy engine for the record store.

    SQLite connections get foreign key enforcement and a Unicode
    ``casefold`` SQL function, and may be used from worker threads.

    Raises:
        ValueError: If the URL is empty or malformed
    """
    if not config.url or not config.url.strip():
        error_msg = "store.url cannot be empty"
        log.error("get_engine_failed", error=error_msg)
        raise ValueError(error_msg)

    try:
        is_sqlite = config.url.startswith("sqlite")
        engine = create_engine(
            config.url,
            echo=config.echo,
            connect_args={"check_same_thread": False} if is_sqlite else {},
        )
    except ArgumentError as e:
        log.error("get_engine_failed", url=config.url, error=str(e))
        raise ValueError(f"Invalid store.url '{config.url}': {e}") from e

    if is_sqlite:
        event.listen(engine, "connect", _configure_sqlite_connection)

    log.info("engine_created", backend=engine.url.get_backend_name())
    return engine


def get_record_store(config: AppConfig, engine: Engine | None = None) -> RecordStore:
    """Create the record store with the configured merge policy."""
    return RecordStore(
        engine or get_engine(config.store),
        merge_policy=get_merge_policy(config.sync.merge_policy),
    )


def get_client(config: SourceConfig) -> GitHubClient:
    """Create the remote source client."""
    return GitHubClient(
        base_url=str(config.base_url),
        repository=config.repository,
        per_page=config.per_page,
        timeout_seconds=config.timeout_seconds,
        max_retries=config.max_retries,
        user_agent=config.user_agent,
    )


def get_sync_engine(
    config: AppConfig,
    store: RecordStore,
    client: GitHubClient | None = None,
) -> SyncEngine:
    """Wire a sync engine around an existing store."""
    return SyncEngine(
        store=store,
        client=client or get_client(config.source),
        watermark_tracker=WatermarkTracker(
            store, epsilon=timedelta(seconds=config.sync.watermark_epsilon_seconds)
        ),
        email_policy=AuthorEmailPolicy(config.sync.author_email_policy),
    )


def get_query_view(config: AppConfig, store: RecordStore) -> QueryView:
    """Create a view using the configured sort, sections and filter preset."""
    section_key = config.view.section_key
    return QueryView(
        store,
        predicate=preset(config.view.filter_preset),
        sort_key=SortKey(config.view.sort_key),
        section_key=SectionKey(section_key) if section_key else None,
    )
