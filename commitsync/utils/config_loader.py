"""YAML configuration loading with environment variable expansion."""

import os
import re
from pathlib import Path
from typing import Any, Optional

import structlog
import yaml
from pydantic import ValidationError
from sqlalchemy.engine import make_url
from sqlalchemy.exc import ArgumentError

from commitsync.models.config import AppConfig

log = structlog.stdlib.get_logger()

DEFAULT_CONFIG_DIR = Path(__file__).resolve().parents[2] / "config"

# ${NAME} or ${NAME:-fallback}
ENV_REFERENCE = re.compile(r"\$\{(?P<name>[^}:]+)(?::-(?P<fallback>[^}]*))?\}")


class ConfigurationError(Exception):
    """Raised when a configuration file is missing, unreadable or invalid."""


class ConfigLoader:
    """Builds an AppConfig from ``config/<APP_ENV>.yaml``.

    String values may reference environment variables as ``${NAME}`` or
    ``${NAME:-fallback}``. A reference without a fallback to an unset
    variable is an error naming that variable.
    """

    def __init__(self, config_dir: Optional[Path] = None) -> None:
        self.config_dir = Path(config_dir) if config_dir else DEFAULT_CONFIG_DIR

    def load_config(self, config_path: Optional[str] = None) -> AppConfig:
        """
        Read, expand and validate a configuration file.

        Args:
            config_path: Explicit YAML file. When None, ``$APP_ENV.yaml`` in
                the config directory is used, then ``default.yaml``.

        Returns:
            AppConfig built from the file; unset sections keep their defaults

        Raises:
            ConfigurationError: If the file is missing, malformed or fails validation
        """
        path = Path(config_path) if config_path else self._resolve_path()
        log.info("config_loading", config_path=str(path))

        raw = self._expand(self._read_mapping(path))

        try:
            config = AppConfig(**raw)
        except ValidationError as e:
            log.error("config_invalid", config_path=str(path), error=str(e))
            raise ConfigurationError(f"Configuration validation failed for {path}: {e}") from e

        log.info(
            "config_loaded",
            repository=config.source.repository,
            merge_policy=config.sync.merge_policy,
        )
        return config

    def _resolve_path(self) -> Path:
        environment = os.getenv("APP_ENV", "default")
        for candidate in (f"{environment}.yaml", "default.yaml"):
            path = self.config_dir / candidate
            if path.exists():
                return path

        raise ConfigurationError(
            f"No configuration found in {self.config_dir}: "
            f"expected {environment}.yaml or default.yaml"
        )

    def _read_mapping(self, path: Path) -> dict[str, Any]:
        try:
            content = yaml.safe_load(path.read_text())
        except FileNotFoundError as e:
            raise ConfigurationError(f"Configuration file not found: {path}") from e
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Could not parse YAML in {path}: {e}") from e
        except OSError as e:
            raise ConfigurationError(f"Could not read {path}: {e}") from e

        if content is None:
            raise ConfigurationError(f"Configuration file is empty: {path}")
        if not isinstance(content, dict):
            raise ConfigurationError(
                f"Configuration file must contain a mapping, got {type(content).__name__}: {path}"
            )
        return content

    def _expand(self, value: Any) -> Any:
        """Replace environment references in every string of a parsed YAML tree."""
        if isinstance(value, dict):
            return {key: self._expand(item) for key, item in value.items()}
        if isinstance(value, list):
            return [self._expand(item) for item in value]
        if isinstance(value, str):
            return ENV_REFERENCE.sub(self._lookup, value)
        return value

    @staticmethod
    def _lookup(match: re.Match) -> str:
        name, fallback = match.group("name"), match.group("fallback")
        value = os.environ.get(name, fallback)
        if value is None:
            raise ConfigurationError(
                f"Environment variable {name} is referenced by the configuration but not set"
            )
        return value

    @staticmethod
    def _is_database_url(url: str) -> bool:
        try:
            make_url(url)
        except ArgumentError:
            return False
        return True

    def validate_config(self, config: AppConfig) -> list[str]:
        """
        Return warnings for settings that are valid but likely unintended.

        Field-level rules are enforced by the models; this looks at
        combinations and values that lose data or slow syncing down.
        """
        warnings = []

        if not self._is_database_url(config.store.url):
            warnings.append(f"store.url '{config.store.url}' is not a valid database URL")
        else:
            url = make_url(config.store.url)
            if url.get_backend_name() == "sqlite" and url.database in (None, "", ":memory:"):
                warnings.append(
                    "store.url points at an in-memory SQLite database; "
                    "synced commits will not survive the process"
                )

        if config.source.per_page < 100:
            warnings.append(
                f"source.per_page ({config.source.per_page}) is below 100; "
                f"fewer new commits are picked up per sync cycle"
            )

        if config.sync.merge_policy == "reject_conflicts":
            warnings.append(
                "sync.merge_policy is 'reject_conflicts'; re-ingested commits with "
                "changed fields will be skipped instead of updated"
            )

        for warning in warnings:
            log.warning("config_warning", warning=warning)

        return warnings
