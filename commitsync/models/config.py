"""Configuration models for the commit sync engine."""

from typing import Literal

from pydantic import BaseModel, Field, HttpUrl
from pydantic_settings import BaseSettings, SettingsConfigDict


class SourceConfig(BaseModel):
    """Configuration for the remote commit source."""

    base_url: HttpUrl = Field(
        default="https://api.github.com", description="Base URL of the remote API"
    )
    repository: str = Field(
        default="apple/swift",
        pattern=r"^[^/\s]+/[^/\s]+$",
        description="Repository in owner/name form",
    )
    per_page: int = Field(default=100, ge=1, le=100, description="Page size cap for one fetch")
    timeout_seconds: float = Field(
        default=30.0, gt=0.0, le=300.0, description="HTTP timeout for the fetch"
    )
    max_retries: int = Field(
        default=0, ge=0, le=5, description="Retries for transport errors before giving up"
    )
    user_agent: str = Field(default="commitsync/0.1", description="User-Agent header value")


class StoreConfig(BaseModel):
    """Configuration for the local record store."""

    url: str = Field(
        default="sqlite:///commits.sqlite", description="SQLAlchemy database URL"
    )
    echo: bool = Field(default=False, description="Echo SQL statements (debugging)")


class SyncConfig(BaseModel):
    """Configuration for sync cycles and merge behavior."""

    watermark_epsilon_seconds: float = Field(
        default=1.0,
        gt=0.0,
        description="Added to the newest stored commit date to form the next fetch bound",
    )
    merge_policy: Literal["incoming_wins", "reject_conflicts"] = Field(
        default="incoming_wins", description="Conflict policy for re-ingested commits"
    )
    author_email_policy: Literal["keep_existing", "prefer_incoming"] = Field(
        default="keep_existing",
        description="What to do with a different email for an already known author name",
    )


class ViewConfig(BaseModel):
    """Default presentation of the commit view."""

    sort_key: Literal["author_name", "date"] = Field(
        default="author_name", description="Row ordering"
    )
    section_key: Literal["author_name"] | None = Field(
        default="author_name", description="Grouping key, None for a single section"
    )
    filter_preset: str = Field(default="all", description="Named filter preset")


class LoggingConfig(BaseModel):
    """Configuration for logging."""

    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)",
    )
    json_logs: bool = Field(
        default=True,
        description="If True, output JSON logs. If False, use console format.",
    )
    log_file: str | None = Field(
        default=None,
        description="Optional path to log file. If None, logs only to stdout.",
    )


class AppConfig(BaseSettings):
    """Main application configuration.

    This class uses pydantic-settings to load configuration from environment
    variables with the APP_ prefix.
    """

    model_config = SettingsConfigDict(
        env_prefix="APP_",
        env_nested_delimiter="__",
        case_sensitive=False,
    )

    source: SourceConfig = Field(default_factory=SourceConfig)
    store: StoreConfig = Field(default_factory=StoreConfig)
    sync: SyncConfig = Field(default_factory=SyncConfig)
    view: ViewConfig = Field(default_factory=ViewConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
