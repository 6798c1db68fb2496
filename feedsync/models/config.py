"""Configuration models for the feed synchronization engine."""

from pathlib import Path

from pydantic import BaseModel, Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class PathsConfig(BaseModel):
    """Locations of the resource list, the mirrored feeds and the state files."""

    resource_list_file: Path = Field(
        default=Path("public/csv-urls.csv"),
        description="Newline-delimited list of feed URLs",
    )
    data_dir: Path = Field(
        default=Path("public/price-guide"), description="Directory holding the mirrored feeds"
    )
    cache_file: Path | None = Field(
        default=None, description="Diff cache file (defaults to <data_dir>/diff-cache.json)"
    )
    manifest_file: Path | None = Field(
        default=None, description="Manifest file (defaults to <data_dir>/manifest.json)"
    )
    run_clock_file: Path | None = Field(
        default=None, description="Run clock file (defaults to <data_dir>/last-update.json)"
    )

    @model_validator(mode="after")
    def default_state_files(self) -> "PathsConfig":
        """Place state files inside the data directory unless set explicitly."""
        if self.cache_file is None:
            self.cache_file = self.data_dir / "diff-cache.json"
        if self.manifest_file is None:
            self.manifest_file = self.data_dir / "manifest.json"
        if self.run_clock_file is None:
            self.run_clock_file = self.data_dir / "last-update.json"
        return self


class NetworkConfig(BaseModel):
    """Configuration for remote probing and downloading."""

    probe_timeout_seconds: float = Field(
        default=10.0, gt=0, description="Timeout for the metadata (HEAD) request"
    )
    fetch_timeout_seconds: float = Field(
        default=30.0, gt=0, description="Total time budget for downloading one feed"
    )
    max_workers: int = Field(
        default=1, ge=1, le=5, description="Number of feeds processed concurrently"
    )
    user_agent: str = Field(default="feedsync/1.0", description="User-Agent header value")


class SanitizerConfig(BaseModel):
    """Configuration for CSV sanitizing."""

    disallowed_fields: list[str] = Field(
        default_factory=lambda: ["extDescription"],
        description="Columns removed from every row of every feed",
    )
    delimiter: str = Field(default=",", min_length=1, max_length=1, description="CSV delimiter")


class StalenessConfig(BaseModel):
    """Configuration for the whole-dataset freshness gate."""

    freshness_window_hours: float = Field(
        default=24.0, ge=0, description="Skip runs entirely within this window of the last run"
    )


class DiscoveryConfig(BaseModel):
    """Optional upstream endpoints used to discover feeds and publication times."""

    products_sheet_url: str | None = Field(
        default=None, description="CSV sheet with a 'url' column listing the feeds"
    )
    remote_timestamp_url: str | None = Field(
        default=None, description="Plain-text marker holding the publisher's last update time"
    )


class LoggingConfig(BaseModel):
    """Configuration for logging."""

    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)",
    )
    json_logs: bool = Field(
        default=False,
        description="If True, output JSON logs. If False, use console format.",
    )
    log_file: str | None = Field(
        default=None,
        description="Optional path to log file. If None, logs only to stdout.",
    )


class AppConfig(BaseSettings):
    """Main application configuration.

    This class uses pydantic-settings to load configuration from environment
    variables with the FEEDSYNC_ prefix.
    """

    model_config = SettingsConfigDict(
        env_prefix="FEEDSYNC_",
        env_nested_delimiter="__",
        case_sensitive=False,
    )

    paths: PathsConfig = Field(default_factory=PathsConfig)
    network: NetworkConfig = Field(default_factory=NetworkConfig)
    sanitizer: SanitizerConfig = Field(default_factory=SanitizerConfig)
    staleness: StalenessConfig = Field(default_factory=StalenessConfig)
    discovery: DiscoveryConfig = Field(default_factory=DiscoveryConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls,
        init_settings,
        env_settings,
        dotenv_settings,
        file_secret_settings,
    ):
        # FEEDSYNC_* variables take precedence over values read from YAML
        return env_settings, init_settings, dotenv_settings, file_secret_settings
