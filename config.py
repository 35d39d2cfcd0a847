"""Configuration management for the PersonalLM aggregator.

This module provides centralized configuration for every component.
All settings are loaded from environment variables with sensible defaults.
A ``.env`` file in the working directory is honoured (see main.py).

Environment Variables:
    Required:
        GEMINI_API_KEY: Google Gemini API key for the summarizer

    Summarizer (PydanticAI format - provider:model):
        SUMMARY_MODEL: Model used to summarize each cycle
        LLM_PROMPT: Base prompt sent with every cycle's context

    Scheduling:
        INTERVAL_MINUTES: Delay between cycles in continuous mode
        SHUTDOWN_GRACE_SECONDS: Delay between a shutdown signal and exit

    Output:
        OUTPUT_DIR: Base directory for daily CSV files and context snapshots
        WEB_CONTENT_DIR: Directory for per-cycle markdown files

    Sources:
        ENABLE_HEALTH, ENABLE_TRANSCRIPTS, ENABLE_SCREEN_TIME,
        ENABLE_MAIL, ENABLE_CALENDAR, ENABLE_IMESSAGE: Opt-in source flags
        HEALTH_DATA_DIR: Directory with HealthAutoExport-YYYY-MM-DD.json files
        TRANSCRIPTS_DB_PATH: SQLite database with a transcripts table
        SCREEN_TIME_DB_PATH: Screen Time Core Data store
        IMESSAGE_DB_PATH: Messages chat.db
        IMESSAGE_CHATS: Comma-separated chat identifiers to read
        LATITUDE, LONGITUDE: Weather forecast location
        RSS_FEEDS, INCLUDE_HN, SUBREDDITS, NUM_TOP_POSTS: News settings
        HTTP_TIMEOUT_SECONDS: Timeout for remote API calls
        COMMAND_TIMEOUT_SECONDS: Timeout for local subprocess calls

    Optional Features:
        ENABLE_LOGFIRE: Enable Logfire/OpenTelemetry tracing

    Logging:
        LOG_LEVEL: Logging verbosity (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        LOG_BACKUP_COUNT: Number of rotated log files to keep
        LOG_MAX_BYTES: Max log file size in bytes (0 = time-based rotation)
        LOG_FORMAT: Log format ('text' or 'json' for structured logging)
"""

import os
from dataclasses import dataclass, field
from pathlib import Path


def _env(key: str, default: str = "") -> str:
    """Get string environment variable with optional default.

    Args:
        key: Environment variable name
        default: Value to return if not set

    Returns:
        Environment variable value or default
    """
    return os.environ.get(key, default)


def _env_int(key: str, default: int) -> int:
    """Get integer environment variable with default.

    Raises:
        ValueError: If value is set but cannot be parsed as integer
    """
    val = os.environ.get(key)
    if not val:
        return default
    try:
        return int(val)
    except ValueError:
        raise ValueError(f"Invalid integer value for {key}: '{val}'")


def _env_float(key: str, default: float) -> float:
    """Get float environment variable with default.

    Raises:
        ValueError: If value is set but cannot be parsed as float
    """
    val = os.environ.get(key)
    if not val:
        return default
    try:
        return float(val)
    except ValueError:
        raise ValueError(f"Invalid float value for {key}: '{val}'")


def _env_bool(key: str, default: bool = False) -> bool:
    """Get boolean environment variable with default.

    Recognizes truthy values: '1', 'true', 'yes', 'on'
    Recognizes falsy values: '0', 'false', 'no', 'off'
    """
    val = os.environ.get(key, "").lower()
    if val in ("1", "true", "yes", "on"):
        return True
    if val in ("0", "false", "no", "off"):
        return False
    return default


def _env_list(key: str, default: list[str]) -> list[str]:
    """Get comma-separated list environment variable with default."""
    val = os.environ.get(key)
    if not val:
        return list(default)
    return [item.strip() for item in val.split(",") if item.strip()]


def _env_path(key: str) -> Path | None:
    val = os.environ.get(key)
    return Path(val).expanduser() if val else None


DEFAULT_PROMPT = """\
You are a helpful assistant writing a light-hearted brief for the day.
- Use **Markdown**.
- Convert each news, Reddit or Hacker News headline in the context into "[title](link)" markdown.
- Bullet points welcome; keep it short; avoid negativity unless it's a joke.
- Mention weather only if it will materially affect plans today.
- If exercise is planned, suggest the best times to go out given the weather and daylight.
- Do not editorialise; write the facts in an informative but engaging way.
- There may be duplicates in the context; do not repeat yourself.
- News is the least important thing, so put it last."""

DEFAULT_RSS_FEEDS = ["https://feeds.bbci.co.uk/news/rss.xml?edition=uk"]
DEFAULT_SUBREDDITS = ["worldnews", "technology", "science", "UpliftingNews"]
DEFAULT_IMESSAGE_CHATS = ["1", "128", "5"]


@dataclass
class Config:
    """Application configuration loaded from environment variables.

    Use Config.load() to create an instance with values from the environment.
    One instance is passed explicitly to the aggregator, the scheduler and
    every source adapter; it is treated as read-only during a cycle.

    Example:
        >>> config = Config.load()
        >>> if error := config.validate():
        ...     print(f"Config error: {error}")
    """

    # === Required ===
    gemini_api_key: str = ""  # GEMINI_API_KEY - Google AI API key

    # === Summarizer ===
    summary_model: str = "google-gla:gemini-2.5-pro"  # SUMMARY_MODEL
    prompt: str = DEFAULT_PROMPT  # LLM_PROMPT

    # === Scheduling ===
    interval_minutes: int = 60  # INTERVAL_MINUTES - Delay between cycles
    shutdown_grace_seconds: float = 1.0  # SHUTDOWN_GRACE_SECONDS

    # === Output Directories ===
    output_dir: Path = field(default_factory=lambda: Path("data"))  # OUTPUT_DIR
    web_content_dir: Path = field(
        default_factory=lambda: Path("web/src/content/summaries")
    )  # WEB_CONTENT_DIR

    # === Source Toggles ===
    enable_health: bool = False
    enable_transcripts: bool = False
    enable_screen_time: bool = False
    enable_mail: bool = False
    enable_calendar: bool = True
    enable_imessage: bool = True

    # === Source Inputs ===
    health_data_dir: Path | None = None
    transcripts_db_path: Path | None = None
    screen_time_db_path: Path | None = None
    imessage_db_path: Path | None = field(
        default_factory=lambda: Path.home() / "Library" / "Messages" / "chat.db"
    )
    imessage_chats: list[str] = field(default_factory=lambda: DEFAULT_IMESSAGE_CHATS.copy())

    # === Weather ===
    latitude: float = 51.503
    longitude: float = -0.1276

    # === News ===
    rss_feeds: list[str] = field(default_factory=lambda: DEFAULT_RSS_FEEDS.copy())
    include_hacker_news: bool = True
    subreddits: list[str] = field(default_factory=lambda: DEFAULT_SUBREDDITS.copy())
    num_top_posts: int = 7

    # === Adapter Timeouts ===
    http_timeout_seconds: int = 30  # HTTP_TIMEOUT_SECONDS
    command_timeout_seconds: float = 3.0  # COMMAND_TIMEOUT_SECONDS - fail fast

    # === Logging Configuration ===
    log_dir: Path = field(default_factory=lambda: Path("log"))  # LOG_DIR
    log_level: str = "INFO"  # LOG_LEVEL - DEBUG, INFO, WARNING, ERROR
    log_backup_count: int = 30  # LOG_BACKUP_COUNT - Number of rotated logs to keep
    log_max_bytes: int = 0  # LOG_MAX_BYTES - Max file size (0 = time-based rotation)
    log_format: str = "text"  # LOG_FORMAT - 'text' or 'json' for structured logging

    # === Optional: Observability ===
    # Requires: pip install logfire
    enable_logfire: bool = False  # ENABLE_LOGFIRE - Enable distributed tracing
    logfire_token: str = ""  # LOGFIRE_TOKEN - Authentication token

    @classmethod
    def load(cls) -> "Config":
        """Load configuration from environment variables."""
        defaults = cls()
        return cls(
            gemini_api_key=_env("GEMINI_API_KEY"),
            summary_model=_env("SUMMARY_MODEL", defaults.summary_model),
            prompt=_env("LLM_PROMPT", DEFAULT_PROMPT),
            interval_minutes=_env_int("INTERVAL_MINUTES", 60),
            shutdown_grace_seconds=_env_float("SHUTDOWN_GRACE_SECONDS", 1.0),
            output_dir=Path(_env("OUTPUT_DIR", "data")).expanduser(),
            web_content_dir=Path(_env("WEB_CONTENT_DIR", "web/src/content/summaries")).expanduser(),
            enable_health=_env_bool("ENABLE_HEALTH", False),
            enable_transcripts=_env_bool("ENABLE_TRANSCRIPTS", False),
            enable_screen_time=_env_bool("ENABLE_SCREEN_TIME", False),
            enable_mail=_env_bool("ENABLE_MAIL", False),
            enable_calendar=_env_bool("ENABLE_CALENDAR", True),
            enable_imessage=_env_bool("ENABLE_IMESSAGE", True),
            health_data_dir=_env_path("HEALTH_DATA_DIR"),
            transcripts_db_path=_env_path("TRANSCRIPTS_DB_PATH"),
            screen_time_db_path=_env_path("SCREEN_TIME_DB_PATH"),
            imessage_db_path=_env_path("IMESSAGE_DB_PATH") or defaults.imessage_db_path,
            imessage_chats=_env_list("IMESSAGE_CHATS", DEFAULT_IMESSAGE_CHATS),
            latitude=_env_float("LATITUDE", 51.503),
            longitude=_env_float("LONGITUDE", -0.1276),
            rss_feeds=_env_list("RSS_FEEDS", DEFAULT_RSS_FEEDS),
            include_hacker_news=_env_bool("INCLUDE_HN", True),
            subreddits=_env_list("SUBREDDITS", DEFAULT_SUBREDDITS),
            num_top_posts=_env_int("NUM_TOP_POSTS", 7),
            http_timeout_seconds=_env_int("HTTP_TIMEOUT_SECONDS", 30),
            command_timeout_seconds=_env_float("COMMAND_TIMEOUT_SECONDS", 3.0),
            log_dir=Path(_env("LOG_DIR", "log")),
            log_level=_env("LOG_LEVEL", "INFO").upper(),
            log_backup_count=_env_int("LOG_BACKUP_COUNT", 30),
            log_max_bytes=_env_int("LOG_MAX_BYTES", 0),
            log_format=_env("LOG_FORMAT", "text").lower(),
            enable_logfire=_env_bool("ENABLE_LOGFIRE", False),
            logfire_token=_env("LOGFIRE_TOKEN"),
        )

    @property
    def interval_seconds(self) -> float:
        return self.interval_minutes * 60

    def enabled_sources(self) -> list[str]:
        """Names of the opt-in sources switched on, for startup logging."""
        flags = {
            "health": self.enable_health,
            "meetings": self.enable_transcripts,
            "screen_time": self.enable_screen_time,
            "mail": self.enable_mail,
            "calendar": self.enable_calendar,
            "imessage": self.enable_imessage,
        }
        return [name for name, enabled in flags.items() if enabled]

    def missing_paths(self) -> list[str]:
        """Configured source paths that do not exist on disk.

        These are warnings, not errors: the adapter degrades to empty content.
        """
        checks = [
            ("HEALTH_DATA_DIR", self.enable_health, self.health_data_dir),
            ("TRANSCRIPTS_DB_PATH", self.enable_transcripts, self.transcripts_db_path),
            ("SCREEN_TIME_DB_PATH", self.enable_screen_time, self.screen_time_db_path),
            ("IMESSAGE_DB_PATH", self.enable_imessage, self.imessage_db_path),
        ]
        return [name for name, enabled, path in checks if enabled and path and not path.exists()]

    def validate(self) -> str | None:
        """Validate configuration for required fields and valid values.

        Checks:
            - GEMINI_API_KEY is set
            - Numeric values are positive
            - Every enabled path-backed source has a path
            - Logging settings are recognised

        Returns:
            Error message string if invalid, None if valid.
        """
        if not self.gemini_api_key:
            return "GEMINI_API_KEY environment variable is required"
        if not self.summary_model:
            return "SUMMARY_MODEL must not be empty"
        if self.interval_minutes <= 0:
            return "INTERVAL_MINUTES must be positive"
        if self.shutdown_grace_seconds < 0:
            return "SHUTDOWN_GRACE_SECONDS must be non-negative"
        if self.num_top_posts < 0:
            return "NUM_TOP_POSTS must be non-negative"
        if self.http_timeout_seconds <= 0 or self.command_timeout_seconds <= 0:
            return "Adapter timeouts must be positive"
        if self.enable_health and not self.health_data_dir:
            return "ENABLE_HEALTH is set but HEALTH_DATA_DIR is missing"
        if self.enable_transcripts and not self.transcripts_db_path:
            return "ENABLE_TRANSCRIPTS is set but TRANSCRIPTS_DB_PATH is missing"
        if self.enable_screen_time and not self.screen_time_db_path:
            return "ENABLE_SCREEN_TIME is set but SCREEN_TIME_DB_PATH is missing"
        if self.enable_imessage and not self.imessage_db_path:
            return "ENABLE_IMESSAGE is set but IMESSAGE_DB_PATH is missing"
        if self.log_level not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            return f"Invalid LOG_LEVEL '{self.log_level}' - must be DEBUG, INFO, WARNING, ERROR, or CRITICAL"
        if self.log_format not in ("text", "json"):
            return f"Invalid LOG_FORMAT '{self.log_format}' - must be 'text' or 'json'"
        if self.log_backup_count < 0:
            return "LOG_BACKUP_COUNT must be non-negative"
        if self.log_max_bytes < 0:
            return "LOG_MAX_BYTES must be non-negative"
        return None
