"""Configuration management using Pydantic Settings."""

import logging
from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)

DEFAULT_TITLE_PROMPT = (
    "You are a professional note title generation assistant. Please generate a concise and "
    "highly descriptive title based on the provided note content, tags, and time information. "
    "The title should not contain special characters or quotation marks, and its length should "
    "be limited to 15 words or less."
)


class ServerConfig(BaseSettings):
    """Connection settings for the Blinko server.

    Attributes:
        url: API base URL, e.g. https://blinko.example.com/api/v1
        access_token: Bearer token used for every request
    """

    url: str = ""
    access_token: str = ""

    @field_validator("url", mode="before")
    @classmethod
    def validate_url(cls, v: str | None) -> str:
        """Validate server URL format."""
        v = (v or "").strip()
        if v and not v.startswith(("http://", "https://")):
            raise ValueError("Blinko server URL must start with http:// or https://")
        return v.rstrip("/")

    @property
    def is_configured(self) -> bool:
        return bool(self.url and self.access_token)


class VaultConfig(BaseSettings):
    """Layout of the local Markdown mirror."""

    root: Path = Field(default_factory=lambda: Path.home() / "BlinkoVault")
    note_folder: str = "Blinko/Notes"
    note_path_template: str = "{{typeFolder}}/blinko-{{id}}"
    attachment_folder: str = "Blinko/Attachments"
    include_frontmatter_tags: bool = True

    @field_validator("root", mode="before")
    @classmethod
    def expand_root(cls, v: str | Path) -> Path:
        """Expand user home directory in the vault path."""
        return Path(v).expanduser().resolve()


class SyncConfig(BaseSettings):
    """Scheduling and pruning behaviour."""

    # Minutes between automatic syncs in watch mode, 0 disables
    auto_sync_interval: int = 30
    delete_check_enabled: bool = False
    delete_check_interval: int = 120
    delete_recycled: bool = False

    @field_validator("auto_sync_interval", "delete_check_interval", mode="before")
    @classmethod
    def clamp_interval(cls, v: int | str) -> int:
        """Negative intervals mean disabled."""
        return max(0, int(v))


class TitleConfig(BaseSettings):
    """OpenAI-compatible title generation for notes without a title."""

    enabled: bool = False
    base_url: str = "https://api.openai.com/v1"
    api_key: str = ""
    model: str = "gpt-5.1-mini"
    system_prompt: str = DEFAULT_TITLE_PROMPT
    concurrency: int = 3
    max_tokens: int = 50

    @field_validator("concurrency", mode="before")
    @classmethod
    def validate_concurrency(cls, v: int | str) -> int:
        """0 means the default of 3; anything else is floored at 1."""
        return max(1, int(v or 3))


class JournalConfig(BaseSettings):
    """Daily note embedding of newly synced flash notes."""

    enabled: bool = False
    location: str = "/"
    date_format: str = "YYYY-MM-DD"
    insert_after: str = "<!-- start of flash-notes -->"
    insert_before: str = "<!-- end of flash-notes -->"
    embed_content: bool = False


class GeneralConfig(BaseSettings):
    """General application configuration."""

    log_level: str = "INFO"
    debug: bool = False
    data_dir: Path = Field(
        default_factory=lambda: Path.home() / ".blinkosync"
    )
    log_file_name: str = "blinkosync.log"
    log_file_max_bytes: int = 5 * 1024 * 1024
    log_file_backup_count: int = 3
    # Runtime metadata - not serialized to config file
    config_file: Path | None = Field(default=None, exclude=True)

    @field_validator("log_level", mode="before")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level."""
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        v = v.upper()
        if v not in valid_levels:
            raise ValueError(f"Log level must be one of: {', '.join(valid_levels)}")
        return v

    @field_validator("data_dir", mode="before")
    @classmethod
    def expand_data_dir(cls, v: str | Path) -> Path:
        """Expand user home directory in data directory path."""
        return Path(v).expanduser().resolve()


class AppConfig(BaseSettings):
    """Main application configuration."""

    model_config = SettingsConfigDict(
        env_prefix="BLINKOSYNC_",
        env_nested_delimiter="__",
        case_sensitive=False,
    )

    general: GeneralConfig = Field(default_factory=GeneralConfig)
    server: ServerConfig = Field(default_factory=ServerConfig)
    vault: VaultConfig = Field(default_factory=VaultConfig)
    sync: SyncConfig = Field(default_factory=SyncConfig)
    titles: TitleConfig = Field(default_factory=TitleConfig)
    journal: JournalConfig = Field(default_factory=JournalConfig)

    @classmethod
    def load_from_file(cls, config_path: Path) -> "AppConfig":
        """
        Read a TOML config file; a missing file yields the defaults.

        Values from the file override environment variables, which override
        the defaults.
        """
        if not config_path.exists():
            logger.info(f"No config file at {config_path}, using defaults")
            return cls()

        import tomllib

        with config_path.open("rb") as f:
            return cls(**tomllib.load(f))

    def save_to_file(self, config_path: Path) -> None:
        """Write every section to TOML; secrets included, so keep the file private."""
        import tomli_w

        config_path.parent.mkdir(parents=True, exist_ok=True)
        with config_path.open("wb") as f:
            # mode="json" turns paths into strings tomli_w can write
            tomli_w.dump(self.model_dump(mode="json", exclude_none=True), f)
        logger.info(f"Wrote config to {config_path}")

    def ensure_data_dir(self) -> None:
        self.general.data_dir.mkdir(parents=True, exist_ok=True)

    @property
    def state_db_path(self) -> Path:
        """Cursor and attachment manifest database."""
        return self.general.data_dir / "blinkosync.db"

    @property
    def default_config_path(self) -> Path:
        return self.general.data_dir / "config.toml"


def load_config(config_path: Path | None = None) -> AppConfig:
    """
    Build the app config for one CLI invocation.

    Without an explicit path the config file is looked up in the data
    directory, which itself may come from ``BLINKOSYNC_GENERAL__DATA_DIR``.
    """
    if config_path is None:
        config_path = AppConfig().default_config_path

    config = AppConfig.load_from_file(config_path)
    config.general.config_file = config_path
    config.ensure_data_dir()
    logger.debug(f"Data directory: {config.general.data_dir}")
    return config
