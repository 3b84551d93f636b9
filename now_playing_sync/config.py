from pathlib import Path

from pydantic import Field, ValidationError, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from now_playing_sync.exceptions import ConfigError
from now_playing_sync.logging_config import get_logger, log_with_context

logger = get_logger(__name__)

BASE_DIR = Path(__file__).resolve().parent.parent  # now-playing-sync/


class Settings(BaseSettings):
    """Application settings with validation.

    Credentials and the Discord channel are required; a missing value raises
    a validation error which `load_settings()` turns into a ConfigError.
    Polling cadence values are tunables with conservative defaults.
    """

    # API server settings
    api_host: str = Field(default="127.0.0.1", min_length=1, description="API server host")
    api_port: int = Field(ge=1, le=65535, default=8000, description="API server port")
    api_key: str = Field(min_length=1, description="Bearer key required by the control endpoints")
    trusted_hosts: str = Field(default="localhost,127.0.0.1,testserver", description="Comma-separated host patterns")

    # Spotify API
    spotify_client_id: str = Field(min_length=1, description="Spotify OAuth client ID")
    spotify_client_secret: str = Field(min_length=1, description="Spotify OAuth client secret")
    spotify_refresh_token: str = Field(min_length=1, description="Spotify refresh token")

    # Discord
    discord_bot_token: str = Field(min_length=1, description="Discord bot token")
    discord_channel_id: str = Field(description="Channel the now-playing message lives in")
    discord_message_id: str | None = Field(default=None, description="Existing message to keep editing on startup")

    # Presentation
    listener_name: str = Field(default="Someone", min_length=1, description="Name shown in the embed description")
    smart_case: bool = Field(default=True, description="Lowercase titles unless they are all caps")
    auto_updates: bool = Field(default=True, description="Start the sync loop on startup")

    # Polling cadence (seconds)
    idle_interval: float = Field(default=30.0, gt=0, description="Delay between polls while nothing plays")
    playing_interval: float = Field(default=5.0, gt=0, description="Base delay between polls while playing")
    playing_growth: float = Field(default=1.25, ge=1.0, description="Growth factor while the same track persists")
    playing_max_interval: float = Field(default=15.0, gt=0, description="Upper bound for the grown playing delay")
    startup_delay: float = Field(default=2.0, ge=0, description="Delay before the first poll")
    backoff_growth: float = Field(default=2.0, gt=1.0, description="Backoff multiplier per consecutive failure")
    max_backoff: float = Field(default=300.0, gt=0, description="Upper bound for the backoff delay")

    # Network
    http_timeout: float = Field(default=10.0, gt=0, description="Timeout for every outbound request")
    token_safety_factor: float = Field(default=0.9, gt=0, lt=1, description="Fraction of the token TTL to trust")

    log_level: str = Field(default="INFO", description="Root log level")

    model_config = SettingsConfigDict(
        env_file=Path(BASE_DIR / ".env"),
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        validate_default=True,
    )

    @field_validator("discord_channel_id", mode="after")
    @classmethod
    def validate_channel_id(cls, v: str) -> str:
        """Required decimal snowflake."""
        v = v.strip()
        if not v:
            raise ValueError("DISCORD_CHANNEL_ID must not be blank")
        if not v.isdigit():
            raise ValueError("Discord ids must contain digits only")
        return v

    @field_validator("discord_message_id", mode="after")
    @classmethod
    def validate_message_id(cls, v: str | None) -> str | None:
        """Optional snowflake; blank means post a new message."""
        if v is None:
            return v
        v = v.strip()
        if not v:
            return None
        if not v.isdigit():
            raise ValueError("Discord ids must contain digits only")
        return v

    @field_validator("log_level", mode="after")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        v = v.strip().upper()
        if v not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Unknown log level: {v}")
        return v

    @model_validator(mode="after")
    def validate_intervals(self) -> "Settings":
        """The grown playing delay and the backoff cap must not undercut the base delay."""
        if self.playing_max_interval < self.playing_interval:
            raise ValueError("playing_max_interval must be >= playing_interval")
        if self.max_backoff < self.playing_interval:
            raise ValueError("max_backoff must be >= playing_interval")
        return self


def load_settings(**overrides) -> Settings:
    """Build Settings, turning validation failures into a ConfigError.

    Raises:
        ConfigError: If a required setting is missing or a value is invalid
    """
    try:
        return Settings(**overrides)
    except ValidationError as e:
        problems = {".".join(str(part) for part in err["loc"]) or "settings": err["msg"] for err in e.errors()}
        log_with_context(
            logger,
            "critical",
            "Invalid configuration",
            problems=problems,
            event_type="config_invalid",
        )
        raise ConfigError(
            f"Invalid configuration: {', '.join(sorted(problems))}",
            details={"problems": problems},
        ) from e


# Singleton settings instance
_settings_instance: Settings | None = None


def get_settings() -> Settings:
    """Get singleton Settings instance for dependency injection.

    Returns:
        Cached Settings instance

    Raises:
        ConfigError: On the first call, if the environment is incomplete
    """
    global _settings_instance
    if _settings_instance is None:
        _settings_instance = load_settings()
    return _settings_instance
