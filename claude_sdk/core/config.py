import os
import json
from pathlib import Path
from typing import Optional, List, Dict, Any
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import AliasChoices, Field, HttpUrl, field_validator
from dotenv import load_dotenv


class Settings(BaseSettings):
    """Client settings with environment variable and JSON config support."""

    model_config = SettingsConfigDict(
        env_prefix="CLAUDE_SDK_",
        env_file=".env",
        env_ignore_empty=True,
        extra="ignore",
        populate_by_name=True,
    )

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls,
        init_settings,
        env_settings,
        dotenv_settings,
        file_secret_settings,
    ):
        """Customize settings sources to add JSON config support.

        Priority order (highest to lowest):
        1. Init arguments
        2. JSON config file
        3. Environment variables
        4. .env file
        5. Default values
        """
        return (
            init_settings,
            cls._json_config_settings,
            env_settings,
            dotenv_settings,
            file_secret_settings,
        )

    @classmethod
    def _json_config_settings(cls) -> Dict[str, Any]:
        """Load settings from config.json in the data folder."""

        if os.environ.get("CLAUDE_SDK_NO_FILESYSTEM_MODE", "").lower() in (
            "true",
            "1",
            "yes",
        ):
            return {}

        # Load .env file to ensure environment variables are available
        load_dotenv()

        data_folder = os.environ.get(
            "CLAUDE_SDK_DATA_FOLDER", str(Path.home() / ".claude_sdk")
        )

        config_path = os.path.join(data_folder, "config.json")

        if os.path.exists(config_path):
            try:
                with open(config_path, "r", encoding="utf-8") as f:
                    return json.load(f)
            except (json.JSONDecodeError, IOError):
                # If there's an error reading the JSON, just return empty dict
                return {}
        return {}

    # API access
    api_key: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("CLAUDE_SDK_API_KEY", "ANTHROPIC_API_KEY"),
        description="Anthropic API key",
    )
    api_base_url: HttpUrl = Field(
        default="https://api.anthropic.com",
        description="Base URL of the Messages API",
    )
    api_version: str = Field(
        default="2023-06-01",
        description="Value of the anthropic-version header",
    )
    beta_features: List[str] | str = Field(
        default_factory=list,
        description="Comma-separated list of anthropic-beta feature flags",
    )

    # Proxy settings
    proxy_url: Optional[str] = Field(default=None)

    # Request settings
    request_timeout: float = Field(default=600.0)
    request_retries: int = Field(
        default=3, description="Total attempts for establishing a request"
    )
    retry_initial_backoff: float = Field(default=0.5)
    retry_max_backoff: float = Field(default=60.0)
    retry_backoff_multiplier: float = Field(default=2.0)

    # Request defaults
    default_model: str = Field(default="claude-sonnet-4-5-20250929")
    default_max_tokens: int = Field(default=1024, ge=1)

    # Message Batches
    batch_poll_interval: float = Field(
        default=60.0, gt=0, description="Seconds between status checks while waiting for a batch"
    )

    # Logging
    log_level: str = Field(default="INFO")
    log_to_file: bool = Field(default=False, description="Enable logging to file")
    log_file_path: str = Field(default="logs/claude_sdk.log", description="Log file path")
    log_file_rotation: str = Field(
        default="10 MB",
        description="Log file rotation (e.g., '10 MB', '1 day', '1 week')",
    )
    log_file_retention: str = Field(
        default="7 days",
        description="Log file retention (e.g., '7 days', '1 month')",
    )
    log_file_compression: str = Field(
        default="zip",
        description="Log file compression format",
    )

    @field_validator("beta_features")
    def parse_comma_separated(cls, v: str | List[str]) -> List[str]:
        """Parse comma-separated string."""
        if isinstance(v, str):
            return [key.strip() for key in v.split(",") if key.strip()]
        return v

    @property
    def messages_url(self) -> str:
        return self.api_base_url.encoded_string().rstrip("/") + "/v1/messages"


settings = Settings()
