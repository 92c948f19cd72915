"""Kernel configuration.

Two layers:

- ``KernelSettings`` reads process configuration from environment variables
  with the ``KERNEL_`` prefix using pydantic-settings. Every field the
  webhook endpoint needs is optional here so that a misconfigured process
  still starts and answers each delivery with a generic error.
- ``Env`` is the schema each request validates before doing anything else:
  webhook secret, app id, app private key and the key-value store holding
  plugin-chain state.
"""

from typing import Any, Dict, Mapping, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from src.kernel.github.client import DEFAULT_BASE_URL
from src.kernel.storage import KeyValueStore


class InvalidEnvironmentError(Exception):
    """Raised when the per-request configuration fails validation.

    The message is generic; details are only logged.

    Attributes:
        errors: The pydantic validation errors.
    """

    def __init__(self, errors: Optional[list] = None):
        self.errors = errors or []
        super().__init__("Invalid environment variables")


class Env(BaseModel):
    """Configuration every webhook request is validated against."""

    model_config = ConfigDict(arbitrary_types_allowed=True, extra="ignore")

    WEBHOOK_SECRET: str = Field(..., min_length=1)
    APP_ID: Union[int, str]
    APP_PRIVATE_KEY: str = Field(..., min_length=1)
    PLUGIN_CHAIN_STATE: KeyValueStore
    GITHUB_BASE_URL: str = DEFAULT_BASE_URL

    @field_validator("APP_ID")
    @classmethod
    def validate_app_id(cls, v: Union[int, str]) -> Union[int, str]:
        if isinstance(v, str) and not v.strip():
            raise ValueError("APP_ID cannot be empty")
        return v


def parse_env(env: Mapping[str, Any]) -> Env:
    """Validate a configuration mapping.

    Raises:
        InvalidEnvironmentError: If the mapping does not match ``Env``.
    """
    try:
        return Env.model_validate(dict(env))
    except ValidationError as e:
        raise InvalidEnvironmentError(e.errors()) from e


class KernelSettings(BaseSettings):
    """Kernel process configuration from environment variables.

    All environment variables are prefixed with KERNEL_ (e.g.
    KERNEL_WEBHOOK_SECRET).
    """

    model_config = SettingsConfigDict(
        env_prefix="KERNEL_",
        case_sensitive=False,
    )

    # -------------------------------------------------------------------------
    # GitHub App
    # -------------------------------------------------------------------------
    # Secret shared with GitHub for signing webhook deliveries
    webhook_secret: Optional[str] = None

    # GitHub App id, issuer of the app JWT
    app_id: Optional[str] = None

    # PEM private key of the GitHub App
    app_private_key: Optional[str] = None

    # Base URL for GitHub API (supports GitHub Enterprise)
    github_base_url: str = DEFAULT_BASE_URL

    # -------------------------------------------------------------------------
    # Plugin chain state
    # -------------------------------------------------------------------------
    # PostgreSQL connection string; unset keeps state in process memory
    database_url: Optional[str] = None

    # -------------------------------------------------------------------------
    # Server
    # -------------------------------------------------------------------------
    log_level: str = "INFO"
    host: str = "0.0.0.0"
    port: int = 8080

    @field_validator("database_url")
    @classmethod
    def validate_database_url(cls, v: Optional[str]) -> Optional[str]:
        """Validate that the database URL, if set, is a PostgreSQL URL."""
        if v is None or not v.strip():
            return None
        if not v.startswith(("postgresql://", "postgres://")):
            raise ValueError(
                "database_url must start with postgresql:// or postgres://"
            )
        return v

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        level = v.upper()
        if level not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ValueError(f"Invalid log level: {v}")
        return level

    @field_validator("port")
    @classmethod
    def validate_port(cls, v: int) -> int:
        """Validate that port is in valid range."""
        if not 1 <= v <= 65535:
            raise ValueError("port must be between 1 and 65535")
        return v

    def to_env(self, plugin_chain_state: Optional[KeyValueStore]) -> Dict[str, Any]:
        """Build the per-request configuration mapping.

        Unset settings are left out so that request validation reports them.
        """
        values = {
            "WEBHOOK_SECRET": self.webhook_secret,
            "APP_ID": self.app_id,
            "APP_PRIVATE_KEY": self.app_private_key,
            "PLUGIN_CHAIN_STATE": plugin_chain_state,
            "GITHUB_BASE_URL": self.github_base_url,
        }
        return {key: value for key, value in values.items() if value is not None}


def get_settings() -> KernelSettings:
    """Create and return a KernelSettings instance.

    Raises:
        pydantic.ValidationError: If a set value is invalid.
    """
    return KernelSettings()
