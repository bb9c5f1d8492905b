"""
PowerPlatform MCP Configuration.

Settings are loaded from (highest priority first):
- explicit init kwargs
- the TOML file named by POWERPLATFORM_MCP_CONFIG (default: powerplatform_mcp.toml)
- environment variables, then a .env file in the working directory, then secrets

The connection section also accepts the flat POWERPLATFORM_URL,
POWERPLATFORM_CLIENT_ID, POWERPLATFORM_CLIENT_SECRET and
POWERPLATFORM_TENANT_ID variables.
"""
import os
from pathlib import Path
from typing import Callable, List, Optional, Tuple, Type

from pydantic import BaseModel, Field, SecretStr
from pydantic_settings import (
    BaseSettings,
    SettingsConfigDict,
    TomlConfigSettingsSource,
    InitSettingsSource,
    EnvSettingsSource,
    DotEnvSettingsSource,
    SecretsSettingsSource,
)

TOML_PATH = Path(os.environ.get("POWERPLATFORM_MCP_CONFIG", "powerplatform_mcp.toml"))
ENV_FILE = ".env"


class LoggingConfig(BaseModel):
    level: str = "INFO"
    log_to_file: bool = False
    log_file: str = "powerplatform_mcp.log"
    rotation_size_mb: int = 10
    rotation_backup_count: int = 5
    format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


class PowerPlatformConfig(BaseSettings):
    """
    Connection settings for a single Dataverse environment.

    Authentication uses the OAuth client credential flow, so an app
    registration (client id + secret) in the environment's tenant is required.
    """

    url: str = ""  # e.g. https://contoso.crm.dynamics.com
    client_id: str = ""
    client_secret: SecretStr = SecretStr("")
    tenant_id: str = ""

    api_version: str = "v9.2"
    request_timeout_seconds: float = 30.0
    token_refresh_margin_seconds: int = 300  # Refresh 5 minutes before expiry
    max_workers: int = 4  # Concurrent independent lookups within one operation

    model_config = SettingsConfigDict(env_prefix="POWERPLATFORM_", env_file=ENV_FILE, extra="ignore")

    @property
    def organization_url(self) -> str:
        return self.url.rstrip("/")

    def missing_fields(self) -> List[str]:
        """Names of required connection fields that are empty."""
        missing = []
        if not self.url:
            missing.append("url")
        if not self.client_id:
            missing.append("client_id")
        if not self.client_secret.get_secret_value():
            missing.append("client_secret")
        if not self.tenant_id:
            missing.append("tenant_id")
        return missing


class AppSettings(BaseSettings):
    """
    Main settings class that loads configuration from various sources.
    Uses defaults if the file or keys are missing.
    """

    logging: LoggingConfig = LoggingConfig()
    powerplatform: PowerPlatformConfig = Field(default_factory=PowerPlatformConfig)

    model_config = SettingsConfigDict(
        env_prefix="POWERPLATFORM_MCP_",
        env_nested_delimiter="__",
        env_file=ENV_FILE,
        # Unrelated keys in .env are skipped
        extra="ignore",
    )

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: Type[BaseSettings],
        init_settings: InitSettingsSource,
        env_settings: EnvSettingsSource,
        dotenv_settings: DotEnvSettingsSource,
        file_secret_settings: SecretsSettingsSource,
    ) -> Tuple[Callable, ...]:
        """
        Define the priority order for loading settings sources.
        The TOML file sits right below explicit init kwargs.
        """
        return (
            init_settings,
            TomlConfigSettingsSource(settings_cls, toml_file=TOML_PATH),
            env_settings,
            dotenv_settings,
            file_secret_settings,
        )


_settings: Optional[AppSettings] = None


def get_settings() -> AppSettings:
    """Return the process-wide settings, loading them on first access."""
    global _settings
    if _settings is None:
        _settings = AppSettings()
    return _settings


def reset_settings():
    """Forget loaded settings (useful for testing)."""
    global _settings
    _settings = None
