"""Configuration management for TaskBridge."""

import json
import os
from pathlib import Path
from typing import Any, Literal, Optional

from platformdirs import user_config_dir, user_data_dir
from pydantic import BaseModel, Field

PROVIDER_MICROSOFT = "microsoft"
PROVIDER_GOOGLE = "google"

# Environment variables override the matching provider settings
ENV_OVERRIDES = {
    "TASKBRIDGE_PROVIDER": "name",
    "TASKBRIDGE_CLIENT_ID": "client_id",
    "TASKBRIDGE_CLIENT_SECRET": "client_secret",
    "TASKBRIDGE_TENANT": "tenant",
    "TASKBRIDGE_AUTHORITY_URL": "authority_url",
    "TASKBRIDGE_GRAPH_BASE_URL": "graph_base_url",
    "TASKBRIDGE_GOOGLE_TASKS_BASE_URL": "google_tasks_base_url",
}


class ProviderConfig(BaseModel):
    """OAuth application and API settings for the task provider.

    ``name`` selects the provider. An empty ``scopes`` list means the
    provider's default scopes.
    """

    name: Literal["microsoft", "google"] = Field(default=PROVIDER_MICROSOFT)
    client_id: str = Field(default="")
    client_secret: str = Field(default="")
    scopes: list[str] = Field(default_factory=list)
    redirect_uris: list[str] = Field(
        default_factory=lambda: ["http://localhost:8765/callback"]
    )
    timeout: float = Field(default=30.0)

    # Microsoft identity platform and Graph
    tenant: str = Field(default="common")
    authority_url: str = Field(default="https://login.microsoftonline.com")
    graph_base_url: str = Field(default="https://graph.microsoft.com/v1.0")

    # Google OAuth and Tasks API
    google_auth_url: str = Field(default="https://accounts.google.com/o/oauth2/v2/auth")
    google_token_url: str = Field(default="https://oauth2.googleapis.com/token")
    google_revoke_url: str = Field(default="https://oauth2.googleapis.com/revoke")
    google_tasks_base_url: str = Field(default="https://tasks.googleapis.com/tasks/v1")


class AuthConfig(BaseModel):
    """Authorization flow and token lifetime settings (seconds)."""

    state_ttl: int = Field(default=600)
    refresh_margin: int = Field(default=60)


class RetryConfig(BaseModel):
    """Backoff for transient provider errors."""

    attempts: int = Field(default=3, ge=1)
    base_delay: float = Field(default=1.0)
    max_delay: float = Field(default=30.0)


class SyncConfig(BaseModel):
    """Sync configuration."""

    interval: int = Field(default=300)
    deadline: Optional[float] = Field(default=None)
    include_completed: bool = Field(default=True)


class StorageConfig(BaseModel):
    """Local database location. Empty means the platform data directory."""

    database: str = Field(default="")


class Config(BaseModel):
    """Main configuration."""

    user_id: str = Field(default="local")
    provider: ProviderConfig = Field(default_factory=ProviderConfig)
    auth: AuthConfig = Field(default_factory=AuthConfig)
    retry: RetryConfig = Field(default_factory=RetryConfig)
    sync: SyncConfig = Field(default_factory=SyncConfig)
    storage: StorageConfig = Field(default_factory=StorageConfig)


class ConfigManager:
    """Manages TaskBridge configuration."""

    def __init__(self, profile: str = "default"):
        self.profile = profile
        self.config_dir = Path(user_config_dir("taskbridge"))
        self.data_dir = Path(user_data_dir("taskbridge"))
        self.config_file = self.config_dir / f"{profile}.json"

        self.config_dir.mkdir(parents=True, exist_ok=True)
        self.data_dir.mkdir(parents=True, exist_ok=True)

        self._config: Optional[Config] = None

    @property
    def config(self) -> Config:
        """Get the current configuration."""
        if self._config is None:
            self._config = self.load_config()
        return self._config

    @property
    def database_path(self) -> Path:
        if self.config.storage.database:
            return Path(self.config.storage.database)
        return self.data_dir / f"{self.profile}.db"

    def load_config(self) -> Config:
        """Load configuration from file, then apply environment overrides."""
        config = Config()
        if self.config_file.exists():
            try:
                with open(self.config_file, "r") as f:
                    data = json.load(f)
                config = Config(**data)
            except (OSError, ValueError):
                # Corrupt config falls back to defaults
                config = Config()
        return self._apply_env(config)

    @staticmethod
    def _apply_env(config: Config) -> Config:
        overrides = {
            field: os.environ[env]
            for env, field in ENV_OVERRIDES.items()
            if os.environ.get(env)
        }
        redirect_uri = os.environ.get("TASKBRIDGE_REDIRECT_URI")
        if redirect_uri and redirect_uri not in config.provider.redirect_uris:
            overrides["redirect_uris"] = [redirect_uri, *config.provider.redirect_uris]
        if not overrides:
            return config
        provider = ProviderConfig.model_validate({**config.provider.model_dump(), **overrides})
        return config.model_copy(update={"provider": provider})

    def save_config(self, config: Optional[Config] = None) -> None:
        """Save configuration to file."""
        if config is None:
            config = self.config

        with open(self.config_file, "w") as f:
            json.dump(config.model_dump(), f, indent=2)

        # May hold the client secret
        self.config_file.chmod(0o600)

    def get(self, key: str) -> Any:
        """Get a configuration value by dot-separated key."""
        return self.get_from_config(self.config, key)

    def set(self, key: str, value: Any) -> None:
        """Set a configuration value by dot-separated key."""
        keys = key.split(".")
        config_dict = self.config.model_dump()

        current = config_dict
        for k in keys[:-1]:
            if k not in current or not isinstance(current[k], dict):
                raise KeyError(f"Unknown configuration key: {key}")
            current = current[k]
        if keys[-1] not in current:
            raise KeyError(f"Unknown configuration key: {key}")

        current[keys[-1]] = value

        self._config = Config(**config_dict)
        self.save_config()

    def reset(self, key: Optional[str] = None) -> None:
        """Reset configuration to defaults."""
        if key is None:
            self._config = Config()
            self.save_config()
        else:
            default_value = self.get_from_config(Config(), key)
            if default_value is not None:
                self.set(key, default_value)

    def get_from_config(self, config: Config, key: str) -> Any:
        """Get value from a config object using dot notation."""
        value: Any = config
        for k in key.split("."):
            if isinstance(value, BaseModel):
                value = getattr(value, k, None)
            else:
                return None
        return value


# Global config manager instance
_config_manager: Optional[ConfigManager] = None


def get_config_manager(profile: str = "default") -> ConfigManager:
    """Get or create the global config manager."""
    global _config_manager
    if _config_manager is None or _config_manager.profile != profile:
        _config_manager = ConfigManager(profile)
    return _config_manager
