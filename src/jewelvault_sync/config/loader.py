"""Load sync.toml and apply ``JV_*`` environment overrides."""

import tomllib
from functools import lru_cache
from pathlib import Path

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from jewelvault_sync.config.models import (
    BackupSettings,
    DatabaseProfile,
    SessionContext,
    StorageConfig,
    SyncConfig,
)

DEFAULT_CONFIG_FILE = "sync.toml"
ENV_PROFILE_NAME = "env"


class Settings(BaseSettings):
    """Environment overrides for sync.toml.

    Every value is optional; an unset variable leaves the TOML value alone.
    """

    model_config = SettingsConfigDict(
        env_prefix="JV_",
        env_file=".env",
        extra="ignore",
        populate_by_name=True,
    )

    config_file: str | None = Field(default=None, validation_alias=AliasChoices("JV_CONFIG", "config_file"))
    db_profile: str | None = None
    database_url: str | None = None
    gcs_bucket: str | None = None
    gcp_project_id: str | None = Field(
        default=None,
        validation_alias=AliasChoices("JV_GCP_PROJECT_ID", "GOOGLE_CLOUD_PROJECT"),
    )
    user_id: str | None = None
    store_id: str | None = None
    user_mobile: str | None = None


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


def default_config_path(settings: Settings | None = None) -> Path:
    settings = settings or get_settings()
    if settings.config_file:
        return Path(settings.config_file)
    return Path.cwd() / DEFAULT_CONFIG_FILE


def load_sync_config(
    config_path: Path | None = None,
    settings: Settings | None = None,
) -> SyncConfig:
    """Load sync configuration from TOML, then apply environment overrides.

    A missing file is not an error when the environment alone supplies a
    database (``JV_DATABASE_URL``).

    Args:
        config_path: Path to sync.toml (default: ``$JV_CONFIG`` or
            ``./sync.toml``).
        settings: Environment overrides (default: read from the process
            environment).

    Returns:
        SyncConfig with all sections filled.

    Raises:
        FileNotFoundError: If the config file doesn't exist and no
            ``JV_DATABASE_URL`` is set.
        ValueError: If config format is invalid.
    """
    settings = settings or get_settings()
    if config_path is None:
        config_path = default_config_path(settings)

    data: dict = {}
    if config_path.exists():
        with open(config_path, "rb") as f:
            data = tomllib.load(f)
    elif not settings.database_url:
        raise FileNotFoundError(
            f"Sync config not found: {config_path}\n"
            f"Copy sync.toml.example to sync.toml and configure your profiles."
        )

    profiles = {
        name: DatabaseProfile(**profile_data)
        for name, profile_data in data.get("profiles", {}).items()
    }

    config = SyncConfig(
        profiles=profiles,
        default_profile=data.get("default_profile"),
        storage=StorageConfig(**data.get("storage", {})),
        session=SessionContext(**data.get("session", {})),
        backup=BackupSettings(**data.get("backup", {})),
    )
    return apply_env_overrides(config, settings)


def apply_env_overrides(config: SyncConfig, settings: Settings) -> SyncConfig:
    """Return a copy of ``config`` with every set ``JV_*`` variable applied."""
    config = config.model_copy(deep=True)

    if settings.database_url:
        provider = "sqlite" if settings.database_url.startswith("sqlite") else "postgres"
        config.profiles[ENV_PROFILE_NAME] = DatabaseProfile(
            url=settings.database_url,
            description="From JV_DATABASE_URL",
            provider=provider,
        )
        config.default_profile = ENV_PROFILE_NAME
    if settings.db_profile:
        config.default_profile = settings.db_profile

    if settings.gcs_bucket:
        config.storage.backend = "gcs"
        config.storage.bucket = settings.gcs_bucket
    if settings.gcp_project_id:
        config.storage.project_id = settings.gcp_project_id

    if settings.user_id:
        config.session.user_id = settings.user_id
    if settings.store_id:
        config.session.store_id = settings.store_id
    if settings.user_mobile:
        config.session.user_mobile = settings.user_mobile

    return config
