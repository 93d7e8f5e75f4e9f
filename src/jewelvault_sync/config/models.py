"""Pydantic models for sync.toml configuration."""

from typing import Literal

from pydantic import BaseModel, Field


# ============================================================================
# Configuration Models
# ============================================================================


class DatabaseProfile(BaseModel):
    """Database connection profile from sync.toml."""

    url: str
    description: str = ""
    db_password: str | None = None  # For [YOUR-PASSWORD] placeholder substitution
    provider: str = "postgres"  # postgres | sqlite


class StorageConfig(BaseModel):
    """Where backups are uploaded to."""

    backend: Literal["gcs", "local"] = "local"
    bucket: str = ""  # GCS bucket name
    project_id: str | None = None
    local_root: str = "./cloud_backups"  # LocalBucket root directory


class SessionContext(BaseModel):
    """The active tenant: who is logged in, and in which store."""

    user_id: str = ""
    store_id: str = ""
    user_mobile: str = ""  # namespaces cloud backups


class BackupSettings(BaseModel):
    """Local working files."""

    work_dir: str = "./backups"


class SyncConfig(BaseModel):
    """Complete configuration from sync.toml."""

    profiles: dict[str, DatabaseProfile] = Field(default_factory=dict)
    default_profile: str | None = None
    storage: StorageConfig = Field(default_factory=StorageConfig)
    session: SessionContext = Field(default_factory=SessionContext)
    backup: BackupSettings = Field(default_factory=BackupSettings)
