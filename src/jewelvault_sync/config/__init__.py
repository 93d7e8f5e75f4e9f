"""Configuration management: profiles, storage, session, TOML loading.

Usage:
    >>> from jewelvault_sync.config import load_sync_config, SyncConfig
"""

from jewelvault_sync.config.loader import Settings, get_settings, load_sync_config
from jewelvault_sync.config.models import (
    BackupSettings,
    DatabaseProfile,
    SessionContext,
    StorageConfig,
    SyncConfig,
)

__all__ = [
    "load_sync_config",
    "get_settings",
    "Settings",
    "SyncConfig",
    "DatabaseProfile",
    "StorageConfig",
    "SessionContext",
    "BackupSettings",
]
