"""Wiring: build adapters, object stores and managers from ``SyncConfig``.

Profile resolution priority:
1. Explicit ``profile_name`` argument (``--profile`` on the CLI)
2. ``JV_DB_PROFILE`` / ``default_profile`` from sync.toml
3. The only profile, when exactly one is configured
4. Raise ProfileNotFoundError
"""

from urllib.parse import quote

from jewelvault_sync.adapters.sql import AsyncSqlAdapter
from jewelvault_sync.cloud.storage import CloudBackupStore, get_bucket
from jewelvault_sync.config.models import DatabaseProfile, SyncConfig
from jewelvault_sync.errors import ProfileNotFoundError
from jewelvault_sync.manager import SyncManager


def get_active_profile_name(config: SyncConfig, profile_name: str | None = None) -> str:
    """Resolve which database profile to use.

    Raises:
        ProfileNotFoundError: If no profile is configured or the named
            profile does not exist.
    """
    name = profile_name or config.default_profile
    if name is None and len(config.profiles) == 1:
        name = next(iter(config.profiles))
    if name is None:
        raise ProfileNotFoundError(
            "No database profile configured.\n"
            "Run: JV_DB_PROFILE=<name> jewelvault-sync <command>\n"
            f"Available profiles: {', '.join(config.profiles) or 'none'}"
        )
    if name not in config.profiles:
        raise ProfileNotFoundError(
            f"Profile '{name}' not found in sync.toml.\n"
            f"Available profiles: {', '.join(config.profiles) or 'none'}"
        )
    return name


def resolve_url(profile: DatabaseProfile) -> str:
    """Resolve profile URL with password substitution.

    Example:
        >>> resolve_url(DatabaseProfile(url="postgresql://u:[YOUR-PASSWORD]@h/db", db_password="p@ss"))
        'postgresql://u:p%40ss@h/db'
    """
    url = profile.url
    if profile.db_password and "[YOUR-PASSWORD]" in url:
        url = url.replace("[YOUR-PASSWORD]", quote(profile.db_password, safe=""))
    return url


def get_adapter(config: SyncConfig, profile_name: str | None = None) -> AsyncSqlAdapter:
    """Create an adapter for the active profile."""
    name = get_active_profile_name(config, profile_name)
    return AsyncSqlAdapter(resolve_url(config.profiles[name]))


def get_sync_manager(config: SyncConfig, profile_name: str | None = None) -> SyncManager:
    """Create a fully wired ``SyncManager`` for the configured tenant."""
    return SyncManager(
        adapter=get_adapter(config, profile_name),
        store=CloudBackupStore(get_bucket(config.storage)),
        session=config.session,
        work_dir=config.backup.work_dir,
    )
