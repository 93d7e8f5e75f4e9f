"""Tests for profile resolution and component wiring."""

import pytest

from jewelvault_sync.adapters.sql import AsyncSqlAdapter
from jewelvault_sync.cloud.storage import LocalBucket
from jewelvault_sync.config.models import (
    BackupSettings,
    DatabaseProfile,
    SessionContext,
    StorageConfig,
    SyncConfig,
)
from jewelvault_sync.errors import ProfileNotFoundError, SetupError
from jewelvault_sync.factory import (
    get_active_profile_name,
    get_adapter,
    get_sync_manager,
    resolve_url,
)


def _config(*names: str, default: str | None = None) -> SyncConfig:
    return SyncConfig(
        profiles={n: DatabaseProfile(url=f"sqlite:///{n}.db", provider="sqlite") for n in names},
        default_profile=default,
    )


class TestGetActiveProfileName:
    def test_explicit_name_wins(self):
        assert get_active_profile_name(_config("a", "b", default="a"), "b") == "b"

    def test_default_profile(self):
        assert get_active_profile_name(_config("a", "b", default="a")) == "a"

    def test_single_profile_used_without_default(self):
        assert get_active_profile_name(_config("only")) == "only"

    def test_ambiguous_raises(self):
        with pytest.raises(ProfileNotFoundError, match="Available profiles: a, b"):
            get_active_profile_name(_config("a", "b"))

    def test_unknown_name_raises(self):
        with pytest.raises(ProfileNotFoundError, match="'ghost' not found"):
            get_active_profile_name(_config("a"), "ghost")

    def test_no_profiles(self):
        with pytest.raises(ProfileNotFoundError, match="none"):
            get_active_profile_name(SyncConfig())

    def test_is_a_setup_error(self):
        assert issubclass(ProfileNotFoundError, SetupError)


class TestResolveUrl:
    def test_password_substituted_and_quoted(self):
        profile = DatabaseProfile(
            url="postgresql://jv:[YOUR-PASSWORD]@db:5432/jewelvault",
            db_password="p@ss/word",
        )
        assert resolve_url(profile) == "postgresql://jv:p%40ss%2Fword@db:5432/jewelvault"

    def test_without_password_unchanged(self):
        profile = DatabaseProfile(url="postgresql://jv:[YOUR-PASSWORD]@db/jewelvault")
        assert resolve_url(profile) == profile.url

    def test_without_placeholder_unchanged(self):
        profile = DatabaseProfile(url="sqlite:///jewelvault.db", db_password="x")
        assert resolve_url(profile) == "sqlite:///jewelvault.db"


class TestWiring:
    async def test_get_adapter(self, tmp_path):
        config = SyncConfig(
            profiles={"local": DatabaseProfile(url=f"sqlite:///{tmp_path}/jv.db", provider="sqlite")}
        )
        adapter = get_adapter(config)
        try:
            assert isinstance(adapter, AsyncSqlAdapter)
            assert adapter.dialect == "sqlite"
        finally:
            await adapter.close()

    async def test_get_sync_manager(self, tmp_path):
        config = SyncConfig(
            profiles={"local": DatabaseProfile(url=f"sqlite:///{tmp_path}/jv.db", provider="sqlite")},
            storage=StorageConfig(local_root=str(tmp_path / "cloud")),
            session=SessionContext(user_id="U1", store_id="S1", user_mobile="9000000001"),
            backup=BackupSettings(work_dir=str(tmp_path / "work")),
        )
        manager = get_sync_manager(config)
        try:
            assert isinstance(manager.store.bucket, LocalBucket)
            assert manager.session.store_id == "S1"
            assert manager.work_dir == tmp_path / "work"
        finally:
            await manager.adapter.close()
