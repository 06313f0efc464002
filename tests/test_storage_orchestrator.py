"""Tests for dual-write storage orchestration."""

import re
from datetime import UTC, datetime, timedelta
from pathlib import Path
from unittest.mock import AsyncMock

import pytest

from textlayer.config import StorageConfig
from textlayer.lib.exceptions import LocalStorageError, NoStorageBackendError
from textlayer.lib.storage import (
    AssetCategory,
    ExpirationRecord,
    LocalStorageBackend,
    StorageOrchestrator,
    StoredAsset,
    UnavailableRemoteBackend,
    build_asset_name,
    resolve_storage_route,
)
from textlayer.lib.storage.base import META_CATEGORY, META_USERNAME
from textlayer.lib.storage.routing import StorageRoute

CREATED = datetime(2024, 5, 1, 12, 0, tzinfo=UTC)


def _route(tmp_path, local=True, remote=False, username="alice"):
    config = StorageConfig(
        local_enabled=local, remote_enabled=remote, local_path=str(tmp_path / "uploads")
    )
    return resolve_storage_route(None, username, config)


def _asset(category=AssetCategory.PREVIEW, data=b"png-bytes"):
    return StoredAsset(
        logical_name=build_asset_name(category),
        data=data,
        category=category,
        created_at=CREATED,
    )


@pytest.fixture
def orchestrator(tmp_path, memory_remote):
    return StorageOrchestrator(
        local=LocalStorageBackend(tmp_path / "uploads"),
        remote=memory_remote,
        retention=timedelta(days=7),
    )


class TestBuildAssetName:
    def test_format(self):
        name = build_asset_name(AssetCategory.BG_REMOVED)
        assert re.fullmatch(r"bg_removed_\d{13}_[0-9a-f]{8}\.png", name)

    def test_unique(self):
        names = {build_asset_name(AssetCategory.PREVIEW) for _ in range(50)}
        assert len(names) == 50


class TestExpirationRecord:
    def test_preview_expires_after_retention(self):
        record = ExpirationRecord.for_category(AssetCategory.PREVIEW, CREATED, timedelta(days=7))
        assert record.expires_at == CREATED + timedelta(days=7)

    @pytest.mark.parametrize(
        "category", [AssetCategory.ORIGINAL, AssetCategory.BG_REMOVED, AssetCategory.TEXT_ADDED]
    )
    def test_other_categories_never_expire(self, category):
        record = ExpirationRecord.for_category(category, CREATED, timedelta(days=7))
        assert record.expires_at is None
        assert "expires-at" not in record.to_metadata()

    def test_metadata_round_trip(self):
        record = ExpirationRecord(created_at=CREATED, expires_at=CREATED + timedelta(days=1))
        assert ExpirationRecord.from_metadata(record.to_metadata()) == record

    def test_metadata_without_creation_time(self):
        assert ExpirationRecord.from_metadata({"username": "alice"}) is None

    def test_expired_strictly_after(self):
        expires = CREATED + timedelta(days=7)
        record = ExpirationRecord(created_at=CREATED, expires_at=expires)
        assert not record.is_expired(expires)
        assert record.is_expired(expires + timedelta(milliseconds=1))


class TestStore:
    @pytest.mark.asyncio
    async def test_local_only(self, orchestrator, memory_remote, tmp_path):
        result = await orchestrator.store(_asset(), _route(tmp_path))

        assert result.stored_locally
        assert not result.stored_remotely
        assert Path(result.local_path).read_bytes() == b"png-bytes"
        assert result.local_path.startswith(str(tmp_path / "uploads" / "users" / "alice"))
        assert len(memory_remote) == 0

        data = result.to_dict()
        assert "local_path" in data
        assert "remote_url" not in data
        assert "expires_at" not in data

    @pytest.mark.asyncio
    async def test_remote_only_attaches_metadata(self, orchestrator, memory_remote, tmp_path):
        result = await orchestrator.store(_asset(), _route(tmp_path, local=False, remote=True))

        assert not result.stored_locally
        assert result.remote_id == f"users/alice/{result.logical_name}"
        assert result.expires_at == CREATED + timedelta(days=7)
        assert not (tmp_path / "uploads").exists()

        metadata = await memory_remote.get_metadata(result.remote_id)
        assert metadata[META_USERNAME] == "alice"
        assert metadata[META_CATEGORY] == "preview"
        assert ExpirationRecord.from_metadata(metadata).expires_at == result.expires_at

    @pytest.mark.asyncio
    async def test_dual_write_stores_both(self, orchestrator, memory_remote, tmp_path):
        result = await orchestrator.store(_asset(), _route(tmp_path, local=True, remote=True))

        assert result.stored_locally and result.stored_remotely
        assert await memory_remote.download(result.remote_id) == b"png-bytes"
        assert result.upload_error is None

    @pytest.mark.asyncio
    async def test_remote_failure_keeps_local_copy(self, orchestrator, memory_remote, tmp_path):
        memory_remote.upload = AsyncMock(side_effect=ConnectionError("bucket unreachable"))

        result = await orchestrator.store(_asset(), _route(tmp_path, local=True, remote=True))

        assert result.stored_locally
        assert Path(result.local_path).exists()
        assert not result.stored_remotely
        assert result.upload_error == "bucket unreachable"
        assert result.expires_at is None
        assert result.to_dict()["upload_error"] == "bucket unreachable"

    @pytest.mark.asyncio
    async def test_unavailable_remote_is_reported(self, tmp_path):
        orchestrator = StorageOrchestrator(
            local=LocalStorageBackend(tmp_path / "uploads"),
            remote=UnavailableRemoteBackend(name="remote", reason="missing credentials"),
            retention=timedelta(days=7),
        )
        result = await orchestrator.store(_asset(), _route(tmp_path, local=True, remote=True))

        assert result.stored_locally
        assert "missing credentials" in result.upload_error

    @pytest.mark.asyncio
    async def test_local_failure_propagates(self, tmp_path, memory_remote):
        blocker = tmp_path / "blocker"
        blocker.write_text("not a directory")
        orchestrator = StorageOrchestrator(
            local=LocalStorageBackend(blocker),
            remote=memory_remote,
            retention=timedelta(days=7),
        )
        with pytest.raises(LocalStorageError):
            await orchestrator.store(_asset(), _route(tmp_path, local=True, remote=False))

    @pytest.mark.asyncio
    async def test_empty_route_raises(self, orchestrator, tmp_path):
        route = StorageRoute(
            use_local=False,
            use_remote=False,
            username="alice",
            namespace="users/alice",
            local_base_path=tmp_path,
            remote_base_path="users/alice",
        )
        with pytest.raises(NoStorageBackendError):
            await orchestrator.store(_asset(), route)

    @pytest.mark.asyncio
    async def test_non_preview_assets_carry_no_expiry(self, orchestrator, memory_remote, tmp_path):
        result = await orchestrator.store(
            _asset(AssetCategory.ORIGINAL), _route(tmp_path, local=False, remote=True)
        )
        assert result.expires_at is None
        assert "expires-at" not in await memory_remote.get_metadata(result.remote_id)


class TestStoreMany:
    @pytest.mark.asyncio
    async def test_pair_reports_each_asset(self, orchestrator, memory_remote, tmp_path):
        original = _asset(AssetCategory.ORIGINAL, b"orig")
        removed = _asset(AssetCategory.BG_REMOVED, b"cut")
        calls = []
        real_upload = memory_remote.upload

        async def flaky_upload(data, name, namespace, metadata):
            calls.append(name)
            if name.startswith("bg_removed_"):
                raise RuntimeError("quota exceeded")
            return await real_upload(data, name, namespace, metadata)

        memory_remote.upload = flaky_upload

        results = await orchestrator.store_many(
            [original, removed], _route(tmp_path, local=True, remote=True)
        )

        assert [r.category for r in results] == [AssetCategory.ORIGINAL, AssetCategory.BG_REMOVED]
        assert results[0].stored_remotely and results[0].upload_error is None
        assert not results[1].stored_remotely and results[1].upload_error == "quota exceeded"
        assert all(r.stored_locally for r in results)
        assert calls == [original.logical_name, removed.logical_name]
