"""Tests for the local, in-memory and unavailable storage backends."""

import pytest

from textlayer.config import RemoteStoreConfig
from textlayer.lib.exceptions import (
    AssetNotFoundError,
    LocalStorageError,
    RemoteStorageUnavailableError,
)
from textlayer.lib.storage import (
    InMemoryRemoteBackend,
    LocalStorageBackend,
    RemoteStorageBackend,
    UnavailableRemoteBackend,
    open_remote_backend,
)
from textlayer.lib.storage.manager import create_remote_backend, is_available


class TestLocalStorageBackend:
    @pytest.mark.asyncio
    async def test_put_creates_namespace_directory(self, tmp_path):
        backend = LocalStorageBackend(tmp_path / "uploads")
        stored = await backend.put("users/alice", "preview_1_ab.png", b"data")

        assert stored.key == "users/alice/preview_1_ab.png"
        assert stored.path == tmp_path / "uploads" / "users" / "alice" / "preview_1_ab.png"
        assert stored.path.read_bytes() == b"data"
        assert stored.url == "/storage/local/users/alice/preview_1_ab.png"

    @pytest.mark.asyncio
    async def test_get_round_trip_and_missing(self, tmp_path):
        backend = LocalStorageBackend(tmp_path)
        await backend.put("ns", "a.png", b"abc")

        assert await backend.get("ns/a.png") == b"abc"
        assert await backend.exists("ns/a.png")
        assert not await backend.exists("ns/b.png")
        with pytest.raises(AssetNotFoundError):
            await backend.get("ns/b.png")

    @pytest.mark.asyncio
    async def test_write_failure_raises_local_storage_error(self, tmp_path):
        blocker = tmp_path / "blocker"
        blocker.write_text("a file, not a directory")
        backend = LocalStorageBackend(blocker)

        with pytest.raises(LocalStorageError):
            await backend.put("ns", "a.png", b"abc")

    @pytest.mark.parametrize("key", ["../etc/passwd", "/etc/passwd", "ns/../../x", "a\x00b", ""])
    def test_key_to_path_rejects_unsafe_keys(self, tmp_path, key):
        with pytest.raises(AssetNotFoundError):
            LocalStorageBackend(tmp_path).key_to_path(key)

    def test_key_from_absolute_path(self, tmp_path):
        backend = LocalStorageBackend(tmp_path / "uploads")
        path = tmp_path / "uploads" / "users" / "bob" / "x.png"
        assert backend.key_from_path(path) == "users/bob/x.png"
        assert backend.key_from_path(str(path)) == "users/bob/x.png"

    def test_key_from_base_relative_path(self, tmp_path):
        backend = LocalStorageBackend(tmp_path / "uploads")
        assert backend.key_from_path("users/bob/x.png") == "users/bob/x.png"

    def test_key_from_path_outside_base(self, tmp_path):
        backend = LocalStorageBackend(tmp_path / "uploads")
        with pytest.raises(AssetNotFoundError):
            backend.key_from_path(tmp_path / "elsewhere" / "x.png")
        with pytest.raises(AssetNotFoundError):
            backend.key_from_path("../../x.png")

    def test_key_from_path_with_null_byte(self, tmp_path):
        backend = LocalStorageBackend(tmp_path / "uploads")
        with pytest.raises(AssetNotFoundError):
            backend.key_from_path("users/bob/x\x00.png")


class TestInMemoryRemoteBackend:
    def test_satisfies_protocol(self):
        assert isinstance(InMemoryRemoteBackend(), RemoteStorageBackend)

    @pytest.mark.asyncio
    async def test_upload_list_metadata_delete(self):
        backend = InMemoryRemoteBackend()
        obj = await backend.upload(b"img", "preview_1_aa.png", "users/a", {"category": "preview"})

        assert obj.id == "users/a/preview_1_aa.png"
        assert obj.url == "memory://users/a/preview_1_aa.png"
        assert await backend.download(obj.id) == b"img"
        assert await backend.get_metadata(obj.id) == {"category": "preview"}

        await backend.delete(obj.id)
        await backend.delete(obj.id)
        assert obj.id not in backend
        with pytest.raises(AssetNotFoundError):
            await backend.get_metadata(obj.id)

    @pytest.mark.asyncio
    async def test_list_filters_by_namespace_and_category(self):
        backend = InMemoryRemoteBackend()
        await backend.upload(b"1", "preview_1_aa.png", "users/a", {})
        await backend.upload(b"2", "original_1_bb.png", "users/a", {})
        await backend.upload(b"3", "preview_2_cc.png", "users/b", {})

        names = sorted(e.name for e in await backend.list(category="preview"))
        assert names == ["users/a/preview_1_aa.png", "users/b/preview_2_cc.png"]

        names = [e.name for e in await backend.list("users/a", "original")]
        assert names == ["users/a/original_1_bb.png"]

        assert len(await backend.list()) == 3


class TestRemoteBackendConstruction:
    def test_memory_backend(self):
        backend = create_remote_backend(RemoteStoreConfig(backend="memory", name="cloud"))
        assert isinstance(backend, InMemoryRemoteBackend)
        assert backend.name == "cloud"

    def test_import_spec_backend(self):
        backend = create_remote_backend(
            RemoteStoreConfig(backend="textlayer.lib.storage.memory:InMemoryRemoteBackend")
        )
        assert isinstance(backend, InMemoryRemoteBackend)

    def test_unknown_backend_raises(self):
        with pytest.raises(ValueError):
            create_remote_backend(RemoteStoreConfig(backend="carrier-pigeon"))

    def test_open_degrades_to_unavailable(self):
        backend = open_remote_backend(RemoteStoreConfig(backend="no.such.module:Backend"))
        assert isinstance(backend, UnavailableRemoteBackend)
        assert not is_available(backend)
        assert "No module named" in backend.reason

    @pytest.mark.asyncio
    async def test_unavailable_backend_raises_on_use(self):
        backend = UnavailableRemoteBackend(name="remote", reason="bad credentials")
        with pytest.raises(RemoteStorageUnavailableError, match="bad credentials"):
            await backend.upload(b"x", "a.png", "ns", {})
        with pytest.raises(RemoteStorageUnavailableError):
            await backend.list()
        await backend.close()
