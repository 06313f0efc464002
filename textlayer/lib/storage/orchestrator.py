"""Write generated assets to every backend selected by a storage route."""

from __future__ import annotations

import logging
import secrets
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from typing import Any

from textlayer.lib.exceptions import NoStorageBackendError
from textlayer.lib.storage.base import (
    META_CATEGORY,
    META_USERNAME,
    AssetCategory,
    ExpirationRecord,
    RemoteStorageBackend,
    StoredAsset,
    to_epoch_ms,
)
from textlayer.lib.storage.local import LocalStorageBackend
from textlayer.lib.storage.manager import is_available
from textlayer.lib.storage.routing import StorageRoute

logger = logging.getLogger(__name__)


def build_asset_name(category: AssetCategory, extension: str = "png") -> str:
    """Unique asset filename: ``<category>_<epoch-ms>_<random>.<ext>``."""
    stamp = to_epoch_ms(datetime.now(UTC))
    return f"{category.value}_{stamp}_{secrets.token_hex(4)}.{extension}"


@dataclass
class StorageResult:
    """Where one asset ended up. Fields of backends not written stay None."""

    logical_name: str
    category: AssetCategory
    created_at: datetime
    expires_at: datetime | None = None
    local_path: str | None = None
    local_url: str | None = None
    remote_id: str | None = None
    remote_url: str | None = None
    upload_error: str | None = None

    @property
    def stored_locally(self) -> bool:
        return self.local_path is not None

    @property
    def stored_remotely(self) -> bool:
        return self.remote_id is not None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "name": self.logical_name,
            "category": self.category.value,
            "created_at": self.created_at.isoformat(),
        }
        if self.stored_locally:
            data["local_path"] = self.local_path
            data["local_url"] = self.local_url
        if self.stored_remotely:
            data["remote_id"] = self.remote_id
            data["remote_url"] = self.remote_url
            if self.expires_at is not None:
                data["expires_at"] = self.expires_at.isoformat()
        if self.upload_error is not None:
            data["upload_error"] = self.upload_error
        return data


class StorageOrchestrator:
    """Dual-write assets to local and/or remote storage.

    A local write failure propagates (LocalStorageError) and fails the
    request. A remote failure is logged and recorded on the result as
    ``upload_error``; the local copy, if any, is kept.
    """

    def __init__(
        self,
        local: LocalStorageBackend,
        remote: RemoteStorageBackend,
        retention: timedelta,
    ) -> None:
        self._local = local
        self._remote = remote
        self._retention = retention

    @property
    def local(self) -> LocalStorageBackend:
        return self._local

    @property
    def remote(self) -> RemoteStorageBackend:
        return self._remote

    @property
    def retention(self) -> timedelta:
        return self._retention

    async def store(self, asset: StoredAsset, route: StorageRoute) -> StorageResult:
        if not route.use_local and not route.use_remote:
            raise NoStorageBackendError("No storage backend selected for this request")

        record = ExpirationRecord.for_category(asset.category, asset.created_at, self._retention)
        result = StorageResult(
            logical_name=asset.logical_name,
            category=asset.category,
            created_at=asset.created_at,
        )

        if route.use_local:
            stored = await self._local.put(route.namespace, asset.logical_name, asset.data)
            result.local_path = str(stored.path)
            result.local_url = stored.url

        if route.use_remote:
            await self._store_remote(asset, route, record, result)

        return result

    async def store_many(
        self, assets: Iterable[StoredAsset], route: StorageRoute
    ) -> list[StorageResult]:
        """Store related assets (e.g. original and cut-out) on the same route.

        Each asset reports its own outcome; nothing is rolled back.
        """
        return [await self.store(asset, route) for asset in assets]

    async def _store_remote(
        self,
        asset: StoredAsset,
        route: StorageRoute,
        record: ExpirationRecord,
        result: StorageResult,
    ) -> None:
        if not is_available(self._remote):
            result.upload_error = f"Remote storage not initialized: {self._remote.reason}"
            logger.error("Skipping remote upload of %s: %s", asset.logical_name, result.upload_error)
            return

        metadata = {
            META_USERNAME: route.username,
            META_CATEGORY: asset.category.value,
            **record.to_metadata(),
        }
        try:
            obj = await self._remote.upload(
                asset.data, asset.logical_name, route.remote_base_path, metadata
            )
        except Exception as exc:
            logger.error("Remote upload of %s failed", asset.logical_name, exc_info=True)
            result.upload_error = str(exc) or type(exc).__name__
            return

        result.remote_id = obj.id
        result.remote_url = obj.url
        result.expires_at = record.expires_at
