"""Local and remote asset storage."""

from textlayer.lib.storage.base import (
    AssetCategory,
    ExpirationRecord,
    RemoteEntry,
    RemoteObject,
    RemoteStorageBackend,
    StoredAsset,
)
from textlayer.lib.storage.local import LocalStorageBackend
from textlayer.lib.storage.manager import UnavailableRemoteBackend, open_remote_backend
from textlayer.lib.storage.memory import InMemoryRemoteBackend
from textlayer.lib.storage.orchestrator import StorageOrchestrator, StorageResult, build_asset_name
from textlayer.lib.storage.routing import StorageRoute, resolve_storage_route
from textlayer.lib.storage.sweeper import ExpirationSweeper, SweepReport, SweepStatus

__all__ = [
    "AssetCategory",
    "ExpirationRecord",
    "ExpirationSweeper",
    "InMemoryRemoteBackend",
    "LocalStorageBackend",
    "RemoteEntry",
    "RemoteObject",
    "RemoteStorageBackend",
    "StorageOrchestrator",
    "StorageResult",
    "StorageRoute",
    "StoredAsset",
    "SweepReport",
    "SweepStatus",
    "UnavailableRemoteBackend",
    "build_asset_name",
    "open_remote_backend",
    "resolve_storage_route",
]
