"""Remote backend construction."""

from __future__ import annotations

import importlib
import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from textlayer.lib.exceptions import RemoteStorageUnavailableError
from textlayer.lib.storage.memory import InMemoryRemoteBackend

if TYPE_CHECKING:
    from textlayer.config import RemoteStoreConfig
    from textlayer.lib.storage.base import RemoteEntry, RemoteObject, RemoteStorageBackend

logger = logging.getLogger(__name__)


@dataclass
class UnavailableRemoteBackend:
    """Stands in for a remote backend that failed to initialize.

    Every operation raises RemoteStorageUnavailableError carrying the reason.
    """

    name: str
    reason: str

    def _fail(self):
        raise RemoteStorageUnavailableError(f"Remote storage not initialized: {self.reason}")

    async def upload(
        self, data: bytes, name: str, namespace: str, metadata: dict[str, str]
    ) -> RemoteObject:
        self._fail()

    async def list(self, namespace: str = "", category: str | None = None) -> list[RemoteEntry]:
        self._fail()

    async def get_metadata(self, name: str) -> dict[str, str]:
        self._fail()

    async def delete(self, name: str) -> None:
        self._fail()

    async def download(self, name: str) -> bytes:
        self._fail()

    async def close(self) -> None:
        pass


def is_available(backend: RemoteStorageBackend) -> bool:
    return not isinstance(backend, UnavailableRemoteBackend)


def load_backend_class(spec: str) -> type:
    """Import a backend class from a 'module:ClassName' string."""
    parts = spec.split(":")
    if len(parts) != 2:
        raise ValueError(
            f"Invalid backend spec '{spec}': must contain exactly one colon"
        )
    module_path, class_name = parts
    module = importlib.import_module(module_path)
    return getattr(module, class_name)


def create_remote_backend(config: RemoteStoreConfig) -> RemoteStorageBackend:
    """Instantiate the configured remote backend."""
    backend_type = config.backend

    if backend_type == "memory":
        return InMemoryRemoteBackend(name=config.name)

    if backend_type == "s3":
        from textlayer.lib.storage.s3 import S3RemoteBackend

        return S3RemoteBackend(config.s3, name=config.name)

    if ":" in backend_type:
        cls = load_backend_class(backend_type)
        return cls(config)

    raise ValueError(
        f"Unknown remote backend '{backend_type}'. "
        "Use 'memory', 's3', or 'module:ClassName'."
    )


def open_remote_backend(config: RemoteStoreConfig) -> RemoteStorageBackend:
    """Create the remote backend, degrading to UnavailableRemoteBackend on failure."""
    try:
        backend = create_remote_backend(config)
    except Exception as exc:
        logger.error("Failed to initialize remote storage %r", config.backend, exc_info=True)
        return UnavailableRemoteBackend(name=config.name, reason=str(exc))
    logger.info("Remote storage %r initialized (%s)", config.name, config.backend)
    return backend
