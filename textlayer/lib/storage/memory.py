"""In-process remote backend for development and tests."""

from __future__ import annotations

from typing import Any

from textlayer.lib.exceptions import AssetNotFoundError
from textlayer.lib.storage.base import RemoteEntry, RemoteObject, matches_category


class InMemoryRemoteBackend:
    """Dict-based object store. Nothing survives a restart."""

    def __init__(self, name: str = "remote", **kwargs: Any) -> None:
        self.name = name
        self._objects: dict[str, tuple[bytes, dict[str, str]]] = {}

    async def upload(
        self, data: bytes, name: str, namespace: str, metadata: dict[str, str]
    ) -> RemoteObject:
        key = f"{namespace.rstrip('/')}/{name}" if namespace else name
        self._objects[key] = (data, dict(metadata))
        return RemoteObject(id=key, url=f"memory://{key}")

    async def list(self, namespace: str = "", category: str | None = None) -> list[RemoteEntry]:
        prefix = f"{namespace.rstrip('/')}/" if namespace else ""
        return [
            RemoteEntry(name=key, metadata=dict(meta))
            for key, (_, meta) in self._objects.items()
            if key.startswith(prefix) and matches_category(key, category)
        ]

    async def get_metadata(self, name: str) -> dict[str, str]:
        try:
            return dict(self._objects[name][1])
        except KeyError as exc:
            raise AssetNotFoundError(f"Remote object not found: {name}") from exc

    async def delete(self, name: str) -> None:
        self._objects.pop(name, None)

    async def download(self, name: str) -> bytes:
        try:
            return self._objects[name][0]
        except KeyError as exc:
            raise AssetNotFoundError(f"Remote object not found: {name}") from exc

    async def close(self) -> None:
        pass

    def __contains__(self, name: str) -> bool:
        return name in self._objects

    def __len__(self) -> int:
        return len(self._objects)
