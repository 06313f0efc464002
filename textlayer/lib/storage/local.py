"""Local filesystem storage backend."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from pathlib import Path, PurePosixPath

from textlayer.lib.exceptions import AssetNotFoundError, LocalStorageError

LOCAL_URL_PREFIX = "/storage/local"


@dataclass(frozen=True)
class LocalFile:
    """Location of a file written by :class:`LocalStorageBackend`."""

    key: str
    path: Path
    url: str


class LocalStorageBackend:
    """Store files under ``base_path/<namespace>/<name>``."""

    def __init__(self, base_path: Path) -> None:
        self._base_path = base_path

    @property
    def base_path(self) -> Path:
        return self._base_path

    async def put(self, namespace: str, name: str, data: bytes) -> LocalFile:
        """Write *data*, creating the namespace directory if needed."""
        key = f"{namespace}/{name}" if namespace else name
        path = self.key_to_path(key)
        try:
            await asyncio.to_thread(self._write_file, path, data)
        except OSError as exc:
            raise LocalStorageError(f"Failed to write {key}: {exc}") from exc
        return LocalFile(key=key, path=path, url=self.build_url(key))

    async def get(self, key: str) -> bytes:
        path = self.key_to_path(key)
        try:
            return await asyncio.to_thread(path.read_bytes)
        except FileNotFoundError as exc:
            raise AssetNotFoundError(f"Asset not found: {key}") from exc

    async def exists(self, key: str) -> bool:
        try:
            path = self.key_to_path(key)
        except AssetNotFoundError:
            return False
        return await asyncio.to_thread(path.is_file)

    def key_to_path(self, key: str) -> Path:
        """Map a ``namespace/name`` key to a path inside the base directory.

        Keys containing ``..`` segments, absolute paths or null bytes are
        rejected with AssetNotFoundError.
        """
        pure = PurePosixPath(key)
        if not key or "\x00" in key or pure.is_absolute() or ".." in pure.parts:
            raise AssetNotFoundError(f"Invalid asset key: {key!r}")
        return self._base_path.joinpath(*pure.parts)

    def key_from_path(self, path: str | Path) -> str:
        """Return the key of *path*, which may be absolute or base-relative."""
        if "\x00" in str(path):
            raise AssetNotFoundError(f"Invalid asset path: {path!r}")
        candidate = Path(path)
        base = self._base_path.resolve()
        if candidate.is_absolute():
            resolved = candidate.resolve()
        else:
            resolved = (Path.cwd() / candidate).resolve()
            if not resolved.is_relative_to(base):
                resolved = (base / candidate).resolve()
        if not resolved.is_relative_to(base):
            raise AssetNotFoundError(f"Path outside local storage: {path}")
        return resolved.relative_to(base).as_posix()

    @staticmethod
    def build_url(key: str) -> str:
        return f"{LOCAL_URL_PREFIX}/{key}"

    @staticmethod
    def _write_file(path: Path, data: bytes) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(data)
