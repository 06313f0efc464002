"""ASGI middleware serving locally stored assets."""

from __future__ import annotations

import asyncio
import logging
import mimetypes
from pathlib import Path
from urllib.parse import unquote

from litestar.types import ASGIApp, Receive, Scope, Send

from textlayer.lib.storage.local import LOCAL_URL_PREFIX

logger = logging.getLogger(__name__)


async def send_not_found(send: Send, body: bytes = b"Not Found") -> None:
    await send({
        "type": "http.response.start",
        "status": 404,
        "headers": [(b"content-type", b"text/plain; charset=utf-8")],
    })
    await send({"type": "http.response.body", "body": body})


class StorageFilesMiddleware:
    """Serve files under the local storage root at ``/storage/local/{key}``.

    Remote backends serve via their own URLs and are not intercepted here.
    """

    def __init__(self, app: ASGIApp, local_path: str | Path, prefix: str = LOCAL_URL_PREFIX) -> None:
        self.app = app
        self._base_path = Path(local_path)
        self._prefix = prefix.rstrip("/") + "/"

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http" or not scope["path"].startswith(self._prefix):
            await self.app(scope, receive, send)
            return

        key = unquote(scope["path"][len(self._prefix):])
        resolved = self._resolve(key)
        if resolved is None or not resolved.is_file():
            await send_not_found(send)
            return

        try:
            content = await asyncio.to_thread(resolved.read_bytes)
        except OSError:
            logger.warning("Failed to read %s", resolved, exc_info=True)
            await send_not_found(send)
            return

        media_type = mimetypes.guess_type(resolved.name)[0] or "application/octet-stream"
        await send({
            "type": "http.response.start",
            "status": 200,
            "headers": [
                (b"content-type", media_type.encode()),
                (b"content-length", str(len(content)).encode()),
            ],
        })
        await send({"type": "http.response.body", "body": content})

    def _resolve(self, key: str) -> Path | None:
        # Reject traversal and null bytes before touching the filesystem
        if not key or ".." in key.split("/") or "\x00" in key:
            return None

        base_path = self._base_path.resolve()
        try:
            resolved = (base_path / key).resolve()
        except (OSError, ValueError):
            return None

        if not resolved.is_relative_to(base_path):
            return None
        return resolved
