"""Shared helpers for the API controllers."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from litestar import Request

from textlayer.lib.exceptions import AssetNotFoundError, RemoteStorageError
from textlayer.lib.storage.local import LOCAL_URL_PREFIX
from textlayer.lib.storage.manager import is_available
from textlayer.lib.storage.routing import StorageRoute, resolve_storage_route

if TYPE_CHECKING:
    from textlayer.config import Settings
    from textlayer.lib.imaging import ImageProcessor
    from textlayer.lib.storage.orchestrator import StorageOrchestrator, StorageResult

logger = logging.getLogger(__name__)

NOT_SET = "NOT SET"


def get_settings_from(request: Request) -> Settings:
    return request.app.state.settings


def get_orchestrator(request: Request) -> StorageOrchestrator:
    return request.app.state.orchestrator


def get_processor(request: Request) -> ImageProcessor:
    return request.app.state.processor


def route_for(request: Request, storage: str | None, username: str | None) -> StorageRoute:
    """Resolve the storage route of this request (raises before any write)."""
    return resolve_storage_route(storage, username, get_settings_from(request).storage)


async def load_asset(request: Request, reference: str) -> bytes:
    """Read an input image given as local path, local URL or remote id.

    Local storage is tried first; the remote backend is the fallback.
    """
    orchestrator = get_orchestrator(request)
    local = orchestrator.local

    ref = reference.strip()
    if not ref or "\x00" in ref:
        raise AssetNotFoundError(f"Asset not found: {reference!r}")
    if ref.startswith(f"{LOCAL_URL_PREFIX}/"):
        ref = ref[len(LOCAL_URL_PREFIX) + 1:]

    try:
        key = local.key_from_path(ref)
    except AssetNotFoundError:
        key = None
    if key is not None and await local.exists(key):
        return await local.get(key)

    remote = orchestrator.remote
    if not is_available(remote):
        raise AssetNotFoundError(f"Asset not found: {reference}")
    try:
        return await remote.download(ref)
    except AssetNotFoundError:
        raise
    except Exception as exc:
        raise RemoteStorageError(f"Could not read {reference} from remote storage: {exc}") from exc


def primary_reference(result: StorageResult) -> str | None:
    """The path a client passes back to reference this asset later."""
    return result.local_path or result.remote_id


def header_safe(value: str) -> str:
    """Collapse whitespace and replace what latin-1 header values cannot carry."""
    return " ".join(value.split()).encode("latin-1", "replace").decode("latin-1")


def storage_headers(result: StorageResult, retention_days: float) -> dict[str, str]:
    """Headers describing where a directly-returned image was stored."""
    headers: dict[str, str] = {}
    if result.stored_locally:
        headers["X-Local-Path"] = result.local_path
    if result.stored_remotely:
        headers["X-Image-URL"] = result.remote_url
        if result.expires_at is not None:
            headers["X-Expires-In"] = f"{retention_days:g} days"
            headers["X-Expires-At"] = result.expires_at.isoformat()
    elif result.upload_error is not None:
        headers["X-Image-URL"] = NOT_SET
        headers["X-Error"] = header_safe(result.upload_error)
    return headers
