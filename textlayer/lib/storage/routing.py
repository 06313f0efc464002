"""Per-request storage route resolution."""

from __future__ import annotations

import re
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING

from textlayer.lib.exceptions import NoStorageBackendError

if TYPE_CHECKING:
    from textlayer.config import StorageConfig

LOCAL_SELECTOR = "local"
REMOTE_SELECTOR = "remote"

_UNSAFE_SEGMENT_CHARS = re.compile(r"[^A-Za-z0-9_.@-]")


@dataclass(frozen=True)
class StorageRoute:
    """Which backends receive an asset and under which namespace."""

    use_local: bool
    use_remote: bool
    username: str
    namespace: str
    local_base_path: Path
    remote_base_path: str


def normalize_username(username: str | None, default: str) -> str:
    """Reduce *username* to one safe path segment, falling back to *default*."""
    cleaned = _UNSAFE_SEGMENT_CHARS.sub("_", (username or "").strip()).strip(".")
    return cleaned or default


def resolve_storage_route(
    storage_selector: str | None,
    username: str | None,
    config: StorageConfig,
) -> StorageRoute:
    """Combine the ``?storage=`` selector with the configured defaults.

    Each backend is enabled by ``explicit selector OR configured default``;
    both may end up enabled. Raises NoStorageBackendError when neither is.
    """
    selector = (storage_selector or "").strip().lower()
    use_local = selector == LOCAL_SELECTOR or config.local_enabled
    remote_selectors = {REMOTE_SELECTOR, config.remote.name.lower()}
    use_remote = (bool(selector) and selector in remote_selectors) or config.remote_enabled

    if not use_local and not use_remote:
        raise NoStorageBackendError("No storage backend selected for this request")

    user = normalize_username(username, config.default_username)
    namespace = f"{config.base_segment.strip('/')}/{user}"
    return StorageRoute(
        use_local=use_local,
        use_remote=use_remote,
        username=user,
        namespace=namespace,
        local_base_path=Path(config.local_path) / namespace,
        remote_base_path=namespace,
    )
