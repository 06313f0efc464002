"""Remote backend protocol, stored-asset types and expiration metadata."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from enum import Enum
from typing import Protocol, runtime_checkable

# Metadata keys attached to remote objects
META_USERNAME = "username"
META_CATEGORY = "category"
META_CREATED_AT = "created-at"
META_EXPIRES_AT = "expires-at"


class AssetCategory(str, Enum):
    ORIGINAL = "original"
    BG_REMOVED = "bg_removed"
    TEXT_ADDED = "text_added"
    PREVIEW = "preview"

    @property
    def expires(self) -> bool:
        """Only previews carry an expiration time."""
        return self is AssetCategory.PREVIEW


def to_epoch_ms(moment: datetime) -> int:
    return int(moment.timestamp() * 1000)


def from_epoch_ms(value: str | int) -> datetime:
    return datetime.fromtimestamp(int(value) / 1000, tz=UTC)


@dataclass(frozen=True)
class ExpirationRecord:
    """Creation and expiry times embedded in remote object metadata."""

    created_at: datetime
    expires_at: datetime | None = None

    @classmethod
    def for_category(
        cls, category: AssetCategory, created_at: datetime, retention: timedelta
    ) -> ExpirationRecord:
        expires_at = created_at + retention if category.expires else None
        return cls(created_at=created_at, expires_at=expires_at)

    @classmethod
    def from_metadata(cls, metadata: dict[str, str]) -> ExpirationRecord | None:
        """Parse metadata written by :meth:`to_metadata`.

        Returns ``None`` when no creation time is present; malformed values
        raise ``ValueError``.
        """
        created = metadata.get(META_CREATED_AT)
        if created is None:
            return None
        expires = metadata.get(META_EXPIRES_AT)
        return cls(
            created_at=from_epoch_ms(created),
            expires_at=from_epoch_ms(expires) if expires else None,
        )

    def to_metadata(self) -> dict[str, str]:
        meta = {META_CREATED_AT: str(to_epoch_ms(self.created_at))}
        if self.expires_at is not None:
            meta[META_EXPIRES_AT] = str(to_epoch_ms(self.expires_at))
        return meta

    def is_expired(self, now: datetime) -> bool:
        return self.expires_at is not None and now > self.expires_at


@dataclass
class StoredAsset:
    """A generated image about to be written to storage."""

    logical_name: str
    data: bytes
    category: AssetCategory
    content_type: str = "image/png"
    created_at: datetime = field(default_factory=lambda: datetime.now(UTC))


@dataclass(frozen=True)
class RemoteObject:
    """Identifier and public URL of an uploaded object."""

    id: str
    url: str


@dataclass(frozen=True)
class RemoteEntry:
    """A listed remote object. ``metadata`` may be empty if the backend
    cannot return it with listings; use ``get_metadata`` for the full set."""

    name: str
    metadata: dict[str, str] = field(default_factory=dict)


def matches_category(name: str, category: str | None) -> bool:
    """Asset names start with their category: ``preview_<ts>_<rand>.png``."""
    if category is None:
        return True
    return name.rsplit("/", 1)[-1].startswith(f"{category}_")


@runtime_checkable
class RemoteStorageBackend(Protocol):
    """Interface every remote object store has to provide."""

    name: str

    async def upload(
        self, data: bytes, name: str, namespace: str, metadata: dict[str, str]
    ) -> RemoteObject:
        """Store *data* as ``namespace/name`` with the given metadata."""
        ...

    async def list(self, namespace: str = "", category: str | None = None) -> list[RemoteEntry]:
        """List objects under *namespace*, optionally only one asset category."""
        ...

    async def get_metadata(self, name: str) -> dict[str, str]:
        """Return the metadata stored with object *name*."""
        ...

    async def delete(self, name: str) -> None:
        """Remove object *name*; removing a missing object is not an error."""
        ...

    async def download(self, name: str) -> bytes:
        """Return the bytes of object *name*."""
        ...

    async def close(self) -> None: ...
