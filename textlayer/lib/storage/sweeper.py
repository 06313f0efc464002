"""Delete expired assets from remote storage."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum

from textlayer.lib import observability
from textlayer.lib.storage.base import ExpirationRecord, RemoteStorageBackend

logger = logging.getLogger(__name__)


class SweepStatus(str, Enum):
    DELETED = "deleted"
    NOT_EXPIRED = "not_expired"
    NO_EXPIRY = "no_expiry"
    FAILED = "failed"


@dataclass
class SweepOutcome:
    name: str
    status: SweepStatus
    error: str | None = None


@dataclass
class SweepReport:
    started_at: datetime
    outcomes: list[SweepOutcome] = field(default_factory=list)
    error: str | None = None

    def names(self, status: SweepStatus) -> list[str]:
        return [o.name for o in self.outcomes if o.status is status]

    @property
    def deleted(self) -> list[str]:
        return self.names(SweepStatus.DELETED)

    @property
    def failed(self) -> list[str]:
        return self.names(SweepStatus.FAILED)


class ExpirationSweeper:
    """Remove remote assets whose ``expires-at`` metadata lies in the past.

    Stateless: running it repeatedly over the same objects converges to the
    same result, and deleting an already-deleted object is harmless.
    """

    def __init__(
        self,
        backend: RemoteStorageBackend,
        namespace: str = "",
        category: str | None = "preview",
    ) -> None:
        self._backend = backend
        self._namespace = namespace
        self._category = category

    async def sweep(self, now: datetime | None = None) -> SweepReport:
        now = now or datetime.now(UTC)
        report = SweepReport(started_at=now)

        with observability.span("storage.sweep", namespace=self._namespace):
            try:
                entries = await self._backend.list(self._namespace, self._category)
            except Exception as exc:
                logger.error("Error listing remote assets for cleanup: %s", exc, exc_info=True)
                report.error = str(exc)
                return report

            for entry in entries:
                report.outcomes.append(await self._sweep_one(entry.name, now))

        logger.info(
            "Expiration sweep finished: %d checked, %d deleted, %d failed",
            len(report.outcomes),
            len(report.deleted),
            len(report.failed),
        )
        return report

    async def _sweep_one(self, name: str, now: datetime) -> SweepOutcome:
        try:
            metadata = await self._backend.get_metadata(name)
            record = ExpirationRecord.from_metadata(metadata)
            if record is None or record.expires_at is None:
                return SweepOutcome(name, SweepStatus.NO_EXPIRY)
            if not record.is_expired(now):
                return SweepOutcome(name, SweepStatus.NOT_EXPIRED)
            await self._backend.delete(name)
        except Exception as exc:
            logger.warning("Failed to clean up %s: %s", name, exc)
            return SweepOutcome(name, SweepStatus.FAILED, error=str(exc))

        logger.info("Deleted expired image: %s", name)
        return SweepOutcome(name, SweepStatus.DELETED)
