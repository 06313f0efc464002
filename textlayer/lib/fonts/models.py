"""Font manifest and font variant records."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path

_UNSAFE_FILENAME_CHARS = re.compile(r"[^A-Za-z0-9_-]")


def sanitize_family_name(family_name: str) -> str:
    """Collapse a family name into a filename stem (``Open Sans`` -> ``OpenSans``)."""
    return _UNSAFE_FILENAME_CHARS.sub("", "".join(family_name.split()))


def variant_filename(family_name: str, variant_index: int) -> str:
    """Deterministic on-disk name for one variant of a family."""
    return f"{sanitize_family_name(family_name)}-{variant_index}.ttf"


@dataclass(frozen=True)
class FontManifestEntry:
    """One ``@import`` directive of the font manifest."""

    family_name: str
    manifest_url: str


@dataclass(frozen=True)
class FontVariantFile:
    """A downloaded font variant; identity is ``(family_name, variant_index)``."""

    family_name: str
    variant_index: int
    local_path: Path
    source_url: str

    @property
    def key(self) -> tuple[str, int]:
        return (self.family_name, self.variant_index)


class VariantStatus(str, Enum):
    DOWNLOADED = "downloaded"
    CACHED = "cached"
    FAILED = "failed"


@dataclass
class VariantOutcome:
    family_name: str
    variant_index: int
    source_url: str
    status: VariantStatus
    error: str | None = None


@dataclass
class ProvisioningReport:
    """Per-variant results of one provisioning run."""

    outcomes: list[VariantOutcome] = field(default_factory=list)
    registered: list[FontVariantFile] = field(default_factory=list)
    failed_families: list[str] = field(default_factory=list)

    def count(self, status: VariantStatus) -> int:
        return sum(1 for o in self.outcomes if o.status is status)

    @property
    def downloaded(self) -> int:
        return self.count(VariantStatus.DOWNLOADED)

    @property
    def cached(self) -> int:
        return self.count(VariantStatus.CACHED)

    @property
    def failed(self) -> int:
        return self.count(VariantStatus.FAILED)
