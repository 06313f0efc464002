"""Download and register the fonts listed in the font manifest."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Sequence
from pathlib import Path
from typing import TYPE_CHECKING

import httpx

from textlayer.lib import observability
from textlayer.lib.exceptions import FontFetchError
from textlayer.lib.fonts.manifest import parse_font_manifest
from textlayer.lib.fonts.models import (
    FontManifestEntry,
    FontVariantFile,
    ProvisioningReport,
    VariantOutcome,
    VariantStatus,
    variant_filename,
)
from textlayer.lib.fonts.registry import FontRegistry
from textlayer.lib.fonts.resolver import FontVariantResolver, fetch_bytes

if TYPE_CHECKING:
    from textlayer.config import FontsConfig

logger = logging.getLogger(__name__)


class FontProvisioner:
    """Resolve, download and register every family of a font manifest.

    Families are processed one after another in manifest order. Variants of a
    family are downloaded concurrently; files already present in
    ``fonts_dir`` are reused without any network I/O.
    """

    def __init__(
        self,
        client: httpx.AsyncClient,
        fonts_dir: Path,
        registry: FontRegistry,
        resolver: FontVariantResolver | None = None,
    ) -> None:
        self._client = client
        self._fonts_dir = fonts_dir
        self._registry = registry
        self._resolver = resolver or FontVariantResolver(client)

    @property
    def registry(self) -> FontRegistry:
        return self._registry

    async def provision_from_file(self, manifest_path: Path) -> ProvisioningReport:
        """Provision the families listed in the manifest at *manifest_path*."""
        try:
            text = await asyncio.to_thread(manifest_path.read_text, encoding="utf-8")
        except OSError:
            logger.warning("Font manifest %s could not be read", manifest_path, exc_info=True)
            return ProvisioningReport()
        return await self.provision(text)

    async def provision(
        self, manifest: str | Sequence[FontManifestEntry]
    ) -> ProvisioningReport:
        """Provision all families of *manifest* (text or parsed entries)."""
        entries = parse_font_manifest(manifest) if isinstance(manifest, str) else list(manifest)
        report = ProvisioningReport()

        with observability.span("fonts.provision", families=len(entries)):
            await asyncio.to_thread(self._fonts_dir.mkdir, parents=True, exist_ok=True)
            for entry in entries:
                try:
                    await self._provision_family(entry, report)
                except Exception:
                    logger.exception("Error processing font family %s", entry.family_name)
                    report.failed_families.append(entry.family_name)

        logger.info(
            "All fonts processed: %d downloaded, %d cached, %d failed",
            report.downloaded,
            report.cached,
            report.failed,
        )
        return report

    async def _provision_family(self, entry: FontManifestEntry, report: ProvisioningReport) -> None:
        urls = await self._resolver.resolve(entry.manifest_url, entry.family_name)

        outcomes = await asyncio.gather(
            *(self._ensure_variant(entry.family_name, i, url) for i, url in enumerate(urls))
        )
        report.outcomes.extend(outcomes)

        for outcome in outcomes:
            if outcome.status is VariantStatus.FAILED:
                continue
            variant = FontVariantFile(
                family_name=entry.family_name,
                variant_index=outcome.variant_index,
                local_path=self.variant_path(entry.family_name, outcome.variant_index),
                source_url=outcome.source_url,
            )
            if self._registry.register(variant):
                logger.info("Registered: %s (variant %d)", entry.family_name, outcome.variant_index + 1)
            report.registered.append(variant)

    def variant_path(self, family_name: str, variant_index: int) -> Path:
        return self._fonts_dir / variant_filename(family_name, variant_index)

    async def _ensure_variant(self, family_name: str, index: int, url: str) -> VariantOutcome:
        path = self.variant_path(family_name, index)

        if await asyncio.to_thread(path.exists):
            logger.info("Font already exists: %s (variant %d)", family_name, index + 1)
            return VariantOutcome(family_name, index, url, VariantStatus.CACHED)

        try:
            data = await fetch_bytes(self._client, url)
            await asyncio.to_thread(path.write_bytes, data)
        except (FontFetchError, OSError) as exc:
            logger.error("Error downloading %s (variant %d): %s", family_name, index + 1, exc)
            return VariantOutcome(family_name, index, url, VariantStatus.FAILED, error=str(exc))

        logger.info("Downloaded: %s (variant %d)", family_name, index + 1)
        return VariantOutcome(family_name, index, url, VariantStatus.DOWNLOADED)


def build_http_client(config: FontsConfig) -> httpx.AsyncClient:
    headers = {"User-Agent": config.user_agent} if config.user_agent else None
    return httpx.AsyncClient(
        timeout=config.request_timeout,
        headers=headers,
        follow_redirects=True,
    )


async def provision_configured_fonts(
    config: FontsConfig,
    registry: FontRegistry,
    client: httpx.AsyncClient | None = None,
) -> ProvisioningReport:
    """Provision the manifest named by *config* into *registry*.

    A client is created (and closed) when none is passed in.
    """
    owns_client = client is None
    if client is None:
        client = build_http_client(config)
    try:
        provisioner = FontProvisioner(client, Path(config.fonts_dir), registry)
        return await provisioner.provision_from_file(Path(config.manifest_path))
    finally:
        if owns_client:
            await client.aclose()
