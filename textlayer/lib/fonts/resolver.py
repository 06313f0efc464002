"""Resolve a family's manifest URL into downloadable variant URLs."""

from __future__ import annotations

import logging

import httpx

from textlayer.lib.exceptions import FontFetchError
from textlayer.lib.fonts.css import is_truetype_https_url, scan_url_references

logger = logging.getLogger(__name__)


async def fetch_bytes(client: httpx.AsyncClient, url: str) -> bytes:
    """GET *url* and return the body, raising FontFetchError on any failure."""
    try:
        response = await client.get(url)
        response.raise_for_status()
    except httpx.HTTPError as exc:
        raise FontFetchError(f"Failed to fetch {url}: {exc}") from exc
    return response.content


def extract_variant_urls(css_text: str) -> list[str]:
    """Return the TrueType variant URLs of a manifest document.

    Order follows first appearance; repeated URLs are dropped.
    """
    seen: set[str] = set()
    urls: list[str] = []
    for ref in scan_url_references(css_text):
        if ref.url in seen or not is_truetype_https_url(ref.url):
            continue
        seen.add(ref.url)
        urls.append(ref.url)
    return urls


class FontVariantResolver:
    """Fetch manifest documents and list the variant files they reference."""

    def __init__(self, client: httpx.AsyncClient) -> None:
        self._client = client

    async def resolve(self, manifest_url: str, family_name: str | None = None) -> list[str]:
        """Return the variant URLs for one family.

        Network failures are logged and reported as zero variants so that one
        family never aborts provisioning of the others.
        """
        label = family_name or manifest_url
        try:
            body = await fetch_bytes(self._client, manifest_url)
        except FontFetchError as exc:
            logger.error("Error downloading %s: %s", label, exc)
            return []

        urls = extract_variant_urls(body.decode("utf-8", errors="replace"))
        if not urls:
            logger.info("No font files found for %s", label)
        return urls
