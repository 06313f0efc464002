"""Parse the font manifest stylesheet into family entries."""

from __future__ import annotations

import logging
from urllib.parse import parse_qsl, urlsplit

from textlayer.lib.fonts.css import scan_import_urls
from textlayer.lib.fonts.models import FontManifestEntry

logger = logging.getLogger(__name__)


def family_from_manifest_url(url: str) -> str | None:
    """Extract the family name from a ``...?family=Open+Sans:wght@400`` URL.

    Returns ``None`` when the URL carries no ``family`` parameter or cannot
    be parsed at all.
    """
    try:
        query = urlsplit(url).query
    except ValueError:
        return None
    for key, value in parse_qsl(query, keep_blank_values=True):
        if key == "family":
            name = value.split(":", 1)[0].strip()
            return name or None
    return None


def parse_font_manifest(text: str) -> list[FontManifestEntry]:
    """Return one entry per ``@import url(...)`` directive, in source order.

    Directives that cannot be interpreted are skipped; an empty or malformed
    manifest yields an empty list.
    """
    entries: list[FontManifestEntry] = []
    for ref in scan_import_urls(text):
        family = family_from_manifest_url(ref.url)
        if family is None:
            logger.warning("Skipping font import without a usable family at line %d: %s", ref.line, ref.url)
            continue
        entries.append(FontManifestEntry(family_name=family, manifest_url=ref.url))
    return entries
