"""In-process font table used by the image processor."""

from __future__ import annotations

import logging

from PIL import ImageFont

from textlayer.lib.fonts.models import FontVariantFile

logger = logging.getLogger(__name__)


class FontRegistry:
    """Append-only registry of font variants, keyed by family name.

    A ``(family, variant_index)`` pair is registered at most once; there is no
    way to unregister.
    """

    def __init__(self) -> None:
        self._variants: dict[str, dict[int, FontVariantFile]] = {}

    def register(self, variant: FontVariantFile) -> bool:
        """Register *variant*. Returns False if it was already registered."""
        family = self._variants.setdefault(variant.family_name, {})
        if variant.variant_index in family:
            return False
        family[variant.variant_index] = variant
        return True

    def families(self) -> list[str]:
        return list(self._variants)

    def variants(self, family_name: str) -> list[FontVariantFile]:
        family = self._variants.get(family_name, {})
        return [family[i] for i in sorted(family)]

    def __len__(self) -> int:
        return sum(len(v) for v in self._variants.values())

    def load(self, family_name: str | None, size: int, variant_index: int = 0):
        """Open a Pillow font for *family_name*.

        Falls back to the first registered variant of the family, then to
        Pillow's built-in font when the family is unknown.
        """
        variants = self.variants(family_name) if family_name else []
        chosen = next((v for v in variants if v.variant_index == variant_index), None)
        if chosen is None and variants:
            chosen = variants[0]
        if chosen is not None:
            try:
                return ImageFont.truetype(str(chosen.local_path), size)
            except OSError:
                logger.warning("Could not open font file %s", chosen.local_path, exc_info=True)
        return ImageFont.load_default(size)
