"""Font manifest parsing, variant download and registration."""

from textlayer.lib.fonts.manifest import parse_font_manifest
from textlayer.lib.fonts.models import (
    FontManifestEntry,
    FontVariantFile,
    ProvisioningReport,
    VariantStatus,
)
from textlayer.lib.fonts.provisioner import FontProvisioner, provision_configured_fonts
from textlayer.lib.fonts.registry import FontRegistry
from textlayer.lib.fonts.resolver import FontVariantResolver

__all__ = [
    "FontManifestEntry",
    "FontProvisioner",
    "FontRegistry",
    "FontVariantFile",
    "FontVariantResolver",
    "ProvisioningReport",
    "VariantStatus",
    "parse_font_manifest",
    "provision_configured_fonts",
]
