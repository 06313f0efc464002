"""textlayer - async image text-overlay service."""

__version__ = "0.1.0"
