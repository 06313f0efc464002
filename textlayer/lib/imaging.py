"""Image operations behind the API: background removal, text overlay, previews."""

from __future__ import annotations

import io
from typing import Protocol, runtime_checkable

from PIL import Image, ImageChops, ImageColor, ImageDraw, ImageFont, UnidentifiedImageError
from pydantic import BaseModel, Field

from textlayer.lib.exceptions import ImageProcessingError
from textlayer.lib.fonts.registry import FontRegistry


class TextParams(BaseModel):
    """How to draw a text layer.

    ``x`` and ``y`` are fractions of the image width and height; the text is
    anchored on its centre.
    """

    text: str = ""
    font_family: str | None = None
    font_size: int = Field(default=48, gt=0, le=2000)
    variant_index: int = Field(default=0, ge=0)
    color: str = "#FFFFFF"
    x: float = 0.5
    y: float = 0.5
    stroke_width: int = Field(default=0, ge=0)
    stroke_color: str = "#000000"


def detect_image_content_type(data: bytes) -> str | None:
    """Detect image content type from magic bytes.

    Returns ``None`` if the data does not match a known image signature.
    """
    if data[:3] == b"\xff\xd8\xff":
        return "image/jpeg"
    if data[:8] == b"\x89PNG\r\n\x1a\n":
        return "image/png"
    if data[:4] == b"RIFF" and data[8:12] == b"WEBP":
        return "image/webp"
    if data[:6] in (b"GIF87a", b"GIF89a"):
        return "image/gif"
    return None


@runtime_checkable
class ImageProcessor(Protocol):
    """Operations the HTTP layer needs. All take and return encoded bytes."""

    def remove_background(self, data: bytes) -> bytes: ...

    def add_text(self, data: bytes, params: TextParams) -> bytes: ...

    def preview(self, original: bytes, removed_bg: bytes, params: TextParams) -> bytes: ...


def _open_rgba(data: bytes) -> Image.Image:
    try:
        img = Image.open(io.BytesIO(data))
        img.load()
    except (UnidentifiedImageError, OSError) as exc:
        raise ImageProcessingError(f"Unreadable image: {exc}") from exc
    return img.convert("RGBA")


def _encode_png(img: Image.Image) -> bytes:
    buf = io.BytesIO()
    img.save(buf, format="PNG", optimize=True)
    return buf.getvalue()


def _parse_color(value: str) -> tuple[int, ...]:
    try:
        return ImageColor.getrgb(value)
    except ValueError as exc:
        raise ImageProcessingError(f"Invalid color: {value!r}") from exc


class PillowImageProcessor:
    """Pillow implementation of :class:`ImageProcessor`.

    Background removal keys out the colour found in the image corners, which
    suits studio shots on a plain backdrop.
    """

    def __init__(self, fonts: FontRegistry, tolerance: int = 40) -> None:
        self._fonts = fonts
        self._tolerance = tolerance

    def remove_background(self, data: bytes) -> bytes:
        img = _open_rgba(data)
        rgb = img.convert("RGB")
        w, h = rgb.size
        corners = [rgb.getpixel(p) for p in ((0, 0), (w - 1, 0), (0, h - 1), (w - 1, h - 1))]
        key = tuple(sum(c[i] for c in corners) // len(corners) for i in range(3))

        diff = ImageChops.difference(rgb, Image.new("RGB", rgb.size, key)).convert("L")
        mask = diff.point(lambda v: 255 if v > self._tolerance else 0)
        alpha = ImageChops.multiply(img.getchannel("A"), mask)
        img.putalpha(alpha)
        return _encode_png(img)

    def add_text(self, data: bytes, params: TextParams) -> bytes:
        img = _open_rgba(data)
        self._draw_text(img, params)
        return _encode_png(img)

    def preview(self, original: bytes, removed_bg: bytes, params: TextParams) -> bytes:
        """Layer original, text, then the cut-out subject on top."""
        base = _open_rgba(original)
        subject = _open_rgba(removed_bg)
        if subject.size != base.size:
            subject = subject.resize(base.size, Image.LANCZOS)

        self._draw_text(base, params)
        base.alpha_composite(subject)
        return _encode_png(base)

    def _draw_text(self, img: Image.Image, params: TextParams) -> None:
        if not params.text:
            return
        font = self._fonts.load(params.font_family, params.font_size, params.variant_index)
        draw = ImageDraw.Draw(img)
        w, h = img.size
        kwargs: dict = {"font": font, "fill": _parse_color(params.color)}
        # Anchors and strokes need FreeType; the bitmap fallback font has neither
        if isinstance(font, ImageFont.FreeTypeFont):
            kwargs["anchor"] = "mm"
            kwargs["stroke_width"] = params.stroke_width
            kwargs["stroke_fill"] = _parse_color(params.stroke_color)
        draw.text((params.x * w, params.y * h), params.text, **kwargs)
