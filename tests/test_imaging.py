"""Tests for the Pillow image processor."""

import io

import pytest
from PIL import Image

from textlayer.lib.exceptions import ImageProcessingError
from textlayer.lib.imaging import PillowImageProcessor, TextParams, detect_image_content_type

RED = (220, 20, 20)


def _open(data):
    return Image.open(io.BytesIO(data)).convert("RGBA")


@pytest.fixture
def processor(font_registry):
    return PillowImageProcessor(fonts=font_registry)


class TestDetectImageContentType:
    def test_png(self, make_png):
        assert detect_image_content_type(make_png()) == "image/png"

    def test_jpeg(self):
        buf = io.BytesIO()
        Image.new("RGB", (4, 4)).save(buf, format="JPEG")
        assert detect_image_content_type(buf.getvalue()) == "image/jpeg"

    def test_unknown(self):
        assert detect_image_content_type(b"hello world") is None


class TestRemoveBackground:
    def test_border_colour_becomes_transparent(self, processor, make_png):
        result = _open(processor.remove_background(make_png(square=RED)))

        assert result.getpixel((0, 0))[3] == 0
        assert result.getpixel((63, 63))[3] == 0
        assert result.getpixel((32, 32)) == (*RED, 255)

    def test_unreadable_input(self, processor):
        with pytest.raises(ImageProcessingError):
            processor.remove_background(b"definitely not an image")


class TestAddText:
    def test_draws_text(self, processor, make_png):
        source = make_png(size=(128, 64))
        params = TextParams(text="Hi", color="#000000", font_size=40)

        result = _open(processor.add_text(source, params))

        assert result.size == (128, 64)
        assert any(px[:3] != (255, 255, 255) for px in result.getdata())

    def test_empty_text_leaves_pixels_alone(self, processor, make_png):
        source = make_png(square=RED)
        result = _open(processor.add_text(source, TextParams(text="")))
        assert list(result.getdata()) == list(_open(source).getdata())

    def test_invalid_colour(self, processor, make_png):
        with pytest.raises(ImageProcessingError):
            processor.add_text(make_png(), TextParams(text="Hi", color="not-a-colour"))


class TestPreview:
    def test_subject_is_layered_over_text(self, processor, make_png):
        original = make_png(square=RED)
        removed = processor.remove_background(original)
        params = TextParams(text="WWWW", color="#0000FF", font_size=60)

        result = _open(processor.preview(original, removed, params))

        # Centre belongs to the cut-out subject, which sits on top of the text
        assert result.getpixel((32, 32)) == (*RED, 255)

    def test_mismatched_subject_is_resized(self, processor, make_png):
        original = make_png(size=(64, 64))
        removed = make_png(size=(32, 32))
        result = _open(processor.preview(original, removed, TextParams()))
        assert result.size == (64, 64)


class TestTextParams:
    def test_defaults(self):
        params = TextParams()
        assert params.font_size == 48
        assert params.x == 0.5 and params.y == 0.5

    def test_rejects_non_positive_size(self):
        with pytest.raises(ValueError):
            TextParams(font_size=0)
