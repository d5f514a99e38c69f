"""Tests for image preprocessing utilities."""

import io

import pytest
from PIL import Image
from lab_summarizer.preprocessing import load_image_bytes, preprocess_image


def test_preprocess_returns_896x896(white_image):
    """preprocess_image returns 896x896 RGB image."""
    result = preprocess_image(white_image)
    assert result.size == (896, 896)
    assert result.mode == "RGB"


def test_preprocess_non_square_image():
    """preprocess_image handles non-square images (pads to target size)."""
    img = Image.new("L", (400, 600), 128)
    result = preprocess_image(img, target_size=512)
    assert result.size == (512, 512)
    assert result.mode == "RGB"


def test_load_image_bytes_valid_png(png_bytes):
    """load_image_bytes returns RGB PIL Image for valid PNG."""
    img = load_image_bytes(png_bytes)
    assert isinstance(img, Image.Image)
    assert img.mode == "RGB"
    assert img.size == (400, 600)


def test_load_image_bytes_converts_rgba():
    buffer = io.BytesIO()
    Image.new("RGBA", (10, 10), (255, 0, 0, 128)).save(buffer, format="PNG")
    assert load_image_bytes(buffer.getvalue()).mode == "RGB"


@pytest.mark.parametrize("data", [b"", b"plain text, not an image"])
def test_load_image_bytes_rejects_undecodable(data):
    with pytest.raises(ValueError):
        load_image_bytes(data)
