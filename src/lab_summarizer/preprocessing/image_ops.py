from __future__ import annotations

import io
import logging

from PIL import Image, ImageEnhance, ImageOps, UnidentifiedImageError

logger = logging.getLogger(__name__)

PDF_MAGIC = b"%PDF"


def preprocess_image(image: Image.Image, target_size: int = 896) -> Image.Image:
    """Prepare a decoded report image for MedGemma recognition.

    Steps:
    1. Auto-orient using EXIF data (handles rotated mobile photos)
    2. Convert to RGB if grayscale or RGBA
    3. Resize to target_size x target_size maintaining aspect ratio (pad with white)
    4. Apply contrast enhancement (factor 1.4 for scanned docs)

    Returns: PIL Image, RGB mode, target_size x target_size pixels
    """
    img = ImageOps.exif_transpose(image)

    if img.mode != "RGB":
        img = img.convert("RGB")

    img.thumbnail((target_size, target_size), Image.Resampling.LANCZOS)
    canvas = Image.new("RGB", (target_size, target_size), (255, 255, 255))
    offset = ((target_size - img.width) // 2, (target_size - img.height) // 2)
    canvas.paste(img, offset)

    return ImageEnhance.Contrast(canvas).enhance(1.4)


def convert_pdf_bytes(data: bytes) -> list[Image.Image]:
    """Render every page of an in-memory PDF (lab reports may be 1-3 pages)."""
    from pdf2image import convert_from_bytes

    return [page.convert("RGB") for page in convert_from_bytes(data)]


def load_image_bytes(data: bytes) -> Image.Image:
    """Decode uploaded bytes into an RGB image.

    For PDFs: returns the first page.
    Raises ValueError when the bytes are empty or not a decodable image.
    """
    if not data:
        raise ValueError("no image content supplied")

    if data[:4] == PDF_MAGIC:
        pages = convert_pdf_bytes(data)
        if not pages:
            raise ValueError("PDF has no pages")
        logger.debug("image_ops: rendered PDF, using page 1 of %d", len(pages))
        return pages[0]

    try:
        img = Image.open(io.BytesIO(data))
        img.load()
    except (UnidentifiedImageError, OSError) as exc:
        raise ValueError(f"content is not a decodable image: {exc}") from exc
    return img.convert("RGB")
