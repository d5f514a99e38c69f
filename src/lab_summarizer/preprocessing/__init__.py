"""Preprocessing utilities for lab report images."""

from lab_summarizer.preprocessing.image_ops import (
    convert_pdf_bytes,
    load_image_bytes,
    preprocess_image,
)

__all__ = ["preprocess_image", "convert_pdf_bytes", "load_image_bytes"]
