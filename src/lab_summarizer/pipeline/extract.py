from __future__ import annotations

import logging
import threading
import time

from lab_summarizer.engine.base import RecognitionService
from lab_summarizer.errors import ExtractionError, PipelineCancelled, StageTimeout
from lab_summarizer.schemas.config import PipelineConfig
from lab_summarizer.schemas.pipeline import StageResult
from lab_summarizer.schemas.services import RecognitionRequest
from lab_summarizer.timeouts import call_with_timeout

logger = logging.getLogger(__name__)


def extract_text(
    recognizer: RecognitionService,
    config: PipelineConfig,
    text: str | None = None,
    file_bytes: bytes | None = None,
    cancel_event: threading.Event | None = None,
) -> tuple[str, float, StageResult]:
    """Stage 1: obtain the raw report text and its extraction confidence.

    Text supplied directly is taken as-is with confidence 1.0 and wins over
    file content. Images (or the first page of a PDF) go through the
    recognition service, whose confidence is passed through untouched.
    """
    start = time.time()

    if text is not None:
        logger.info("extract: using supplied text (%d chars)", len(text))
        return text, 1.0, StageResult(
            stage_name="extract",
            input_summary=f"Plain text ({len(text)} chars)",
            output={"source": "text", "char_count": len(text), "confidence": 1.0},
            reasoning="Text supplied directly; no recognition needed, confidence 100%.",
            confidence=1.0,
            timing_seconds=time.time() - start,
        )

    if not file_bytes:
        raise ExtractionError("No report supplied: provide text or an image file.")

    try:
        request = RecognitionRequest(image_bytes=file_bytes)
        response = call_with_timeout(
            recognizer.recognize,
            request,
            timeout=config.extraction_timeout,
            cancel_event=cancel_event,
            label="recognition",
        )
    except PipelineCancelled:
        raise
    except StageTimeout as exc:
        raise ExtractionError(f"Text recognition timed out: {exc}") from exc
    except ValueError as exc:
        # Undecodable bytes and malformed service responses (incl. ValidationError)
        raise ExtractionError(f"Could not read text from the uploaded file: {exc}") from exc
    except Exception as exc:
        raise ExtractionError(f"Text recognition service failed: {exc}") from exc

    raw_text = response.text
    confidence = response.confidence

    logger.info(
        "extract: recognized %d chars from %d-byte upload (%.0f%%)",
        len(raw_text),
        len(file_bytes),
        confidence * 100,
    )

    return raw_text, confidence, StageResult(
        stage_name="extract",
        input_summary=f"Uploaded file ({len(file_bytes)} bytes)",
        output={
            "source": "image",
            "char_count": len(raw_text),
            "confidence": confidence,
        },
        reasoning=(
            f"Recognized {len(raw_text)} characters from the uploaded image. "
            f"Recognition confidence: {confidence:.0%}."
        ),
        confidence=confidence,
        timing_seconds=time.time() - start,
    )
