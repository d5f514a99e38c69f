from __future__ import annotations

import logging
import threading
import time

from lab_summarizer.engine.base import NormalizationService
from lab_summarizer.errors import NormalizationError, PipelineCancelled, StageTimeout
from lab_summarizer.schemas.config import PipelineConfig
from lab_summarizer.schemas.lab_report import LabTest
from lab_summarizer.schemas.pipeline import StageResult
from lab_summarizer.schemas.services import NormalizationRequest
from lab_summarizer.timeouts import call_with_timeout

logger = logging.getLogger(__name__)


def normalize_report(
    normalizer: NormalizationService,
    raw_text: str,
    config: PipelineConfig,
    cancel_event: threading.Event | None = None,
) -> tuple[list[LabTest], float, StageResult]:
    """Stage 2: structure the raw text into lab tests with one service call."""
    start = time.time()

    try:
        response = call_with_timeout(
            normalizer.normalize,
            NormalizationRequest(raw_text=raw_text),
            timeout=config.normalization_timeout,
            cancel_event=cancel_event,
            label="normalization",
        )
    except PipelineCancelled:
        raise
    except StageTimeout as exc:
        raise NormalizationError(f"Structuring the report timed out: {exc}") from exc
    except ValueError as exc:
        raise NormalizationError(
            f"Structuring service returned output that does not match the lab test schema: {exc}"
        ) from exc
    except Exception as exc:
        raise NormalizationError(f"Structuring service failed: {exc}") from exc

    tests = response.tests
    confidence = response.confidence
    notable = sum(1 for test in tests if test.is_notable)

    logger.info(
        "normalize: %d tests (%d notable), confidence %.2f",
        len(tests),
        notable,
        confidence,
    )

    return tests, confidence, StageResult(
        stage_name="normalize",
        input_summary=f"Raw report text ({len(raw_text)} chars)",
        output={
            "test_count": len(tests),
            "notable_count": notable,
            "test_names": [test.name for test in tests],
            "confidence": confidence,
        },
        reasoning=(
            f"Structured {len(tests)} lab tests, {notable} outside the normal range. "
            f"Normalization confidence: {confidence:.0%}."
        ),
        confidence=confidence,
        timing_seconds=time.time() - start,
    )
