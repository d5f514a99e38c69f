from __future__ import annotations

import logging
import threading
import time

from lab_summarizer.engine.base import SummarizationService
from lab_summarizer.errors import PipelineCancelled, StageTimeout, SummarizationError
from lab_summarizer.schemas.config import PipelineConfig
from lab_summarizer.schemas.lab_report import LabTest
from lab_summarizer.schemas.pipeline import StageResult
from lab_summarizer.schemas.services import SummarizationRequest
from lab_summarizer.timeouts import call_with_timeout

logger = logging.getLogger(__name__)


def summarize_tests(
    summarizer: SummarizationService,
    tests: list[LabTest],
    config: PipelineConfig,
    cancel_event: threading.Event | None = None,
) -> tuple[str, list[str], StageResult]:
    """Stage 4: patient-facing summary paragraph plus one bullet per notable test."""
    start = time.time()

    try:
        response = call_with_timeout(
            summarizer.summarize,
            SummarizationRequest(tests=tests),
            timeout=config.summarization_timeout,
            cancel_event=cancel_event,
            label="summarization",
        )
    except PipelineCancelled:
        raise
    except StageTimeout as exc:
        raise SummarizationError(f"Writing the summary timed out: {exc}") from exc
    except ValueError as exc:
        raise SummarizationError(f"Summary service returned unparseable output: {exc}") from exc
    except Exception as exc:
        raise SummarizationError(f"Summary service failed: {exc}") from exc

    summary = response.summary.strip()
    if not summary:
        raise SummarizationError("Summary service returned an empty summary.")
    explanations = [item.strip() for item in response.explanations if item.strip()]

    notable = sum(1 for test in tests if test.is_notable)
    if len(explanations) != notable:
        logger.warning(
            "summarize: %d explanations for %d notable tests",
            len(explanations),
            notable,
        )

    logger.info("summarize: %d-char summary, %d explanations", len(summary), len(explanations))

    return summary, explanations, StageResult(
        stage_name="summarize",
        input_summary=f"{len(tests)} verified tests ({notable} notable)",
        output={
            "summary_chars": len(summary),
            "explanation_count": len(explanations),
            "notable_count": notable,
        },
        reasoning=(
            f"Summarized {len(tests)} tests for the patient with "
            f"{len(explanations)} explanations for {notable} notable results."
        ),
        timing_seconds=time.time() - start,
    )
