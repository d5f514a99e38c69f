from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass, field
from enum import Enum

from lab_summarizer.engine.base import ServiceBundle
from lab_summarizer.engine.services import build_medgemma_services
from lab_summarizer.errors import GuardrailRejection, PipelineCancelled, PipelineError
from lab_summarizer.pipeline.extract import extract_text
from lab_summarizer.pipeline.guardrail import check_guardrail
from lab_summarizer.pipeline.normalize import normalize_report
from lab_summarizer.pipeline.summarize import summarize_tests
from lab_summarizer.schemas.config import PipelineConfig
from lab_summarizer.schemas.lab_report import LabTest
from lab_summarizer.schemas.pipeline import PipelineResult, StageResult

logger = logging.getLogger(__name__)


class Stage(str, Enum):
    EXTRACT = "extract"
    NORMALIZE = "normalize"
    GUARDRAIL = "guardrail"
    SUMMARIZE = "summarize"
    DONE = "done"


NEXT_STAGE = {
    Stage.EXTRACT: Stage.NORMALIZE,
    Stage.NORMALIZE: Stage.GUARDRAIL,
    Stage.GUARDRAIL: Stage.SUMMARIZE,
    Stage.SUMMARIZE: Stage.DONE,
}


@dataclass
class _Run:
    """Everything one invocation accumulates on its way to the envelope."""

    text: str | None
    file_bytes: bytes | None
    cancel_event: threading.Event | None = None
    raw_text: str = ""
    confidence: float | None = None
    normalization_confidence: float | None = None
    tests: list[LabTest] = field(default_factory=list)
    summary: str | None = None
    explanations: list[str] = field(default_factory=list)
    stages: list[StageResult] = field(default_factory=list)


class ReportPipeline:
    """Extract -> Normalize -> Guardrail -> Summarize, one envelope per call.

    The pipeline holds no per-run state, so one instance (and its services)
    can serve concurrent callers.
    """

    def __init__(
        self,
        config: PipelineConfig | None = None,
        services: ServiceBundle | None = None,
    ) -> None:
        self.config = config or PipelineConfig()
        self.services = services or build_medgemma_services(self.config)

    def process(
        self,
        text: str | None = None,
        file_bytes: bytes | None = None,
        cancel_event: threading.Event | None = None,
    ) -> PipelineResult:
        pipeline_start = time.time()
        run = _Run(text=text, file_bytes=file_bytes, cancel_event=cancel_event)
        stage = Stage.EXTRACT

        try:
            while stage is not Stage.DONE:
                if cancel_event is not None and cancel_event.is_set():
                    raise PipelineCancelled(f"Processing cancelled before {stage.value}")
                logger.info("pipeline: [%d/4] %s", len(run.stages) + 1, stage.value)
                stage = self.advance(stage, run)
        except GuardrailRejection as rejection:
            logger.info(
                "pipeline: unprocessed after %.2fs - %s",
                time.time() - pipeline_start,
                rejection.unsupported,
            )
            return self._envelope(run, status="unprocessed", reason=rejection.reason)
        except PipelineError as exc:
            logger.error("pipeline: %s failed - %s", exc.stage, exc)
            return self._envelope(run, status="error", message=str(exc))
        except Exception as exc:
            logger.exception("pipeline: unexpected failure")
            return self._envelope(
                run, status="error", message=f"Unexpected internal error: {exc}"
            )

        logger.info(
            "pipeline: complete in %.2fs - %d tests, %d explanations",
            time.time() - pipeline_start,
            len(run.tests),
            len(run.explanations),
        )
        return self._envelope(
            run,
            status="ok",
            tests=run.tests,
            summary=run.summary,
            explanations=run.explanations,
        )

    def advance(self, stage: Stage, run: _Run) -> Stage:
        """Run one stage and return the stage that follows it.

        A stage that cannot complete raises instead of returning, which is
        what makes every failure terminal.
        """
        config = self.config
        services = self.services

        if stage is Stage.EXTRACT:
            run.raw_text, run.confidence, result = extract_text(
                services.recognizer,
                config,
                text=run.text,
                file_bytes=run.file_bytes,
                cancel_event=run.cancel_event,
            )
        elif stage is Stage.NORMALIZE:
            run.tests, run.normalization_confidence, result = normalize_report(
                services.normalizer, run.raw_text, config, run.cancel_event
            )
        elif stage is Stage.GUARDRAIL:
            result = check_guardrail(
                services.judge, run.raw_text, run.tests, config, run.cancel_event
            )
        elif stage is Stage.SUMMARIZE:
            run.summary, run.explanations, result = summarize_tests(
                services.summarizer, run.tests, config, run.cancel_event
            )
        else:
            raise ValueError(f"no transition out of stage {stage.value}")

        run.stages.append(result)
        return NEXT_STAGE[stage]

    @staticmethod
    def _envelope(run: _Run, **payload) -> PipelineResult:
        return PipelineResult(
            confidence=run.confidence,
            normalization_confidence=run.normalization_confidence,
            stages=run.stages,
            **payload,
        )


def run_pipeline(
    text: str | None = None,
    file_bytes: bytes | None = None,
    config: PipelineConfig | None = None,
    services: ServiceBundle | None = None,
) -> PipelineResult:
    """One-shot convenience wrapper around ReportPipeline.process."""
    return ReportPipeline(config, services).process(text=text, file_bytes=file_bytes)
