"""Exception taxonomy for the summarization pipeline.

``PipelineError`` subclasses are infrastructure failures: they end a run with
``status="error"``. ``GuardrailRejection`` is an expected outcome and ends a
run with ``status="unprocessed"``.
"""

from __future__ import annotations


class PipelineError(Exception):
    """A stage could not produce its output."""

    stage = "pipeline"


class ExtractionError(PipelineError):
    stage = "extract"


class NormalizationError(PipelineError):
    stage = "normalize"


class JudgmentError(PipelineError):
    stage = "guardrail"


class SummarizationError(PipelineError):
    stage = "summarize"


class PipelineCancelled(PipelineError):
    """The caller abandoned the run while a stage was in flight."""


class StageTimeout(TimeoutError):
    """An external call exceeded its time budget."""


class GuardrailRejection(Exception):
    """Normalized tests that could not be traced back to the source report."""

    def __init__(self, unsupported: list[str]) -> None:
        self.unsupported = list(unsupported)
        names = ", ".join(f'"{name}"' for name in self.unsupported)
        self.reason = (
            f"Could not confirm that the following test(s) originate from the "
            f"supplied report: {names}. The result was withheld to avoid "
            f"showing unsupported findings."
        )
        super().__init__(self.reason)
