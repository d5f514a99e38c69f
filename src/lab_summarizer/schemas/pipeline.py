from __future__ import annotations
from typing import Any, Literal
from pydantic import BaseModel, ConfigDict, Field, model_validator
from lab_summarizer.schemas.lab_report import LabTest

ResultStatus = Literal["ok", "unprocessed", "error"]


class StageResult(BaseModel):
    stage_name: str
    input_summary: str
    output: dict[str, Any]
    reasoning: str
    confidence: float | None = None
    timing_seconds: float


class PipelineResult(BaseModel):
    """Envelope returned once per pipeline invocation.

    Exactly one payload is populated, selected by ``status``:
    ``ok`` carries tests, summary and explanations; ``unprocessed`` carries
    the guardrail ``reason``; ``error`` carries a ``message``.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    status: ResultStatus
    tests: list[LabTest] | None = None
    summary: str | None = None
    explanations: list[str] | None = None
    confidence: float | None = Field(default=None, ge=0.0, le=1.0)
    normalization_confidence: float | None = Field(
        default=None, ge=0.0, le=1.0, alias="normalizationConfidence"
    )
    reason: str | None = None
    message: str | None = None
    stages: list[StageResult] = []

    @model_validator(mode="after")
    def _check_payload(self) -> PipelineResult:
        has_findings = (
            self.tests is not None
            or self.summary is not None
            or self.explanations is not None
        )
        if self.status == "ok":
            if self.tests is None or self.summary is None or self.explanations is None:
                raise ValueError("ok result requires tests, summary and explanations")
            if self.reason is not None or self.message is not None:
                raise ValueError("ok result must not carry a reason or message")
        elif self.status == "unprocessed":
            if not self.reason:
                raise ValueError("unprocessed result requires a reason")
            if has_findings or self.message is not None:
                raise ValueError("unprocessed result carries only a reason")
        else:
            if not self.message:
                raise ValueError("error result requires a message")
            if has_findings or self.reason is not None:
                raise ValueError("error result carries only a message")
        return self

    @property
    def success(self) -> bool:
        return self.status == "ok"
