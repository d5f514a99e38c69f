"""Request/response records exchanged with the external AI services.

Each record carries a ``kind`` tag so a transport layer can route or log it
without inspecting the payload.
"""

from __future__ import annotations
from typing import Literal
from pydantic import BaseModel, Field
from lab_summarizer.schemas.lab_report import LabTest


class RecognitionRequest(BaseModel):
    kind: Literal["recognition"] = "recognition"
    image_bytes: bytes


class RecognitionResponse(BaseModel):
    kind: Literal["recognition"] = "recognition"
    text: str
    confidence: float = Field(ge=0.0, le=1.0)


class NormalizationRequest(BaseModel):
    kind: Literal["normalization"] = "normalization"
    raw_text: str


class NormalizationResponse(BaseModel):
    kind: Literal["normalization"] = "normalization"
    tests: list[LabTest]
    confidence: float = Field(ge=0.0, le=1.0)


class JudgmentRequest(BaseModel):
    kind: Literal["judgment"] = "judgment"
    raw_text: str
    disputed_names: list[str]


class JudgmentResponse(BaseModel):
    kind: Literal["judgment"] = "judgment"
    verdicts: dict[str, bool]  # name -> legitimately present in the source


class SummarizationRequest(BaseModel):
    kind: Literal["summarization"] = "summarization"
    tests: list[LabTest]


class SummarizationResponse(BaseModel):
    kind: Literal["summarization"] = "summarization"
    summary: str
    explanations: list[str]
