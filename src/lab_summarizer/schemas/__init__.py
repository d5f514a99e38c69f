"""Schema definitions for lab report summarization."""
from lab_summarizer.schemas.lab_report import LabTest, ReferenceRange
from lab_summarizer.schemas.pipeline import StageResult, PipelineResult
from lab_summarizer.schemas.config import PipelineConfig
from lab_summarizer.schemas.services import (
    JudgmentRequest,
    JudgmentResponse,
    NormalizationRequest,
    NormalizationResponse,
    RecognitionRequest,
    RecognitionResponse,
    SummarizationRequest,
    SummarizationResponse,
)

__all__ = [
    "LabTest", "ReferenceRange",
    "StageResult", "PipelineResult", "PipelineConfig",
    "RecognitionRequest", "RecognitionResponse",
    "NormalizationRequest", "NormalizationResponse",
    "JudgmentRequest", "JudgmentResponse",
    "SummarizationRequest", "SummarizationResponse",
]
