"""Inference backends for the summarization pipeline."""
from lab_summarizer.engine.base import (
    JudgmentService,
    NormalizationService,
    RecognitionService,
    ServiceBundle,
    SummarizationService,
)
from lab_summarizer.engine.medgemma import MedGemmaEngine
from lab_summarizer.engine.services import build_medgemma_services

__all__ = [
    "MedGemmaEngine",
    "RecognitionService",
    "NormalizationService",
    "JudgmentService",
    "SummarizationService",
    "ServiceBundle",
    "build_medgemma_services",
]
