"""Capability interfaces the pipeline consumes.

Any backend (a local model, a hosted API, a classic OCR engine) can serve a
stage by implementing the matching interface; the pipeline only sees the
request/response records in ``lab_summarizer.schemas.services``.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass

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


class RecognitionService(ABC):
    """Reads the text of a report image."""

    @abstractmethod
    def recognize(self, request: RecognitionRequest) -> RecognitionResponse:
        """Return the recognized text and the service's own confidence."""


class NormalizationService(ABC):
    """Turns raw report text into schema-conformant lab tests."""

    @abstractmethod
    def normalize(self, request: NormalizationRequest) -> NormalizationResponse:
        """Return the tests in report order plus a confidence in [0, 1]."""


class JudgmentService(ABC):
    """Decides whether disputed test names are real synonyms or fabrications."""

    @abstractmethod
    def judge(self, request: JudgmentRequest) -> JudgmentResponse:
        """Return a verdict per disputed name; True means present in the source."""


class SummarizationService(ABC):
    """Explains verified tests to a patient without diagnosing."""

    @abstractmethod
    def summarize(self, request: SummarizationRequest) -> SummarizationResponse:
        """Return one summary paragraph and one bullet per notable test."""


@dataclass
class ServiceBundle:
    recognizer: RecognitionService
    normalizer: NormalizationService
    judge: JudgmentService
    summarizer: SummarizationService
