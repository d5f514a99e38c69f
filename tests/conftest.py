"""Shared pytest fixtures for lab_summarizer tests."""

import io
import time

import pytest
from PIL import Image
from lab_summarizer.engine.base import (
    JudgmentService,
    NormalizationService,
    RecognitionService,
    ServiceBundle,
    SummarizationService,
)
from lab_summarizer.engine.medgemma import MedGemmaEngine
from lab_summarizer.schemas.config import PipelineConfig
from lab_summarizer.schemas.services import (
    JudgmentResponse,
    NormalizationResponse,
    RecognitionResponse,
    SummarizationResponse,
)


class _Fake:
    """Records requests, optionally sleeps, then answers or raises."""

    def __init__(self, error: Exception | None = None, delay: float = 0.0) -> None:
        self.error = error
        self.delay = delay
        self.calls = []

    def _record(self, request):
        self.calls.append(request)
        if self.delay:
            time.sleep(self.delay)
        if self.error is not None:
            raise self.error


class FakeRecognizer(_Fake, RecognitionService):
    def __init__(self, text="Hemoglobin 10.2 g/dL (Low)", confidence=0.9, **kwargs):
        super().__init__(**kwargs)
        self.text = text
        self.confidence = confidence

    def recognize(self, request):
        self._record(request)
        return RecognitionResponse(text=self.text, confidence=self.confidence)


class FakeNormalizer(_Fake, NormalizationService):
    def __init__(self, tests=None, confidence=0.8, **kwargs):
        super().__init__(**kwargs)
        self.tests = tests if tests is not None else [
            {"name": "Hemoglobin", "value": 10.2, "unit": "g/dL", "status": "low"}
        ]
        self.confidence = confidence

    def normalize(self, request):
        self._record(request)
        return NormalizationResponse(tests=self.tests, confidence=self.confidence)


class FakeJudge(_Fake, JudgmentService):
    def __init__(self, verdicts=None, **kwargs):
        super().__init__(**kwargs)
        self.verdicts = verdicts or {}

    def judge(self, request):
        self._record(request)
        return JudgmentResponse(verdicts=self.verdicts)


class FakeSummarizer(_Fake, SummarizationService):
    def __init__(self, summary="Your results are mostly typical.", explanations=None, **kwargs):
        super().__init__(**kwargs)
        self.summary = summary
        self.explanations = explanations if explanations is not None else [
            "Hemoglobin is lower than the usual range."
        ]

    def summarize(self, request):
        self._record(request)
        return SummarizationResponse(summary=self.summary, explanations=self.explanations)


@pytest.fixture
def dry_run_config() -> PipelineConfig:
    """PipelineConfig with dry_run=True (no GPU needed)."""
    return PipelineConfig(dry_run=True)


@pytest.fixture
def dry_run_engine(dry_run_config) -> MedGemmaEngine:
    """MedGemmaEngine in dry-run mode."""
    return MedGemmaEngine(dry_run_config)


@pytest.fixture
def white_image() -> Image.Image:
    """896x896 white RGB image for testing."""
    return Image.new("RGB", (896, 896), "white")


@pytest.fixture
def png_bytes() -> bytes:
    """A small PNG report scan, as an upload would deliver it."""
    buffer = io.BytesIO()
    Image.new("RGB", (400, 600), "lightblue").save(buffer, format="PNG")
    return buffer.getvalue()


@pytest.fixture
def make_services():
    """Build a ServiceBundle from fakes, defaulting any stage not given."""

    def build(recognizer=None, normalizer=None, judge=None, summarizer=None) -> ServiceBundle:
        return ServiceBundle(
            recognizer=recognizer or FakeRecognizer(),
            normalizer=normalizer or FakeNormalizer(),
            judge=judge or FakeJudge(),
            summarizer=summarizer or FakeSummarizer(),
        )

    return build
