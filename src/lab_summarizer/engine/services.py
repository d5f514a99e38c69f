"""MedGemma-backed implementations of the pipeline's service interfaces."""

from __future__ import annotations

import json
import logging

from lab_summarizer.engine.base import (
    JudgmentService,
    NormalizationService,
    RecognitionService,
    ServiceBundle,
    SummarizationService,
)
from lab_summarizer.engine.json_utils import parse_json_response
from lab_summarizer.engine.medgemma import MedGemmaEngine
from lab_summarizer.engine.prompts import (
    JUDGE_PROMPT,
    NORMALIZE_PROMPT,
    RECOGNIZE_PROMPT,
    SUMMARIZE_PROMPT,
)
from lab_summarizer.preprocessing import load_image_bytes, preprocess_image
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

logger = logging.getLogger(__name__)


class MedGemmaRecognizer(RecognitionService):
    def __init__(self, engine: MedGemmaEngine) -> None:
        self.engine = engine

    def recognize(self, request: RecognitionRequest) -> RecognitionResponse:
        image = load_image_bytes(request.image_bytes)
        image = preprocess_image(image, self.engine.config.image_size)
        data = parse_json_response(self.engine.query(RECOGNIZE_PROMPT, image=image))
        return RecognitionResponse.model_validate(data)


class MedGemmaNormalizer(NormalizationService):
    def __init__(self, engine: MedGemmaEngine) -> None:
        self.engine = engine

    def normalize(self, request: NormalizationRequest) -> NormalizationResponse:
        prompt = NORMALIZE_PROMPT.format(report_text=request.raw_text)
        response = self.engine.query(
            prompt, temperature=self.engine.config.normalization_temperature
        )
        return NormalizationResponse.model_validate(parse_json_response(response))


class MedGemmaJudge(JudgmentService):
    def __init__(self, engine: MedGemmaEngine) -> None:
        self.engine = engine

    def judge(self, request: JudgmentRequest) -> JudgmentResponse:
        prompt = JUDGE_PROMPT.format(
            report_text=request.raw_text,
            disputed_json=json.dumps(request.disputed_names),
        )
        response = self.engine.query(
            prompt, temperature=self.engine.config.judgment_temperature
        )
        return JudgmentResponse.model_validate(parse_json_response(response))


class MedGemmaSummarizer(SummarizationService):
    def __init__(self, engine: MedGemmaEngine) -> None:
        self.engine = engine

    def summarize(self, request: SummarizationRequest) -> SummarizationResponse:
        tests_json = json.dumps(
            [test.model_dump(exclude={"ref_range"}) for test in request.tests]
        )
        prompt = SUMMARIZE_PROMPT.format(tests_json=tests_json)
        response = self.engine.query(
            prompt, temperature=self.engine.config.summarization_temperature
        )
        return SummarizationResponse.model_validate(parse_json_response(response))


def build_medgemma_services(config: PipelineConfig) -> ServiceBundle:
    """Build all four services on one shared engine (one model load)."""
    engine = MedGemmaEngine(config)
    logger.debug("services: MedGemma services ready (dry_run=%s)", config.dry_run)
    return ServiceBundle(
        recognizer=MedGemmaRecognizer(engine),
        normalizer=MedGemmaNormalizer(engine),
        judge=MedGemmaJudge(engine),
        summarizer=MedGemmaSummarizer(engine),
    )
