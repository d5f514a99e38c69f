"""Tests for Pydantic schema models."""

import json
import pytest
from pydantic import ValidationError
from lab_summarizer.schemas.lab_report import LabTest, ReferenceRange
from lab_summarizer.schemas.pipeline import PipelineResult
from lab_summarizer.schemas.config import PipelineConfig
from lab_summarizer.schemas.services import NormalizationResponse, RecognitionResponse


def test_labtest_minimal():
    """LabTest can be created with just name and value."""
    t = LabTest(name="Glucose", value="95")
    assert t.name == "Glucose"
    assert t.value == 95.0
    assert t.unit == ""
    assert t.status == "normal"
    assert t.ref_range is None


def test_labtest_qualitative_value_kept_as_text():
    t = LabTest(name="HIV screen", value="Negative")
    assert t.value == "Negative"
    assert LabTest(name="CRP", value="<5", unit="mg/L").value == "<5"


def test_labtest_requires_name_and_value():
    with pytest.raises(ValidationError):
        LabTest(value="95")
    with pytest.raises(ValidationError):
        LabTest(name="   ", value="95")
    with pytest.raises(ValidationError):
        LabTest(name="Glucose", value=None)


def test_labtest_status_derived_from_reference_range():
    """Numeric value against a closed range wins over the reported flag."""
    t = LabTest(
        name="Hemoglobin",
        value=10.2,
        unit="g/dL",
        status="normal",
        ref_range=ReferenceRange(low=13.5, high=17.5),
    )
    assert t.status == "low"
    high = LabTest(name="WBC", value="12.4", ref_range={"low": 4.5, "high": 11.0})
    assert high.status == "high"


def test_labtest_status_aliases():
    assert LabTest(name="WBC", value=12.4, status="H").status == "high"
    assert LabTest(name="Potassium", value=2.1, status="critical_low").status == "low"
    assert LabTest(name="Sodium", value=140, status=None).status == "normal"


def test_labtest_unknown_status_folds_to_normal():
    assert LabTest(name="Sodium", value=140, status="borderline").status == "normal"
    assert LabTest(name="CRP", value="Positive", status="Abnormal").status == "normal"
    flagged = LabTest(
        name="Potassium", value=6.8, status="critical", ref_range={"low": 3.5, "high": 5.1}
    )
    assert flagged.status == "high"
    assert flagged.is_notable


def test_labtest_open_reference_range_dropped():
    t = LabTest(name="LDL", value=90, ref_range={"low": None, "high": 100})
    assert t.ref_range is None


def test_pipeline_result_ok_requires_findings():
    with pytest.raises(ValidationError):
        PipelineResult(status="ok", tests=[], explanations=[])
    result = PipelineResult(status="ok", tests=[], summary="Nothing notable.", explanations=[])
    assert result.success is True


def test_pipeline_result_payload_matches_status():
    with pytest.raises(ValidationError):
        PipelineResult(status="unprocessed")
    with pytest.raises(ValidationError):
        PipelineResult(status="unprocessed", reason="x", tests=[])
    with pytest.raises(ValidationError):
        PipelineResult(status="error", message="boom", reason="x")
    with pytest.raises(ValidationError):
        PipelineResult(status="ok", tests=[], summary="s", explanations=[], message="m")


def test_pipeline_result_is_frozen():
    result = PipelineResult(status="error", message="boom")
    with pytest.raises(ValidationError):
        result.status = "ok"


def test_pipeline_result_serializes_camel_case_confidence():
    result = PipelineResult(
        status="unprocessed",
        reason="Could not confirm",
        confidence=0.9,
        normalization_confidence=0.7,
    )
    data = json.loads(result.model_dump_json(by_alias=True))
    assert data["normalizationConfidence"] == 0.7
    assert data["confidence"] == 0.9


def test_service_confidence_bounded():
    with pytest.raises(ValidationError):
        RecognitionResponse(text="x", confidence=1.2)
    with pytest.raises(ValidationError):
        NormalizationResponse(tests=[], confidence=-0.1)


def test_pipeline_config_defaults():
    """PipelineConfig has correct defaults."""
    config = PipelineConfig()
    assert config.model_name == "google/medgemma-1.5-4b-it"
    assert config.image_size == 896
    assert config.dry_run is False
    assert 0.1 <= config.normalization_temperature <= 0.2
    assert 0.1 <= config.summarization_temperature <= 0.2


def test_pipeline_config_with_timeout():
    config = PipelineConfig(dry_run=True).with_timeout(5)
    assert config.dry_run is True
    assert config.extraction_timeout == 5
    assert config.normalization_timeout == 5
    assert config.judgment_timeout == 5
    assert config.summarization_timeout == 5
