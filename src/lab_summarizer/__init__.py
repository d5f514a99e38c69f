"""Turn lab reports into verified, patient-readable summaries."""
from lab_summarizer.pipeline.runner import ReportPipeline, run_pipeline
from lab_summarizer.schemas import LabTest, PipelineConfig, PipelineResult

__all__ = ["ReportPipeline", "run_pipeline", "LabTest", "PipelineConfig", "PipelineResult"]
