"""The four-stage report summarization pipeline."""
from lab_summarizer.pipeline.runner import ReportPipeline, Stage, run_pipeline

__all__ = ["ReportPipeline", "Stage", "run_pipeline"]
