from dataclasses import dataclass, replace


@dataclass
class PipelineConfig:
    model_name: str = "google/medgemma-1.5-4b-it"
    device: str = "cuda"
    torch_dtype: str = "bfloat16"
    max_new_tokens: int = 2048
    dry_run: bool = False
    quantize_4bit: bool = False
    image_size: int = 896
    normalization_temperature: float = 0.1
    judgment_temperature: float = 0.0  # Greedy: the verdict should not vary run to run
    summarization_temperature: float = 0.2
    # Seconds each external call may take before the stage fails
    extraction_timeout: float = 120.0
    normalization_timeout: float = 120.0
    judgment_timeout: float = 60.0
    summarization_timeout: float = 120.0

    def with_timeout(self, seconds: float) -> "PipelineConfig":
        """Copy of this config with every stage bounded by the same timeout."""
        return replace(
            self,
            extraction_timeout=seconds,
            normalization_timeout=seconds,
            judgment_timeout=seconds,
            summarization_timeout=seconds,
        )
