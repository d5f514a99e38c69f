from __future__ import annotations
from typing import Any, Literal
from pydantic import BaseModel, Field, field_validator, model_validator

StatusType = Literal["low", "high", "normal"]

# Flags a normalization model may emit, folded to the three advisory statuses.
STATUS_ALIASES = {
    "l": "low",
    "low": "low",
    "critical_low": "low",
    "h": "high",
    "high": "high",
    "critical_high": "high",
    "n": "normal",
    "normal": "normal",
}


class ReferenceRange(BaseModel):
    low: float
    high: float


class LabTest(BaseModel):
    name: str = Field(min_length=1)  # As written in the source, e.g. "Hb"
    value: float | str  # Numeric when parseable; "<5", "Positive" stay strings
    unit: str = ""
    status: StatusType = "normal"
    ref_range: ReferenceRange | None = None

    @field_validator("name")
    @classmethod
    def _strip_name(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("test name must not be blank")
        return value

    @field_validator("value", mode="before")
    @classmethod
    def _coerce_value(cls, value: Any) -> Any:
        if value is None:
            raise ValueError("test value is required")
        if isinstance(value, bool):
            return str(value).lower()
        if isinstance(value, int):
            return float(value)
        if isinstance(value, str):
            stripped = value.strip()
            if not stripped:
                raise ValueError("test value must not be blank")
            try:
                return float(stripped)
            except ValueError:
                return stripped
        return value

    @field_validator("unit", mode="before")
    @classmethod
    def _coerce_unit(cls, value: Any) -> str:
        return "" if value is None else str(value).strip()

    @field_validator("status", mode="before")
    @classmethod
    def _coerce_status(cls, value: Any) -> str:
        # Flags without a direction ("abnormal", "critical") fold to normal;
        # a reference range, when present, still decides the status.
        if value is None:
            return "normal"
        return STATUS_ALIASES.get(str(value).strip().lower(), "normal")

    @field_validator("ref_range", mode="before")
    @classmethod
    def _drop_open_range(cls, value: Any) -> Any:
        # Models fill unknown bounds with null; only a closed interval is a range.
        if isinstance(value, dict) and (
            value.get("low") is None or value.get("high") is None
        ):
            return None
        return value

    @model_validator(mode="after")
    def _derive_status(self) -> LabTest:
        if self.ref_range is not None and isinstance(self.value, float):
            if self.value < self.ref_range.low:
                self.status = "low"
            elif self.value > self.ref_range.high:
                self.status = "high"
            else:
                self.status = "normal"
        return self

    @property
    def is_notable(self) -> bool:
        return self.status != "normal"
