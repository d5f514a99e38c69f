"""JSON extraction for model output that wraps the object in fences or prose."""
from __future__ import annotations

import json
import re
from typing import Any

_FENCE = re.compile(r"```(?:json)?\s*([\s\S]*?)```")


def parse_json_response(text: str) -> dict[str, Any]:
    """Parse the JSON object contained in a model response.

    Handles markdown code blocks and leading/trailing chatter around a single
    object. Raises ValueError when no JSON object can be decoded.
    """
    if not text or not text.strip():
        raise ValueError("model returned an empty response")

    fenced = _FENCE.search(text)
    if fenced:
        text = fenced.group(1)

    start = text.find("{")
    end = text.rfind("}")
    if start == -1 or end < start:
        raise ValueError(f"no JSON object in model response: {text[:100]!r}")

    try:
        data = json.loads(text[start : end + 1])
    except json.JSONDecodeError as exc:
        raise ValueError(f"malformed JSON in model response: {exc}") from exc

    if not isinstance(data, dict):
        raise ValueError("model response JSON is not an object")
    return data
