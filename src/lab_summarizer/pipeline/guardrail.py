"""Stage 3: keep fabricated tests away from the patient.

Every normalized test name must be traceable to the raw report text. Names
found verbatim (ignoring case and spacing) pass immediately; the rest are put
to an independent judgment call that can vouch for synonyms and
abbreviations ("Hb" for "Hemoglobin"). One unconfirmed name rejects the
whole result: a single fabrication means the structuring pass as a whole
cannot be trusted, so nothing is dropped selectively.
"""

from __future__ import annotations

import logging
import re
import threading
import time

from lab_summarizer.engine.base import JudgmentService
from lab_summarizer.errors import (
    GuardrailRejection,
    JudgmentError,
    PipelineCancelled,
    StageTimeout,
)
from lab_summarizer.schemas.config import PipelineConfig
from lab_summarizer.schemas.lab_report import LabTest
from lab_summarizer.schemas.pipeline import StageResult
from lab_summarizer.schemas.services import JudgmentRequest
from lab_summarizer.timeouts import call_with_timeout

logger = logging.getLogger(__name__)

_WHITESPACE = re.compile(r"\s+")


def normalize_for_match(text: str) -> str:
    """Casefold and collapse every whitespace run to a single space."""
    return _WHITESPACE.sub(" ", text).strip().casefold()


def name_in_text(name: str, raw_text: str) -> bool:
    needle = normalize_for_match(name)
    return bool(needle) and needle in normalize_for_match(raw_text)


def find_unsupported(tests: list[LabTest], raw_text: str) -> list[str]:
    """Names (deduplicated, in test order) with no literal match in raw_text."""
    haystack = normalize_for_match(raw_text)
    unsupported: list[str] = []
    for test in tests:
        needle = normalize_for_match(test.name)
        if needle and needle in haystack:
            continue
        if test.name not in unsupported:
            unsupported.append(test.name)
    return unsupported


def check_guardrail(
    judge: JudgmentService,
    raw_text: str,
    tests: list[LabTest],
    config: PipelineConfig,
    cancel_event: threading.Event | None = None,
) -> StageResult:
    """Accept the normalized tests or raise GuardrailRejection.

    Raises JudgmentError when the escalation call itself fails; that is an
    infrastructure fault, not a verdict.
    """
    start = time.time()

    if not tests:
        logger.info("guardrail: no tests to verify, accepted")
        return _accepted(start, tests, [], "No tests were normalized; nothing to verify.")

    disputed = find_unsupported(tests, raw_text)
    if not disputed:
        logger.info("guardrail: all %d test names found in source", len(tests))
        return _accepted(
            start,
            tests,
            [],
            f"All {len(tests)} test names occur in the source text.",
        )

    if not raw_text.strip():
        logger.info(
            "guardrail: rejected %d tests against empty source text", len(tests)
        )
        raise GuardrailRejection(disputed)

    logger.info(
        "guardrail: %d of %d names not found verbatim, escalating to judgment",
        len(disputed),
        len(tests),
    )
    try:
        response = call_with_timeout(
            judge.judge,
            JudgmentRequest(raw_text=raw_text, disputed_names=disputed),
            timeout=config.judgment_timeout,
            cancel_event=cancel_event,
            label="judgment",
        )
    except PipelineCancelled:
        raise
    except StageTimeout as exc:
        raise JudgmentError(f"Verifying test names timed out: {exc}") from exc
    except ValueError as exc:
        raise JudgmentError(f"Verification service returned an unusable verdict: {exc}") from exc
    except Exception as exc:
        raise JudgmentError(f"Verification service failed: {exc}") from exc

    # A name the judge did not rule on counts as unconfirmed.
    verdicts = {normalize_for_match(name): ok for name, ok in response.verdicts.items()}
    rejected = [
        name for name in disputed if verdicts.get(normalize_for_match(name)) is not True
    ]
    if rejected:
        logger.info("guardrail: rejected, unsupported tests %s", rejected)
        raise GuardrailRejection(rejected)

    logger.info("guardrail: judgment confirmed %d disputed names", len(disputed))
    return _accepted(
        start,
        tests,
        disputed,
        f"{len(disputed)} names were not found verbatim but were confirmed as "
        f"synonyms or abbreviations present in the source.",
    )


def _accepted(
    start: float, tests: list[LabTest], escalated: list[str], reasoning: str
) -> StageResult:
    return StageResult(
        stage_name="guardrail",
        input_summary=f"{len(tests)} normalized tests",
        output={
            "accepted": True,
            "escalated": bool(escalated),
            "confirmed_by_judgment": escalated,
        },
        reasoning=reasoning,
        timing_seconds=time.time() - start,
    )
