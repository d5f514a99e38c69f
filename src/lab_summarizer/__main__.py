"""Lab Report Summarization CLI.

Usage:
    uv run python -m lab_summarizer --text "<report text>" [options]
    uv run python -m lab_summarizer --input <image> [options]
    uv run python -m lab_summarizer --batch <dir> [options]
"""

from __future__ import annotations
import argparse
import json
import logging
import sys
from pathlib import Path

TEXT_EXTS = {".txt"}
IMAGE_EXTS = {".png", ".jpg", ".jpeg", ".pdf"}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="lab_summarizer",
        description="Summarize lab reports for patients, with a hallucination guardrail",
    )
    group = parser.add_mutually_exclusive_group(required=True)
    group.add_argument("--text", metavar="TEXT", help="Lab report given as plain text")
    group.add_argument(
        "--text-file", metavar="PATH", help="Path to a plain-text lab report"
    )
    group.add_argument(
        "--input",
        metavar="PATH",
        help="Path to a single lab report image (PNG/JPG/PDF)",
    )
    group.add_argument(
        "--batch",
        metavar="DIR",
        help="Directory of lab reports (.txt, PNG/JPG/PDF) to process",
    )

    parser.add_argument(
        "--output",
        metavar="PATH",
        default=None,
        help="Write JSON output to file (default: stdout)",
    )
    parser.add_argument(
        "--dry-run", action="store_true", help="Use mock engine (no GPU required)"
    )
    parser.add_argument(
        "--timeout",
        type=float,
        metavar="SECONDS",
        default=None,
        help="Time budget for each external model call",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Print stage-by-stage reasoning to stderr",
    )
    parser.add_argument(
        "--format",
        choices=["json", "summary"],
        default="json",
        help="Output format: json (machine-readable) or summary (human-readable text)",
    )
    return parser


def format_summary(result, source: str) -> str:
    """Format PipelineResult as human-readable text."""
    lines = [f"Lab Report Summary -- {source}"]
    lines.append("=" * len(lines[0]))
    lines.append(f"Status: {result.status.upper()}")

    if result.confidence is not None:
        lines.append(f"Extraction confidence: {result.confidence:.0%}")
    if result.normalization_confidence is not None:
        lines.append(f"Normalization confidence: {result.normalization_confidence:.0%}")

    if result.status == "unprocessed":
        lines.append("")
        lines.append(f"Not processed: {result.reason}")
        return "\n".join(lines)
    if result.status == "error":
        lines.append("")
        lines.append(f"Error: {result.message}")
        return "\n".join(lines)

    lines.append("")
    lines.append("Test Results:")

    col_widths = [24, 10, 12, 16, 8]
    header = f"| {'Test':<{col_widths[0]}} | {'Value':<{col_widths[1]}} | {'Unit':<{col_widths[2]}} | {'Reference':<{col_widths[3]}} | {'Status':<{col_widths[4]}} |"
    separator = "|" + "|".join("-" * (width + 2) for width in col_widths) + "|"
    lines.append(header)
    lines.append(separator)

    for test in result.tests:
        ref_str = ""
        if test.ref_range:
            ref_str = f"{test.ref_range.low:g}-{test.ref_range.high:g}"
        value = f"{test.value:g}" if isinstance(test.value, float) else test.value
        lines.append(
            f"| {test.name:<{col_widths[0]}} "
            f"| {value:<{col_widths[1]}} "
            f"| {test.unit:<{col_widths[2]}} "
            f"| {ref_str:<{col_widths[3]}} "
            f"| {test.status.upper():<{col_widths[4]}} |"
        )

    lines.append("")
    lines.append(result.summary)
    for explanation in result.explanations:
        lines.append(f"  - {explanation}")

    return "\n".join(lines)


def read_report_text(path: Path) -> str | None:
    """Read a text report, or print an error and return None if it is not UTF-8."""
    try:
        return path.read_text(encoding="utf-8")
    except UnicodeDecodeError as exc:
        print(f"Error: {path} is not valid UTF-8 text ({exc.reason})", file=sys.stderr)
        return None


def load_source(path: Path, as_text: bool) -> tuple[str, Path | None, str | None] | None:
    """Source tuple for one report file; text reports are read up front."""
    if not (as_text or path.suffix.lower() in TEXT_EXTS):
        return (path.name, path, None)
    text = read_report_text(path)
    if text is None:
        return None
    return (path.name, None, text)


def process_single(pipeline, path: Path | None, text: str | None, args):
    """Process one report (text or file) and return its PipelineResult."""
    if text is not None:
        result = pipeline.process(text=text)
    else:
        result = pipeline.process(file_bytes=path.read_bytes())

    if args.verbose:
        for stage in result.stages:
            print(f"[{stage.stage_name}] {stage.reasoning}", file=sys.stderr)

    return result


def main() -> int:
    parser = build_parser()
    args = parser.parse_args()

    # Configure logging
    log_level = logging.DEBUG if args.verbose else logging.WARNING
    logging.basicConfig(
        level=log_level, format="%(levelname)s: %(message)s", stream=sys.stderr
    )

    from lab_summarizer.pipeline.runner import ReportPipeline
    from lab_summarizer.schemas.config import PipelineConfig

    config = PipelineConfig(dry_run=args.dry_run)
    if args.timeout is not None:
        config = config.with_timeout(args.timeout)

    sources: list[tuple[str, Path | None, str | None]] = []

    if args.text is not None:
        sources.append(("text", None, args.text))

    elif args.text_file or args.input:
        input_path = Path(args.text_file or args.input)
        if not input_path.is_file():
            print(f"Error: input file not found: {input_path}", file=sys.stderr)
            return 2
        source = load_source(input_path, as_text=bool(args.text_file))
        if source is None:
            return 2
        sources.append(source)

    elif args.batch:
        batch_dir = Path(args.batch)
        if not batch_dir.is_dir():
            print(f"Error: batch directory not found: {args.batch}", file=sys.stderr)
            return 2

        report_files = sorted(
            path
            for path in batch_dir.iterdir()
            if path.suffix.lower() in TEXT_EXTS | IMAGE_EXTS
        )
        if not report_files:
            print(f"Error: no report files found in {args.batch}", file=sys.stderr)
            return 2
        for path in report_files:
            source = load_source(path, as_text=False)
            if source is None:
                return 2
            sources.append(source)

    pipeline = ReportPipeline(config)
    results = [
        (name, process_single(pipeline, path, text, args))
        for name, path, text in sources
    ]

    # Format output
    if args.format == "summary":
        output_text = "\n\n".join(format_summary(r, name) for name, r in results)
    else:
        dumped = [
            r.model_dump(by_alias=True, exclude_none=True, exclude={"stages"})
            for _, r in results
        ]
        output_data = dumped[0] if len(dumped) == 1 else dumped
        output_text = json.dumps(output_data, indent=2, default=str)

    # Write output
    if args.output:
        Path(args.output).write_text(output_text)
    else:
        print(output_text)

    # Exit code based on status
    if any(not r.success for _, r in results):
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
