"""Tests for the CLI entry point."""

import io
import json
import os
import subprocess
import sys
from pathlib import Path

from PIL import Image

SRC_DIR = Path(__file__).resolve().parent.parent / "src"


def run_cli(*args) -> subprocess.CompletedProcess:
    """Run the CLI with given args and return CompletedProcess."""
    env = dict(os.environ)
    env["PYTHONPATH"] = os.pathsep.join(
        filter(None, [str(SRC_DIR), env.get("PYTHONPATH")])
    )
    return subprocess.run(
        [sys.executable, "-m", "lab_summarizer"] + list(args),
        capture_output=True,
        text=True,
        env=env,
    )


def test_cli_help_exits_zero():
    """--help returns exit code 0."""
    result = run_cli("--help")
    assert result.returncode == 0
    assert "--text" in result.stdout
    assert "--dry-run" in result.stdout


def test_cli_dry_run_text_produces_valid_json():
    """--text --dry-run produces an ok envelope with camelCase confidences."""
    result = run_cli("--text", "Hemoglobin 10.2 g/dL (Low)", "--dry-run")
    assert result.returncode == 0, f"CLI failed: {result.stderr}"
    data = json.loads(result.stdout)
    assert data["status"] == "ok"
    assert data["confidence"] == 1.0
    assert "normalizationConfidence" in data
    assert data["tests"][0]["name"] == "Hemoglobin"
    assert "stages" not in data


def test_cli_batch_summary_format(tmp_path):
    (tmp_path / "a_report.txt").write_text("Glucose 130 mg/dL (70-100)\n")
    buffer = io.BytesIO()
    Image.new("RGB", (300, 300), "white").save(buffer, format="PNG")
    (tmp_path / "b_scan.png").write_bytes(buffer.getvalue())
    (tmp_path / "notes.md").write_text("ignored")

    result = run_cli("--batch", str(tmp_path), "--dry-run", "--format", "summary")
    assert result.returncode == 0, f"CLI failed: {result.stderr}"
    assert "Lab Report Summary -- a_report.txt" in result.stdout
    assert "Lab Report Summary -- b_scan.png" in result.stdout
    assert "notes.md" not in result.stdout
    assert "Status: OK" in result.stdout


def test_cli_verbose_prints_stage_reasoning():
    result = run_cli("--text", "Hemoglobin 10.2 g/dL (Low)", "--dry-run", "--verbose")
    assert result.returncode == 0
    assert "[guardrail]" in result.stderr


def test_cli_bad_upload_exits_one(tmp_path):
    bogus = tmp_path / "scan.png"
    bogus.write_bytes(b"not really a png")
    result = run_cli("--input", str(bogus), "--dry-run")
    assert result.returncode == 1
    assert json.loads(result.stdout)["status"] == "error"


def test_cli_missing_file_exits_two():
    result = run_cli("--input", "/nonexistent/scan.png", "--dry-run")
    assert result.returncode == 2


def test_cli_non_utf8_text_file_exits_two(tmp_path):
    report = tmp_path / "rapport.txt"
    report.write_bytes(b"H\xe9moglobine 10.2 g/dL (Basse)\n")
    result = run_cli("--text-file", str(report), "--dry-run")
    assert result.returncode == 2
    assert "not valid UTF-8" in result.stderr
    assert "Traceback" not in result.stderr


def test_cli_batch_with_non_utf8_report_exits_two(tmp_path):
    (tmp_path / "a_report.txt").write_text("Glucose 130 mg/dL (70-100)\n")
    (tmp_path / "b_latin1.txt").write_bytes(b"H\xe9moglobine 10.2 g/dL\n")
    result = run_cli("--batch", str(tmp_path), "--dry-run")
    assert result.returncode == 2
    assert "b_latin1.txt is not valid UTF-8" in result.stderr
    assert result.stdout == ""


def test_cli_invalid_args_exits_nonzero():
    """Missing required args returns non-zero exit code."""
    result = run_cli("--dry-run")  # Missing an input option
    assert result.returncode != 0
