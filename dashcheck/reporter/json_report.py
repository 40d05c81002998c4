"""JSON report output."""

from __future__ import annotations

import json
from pathlib import Path

from dashcheck.models.verdict import RunResult, ScenarioVerdict


def generate_json_report(run_result: RunResult, output_path: Path) -> None:
    """Write a machine-readable JSON report."""
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    with open(output_path, "w") as f:
        json.dump(run_result.model_dump(), f, indent=2, default=str)


def append_ndjson(verdict: ScenarioVerdict, output_path: Path) -> None:
    """Append one verdict as a single JSON line."""
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    with open(output_path, "a") as f:
        f.write(json.dumps(verdict.model_dump(), default=str) + "\n")
