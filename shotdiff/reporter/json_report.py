"""JSON report output."""

from __future__ import annotations

import json
from pathlib import Path

from shotdiff.models.report import DiffReport


def write_report(report: DiffReport, output_path: Path) -> None:
    """Write a machine-readable JSON report."""
    with open(output_path, "w", encoding="utf-8") as f:
        json.dump(report.to_json_dict(), f, indent=2)


def load_report(path: Path) -> DiffReport:
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Report not found: {path}")
    with open(path, encoding="utf-8") as f:
        return DiffReport.model_validate(json.load(f))
