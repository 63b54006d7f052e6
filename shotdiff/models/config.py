"""Configuration models for a screenshot diff run."""

from __future__ import annotations

import json
import math
import os
from pathlib import Path
from typing import Any, Literal

from pydantic import BaseModel, Field, field_validator

# Allow small color differences to cater for antialiasing and slow opacity fades
DEFAULT_THRESHOLD = 0.03


def normalize_threshold(value: Any) -> float:
    """Clamp a mismatch threshold into [0, 1], falling back to the default when invalid."""
    if value is None or isinstance(value, bool):
        return DEFAULT_THRESHOLD
    try:
        threshold = float(value)
    except (TypeError, ValueError):
        return DEFAULT_THRESHOLD
    if math.isnan(threshold):
        return DEFAULT_THRESHOLD
    return min(1.0, max(0.0, threshold))


def _default_workers() -> int:
    return os.cpu_count() or 1


class DiffConfig(BaseModel):
    # Paths
    baseline_dir: str
    candidate_dir: str
    diff_dir: str

    # Comparison
    threshold: float = DEFAULT_THRESHOLD

    # Execution
    single_thread: bool = False
    workers: int = Field(default_factory=_default_workers, ge=1)
    worker_mode: Literal["process", "thread"] = "process"

    # Reporting
    report_filename: str = "diff.json"

    @field_validator("threshold", mode="before")
    @classmethod
    def clamp_threshold(cls, v: Any) -> float:
        return normalize_threshold(v)

    @property
    def report_path(self) -> Path:
        return Path(self.diff_dir) / self.report_filename

    @classmethod
    def load(cls, path: str | Path, **overrides: Any) -> "DiffConfig":
        """Load config from a JSON file, applying non-None overrides on top."""
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Config file not found: {path}")
        with open(path) as f:
            data = json.load(f)
        data.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**data)

    def save(self, path: str | Path) -> None:
        """Save config to a JSON file."""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w") as f:
            json.dump(self.model_dump(), f, indent=2)
