"""Result aggregation — classifies per-image results into the run report."""

from __future__ import annotations

import logging

from shotdiff.models.diff_result import Added, Changed, Removed, Unchanged
from shotdiff.models.report import ChangedScreenshot, DiffReport

logger = logging.getLogger(__name__)

DIFFERENCES_MESSAGE = (
    "Alright, there are some visible differences. But are they regressions or expected changes?"
)
NO_DIFFERENCES_MESSAGE = "Great! There are no visible differences between the two versions."
NO_RESULTS_MESSAGE = "The tests didn't seem to run. See previous errors for more context."


class ResultAggregator:
    """Accumulates results in completion order."""

    def __init__(self, total_jobs: int):
        self.total_jobs = total_jobs
        self.result_count = 0
        self.unchanged_count = 0
        self.added: list[str] = []
        self.removed: list[str] = []
        self.changed: list[ChangedScreenshot] = []

    def add(self, name: str, result: Unchanged | Changed | Added | Removed | None) -> None:
        """Record one result. None means the job produced no result and is left out."""
        if result is None:
            return
        self.result_count += 1
        match result:
            case Unchanged():
                self.unchanged_count += 1
            case Changed(mismatched_pixels=count, hash=digest):
                self.changed.append(
                    ChangedScreenshot(image_name=name, mismatched_pixels=count, hash=digest)
                )
            case Added():
                self.added.append(name)
            case Removed():
                self.removed.append(name)
            case _:
                raise TypeError(f"Unexpected diff result for {name}: {result!r}")

    @property
    def found_differences(self) -> bool:
        return bool(self.added or self.removed or self.changed)

    def message(self) -> str:
        if self.result_count == 0:
            return NO_RESULTS_MESSAGE
        if self.found_differences:
            return DIFFERENCES_MESSAGE
        return NO_DIFFERENCES_MESSAGE

    def build_report(self, baseline_dir: str, candidate_dir: str, diff_dir: str) -> DiffReport:
        missing = self.total_jobs - self.result_count
        if missing:
            logger.warning("%d of %d comparisons produced no result", missing, self.total_jobs)
        return DiffReport(
            message=self.message(),
            baseline_path=str(baseline_dir),
            candidate_path=str(candidate_dir),
            diff_path=str(diff_dir),
            total_screenshots_count=self.total_jobs,
            unchanged_count=self.unchanged_count,
            screenshots_added=tuple(self.added),
            screenshots_removed=tuple(self.removed),
            screenshots_changed=tuple(self.changed),
        )
