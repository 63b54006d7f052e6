"""Report data structures persisted at the end of a run."""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

REPORT_VERSION = "0.1.0"


class ChangedScreenshot(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    image_name: str = Field(alias="imageName")
    mismatched_pixels: int = Field(alias="mismatchedPixels", gt=0)
    hash: Optional[str] = None


class DiffReport(BaseModel):
    """Aggregate of one run. JSON field names keep the camelCase report format."""
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    version: str = REPORT_VERSION
    message: str
    baseline_path: str = Field(alias="baselinePath")
    candidate_path: str = Field(alias="candidatePath")
    diff_path: str = Field(alias="diffPath")
    total_screenshots_count: int = Field(default=0, alias="totalScreenshotsCount")
    unchanged_count: int = Field(default=0, alias="screenshotsUnchangedCount")
    screenshots_added: tuple[str, ...] = Field(default=(), alias="screenshotsAdded")
    screenshots_removed: tuple[str, ...] = Field(default=(), alias="screenshotsRemoved")
    screenshots_changed: tuple[ChangedScreenshot, ...] = Field(default=(), alias="screenshotsChanged")

    @property
    def found_differences(self) -> bool:
        return bool(self.screenshots_added or self.screenshots_removed or self.screenshots_changed)

    def sorted(self) -> "DiffReport":
        """Return a copy with every list ordered by name.

        List order otherwise follows completion order, which varies between runs.
        """
        return self.model_copy(update={
            "screenshots_added": tuple(sorted(self.screenshots_added)),
            "screenshots_removed": tuple(sorted(self.screenshots_removed)),
            "screenshots_changed": tuple(sorted(self.screenshots_changed, key=lambda c: c.image_name)),
        })

    def to_json_dict(self) -> dict:
        return self.model_dump(mode="json", by_alias=True)
