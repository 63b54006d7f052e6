"""Run-level exceptions."""

from __future__ import annotations


class ShotdiffError(Exception):
    """Base exception for shotdiff failures"""


class PathAvailabilityError(ShotdiffError):
    """A required directory is missing and the run cannot start"""

    def __init__(self, missing_paths: list[str]):
        self.missing_paths = list(missing_paths)
        super().__init__(
            "The following paths do not exist:\n" + "\n".join(self.missing_paths)
        )


class UnsupportedImageError(ShotdiffError):
    """No registered decoder recognizes the file"""
