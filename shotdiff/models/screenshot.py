"""Screenshot data structures produced by the loader."""

from __future__ import annotations

from typing import Optional

import numpy as np
from pydantic import BaseModel, ConfigDict, Field


class Viewport(BaseModel):
    """Sub-rectangle of the decoded image that is meaningful for comparison."""
    x: int = Field(default=0, ge=0)
    y: int = Field(default=0, ge=0)
    width: int = Field(ge=0)
    height: int = Field(ge=0)
    scale: float = 1.0


class ScreenshotInfo(BaseModel):
    """Sidecar metadata stored next to a screenshot as <stem>.json."""
    name: str
    viewport: Viewport
    environment: Optional[str] = None


class Screenshot(BaseModel):
    model_config = ConfigDict(arbitrary_types_allowed=True, frozen=True)

    path: str
    pixels: np.ndarray  # (height, width, 4) uint8 RGBA
    info: ScreenshotInfo

    @property
    def viewport(self) -> Viewport:
        return self.info.viewport

    def viewport_pixels(self) -> np.ndarray:
        """Return the viewport region, clipped to the decoded bounds."""
        vp = self.viewport
        return self.pixels[vp.y:vp.y + vp.height, vp.x:vp.x + vp.width]
