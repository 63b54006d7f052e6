"""Screenshot loader — decodes an image plus its optional sidecar metadata."""

from __future__ import annotations

import json
import logging
from pathlib import Path

from shotdiff.models.screenshot import Screenshot, ScreenshotInfo, Viewport

from .decoders import DEFAULT_REGISTRY, DecoderRegistry

logger = logging.getLogger(__name__)

SIDECAR_SUFFIX = ".json"


def sidecar_path(image_path: Path) -> Path:
    """Return `<name>.json` when it exists, else `<stem>.json`.

    The full-name form keeps `shot.png` and `shot.jpg` from sharing metadata.
    """
    full_name = image_path.with_name(image_path.name + SIDECAR_SUFFIX)
    if full_name.is_file():
        return full_name
    return image_path.with_suffix(SIDECAR_SUFFIX)


def load_screenshot(path: str | Path, registry: DecoderRegistry = DEFAULT_REGISTRY) -> Screenshot | None:
    """Load a screenshot, or return None when the file does not exist.

    Decode and sidecar parsing errors propagate to the caller.
    """
    path = Path(path)
    if not path.is_file():
        return None

    pixels = registry.decode(path)

    info: ScreenshotInfo | None = None
    meta_path = sidecar_path(path)
    if meta_path.is_file():
        with open(meta_path, encoding="utf-8") as f:
            info = ScreenshotInfo(**json.load(f))
        logger.debug("Loaded sidecar metadata for %s", path.name)

    if info is None:
        height, width = pixels.shape[:2]
        info = ScreenshotInfo(
            name=path.name,
            viewport=Viewport(x=0, y=0, width=width, height=height, scale=1),
        )

    return Screenshot(path=str(path), pixels=pixels, info=info)
