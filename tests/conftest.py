"""Pytest configuration and shared fixtures."""

import json
from pathlib import Path
from typing import Callable

import numpy as np
import pytest
from PIL import Image

from shotdiff.models.config import DiffConfig
from shotdiff.models.screenshot import Screenshot, ScreenshotInfo, Viewport

WHITE = (255, 255, 255, 255)
BLACK = (0, 0, 0, 255)
RED = (255, 0, 0, 255)


def solid(width: int, height: int, color=WHITE) -> np.ndarray:
    """An opaque RGBA buffer filled with one color."""
    pixels = np.zeros((height, width, 4), dtype=np.uint8)
    pixels[:, :] = color
    return pixels


# ============================================================================
# Pixel Fixtures
# ============================================================================


@pytest.fixture
def solid_pixels() -> Callable[..., np.ndarray]:
    """Factory for solid-color RGBA buffers."""
    return solid


@pytest.fixture
def random_pixels() -> Callable[..., np.ndarray]:
    """Factory for seeded random RGBA buffers."""
    def _make(width: int, height: int, seed: int = 0) -> np.ndarray:
        rng = np.random.default_rng(seed)
        pixels = rng.integers(0, 256, size=(height, width, 4), dtype=np.uint8)
        pixels[..., 3] = 255
        return pixels
    return _make


@pytest.fixture
def make_screenshot() -> Callable[..., Screenshot]:
    """Factory for in-memory screenshots, covering the full buffer unless a viewport is given."""
    def _make(pixels: np.ndarray, viewport: Viewport | None = None, name: str = "shot.png") -> Screenshot:
        if viewport is None:
            viewport = Viewport(width=pixels.shape[1], height=pixels.shape[0])
        return Screenshot(
            path=name,
            pixels=pixels,
            info=ScreenshotInfo(name=name, viewport=viewport),
        )
    return _make


# ============================================================================
# Filesystem Fixtures
# ============================================================================


@pytest.fixture
def write_image() -> Callable[..., Path]:
    """Write an RGBA buffer as an image file, with an optional sidecar."""
    def _write(path: Path, pixels: np.ndarray, sidecar: dict | None = None) -> Path:
        path.parent.mkdir(parents=True, exist_ok=True)
        image = Image.fromarray(pixels)
        if path.suffix.lower() in (".jpg", ".jpeg"):
            image = image.convert("RGB")
        image.save(path)
        if sidecar is not None:
            path.with_suffix(".json").write_text(json.dumps(sidecar))
        return path
    return _write


@pytest.fixture
def baseline_dir(tmp_path: Path) -> Path:
    path = tmp_path / "baseline"
    path.mkdir()
    return path


@pytest.fixture
def candidate_dir(tmp_path: Path) -> Path:
    path = tmp_path / "candidate"
    path.mkdir()
    return path


@pytest.fixture
def diff_dir(tmp_path: Path) -> Path:
    return tmp_path / "diff"


@pytest.fixture
def diff_config(baseline_dir: Path, candidate_dir: Path, diff_dir: Path) -> DiffConfig:
    """Single-threaded config over the temporary directories."""
    return DiffConfig(
        baseline_dir=str(baseline_dir),
        candidate_dir=str(candidate_dir),
        diff_dir=str(diff_dir),
        threshold=0.03,
        single_thread=True,
        workers=2,
    )
