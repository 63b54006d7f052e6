"""Diff engine — composite rendering and mismatch classification for one screenshot pair.

The composite image has three bands of equal width: the baseline on the left,
the diff visualization in the middle and the candidate on the right. Pixel
buffers are (height, width, 4) uint8 RGBA arrays.
"""

from __future__ import annotations

import hashlib
import io
import logging
from pathlib import Path

import numpy as np
from PIL import Image

from shotdiff.loader.decoders import DEFAULT_REGISTRY, DecoderRegistry
from shotdiff.loader.screenshot_loader import load_screenshot
from shotdiff.models.config import DEFAULT_THRESHOLD, normalize_threshold
from shotdiff.models.diff_result import Added, Changed, DiffJob, Removed, Unchanged
from shotdiff.models.screenshot import Screenshot

logger = logging.getLogger(__name__)

MAX_BRIGHTNESS = 255

# RGB to YIQ brightness coefficients, as used by the W3C contrast guidelines
LUMA_RED = 0.299
LUMA_GREEN = 0.587
LUMA_BLUE = 0.114

HIGHLIGHT = np.array([0xFF, 0x00, 0x00, 0xFF], dtype=np.uint8)
TOLERATED_TINT = np.array([0xE0, 0xE0, 0xE0, 0xFF], dtype=np.uint8)
ADDED_TINT = np.array([0x60, 0xE0, 0x60, 0xFF], dtype=np.uint8)
REMOVED_TINT = np.array([0xE0, 0x60, 0x60, 0xFF], dtype=np.uint8)


def _viewport_size(shot: Screenshot | None) -> tuple[int, int]:
    if shot is None:
        return 0, 0
    return shot.viewport.width, shot.viewport.height


def _tint(pixels: np.ndarray, tint: np.ndarray) -> np.ndarray:
    """Keep the high bits of each color channel and wash them toward tint, fully opaque."""
    return (pixels >> 3) | tint


def _copy_band(band: np.ndarray, shot: Screenshot | None) -> None:
    # Rows and columns outside the source's own viewport stay untouched
    if shot is None:
        return
    region = shot.viewport_pixels()
    rows, cols = region.shape[:2]
    band[:rows, :cols] = region


def identical_pixels(baseline: np.ndarray, candidate: np.ndarray) -> np.ndarray:
    return np.all(baseline == candidate, axis=-1)


def brightness_difference(
    baseline: np.ndarray,
    candidate: np.ndarray,
    identical: np.ndarray | None = None,
) -> np.ndarray:
    """Per-pixel weighted brightness difference; zero wherever both pixels are identical."""
    if identical is None:
        identical = identical_pixels(baseline, candidate)
    delta = np.abs(baseline.astype(np.int16) - candidate.astype(np.int16))
    brightness = LUMA_RED * delta[..., 0] + LUMA_GREEN * delta[..., 1] + LUMA_BLUE * delta[..., 2]
    return np.where(identical, 0.0, brightness)


def mismatch_mask(baseline: np.ndarray, candidate: np.ndarray, threshold: float) -> np.ndarray:
    """Boolean mask of pixels whose difference reaches the scaled threshold."""
    scaled_threshold = MAX_BRIGHTNESS * normalize_threshold(threshold)
    if scaled_threshold >= MAX_BRIGHTNESS:
        # A full-scale threshold tolerates every difference
        return np.zeros(baseline.shape[:2], dtype=bool)
    identical = identical_pixels(baseline, candidate)
    difference = brightness_difference(baseline, candidate, identical)
    return ~identical & (difference >= scaled_threshold)


def render_composite(
    baseline: Screenshot | None,
    candidate: Screenshot | None,
    threshold: float = DEFAULT_THRESHOLD,
) -> tuple[np.ndarray, int | None]:
    """Render the three-band composite.

    Returns the canvas and the mismatch count, or None as the count when one
    side is absent (no per-pixel comparison happens in that case).
    """
    if baseline is None and candidate is None:
        raise ValueError("At least one of baseline or candidate must be present")

    b_width, b_height = _viewport_size(baseline)
    c_width, c_height = _viewport_size(candidate)
    width = max(b_width, c_width)
    height = max(b_height, c_height)

    canvas = np.zeros((height, width * 3, 4), dtype=np.uint8)
    left = canvas[:, :width]
    middle = canvas[:, width:2 * width]
    right = canvas[:, 2 * width:]

    _copy_band(left, baseline)
    _copy_band(right, candidate)

    if baseline is None or candidate is None:
        middle[:] = HIGHLIGHT
        return canvas, None

    base_band = left.copy()
    cand_band = right.copy()
    mismatched = mismatch_mask(base_band, cand_band, threshold)

    middle[:] = _tint(base_band, TOLERATED_TINT)
    middle[mismatched] = HIGHLIGHT

    # Filter every other mismatched pixel so both sides remain readable
    ys, xs = np.indices(mismatched.shape)
    flagged = mismatched & ((xs + ys) % 2 == 1)
    base_white = np.all(base_band == 0xFF, axis=-1)
    cand_white = np.all(cand_band == 0xFF, axis=-1)

    added = flagged & ~cand_white
    left[added] = _tint(base_band[added], ADDED_TINT)
    removed = flagged & ~base_white
    right[removed] = _tint(cand_band[removed], REMOVED_TINT)

    return canvas, int(np.count_nonzero(mismatched))


def encode_png(canvas: np.ndarray) -> bytes:
    buffer = io.BytesIO()
    Image.fromarray(canvas).save(buffer, format="PNG")
    return buffer.getvalue()


def _write_composite(canvas: np.ndarray, output_path: Path) -> str | None:
    """Write the composite as PNG and return the SHA-256 of the written bytes."""
    if canvas.size == 0:
        logger.debug("Skipping empty composite for %s", output_path)
        return None
    data = encode_png(canvas)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    output_path.write_bytes(data)
    return hashlib.sha256(data).hexdigest()


def diff_screenshots(
    baseline: Screenshot | None,
    candidate: Screenshot | None,
    output_path: str | Path,
    threshold: float = DEFAULT_THRESHOLD,
) -> Unchanged | Changed | Added | Removed:
    """Compare one pair and persist the composite unless the pair is unchanged."""
    output_path = Path(output_path)
    canvas, mismatches = render_composite(baseline, candidate, threshold)

    if mismatches is None:
        _write_composite(canvas, output_path)
        return Added() if baseline is None else Removed()

    if mismatches == 0:
        return Unchanged()

    digest = _write_composite(canvas, output_path)
    return Changed(mismatched_pixels=mismatches, hash=digest)


def run_job(job: DiffJob, registry: DecoderRegistry = DEFAULT_REGISTRY) -> Unchanged | Changed | Added | Removed:
    """Load both sides of a job and diff them."""
    baseline = load_screenshot(job.baseline_path, registry)
    candidate = load_screenshot(job.candidate_path, registry)
    result = diff_screenshots(baseline, candidate, job.output_path, job.threshold)
    logger.debug("Diffed %s: %s", job.name, result.status)
    return result
