"""Directory enumeration for baseline and candidate screenshots."""

from __future__ import annotations

import logging
from pathlib import Path

from .decoders import DEFAULT_REGISTRY, DecoderRegistry

logger = logging.getLogger(__name__)


def list_image_names(directory: Path, registry: DecoderRegistry = DEFAULT_REGISTRY) -> list[str]:
    """Return the sorted names of recognized image files directly inside directory."""
    return sorted(
        entry.name
        for entry in directory.iterdir()
        if entry.is_file() and registry.is_image(entry.name)
    )


def union_image_names(
    baseline_dir: Path,
    candidate_dir: Path,
    registry: DecoderRegistry = DEFAULT_REGISTRY,
) -> list[str]:
    """Deduplicated union of both listings: baseline names first, then candidate-only names.

    Returns an empty list, with a warning, when neither directory holds images.
    """
    baseline_names = list_image_names(baseline_dir, registry)
    candidate_names = list_image_names(candidate_dir, registry)

    if not baseline_names:
        logger.warning("No images found in the baseline path: %s", baseline_dir)
    if not candidate_names:
        logger.warning("No images found in the candidate path: %s", candidate_dir)
    if not baseline_names and not candidate_names:
        logger.warning("No images found, nothing to compare")
        return []

    names = list(dict.fromkeys(baseline_names + candidate_names))
    logger.info("Found %d unique image names", len(names))
    return names
