"""Decoder registry — selects an image decoder by extension or content signature."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable

import numpy as np
from PIL import Image

from shotdiff.errors import UnsupportedImageError

logger = logging.getLogger(__name__)

SIGNATURE_PROBE_BYTES = 16


@dataclass
class Decoder:
    name: str
    extensions: tuple[str, ...]
    decode: Callable[[Path], np.ndarray]
    signatures: tuple[bytes, ...] = field(default_factory=tuple)

    def matches_signature(self, header: bytes) -> bool:
        return any(header.startswith(sig) for sig in self.signatures)


def decode_with_pillow(path: Path) -> np.ndarray:
    """Decode any Pillow-readable image into an (h, w, 4) uint8 RGBA array."""
    with Image.open(path) as img:
        rgba = img.convert("RGBA")
        return np.array(rgba, dtype=np.uint8)


class DecoderRegistry:
    """Maps lowercase file extensions and magic bytes to decoders."""

    def __init__(self, decoders: list[Decoder] | None = None):
        self._decoders: list[Decoder] = []
        self._by_extension: dict[str, Decoder] = {}
        for decoder in decoders or []:
            self.register(decoder)

    def register(self, decoder: Decoder) -> None:
        self._decoders.append(decoder)
        for ext in decoder.extensions:
            self._by_extension[ext.lower()] = decoder
        logger.debug("Registered %s decoder for %s", decoder.name, ", ".join(decoder.extensions))

    @property
    def extensions(self) -> frozenset[str]:
        return frozenset(self._by_extension)

    def is_image(self, filename: str) -> bool:
        return Path(filename).suffix.lower() in self._by_extension

    def decoder_for(self, path: Path) -> Decoder:
        decoder = self._by_extension.get(path.suffix.lower())
        if decoder is not None:
            return decoder

        with open(path, "rb") as f:
            header = f.read(SIGNATURE_PROBE_BYTES)
        for candidate in self._decoders:
            if candidate.matches_signature(header):
                return candidate
        raise UnsupportedImageError(f"No decoder registered for {path}")

    def decode(self, path: Path) -> np.ndarray:
        return self.decoder_for(path).decode(path)


PNG_DECODER = Decoder(
    name="png",
    extensions=(".png",),
    decode=decode_with_pillow,
    signatures=(b"\x89PNG\r\n\x1a\n",),
)

JPEG_DECODER = Decoder(
    name="jpeg",
    extensions=(".jpg", ".jpeg"),
    decode=decode_with_pillow,
    signatures=(b"\xff\xd8\xff",),
)


def create_default_registry() -> DecoderRegistry:
    return DecoderRegistry([PNG_DECODER, JPEG_DECODER])


# Worker processes build their own copy on import; decoders registered at
# runtime only reach workers running in the same interpreter.
DEFAULT_REGISTRY = create_default_registry()
