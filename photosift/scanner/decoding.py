"""
Image decoding module for the scanner package.

Provides the default decoder, which turns image files into the small fixed
size RGB views the hash extractor and quality analyzer work on. JPEGs use
Pillow's draft mode so large originals are decoded at a reduced scale, and
EXIF orientation is applied before resizing.
"""

from __future__ import annotations

import os
from pathlib import Path

from ..config import DHASH_SIZE, FEATURE_SIZE, HEIF_EXTENSIONS, QUALITY_SIZE
from .dependencies import HAS_HEIF_SUPPORT, Image, ImageOps, _logger, np
from .errors import DecodeError


class PillowDecoder:
    """Decodes image files with Pillow into fixed-size RGB arrays."""

    def __init__(
        self,
        dhash_size: tuple = DHASH_SIZE,
        feature_size: tuple = FEATURE_SIZE,
        quality_size: tuple = QUALITY_SIZE,
    ):
        self.dhash_size = dhash_size
        self.feature_size = feature_size
        self.quality_size = quality_size

    def _load(self, identifier: str | Path, target: tuple) -> Image.Image:
        """Open, orient and convert an image, decoding no larger than needed."""
        path = str(identifier)
        if os.path.splitext(path)[1].lower() in HEIF_EXTENSIONS and not HAS_HEIF_SUPPORT:
            raise DecodeError(path, "HEIC/HEIF support not installed (pip install pillow-heif)")
        try:
            with Image.open(path) as img:
                if img.format == 'JPEG':
                    img.draft('RGB', target)
                img = ImageOps.exif_transpose(img)
                if img.mode != 'RGB':
                    img = img.convert('RGB')
                img.load()
                return img
        except DecodeError:
            raise
        except Exception as e:
            raise DecodeError(path, str(e)) from e

    def _resize(self, img: Image.Image, size: tuple) -> np.ndarray:
        return np.asarray(img.resize(size, Image.Resampling.LANCZOS), dtype=np.uint8)

    def decode_hash_views(self, identifier: str | Path) -> tuple[np.ndarray, np.ndarray]:
        """
        Decode the views used for hashing.

        Returns:
            (9x8 view for dHash, 32x32 view for pHash/edge hash/histogram)

        Raises:
            DecodeError: If the image can't be opened or decoded
        """
        img = self._load(identifier, self.feature_size)
        return self._resize(img, self.dhash_size), self._resize(img, self.feature_size)

    def decode_quality_view(self, identifier: str | Path) -> np.ndarray:
        """
        Decode the 256x256 view used for quality analysis.

        Raises:
            DecodeError: If the image can't be opened or decoded
        """
        img = self._load(identifier, self.quality_size)
        _logger.debug(f"Decoded {identifier} at {img.width}x{img.height} for quality analysis")
        return self._resize(img, self.quality_size)


__all__ = ['PillowDecoder']
