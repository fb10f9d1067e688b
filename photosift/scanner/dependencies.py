"""
Third-party imports shared by the scanner package.

Pillow, numpy and imagehash are required. pillow-heif (HEIC decoding) and
tqdm (progress bars) are optional and probed once at import time.
"""

from __future__ import annotations

import logging
import warnings
from typing import Any, Optional

_logger = logging.getLogger(__name__)

try:
    from PIL import Image, ImageOps
    import imagehash
    import numpy as np
except ImportError:
    raise ImportError(
        "photosift needs Pillow, numpy and imagehash.\n"
        "Install with: pip install Pillow numpy imagehash"
    )

# HEIC/HEIF is the default iPhone format; the opener must be registered
# before the first Image.open
HAS_HEIF_SUPPORT = False
try:
    from pillow_heif import register_heif_opener
    register_heif_opener()
    HAS_HEIF_SUPPORT = True
except ImportError:
    _logger.debug("pillow-heif not installed; .heic/.heif files will be skipped")

HAS_TQDM = False
_tqdm_class: Optional[Any] = None
try:
    from tqdm import tqdm as _tqdm_class
    HAS_TQDM = True
except ImportError:
    pass

DEFAULT_MAX_IMAGE_PIXELS = 500_000_000


def set_max_image_pixels(limit: Optional[int]) -> None:
    """
    Set Pillow's decompression bomb limit.

    Camera originals and stitched panoramas routinely exceed Pillow's ~89MP
    default. None disables the check.
    """
    Image.MAX_IMAGE_PIXELS = limit
    _logger.debug(f"Pillow pixel limit set to {limit}")


def progress_bar(total: int, desc: str, enabled: bool = True):
    """tqdm bar for ``total`` items, or None if disabled or tqdm is missing."""
    if not (enabled and HAS_TQDM) or total <= 0:
        return None
    return _tqdm_class(total=total, desc=desc, unit="img", ncols=80)


set_max_image_pixels(DEFAULT_MAX_IMAGE_PIXELS)
warnings.filterwarnings("ignore", category=Image.DecompressionBombWarning)


__all__ = [
    'Image',
    'ImageOps',
    'imagehash',
    'np',
    'HAS_HEIF_SUPPORT',
    'HAS_TQDM',
    'DEFAULT_MAX_IMAGE_PIXELS',
    'set_max_image_pixels',
    'progress_bar',
    '_logger',
]
