"""
File discovery module for the scanner package.

Provides functionality to find image files in directories and to read the
metadata the duplicate scan needs (effective dimensions, file size and
capture time) without decoding pixels.
"""

from __future__ import annotations

import os
from datetime import datetime
from pathlib import Path
from typing import Iterable, Optional

from ..config import HEIF_EXTENSIONS, IMAGE_EXTENSIONS
from ..models import PhotoMetadata
from .dependencies import HAS_HEIF_SUPPORT, Image, _logger

# EXIF tags
_ORIENTATION = 0x0112
_EXIF_IFD = 0x8769
_DATETIME_ORIGINAL = 0x9003
_DATETIME = 0x0132
_EXIF_DATE_FORMAT = '%Y:%m:%d %H:%M:%S'


def find_image_files(root_path: str | Path, recursive: bool = True) -> list[str]:
    """
    Find all image files in the given directory.

    Args:
        root_path: Directory path to search for images
        recursive: If True, search subdirectories recursively

    Returns:
        Sorted list of absolute file paths as strings

    Notes:
        - Skips HEIC/HEIF files if pillow-heif is not installed
        - Resolves symlinks and deduplicates files reached via several paths
    """
    root = Path(root_path)

    extensions_to_scan = IMAGE_EXTENSIONS
    if not HAS_HEIF_SUPPORT:
        extensions_to_scan = IMAGE_EXTENSIONS - HEIF_EXTENSIONS

    images = []
    seen = set()
    iterator = root.rglob('*') if recursive else root.glob('*')

    for filepath in iterator:
        if filepath.is_file() and filepath.suffix.lower() in extensions_to_scan:
            resolved = str(filepath.resolve())
            if resolved not in seen:
                seen.add(resolved)
                images.append(resolved)

    return sorted(images)


def parse_exif_datetime(value) -> Optional[float]:
    """Parse an EXIF 'YYYY:MM:DD HH:MM:SS' string into local epoch seconds."""
    if not value:
        return None
    if isinstance(value, bytes):
        value = value.decode('ascii', errors='ignore')
    try:
        return datetime.strptime(str(value).strip('\x00 '), _EXIF_DATE_FORMAT).timestamp()
    except (ValueError, OverflowError, OSError):
        return None


def read_photo_metadata(filepath: str | Path) -> PhotoMetadata:
    """
    Read metadata for one photo.

    Dimensions come from the image header and are swapped for EXIF
    orientations 5-8 (rotated 90 degrees). Capture time is EXIF
    DateTimeOriginal, then DateTime, then the file modification time.

    Raises:
        OSError: If the file can't be stat'ed
    """
    path = str(filepath)
    stat = os.stat(path)
    width = height = 0
    captured_at = None

    try:
        with Image.open(path) as img:
            width, height = img.size
            exif = img.getexif()
            if exif.get(_ORIENTATION) in (5, 6, 7, 8):
                width, height = height, width
            captured_at = parse_exif_datetime(exif.get_ifd(_EXIF_IFD).get(_DATETIME_ORIGINAL))
            if captured_at is None:
                captured_at = parse_exif_datetime(exif.get(_DATETIME))
    except Exception as e:
        _logger.debug(f"Header read failed for {path}: {e}")

    return PhotoMetadata(
        identifier=path,
        width=width,
        height=height,
        file_size=stat.st_size,
        captured_at=captured_at if captured_at is not None else stat.st_mtime,
    )


def collect_metadata(filepaths: Iterable[str | Path]) -> list[PhotoMetadata]:
    """
    Read metadata for many photos, skipping files that disappeared.

    Args:
        filepaths: Image file paths

    Returns:
        List of PhotoMetadata in input order
    """
    metadata = []
    for filepath in filepaths:
        try:
            metadata.append(read_photo_metadata(filepath))
        except OSError as e:
            _logger.warning(f"Skipping {filepath}: {e}")
    return metadata


__all__ = ['find_image_files', 'parse_exif_datetime', 'read_photo_metadata', 'collect_metadata']
