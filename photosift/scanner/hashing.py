"""
Hashing module for the scanner package.

Provides the perceptual features used for near-duplicate detection:
- Difference hash (dHash) of a 9x8 view
- DCT perceptual hash (pHash) of a 32x32 view
- Sobel edge hash of a 32x32 view
- 8x8x8 RGB color histogram of a 32x32 view
- Hamming distance, histogram intersection and the storage codecs

All hashes are unsigned 64-bit values held in Python ints. Every function here
is pure; the same pixels always produce the same bits.
"""

from __future__ import annotations

from typing import NamedTuple, Optional, Sequence

from ..config import DHASH_SIZE, FEATURE_SIZE, HISTOGRAM_SIZE
from .dependencies import Image, imagehash, np

_PHASH_BLOCK = 8
_EDGE_GRID = 8
_HISTOGRAM_BYTES = HISTOGRAM_SIZE * 2


class HashBundle(NamedTuple):
    """All perceptual features of one photo."""
    dhash: int
    phash: int
    edge_hash: int
    color_histogram: tuple


def to_rgb_array(view, size: Optional[tuple] = None) -> np.ndarray:
    """
    Convert a decoded view to an int32 (height, width, 3) RGB array.

    Args:
        view: PIL image, (h, w, 3) RGB array or (h, w) grayscale array
        size: Expected (width, height); PIL images are resized to it

    Returns:
        RGB pixel array

    Raises:
        ValueError: If an array view doesn't have the expected size
    """
    if isinstance(view, Image.Image):
        if view.mode != 'RGB':
            view = view.convert('RGB')
        if size is not None and view.size != tuple(size):
            view = view.resize(size, Image.Resampling.LANCZOS)
        return np.asarray(view, dtype=np.int32)

    pixels = np.asarray(view)
    if pixels.ndim == 2:
        pixels = np.stack([pixels] * 3, axis=-1)
    elif pixels.ndim == 3 and pixels.shape[2] == 4:
        pixels = pixels[:, :, :3]
    if pixels.ndim != 3 or pixels.shape[2] != 3:
        raise ValueError(f"Expected an RGB view, got array of shape {pixels.shape}")
    if size is not None and (pixels.shape[1], pixels.shape[0]) != tuple(size):
        raise ValueError(
            f"Expected a {size[0]}x{size[1]} view, got {pixels.shape[1]}x{pixels.shape[0]}"
        )
    return pixels.astype(np.int32)


def luminance(rgb: np.ndarray) -> np.ndarray:
    """Truncated integer luminance 0.299R + 0.587G + 0.114B, clamped to [0, 255]."""
    lum = 0.299 * rgb[..., 0] + 0.587 * rgb[..., 1] + 0.114 * rgb[..., 2]
    return np.clip(lum.astype(np.int32), 0, 255)


def _bits_to_int(bits: np.ndarray) -> int:
    """Pack booleans into an int; element k becomes bit k (LSB first)."""
    packed = np.packbits(bits.astype(np.uint8).ravel(), bitorder='little')
    return int.from_bytes(packed.tobytes(), 'little')


def compute_dhash(view) -> int:
    """
    Difference hash of a 9x8 view.

    Each of the 8 rows yields 8 comparisons of horizontally adjacent pixels;
    the k-th comparison in row-major order is bit k, set when left > right.
    """
    lum = luminance(to_rgb_array(view, DHASH_SIZE))
    return _bits_to_int(lum[:, :-1] > lum[:, 1:])


def _dct_matrix(n: int) -> np.ndarray:
    index = np.arange(n)
    return np.cos((2 * index[np.newaxis, :] + 1) * index[:, np.newaxis] * np.pi / (2 * n))


_DCT_32 = _dct_matrix(FEATURE_SIZE[0])
_DCT_SCALE = np.ones(FEATURE_SIZE[0])
_DCT_SCALE[0] = 1 / np.sqrt(2)


def dct_2d(block: np.ndarray) -> np.ndarray:
    """Two-dimensional DCT-II scaled by 0.25 * c(u) * c(v) of a 32x32 block."""
    coefficients = _DCT_32 @ block @ _DCT_32.T
    return 0.25 * np.outer(_DCT_SCALE, _DCT_SCALE) * coefficients


def compute_phash(view) -> int:
    """
    DCT perceptual hash of a 32x32 view.

    Uses the 63 low-frequency coefficients of the top-left 8x8 block (DC term
    excluded); bit k is set when coefficient k exceeds their median.
    """
    lum = luminance(to_rgb_array(view, FEATURE_SIZE)).astype(np.float64)
    low = dct_2d(lum)[:_PHASH_BLOCK, :_PHASH_BLOCK].ravel()[1:]
    median = np.sort(low)[len(low) // 2]
    return _bits_to_int(low > median)


def sobel(lum: np.ndarray) -> tuple:
    """Sobel X and Y responses over the interior of a luminance array."""
    p = lum.astype(np.float64)
    gx = (
        (p[:-2, 2:] + 2 * p[1:-1, 2:] + p[2:, 2:])
        - (p[:-2, :-2] + 2 * p[1:-1, :-2] + p[2:, :-2])
    )
    gy = (
        (p[2:, :-2] + 2 * p[2:, 1:-1] + p[2:, 2:])
        - (p[:-2, :-2] + 2 * p[:-2, 1:-1] + p[:-2, 2:])
    )
    return gx, gy


def compute_edge_hash(view) -> int:
    """
    Edge-structure hash of a 32x32 view.

    Sobel magnitude over the 30x30 interior is averaged in an 8x8 grid of
    cells; bit k is set when cell k's mean exceeds the median cell mean.
    """
    gx, gy = sobel(luminance(to_rgb_array(view, FEATURE_SIZE)))
    magnitude = np.sqrt(gx * gx + gy * gy)

    side = magnitude.shape[0]
    bounds = np.array([i * side // _EDGE_GRID for i in range(_EDGE_GRID + 1)])
    sums = np.add.reduceat(np.add.reduceat(magnitude, bounds[:-1], axis=0), bounds[:-1], axis=1)
    sizes = np.diff(bounds)
    means = (sums / np.outer(sizes, sizes)).ravel()

    median = np.sort(means)[len(means) // 2]
    return _bits_to_int(means > median)


def compute_color_histogram(view) -> tuple:
    """512-bin RGB histogram (8 bins per channel) of a 32x32 view."""
    rgb = to_rgb_array(view, FEATURE_SIZE)
    bins = np.clip(rgb, 0, 255) * 8 // 256
    index = bins[..., 0] * 64 + bins[..., 1] * 8 + bins[..., 2]
    counts = np.bincount(index.ravel(), minlength=HISTOGRAM_SIZE)
    return tuple(counts.tolist())


def compute_all_hashes(small_view, feature_view) -> HashBundle:
    """
    Compute every perceptual feature of one photo.

    Args:
        small_view: 9x8 view for the difference hash
        feature_view: 32x32 view for pHash, edge hash and histogram

    Returns:
        HashBundle with all four features
    """
    return HashBundle(
        dhash=compute_dhash(small_view),
        phash=compute_phash(feature_view),
        edge_hash=compute_edge_hash(feature_view),
        color_histogram=compute_color_histogram(feature_view),
    )


def hamming_distance(a: int, b: int) -> int:
    """Number of differing bits between two 64-bit hashes."""
    return bin(a ^ b).count("1")


def histogram_intersection(h1: Sequence[int], h2: Sequence[int]) -> float:
    """
    Similarity of two color histograms in [0, 1].

    Returns 1.0 for empty, mismatched or zero-mass histograms so that
    invalid data never filters a pair out.
    """
    a = np.asarray(h1)
    b = np.asarray(h2)
    if a.size == 0 or a.shape != b.shape or a.size != HISTOGRAM_SIZE:
        return 1.0
    total_a = int(a.sum())
    total_b = int(b.sum())
    if total_a <= 0 or total_b <= 0:
        return 1.0
    return float(np.minimum(a, b).sum()) / min(total_a, total_b)


def encode_histogram(histogram: Sequence[int]) -> bytes:
    """Encode a histogram as 2-byte big-endian unsigned counts (clamped to 65535)."""
    counts = np.clip(np.asarray(histogram, dtype=np.int64), 0, 65535)
    return counts.astype('>u2').tobytes()


def decode_histogram(data: Optional[bytes]) -> tuple:
    """Decode a stored histogram; malformed data yields an empty histogram."""
    if data is None or len(data) != _HISTOGRAM_BYTES:
        return ()
    return tuple(np.frombuffer(data, dtype='>u2').tolist())


def hash_to_hex(value: int) -> str:
    """16-digit hex form of a 64-bit hash, as produced by imagehash."""
    bits = [(value >> (63 - k)) & 1 for k in range(64)]
    return str(imagehash.ImageHash(np.array(bits, dtype=bool).reshape(8, 8)))


def hex_to_hash(text: str) -> int:
    """Parse a 16-digit hex hash back into an int."""
    bits = imagehash.hex_to_hash(text).hash.ravel()
    value = 0
    for bit in bits:
        value = (value << 1) | int(bit)
    return value


__all__ = [
    'HashBundle',
    'to_rgb_array',
    'luminance',
    'sobel',
    'dct_2d',
    'compute_dhash',
    'compute_phash',
    'compute_edge_hash',
    'compute_color_histogram',
    'compute_all_hashes',
    'hamming_distance',
    'histogram_intersection',
    'encode_histogram',
    'decode_histogram',
    'hash_to_hex',
    'hex_to_hash',
]
