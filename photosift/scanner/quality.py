"""
Quality analysis module for the scanner package.

Scores a single decoded photo for common defects:
- Tile-based sharpness with featureless-tile skipping
- Center sharpness (misfocus) and edge density (shallow depth of field rescue)
- Directional motion blur
- Exposure, brightness percentiles and contrast
- Local-variance noise estimate (informational)
- Screenshot heuristic that suppresses most issue checks

A single luminance array is computed per photo and shared by every
sub-analysis.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import NamedTuple, Optional

from ..models import QualityIssue, QualityRecord
from .dependencies import np, _logger
from .hashing import luminance, sobel, to_rgb_array


@dataclass(frozen=True)
class QualityConfig:
    """Thresholds of the quality analyzer."""
    sharpness_threshold: float = 0.50
    center_sharpness_threshold: float = 0.35
    center_blur_ceiling: float = 0.65
    borderline_margin: float = 0.20
    grid_size: int = 4
    tile_normalization_divisor: float = 35.0
    top_tile_count: int = 2
    edge_pixel_threshold: float = 15.0
    edge_density_threshold: float = 0.08
    tile_texture_threshold: float = 5.0
    min_textured_tiles: int = 2
    motion_blur_ratio: float = 5.0
    dark_threshold: float = 0.10
    bright_threshold: float = 0.96
    overexposed_threshold: float = 0.90
    underexposed_brightness: float = 0.20
    highlight_brightness: int = 80
    noise_threshold: float = 0.95
    flag_noise: bool = False
    contrast_threshold: float = 0.06
    contrast_brightness_range: tuple = (0.2, 0.8)
    screenshot_white_ratio: float = 0.35
    screenshot_moderate_white_ratio: float = 0.25
    screenshot_max_colors: int = 120


class SharpnessResult(NamedTuple):
    score: float
    center_score: float
    edge_density: float
    textured_tiles: int


class ExposureResult(NamedTuple):
    score: float
    avg_brightness: float
    contrast: float
    p5: int
    p95: int
    p99: int


def compute_sharpness(lum: np.ndarray, cfg: QualityConfig = QualityConfig()) -> SharpnessResult:
    """
    Tile-based Laplacian sharpness.

    The image is split into a grid of tiles (the last row and column absorb
    the remainder). Featureless tiles are skipped; the score is the mean of
    the sharpest textured tiles, so a sharp subject on a bokeh background
    still scores well.

    Args:
        lum: Luminance array (height, width)
        cfg: Analyzer thresholds

    Returns:
        SharpnessResult with score, center score, edge density and the number
        of textured tiles
    """
    height, width = lum.shape
    grid = cfg.grid_size
    tile_w = width // grid
    tile_h = height // grid
    if width < 3 or height < 3 or tile_w < 3 or tile_h < 3:
        return SharpnessResult(0.5, 0.5, 0.0, 0)

    p = lum.astype(np.float64)
    # Laplacian over the interior; index [y - 1, x - 1] holds pixel (x, y)
    laplacian = p[:-2, 1:-1] + p[2:, 1:-1] + p[1:-1, :-2] + p[1:-1, 2:] - 4 * p[1:-1, 1:-1]

    variances = []
    center_variances = []
    center_range = range(1, grid - 1)
    for ty in range(grid):
        y0 = max(ty * tile_h, 1)
        y1 = min(height if ty == grid - 1 else (ty + 1) * tile_h, height - 1)
        for tx in range(grid):
            x0 = max(tx * tile_w, 1)
            x1 = min(width if tx == grid - 1 else (tx + 1) * tile_w, width - 1)
            if y1 <= y0 or x1 <= x0:
                continue

            if float(np.std(p[y0:y1, x0:x1])) < cfg.tile_texture_threshold:
                continue
            variance = float(np.var(laplacian[y0 - 1:y1 - 1, x0 - 1:x1 - 1]))
            variances.append(variance)
            if tx in center_range and ty in center_range:
                center_variances.append(variance)

    if len(variances) < cfg.min_textured_tiles:
        return SharpnessResult(1.0, 1.0, 0.0, len(variances))

    def normalize(variance: float) -> float:
        return min(max(np.sqrt(variance) / cfg.tile_normalization_divisor, 0.0), 1.0)

    top = sorted(variances, reverse=True)[:cfg.top_tile_count]
    score = sum(normalize(v) for v in top) / len(top)
    if center_variances:
        center_score = sum(normalize(v) for v in center_variances) / len(center_variances)
    else:
        center_score = 1.0
    edge_density = float(np.mean(np.abs(laplacian) > cfg.edge_pixel_threshold))

    return SharpnessResult(float(score), float(center_score), edge_density, len(variances))


def detect_motion_blur(lum: np.ndarray, cfg: QualityConfig = QualityConfig()) -> bool:
    """True if gradients are strongly directional (sampled every 2nd pixel)."""
    height, width = lum.shape
    if width < 3 or height < 3:
        return False
    gx, gy = sobel(lum)
    var_x = float(np.var(gx[::2, ::2]))
    var_y = float(np.var(gy[::2, ::2]))
    low, high = min(var_x, var_y), max(var_x, var_y)
    if low < 1.0:
        return False
    return high / low > cfg.motion_blur_ratio


def compute_exposure(lum: np.ndarray) -> ExposureResult:
    """Exposure score, mean brightness, contrast and luminance percentiles."""
    total = lum.size
    if total == 0:
        return ExposureResult(0.5, 0.5, 0.5, 0, 128, 128)

    histogram = np.bincount(lum.ravel(), minlength=256)
    cumulative = np.cumsum(histogram)
    avg = float(lum.mean()) / 255.0

    def percentile(q: float) -> int:
        return int(np.argmax(cumulative >= total * q))

    p5, p95, p99 = percentile(0.05), percentile(0.95), percentile(0.99)
    contrast = (p95 - p5) / 255.0

    if avg < 0.1:
        score = avg * 2
    elif avg > 0.9:
        score = (1.0 - avg) * 2
    elif avg < 0.3:
        score = 0.5 + (avg - 0.1)
    elif avg > 0.7:
        score = 0.5 + (0.9 - avg)
    else:
        score = 0.8 + (0.5 - abs(avg - 0.5)) * 0.4

    return ExposureResult(min(max(score, 0.0), 1.0), avg, contrast, p5, p95, p99)


def compute_noise(lum: np.ndarray) -> float:
    """Noise estimate from the mean variance of a 4x4 grid of square blocks."""
    height, width = lum.shape
    block = min(width, height) // 4
    if width < 4 or height < 4 or block < 2:
        return 0.3
    p = lum.astype(np.float64)
    variances = [
        np.var(p[by * block:(by + 1) * block, bx * block:(bx + 1) * block])
        for by in range(4)
        for bx in range(4)
    ]
    return float(min(max(np.sqrt(np.mean(variances)) / 25.0, 0.0), 1.0))


def is_screenshot(rgb: np.ndarray, cfg: QualityConfig = QualityConfig()) -> bool:
    """Heuristic: lots of pure white, or moderate white with few distinct colors."""
    pixels = rgb.reshape(-1, 3)
    if len(pixels) == 0:
        return False
    white_ratio = float(np.mean(np.all(pixels > 245, axis=1)))
    quantized = pixels // 32
    colors = len(np.unique(quantized[:, 0] * 64 + quantized[:, 1] * 8 + quantized[:, 2]))
    return (
        white_ratio > cfg.screenshot_white_ratio
        or (white_ratio > cfg.screenshot_moderate_white_ratio and colors < cfg.screenshot_max_colors)
    )


def overall_quality_score(sharpness: float, exposure: float, noise: float, issue_count: int) -> float:
    """Weighted quality minus 0.15 per issue, clamped to [0, 1]."""
    base = sharpness * 0.4 + exposure * 0.4 + (1.0 - noise) * 0.2
    return min(max(base - 0.15 * issue_count, 0.0), 1.0)


def analyze(
    bitmap,
    identifier: str = "",
    cfg: QualityConfig = QualityConfig(),
    logger: Optional[logging.Logger] = None,
) -> QualityRecord:
    """
    Analyze one decoded photo for quality issues.

    Args:
        bitmap: PIL image or RGB array (typically the 256x256 quality view)
        identifier: Photo identifier copied into the record
        cfg: Analyzer thresholds
        logger: Optional logger for the decision trace (DEBUG)

    Returns:
        QualityRecord with scores and detected issues
    """
    log = logger or _logger
    rgb = to_rgb_array(bitmap)
    lum = luminance(rgb)

    sharpness = compute_sharpness(lum, cfg)
    exposure = compute_exposure(lum)
    noise = compute_noise(lum)
    screenshot = is_screenshot(rgb, cfg)
    brightness = exposure.avg_brightness

    issues = []
    if brightness < cfg.underexposed_brightness and exposure.p99 < cfg.highlight_brightness:
        issues.append(QualityIssue.UNDEREXPOSED)

    if not screenshot:
        if brightness > cfg.bright_threshold:
            issues.append(QualityIssue.VERY_BRIGHT)
        elif brightness > cfg.overexposed_threshold:
            issues.append(QualityIssue.OVEREXPOSED)

    if not screenshot and cfg.dark_threshold <= brightness <= cfg.bright_threshold:
        if sharpness.score < cfg.sharpness_threshold:
            if detect_motion_blur(lum, cfg):
                issues.append(QualityIssue.MOTION_BLUR)
            elif (sharpness.score >= cfg.sharpness_threshold - cfg.borderline_margin
                  and sharpness.edge_density >= cfg.edge_density_threshold):
                log.debug(
                    f"{identifier}: borderline sharpness {sharpness.score:.3f} rescued by "
                    f"edge density {sharpness.edge_density:.3f}"
                )
            else:
                issues.append(QualityIssue.BLURRY)
        elif (sharpness.score < cfg.center_blur_ceiling
              and sharpness.center_score < cfg.center_sharpness_threshold):
            log.debug(f"{identifier}: center blur (center score {sharpness.center_score:.3f})")
            issues.append(QualityIssue.BLURRY)

    if cfg.flag_noise and noise > cfg.noise_threshold:
        issues.append(QualityIssue.NOISY)

    low, high = cfg.contrast_brightness_range
    if not screenshot and exposure.contrast < cfg.contrast_threshold and low <= brightness <= high:
        issues.append(QualityIssue.LOW_CONTRAST)

    overall = overall_quality_score(sharpness.score, exposure.score, noise, len(issues))

    log.debug(
        f"{identifier}: sharpness={sharpness.score:.3f} center={sharpness.center_score:.3f} "
        f"tiles={sharpness.textured_tiles}/{cfg.grid_size ** 2} edges={sharpness.edge_density:.3f} "
        f"exposure={exposure.score:.2f} brightness={brightness:.2f} p99={exposure.p99} "
        f"contrast={exposure.contrast:.2f} noise={noise:.2f} screenshot={screenshot} "
        f"issues={[issue.name for issue in issues]}"
    )

    return QualityRecord(
        identifier=identifier,
        sharpness_score=sharpness.score,
        center_sharpness_score=sharpness.center_score,
        edge_density=sharpness.edge_density,
        exposure_score=exposure.score,
        avg_brightness=brightness,
        contrast=exposure.contrast,
        noise_score=noise,
        overall_quality=overall,
        issues=frozenset(issues),
        is_screenshot=screenshot,
    )


__all__ = [
    'QualityConfig',
    'SharpnessResult',
    'ExposureResult',
    'compute_sharpness',
    'detect_motion_blur',
    'compute_exposure',
    'compute_noise',
    'is_screenshot',
    'overall_quality_score',
    'analyze',
]
