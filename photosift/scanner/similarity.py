"""
Similarity classification module for the scanner package.

Decides whether two photos are near-duplicates through a staged pipeline:
1. Temporal tier (rapid / burst / close) from the capture-time gap
2. Dual-path entry gate: color histogram OR edge structure must agree
3. Pre-filters on aspect ratio and file size
4. Confidence boosts (high color + edge agreement, temporal proximity)
5. dHash gate (certain match / clear reject)
6. pHash confirmation

Every stage is a symmetric function of the pair and the arguments are put in
a canonical order, so classify(a, b) == classify(b, a).
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import NamedTuple, Optional

from ..models import FeatureRecord, SimilarityConfig
from .dependencies import _logger
from .hashing import hamming_distance, histogram_intersection


class Verdict(Enum):
    MATCH = 'match'
    REJECT = 'reject'


class TemporalTier(Enum):
    RAPID = 'rapid'
    BURST = 'burst'
    CLOSE = 'close'
    NONE = 'none'


# Stage names reported in Classification.stage
STAGE_ENTRY_GATE = 'entry_gate'
STAGE_ASPECT_RATIO = 'aspect_ratio'
STAGE_FILE_SIZE = 'file_size'
STAGE_DHASH_CERTAIN = 'dhash_certain'
STAGE_DHASH = 'dhash'
STAGE_PHASH = 'phash'
STAGE_ERROR = 'error'


class Classification(NamedTuple):
    """Outcome of comparing two photos, with the quantities that decided it."""
    verdict: Verdict
    stage: str
    tier: TemporalTier = TemporalTier.NONE
    color_similarity: Optional[float] = None
    edge_distance: Optional[int] = None
    dhash_distance: Optional[int] = None
    phash_distance: Optional[int] = None
    phash_threshold: Optional[int] = None

    @property
    def is_match(self) -> bool:
        return self.verdict is Verdict.MATCH


def temporal_tier(seconds_apart: float, cfg: SimilarityConfig) -> TemporalTier:
    """Classify a capture-time gap into a temporal tier."""
    if seconds_apart <= cfg.rapid_seconds:
        return TemporalTier.RAPID
    if seconds_apart <= cfg.burst_seconds:
        return TemporalTier.BURST
    if seconds_apart <= cfg.close_seconds:
        return TemporalTier.CLOSE
    return TemporalTier.NONE


def temporal_boost(tier: TemporalTier, color_similarity: float, cfg: SimilarityConfig) -> int:
    """
    Threshold boost for photos taken close together.

    The tier boost is scaled by how well the colors agree (full above
    color_very_high, half above color_high, none below) and truncated.
    """
    tier_boost = {
        TemporalTier.RAPID: cfg.rapid_boost,
        TemporalTier.BURST: cfg.burst_boost,
        TemporalTier.CLOSE: cfg.close_boost,
    }.get(tier, 0)
    if color_similarity >= cfg.color_very_high:
        multiplier = 1.0
    elif color_similarity >= cfg.color_high:
        multiplier = 0.5
    else:
        multiplier = 0.0
    return int(tier_boost * multiplier)


def aspect_ratio(width: int, height: int) -> float:
    """Long side over short side; orientation independent."""
    return max(width, height) / min(width, height)


def aspect_ratios_compatible(a: FeatureRecord, b: FeatureRecord, cfg: SimilarityConfig) -> bool:
    """True if the aspect ratios are within tolerance (or unknown)."""
    if min(a.width, a.height, b.width, b.height) <= 0:
        return True
    ra = aspect_ratio(a.width, a.height)
    rb = aspect_ratio(b.width, b.height)
    return max(ra, rb) / min(ra, rb) <= cfg.aspect_tolerance


def file_sizes_compatible(a: FeatureRecord, b: FeatureRecord, cfg: SimilarityConfig) -> bool:
    """True if the file sizes are within tolerance (or unknown)."""
    if a.file_size <= 0 or b.file_size <= 0:
        return True
    return max(a.file_size, b.file_size) / min(a.file_size, b.file_size) <= cfg.file_size_tolerance


def classify(
    a: FeatureRecord,
    b: FeatureRecord,
    cfg: SimilarityConfig,
    logger: Optional[logging.Logger] = None,
) -> Classification:
    """
    Decide whether two photos are near-duplicates.

    Args:
        a: Features of the first photo
        b: Features of the second photo
        cfg: Similarity thresholds
        logger: Optional logger for the decision trace (DEBUG)

    Returns:
        Classification with the verdict and the stage that decided it
    """
    if b.identifier < a.identifier:
        a, b = b, a
    log = logger or _logger

    tier = temporal_tier(abs(a.captured_at - b.captured_at), cfg)
    rapid = tier is TemporalTier.RAPID

    color_sim = histogram_intersection(a.histogram_array, b.histogram_array)
    edge_dist = hamming_distance(a.edge_hash, b.edge_hash)
    color_threshold = cfg.rapid_color_threshold if rapid else cfg.color_threshold
    edge_threshold = cfg.rapid_edge_threshold if rapid else cfg.edge_hash_threshold
    color_ok = color_sim >= color_threshold
    edge_ok = edge_dist <= edge_threshold

    def result(verdict: Verdict, stage: str, **extra) -> Classification:
        outcome = Classification(
            verdict, stage, tier, color_sim, edge_dist,
            extra.get('dhash_distance'), extra.get('phash_distance'), extra.get('phash_threshold'),
        )
        if log.isEnabledFor(logging.DEBUG):
            log.debug(
                f"{a.identifier} ~ {b.identifier}: {verdict.name} at {stage} "
                f"(tier={tier.value}, color={color_sim:.3f}, edge={edge_dist}, "
                f"dhash={outcome.dhash_distance}, phash={outcome.phash_distance})"
            )
        return outcome

    if not (color_ok or edge_ok):
        return result(Verdict.REJECT, STAGE_ENTRY_GATE)

    if not aspect_ratios_compatible(a, b, cfg):
        return result(Verdict.REJECT, STAGE_ASPECT_RATIO)
    if not file_sizes_compatible(a, b, cfg):
        return result(Verdict.REJECT, STAGE_FILE_SIZE)

    dhash_boost = 0
    phash_boost = 0
    if color_sim >= cfg.high_conf_color and edge_dist <= cfg.high_conf_edge:
        dhash_boost += cfg.dhash_boost
        phash_boost += cfg.phash_boost
    time_boost = temporal_boost(tier, color_sim, cfg)
    dhash_boost += time_boost
    phash_boost += time_boost

    dhash_dist = hamming_distance(a.dhash, b.dhash)
    if dhash_dist <= cfg.dhash_certain + dhash_boost:
        return result(Verdict.MATCH, STAGE_DHASH_CERTAIN, dhash_distance=dhash_dist)
    if dhash_dist > cfg.dhash_threshold + dhash_boost:
        return result(Verdict.REJECT, STAGE_DHASH, dhash_distance=dhash_dist)

    if phash_boost > 0:
        phash_threshold = cfg.phash_threshold + phash_boost
    elif edge_ok and not color_ok:
        phash_threshold = cfg.phash_threshold_strict
    else:
        phash_threshold = cfg.phash_threshold

    phash_dist = hamming_distance(a.phash, b.phash)
    verdict = Verdict.MATCH if phash_dist <= phash_threshold else Verdict.REJECT
    return result(
        verdict, STAGE_PHASH,
        dhash_distance=dhash_dist, phash_distance=phash_dist, phash_threshold=phash_threshold,
    )


def safe_classify(
    a: FeatureRecord,
    b: FeatureRecord,
    cfg: SimilarityConfig,
    logger: Optional[logging.Logger] = None,
) -> Classification:
    """classify() that turns any error into a REJECT for that pair."""
    try:
        return classify(a, b, cfg, logger)
    except Exception as e:
        (logger or _logger).warning(f"Comparison failed for {a.identifier} ~ {b.identifier}: {e}")
        return Classification(Verdict.REJECT, STAGE_ERROR)


def is_similar(a: FeatureRecord, b: FeatureRecord, cfg: SimilarityConfig) -> bool:
    """Pair predicate used by the clusterer."""
    return safe_classify(a, b, cfg).is_match


__all__ = [
    'Verdict',
    'TemporalTier',
    'Classification',
    'STAGE_ENTRY_GATE',
    'STAGE_ASPECT_RATIO',
    'STAGE_FILE_SIZE',
    'STAGE_DHASH_CERTAIN',
    'STAGE_DHASH',
    'STAGE_PHASH',
    'STAGE_ERROR',
    'temporal_tier',
    'temporal_boost',
    'aspect_ratio',
    'aspect_ratios_compatible',
    'file_sizes_compatible',
    'classify',
    'safe_classify',
    'is_similar',
]
