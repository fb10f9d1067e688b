"""
Data models for photosift.

Contains dataclasses for photo metadata, per-photo feature and quality
records, duplicate groups, and the similarity configuration used by a scan.
"""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass, field
from enum import Enum
from functools import cached_property
from typing import Any, Mapping, NamedTuple, Optional

import numpy as np

from .config import ALGORITHM_VERSION, DEFAULT_SIMILARITY

_COERCERS = {'int': int, 'float': float}


def format_size(size_bytes: int) -> str:
    """Format file size in human-readable form."""
    for unit in ['B', 'KB', 'MB', 'GB']:
        if size_bytes < 1024:
            return f"{size_bytes:.1f} {unit}"
        size_bytes /= 1024
    return f"{size_bytes:.1f} TB"


@dataclass(frozen=True)
class PhotoMetadata:
    """
    Metadata for one candidate photo, as delivered by a metadata source.

    Attributes:
        identifier: Stable photo identifier (a file path for the CLI)
        width: Effective width in pixels (after EXIF rotation)
        height: Effective height in pixels (after EXIF rotation)
        file_size: Size in bytes
        captured_at: Capture time in epoch seconds
    """
    identifier: str
    width: int = 0
    height: int = 0
    file_size: int = 0
    captured_at: float = 0.0


@dataclass
class FeatureRecord:
    """
    Perceptual features of one photo.

    All hashes are unsigned 64-bit values stored as Python ints.
    The histogram has 512 bins (8x8x8 RGB) computed from the 32x32 view.

    Attributes:
        identifier: Photo identifier
        dhash: Difference hash of the 9x8 view
        phash: DCT perceptual hash of the 32x32 view
        edge_hash: Sobel edge hash of the 32x32 view
        color_histogram: 512 bin counts
        width: Effective width in pixels
        height: Effective height in pixels
        file_size: Size in bytes
        captured_at: Capture time in epoch seconds
        algorithm_version: Version of the algorithms that produced the record
    """
    identifier: str
    dhash: int = 0
    phash: int = 0
    edge_hash: int = 0
    color_histogram: tuple = ()
    width: int = 0
    height: int = 0
    file_size: int = 0
    captured_at: float = 0.0
    algorithm_version: int = ALGORITHM_VERSION

    def __hash__(self):
        return hash(self.identifier)

    @cached_property
    def histogram_array(self) -> np.ndarray:
        """Histogram as an int64 array, built once per record."""
        return np.asarray(self.color_histogram, dtype=np.int64)

    @property
    def is_current(self) -> bool:
        """True if the record was produced by the current algorithm version."""
        return self.algorithm_version == ALGORITHM_VERSION


class QualityIssue(Enum):
    """Quality defects, declared in the order the analyzer decides them."""
    UNDEREXPOSED = 'UNDEREXPOSED'   # Too dark, nothing visible
    VERY_DARK = 'VERY_DARK'         # Legacy label, stored by older versions
    VERY_BRIGHT = 'VERY_BRIGHT'     # Almost completely white
    OVEREXPOSED = 'OVEREXPOSED'     # Blown highlights
    MOTION_BLUR = 'MOTION_BLUR'     # Directional blur
    BLURRY = 'BLURRY'               # Out of focus
    NOISY = 'NOISY'                 # High noise/grain
    LOW_CONTRAST = 'LOW_CONTRAST'   # Flat, washed out

    @property
    def label(self) -> str:
        """Human-readable label."""
        return _ISSUE_LABELS[self]

    @classmethod
    def parse_list(cls, text: Optional[str]) -> frozenset:
        """Parse a comma-separated issue list, ignoring unknown names."""
        if not text:
            return frozenset()
        names = (part.strip() for part in text.split(','))
        return frozenset(cls[name] for name in names if name in cls.__members__)


_ISSUE_LABELS = {
    QualityIssue.UNDEREXPOSED: "Too Dark",
    QualityIssue.VERY_DARK: "Too Dark",
    QualityIssue.VERY_BRIGHT: "White",
    QualityIssue.OVEREXPOSED: "Overexposed",
    QualityIssue.MOTION_BLUR: "Motion Blur",
    QualityIssue.BLURRY: "Blurry",
    QualityIssue.NOISY: "Noisy",
    QualityIssue.LOW_CONTRAST: "Low Contrast",
}

_ISSUE_ORDER = {issue: index for index, issue in enumerate(QualityIssue)}


@dataclass
class QualityRecord:
    """
    Quality scores of one photo. All scores are in [0, 1].

    Attributes:
        identifier: Photo identifier
        sharpness_score: Mean of the two sharpest textured tiles
        center_sharpness_score: Mean sharpness of textured center tiles
        edge_density: Fraction of pixels with a strong Laplacian response
        exposure_score: Exposure quality (1 = well exposed)
        avg_brightness: Mean luminance / 255
        contrast: (p95 - p5) / 255
        noise_score: Local-variance noise estimate (informational)
        overall_quality: Weighted score minus issue penalties
        issues: Detected quality issues
        is_screenshot: True if the screenshot heuristic fired
    """
    identifier: str
    sharpness_score: float = 1.0
    center_sharpness_score: float = 1.0
    edge_density: float = 0.0
    exposure_score: float = 0.5
    avg_brightness: float = 0.5
    contrast: float = 0.5
    noise_score: float = 0.3
    overall_quality: float = 0.5
    issues: frozenset = frozenset()
    is_screenshot: bool = False

    @property
    def ordered_issues(self) -> list:
        """Issues in decision order."""
        return sorted(self.issues, key=_ISSUE_ORDER.__getitem__)

    @property
    def issues_string(self) -> str:
        """Comma-separated issue names, as stored in the cache."""
        return ",".join(issue.name for issue in self.ordered_issues)

    @property
    def has_issues(self) -> bool:
        return bool(self.issues)

    @property
    def primary_issue(self) -> Optional[str]:
        """Label of the first issue in decision order, or None."""
        ordered = self.ordered_issues
        return ordered[0].label if ordered else None

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            'identifier': self.identifier,
            'sharpness_score': round(self.sharpness_score, 4),
            'center_sharpness_score': round(self.center_sharpness_score, 4),
            'edge_density': round(self.edge_density, 4),
            'exposure_score': round(self.exposure_score, 4),
            'avg_brightness': round(self.avg_brightness, 4),
            'contrast': round(self.contrast, 4),
            'noise_score': round(self.noise_score, 4),
            'overall_quality': round(self.overall_quality, 4),
            'issues': [issue.name for issue in self.ordered_issues],
            'primary_issue': self.primary_issue,
            'is_screenshot': self.is_screenshot,
        }


@dataclass
class CacheStats:
    """Statistics about cache usage during a scan."""
    cache_hits: int = 0
    cache_misses: int = 0
    total_files: int = 0

    @property
    def hit_rate(self) -> float:
        """Return cache hit rate as percentage."""
        if self.total_files == 0:
            return 0.0
        return (self.cache_hits / self.total_files) * 100


class PhotoAnalysis(NamedTuple):
    """Features of one photo plus its quality record (None if not analyzed)."""
    features: FeatureRecord
    quality: Optional[QualityRecord] = None


@dataclass
class DuplicateGroup:
    """
    A group of near-duplicate photos.

    Attributes:
        group_id: Unique identifier for this group
        members: Photo identifiers; members[0] is the representative to keep
        created_at: Epoch seconds when the group was built
    """
    group_id: str
    members: list = field(default_factory=list)
    created_at: float = 0.0

    @property
    def representative(self) -> Optional[str]:
        """The photo kept by default (first member)."""
        return self.members[0] if self.members else None

    @property
    def duplicates(self) -> list:
        """All members except the representative."""
        return self.members[1:]

    @property
    def member_count(self) -> int:
        return len(self.members)

    def potential_savings(self, file_sizes: Mapping[str, int]) -> int:
        """Bytes that could be saved by removing the duplicates."""
        return sum(file_sizes.get(member, 0) for member in self.duplicates)

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            'group_id': self.group_id,
            'members': list(self.members),
            'representative': self.representative,
            'member_count': self.member_count,
            'created_at': self.created_at,
        }

    @classmethod
    def from_dict(cls, data: dict) -> 'DuplicateGroup':
        """Create DuplicateGroup from dictionary."""
        return cls(
            group_id=data['group_id'],
            members=list(data.get('members', [])),
            created_at=data.get('created_at', 0.0),
        )


@dataclass(frozen=True)
class SimilarityConfig:
    """
    Thresholds for the similarity classifier and the time-window clusterer.

    Built once per scan and never mutated. Defaults come from
    ``config.DEFAULT_SIMILARITY``; use ``from_mapping`` or ``replace`` to
    override individual options.
    """
    dhash_certain: int = DEFAULT_SIMILARITY['dhash_certain']
    dhash_threshold: int = DEFAULT_SIMILARITY['dhash_threshold']
    phash_threshold: int = DEFAULT_SIMILARITY['phash_threshold']
    phash_threshold_strict: int = DEFAULT_SIMILARITY['phash_threshold_strict']
    color_threshold: float = DEFAULT_SIMILARITY['color_threshold']
    edge_hash_threshold: int = DEFAULT_SIMILARITY['edge_hash_threshold']
    rapid_color_threshold: float = DEFAULT_SIMILARITY['rapid_color_threshold']
    rapid_edge_threshold: int = DEFAULT_SIMILARITY['rapid_edge_threshold']
    aspect_tolerance: float = DEFAULT_SIMILARITY['aspect_tolerance']
    file_size_tolerance: float = DEFAULT_SIMILARITY['file_size_tolerance']
    high_conf_color: float = DEFAULT_SIMILARITY['high_conf_color']
    high_conf_edge: int = DEFAULT_SIMILARITY['high_conf_edge']
    dhash_boost: int = DEFAULT_SIMILARITY['dhash_boost']
    phash_boost: int = DEFAULT_SIMILARITY['phash_boost']
    rapid_seconds: float = DEFAULT_SIMILARITY['rapid_seconds']
    burst_seconds: float = DEFAULT_SIMILARITY['burst_seconds']
    close_seconds: float = DEFAULT_SIMILARITY['close_seconds']
    rapid_boost: int = DEFAULT_SIMILARITY['rapid_boost']
    burst_boost: int = DEFAULT_SIMILARITY['burst_boost']
    close_boost: int = DEFAULT_SIMILARITY['close_boost']
    color_very_high: float = DEFAULT_SIMILARITY['color_very_high']
    color_high: float = DEFAULT_SIMILARITY['color_high']
    window_seconds: float = DEFAULT_SIMILARITY['window_seconds']
    step_seconds: float = DEFAULT_SIMILARITY['step_seconds']
    group_merge_slack: int = DEFAULT_SIMILARITY['group_merge_slack']

    def __post_init__(self):
        if self.window_seconds <= 0 or self.step_seconds <= 0:
            raise ValueError("window_seconds and step_seconds must be positive")
        if self.step_seconds > self.window_seconds:
            raise ValueError("step_seconds must not exceed window_seconds")
        if self.aspect_tolerance < 1.0 or self.file_size_tolerance < 1.0:
            raise ValueError("aspect_tolerance and file_size_tolerance must be >= 1.0")

    @classmethod
    def option_names(cls) -> list:
        """Names of all recognized options."""
        return [f.name for f in dataclasses.fields(cls)]

    @classmethod
    def from_mapping(cls, overrides: Optional[Mapping[str, Any]] = None) -> 'SimilarityConfig':
        """
        Build a config from a mapping of option overrides.

        Values are coerced to the type of the option's default, so strings
        from the environment or the command line are accepted.

        Raises:
            ValueError: If an option name is unknown or a value can't be coerced
        """
        overrides = dict(overrides or {})
        known = {f.name: f for f in dataclasses.fields(cls)}
        unknown = sorted(set(overrides) - set(known))
        if unknown:
            raise ValueError(f"Unknown similarity option(s): {', '.join(unknown)}")

        values = {}
        for name, value in overrides.items():
            caster = _COERCERS[getattr(known[name].type, "__name__", known[name].type)]
            try:
                values[name] = caster(value)
            except (TypeError, ValueError) as e:
                raise ValueError(f"Invalid value for {name}: {value!r} ({e})") from e
        return cls(**values)

    def replace(self, **overrides) -> 'SimilarityConfig':
        """Return a copy with the given options overridden."""
        merged = self.to_dict()
        merged.update(overrides)
        return self.from_mapping(merged)

    def to_dict(self) -> dict:
        return dataclasses.asdict(self)
