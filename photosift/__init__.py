"""
photosift
=========
Finds near-duplicate photos taken close together in time and flags photos
with quality problems.

Features:
- Perceptual features per photo: dHash, DCT pHash, edge hash, color histogram
- Staged similarity classifier with burst-aware thresholds
- Time-window clustering (fixed or density-adaptive windows)
- Representative-gated duplicate groups
- Quality analysis: sharpness, motion blur, exposure, contrast, noise
- SQLite cache for fast re-scans
- CLI with TXT/CSV/JSON export
"""

__version__ = "1.0.0"

from .models import (
    DuplicateGroup,
    FeatureRecord,
    PhotoMetadata,
    QualityIssue,
    QualityRecord,
    SimilarityConfig,
)
from .config import ALGORITHM_VERSION, IMAGE_EXTENSIONS
from .scanner import (
    PillowDecoder,
    ScanPipeline,
    ScanResult,
    ScanStatus,
    analyze,
    build_groups,
    classify,
    collect_metadata,
    compute_all_hashes,
    find_image_files,
    find_pairs,
    run_scan,
)
from .database import FeatureCache, get_cache, CacheStats

__all__ = [
    "DuplicateGroup",
    "FeatureRecord",
    "PhotoMetadata",
    "QualityIssue",
    "QualityRecord",
    "SimilarityConfig",
    "ALGORITHM_VERSION",
    "IMAGE_EXTENSIONS",
    "PillowDecoder",
    "ScanPipeline",
    "ScanResult",
    "ScanStatus",
    "analyze",
    "build_groups",
    "classify",
    "collect_metadata",
    "compute_all_hashes",
    "find_image_files",
    "find_pairs",
    "run_scan",
    "FeatureCache",
    "get_cache",
    "CacheStats",
]
