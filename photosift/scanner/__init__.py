"""
Scanner package for photosift.

Provides perceptual hashing, quality analysis, similarity classification,
time-window clustering and duplicate grouping, plus the pipeline that runs
them over a photo collection.

Public API:
- find_image_files / collect_metadata: Discover photos and read their metadata
- PillowDecoder: Default decoder producing the fixed-size pixel views
- compute_all_hashes, hamming_distance, histogram_intersection: Features
- encode_histogram / decode_histogram: Histogram storage codec
- analyze: Score one photo for quality issues
- classify: Decide whether two photos are near-duplicates
- find_pairs / search_windows: Compare photos within time windows
- build_groups: Representative-gated duplicate grouping
- ScanPipeline / run_scan: Full scan with caching, progress and cancellation
- has_heif_support: Check if HEIC/HEIF support is available
"""

from __future__ import annotations

from .file_discovery import find_image_files, collect_metadata, read_photo_metadata
from .decoding import PillowDecoder
from .errors import DecodeError, ScanCancelled
from .hashing import (
    HashBundle,
    compute_dhash,
    compute_phash,
    compute_edge_hash,
    compute_color_histogram,
    compute_all_hashes,
    hamming_distance,
    histogram_intersection,
    encode_histogram,
    decode_histogram,
    hash_to_hex,
    hex_to_hash,
)
from .quality import QualityConfig, analyze, overall_quality_score
from .similarity import Classification, Verdict, classify, safe_classify
from .clustering import WindowSearchResult, search_windows, find_pairs, adaptive_window_seconds
from .grouping import GroupBuilder, build_groups
from .analysis import analyze_photo
from .parallel import extract_features_parallel
from .pipeline import ScanStatus, ScanResult, ScanPipeline, run_scan

from .dependencies import HAS_HEIF_SUPPORT


def has_heif_support() -> bool:
    """Check if HEIC/HEIF support is available."""
    return HAS_HEIF_SUPPORT


__all__ = [
    # Discovery and decoding
    'find_image_files',
    'collect_metadata',
    'read_photo_metadata',
    'PillowDecoder',
    'DecodeError',
    'ScanCancelled',
    # Hashing
    'HashBundle',
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
    # Quality
    'QualityConfig',
    'analyze',
    'overall_quality_score',
    # Similarity, clustering and grouping
    'Classification',
    'Verdict',
    'classify',
    'safe_classify',
    'WindowSearchResult',
    'search_windows',
    'find_pairs',
    'adaptive_window_seconds',
    'GroupBuilder',
    'build_groups',
    # Pipeline
    'analyze_photo',
    'extract_features_parallel',
    'ScanStatus',
    'ScanResult',
    'ScanPipeline',
    'run_scan',
    # Feature detection
    'has_heif_support',
]
