"""
Shared utilities for database operations.

Provides:
- CacheStats: Statistics dataclass for tracking cache performance (re-exported)
- Row conversion between photo_features rows and PhotoAnalysis tuples
"""

from __future__ import annotations

import sqlite3
from typing import Iterator, Sequence

from ..models import CacheStats, FeatureRecord, PhotoAnalysis, QualityIssue, QualityRecord
from ..scanner.hashing import decode_histogram, encode_histogram, hash_to_hex, hex_to_hash


# SQLite variable limit constant - used for batch operations
# SQLite has a limit of 999 variables, we use 500 for safety
CHUNK_SIZE = 500

FEATURE_COLUMNS = (
    'identifier', 'dhash', 'phash', 'edge_hash', 'color_histogram',
    'width', 'height', 'file_size', 'captured_at', 'algorithm_version',
    'sharpness_score', 'center_sharpness_score', 'edge_density',
    'exposure_score', 'avg_brightness', 'contrast', 'noise_score',
    'overall_quality', 'issues', 'is_screenshot',
)


def chunked(items: Sequence, size: int = CHUNK_SIZE) -> Iterator[Sequence]:
    """Yield consecutive slices of at most `size` items."""
    for i in range(0, len(items), size):
        yield items[i:i + size]


def analysis_to_row(analysis: PhotoAnalysis) -> tuple:
    """
    Convert a PhotoAnalysis to photo_features column values.

    Args:
        analysis: Features and optional quality of one photo

    Returns:
        Tuple ordered like FEATURE_COLUMNS
    """
    f = analysis.features
    q = analysis.quality
    quality_values = (None,) * 10 if q is None else (
        q.sharpness_score, q.center_sharpness_score, q.edge_density,
        q.exposure_score, q.avg_brightness, q.contrast, q.noise_score,
        q.overall_quality, q.issues_string, int(q.is_screenshot),
    )
    return (
        f.identifier,
        hash_to_hex(f.dhash), hash_to_hex(f.phash), hash_to_hex(f.edge_hash),
        encode_histogram(f.color_histogram) if f.color_histogram else None,
        f.width, f.height, f.file_size, f.captured_at, f.algorithm_version,
    ) + quality_values


def row_to_quality(row: sqlite3.Row) -> QualityRecord | None:
    """Quality part of a photo_features row, or None if never analyzed."""
    if row['overall_quality'] is None:
        return None
    return QualityRecord(
        identifier=row['identifier'],
        sharpness_score=row['sharpness_score'],
        center_sharpness_score=row['center_sharpness_score'],
        edge_density=row['edge_density'],
        exposure_score=row['exposure_score'],
        avg_brightness=row['avg_brightness'],
        contrast=row['contrast'],
        noise_score=row['noise_score'],
        overall_quality=row['overall_quality'],
        issues=QualityIssue.parse_list(row['issues']),
        is_screenshot=bool(row['is_screenshot']),
    )


def row_to_analysis(row: sqlite3.Row) -> PhotoAnalysis:
    """
    Convert database row to a PhotoAnalysis.

    A malformed histogram blob decodes to an empty histogram, which compares
    as "no color information".
    """
    features = FeatureRecord(
        identifier=row['identifier'],
        dhash=hex_to_hash(row['dhash']),
        phash=hex_to_hash(row['phash']),
        edge_hash=hex_to_hash(row['edge_hash']),
        color_histogram=decode_histogram(row['color_histogram']),
        width=row['width'] or 0,
        height=row['height'] or 0,
        file_size=row['file_size'] or 0,
        captured_at=row['captured_at'] or 0.0,
        algorithm_version=row['algorithm_version'],
    )
    return PhotoAnalysis(features, row_to_quality(row))


__all__ = [
    'CHUNK_SIZE',
    'FEATURE_COLUMNS',
    'CacheStats',
    'chunked',
    'analysis_to_row',
    'row_to_quality',
    'row_to_analysis',
]
