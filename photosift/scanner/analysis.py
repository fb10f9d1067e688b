"""
Photo analysis module for the scanner package.

Provides single-photo analysis: decode the fixed-size views, extract the
perceptual features and (optionally) score quality.
"""

from __future__ import annotations

from ..config import ALGORITHM_VERSION
from ..models import FeatureRecord, PhotoAnalysis, PhotoMetadata
from .hashing import compute_all_hashes
from .quality import QualityConfig, analyze


def analyze_photo(
    metadata: PhotoMetadata,
    decoder,
    with_quality: bool = True,
    quality_config: QualityConfig = QualityConfig(),
) -> PhotoAnalysis:
    """
    Analyze one photo.

    Args:
        metadata: Identifier, dimensions, size and capture time
        decoder: ImageDecoder providing the pixel views
        with_quality: Whether to run the quality analyzer
        quality_config: Quality analyzer thresholds

    Returns:
        PhotoAnalysis with features and quality (None if not requested)

    Raises:
        DecodeError: If the decoder can't produce the views
    """
    small, medium = decoder.decode_hash_views(metadata.identifier)
    bundle = compute_all_hashes(small, medium)
    features = FeatureRecord(
        identifier=metadata.identifier,
        dhash=bundle.dhash,
        phash=bundle.phash,
        edge_hash=bundle.edge_hash,
        color_histogram=bundle.color_histogram,
        width=metadata.width,
        height=metadata.height,
        file_size=metadata.file_size,
        captured_at=metadata.captured_at,
        algorithm_version=ALGORITHM_VERSION,
    )

    quality = None
    if with_quality:
        view = decoder.decode_quality_view(metadata.identifier)
        quality = analyze(view, metadata.identifier, quality_config)

    return PhotoAnalysis(features, quality)


__all__ = ['analyze_photo']
