"""
Scan pipeline for the scanner package.

Runs a complete duplicate + quality scan over a batch of photos:
1. HASHING: cache lookup, then bounded parallel decode and feature extraction
2. COMPARING: time-window clustering with the staged similarity classifier
3. Grouping: representative-gated duplicate groups
4. Persistence: computed features are upserted, groups replace all prior ones

Progress goes to a sink callback(status, current, total). Cancellation is
cooperative through a threading.Event; a cancelled scan still caches the
features it computed but produces no groups.
"""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Iterable, Optional, Protocol, Sequence

from ..config import DEFAULT_DECODE_CONCURRENCY, DEFAULT_WORKERS
from ..models import (
    CacheStats,
    DuplicateGroup,
    FeatureRecord,
    PhotoAnalysis,
    PhotoMetadata,
    QualityRecord,
    SimilarityConfig,
)
from .clustering import adaptive_window_seconds, search_windows
from .errors import ScanCancelled
from .grouping import build_groups
from .parallel import extract_features_parallel
from .quality import QualityConfig

logger = logging.getLogger(__name__)


class ScanStatus(Enum):
    HASHING = 'hashing'
    COMPARING = 'comparing'
    COMPLETE = 'complete'
    ERROR = 'error'
    CANCELLED = 'cancelled'


ProgressSink = Callable[[ScanStatus, int, int], None]


class ImageDecoder(Protocol):
    """Produces the fixed-size pixel views for one photo."""

    def decode_hash_views(self, identifier: str):
        """Return (9x8 view, 32x32 view); raise DecodeError on failure."""
        ...

    def decode_quality_view(self, identifier: str):
        """Return the 256x256 view; raise DecodeError on failure."""
        ...


class FeatureStore(Protocol):
    """Persists features and duplicate groups between scans."""

    def get_batch(self, identifiers: list[str], algorithm_version: int) -> dict[str, PhotoAnalysis]:
        ...

    def put_batch(self, entries: Iterable[PhotoAnalysis]) -> int:
        ...

    def replace_groups(self, groups: list[DuplicateGroup]) -> int:
        ...


@dataclass
class ScanResult:
    """
    Outcome of a scan.

    Attributes:
        status: COMPLETE or CANCELLED
        groups: Duplicate groups (empty when cancelled or in quality-only mode)
        features: Feature records of all analyzed photos
        quality: Quality record per identifier
        failed: Identifiers that couldn't be decoded
        cache_stats: Cache hits and misses
        comparisons: Number of pairs classified
        windows_scanned: Number of time windows with >= 2 photos
        window_seconds: Window length used
        step_seconds: Window step used
        elapsed: Wall time in seconds
    """
    status: ScanStatus
    groups: list = field(default_factory=list)
    features: list = field(default_factory=list)
    quality: dict = field(default_factory=dict)
    failed: list = field(default_factory=list)
    cache_stats: CacheStats = field(default_factory=CacheStats)
    comparisons: int = 0
    windows_scanned: int = 0
    window_seconds: float = 0.0
    step_seconds: float = 0.0
    elapsed: float = 0.0

    @property
    def duplicate_count(self) -> int:
        """Photos that could be removed (all group members except the kept one)."""
        return sum(len(group.duplicates) for group in self.groups)

    @property
    def quality_issues(self) -> list[QualityRecord]:
        """Quality records with at least one issue, worst first."""
        flagged = [record for record in self.quality.values() if record.has_issues]
        return sorted(flagged, key=lambda r: (r.overall_quality, r.identifier))


class ScanPipeline:
    """
    Runs duplicate and quality scans.

    Usage:
        pipeline = ScanPipeline(decoder=PillowDecoder(), store=FeatureCache())
        result = pipeline.run(collect_metadata(find_image_files(root)))
    """

    def __init__(
        self,
        decoder: ImageDecoder,
        store: Optional[FeatureStore] = None,
        similarity: SimilarityConfig = SimilarityConfig(),
        quality_config: QualityConfig = QualityConfig(),
        max_workers: int = DEFAULT_WORKERS,
        decode_concurrency: int = DEFAULT_DECODE_CONCURRENCY,
        adaptive_windows: bool = False,
        with_quality: bool = True,
        find_duplicates: bool = True,
        show_progress: bool = False,
        log_level: Optional[int] = None,
    ):
        """
        Args:
            decoder: ImageDecoder providing pixel views
            store: Optional FeatureStore (cache + group persistence)
            similarity: Similarity and window thresholds
            quality_config: Quality analyzer thresholds
            max_workers: Worker threads for extraction and comparison
            decode_concurrency: Maximum photos decoded at once
            adaptive_windows: Pick the window size from photo density
            with_quality: Run the quality analyzer
            find_duplicates: Run comparison and grouping
            show_progress: Show tqdm progress bars
            log_level: Level for the scanner package loggers (unchanged if None)
        """
        self.decoder = decoder
        self.store = store
        self.similarity = similarity
        self.quality_config = quality_config
        self.max_workers = max_workers
        self.decode_concurrency = decode_concurrency
        self.adaptive_windows = adaptive_windows
        self.with_quality = with_quality
        self.find_duplicates = find_duplicates
        self.show_progress = show_progress
        if log_level is not None:
            logging.getLogger(__package__).setLevel(log_level)

    def _window(self, features: Sequence[FeatureRecord]) -> tuple[float, float]:
        if self.adaptive_windows:
            return adaptive_window_seconds(features)
        return self.similarity.window_seconds, self.similarity.step_seconds

    def run(
        self,
        metadata: Iterable[PhotoMetadata],
        progress: Optional[ProgressSink] = None,
        cancel_event: Optional[threading.Event] = None,
    ) -> ScanResult:
        """
        Run a scan.

        Args:
            metadata: Photos to scan
            progress: Optional sink callback(status, current, total)
            cancel_event: Set it to cancel the scan

        Returns:
            ScanResult (status COMPLETE or CANCELLED)

        Raises:
            Exception: Any unexpected error, after ERROR was reported
        """
        start = time.time()
        metadata = list(metadata)

        def report(status: ScanStatus, current: int, total: int):
            if progress is not None:
                progress(status, current, total)

        try:
            logger.info(f"Analyzing {len(metadata):,} photos")
            report(ScanStatus.HASHING, 0, len(metadata))
            extraction = extract_features_parallel(
                metadata,
                self.decoder,
                store=self.store,
                max_workers=self.max_workers,
                decode_concurrency=self.decode_concurrency,
                with_quality=self.with_quality,
                quality_config=self.quality_config,
                progress_callback=lambda current, total: report(ScanStatus.HASHING, current, total),
                show_progress=self.show_progress,
                cancel_event=cancel_event,
                logger=logger,
            )

            features = [analysis.features for analysis in extraction.analyses]
            quality = {
                analysis.features.identifier: analysis.quality
                for analysis in extraction.analyses
                if analysis.quality is not None
            }
            result = ScanResult(
                status=ScanStatus.COMPLETE,
                features=features,
                quality=quality,
                failed=extraction.failed,
                cache_stats=extraction.stats,
            )

            if self.find_duplicates:
                window, step = self._window(features)
                result.window_seconds, result.step_seconds = window, step
                logger.info(f"Comparing {len(features):,} photos in {window:.0f}s windows (step {step:.0f}s)")

                search = search_windows(
                    features,
                    self.similarity,
                    window_seconds=window,
                    step_seconds=step,
                    max_workers=self.max_workers,
                    cancel_event=cancel_event,
                    progress_callback=lambda current, total: report(ScanStatus.COMPARING, current, total),
                )
                result.comparisons = search.comparisons
                result.windows_scanned = search.windows_scanned
                result.groups = build_groups(search.pairs, features, self.similarity)

                if self.store is not None:
                    self.store.replace_groups(result.groups)

            result.elapsed = time.time() - start
            logger.info(
                f"Scan complete: {len(result.groups):,} groups, "
                f"{len(result.quality_issues):,} photos with quality issues "
                f"({result.elapsed:.1f}s)"
            )
            report(ScanStatus.COMPLETE, len(features), len(metadata))
            return result

        except ScanCancelled as e:
            logger.info(f"Scan cancelled: {e}")
            report(ScanStatus.CANCELLED, 0, len(metadata))
            return ScanResult(status=ScanStatus.CANCELLED, elapsed=time.time() - start)
        except Exception as e:
            logger.error(f"Scan failed: {e}")
            report(ScanStatus.ERROR, 0, len(metadata))
            raise


def run_scan(
    metadata: Iterable[PhotoMetadata],
    decoder: ImageDecoder,
    store: Optional[FeatureStore] = None,
    progress: Optional[ProgressSink] = None,
    cancel_event: Optional[threading.Event] = None,
    **options,
) -> ScanResult:
    """Convenience wrapper: build a ScanPipeline with options and run it once."""
    pipeline = ScanPipeline(decoder, store, **options)
    return pipeline.run(metadata, progress=progress, cancel_event=cancel_event)


__all__ = [
    'ScanStatus',
    'ProgressSink',
    'ImageDecoder',
    'FeatureStore',
    'ScanResult',
    'ScanPipeline',
    'run_scan',
]
