"""
Parallel processing module for the scanner package.

Provides parallel feature extraction with caching, bounded decode
concurrency, progress tracking and cooperative cancellation.
"""

from __future__ import annotations

import logging
import threading
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from typing import Callable, Optional, Sequence

from ..config import ALGORITHM_VERSION, DEFAULT_DECODE_CONCURRENCY, DEFAULT_WORKERS, PROGRESS_EVERY

from ..models import CacheStats, PhotoAnalysis, PhotoMetadata
from .analysis import analyze_photo
from .dependencies import _logger, progress_bar
from .errors import DecodeError, ScanCancelled
from .quality import QualityConfig


class AtomicCounter:
    """Integer counter safe to increment from several threads."""

    def __init__(self, value: int = 0):
        self._value = value
        self._lock = threading.Lock()

    def increment(self, amount: int = 1) -> int:
        """Add to the counter and return the new value."""
        with self._lock:
            self._value += amount
            return self._value

    @property
    def value(self) -> int:
        with self._lock:
            return self._value


@dataclass
class ExtractionResult:
    """
    Outcome of a feature extraction pass.

    Attributes:
        analyses: Cached and computed analyses, in input order
        computed: Analyses computed in this pass (written back to the cache)
        failed: Identifiers that couldn't be decoded or analyzed
        stats: Cache hit/miss statistics
    """
    analyses: list = field(default_factory=list)
    computed: list = field(default_factory=list)
    failed: list = field(default_factory=list)
    stats: CacheStats = field(default_factory=CacheStats)


def _usable(cached: Optional[PhotoAnalysis], metadata: PhotoMetadata, with_quality: bool) -> bool:
    if cached is None:
        return False
    if cached.features.file_size != metadata.file_size:
        return False
    return cached.quality is not None or not with_quality


def extract_features_parallel(
    metadata: Sequence[PhotoMetadata],
    decoder,
    store=None,
    max_workers: int = DEFAULT_WORKERS,
    decode_concurrency: int = DEFAULT_DECODE_CONCURRENCY,
    with_quality: bool = True,
    quality_config: QualityConfig = QualityConfig(),
    progress_callback: Optional[Callable[[int, int], None]] = None,
    show_progress: bool = False,
    cancel_event: Optional[threading.Event] = None,
    logger: Optional[logging.Logger] = None,
) -> ExtractionResult:
    """
    Extract features (and quality) for many photos in parallel.

    Args:
        metadata: Photos to analyze
        decoder: ImageDecoder providing the pixel views
        store: Optional FeatureStore for cache lookups and write-back
        max_workers: Number of worker threads
        decode_concurrency: Maximum number of photos decoded at once
        with_quality: Whether to run the quality analyzer
        quality_config: Quality analyzer thresholds
        progress_callback: Optional callback(current, total), every 10 photos
            and on the last one
        show_progress: Whether to show a tqdm progress bar
        cancel_event: Checked before each photo
        logger: Optional logger for status messages

    Returns:
        ExtractionResult

    Raises:
        ScanCancelled: If cancel_event was set; computed analyses have already
            been written to the store
    """
    log = logger or _logger
    unique = list({m.identifier: m for m in metadata}.values())
    total = len(unique)
    stats = CacheStats(total_files=total)
    result = ExtractionResult(stats=stats)
    if not unique:
        return result

    by_id: dict[str, PhotoAnalysis] = {}
    to_analyze: list[PhotoMetadata] = []

    cached: dict[str, PhotoAnalysis] = {}
    if store is not None:
        cached = store.get_batch([m.identifier for m in unique], ALGORITHM_VERSION)

    for meta in unique:
        entry = cached.get(meta.identifier)
        if _usable(entry, meta, with_quality):
            by_id[meta.identifier] = entry
            stats.cache_hits += 1
        else:
            to_analyze.append(meta)
            stats.cache_misses += 1

    if store is not None and stats.cache_hits:
        log.info(
            f"Cache: {stats.cache_hits:,} hits, {stats.cache_misses:,} misses "
            f"({stats.hit_rate:.1f}% hit rate)"
        )

    semaphore = threading.BoundedSemaphore(max(1, decode_concurrency))
    done = AtomicCounter(stats.cache_hits)

    def work(meta: PhotoMetadata) -> Optional[PhotoAnalysis]:
        if cancel_event is not None and cancel_event.is_set():
            return None
        with semaphore:
            return analyze_photo(meta, decoder, with_quality, quality_config)

    if to_analyze:
        pbar = progress_bar(len(to_analyze), "Hashing photos", enabled=show_progress)

        with ThreadPoolExecutor(max_workers=max(1, max_workers)) as executor:
            futures = {executor.submit(work, meta): meta for meta in to_analyze}

            for future in as_completed(futures):
                meta = futures[future]
                try:
                    analysis = future.result()
                    if analysis is not None:
                        by_id[meta.identifier] = analysis
                        result.computed.append(analysis)
                except DecodeError as e:
                    log.warning(f"Skipping {meta.identifier}: {e}")
                    result.failed.append(meta.identifier)
                except Exception as e:
                    log.warning(f"Analysis failed for {meta.identifier}: {e}")
                    result.failed.append(meta.identifier)

                if pbar is not None:
                    pbar.update(1)

                current = done.increment()
                if progress_callback and (current % PROGRESS_EVERY == 0 or current == total):
                    progress_callback(current, total)

        if pbar is not None:
            pbar.close()

        if store is not None and result.computed:
            store.put_batch(result.computed)

    if cancel_event is not None and cancel_event.is_set():
        raise ScanCancelled("Cancelled during feature extraction")

    result.analyses = [by_id[m.identifier] for m in unique if m.identifier in by_id]
    if result.failed:
        log.info(f"{len(result.failed):,} photos could not be analyzed")
    return result


__all__ = ['AtomicCounter', 'ExtractionResult', 'extract_features_parallel']
