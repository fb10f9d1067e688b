"""
Time-window clustering module for the scanner package.

Near-duplicates are almost always taken close together, so photos are only
compared inside overlapping time windows instead of all-pairs:
- Photos are sorted by (capture time, identifier)
- Windows [t, t + window) start at the earliest capture time and advance by
  step until they pass the latest one; stretches without two photos in one
  window are jumped over
- Every pair inside a window with >= 2 photos is classified
- Matches are normalized to (min id, max id) so overlapping windows that find
  the same pair again don't duplicate it

Windows can be classified on a thread pool; the per-window result sets are
unioned.
"""

from __future__ import annotations

import bisect
import logging
import math
import threading
from concurrent.futures import ThreadPoolExecutor, as_completed
from itertools import combinations
from typing import Callable, Iterator, NamedTuple, Optional, Sequence

from ..config import ADAPTIVE_SPARSE_WINDOW, ADAPTIVE_WINDOWS
from ..models import FeatureRecord, SimilarityConfig
from .errors import ScanCancelled
from .similarity import is_similar

logger = logging.getLogger(__name__)

Comparator = Callable[[FeatureRecord, FeatureRecord, SimilarityConfig], bool]


class WindowSearchResult(NamedTuple):
    """Matched pairs plus the work done to find them."""
    pairs: set
    comparisons: int
    windows_scanned: int


def sort_chronologically(records: Sequence[FeatureRecord]) -> list[FeatureRecord]:
    """Sort records by (capture time, identifier)."""
    return sorted(records, key=lambda r: (r.captured_at, r.identifier))


def iter_windows(
    timestamps: Sequence[float],
    window_seconds: float,
    step_seconds: float,
) -> Iterator[tuple[int, int]]:
    """
    Yield [lo, hi) index ranges of sorted timestamps for each time window
    holding at least two photos.

    Windows start at earliest + k * step. Runs of windows with fewer than two
    photos are skipped in one jump, so a lone outlier capture time (epoch 0,
    an unset camera clock) costs one step instead of one per empty window.

    Args:
        timestamps: Capture times in ascending order
        window_seconds: Window length
        step_seconds: Distance between window starts

    Yields:
        (lo, hi) slice bounds with hi - lo >= 2
    """
    if window_seconds <= 0 or step_seconds <= 0:
        raise ValueError("window_seconds and step_seconds must be positive")
    if step_seconds > window_seconds:
        raise ValueError("step_seconds must not exceed window_seconds")
    if not timestamps:
        return
    earliest, latest = timestamps[0], timestamps[-1]
    k = 0
    while True:
        start = earliest + k * step_seconds
        if start > latest:
            break
        lo = bisect.bisect_left(timestamps, start)
        hi = bisect.bisect_left(timestamps, start + window_seconds)
        if hi - lo >= 2:
            yield lo, hi
            k += 1
            continue
        if hi >= len(timestamps):
            # Later windows only lose photos
            break
        # First start whose window reaches timestamps[hi]
        k = max(k + 1, math.floor((timestamps[hi] - window_seconds - earliest) / step_seconds) + 1)


def _compare_window(
    members: Sequence[FeatureRecord],
    cfg: SimilarityConfig,
    comparator: Comparator,
) -> tuple[set, int]:
    pairs = set()
    comparisons = 0
    for a, b in combinations(members, 2):
        comparisons += 1
        if comparator(a, b, cfg):
            pairs.add((a.identifier, b.identifier) if a.identifier < b.identifier
                      else (b.identifier, a.identifier))
    return pairs, comparisons


def search_windows(
    records: Sequence[FeatureRecord],
    cfg: SimilarityConfig,
    window_seconds: Optional[float] = None,
    step_seconds: Optional[float] = None,
    comparator: Comparator = is_similar,
    max_workers: int = 1,
    cancel_event: Optional[threading.Event] = None,
    progress_callback: Optional[Callable[[int, int], None]] = None,
) -> WindowSearchResult:
    """
    Find matching pairs by classifying photos within overlapping time windows.

    Args:
        records: Feature records to compare
        cfg: Similarity thresholds
        window_seconds: Window length (default cfg.window_seconds)
        step_seconds: Window step (default cfg.step_seconds)
        comparator: Pair predicate (default: the staged similarity classifier)
        max_workers: Classify windows on this many threads
        cancel_event: Checked between windows; raises ScanCancelled when set
        progress_callback: Optional callback(current, total) over sorted photos

    Returns:
        WindowSearchResult with normalized pairs and work counters

    Raises:
        ScanCancelled: If cancel_event is set during the search
    """
    window_seconds = cfg.window_seconds if window_seconds is None else window_seconds
    step_seconds = cfg.step_seconds if step_seconds is None else step_seconds

    ordered = sort_chronologically(records)
    timestamps = [r.captured_at for r in ordered]
    total = len(ordered)

    pairs: set = set()
    comparisons = 0
    windows_scanned = 0
    reported = 0

    def check_cancelled():
        if cancel_event is not None and cancel_event.is_set():
            raise ScanCancelled("Cancelled during comparison")

    def report(current: int) -> None:
        nonlocal reported
        if progress_callback and current > reported:
            reported = current
            progress_callback(current, total)

    windows = iter_windows(timestamps, window_seconds, step_seconds)

    if max_workers <= 1:
        for lo, hi in windows:
            check_cancelled()
            found, count = _compare_window(ordered[lo:hi], cfg, comparator)
            pairs |= found
            comparisons += count
            windows_scanned += 1
            # Progress counts photos whose windows are done
            report(hi)
        check_cancelled()
    else:
        def run(members):
            check_cancelled()
            return _compare_window(members, cfg, comparator)

        with ThreadPoolExecutor(max_workers=max_workers) as executor:
            futures = {executor.submit(run, ordered[lo:hi]): hi for lo, hi in windows}
            try:
                for future in as_completed(futures):
                    found, count = future.result()
                    pairs |= found
                    comparisons += count
                    windows_scanned += 1
                    report(futures[future])
            except ScanCancelled:
                for future in futures:
                    future.cancel()
                raise
        check_cancelled()

    report(total)
    logger.debug(
        f"Scanned {windows_scanned:,} windows "
        f"({window_seconds:.0f}s/{step_seconds:.0f}s): "
        f"{comparisons:,} comparisons, {len(pairs):,} pairs"
    )
    return WindowSearchResult(pairs, comparisons, windows_scanned)


def find_pairs(
    records: Sequence[FeatureRecord],
    cfg: SimilarityConfig,
    window_seconds: Optional[float] = None,
    step_seconds: Optional[float] = None,
    **kwargs,
) -> set:
    """Matching (min id, max id) pairs found within time windows."""
    return search_windows(records, cfg, window_seconds, step_seconds, **kwargs).pairs


def adaptive_window_seconds(records: Sequence[FeatureRecord]) -> tuple[float, float]:
    """
    Pick a window from photo density: dense shoots get shorter windows.

    Returns:
        (window_seconds, step_seconds) with the step at half the window
    """
    if len(records) < 2:
        return ADAPTIVE_SPARSE_WINDOW, ADAPTIVE_SPARSE_WINDOW / 2

    times = [r.captured_at for r in records]
    span_hours = (max(times) - min(times)) / 3600
    density = len(records) / span_hours if span_hours > 0 else float('inf')

    window = ADAPTIVE_SPARSE_WINDOW
    for min_per_hour, seconds in ADAPTIVE_WINDOWS:
        if density > min_per_hour:
            window = seconds
            break
    return window, window / 2


__all__ = [
    'Comparator',
    'WindowSearchResult',
    'sort_chronologically',
    'iter_windows',
    'search_windows',
    'find_pairs',
    'adaptive_window_seconds',
]
