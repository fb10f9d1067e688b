"""
Unit tests for time-window clustering.
"""

import threading

import pytest

from photosift.models import SimilarityConfig
from photosift.scanner.clustering import (
    adaptive_window_seconds,
    find_pairs,
    iter_windows,
    search_windows,
    sort_chronologically,
)
from photosift.scanner.errors import ScanCancelled

from conftest import make_record

CFG = SimilarityConfig()


def always(a, b, cfg):
    return True


def never(a, b, cfg):
    return False


def records_at(*times):
    return [make_record(f"p{i:05d}", captured_at=t) for i, t in enumerate(times)]


class TestIterWindows:
    """Test window boundaries."""

    def test_windows_with_two_or_more_photos(self):
        windows = list(iter_windows([0, 100, 200, 400], 300, 150))
        assert windows == [(0, 3), (2, 4)]

    def test_empty(self):
        assert list(iter_windows([], 300, 150)) == []

    def test_single_timestamp(self):
        assert list(iter_windows([42.0], 300, 150)) == []

    def test_gap_is_skipped(self):
        windows = list(iter_windows([0, 10, 5000, 5010], 300, 150))
        assert windows == [(0, 2), (2, 4), (2, 4)]

    def test_outlier_timestamp(self):
        base = 1_700_000_000.0
        windows = list(iter_windows([0.0, base, base + 10, base + 20], 300, 150))
        assert len(windows) <= 3
        assert all(window == (1, 4) for window in windows)

    def test_rejects_non_positive_sizes(self):
        with pytest.raises(ValueError):
            list(iter_windows([0, 1], 0, 150))
        with pytest.raises(ValueError):
            list(iter_windows([0, 1], 300, -1))

    def test_rejects_step_longer_than_window(self):
        with pytest.raises(ValueError):
            list(iter_windows([0, 1], 100, 150))


class TestSearchWindows:
    """Test pair search within windows."""

    def test_pairs_within_one_window(self):
        result = search_windows(records_at(0, 10, 20), CFG, comparator=always)
        assert len(result.pairs) == 3
        assert result.comparisons == 3
        assert result.windows_scanned == 1

    def test_far_apart_photos_are_not_compared(self):
        result = search_windows(records_at(0, 10_000), CFG, comparator=always)
        assert result.pairs == set()
        assert result.comparisons == 0
        assert result.windows_scanned == 0

    def test_overlapping_windows_report_pairs_once(self):
        records = records_at(0, 160, 200)
        result = search_windows(records, CFG, comparator=always)
        # Window at 0 holds all three, window at 150 holds the last two again
        assert result.comparisons == 4
        assert len(result.pairs) == 3

    def test_pairs_are_normalized(self):
        records = [make_record('b', captured_at=0.0), make_record('a', captured_at=10.0)]
        assert find_pairs(records, CFG, comparator=always) == {('a', 'b')}

    def test_window_arguments_override_config(self):
        records = records_at(0, 400)
        assert find_pairs(records, CFG, comparator=always) == set()
        assert len(find_pairs(records, CFG, window_seconds=500, step_seconds=250, comparator=always)) == 1

    def test_uses_classifier_by_default(self):
        records = [
            make_record('a', captured_at=0.0),
            make_record('b', captured_at=5.0),
            make_record('c', captured_at=8.0, dhash=(1 << 40) - 1),
        ]
        assert find_pairs(records, CFG) == {('a', 'b')}

    def test_parallel_matches_sequential(self):
        records = records_at(*[i * 37.0 for i in range(60)])

        def comparator(a, b, cfg):
            return (int(a.identifier[1:]) + int(b.identifier[1:])) % 3 == 0

        sequential = search_windows(records, CFG, comparator=comparator, max_workers=1)
        parallel = search_windows(records, CFG, comparator=comparator, max_workers=4)
        assert parallel.pairs == sequential.pairs
        assert parallel.comparisons == sequential.comparisons

    def test_progress_reaches_total(self):
        calls = []
        search_windows(records_at(0, 100, 200, 400), CFG, comparator=never,
                       progress_callback=lambda current, total: calls.append((current, total)))
        assert calls == [(3, 4), (4, 4)]

    def test_outlier_does_not_inflate_work(self):
        base = 1_700_000_000.0
        calls = []
        result = search_windows(records_at(0.0, base, base + 10, base + 20), CFG, comparator=never,
                                progress_callback=lambda current, total: calls.append((current, total)))
        assert result.windows_scanned == 2
        assert result.comparisons == 6
        assert calls == [(4, 4)]

    def test_cancellation(self):
        cancel = threading.Event()
        cancel.set()
        with pytest.raises(ScanCancelled):
            search_windows(records_at(0, 10), CFG, comparator=always, cancel_event=cancel)

    def test_large_collection_is_subquadratic(self):
        n = 10_000
        records = records_at(*[i * 86400.0 / n for i in range(n)])
        result = search_windows(records, CFG, comparator=never)
        assert 0 < result.comparisons < n * (n - 1) // 2


class TestSortChronologically:
    """Test ordering by capture time."""

    def test_ties_broken_by_identifier(self):
        records = [make_record('b', captured_at=5.0), make_record('a', captured_at=5.0),
                   make_record('c', captured_at=1.0)]
        assert [r.identifier for r in sort_chronologically(records)] == ['c', 'a', 'b']


class TestAdaptiveWindows:
    """Test density-based window sizes."""

    def test_too_few_photos(self):
        assert adaptive_window_seconds(records_at(0)) == (7200, 3600)

    @pytest.mark.parametrize("per_hour,window", [
        (200, 900),
        (60, 1800),
        (30, 3600),
        (10, 7200),
    ])
    def test_density_tiers(self, per_hour, window):
        records = records_at(*[i * 3600.0 / per_hour for i in range(per_hour + 1)])
        assert adaptive_window_seconds(records) == (window, window / 2)

    def test_same_timestamp_is_densest(self):
        assert adaptive_window_seconds(records_at(5, 5, 5))[0] == 900
