"""
Unit tests for the SQLite feature cache.
"""

import os
import sqlite3

import pytest

from photosift.config import ALGORITHM_VERSION
from photosift.database import FeatureCache, get_cache, reset_cache
from photosift.database.utils import CHUNK_SIZE, chunked
from photosift.models import DuplicateGroup, PhotoAnalysis, QualityIssue, QualityRecord

from conftest import make_record


def analysis(identifier, quality=True, overall=0.8, issues=frozenset(), **kwargs):
    record = make_record(identifier, **kwargs)
    if not quality:
        return PhotoAnalysis(record)
    return PhotoAnalysis(record, QualityRecord(
        identifier=identifier,
        sharpness_score=0.9,
        exposure_score=0.7,
        overall_quality=overall,
        issues=frozenset(issues),
    ))


class TestChunked:
    """Test batch slicing helper."""

    def test_slices(self):
        assert [list(c) for c in chunked(list(range(5)), 2)] == [[0, 1], [2, 3], [4]]

    def test_default_size(self):
        assert len(next(chunked(list(range(CHUNK_SIZE + 1))))) == CHUNK_SIZE


class TestFeatureCache:
    """Test FeatureCache class."""

    def test_initialization(self, temp_cache_db):
        """Test cache initialization creates database."""
        FeatureCache(db_path=temp_cache_db)
        assert os.path.exists(temp_cache_db)

    def test_creates_parent_directory(self, temp_dir):
        db_path = temp_dir / "nested" / "dir" / "cache.db"
        FeatureCache(db_path=str(db_path))
        assert db_path.exists()

    def test_put_and_get(self, temp_cache_db):
        cache = FeatureCache(db_path=temp_cache_db)
        histogram = tuple(i % 7 for i in range(512))
        entry = analysis(
            "/photos/a.jpg",
            dhash=0xFFFFFFFFFFFFFFFF, phash=0x8000000000000001, edge_hash=0x0123456789ABCDEF,
            histogram=histogram, captured_at=1_700_000_000.5,
            issues={QualityIssue.BLURRY, QualityIssue.LOW_CONTRAST},
        )

        assert cache.put_batch([entry]) == 1
        cached = cache.get_batch(["/photos/a.jpg"], ALGORITHM_VERSION)["/photos/a.jpg"]

        assert cached.features == entry.features
        assert cached.quality.issues == entry.quality.issues
        assert cached.quality.overall_quality == pytest.approx(0.8)

    def test_get_nonexistent(self, temp_cache_db):
        cache = FeatureCache(db_path=temp_cache_db)
        assert cache.get_batch(["/nonexistent.jpg"], ALGORITHM_VERSION) == {}

    def test_other_algorithm_version_is_a_miss(self, temp_cache_db):
        cache = FeatureCache(db_path=temp_cache_db)
        cache.put_batch([analysis("a")])
        assert cache.get_batch(["a"], ALGORITHM_VERSION + 1) == {}
        assert "a" in cache.get_batch(["a"], ALGORITHM_VERSION)

    def test_quality_is_optional(self, temp_cache_db):
        cache = FeatureCache(db_path=temp_cache_db)
        cache.put_batch([analysis("a", quality=False)])
        assert cache.get_batch(["a"], ALGORITHM_VERSION)["a"].quality is None

    def test_upsert_replaces(self, temp_cache_db):
        cache = FeatureCache(db_path=temp_cache_db)
        cache.put_batch([analysis("a", dhash=1)])
        cache.put_batch([analysis("a", dhash=2)])
        assert cache.get_batch(["a"], ALGORITHM_VERSION)["a"].features.dhash == 2
        assert cache.get_stats()['total_entries'] == 1

    def test_large_batch(self, temp_cache_db):
        cache = FeatureCache(db_path=temp_cache_db)
        ids = [f"p{i}" for i in range(CHUNK_SIZE * 2 + 7)]
        assert cache.put_batch(analysis(i) for i in ids) == len(ids)
        assert len(cache.get_batch(ids, ALGORITHM_VERSION)) == len(ids)

    def test_malformed_histogram_decodes_empty(self, temp_cache_db):
        cache = FeatureCache(db_path=temp_cache_db)
        cache.put_batch([analysis("a")])
        conn = sqlite3.connect(temp_cache_db)
        conn.execute("UPDATE photo_features SET color_histogram = ? WHERE identifier = 'a'", (b'xyz',))
        conn.commit()
        conn.close()
        assert cache.get_batch(["a"], ALGORITHM_VERSION)["a"].features.color_histogram == ()

    def test_invalidate(self, temp_cache_db):
        cache = FeatureCache(db_path=temp_cache_db)
        cache.put_batch([analysis("a"), analysis("b")])
        cache.invalidate("a")
        assert set(cache.get_batch(["a", "b"], ALGORITHM_VERSION)) == {"b"}

    def test_quality_issues_worst_first(self, temp_cache_db):
        cache = FeatureCache(db_path=temp_cache_db)
        cache.put_batch([
            analysis("clean", overall=0.9),
            analysis("blurry", overall=0.5, issues={QualityIssue.BLURRY}),
            analysis("dark", overall=0.2, issues={QualityIssue.UNDEREXPOSED}),
        ])
        issues = cache.get_quality_issues()
        assert [r.identifier for r in issues] == ["dark", "blurry"]
        assert issues[0].issues == frozenset({QualityIssue.UNDEREXPOSED})

    def test_replace_groups(self, temp_cache_db):
        cache = FeatureCache(db_path=temp_cache_db)
        first = [DuplicateGroup("g1", ["a", "b"], 1.0), DuplicateGroup("g2", ["c", "d", "e"], 1.0)]
        assert cache.replace_groups(first) == 2
        assert cache.get_groups() == first

        second = [DuplicateGroup("g3", ["x", "y"], 2.0), DuplicateGroup("tiny", ["z"], 2.0)]
        assert cache.replace_groups(second) == 1
        assert cache.get_groups() == [DuplicateGroup("g3", ["x", "y"], 2.0)]

    def test_cleanup_missing(self, temp_cache_db, temp_dir):
        cache = FeatureCache(db_path=temp_cache_db)
        existing = temp_dir / "kept.jpg"
        existing.write_text("x")
        cache.put_batch([analysis(str(existing)), analysis(str(temp_dir / "gone.jpg"))])

        assert cache.cleanup_missing() == 1
        assert set(cache.get_batch([str(existing)], ALGORITHM_VERSION)) == {str(existing)}

    def test_cleanup_stale(self, temp_cache_db):
        cache = FeatureCache(db_path=temp_cache_db)
        cache.put_batch([analysis("a"), analysis("b")])
        assert cache.cleanup_stale(max_age_days=30) == 0
        assert cache.cleanup_stale(max_age_days=-1) == 2

    def test_get_stats(self, temp_cache_db):
        cache = FeatureCache(db_path=temp_cache_db)
        cache.put_batch([analysis("a"), analysis("b", quality=False),
                         analysis("c", issues={QualityIssue.NOISY})])
        cache.replace_groups([DuplicateGroup("g1", ["a", "c"])])

        stats = cache.get_stats()
        assert stats['total_entries'] == 3
        assert stats['quality_entries'] == 2
        assert stats['issue_entries'] == 1
        assert stats['group_count'] == 1
        assert stats['db_path'] == temp_cache_db
        assert 'db_size_mb' in stats

    def test_clear(self, temp_cache_db):
        cache = FeatureCache(db_path=temp_cache_db)
        cache.put_batch([analysis("a")])
        cache.replace_groups([DuplicateGroup("g1", ["a", "b"])])

        cache.clear()

        stats = cache.get_stats()
        assert stats['total_entries'] == 0
        assert stats['group_count'] == 0

    def test_persists_between_instances(self, temp_cache_db):
        FeatureCache(db_path=temp_cache_db).put_batch([analysis("a")])
        assert "a" in FeatureCache(db_path=temp_cache_db).get_batch(["a"], ALGORITHM_VERSION)


class TestGlobalCache:
    """Test the process-wide cache instance."""

    def test_singleton(self, temp_cache_db):
        reset_cache()
        try:
            assert get_cache(temp_cache_db) is get_cache()
        finally:
            reset_cache()
