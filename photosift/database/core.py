"""
FeatureCache facade class for coordinating database operations.

Provides a unified interface to all cache operations using the facade pattern.
"""

from __future__ import annotations

from typing import Iterable, Optional

from ..config import CACHE_DB_FILE
from ..models import DuplicateGroup, PhotoAnalysis, QualityRecord
from .connection import ConnectionManager
from .schema import initialize_schema, SCHEMA_VERSION
from .operations import CacheOperations, GroupOperations
from .maintenance import MaintenanceOperations


class FeatureCache:
    """
    SQLite-backed store for photo features, quality scores and duplicate groups.

    Thread-safe for concurrent read/write operations.
    Uses facade pattern to delegate to specialized components.

    Usage:
        cache = FeatureCache()

        cached = cache.get_batch(identifiers, ALGORITHM_VERSION)
        cache.put_batch(new_analyses)
        cache.replace_groups(groups)
    """

    SCHEMA_VERSION = SCHEMA_VERSION

    def __init__(self, db_path: Optional[str] = None):
        """
        Initialize the feature cache.

        Args:
            db_path: Path to SQLite database file. Uses default if None.
        """
        self.db_path = db_path or CACHE_DB_FILE

        self._conn_mgr = ConnectionManager(self.db_path)
        self._operations = CacheOperations(self._conn_mgr)
        self._groups = GroupOperations(self._conn_mgr)
        self._maintenance = MaintenanceOperations(self._conn_mgr)

        with self._conn_mgr.connection(exclusive=True) as conn:
            initialize_schema(conn)

    # Delegate to CacheOperations
    def get_batch(self, identifiers: list[str], algorithm_version: int) -> dict[str, PhotoAnalysis]:
        """Get cached analyses produced by the given algorithm version."""
        return self._operations.get_batch(identifiers, algorithm_version)

    def put_batch(self, entries: Iterable[PhotoAnalysis]) -> int:
        """Upsert analyses."""
        return self._operations.put_batch(entries)

    def invalidate(self, identifier: str):
        """Remove a specific photo from the cache."""
        self._operations.invalidate(identifier)

    def get_quality_issues(self) -> list[QualityRecord]:
        """Quality records of cached photos with issues, worst first."""
        return self._operations.get_quality_issues()

    # Delegate to GroupOperations
    def replace_groups(self, groups: list[DuplicateGroup]) -> int:
        """Replace all stored duplicate groups."""
        return self._groups.replace_groups(groups)

    def get_groups(self) -> list[DuplicateGroup]:
        """Get the stored duplicate groups."""
        return self._groups.get_groups()

    # Delegate to MaintenanceOperations
    def cleanup_stale(self, max_age_days: int = 30) -> int:
        """Remove cache entries that haven't been scanned recently."""
        return self._maintenance.cleanup_stale(max_age_days)

    def cleanup_missing(self) -> int:
        """Remove cache entries for files that no longer exist."""
        return self._maintenance.cleanup_missing()

    def get_stats(self) -> dict:
        """Get cache statistics."""
        return self._maintenance.get_stats()

    def clear(self):
        """Clear all cached data."""
        self._maintenance.clear()

    def vacuum(self):
        """Compact the database file."""
        self._maintenance.vacuum()


__all__ = ['FeatureCache']
