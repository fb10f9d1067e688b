"""
Maintenance operations for the feature cache.

Provides cleanup, statistics, and vacuum operations.
"""

from __future__ import annotations

import os
import time
import logging

from .connection import ConnectionManager
from .utils import chunked


logger = logging.getLogger(__name__)


class MaintenanceOperations:
    """
    Handles maintenance operations for the feature cache.

    Provides cleanup, statistics reporting, and database compaction.
    """

    def __init__(self, connection_manager: ConnectionManager):
        """
        Initialize maintenance operations.

        Args:
            connection_manager: ConnectionManager instance for database access
        """
        self.conn_mgr = connection_manager

    def cleanup_stale(self, max_age_days: int = 30) -> int:
        """
        Remove cache entries that haven't been scanned recently.

        Args:
            max_age_days: Remove entries not scanned in this many days

        Returns:
            Number of entries removed
        """
        try:
            cutoff = time.time() - (max_age_days * 24 * 60 * 60)
            with self.conn_mgr.connection(exclusive=True) as conn:
                result = conn.execute(
                    "DELETE FROM photo_features WHERE last_scanned < ?",
                    (cutoff,)
                )
                return result.rowcount
        except Exception as e:
            logger.warning(f"Failed to cleanup stale cache entries: {e}")
            return 0

    def cleanup_missing(self) -> int:
        """
        Remove cache entries whose identifier is a file path that no longer exists.

        Returns:
            Number of entries removed
        """
        try:
            with self.conn_mgr.connection(exclusive=True) as conn:
                rows = conn.execute("SELECT identifier FROM photo_features").fetchall()
                missing = [row['identifier'] for row in rows if not os.path.exists(row['identifier'])]

                for chunk in chunked(missing):
                    placeholders = ','.join('?' * len(chunk))
                    conn.execute(
                        f"DELETE FROM photo_features WHERE identifier IN ({placeholders})",
                        list(chunk)
                    )

                return len(missing)
        except Exception as e:
            logger.warning(f"Failed to cleanup missing cache entries: {e}")
            return 0

    def get_stats(self) -> dict:
        """
        Get cache statistics.

        Returns:
            Dictionary with cache statistics:
                - total_entries: Number of cached photos
                - quality_entries: Cached photos with quality scores
                - issue_entries: Cached photos with at least one quality issue
                - group_count: Number of stored duplicate groups
                - db_size_bytes / db_size_mb: Database size
                - db_path: Path to database file
        """
        db_path = self.conn_mgr.db_path
        try:
            with self.conn_mgr.connection(exclusive=False) as conn:
                total = conn.execute("SELECT COUNT(*) AS cnt FROM photo_features").fetchone()['cnt']
                quality = conn.execute(
                    "SELECT COUNT(*) AS cnt FROM photo_features WHERE overall_quality IS NOT NULL"
                ).fetchone()['cnt']
                issues = conn.execute(
                    "SELECT COUNT(*) AS cnt FROM photo_features WHERE issues IS NOT NULL AND issues != ''"
                ).fetchone()['cnt']
                groups = conn.execute(
                    "SELECT COUNT(DISTINCT group_id) AS cnt FROM duplicate_groups"
                ).fetchone()['cnt']

            db_size = os.path.getsize(db_path) if os.path.exists(db_path) else 0
            return {
                'total_entries': total,
                'quality_entries': quality,
                'issue_entries': issues,
                'group_count': groups,
                'db_size_bytes': db_size,
                'db_size_mb': round(db_size / (1024 * 1024), 2),
                'db_path': db_path,
            }
        except Exception as e:
            logger.warning(f"Failed to get cache stats: {e}")
            return {
                'total_entries': 0,
                'quality_entries': 0,
                'issue_entries': 0,
                'group_count': 0,
                'db_size_bytes': 0,
                'db_size_mb': 0,
                'db_path': db_path,
            }

    def clear(self):
        """Clear all cached features and groups."""
        try:
            with self.conn_mgr.connection(exclusive=True) as conn:
                conn.execute("DELETE FROM photo_features")
                conn.execute("DELETE FROM duplicate_groups")
            # VACUUM outside transaction
            self.vacuum()
        except Exception as e:
            logger.warning(f"Failed to clear cache: {e}")

    def vacuum(self):
        """Compact the database file."""
        try:
            with self.conn_mgr.autocommit() as conn:
                conn.execute("VACUUM")
        except Exception as e:
            logger.debug(f"Failed to vacuum database: {e}")


__all__ = ['MaintenanceOperations']
