"""
Core CRUD operations for the feature cache.

Provides CacheOperations for batch feature lookups and upserts, and
GroupOperations for replacing and reading duplicate groups.
"""

from __future__ import annotations

import logging
import time
from typing import Iterable

from ..models import DuplicateGroup, PhotoAnalysis, QualityRecord
from .connection import ConnectionManager
from .utils import (
    FEATURE_COLUMNS,
    analysis_to_row,
    chunked,
    row_to_analysis,
    row_to_quality,
)


logger = logging.getLogger(__name__)

_UPSERT_SQL = (
    f"INSERT OR REPLACE INTO photo_features ({', '.join(FEATURE_COLUMNS)}, last_scanned) "
    f"VALUES ({', '.join('?' * len(FEATURE_COLUMNS))}, ?)"
)


class CacheOperations:
    """
    Handles feature lookups and upserts.

    Records whose algorithm version differs from the requested one are
    treated as misses so they get recomputed.
    """

    def __init__(self, connection_manager: ConnectionManager):
        """
        Initialize cache operations.

        Args:
            connection_manager: ConnectionManager instance for database access
        """
        self.conn_mgr = connection_manager

    def get_batch(self, identifiers: list[str], algorithm_version: int) -> dict[str, PhotoAnalysis]:
        """
        Get cached analyses for multiple photos efficiently.

        Args:
            identifiers: Photo identifiers
            algorithm_version: Only records produced by this version are returned

        Returns:
            Dict mapping identifier to PhotoAnalysis (cache hits only)
        """
        results: dict[str, PhotoAnalysis] = {}
        stale = 0

        try:
            with self.conn_mgr.connection(exclusive=False) as conn:
                for chunk in chunked(list(identifiers)):
                    placeholders = ','.join('?' * len(chunk))
                    rows = conn.execute(f"""
                        SELECT * FROM photo_features WHERE identifier IN ({placeholders})
                    """, list(chunk)).fetchall()

                    for row in rows:
                        if row['algorithm_version'] != algorithm_version:
                            stale += 1
                            continue
                        try:
                            results[row['identifier']] = row_to_analysis(row)
                        except ValueError as e:
                            logger.debug(f"Ignoring unreadable cache row for {row['identifier']}: {e}")

        except Exception as e:
            logger.warning(f"Error during batch retrieval: {e}")

        if stale:
            logger.debug(f"{stale:,} cached records from another algorithm version will be recomputed")
        return results

    def put_batch(self, entries: Iterable[PhotoAnalysis]) -> int:
        """
        Upsert multiple analyses in one transaction.

        Args:
            entries: PhotoAnalysis tuples to store

        Returns:
            Number of stored records
        """
        cached = 0
        now = time.time()

        try:
            with self.conn_mgr.connection(exclusive=True) as conn:
                for analysis in entries:
                    try:
                        conn.execute(_UPSERT_SQL, analysis_to_row(analysis) + (now,))
                        cached += 1
                    except Exception as e:
                        logger.debug(f"Failed to cache {analysis.features.identifier}: {e}")

        except Exception as e:
            logger.warning(f"Error during batch caching: {e}")

        return cached

    def invalidate(self, identifier: str):
        """
        Remove a specific photo from the cache.

        Args:
            identifier: Photo identifier to invalidate
        """
        try:
            with self.conn_mgr.connection(exclusive=True) as conn:
                conn.execute("DELETE FROM photo_features WHERE identifier = ?", (identifier,))
        except Exception as e:
            logger.debug(f"Failed to invalidate cache for {identifier}: {e}")

    def get_quality_issues(self) -> list[QualityRecord]:
        """
        Get quality records of all cached photos that have issues.

        Returns:
            QualityRecords, worst overall quality first
        """
        try:
            with self.conn_mgr.connection(exclusive=False) as conn:
                rows = conn.execute("""
                    SELECT * FROM photo_features
                    WHERE issues IS NOT NULL AND issues != ''
                    ORDER BY overall_quality ASC, identifier ASC
                """).fetchall()
                return [record for record in map(row_to_quality, rows) if record is not None]
        except Exception as e:
            logger.warning(f"Failed to read quality issues: {e}")
            return []


class GroupOperations:
    """Handles the duplicate_groups table, which is replaced as a whole."""

    def __init__(self, connection_manager: ConnectionManager):
        self.conn_mgr = connection_manager

    def replace_groups(self, groups: list[DuplicateGroup]) -> int:
        """
        Delete all stored groups and insert the given ones.

        Groups with fewer than 2 members are not stored.

        Returns:
            Number of stored groups
        """
        stored = 0
        try:
            with self.conn_mgr.connection(exclusive=True) as conn:
                conn.execute("DELETE FROM duplicate_groups")
                for group in groups:
                    if group.member_count < 2:
                        continue
                    conn.executemany("""
                        INSERT INTO duplicate_groups (group_id, identifier, position, is_kept, created_at)
                        VALUES (?, ?, ?, ?, ?)
                    """, [
                        (group.group_id, member, position, int(position == 0), group.created_at)
                        for position, member in enumerate(group.members)
                    ])
                    stored += 1
        except Exception as e:
            logger.warning(f"Failed to replace duplicate groups: {e}")
            return 0
        return stored

    def get_groups(self) -> list[DuplicateGroup]:
        """
        Get all stored groups, members in stored order.

        Returns:
            List of DuplicateGroup objects in stored order
        """
        groups: dict[str, DuplicateGroup] = {}
        try:
            with self.conn_mgr.connection(exclusive=False) as conn:
                rows = conn.execute("""
                    SELECT group_id, identifier, created_at FROM duplicate_groups
                    ORDER BY rowid ASC
                """).fetchall()
            for row in rows:
                group = groups.setdefault(
                    row['group_id'],
                    DuplicateGroup(group_id=row['group_id'], created_at=row['created_at'] or 0.0),
                )
                group.members.append(row['identifier'])
        except Exception as e:
            logger.warning(f"Failed to read duplicate groups: {e}")
            return []
        return list(groups.values())


__all__ = ['CacheOperations', 'GroupOperations']
