"""
Database schema initialization and migrations.

Provides schema versioning and table creation for the feature cache.
"""

from __future__ import annotations

import sqlite3


# Schema version - increment when changing table structure
SCHEMA_VERSION = 1


def initialize_schema(conn: sqlite3.Connection) -> None:
    """
    Initialize database schema with versioning support.

    Creates tables and indexes if they don't exist. Drops and recreates
    tables if schema version has changed.

    Args:
        conn: Active database connection

    Tables created:
        - meta: Schema version tracking
        - photo_features: Cached hashes, histogram and quality per photo
        - duplicate_groups: Members of the current duplicate groups
    """
    conn.execute("""
        CREATE TABLE IF NOT EXISTS meta (
            key TEXT PRIMARY KEY,
            value TEXT
        )
    """)

    result = conn.execute(
        "SELECT value FROM meta WHERE key = 'schema_version'"
    ).fetchone()

    current_version = int(result['value']) if result else 0

    if current_version < SCHEMA_VERSION:
        conn.execute("DROP TABLE IF EXISTS photo_features")
        conn.execute("DROP TABLE IF EXISTS duplicate_groups")

    conn.execute("""
        CREATE TABLE IF NOT EXISTS photo_features (
            identifier TEXT PRIMARY KEY,

            -- Perceptual features (hashes as 16-digit hex)
            dhash TEXT NOT NULL,
            phash TEXT NOT NULL,
            edge_hash TEXT NOT NULL,
            color_histogram BLOB,

            -- Metadata
            width INTEGER,
            height INTEGER,
            file_size INTEGER NOT NULL,
            captured_at REAL,
            algorithm_version INTEGER NOT NULL,

            -- Quality (NULL when not analyzed)
            sharpness_score REAL,
            center_sharpness_score REAL,
            edge_density REAL,
            exposure_score REAL,
            avg_brightness REAL,
            contrast REAL,
            noise_score REAL,
            overall_quality REAL,
            issues TEXT,
            is_screenshot INTEGER,

            last_scanned REAL DEFAULT (strftime('%s', 'now'))
        )
    """)

    conn.execute("""
        CREATE INDEX IF NOT EXISTS idx_features_version
        ON photo_features(algorithm_version)
    """)
    conn.execute("""
        CREATE INDEX IF NOT EXISTS idx_features_captured_at
        ON photo_features(captured_at)
    """)

    conn.execute("""
        CREATE TABLE IF NOT EXISTS duplicate_groups (
            group_id TEXT NOT NULL,
            identifier TEXT NOT NULL,
            position INTEGER NOT NULL,
            is_kept INTEGER NOT NULL DEFAULT 0,
            created_at REAL,
            PRIMARY KEY (group_id, identifier)
        )
    """)
    conn.execute("""
        CREATE INDEX IF NOT EXISTS idx_groups_identifier
        ON duplicate_groups(identifier)
    """)

    conn.execute("""
        INSERT OR REPLACE INTO meta (key, value)
        VALUES ('schema_version', ?)
    """, (str(SCHEMA_VERSION),))


__all__ = ['SCHEMA_VERSION', 'initialize_schema']
