"""
SQLite connection handling for the feature cache.

Writers are serialized through a process-wide lock per ConnectionManager;
readers run concurrently thanks to WAL journaling.
"""

from __future__ import annotations

import sqlite3
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Generator

BUSY_TIMEOUT_SECONDS = 30.0


class ConnectionManager:
    """
    Opens short-lived SQLite connections for the cache components.

    Every connection is in autocommit mode at the driver level; transactions
    are issued explicitly. Writes use BEGIN IMMEDIATE under a lock so that two
    scans in one process never interleave their upserts.
    """

    def __init__(self, db_path: str):
        """
        Args:
            db_path: Path to SQLite database file (parent directories are created)
        """
        self.db_path = str(db_path)
        self._write_lock = threading.Lock()
        Path(self.db_path).resolve().parent.mkdir(parents=True, exist_ok=True)

    def _open(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self.db_path, timeout=BUSY_TIMEOUT_SECONDS, isolation_level=None)
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA journal_mode=WAL")
        conn.execute("PRAGMA synchronous=NORMAL")
        return conn

    @contextmanager
    def connection(self, exclusive: bool = False) -> Generator[sqlite3.Connection, None, None]:
        """
        Open a connection inside a transaction.

        Args:
            exclusive: Take the write lock and start an IMMEDIATE transaction

        Yields:
            sqlite3.Connection; committed on success, rolled back on error
        """
        lock = self._write_lock if exclusive else None
        if lock is not None:
            lock.acquire()
        try:
            conn = self._open()
            try:
                conn.execute("BEGIN IMMEDIATE" if exclusive else "BEGIN")
                try:
                    yield conn
                except BaseException:
                    conn.execute("ROLLBACK")
                    raise
                conn.execute("COMMIT")
            finally:
                conn.close()
        finally:
            if lock is not None:
                lock.release()

    @contextmanager
    def autocommit(self) -> Generator[sqlite3.Connection, None, None]:
        """Open a connection outside any transaction (needed for VACUUM)."""
        with self._write_lock:
            conn = self._open()
            try:
                yield conn
            finally:
                conn.close()


__all__ = ['ConnectionManager', 'BUSY_TIMEOUT_SECONDS']
