"""
SQLite database backend for photosift.

Provides persistent storage of computed photo features to enable:
- Incremental re-scans (only decode new or changed photos)
- Quality issue listings without re-analysis
- Replace-all storage of the latest duplicate groups

A cached record is reused only when its algorithm version is current and its
file size still matches.

Public API:
- FeatureCache: Main cache class
- CacheStats: Statistics dataclass
- get_cache(): Get global cache instance
- reset_cache(): Reset global instance (testing)
"""

from __future__ import annotations

import threading
from typing import Optional

from .core import FeatureCache
from .utils import CacheStats


# Global cache instance (singleton pattern)
_cache_instance: Optional[FeatureCache] = None
_cache_lock = threading.Lock()


def get_cache(db_path: Optional[str] = None) -> FeatureCache:
    """
    Get or create the global cache instance (thread-safe).

    Args:
        db_path: Database path used when the instance is first created

    Returns:
        Singleton FeatureCache instance
    """
    global _cache_instance
    if _cache_instance is None:
        with _cache_lock:
            # Double-check after acquiring lock
            if _cache_instance is None:
                _cache_instance = FeatureCache(db_path)
    return _cache_instance


def reset_cache():
    """
    Reset the global cache instance (mainly for testing).
    """
    global _cache_instance
    with _cache_lock:
        _cache_instance = None


__all__ = [
    'FeatureCache',
    'CacheStats',
    'get_cache',
    'reset_cache',
]
