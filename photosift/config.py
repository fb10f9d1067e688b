"""
Configuration constants for photosift.

This module contains all configurable settings including:
- Supported image extensions
- Decode sizes and the feature algorithm version
- Default similarity, clustering and quality thresholds
- Worker counts and cache locations
"""

import os

# All supported image extensions
IMAGE_EXTENSIONS = {
    # Common formats
    '.jpg', '.jpeg', '.png', '.gif', '.bmp', '.webp', '.tiff', '.tif',
    # Modern formats (HEIC/HEIF need pillow-heif)
    '.heic', '.heif', '.avif',
    # Other formats Pillow can decode
    '.pbm', '.pgm', '.ppm', '.pnm', '.tga', '.ico',
}

HEIF_EXTENSIONS = {'.heic', '.heif'}

# Version of the feature algorithms. Increment whenever hashing or quality
# analysis changes; cached records with another version are recomputed.
ALGORITHM_VERSION = 25

# Fixed decode sizes (width, height)
DHASH_SIZE = (9, 8)
FEATURE_SIZE = (32, 32)
QUALITY_SIZE = (256, 256)

# Color histogram layout: 8 bins per channel, 8*8*8 = 512 bins
HISTOGRAM_BINS_PER_CHANNEL = 8
HISTOGRAM_SIZE = HISTOGRAM_BINS_PER_CHANNEL ** 3

# Similarity defaults. These are tuned product knobs, not guarantees.
DEFAULT_SIMILARITY = {
    # dHash / pHash cutoffs (0-64 range)
    'dhash_certain': 5,
    'dhash_threshold': 12,
    'phash_threshold': 10,
    'phash_threshold_strict': 6,
    # Dual-path entry gate
    'color_threshold': 0.60,
    'edge_hash_threshold': 8,
    'rapid_color_threshold': 0.50,
    'rapid_edge_threshold': 12,
    # Pre-filters
    'aspect_tolerance': 1.2,
    'file_size_tolerance': 2.0,
    # High-confidence boost
    'high_conf_color': 0.68,
    'high_conf_edge': 8,
    'dhash_boost': 6,
    'phash_boost': 6,
    # Temporal tiers (seconds) and their boosts
    'rapid_seconds': 30,
    'burst_seconds': 60,
    'close_seconds': 120,
    'rapid_boost': 20,
    'burst_boost': 14,
    'close_boost': 8,
    # Color tiers scaling the temporal boost
    'color_very_high': 0.72,
    'color_high': 0.65,
    # Time-window clustering
    'window_seconds': 300,
    'step_seconds': 150,
    # Extra dHash distance allowed when joining/merging groups
    'group_merge_slack': 10,
}

# Adaptive window sizes: (min photos per hour, window seconds), densest first
ADAPTIVE_WINDOWS = (
    (100, 15 * 60),
    (50, 30 * 60),
    (20, 60 * 60),
)
ADAPTIVE_SPARSE_WINDOW = 2 * 60 * 60

# Default number of parallel workers for feature extraction
DEFAULT_WORKERS = 4

# Maximum number of decoded bitmaps held at once
DEFAULT_DECODE_CONCURRENCY = 4

# Progress is reported every N photos (and always on the last one)
PROGRESS_EVERY = 10

# SQLite cache database location
CACHE_DB_FILE = os.path.join(os.path.expanduser('~'), '.photosift_cache.db')
