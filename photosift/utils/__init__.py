"""
Utilities package for photosift.

Provides:
- formatters: Human-readable formatting for numbers, durations, scores and sizes
- exporters: Export scan results to files
"""

from __future__ import annotations

from . import formatters
from . import exporters

from .formatters import format_number, format_duration, format_score, format_size
from .exporters import EXPORT_FORMATS, export_results

__all__ = [
    # Submodules
    'formatters',
    'exporters',
    # Formatters
    'format_number',
    'format_duration',
    'format_score',
    'format_size',
    # Exporters
    'EXPORT_FORMATS',
    'export_results',
]
