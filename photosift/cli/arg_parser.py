"""
Argument parsing for the CLI interface.

Provides functions to create and configure the argument parser for the
photosift command-line interface.
"""

from __future__ import annotations

import argparse
from pathlib import Path

from ..models import SimilarityConfig


def parse_override(text: str) -> tuple[str, str]:
    """
    Parse a NAME=VALUE similarity override.

    Raises:
        argparse.ArgumentTypeError: If the text isn't NAME=VALUE or NAME is unknown
    """
    name, sep, value = text.partition('=')
    name = name.strip()
    if not sep or not name or not value.strip():
        raise argparse.ArgumentTypeError(f"expected NAME=VALUE, got {text!r}")
    if name not in SimilarityConfig.option_names():
        raise argparse.ArgumentTypeError(f"unknown similarity option {name!r}")
    return name, value.strip()


def create_parser() -> argparse.ArgumentParser:
    """
    Create and configure the argument parser for the CLI.

    Returns:
        Configured ArgumentParser instance

    Notes:
        - Workers and window sizes default to None so the user config and
          SimilarityConfig defaults apply unless a flag is given
    """
    parser = argparse.ArgumentParser(
        prog='photosift',
        description='Find near-duplicate photos and score photo quality',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s /path/to/photos
      Scan for near-duplicates and quality issues (report only)

  %(prog)s /path/to/photos --adaptive-windows
      Size the comparison window from how densely photos were taken

  %(prog)s /path/to/photos --set dhash_threshold=10 --set color_threshold=0.65
      Override individual similarity thresholds

  %(prog)s /path/to/photos --quality-only --export issues.csv --export-format csv
      Only score quality and export the flagged photos

  %(prog)s /path/to/photos --export results.json --export-format json
      Export groups and quality issues as JSON

Similarity options for --set:
  """ + ", ".join(SimilarityConfig.option_names())
    )

    parser.add_argument(
        'directory',
        type=Path,
        nargs='?',
        default=None,
        help='Directory to scan for photos'
    )

    # Scanning options
    parser.add_argument(
        '-r', '--no-recursive',
        action='store_true',
        help='Do not scan subdirectories'
    )

    parser.add_argument(
        '--quality-only',
        action='store_true',
        help='Only score quality (skip duplicate detection)'
    )

    parser.add_argument(
        '--no-quality',
        action='store_true',
        help='Only find duplicates (skip quality analysis)'
    )

    # Similarity options
    parser.add_argument(
        '--window-seconds',
        type=float,
        default=None,
        help='Comparison window length in seconds. Default: 300'
    )

    parser.add_argument(
        '--step-seconds',
        type=float,
        default=None,
        help='Distance between window starts in seconds, at most the window. Default: 150'
    )

    parser.add_argument(
        '--adaptive-windows',
        action='store_true',
        help='Pick the window from photo density (15 min to 2 h)'
    )

    parser.add_argument(
        '--set',
        type=parse_override,
        action='append',
        default=[],
        dest='overrides',
        metavar='NAME=VALUE',
        help='Override a similarity option (repeatable)'
    )

    parser.add_argument(
        '--flag-noise',
        action='store_true',
        help='Report NOISY as a quality issue'
    )

    # Caching
    parser.add_argument(
        '--no-cache',
        action='store_true',
        help='Disable SQLite caching (analyze all photos fresh)'
    )

    parser.add_argument(
        '--clear-cache',
        action='store_true',
        help='Clear the feature cache before scanning'
    )

    # Performance options
    parser.add_argument(
        '-w', '--workers',
        type=int,
        default=None,
        help='Number of parallel workers. Default: 4'
    )

    # Export options
    parser.add_argument(
        '-e', '--export',
        type=Path,
        help='Export results to file'
    )

    parser.add_argument(
        '--export-format',
        choices=['txt', 'csv', 'json'],
        default='txt',
        help='Export format. Default: txt'
    )

    # Output options
    parser.add_argument(
        '-v', '--verbose',
        action='store_true',
        help='Verbose output'
    )

    parser.add_argument(
        '--no-progress',
        action='store_true',
        help='Disable progress bars (useful for piping output)'
    )

    return parser


def parse_arguments(argv=None) -> argparse.Namespace:
    """
    Parse command-line arguments.

    Args:
        argv: List of argument strings (default: sys.argv)

    Returns:
        Parsed arguments as Namespace object

    Examples:
        >>> args = parse_arguments(['/path/to/photos', '--set', 'dhash_threshold=10'])
        >>> args.overrides
        [('dhash_threshold', '10')]
    """
    parser = create_parser()
    return parser.parse_args(argv)


__all__ = [
    'parse_override',
    'create_parser',
    'parse_arguments',
]
