"""
Report formatting and display for the CLI interface.

Provides functions to print duplicate groups and quality issues in a
human-readable format.
"""

from __future__ import annotations

from datetime import datetime
from typing import Mapping, Sequence

from ..models import DuplicateGroup, FeatureRecord, QualityRecord
from ..utils.formatters import format_score, format_size


def _format_timestamp(epoch: float) -> str:
    try:
        return datetime.fromtimestamp(epoch).strftime('%Y-%m-%d %H:%M:%S')
    except (OverflowError, OSError, ValueError):
        return "unknown"


def _print_photo_in_group(identifier: str, record: FeatureRecord | None, is_kept: bool) -> None:
    """
    Print a single photo entry in a duplicate group.

    Args:
        identifier: Photo identifier
        record: Feature record (None if unknown)
        is_kept: True for the group's representative
    """
    marker = "  [KEEP]" if is_kept else "  [DUPE]"
    print(f"{marker} {identifier}")
    if record is not None:
        print(f"         {record.width}x{record.height} | {format_size(record.file_size)} | "
              f"{_format_timestamp(record.captured_at)}")


def _calculate_statistics(groups: Sequence[DuplicateGroup], features: Mapping[str, FeatureRecord]) -> dict[str, int]:
    """
    Calculate statistics for duplicate groups.

    Returns:
        Dictionary with statistics:
        - total_duplicates: Photos that could be removed (excludes kept ones)
        - total_groups: Number of groups
        - total_waste: Total file size of the duplicates (bytes)
    """
    sizes = {identifier: record.file_size for identifier, record in features.items()}
    return {
        'total_duplicates': sum(len(g.duplicates) for g in groups),
        'total_groups': len(groups),
        'total_waste': sum(g.potential_savings(sizes) for g in groups),
    }


def _print_section_header(title: str) -> None:
    """Print a section header with divider lines."""
    print("\n" + "-" * 70)
    print(title)
    print("-" * 70)


def print_duplicate_report(
    groups: Sequence[DuplicateGroup],
    features: Mapping[str, FeatureRecord],
) -> None:
    """
    Print a report of the duplicate groups found.

    Args:
        groups: Duplicate groups (members[0] is kept)
        features: Feature record per identifier, for sizes and dates
    """
    stats = _calculate_statistics(groups, features)

    print("\n" + "=" * 70)
    print("DUPLICATE PHOTO REPORT")
    print("=" * 70)
    print(f"\nNear-duplicates found: {stats['total_duplicates']} photos in "
          f"{stats['total_groups']} groups")

    if groups:
        _print_section_header("NEAR-DUPLICATE GROUPS (first photo is kept)")
        for i, group in enumerate(groups, 1):
            print(f"\nGroup {i} ({group.member_count} photos):")
            for position, identifier in enumerate(group.members):
                _print_photo_in_group(identifier, features.get(identifier), position == 0)

    print("\n" + "=" * 70)
    print(f"Total space recoverable: {format_size(stats['total_waste'])}")
    print("=" * 70)


def print_quality_report(records: Sequence[QualityRecord]) -> None:
    """
    Print photos with quality issues, worst first.

    Args:
        records: Quality records with at least one issue
    """
    print("\n" + "=" * 70)
    print("PHOTO QUALITY REPORT")
    print("=" * 70)
    print(f"\nPhotos with quality issues: {len(records)}")

    if not records:
        return

    counts: dict[str, int] = {}
    for record in records:
        for issue in record.ordered_issues:
            counts[issue.label] = counts.get(issue.label, 0) + 1
    for label, count in sorted(counts.items(), key=lambda item: (-item[1], item[0])):
        print(f"  {label}: {count}")

    _print_section_header("FLAGGED PHOTOS")
    for record in records:
        issues = ", ".join(issue.label for issue in record.ordered_issues)
        print(f"\n  [{record.primary_issue}] {record.identifier}")
        print(f"         quality {format_score(record.overall_quality)} | sharpness {format_score(record.sharpness_score)} | "
              f"exposure {format_score(record.exposure_score)} | {issues}")


__all__ = ['print_duplicate_report', 'print_quality_report']
