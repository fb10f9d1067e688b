"""
Export functionality for photosift.

Provides functions to export duplicate groups and quality issues to TXT, CSV
or JSON files.
"""

from __future__ import annotations

import csv
import json
from pathlib import Path
from typing import Mapping, Optional, Sequence, TextIO

from ..models import DuplicateGroup, FeatureRecord, QualityRecord

EXPORT_FORMATS = ('txt', 'csv', 'json')

CSV_HEADER = [
    'section', 'group_id', 'status', 'identifier', 'width', 'height',
    'file_size', 'captured_at', 'overall_quality', 'issues',
]


def _export_txt(
    groups: Sequence[DuplicateGroup],
    quality_issues: Sequence[QualityRecord],
    file_handle: TextIO,
) -> None:
    """Export results as a plain-text report."""
    file_handle.write("PHOTOSIFT REPORT\n")
    file_handle.write("=" * 70 + "\n\n")

    file_handle.write("NEAR-DUPLICATE GROUPS\n")
    file_handle.write("-" * 70 + "\n")
    for i, group in enumerate(groups, 1):
        file_handle.write(f"\nGroup {i}:\n")
        for position, identifier in enumerate(group.members):
            marker = "[KEEP]" if position == 0 else "[DUPE]"
            file_handle.write(f"  {marker} {identifier}\n")

    file_handle.write("\n\nQUALITY ISSUES\n")
    file_handle.write("-" * 70 + "\n")
    for record in quality_issues:
        file_handle.write(
            f"  [{record.primary_issue}] {record.identifier} "
            f"(quality {record.overall_quality:.2f}; {record.issues_string})\n"
        )


def _export_csv(
    groups: Sequence[DuplicateGroup],
    quality_issues: Sequence[QualityRecord],
    features: Mapping[str, FeatureRecord],
    file_handle: TextIO,
) -> None:
    """
    Export results as CSV.

    Notes:
        One row per group member (section "duplicate") followed by one row
        per photo with quality issues (section "quality").
    """
    writer = csv.writer(file_handle)
    writer.writerow(CSV_HEADER)

    def feature_columns(identifier: str) -> list:
        record = features.get(identifier)
        if record is None:
            return ['', '', '', '']
        return [record.width, record.height, record.file_size, f"{record.captured_at:.0f}"]

    for group in groups:
        for position, identifier in enumerate(group.members):
            status = 'keep' if position == 0 else 'duplicate'
            writer.writerow(['duplicate', group.group_id, status, identifier]
                            + feature_columns(identifier) + ['', ''])

    for record in quality_issues:
        writer.writerow(['quality', '', record.primary_issue, record.identifier]
                        + feature_columns(record.identifier)
                        + [f"{record.overall_quality:.4f}", record.issues_string])


def _export_json(
    groups: Sequence[DuplicateGroup],
    quality_issues: Sequence[QualityRecord],
    file_handle: TextIO,
) -> None:
    """Export results as a JSON document."""
    json.dump({
        'groups': [group.to_dict() for group in groups],
        'quality_issues': [record.to_dict() for record in quality_issues],
    }, file_handle, indent=2)
    file_handle.write("\n")


def export_results(
    groups: Sequence[DuplicateGroup],
    quality_issues: Sequence[QualityRecord],
    output_path: Path,
    export_format: str = 'txt',
    features: Optional[Mapping[str, FeatureRecord]] = None,
) -> None:
    """
    Export scan results to a file.

    Args:
        groups: Duplicate groups (members[0] is kept)
        quality_issues: Quality records with issues
        output_path: Path to output file
        export_format: 'txt', 'csv' or 'json'. Default: 'txt'
        features: Feature record per identifier (adds size/date columns to CSV)

    Raises:
        ValueError: If export_format is not supported
        OSError: If file cannot be written
    """
    if export_format not in EXPORT_FORMATS:
        raise ValueError(f"Unsupported export format: {export_format}. Use one of {', '.join(EXPORT_FORMATS)}.")

    with open(output_path, 'w', encoding='utf-8', newline='') as f:
        if export_format == 'txt':
            _export_txt(groups, quality_issues, f)
        elif export_format == 'csv':
            _export_csv(groups, quality_issues, features or {}, f)
        else:
            _export_json(groups, quality_issues, f)


__all__ = ['EXPORT_FORMATS', 'export_results']
