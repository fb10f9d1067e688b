"""
CLI workflow orchestration for photosift.

Provides the CLIOrchestrator class that coordinates the CLI scanning
workflow from argument parsing through final reporting and export.
"""

from __future__ import annotations

import logging
from typing import Optional

from ..database import FeatureCache
from ..scanner import (
    PillowDecoder,
    QualityConfig,
    ScanPipeline,
    ScanStatus,
    collect_metadata,
    find_image_files,
)
from ..scanner.dependencies import set_max_image_pixels
from ..user_config import get_user_config
from ..utils.exporters import export_results
from ..utils.formatters import format_duration, format_number
from .arg_parser import parse_arguments
from .reporting import print_duplicate_report, print_quality_report


def setup_logging(verbose: bool = False) -> logging.Logger:
    """
    Configure logging for the CLI.

    Args:
        verbose: Enable verbose (DEBUG level) logging

    Returns:
        Configured logger instance
    """
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format='%(asctime)s - %(levelname)s - %(message)s',
        datefmt='%H:%M:%S'
    )
    return logging.getLogger(__name__)


class CLIOrchestrator:
    """
    Orchestrates the CLI scanning workflow.

    Manages the complete lifecycle from argument parsing through feature
    extraction, duplicate detection, reporting and export.
    """

    def __init__(self, argv: Optional[list[str]] = None):
        """
        Initialize the orchestrator.

        Args:
            argv: Argument list (default: sys.argv)
        """
        self.argv = argv
        self.logger = None
        self.args = None
        self.user_config = get_user_config()
        self.cache = None
        self.similarity = None
        self.image_files = []
        self.metadata = []
        self.result = None

    def run(self) -> int:
        """
        Execute the complete CLI workflow.

        Returns:
            Exit code (0 for success, 1 for error)

        Workflow phases:
        1. Setup & argument parsing
        2. Validation
        3. Configuration
        4. File discovery & metadata
        5. Scan (features, quality, duplicates)
        6. Reporting & export
        """
        for phase in (self._setup_phase, self._validate_phase, self._configure_phase):
            exit_code = phase()
            if exit_code != 0:
                return exit_code

        # --clear-cache without a directory
        if self.args.directory is None:
            return 0

        for phase in (self._discover_phase, self._scan_phase):
            exit_code = phase()
            if exit_code != 0:
                return exit_code

        self._report_phase()
        return 0

    def _setup_phase(self) -> int:
        """Phase 1: Parse arguments and setup logging."""
        self.args = parse_arguments(self.argv)
        self.logger = setup_logging(self.args.verbose)
        return 0

    def _validate_phase(self) -> int:
        """
        Phase 2: Validate arguments.

        Returns:
            0 for success, 1 for validation error
        """
        if self.args.directory is None and not self.args.clear_cache:
            self.logger.error("No directory given")
            return 1

        if self.args.directory is not None and not self.args.directory.is_dir():
            self.logger.error(f"Directory not found: {self.args.directory}")
            return 1

        if self.args.quality_only and self.args.no_quality:
            self.logger.error("--quality-only and --no-quality are mutually exclusive")
            return 1

        if self.args.workers is not None and self.args.workers < 1:
            self.logger.error("--workers must be at least 1")
            return 1

        return 0

    def _configure_phase(self) -> int:
        """
        Phase 3: Merge user config and flags into runtime options.

        Returns:
            0 for success, 1 for invalid similarity options
        """
        overrides = dict(self.args.overrides)
        if self.args.window_seconds is not None:
            overrides['window_seconds'] = self.args.window_seconds
        if self.args.step_seconds is not None:
            overrides['step_seconds'] = self.args.step_seconds
        try:
            self.similarity = self.user_config.similarity_config(**overrides)
        except ValueError as e:
            self.logger.error(f"Invalid similarity configuration: {e}")
            return 1

        set_max_image_pixels(self.user_config.max_image_pixels)
        self.workers = self.args.workers or self.user_config.default_workers
        self.adaptive_windows = self.args.adaptive_windows or self.user_config.adaptive_windows
        self.show_progress = not self.args.no_progress
        self.quality_config = QualityConfig(flag_noise=self.args.flag_noise or self.user_config.flag_noise)

        if self.args.no_cache:
            self.logger.info("Cache disabled - analyzing all photos fresh")
        else:
            self.cache = FeatureCache(self.user_config.cache_db_file)
            if self.args.clear_cache:
                self.cache.clear()
                self.logger.info(f"Cleared feature cache at {self.cache.db_path}")
            removed = self.cache.cleanup_stale(self.user_config.cache_max_age_days)
            if removed:
                self.logger.debug(f"Removed {removed:,} stale cache entries")

        return 0

    def _discover_phase(self) -> int:
        """
        Phase 4: Find photos and read their metadata.

        Returns:
            0 for success, 1 if no photos were found
        """
        self.logger.info(f"Scanning {self.args.directory} for photos...")
        recursive = not self.args.no_recursive
        self.image_files = find_image_files(self.args.directory, recursive=recursive)
        self.logger.info(f"Found {format_number(len(self.image_files))} image files")

        if not self.image_files:
            self.logger.info("No photos found. Exiting.")
            return 1

        self.metadata = collect_metadata(self.image_files)
        return 0

    def _on_progress(self, status: ScanStatus, current: int, total: int) -> None:
        if status is ScanStatus.COMPARING and total and current == total:
            self.logger.info(f"Compared {total:,} photos within their time windows")
        elif status in (ScanStatus.CANCELLED, ScanStatus.ERROR):
            self.logger.warning(f"Scan ended with status {status.value}")

    def _scan_phase(self) -> int:
        """
        Phase 5: Run the scan pipeline.

        Returns:
            0 for success, 1 if the scan was cancelled
        """
        pipeline = ScanPipeline(
            decoder=PillowDecoder(),
            store=self.cache,
            similarity=self.similarity,
            quality_config=self.quality_config,
            max_workers=self.workers,
            decode_concurrency=self.user_config.decode_concurrency,
            adaptive_windows=self.adaptive_windows,
            with_quality=not self.args.no_quality,
            find_duplicates=not self.args.quality_only,
            show_progress=self.show_progress,
            log_level=logging.DEBUG if self.args.verbose else logging.INFO,
        )
        self.result = pipeline.run(self.metadata, progress=self._on_progress)

        if self.result.status is not ScanStatus.COMPLETE:
            return 1
        self.logger.info(
            f"Analyzed {format_number(len(self.result.features))} photos in {format_duration(self.result.elapsed)} "
            f"(cache hit rate {self.result.cache_stats.hit_rate:.0f}%)"
        )
        if self.result.failed:
            self.logger.warning(f"Could not analyze {len(self.result.failed):,} files")
        return 0

    def _report_phase(self) -> None:
        """Phase 6: Display reports and handle exports."""
        features = {record.identifier: record for record in self.result.features}

        if not self.args.quality_only:
            print_duplicate_report(self.result.groups, features)
        if not self.args.no_quality:
            print_quality_report(self.result.quality_issues)

        if self.args.export:
            export_results(
                self.result.groups,
                self.result.quality_issues,
                self.args.export,
                self.args.export_format,
                features=features,
            )
            self.logger.info(f"Results exported to: {self.args.export}")


__all__ = ['CLIOrchestrator', 'setup_logging']
