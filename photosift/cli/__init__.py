"""
CLI package for photosift.

Provides the command-line interface for finding near-duplicate photos and
reporting photo quality issues, with TXT, CSV and JSON export.

Public API:
- main: Entry point for CLI execution
- CLIOrchestrator: CLI workflow orchestration class
- print_duplicate_report / print_quality_report: Display results
"""

from __future__ import annotations

from typing import Optional

from .orchestrator import CLIOrchestrator, setup_logging
from .arg_parser import create_parser, parse_arguments, parse_override
from .reporting import print_duplicate_report, print_quality_report


def main(argv: Optional[list[str]] = None) -> int:
    """
    Main entry point for the CLI.

    Delegates to CLIOrchestrator to execute the complete workflow.

    Args:
        argv: Argument list (default: sys.argv)

    Returns:
        Exit code (0 for success, 1 for error)
    """
    orchestrator = CLIOrchestrator(argv)
    return orchestrator.run()


__all__ = [
    # Main entry point
    'main',
    # Core classes
    'CLIOrchestrator',
    # Utilities
    'setup_logging',
    'create_parser',
    'parse_arguments',
    'parse_override',
    'print_duplicate_report',
    'print_quality_report',
]
