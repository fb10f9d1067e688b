"""
Exceptions raised by the scanner package.
"""

from __future__ import annotations


class DecodeError(Exception):
    """A photo could not be decoded into pixel views."""

    def __init__(self, identifier: str, reason: str = ""):
        self.identifier = identifier
        self.reason = reason
        message = f"Failed to decode {identifier}"
        if reason:
            message += f": {reason}"
        super().__init__(message)


class ScanCancelled(Exception):
    """The scan was cancelled through its cancel event."""


__all__ = ['DecodeError', 'ScanCancelled']
