"""
Source file descriptor.

Re-derived from the input directory on every cycle; never persisted.
"""

from dataclasses import dataclass


@dataclass(frozen=True)
class LogFile:
    """A log file available for processing."""
    name: str
    length: int
