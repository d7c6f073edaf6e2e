"""
Levelshot utilities module.

Provides logging helpers and batch statistics.
"""

from .logging import StructuredLogger, BatchStats, setup_console_logging

__all__ = [
    'StructuredLogger',
    'BatchStats',
    'setup_console_logging'
]
