"""
Logging utilities for Levelshot
Provides structured logging and batch statistics
"""

import json
import logging
import sys
from datetime import datetime
from typing import Any, Dict, Optional

import colorlog

DEFAULT_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


class StructuredLogger:
    """Provides structured logging with metadata"""

    def __init__(self, name: str, metadata: Optional[Dict[str, Any]] = None):
        """
        Initialize structured logger

        Args:
            name: Logger name
            metadata: Default metadata to include in all logs
        """
        self.logger = logging.getLogger(name)
        self.metadata = metadata or {}

    def bind(self, **kwargs) -> 'StructuredLogger':
        """Return a logger carrying additional default metadata"""
        return StructuredLogger(self.logger.name, {**self.metadata, **kwargs})

    def _format_message(self, message: str, **kwargs) -> str:
        data = {**self.metadata, **kwargs}
        if data:
            return f"{message} | {json.dumps(data, default=str)}"
        return message

    def debug(self, message: str, **kwargs):
        self.logger.debug(self._format_message(message, **kwargs))

    def info(self, message: str, **kwargs):
        self.logger.info(self._format_message(message, **kwargs))

    def warning(self, message: str, **kwargs):
        self.logger.warning(self._format_message(message, **kwargs))

    def error(self, message: str, **kwargs):
        self.logger.error(self._format_message(message, **kwargs))


class BatchStats:
    """Tracks straightening outcomes across a batch"""

    def __init__(self):
        """Initialize batch statistics"""
        self.start_time = datetime.now()
        self.total_files = 0
        self.processed_files = 0
        self.decisions: Dict[str, int] = {}
        self.errors = []
        self.processing_times = []

    def set_total(self, total: int):
        """Set total number of files to process"""
        self.total_files = total

    def add_result(self, decision: str, processing_time: Optional[float] = None):
        """
        Add a processing result

        Args:
            decision: Quality decision value for the image
            processing_time: Time taken to process the image
        """
        self.processed_files += 1
        self.decisions[decision] = self.decisions.get(decision, 0) + 1
        if processing_time:
            self.processing_times.append(processing_time)

    def add_error(self, file_path: str, error: str):
        """Add an error"""
        self.processed_files += 1
        self.errors.append({
            'file': file_path,
            'error': error,
            'time': datetime.now()
        })

    @property
    def corrected_files(self) -> int:
        return self.decisions.get('accepted', 0)

    def get_elapsed_time(self) -> float:
        """Get elapsed time in seconds"""
        return (datetime.now() - self.start_time).total_seconds()

    def get_average_processing_time(self) -> float:
        """Get average processing time per file"""
        if not self.processing_times:
            return 0.0
        return sum(self.processing_times) / len(self.processing_times)

    def get_summary(self) -> Dict[str, Any]:
        """Get processing summary"""
        elapsed = self.get_elapsed_time()

        return {
            'total_files': self.total_files,
            'processed_files': self.processed_files,
            'corrected_files': self.corrected_files,
            'decisions': dict(self.decisions),
            'errors': len(self.errors),
            'elapsed_time': elapsed,
            'average_time_per_file': self.get_average_processing_time(),
            'files_per_second': self.processed_files / elapsed if elapsed > 0 else 0
        }

    def print_summary(self):
        """Print processing summary to console"""
        summary = self.get_summary()

        print("\n" + "=" * 60)
        print("STRAIGHTENING SUMMARY")
        print("=" * 60)
        print(f"Total images:     {summary['total_files']}")
        print(f"Processed:        {summary['processed_files']}")
        print(f"Corrected:        {summary['corrected_files']}")

        if summary['decisions']:
            print("\nDecisions:")
            for decision, count in sorted(summary['decisions'].items()):
                print(f"  - {decision}: {count}")

        print(f"\nErrors:           {summary['errors']}")
        print(f"Elapsed time:     {summary['elapsed_time']:.1f}s")
        print(f"Avg time/image:   {summary['average_time_per_file']:.2f}s")
        print("=" * 60)

        if self.errors:
            print("\nERRORS:")
            for error in self.errors[:10]:
                print(f"  - {error['file']}: {error['error']}")
            if len(self.errors) > 10:
                print(f"  ... and {len(self.errors) - 10} more errors")


def setup_console_logging(level: str = "INFO", color: bool = True,
                          log_file: Optional[str] = None,
                          fmt: str = DEFAULT_FORMAT):
    """
    Setup console logging with optional color support

    Args:
        level: Logging level name
        color: Whether to use colored output on a terminal
        log_file: Optional file to log to as well
        fmt: Format for plain (non-colored) output
    """
    console_handler = logging.StreamHandler(sys.stdout)

    if color and sys.stdout.isatty():
        formatter = colorlog.ColoredFormatter(
            '%(log_color)s%(asctime)s - %(name)s - %(levelname)s%(reset)s - %(message)s',
            log_colors={
                'DEBUG': 'cyan',
                'INFO': 'green',
                'WARNING': 'yellow',
                'ERROR': 'red',
                'CRITICAL': 'red,bg_white',
            }
        )
    else:
        formatter = logging.Formatter(fmt)

    console_handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, level.upper(), logging.INFO))

    # Replace handlers from an earlier call instead of stacking them
    for handler in list(root_logger.handlers):
        if getattr(handler, "_levelshot", False):
            root_logger.removeHandler(handler)

    console_handler._levelshot = True
    root_logger.addHandler(console_handler)

    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(logging.Formatter(fmt))
        file_handler._levelshot = True
        root_logger.addHandler(file_handler)
