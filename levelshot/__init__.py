"""
Levelshot: automatic straightening for interior property photos

Detects camera roll from vertical architecture, cross-checks it against
vanishing points, and stages rotated, auto-cropped corrections for review.
"""

__version__ = "0.1.0"
__author__ = "Sam Scarrow"
__email__ = "sam@example.com"

# Core imports for easy access
from .config import load_config

__all__ = [
    "load_config",
]
