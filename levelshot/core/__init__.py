"""
Batch workflow for Levelshot
"""

from .models import CorrectionResult, AcceptedCorrection, PerspectiveCommandResult
from .corrections import PerspectiveCorrector

__all__ = [
    "CorrectionResult",
    "AcceptedCorrection",
    "PerspectiveCommandResult",
    "PerspectiveCorrector",
]
