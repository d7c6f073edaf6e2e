"""
Batch-level result types for the straightening workflow
"""

from dataclasses import asdict, dataclass, field
from typing import Dict, List, Optional


@dataclass
class CorrectionResult:
    """Outcome of analysing and correcting a single image"""
    original_filename: str
    original_path: str
    corrected_temp_path: str = ""   # Empty when no staged copy was produced
    confidence: float = 0.0
    rotation_applied: float = 0.0
    needs_correction: bool = False
    corrected_preview_base64: Optional[str] = None
    decision: str = "no_correction"
    horizontal_angle: Optional[float] = None        # Horizontal-group RANSAC, diagnostics only
    horizontal_confidence: Optional[float] = None
    error: Optional[str] = None

    def to_dict(self) -> Dict:
        return asdict(self)


@dataclass
class AcceptedCorrection:
    """A staged correction the caller wants promoted over its original"""
    original_path: str
    corrected_temp_path: str


@dataclass
class PerspectiveCommandResult:
    """Summary returned by accept/cleanup operations"""
    success: bool
    error: Optional[str] = None
    message: Optional[str] = None
    success_count: int = 0
    errors: List[str] = field(default_factory=list)

    @classmethod
    def ok(cls, message: str, success_count: int = 0) -> 'PerspectiveCommandResult':
        return cls(success=True, message=message, success_count=success_count)

    def to_dict(self) -> Dict:
        return asdict(self)
