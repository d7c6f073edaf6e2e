"""
Geometry processing modules for Levelshot

Includes line detection and classification, RANSAC tilt estimation,
vanishing point validation, the quality gate and rectification.
"""

from .models import (
    LineSegment,
    ClassifiedLine,
    LineOrientation,
    PositionRole,
    RansacResult,
    VPEstimate,
    VanishingPoint,
    VanishingPointType,
    PerspectiveAnalysis,
    QualityDecision,
)
from .line_detector import LineDetector
from .line_classifier import LineClassifier
from .ransac import RansacAngleEstimator, combine_resolutions
from .vanishing import VanishingPointValidator, line_intersection
from .quality_gate import QualityGate
from .rectification import Rectifier, GeometryError, rotation_matrix
from .auto_straighten import AutoStraightener

__all__ = [
    "LineSegment",
    "ClassifiedLine",
    "LineOrientation",
    "PositionRole",
    "RansacResult",
    "VPEstimate",
    "VanishingPoint",
    "VanishingPointType",
    "PerspectiveAnalysis",
    "QualityDecision",
    "LineDetector",
    "LineClassifier",
    "RansacAngleEstimator",
    "combine_resolutions",
    "VanishingPointValidator",
    "line_intersection",
    "QualityGate",
    "Rectifier",
    "GeometryError",
    "rotation_matrix",
    "AutoStraightener",
]
