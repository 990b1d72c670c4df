"""
Metric Segment Analytics

Scans metric series and emits labeled time intervals (segments) where a
configurable condition holds.

Architecture:
- Analytic units: Pluggable strategies (Threshold; Pattern and Anomaly placeholders)
- Config patches: Decide between an in-place config swap and relearning
- Analytic service: Runs units against Prometheus, persists segments to PostgreSQL

Usage:
    # Run detection over the last hour
    python -m src.analytics.detect --query 'node_load1' --threshold 2.5
"""

from .detection import DetectedInterval, detect_threshold
from .models import AnalyticConfig, LearningResult, Sample, Segment, SegmentType
from .service import AnalyticService

__all__ = [
    "AnalyticConfig",
    "AnalyticService",
    "DetectedInterval",
    "LearningResult",
    "Sample",
    "Segment",
    "SegmentType",
    "detect_threshold",
]
