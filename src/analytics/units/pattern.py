"""
Pattern analytic unit placeholder.

Pattern matching against labeled segments is not implemented yet. The unit
keeps its configuration so patches round-trip, reports that learning produced
nothing, and refuses to detect.
"""

from typing import Any

import structlog

from ..detection import DetectedInterval
from ..errors import UnitNotImplementedError
from ..models import HistoricalScoreResult, LearningResult
from .base import AnalyticUnit
from .config import PatternConfig, UnitKind

logger = structlog.get_logger(__name__)


class PatternUnit(AnalyticUnit):
    kind = UnitKind.PATTERN

    def __init__(self, unit_id: str, config: PatternConfig | None = None):
        super().__init__(unit_id, config or PatternConfig())

    def get_detection_window(self) -> int:
        # no learned pattern, so no window
        return 0

    async def learn(self, metric_source: Any, segment_store: Any) -> LearningResult:
        logger.warning("Pattern learning is not implemented", unit_id=self.get_id())
        return LearningResult.FINISHED_EMPTY

    async def detect(self, metric_source: Any, from_: int, to: int) -> list[DetectedInterval]:
        raise UnitNotImplementedError(self.kind.value, "detect")

    async def get_hsr(self, metric_source: Any, from_: int, to: int) -> HistoricalScoreResult:
        raise UnitNotImplementedError(self.kind.value, "get_hsr")
