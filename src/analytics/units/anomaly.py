"""
Anomaly analytic unit placeholder.

The statistical model is not implemented yet; learn() reports an empty result
and detect() raises instead of producing detections.
"""

from typing import Any

import structlog

from ..detection import DetectedInterval
from ..errors import UnitNotImplementedError
from ..models import HistoricalScoreResult, LearningResult
from .base import AnalyticUnit
from .config import AnomalyConfig, UnitKind

logger = structlog.get_logger(__name__)


class AnomalyUnit(AnalyticUnit):
    kind = UnitKind.ANOMALY

    def __init__(self, unit_id: str, config: AnomalyConfig | None = None):
        super().__init__(unit_id, config or AnomalyConfig())

    def get_detection_window(self) -> int:
        return self._config.seasonality * self._config.seasonality_iterations

    async def learn(self, metric_source: Any, segment_store: Any) -> LearningResult:
        logger.warning(
            "Anomaly learning is not implemented",
            unit_id=self.get_id(),
            seasonality=self._config.seasonality,
            seasonality_iterations=self._config.seasonality_iterations,
        )
        return LearningResult.FINISHED_EMPTY

    async def detect(self, metric_source: Any, from_: int, to: int) -> list[DetectedInterval]:
        raise UnitNotImplementedError(self.kind.value, "detect")

    async def get_hsr(self, metric_source: Any, from_: int, to: int) -> HistoricalScoreResult:
        raise UnitNotImplementedError(self.kind.value, "get_hsr")
