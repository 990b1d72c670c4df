"""
Threshold analytic unit.

Marks every interval where the metric stays strictly above a fixed threshold.
Nothing is trained, so learn() always finishes immediately.
"""

from typing import Any

import structlog

from ..detection import DetectedInterval, detect_threshold
from ..models import HistoricalScoreResult, LearningResult
from .base import AnalyticUnit
from .config import ThresholdConfig, UnitKind

logger = structlog.get_logger(__name__)

DETECTION_STEP = 10  # seconds


class ThresholdUnit(AnalyticUnit):
    """Threshold crossing detection over the first series of a query"""

    kind = UnitKind.THRESHOLD

    def __init__(
        self,
        unit_id: str,
        config: ThresholdConfig | None = None,
        detection_step: int = DETECTION_STEP,
    ):
        super().__init__(unit_id, config or ThresholdConfig())
        self.detection_step = detection_step

    def get_detection_window(self) -> int:
        return self.detection_step

    async def learn(self, metric_source: Any, segment_store: Any) -> LearningResult:
        return LearningResult.FINISHED

    async def detect(self, metric_source: Any, from_: int, to: int) -> list[DetectedInterval]:
        result = await metric_source.query(from_, to, self.detection_step)

        first = result.first_series()
        if first is None:
            logger.debug("No series in window", unit_id=self.get_id(), from_=from_, to=to)
            return []

        label, series = first
        intervals = detect_threshold(series, self._config.threshold)

        logger.debug(
            "Threshold detection finished",
            unit_id=self.get_id(),
            series=label,
            points=len(series),
            threshold=self._config.threshold,
            intervals=len(intervals),
        )
        return intervals

    async def get_hsr(self, metric_source: Any, from_: int, to: int) -> HistoricalScoreResult:
        result = await metric_source.query(from_, to, self.detection_step)

        first = result.first_series()
        hsr = HistoricalScoreResult.from_series(first[1] if first else [])
        hsr.frame["threshold"] = self._config.threshold
        hsr.frame["exceeds"] = hsr.frame["value"] > self._config.threshold
        return hsr
