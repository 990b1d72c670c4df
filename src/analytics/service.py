"""
Analytic service.

Owns the active analytic unit and coordinates it with the metric source, the
segment store and the config cache:
- Detection: run the unit over a window and turn intervals into segments
- Learning: retrain the unit, alone
- Config patches: decide between an in-place swap and relearning
"""

import asyncio
from contextlib import asynccontextmanager
from typing import Any, Optional

import structlog

from .cache import UnitConfigCache
from .detection import DetectedInterval, detect_threshold
from .models import AnalyticConfig, HistoricalScoreResult, LearningResult, Segment, SegmentType
from .units import (
    AnalyticUnit,
    PatchConfig,
    PatchResult,
    ThresholdUnit,
    UnitKind,
    apply_patch,
    create_unit,
)

logger = structlog.get_logger(__name__)

SEGMENT_TYPES = {
    UnitKind.THRESHOLD: SegmentType.DETECTION,
    UnitKind.PATTERN: SegmentType.PATTERN,
    UnitKind.ANOMALY: SegmentType.ANOMALY,
}


class UnitGuard:
    """Readers/writer guard for one analytic unit

    Readers (detect, get_hsr) share access. A writer (learn, set_config)
    waits for running readers and blocks new ones until it is done.
    """

    def __init__(self):
        self._condition = asyncio.Condition()
        self._readers = 0
        self._writer = False

    @asynccontextmanager
    async def shared(self):
        async with self._condition:
            await self._condition.wait_for(lambda: not self._writer)
            self._readers += 1
        try:
            yield
        finally:
            async with self._condition:
                self._readers -= 1
                self._condition.notify_all()

    @asynccontextmanager
    async def exclusive(self):
        async with self._condition:
            await self._condition.wait_for(lambda: not self._writer)
            self._writer = True
            try:
                await self._condition.wait_for(lambda: self._readers == 0)
            except BaseException:
                # Cancelled while draining readers: release the writer slot
                self._writer = False
                self._condition.notify_all()
                raise
        try:
            yield
        finally:
            async with self._condition:
                self._writer = False
                self._condition.notify_all()


class AnalyticService:
    """Runs detection and learning for one analytic unit"""

    def __init__(
        self,
        metric_source: Any,
        segment_store: Any,
        config: Optional[AnalyticConfig] = None,
        config_cache: Optional[UnitConfigCache] = None,
        unit: Optional[AnalyticUnit] = None,
    ):
        self.metric_source = metric_source
        self.segment_store = segment_store
        self.config = config or AnalyticConfig()
        self.config_cache = config_cache
        self.unit = unit or ThresholdUnit(
            self.config.unit_id, detection_step=self.config.detection_step
        )
        self._guard = UnitGuard()

        logger.info(
            "Analytic service initialized",
            unit_id=self.unit.get_id(),
            kind=self.unit.kind.value,
            cache=type(config_cache).__name__ if config_cache else None,
        )

    async def get_threshold_detections(
        self, from_: int, to: int, step: int, threshold: float
    ) -> list[Segment]:
        """Ad-hoc threshold detection at the caller's step, independent of the unit"""
        result = await self.metric_source.query(from_, to, step)

        first = result.first_series()
        if first is None:
            return []

        _, series = first
        return self._to_segments(detect_threshold(series, threshold), SegmentType.DETECTION)

    async def get_detections(self, from_: int, to: int) -> list[Segment]:
        """Run the active unit over [from_, to]

        Segments are not persisted and carry no id.
        """
        async with self._guard.shared():
            unit = self.unit
            intervals = await unit.detect(self.metric_source, from_, to)

        segments = self._to_segments(intervals, SEGMENT_TYPES[unit.kind])
        logger.info(
            "Detection finished",
            unit_id=unit.get_id(),
            kind=unit.kind.value,
            from_=from_,
            to=to,
            segments=len(segments),
            open_ended=sum(1 for s in segments if s.open_ended),
        )
        return segments

    async def get_hsr(self, from_: int, to: int) -> HistoricalScoreResult:
        async with self._guard.shared():
            return await self.unit.get_hsr(self.metric_source, from_, to)

    async def learn(self) -> LearningResult:
        async with self._guard.exclusive():
            return await self._learn()

    async def patch_config(self, patch: PatchConfig) -> PatchResult:
        """Apply a config patch to the active unit

        Same variant: the config is swapped in place. Other variant: the unit
        is replaced by a new one of that kind. Learning runs before the unit is
        released when the patch requires it.

        The config is stored in the cache before the unit changes, so a cache
        failure leaves the active unit untouched.
        """
        async with self._guard.exclusive():
            result = apply_patch(self.unit.config, patch)

            replacement = None
            if not result.same_variant:
                replacement = create_unit(
                    self.unit.get_id(), result.config, detection_step=self.config.detection_step
                )

            if self.config_cache is not None:
                await self.config_cache.save_config(self.unit.get_id(), result.config)

            if replacement is None:
                self.unit.set_config(result.config)
            else:
                self.unit = replacement

            logger.info(
                "Unit config patched",
                unit_id=self.unit.get_id(),
                kind=self.unit.kind.value,
                reset=patch.payload is None,
                same_variant=result.same_variant,
                needs_relearning=result.needs_relearning,
            )

            if result.needs_relearning:
                await self._learn()

            return result

    async def restore_config(self) -> bool:
        """Rebuild the unit from the cached config, if there is one

        Returns:
            True if a cached config was applied
        """
        if self.config_cache is None:
            return False

        cached = await self.config_cache.load_config(self.unit.get_id())
        if cached is None:
            return False

        async with self._guard.exclusive():
            self.unit = create_unit(
                self.unit.get_id(), cached, detection_step=self.config.detection_step
            )
            await self._learn()

        logger.info("Unit config restored", unit_id=self.unit.get_id(), kind=cached.kind.value)
        return True

    async def save_detections(self, segments: list[Segment]) -> list[Segment]:
        """Persist segments through the segment store and return them with ids"""
        saved = await asyncio.to_thread(self.segment_store.insert_segments, segments)
        logger.info("Detections saved", count=len(saved))
        return saved

    async def _learn(self) -> LearningResult:
        result = await self.unit.learn(self.metric_source, self.segment_store)
        log = logger.info if result is LearningResult.FINISHED else logger.warning
        log("Learning finished", unit_id=self.unit.get_id(), result=result.value)
        return result

    def _to_segments(
        self, intervals: list[DetectedInterval], segment_type: SegmentType
    ) -> list[Segment]:
        return [
            Segment(from_=i.from_, to=i.to, segment_type=segment_type, open_ended=i.open_ended)
            for i in intervals
        ]
