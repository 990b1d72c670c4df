"""
Base interface for analytic units.

An analytic unit binds one detection strategy to one configuration variant.
Every unit implements:
- learn(): Train on history and stored segments
- detect(): Find intervals in a window
- get_hsr(): Produce a diagnostic scored view of a window

learn() and set_config() mutate the unit and need exclusive access;
detect() and get_hsr() only read it and may run concurrently.
"""

from abc import ABC, abstractmethod
from typing import Any

from ..detection import DetectedInterval
from ..errors import ConfigError
from ..models import HistoricalScoreResult, LearningResult
from .config import AnalyticUnitConfig, UnitKind


class AnalyticUnit(ABC):
    """Abstract base class for all analytic units"""

    kind: UnitKind

    def __init__(self, unit_id: str, config: AnalyticUnitConfig):
        self._id = unit_id
        self._config = self._check_config(config)

    @property
    def config(self) -> AnalyticUnitConfig:
        return self._config

    def get_id(self) -> str:
        return self._id

    def set_config(self, config: AnalyticUnitConfig) -> None:
        """Replace the configuration

        The caller decides beforehand, with apply_patch(), whether the unit
        has to learn again afterwards.

        Raises:
            ConfigError: If config belongs to another unit kind
        """
        self._config = self._check_config(config)

    @abstractmethod
    def get_detection_window(self) -> int:
        """Minimum span of history, in seconds, needed to detect"""
        pass

    @abstractmethod
    async def learn(self, metric_source: Any, segment_store: Any) -> LearningResult:
        """Train the unit

        Args:
            metric_source: Object with an async query(from, to, step) method
            segment_store: Store of previously saved segments

        Returns:
            LearningResult.FINISHED_EMPTY when nothing usable was learned
        """
        pass

    @abstractmethod
    async def detect(self, metric_source: Any, from_: int, to: int) -> list[DetectedInterval]:
        """Detect intervals within [from_, to]"""
        pass

    @abstractmethod
    async def get_hsr(self, metric_source: Any, from_: int, to: int) -> HistoricalScoreResult:
        pass

    def _check_config(self, config: AnalyticUnitConfig) -> AnalyticUnitConfig:
        if getattr(config, "kind", None) is not self.kind:
            raise ConfigError(
                f"{type(self).__name__} cannot use a {type(config).__name__}; "
                "changing the unit kind requires a new unit"
            )
        return config

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(id={self._id!r}, config={self._config!r})"
