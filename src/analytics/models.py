"""
Data models and configuration for the analytics service.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, NamedTuple, Optional

import pandas as pd


class Sample(NamedTuple):
    """A single point of a metric series"""

    timestamp: int  # unix seconds
    value: float


TimeSeries = list[Sample]


@dataclass
class MetricQueryResult:
    """Series returned by a metric source, keyed by series label"""

    data: dict[str, TimeSeries] = field(default_factory=dict)

    def first_series(self) -> tuple[str, TimeSeries] | None:
        """Return the first (label, series) pair, or None when there is no series"""
        for label, series in self.data.items():
            return label, series
        return None


class SegmentType(Enum):
    """Origin of a segment"""

    DETECTION = "Detection"
    PATTERN = "Pattern"
    ANOMALY = "Anomaly"
    LABELED = "Labeled"


@dataclass
class Segment:
    """A time interval emitted by detection or stored by the segment store

    id stays None until the segment store persists the segment.
    """

    from_: int
    to: int
    segment_type: SegmentType = SegmentType.DETECTION
    id: Optional[str] = None
    open_ended: bool = False  # last interval of a window still above the condition

    def __post_init__(self):
        if self.from_ > self.to:
            raise ValueError(f"Segment starts after it ends: from={self.from_} > to={self.to}")

    def to_dict(self) -> dict:
        """Convert to the wire representation"""
        return {
            "id": self.id,
            "from": self.from_,
            "to": self.to,
            "segment_type": self.segment_type.value,
            "open_ended": self.open_ended,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Segment":
        """Create from the wire representation"""
        return cls(
            from_=int(data["from"]),
            to=int(data["to"]),
            segment_type=SegmentType(data.get("segment_type", SegmentType.DETECTION.value)),
            id=data.get("id"),
            open_ended=bool(data.get("open_ended", False)),
        )


class LearningResult(Enum):
    """Outcome of an analytic unit training run"""

    FINISHED = "Finished"
    FINISHED_EMPTY = "FinishedEmpty"  # nothing usable was learned


@dataclass
class HistoricalScoreResult:
    """Diagnostic scored view of a window, indexed by timestamp"""

    frame: pd.DataFrame

    @classmethod
    def from_series(cls, series: TimeSeries) -> "HistoricalScoreResult":
        frame = pd.DataFrame(series, columns=["timestamp", "value"])
        return cls(frame=frame.set_index("timestamp"))

    @property
    def empty(self) -> bool:
        return self.frame.empty

    def to_dict(self) -> list[dict[str, Any]]:
        """Convert to a list of records for serialization"""
        return self.frame.reset_index().to_dict(orient="records")


@dataclass
class AnalyticConfig:
    """Configuration for the analytics service"""

    unit_id: str = "default"

    # Detection
    detection_step: int = 10  # seconds between samples requested by units
    default_window_seconds: int = 3600

    # Prometheus settings
    prometheus_url: str = "http://localhost:9090"
    prometheus_query: str = "up"
    prometheus_max_retries: int = 3
    prometheus_timeout_seconds: int = 30

    # PostgreSQL settings (segment store)
    postgres_host: str = "localhost"
    postgres_port: int = 5432
    postgres_database: str = "analytics_db"
    postgres_user: str = "analytics"
    postgres_password: str = "analytics_password"

    # Redis settings (unit config cache)
    redis_host: str = "localhost"
    redis_port: int = 6379
    redis_db: int = 0
    redis_password: Optional[str] = None
    config_cache_ttl_seconds: int = 0  # 0 keeps configs without expiry
