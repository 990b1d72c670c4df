"""
Analytic unit configurations and the config patch protocol.

A unit holds exactly one configuration variant. Patches either replace the
variant's values, reset a variant to its defaults (payload None), or switch
the unit to another variant. apply_patch() reports whether the change
invalidates trained state and whether the variant stayed the same, which tells
the caller to call set_config() only or rebuild the unit and learn again.

Wire format (externally tagged):
    {"Threshold": {"threshold": 0.7}}
    {"Anomaly": null}
"""

import math
from dataclasses import asdict, dataclass, fields
from enum import Enum
from typing import Any, ClassVar, NamedTuple, Optional, Union

from ..errors import ConfigError


class UnitKind(Enum):
    """Detection strategy families"""

    PATTERN = "Pattern"
    THRESHOLD = "Threshold"
    ANOMALY = "Anomaly"


@dataclass(frozen=True)
class _UnitConfig:
    kind: ClassVar[UnitKind]

    def requires_relearning(self, new: "_UnitConfig") -> bool:
        """Whether replacing self with new (same variant) invalidates trained state"""
        return False

    def to_dict(self) -> dict[str, Any]:
        return {self.kind.value: asdict(self)}


@dataclass(frozen=True)
class ThresholdConfig(_UnitConfig):
    kind: ClassVar[UnitKind] = UnitKind.THRESHOLD

    threshold: float = 0.5


@dataclass(frozen=True)
class PatternConfig(_UnitConfig):
    kind: ClassVar[UnitKind] = UnitKind.PATTERN

    correlation_score: float = 0.3
    anti_correlation_score: float = 0.1
    model_score: float = 0.8
    threshold_score: float = 1.0


@dataclass(frozen=True)
class AnomalyConfig(_UnitConfig):
    kind: ClassVar[UnitKind] = UnitKind.ANOMALY

    alpha: float = 0.5
    confidence: float = 10.0
    seasonality: int = 60 * 60  # step in seconds, can be zero
    seasonality_iterations: int = 3

    def requires_relearning(self, new: "_UnitConfig") -> bool:
        # seasonality shapes the training window
        return (
            new.seasonality != self.seasonality
            or new.seasonality_iterations != self.seasonality_iterations
        )


AnalyticUnitConfig = Union[ThresholdConfig, PatternConfig, AnomalyConfig]

CONFIG_TYPES: dict[UnitKind, type] = {
    UnitKind.THRESHOLD: ThresholdConfig,
    UnitKind.PATTERN: PatternConfig,
    UnitKind.ANOMALY: AnomalyConfig,
}


@dataclass(frozen=True)
class PatchConfig:
    """A configuration update; payload None resets the variant to its defaults"""

    kind: UnitKind
    payload: Optional[AnalyticUnitConfig] = None

    def __post_init__(self):
        if self.payload is not None and not isinstance(self.payload, CONFIG_TYPES[self.kind]):
            raise ConfigError(
                f"{self.kind.value} patch carries a {type(self.payload).__name__} payload"
            )

    @classmethod
    def of(cls, config: AnalyticUnitConfig) -> "PatchConfig":
        """Patch that sets config as is"""
        return cls(kind=config.kind, payload=config)

    def to_dict(self) -> dict[str, Any]:
        return {self.kind.value: asdict(self.payload) if self.payload is not None else None}

    @classmethod
    def from_dict(cls, data: Any) -> "PatchConfig":
        kind, payload = _split_tagged(data)
        if payload is None:
            return cls(kind=kind)
        return cls(kind=kind, payload=_build_config(kind, payload))


class PatchResult(NamedTuple):
    config: AnalyticUnitConfig
    needs_relearning: bool
    same_variant: bool


def default_config(kind: UnitKind) -> AnalyticUnitConfig:
    return CONFIG_TYPES[kind]()


def apply_patch(current: AnalyticUnitConfig, patch: PatchConfig) -> PatchResult:
    """Apply patch to current and decide what the unit has to do next

    Returns:
        PatchResult(config, needs_relearning, same_variant). A variant switch
        always needs relearning. Within a variant only changes that reshape
        training (Anomaly seasonality) do; a reset to defaults never does.
    """
    new_config = patch.payload if patch.payload is not None else default_config(patch.kind)

    if current.kind is not patch.kind:
        return PatchResult(new_config, needs_relearning=True, same_variant=False)

    if patch.payload is None:
        return PatchResult(new_config, needs_relearning=False, same_variant=True)

    return PatchResult(
        new_config,
        needs_relearning=current.requires_relearning(new_config),
        same_variant=True,
    )


def config_from_dict(data: Any) -> AnalyticUnitConfig:
    """Parse a config from its wire representation

    Raises:
        ConfigError: If the payload does not describe exactly one known variant
    """
    kind, payload = _split_tagged(data)
    if payload is None:
        raise ConfigError(f"{kind.value} config has no values")
    return _build_config(kind, payload)


def _split_tagged(data: Any) -> tuple[UnitKind, Any]:
    if not isinstance(data, dict) or len(data) != 1:
        raise ConfigError(f"Expected a single-key mapping naming the unit kind, got {data!r}")

    (name, payload), = data.items()
    try:
        kind = UnitKind(name)
    except ValueError:
        available = ", ".join(k.value for k in UnitKind)
        raise ConfigError(f"Unknown unit kind '{name}'. Available kinds: {available}") from None

    return kind, payload


def _build_config(kind: UnitKind, payload: Any) -> AnalyticUnitConfig:
    config_cls = CONFIG_TYPES[kind]
    if not isinstance(payload, dict):
        raise ConfigError(f"{kind.value} config must be a mapping, got {payload!r}")

    expected = {f.name: f.type for f in fields(config_cls)}
    unknown = set(payload) - set(expected)
    missing = set(expected) - set(payload)
    if unknown or missing:
        raise ConfigError(
            f"{kind.value} config fields mismatch (unknown: {sorted(unknown)}, "
            f"missing: {sorted(missing)})"
        )

    values = {}
    for name, field_type in expected.items():
        value = payload[name]
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise ConfigError(f"{kind.value}.{name} must be a number, got {value!r}")
        if not math.isfinite(value):
            raise ConfigError(f"{kind.value}.{name} must be finite, got {value!r}")
        if field_type in (int, "int"):
            if value < 0 or value != int(value):
                raise ConfigError(f"{kind.value}.{name} must be a non-negative integer")
            value = int(value)
        else:
            value = float(value)
        values[name] = value

    return config_cls(**values)
