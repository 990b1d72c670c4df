"""
Analytic unit registry and factory.

The set of strategies is closed: each configuration variant maps to exactly
one unit class.
"""

from ..errors import ConfigError
from .anomaly import AnomalyUnit
from .base import AnalyticUnit
from .config import (
    AnalyticUnitConfig,
    AnomalyConfig,
    PatchConfig,
    PatchResult,
    PatternConfig,
    ThresholdConfig,
    UnitKind,
    apply_patch,
    config_from_dict,
    default_config,
)
from .pattern import PatternUnit
from .threshold import DETECTION_STEP, ThresholdUnit

UNIT_REGISTRY: dict[UnitKind, type[AnalyticUnit]] = {
    UnitKind.THRESHOLD: ThresholdUnit,
    UnitKind.PATTERN: PatternUnit,
    UnitKind.ANOMALY: AnomalyUnit,
}


def create_unit(
    unit_id: str, config: AnalyticUnitConfig, detection_step: int = DETECTION_STEP
) -> AnalyticUnit:
    """Factory to create the analytic unit matching a configuration variant

    Args:
        unit_id: Identifier of the unit
        config: Configuration; its variant selects the unit class
        detection_step: Sampling step for units that query at a fixed step

    Raises:
        ConfigError: If config is not a known configuration variant
    """
    kind = getattr(config, "kind", None)
    if kind not in UNIT_REGISTRY:
        raise ConfigError(f"No analytic unit for configuration {config!r}")

    if kind is UnitKind.THRESHOLD:
        return ThresholdUnit(unit_id, config, detection_step=detection_step)
    return UNIT_REGISTRY[kind](unit_id, config)


__all__ = [
    "AnalyticUnit",
    "AnalyticUnitConfig",
    "AnomalyConfig",
    "AnomalyUnit",
    "DETECTION_STEP",
    "PatchConfig",
    "PatchResult",
    "PatternConfig",
    "PatternUnit",
    "ThresholdConfig",
    "ThresholdUnit",
    "UNIT_REGISTRY",
    "UnitKind",
    "apply_patch",
    "config_from_dict",
    "create_unit",
    "default_config",
]
