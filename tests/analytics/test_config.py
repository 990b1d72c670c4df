"""
Tests for analytic unit configurations and the config patch protocol.
"""

import dataclasses

import pytest

from src.analytics.errors import ConfigError
from src.analytics.units.config import (
    AnomalyConfig,
    PatchConfig,
    PatternConfig,
    ThresholdConfig,
    UnitKind,
    apply_patch,
    config_from_dict,
    default_config,
)

ALL_DEFAULTS = [ThresholdConfig(), PatternConfig(), AnomalyConfig()]


class TestConfigDefaults:
    """Tests for configuration default values."""

    def test_threshold_defaults(self):
        assert ThresholdConfig().threshold == 0.5

    def test_pattern_defaults(self):
        config = PatternConfig()

        assert config.correlation_score == 0.3
        assert config.anti_correlation_score == 0.1
        assert config.model_score == 0.8
        assert config.threshold_score == 1.0

    def test_anomaly_defaults(self):
        config = AnomalyConfig()

        assert config.alpha == 0.5
        assert config.confidence == 10.0
        assert config.seasonality == 3600
        assert config.seasonality_iterations == 3

    @pytest.mark.parametrize("kind", list(UnitKind))
    def test_default_config_matches_kind(self, kind):
        assert default_config(kind).kind is kind

    def test_configs_are_immutable(self):
        """Configs are replaced as a whole, never mutated."""
        config = ThresholdConfig()

        with pytest.raises(dataclasses.FrozenInstanceError):
            config.threshold = 0.9


class TestApplyPatchSameVariant:
    """Patches that keep the current variant."""

    def test_threshold_payload_replaces_config(self):
        result = apply_patch(ThresholdConfig(0.5), PatchConfig.of(ThresholdConfig(0.9)))

        assert result.config == ThresholdConfig(0.9)
        assert result.needs_relearning is False
        assert result.same_variant is True

    def test_pattern_payload_does_not_need_relearning(self):
        new = PatternConfig(correlation_score=0.5)

        config, needs_relearning, same_variant = apply_patch(PatternConfig(), PatchConfig.of(new))

        assert config == new
        assert needs_relearning is False
        assert same_variant is True

    @pytest.mark.parametrize("current", ALL_DEFAULTS)
    def test_none_payload_resets_to_default(self, current):
        """A None payload is a reset request, not a no-op."""
        changed = {
            UnitKind.THRESHOLD: ThresholdConfig(0.9),
            UnitKind.PATTERN: PatternConfig(model_score=0.1),
            UnitKind.ANOMALY: AnomalyConfig(seasonality=60),
        }[current.kind]

        result = apply_patch(changed, PatchConfig(current.kind))

        assert result.config == default_config(current.kind)
        assert result.needs_relearning is False
        assert result.same_variant is True

    def test_anomaly_confidence_change_keeps_model(self):
        new = AnomalyConfig(confidence=20.0, alpha=0.9)

        result = apply_patch(AnomalyConfig(), PatchConfig.of(new))

        assert result.config == new
        assert result.needs_relearning is False
        assert result.same_variant is True

    @pytest.mark.parametrize(
        "new",
        [
            AnomalyConfig(seasonality=7200),
            AnomalyConfig(seasonality_iterations=5),
            AnomalyConfig(seasonality=0, seasonality_iterations=1),
        ],
    )
    def test_anomaly_seasonality_change_needs_relearning(self, new):
        result = apply_patch(AnomalyConfig(), PatchConfig.of(new))

        assert result.config == new
        assert result.needs_relearning is True
        assert result.same_variant is True


class TestApplyPatchVariantSwitch:
    """Patches that change the variant."""

    @pytest.mark.parametrize(
        "current,target",
        [
            (current, target)
            for current in ALL_DEFAULTS
            for target in UnitKind
            if current.kind is not target
        ],
    )
    def test_switch_always_needs_relearning(self, current, target):
        with_payload = apply_patch(current, PatchConfig.of(default_config(target)))
        without_payload = apply_patch(current, PatchConfig(target))

        for result in (with_payload, without_payload):
            assert result.config == default_config(target)
            assert result.needs_relearning is True
            assert result.same_variant is False

    def test_switch_uses_payload_without_carrying_fields(self):
        new = AnomalyConfig(alpha=0.1, confidence=2.0, seasonality=600, seasonality_iterations=2)

        result = apply_patch(ThresholdConfig(0.9), PatchConfig.of(new))

        assert result.config == new
        assert not hasattr(result.config, "threshold")


class TestApplyPatchConvergence:
    """Repeated identical patches converge."""

    @pytest.mark.parametrize(
        "current,patch",
        [
            (ThresholdConfig(0.2), PatchConfig.of(ThresholdConfig(0.7))),
            (ThresholdConfig(0.2), PatchConfig(UnitKind.ANOMALY)),
            (AnomalyConfig(), PatchConfig.of(AnomalyConfig(seasonality=60))),
            (PatternConfig(), PatchConfig(UnitKind.PATTERN)),
        ],
    )
    def test_repeated_patch_is_stable(self, current, patch):
        first = apply_patch(current, patch)
        second = apply_patch(first.config, patch)

        assert second.config == first.config
        assert second.same_variant is True
        assert second.needs_relearning is False


class TestPatchConfig:
    """Tests for PatchConfig construction and the wire format."""

    def test_payload_must_match_kind(self):
        with pytest.raises(ConfigError):
            PatchConfig(UnitKind.THRESHOLD, AnomalyConfig())

    def test_from_dict_with_payload(self):
        patch = PatchConfig.from_dict({"Threshold": {"threshold": 0.75}})

        assert patch == PatchConfig(UnitKind.THRESHOLD, ThresholdConfig(0.75))

    def test_from_dict_reset(self):
        patch = PatchConfig.from_dict({"Anomaly": None})

        assert patch.kind is UnitKind.ANOMALY
        assert patch.payload is None

    def test_to_dict(self):
        assert PatchConfig(UnitKind.PATTERN).to_dict() == {"Pattern": None}
        assert PatchConfig.of(ThresholdConfig(0.3)).to_dict() == {"Threshold": {"threshold": 0.3}}

    def test_from_dict_coerces_numbers(self):
        patch = PatchConfig.from_dict(
            {
                "Anomaly": {
                    "alpha": 1,
                    "confidence": 5,
                    "seasonality": 60.0,
                    "seasonality_iterations": 2,
                }
            }
        )

        assert patch.payload == AnomalyConfig(1.0, 5.0, 60, 2)
        assert isinstance(patch.payload.alpha, float)
        assert isinstance(patch.payload.seasonality, int)

    @pytest.mark.parametrize(
        "data",
        [
            {},
            [],
            "Threshold",
            {"Threshold": None, "Pattern": None},
            {"Seasonal": None},
            {"Threshold": {"threshold": 0.5, "extra": 1}},
            {"Threshold": {}},
            {"Threshold": {"threshold": "high"}},
            {"Threshold": {"threshold": True}},
            {"Threshold": [0.5]},
            {"Anomaly": {"alpha": 0.5, "confidence": 1.0, "seasonality": 1.5, "seasonality_iterations": 3}},
            {"Anomaly": {"alpha": 0.5, "confidence": 1.0, "seasonality": -60, "seasonality_iterations": 3}},
            {"Threshold": {"threshold": float("nan")}},
            {"Threshold": {"threshold": float("inf")}},
            {"Anomaly": {"alpha": 0.5, "confidence": 1.0, "seasonality": float("inf"), "seasonality_iterations": 3}},
        ],
    )
    def test_from_dict_rejects_malformed(self, data):
        with pytest.raises(ConfigError):
            PatchConfig.from_dict(data)


class TestConfigWireFormat:
    """Tests for config serialization."""

    @pytest.mark.parametrize("config", ALL_DEFAULTS)
    def test_to_dict_is_tagged(self, config):
        data = config.to_dict()

        assert list(data) == [config.kind.value]
        assert config_from_dict(data) == config

    def test_config_requires_values(self):
        with pytest.raises(ConfigError, match="no values"):
            config_from_dict({"Threshold": None})

    def test_config_error_is_value_error(self):
        with pytest.raises(ValueError):
            config_from_dict({"Unknown": {}})
