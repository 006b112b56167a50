"""
Unit Tests for the Config/Preset Resolver

Tests the packaged presets, custom configs and overrides, and validation
errors naming the offending field.
"""

import pytest
import yaml

from heatcore.core.models import HeatmapConfig, IssuePriority, IssueStatus
from heatcore.core.presets import list_presets, resolve_config, resolve_preset_filters
from heatcore.core.validation import InvalidConfig
from heatcore.utils.constants import ENV_PRESETS_PATH


@pytest.mark.fast
class TestPresets:
    """Tests for named presets."""

    def test_list_presets(self):
        names = [p["name"] for p in list_presets()]

        assert names == ["emergency", "maintenance", "overview", "zone", "custom"]

    def test_emergency(self):
        config = resolve_config("emergency")

        assert config.time_decay_factor == 1.0
        assert config.severity_weight_multiplier == 3.0
        assert config.grid_size_meters == 25
        assert config.cluster_radius_meters is None
        assert config.normalize_weights is True

    def test_maintenance(self):
        config = resolve_config("maintenance")

        assert config.time_decay_factor == 0.3
        assert config.severity_weight_multiplier == 1.5
        assert config.grid_size_meters == 50
        assert config.cluster_radius_meters == 100
        assert config.min_cluster_size == 3

    def test_overview(self):
        config = resolve_config("overview")

        assert config.grid_size_meters == 100
        assert config.cluster_radius_meters == 200
        assert config.min_cluster_size == 5

    def test_zone(self):
        config = resolve_config("zone")

        assert config.time_decay_factor == 0.5
        assert config.grid_size_meters == 25
        assert config.clustering_enabled is False

    def test_custom_is_default(self):
        assert resolve_config("custom") == HeatmapConfig()
        assert resolve_config() == HeatmapConfig()

    def test_preset_name_case_insensitive(self):
        assert resolve_config("Emergency") == resolve_config("emergency")

    def test_preset_filters(self):
        filters = resolve_preset_filters("emergency")

        assert filters.priorities == (IssuePriority.CRITICAL, IssuePriority.HIGH)
        assert filters.statuses == (IssueStatus.OPEN, IssueStatus.IN_PROGRESS)
        assert filters.time_range == "7d"
        assert filters.min_severity == 5

    def test_custom_preset_has_no_filters(self):
        filters = resolve_preset_filters("custom")

        assert filters.statuses == ()
        assert filters.time_range is None

    def test_unknown_preset(self):
        with pytest.raises(InvalidConfig) as exc:
            resolve_config("apocalypse")
        assert exc.value.field == "preset"

    def test_env_override(self, tmp_path, monkeypatch):
        path = tmp_path / "presets.yml"
        path.write_text(yaml.safe_dump({
            "version": "test",
            "presets": {"campus": {"label": "Campus", "config": {"grid_size_meters": 10}, "filters": {}}},
        }))
        monkeypatch.setenv(ENV_PRESETS_PATH, str(path))

        assert resolve_config("campus").grid_size_meters == 10
        assert [p["name"] for p in list_presets()] == ["campus"]


@pytest.mark.fast
class TestCustomConfig:
    """Tests for custom configs and overrides."""

    def test_overrides_apply_over_preset(self):
        config = resolve_config("maintenance", overrides={"grid_size_meters": 75})

        assert config.grid_size_meters == 75
        assert config.cluster_radius_meters == 100

    def test_camel_case_keys(self):
        config = resolve_config(custom={"timeDecayFactor": 0.0, "gridSize": 30, "clusterRadius": 40, "minClusterSize": 4})

        assert config.time_decay_factor == 0.0
        assert config.grid_size_meters == 30
        assert config.cluster_radius_meters == 40
        assert config.min_cluster_size == 4

    def test_config_instance_passthrough(self):
        config = HeatmapConfig(grid_size_meters=12)

        assert resolve_config(custom=config) is config

    @pytest.mark.parametrize("params,field", [
        ({"grid_size_meters": 0}, "grid_size_meters"),
        ({"grid_size_meters": -5}, "grid_size_meters"),
        ({"time_decay_factor": -0.1}, "time_decay_factor"),
        ({"min_cluster_size": 1}, "min_cluster_size"),
        ({"min_cluster_size": 2.5}, "min_cluster_size"),
        ({"severity_weight_multiplier": 0}, "severity_weight_multiplier"),
        ({"cluster_radius_meters": -1}, "cluster_radius_meters"),
        ({"grid_size_meters": "big"}, "grid_size_meters"),
        ({"time_decay_factor": float("nan")}, "time_decay_factor"),
        ({"normalize_weights": "yes"}, "normalize_weights"),
        ({"zoom": 3}, "zoom"),
    ])
    def test_invalid_values_name_field(self, params, field):
        with pytest.raises(InvalidConfig) as exc:
            resolve_config(custom=params)
        assert exc.value.field == field

    def test_camel_case_error_names_field(self):
        with pytest.raises(InvalidConfig) as exc:
            resolve_config(custom={"gridSize": -1})
        assert exc.value.field == "grid_size_meters"
