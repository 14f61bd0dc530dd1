"""Tests for configuration loading and validation."""

import copy

import pytest

from trustmatch.configs import get_config_value, load_config, validate_config


@pytest.fixture
def config(config_path):
    return load_config(str(config_path))


class TestLoadConfig:
    """Test YAML loading."""

    def test_shipped_config_is_valid(self, config):
        assert validate_config(config) == []

    def test_missing_file_raises(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_config(str(tmp_path / "missing.yaml"))

    def test_empty_file_raises(self, tmp_path):
        path = tmp_path / "empty.yaml"
        path.write_text("")
        with pytest.raises(ValueError):
            load_config(str(path))


class TestValidateConfig:
    """Test policy table checks."""

    def test_missing_section(self, config):
        del config["matching"]
        assert "Missing required section: matching" in validate_config(config)

    def test_stage_weights_sum(self, config):
        config["compatibility"]["stage_weights"]["BUILDING"]["skill"] = 0.9
        issues = validate_config(config)
        assert any("BUILDING" in issue and "sum to 1" in issue for issue in issues)

    def test_stage_monotonicity(self, config):
        weights = config["compatibility"]["stage_weights"]
        weights["IDEATION"], weights["SCALING"] = copy.deepcopy(weights["SCALING"]), copy.deepcopy(weights["IDEATION"])
        issues = validate_config(config)
        assert any("vision weight increases" in issue for issue in issues)
        assert any("trust weight decreases" in issue for issue in issues)

    def test_tier_order(self, config):
        config["cold_start"]["tiers"][0]["max_interactions"] = 30
        issues = validate_config(config)
        assert any("increasing" in issue for issue in issues)

    def test_bad_confidence(self, config):
        config["statistics"]["wilson_confidence"] = 1.5
        assert any("wilson_confidence" in issue for issue in validate_config(config))

    def test_missing_log_level(self, config):
        del config["global"]["log_level"]
        assert "Missing global.log_level" in validate_config(config)


class TestGetConfigValue:
    """Test dotted-path lookup."""

    def test_nested_value(self, config):
        assert get_config_value(config, "compatibility.stage_weights.SCALING.trust") == pytest.approx(0.4)

    def test_default(self, config):
        assert get_config_value(config, "matching.nonexistent", 7) == 7
