"""
Tests for analytics settings.
"""

import pytest
from pydantic import ValidationError

from nightflow.config.settings import AnalyticsSettings, get_settings


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Keep NIGHTFLOW_ variables from the host out of these tests."""
    for name in ("NIGHTFLOW_CLUSTER_K", "NIGHTFLOW_LOG_LEVEL", "NIGHTFLOW_WINSORIZED"):
        monkeypatch.delenv(name, raising=False)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


class TestDefaults:
    """Tests for default values."""

    def test_defaults(self):
        settings = AnalyticsSettings()
        assert settings.WINSORIZED is True
        assert settings.CLUSTER_K == 4
        assert settings.CLUSTER_MAX_ITER == 50
        assert settings.CLUSTER_FEATURES == ["capturedAlpha", "refGap", "notional"]
        assert settings.RANDOM_SEED is None
        assert settings.REGIME_WINDOW == 10
        assert settings.SCREENER_MIN_OBS == 3
        assert settings.RISK_CONFIDENCE == 95.0
        assert settings.GINI_METHOD == "trapezoid"
        assert settings.LOG_LEVEL == "INFO"


class TestValidation:
    """Tests for field validation."""

    @pytest.mark.parametrize(
        "field, value",
        [
            ("CLUSTER_K", 9),
            ("CLUSTER_K", 1),
            ("REGIME_WINDOW", 2),
            ("RISK_CONFIDENCE", 100.0),
            ("GINI_METHOD", "simpson"),
        ],
    )
    def test_out_of_bounds(self, field, value):
        with pytest.raises(ValidationError):
            AnalyticsSettings(**{field: value})

    def test_features_from_comma_string(self):
        settings = AnalyticsSettings(CLUSTER_FEATURES="capturedAlpha, timingDiff")
        assert settings.CLUSTER_FEATURES == ["capturedAlpha", "timingDiff"]

    def test_unknown_feature_rejected(self):
        with pytest.raises(ValidationError) as exc_info:
            AnalyticsSettings(CLUSTER_FEATURES=["capturedAlpha", "sentiment"])
        assert "sentiment" in str(exc_info.value)

    def test_single_distinct_feature_rejected(self):
        with pytest.raises(ValidationError):
            AnalyticsSettings(CLUSTER_FEATURES=["refGap", "refGap"])

    def test_log_level_uppercased(self):
        assert AnalyticsSettings(LOG_LEVEL="debug").LOG_LEVEL == "DEBUG"
        with pytest.raises(ValidationError):
            AnalyticsSettings(LOG_LEVEL="verbose")


class TestSources:
    """Tests for environment and YAML sources."""

    def test_env_override(self, monkeypatch):
        monkeypatch.setenv("NIGHTFLOW_CLUSTER_K", "5")
        monkeypatch.setenv("NIGHTFLOW_WINSORIZED", "false")
        settings = AnalyticsSettings()
        assert settings.CLUSTER_K == 5
        assert settings.WINSORIZED is False

    def test_from_yaml(self, tmp_path):
        path = tmp_path / "nightflow.yaml"
        path.write_text("cluster_k: 3\nregime_window: 5\nrandom_seed: 7\n")
        settings = AnalyticsSettings.from_yaml(path)
        assert settings.CLUSTER_K == 3
        assert settings.REGIME_WINDOW == 5
        assert settings.RANDOM_SEED == 7

    def test_from_empty_yaml(self, tmp_path):
        path = tmp_path / "empty.yaml"
        path.write_text("")
        assert AnalyticsSettings.from_yaml(path).CLUSTER_K == 4

    def test_from_yaml_requires_mapping(self, tmp_path):
        path = tmp_path / "list.yaml"
        path.write_text("- 1\n- 2\n")
        with pytest.raises(ValueError):
            AnalyticsSettings.from_yaml(path)

    def test_get_settings_is_cached(self):
        assert get_settings() is get_settings()
