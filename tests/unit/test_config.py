"""Tests for settings validation"""
import pytest

from balloonwatch.core.config import Settings, validate_settings
from balloonwatch.core.exceptions import ConfigError


def make_settings(**overrides) -> Settings:
    return Settings(_env_file=None, **overrides)


class TestSettingsDefaults:
    """Tests for default configuration"""

    def test_defaults(self):
        settings = make_settings()
        assert settings.ground_buffer_m == 1000
        assert settings.top_buffer_m == 100
        assert settings.correlation_radius_km == 50
        assert settings.bbox_padding_deg == 2
        assert settings.balloon_alt_unit == "km"
        assert settings.balloon_hour_offsets == [0, 1]

    def test_defaults_validate(self):
        assert validate_settings(make_settings()) is not None

    def test_env_override(self, monkeypatch):
        monkeypatch.setenv("CORRELATION_RADIUS_KM", "25")
        monkeypatch.setenv("BALLOON_HOUR_OFFSETS", "[0, 2]")
        settings = make_settings()
        assert settings.correlation_radius_km == 25
        assert settings.balloon_hour_offsets == [0, 2]


class TestSettingsValidation:
    """Tests for ConfigError cases"""

    @pytest.mark.parametrize("overrides,field", [
        ({"balloon_alt_unit": "miles"}, "balloon_alt_unit"),
        ({"refresh_mode": "sometimes"}, "refresh_mode"),
        ({"balloon_hour_offsets": []}, "balloon_hour_offsets"),
        ({"balloon_hour_offsets": [0, 24]}, "balloon_hour_offsets"),
        ({"balloon_hour_offsets": [0]}, "balloon_hour_offsets"),
        ({"balloon_hour_offsets": [0, 1, 2, 3]}, "balloon_hour_offsets"),
        ({"balloon_hour_offsets": [1, 1]}, "balloon_hour_offsets"),
        ({"ground_buffer_m": -1}, "ground_buffer_m"),
        ({"top_buffer_m": -5}, "top_buffer_m"),
        ({"correlation_radius_km": -0.1}, "correlation_radius_km"),
        ({"bbox_padding_deg": 91}, "bbox_padding_deg"),
        ({"fetch_timeout_seconds": 0}, "fetch_timeout_seconds"),
        ({"polling_interval": 0}, "polling_interval"),
    ])
    def test_invalid(self, overrides, field):
        with pytest.raises(ConfigError) as exc_info:
            validate_settings(make_settings(**overrides))
        assert exc_info.value.field == field
