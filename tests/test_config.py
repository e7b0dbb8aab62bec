"""
Smoke tests for configuration loading and validation.
"""

import os
import pytest

from main import load_config, validate_config


class TestValidateConfig:
    """Tests for validate_config function."""

    def test_valid_config_passes(self, valid_config):
        """A complete valid config passes validation."""
        is_valid, error = validate_config(valid_config)

        assert is_valid is True
        assert error is None

    @pytest.mark.parametrize("section", ["service", "camera", "polling", "log_path", "log_level"])
    def test_missing_required_section(self, valid_config, section):
        """Each required section is reported by name."""
        del valid_config[section]

        is_valid, error = validate_config(valid_config)

        assert is_valid is False
        assert section in error

    def test_web_section_optional(self, valid_config):
        """web may be omitted entirely."""
        del valid_config["web"]

        is_valid, error = validate_config(valid_config)

        assert is_valid is True

    def test_base_url_must_be_http(self, valid_config):
        """Non-http base URLs are rejected."""
        valid_config["service"]["base_url"] = "ftp://detector"

        is_valid, error = validate_config(valid_config)

        assert is_valid is False
        assert "base_url" in error

    def test_empty_target_class(self, valid_config):
        """target_class must not be empty."""
        valid_config["service"]["target_class"] = ""

        is_valid, error = validate_config(valid_config)

        assert is_valid is False
        assert "target_class" in error

    @pytest.mark.parametrize("timeout", [0, -5, "10"])
    def test_invalid_request_timeout(self, valid_config, timeout):
        """request_timeout_s must be a positive number when set."""
        valid_config["service"]["request_timeout_s"] = timeout

        is_valid, error = validate_config(valid_config)

        assert is_valid is False
        assert "request_timeout_s" in error

    def test_positive_request_timeout(self, valid_config):
        """A positive timeout is accepted."""
        valid_config["service"]["request_timeout_s"] = 15

        is_valid, error = validate_config(valid_config)

        assert is_valid is True

    def test_invalid_device_id_type(self, valid_config):
        """device_id must be int or string."""
        valid_config["camera"]["device_id"] = 1.5

        is_valid, error = validate_config(valid_config)

        assert is_valid is False
        assert "device_id" in error

    def test_negative_device_id(self, valid_config):
        """Negative device_id fails validation."""
        valid_config["camera"]["device_id"] = -1

        is_valid, error = validate_config(valid_config)

        assert is_valid is False
        assert "non-negative" in error

    def test_string_device_id_valid(self, valid_config):
        """String device_id (stream URL) is valid."""
        valid_config["camera"]["device_id"] = "rtsp://192.168.1.100:554/stream"

        is_valid, error = validate_config(valid_config)

        assert is_valid is True

    def test_invalid_resolution_format(self, valid_config):
        """Resolution must be a list."""
        valid_config["camera"]["resolution"] = "1280x720"

        is_valid, error = validate_config(valid_config)

        assert is_valid is False
        assert "resolution" in error

    def test_invalid_resolution_values(self, valid_config):
        """Resolution values must be positive integers."""
        valid_config["camera"]["resolution"] = [1280, 0]

        is_valid, error = validate_config(valid_config)

        assert is_valid is False
        assert "resolution" in error

    @pytest.mark.parametrize("quality", [0, 101, "high"])
    def test_invalid_jpeg_quality(self, valid_config, quality):
        """jpeg_quality must be within 1..100."""
        valid_config["camera"]["jpeg_quality"] = quality

        is_valid, error = validate_config(valid_config)

        assert is_valid is False
        assert "jpeg_quality" in error

    def test_invalid_facing_devices(self, valid_config):
        """facing_devices must be a mapping."""
        valid_config["camera"]["facing_devices"] = [0, 1]

        is_valid, error = validate_config(valid_config)

        assert is_valid is False
        assert "facing_devices" in error

    @pytest.mark.parametrize("interval", [0, -1, True])
    def test_invalid_polling_interval(self, valid_config, interval):
        """Polling interval must be a positive number."""
        valid_config["polling"]["interval_s"] = interval

        is_valid, error = validate_config(valid_config)

        assert is_valid is False
        assert "interval_s" in error

    def test_invalid_web_port(self, valid_config):
        """web.port must be a valid TCP port."""
        valid_config["web"]["port"] = 70000

        is_valid, error = validate_config(valid_config)

        assert is_valid is False
        assert "web.port" in error

    def test_invalid_log_level(self, valid_config):
        """Invalid log level fails validation."""
        valid_config["log_level"] = "VERBOSE"

        is_valid, error = validate_config(valid_config)

        assert is_valid is False
        assert "log_level" in error


class TestLoadConfig:
    """Tests for load_config function."""

    def test_loads_default_yaml(self, temp_config_dir):
        """Config loads from default.yaml when only it exists."""
        config_path = str(temp_config_dir / "config.yaml")

        # Don't create config.yaml, only default.yaml exists
        config = load_config(config_path)

        assert config["service"]["target_class"] == "patriota"
        assert config["camera"]["device_id"] == 0
        assert config["camera"]["resolution"] == [640, 480]

    def test_local_overrides_merge(self, temp_config_dir):
        """Local config.yaml overrides default.yaml."""
        config_yaml = temp_config_dir / "config.yaml"
        config_yaml.write_text("""
camera:
  resolution: [1920, 1080]
  jpeg_quality: 90
""")

        config = load_config(str(config_yaml))

        # Overridden values
        assert config["camera"]["resolution"] == [1920, 1080]
        assert config["camera"]["jpeg_quality"] == 90

        # Original values preserved
        assert config["camera"]["device_id"] == 0

    def test_deep_merge_preserves_nested(self, temp_config_dir):
        """Deep merge preserves nested keys not overridden."""
        config_yaml = temp_config_dir / "config.yaml"
        config_yaml.write_text("""
service:
  base_url: "https://detector.example.com"
""")

        config = load_config(str(config_yaml))

        assert config["service"]["base_url"] == "https://detector.example.com"
        assert config["service"]["target_class"] == "patriota"

    def test_explicit_config_applied_last(self, temp_config_dir):
        """An explicit --config file overrides both default.yaml and config.yaml."""
        (temp_config_dir / "config.yaml").write_text("""
polling:
  interval_s: 5.0
""")
        explicit = temp_config_dir / "field.yaml"
        explicit.write_text("""
polling:
  interval_s: 1.0
""")

        config = load_config(str(explicit))

        assert config["polling"]["interval_s"] == 1.0
        assert config["service"]["base_url"] == "http://localhost:8000"

    def test_loaded_defaults_validate(self, temp_config_dir):
        """The layered result of the shipped sections validates."""
        config = load_config(os.path.join(str(temp_config_dir), "config.yaml"))

        is_valid, error = validate_config(config)

        assert is_valid is True, error
