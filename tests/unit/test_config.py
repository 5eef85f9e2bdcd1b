"""
Unit tests for the server and device configuration modules.

Configs are loaded from temporary TOML files so the real ones are never
touched.
"""

import pytest
import toml
from unittest.mock import patch

import sys
import os
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.dirname(os.path.abspath(__file__)))))

from config import Config, ConfigError
from TTS160Config import DriverSettings, TTS160Config, TTS160ConfigError
from tts160_types import DriveRates


SERVER_TOML = """
[network]
ip_address = '192.168.1.100'
port = 5555
threads = 8

[server]
location = 'Observatory'
verbose_driver_exceptions = true

[logging]
log_level = 'WARNING'
log_to_stdout = true
max_size_mb = 10
num_keep_logs = 5
"""

DEVICE_TOML = """
[device]
dev_port = '/dev/ttyUSB0'

[site]
site_elevation = 120.0
site_latitude = 21.3
site_longitude = -157.9

[driver]
slew_settle_time = 3
pulse_guide_altitude_compensation = true
pulse_guide_max_compensation = 800
pulse_guide_compensation_buffer = 25
tracking_rate_on_connect = 'lunar'
"""


def _load(cls, tmp_path, filename, content):
    (tmp_path / filename).write_text(content)
    with patch.object(cls, 'get_config_dir', return_value=tmp_path):
        return cls()


class TestConfigLoading:
    """Test configuration file handling."""

    @pytest.mark.unit
    def test_missing_file_raises(self, tmp_path):
        """Config should raise ConfigError when the file is missing."""
        with patch.object(Config, 'get_config_dir', return_value=tmp_path):
            with pytest.raises(ConfigError, match="Failed to load"):
                Config()

    @pytest.mark.unit
    def test_invalid_toml_raises(self, tmp_path):
        """Config should raise ConfigError on invalid TOML syntax."""
        with pytest.raises(ConfigError):
            _load(Config, tmp_path, 'config.toml', 'invalid toml {{{{')

    @pytest.mark.unit
    def test_device_config_uses_its_own_error(self, tmp_path):
        """TTS160Config should raise TTS160ConfigError, not ConfigError."""
        with patch.object(TTS160Config, 'get_config_dir', return_value=tmp_path):
            with pytest.raises(TTS160ConfigError):
                TTS160Config()


class TestServerConfig:
    """Test server configuration properties."""

    @pytest.fixture
    def config(self, tmp_path):
        return _load(Config, tmp_path, 'config.toml', SERVER_TOML)

    @pytest.mark.unit
    def test_network_section(self, config):
        """Network properties should return configured values."""
        assert config.ip_address == '192.168.1.100'
        assert config.port == 5555
        assert config.threads == 8

    @pytest.mark.unit
    def test_server_section(self, config):
        """Server properties should return configured values."""
        assert config.location == 'Observatory'
        assert config.verbose_driver_exceptions is True

    @pytest.mark.unit
    def test_log_level_is_numeric(self, config):
        """log_level should be converted to a logging level number."""
        assert config.log_level == 30

    @pytest.mark.unit
    def test_logging_section(self, config):
        """Logging properties should return configured values."""
        assert config.log_to_stdout is True
        assert config.max_size_mb == 10
        assert config.num_keep_logs == 5

    @pytest.mark.unit
    def test_defaults_when_missing(self, tmp_path):
        """Missing entries should fall back to defaults."""
        config = _load(Config, tmp_path, 'config.toml', '[network]\n')
        assert config.port == 5555
        assert config.threads == 4
        assert config.max_size_mb == 5
        assert config.num_keep_logs == 10

    @pytest.mark.unit
    def test_save_persists_changes(self, config, tmp_path):
        """save() should write changed values back to the file."""
        config.port = 11111
        config.save()

        saved = toml.load(tmp_path / 'config.toml')
        assert saved['network']['port'] == 11111


class TestDeviceConfig:
    """Test TTS160 profile properties."""

    @pytest.fixture
    def config(self, tmp_path):
        return _load(TTS160Config, tmp_path, 'TTS160config.toml', DEVICE_TOML)

    @pytest.mark.unit
    def test_device_and_site(self, config):
        """Device and site properties should return configured values."""
        assert config.dev_port == '/dev/ttyUSB0'
        assert config.site_elevation == 120.0
        assert config.site_latitude == 21.3
        assert config.site_longitude == -157.9

    @pytest.mark.unit
    def test_driver_section(self, config):
        """Driver settings should return configured values."""
        assert config.slew_settle_time == 3
        assert config.pulse_guide_altitude_compensation is True
        assert config.pulse_guide_max_compensation == 800
        assert config.pulse_guide_compensation_buffer == 25
        assert config.tracking_rate_on_connect == DriveRates.driveLunar

    @pytest.mark.unit
    def test_driver_defaults(self, tmp_path):
        """Missing driver entries should fall back to defaults."""
        config = _load(TTS160Config, tmp_path, 'TTS160config.toml', '[device]\n')
        assert config.dev_port == 'COM1'
        assert config.slew_settle_time == 2
        assert config.pulse_guide_altitude_compensation is False
        assert config.pulse_guide_max_compensation == 1000
        assert config.pulse_guide_compensation_buffer == 20
        assert config.tracking_rate_on_connect is None

    @pytest.mark.unit
    def test_unknown_tracking_rate_raises(self, tmp_path):
        """An unknown tracking_rate_on_connect name should be rejected."""
        config = _load(TTS160Config, tmp_path, 'TTS160config.toml',
                       "[driver]\ntracking_rate_on_connect = 'king'\n")
        with pytest.raises(TTS160ConfigError, match="king"):
            _ = config.tracking_rate_on_connect

    @pytest.mark.unit
    def test_snapshot(self, config):
        """snapshot() should capture the driver settings in one object."""
        assert config.snapshot() == DriverSettings(
            slew_settle_time=3,
            pulse_guide_altitude_compensation=True,
            pulse_guide_max_compensation=800,
            pulse_guide_compensation_buffer=25,
            tracking_rate_on_connect=DriveRates.driveLunar,
        )

    @pytest.mark.unit
    def test_tracking_rate_setter_stores_name(self, config, tmp_path):
        """Setting tracking_rate_on_connect should persist the rate name."""
        config.tracking_rate_on_connect = DriveRates.driveSolar
        config.save()

        saved = toml.load(tmp_path / 'TTS160config.toml')
        assert saved['driver']['tracking_rate_on_connect'] == 'solar'
