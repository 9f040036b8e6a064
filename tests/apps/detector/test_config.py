"""Tests for the detector configuration."""

from decimal import Decimal
from pathlib import Path

import pytest

from whale_watch.apps.detector.config import DetectorConfig, load_detector_config
from whale_watch.core.config import ConfigError, ConfigLoader


class TestDetectorConfig:
    """Tests for DetectorConfig."""

    def test_defaults(self) -> None:
        """Default thresholds and capacities."""
        config = DetectorConfig()
        assert config.whale_threshold == Decimal(500000)
        assert config.critical_threshold == Decimal(1000000)
        assert config.max_history == 3600
        assert config.bucket_ms == 60_000
        assert config.chart_window_ms == 3_600_000

    def test_rejects_non_positive(self) -> None:
        """Reject a zero capacity."""
        with pytest.raises(ValueError, match="max_history must be positive"):
            DetectorConfig(max_history=0)


class TestLoadDetectorConfig:
    """Tests for load_detector_config."""

    def test_packaged_settings(self) -> None:
        """The packaged settings match the defaults."""
        assert load_detector_config(ConfigLoader()) == DetectorConfig()

    def test_overrides(self, tmp_path: Path) -> None:
        """Read overrides from the detector section."""
        (tmp_path / "settings.yaml").write_text(
            'detector:\n  whale_threshold: "250000"\n  max_history: 100\n'
        )
        config = load_detector_config(ConfigLoader(config_dir=tmp_path))

        assert config.whale_threshold == Decimal(250000)
        assert config.max_history == 100
        assert config.sma_period == 20

    def test_invalid_value_raises_config_error(self, tmp_path: Path) -> None:
        """Wrap validation failures in ConfigError."""
        (tmp_path / "settings.yaml").write_text("detector:\n  bucket_ms: 0\n")
        with pytest.raises(ConfigError, match="bucket_ms must be positive"):
            load_detector_config(ConfigLoader(config_dir=tmp_path))
