"""Tests for configuration loading and discovery."""

import tempfile
from pathlib import Path

import pytest
import yaml

from ctxkit.config import (
    CONFIG_TEMPLATE,
    CtxKitConfig,
    discover_config,
    load_config,
    resolve_settings,
)
from ctxkit.exceptions import ConfigError


class TestLoadConfig:
    """Test reading config.yaml files."""

    @pytest.fixture
    def config_dir(self) -> Path:
        """Create a temporary .ctxkit directory."""
        with tempfile.TemporaryDirectory() as temp_dir:
            path = Path(temp_dir) / ".ctxkit"
            path.mkdir()
            yield path

    def test_template_matches_defaults(self, config_dir: Path) -> None:
        """The starter template spells out the default settings."""
        config_file = config_dir / "config.yaml"
        config_file.write_text(CONFIG_TEMPLATE, encoding="utf-8")

        assert load_config(config_file) == CtxKitConfig()

    def test_empty_file_uses_defaults(self, config_dir: Path) -> None:
        """An empty file is a valid config."""
        config_file = config_dir / "config.yaml"
        config_file.write_text("", encoding="utf-8")

        config = load_config(config_file)
        assert config.thresholds.overload == 150_000
        assert config.status.active_hours == 24

    def test_partial_overrides(self, config_dir: Path) -> None:
        """Keys that are present override only themselves."""
        config_file = config_dir / "config.yaml"
        with open(config_file, "w") as f:
            yaml.dump(
                {"bundles_dir": "handoffs", "thresholds": {"overload": 180_000}},
                f,
            )

        config = load_config(config_file)
        assert config.bundles_dir == Path("handoffs")
        assert config.thresholds.overload == 180_000
        assert config.thresholds.growing == 60_000

    def test_missing_file(self, config_dir: Path) -> None:
        """A missing config file raises ConfigError."""
        with pytest.raises(ConfigError, match="Config file not found"):
            load_config(config_dir / "absent.yaml")

    def test_invalid_yaml(self, config_dir: Path) -> None:
        """Unparseable YAML raises ConfigError."""
        config_file = config_dir / "config.yaml"
        config_file.write_text("thresholds: [unclosed", encoding="utf-8")

        with pytest.raises(ConfigError, match="Failed to parse config YAML"):
            load_config(config_file)

    def test_non_mapping(self, config_dir: Path) -> None:
        """Top-level lists are rejected."""
        config_file = config_dir / "config.yaml"
        config_file.write_text("- 1\n- 2\n", encoding="utf-8")

        with pytest.raises(ConfigError, match="must contain a mapping"):
            load_config(config_file)

    def test_invalid_thresholds(self, config_dir: Path) -> None:
        """Out-of-order thresholds fail validation."""
        config_file = config_dir / "config.yaml"
        with open(config_file, "w") as f:
            yaml.dump({"thresholds": {"large": 50_000}}, f)

        with pytest.raises(ConfigError, match="Config validation failed"):
            load_config(config_file)

    def test_invalid_version(self, config_dir: Path) -> None:
        """Version must be semantic."""
        config_file = config_dir / "config.yaml"
        config_file.write_text("version: one\n", encoding="utf-8")

        with pytest.raises(ConfigError, match="semantic versioning"):
            load_config(config_file)


class TestDiscovery:
    """Test locating the config file and bundle directory."""

    def test_discover_in_parent(self) -> None:
        """Discovery walks up from nested directories."""
        with tempfile.TemporaryDirectory() as temp_dir:
            root = Path(temp_dir).resolve()
            (root / ".ctxkit").mkdir()
            config_file = root / ".ctxkit" / "config.yaml"
            config_file.write_text(CONFIG_TEMPLATE, encoding="utf-8")
            nested = root / "src" / "pkg"
            nested.mkdir(parents=True)

            assert discover_config(nested) == config_file

    def test_resolve_with_discovered_config(self) -> None:
        """Relative bundle directories resolve against .ctxkit/."""
        with tempfile.TemporaryDirectory() as temp_dir:
            root = Path(temp_dir).resolve()
            (root / ".ctxkit").mkdir()
            (root / ".ctxkit" / "config.yaml").write_text(
                "bundles_dir: saved\n", encoding="utf-8",
            )

            _, bundles_dir = resolve_settings(start=root)
            assert bundles_dir == root / ".ctxkit" / "saved"

    def test_resolve_absolute_bundles_dir(self) -> None:
        """Absolute bundle directories are used as given."""
        with tempfile.TemporaryDirectory() as temp_dir:
            root = Path(temp_dir).resolve()
            target = root / "elsewhere"
            config_file = root / "custom.yaml"
            config_file.write_text(f"bundles_dir: {target}\n", encoding="utf-8")

            _, bundles_dir = resolve_settings(config_path=config_file)
            assert bundles_dir == target
