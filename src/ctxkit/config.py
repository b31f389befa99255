"""Configuration loading for ctxkit."""

from __future__ import annotations

import logging
import re
from pathlib import Path

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator

from .exceptions import ConfigError
from .models import StatusPolicy, ThresholdConfig

logger = logging.getLogger(__name__)

CONFIG_DIR_NAME = ".ctxkit"
CONFIG_FILE_NAME = "config.yaml"

CONFIG_TEMPLATE = """\
# ctxkit configuration
# ====================
# Every key is optional; the values below are the defaults.

version: 1.0.0

# Where context bundles are stored, relative to this .ctxkit directory.
bundles_dir: bundles

# Inclusive lower bound (in tokens) of each stage. Anything below
# `growing` is fresh. Values must be strictly ascending.
thresholds:
  growing: 60000     # NOTICE: consider delegating
  large: 100000      # ALERT: delegate remaining research
  critical: 120000   # WARNING: save a context bundle
  overload: 150000   # CRITICAL: save and hand off

# How `ctx list` labels bundles by age.
status:
  active_hours: 24   # younger than this is active
  archive_days: 30   # older than this is archived
"""


class CtxKitConfig(BaseModel):
    """Settings read from .ctxkit/config.yaml."""

    version: str = Field(default="1.0.0", description="Config format version")
    bundles_dir: Path = Field(
        default=Path("bundles"),
        description="Bundle directory, relative to the config directory",
    )
    thresholds: ThresholdConfig = Field(default_factory=ThresholdConfig)
    status: StatusPolicy = Field(default_factory=StatusPolicy)

    @field_validator("version")
    @classmethod
    def validate_semver(cls, v: str) -> str:
        """Validate version follows semantic versioning."""
        if not re.match(r"^\d+\.\d+\.\d+$", v):
            msg = "Version must follow semantic versioning (e.g., 1.0.0)"
            raise ValueError(msg)
        return v

    def resolve_bundles_dir(self, config_dir: Path) -> Path:
        """Absolute bundle directory for a config living in config_dir."""
        if self.bundles_dir.is_absolute():
            return self.bundles_dir
        return config_dir / self.bundles_dir


def load_config(config_path: Path) -> CtxKitConfig:
    """Load and validate a configuration file.

    Args:
        config_path: Path to a config.yaml file

    Returns:
        Validated configuration

    Raises:
        ConfigError: If the file cannot be read, parsed, or validated
    """
    if not config_path.exists():
        msg = f"Config file not found: {config_path}"
        raise ConfigError(msg)

    try:
        with config_path.open(encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        msg = f"Failed to parse config YAML: {e}"
        raise ConfigError(msg) from e
    except OSError as e:
        msg = f"Failed to read config file: {e}"
        raise ConfigError(msg) from e

    if data is None:
        data = {}
    if not isinstance(data, dict):
        msg = f"Config file must contain a mapping: {config_path}"
        raise ConfigError(msg)

    try:
        config = CtxKitConfig.model_validate(data)
    except ValidationError as e:
        msg = f"Config validation failed: {e}"
        raise ConfigError(msg, details={"path": str(config_path)}) from e

    logger.debug("Loaded config from %s", config_path)
    return config


def discover_config(start: Path | None = None) -> Path | None:
    """Find .ctxkit/config.yaml in start or any parent directory.

    Returns:
        Path to discovered config file or None if not found
    """
    current = (start or Path.cwd()).resolve()

    while True:
        candidate = current / CONFIG_DIR_NAME / CONFIG_FILE_NAME
        if candidate.is_file():
            return candidate
        if current == current.parent:
            return None
        current = current.parent


def resolve_settings(
    config_path: Path | None = None,
    start: Path | None = None,
) -> tuple[CtxKitConfig, Path]:
    """Resolve the active configuration and bundle directory.

    An explicit config_path wins; otherwise the directory tree is searched.
    Without any config file, defaults apply and bundles live in
    ./.ctxkit/bundles.

    Returns:
        Tuple of (config, absolute bundles directory)
    """
    path = config_path or discover_config(start)
    if path is None:
        config = CtxKitConfig()
        config_dir = (start or Path.cwd()) / CONFIG_DIR_NAME
    else:
        config = load_config(path)
        config_dir = path.parent

    return config, config.resolve_bundles_dir(config_dir)
