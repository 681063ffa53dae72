"""
Configuration management for flowcanvas.

Handles persistent configuration including:
- Canvas settings (grid size, zoom bounds, zoom step, duplicate offset)
- Location of the block catalog overrides

Config is stored in config.json next to the executable/project root.
Environment variables (optionally loaded from .env by the host) take
precedence over the file:

    FLOWCANVAS_GRID_SIZE, FLOWCANVAS_MIN_ZOOM, FLOWCANVAS_MAX_ZOOM,
    FLOWCANVAS_ZOOM_STEP, FLOWCANVAS_DUPLICATE_OFFSET, FLOWCANVAS_BLOCKS_PATH
"""

import json
import logging
import math
import os
from dataclasses import dataclass, asdict
from pathlib import Path
from typing import Any, Dict, Optional

from flowcanvas.paths import get_config_path, get_block_catalog_path
from flowcanvas.canvas.constants import (
    GRID_SIZE,
    MIN_ZOOM,
    MAX_ZOOM,
    ZOOM_STEP,
    DUPLICATE_OFFSET,
)

logger = logging.getLogger(__name__)

ENV_PREFIX = "FLOWCANVAS_"


class ConfigError(ValueError):
    """Raised when canvas settings are out of range or malformed."""


@dataclass(frozen=True)
class CanvasSettings:
    """Validated canvas settings."""
    grid_size: float = GRID_SIZE
    min_zoom: float = MIN_ZOOM
    max_zoom: float = MAX_ZOOM
    zoom_step: float = ZOOM_STEP
    duplicate_offset: float = DUPLICATE_OFFSET
    blocks_path: Optional[str] = None

    def __post_init__(self):
        for name in ('grid_size', 'min_zoom', 'max_zoom', 'zoom_step'):
            value = getattr(self, name)
            if not math.isfinite(value) or value <= 0:
                raise ConfigError(f"{name} must be a positive finite number, got {value!r}")
        if self.min_zoom > self.max_zoom:
            raise ConfigError(f"min_zoom ({self.min_zoom}) is greater than max_zoom ({self.max_zoom})")
        if self.zoom_step <= 1:
            raise ConfigError(f"zoom_step must be greater than 1, got {self.zoom_step}")
        if not math.isfinite(self.duplicate_offset):
            raise ConfigError(f"duplicate_offset must be finite, got {self.duplicate_offset!r}")

    @property
    def catalog_path(self) -> Path:
        if self.blocks_path:
            return Path(self.blocks_path)
        return get_block_catalog_path()

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def load_config(config_path: Path = None) -> dict:
    """Load configuration from config.json."""
    config_path = config_path or get_config_path()
    if config_path.exists():
        try:
            with open(config_path, 'r', encoding='utf-8') as f:
                return json.load(f)
        except (json.JSONDecodeError, IOError) as e:
            logger.warning(f"Ignoring unreadable config file {config_path}: {e}")
            return {}
    return {}


def save_config(config: dict, config_path: Path = None) -> None:
    """Save configuration to config.json."""
    config_path = config_path or get_config_path()
    with open(config_path, 'w', encoding='utf-8') as f:
        json.dump(config, f, indent=2)


def _env_overrides() -> Dict[str, Any]:
    """Collect FLOWCANVAS_* overrides from the environment."""
    overrides: Dict[str, Any] = {}
    for name in ('grid_size', 'min_zoom', 'max_zoom', 'zoom_step', 'duplicate_offset'):
        raw = os.environ.get(ENV_PREFIX + name.upper())
        if raw is None or raw == '':
            continue
        try:
            overrides[name] = float(raw)
        except ValueError:
            raise ConfigError(f"{ENV_PREFIX}{name.upper()} is not a number: {raw!r}")
    blocks_path = os.environ.get(ENV_PREFIX + "BLOCKS_PATH")
    if blocks_path:
        overrides['blocks_path'] = blocks_path
    return overrides


def load_canvas_settings(config: dict = None) -> CanvasSettings:
    """
    Build CanvasSettings from the 'canvas' section of config.json and the environment.

    Priority:
    1. Environment variables FLOWCANVAS_*
    2. 'canvas' section of config.json
    3. Built-in defaults
    """
    if config is None:
        config = load_config()

    section = config.get('canvas', {})
    if not isinstance(section, dict):
        raise ConfigError("'canvas' section of config.json must be an object")

    known = set(CanvasSettings.__dataclass_fields__)
    unknown = sorted(set(section) - known)
    if unknown:
        logger.warning(f"Ignoring unknown canvas settings: {', '.join(unknown)}")

    values = {k: v for k, v in section.items() if k in known}
    values.update(_env_overrides())

    try:
        return CanvasSettings(**values)
    except TypeError as e:
        raise ConfigError(f"Invalid canvas settings: {e}")


def save_canvas_settings(settings: CanvasSettings, config_path: Path = None) -> None:
    """Persist canvas settings into the 'canvas' section of config.json."""
    config = load_config(config_path)
    config['canvas'] = {k: v for k, v in settings.to_dict().items() if v is not None}
    save_config(config, config_path)
