"""
Application configuration manager.
Stores settings in a JSON file under ~/.config/creeperkeeper.
"""

import json
import logging
from datetime import timedelta
from pathlib import Path

from creeperkeeper.core.constants import (
    CONFIG_PATH, DEFAULT_SUBTITLE_DURATION_SEC, DEFAULT_SUBTITLE_TEMPLATE,
    CANONICAL_WIDTH, CANONICAL_HEIGHT, DEFAULT_FONT_NAME, DEFAULT_FONT_SIZE,
    DOWNLOAD_WORKERS, RENDER_WORKERS,
)

# Validation bounds
_DURATION_MIN = 0.1
_DURATION_MAX = 60.0
_DIMENSION_MIN = 16
_DIMENSION_MAX = 4096
_FONT_SIZE_MIN = 1
_FONT_SIZE_MAX = 200
_WORKERS_MIN = 1
_WORKERS_MAX = 64

logger = logging.getLogger(__name__)

_DEFAULTS = {
    'subtitle_duration': DEFAULT_SUBTITLE_DURATION_SEC,
    'subtitle_template': DEFAULT_SUBTITLE_TEMPLATE,
    'plain_emoji': False,
    'video_width': CANONICAL_WIDTH,
    'video_height': CANONICAL_HEIGHT,
    'font_name': DEFAULT_FONT_NAME,
    'font_size': DEFAULT_FONT_SIZE,
    'download_workers': DOWNLOAD_WORKERS,
    'render_workers': RENDER_WORKERS,
}

# key -> (type, min, max)
_NUMERIC = {
    'subtitle_duration': (float, _DURATION_MIN, _DURATION_MAX),
    'video_width': (int, _DIMENSION_MIN, _DIMENSION_MAX),
    'video_height': (int, _DIMENSION_MIN, _DIMENSION_MAX),
    'font_size': (int, _FONT_SIZE_MIN, _FONT_SIZE_MAX),
    'download_workers': (int, _WORKERS_MIN, _WORKERS_MAX),
    'render_workers': (int, _WORKERS_MIN, _WORKERS_MAX),
}


class AppConfig:
    """Manages application configuration stored as JSON."""

    def __init__(self, config_path: Path | None = None):
        self.path = config_path or CONFIG_PATH
        self._data: dict = {}
        self.load()

    def load(self):
        """Load config from disk, merging with defaults."""
        self._data = dict(_DEFAULTS)
        if self.path.exists():
            try:
                with open(self.path, 'r') as f:
                    saved = json.load(f)
            except (OSError, ValueError) as e:
                logger.warning("Failed to load config %s: %s", self.path, e)
                return
            if not isinstance(saved, dict):
                logger.warning("Ignoring config %s: not a JSON object", self.path)
                return
            for key, value in saved.items():
                self._data[key] = self._validate(key, value)

    def save(self):
        """Persist config to disk."""
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.path, 'w') as f:
            json.dump(self._data, f, indent=2)

    def get(self, key: str, default=None):
        return self._data.get(key, default)

    def set(self, key: str, value):
        self._data[key] = self._validate(key, value)
        self.save()

    def override(self, **values):
        """Apply command-line values for this run only; None means unset."""
        for key, value in values.items():
            if value is not None:
                self._data[key] = self._validate(key, value)

    def _validate(self, key: str, value):
        """Validate and coerce config values to safe ranges."""
        if key in _NUMERIC:
            kind, lo, hi = _NUMERIC[key]
            try:
                value = kind(value)
            except (TypeError, ValueError):
                logger.warning("Invalid %s %r, using default", key, value)
                return _DEFAULTS[key]
            return max(lo, min(hi, value))

        if key == 'plain_emoji':
            return bool(value)

        if key in ('subtitle_template', 'font_name'):
            if not isinstance(value, str) or not value:
                logger.warning("Invalid %s %r, using default", key, value)
                return _DEFAULTS[key]

        return value

    def as_dict(self) -> dict:
        return dict(self._data)

    @property
    def subtitle_duration(self) -> timedelta:
        return timedelta(seconds=self._data['subtitle_duration'])

    @property
    def subtitle_template(self) -> str:
        return self._data['subtitle_template']

    @property
    def plain_emoji(self) -> bool:
        return self._data['plain_emoji']

    @property
    def video_size(self) -> tuple[int, int]:
        return self._data['video_width'], self._data['video_height']

    @property
    def font_name(self) -> str:
        return self._data['font_name']

    @property
    def font_size(self) -> int:
        return self._data['font_size']

    @property
    def download_workers(self) -> int:
        return self._data['download_workers']

    @property
    def render_workers(self) -> int:
        return self._data['render_workers']
