"""
User configuration management for photosift.

Supports configuration from multiple sources (in order of priority):
1. Command-line flags (highest priority)
2. Environment variables
3. User config file (~/.photosift/config.json)
4. Default values from config.py (lowest priority)

Configuration file location: ~/.photosift/config.json
(the directory can be changed with PHOTOSIFT_CONFIG_DIR)

Example config.json:
{
    "default_workers": 4,
    "decode_concurrency": 4,
    "adaptive_windows": false,
    "flag_noise": false,
    "max_image_pixels": 500000000,
    "cache_max_age_days": 30,
    "cache_db_file": null,
    "similarity": {
        "dhash_threshold": 12,
        "window_seconds": 300
    }
}
"""

import json
import os
from pathlib import Path
from typing import Any, Optional
import logging

from .config import (
    CACHE_DB_FILE,
    DEFAULT_DECODE_CONCURRENCY,
    DEFAULT_SIMILARITY,
    DEFAULT_WORKERS,
)
from .models import SimilarityConfig

logger = logging.getLogger(__name__)


class UserConfig:
    """
    Manages user configuration from file and environment variables.

    The config file is loaded lazily and cached until reload().
    """

    _instance: Optional['UserConfig'] = None
    _config_data: Optional[dict] = None

    def __new__(cls):
        """Singleton pattern to ensure one config instance."""
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    @property
    def config_dir(self) -> Path:
        """Get the configuration directory path."""
        env_dir = os.getenv('PHOTOSIFT_CONFIG_DIR')
        if env_dir:
            return Path(env_dir)
        return Path.home() / '.photosift'

    @property
    def config_file_path(self) -> Path:
        """Get the configuration file path."""
        return self.config_dir / 'config.json'

    def _load_config_file(self) -> dict:
        """Load configuration from JSON file."""
        if not self.config_file_path.exists():
            return {}

        try:
            with open(self.config_file_path, 'r', encoding='utf-8') as f:
                data = json.load(f)
            if not isinstance(data, dict):
                logger.warning(f"Ignoring config file {self.config_file_path}: not a JSON object")
                return {}
            logger.debug(f"Loaded configuration from {self.config_file_path}")
            return data
        except Exception as e:
            logger.warning(f"Failed to load config file {self.config_file_path}: {e}")
            return {}

    def _get_config_data(self) -> dict:
        """Get cached config data (lazy loading)."""
        if self._config_data is None:
            self._config_data = self._load_config_file()
        return self._config_data

    def reload(self):
        """Reload configuration from file."""
        self._config_data = None

    def get(self, key: str, default: Any = None, env_var: Optional[str] = None) -> Any:
        """
        Get a configuration value with priority:
        1. Environment variable (if env_var specified)
        2. Config file
        3. Default value

        Args:
            key: Configuration key
            default: Default value if not found
            env_var: Optional environment variable name to check

        Returns:
            Configuration value
        """
        if env_var:
            env_value = os.getenv(env_var)
            if env_value is not None:
                # Try to parse as JSON for numbers, booleans and objects
                try:
                    return json.loads(env_value)
                except (json.JSONDecodeError, TypeError):
                    return env_value

        config_data = self._get_config_data()
        if key in config_data:
            return config_data[key]

        return default

    @property
    def default_workers(self) -> int:
        """Number of parallel workers for feature extraction."""
        return int(self.get('default_workers', default=DEFAULT_WORKERS, env_var='PHOTOSIFT_WORKERS'))

    @property
    def decode_concurrency(self) -> int:
        """Maximum number of photos decoded at once."""
        return int(self.get(
            'decode_concurrency',
            default=DEFAULT_DECODE_CONCURRENCY,
            env_var='PHOTOSIFT_DECODE_CONCURRENCY'
        ))

    @property
    def adaptive_windows(self) -> bool:
        """Pick the comparison window from photo density."""
        return bool(self.get('adaptive_windows', default=False, env_var='PHOTOSIFT_ADAPTIVE_WINDOWS'))

    @property
    def flag_noise(self) -> bool:
        """Report NOISY as a quality issue (off by default; noise is informational)."""
        return bool(self.get('flag_noise', default=False, env_var='PHOTOSIFT_FLAG_NOISE'))

    @property
    def max_image_pixels(self) -> int:
        """Maximum image size in pixels (decompression bomb limit)."""
        return int(self.get('max_image_pixels', default=500_000_000, env_var='PHOTOSIFT_MAX_PIXELS'))

    @property
    def cache_max_age_days(self) -> int:
        """Maximum age for cache entries before cleanup (days)."""
        return int(self.get('cache_max_age_days', default=30, env_var='PHOTOSIFT_CACHE_MAX_AGE'))

    @property
    def cache_db_file(self) -> str:
        """Path to cache database file."""
        custom = self.get('cache_db_file', env_var='PHOTOSIFT_CACHE_DB')
        if custom:
            return custom
        return CACHE_DB_FILE

    @property
    def similarity_overrides(self) -> dict:
        """
        Similarity option overrides.

        The config file's "similarity" object is merged with the
        PHOTOSIFT_SIMILARITY environment variable (a JSON object), which wins.
        """
        overrides = {}
        file_section = self._get_config_data().get('similarity') or {}
        if isinstance(file_section, dict):
            overrides.update(file_section)
        else:
            logger.warning("Ignoring 'similarity' config section: not an object")

        env_value = os.getenv('PHOTOSIFT_SIMILARITY')
        if env_value:
            try:
                env_section = json.loads(env_value)
            except json.JSONDecodeError as e:
                logger.warning(f"Ignoring PHOTOSIFT_SIMILARITY: {e}")
            else:
                if isinstance(env_section, dict):
                    overrides.update(env_section)
                else:
                    logger.warning("Ignoring PHOTOSIFT_SIMILARITY: not a JSON object")
        return overrides

    def similarity_config(self, **cli_overrides) -> SimilarityConfig:
        """
        Build the SimilarityConfig for a scan.

        Args:
            **cli_overrides: Command-line overrides (highest priority)

        Raises:
            ValueError: If an option is unknown or invalid
        """
        merged = self.similarity_overrides
        merged.update(cli_overrides)
        return SimilarityConfig.from_mapping(merged)

    def create_example_config(self) -> bool:
        """Create an example configuration file."""
        example_config = {
            "_comment": "photosift user configuration",
            "default_workers": DEFAULT_WORKERS,
            "decode_concurrency": DEFAULT_DECODE_CONCURRENCY,
            "adaptive_windows": False,
            "flag_noise": False,
            "max_image_pixels": 500000000,
            "cache_max_age_days": 30,
            "cache_db_file": None,
            "similarity": dict(DEFAULT_SIMILARITY),
        }

        try:
            self.config_dir.mkdir(parents=True, exist_ok=True)
            with open(self.config_file_path, 'w', encoding='utf-8') as f:
                json.dump(example_config, f, indent=2)
            logger.info(f"Created example config file at {self.config_file_path}")
            self.reload()
            return True
        except Exception as e:
            logger.error(f"Failed to create example config: {e}")
            return False


# Global instance
_user_config = UserConfig()


def get_user_config() -> UserConfig:
    """Get the global UserConfig instance."""
    return _user_config
