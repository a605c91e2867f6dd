"""
Configuration loader for mood presets.

Mood presets live in YAML files under synthforge/presets/ (or any file
named by SYNTHFORGE_PRESETS). Parsed files are cached per path.
"""

import logging
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import yaml

logger = logging.getLogger(__name__)

PRESETS_DIR = Path(__file__).parent / "presets"
MOODS_FILE = "moods.yaml"


class ConfigLoadError(Exception):
    """Raised when configuration loading fails."""


class ConfigLoader:
    """
    Loads preset files from YAML with caching.

    Attributes:
        config_dir: Directory searched for relative preset file names
    """

    def __init__(self, config_dir: Optional[Union[str, Path]] = None):
        self.config_dir = Path(config_dir) if config_dir is not None else PRESETS_DIR
        self._cache: Dict[Path, Any] = {}

    def _resolve(self, name: Union[str, Path]) -> Path:
        path = Path(name)
        return path if path.is_absolute() else self.config_dir / path

    def load_yaml(self, name: Union[str, Path]) -> Dict[str, Any]:
        """
        Load and cache a YAML mapping.

        Raises:
            ConfigLoadError: missing file, invalid YAML, or a non-mapping document
        """
        path = self._resolve(name)
        if path in self._cache:
            return self._cache[path]
        if not path.exists():
            raise ConfigLoadError(f"Configuration file not found: {path}")
        try:
            with open(path, 'r', encoding='utf-8') as f:
                data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigLoadError(f"Failed to parse YAML file {path}: {e}") from e
        except OSError as e:
            raise ConfigLoadError(f"Failed to load configuration file {path}: {e}") from e
        if not isinstance(data, dict):
            raise ConfigLoadError(f"Expected a mapping at the top of {path}")
        self._cache[path] = data
        logger.debug("Loaded %s", path)
        return data

    def load_mood_presets(self, name: Union[str, Path] = MOODS_FILE) -> Dict[str, Dict[str, Any]]:
        """Mood name -> preset mapping (each with 'keywords' and parameter blocks)."""
        data = self.load_yaml(name)
        moods = data.get('moods')
        if not isinstance(moods, dict) or not moods:
            raise ConfigLoadError(f"No moods defined in {self._resolve(name)}")
        return moods

    def get_mood_preset(self, mood: str, name: Union[str, Path] = MOODS_FILE) -> Dict[str, Any]:
        moods = self.load_mood_presets(name)
        if mood not in moods:
            raise ConfigLoadError(f"Unknown mood: {mood!r}")
        return moods[mood]

    def list_moods(self, name: Union[str, Path] = MOODS_FILE) -> List[str]:
        return list(self.load_mood_presets(name))

    def reload(self) -> None:
        """Forget cached files so the next load re-reads disk."""
        self._cache.clear()
        logger.info("Configuration cache cleared")


# Module-level singleton for convenience
_default_loader: Optional[ConfigLoader] = None


def get_config_loader(config_dir: Optional[Union[str, Path]] = None) -> ConfigLoader:
    """
    Shared ConfigLoader for the bundled presets; a custom directory gets
    a fresh loader.
    """
    global _default_loader

    if config_dir is not None:
        return ConfigLoader(config_dir)

    if _default_loader is None:
        _default_loader = ConfigLoader()

    return _default_loader
