"""
Configuration management for CalMorph conversion
"""
import yaml
from pathlib import Path
from typing import Any, Optional


class Config:
    """
    Layered run configuration: packaged defaults, optional YAML file,
    then command-line overrides.

    Nested values are addressed with dot notation: config.get('plate.wells')
    """

    def __init__(self, config_file: Optional[Path] = None):
        """
        Args:
            config_file: Optional YAML file merged over the defaults
        """
        self.data = {}
        self._load_defaults()
        if config_file:
            self._load_yaml(config_file)

    def _load_defaults(self):
        defaults_path = Path(__file__).parent / "defaults.yaml"
        with open(defaults_path, 'r') as f:
            self.data = yaml.safe_load(f) or {}

    def _load_yaml(self, config_file: Path):
        config_file = Path(config_file)
        if not config_file.exists():
            raise FileNotFoundError(f"Config file not found: {config_file}")

        with open(config_file, 'r') as f:
            custom_config = yaml.safe_load(f) or {}

        self._deep_merge(self.data, custom_config)

    def _deep_merge(self, base: dict, override: dict):
        for key, value in override.items():
            if key in base and isinstance(base[key], dict) and isinstance(value, dict):
                self._deep_merge(base[key], value)
            else:
                base[key] = value

    def get(self, key: str, default: Any = None) -> Any:
        """
        Get a value by dot-separated path.

        Returns default when any part of the path is missing.
        """
        value = self.data
        for k in key.split('.'):
            if isinstance(value, dict) and k in value:
                value = value[k]
            else:
                return default
        return value

    def set(self, key: str, value: Any):
        """Set a value by dot-separated path, creating sections as needed"""
        keys = key.split('.')
        data = self.data

        for k in keys[:-1]:
            if not isinstance(data.get(k), dict):
                data[k] = {}
            data = data[k]

        data[keys[-1]] = value

    def set_if(self, key: str, value: Any):
        """Set only when value is given (None leaves the current value)"""
        if value is not None:
            self.set(key, value)

    def channel_map(self, key: str) -> dict:
        """Mapping keyed by 1-based channel number (YAML may give str keys)"""
        return {int(k): v for k, v in (self.get(key) or {}).items()}

    def save(self, path: Path):
        """Write the configuration as YAML"""
        with open(path, 'w') as f:
            yaml.dump(self.data, f, default_flow_style=False)

    def __repr__(self):
        return f"Config({self.data})"
