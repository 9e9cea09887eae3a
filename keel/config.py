"""
Config system - registry settings with layered loading and validation.

Merge precedence (later overrides earlier):
config files (YAML / JSON) < environment variables (KEEL_*) < overrides
"""

import json
import os
from dataclasses import MISSING, dataclass, fields, asdict
from pathlib import Path
from typing import Any, Dict, Optional, Union, get_args, get_origin

from .faults import ConfigInvalidFault

_POLICIES = ("continue", "abort")
_ROLES = ("privileged", "restricted")


@dataclass(frozen=True)
class RegistryConfig:
    """
    Registry settings.

    Attributes:
        max_dependencies: Maximum length of a declared dependency list
        failure_policy: Default bulk failure policy ("continue" or "abort")
        role: Role of the default execution context ("privileged",
            "restricted", or None for an unbound context)
        emit_diagnostics: Log registry events through the console listener
    """
    max_dependencies: int = 100
    failure_policy: str = "continue"
    role: Optional[str] = None
    emit_diagnostics: bool = True

    def __post_init__(self):
        if self.max_dependencies < 1:
            raise ConfigInvalidFault("max_dependencies", f"must be >= 1, got {self.max_dependencies}")
        if self.failure_policy not in _POLICIES:
            raise ConfigInvalidFault(
                "failure_policy", f"must be one of {', '.join(_POLICIES)}, got {self.failure_policy!r}"
            )
        if self.role is not None and self.role not in _ROLES:
            raise ConfigInvalidFault(
                "role", f"must be one of {', '.join(_ROLES)} or unset, got {self.role!r}"
            )

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "RegistryConfig":
        """
        Build and validate a config from a plain dict.

        Raises:
            ConfigInvalidFault: On unknown keys, wrong types or bad values
        """
        known = {f.name: f for f in fields(cls)}
        kwargs = {}

        for key, value in data.items():
            if key not in known:
                raise ConfigInvalidFault(key, "unknown setting")
            if not _check_type(value, known[key].type):
                raise ConfigInvalidFault(
                    key, f"expected {_type_name(known[key].type)}, got {type(value).__name__}"
                )
            kwargs[key] = value

        for name, f in known.items():
            if name not in kwargs and f.default is MISSING:
                raise ConfigInvalidFault(name, "required setting not provided")

        return cls(**kwargs)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def _check_type(value: Any, expected_type: Any) -> bool:
    """Basic type checking for config values."""
    origin = get_origin(expected_type)
    if origin is Union:
        if value is None:
            return type(None) in get_args(expected_type)
        return any(_check_type(value, arg) for arg in get_args(expected_type) if arg is not type(None))

    # bool is an int subclass; keep them apart
    if expected_type is int:
        return isinstance(value, int) and not isinstance(value, bool)

    try:
        return isinstance(value, expected_type)
    except TypeError:
        return True


def _type_name(expected_type: Any) -> str:
    return getattr(expected_type, "__name__", str(expected_type))


class ConfigLoader:
    """
    Loads and merges registry settings from multiple sources.
    """

    def __init__(self, env_prefix: str = "KEEL_"):
        self.env_prefix = env_prefix
        self.config_data: Dict[str, Any] = {}

    @classmethod
    def load(
        cls,
        paths: Optional[list] = None,
        env_prefix: str = "KEEL_",
        overrides: Optional[Dict[str, Any]] = None,
    ) -> "ConfigLoader":
        """
        Load settings from files, environment and overrides.

        Args:
            paths: Config file paths (.yaml, .yml or .json); missing files are skipped
            env_prefix: Prefix for environment variables
            overrides: Manual overrides (highest precedence)

        Returns:
            Configured ConfigLoader instance
        """
        loader = cls(env_prefix=env_prefix)

        for path in paths or []:
            loader._load_file(Path(path))

        loader._load_from_env()

        if overrides:
            loader._merge_dict(loader.config_data, overrides)

        return loader

    def _load_file(self, path: Path):
        if not path.exists():
            return
        if path.suffix == ".json":
            self._load_json_file(path)
        elif path.suffix in (".yaml", ".yml"):
            self._load_yaml_file(path)
        else:
            raise ConfigInvalidFault(str(path), f"unsupported config file type '{path.suffix}'")

    def _load_json_file(self, path: Path):
        """Load config from JSON file."""
        with open(path) as f:
            data = json.load(f)
            if data:
                self._merge_dict(self.config_data, data)

    def _load_yaml_file(self, path: Path):
        """Load config from YAML file."""
        import yaml
        with open(path) as f:
            data = yaml.safe_load(f)
            if data:
                self._merge_dict(self.config_data, data)

    def _load_from_env(self):
        """
        Load settings from environment variables.

        KEEL_MAX_DEPENDENCIES=50 sets `max_dependencies`. Prefixed variables
        that name no setting (KEEL_HOME, ...) are left alone.
        """
        settings = {f.name for f in fields(RegistryConfig)}

        for key, value in os.environ.items():
            if not key.startswith(self.env_prefix):
                continue
            name = key[len(self.env_prefix):].lower()
            if name in settings:
                self.config_data[name] = self._parse_value(value)

    def _parse_value(self, value: str) -> Any:
        """Parse string value to appropriate type."""
        lowered = value.lower()
        if lowered in ("true", "yes", "on"):
            return True
        if lowered in ("false", "no", "off"):
            return False
        if lowered in ("none", "null", ""):
            return None

        try:
            if "." in value:
                return float(value)
            return int(value)
        except ValueError:
            pass

        if value.startswith(("{", "[")):
            try:
                return json.loads(value)
            except json.JSONDecodeError:
                pass

        return value

    def _merge_dict(self, target: dict, source: dict):
        """Deep merge source into target."""
        for key, value in source.items():
            if key in target and isinstance(target[key], dict) and isinstance(value, dict):
                self._merge_dict(target[key], value)
            else:
                target[key] = value

    def get(self, path: str, default: Any = None) -> Any:
        """Get config value by dot-separated path."""
        current = self.config_data

        for part in path.split("."):
            if isinstance(current, dict) and part in current:
                current = current[part]
            else:
                return default

        return current

    def to_registry_config(self) -> RegistryConfig:
        """Validate the merged settings into a RegistryConfig."""
        return RegistryConfig.from_dict(self.config_data)

    def to_dict(self) -> dict:
        """Export all config as dictionary."""
        return self.config_data.copy()
