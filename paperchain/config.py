"""
PAPERCHAIN Configuration System

Configuration management with YAML files, environment variables, and
validation.

Configuration Sources (in order of precedence):
    1. Environment variables (PAPERCHAIN_*)
    2. Runtime overrides and loaded files (last write wins)
    3. Default values

Default files, loaded by ConfigManager.load_defaults() when present:
    ./paperchain.yaml
    ./config/paperchain.yaml
    ~/.paperchain/config.yaml

Example file:

    registry:
      default_registration_fee: 2500
      title_max_length: 100
    observability:
      log_level: warning
      log_format: text
"""

from __future__ import annotations

import os
import threading
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Dict, Generic, List, Optional, TypeVar, Union

import yaml

from paperchain.models import NULL_PRINCIPAL
from paperchain.observability import RegistryLayer, get_logger

T = TypeVar("T")

logger = get_logger("config", RegistryLayer.CONFIG)


class ConfigError(Exception):
    """Configuration error."""
    pass


class ConfigValidationError(ConfigError):
    """Configuration validation error."""
    pass


@dataclass
class ConfigValue(Generic[T]):
    """
    A single configuration value with metadata.

    Supports default values, environment variable binding,
    validation, and change callbacks.
    """
    default: T
    env_var: Optional[str] = None
    description: str = ""
    validator: Optional[Callable[[T], bool]] = None
    _value: Optional[T] = field(default=None, repr=False)
    _callbacks: List[Callable[[Optional[T], T], None]] = field(default_factory=list, repr=False)

    def get(self) -> T:
        """Get the current value."""
        if self.env_var and self.env_var in os.environ:
            return self._coerce(os.environ[self.env_var])
        return self._value if self._value is not None else self.default

    def require(self) -> T:
        """Get the current value, raising if it fails the validator.

        Environment overrides bypass set(), so consumers that act on a
        value call this instead of get().
        """
        try:
            value = self.get()
        except ValueError as e:
            raise ConfigValidationError(f"Invalid value for {self.env_var or 'config'}: {e}") from e
        if self.validator and not self.validator(value):
            raise ConfigValidationError(f"Invalid value for {self.env_var or 'config'}: {value!r}")
        return value

    def set(self, value: Any) -> None:
        """Set the value with validation. Strings are coerced to the default's type."""
        if isinstance(value, str) and not isinstance(self.default, str):
            try:
                value = self._coerce(value)
            except ValueError as e:
                raise ConfigValidationError(f"Invalid value for config: {value!r}") from e
        if isinstance(value, bool) and not isinstance(self.default, bool):
            raise ConfigValidationError(f"Invalid value for config: {value!r}")
        if self.validator and not self.validator(value):
            raise ConfigValidationError(f"Invalid value for config: {value!r}")

        old_value = self._value
        self._value = value

        for callback in self._callbacks:
            callback(old_value, value)

    def reset(self) -> None:
        self._value = None

    def _coerce(self, value: str) -> T:
        """Coerce string value to target type."""
        target_type = type(self.default)

        if target_type == bool:
            return value.lower() in ("true", "1", "yes", "on")  # type: ignore
        elif target_type == int:
            return int(value)  # type: ignore
        elif target_type == float:
            return float(value)  # type: ignore
        else:
            return value  # type: ignore

    def on_change(self, callback: Callable[[Optional[T], T], None]) -> None:
        """Register a change callback."""
        self._callbacks.append(callback)


@dataclass
class RegistryConfig:
    """Configuration for the paper registry."""
    default_registration_fee: ConfigValue[int] = field(default_factory=lambda: ConfigValue(
        default=1000,
        env_var="PAPERCHAIN_REGISTRATION_FEE",
        description="Registration fee of a fresh registry",
        validator=lambda x: isinstance(x, int) and x >= 0,
    ))
    title_max_length: ConfigValue[int] = field(default_factory=lambda: ConfigValue(
        default=100,
        env_var="PAPERCHAIN_TITLE_MAX",
        description="Maximum title length in characters",
        validator=lambda x: isinstance(x, int) and x > 0,
    ))
    description_max_length: ConfigValue[int] = field(default_factory=lambda: ConfigValue(
        default=500,
        env_var="PAPERCHAIN_DESCRIPTION_MAX",
        description="Maximum description length in characters",
        validator=lambda x: isinstance(x, int) and x > 0,
    ))
    max_hash_bytes: ConfigValue[int] = field(default_factory=lambda: ConfigValue(
        default=32,
        env_var="PAPERCHAIN_MAX_HASH_BYTES",
        description="Maximum paper hash length in bytes",
        validator=lambda x: isinstance(x, int) and 0 < x <= 64,
    ))
    null_principal: ConfigValue[str] = field(default_factory=lambda: ConfigValue(
        default=NULL_PRINCIPAL,
        env_var="PAPERCHAIN_NULL_PRINCIPAL",
        description="Reserved null identity that can never become the authority",
        validator=lambda x: isinstance(x, str) and len(x) > 0,
    ))


@dataclass
class ObservabilityConfig:
    """Configuration for logging."""
    log_level: ConfigValue[str] = field(default_factory=lambda: ConfigValue(
        default="info",
        env_var="PAPERCHAIN_LOG_LEVEL",
        description="Log level (debug, info, warning, error)",
        validator=lambda x: x in ("debug", "info", "warning", "error", "critical"),
    ))
    log_format: ConfigValue[str] = field(default_factory=lambda: ConfigValue(
        default="json",
        env_var="PAPERCHAIN_LOG_FORMAT",
        description="Log format (json, text)",
        validator=lambda x: x in ("json", "text"),
    ))


@dataclass
class PaperchainConfig:
    """Root configuration."""
    registry: RegistryConfig = field(default_factory=RegistryConfig)
    observability: ObservabilityConfig = field(default_factory=ObservabilityConfig)

    def to_dict(self) -> Dict[str, Any]:
        def extract_values(obj: Any) -> Any:
            if isinstance(obj, ConfigValue):
                return obj.get()
            elif hasattr(obj, "__dataclass_fields__"):
                return {k: extract_values(getattr(obj, k)) for k in obj.__dataclass_fields__}
            return obj

        return extract_values(self)

    def to_yaml(self) -> str:
        return yaml.dump(self.to_dict(), default_flow_style=False)


class ConfigManager:
    """
    Configuration manager with file loading and environment binding.

    Thread-safe singleton that manages configuration lifecycle.
    """

    _instance: Optional["ConfigManager"] = None
    _lock = threading.Lock()

    def __new__(cls) -> "ConfigManager":
        with cls._lock:
            if cls._instance is None:
                cls._instance = super().__new__(cls)
                cls._instance._initialized = False
            return cls._instance

    def __init__(self):
        if self._initialized:
            return

        self._config = PaperchainConfig()
        self._config_paths: List[Path] = []
        self._initialized = True

    @property
    def config(self) -> PaperchainConfig:
        return self._config

    @property
    def loaded_paths(self) -> List[Path]:
        return list(self._config_paths)

    def load_from_file(self, path: Union[str, Path]) -> None:
        """Load configuration from a YAML file."""
        path = Path(path)
        if not path.exists():
            raise ConfigError(f"Configuration file not found: {path}")

        with open(path, encoding="utf-8") as f:
            try:
                data = yaml.safe_load(f)
            except yaml.YAMLError as e:
                raise ConfigError(f"Invalid YAML in {path}: {e}") from e

        if data is None:
            return
        if not isinstance(data, dict):
            raise ConfigError(f"Configuration root must be a mapping: {path}")

        self._apply_dict(data)
        self._config_paths.append(path)
        logger.debug("Loaded configuration file", operation="load", path=str(path))

    def load_defaults(self) -> None:
        """Load default configuration files if they exist."""
        default_paths = [
            Path("paperchain.yaml"),
            Path("config/paperchain.yaml"),
            Path.home() / ".paperchain" / "config.yaml",
        ]

        for path in default_paths:
            if path.exists():
                try:
                    self.load_from_file(path)
                except ConfigError as e:
                    logger.warning("Skipping unreadable default config", operation="load", path=str(path), reason=str(e))

    def _apply_dict(self, data: Dict[str, Any]) -> None:
        """Apply dictionary values to configuration."""
        def apply_to_config(config_obj: Any, values: Dict[str, Any], prefix: str) -> None:
            for key, value in values.items():
                path = f"{prefix}{key}"
                if not hasattr(config_obj, key):
                    raise ConfigError(f"Unknown config key: {path}")
                attr = getattr(config_obj, key)
                if isinstance(attr, ConfigValue):
                    attr.set(value)
                elif hasattr(attr, "__dataclass_fields__") and isinstance(value, dict):
                    apply_to_config(attr, value, f"{path}.")
                else:
                    raise ConfigError(f"Invalid config section: {path}")

        apply_to_config(self._config, data, "")

    def _resolve(self, path: str) -> Any:
        obj: Any = self._config
        for part in path.split("."):
            if not hasattr(obj, part):
                raise ConfigError(f"Invalid config path: {path}")
            obj = getattr(obj, part)
        return obj

    def set(self, path: str, value: Any) -> None:
        """
        Set a configuration value by path.

        Example: config.set("registry.default_registration_fee", 2500)
        """
        attr = self._resolve(path)
        if not isinstance(attr, ConfigValue):
            raise ConfigError(f"Invalid config path: {path}")
        attr.set(value)

    def get(self, path: str) -> Any:
        """
        Get a configuration value by path.

        Example: config.get("registry.title_max_length")
        """
        obj = self._resolve(path)
        if isinstance(obj, ConfigValue):
            return obj.get()
        if hasattr(obj, "__dataclass_fields__"):
            return {k: self.get(f"{path}.{k}") for k in obj.__dataclass_fields__}
        return obj

    def reset(self) -> None:
        """Drop all overrides and loaded files."""
        self._config = PaperchainConfig()
        self._config_paths = []

    def validate(self) -> List[str]:
        """
        Validate all configuration values.

        Returns list of validation errors.
        """
        errors: List[str] = []

        def validate_config(obj: Any, path: str = "") -> None:
            if isinstance(obj, ConfigValue):
                try:
                    value = obj.get()
                    if obj.validator and not obj.validator(value):
                        errors.append(f"{path}: validation failed for value {value}")
                except ValueError as e:
                    errors.append(f"{path}: {e}")
            elif hasattr(obj, "__dataclass_fields__"):
                for field_name in obj.__dataclass_fields__:
                    field_path = f"{path}.{field_name}" if path else field_name
                    validate_config(getattr(obj, field_name), field_path)

        validate_config(self._config)
        return errors

    def export_schema(self) -> Dict[str, Any]:
        """Export configuration schema for documentation."""
        schema: Dict[str, Any] = {"properties": {}}

        def extract_schema(obj: Any, properties: Dict[str, Any]) -> None:
            if isinstance(obj, ConfigValue):
                properties["type"] = type(obj.default).__name__
                properties["default"] = str(obj.default)
                properties["description"] = obj.description
                if obj.env_var:
                    properties["env_var"] = obj.env_var
            elif hasattr(obj, "__dataclass_fields__"):
                for field_name in obj.__dataclass_fields__:
                    properties[field_name] = {}
                    extract_schema(getattr(obj, field_name), properties[field_name])

        extract_schema(self._config, schema["properties"])
        return schema


def get_config() -> PaperchainConfig:
    """Get the current configuration."""
    return ConfigManager().config


def get_config_manager() -> ConfigManager:
    """Get the configuration manager instance."""
    return ConfigManager()
