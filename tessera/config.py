"""
TESSERA Configuration

Collection identity, admin principal and logging settings, read from YAML and
the environment.

Precedence, highest first:
    1. Environment variables (TESSERA_*)
    2. Values set at runtime or loaded from a YAML file
    3. Built-in defaults

Files searched by `ConfigManager.load_defaults()`, lowest precedence first:
~/.tessera/config.yaml, ./config/tessera.yaml, ./tessera.yaml.

Example tessera.yaml:

    collection:
      display_name: MyNFTCollection
      symbol: MNFT
      capacity: 5
      base_identifier_prefix: https://example.com/metadata/
      admin: admin
    observability:
      log_level: info
      log_format: json

Copyright (c) 2026 Momentum. All rights reserved.
"""

from __future__ import annotations

import os
import threading
from dataclasses import dataclass, field, fields, is_dataclass
from pathlib import Path
from typing import Any, Callable, Dict, Generic, Iterator, List, Optional, Tuple, TypeVar, Union

import yaml

from tessera.hardening import ValidationError
from tessera.identity import CollectionIdentity

T = TypeVar("T")

_TRUTHY = frozenset({"1", "true", "yes", "on"})


class ConfigError(ValidationError):
    """A configuration file, key or value could not be accepted."""

    code = "CONFIG_ERROR"

    def __init__(self, message: str, path: str = "config", value: Any = None):
        super().__init__(path, message, value)


@dataclass
class ConfigValue(Generic[T]):
    """
    One setting: a typed default, an optional environment binding and an
    optional validator. The environment always wins over a set value.
    """
    default: T
    env_var: Optional[str] = None
    description: str = ""
    validator: Optional[Callable[[T], bool]] = None
    _value: Optional[T] = field(default=None, repr=False)
    _callbacks: List[Callable[[Optional[T], T], None]] = field(default_factory=list, repr=False)

    def get(self) -> T:
        raw = os.environ.get(self.env_var) if self.env_var else None
        if raw is not None:
            return self._from_env(raw)
        return self.default if self._value is None else self._value

    def set(self, value: T) -> None:
        if not self.accepts(value):
            raise ConfigError(f"Invalid value for config: {value!r}", value=value)
        previous, self._value = self._value, value
        for callback in self._callbacks:
            callback(previous, value)

    def reset(self) -> None:
        self._value = None

    def accepts(self, value: Any) -> bool:
        """Same type as the default (bool and int kept apart) and validator passes."""
        expected = type(self.default)
        if isinstance(value, bool) is not (expected is bool):
            return False
        if not isinstance(value, expected):
            return False
        return self.validator is None or bool(self.validator(value))

    def _from_env(self, raw: str) -> T:
        expected = type(self.default)
        if expected is bool:
            return raw.strip().lower() in _TRUTHY  # type: ignore[return-value]
        if expected is int:
            try:
                return int(raw)  # type: ignore[return-value]
            except ValueError as e:
                raise ConfigError(f"Cannot read {self.env_var}={raw!r}: {e}", value=raw) from e
        return raw  # type: ignore[return-value]

    def on_change(self, callback: Callable[[Optional[T], T], None]) -> None:
        self._callbacks.append(callback)


def _non_empty(x: str) -> bool:
    return bool(x.strip())


@dataclass
class CollectionConfig:
    """Identity of the collection and its admin principal."""
    display_name: ConfigValue[str] = field(default_factory=lambda: ConfigValue(
        default="MyNFTCollection",
        env_var="TESSERA_COLLECTION_NAME",
        description="Display name of the collection",
        validator=_non_empty,
    ))
    symbol: ConfigValue[str] = field(default_factory=lambda: ConfigValue(
        default="MNFT",
        env_var="TESSERA_COLLECTION_SYMBOL",
        description="Short symbol of the collection",
        validator=_non_empty,
    ))
    capacity: ConfigValue[int] = field(default_factory=lambda: ConfigValue(
        default=5,
        env_var="TESSERA_COLLECTION_CAPACITY",
        description="Highest valid asset id; ids run from 1 to capacity",
        validator=lambda x: x > 0,
    ))
    base_identifier_prefix: ConfigValue[str] = field(default_factory=lambda: ConfigValue(
        default="https://example.com/metadata/",
        env_var="TESSERA_BASE_PREFIX",
        description="Prefix prepended to the decimal asset id",
    ))
    admin: ConfigValue[str] = field(default_factory=lambda: ConfigValue(
        default="admin",
        env_var="TESSERA_ADMIN",
        description="Administrative principal (mint, pause)",
        validator=_non_empty,
    ))


_LOG_LEVELS = ("debug", "info", "warning", "error", "critical")


@dataclass
class ObservabilityConfig:
    """Logging and audit trail."""
    log_level: ConfigValue[str] = field(default_factory=lambda: ConfigValue(
        default="info",
        env_var="TESSERA_LOG_LEVEL",
        description="Minimum level written by the tessera loggers",
        validator=lambda x: x in _LOG_LEVELS,
    ))
    log_format: ConfigValue[str] = field(default_factory=lambda: ConfigValue(
        default="json",
        env_var="TESSERA_LOG_FORMAT",
        description="json (one object per line) or text",
        validator=lambda x: x in ("json", "text"),
    ))
    audit_enabled: ConfigValue[bool] = field(default_factory=lambda: ConfigValue(
        default=True,
        env_var="TESSERA_AUDIT",
        description="Record a hash-chained audit trail of mutating calls",
    ))


def iter_values(section: Any, prefix: str = "") -> Iterator[Tuple[str, ConfigValue]]:
    """Yield (dotted path, ConfigValue) for every leaf under `section`."""
    for f in fields(section):
        child = getattr(section, f.name)
        path = f"{prefix}.{f.name}" if prefix else f.name
        if isinstance(child, ConfigValue):
            yield path, child
        elif is_dataclass(child):
            yield from iter_values(child, path)


@dataclass
class TesseraConfig:
    """Root configuration."""
    collection: CollectionConfig = field(default_factory=CollectionConfig)
    observability: ObservabilityConfig = field(default_factory=ObservabilityConfig)

    def to_dict(self) -> Dict[str, Any]:
        """Effective values as a nested dict."""
        out: Dict[str, Any] = {}
        for path, value in iter_values(self):
            section, _, key = path.rpartition(".")
            out.setdefault(section, {})[key] = value.get()
        return out

    def to_yaml(self) -> str:
        return yaml.safe_dump(self.to_dict(), default_flow_style=False, sort_keys=False)

    def build_identity(self) -> CollectionIdentity:
        c = self.collection
        return CollectionIdentity(
            display_name=c.display_name.get(),
            symbol=c.symbol.get(),
            capacity=c.capacity.get(),
            base_identifier_prefix=c.base_identifier_prefix.get(),
        )


class ConfigManager:
    """
    Loads YAML files into a `TesseraConfig` and addresses values by dotted path.

    Build one per registry or CLI invocation.
    """

    DEFAULT_PATHS = (
        Path("tessera.yaml"),
        Path("config/tessera.yaml"),
        Path.home() / ".tessera" / "config.yaml",
    )

    def __init__(self, config: Optional[TesseraConfig] = None):
        self._config = config or TesseraConfig()
        self._values: Dict[str, ConfigValue] = dict(iter_values(self._config))
        self._loaded: List[Path] = []
        self._lock = threading.RLock()

    @property
    def config(self) -> TesseraConfig:
        return self._config

    @property
    def loaded_paths(self) -> List[Path]:
        return list(self._loaded)

    def load_from_file(self, path: Union[str, Path]) -> None:
        path = Path(path)
        if not path.exists():
            raise ConfigError(f"Configuration file not found: {path}", path=str(path))
        try:
            data = yaml.safe_load(path.read_text(encoding="utf-8"))
        except yaml.YAMLError as e:
            raise ConfigError(f"Malformed YAML in {path}: {e}", path=str(path)) from e

        if data is None:
            return
        if not isinstance(data, dict):
            raise ConfigError(f"Top level of {path} must be a mapping", path=str(path))

        with self._lock:
            for key, value in self._flatten(data):
                self.set(key, value)
            self._loaded.append(path)

    def load_defaults(self) -> List[Path]:
        """Load every default config file that exists, lowest precedence first."""
        found = [p for p in reversed(self.DEFAULT_PATHS) if p.exists()]
        for path in found:
            self.load_from_file(path)
        return found

    @staticmethod
    def _flatten(data: Dict[str, Any], prefix: str = "") -> Iterator[Tuple[str, Any]]:
        for key, value in data.items():
            path = f"{prefix}.{key}" if prefix else str(key)
            if isinstance(value, dict):
                yield from ConfigManager._flatten(value, path)
            else:
                yield path, value

    def _value(self, path: str) -> ConfigValue:
        try:
            return self._values[path]
        except KeyError:
            raise ConfigError(f"Unknown config key: {path}", path=path) from None

    def set(self, path: str, value: Any) -> None:
        """Set one value, e.g. `manager.set("collection.capacity", 100)`."""
        with self._lock:
            self._value(path).set(value)

    def get(self, path: str) -> Any:
        return self._value(path).get()

    def validate(self) -> List[str]:
        """Problems with the effective values, environment included."""
        errors: List[str] = []
        for path, value in self._values.items():
            try:
                current = value.get()
            except ConfigError as e:
                errors.append(f"{path}: {e.message}")
                continue
            if value.validator is not None and not value.validator(current):
                errors.append(f"{path}: validation failed for value {current!r}")
        return errors

    def export_schema(self) -> Dict[str, Any]:
        """Describe every setting: type, default, description, env var."""
        properties: Dict[str, Any] = {}
        for path, value in self._values.items():
            section, _, key = path.rpartition(".")
            entry = {
                "type": type(value.default).__name__,
                "default": value.default,
                "description": value.description,
            }
            if value.env_var:
                entry["env_var"] = value.env_var
            properties.setdefault(section, {})[key] = entry
        return {"properties": properties}

