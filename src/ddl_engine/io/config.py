"""
Project configuration file (YAML).

Example
-------
    dialect: ${DIALECT}
    snapshots: ${SNAPSHOT_DIR}
    strict: false
    stop_on_first_error: true
    renames:
      - public.users->public.accounts

String values of the form `${NAME}` are resolved against `src.settings`;
missing keys fall back to the settings defaults.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml

from src import settings
from src.ddl_engine.errors import ConfigurationError
from src.enums import Dialect

_KNOWN_KEYS = frozenset({"dialect", "snapshots", "strict", "stop_on_first_error", "renames"})


@dataclass(frozen=True)
class ProjectConfig:
    dialect: Dialect = settings.DIALECT
    snapshots: str = settings.SNAPSHOT_DIR
    strict: bool = settings.STRICT_PLAN
    stop_on_first_error: bool = True
    renames: tuple[str, ...] = ()


def load_project_config(path: str | Path) -> ProjectConfig:
    """Load and resolve a project config file."""
    config_path = Path(path)
    if not config_path.is_file():
        raise ConfigurationError(f"Config file not found: {config_path}")

    with config_path.open("r") as f:
        try:
            raw = yaml.safe_load(f) or {}
        except yaml.YAMLError as error:
            raise ConfigurationError(f"Config file {config_path} is not valid YAML: {error}") from error

    if not isinstance(raw, dict):
        raise ConfigurationError(f"Config file {config_path} must contain a mapping.")
    return parse_project_config(raw)


def parse_project_config(raw: dict[str, Any]) -> ProjectConfig:
    unknown = sorted(set(raw) - _KNOWN_KEYS)
    if unknown:
        raise ConfigurationError(f"Unknown config key(s): {', '.join(unknown)}")

    dialect_value = _resolve(raw.get("dialect"), default=settings.DIALECT)
    try:
        dialect = Dialect(dialect_value)
    except ValueError as error:
        raise ConfigurationError(f"Unknown dialect {dialect_value!r}") from error

    renames = raw.get("renames") or []
    if not isinstance(renames, list):
        raise ConfigurationError("'renames' must be a list of 'old->new' strings.")

    return ProjectConfig(
        dialect=dialect,
        snapshots=str(_resolve(raw.get("snapshots"), default=settings.SNAPSHOT_DIR)),
        strict=_as_bool("strict", _resolve(raw.get("strict"), default=settings.STRICT_PLAN)),
        stop_on_first_error=_as_bool(
            "stop_on_first_error", _resolve(raw.get("stop_on_first_error"), default=True)
        ),
        renames=tuple(str(_resolve(item, default="")) for item in renames),
    )


def _resolve(value: Any, default: Any) -> Any:
    """Resolve `${NAME}` placeholders against settings; None falls back to `default`."""
    if value is None:
        return default
    if isinstance(value, str) and value.startswith("${") and value.endswith("}"):
        var_name = value[2:-1]
        if not hasattr(settings, var_name):
            raise ConfigurationError(f"Unknown setting '{var_name}' referenced in config.")
        return getattr(settings, var_name)
    return value


def _as_bool(key: str, value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str) and value.upper() in ("TRUE", "FALSE"):
        return value.upper() == "TRUE"
    raise ConfigurationError(f"'{key}' must be a boolean, got {value!r}")
