"""
Configuration Loader (``logistics_config.loader``).

Responsibility
--------------
Reads the bundled ``defaults.yaml``, overlays an optional operator YAML
file, applies environment overrides and parses the result into the frozen
``logistics_config.schema`` dataclasses.  Callers use
``logistics_config.get_active_config()`` rather than this module.

Invariants enforced
-------------------
* Unknown sections or keys raise ``ValueError``; a typo never silently
  falls back to a default.
* Values are type-checked per field (bool, int, float, str, Decimal).
* ``compute_checksum`` gives a deterministic SHA-256 of the merged mapping.

Failure modes
-------------
* Missing overlay file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Unknown key or bad value  -> ``ValueError``.
"""

from __future__ import annotations

import copy
import hashlib
import json
import logging
import os
from dataclasses import fields
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any, Mapping

import yaml

from logistics_config.schema import (
    AccountingConfig,
    AppConfig,
    ConcurrencyConfig,
    DatabaseConfig,
    InventoryConfig,
    LoggingConfig,
    OrdersConfig,
    SecurityConfig,
)

DEFAULTS_PATH = Path(__file__).parent / "defaults.yaml"

ENV_CONFIG_PATH = "LOGISTICS_CONFIG"
ENV_DATABASE_URL = "LOGISTICS_DATABASE_URL"
ENV_LOG_LEVEL = "LOGISTICS_LOG_LEVEL"

SECTIONS: dict[str, type] = {
    "database": DatabaseConfig,
    "inventory": InventoryConfig,
    "orders": OrdersConfig,
    "accounting": AccountingConfig,
    "concurrency": ConcurrencyConfig,
    "security": SecurityConfig,
    "logging": LoggingConfig,
}

# Fields that must be at least 1 rather than merely non-negative
_POSITIVE = {
    ("accounting", "weekly_buckets"),
    ("accounting", "monthly_buckets"),
    ("accounting", "vendor_monthly_buckets"),
    ("security", "password_iterations"),
}


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
        ValueError: if the top level is not a mapping.
    """
    with open(path) as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ValueError(f"{path}: top level must be a mapping")
    return data


def merge_overlay(base: dict[str, Any], overlay: Mapping[str, Any], source: str) -> dict[str, Any]:
    """Return ``base`` with ``overlay`` sections merged key by key."""
    merged = copy.deepcopy(base)
    for section, values in overlay.items():
        if section not in SECTIONS:
            raise ValueError(f"{source}: unknown configuration section {section!r}")
        if values is None:
            continue
        if not isinstance(values, Mapping):
            raise ValueError(f"{source}: section {section!r} must be a mapping")
        known = {f.name for f in fields(SECTIONS[section])}
        for key, value in values.items():
            if key not in known:
                raise ValueError(f"{source}: unknown key {section}.{key}")
            merged.setdefault(section, {})[key] = value
    return merged


def apply_env_overrides(data: dict[str, Any], environ: Mapping[str, str]) -> dict[str, Any]:
    merged = copy.deepcopy(data)
    if environ.get(ENV_DATABASE_URL):
        merged.setdefault("database", {})["url"] = environ[ENV_DATABASE_URL]
    if environ.get(ENV_LOG_LEVEL):
        merged.setdefault("logging", {})["level"] = environ[ENV_LOG_LEVEL]
    return merged


def _coerce(section: str, key: str, value: Any, type_name: str) -> Any:
    where = f"{section}.{key}"
    if type_name == "bool":
        if not isinstance(value, bool):
            raise ValueError(f"{where} must be true or false, got {value!r}")
        return value
    if type_name == "int":
        if isinstance(value, bool) or not isinstance(value, int):
            raise ValueError(f"{where} must be an integer, got {value!r}")
        floor = 1 if (section, key) in _POSITIVE else 0
        if value < floor:
            raise ValueError(f"{where} must be >= {floor}, got {value}")
        return value
    if type_name == "float":
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise ValueError(f"{where} must be a number, got {value!r}")
        if value < 0:
            raise ValueError(f"{where} must not be negative")
        return float(value)
    if type_name == "Decimal":
        if isinstance(value, bool):
            raise ValueError(f"{where} must be an amount, got {value!r}")
        try:
            amount = Decimal(str(value))
        except InvalidOperation as exc:
            raise ValueError(f"{where} must be an amount, got {value!r}") from exc
        if amount < 0:
            raise ValueError(f"{where} must not be negative")
        return amount
    if not isinstance(value, str) or not value.strip():
        raise ValueError(f"{where} must be a non-empty string")
    return value.strip()


def parse_section(name: str, data: Mapping[str, Any] | None):
    cls = SECTIONS[name]
    kwargs = {}
    for f in fields(cls):
        if data and f.name in data:
            kwargs[f.name] = _coerce(name, f.name, data[f.name], f.type)
    section = cls(**kwargs)
    if name == "logging":
        level = section.level.upper()
        if not isinstance(logging.getLevelName(level), int):
            raise ValueError(f"logging.level: unknown level {section.level!r}")
        section = LoggingConfig(level=level)
    return section


def compute_checksum(data: dict[str, Any]) -> str:
    """SHA-256 of the canonical JSON serialization of ``data``."""
    canonical = json.dumps(data, sort_keys=True, default=str)
    return hashlib.sha256(canonical.encode()).hexdigest()


def load_config(
    path: Path | str | None = None,
    environ: Mapping[str, str] | None = None,
) -> AppConfig:
    """
    Build an AppConfig from defaults, an optional overlay and the environment.

    ``path`` wins over ``$LOGISTICS_CONFIG``.  ``environ`` defaults to
    ``os.environ``.
    """
    environ = os.environ if environ is None else environ
    data = merge_overlay({}, load_yaml_file(DEFAULTS_PATH), str(DEFAULTS_PATH))

    overlay_path = path or environ.get(ENV_CONFIG_PATH)
    if overlay_path:
        data = merge_overlay(data, load_yaml_file(Path(overlay_path)), str(overlay_path))

    data = apply_env_overrides(data, environ)

    return AppConfig(
        **{name: parse_section(name, data.get(name)) for name in SECTIONS},
        checksum=compute_checksum(data),
    )
