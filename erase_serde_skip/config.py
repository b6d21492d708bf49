from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from .expand import MARKER_PATHS


CONFIG_VERSION = "erase-config-v0.1"


class ConfigError(RuntimeError):
    pass


@dataclass(frozen=True)
class Config:
    path: Path | None
    markers: tuple[str, ...]
    suffixes: tuple[str, ...]
    exclude_dirs: frozenset[str]


DEFAULT_CONFIG = Config(
    path=None,
    markers=MARKER_PATHS,
    suffixes=(".rs",),
    exclude_dirs=frozenset({"target", ".git"}),
)


def _string_list(raw: dict[str, Any], key: str, default: tuple[str, ...], path: Path) -> tuple[str, ...]:
    if key not in raw:
        return default
    value = raw[key]
    if not isinstance(value, list) or not value:
        raise ConfigError(f"CONFIG_VALUE_INVALID: {path}: {key} must be a non-empty list")
    items: list[str] = []
    for item in value:
        if not isinstance(item, str) or not item.strip():
            raise ConfigError(f"CONFIG_VALUE_INVALID: {path}: {key} items must be non-empty strings")
        items.append("".join(item.split()))
    return tuple(items)


def load_config(path: Path) -> Config:
    if not path.exists():
        raise ConfigError(f"CONFIG_NOT_FOUND: {path}")
    try:
        raw = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise ConfigError(f"CONFIG_INVALID_JSON: {path}: {exc}") from exc
    if not isinstance(raw, dict):
        raise ConfigError(f"CONFIG_INVALID_JSON: {path}: top level must be an object")

    version = raw.get("version")
    if version != CONFIG_VERSION:
        raise ConfigError(f"CONFIG_VERSION_INVALID: {path}: {version}")

    unknown = sorted(set(raw) - {"version", "markers", "suffixes", "exclude_dirs"})
    if unknown:
        raise ConfigError(f"CONFIG_KEY_UNKNOWN: {path}: {','.join(unknown)}")

    markers = _string_list(raw, "markers", DEFAULT_CONFIG.markers, path)
    suffixes = _string_list(raw, "suffixes", DEFAULT_CONFIG.suffixes, path)
    exclude_dirs = _string_list(raw, "exclude_dirs", tuple(sorted(DEFAULT_CONFIG.exclude_dirs)), path)

    return Config(
        path=path,
        markers=markers,
        suffixes=suffixes,
        exclude_dirs=frozenset(exclude_dirs),
    )
