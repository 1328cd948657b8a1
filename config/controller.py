"""Configuration loading for YAML-based server settings."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Mapping

import yaml

from core.logging import logger as LOGGER

DEFAULT_SEARCH_PATHS: tuple[Path, ...] = (
    Path("config.yaml"),
    Path("config.yml"),
    Path("config.json"),
    Path("/etc/libyalink/config.yaml"),
)


@dataclass(frozen=True)
class ConfigSnapshot:
    """Read-only view over one loaded server configuration.

    Keys are looked up with dotted paths (``tls.cert``) and are
    case-insensitive. A snapshot that failed to load carries the error text
    in ``load_error`` and answers every lookup as if empty.
    """

    data: Mapping[str, Any] = field(default_factory=dict)
    source_path: Path | None = None
    load_error: str | None = None

    @property
    def loaded_file_path(self) -> str:
        """Return the file the snapshot came from, or an empty string."""

        return str(self.source_path) if self.source_path is not None else ""

    @property
    def is_loaded(self) -> bool:
        return self.source_path is not None and self.load_error is None

    def _lookup(self, path: str) -> Any:
        node: Any = self.data
        for part in path.lower().split("."):
            if not isinstance(node, Mapping) or part not in node:
                return None
            node = node[part]
        return node

    def has_key(self, path: str) -> bool:
        return self._lookup(path) is not None

    def get_string(self, path: str) -> str:
        value = self._lookup(path)
        if value is None or isinstance(value, (Mapping, list)):
            return ""
        if isinstance(value, bool):
            return "true" if value else "false"
        return str(value)

    def get_string_map(self, path: str) -> dict[str, str]:
        value = self._lookup(path)
        if not isinstance(value, Mapping):
            return {}
        return {str(key): "" if item is None else str(item) for key, item in value.items()}


def override_path_for(config_file: Path) -> Path:
    """Return the optional override file that sits beside ``config_file``."""

    return config_file.with_name(f"{config_file.stem}.override.yaml")


def load_config(
    config_file: Path | None = None,
    search_paths: tuple[Path, ...] = DEFAULT_SEARCH_PATHS,
) -> ConfigSnapshot:
    """Load configuration from an explicit file or the first search hit.

    Never raises; load failures are captured in ``ConfigSnapshot.load_error``.
    """

    if config_file is None:
        config_file = next((path for path in search_paths if path.is_file()), None)
        if config_file is None:
            searched = ", ".join(str(path) for path in search_paths)
            return ConfigSnapshot(load_error=f"config file not found in [{searched}]")

    try:
        config = _read_mapping(config_file)
        override_file = override_path_for(config_file)
        if override_file.exists():
            override_config = _read_mapping(override_file)
            if override_config:
                LOGGER.debug("Merging config override from %s", override_file)
                config = _deep_merge(config, override_config)
    except (OSError, yaml.YAMLError, ValueError) as exc:
        return ConfigSnapshot(load_error=str(exc))

    LOGGER.debug("Loaded config from %s", config_file)
    return ConfigSnapshot(data=_normalize_keys(config), source_path=config_file)


def _read_mapping(path: Path) -> dict[str, Any]:
    with path.open("r", encoding="utf-8") as file:
        loaded = yaml.safe_load(file)
    if loaded is None:
        return {}
    if not isinstance(loaded, dict):
        raise ValueError(f"{path}: top-level YAML value must be a mapping")
    return loaded


def _deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Deep merge dictionaries, overriding base values with override values."""

    merged = dict(base)
    for key, value in override.items():
        if (
            key in merged
            and isinstance(merged[key], dict)
            and isinstance(value, dict)
        ):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def _normalize_keys(config: Any) -> Any:
    if isinstance(config, dict):
        return {str(key).lower(): _normalize_keys(value) for key, value in config.items()}
    if isinstance(config, list):
        return [_normalize_keys(item) for item in config]
    return config
