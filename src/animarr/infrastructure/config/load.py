"""Layered configuration loading.

Each source produces a *layer*: a dict that may mix sectioned blocks
(``streaming: {provider_timeout_seconds: 10}``) with flat keys
(``provider_timeout_seconds: 10``). Layers are folded onto the defaults
in order (defaults, YAML, environment, CLI) and the result is validated
once as :class:`AppConfig`.
"""

from __future__ import annotations

from copy import deepcopy
from pathlib import Path
from typing import Any, Mapping

import yaml
from dotenv import load_dotenv

from .defaults import DEFAULT_CONFIG
from .schema import AppConfig, EnvOverrides

_TOP_LEVEL_KEYS = ("app_name", "environment")

# Flat key (ENV/CLI/YAML shorthand) -> (section, key inside section)
_FLAT_MAP: dict[str, tuple[str, str]] = {
    "plugin_dir": ("plugins", "plugin_dir"),
    "http_timeout_seconds": ("http", "timeout_seconds"),
    "http_follow_redirects": ("http", "follow_redirects"),
    "http_user_agent": ("http", "user_agent"),
    "log_level": ("logging", "level"),
    "log_format": ("logging", "format"),
    "cache_dir": ("cache", "dir"),
    "cache_ttl_seconds": ("cache", "ttl_seconds"),
    "catalog_base_url": ("catalog", "base_url"),
    "public_base_url": ("streaming", "public_base_url"),
    "provider_timeout_seconds": ("streaming", "provider_timeout_seconds"),
    "delivery_timeout_seconds": ("delivery", "timeout_seconds"),
    "archive_enabled": ("archive", "enabled"),
    "github_owner": ("archive", "github_owner"),
    "github_repo": ("archive", "github_repo"),
    "github_token": ("archive", "github_token"),
    "webhook_secret": ("archive", "webhook_secret"),
}

_SECTIONS = frozenset(section for section, _ in _FLAT_MAP.values())


def _merge_into(target: dict[str, Any], layer: Mapping[str, Any]) -> None:
    """Overlay ``layer`` onto ``target``; nested mappings merge, scalars replace."""
    for key, value in layer.items():
        current = target.get(key)
        if isinstance(current, dict) and isinstance(value, Mapping):
            _merge_into(current, value)
        else:
            target[key] = value


def _sectioned(layer: Mapping[str, Any]) -> dict[str, Any]:
    """Rewrite a mixed flat/sectioned layer into sections only."""
    out: dict[str, Any] = {
        key: layer[key] for key in _TOP_LEVEL_KEYS if key in layer
    }
    for section in _SECTIONS:
        block = layer.get(section)
        if isinstance(block, Mapping):
            out[section] = dict(block)
    for flat_key, (section, key) in _FLAT_MAP.items():
        if flat_key in layer:
            out.setdefault(section, {})[key] = layer[flat_key]
    return out


def _yaml_layer(config_path: Path) -> dict[str, Any]:
    if not config_path.exists():
        raise FileNotFoundError(config_path)
    parsed = yaml.safe_load(config_path.read_text(encoding="utf-8"))
    if parsed is None:
        return {}
    if not isinstance(parsed, dict):
        raise ValueError(
            f"{config_path}: top level must be a mapping, got {type(parsed).__name__}"
        )
    return parsed


def load_config(
    *,
    config_path: Path | None = None,
    dotenv_path: Path | None = None,
    cli_overrides: dict[str, Any] | None = None,
) -> AppConfig:
    """Build the effective configuration: defaults < YAML < env < CLI.

    A ``.env`` file only seeds variables that are not already set, so it
    sits inside the environment layer. Nothing is created on disk here;
    directories are made by the adapters that own them.
    """
    if dotenv_path is not None:
        if not dotenv_path.exists():
            raise FileNotFoundError(dotenv_path)
        load_dotenv(dotenv_path, override=False)

    layers: list[Mapping[str, Any]] = []
    if config_path is not None:
        layers.append(_yaml_layer(config_path))
    layers.append(EnvOverrides().to_update_dict())
    layers.append(cli_overrides or {})

    merged = _sectioned(deepcopy(DEFAULT_CONFIG))
    for layer in layers:
        _merge_into(merged, _sectioned(layer))

    return AppConfig.model_validate(merged)
