"""
Loading of the bridge's YAML settings.

String values may reference the environment as ``${RP_API_KEY}`` or, with a
fallback, ``${RP_ENDPOINT:-http://localhost:8080}``; credentials normally
arrive that way. Command-line overrides are laid over the file before
validation.
"""

from __future__ import annotations

import os
import re
from collections.abc import Mapping
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from rp_bridge.contracts import BridgeConfig

_ENV_REFERENCE = re.compile(r"\$\{(?P<name>[A-Za-z_][A-Za-z0-9_]*)(?::-(?P<default>[^}]*))?\}")


class ConfigError(ValueError):
    pass


def load_yaml(path: str | Path) -> dict[str, Any]:
    try:
        with Path(path).open("r", encoding="utf-8") as handle:
            payload = yaml.safe_load(handle) or {}
    except OSError as exc:
        raise ConfigError(f"Cannot read config file {path}: {exc}") from exc
    if not isinstance(payload, dict):
        raise ConfigError(f"YAML root must be a mapping: {path}")
    return payload


def load_bridge_config(
    path: str | Path,
    *,
    overrides: Mapping[str, Any] | None = None,
) -> BridgeConfig:
    payload = load_yaml(path)
    if overrides:
        payload = apply_overrides(payload, overrides)
    return load_bridge_config_dict(payload)


def load_bridge_config_dict(payload: Mapping[str, Any]) -> BridgeConfig:
    resolved = resolve_env_vars(payload)
    try:
        return BridgeConfig.model_validate(resolved)
    except ValidationError as exc:
        raise ConfigError(_describe_validation_error(exc)) from exc


def resolve_env_vars(payload: Any, *, where: str = "$") -> Any:
    """Expand environment references in every string of `payload`."""
    if isinstance(payload, Mapping):
        return {str(key): resolve_env_vars(value, where=f"{where}.{key}") for key, value in payload.items()}
    if isinstance(payload, list):
        return [resolve_env_vars(value, where=f"{where}[{index}]") for index, value in enumerate(payload)]
    if not isinstance(payload, str):
        return payload

    def expand(match: re.Match[str]) -> str:
        value = os.environ.get(match["name"], match["default"])
        if value is None:
            raise ConfigError(f"Missing environment variable '{match['name']}' at {where}")
        return value

    return _ENV_REFERENCE.sub(expand, payload)


def apply_overrides(payload: Mapping[str, Any], overrides: Mapping[str, Any]) -> dict[str, Any]:
    """
    Return a copy of `payload` with `overrides` laid over it.

    Sections merge key by key. A `None` override means "not given" and keeps
    the file's value, so unset command-line options can be passed through.
    """
    merged = dict(payload)
    for key, value in overrides.items():
        if value is None:
            continue
        section = merged.get(key)
        if isinstance(section, Mapping) and isinstance(value, Mapping):
            merged[key] = apply_overrides(section, value)
        elif isinstance(value, Mapping):
            merged[key] = apply_overrides({}, value)
        else:
            merged[key] = value
    return merged


def _describe_validation_error(exc: ValidationError) -> str:
    # Input values are left out: they may hold the api key.
    return "; ".join(
        "rp." + ".".join(str(part) for part in error["loc"]) + f": {error['msg']}"
        for error in exc.errors(include_url=False, include_input=False)
    )
