from __future__ import annotations

import os
import re
from collections.abc import Mapping
from copy import deepcopy
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from textutil.contracts import HostConfig

_ENV_VAR_PATTERN = re.compile(r"\$\{([A-Za-z_][A-Za-z0-9_]*)(?::-([^}]*))?\}")

ENV_CONFIG_PATH = "TEXTUTIL_CONFIG"


class ConfigError(ValueError):
    pass


def load_yaml(path: str | Path) -> dict[str, Any]:
    try:
        with Path(path).open("r", encoding="utf-8") as handle:
            payload = yaml.safe_load(handle) or {}
    except OSError as exc:
        raise ConfigError(f"Cannot read config file {path}: {exc}") from exc
    except yaml.YAMLError as exc:
        raise ConfigError(f"Invalid YAML in {path}: {exc}") from exc
    if not isinstance(payload, dict):
        raise ConfigError(f"YAML root must be a mapping: {path}")
    return payload


def load_host_config(
    path: str | Path | None = None,
    *,
    overrides: Mapping[str, Any] | None = None,
) -> HostConfig:
    """
    Load host config from YAML, falling back to $TEXTUTIL_CONFIG, then defaults.

    Relative ``plugins.directory`` values resolve against the config file's folder.
    ``overrides`` are dotted paths (``runtime.timeout_s``) applied before validation.
    """
    if path is None:
        path = os.environ.get(ENV_CONFIG_PATH) or None

    payload: dict[str, Any] = {}
    if path is not None:
        payload = resolve_env_vars(load_yaml(path))
    if overrides:
        payload = apply_dotpath_overrides(payload, overrides)

    config = load_host_config_dict(payload)
    if path is not None:
        config = _anchor_plugins_dir(config, Path(path).expanduser().resolve().parent)
    return config


def load_host_config_dict(payload: Mapping[str, Any]) -> HostConfig:
    try:
        return HostConfig.model_validate(dict(payload))
    except ValidationError as exc:
        raise ConfigError(_describe_validation_error(exc)) from exc


def resolve_env_vars(payload: Any, *, path: str = "config") -> Any:
    """
    Substitute ``${VAR}`` and ``${VAR:-default}`` in every string of ``payload``.

    An unset variable without a default is a ConfigError naming the config path.
    """
    if isinstance(payload, Mapping):
        return {
            str(key): resolve_env_vars(value, path=f"{path}.{key}")
            for key, value in payload.items()
        }
    if isinstance(payload, list):
        return [
            resolve_env_vars(item, path=f"{path}[{index}]") for index, item in enumerate(payload)
        ]
    if not isinstance(payload, str):
        return payload

    def lookup(match: re.Match[str]) -> str:
        name, default = match.group(1), match.group(2)
        value = os.environ.get(name, default)
        if value is None:
            raise ConfigError(f"Missing environment variable '{name}' at {path}")
        return value

    return _ENV_VAR_PATTERN.sub(lookup, payload)


def apply_dotpath_overrides(
    base: Mapping[str, Any],
    overrides: Mapping[str, Any],
) -> dict[str, Any]:
    """Return a copy of ``base`` with each ``section.key`` override written into it."""
    merged = deepcopy(dict(base))
    for dotted, value in overrides.items():
        *parents, leaf = _split_dotpath(dotted)
        if parents and parents[0] not in HostConfig.model_fields:
            raise ConfigError(f"Override '{dotted}' names unknown config section '{parents[0]}'")
        section = merged
        for part in parents:
            child = section.get(part)
            if child is None:
                child = section[part] = {}
            elif not isinstance(child, dict):
                raise ConfigError(f"Override '{dotted}' collides with non-mapping key '{part}'")
            section = child
        section[leaf] = value
    return merged


def parse_override(raw: str) -> tuple[str, Any]:
    """Parse ``key.path=value``; the value is read as YAML (``1.5``, ``null``, ``[a]``)."""
    key, sep, value = raw.partition("=")
    if not sep or not key.strip():
        raise ConfigError(f"Override must look like key.path=value, got '{raw}'")
    try:
        parsed = yaml.safe_load(value) if value.strip() else ""
    except yaml.YAMLError as exc:
        raise ConfigError(f"Invalid override value for '{key}': {exc}") from exc
    return key.strip(), parsed


def _split_dotpath(dotted: str) -> list[str]:
    parts = dotted.split(".")
    if not all(parts):
        raise ConfigError(f"Invalid override path '{dotted}'")
    return parts


def _anchor_plugins_dir(config: HostConfig, base_dir: Path) -> HostConfig:
    directory = Path(config.plugins.directory).expanduser()
    if directory.is_absolute():
        return config
    plugins = config.plugins.model_copy(update={"directory": str(base_dir / directory)})
    return config.model_copy(update={"plugins": plugins})


def _describe_validation_error(exc: ValidationError) -> str:
    problems = []
    for error in exc.errors(include_url=False):
        where = ".".join(["config", *(str(part) for part in error["loc"])])
        if error["type"] == "extra_forbidden":
            problems.append(f"{where}: unknown key")
            continue
        given = error.get("input")
        if isinstance(given, (str, int, float, bool)) or given is None:
            problems.append(f"{where}: {error['msg']} (got {given!r})")
        else:
            problems.append(f"{where}: {error['msg']}")
    return "; ".join(problems)
