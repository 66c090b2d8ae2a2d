"""Merge configuration layers into a validated :class:`CainConfig`."""

from __future__ import annotations

from collections.abc import Mapping as MappingABC
from copy import deepcopy
from typing import Any, Mapping

import yaml
from pydantic import ValidationError

from .exceptions import ConfigError
from .models import CainConfig

ENV_PREFIX = "CAIN__"


def resolve_with_precedence(
    *,
    defaults: CainConfig,
    file_overrides: Mapping[str, Any] | None = None,
    env_overrides: Mapping[str, Any] | None = None,
    cli_overrides: Mapping[str, Any] | None = None,
) -> CainConfig:
    """Apply file, environment, then CLI overrides on top of ``defaults``.

    Keys may be nested mappings or dotted paths such as ``"twitter.auth"``.

    Raises:
        ConfigError: If a layer is malformed or the merged values fail validation.
    """
    merged = defaults.model_dump(mode="python")
    for name, layer in (
        ("file", file_overrides),
        ("environment", env_overrides),
        ("cli", cli_overrides),
    ):
        if layer:
            merged = merge_layers(merged, expand_dotted(layer, source_name=name))

    try:
        return CainConfig.model_validate(merged)
    except ValidationError as exc:
        raise ConfigError(f"Invalid configuration values: {exc}") from exc


def parse_env_overrides(env: Mapping[str, str], *, prefix: str = ENV_PREFIX) -> dict[str, Any]:
    """Collect ``CAIN__SECTION__KEY`` variables into a nested mapping.

    Values are parsed as YAML scalars so ``true`` and ``30`` keep their types.
    """
    overrides: dict[str, Any] = {}
    for key, raw_value in env.items():
        if not key.startswith(prefix):
            continue
        path = [segment.lower() for segment in key[len(prefix) :].split("__") if segment]
        if not path:
            continue
        try:
            value = yaml.safe_load(raw_value)
        except yaml.YAMLError:
            value = raw_value
        assign_path(overrides, path, value)
    return overrides


def assign_path(target: dict[str, Any], path: list[str], value: Any) -> None:
    """Set ``value`` at ``path`` inside ``target``, creating mappings on the way.

    Raises:
        ConfigError: If a non-mapping value sits on the path.
    """
    node = target
    for segment in path[:-1]:
        child = node.setdefault(segment, {})
        if not isinstance(child, dict):
            raise ConfigError(
                f"Cannot assign {'.'.join(path)}: '{segment}' is not a mapping."
            )
        node = child
    node[path[-1]] = value


def expand_dotted(layer: Mapping[str, Any], *, source_name: str) -> dict[str, Any]:
    """Return ``layer`` with dotted keys expanded into nested mappings."""
    if not isinstance(layer, MappingABC):
        raise ConfigError(f"{source_name.capitalize()} overrides must be a mapping.")

    expanded: dict[str, Any] = {}
    for key, value in layer.items():
        if not isinstance(key, str):
            raise ConfigError(f"{source_name.capitalize()} override keys must be strings.")
        if isinstance(value, MappingABC):
            value = expand_dotted(value, source_name=source_name)
        path = key.split(".")
        existing = _lookup(expanded, path)
        if isinstance(existing, dict) and isinstance(value, dict):
            value = merge_layers(existing, value)
        assign_path(expanded, path, value)
    return expanded


def merge_layers(base: Mapping[str, Any], overrides: Mapping[str, Any]) -> dict[str, Any]:
    """Return a deep copy of ``base`` with ``overrides`` merged in recursively."""
    merged = deepcopy(dict(base))
    for key, value in overrides.items():
        current = merged.get(key)
        if isinstance(value, MappingABC) and isinstance(current, MappingABC):
            merged[key] = merge_layers(current, value)
        else:
            merged[key] = deepcopy(value)
    return merged


def _lookup(mapping: Mapping[str, Any], path: list[str]) -> Any:
    node: Any = mapping
    for segment in path:
        if not isinstance(node, MappingABC) or segment not in node:
            return None
        node = node[segment]
    return node


__all__ = [
    "ENV_PREFIX",
    "assign_path",
    "expand_dotted",
    "merge_layers",
    "parse_env_overrides",
    "resolve_with_precedence",
]
