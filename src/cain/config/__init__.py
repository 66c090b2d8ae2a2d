"""Configuration management for Cain."""

from __future__ import annotations

import os
import textwrap
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Mapping

import yaml

from .exceptions import ConfigError
from .models import (
    CainConfig,
    CaptureSettings,
    DownloadSettings,
    LoggingSettings,
    StorageSettings,
    TwitterSettings,
)
from .resolver import assign_path, parse_env_overrides, resolve_with_precedence

DEFAULT_CONFIG_PATH = Path("~/.config/cain/config.yaml")
_CONFIG_HEADER = textwrap.dedent(
    """\
    # Cain configuration file
    # Edit by hand or with `cain config set SECTION.KEY --value VALUE`.
    """
)


class ConfigManager:
    """Load and persist the YAML configuration file."""

    def __init__(
        self,
        config_path: Path | None = None,
        *,
        env: Mapping[str, str] | None = None,
    ) -> None:
        self._config_path = (config_path or DEFAULT_CONFIG_PATH).expanduser()
        self._env = env if env is not None else os.environ

    @property
    def config_path(self) -> Path:
        """Return the resolved configuration path."""
        return self._config_path

    def load(
        self,
        *,
        cli_overrides: Mapping[str, Any] | None = None,
        include_env: bool = True,
    ) -> CainConfig:
        """Return the effective configuration.

        A missing file is not an error; defaults apply.

        Raises:
            ConfigError: If the file is malformed or values fail validation.
        """
        return resolve_with_precedence(
            defaults=CainConfig(),
            file_overrides=self.load_file_overrides(),
            env_overrides=parse_env_overrides(self._env) if include_env else None,
            cli_overrides=cli_overrides,
        )

    def load_file_overrides(self) -> dict[str, Any]:
        """Return the raw mapping stored on disk (empty when there is no file)."""
        if not self._config_path.exists():
            return {}
        try:
            raw = yaml.safe_load(self._config_path.read_text(encoding="utf-8")) or {}
        except yaml.YAMLError as exc:
            raise ConfigError(f"Failed to parse configuration file: {exc}") from exc
        except OSError as exc:
            raise ConfigError(f"Failed to read configuration file: {exc}") from exc
        if not isinstance(raw, dict):
            raise ConfigError("Configuration file must contain a mapping at the top level.")
        return raw

    def save(self, config: CainConfig | Mapping[str, Any]) -> None:
        """Persist ``config`` to disk with a header and timestamp."""
        if isinstance(config, CainConfig):
            data = config.model_dump(mode="python")
        else:
            data = dict(config)
        stamp = datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")
        body = yaml.safe_dump(data, sort_keys=False)
        try:
            self._config_path.parent.mkdir(parents=True, exist_ok=True)
            self._config_path.write_text(
                f"{_CONFIG_HEADER}# Last updated: {stamp}\n{body}", encoding="utf-8"
            )
        except OSError as exc:
            raise ConfigError(f"Failed to write configuration file: {exc}") from exc

    def set_value(self, key: str, value: Any) -> CainConfig:
        """Store ``value`` at the dotted ``key`` and return the resulting configuration.

        Raises:
            ConfigError: If the key is empty or the value does not validate.
        """
        segments = [segment.strip() for segment in key.split(".") if segment.strip()]
        if not segments:
            raise ConfigError("KEY must be a dotted path such as 'storage.root_dir'.")
        data = self.load_file_overrides()
        assign_path(data, segments, value)
        config = resolve_with_precedence(defaults=CainConfig(), file_overrides=data)
        self.save(data)
        return config


def resolve_root_dir(config: CainConfig) -> Path:
    """Return the archive root, defaulting to the current directory."""
    if config.storage.root_dir:
        return Path(config.storage.root_dir).expanduser()
    return Path.cwd()


__all__ = [
    "ConfigManager",
    "ConfigError",
    "DEFAULT_CONFIG_PATH",
    "CainConfig",
    "CaptureSettings",
    "DownloadSettings",
    "LoggingSettings",
    "StorageSettings",
    "TwitterSettings",
    "resolve_root_dir",
    "resolve_with_precedence",
]
