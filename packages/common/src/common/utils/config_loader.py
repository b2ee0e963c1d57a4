from __future__ import annotations

import os
import re
from collections.abc import Mapping
from pathlib import Path
from typing import Any, TypeVar

import yaml
from common.utils.config_errors import (
    ConfigFileNotFoundError,
    ConfigParseError,
    ConfigValidationError,
    MissingEnvironmentVariableError,
)
from common.utils.settings_base import BaseSettings
from dotenv import dotenv_values
from pydantic import ValidationError

T = TypeVar("T", bound=BaseSettings)

_VAR_PATTERN = re.compile(r"\$\{([A-Za-z_][A-Za-z0-9_]*)\}")
_ENV_OVERLAYS = {"dev", "prod"}


def deep_merge(base: Any, override: Any) -> Any:
    """Merge mappings recursively; lists and scalars in ``override`` replace."""
    if isinstance(base, dict) and isinstance(override, dict):
        merged = dict(base)
        for key, value in override.items():
            merged[key] = deep_merge(merged[key], value) if key in merged else value
        return merged
    return override


def expand_placeholders(obj: Any, variables: Mapping[str, str], path: str = "root") -> Any:
    """Replace ``${VAR}`` in every string leaf, failing on unknown names."""
    if isinstance(obj, dict):
        return {
            key: expand_placeholders(value, variables, f"{path}.{key}")
            for key, value in obj.items()
        }
    if isinstance(obj, list):
        return [
            expand_placeholders(value, variables, f"{path}[{i}]") for i, value in enumerate(obj)
        ]
    if not isinstance(obj, str):
        return obj

    def substitute(match: re.Match[str]) -> str:
        name = match.group(1)
        if name not in variables:
            raise MissingEnvironmentVariableError(name, path)
        return variables[name]

    return _VAR_PATTERN.sub(substitute, obj)


class ConfigLoader:
    """
    Loads a service's YAML configuration into a pydantic schema.

    Layout (relative to ``service_root``)::

        config/default.yaml
        config/dev.yaml     optional overlay, merged when env == "dev"
        config/prod.yaml    optional overlay, merged when env == "prod"
        config/.env         optional, takes precedence over the service root .env

    The base file may be replaced by the path stored in ``config_env_var``.
    ``${VAR}`` placeholders resolve from the .env file first, then ``os.environ``.
    """

    def __init__(self, service_root: str | Path | None = None, config_dir: str = "config"):
        self.service_root = Path(service_root).resolve() if service_root else Path.cwd().resolve()
        self.config_dir = (self.service_root / config_dir).resolve()

    def load(
        self,
        *,
        schema: type[T],
        env: str | None = None,
        config_env_var: str | None = None,
        use_dotenv: bool = True,
    ) -> T:
        if not self.config_dir.exists():
            raise ConfigFileNotFoundError(f"Config directory not found: {self.config_dir}")

        base_path = self._base_path(config_env_var)
        data = self._read_yaml(base_path)

        if env in _ENV_OVERLAYS:
            overlay_path = self.config_dir / f"{env}.yaml"
            if overlay_path.exists():
                data = deep_merge(data, self._read_yaml(overlay_path))

        data = expand_placeholders(data, self._variables(use_dotenv))

        try:
            return schema.model_validate(data)
        except ValidationError as e:
            raise ConfigValidationError(
                f"Validation failed for config loaded from '{base_path}'. {e}"
            ) from e

    def _base_path(self, config_env_var: str | None) -> Path:
        override = os.getenv(config_env_var) if config_env_var else None
        if override:
            path = Path(override).expanduser().resolve()
            if not path.exists():
                raise ConfigFileNotFoundError(f"{config_env_var} points to missing file: {path}")
            return path

        path = self.config_dir / "default.yaml"
        if not path.exists():
            raise ConfigFileNotFoundError(f"Default config not found: {path}")
        return path

    def _read_yaml(self, path: Path) -> dict[str, Any]:
        try:
            text = path.read_text(encoding="utf-8")
        except OSError as e:
            raise ConfigFileNotFoundError(f"Cannot read config file: {path}. {e}") from e

        try:
            data = yaml.safe_load(text)
        except yaml.YAMLError as e:
            raise ConfigParseError(f"Invalid YAML in {path}: {e}") from e

        if data is None:
            return {}
        if not isinstance(data, dict):
            raise ConfigParseError(f"Top-level YAML must be a mapping/object: {path}")
        return data

    def _variables(self, use_dotenv: bool) -> dict[str, str]:
        variables = dict(os.environ)
        if not use_dotenv:
            return variables

        for candidate in (self.config_dir / ".env", self.service_root / ".env"):
            if candidate.exists():
                raw = dotenv_values(candidate)
                variables.update({k: v for k, v in raw.items() if v is not None})
                break
        return variables
