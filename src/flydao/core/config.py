# Copyright 2026 Firefly Software Solutions Inc.
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.
"""Layered configuration: YAML/TOML files, env vars, and typed property binding."""

from __future__ import annotations

import dataclasses
import importlib.resources
import os
import re
import tomllib
from collections.abc import Callable
from pathlib import Path
from typing import Any, TypeVar, cast, get_type_hints

import yaml  # type: ignore[import-untyped]
from pydantic import BaseModel, ValidationError

from flydao.kernel.exceptions import ConfigurationException

T = TypeVar("T")

_PLACEHOLDER_RE = re.compile(r"\$\{([^}]+)\}")

_CONFIG_PROPERTIES_ATTR = "__flydao_config_prefix__"

_ENV_PREFIX = "FLYDAO_"

DEFAULTS_FILE = "flydao-defaults.yaml"


def config_properties(prefix: str) -> Callable[[type[T]], type[T]]:
    """Mark a dataclass or pydantic model as bindable to a configuration prefix.

    Usage:
        @config_properties(prefix="flydao.data")
        @dataclass
        class DataProperties:
            url: str = "sqlite://"
    """

    def decorator(cls: type[T]) -> type[T]:
        setattr(cls, _CONFIG_PROPERTIES_ATTR, prefix)
        return cls

    return decorator


class Config:
    """Hierarchical configuration with dot-notation access and env var overrides.

    Priority (highest wins):
    1. Environment variables (``FLYDAO_SECTION_KEY`` format)
    2. Profile overlays, then project files, then framework defaults
    3. Property class defaults
    """

    def __init__(self, data: dict[str, Any] | None = None) -> None:
        self._data: dict[str, Any] = data or {}
        self._loaded_sources: list[str] = []

    @property
    def loaded_sources(self) -> list[str]:
        """Config file paths that were loaded, in merge order."""
        return list(self._loaded_sources)

    def to_dict(self) -> dict[str, Any]:
        return dict(self._data)

    @classmethod
    def defaults(cls) -> Config:
        """A config holding only the packaged framework defaults."""
        instance = cls(cls._load_framework_defaults())
        instance._loaded_sources = [f"{DEFAULTS_FILE} (framework defaults)"]
        return instance

    @classmethod
    def from_sources(
        cls,
        base_dir: str | Path,
        active_profiles: list[str] | None = None,
        load_defaults: bool = True,
    ) -> Config:
        """Load and merge config from a project directory.

        Merge order (later wins):
        1. Framework defaults (``flydao-defaults.yaml`` from the package)
        2. ``config/flydao.yaml`` or ``config/flydao.toml``
        3. ``flydao.yaml`` or ``flydao.toml`` in *base_dir*
        4. Profile overlays ``flydao-{profile}.yaml`` in both locations
        """
        base_dir = Path(base_dir)
        data: dict[str, Any] = {}
        sources: list[str] = []

        if load_defaults:
            data = cls._load_framework_defaults()
            sources.append(f"{DEFAULTS_FILE} (framework defaults)")

        search_dirs = [base_dir / "config", base_dir]
        for search_dir in search_dirs:
            for candidate in cls._candidates(search_dir, "flydao"):
                data = cls._deep_merge(data, cls._load_config_data(candidate))
                sources.append(str(candidate))

        for profile in active_profiles or []:
            for search_dir in search_dirs:
                for candidate in cls._candidates(search_dir, f"flydao-{profile}"):
                    data = cls._deep_merge(data, cls._load_config_data(candidate))
                    sources.append(f"{candidate} (profile: {profile})")

        instance = cls(data)
        instance._loaded_sources = sources
        return instance

    @classmethod
    def from_file(cls, path: str | Path, load_defaults: bool = True) -> Config:
        """Load a single YAML or TOML file on top of the framework defaults."""
        path = Path(path)
        data: dict[str, Any] = cls._load_framework_defaults() if load_defaults else {}
        sources = [f"{DEFAULTS_FILE} (framework defaults)"] if load_defaults else []
        if path.is_file():
            data = cls._deep_merge(data, cls._load_config_data(path))
            sources.append(str(path))
        instance = cls(data)
        instance._loaded_sources = sources
        return instance

    @staticmethod
    def _candidates(directory: Path, stem: str) -> list[Path]:
        return [p for p in (directory / f"{stem}.yaml", directory / f"{stem}.toml") if p.is_file()]

    @staticmethod
    def _load_config_data(path: Path) -> dict[str, Any]:
        if path.suffix == ".toml":
            with open(path, "rb") as f:
                return tomllib.load(f) or {}
        with open(path) as f:
            return yaml.safe_load(f) or {}

    @staticmethod
    def _load_framework_defaults() -> dict[str, Any]:
        defaults_file = importlib.resources.files("flydao.resources").joinpath(DEFAULTS_FILE)
        with importlib.resources.as_file(defaults_file) as p, open(p) as f:
            return yaml.safe_load(f) or {}

    @staticmethod
    def _deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
        """Recursively merge override into base, with override values winning."""
        merged = dict(base)
        for key, value in override.items():
            if key in merged and isinstance(merged[key], dict) and isinstance(value, dict):
                merged[key] = Config._deep_merge(merged[key], value)
            else:
                merged[key] = value
        return merged

    def _walk(self, key: str) -> Any:
        current: Any = self._data
        for part in key.split("."):
            if not isinstance(current, dict):
                return None
            current = current.get(part)
            if current is None:
                return None
        return current

    def get(self, key: str, default: Any = None) -> Any:
        """Get a value by dot-notation key, checking env vars first.

        ``flydao.data.url`` is overridden by ``FLYDAO_DATA_URL``. String values
        may contain ``${ENV_VAR}``, ``${config.key}`` or ``${key:default}``.
        """
        env_base = key.removeprefix("flydao.")
        env_key = _ENV_PREFIX + env_base.upper().replace(".", "_").replace("-", "_")
        env_val = os.environ.get(env_key)
        if env_val is not None:
            return env_val

        current = self._walk(key)
        if current is None:
            return default
        if isinstance(current, str) and "${" in current:
            return self._resolve_placeholders(current)
        return current

    def _resolve_placeholders(self, value: str, _depth: int = 0) -> str:
        if _depth > 10:
            raise ConfigurationException(
                f"Max recursion depth exceeded resolving placeholders in '{value}'. Check for circular references."
            )

        def _replace(match: re.Match[str]) -> str:
            inner = match.group(1)
            ref_key, _, default_val = inner.partition(":")

            env_val = os.environ.get(ref_key)
            if env_val is not None:
                return env_val

            current = self._walk(ref_key)
            if current is not None:
                resolved = str(current)
                if "${" in resolved:
                    resolved = self._resolve_placeholders(resolved, _depth + 1)
                return resolved

            if ":" in inner:
                return cast(str, default_val)

            raise ConfigurationException(
                f"Cannot resolve placeholder '${{{inner}}}': not found in environment or config"
            )

        return _PLACEHOLDER_RE.sub(_replace, value)

    def get_section(self, prefix: str) -> dict[str, Any]:
        """Get the mapping stored under *prefix*, or an empty dict."""
        current = self._walk(prefix)
        return current if isinstance(current, dict) else {}

    @staticmethod
    def _env_section(prefix: str) -> dict[str, str]:
        """Scalar overrides for *prefix* from ``FLYDAO_*`` environment variables."""
        env_prefix = _ENV_PREFIX + prefix.removeprefix("flydao.").upper().replace(".", "_") + "_"
        return {
            name[len(env_prefix) :].lower(): value
            for name, value in os.environ.items()
            if name.startswith(env_prefix) and len(name) > len(env_prefix)
        }

    def bind(self, config_cls: type[T]) -> T:
        """Bind configuration to a ``@config_properties`` dataclass or pydantic model.

        Keys may be written with hyphens (``batch-size``) or underscores, and
        ``FLYDAO_DATA_BATCH_SIZE`` style environment variables override them.
        """
        prefix = getattr(config_cls, _CONFIG_PROPERTIES_ATTR, None)
        if prefix is None:
            raise ConfigurationException(f"{config_cls.__name__} is not decorated with @config_properties")

        section = {
            k.replace("-", "_"): self._resolve_placeholders(v) if isinstance(v, str) and "${" in v else v
            for k, v in self.get_section(prefix).items()
        }
        section.update(self._env_section(prefix))

        if isinstance(config_cls, type) and issubclass(config_cls, BaseModel):
            try:
                return config_cls.model_validate(section)
            except ValidationError as exc:
                raise ConfigurationException(
                    f"Configuration validation failed for '{config_cls.__name__}' (prefix='{prefix}'):\n{exc}",
                    context={"prefix": prefix},
                ) from exc

        return bind_dataclass(config_cls, section)


def bind_dataclass(config_cls: type[T], section: dict[str, Any]) -> T:
    """Build *config_cls* from *section*, coercing scalar strings to field types."""
    hints = get_type_hints(config_cls)
    kwargs: dict[str, Any] = {}
    for field in dataclasses.fields(config_cls):  # type: ignore[arg-type]
        if field.name not in section:
            continue
        value = section[field.name]
        expected_type = hints.get(field.name)
        if isinstance(value, str):
            if expected_type is int:
                value = int(value)
            elif expected_type is float:
                value = float(value)
            elif expected_type is bool:
                value = value.lower() in ("true", "1", "yes")
        kwargs[field.name] = value
    return config_cls(**kwargs)
