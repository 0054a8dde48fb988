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
"""Type-safe configuration with YAML/TOML files, env vars, and dataclass binding."""

from __future__ import annotations

import dataclasses
import os
import re
import tomllib
import types
from collections.abc import Callable, Mapping
from pathlib import Path
from typing import Any, TypeVar, Union, cast, get_args, get_origin, get_type_hints

import yaml  # type: ignore[import-untyped]
from pydantic import TypeAdapter, ValidationError

from flyserve.kernel.exceptions import ConfigurationException

T = TypeVar("T")

_PLACEHOLDER_RE = re.compile(r"\$\{([^}]+)\}")
_INDEXED_KEY_RE = re.compile(r"^([^\[\]]+)((?:\[\d+\])*)$")
_CAMEL_BOUNDARY_RE = re.compile(r"(?<=[a-z0-9])(?=[A-Z])")

_CONFIG_PROPERTIES_ATTR = "__flyserve_config_prefix__"


def config_properties(prefix: str) -> Callable[[type[T]], type[T]]:
    """Mark a dataclass as bindable to a configuration prefix.

    Usage:
        @config_properties(prefix="server")
        @dataclass
        class ServerProperties:
            port: int | None = None
    """

    def decorator(cls: type[T]) -> type[T]:
        setattr(cls, _CONFIG_PROPERTIES_ATTR, prefix)
        return cls

    return decorator


def relaxed_name(key: str) -> str:
    """Normalize a property name: ``remote-ip-header``, ``remoteIpHeader`` -> ``remote_ip_header``."""
    return _CAMEL_BOUNDARY_RE.sub("_", key).replace("-", "_").lower()


class Config:
    """Hierarchical configuration with dot-notation access and env var overrides.

    Priority (highest wins):
    1. Environment variables (SECTION_KEY format, e.g. ``SERVER_PORT``)
    2. Configuration dict / YAML / TOML values
    3. Dataclass defaults
    """

    def __init__(
        self,
        data: dict[str, Any] | None = None,
        environ: Mapping[str, str] | None = None,
    ) -> None:
        self._data: dict[str, Any] = data or {}
        self._environ: Mapping[str, str] = environ if environ is not None else os.environ
        self._loaded_sources: list[str] = []

    @property
    def loaded_sources(self) -> list[str]:
        """List of config file paths that were loaded, in merge order."""
        return list(self._loaded_sources)

    def to_dict(self) -> dict[str, Any]:
        """Return a shallow copy of the raw configuration data."""
        return dict(self._data)

    @classmethod
    def from_properties(
        cls,
        properties: Mapping[str, Any],
        environ: Mapping[str, str] | None = None,
    ) -> Config:
        """Build a config from flat dotted keys.

        Indexed keys (``patterns[0]``, ``patterns[1]``) become lists ordered
        by index, so they bind exactly like the comma-joined form.
        """
        data: dict[str, Any] = {}
        for key, value in properties.items():
            parts = key.split(".")
            current = data
            for position, part in enumerate(parts):
                match = _INDEXED_KEY_RE.match(part)
                if match is None:
                    raise ConfigurationException(f"Malformed property key '{key}'", code="CONFIG_KEY")
                name, index_part = match.group(1), match.group(2)
                indexes = [int(i) for i in re.findall(r"\d+", index_part)]
                steps: list[Any] = [name, *indexes]
                last = position == len(parts) - 1
                for step_no, step in enumerate(steps):
                    if last and step_no == len(steps) - 1:
                        current[step] = value
                    else:
                        current = current.setdefault(step, {})
        return cls(cls._indexed_to_lists(data), environ=environ)

    @staticmethod
    def _indexed_to_lists(node: Any) -> Any:
        if not isinstance(node, dict):
            return node
        converted = {key: Config._indexed_to_lists(value) for key, value in node.items()}
        if converted and all(isinstance(key, int) for key in converted):
            return [converted[key] for key in sorted(converted)]
        return converted

    @classmethod
    def from_sources(
        cls,
        base_dir: str | Path,
        active_profiles: list[str] | None = None,
    ) -> Config:
        """Load and merge config from multiple sources.

        Merge order (later wins):
        1. config/application.yaml or config/application.toml
        2. application.yaml or application.toml (project root)
        3. Profile overlays: config/application-{profile}.yaml, application-{profile}.yaml
        4. Environment variables (handled at read time in get())
        """
        base_dir = Path(base_dir)
        data: dict[str, Any] = {}
        sources: list[str] = []

        for search_dir in (base_dir / "config", base_dir):
            for ext in (".yaml", ".toml"):
                candidate = search_dir / f"application{ext}"
                if candidate.is_file():
                    data = cls._deep_merge(data, cls._load_config_data(candidate))
                    sources.append(str(candidate))

        for profile in active_profiles or []:
            for search_dir in (base_dir / "config", base_dir):
                for ext in (".yaml", ".toml"):
                    candidate = search_dir / f"application-{profile}{ext}"
                    if candidate.is_file():
                        data = cls._deep_merge(data, cls._load_config_data(candidate))
                        sources.append(f"{candidate} (profile: {profile})")

        instance = cls(data)
        instance._loaded_sources = sources
        return instance

    @classmethod
    def from_file(cls, path: str | Path, active_profiles: list[str] | None = None) -> Config:
        """Load configuration from a single YAML or TOML file plus its profile overlays."""
        path = Path(path)
        data: dict[str, Any] = {}
        sources: list[str] = []

        if path.exists():
            data = cls._load_config_data(path)
            sources.append(str(path))

            for profile in active_profiles or []:
                profile_path = path.parent / f"{path.stem}-{profile}{path.suffix}"
                if profile_path.exists():
                    data = cls._deep_merge(data, cls._load_config_data(profile_path))
                    sources.append(f"{profile_path} (profile: {profile})")

        instance = cls(data)
        instance._loaded_sources = sources
        return instance

    @staticmethod
    def _load_config_data(path: Path) -> dict[str, Any]:
        """Load config data from a YAML or TOML file."""
        if path.suffix == ".toml":
            with open(path, "rb") as f:
                return tomllib.load(f) or {}
        with open(path) as f:
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

    def get(self, key: str, default: Any = None) -> Any:
        """Get a value by dot-notation key, checking env vars first.

        String values containing ``${...}`` placeholders are resolved:
        - ``${ENV_VAR}``: resolved from environment variables
        - ``${config.key}``: resolved from other config values
        - ``${key:default}``: uses default if key/env not found
        """
        env_key = key.upper().replace(".", "_").replace("-", "_")
        env_val = self._environ.get(env_key)
        if env_val is not None:
            return env_val

        parts = key.split(".")
        current: Any = self._data
        for part in parts:
            if isinstance(current, dict):
                current = current.get(part)
                if current is None:
                    return default
            else:
                return default

        if isinstance(current, str) and "${" in current:
            return self._resolve_placeholders(current)

        return current

    def _resolve_placeholders(self, value: str, _depth: int = 0) -> str:
        """Resolve ``${...}`` placeholders in a string value.

        Guards against circular references with a max recursion depth.
        """
        if _depth > 10:
            raise ConfigurationException(
                f"Max recursion depth exceeded resolving placeholders in '{value}'. Check for circular references.",
                code="CONFIG_PLACEHOLDER",
            )

        def _replace(match: re.Match[str]) -> str:
            inner = match.group(1)

            if ":" in inner:
                ref_key, default_val = inner.split(":", 1)
            else:
                ref_key, default_val = inner, None

            env_val = self._environ.get(ref_key)
            if env_val is not None:
                return env_val

            parts = ref_key.split(".")
            current: Any = self._data
            for part in parts:
                if isinstance(current, dict):
                    current = current.get(part)
                    if current is None:
                        break
                else:
                    current = None
                    break

            if current is not None:
                resolved = str(current)
                if "${" in resolved:
                    resolved = self._resolve_placeholders(resolved, _depth + 1)
                return resolved

            if default_val is not None:
                return cast(str, default_val)

            raise ConfigurationException(
                f"Cannot resolve placeholder '${{{inner}}}': not found in environment or config",
                code="CONFIG_PLACEHOLDER",
            )

        return _PLACEHOLDER_RE.sub(_replace, value)

    def get_section(self, prefix: str) -> dict[str, Any]:
        """Get all values under a prefix as a nested dict."""
        parts = prefix.split(".")
        current: Any = self._data
        for part in parts:
            if isinstance(current, dict):
                current = current.get(part, {})
            else:
                return {}
        return current if isinstance(current, dict) else {}

    def bind(self, config_cls: type[T]) -> T:
        """Bind configuration to a @config_properties dataclass.

        Property names are relaxed and list settings may be comma-joined or
        indexed; the normalized section is then validated by pydantic, which
        coerces nested dataclasses, optional fields, enums, paths and
        collections. Malformed values raise :class:`ConfigurationException`
        naming the offending property.
        """
        prefix = getattr(config_cls, _CONFIG_PROPERTIES_ATTR, None)
        if prefix is None:
            raise ValueError(f"{config_cls.__name__} is not decorated with @config_properties")

        section = _normalize_section(config_cls, self.get_section(prefix))
        try:
            return TypeAdapter(config_cls).validate_python(section)
        except ValidationError as exc:
            raise _binding_error(prefix, exc) from exc


def _normalize_section(cls: type, section: Mapping[str, Any]) -> dict[str, Any]:
    """Relax property names and split list settings ahead of validation."""
    hints = get_type_hints(cls)
    names = {field.name for field in dataclasses.fields(cls)}
    normalized: dict[str, Any] = {}
    for key, value in section.items():
        name = relaxed_name(str(key))
        if name in names:
            normalized[name] = _normalize_value(hints[name], value)
    return normalized


def _normalize_value(expected: Any, value: Any) -> Any:
    if value is None:
        return None

    origin = get_origin(expected)
    if origin is Union or origin is types.UnionType:
        members = [arg for arg in get_args(expected) if arg is not type(None)]
        return _normalize_value(members[0], value) if len(members) == 1 else value

    if origin in (list, set, frozenset, tuple):
        return _as_sequence(value)

    if dataclasses.is_dataclass(expected) and isinstance(expected, type) and isinstance(value, Mapping):
        return _normalize_section(expected, value)

    return value


def _as_sequence(value: Any) -> Any:
    if isinstance(value, str):
        return [item.strip() for item in value.split(",") if item.strip()]
    if isinstance(value, Mapping) and all(str(key).isdigit() for key in value):
        return [value[key] for key in sorted(value, key=int)]
    return value


def _binding_error(prefix: str, exc: ValidationError) -> ConfigurationException:
    error = exc.errors()[0]
    path = ".".join([prefix, *(str(part) for part in error["loc"])])
    value = error.get("input")
    return ConfigurationException(
        f"Property '{path}' is invalid: {error['msg']} (got {value!r})",
        code="CONFIG_ENUM" if error["type"] == "enum" else "CONFIG_TYPE",
        context={"property": path, "value": value},
    )
