"""Typed configuration loader for lphash."""

from __future__ import annotations

import os
import tomllib
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from .contracts.error import InvalidArgumentError
from .core.adapters import ADAPTERS
from .core.hashing import HASH_FUNCTIONS
from .core.resize import DEFAULT_GROW_AT, DEFAULT_GROWTH, DEFAULT_SHRINK_AT, ResizePolicy

_TRUTHY = {"1", "true", "yes", "on"}
_FALSY = {"0", "false", "no", "off"}


@dataclass
class TablePolicy:
    initial_capacity: int = 16
    grow_at: float = DEFAULT_GROW_AT
    shrink_at: float = DEFAULT_SHRINK_AT
    growth_factor: float = DEFAULT_GROWTH
    hash_function: str = "fnv1a"
    key_type: str = "text"
    value_type: str = "text"

    def resize_policy(self) -> ResizePolicy:
        return ResizePolicy(self.initial_capacity, self.grow_at, self.shrink_at, self.growth_factor)

    def validate(self) -> None:
        try:
            self.resize_policy().validate()
        except InvalidArgumentError as exc:
            raise InvalidArgumentError(f"table.{exc}") from exc
        if self.hash_function not in HASH_FUNCTIONS:
            raise InvalidArgumentError(
                f"table.hash_function must be one of {', '.join(sorted(HASH_FUNCTIONS))}"
            )
        for name in ("key_type", "value_type"):
            if getattr(self, name) not in ADAPTERS:
                raise InvalidArgumentError(f"table.{name} must be one of {', '.join(sorted(ADAPTERS))}")


@dataclass
class WatchdogPolicy:
    enabled: bool = True
    load_factor_warn: float | None = 0.6
    collision_ratio_warn: float | None = 0.5
    max_probe_warn: float | None = 8.0

    def validate(self) -> None:
        if self.load_factor_warn is not None and not 0.0 <= self.load_factor_warn <= 1.0:
            raise InvalidArgumentError("watchdog.load_factor_warn must be within [0, 1]")
        if self.collision_ratio_warn is not None and not 0.0 <= self.collision_ratio_warn <= 1.0:
            raise InvalidArgumentError("watchdog.collision_ratio_warn must be within [0, 1]")
        if self.max_probe_warn is not None and self.max_probe_warn <= 0.0:
            raise InvalidArgumentError("watchdog.max_probe_warn must be > 0 when set")


def _parse_bool(raw: Any, label: str) -> bool:
    if isinstance(raw, str):
        normalized = raw.strip().lower()
        if normalized in _TRUTHY:
            return True
        if normalized in _FALSY:
            return False
        raise InvalidArgumentError(f"{label} must be boolean")
    return bool(raw)


@dataclass
class AppConfig:
    table: TablePolicy = field(default_factory=TablePolicy)
    watchdog: WatchdogPolicy = field(default_factory=WatchdogPolicy)

    @classmethod
    def load(cls, path: Path | None) -> AppConfig:
        if path is None:
            cfg = cls()
        else:
            try:
                data = tomllib.loads(path.read_text(encoding="utf-8"))
            except FileNotFoundError as exc:
                raise InvalidArgumentError(f"Config file not found: {path}") from exc
            except tomllib.TOMLDecodeError as exc:
                raise InvalidArgumentError(f"Invalid TOML: {exc}") from exc
            cfg = cls.from_dict(data)
        cfg.apply_env_overrides(os.environ)
        cfg.validate()
        return cfg

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> AppConfig:
        table_data = data.get("table", {})
        if not isinstance(table_data, dict):
            raise InvalidArgumentError("[table] section must be a table")
        try:
            table = TablePolicy(**table_data)
        except TypeError as exc:
            raise InvalidArgumentError(f"Unknown key in [table]: {exc}") from exc

        watchdog_data = data.get("watchdog", {})
        if not isinstance(watchdog_data, dict):
            raise InvalidArgumentError("[watchdog] section must be a table")
        watchdog_kwargs: dict[str, Any] = {}
        if "enabled" in watchdog_data:
            watchdog_kwargs["enabled"] = _parse_bool(watchdog_data["enabled"], "watchdog.enabled")

        def coerce_optional_float(key: str) -> None:
            if key not in watchdog_data:
                return
            value = watchdog_data[key]
            if isinstance(value, str) and value.strip().lower() in {"none", "null", "disabled", "off"}:
                watchdog_kwargs[key] = None
                return
            if value is None:
                watchdog_kwargs[key] = None
                return
            try:
                watchdog_kwargs[key] = float(value)
            except (TypeError, ValueError) as exc:
                raise InvalidArgumentError(f"watchdog.{key} must be a number or 'none'") from exc

        coerce_optional_float("load_factor_warn")
        coerce_optional_float("collision_ratio_warn")
        coerce_optional_float("max_probe_warn")

        return cls(table=table, watchdog=WatchdogPolicy(**watchdog_kwargs))

    def apply_env_overrides(self, env: Mapping[str, str]) -> None:
        table_mapping: dict[str, tuple[str, Callable[[str], Any]]] = {
            "LPHASH_INITIAL_CAPACITY": ("initial_capacity", int),
            "LPHASH_GROW_AT": ("grow_at", float),
            "LPHASH_SHRINK_AT": ("shrink_at", float),
            "LPHASH_GROWTH_FACTOR": ("growth_factor", float),
            "LPHASH_HASH_FUNCTION": ("hash_function", str),
            "LPHASH_KEY_TYPE": ("key_type", str),
            "LPHASH_VALUE_TYPE": ("value_type", str),
        }
        for key, (attr, caster) in table_mapping.items():
            raw_value = env.get(key)
            if raw_value is None:
                continue
            try:
                value = caster(raw_value)
            except ValueError as exc:
                raise InvalidArgumentError(f"Invalid env override {key}={raw_value!r}") from exc
            setattr(self.table, attr, value)

        raw_enabled = env.get("WATCHDOG_ENABLED")
        if raw_enabled is not None:
            self.watchdog.enabled = _parse_bool(raw_enabled, f"env override WATCHDOG_ENABLED={raw_enabled!r}")

        float_overrides: dict[str, str] = {
            "WATCHDOG_LOAD_FACTOR_WARN": "load_factor_warn",
            "WATCHDOG_COLLISION_RATIO_WARN": "collision_ratio_warn",
            "WATCHDOG_MAX_PROBE_WARN": "max_probe_warn",
        }
        for key, attr in float_overrides.items():
            raw_value = env.get(key)
            if raw_value is None:
                continue
            try:
                value = float(raw_value)
            except ValueError as exc:
                raise InvalidArgumentError(f"Invalid env override {key}={raw_value!r}") from exc
            setattr(self.watchdog, attr, value)

    def validate(self) -> None:
        self.table.validate()
        self.watchdog.validate()
        warn = self.watchdog.load_factor_warn
        # a table grows before its load reaches grow_at
        if warn is not None and warn >= self.table.grow_at:
            raise InvalidArgumentError(
                f"watchdog.load_factor_warn ({warn}) must be below table.grow_at ({self.table.grow_at})"
            )


DEFAULT_CONFIG = AppConfig()


def load_app_config(path: str | None) -> AppConfig:
    config_path = Path(path) if path else None
    return AppConfig.load(config_path)
