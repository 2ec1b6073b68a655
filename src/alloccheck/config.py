from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, time
from pathlib import Path
from typing import TypeAlias
import tomllib

from alloccheck.exceptions import ConfigError
from alloccheck.runtime.env_policy import parse_duration_to_ns

DEFAULT_CONFIG_NAME = "alloccheck.toml"
DEFAULT_PENDING = "12h"
DEFAULT_OUTPUT = "alloc-check.json"

TomlScalar: TypeAlias = str | int | float | bool | None | date | datetime | time
TomlValue: TypeAlias = TomlScalar | list["TomlValue"] | dict[str, "TomlValue"]
TomlTable: TypeAlias = dict[str, TomlValue]


@dataclass(frozen=True)
class CheckConfig:
    pending_threshold_ns: int
    output_path: Path
    allocs_path: Path | None = None
    namespaces_path: Path | None = None
    nodes_path: Path | None = None

    @property
    def uses_files(self) -> bool:
        return self.allocs_path is not None or self.nodes_path is not None


def _load_toml(path: Path, *, required: bool) -> TomlTable:
    try:
        raw = path.read_text(encoding="utf-8")
    except FileNotFoundError:
        if required:
            raise ConfigError(f"config file not found: {path}") from None
        return {}
    except OSError as exc:
        raise ConfigError(f"unable to read config file {path}: {exc}") from exc
    try:
        data = tomllib.loads(raw)
    except tomllib.TOMLDecodeError as exc:
        raise ConfigError(f"invalid config file {path}: {exc}") from exc
    return data if isinstance(data, dict) else {}


def load_config(root: Path | None = None, config_path: Path | None = None) -> TomlTable:
    if config_path is not None:
        return _load_toml(config_path, required=True)
    base = root if root is not None else Path.cwd()
    return _load_toml(base / DEFAULT_CONFIG_NAME, required=False)


def _section(data: TomlTable, name: str) -> TomlTable:
    section = data.get(name, {})
    if not isinstance(section, dict):
        raise ConfigError(f"config section [{name}] must be a table")
    return section


def check_defaults(data: TomlTable) -> TomlTable:
    return _section(data, "check")


def live_defaults(data: TomlTable) -> TomlTable:
    return _section(data, "live")


def text_value(section: TomlTable, key: str) -> str | None:
    value = section.get(key)
    if value is None:
        return None
    if not isinstance(value, str):
        raise ConfigError(f"config key {key!r} must be a string")
    text = value.strip()
    return text or None


def merge_payload(payload: TomlTable, defaults: TomlTable) -> TomlTable:
    merged = dict(defaults)
    for key, value in payload.items():
        if value is None:
            continue
        merged[key] = value
    return merged


def _optional_path(value: TomlValue) -> Path | None:
    if value is None:
        return None
    text = str(value).strip()
    return Path(text) if text else None


def resolve_check_config(
    *,
    pending: str | None = None,
    out: Path | None = None,
    allocs: Path | None = None,
    namespaces: Path | None = None,
    nodes: Path | None = None,
    defaults: TomlTable | None = None,
) -> CheckConfig:
    """Merge CLI values over ``[check]`` defaults over built-in defaults."""
    merged = merge_payload(
        {
            "pending": pending,
            "out": str(out) if out is not None else None,
            "allocs": str(allocs) if allocs is not None else None,
            "namespaces": str(namespaces) if namespaces is not None else None,
            "nodes": str(nodes) if nodes is not None else None,
        },
        defaults or {},
    )
    pending_text = text_value(merged, "pending") or DEFAULT_PENDING
    return CheckConfig(
        pending_threshold_ns=parse_duration_to_ns(pending_text, field_name="pending"),
        output_path=_optional_path(merged.get("out")) or Path(DEFAULT_OUTPUT),
        allocs_path=_optional_path(merged.get("allocs")),
        namespaces_path=_optional_path(merged.get("namespaces")),
        nodes_path=_optional_path(merged.get("nodes")),
    )
