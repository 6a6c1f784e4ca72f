"""Configuration containers for reading and writing record sheets."""

# Module responsibilities:
# - Provide strongly typed configuration containers for the read and write paths.
# - Load the same containers from YAML files with explicit validation.

from __future__ import annotations

from dataclasses import dataclass, field, fields
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Mapping, Sequence, Tuple

import yaml

from .errors import ConfigError

DEFAULT_TAG_NAME = "excel"
DEFAULT_BOOL_TOKENS: Tuple[str, str] = ("是", "否")
DEFAULT_DATE_FORMAT = "yyyy-mm-dd hh:mm:ss"


class ErrorPolicy(str, Enum):
    """How per-cell conversion failures are handled during a decode pass."""

    IGNORE = "ignore"
    ABORT = "abort"
    COLLECT = "collect"


@dataclass(frozen=True)
class DropListEntry:
    """One choice of a coded drop-down list: internal key and displayed value."""

    key: str
    value: str


@dataclass(slots=True)
class ReadConfig:
    """Options controlling how a sheet is decoded into records."""

    tag_name: str = DEFAULT_TAG_NAME
    sheet_index: int = 0
    header_row_index: int = 0
    data_start_row_index: int = 1
    trim_space: bool = False
    fallback_date_formats: Tuple[str, ...] = ()
    skip_unknown_columns: bool = True
    skip_unknown_types: bool = False
    error_policy: ErrorPolicy = ErrorPolicy.ABORT
    # 0 collects every error without an upper limit.
    max_errors: int = 10
    drop_lists: Dict[str, Tuple[DropListEntry, ...]] = field(default_factory=dict)
    nil_on_empty: bool = False
    bool_tokens: Tuple[str, str] = DEFAULT_BOOL_TOKENS
    skip_blank_rows: bool = False


@dataclass(slots=True)
class WriteConfig:
    """Options controlling how records are encoded into a sheet."""

    sheet_name: str = "Sheet1"
    tag_name: str = DEFAULT_TAG_NAME
    skip_untagged: bool = False
    skip_nil_pointer: bool = False
    drop_lists: Dict[str, Tuple[DropListEntry, ...]] = field(default_factory=dict)
    localized_bool: bool = False
    bool_tokens: Tuple[str, str] = DEFAULT_BOOL_TOKENS
    date_format: str = DEFAULT_DATE_FORMAT


def drop_list(*pairs: Tuple[str, str]) -> Tuple[DropListEntry, ...]:
    """Build a drop-list from ``(key, value)`` pairs."""

    return tuple(DropListEntry(key=str(key), value=str(value)) for key, value in pairs)


def lookup_key(entries: Sequence[DropListEntry], display: str) -> str | None:
    """Return the key whose display value equals *display*; the last match wins."""

    found = None
    for entry in entries:
        if entry.value == display:
            found = entry.key
    return found


def lookup_display(entries: Sequence[DropListEntry], key: str) -> str:
    """Return the display value for *key*, or *key* itself when unmapped."""

    display = key
    for entry in entries:
        if entry.key == key:
            display = entry.value
    return display


def load_read_config(path: Path) -> ReadConfig:
    """Load a :class:`ReadConfig` from a YAML mapping."""

    payload = _load_yaml(path)
    _reject_unknown_keys(payload, ReadConfig, path)
    config = ReadConfig()
    if "tag_name" in payload:
        config.tag_name = _as_str(payload["tag_name"], "tag_name")
    for key in ("sheet_index", "header_row_index", "data_start_row_index", "max_errors"):
        if key in payload:
            setattr(config, key, _as_int(payload[key], key))
    for key in ("trim_space", "skip_unknown_columns", "skip_unknown_types", "nil_on_empty", "skip_blank_rows"):
        if key in payload:
            setattr(config, key, _as_bool(payload[key], key))
    if "fallback_date_formats" in payload:
        formats = payload["fallback_date_formats"] or []
        if not isinstance(formats, list):
            raise ConfigError("fallback_date_formats must be a list of strptime patterns")
        config.fallback_date_formats = tuple(_as_str(item, "fallback_date_formats") for item in formats)
    if "error_policy" in payload:
        config.error_policy = _as_policy(payload["error_policy"])
    if "drop_lists" in payload:
        config.drop_lists = _as_drop_lists(payload["drop_lists"])
    if "bool_tokens" in payload:
        config.bool_tokens = _as_bool_tokens(payload["bool_tokens"])
    return config


def load_write_config(path: Path) -> WriteConfig:
    """Load a :class:`WriteConfig` from a YAML mapping."""

    payload = _load_yaml(path)
    _reject_unknown_keys(payload, WriteConfig, path)
    config = WriteConfig()
    for key in ("sheet_name", "tag_name", "date_format"):
        if key in payload:
            setattr(config, key, _as_str(payload[key], key))
    for key in ("skip_untagged", "skip_nil_pointer", "localized_bool"):
        if key in payload:
            setattr(config, key, _as_bool(payload[key], key))
    if "drop_lists" in payload:
        config.drop_lists = _as_drop_lists(payload["drop_lists"])
    if "bool_tokens" in payload:
        config.bool_tokens = _as_bool_tokens(payload["bool_tokens"])
    return config


def _load_yaml(path: Path) -> Dict[str, Any]:
    if not path.exists():
        raise ConfigError(f"Config file not found: {path}")
    with path.open("r", encoding="utf-8") as handle:
        data = yaml.safe_load(handle) or {}
    if not isinstance(data, dict):
        raise ConfigError("Invalid config YAML structure (expected mapping)")
    return data


def _reject_unknown_keys(payload: Mapping[str, Any], config_type: type, path: Path) -> None:
    allowed = {item.name for item in fields(config_type)}
    if unknown := set(payload) - allowed:
        raise ConfigError(f"Unknown keys in {path.name}: {', '.join(sorted(unknown))}")


def _as_str(value: Any, key: str) -> str:
    if not isinstance(value, str) or not value:
        raise ConfigError(f"{key} must be a non-empty string")
    return value


def _as_int(value: Any, key: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ConfigError(f"{key} must be an integer")
    if value < 0:
        raise ConfigError(f"{key} must not be negative")
    return value


def _as_bool(value: Any, key: str) -> bool:
    if not isinstance(value, bool):
        raise ConfigError(f"{key} must be true or false")
    return value


def _as_policy(value: Any) -> ErrorPolicy:
    try:
        return ErrorPolicy(str(value).lower())
    except ValueError as exc:
        choices = ", ".join(policy.value for policy in ErrorPolicy)
        raise ConfigError(f"error_policy must be one of {choices}") from exc


def _as_bool_tokens(value: Any) -> Tuple[str, str]:
    if not isinstance(value, list) or len(value) != 2:
        raise ConfigError("bool_tokens must be a list of two strings (true, false)")
    true_token, false_token = (_as_str(item, "bool_tokens") for item in value)
    if true_token == false_token:
        raise ConfigError("bool_tokens must differ")
    return true_token, false_token


def _as_drop_lists(value: Any) -> Dict[str, Tuple[DropListEntry, ...]]:
    """Accept ``{tag: [{key: .., value: ..}, ...]}`` or ``{tag: {key: value}}``."""

    if not isinstance(value, dict):
        raise ConfigError("drop_lists must be a mapping of column tag to entries")
    tables: Dict[str, Tuple[DropListEntry, ...]] = {}
    for tag, entries in value.items():
        if isinstance(entries, dict):
            tables[str(tag)] = drop_list(*entries.items())
            continue
        if not isinstance(entries, list):
            raise ConfigError(f"drop_lists.{tag} must be a list or mapping")
        normalized = []
        for idx, entry in enumerate(entries):
            if not isinstance(entry, dict) or {"key", "value"} - entry.keys():
                raise ConfigError(f"drop_lists.{tag}[{idx}] needs key and value")
            normalized.append(DropListEntry(key=str(entry["key"]), value=str(entry["value"])))
        tables[str(tag)] = tuple(normalized)
    return tables


__all__ = [
    "DEFAULT_BOOL_TOKENS",
    "DEFAULT_DATE_FORMAT",
    "DEFAULT_TAG_NAME",
    "DropListEntry",
    "ErrorPolicy",
    "ReadConfig",
    "WriteConfig",
    "drop_list",
    "load_read_config",
    "load_write_config",
    "lookup_display",
    "lookup_key",
]
