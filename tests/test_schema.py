"""Unit tests for configuration loading."""

from __future__ import annotations

from pathlib import Path

import pytest

from sheetbind.errors import ConfigError
from sheetbind.schema import (
    DropListEntry,
    ErrorPolicy,
    ReadConfig,
    WriteConfig,
    load_read_config,
    load_write_config,
    lookup_display,
    lookup_key,
)


def _write(path: Path, payload: str) -> Path:
    path.write_text(payload, encoding="utf-8")
    return path


def test_defaults_are_fresh_per_instance() -> None:
    first = ReadConfig()
    first.drop_lists["x"] = ()

    assert ReadConfig().drop_lists == {}
    assert ReadConfig().error_policy is ErrorPolicy.ABORT
    assert ReadConfig().max_errors == 10
    assert WriteConfig().sheet_name == "Sheet1"


def test_load_read_config(tmp_path: Path) -> None:
    path = _write(
        tmp_path / "read.yaml",
        "sheet_index: 1\n"
        "header_row_index: 2\n"
        "data_start_row_index: 3\n"
        "trim_space: true\n"
        "error_policy: COLLECT\n"
        "max_errors: 0\n"
        "fallback_date_formats:\n"
        "  - '%Y/%m/%d'\n"
        "drop_lists:\n"
        "  状态:\n"
        "    - {key: 'ON', value: 启用}\n"
        "    - {key: 'OFF', value: 停用}\n"
        "  level: {H: 高, L: 低}\n",
    )

    config = load_read_config(path)

    assert (config.sheet_index, config.header_row_index, config.data_start_row_index) == (1, 2, 3)
    assert config.trim_space is True
    assert config.error_policy is ErrorPolicy.COLLECT
    assert config.max_errors == 0
    assert config.fallback_date_formats == ("%Y/%m/%d",)
    assert config.drop_lists["状态"] == (DropListEntry("ON", "启用"), DropListEntry("OFF", "停用"))
    assert config.drop_lists["level"][0] == DropListEntry("H", "高")
    assert config.skip_unknown_columns is True


def test_load_write_config(tmp_path: Path) -> None:
    path = _write(
        tmp_path / "write.yaml",
        "sheet_name: 导出\n"
        "localized_bool: true\n"
        "bool_tokens: ['Y', 'N']\n"
        "date_format: yyyy-mm-dd\n",
    )

    config = load_write_config(path)

    assert config.sheet_name == "导出"
    assert config.localized_bool is True
    assert config.bool_tokens == ("Y", "N")
    assert config.date_format == "yyyy-mm-dd"


@pytest.mark.parametrize(
    "payload",
    [
        "unknown_key: 1\n",
        "error_policy: explode\n",
        "sheet_index: -1\n",
        "trim_space: yes please\n",
        "drop_lists: [1, 2]\n",
        "drop_lists:\n  a:\n    - {key: only}\n",
        "- not a mapping\n",
    ],
)
def test_invalid_read_configs_are_rejected(tmp_path: Path, payload: str) -> None:
    with pytest.raises(ConfigError):
        load_read_config(_write(tmp_path / "bad.yaml", payload))


def test_missing_config_file(tmp_path: Path) -> None:
    with pytest.raises(ConfigError):
        load_write_config(tmp_path / "absent.yaml")


def test_drop_list_lookups_are_symmetric() -> None:
    entries = (DropListEntry("ON", "启用"), DropListEntry("OFF", "停用"))

    assert lookup_key(entries, "停用") == "OFF"
    assert lookup_key(entries, "其他") is None
    assert lookup_display(entries, "ON") == "启用"
    assert lookup_display(entries, "??") == "??"
