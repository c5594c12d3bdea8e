from __future__ import annotations

from pathlib import Path

import pytest

from lphash.config import AppConfig, TablePolicy, WatchdogPolicy, load_app_config
from lphash.contracts.error import InvalidArgumentError


@pytest.fixture(autouse=True)
def _clear_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in (
        "LPHASH_INITIAL_CAPACITY",
        "LPHASH_GROW_AT",
        "LPHASH_SHRINK_AT",
        "LPHASH_GROWTH_FACTOR",
        "LPHASH_HASH_FUNCTION",
        "LPHASH_KEY_TYPE",
        "LPHASH_VALUE_TYPE",
        "WATCHDOG_ENABLED",
        "WATCHDOG_LOAD_FACTOR_WARN",
        "WATCHDOG_COLLISION_RATIO_WARN",
        "WATCHDOG_MAX_PROBE_WARN",
    ):
        monkeypatch.delenv(name, raising=False)


def test_default_config_validates() -> None:
    cfg = load_app_config(None)
    assert cfg.table.initial_capacity == 16
    assert cfg.table.grow_at == pytest.approx(0.7)
    assert cfg.table.shrink_at == pytest.approx(0.1)
    assert cfg.table.growth_factor == pytest.approx(2.0)
    assert cfg.table.hash_function == "fnv1a"
    assert cfg.watchdog.enabled is True
    assert cfg.watchdog.load_factor_warn == pytest.approx(0.6)
    assert cfg.watchdog.load_factor_warn < cfg.table.grow_at


def test_load_from_toml(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    cfg_path = tmp_path / "config.toml"
    cfg_path.write_text(
        """
[table]
initial_capacity = 32
grow_at = 0.8
shrink_at = 0.2
growth_factor = 1.5
hash_function = "golden"
key_type = "int64"
value_type = "object"

[watchdog]
enabled = true
load_factor_warn = 0.75
collision_ratio_warn = "none"
max_probe_warn = 4
""",
        encoding="utf-8",
    )
    cfg = load_app_config(str(cfg_path))
    table = cfg.table
    assert table.initial_capacity == 32
    assert table.grow_at == pytest.approx(0.8)
    assert table.growth_factor == pytest.approx(1.5)
    assert table.hash_function == "golden"
    assert table.key_type == "int64"
    watchdog = cfg.watchdog
    assert watchdog.load_factor_warn == pytest.approx(0.75)
    assert watchdog.collision_ratio_warn is None
    assert watchdog.max_probe_warn == pytest.approx(4.0)

    # env override takes precedence
    monkeypatch.setenv("LPHASH_INITIAL_CAPACITY", "64")
    monkeypatch.setenv("LPHASH_VALUE_TYPE", "text")
    monkeypatch.setenv("WATCHDOG_ENABLED", "false")
    monkeypatch.setenv("WATCHDOG_MAX_PROBE_WARN", "12")
    cfg_env = AppConfig.load(cfg_path)
    assert cfg_env.table.initial_capacity == 64
    assert cfg_env.table.value_type == "text"
    assert cfg_env.watchdog.enabled is False
    assert cfg_env.watchdog.max_probe_warn == pytest.approx(12.0)


@pytest.mark.parametrize(
    "body",
    [
        "[table]\ngrow_at = 1.5\n",
        "[table]\nshrink_at = 0.9\n",
        "[table]\ninitial_capacity = 1\n",
        "[table]\nhash_function = \"md5\"\n",
        "[table]\nkey_type = \"float\"\n",
        "[table]\nbuckets = 4\n",
        "[watchdog]\nload_factor_warn = 1.5\n",
        "[table]\ngrow_at = 0.5\n[watchdog]\nload_factor_warn = 0.6\n",
        "[watchdog]\nload_factor_warn = 0.7\n",
        "[watchdog]\nenabled = \"maybe\"\n",
        "table = 3\n",
        "[table\n",
    ],
)
def test_invalid_values_raise(tmp_path: Path, body: str) -> None:
    bad_path = tmp_path / "bad.toml"
    bad_path.write_text(body, encoding="utf-8")
    with pytest.raises(InvalidArgumentError):
        load_app_config(str(bad_path))


def test_table_errors_are_prefixed(tmp_path: Path) -> None:
    bad_path = tmp_path / "bad.toml"
    bad_path.write_text("[table]\ngrowth_factor = 0\n", encoding="utf-8")
    with pytest.raises(InvalidArgumentError) as excinfo:
        load_app_config(str(bad_path))
    assert str(excinfo.value).startswith("table.growth_factor")


def test_missing_config_file(tmp_path: Path) -> None:
    with pytest.raises(InvalidArgumentError) as excinfo:
        load_app_config(str(tmp_path / "absent.toml"))
    assert "not found" in str(excinfo.value)


def test_bad_env_override(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("LPHASH_GROW_AT", "high")
    with pytest.raises(InvalidArgumentError) as excinfo:
        load_app_config(None)
    assert "LPHASH_GROW_AT" in str(excinfo.value)


def test_policy_builds_resize_policy() -> None:
    policy = TablePolicy(initial_capacity=8, grow_at=0.6).resize_policy()
    assert policy.initial_capacity == 8
    assert policy.grow_at == pytest.approx(0.6)
    WatchdogPolicy(max_probe_warn=None).validate()
