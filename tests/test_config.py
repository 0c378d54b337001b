import pytest
import yaml

from spendly.config import (
    DEFAULT_CONFIG,
    ConfigError,
    load_config,
    resolve_timezone,
    save_config,
)


def test_missing_file_means_defaults(tmp_path):
    cfg = load_config(tmp_path / "absent.yaml")
    assert cfg == DEFAULT_CONFIG
    cfg["data_path"] = "changed.json"
    assert DEFAULT_CONFIG["data_path"] == "spendly.json"


def test_file_values_override_defaults(tmp_path):
    path = tmp_path / "spendly.yaml"
    path.write_text(
        "data_path: ledger.db\n"
        "storage: spendly.storage.sqlite_store.SQLiteStorage\n"
        "default_window: week\n"
    )
    cfg = load_config(path)
    assert cfg["data_path"] == "ledger.db"
    assert cfg["default_window"] == "week"
    assert cfg["currency_symbol"] == "₹"
    assert cfg["carry_forward_policy"] == "retain"


def test_env_var_points_at_default_file(tmp_path, monkeypatch):
    path = tmp_path / "other.yaml"
    path.write_text("default_category: bills\n")
    monkeypatch.setenv("SPENDLY_CONFIG", str(path))
    assert load_config()["default_category"] == "bills"


@pytest.mark.parametrize("body", [
    "default_window: year\n",
    "default_category: groceries\n",
    "carry_forward_policy: clear\n",
    "timezone: Not/AZone\n",
    "- just\n- a list\n",
    "storage: [unclosed\n",
    "log_level: loud\n",
])
def test_bad_config_raises(tmp_path, body):
    path = tmp_path / "spendly.yaml"
    path.write_text(body)
    with pytest.raises(ConfigError):
        load_config(path)


def test_no_timezone_means_host_zone():
    assert resolve_timezone({"timezone": None}) is None
    assert resolve_timezone({}) is None


def test_save_config_round_trips(tmp_path):
    path = tmp_path / "conf" / "spendly.yaml"
    save_config(dict(DEFAULT_CONFIG), path)
    assert yaml.safe_load(path.read_text(encoding="utf-8")) == DEFAULT_CONFIG
    assert load_config(path) == DEFAULT_CONFIG


def test_log_level_is_case_insensitive(tmp_path):
    path = tmp_path / "spendly.yaml"
    path.write_text("log_level: debug\n")
    assert load_config(path)["log_level"] == "debug"
