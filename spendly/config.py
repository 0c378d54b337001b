from __future__ import annotations

import copy
import logging
import os
from datetime import tzinfo
from pathlib import Path
from typing import Dict, Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

import yaml

from spendly.core.models import CATEGORIES, WINDOWS, CarryForwardPolicy

DEFAULT_CONFIG: Dict[str, object] = {
    "storage": "spendly.storage.json_store.JSONFileStorage",
    "data_path": "spendly.json",
    "timezone": None,
    "currency_symbol": "₹",
    "default_window": "month",
    "default_category": "food",
    "carry_forward_policy": "retain",
    "log_level": "WARNING",
}

CONFIG_ENV_VAR = "SPENDLY_CONFIG"
DEFAULT_CONFIG_PATH = Path("spendly.yaml")


class ConfigError(ValueError):
    """Raised when the configuration cannot be used."""


def default_config_path() -> Path:
    return Path(os.environ.get(CONFIG_ENV_VAR) or DEFAULT_CONFIG_PATH)


def load_config(path: Path | str | None = None) -> Dict[str, object]:
    """Read the YAML config at ``path`` merged over the defaults.

    A missing file is not an error; it just means every default applies.
    """
    target = Path(path) if path else default_config_path()
    if not target.exists():
        return copy.deepcopy(DEFAULT_CONFIG)
    try:
        with target.open("r", encoding="utf-8") as fp:
            data = yaml.safe_load(fp) or {}
    except (OSError, yaml.YAMLError) as exc:
        raise ConfigError(f"Cannot read config {target}: {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigError(f"Config {target} must be a mapping")
    config = {**DEFAULT_CONFIG, **data}
    validate_config(config)
    return config


def validate_config(config: Dict[str, object]) -> None:
    if config.get("default_window") not in WINDOWS:
        raise ConfigError(f"default_window must be one of {', '.join(WINDOWS)}")
    if config.get("default_category") not in CATEGORIES:
        raise ConfigError(f"default_category must be one of {', '.join(CATEGORIES)}")
    try:
        CarryForwardPolicy(config.get("carry_forward_policy"))
    except ValueError:
        raise ConfigError(
            "carry_forward_policy must be 'retain' or 'archive'"
        ) from None
    if not isinstance(logging.getLevelName(str(config.get("log_level")).upper()), int):
        raise ConfigError(
            "log_level must be one of DEBUG, INFO, WARNING, ERROR, CRITICAL"
        )
    resolve_timezone(config)


def resolve_timezone(config: Dict[str, object]) -> Optional[tzinfo]:
    """Zone used for calendar windows; None means the host's local zone."""
    name = config.get("timezone")
    if not name:
        return None
    try:
        return ZoneInfo(str(name))
    except (ZoneInfoNotFoundError, ValueError) as exc:
        raise ConfigError(f"Unknown timezone: {name}") from exc


def save_config(config: Dict[str, object], path: Path | str | None = None) -> None:
    target = Path(path) if path else default_config_path()
    target.parent.mkdir(parents=True, exist_ok=True)
    with target.open("w", encoding="utf-8") as fp:
        yaml.safe_dump(config, fp, sort_keys=False, allow_unicode=True)
