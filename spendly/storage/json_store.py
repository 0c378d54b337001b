# spendly/storage/json_store.py
import json
import logging
import os
from pathlib import Path
from typing import Dict

from spendly.storage.base import BaseStorage

logger = logging.getLogger(__name__)


class JSONFileStorage(BaseStorage):
    """
    Stores every key in a single JSON object file at ``config['data_path']``.
    Each write rewrites the whole file through a temporary file so a crash
    never leaves a half-written ledger behind.
    """
    def __init__(self, config):
        self.path = Path(config.get('data_path', 'spendly.json'))

    def _read(self) -> Dict[str, str]:
        if not self.path.exists():
            return {}
        with self.path.open('r', encoding='utf-8') as f:
            data = json.load(f)
        if not isinstance(data, dict):
            raise ValueError(f"{self.path} does not contain a JSON object")
        return data

    def get_item(self, key):
        value = self._read().get(key)
        return None if value is None else str(value)

    def set_item(self, key, value):
        try:
            data = self._read()
        except ValueError as exc:
            backup = self.path.with_name(self.path.name + '.corrupt')
            logger.warning("Moving unreadable %s to %s: %s", self.path, backup, exc)
            os.replace(self.path, backup)
            data = {}
        data[key] = value
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self.path.with_name(self.path.name + '.tmp')
        with tmp.open('w', encoding='utf-8') as f:
            json.dump(data, f, ensure_ascii=False, indent=2)
        os.replace(tmp, self.path)
