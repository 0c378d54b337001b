# spendly/storage/memory.py
from typing import Dict, Optional

from spendly.storage.base import BaseStorage


class MemoryStorage(BaseStorage):
    """Keeps everything in a dict; nothing survives the process."""

    def __init__(self, config=None, items: Optional[Dict[str, str]] = None):
        self.items: Dict[str, str] = dict(items or {})

    def get_item(self, key):
        return self.items.get(key)

    def set_item(self, key, value):
        self.items[key] = value
