# spendly/storage/base.py
from abc import ABC, abstractmethod
from typing import Optional


class BaseStorage(ABC):
    """String key-value store the ledger is persisted into."""

    @abstractmethod
    def get_item(self, key: str) -> Optional[str]:
        """Return the value stored under key, or None when it is absent."""
        pass

    @abstractmethod
    def set_item(self, key: str, value: str) -> None:
        """Store value under key, replacing any previous value."""
        pass
