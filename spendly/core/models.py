# spendly/core/models.py
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import List, Tuple


class TransactionKind(str, Enum):
    INCOME = "income"
    EXPENSE = "expense"


class Category(str, Enum):
    FOOD = "food"
    TRANSPORT = "transport"
    ENTERTAINMENT = "entertainment"
    SHOPPING = "shopping"
    BILLS = "bills"
    OTHER = "other"


class Window(str, Enum):
    DAY = "day"
    WEEK = "week"
    MONTH = "month"


class CarryForwardPolicy(str, Enum):
    """What happens to the transaction history when a balance is carried forward.

    ``RETAIN`` keeps every transaction in the active list, so they are counted
    again against the new baseline. ``ARCHIVE`` moves them out of the active
    list so the balance is unchanged by the carry-forward.
    """
    RETAIN = "retain"
    ARCHIVE = "archive"


CATEGORIES: List[str] = [c.value for c in Category]
WINDOWS: List[str] = [w.value for w in Window]
KINDS: List[str] = [k.value for k in TransactionKind]

# largest amount or baseline magnitude the ledger accepts; keeps every
# total representable at minor-unit precision
MAX_AMOUNT = Decimal("1000000000000000")


@dataclass(frozen=True)
class Transaction:
    id: int
    kind: TransactionKind
    description: str
    amount: Decimal
    category: Category
    timestamp: datetime

    @property
    def signed_amount(self) -> Decimal:
        if self.kind is TransactionKind.INCOME:
            return self.amount
        return -self.amount


@dataclass(frozen=True)
class Snapshot:
    """Complete ledger state at one point in time.

    ``transactions`` is newest-first by insertion.
    """
    baseline: Decimal = Decimal("0")
    transactions: Tuple[Transaction, ...] = ()
    archived: Tuple[Transaction, ...] = ()


@dataclass(frozen=True)
class Totals:
    income: Decimal = Decimal("0")
    expense: Decimal = Decimal("0")

    @property
    def net(self) -> Decimal:
        return self.income - self.expense


@dataclass(frozen=True)
class Summary:
    window: Window
    balance: Decimal
    transactions: List[Transaction]
    totals: Totals
