# spendly/core/engine.py
"""Pure derivations over a ledger snapshot.

Nothing here mutates its input or keeps state between calls; every value
the presentation layer shows is recomputed from the current snapshot.

Window boundaries are calendar based and evaluated in a local zone. ``tz``
is any ``tzinfo``; ``None`` means the host's local zone.
"""
from __future__ import annotations

from collections import defaultdict
from datetime import date, datetime, time, timedelta, tzinfo
from decimal import Decimal
from typing import Dict, Iterable, List, Optional

from spendly.core.models import (
    Category,
    Snapshot,
    Summary,
    Totals,
    Transaction,
    TransactionKind,
    Window,
)

WEEK_DAYS = 7


def _local(moment: datetime, tz: Optional[tzinfo]) -> datetime:
    return moment.astimezone(tz)


def _midnight(day: date, tz: Optional[tzinfo]) -> datetime:
    if tz is None:
        # naive -> aware via the host zone, so the offset is the one in
        # force at midnight rather than at ``now``
        return datetime.combine(day, time()).astimezone()
    # a skipped midnight (DST starting at 00:00) resolves with the earlier
    # offset, which is the instant the local day actually begins
    return datetime.combine(day, time(), tzinfo=tz)


def start_of_day(now: datetime, tz: Optional[tzinfo] = None) -> datetime:
    """Local midnight of the calendar day containing ``now``."""
    return _midnight(_local(now, tz).date(), tz)


def start_of_week_window(now: datetime, tz: Optional[tzinfo] = None) -> datetime:
    """Local midnight seven calendar days before today."""
    today = _local(now, tz).date()
    return _midnight(today - timedelta(days=WEEK_DAYS), tz)


def in_month(timestamp: datetime, now: datetime, tz: Optional[tzinfo] = None) -> bool:
    local_ts = _local(timestamp, tz)
    local_now = _local(now, tz)
    return local_ts.year == local_now.year and local_ts.month == local_now.month


def window_start(window: Window, now: datetime, tz: Optional[tzinfo] = None) -> datetime:
    """Inclusive lower bound of ``window``.

    For the month window this is the first of the month; membership is
    still decided by :func:`in_month`, which also has an upper bound.
    """
    window = Window(window)
    if window is Window.DAY:
        return start_of_day(now, tz)
    if window is Window.WEEK:
        return start_of_week_window(now, tz)
    return _midnight(_local(now, tz).date().replace(day=1), tz)


def filter_by_window(
    transactions: Iterable[Transaction],
    window: Window,
    now: datetime,
    tz: Optional[tzinfo] = None,
) -> List[Transaction]:
    """
    Return the transactions that fall inside ``window`` relative to ``now``,
    keeping their original relative order.

    Day and week have no upper bound, so future-dated entries are kept.
    Month is calendar membership, not a rolling thirty days.
    """
    window = Window(window)
    if window is Window.MONTH:
        return [tx for tx in transactions if in_month(tx.timestamp, now, tz)]
    lower = window_start(window, now, tz)
    return [tx for tx in transactions if tx.timestamp >= lower]


def aggregate_by_kind(transactions: Iterable[Transaction]) -> Totals:
    income = Decimal("0")
    expense = Decimal("0")
    for tx in transactions:
        if tx.kind is TransactionKind.INCOME:
            income += tx.amount
        else:
            expense += tx.amount
    return Totals(income=income, expense=expense)


def current_balance(snapshot: Snapshot) -> Decimal:
    """Baseline plus incomes minus expenses over every active transaction.

    Independent of any display window.
    """
    return snapshot.baseline + sum(
        (tx.signed_amount for tx in snapshot.transactions), Decimal("0")
    )


def totals_by_category(transactions: Iterable[Transaction]) -> Dict[Category, Totals]:
    grouped: Dict[Category, List[Transaction]] = defaultdict(list)
    for tx in transactions:
        grouped[tx.category].append(tx)
    return {
        category: aggregate_by_kind(grouped[category])
        for category in Category
        if category in grouped
    }


def summarize(
    snapshot: Snapshot,
    window: Window,
    now: datetime,
    tz: Optional[tzinfo] = None,
) -> Summary:
    window = Window(window)
    visible = filter_by_window(snapshot.transactions, window, now, tz)
    return Summary(
        window=window,
        balance=current_balance(snapshot),
        transactions=visible,
        totals=aggregate_by_kind(visible),
    )
