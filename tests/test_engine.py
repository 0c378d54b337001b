import random
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

import pytest

from spendly.core.engine import (
    aggregate_by_kind,
    current_balance,
    filter_by_window,
    in_month,
    start_of_day,
    start_of_week_window,
    summarize,
    totals_by_category,
    window_start,
)
from spendly.core.models import (
    Category,
    Snapshot,
    Totals,
    Transaction,
    TransactionKind,
    Window,
)

UTC = timezone.utc
IST = timezone(timedelta(hours=5, minutes=30))
NOW = datetime(2025, 5, 15, 12, 0, tzinfo=UTC)


def _tx(tx_id, kind, amount, when, category="food"):
    return Transaction(
        id=tx_id,
        kind=TransactionKind(kind),
        description=f"tx {tx_id}",
        amount=Decimal(str(amount)),
        category=Category(category),
        timestamp=when,
    )


def test_day_window_is_inclusive_from_midnight_and_open_ended():
    midnight = _tx(1, "expense", 5, datetime(2025, 5, 15, 0, 0, tzinfo=UTC))
    yesterday = _tx(2, "expense", 5, datetime(2025, 5, 14, 23, 59, 59, tzinfo=UTC))
    future = _tx(3, "income", 5, datetime(2025, 5, 20, 9, 0, tzinfo=UTC))

    result = filter_by_window([future, yesterday, midnight], Window.DAY, NOW, UTC)
    assert [tx.id for tx in result] == [3, 1]


def test_week_window_reaches_back_seven_calendar_days():
    assert start_of_week_window(NOW, UTC) == datetime(2025, 5, 8, tzinfo=UTC)
    edge = _tx(1, "expense", 5, datetime(2025, 5, 8, 0, 0, tzinfo=UTC))
    before = _tx(2, "expense", 5, datetime(2025, 5, 7, 23, 59, tzinfo=UTC))

    result = filter_by_window([edge, before], "week", NOW, UTC)
    assert result == [edge]


def test_month_window_is_calendar_membership():
    txs = [
        _tx(1, "income", 1, datetime(2025, 5, 1, 0, 0, tzinfo=UTC)),
        _tx(2, "income", 1, datetime(2025, 5, 31, 23, 59, tzinfo=UTC)),
        _tx(3, "income", 1, datetime(2025, 4, 30, 23, 59, tzinfo=UTC)),
        _tx(4, "income", 1, datetime(2024, 5, 10, 12, 0, tzinfo=UTC)),
        _tx(5, "income", 1, datetime(2025, 6, 1, 0, 0, tzinfo=UTC)),
    ]
    result = filter_by_window(txs, Window.MONTH, NOW, UTC)
    assert [tx.id for tx in result] == [1, 2]


def test_boundaries_follow_the_local_zone():
    # 2025-06-01 01:30 in IST
    now = datetime(2025, 5, 31, 20, 0, tzinfo=UTC)
    june_local = _tx(1, "expense", 1, datetime(2025, 5, 31, 19, 0, tzinfo=UTC))
    may_local = _tx(2, "expense", 1, datetime(2025, 5, 31, 18, 0, tzinfo=UTC))

    assert start_of_day(now, IST) == datetime(2025, 6, 1, tzinfo=IST)
    assert in_month(june_local.timestamp, now, IST)
    assert not in_month(may_local.timestamp, now, IST)
    assert filter_by_window([june_local, may_local], Window.DAY, now, IST) == [june_local]
    assert filter_by_window([june_local, may_local], Window.MONTH, now, IST) == [june_local]

    # same instants, seen from UTC, are both still in May
    assert filter_by_window([june_local, may_local], Window.MONTH, now, UTC) == [
        june_local,
        may_local,
    ]


def test_day_starts_when_midnight_is_skipped():
    try:
        santiago = ZoneInfo("America/Santiago")
    except ZoneInfoNotFoundError:
        pytest.skip("tz database not available")
    # clocks jump from 00:00 to 01:00 on 2024-09-08, at 04:00 UTC
    now = datetime(2024, 9, 8, 16, 0, tzinfo=UTC)
    start = start_of_day(now, santiago)
    assert start.astimezone(UTC) == datetime(2024, 9, 8, 4, 0, tzinfo=UTC)

    first = _tx(1, "expense", 1, datetime(2024, 9, 8, 4, 30, tzinfo=UTC))
    last_night = _tx(2, "expense", 1, datetime(2024, 9, 8, 3, 59, tzinfo=UTC))
    assert filter_by_window([first, last_night], Window.DAY, now, santiago) == [first]


def test_start_of_day_defaults_to_host_zone():
    start = start_of_day(NOW)
    assert start.tzinfo is not None
    assert (start.hour, start.minute, start.second) == (0, 0, 0)
    assert start.date() == NOW.astimezone().date()


def test_window_start_for_each_window():
    assert window_start(Window.DAY, NOW, UTC) == datetime(2025, 5, 15, tzinfo=UTC)
    assert window_start(Window.WEEK, NOW, UTC) == datetime(2025, 5, 8, tzinfo=UTC)
    assert window_start(Window.MONTH, NOW, UTC) == datetime(2025, 5, 1, tzinfo=UTC)


def test_filter_keeps_order_and_does_not_touch_input():
    txs = [
        _tx(3, "income", 1, datetime(2025, 5, 14, tzinfo=UTC)),
        _tx(2, "expense", 1, datetime(2025, 3, 1, tzinfo=UTC)),
        _tx(1, "income", 1, datetime(2025, 5, 2, tzinfo=UTC)),
    ]
    original = list(txs)
    result = filter_by_window(txs, Window.MONTH, NOW, UTC)
    assert [tx.id for tx in result] == [3, 1]
    assert result is not txs
    assert txs == original


def test_month_filter_is_idempotent():
    txs = [
        _tx(i, "expense", i, NOW - timedelta(days=i * 3))
        for i in range(1, 12)
    ]
    once = filter_by_window(txs, Window.MONTH, NOW, UTC)
    assert filter_by_window(once, Window.MONTH, NOW, UTC) == once


def test_aggregate_by_kind_sums_each_kind():
    txs = [
        _tx(1, "income", "200.10", NOW),
        _tx(2, "expense", "50.05", NOW),
        _tx(3, "expense", "0.05", NOW),
    ]
    totals = aggregate_by_kind(txs)
    assert totals == Totals(income=Decimal("200.10"), expense=Decimal("50.10"))
    assert totals.net == Decimal("150.00")


def test_aggregate_by_kind_of_nothing_is_zero():
    assert aggregate_by_kind([]) == Totals(Decimal("0"), Decimal("0"))


def test_aggregate_of_filtered_matches_manual_sums():
    txs = [
        _tx(i, "income" if i % 3 == 0 else "expense", i, NOW - timedelta(days=i))
        for i in range(1, 40)
    ]
    for window in Window:
        visible = filter_by_window(txs, window, NOW, UTC)
        lower = window_start(window, NOW, UTC)
        expected_income = sum(
            (t.amount for t in txs
             if t.kind is TransactionKind.INCOME and t.timestamp >= lower),
            Decimal("0"),
        )
        expected_expense = sum(
            (t.amount for t in txs
             if t.kind is TransactionKind.EXPENSE and t.timestamp >= lower),
            Decimal("0"),
        )
        assert aggregate_by_kind(visible) == Totals(expected_income, expected_expense)


def test_current_balance_uses_every_transaction():
    # baseline 1000, income 200 this month, expense 50 last month
    income = _tx(2, "income", 200, datetime(2025, 5, 3, tzinfo=UTC))
    expense = _tx(1, "expense", 50, datetime(2025, 4, 20, tzinfo=UTC))
    snapshot = Snapshot(baseline=Decimal("1000"), transactions=(income, expense))

    visible = filter_by_window(snapshot.transactions, Window.MONTH, NOW, UTC)
    assert visible == [income]
    assert aggregate_by_kind(visible) == Totals(Decimal("200"), Decimal("0"))
    assert current_balance(snapshot) == Decimal("1150")


def test_current_balance_is_order_independent():
    txs = [
        _tx(i, "income" if i % 2 else "expense", Decimal(i) * Decimal("1.37"), NOW)
        for i in range(1, 25)
    ]
    snapshot = Snapshot(baseline=Decimal("-12.5"), transactions=tuple(txs))
    expected = current_balance(snapshot)

    rng = random.Random(7)
    for _ in range(5):
        shuffled = list(txs)
        rng.shuffle(shuffled)
        assert current_balance(
            Snapshot(baseline=Decimal("-12.5"), transactions=tuple(shuffled))
        ) == expected


def test_current_balance_of_empty_snapshot_is_baseline():
    assert current_balance(Snapshot()) == Decimal("0")
    assert current_balance(Snapshot(baseline=Decimal("42"))) == Decimal("42")


def test_totals_by_category_groups_in_category_order():
    txs = [
        _tx(1, "expense", 10, NOW, "shopping"),
        _tx(2, "expense", 5, NOW, "food"),
        _tx(3, "income", 7, NOW, "food"),
    ]
    grouped = totals_by_category(txs)
    assert list(grouped) == [Category.FOOD, Category.SHOPPING]
    assert grouped[Category.FOOD] == Totals(Decimal("7"), Decimal("5"))
    assert grouped[Category.SHOPPING] == Totals(Decimal("0"), Decimal("10"))


def test_summarize_bundles_balance_and_window_totals():
    txs = (
        _tx(2, "income", 30, datetime(2025, 5, 15, 8, tzinfo=UTC)),
        _tx(1, "expense", 10, datetime(2025, 5, 1, 8, tzinfo=UTC)),
    )
    snapshot = Snapshot(baseline=Decimal("100"), transactions=txs)

    day = summarize(snapshot, "day", NOW, UTC)
    assert day.window is Window.DAY
    assert day.balance == Decimal("120")
    assert [tx.id for tx in day.transactions] == [2]
    assert day.totals == Totals(Decimal("30"), Decimal("0"))

    month = summarize(snapshot, Window.MONTH, NOW, UTC)
    assert month.balance == Decimal("120")
    assert month.totals == Totals(Decimal("30"), Decimal("10"))
