# spendly/codec.py
"""Wire format for the persisted ledger.

Transactions are stored as a JSON array of
``{id, type, description, amount, category, date}`` records. ``date`` is an
ISO-8601 UTC instant with millisecond precision (``2025-05-04T09:30:00.000Z``)
and ``amount`` is written as a decimal string. Older payloads that stored
``amount`` as a JSON number are still accepted.
"""
from __future__ import annotations

import json
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from typing import List, Tuple

from spendly.core.models import MAX_AMOUNT, Category, Transaction, TransactionKind


def parse_decimal(value) -> Decimal:
    """Parse ``value`` into a finite Decimal or raise ValueError."""
    if isinstance(value, bool):
        raise ValueError(f"Not a number: {value!r}")
    if isinstance(value, float):
        value = repr(value)
    try:
        number = Decimal(str(value).strip())
    except (InvalidOperation, TypeError):
        raise ValueError(f"Not a number: {value!r}") from None
    if not number.is_finite():
        raise ValueError(f"Not a finite number: {value!r}")
    return number


def parse_timestamp(value: str) -> datetime:
    if not isinstance(value, str):
        raise ValueError(f"Unrecognized date: {value!r}")
    text = value.strip()
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    moment = datetime.fromisoformat(text)
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc)


def format_timestamp(moment: datetime) -> str:
    utc = moment.astimezone(timezone.utc)
    return utc.strftime("%Y-%m-%dT%H:%M:%S.") + f"{utc.microsecond // 1000:03d}Z"


def encode_transaction(tx: Transaction) -> dict:
    return {
        "id": tx.id,
        "type": tx.kind.value,
        "description": tx.description,
        "amount": str(tx.amount),
        "category": tx.category.value,
        "date": format_timestamp(tx.timestamp),
    }


def decode_transaction(record: dict) -> Transaction:
    if not isinstance(record, dict):
        raise ValueError(f"Transaction record must be an object: {record!r}")
    missing = [
        key for key in ("id", "type", "description", "amount", "category", "date")
        if key not in record
    ]
    if missing:
        raise ValueError(f"Missing {', '.join(missing)} in record: {record!r}")
    if isinstance(record["id"], bool):
        raise ValueError(f"Invalid id in record: {record!r}")
    description = str(record["description"])
    if not description.strip():
        raise ValueError(f"Empty description in record: {record!r}")
    amount = parse_decimal(record["amount"])
    if amount <= 0 or amount > MAX_AMOUNT:
        raise ValueError(f"Amount out of range in record: {record!r}")
    return Transaction(
        id=int(record["id"]),
        kind=TransactionKind(record["type"]),
        description=description,
        amount=amount,
        category=Category(record["category"]),
        timestamp=parse_timestamp(record["date"]),
    )


def dump_transactions(transactions) -> str:
    return json.dumps([encode_transaction(tx) for tx in transactions], ensure_ascii=False)


def load_transactions(payload: str) -> Tuple[List[Transaction], List[str]]:
    """Decode a stored transaction list.

    Returns the decoded transactions and a list of problems with individual
    records, which are skipped. A payload that is not a JSON array raises
    ValueError.
    """
    data = json.loads(payload, parse_float=Decimal)
    if not isinstance(data, list):
        raise ValueError("Stored transactions must be a JSON array")
    txs: List[Transaction] = []
    problems: List[str] = []
    for record in data:
        try:
            txs.append(decode_transaction(record))
        except (TypeError, ValueError, OverflowError) as exc:
            problems.append(str(exc))
    return txs, problems


def dump_decimal(value: Decimal) -> str:
    return str(value)
