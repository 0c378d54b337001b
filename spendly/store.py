"""The ledger store: canonical in-memory snapshot plus best-effort persistence.

Mutations are applied in memory first and are visible immediately; the
resulting snapshot is then handed to a single background writer. A failed
write is logged and forgotten, the in-memory state stays authoritative for
the rest of the process.
"""
from __future__ import annotations

import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from typing import Callable, List, Optional

from spendly.codec import dump_decimal, dump_transactions, load_transactions, parse_decimal
from spendly.core.engine import current_balance
from spendly.core.models import (
    MAX_AMOUNT,
    CarryForwardPolicy,
    Category,
    Snapshot,
    Transaction,
    TransactionKind,
)
from spendly.storage.base import BaseStorage

logger = logging.getLogger(__name__)

TRANSACTIONS_KEY = "transactions"
BALANCE_KEY = "monthly-balance"
ARCHIVE_KEY = "transactions-archive"

CENT = Decimal("0.01")


@dataclass
class TransactionDraft:
    """Unvalidated user input for a new transaction."""
    kind: object = TransactionKind.EXPENSE
    description: object = ""
    amount: object = ""
    category: object = Category.FOOD


@dataclass(frozen=True)
class AddResult:
    transaction: Optional[Transaction] = None
    errors: List[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.transaction is not None


@dataclass(frozen=True)
class BalanceResult:
    baseline: Optional[Decimal] = None
    errors: List[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.baseline is not None


def validate_draft(draft: TransactionDraft):
    """Return ``(fields, errors)`` for a draft; fields is None when invalid."""
    errors = []
    description = str(draft.description or "").strip()
    if not description:
        errors.append("Description must not be empty.")

    amount = None
    try:
        amount = parse_decimal(draft.amount)
    except ValueError:
        errors.append(f"Amount must be a number, got {draft.amount!r}.")
    else:
        if amount <= 0:
            errors.append("Amount must be greater than zero.")
        elif amount > MAX_AMOUNT:
            errors.append(f"Amount must not exceed {MAX_AMOUNT:,}.")

    try:
        kind = TransactionKind(draft.kind)
    except ValueError:
        kind = None
        errors.append(f"Unknown transaction type {draft.kind!r}.")

    try:
        category = Category(draft.category)
    except ValueError:
        category = None
        errors.append(f"Unknown category {draft.category!r}.")

    if errors:
        return None, errors
    return {
        "kind": kind,
        "description": description,
        "amount": amount,
        "category": category,
    }, []


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class LedgerStore:
    """
    Holds the current :class:`Snapshot` and keeps ``storage`` in sync with it.

    Parameters
    ----------
    storage:
        Key-value backend the snapshot is persisted into.
    clock:
        Returns the current UTC instant; used for new timestamps and ids.
    background:
        When true (the default) writes run on a single writer thread and the
        mutating call returns before they finish. When false they run inline
        but failures are still only logged.
    """

    def __init__(
        self,
        storage: BaseStorage,
        clock: Callable[[], datetime] = _utcnow,
        background: bool = True,
    ):
        self.storage = storage
        self.clock = clock
        self._snapshot = Snapshot()
        self._lock = threading.Lock()
        self._last_id = 0
        self._executor = (
            ThreadPoolExecutor(max_workers=1, thread_name_prefix="spendly-writer")
            if background else None
        )
        self._pending: List[Future] = []

    # -- reads -----------------------------------------------------------

    @property
    def snapshot(self) -> Snapshot:
        return self._snapshot

    def current_balance(self) -> Decimal:
        return current_balance(self._snapshot)

    # -- persistence -----------------------------------------------------

    def load(self) -> Snapshot:
        """Populate the store from storage, falling back to an empty ledger.

        Never raises: a missing key is a first run, a malformed one is
        logged and replaced by its default.
        """
        transactions = self._read_transactions(TRANSACTIONS_KEY)
        archived = self._read_transactions(ARCHIVE_KEY)
        baseline = self._read_baseline()
        snapshot = Snapshot(
            baseline=baseline,
            transactions=tuple(transactions),
            archived=tuple(archived),
        )
        with self._lock:
            self._snapshot = snapshot
            self._last_id = max(
                (tx.id for tx in transactions + archived), default=0
            )
        logger.debug(
            "Loaded %d transaction(s), baseline %s", len(transactions), baseline
        )
        return snapshot

    def _read_item(self, key: str) -> Optional[str]:
        try:
            return self.storage.get_item(key)
        except Exception:
            logger.warning("Could not read %r from storage", key, exc_info=True)
            return None

    def _read_transactions(self, key: str) -> List[Transaction]:
        payload = self._read_item(key)
        if payload is None:
            return []
        try:
            transactions, problems = load_transactions(payload)
        except Exception as exc:
            logger.warning("Ignoring malformed %r: %s", key, exc)
            return []
        for problem in problems:
            logger.warning("Skipping stored transaction: %s", problem)
        return transactions

    def _read_baseline(self) -> Decimal:
        payload = self._read_item(BALANCE_KEY)
        if payload is None:
            return Decimal("0")
        try:
            baseline = parse_decimal(payload)
            # must stay displayable at minor-unit precision
            baseline.quantize(CENT)
        except (ValueError, InvalidOperation):
            logger.warning("Ignoring malformed %r: %r", BALANCE_KEY, payload)
            return Decimal("0")
        return baseline

    def save(self, snapshot: Optional[Snapshot] = None, baseline_changed: bool = False) -> None:
        """Persist ``snapshot`` (the current one by default) without waiting."""
        with self._lock:
            self._submit(self._snapshot if snapshot is None else snapshot, baseline_changed)

    def _submit(self, snapshot: Snapshot, baseline_changed: bool) -> None:
        # caller holds _lock, so writes queue in the order mutations happened
        if self._executor is None:
            self._write(snapshot, baseline_changed)
            return
        future = self._executor.submit(self._write, snapshot, baseline_changed)
        self._pending = [f for f in self._pending if not f.done()] + [future]

    def _write(self, snapshot: Snapshot, baseline_changed: bool) -> None:
        try:
            self.storage.set_item(TRANSACTIONS_KEY, dump_transactions(snapshot.transactions))
            if baseline_changed:
                self.storage.set_item(BALANCE_KEY, dump_decimal(snapshot.baseline))
                self.storage.set_item(ARCHIVE_KEY, dump_transactions(snapshot.archived))
        except Exception:
            logger.error("Failed to save ledger", exc_info=True)
            return
        logger.debug("Saved %d transaction(s)", len(snapshot.transactions))

    def flush(self) -> None:
        """Block until every submitted write has finished."""
        with self._lock:
            pending, self._pending = self._pending, []
        for future in pending:
            future.result()

    def close(self) -> None:
        self.flush()
        with self._lock:
            executor, self._executor = self._executor, None
        if executor is not None:
            executor.shutdown(wait=True)

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()

    # -- mutations -------------------------------------------------------

    def _next_id(self, moment: datetime) -> int:
        candidate = int(moment.timestamp() * 1000)
        self._last_id = max(candidate, self._last_id + 1)
        return self._last_id

    def add_transaction(self, draft: TransactionDraft) -> AddResult:
        """Validate ``draft`` and prepend it to the ledger.

        Invalid input changes nothing and is reported through
        ``AddResult.errors``.
        """
        fields, errors = validate_draft(draft)
        if errors:
            logger.info("Rejected transaction: %s", " ".join(errors))
            return AddResult(errors=errors)
        with self._lock:
            moment = self.clock().astimezone(timezone.utc)
            # stored instants carry milliseconds only
            moment = moment.replace(microsecond=moment.microsecond // 1000 * 1000)
            tx = Transaction(id=self._next_id(moment), timestamp=moment, **fields)
            self._snapshot = replace(
                self._snapshot, transactions=(tx,) + self._snapshot.transactions
            )
            self._submit(self._snapshot, baseline_changed=False)
        return AddResult(transaction=tx)

    def set_balance(self, value) -> BalanceResult:
        try:
            baseline = parse_decimal(value)
        except ValueError:
            logger.info("Rejected balance %r", value)
            return BalanceResult(errors=[f"Balance must be a number, got {value!r}."])
        if abs(baseline) > MAX_AMOUNT:
            logger.info("Rejected balance %r", value)
            return BalanceResult(
                errors=[f"Balance must not exceed {MAX_AMOUNT:,} in magnitude."]
            )
        with self._lock:
            self._snapshot = replace(self._snapshot, baseline=baseline)
            self._submit(self._snapshot, baseline_changed=True)
        return BalanceResult(baseline=baseline)

    def carry_forward_balance(
        self, policy: CarryForwardPolicy = CarryForwardPolicy.RETAIN
    ) -> BalanceResult:
        """Replace the baseline with the current computed balance.

        With ``RETAIN`` the history stays active and is counted again on top
        of the new baseline. With ``ARCHIVE`` it is moved to
        ``Snapshot.archived`` so the balance is unchanged.
        """
        policy = CarryForwardPolicy(policy)
        with self._lock:
            baseline = current_balance(self._snapshot)
            if policy is CarryForwardPolicy.ARCHIVE:
                self._snapshot = Snapshot(
                    baseline=baseline,
                    transactions=(),
                    archived=self._snapshot.transactions + self._snapshot.archived,
                )
            else:
                self._snapshot = replace(self._snapshot, baseline=baseline)
            self._submit(self._snapshot, baseline_changed=True)
        logger.debug("Carried forward balance %s (%s)", baseline, policy.value)
        return BalanceResult(baseline=baseline)
