# Overview: Ledger transaction engine; applies sale/usage/addition mutations with their audit entry.

from __future__ import annotations

import logging
from typing import Any, Iterable, Mapping

from ..catalog import BOTTLE_KEYS
from ..errors import InvalidMutation
from ..models import AuditEntry
from .concurrency import DEFAULT_ATTEMPTS, StaleStockVersion, run_with_retry
from .store import LedgerStore
from .units import (
    MeasuredQuantity,
    StockItem,
    apply_delta,
    item_from_dict,
    normalize_delta,
    parse_delta,
    validate_unit,
)

logger = logging.getLogger(__name__)

"""
Ledger Invariants (authoritative)

- Stock is never changed without exactly one AuditEntry in the same
  transaction, and no AuditEntry exists without its stock change.
- Deltas are sparse: zero, negative, absent or unparseable values drop the
  key from both the stock write and the audit entry.
- A mutation whose filtered deltas are empty is a successful no-op: nothing
  is written and no id is returned.
- Keys missing from the stock record are ignored.
- Sales may only target sellable (finished bottle) keys.
- Concurrency is optimistic: read stock + version, compute, compare-and-swap.
  A lost race re-reads and recomputes against the fresh value, up to a bound.
- No stock floor; values may go negative.
"""

KIND_SALE = "sale"
KIND_USAGE = "usage"
KIND_ADDITION = "addition"
MUTATION_KINDS = (KIND_SALE, KIND_USAGE, KIND_ADDITION)


def normalize_kind(kind: Any) -> str:
    value = (str(kind) if kind is not None else "").strip().lower()
    if value not in MUTATION_KINDS:
        raise InvalidMutation(f"kind must be one of {', '.join(MUTATION_KINDS)}")
    return value


def _filter_deltas(item_deltas: Mapping[str, Any] | None) -> dict[str, tuple[float, str | None]]:
    requested = {}
    for key, raw in (item_deltas or {}).items():
        value, unit = parse_delta(raw)
        if value is None or value <= 0:
            continue
        requested[str(key)] = (value, unit)
    return requested


def _audit_line(kind: str, item: StockItem, amount: int | float):
    if kind == KIND_SALE:
        return int(amount)
    line = {"value": amount}
    if isinstance(item, MeasuredQuantity):
        line["unit"] = item.unit
    return line


class LedgerService:
    """
    Applies one logical inventory change to the shared stock record.

    The store handle is injected; nothing here reaches for a global session.
    """

    def __init__(
        self,
        store: LedgerStore,
        *,
        sellable_keys: Iterable[str] = BOTTLE_KEYS,
        max_attempts: int = DEFAULT_ATTEMPTS,
        backoff_base: float = 0.05,
    ):
        self._store = store
        self._sellable_keys = frozenset(sellable_keys)
        self._max_attempts = max_attempts
        self._backoff_base = backoff_base

    def get_stock(self) -> dict[str, StockItem]:
        with self._store.transaction() as session:
            items, _version = self._store.read_stock(session)
        return {key: item_from_dict(raw) for key, raw in items.items()}

    def apply_mutation(
        self,
        kind: str,
        item_deltas: Mapping[str, Any] | None,
        *,
        customer_name: str | None = None,
        recorded_by: str | None = None,
        note: str | None = None,
    ) -> str | None:
        """
        Apply a sale, usage or addition and append its audit entry atomically.

        Args:
            kind: "sale", "usage" or "addition"
            item_deltas: key -> positive amount, or key -> {"value": ..., "unit": ...}
            customer_name: required for sales
            recorded_by: optional actor recorded on the audit entry
            note: optional free text recorded on the audit entry

        Returns:
            The new audit entry id, or None when there was nothing to apply.

        Raises:
            InvalidMutation: bad kind, bad unit, missing customer, non-sellable key
            StockDocumentMissing: stock record was never initialized (no retry)
            TransactionConflictExhausted: optimistic retries ran out
        """
        kind = normalize_kind(kind)
        requested = _filter_deltas(item_deltas)
        if not requested:
            logger.debug("Empty %s submission absorbed", kind)
            return None

        if kind == KIND_SALE:
            customer_name = (customer_name or "").strip()
            if not customer_name:
                raise InvalidMutation("customer_name is required for a sale")
        if kind == KIND_ADDITION:
            for _value, unit in requested.values():
                validate_unit(unit)

        adding = kind == KIND_ADDITION

        def _op():
            with self._store.transaction() as session:
                items, version = self._store.read_stock(session)

                new_items = dict(items)
                audit_items = {}
                for key, (value, unit) in requested.items():
                    raw = items.get(key)
                    if raw is None:
                        continue
                    if kind == KIND_SALE and key not in self._sellable_keys:
                        raise InvalidMutation(f"{key} is not a finished-goods item and cannot be sold")

                    item = item_from_dict(raw)
                    amount = normalize_delta(item, value)
                    if not amount:
                        continue

                    updated = apply_delta(item, amount, adding=adding, unit=unit)
                    new_items[key] = updated.to_dict()
                    audit_items[key] = _audit_line(kind, updated, amount)

                if not audit_items:
                    return None

                if not self._store.compare_and_swap_stock(session, version, new_items):
                    raise StaleStockVersion(f"stock version {version} is no longer current")

                entry = AuditEntry(
                    kind=kind,
                    customer_name=customer_name if kind == KIND_SALE else None,
                    items=audit_items,
                    recorded_by=recorded_by,
                    note=note,
                    stock_version=version + 1,
                )
                session.add(entry)
                session.flush()
                return entry.id

        entry_id = run_with_retry(
            _op,
            attempts=self._max_attempts,
            backoff_base=self._backoff_base,
            describe=f"{kind} mutation",
        )
        if entry_id is None:
            logger.debug("%s submission touched no known keys", kind)
        else:
            logger.info("Recorded %s %s", kind, entry_id)
        return entry_id

    def record_sale(self, customer_name: str, quantities: Mapping[str, Any], **metadata) -> str | None:
        return self.apply_mutation(KIND_SALE, quantities, customer_name=customer_name, **metadata)

    def record_usage(self, amounts: Mapping[str, Any], **metadata) -> str | None:
        return self.apply_mutation(KIND_USAGE, amounts, **metadata)

    def record_addition(self, amounts: Mapping[str, Any], **metadata) -> str | None:
        return self.apply_mutation(KIND_ADDITION, amounts, **metadata)
