# Overview: InventoryLedger facade; the one handle callers (UI layer) hold.

from __future__ import annotations

from datetime import date
from types import MappingProxyType
from typing import Any, Iterable, Mapping

from flask import current_app

from .catalog import BOTTLE_KEYS, CARTON_PIECES
from .models import AuditEntry
from .services import AuditService, ComplaintService, LedgerService, LedgerStore, SnapshotService
from .services.units import StockItem, display_quantity

EXTENSION_KEY = "inventory_ledger"


class InventoryLedger:
    """
    Composes the ledger components around one injected store handle.

    Mutations:  apply_mutation
    Reads:      list_audit_entries, get_stock, stock_report
    Snapshots:  export_snapshot, import_snapshot
    Complaints: .complaints
    """

    def __init__(
        self,
        store: LedgerStore,
        *,
        sellable_keys: Iterable[str] = BOTTLE_KEYS,
        carton_pieces: Mapping[str, int] = CARTON_PIECES,
        max_attempts: int = 5,
        backoff_base: float = 0.05,
    ):
        self.store = store
        self.carton_pieces = MappingProxyType(dict(carton_pieces))
        self.mutations = LedgerService(
            store,
            sellable_keys=sellable_keys,
            max_attempts=max_attempts,
            backoff_base=backoff_base,
        )
        self.audit = AuditService(store)
        self.complaints = ComplaintService(store, max_attempts=max_attempts, backoff_base=backoff_base)
        self.snapshots = SnapshotService(store)

    def apply_mutation(self, kind: str, item_deltas: Mapping[str, Any] | None, **metadata) -> str | None:
        return self.mutations.apply_mutation(kind, item_deltas, **metadata)

    def list_audit_entries(self, kind: str | None = None, on_date: date | str | None = None) -> list[AuditEntry]:
        return self.audit.list_entries(kind, on_date)

    def export_snapshot(self) -> bytes:
        return self.snapshots.export_snapshot()

    def import_snapshot(self, data: bytes | str) -> dict[str, int]:
        return self.snapshots.import_snapshot(data)

    def get_stock(self) -> dict[str, StockItem]:
        return self.mutations.get_stock()

    def stock_report(self) -> dict[str, dict]:
        """Current stock with piece counts for carton items (display only)."""
        return {
            key: display_quantity(key, item, self.carton_pieces)
            for key, item in sorted(self.get_stock().items())
        }


def get_ledger() -> InventoryLedger:
    return current_app.extensions[EXTENSION_KEY]
