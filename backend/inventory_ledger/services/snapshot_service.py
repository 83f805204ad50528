# Overview: Whole-database export and all-or-nothing restore.

from __future__ import annotations

import logging
from typing import Any, Mapping

from ..errors import MalformedSnapshot, RestoreError
from ..models import STOCK_RECORD_ID, TRACKED_COLLECTIONS
from . import snapshot_codec
from .store import Document, LedgerStore
from .units import MeasuredQuantity, item_from_dict, validate_unit

logger = logging.getLogger(__name__)

"""
Snapshot Invariants (authoritative)

Export:
- Each collection is read in its own transaction. Export running next to
  live mutations is not a point-in-time copy across collections.

Restore:
- Destructive and irreversible: every collection named in the snapshot is
  emptied and refilled, audit log included. Unnamed collections are untouched.
- All-or-nothing for the whole snapshot: decode everything first, then write
  every collection in one transaction.
- Provides no locking against live mutations. Callers take the system
  offline (or otherwise stop ledger traffic) before restoring.
"""

STOCK_COLLECTION = "stock"


def _check_stock_documents(documents: list[Document]) -> None:
    """A restored stock record must be readable by the ledger, or nothing is written."""
    for index, document in enumerate(documents):
        path = f"{STOCK_COLLECTION}[{index}]"
        if document.id != STOCK_RECORD_ID:
            raise MalformedSnapshot(f"{path}: stock record id must be {STOCK_RECORD_ID!r}, got {document.id!r}")
        items = document.fields.get("items")
        if not isinstance(items, Mapping):
            raise MalformedSnapshot(f"{path}.items: must be an object of stock items")
        for key, raw in items.items():
            try:
                item = item_from_dict(raw)
                if isinstance(item, MeasuredQuantity):
                    validate_unit(item.unit)
            except (TypeError, ValueError) as exc:
                raise MalformedSnapshot(f"{path}.items.{key}: {exc}") from exc
        version = document.fields.get("version_id", 1)
        if isinstance(version, bool) or not isinstance(version, int):
            raise MalformedSnapshot(f"{path}.version_id: must be an integer")


class SnapshotService:
    def __init__(self, store: LedgerStore):
        self._store = store

    def export_collections(self) -> dict[str, list[Document]]:
        return {name: self._store.read_collection(name) for name in TRACKED_COLLECTIONS}

    def export_snapshot(self) -> bytes:
        snapshot = snapshot_codec.encode(self.export_collections())
        logger.info(
            "Exported snapshot: %s",
            ", ".join(f"{name}={len(docs)}" for name, docs in snapshot.items()),
        )
        return snapshot_codec.dumps(snapshot)

    def restore(self, snapshot: Any) -> dict[str, int]:
        """
        Replace persisted state with a decoded snapshot.

        Returns the number of documents written per collection.

        Raises:
            MalformedSnapshot: a document could not be decoded (nothing written)
            RestoreError: the write failed and was rolled back
        """
        try:
            collections = snapshot_codec.decode(snapshot)
            if STOCK_COLLECTION in collections:
                _check_stock_documents(collections[STOCK_COLLECTION])
            counts = self._store.replace_collections(collections)
        except RestoreError as exc:
            logger.error("Restore aborted, no changes applied: %s", exc)
            raise
        logger.info(
            "Restored snapshot: %s",
            ", ".join(f"{name}={count}" for name, count in counts.items()),
        )
        return counts

    def import_snapshot(self, data: bytes | str) -> dict[str, int]:
        try:
            snapshot = snapshot_codec.loads(data)
        except RestoreError as exc:
            logger.error("Restore aborted, no changes applied: %s", exc)
            raise
        return self.restore(snapshot)
