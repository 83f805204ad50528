# Overview: Read side of the audit log: filtered listing, lookup and per-key totals.

from __future__ import annotations

from datetime import date, datetime

from sqlalchemy import select

from ..errors import InvalidMutation, NotFoundError
from ..models import AuditEntry
from ..time_utils import EPOCH, normalize_utc, parse_iso_date
from .ledger_service import KIND_SALE, normalize_kind
from .store import LedgerStore


def _sort_key(entry: AuditEntry) -> tuple[datetime, int]:
    # Missing timestamps order as the epoch, i.e. after everything real
    when = EPOCH if entry.timestamp is None else normalize_utc(entry.timestamp)
    return when, entry.stock_version or 0


class AuditService:
    """Append-only log; the only writer is LedgerService."""

    def __init__(self, store: LedgerStore):
        self._store = store

    def list_entries(self, kind: str | None = None, on_date: date | str | None = None) -> list[AuditEntry]:
        """
        Entries newest first.

        on_date keeps entries whose UTC calendar date equals the given day.
        Entries without a timestamp never match a date but are otherwise listed last.
        """
        try:
            day = parse_iso_date(on_date)
        except ValueError as exc:
            raise InvalidMutation(f"invalid date: {on_date!r}") from exc

        query = select(AuditEntry)
        if kind is not None:
            query = query.where(AuditEntry.kind == normalize_kind(kind))

        with self._store.transaction() as session:
            entries = list(session.scalars(query).all())

        if day is not None:
            entries = [
                e for e in entries
                if e.timestamp is not None and normalize_utc(e.timestamp).date() == day
            ]
        return sorted(entries, key=_sort_key, reverse=True)

    def get_entry(self, entry_id: str) -> AuditEntry:
        with self._store.transaction() as session:
            entry = session.get(AuditEntry, entry_id)
        if entry is None:
            raise NotFoundError(f"audit entry {entry_id} not found")
        return entry

    def summarize(self, kind: str, on_date: date | str | None = None) -> dict:
        """
        Per-key totals for one kind, e.g. the day's sales sheet.

        Sales total to integers. Usage/addition totals carry the unit of the
        most recent entry that named one.
        """
        kind = normalize_kind(kind)
        totals: dict = {}
        # Oldest first so the latest unit wins
        for entry in reversed(self.list_entries(kind, on_date)):
            for key, line in (entry.items or {}).items():
                if kind == KIND_SALE:
                    totals[key] = totals.get(key, 0) + int(line)
                    continue
                if not isinstance(line, dict):
                    line = {"value": line}
                row = totals.setdefault(key, {"value": 0})
                row["value"] += line.get("value") or 0
                if line.get("unit"):
                    row["unit"] = line["unit"]
        return totals
