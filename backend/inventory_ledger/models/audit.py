from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z, utcnow
from .common import new_document_id


class AuditEntry(db.Model):
    """
    Immutable record of one ledger mutation (sale, usage or addition).

    One table tagged by kind. items holds only the keys the mutation touched:
    - sale:              {key: quantity_sold}
    - usage / addition:  {key: {"value": amount, "unit": "Kg"}}  (unit optional)

    Written in the same transaction as the stock change it describes.
    Never updated; only a full snapshot restore removes rows.
    """
    __tablename__ = "audit_entries"
    __table_args__ = (
        db.Index("ix_audit_entries_kind_timestamp", "kind", "timestamp"),
    )

    id = db.Column(db.String(32), primary_key=True, default=new_document_id)
    kind = db.Column(db.String(16), nullable=False, index=True)  # sale, usage, addition

    customer_name = db.Column(db.String(255), nullable=True)  # sale only
    items = db.Column(db.JSON, nullable=False)

    recorded_by = db.Column(db.String(255), nullable=True)
    note = db.Column(db.String(255), nullable=True)

    # Stamped at write time (microseconds); nullable because restored history may lack it
    timestamp = db.Column(db.DateTime(timezone=True), nullable=True, default=utcnow, index=True)
    # Stock version this entry produced; orders entries that share a timestamp
    stock_version = db.Column(db.Integer, nullable=True)

    def __repr__(self) -> str:
        return f"<AuditEntry id={self.id!r} kind={self.kind!r} keys={sorted(self.items or {})}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "kind": self.kind,
            "customer_name": self.customer_name,
            "items": self.items,
            "recorded_by": self.recorded_by,
            "note": self.note,
            "timestamp": to_utc_z(self.timestamp),
            "stock_version": self.stock_version,
        }
