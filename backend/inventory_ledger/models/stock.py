from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z

STOCK_RECORD_ID = "current"


class StockRecord(db.Model):
    """
    The single shared stock document.

    items maps item key -> tagged variant, e.g.
        {"water_500ml": {"kind": "count", "value": 120},
         "caps": {"kind": "carton", "cartons": 4},
         "antiscalant": {"kind": "measured", "value": 12.5, "unit": "Ltr"}}

    CONCURRENCY:
    version_id is bumped by every compare-and-swap write. Writers condition
    their UPDATE on the version they read; a mismatch means someone else won.
    """
    __tablename__ = "stock_records"

    id = db.Column(db.String(32), primary_key=True, default=STOCK_RECORD_ID)
    items = db.Column(db.JSON, nullable=False, default=dict)

    version_id = db.Column(db.Integer, nullable=False, default=1)

    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    __mapper_args__ = {"eager_defaults": True}

    def __repr__(self) -> str:
        return f"<StockRecord id={self.id!r} keys={len(self.items or {})} version_id={self.version_id}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "items": self.items,
            "version_id": self.version_id,
            "updated_at": to_utc_z(self.updated_at),
        }
