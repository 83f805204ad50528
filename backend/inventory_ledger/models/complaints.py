from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z, utcnow
from .common import new_document_id


class Complaint(db.Model):
    """
    Machine complaint raised from the shop floor.

    LIFECYCLE:
    1. open: raised by an operator
    2. resolved: terminal; resolving again changes nothing

    Replies may still be appended after resolution.
    """
    __tablename__ = "complaints"

    id = db.Column(db.String(32), primary_key=True, default=new_document_id)

    machine = db.Column(db.String(128), nullable=False, index=True)
    operator = db.Column(db.String(128), nullable=False)
    details = db.Column(db.Text, nullable=False)

    status = db.Column(db.String(16), nullable=False, default="open", index=True)  # open, resolved

    created_at = db.Column(db.DateTime(timezone=True), nullable=True, default=utcnow, index=True)
    resolved_at = db.Column(db.DateTime(timezone=True), nullable=True)

    def __repr__(self) -> str:
        return f"<Complaint id={self.id!r} machine={self.machine!r} status={self.status!r}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "machine": self.machine,
            "operator": self.operator,
            "details": self.details,
            "status": self.status,
            "created_at": to_utc_z(self.created_at),
            "resolved_at": to_utc_z(self.resolved_at),
        }


class ComplaintReply(db.Model):
    """
    One reply on a complaint thread.

    Stored in append order (position 1, 2, ...); display order is a read concern.
    """
    __tablename__ = "complaint_replies"
    __table_args__ = (
        db.UniqueConstraint("complaint_id", "position", name="uq_complaint_replies_position"),
    )

    id = db.Column(db.String(32), primary_key=True, default=new_document_id)
    complaint_id = db.Column(db.String(32), db.ForeignKey("complaints.id"), nullable=False, index=True)
    position = db.Column(db.Integer, nullable=False)

    text = db.Column(db.Text, nullable=False)
    author = db.Column(db.String(128), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=True, default=utcnow)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "complaint_id": self.complaint_id,
            "position": self.position,
            "text": self.text,
            "author": self.author,
            "created_at": to_utc_z(self.created_at),
        }
