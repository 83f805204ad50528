# Overview: Complaint threads for machine logs: open, resolve, reply.

from __future__ import annotations

import logging

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError, OperationalError

from ..errors import InvalidMutation, NotFoundError
from ..models import Complaint, ComplaintReply
from ..time_utils import EPOCH, normalize_utc, utcnow
from .concurrency import run_with_retry
from .store import LedgerStore

logger = logging.getLogger(__name__)

STATUS_OPEN = "open"
STATUS_RESOLVED = "resolved"
COMPLAINT_STATUSES = (STATUS_OPEN, STATUS_RESOLVED)


def _required_text(value, field_name: str) -> str:
    text = (value or "").strip()
    if not text:
        raise InvalidMutation(f"{field_name} is required")
    return text


class ComplaintService:
    def __init__(self, store: LedgerStore, *, max_attempts: int = 5, backoff_base: float = 0.05):
        self._store = store
        self._max_attempts = max_attempts
        self._backoff_base = backoff_base

    def open_complaint(self, machine: str, operator: str, details: str) -> Complaint:
        complaint = Complaint(
            machine=_required_text(machine, "machine"),
            operator=_required_text(operator, "operator"),
            details=_required_text(details, "details"),
            status=STATUS_OPEN,
        )
        with self._store.transaction() as session:
            session.add(complaint)
            session.flush()
        logger.info("Complaint %s opened for %s", complaint.id, complaint.machine)
        return complaint

    def resolve(self, complaint_id: str) -> Complaint:
        """Idempotent: resolving a resolved complaint returns it unchanged."""
        with self._store.transaction() as session:
            complaint = session.get(Complaint, complaint_id)
            if complaint is None:
                raise NotFoundError(f"complaint {complaint_id} not found")
            if complaint.status != STATUS_RESOLVED:
                complaint.status = STATUS_RESOLVED
                complaint.resolved_at = utcnow()
                logger.info("Complaint %s resolved", complaint_id)
        return complaint

    def append_reply(self, complaint_id: str, text: str, *, author: str | None = None) -> ComplaintReply:
        text = _required_text(text, "text")

        def _op():
            with self._store.transaction() as session:
                if session.get(Complaint, complaint_id) is None:
                    raise NotFoundError(f"complaint {complaint_id} not found")
                last = session.scalar(
                    select(func.max(ComplaintReply.position)).where(ComplaintReply.complaint_id == complaint_id)
                )
                reply = ComplaintReply(
                    complaint_id=complaint_id,
                    position=(last or 0) + 1,
                    text=text,
                    author=author,
                )
                session.add(reply)
                session.flush()
                return reply

        # Position races hit the unique constraint; SQLite lock timeouts surface as OperationalError
        return run_with_retry(
            _op,
            attempts=self._max_attempts,
            backoff_base=self._backoff_base,
            retry_on=(IntegrityError, OperationalError),
            describe=f"reply on complaint {complaint_id}",
        )

    def get(self, complaint_id: str) -> Complaint:
        with self._store.transaction() as session:
            complaint = session.get(Complaint, complaint_id)
        if complaint is None:
            raise NotFoundError(f"complaint {complaint_id} not found")
        return complaint

    def list_complaints(self, status: str | None = None) -> list[Complaint]:
        query = select(Complaint)
        if status is not None:
            if status not in COMPLAINT_STATUSES:
                raise InvalidMutation(f"status must be one of {', '.join(COMPLAINT_STATUSES)}")
            query = query.where(Complaint.status == status)
        with self._store.transaction() as session:
            complaints = list(session.scalars(query).all())
        return sorted(
            complaints,
            key=lambda c: normalize_utc(c.created_at) if c.created_at else EPOCH,
            reverse=True,
        )

    def replies(self, complaint_id: str) -> list[ComplaintReply]:
        """Newest first. Storage keeps append order; this only sorts for display."""
        with self._store.transaction() as session:
            if session.get(Complaint, complaint_id) is None:
                raise NotFoundError(f"complaint {complaint_id} not found")
            rows = session.scalars(
                select(ComplaintReply)
                .where(ComplaintReply.complaint_id == complaint_id)
                .order_by(ComplaintReply.position.desc())
            ).all()
        return list(rows)
