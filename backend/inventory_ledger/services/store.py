# Overview: Store handle injected into every ledger component; owns sessions and the CAS primitive.

from __future__ import annotations

import copy
import logging
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any, Iterator, Mapping

from sqlalchemy import delete, func, insert, select, update
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from ..errors import MalformedSnapshot, RestoreError, StockDocumentMissing
from ..extensions import db
from ..models import STOCK_RECORD_ID, TRACKED_COLLECTIONS, StockRecord

logger = logging.getLogger(__name__)


@dataclass
class Document:
    """Storage-neutral view of one row: identity plus every other column."""
    id: str
    fields: dict[str, Any] = field(default_factory=dict)


class LedgerStore:
    """
    Explicit handle to the backing store.

    Wraps a SQLAlchemy sessionmaker; the Flask app builds one from
    db.engine, tests build one from any engine with `from_engine`.
    """

    def __init__(self, session_factory: sessionmaker):
        self._session_factory = session_factory

    @classmethod
    def from_engine(cls, engine: Engine) -> "LedgerStore":
        return cls(sessionmaker(bind=engine, expire_on_commit=False))

    @property
    def engine(self) -> Engine:
        return self._session_factory.kw["bind"]

    def create_all(self) -> None:
        db.metadata.create_all(bind=self.engine)

    @contextmanager
    def transaction(self) -> Iterator[Session]:
        """One session, one transaction: commit on success, rollback on any error."""
        with self._session_factory() as session:
            with session.begin():
                yield session

    # ------------------------------------------------------------------
    # Stock record
    # ------------------------------------------------------------------

    def read_stock(self, session: Session) -> tuple[dict[str, Any], int]:
        row = session.get(StockRecord, STOCK_RECORD_ID)
        if row is None:
            raise StockDocumentMissing("stock record has not been initialized")
        return copy.deepcopy(row.items or {}), row.version_id

    def compare_and_swap_stock(self, session: Session, expected_version: int, items: Mapping[str, Any]) -> bool:
        """
        Write `items` only if the record still carries `expected_version`.

        Returns False when another writer got there first; the caller's
        transaction must then be abandoned and recomputed.
        """
        result = session.execute(
            update(StockRecord)
            .where(StockRecord.id == STOCK_RECORD_ID)
            .where(StockRecord.version_id == expected_version)
            .values(items=dict(items), version_id=expected_version + 1, updated_at=func.now())
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    def initialize_stock(self, items: Mapping[str, Any], *, overwrite: bool = False) -> bool:
        """
        Create the shared stock record. Returns False if it already exists and
        overwrite is not set.
        """
        with self.transaction() as session:
            row = session.get(StockRecord, STOCK_RECORD_ID)
            if row is not None and not overwrite:
                return False
            if row is None:
                session.add(StockRecord(id=STOCK_RECORD_ID, items=copy.deepcopy(dict(items)), version_id=1))
            else:
                row.items = copy.deepcopy(dict(items))
                row.version_id = row.version_id + 1
                row.updated_at = func.now()
        logger.info("Stock record initialized with %d items (overwrite=%s)", len(items), overwrite)
        return True

    # ------------------------------------------------------------------
    # Document view for snapshots
    # ------------------------------------------------------------------

    @staticmethod
    def _row_to_document(row) -> Document:
        mapper = type(row).__mapper__
        fields = {
            column.key: getattr(row, column.key)
            for column in mapper.columns
            if column.key != "id"
        }
        return Document(id=row.id, fields=fields)

    def read_collection(self, name: str) -> list[Document]:
        model = TRACKED_COLLECTIONS[name]
        with self.transaction() as session:
            rows = session.scalars(select(model).order_by(model.id)).all()
            return [self._row_to_document(row) for row in rows]

    def replace_collections(self, collections: Mapping[str, list[Document]]) -> dict[str, int]:
        """
        Replace the full content of every named collection in one transaction.

        Collections not named are untouched. Rows are built before the
        transaction opens, so a bad document fails without touching the
        database; a failure while writing rolls everything back.

        Fields are written exactly as given: an explicit null stays null
        rather than picking up a column default.
        """
        unknown = sorted(set(collections) - set(TRACKED_COLLECTIONS))
        if unknown:
            raise MalformedSnapshot(f"unknown collection(s): {', '.join(unknown)}")

        # Dependency order: parents inserted first, deleted last
        ordered = [name for name in TRACKED_COLLECTIONS if name in collections]

        rows = {}
        for name in ordered:
            columns = {column.key for column in TRACKED_COLLECTIONS[name].__table__.columns}
            built = []
            for index, document in enumerate(collections[name]):
                extra = sorted(set(document.fields) - columns)
                if extra:
                    raise MalformedSnapshot(f"{name}[{index}]: unknown field(s) {', '.join(extra)}")
                built.append({**document.fields, "id": document.id})
            rows[name] = built

        try:
            with self.transaction() as session:
                for name in reversed(ordered):
                    session.execute(delete(TRACKED_COLLECTIONS[name]))
                for name in ordered:
                    model = TRACKED_COLLECTIONS[name]
                    for row in rows[name]:
                        session.execute(insert(model).values(**row))
        except SQLAlchemyError as exc:
            raise RestoreError(f"restore rolled back: {exc}") from exc

        return {name: len(rows[name]) for name in ordered}
