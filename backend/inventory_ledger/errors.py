# Overview: Error taxonomy shared by the ledger, audit, complaint and snapshot services.

from __future__ import annotations


class LedgerError(Exception):
    """Base class for every failure surfaced by the ledger core."""

    retryable = False


class StockDocumentMissing(LedgerError):
    """The shared stock record was never initialized. Fatal, never retried."""


class TransactionConflictExhausted(LedgerError):
    """Optimistic retries ran out; the caller may submit the mutation again."""

    retryable = True

    def __init__(self, message: str, *, attempts: int):
        super().__init__(message)
        self.attempts = attempts


class InvalidMutation(LedgerError, ValueError):
    """400-level input problem (unknown kind, bad unit, non-sellable key...)."""


class NotFoundError(LedgerError, LookupError):
    """Addressed complaint or audit entry does not exist."""


class RestoreError(LedgerError):
    """Snapshot import failed; nothing was written."""


class MalformedSnapshot(RestoreError):
    """A snapshot document could not be decoded."""
