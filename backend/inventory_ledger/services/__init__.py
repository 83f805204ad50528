from .store import Document, LedgerStore
from .ledger_service import (
    LedgerService,
    KIND_SALE,
    KIND_USAGE,
    KIND_ADDITION,
    MUTATION_KINDS,
)
from .audit_service import AuditService
from .complaint_service import ComplaintService, STATUS_OPEN, STATUS_RESOLVED
from .snapshot_service import SnapshotService

__all__ = [
    'Document', 'LedgerStore',
    'LedgerService', 'KIND_SALE', 'KIND_USAGE', 'KIND_ADDITION', 'MUTATION_KINDS',
    'AuditService',
    'ComplaintService', 'STATUS_OPEN', 'STATUS_RESOLVED',
    'SnapshotService',
]
