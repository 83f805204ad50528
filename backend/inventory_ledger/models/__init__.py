from .common import new_document_id
from .stock import StockRecord, STOCK_RECORD_ID
from .audit import AuditEntry
from .complaints import Complaint, ComplaintReply

# Snapshot collection name -> model, in dependency order (parents first)
TRACKED_COLLECTIONS = {
    "stock": StockRecord,
    "audit_entries": AuditEntry,
    "complaints": Complaint,
    "complaint_replies": ComplaintReply,
}

__all__ = [
    'new_document_id',
    'StockRecord', 'STOCK_RECORD_ID',
    'AuditEntry',
    'Complaint', 'ComplaintReply',
    'TRACKED_COLLECTIONS',
]
