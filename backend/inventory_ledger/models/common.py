from __future__ import annotations

import uuid


def new_document_id() -> str:
    """Generated identity for audit entries, complaints and replies."""
    return uuid.uuid4().hex
