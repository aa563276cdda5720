"""Error taxonomy for document writes.

Every error is raised before or inside the single update transaction, so a
raised error always means nothing was applied.
"""
from __future__ import annotations

from typing import Any, Dict


class DocumentError(Exception):
    code = "DOCUMENT_ERROR"
    status_code = 500
    default_message = "Document operation failed."

    def __init__(self, message: str | None = None, *, fields: Dict[str, str] | None = None):
        self.message = message or self.default_message
        self.fields = dict(fields or {})
        super().__init__(self.message)

    def as_payload(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"code": self.code, "message": self.message}
        if self.fields:
            payload["fields"] = self.fields
        return payload


class ValidationError(DocumentError):
    """Missing/invalid mandatory field. The caller fixes its input and resubmits."""

    code = "VALIDATION_ERROR"
    status_code = 400
    default_message = "Document failed validation."


class ReconciliationError(ValidationError):
    """A child row that cannot be mapped to an update or a create (malformed shape)."""

    code = "RECONCILIATION_ERROR"
    default_message = "Submitted collections could not be reconciled."


class OptimisticLockError(DocumentError):
    code = "OPTIMISTIC_LOCK_ERROR"
    status_code = 409
    default_message = "This record was modified by another user. Please reload and try again."


class DocumentNotFound(DocumentError):
    code = "NOT_FOUND"
    status_code = 404
    default_message = "Document not found."


class TransactionalError(DocumentError):
    """Storage failure mid-transaction; the transaction has been rolled back."""

    code = "TRANSACTION_ERROR"
    status_code = 500
    default_message = "Failed to save document."


class NumberingError(TransactionalError):
    code = "NUMBERING_ERROR"
    default_message = "Could not allocate a document number."
