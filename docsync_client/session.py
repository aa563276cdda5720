from __future__ import annotations

import threading
from typing import Any

from .http import ApiClient, RequestCancelled


REQUIRED_FIELDS: dict[str, tuple[str, ...]] = {
    "quotations": ("companyName", "productionDate", "billTo"),
    "invoices": ("companyName", "productionDate", "billTo"),
    "production-tickets": ("projectName", "productionDate"),
}

STATUS_REQUIRED_FIELDS: dict[tuple[str, str], tuple[str, ...]] = {
    ("quotations", "accepted"): ("contactPerson",),
}


class IncompleteDocumentError(Exception):
    def __init__(self, fields: list[str]):
        super().__init__("Missing required fields: " + ", ".join(fields))
        self.fields = fields


class CancelToken:
    """Shared flag between whoever scheduled a save and the code running it."""

    def __init__(self):
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise RequestCancelled()


def missing_fields(segment: str, snapshot: dict[str, Any]) -> list[str]:
    """Local copy of the server's mandatory-field gate, to skip doomed auto-saves."""
    status = str(snapshot.get("status") or "draft")
    wanted = list(REQUIRED_FIELDS.get(segment, ()))
    wanted += STATUS_REQUIRED_FIELDS.get((segment, status), ())

    missing = []
    for key in wanted:
        value = snapshot.get(key)
        if value is None or (isinstance(value, str) and not value.strip()):
            missing.append(key)
    if status != "draft" and not snapshot.get("items"):
        missing.append("items")
    return missing


class DocumentSession:
    """Client-side state for one open document.

    Holds the `modifiedAt` baseline the server last returned and sends it with
    every save, so each open document carries its own optimistic lock version.
    """

    def __init__(self, api: ApiClient, segment: str, document_id: str, *, document: dict[str, Any] | None = None):
        self.api = api
        self.segment = segment
        self.document_id = document_id
        self.document: dict[str, Any] | None = None
        self.modified_at: str | None = None
        self._lock = threading.Lock()
        if document is not None:
            self.adopt(document)

    @property
    def path(self) -> str:
        return f"/api/v1/{self.segment}/{self.document_id}/"

    def adopt(self, document: dict[str, Any]) -> None:
        with self._lock:
            self.document = document
            self.modified_at = document.get("modifiedAt") or document.get("updatedAt")

    def load(self) -> dict[str, Any]:
        doc = self.api.get(self.path)
        self.adopt(doc)
        return doc

    def missing_fields(self, snapshot: dict[str, Any]) -> list[str]:
        return missing_fields(self.segment, snapshot)

    def save(self, snapshot: dict[str, Any], *, token: CancelToken | None = None, timeout: float | None = None) -> dict[str, Any]:
        if token is not None:
            token.raise_if_cancelled()
        with self._lock:
            payload = dict(snapshot)
            payload["modifiedAt"] = self.modified_at
        doc = self.api.put(self.path, payload, timeout=timeout)
        # The server committed; keep its baseline even if the caller gave up.
        self.adopt(doc)
        return doc
