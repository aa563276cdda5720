"""Client side of document auto-save: HTTP access, per-document session state,
and the debounce/retry scheduler."""

from .http import ApiClient, ApiError, ConflictError, NotFoundError, RejectedError, RequestCancelled
from .scheduler import AutoSaveRules, AutoSaveScheduler, SaveInProgressError, SchedulerState
from .session import CancelToken, DocumentSession, IncompleteDocumentError, missing_fields

__all__ = [
    "ApiClient",
    "ApiError",
    "AutoSaveRules",
    "AutoSaveScheduler",
    "CancelToken",
    "ConflictError",
    "DocumentSession",
    "IncompleteDocumentError",
    "NotFoundError",
    "RejectedError",
    "RequestCancelled",
    "SaveInProgressError",
    "SchedulerState",
    "missing_fields",
]
