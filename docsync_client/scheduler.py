"""Auto-save scheduling for one open document.

States and transitions::

    idle --edit--> pending --timer--> in_flight --done--> idle
    pending --edit--> pending            (debounce restarts)
    pending --manual save--> cancelled --> in_flight
    in_flight --transient failure--> pending (retry, same token)

A manual save cancels whatever is pending and waits for a request that is
already on the wire (giving up with SaveInProgressError rather than sending a
second one), so one client never has two saves of the same document in
flight. Manual saves from several threads go out one at a time.
"""
from __future__ import annotations

import enum
import logging
import threading
import time
from dataclasses import dataclass
from typing import Any, Callable

from .http import ApiError, ConflictError, RejectedError, RequestCancelled
from .session import CancelToken, DocumentSession, IncompleteDocumentError


logger = logging.getLogger(__name__)


class SaveInProgressError(ApiError):
    """A manual save found another save of the same document still on the wire."""


class SchedulerState(str, enum.Enum):
    IDLE = "idle"
    PENDING = "pending"
    IN_FLIGHT = "in_flight"
    CANCELLED = "cancelled"


@dataclass(frozen=True)
class AutoSaveRules:
    debounce: float = 15.0
    min_interval: float = 15.0
    max_retries: int = 2
    retry_delay: float = 10.0
    timeout: float = 15.0


class AutoSaveScheduler:
    def __init__(
        self,
        session: DocumentSession,
        snapshot: Callable[[], dict[str, Any]],
        *,
        rules: AutoSaveRules | None = None,
        timer_factory: Callable[..., Any] = threading.Timer,
        clock: Callable[[], float] = time.monotonic,
        on_saved: Callable[[dict[str, Any]], None] | None = None,
        on_error: Callable[[Exception], None] | None = None,
    ):
        self.session = session
        self.snapshot = snapshot
        self.rules = rules or AutoSaveRules()
        self._timer_factory = timer_factory
        self._clock = clock
        self._on_saved = on_saved
        self._on_error = on_error

        self._lock = threading.RLock()
        self.state = SchedulerState.IDLE
        self.halted: Exception | None = None
        self._dirty = False
        self._timer = None
        self._token: CancelToken | None = None
        self._attempt = 0
        self._last_attempt: float | None = None
        self._idle = threading.Event()
        self._idle.set()
        self._manual = threading.Lock()

    # -- edits / timers -------------------------------------------------

    def notify_edit(self) -> None:
        with self._lock:
            self._dirty = True
            if self.halted is not None or self.state is SchedulerState.IN_FLIGHT:
                return
            self._cancel_pending()
            self._token = CancelToken()
            self._attempt = 0
            self._arm(self.rules.debounce)

    def _arm(self, delay: float, *, throttle: bool = True) -> None:
        if throttle and self._last_attempt is not None:
            since = self._clock() - self._last_attempt
            delay = max(delay, self.rules.min_interval - since)
        token = self._token
        self._timer = self._timer_factory(delay, self._fire, args=(token,))
        self._timer.daemon = True
        self._timer.start()
        self.state = SchedulerState.PENDING

    def _cancel_pending(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
        if self._token is not None:
            self._token.cancel()

    def _fire(self, token: CancelToken) -> None:
        with self._lock:
            if token.cancelled or token is not self._token or self.state is not SchedulerState.PENDING:
                return
            self._timer = None
            try:
                snapshot = self.snapshot()
                missing = self.session.missing_fields(snapshot)
            except Exception as exc:
                logger.exception("autosave.snapshot_failed doc=%s", self.session.document_id)
                self.state = SchedulerState.IDLE
                failure = exc
            else:
                failure = None
                if missing:
                    logger.debug("autosave.skipped doc=%s missing=%s", self.session.document_id, missing)
                    self.state = SchedulerState.IDLE
                    return
                self.state = SchedulerState.IN_FLIGHT
                self._dirty = False
                self._idle.clear()
                self._last_attempt = self._clock()

        if failure is not None:
            if self._on_error:
                self._on_error(failure)
            return

        try:
            doc = self.session.save(snapshot, token=token, timeout=self.rules.timeout)
        except RequestCancelled:
            self._finish(None, None)
        except (ConflictError, RejectedError) as exc:
            self._finish(None, exc)
        except ApiError as exc:
            self._retry_or_fail(token, exc)
        except Exception as exc:
            logger.exception("autosave.crashed doc=%s", self.session.document_id)
            self._finish(None, exc)
        else:
            self._finish(doc, None)

    def _retry_or_fail(self, token: CancelToken, exc: ApiError) -> None:
        with self._lock:
            if token.cancelled or self._attempt >= self.rules.max_retries:
                retry = False
            else:
                self._attempt += 1
                retry = True
                logger.info(
                    "autosave.retry doc=%s attempt=%s err=%s", self.session.document_id, self._attempt, exc
                )
                self._dirty = True
                self._idle.set()
                self.state = SchedulerState.IDLE
                self._arm(self.rules.retry_delay, throttle=False)
        if not retry:
            self._finish(None, exc)

    def _finish(self, doc: dict[str, Any] | None, exc: Exception | None) -> None:
        with self._lock:
            if isinstance(exc, ConflictError):
                self.halted = exc
            if self.state is SchedulerState.IN_FLIGHT:
                self.state = SchedulerState.IDLE
            self._idle.set()
            if self._dirty and self.halted is None and self.state is SchedulerState.IDLE:
                self._token = CancelToken()
                self._attempt = 0
                self._arm(self.rules.debounce)

        if exc is not None:
            logger.warning("autosave.failed doc=%s err=%s", self.session.document_id, exc)
            if self._on_error:
                self._on_error(exc)
        elif doc is not None and self._on_saved:
            self._on_saved(doc)

    # -- manual save ----------------------------------------------------

    def save_now(self) -> dict[str, Any]:
        """Save immediately, superseding any pending auto-save.

        Raises IncompleteDocumentError before touching the network, and lets
        ApiError subclasses propagate to the caller. SaveInProgressError means
        an auto-save was still on the wire when the wait ran out; nothing was
        sent and the edits stay queued for auto-save.
        """
        with self._manual:
            snapshot, token = self._claim_wire()
            try:
                doc = self.session.save(snapshot, token=token, timeout=self.rules.timeout)
            except ConflictError as exc:
                with self._lock:
                    self.halted = exc
                raise
            else:
                with self._lock:
                    self.halted = None
            finally:
                with self._lock:
                    self.state = SchedulerState.IDLE
                    self._idle.set()
                    if self._dirty and self.halted is None:
                        self._token = CancelToken()
                        self._attempt = 0
                        self._arm(self.rules.debounce)

        if self._on_saved:
            self._on_saved(doc)
        return doc

    def _claim_wire(self) -> tuple[dict[str, Any], CancelToken]:
        # An auto-save already on the wire finishes first; its response
        # becomes the baseline this save is sent against.
        deadline = time.monotonic() + self.rules.timeout * (self.rules.max_retries + 1)
        while True:
            with self._lock:
                if self.state is SchedulerState.PENDING:
                    self._cancel_pending()
                    self.state = SchedulerState.CANCELLED
                if self._idle.is_set():
                    snapshot = self.snapshot()
                    missing = self.session.missing_fields(snapshot)
                    if missing:
                        self.state = SchedulerState.IDLE
                        raise IncompleteDocumentError(missing)
                    self._cancel_pending()
                    token = self._token = CancelToken()
                    self.state = SchedulerState.IN_FLIGHT
                    self._dirty = False
                    self._idle.clear()
                    self._last_attempt = self._clock()
                    return snapshot, token

            remaining = deadline - time.monotonic()
            if remaining <= 0 or not self._idle.wait(timeout=remaining):
                with self._lock:
                    self._dirty = True
                logger.warning("manual_save.busy doc=%s", self.session.document_id)
                raise SaveInProgressError("An auto-save of this document is still in flight.")

    # -- lifecycle ------------------------------------------------------

    def resume(self) -> None:
        """Re-enable auto-save after a conflict, once the session was reloaded."""
        with self._lock:
            self.halted = None
            if self._dirty and self.state is SchedulerState.IDLE:
                self._token = CancelToken()
                self._attempt = 0
                self._arm(self.rules.debounce)

    def cancel(self) -> None:
        """Drop a pending auto-save; a request already on the wire still completes."""
        with self._lock:
            self._cancel_pending()
            if self.state is SchedulerState.PENDING:
                self.state = SchedulerState.CANCELLED
