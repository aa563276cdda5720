import threading
import time
import unittest
from unittest import mock

from docsync_client.http import ApiError, ConflictError, RejectedError
from docsync_client.scheduler import AutoSaveRules, AutoSaveScheduler, SaveInProgressError, SchedulerState
from docsync_client.session import IncompleteDocumentError


COMPLETE = {"companyName": "N", "billTo": "Acme", "productionDate": "2025-01-01"}


class FakeTimer:
    def __init__(self, registry, delay, fn, args=()):
        self.registry = registry
        self.delay = delay
        self.fn = fn
        self.args = args
        self.cancelled = False
        self.fired = False
        self.daemon = False

    def start(self):
        self.registry.append(self)

    def cancel(self):
        self.cancelled = True

    def fire(self):
        self.fired = True
        if not self.cancelled:
            self.fn(*self.args)


class FakeSession:
    document_id = "doc-1"

    def __init__(self):
        self.calls = []
        self.results = []
        self.modified_at = "T0"

    def missing_fields(self, snapshot):
        return [k for k in ("companyName", "billTo", "productionDate") if not snapshot.get(k)]

    def save(self, snapshot, *, token=None, timeout=None):
        if token is not None:
            token.raise_if_cancelled()
        self.calls.append((dict(snapshot), self.modified_at, timeout))
        outcome = self.results.pop(0) if self.results else None
        if isinstance(outcome, Exception):
            raise outcome
        self.modified_at = f"T{len(self.calls)}"
        return {"modifiedAt": self.modified_at}


class SchedulerTests(unittest.TestCase):
    def setUp(self):
        self.timers = []
        self.now = 0.0
        self.session = FakeSession()
        self.snapshot = dict(COMPLETE)
        self.saved = []
        self.errors = []
        self.scheduler = AutoSaveScheduler(
            self.session,
            lambda: dict(self.snapshot),
            timer_factory=lambda delay, fn, args=(): FakeTimer(self.timers, delay, fn, args),
            clock=lambda: self.now,
            on_saved=self.saved.append,
            on_error=self.errors.append,
        )

    def live_timers(self):
        return [t for t in self.timers if not (t.cancelled or t.fired)]

    def test_defaults(self):
        rules = AutoSaveRules()
        self.assertEqual(
            (rules.debounce, rules.min_interval, rules.max_retries, rules.retry_delay, rules.timeout),
            (15.0, 15.0, 2, 10.0, 15.0),
        )

    def test_edit_debounces(self):
        self.scheduler.notify_edit()
        self.scheduler.notify_edit()
        self.assertEqual(self.scheduler.state, SchedulerState.PENDING)
        self.assertEqual(len(self.live_timers()), 1)
        self.assertEqual(self.live_timers()[0].delay, 15.0)

        self.timers[0].fire()  # superseded, must not save
        self.live_timers()[0].fire()

        self.assertEqual(len(self.session.calls), 1)
        self.assertEqual(self.session.calls[0][2], 15.0)
        self.assertEqual(self.scheduler.state, SchedulerState.IDLE)
        self.assertEqual(self.saved, [{"modifiedAt": "T1"}])

    def test_min_interval_between_saves(self):
        self.scheduler.notify_edit()
        self.now = 100.0
        self.live_timers()[0].fire()

        self.now = 103.0
        self.scheduler.notify_edit()
        self.assertEqual(self.live_timers()[0].delay, 15.0)

        rules = AutoSaveRules(debounce=2.0, min_interval=15.0)
        self.scheduler.rules = rules
        self.scheduler.notify_edit()
        self.assertEqual(self.live_timers()[0].delay, 12.0)

    def test_incomplete_snapshot_is_not_auto_saved(self):
        self.snapshot["billTo"] = ""
        self.scheduler.notify_edit()
        self.live_timers()[0].fire()
        self.assertEqual(self.session.calls, [])
        self.assertEqual(self.scheduler.state, SchedulerState.IDLE)

    def test_transient_failures_retry_then_give_up(self):
        self.session.results = [ApiError("timeout"), ApiError("timeout"), ApiError("timeout")]
        self.scheduler.notify_edit()
        self.live_timers()[0].fire()

        for _ in range(2):
            retry = self.live_timers()[-1]
            self.assertEqual(retry.delay, 10.0)
            self.assertEqual(self.scheduler.state, SchedulerState.PENDING)
            retry.fire()

        self.assertEqual(len(self.session.calls), 3)
        self.assertEqual(self.scheduler.state, SchedulerState.IDLE)
        self.assertEqual(len(self.errors), 1)
        self.assertEqual(self.live_timers(), [])

    def test_retry_succeeds(self):
        self.session.results = [ApiError("timeout")]
        self.scheduler.notify_edit()
        self.live_timers()[0].fire()
        self.live_timers()[-1].fire()
        self.assertEqual(len(self.session.calls), 2)
        self.assertEqual(self.saved, [{"modifiedAt": "T2"}])
        self.assertEqual(self.errors, [])

    def test_conflict_is_not_retried_and_halts(self):
        self.session.results = [ConflictError("409", status=409)]
        self.scheduler.notify_edit()
        self.live_timers()[0].fire()

        self.assertEqual(len(self.session.calls), 1)
        self.assertIsInstance(self.scheduler.halted, ConflictError)
        self.assertEqual(len(self.errors), 1)

        fired = len(self.timers)
        self.scheduler.notify_edit()
        self.assertEqual(len(self.timers), fired)

        self.scheduler.resume()
        self.assertEqual(self.scheduler.state, SchedulerState.PENDING)

    def test_rejection_is_not_retried(self):
        self.session.results = [RejectedError("400", status=400)]
        self.scheduler.notify_edit()
        self.live_timers()[0].fire()
        self.assertEqual(len(self.session.calls), 1)
        self.assertIsNone(self.scheduler.halted)
        self.assertEqual(self.scheduler.state, SchedulerState.IDLE)

    def test_manual_save_cancels_pending(self):
        self.scheduler.notify_edit()
        pending = self.live_timers()[0]

        doc = self.scheduler.save_now()

        self.assertEqual(doc, {"modifiedAt": "T1"})
        self.assertTrue(pending.cancelled)
        pending.fn(*pending.args)  # a timer that raced the cancel is ignored
        self.assertEqual(len(self.session.calls), 1)
        self.assertEqual(self.scheduler.state, SchedulerState.IDLE)

    def test_manual_save_prechecks_fields(self):
        self.snapshot["companyName"] = ""
        with self.assertRaises(IncompleteDocumentError) as ctx:
            self.scheduler.save_now()
        self.assertEqual(ctx.exception.fields, ["companyName"])
        self.assertEqual(self.session.calls, [])

    def test_manual_save_surfaces_conflict(self):
        self.session.results = [ConflictError("409", status=409)]
        with self.assertRaises(ConflictError):
            self.scheduler.save_now()
        self.assertIsNotNone(self.scheduler.halted)

        self.scheduler.save_now()
        self.assertIsNone(self.scheduler.halted)

    def test_edits_during_manual_save_rearm(self):
        original = self.session.save

        def save_and_edit(snapshot, **kw):
            self.scheduler.notify_edit()
            return original(snapshot, **kw)

        self.session.save = save_and_edit
        self.scheduler.save_now()
        self.assertEqual(self.scheduler.state, SchedulerState.PENDING)

    def test_manual_save_waits_for_in_flight_auto_save(self):
        started = threading.Event()
        release = threading.Event()
        original = self.session.save

        def slow_save(snapshot, **kw):
            if not self.session.calls:
                started.set()
                release.wait(5)
            return original(snapshot, **kw)

        self.session.save = slow_save
        self.scheduler.notify_edit()
        auto = threading.Thread(target=self.live_timers()[0].fire)
        auto.start()
        self.assertTrue(started.wait(5))
        self.assertEqual(self.scheduler.state, SchedulerState.IN_FLIGHT)

        result = {}
        manual = threading.Thread(target=lambda: result.setdefault("doc", self.scheduler.save_now()))
        manual.start()
        manual.join(0.2)
        self.assertTrue(manual.is_alive())
        self.assertEqual(len(self.session.calls), 0)

        release.set()
        auto.join(5)
        manual.join(5)

        self.assertEqual([c[1] for c in self.session.calls], ["T0", "T1"])
        self.assertEqual(result["doc"], {"modifiedAt": "T2"})

    def test_manual_save_gives_up_while_auto_save_is_on_the_wire(self):
        self.scheduler.rules = AutoSaveRules(timeout=0.05, max_retries=0)
        started = threading.Event()
        release = threading.Event()
        original = self.session.save

        def blocked_save(snapshot, **kw):
            started.set()
            release.wait(5)
            return original(snapshot, **kw)

        self.session.save = blocked_save
        self.scheduler.notify_edit()
        auto = threading.Thread(target=self.live_timers()[0].fire)
        auto.start()
        self.assertTrue(started.wait(5))

        with self.assertRaises(SaveInProgressError):
            self.scheduler.save_now()
        self.assertEqual(self.session.calls, [])

        release.set()
        auto.join(5)
        self.assertEqual(len(self.session.calls), 1)
        # the unsent manual edits are picked up by the next auto-save
        self.assertEqual(self.scheduler.state, SchedulerState.PENDING)

    def test_concurrent_manual_saves_go_out_one_at_a_time(self):
        guard = threading.Lock()
        active = [0]
        peak = [0]
        original = self.session.save

        def tracked_save(snapshot, **kw):
            with guard:
                active[0] += 1
                peak[0] = max(peak[0], active[0])
            try:
                time.sleep(0.05)
                return original(snapshot, **kw)
            finally:
                with guard:
                    active[0] -= 1

        self.session.save = tracked_save
        threads = [threading.Thread(target=self.scheduler.save_now) for _ in range(3)]
        for t in threads:
            t.start()
        for t in threads:
            t.join(5)

        self.assertEqual(peak[0], 1)
        self.assertEqual([c[1] for c in self.session.calls], ["T0", "T1", "T2"])
        self.assertEqual(self.scheduler.state, SchedulerState.IDLE)

    def test_unexpected_save_error_leaves_scheduler_usable(self):
        self.session.results = [ValueError("bad body")]
        self.scheduler.notify_edit()
        self.live_timers()[0].fire()

        self.assertEqual(self.scheduler.state, SchedulerState.IDLE)
        self.assertIsInstance(self.errors[0], ValueError)

        self.scheduler.notify_edit()
        self.assertEqual(self.scheduler.state, SchedulerState.PENDING)
        self.live_timers()[0].fire()
        self.assertEqual(len(self.session.calls), 2)
        self.assertEqual(self.saved, [{"modifiedAt": "T2"}])

    def test_snapshot_failure_is_reported(self):
        self.scheduler.snapshot = mock.Mock(side_effect=RuntimeError("editor closed"))
        self.scheduler.notify_edit()
        self.live_timers()[0].fire()

        self.assertEqual(self.session.calls, [])
        self.assertEqual(self.scheduler.state, SchedulerState.IDLE)
        self.assertIsInstance(self.errors[0], RuntimeError)
