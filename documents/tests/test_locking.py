from datetime import datetime, timedelta, timezone as dt_timezone

from django.test import SimpleTestCase

from documents.errors import OptimisticLockError, ValidationError
from documents.locking import LockDecision, check, ensure_current, parse_client_timestamp


T1 = datetime(2025, 3, 1, 12, 0, 0, 123000, tzinfo=dt_timezone.utc)


class LockGuardTests(SimpleTestCase):
    def test_equal_timestamps_allow(self):
        self.assertIs(check(T1, T1), LockDecision.ALLOW)

    def test_missing_client_timestamp_allows(self):
        self.assertIs(check(T1, None), LockDecision.ALLOW)

    def test_different_timestamps_conflict(self):
        self.assertIs(check(T1, T1 - timedelta(milliseconds=1)), LockDecision.CONFLICT)
        self.assertIs(check(T1, T1 + timedelta(seconds=5)), LockDecision.CONFLICT)

    def test_ensure_current_raises(self):
        with self.assertRaises(OptimisticLockError) as ctx:
            ensure_current(T1, T1 - timedelta(seconds=1), label="QTN-2025-0001")
        self.assertEqual(ctx.exception.status_code, 409)
        self.assertEqual(ctx.exception.as_payload()["code"], "OPTIMISTIC_LOCK_ERROR")


class ParseClientTimestampTests(SimpleTestCase):
    def test_iso_with_z(self):
        self.assertEqual(parse_client_timestamp("2025-03-01T12:00:00.123Z"), T1)

    def test_iso_with_offset(self):
        self.assertEqual(parse_client_timestamp("2025-03-01T14:00:00.123+02:00"), T1)

    def test_naive_is_utc(self):
        self.assertEqual(parse_client_timestamp("2025-03-01T12:00:00.123"), T1)

    def test_blank_is_none(self):
        self.assertIsNone(parse_client_timestamp(None))
        self.assertIsNone(parse_client_timestamp(""))

    def test_garbage_is_rejected(self):
        with self.assertRaises(ValidationError) as ctx:
            parse_client_timestamp("yesterday")
        self.assertIn("modifiedAt", ctx.exception.fields)
