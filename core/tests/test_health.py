import logging
from unittest import mock

from django.test import TestCase

from core.logging_filters import RequestIDFilter
from core.request_context import get_request_id, set_request_id


class HealthEndpointTests(TestCase):
    def test_health_ok(self):
        resp = self.client.get("/health/")
        self.assertEqual(resp.status_code, 200)
        body = resp.json()
        self.assertEqual(body["status"], "ok")
        self.assertEqual(body["checks"]["db"]["status"], "ok")
        self.assertEqual(body["checks"]["cache"]["status"], "ok")

    def test_health_reports_db_failure(self):
        with mock.patch("core.views_health._db_check", return_value=("error", "down")):
            resp = self.client.get("/health/")
        self.assertEqual(resp.status_code, 503)
        self.assertEqual(resp.json()["checks"]["db"]["error"], "down")

    def test_request_id_is_generated(self):
        resp = self.client.get("/health/")
        self.assertTrue(resp["X-Request-ID"])
        self.assertEqual(get_request_id(), "")


class RequestIDFilterTests(TestCase):
    def _record(self):
        return logging.LogRecord("x", logging.INFO, __file__, 1, "msg", (), None)

    def test_filter_uses_context(self):
        set_request_id("rid-1")
        try:
            record = self._record()
            self.assertTrue(RequestIDFilter().filter(record))
            self.assertEqual(record.request_id, "rid-1")
        finally:
            set_request_id("")

    def test_filter_default(self):
        record = self._record()
        RequestIDFilter().filter(record)
        self.assertEqual(record.request_id, "-")
