import unittest
from unittest import mock

import requests

from docsync_client.http import ApiClient, ApiError, ConflictError, NotFoundError, RejectedError
from docsync_client.session import CancelToken, DocumentSession, missing_fields
from docsync_client.http import RequestCancelled


def fake_response(status, payload=None, text=""):
    r = mock.Mock(spec=requests.Response)
    r.status_code = status
    r.reason = "reason"
    r.text = text
    r.content = b"x" if payload is not None else b""
    if payload is None:
        r.json.side_effect = ValueError("no json")
    else:
        r.json.return_value = payload
    return r


class ApiClientTests(unittest.TestCase):
    def setUp(self):
        self.http = mock.Mock(spec=requests.Session)
        self.api = ApiClient("https://docs.example.test/", session=self.http)

    def test_success_returns_json(self):
        self.http.request.return_value = fake_response(200, {"id": "1"})
        self.assertEqual(self.api.get("/api/v1/invoices/1/"), {"id": "1"})
        args, kwargs = self.http.request.call_args
        self.assertEqual(args, ("GET", "https://docs.example.test/api/v1/invoices/1/"))
        self.assertEqual(kwargs["timeout"], 15.0)

    def test_status_mapping(self):
        cases = [(409, ConflictError), (400, RejectedError), (404, NotFoundError), (500, ApiError)]
        for status, cls in cases:
            with self.subTest(status=status):
                self.http.request.return_value = fake_response(status, {"code": "X", "message": "nope", "fields": {"billTo": "req"}})
                with self.assertRaises(cls) as ctx:
                    self.api.put("/p/", {})
                self.assertEqual(ctx.exception.status, status)
                self.assertEqual(ctx.exception.code, "X")
                self.assertEqual(ctx.exception.fields, {"billTo": "req"})

    def test_non_json_error_body(self):
        self.http.request.return_value = fake_response(502, None, text="Bad gateway")
        with self.assertRaises(ApiError) as ctx:
            self.api.get("/p/")
        self.assertIn("Bad gateway", str(ctx.exception))

    def test_network_error_becomes_api_error(self):
        self.http.request.side_effect = requests.ConnectionError("refused")
        with self.assertRaises(ApiError) as ctx:
            self.api.get("/p/")
        self.assertIsNone(ctx.exception.status)

    def test_no_content(self):
        self.http.request.return_value = fake_response(204)
        self.assertEqual(self.api.delete("/p/"), {})

    def test_non_json_success_body_is_api_error(self):
        r = fake_response(200, None, text="<html>ok</html>")
        r.content = b"<html>ok</html>"
        self.http.request.return_value = r
        with self.assertRaises(ApiError) as ctx:
            self.api.put("/p/", {})
        self.assertEqual(ctx.exception.status, 200)


class DocumentSessionTests(unittest.TestCase):
    def setUp(self):
        self.api = mock.Mock(spec=ApiClient)
        self.session = DocumentSession(
            self.api, "invoices", "doc-1", document={"id": "doc-1", "modifiedAt": "2025-01-01T00:00:00.000+00:00"}
        )

    def test_save_sends_baseline_and_adopts_response(self):
        self.api.put.return_value = {"id": "doc-1", "modifiedAt": "2025-01-01T00:00:05.000+00:00"}

        self.session.save({"notes": "x"})

        path, payload = self.api.put.call_args[0]
        self.assertEqual(path, "/api/v1/invoices/doc-1/")
        self.assertEqual(payload, {"notes": "x", "modifiedAt": "2025-01-01T00:00:00.000+00:00"})
        self.assertEqual(self.session.modified_at, "2025-01-01T00:00:05.000+00:00")

    def test_failed_save_keeps_baseline(self):
        self.api.put.side_effect = ConflictError("409", status=409)
        with self.assertRaises(ConflictError):
            self.session.save({"notes": "x"})
        self.assertEqual(self.session.modified_at, "2025-01-01T00:00:00.000+00:00")

    def test_cancelled_token_never_sends(self):
        token = CancelToken()
        token.cancel()
        with self.assertRaises(RequestCancelled):
            self.session.save({"notes": "x"}, token=token)
        self.api.put.assert_not_called()

    def test_sessions_are_independent(self):
        other = DocumentSession(self.api, "invoices", "doc-2", document={"id": "doc-2", "modifiedAt": "T9"})
        self.assertNotEqual(other.modified_at, self.session.modified_at)

    def test_load_adopts_updated_at_alias(self):
        self.api.get.return_value = {"id": "doc-1", "updatedAt": "T2"}
        self.session.load()
        self.assertEqual(self.session.modified_at, "T2")


class MissingFieldsTests(unittest.TestCase):
    def test_required_per_kind(self):
        self.assertEqual(missing_fields("production-tickets", {"projectName": " "}), ["projectName", "productionDate"])
        self.assertEqual(
            missing_fields("invoices", {"companyName": "N", "billTo": "A", "productionDate": "2025-01-01"}), []
        )

    def test_status_rules(self):
        snap = {"companyName": "N", "billTo": "A", "productionDate": "2025-01-01", "status": "accepted", "items": []}
        self.assertEqual(missing_fields("quotations", snap), ["contactPerson", "items"])
