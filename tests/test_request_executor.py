from __future__ import annotations

import asyncio
import json
import unittest

import requests

from couch_client.database import Database
from couch_client.errors import CouchRequestError
from couch_client.transport.contracts import RequestFailure, RequestSuccess
from couch_client.transport.executor import RequestExecutor


class _StubResponse:
    def __init__(self, status_code: int, body: str):
        self.status_code = status_code
        self._body = body

    def json(self):
        return json.loads(self._body)


class _StubSession:
    def __init__(self, response=None, exc: Exception | None = None):
        self.response = response
        self.exc = exc
        self.calls: list[dict] = []
        self.closed = False

    def request(self, method, url, **kwargs):
        self.calls.append({"method": method, "url": url, **kwargs})
        if self.exc is not None:
            raise self.exc
        return self.response

    def close(self):
        self.closed = True


def _executor(session) -> RequestExecutor:
    return RequestExecutor(base_url="http://couch.local:5984/", timeout_seconds=3.0, session=session)


class TestRequestExecutor(unittest.TestCase):
    def test_success_returns_decoded_payload(self):
        session = _StubSession(_StubResponse(200, '{"db_name": "recipes", "update_seq": 10}'))

        outcome = _executor(session).execute("recipes/")

        self.assertIsInstance(outcome, RequestSuccess)
        self.assertTrue(outcome.ok)
        self.assertEqual(outcome.payload["update_seq"], 10)
        self.assertGreaterEqual(outcome.elapsed_ms, 0)
        call = session.calls[0]
        self.assertEqual(call["method"], "GET")
        self.assertEqual(call["url"], "http://couch.local:5984/recipes/")
        self.assertEqual(call["timeout"], 3.0)
        self.assertIsNone(call["data"])
        self.assertEqual(call["headers"]["Accept"], "application/json")

    def test_body_is_json_encoded_and_method_uppercased(self):
        session = _StubSession(_StubResponse(201, '{"ok": true, "id": "a", "rev": "1-x"}'))

        outcome = _executor(session).execute("recipes/a", "put", body={"_id": "a"}, expected_status=201)

        self.assertTrue(outcome.ok)
        self.assertEqual(session.calls[0]["method"], "PUT")
        self.assertEqual(session.calls[0]["data"], '{"_id":"a"}')

    def test_string_body_is_sent_verbatim(self):
        session = _StubSession(_StubResponse(200, '{"ok": true}'))

        _executor(session).execute("recipes/_revs_limit", "PUT", body="1000")

        self.assertEqual(session.calls[0]["data"], "1000")

    def test_expected_status_accepts_a_collection(self):
        session = _StubSession(_StubResponse(202, '{"ok": true}'))

        outcome = _executor(session).execute("recipes/a", "PUT", body={}, expected_status=(200, 201, 202))

        self.assertTrue(outcome.ok)
        self.assertEqual(outcome.status_code, 202)

    def test_unexpected_status_reports_server_error_and_reason(self):
        session = _StubSession(
            _StubResponse(409, '{"error": "conflict", "reason": "Document update conflict."}')
        )

        outcome = _executor(session).execute("recipes/a", "PUT", body={}, expected_status=201)

        self.assertIsInstance(outcome, RequestFailure)
        self.assertEqual(outcome.status_code, 409)
        self.assertEqual(outcome.error, "conflict")
        self.assertEqual(outcome.reason, "Document update conflict.")

    def test_unexpected_status_without_error_body_uses_defaults(self):
        session = _StubSession(_StubResponse(500, "[]"))

        outcome = _executor(session).execute("recipes/")

        self.assertEqual(outcome.status_code, 500)
        self.assertEqual(outcome.error, "GET recipes/ failed")
        self.assertEqual(outcome.reason, "no response")

    def test_malformed_body_is_a_decode_error_even_on_expected_status(self):
        session = _StubSession(_StubResponse(200, "<html>proxy</html>"))

        outcome = _executor(session).execute("recipes/")

        self.assertIsInstance(outcome, RequestFailure)
        self.assertEqual(outcome.status_code, 200)
        self.assertEqual(outcome.error, "decode_error")

    def test_error_field_on_expected_status_is_document_content(self):
        body = '{"_id": "job-1", "_rev": "1-a", "error": "disk full", "reason": "ran out of space"}'
        session = _StubSession(_StubResponse(200, body))

        outcome = _executor(session).execute("jobs/job-1")

        self.assertIsInstance(outcome, RequestSuccess)
        self.assertEqual(outcome.payload["error"], "disk full")

    def test_open_doc_returns_document_with_error_field(self):
        body = '{"_id": "job-1", "_rev": "1-a", "error": "disk full", "reason": "ran out of space"}'
        session = _StubSession(_StubResponse(200, body))

        doc = asyncio.run(Database("jobs", _executor(session)).open_doc("job-1"))

        self.assertEqual(doc["_id"], "job-1")
        self.assertEqual(doc["reason"], "ran out of space")
        self.assertEqual(session.calls[0]["url"], "http://couch.local:5984/jobs/job-1")

    def test_transport_error_has_no_status(self):
        session = _StubSession(exc=requests.ConnectionError("connection refused"))

        outcome = _executor(session).execute("recipes/_changes")

        self.assertIsInstance(outcome, RequestFailure)
        self.assertIsNone(outcome.status_code)
        self.assertEqual(outcome.error, "transport_error")
        self.assertIn("connection refused", outcome.reason)

    def test_failure_converts_to_exception(self):
        failure = RequestFailure(status_code=404, error="not_found", reason="missing", elapsed_ms=4)

        with self.assertRaises(CouchRequestError) as ctx:
            failure.raise_error()

        self.assertTrue(ctx.exception.is_not_found)
        self.assertFalse(ctx.exception.is_conflict)
        self.assertEqual(ctx.exception.elapsed_ms, 4)
        self.assertIn("not_found", str(ctx.exception))

    def test_close_closes_session(self):
        session = _StubSession(_StubResponse(200, "{}"))
        executor = _executor(session)

        executor.close()

        self.assertTrue(session.closed)


if __name__ == "__main__":
    unittest.main()
