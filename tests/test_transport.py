import unittest

import requests

from http_fakes import fake_session, make_response
from workspace_api.utils.errors import (
    DecodeError,
    HTTPStatusError,
    RequestError,
    TransportError,
)
from workspace_api.utils.transport import HTTPClient, clean_query


def make_http(session, max_retries=3):
    return HTTPClient(session, headers={"Accept": "application/json"}, max_retries=max_retries, wait_min=0, wait_max=0)


class TestRequest(unittest.TestCase):
    def test_success_passes_params_and_headers(self):
        session = fake_session(make_response(200, {"ok": True}))
        http = make_http(session)

        response = http.request("get", "https://example.test/users", query={"maxResults": 10, "pageToken": None})

        self.assertEqual(response.status_code, 200)
        args, kwargs = session.request.call_args
        self.assertEqual(args, ("GET", "https://example.test/users"))
        self.assertEqual(kwargs["params"], {"maxResults": 10})
        self.assertEqual(kwargs["headers"], {"Accept": "application/json"})

    def test_retries_on_service_unavailable(self):
        session = fake_session(
            make_response(503, {"error": {"message": "backend error"}}),
            make_response(503, {"error": {"message": "backend error"}}),
            make_response(200, {"ok": True}),
        )
        http = make_http(session)

        response = http.request("GET", "https://example.test/users")

        self.assertEqual(response.status_code, 200)
        self.assertEqual(session.request.call_count, 3)

    def test_gives_up_after_max_retries(self):
        session = fake_session(*[make_response(429, {"message": "slow down"}) for _ in range(3)])
        http = make_http(session)

        with self.assertRaises(HTTPStatusError) as ctx:
            http.request("GET", "https://example.test/users")

        self.assertEqual(session.request.call_count, 3)
        self.assertEqual(ctx.exception.status_code, 429)
        self.assertEqual(ctx.exception.message, "slow down")

    def test_client_errors_are_not_retried(self):
        session = fake_session(
            make_response(404, {"error": {"code": 404, "message": "Resource Not Found: userKey"}},
                          url="https://example.test/users/x")
        )
        http = make_http(session)

        with self.assertRaises(HTTPStatusError) as ctx:
            http.request("GET", "https://example.test/users/x")

        self.assertEqual(session.request.call_count, 1)
        error = ctx.exception
        self.assertFalse(error.retryable)
        self.assertEqual(error.method, "GET")
        self.assertEqual(error.url, "https://example.test/users/x")
        self.assertEqual(
            str(error),
            "Request Error: StatusCode=404, Method=GET, URL=https://example.test/users/x, "
            "Message=Resource Not Found: userKey",
        )

    def test_transport_errors_are_retried(self):
        session = fake_session(
            requests.ConnectionError("connection reset"),
            make_response(200, {"ok": True}),
        )
        http = make_http(session)

        http.request("GET", "https://example.test/users")

        self.assertEqual(session.request.call_count, 2)

    def test_transport_error_after_retries(self):
        session = fake_session(*[requests.Timeout("timed out") for _ in range(2)])
        http = make_http(session, max_retries=2)

        with self.assertRaises(TransportError) as ctx:
            http.request("POST", "https://example.test/users", body={"a": 1})

        self.assertIsInstance(ctx.exception, RequestError)
        self.assertEqual(ctx.exception.method, "POST")
        self.assertIsNone(ctx.exception.status_code)

    def test_unsupported_method(self):
        session = fake_session()
        with self.assertRaises(ValueError):
            make_http(session).request("TRACE", "https://example.test/")
        session.request.assert_not_called()


class TestErrorMessages(unittest.TestCase):
    def error_for(self, response):
        return HTTPStatusError.from_response(response)

    def test_okta_error_summary(self):
        response = make_response(403, {"errorCode": "E0000006", "errorSummary": "You do not have permission"})
        self.assertEqual(self.error_for(response).message, "You do not have permission")

    def test_plain_text_body(self):
        response = make_response(400, text="bad request body")
        self.assertEqual(self.error_for(response).message, "bad request body")

    def test_empty_body(self):
        response = make_response(502)
        self.assertEqual(self.error_for(response).message, "Unexpected error (Status: 502)")
        self.assertTrue(self.error_for(response).retryable)


class TestDecode(unittest.TestCase):
    def test_json_body(self):
        self.assertEqual(HTTPClient.decode(make_response(200, {"id": "1"})), {"id": "1"})

    def test_empty_body(self):
        self.assertEqual(HTTPClient.decode(make_response(204)), {})

    def test_invalid_json(self):
        with self.assertRaises(DecodeError) as ctx:
            HTTPClient.decode(make_response(200, text="<html>"))
        self.assertEqual(ctx.exception.raw_response, "<html>")


class TestCleanQuery(unittest.TestCase):
    def test_drops_empty_values(self):
        self.assertEqual(clean_query({"a": None, "b": "", "c": [], "d": "x"}), {"d": "x"})

    def test_booleans_and_lists(self):
        self.assertEqual(
            clean_query({"showDeleted": True, "active": False, "ranges": ["A1", 2]}),
            {"showDeleted": "true", "active": "false", "ranges": ["A1", "2"]},
        )

    def test_none_query(self):
        self.assertEqual(clean_query(None), {})


if __name__ == "__main__":
    unittest.main()
