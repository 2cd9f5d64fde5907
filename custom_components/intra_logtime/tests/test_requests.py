"""
Tests for the low-level request library: status classification,
retry with backoff on transient failures, and no retry on client errors.
"""

from __future__ import annotations

import asyncio
import json
import unittest
from unittest.mock import AsyncMock, MagicMock, patch

from custom_components.intra_logtime.api.errors import (
    ApiResponseError,
    ForbiddenError,
    NotFoundError,
    TransientNetworkError,
    UnauthorizedError,
)
from custom_components.intra_logtime.requests import _process_response, make_request

from .test_common import make_response

URL = "https://api.intra.42.fr/v2/users/jdoe"
SESSION_PATH = "custom_components.intra_logtime.requests.aiohttp.ClientSession"


def make_session(*outcomes) -> MagicMock:
    session = MagicMock()
    session.get = AsyncMock(side_effect=list(outcomes))
    session.post = AsyncMock(side_effect=list(outcomes))
    session.close = AsyncMock()
    return session


class TestProcessResponse(unittest.IsolatedAsyncioTestCase):

    async def test_success_returns_json(self):
        response = make_response(200, {"id": 1})
        self.assertEqual(await _process_response(response, URL), {"id": 1})

    async def test_success_with_empty_mapping(self):
        response = make_response(200, {})
        self.assertEqual(await _process_response(response, URL), {})

    async def test_no_content_returns_none(self):
        response = make_response(204, None, content_type="")
        self.assertIsNone(await _process_response(response, URL))

    async def test_success_with_html_raises(self):
        response = make_response(200, None, content_type="text/html", text="<html></html>")
        with self.assertRaises(ApiResponseError):
            await _process_response(response, URL)

    async def test_success_with_malformed_json_raises(self):
        response = make_response(200, None)
        response.json = AsyncMock(side_effect=json.JSONDecodeError("Expecting value", "{", 1))
        with self.assertRaises(ApiResponseError) as ctx:
            await _process_response(response, URL)
        self.assertEqual(ctx.exception.status, 200)
        self.assertEqual(ctx.exception.error_json["error"], "Malformed JSON")

    async def test_status_classification(self):
        cases = {
            401: UnauthorizedError,
            403: ForbiddenError,
            404: NotFoundError,
            500: TransientNetworkError,
            503: TransientNetworkError,
            400: ApiResponseError,
            422: ApiResponseError,
        }
        for status, error_type in cases.items():
            with self.subTest(status=status):
                response = make_response(status, {"error": "nope"})
                with self.assertRaises(error_type) as ctx:
                    await _process_response(response, URL)
                self.assertEqual(ctx.exception.status, status)

    async def test_error_description_is_used_as_message(self):
        response = make_response(401, {"error": "invalid_token", "error_description": "The access token expired"})
        with self.assertRaises(UnauthorizedError) as ctx:
            await _process_response(response, URL)
        self.assertIn("The access token expired", str(ctx.exception))

    async def test_non_json_error_body(self):
        response = make_response(502, None, content_type="text/html", text="Bad gateway")
        with self.assertRaises(TransientNetworkError) as ctx:
            await _process_response(response, URL)
        self.assertIn("Bad gateway", str(ctx.exception))


class TestMakeRequest(unittest.IsolatedAsyncioTestCase):

    async def test_returns_json_on_first_attempt(self):
        session = make_session(make_response(200, {"id": 1}))
        with patch(SESSION_PATH, return_value=session):
            result = await make_request("GET", URL, {}, backoff=0)
        self.assertEqual(result, {"id": 1})
        session.get.assert_awaited_once()
        session.close.assert_awaited()

    async def test_retries_timeout_then_succeeds(self):
        session = make_session(asyncio.TimeoutError(), make_response(200, {"id": 1}))
        with patch(SESSION_PATH, return_value=session):
            result = await make_request("GET", URL, {}, backoff=0)
        self.assertEqual(result, {"id": 1})
        self.assertEqual(session.get.await_count, 2)

    async def test_retries_server_error_then_succeeds(self):
        session = make_session(make_response(503, {"error": "down"}), make_response(200, {"ok": True}))
        with patch(SESSION_PATH, return_value=session):
            result = await make_request("GET", URL, {}, backoff=0)
        self.assertEqual(result, {"ok": True})

    async def test_gives_up_after_max_attempts(self):
        session = make_session(*[asyncio.TimeoutError() for _ in range(3)])
        with patch(SESSION_PATH, return_value=session):
            with self.assertRaises(TransientNetworkError):
                await make_request("GET", URL, {}, backoff=0, max_attempts=3)
        self.assertEqual(session.get.await_count, 3)

    async def test_backoff_is_exponential(self):
        session = make_session(*[asyncio.TimeoutError() for _ in range(3)])
        sleep = AsyncMock()
        with patch(SESSION_PATH, return_value=session), \
                patch("custom_components.intra_logtime.requests.asyncio.sleep", new=sleep):
            with self.assertRaises(TransientNetworkError):
                await make_request("GET", URL, {}, backoff=1.0, max_attempts=3)
        self.assertEqual([c.args[0] for c in sleep.await_args_list], [1.0, 2.0])

    async def test_client_errors_are_not_retried(self):
        for status, error_type in ((404, NotFoundError), (403, ForbiddenError), (401, UnauthorizedError)):
            with self.subTest(status=status):
                session = make_session(make_response(status, {"error": "x"}), make_response(200, {}))
                with patch(SESSION_PATH, return_value=session):
                    with self.assertRaises(error_type):
                        await make_request("GET", URL, {}, backoff=0)
                session.get.assert_awaited_once()

    async def test_post_sends_form_data(self):
        session = make_session(make_response(200, {"access_token": "t"}))
        with patch(SESSION_PATH, return_value=session):
            await make_request("POST", URL, {}, data={"grant_type": "client_credentials"}, backoff=0)
        self.assertEqual(session.post.await_args.kwargs["data"], {"grant_type": "client_credentials"})

    async def test_unsupported_method(self):
        session = make_session()
        with patch(SESSION_PATH, return_value=session):
            with self.assertRaises(ValueError):
                await make_request("PATCH", URL, {}, backoff=0)
