"""
Tests for the Gemini client wrapper: error mapping and response handling.
"""

import unittest
from unittest.mock import AsyncMock, MagicMock, patch

import httpx
from google.genai import errors

from seo_blog_checker.clients.gemini import GeminiClient
from seo_blog_checker.errors import (
    BadRequestError,
    EvaluationConnectivityError,
    EvaluationTransportError,
    ModelNotFoundError,
    RateLimitError,
)


def api_error(code, message="upstream message"):
    return errors.APIError(code, {"error": {"code": code, "message": message, "status": "ERROR"}})


class TestGeminiClient(unittest.IsolatedAsyncioTestCase):

    def setUp(self):
        patcher = patch('seo_blog_checker.clients.gemini.genai.Client')
        self.mock_client_class = patcher.start()
        self.addCleanup(patcher.stop)
        self.mock_client = MagicMock()
        self.mock_client.aio.models.generate_content = AsyncMock()
        self.mock_client_class.return_value = self.mock_client
        self.client = GeminiClient("test_key", model="gemini-test", timeout=60)

    def respond(self, text):
        response = MagicMock()
        response.text = text
        self.mock_client.aio.models.generate_content.return_value = response

    async def test_generate_text(self):
        self.respond('{"ok": true}')
        text = await self.client.generate_text("prompt")
        self.assertEqual(text, '{"ok": true}')

        kwargs = self.mock_client.aio.models.generate_content.call_args.kwargs
        self.assertEqual(kwargs["model"], "gemini-test")
        self.assertEqual(kwargs["contents"], "prompt")
        self.assertEqual(kwargs["config"].temperature, 0.3)
        self.assertEqual(kwargs["config"].top_k, 40)
        self.assertEqual(kwargs["config"].top_p, 0.95)

    def test_client_timeout_in_milliseconds(self):
        http_options = self.mock_client_class.call_args.kwargs["http_options"]
        self.assertEqual(http_options.timeout, 60000)

    async def test_empty_text_is_transport_error(self):
        self.respond(None)
        with self.assertRaises(EvaluationTransportError):
            await self.client.generate_text("prompt")

    async def test_error_mapping(self):
        cases = [
            (429, RateLimitError),
            (400, BadRequestError),
            (404, ModelNotFoundError),
            (500, EvaluationTransportError),
        ]
        for code, expected in cases:
            with self.subTest(code=code):
                self.mock_client.aio.models.generate_content.side_effect = api_error(code)
                with self.assertRaises(expected) as ctx:
                    await self.client.generate_text("prompt")
                self.assertIsInstance(ctx.exception.__cause__, errors.APIError)

    async def test_bad_request_carries_upstream_message(self):
        self.mock_client.aio.models.generate_content.side_effect = api_error(400, "Invalid argument: contents")
        with self.assertRaises(BadRequestError) as ctx:
            await self.client.generate_text("prompt")
        self.assertIn("Invalid argument: contents", str(ctx.exception))

    async def test_network_failure(self):
        self.mock_client.aio.models.generate_content.side_effect = httpx.ConnectError("unreachable")
        with self.assertRaises(EvaluationConnectivityError):
            await self.client.generate_text("prompt")

    async def test_timeout(self):
        self.mock_client.aio.models.generate_content.side_effect = httpx.ReadTimeout("slow")
        with self.assertRaises(EvaluationConnectivityError):
            await self.client.generate_text("prompt")

    async def test_connection_check(self):
        self.respond("OK")
        self.assertTrue(await self.client.test_connection())
        self.mock_client.aio.models.generate_content.side_effect = api_error(429)
        self.assertFalse(await self.client.test_connection())


if __name__ == '__main__':
    unittest.main()
