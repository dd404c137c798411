"""
Tests for the WordPress REST client using httpx.MockTransport.
"""

import unittest

import httpx

from seo_blog_checker.clients.wordpress import WordPressClient
from seo_blog_checker.errors import ApiError, ConnectivityError, GatewayError, NotFoundError
from seo_blog_checker.schemas import ArticleIdentifier

BASE = "https://blog.example.com"

POST = {
    "id": 42,
    "slug": "hello-world",
    "link": f"{BASE}/hello-world/",
    "title": {"rendered": "Hello World"},
    "content": {"rendered": "<p>Hi there</p>"},
    "excerpt": {"rendered": ""},
    "meta": [],
    "yoast_head_json": {"description": "Meta"},
}


class RecordingHandler:
    """Routes requests by path and records every request seen."""

    def __init__(self, routes, probe_failures=0):
        self.routes = routes
        self.probe_failures = probe_failures
        self.requests = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if request.url.path == "/wp-json/":
            if self.probe_failures > 0:
                self.probe_failures -= 1
                raise httpx.ConnectError("connection refused", request=request)
            return httpx.Response(200, json={"name": "Example Blog", "url": BASE, "description": "d"})
        route = self.routes.get(request.url.path)
        if route is None:
            return httpx.Response(404, json={"code": "rest_post_invalid_id"})
        return route(request) if callable(route) else route

    @property
    def paths(self):
        return [r.url.path for r in self.requests]


def make_client(handler, **kwargs):
    kwargs.setdefault("retry_delay", 0)
    return WordPressClient(BASE, transport=httpx.MockTransport(handler), **kwargs)


class TestFetchArticle(unittest.IsolatedAsyncioTestCase):

    async def test_fetch_by_slug_takes_first_match(self):
        handler = RecordingHandler({"/wp-json/wp/v2/posts": httpx.Response(200, json=[POST, {**POST, "id": 2}])})
        async with make_client(handler) as client:
            post = await client.fetch_article(ArticleIdentifier(kind="slug", value="hello-world"))
        self.assertEqual(post.id, 42)
        self.assertEqual(post.shape, "cms")
        self.assertEqual(post.title, "Hello World")
        self.assertEqual(post.meta, {})
        self.assertEqual(handler.requests[-1].url.params["slug"], "hello-world")
        self.assertEqual(handler.paths, ["/wp-json/", "/wp-json/wp/v2/posts"])

    async def test_fetch_by_id(self):
        handler = RecordingHandler({"/wp-json/wp/v2/posts/42": httpx.Response(200, json=POST)})
        async with make_client(handler) as client:
            post = await client.fetch_article(ArticleIdentifier(kind="id", value="42"))
        self.assertEqual(post.slug, "hello-world")
        self.assertEqual(post.raw["id"], 42)

    async def test_custom_collection(self):
        handler = RecordingHandler({"/wp-json/wp/v2/pages/7": httpx.Response(200, json=POST)})
        async with make_client(handler, collection="pages") as client:
            await client.fetch_article(ArticleIdentifier(kind="id", value="7"))
        self.assertIn("/wp-json/wp/v2/pages/7", handler.paths)

    async def test_empty_slug_result_is_not_found(self):
        handler = RecordingHandler({"/wp-json/wp/v2/posts": httpx.Response(200, json=[])})
        async with make_client(handler) as client:
            with self.assertRaises(NotFoundError):
                await client.fetch_article(ArticleIdentifier(kind="slug", value="missing"))

    async def test_404_is_not_found(self):
        handler = RecordingHandler({})
        async with make_client(handler) as client:
            with self.assertRaises(NotFoundError) as ctx:
                await client.fetch_article(ArticleIdentifier(kind="id", value="999"))
        self.assertEqual(ctx.exception.identifier, "999")

    async def test_5xx_is_gateway_error_and_not_retried(self):
        handler = RecordingHandler({"/wp-json/wp/v2/posts/1": httpx.Response(502)})
        async with make_client(handler) as client:
            with self.assertRaises(GatewayError):
                await client.fetch_article(ArticleIdentifier(kind="id", value="1"))
        self.assertEqual(handler.paths.count("/wp-json/wp/v2/posts/1"), 1)

    async def test_other_status_is_api_error(self):
        handler = RecordingHandler({"/wp-json/wp/v2/posts/1": httpx.Response(401)})
        async with make_client(handler) as client:
            with self.assertRaises(ApiError) as ctx:
                await client.fetch_article(ArticleIdentifier(kind="id", value="1"))
        self.assertEqual(ctx.exception.status_code, 401)


class TestProbeRetry(unittest.IsolatedAsyncioTestCase):

    async def test_probe_failure_retried_then_succeeds(self):
        handler = RecordingHandler({"/wp-json/wp/v2/posts/42": httpx.Response(200, json=POST)}, probe_failures=2)
        async with make_client(handler, max_retries=3) as client:
            post = await client.fetch_article(ArticleIdentifier(kind="id", value="42"))
        self.assertEqual(post.id, 42)
        self.assertEqual(handler.paths.count("/wp-json/"), 3)

    async def test_probe_error_surfaces_after_ceiling(self):
        handler = RecordingHandler({}, probe_failures=10)
        async with make_client(handler, max_retries=3) as client:
            with self.assertRaises(ConnectivityError) as ctx:
                await client.fetch_article(ArticleIdentifier(kind="id", value="42"))
        self.assertTrue(ctx.exception.during_probe)
        self.assertEqual(handler.paths, ["/wp-json/"] * 3)


class TestSiteInfo(unittest.IsolatedAsyncioTestCase):

    async def test_site_info_and_connection(self):
        handler = RecordingHandler({})
        async with make_client(handler) as client:
            info = await client.get_site_info()
            self.assertTrue(await client.test_connection())
        self.assertEqual(info["name"], "Example Blog")
        self.assertIsNone(info["version"])

    async def test_connection_failure_returns_false(self):
        handler = RecordingHandler({}, probe_failures=1)
        async with make_client(handler) as client:
            self.assertFalse(await client.test_connection())


if __name__ == '__main__':
    unittest.main()
