"""
Tests for the command line interface and the error log.
"""

import json
import tempfile
import unittest
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock, patch

from seo_blog_checker.errors import ConfigError, NotFoundError
from seo_blog_checker.main import (
    build_parser,
    collect_identifiers,
    collect_urls,
    main,
    parse_identifier,
    run_pipeline,
)
from seo_blog_checker.schemas import ArticleIdentifier, BatchSummary
from seo_blog_checker.settings import Settings
from seo_blog_checker.utils.error_log import ErrorLogger

REPO_CONFIG_DIR = Path(__file__).resolve().parent.parent / "config"


class TestIdentifierParsing(unittest.TestCase):

    def test_numeric_is_id(self):
        self.assertEqual(parse_identifier(" 123 "), ArticleIdentifier(kind="id", value="123"))
        self.assertEqual(parse_identifier("hello-world"), ArticleIdentifier(kind="slug", value="hello-world"))

    def test_all_sources_combined(self):
        with tempfile.NamedTemporaryFile("w", suffix=".txt", delete=False) as f:
            f.write("# posts to check\n\nfrom-file\n77\n")
        self.addCleanup(Path(f.name).unlink)

        args = build_parser().parse_args([
            "evaluate", "--slug", "one", "--id", "2", "--slugs", "a, b", "--ids", "3,4", "--file", f.name,
        ])
        identifiers = collect_identifiers(args)
        self.assertEqual([(i.kind, i.value) for i in identifiers], [
            ("slug", "one"), ("id", "2"), ("slug", "a"), ("slug", "b"),
            ("id", "3"), ("id", "4"), ("slug", "from-file"), ("id", "77"),
        ])

    def test_non_numeric_id_rejected(self):
        args = build_parser().parse_args(["evaluate", "--ids", "3,abc"])
        with self.assertRaises(ConfigError):
            collect_identifiers(args)

    def test_missing_file(self):
        args = build_parser().parse_args(["evaluate", "--file", "/nonexistent/list.txt"])
        with self.assertRaises(ConfigError):
            collect_identifiers(args)

    def test_urls(self):
        args = build_parser().parse_args(["scrape", "--url", "https://example.com/post"])
        self.assertEqual(collect_urls(args), [ArticleIdentifier(kind="url", value="https://example.com/post")])
        args = build_parser().parse_args(["scrape", "--url", "example.com/post"])
        with self.assertRaises(ConfigError):
            collect_urls(args)


class TestExitCodes(unittest.TestCase):

    def setUp(self):
        patcher = patch("seo_blog_checker.settings.load_dotenv")
        patcher.start()
        self.addCleanup(patcher.stop)

    @patch.dict("os.environ", {}, clear=True)
    def test_no_identifiers_is_usage_error(self):
        self.assertEqual(main(["evaluate"]), 1)

    @patch.dict("os.environ", {"GEMINI_API_KEY": "key"}, clear=True)
    def test_missing_wordpress_url_is_config_error(self):
        self.assertEqual(main(["evaluate", "--slug", "post", "--no-csv"]), 1)

    def test_unknown_command_is_usage_error(self):
        self.assertEqual(main(["explode"]), 1)

    @patch.dict("os.environ", {}, clear=True)
    def test_bad_batch_size(self):
        self.assertEqual(main(["evaluate", "--slug", "post", "--batch-size", "0"]), 1)

    @patch.dict("os.environ", {"WORDPRESS_BASE_URL": "https://x", "GEMINI_API_KEY": "k"}, clear=True)
    @patch("seo_blog_checker.main.run_pipeline")
    def test_partial_failures_still_exit_zero(self, mock_run):
        async def fake_run(settings, args, identifiers):
            return BatchSummary(total=2, succeeded=1, failed=1)
        mock_run.side_effect = fake_run
        self.assertEqual(main(["evaluate", "--slugs", "a,b"]), 0)


class TestRunPipelineSetup(unittest.IsolatedAsyncioTestCase):

    @patch("seo_blog_checker.main.build_gemini")
    @patch("seo_blog_checker.main.build_wordpress")
    async def test_unwritable_reports_dir_is_config_error(self, mock_wordpress, mock_gemini):
        wordpress = MagicMock()
        wordpress.close = AsyncMock()
        mock_wordpress.return_value = wordpress

        with tempfile.TemporaryDirectory() as tmp:
            blocker = Path(tmp) / "reports"
            blocker.write_text("not a directory")
            settings = Settings.from_env(environ={
                "WORDPRESS_BASE_URL": "https://blog.example.com",
                "GEMINI_API_KEY": "key",
                "REPORTS_DIR": str(blocker),
                "LOGS_DIR": str(Path(tmp) / "logs"),
                "CONFIG_DIR": str(REPO_CONFIG_DIR),
            }, dotenv=False)
            args = build_parser().parse_args(["evaluate", "--slug", "post"])

            with self.assertRaises(ConfigError):
                await run_pipeline(settings, args, collect_identifiers(args))

        wordpress.close.assert_awaited_once()


class TestErrorLogger(unittest.IsolatedAsyncioTestCase):

    async def test_json_and_daily_log(self):
        with tempfile.TemporaryDirectory() as tmp:
            error_logger = ErrorLogger(Path(tmp) / "logs")
            error_logger.initialize()
            await error_logger.log_error("post-4", NotFoundError("Post with slug 'post-4' not found"))
            await error_logger.log_error("post-9", NotFoundError("missing"))

            entries = json.loads((Path(tmp) / "logs" / "error_log.json").read_text(encoding="utf-8"))
            daily = list((Path(tmp) / "logs").glob("errors_*.log"))
            summary = error_logger.get_error_summary()

        self.assertEqual([e["slug"] for e in entries], ["post-4", "post-9"])
        self.assertEqual(entries[0]["error_type"], "NotFoundError")
        self.assertEqual(len(daily), 1)
        self.assertEqual(summary, [{"error_type": "NotFoundError", "count": 2, "affected_slugs": ["post-4", "post-9"]}])

    async def test_never_raises(self):
        with tempfile.TemporaryDirectory() as tmp:
            blocker = Path(tmp) / "logs"
            blocker.write_text("not a directory")
            error_logger = ErrorLogger(blocker)
            error_logger.initialize()
            await error_logger.log_error("post", RuntimeError("boom"))


if __name__ == '__main__':
    unittest.main()
