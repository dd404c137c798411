"""
Tests for BatchProcessor: chunking, failure isolation and the run summary.
"""

import asyncio
import tempfile
import unittest
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock

from seo_blog_checker.batch import BatchProcessor, chunked, format_summary
from seo_blog_checker.errors import NotFoundError
from seo_blog_checker.extractor import ContentExtractor
from seo_blog_checker.reports import ReportGenerator
from seo_blog_checker.schemas import (
    ArticleIdentifier,
    CMSPost,
    CriterionConfig,
    CriterionEvaluation,
    EvaluationConfig,
    ScoredEvaluation,
)
from seo_blog_checker.utils.csv_writer import SummaryCSVWriter
from seo_blog_checker.utils.error_log import ErrorLogger

CRITERIA = ["eeat", "technical", "relevance", "text_quality", "ai_optimization", "freshness"]
SCORES = {"post-1": 90, "post-2": 70, "post-3": 80, "post-5": 60}


def make_evaluation(score):
    criterion = CriterionEvaluation(score=score, analysis="ok", recommendations=["Do more"])
    return ScoredEvaluation(
        **{f"{name}_score": criterion for name in CRITERIA},
        overall_score=score,
        optimization_recommendation="Optimize" if score < 75 else "Not Optimize",
        priority="low",
        timestamp="2024-01-01T00:00:00+00:00",
        model="gemini-test",
    )


class FakeWordPress:
    """Serves post-N slugs, except 'post-4', and tracks concurrency."""

    def __init__(self):
        self.in_flight = 0
        self.peak = 0
        self.started = []

    async def fetch_article(self, identifier):
        self.started.append(identifier.value)
        self.in_flight += 1
        self.peak = max(self.peak, self.in_flight)
        try:
            await asyncio.sleep(0.01)
            if identifier.value == "post-4":
                raise NotFoundError(f"Post with slug '{identifier.value}' not found", identifier=identifier.value)
            return CMSPost(id=identifier.value[-1], slug=identifier.value,
                           link=f"https://blog.example.com/{identifier.value}/",
                           title=identifier.value.title(), content="<p>Body text</p>")
        finally:
            self.in_flight -= 1


class TestChunked(unittest.TestCase):

    def test_chunk_sizes(self):
        self.assertEqual([len(c) for c in chunked(list(range(5)), 2)], [2, 2, 1])
        self.assertEqual(list(chunked([], 3)), [])

    def test_invalid_size(self):
        with self.assertRaises(ValueError):
            list(chunked([1], 0))


class TestRunBatch(unittest.IsolatedAsyncioTestCase):

    def setUp(self):
        self.tmp = tempfile.TemporaryDirectory()
        self.addCleanup(self.tmp.cleanup)
        self.root = Path(self.tmp.name)

        self.wordpress = FakeWordPress()
        self.evaluator = MagicMock()
        self.evaluator.evaluate = AsyncMock(side_effect=lambda record, config: make_evaluation(SCORES[record.slug]))
        self.csv_writer = SummaryCSVWriter(self.root / "reports" / "summary.csv")
        self.csv_writer.initialize()
        self.processor = BatchProcessor(
            evaluator=self.evaluator,
            extractor=ContentExtractor(),
            report_generator=ReportGenerator(self.root / "reports"),
            evaluation_config=EvaluationConfig(evaluation_criteria=[CriterionConfig(name=n) for n in CRITERIA]),
            wordpress=self.wordpress,
            csv_writer=self.csv_writer,
            error_logger=ErrorLogger(self.root / "logs"),
        )
        self.identifiers = [ArticleIdentifier(kind="slug", value=f"post-{i}") for i in range(1, 6)]

    async def test_one_failure_is_isolated(self):
        summary = await self.processor.run_batch(self.identifiers, batch_size=2)

        self.assertEqual(summary.total, 5)
        self.assertEqual(summary.succeeded, 4)
        self.assertEqual(summary.failed, 1)
        self.assertEqual(summary.failures[0].identifier, "post-4")
        self.assertEqual(summary.failures[0].error_type, "NotFoundError")
        self.assertIn("not found", summary.failures[0].message)

    async def test_chunks_run_sequentially(self):
        await self.processor.run_batch(self.identifiers, batch_size=2)
        self.assertEqual(self.wordpress.peak, 2)
        self.assertEqual(self.wordpress.started, [i.value for i in self.identifiers])

    async def test_summary_statistics(self):
        summary = await self.processor.run_batch(self.identifiers, batch_size=3)
        self.assertEqual(summary.average_score, 75.0)
        self.assertEqual(summary.min_score, 60)
        self.assertEqual(summary.max_score, 90)
        self.assertEqual([s.slug for s in summary.top_performers], ["post-1", "post-3", "post-2"])
        self.assertEqual([s.slug for s in summary.needs_optimization], ["post-2", "post-5"])

    async def test_outputs_written(self):
        summary = await self.processor.run_batch(self.identifiers, batch_size=2)
        report = Path(summary.top_performers[0].report_path)
        self.assertTrue(report.exists())
        self.assertTrue((report.parent / "raw-evaluation.json").exists())

        rows = (self.root / "reports" / "summary.csv").read_text(encoding="utf-8").splitlines()
        self.assertEqual(len(rows), 5)  # header + 4 successes
        self.assertTrue((self.root / "logs" / "error_log.json").exists())

    async def test_summary_text_lists_failures(self):
        summary = await self.processor.run_batch(self.identifiers, batch_size=2)
        text = format_summary(summary)
        self.assertIn("Succeeded:   4", text)
        self.assertIn("post-4: [NotFoundError]", text)

    async def test_url_identifiers_use_scraper(self):
        scraper = MagicMock()
        scraper.scrape_url = AsyncMock(return_value=CMSPost(id=1, slug="post-1", link="https://x/post-1",
                                                            title="Scraped", content="<p>x</p>"))
        self.processor.scraper = scraper
        summary = await self.processor.run_batch([ArticleIdentifier(kind="url", value="https://x/post-1")])
        scraper.scrape_url.assert_awaited_once_with("https://x/post-1")
        self.assertEqual(summary.succeeded, 1)

    async def test_reports_keyed_by_identifier(self):
        identifiers = [ArticleIdentifier(kind="id", value="123"), ArticleIdentifier(kind="slug", value="post-1")]
        wordpress = MagicMock()
        wordpress.fetch_article = AsyncMock(return_value=CMSPost(
            id=123, slug="post-1", link="https://blog.example.com/post-1/",
            title="Post 1", content="<p>Body text</p>"))
        self.processor.wordpress = wordpress

        summary = await self.processor.run_batch(identifiers, batch_size=2)

        reports = self.root / "reports"
        self.assertEqual(summary.succeeded, 2)
        self.assertEqual(sorted(Path(r.report_path).parent.name for r in summary.results),
                         ["123", "post-1"])
        self.assertTrue((reports / "123" / "seo-analysis-report.md").exists())
        self.assertTrue((reports / "post-1" / "seo-analysis-report.md").exists())


if __name__ == '__main__':
    unittest.main()
