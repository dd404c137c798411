"""
Batch orchestration: fetch -> normalize -> evaluate -> report, many articles
at a time.

Identifiers are split into contiguous chunks of ``batch_size``. Chunks run one
after another; the articles inside a chunk run concurrently and a failure in
one never cancels its siblings.
"""

import asyncio
import logging
import time
from typing import Iterator, List, Optional, Sequence, TypeVar, Union

from .clients.wordpress import WordPressClient
from .evaluator import SEOEvaluator
from .extractor import ContentExtractor
from .reports import ReportGenerator
from .schemas import (
    ArticleFailure,
    ArticleIdentifier,
    ArticleSuccess,
    BatchSummary,
    EvaluationConfig,
    RawContentRecord,
)
from .scraper import UniversalScraper
from .utils.csv_writer import SummaryCSVWriter
from .utils.error_log import ErrorLogger

logger = logging.getLogger(__name__)

DEFAULT_BATCH_SIZE = 3
TOP_COUNT = 3

T = TypeVar("T")


def chunked(items: Sequence[T], size: int) -> Iterator[List[T]]:
    if size < 1:
        raise ValueError(f"Batch size must be at least 1, got {size}")
    for start in range(0, len(items), size):
        yield list(items[start:start + size])


class BatchProcessor:
    def __init__(self, evaluator: SEOEvaluator, extractor: ContentExtractor,
                 report_generator: ReportGenerator, evaluation_config: EvaluationConfig,
                 wordpress: Optional[WordPressClient] = None,
                 scraper: Optional[UniversalScraper] = None,
                 csv_writer: Optional[SummaryCSVWriter] = None,
                 error_logger: Optional[ErrorLogger] = None):
        self.evaluator = evaluator
        self.extractor = extractor
        self.reports = report_generator
        self.config = evaluation_config
        self.wordpress = wordpress
        self.scraper = scraper
        self.csv_writer = csv_writer
        self.error_logger = error_logger

    async def fetch(self, identifier: ArticleIdentifier) -> RawContentRecord:
        if identifier.kind == "url":
            if self.scraper is None:
                raise RuntimeError("No scraper configured for URL identifiers")
            return await self.scraper.scrape_url(identifier.value)
        if self.wordpress is None:
            raise RuntimeError("No WordPress client configured")
        return await self.wordpress.fetch_article(identifier)

    async def process_article(self, identifier: ArticleIdentifier) -> ArticleSuccess:
        """Run the full pipeline for one article. Errors propagate to the caller."""
        raw = await self.fetch(identifier)
        record = self.extractor.extract(raw)
        evaluation = await self.evaluator.evaluate(record, self.config)

        report_path = await self.reports.save(
            evaluation, record, identifier.value,
            include_raw_data=self.config.output_format.include_raw_data,
        )
        if self.csv_writer is not None:
            await self.csv_writer.append_result(evaluation, record)

        return ArticleSuccess(
            identifier=identifier.value,
            slug=record.slug,
            title=record.title,
            url=record.url,
            overall_score=evaluation.overall_score,
            optimization_recommendation=evaluation.optimization_recommendation,
            report_path=str(report_path),
        )

    async def run_batch(self, identifiers: Sequence[ArticleIdentifier],
                        batch_size: int = DEFAULT_BATCH_SIZE) -> BatchSummary:
        started = time.monotonic()
        chunks = list(chunked(identifiers, batch_size))
        results: List[Union[ArticleSuccess, ArticleFailure]] = []
        logger.info(f"🚀 Processing {len(identifiers)} articles in {len(chunks)} batches of up to {batch_size}")

        for number, chunk in enumerate(chunks, 1):
            logger.info(f"📦 Batch {number}/{len(chunks)}: {', '.join(i.value for i in chunk)}")
            outcomes = await asyncio.gather(
                *(self.process_article(identifier) for identifier in chunk),
                return_exceptions=True,
            )
            for identifier, outcome in zip(chunk, outcomes):
                if isinstance(outcome, ArticleSuccess):
                    logger.info(f"✅ {identifier.value}: {outcome.overall_score}/100")
                    results.append(outcome)
                    continue
                if not isinstance(outcome, Exception):
                    raise outcome
                logger.error(f"❌ {identifier.value}: {type(outcome).__name__}: {outcome}")
                if self.error_logger is not None:
                    await self.error_logger.log_error(identifier.value, outcome)
                results.append(ArticleFailure(
                    identifier=identifier.value,
                    message=str(outcome),
                    error_type=type(outcome).__name__,
                ))

        return self.summarize(results, time.monotonic() - started)

    def summarize(self, results: List[Union[ArticleSuccess, ArticleFailure]],
                  elapsed_seconds: float = 0.0) -> BatchSummary:
        successes = [r for r in results if isinstance(r, ArticleSuccess)]
        failures = [r for r in results if isinstance(r, ArticleFailure)]
        scores = [s.overall_score for s in successes]
        ranked = sorted(successes, key=lambda s: s.overall_score, reverse=True)
        return BatchSummary(
            total=len(results),
            succeeded=len(successes),
            failed=len(failures),
            average_score=round(sum(scores) / len(scores), 1) if scores else None,
            min_score=min(scores) if scores else None,
            max_score=max(scores) if scores else None,
            top_performers=ranked[:TOP_COUNT],
            needs_optimization=[s for s in successes if s.optimization_recommendation == "Optimize"][:TOP_COUNT],
            failures=failures,
            results=results,
            elapsed_seconds=round(elapsed_seconds, 2),
        )


def format_summary(summary: BatchSummary) -> str:
    """Operator-facing text for the end of a run."""
    lines = [
        "=" * 60,
        "📊 SEO BATCH SUMMARY",
        "=" * 60,
        f"Total articles: {summary.total}",
        f"✅ Succeeded:   {summary.succeeded}",
        f"❌ Failed:      {summary.failed}",
        f"⏱️ Elapsed:     {summary.elapsed_seconds}s",
    ]
    if summary.succeeded:
        lines += [
            "",
            f"Average score: {summary.average_score}/100",
            f"Lowest score:  {summary.min_score}/100",
            f"Highest score: {summary.max_score}/100",
            "",
            "🏆 Top performers:",
        ]
        lines += [f"  {i}. {s.title or s.slug} ({s.overall_score}/100)"
                  for i, s in enumerate(summary.top_performers, 1)]
        if summary.needs_optimization:
            lines += ["", "🔧 Needs optimization:"]
            lines += [f"  - {s.title or s.slug} ({s.overall_score}/100) -> {s.report_path}"
                      for s in summary.needs_optimization]
    if summary.failures:
        lines += ["", "Failures (re-run these):"]
        lines += [f"  - {f.identifier}: [{f.error_type}] {f.message}" for f in summary.failures]
    lines.append("=" * 60)
    return "\n".join(lines)
