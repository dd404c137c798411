"""
Command line interface.

    python main.py evaluate --slug my-post
    python main.py evaluate --ids 12,34 --batch-size 2 -v concise
    python main.py scrape --url https://example.com/blog/post
    python main.py check
    python main.py configs
"""

import argparse
import asyncio
import logging
import sys
from pathlib import Path
from typing import List, Optional

from .batch import DEFAULT_BATCH_SIZE, BatchProcessor, format_summary
from .clients.gemini import GeminiClient
from .clients.wordpress import WordPressClient
from .config_loader import ConfigLoader
from .errors import ConfigError
from .evaluator import SEOEvaluator
from .extractor import ContentExtractor
from .reports import ReportGenerator
from .schemas import ArticleIdentifier, BatchSummary
from .scraper import UniversalScraper
from .settings import Settings
from .utils.csv_writer import SummaryCSVWriter
from .utils.error_log import ErrorLogger

logger = logging.getLogger(__name__)

CSV_FILENAME = "seo_analysis_summary.csv"


# --- Identifier parsing ---

def parse_identifier(value: str) -> ArticleIdentifier:
    value = value.strip()
    return ArticleIdentifier(kind="id" if value.isdigit() else "slug", value=value)


def read_lines(path: str) -> List[str]:
    """Non-empty lines of a file, skipping '#' comments."""
    try:
        text = Path(path).read_text(encoding="utf-8")
    except FileNotFoundError as e:
        raise ConfigError(f"Input file not found: {path}") from e
    except OSError as e:
        raise ConfigError(f"Cannot read input file {path}: {e}") from e
    lines = []
    for line in text.splitlines():
        line = line.strip()
        if line and not line.startswith('#'):
            lines.append(line)
    return lines


def _split(values: Optional[str]) -> List[str]:
    return [v.strip() for v in (values or "").split(',') if v.strip()]


def collect_identifiers(args: argparse.Namespace) -> List[ArticleIdentifier]:
    identifiers: List[ArticleIdentifier] = []
    if args.slug:
        identifiers.append(ArticleIdentifier(kind="slug", value=args.slug.strip()))
    if args.id:
        identifiers.append(ArticleIdentifier(kind="id", value=str(args.id).strip()))
    identifiers.extend(ArticleIdentifier(kind="slug", value=v) for v in _split(args.slugs))
    identifiers.extend(ArticleIdentifier(kind="id", value=v) for v in _split(args.ids))
    if args.file:
        identifiers.extend(parse_identifier(line) for line in read_lines(args.file))

    for identifier in identifiers:
        if identifier.kind == "id" and not identifier.value.isdigit():
            raise ConfigError(f"Post ID must be numeric, got '{identifier.value}'")
    return identifiers


def collect_urls(args: argparse.Namespace) -> List[ArticleIdentifier]:
    urls = [args.url] if args.url else []
    if args.file:
        urls.extend(read_lines(args.file))
    for url in urls:
        if not url.startswith(("http://", "https://")):
            raise ConfigError(f"Not an http(s) URL: {url}")
    return [ArticleIdentifier(kind="url", value=url.strip()) for url in urls]


# --- Commands ---

def build_gemini(settings: Settings) -> GeminiClient:
    return GeminiClient(
        settings.require_gemini(),
        model=settings.gemini_model,
        timeout=settings.gemini_timeout,
        temperature=settings.gemini_temperature,
        top_k=settings.gemini_top_k,
        top_p=settings.gemini_top_p,
        max_output_tokens=settings.gemini_max_output_tokens,
    )


def build_wordpress(settings: Settings) -> WordPressClient:
    return WordPressClient(
        settings.require_wordpress(),
        collection=settings.wordpress_collection,
        timeout=settings.wordpress_timeout,
        max_retries=settings.wordpress_max_retries,
        retry_delay=settings.wordpress_retry_delay,
    )


async def run_pipeline(settings: Settings, args: argparse.Namespace,
                       identifiers: List[ArticleIdentifier]) -> BatchSummary:
    loader = ConfigLoader(settings.config_dir)
    extraction_config = loader.load_extraction_config(args.extraction_config)
    evaluation_config = loader.load_evaluation_config(args.evaluation_config)

    needs_wordpress = any(i.kind != "url" for i in identifiers)
    needs_scraper = any(i.kind == "url" for i in identifiers)
    gemini = build_gemini(settings)
    wordpress = None
    scraper = None
    try:
        wordpress = build_wordpress(settings) if needs_wordpress else None
        scraper = UniversalScraper(timeout=settings.wordpress_timeout) if needs_scraper else None

        csv_writer = None
        try:
            if not args.no_csv:
                csv_writer = SummaryCSVWriter(settings.reports_dir / CSV_FILENAME)
                csv_writer.initialize()
            error_logger = ErrorLogger(settings.logs_dir)
            error_logger.initialize()
        except OSError as e:
            raise ConfigError(f"Cannot prepare output directories: {e}") from e

        processor = BatchProcessor(
            evaluator=SEOEvaluator(gemini),
            extractor=ContentExtractor(extraction_config),
            report_generator=ReportGenerator(settings.reports_dir),
            evaluation_config=evaluation_config,
            wordpress=wordpress,
            scraper=scraper,
            csv_writer=csv_writer,
            error_logger=error_logger,
        )
        return await processor.run_batch(identifiers, batch_size=args.batch_size)
    finally:
        if wordpress is not None:
            await wordpress.close()
        if scraper is not None:
            await scraper.close()


def cmd_evaluate(settings: Settings, args: argparse.Namespace) -> int:
    identifiers = collect_identifiers(args)
    if not identifiers:
        raise ConfigError("No posts specified. Use --slug, --id, --slugs, --ids or --file")
    summary = asyncio.run(run_pipeline(settings, args, identifiers))
    print(format_summary(summary))
    logger.info(f"Reports saved to: {settings.reports_dir.resolve()}")
    return 0


def cmd_scrape(settings: Settings, args: argparse.Namespace) -> int:
    identifiers = collect_urls(args)
    if not identifiers:
        raise ConfigError("No URLs specified. Use --url or --file")
    summary = asyncio.run(run_pipeline(settings, args, identifiers))
    print(format_summary(summary))
    return 0


async def check_connections(settings: Settings) -> bool:
    ok = True
    async with build_wordpress(settings) as wordpress:
        if await wordpress.test_connection():
            info = await wordpress.get_site_info()
            logger.info(f"✅ WordPress: {info.get('name')} ({info.get('url')})")
        else:
            logger.error(f"❌ WordPress API unreachable at {settings.wordpress_base_url}")
            ok = False

    gemini = build_gemini(settings)
    if await gemini.test_connection():
        logger.info(f"✅ Gemini: model {gemini.model} responded")
    else:
        logger.error(f"❌ Gemini API check failed for model {gemini.model}")
        ok = False
    return ok


def cmd_check(settings: Settings, args: argparse.Namespace) -> int:
    return 0 if asyncio.run(check_connections(settings)) else 1


def cmd_configs(settings: Settings, args: argparse.Namespace) -> int:
    loader = ConfigLoader(settings.config_dir)
    print("Extraction configs: " + ", ".join(loader.list_extraction_configs()))
    print("Evaluation configs: " + ", ".join(loader.list_evaluation_configs()))
    return 0


def _add_pipeline_options(parser: argparse.ArgumentParser):
    parser.add_argument("-e", "--extraction-config", default="default", help="Extraction configuration name")
    parser.add_argument("-v", "--evaluation-config", default="default", help="Evaluation configuration name")
    parser.add_argument("--batch-size", type=int, default=DEFAULT_BATCH_SIZE,
                        help="Articles processed concurrently per batch")
    parser.add_argument("--no-csv", action="store_true", help="Do not append to the CSV summary")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="seo-blog-checker",
        description="Evaluate SEO quality of WordPress blog posts using Gemini AI",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    evaluate = subparsers.add_parser("evaluate", help="Evaluate WordPress posts by slug or id")
    evaluate.add_argument("-s", "--slug", help="WordPress post slug")
    evaluate.add_argument("-i", "--id", help="WordPress post ID")
    evaluate.add_argument("--slugs", help="Comma-separated list of slugs")
    evaluate.add_argument("--ids", help="Comma-separated list of IDs")
    evaluate.add_argument("-f", "--file", help="File with one slug or ID per line ('#' for comments)")
    _add_pipeline_options(evaluate)
    evaluate.set_defaults(handler=cmd_evaluate)

    scrape = subparsers.add_parser("scrape", help="Scrape and evaluate arbitrary URLs")
    scrape.add_argument("-u", "--url", help="URL to scrape")
    scrape.add_argument("-f", "--file", help="File with one URL per line ('#' for comments)")
    _add_pipeline_options(scrape)
    scrape.set_defaults(handler=cmd_scrape)

    check = subparsers.add_parser("check", help="Test the WordPress and Gemini connections")
    check.set_defaults(handler=cmd_check)

    configs = subparsers.add_parser("configs", help="List available configurations")
    configs.set_defaults(handler=cmd_configs)
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    logging.basicConfig(level=logging.INFO, format='%(asctime)s - %(levelname)s - %(message)s')
    try:
        args = build_parser().parse_args(argv)
    except SystemExit as e:
        # argparse exits with 2 on usage errors, 0 for --help
        return 1 if e.code else 0

    try:
        settings = Settings.from_env()
        level = logging.getLevelName(settings.log_level.upper())
        if isinstance(level, int):
            logging.getLogger().setLevel(level)
        if getattr(args, "batch_size", 1) < 1:
            raise ConfigError("--batch-size must be at least 1")
        return args.handler(settings, args)
    except ConfigError as e:
        logger.error(f"❌ {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
