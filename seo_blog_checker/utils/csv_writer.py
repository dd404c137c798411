import asyncio
import csv
import io
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import List, Optional, Union

from ..schemas import CanonicalContentRecord, ScoredEvaluation

logger = logging.getLogger(__name__)

CSV_HEADERS = [
    "URL",
    "Slug",
    "Score",
    "Status",
    "Top Strengths",
    "Critical Issues",
    "Update Priority",
    "Last Updated",
    "Word Count",
    "Processing Date",
]
MAX_LIST_ITEMS = 3


def status_from_score(score: float) -> str:
    if score >= 85:
        return "Excellent"
    if score >= 75:
        return "Good"
    if score >= 60:
        return "Needs Update"
    return "Critical"


def update_priority(score: float, word_count: Optional[int]) -> str:
    if score < 60:
        return "High"
    if score < 75 and (word_count or 0) > 1000:
        return "High"
    if score < 75:
        return "Medium"
    return "Low"


def _format_row(values: List) -> str:
    buffer = io.StringIO()
    csv.writer(buffer, lineterminator="\n").writerow(values)
    return buffer.getvalue()


class SummaryCSVWriter:
    """Appends one summary row per evaluated article to a shared CSV file."""

    def __init__(self, filepath: Union[str, Path]):
        self.filepath = Path(filepath)

    def initialize(self):
        self.filepath.parent.mkdir(parents=True, exist_ok=True)
        if not self.filepath.exists():
            self.filepath.write_text(_format_row(CSV_HEADERS), encoding="utf-8")

    def build_row(self, evaluation: ScoredEvaluation, record: CanonicalContentRecord) -> List:
        criteria = list(evaluation.criteria().values())
        strengths = [s for c in sorted(criteria, key=lambda c: -c.score) for s in c.strengths][:MAX_LIST_ITEMS]
        issues = [w for c in sorted(criteria, key=lambda c: c.score) for w in c.weaknesses][:MAX_LIST_ITEMS]
        word_count = record.word_count if record.word_count is not None else len(record.content.split())
        return [
            record.url,
            record.slug,
            evaluation.overall_score,
            status_from_score(evaluation.overall_score),
            "; ".join(strengths),
            "; ".join(issues),
            update_priority(evaluation.overall_score, word_count),
            record.last_modified or "Unknown",
            word_count,
            datetime.now(timezone.utc).isoformat(),
        ]

    async def append_result(self, evaluation: ScoredEvaluation, record: CanonicalContentRecord):
        """Append one row; a write failure is logged, never raised."""
        line = _format_row(self.build_row(evaluation, record))
        try:
            await asyncio.to_thread(self._append, line)
        except OSError as e:
            logger.error(f"❌ Failed to append CSV row for {record.url}: {e}")

    def _append(self, line: str):
        if not self.filepath.exists():
            self.initialize()
        # one write() per row keeps rows from concurrent articles intact
        with open(self.filepath, "a", encoding="utf-8", newline="") as f:
            f.write(line)
