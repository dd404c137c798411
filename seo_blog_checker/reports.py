"""
Markdown / JSON report rendering for a scored evaluation.

One directory per article under ``reports_dir``:

    seo-analysis-report.md    full technical report
    executive-summary.md      short overview for stakeholders
    content-creator-guide.md  what to fix, for the editor
    metadata.json             identifiers, score, model, timestamp
    raw-evaluation.json       the complete ScoredEvaluation
"""

import asyncio
import json
import logging
import re
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Union

from .errors import ReportError
from .schemas import CRITERION_LABELS, CanonicalContentRecord, ScoredEvaluation

logger = logging.getLogger(__name__)

REPORT_FILE = "seo-analysis-report.md"
EXECUTIVE_FILE = "executive-summary.md"
CREATOR_FILE = "content-creator-guide.md"
METADATA_FILE = "metadata.json"
RAW_FILE = "raw-evaluation.json"

STRENGTH_THRESHOLD = 80
UNSAFE_PATH_CHARS = re.compile(r'[^A-Za-z0-9._-]+')


def score_status(score: float) -> str:
    if score >= 90:
        return "Excellent"
    if score >= 80:
        return "Good"
    if score >= 70:
        return "Fair"
    if score >= 60:
        return "Needs Improvement"
    return "Poor"


def score_emoji(score: float) -> str:
    if score >= 70:
        return "🟢"
    if score >= 60:
        return "🟡"
    return "🔴"


def score_bar(score: float) -> str:
    filled = max(0, min(10, int(round(score / 10))))
    return f"`{'█' * filled}{'░' * (10 - filled)}` {score}%"


def safe_directory_name(name: str) -> str:
    cleaned = UNSAFE_PATH_CHARS.sub('-', str(name)).strip('-.')
    return cleaned or "article"


def _numbered(items: List[str]) -> str:
    return "\n".join(f"{i}. {item}" for i, item in enumerate(items, 1))


class ReportGenerator:
    def __init__(self, reports_dir: Union[str, Path] = "reports"):
        self.reports_dir = Path(reports_dir)

    def metrics_table(self, evaluation: ScoredEvaluation) -> str:
        rows = ["| Metric | Score | Status |", "|--------|-------|--------|"]
        for name, criterion in evaluation.criteria().items():
            rows.append(
                f"| {CRITERION_LABELS[name]} | {criterion.score:g}/100 | "
                f"{score_emoji(criterion.score)} {score_status(criterion.score)} |"
            )
        return "\n".join(rows)

    def build_report(self, evaluation: ScoredEvaluation, record: CanonicalContentRecord,
                     include_raw_data: bool = False) -> str:
        """The full technical report."""
        overall = evaluation.overall_score
        sections = [f"""# SEO Analysis Report

**Post Title:** {record.title or 'N/A'}
**URL:** {record.url or 'N/A'}
**Analysis Date:** {datetime.now().strftime('%Y-%m-%d')}
**AI Model:** {evaluation.model}

## Overall Score: {score_emoji(overall)} {overall}/100

{score_bar(overall)}

**Recommendation:** {evaluation.optimization_recommendation} ({evaluation.priority} priority)

---
""", f"""## 📊 Executive Summary

{evaluation.summary or 'No summary provided.'}

### Key Metrics

{self.metrics_table(evaluation)}

---
"""]

        analysis = ["## 🔍 Detailed Analysis\n"]
        for name, criterion in evaluation.criteria().items():
            analysis.append(f"### {CRITERION_LABELS[name]} {score_emoji(criterion.score)} {criterion.score:g}/100\n")
            if criterion.analysis:
                analysis.append(f"{criterion.analysis}\n")
            for title, items in (("Strengths", criterion.strengths),
                                 ("Weaknesses", criterion.weaknesses),
                                 ("Recommendations", criterion.recommendations)):
                if items:
                    analysis.append(f"**{title}:**\n{_numbered(items)}\n")
            analysis.append("---\n")
        sections.append("\n".join(analysis))

        if evaluation.priority_recommendations:
            lines = ["## 🎯 Priority Recommendations\n"]
            lines.extend(f"### {i}. {rec}\n" for i, rec in enumerate(evaluation.priority_recommendations, 1))
            lines.append("---\n")
            sections.append("\n".join(lines))

        if include_raw_data:
            sections.append(self.technical_details(evaluation, record))
        return "\n".join(sections)

    def technical_details(self, evaluation: ScoredEvaluation, record: CanonicalContentRecord) -> str:
        word_count = record.word_count if record.word_count is not None else len(record.content.split())
        return f"""## 🔧 Technical Details

### Content Statistics
- **Word Count:** {word_count}
- **Title Length:** {len(record.title or '')} characters
- **Meta Description Length:** {len(record.meta_description or '')} characters
- **Keywords Count:** {len(record.keywords or [])}
- **Model Reported Overall Score:** {evaluation.reported_overall_score if evaluation.reported_overall_score is not None else 'N/A'}

### Raw Evaluation Data
```json
{json.dumps(evaluation.model_dump(), indent=2, ensure_ascii=False)}
```

---
"""

    def build_executive_summary(self, evaluation: ScoredEvaluation, record: CanonicalContentRecord) -> str:
        actions = _numbered(evaluation.priority_recommendations) or "No priority actions."
        return f"""# SEO Performance Summary

**Post:** {record.title}
**Score:** {evaluation.overall_score}/100 ({score_status(evaluation.overall_score)})
**Recommendation:** {evaluation.optimization_recommendation}
**Date:** {datetime.now().strftime('%Y-%m-%d')}

## Key Findings

{evaluation.summary or 'No summary provided.'}

## Priority Actions

{actions}

## Performance Overview

{self.metrics_table(evaluation)}
"""

    def build_content_creator_guide(self, evaluation: ScoredEvaluation, record: CanonicalContentRecord) -> str:
        positives, improvements = [], []
        for name, criterion in evaluation.criteria().items():
            label = CRITERION_LABELS[name]
            if criterion.score >= STRENGTH_THRESHOLD:
                first_sentence = criterion.analysis.split('.')[0].strip()
                if first_sentence:
                    positives.append(f"- **{label}**: {first_sentence}.")
                elif criterion.strengths:
                    positives.append(f"- **{label}**: {criterion.strengths[0]}")
            elif criterion.recommendations:
                improvements.append(f"- **{label}**: {criterion.recommendations[0]}")

        quick_wins = _numbered(evaluation.priority_recommendations[:3]) or "No quick wins identified."
        return f"""# Content Optimization Guide

**Post:** {record.title}
**Current Score:** {evaluation.overall_score}/100

## What's Working Well

{chr(10).join(positives) or '- No specific strengths identified in this analysis.'}

## Areas for Improvement

{chr(10).join(improvements) or '- No specific improvements needed.'}

## Quick Wins

{quick_wins}

## Next Steps

1. Review the detailed analysis in {REPORT_FILE}
2. Implement the top 3 recommendations
3. Re-run the analysis after the changes are published
"""

    def build_metadata(self, evaluation: ScoredEvaluation, record: CanonicalContentRecord) -> Dict[str, Any]:
        return {
            "generated_at": datetime.now(timezone.utc).isoformat(),
            "post_id": record.post_id,
            "post_title": record.title,
            "post_slug": record.slug,
            "post_url": record.url,
            "overall_score": evaluation.overall_score,
            "optimization_recommendation": evaluation.optimization_recommendation,
            "priority": evaluation.priority,
            "model_used": evaluation.model,
            "report_type": evaluation.report_type,
        }

    async def save(self, evaluation: ScoredEvaluation, record: CanonicalContentRecord,
                   directory_name: str, include_raw_data: bool = False) -> Path:
        """Render and write every report file; returns the main report path."""
        files = {
            REPORT_FILE: self.build_report(evaluation, record, include_raw_data),
            EXECUTIVE_FILE: self.build_executive_summary(evaluation, record),
            CREATOR_FILE: self.build_content_creator_guide(evaluation, record),
            METADATA_FILE: json.dumps(self.build_metadata(evaluation, record), indent=2, ensure_ascii=False),
            RAW_FILE: json.dumps(evaluation.model_dump(), indent=2, ensure_ascii=False),
        }
        post_dir = self.reports_dir / safe_directory_name(directory_name)
        try:
            await asyncio.to_thread(self._write_files, post_dir, files)
        except OSError as e:
            raise ReportError(f"Failed to save report to {post_dir}: {e}") from e

        report_path = post_dir / REPORT_FILE
        logger.info(f"📝 Report saved: {report_path}")
        return report_path

    @staticmethod
    def _write_files(post_dir: Path, files: Dict[str, str]) -> None:
        post_dir.mkdir(parents=True, exist_ok=True)
        for filename, content in files.items():
            (post_dir / filename).write_text(content, encoding="utf-8")
