"""
Evaluation prompt templates.

The prompt embeds the canonical record (printing "Not found" for anything
missing), the six weighted criteria, calibration guidance, and the exact JSON
shape the response must follow.
"""

import json
import logging
from typing import Any, List, Optional

from .schemas import (
    CRITERION_LABELS,
    CanonicalContentRecord,
    EvaluationConfig,
    EvaluationCriterion,
    score_field,
)

logger = logging.getLogger(__name__)

NOT_FOUND = "Not found"
CONTENT_CHAR_LIMIT = 30000

# Fallback descriptions / checklists when the evaluation config leaves them out.
DEFAULT_DESCRIPTIONS = {
    "eeat": "Experience, expertise, authoritativeness and trustworthiness of the content and its author.",
    "technical": "Metadata completeness, heading structure, canonical/robots setup and internal linking.",
    "relevance": "How well the content matches search intent and covers the topic comprehensively.",
    "text_quality": "Writing style, readability, grammar, formatting and scannability.",
    "ai_optimization": "Readiness for featured snippets, AI overviews, voice search and structured data.",
    "freshness": "Whether facts, prices, dates and seasonal information are current.",
}

DEFAULT_CHECKLISTS = {
    "eeat": [
        "Author is named and credentials or first-hand experience are visible",
        "Claims are backed by sources, data or personal experience",
        "Brand expertise is integrated naturally",
    ],
    "technical": [
        "Title and meta description exist and have sensible lengths",
        "One H1 and a logical H2/H3 hierarchy",
        "Canonical URL and indexable robots directives",
        "Open Graph and Twitter metadata present",
    ],
    "relevance": [
        "Primary keyword reflected in title, intro and headings",
        "Search intent answered early and completely",
        "Related sub-topics and user questions covered",
    ],
    "text_quality": [
        "Short paragraphs, clear sentences, no filler",
        "Lists, tables and emphasis used where they help",
        "No spelling or grammar problems",
    ],
    "ai_optimization": [
        "Direct, concise answers suitable for featured snippets",
        "Question-style headings and an FAQ section",
        "Entities, facts and figures stated explicitly",
    ],
    "freshness": [
        "Last modified date is recent",
        "Prices, events and statistics are up to date",
        "Seasonal or time-sensitive information is accurate",
    ],
}

CALIBRATION = """SCORING CALIBRATION:
- 85-100: excellent, only minor polish needed
- 70-84: good, solid content with clear improvement opportunities
- 55-69: fair, noticeable gaps
- 40-54: weak, significant problems
- below 40: reserve for content that is missing or fundamentally broken
Most competently written posts score between 65 and 85. Do not grade harshly,
and do not give every criterion the same score."""


def _value(value: Any) -> str:
    if value is None or value == "" or value == []:
        return NOT_FOUND
    if isinstance(value, list):
        return ", ".join(str(v) for v in value)
    return str(value)


class EvaluationPromptBuilder:
    """Builds the evaluation prompt for the configured report type."""

    def __init__(self, content_char_limit: int = CONTENT_CHAR_LIMIT):
        self.content_char_limit = content_char_limit

    def build(self, record: CanonicalContentRecord, config: EvaluationConfig) -> str:
        criteria = config.criteria()
        report_type = config.output_format.report_type
        if report_type == "concise":
            return self.build_concise_prompt(record, criteria)
        return self.build_comprehensive_prompt(record, criteria)

    def format_content_block(self, record: CanonicalContentRecord) -> str:
        content = record.content or ""
        if len(content) > self.content_char_limit:
            logger.info(f"Truncating content for prompt ({len(content)} > {self.content_char_limit} chars)")
            content = content[:self.content_char_limit] + " [...]"
        headers = record.headers or []
        heading_lines = "\n".join(f"  H{h.level}: {h.text}" for h in headers) or f"  {NOT_FOUND}"

        return f"""Title: {_value(record.title)}
URL: {_value(record.url)}
Slug: {_value(record.slug)}
SEO Title: {_value(record.seo_title)}
Meta Description: {_value(record.meta_description)}
Focus Keyword: {_value(record.focus_keyword)}
Keywords: {_value(record.keywords)}
Canonical URL: {_value(record.canonical_url)}
Robots: {_value(record.robots)}
Open Graph Title: {_value(record.og_title)}
Open Graph Description: {_value(record.og_description)}
Open Graph Image: {_value(record.og_image)}
Twitter Title: {_value(record.twitter_title)}
Twitter Description: {_value(record.twitter_description)}
Twitter Image: {_value(record.twitter_image)}
Primary Category: {_value(record.primary_category)}
Word Count: {_value(record.word_count)}
Estimated Reading Time (minutes): {_value(record.estimated_reading_time)}
Last Modified: {_value(record.last_modified)}
Excerpt: {_value(record.excerpt)}
Headings:
{heading_lines}

Content:
{_value(content)}"""

    def format_criteria(self, criteria: List[EvaluationCriterion], with_checklists: bool = True) -> str:
        blocks = []
        for criterion in criteria:
            label = CRITERION_LABELS.get(criterion.name, criterion.name)
            description = criterion.description or DEFAULT_DESCRIPTIONS.get(criterion.name, "")
            block = f"- {label} ({criterion.weight:.0%} weight, field \"{score_field(criterion.name)}\"): {description}"
            if with_checklists:
                checklist = criterion.baseline_expectations or "\n".join(
                    f"- {item}" for item in DEFAULT_CHECKLISTS.get(criterion.name, []))
                if checklist:
                    indented = "\n".join(f"    {line}" for line in checklist.splitlines())
                    block += f"\n  Checklist:\n{indented}"
            blocks.append(block)
        return "\n".join(blocks)

    def format_output_contract(self, criteria: List[EvaluationCriterion]) -> str:
        example = {}
        for criterion in criteria:
            example[score_field(criterion.name)] = {
                "score": 75,
                "analysis": "Two or three sentences explaining the score.",
                "strengths": ["Specific strength"],
                "weaknesses": ["Specific weakness"],
                "recommendations": ["Specific action (+5 points)"],
            }
        example["overall_score"] = 75
        example["optimization_recommendation"] = "Optimize or Not Optimize"
        example["priority"] = "high, medium or low"
        example["priority_recommendations"] = ["Most impactful action first"]
        example["summary"] = "Three sentence executive summary."
        weights = " + ".join(f"{c.name} x {c.weight:.2f}" for c in criteria)
        return f"""Return a SINGLE JSON object in this EXACT format (no markdown, no comments, no other text):

{json.dumps(example, indent=2)}

overall_score = {weights}"""

    def build_comprehensive_prompt(self, record: CanonicalContentRecord,
                                   criteria: List[EvaluationCriterion]) -> str:
        return f"""You are a senior SEO analyst evaluating a published blog post. Analyze it and provide specific, actionable feedback.

CONTENT TO ANALYZE:
{self.format_content_block(record)}

EVALUATION CRITERIA (weights are fixed):
{self.format_criteria(criteria)}

IMPORTANT GUIDELINES:
1. Fields marked "{NOT_FOUND}" are missing. Flag them; never assume or invent values.
2. Give specific examples from the content in every analysis and recommendation.
3. Include an estimated point gain for each recommendation.
4. Explain what works in high-scoring areas as well.
5. Keep feedback clear and actionable for a content editor.

{CALIBRATION}

{self.format_output_contract(criteria)}
"""

    def build_concise_prompt(self, record: CanonicalContentRecord,
                             criteria: List[EvaluationCriterion]) -> str:
        return f"""You are an SEO expert. Score this blog post on six weighted criteria.

CONTENT:
{self.format_content_block(record)}

CRITERIA:
{self.format_criteria(criteria, with_checklists=False)}

Flag any field marked "{NOT_FOUND}" as missing. Keep each analysis to one or two sentences and give at most three items per list.

{CALIBRATION}

{self.format_output_contract(criteria)}
"""


def describe_prompt(prompt: str, limit: Optional[int] = 200) -> str:
    """Short single-line preview for debug logging."""
    preview = " ".join(prompt.split())
    return preview if limit is None or len(preview) <= limit else preview[:limit] + "..."
