"""
Pydantic models shared by every stage of the pipeline.

Raw upstream records are tagged with a ``shape`` discriminant at the producer
(WordPressClient -> CMSPost, UniversalScraper -> ScrapedPage) so the extractor
can dispatch on it instead of re-deriving the shape from field presence.
"""

from collections import OrderedDict
from typing import Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

# Fixed rubric. The model is never trusted for the weighted arithmetic.
CRITERION_WEIGHTS: "OrderedDict[str, float]" = OrderedDict([
    ("eeat", 0.20),
    ("technical", 0.10),
    ("relevance", 0.20),
    ("text_quality", 0.10),
    ("ai_optimization", 0.25),
    ("freshness", 0.15),
])

CRITERION_LABELS: Dict[str, str] = {
    "eeat": "EEAT",
    "technical": "Technical SEO",
    "relevance": "Relevance",
    "text_quality": "Text Quality",
    "ai_optimization": "AI Optimization",
    "freshness": "Freshness",
}

PRIORITIES = ("high", "medium", "low")
ESSENTIAL_FIELDS = ("post_id", "slug", "url", "title", "content")


def score_field(criterion: str) -> str:
    """'eeat' -> 'eeat_score'"""
    return f"{criterion}_score"


SCORE_FIELDS = tuple(score_field(name) for name in CRITERION_WEIGHTS)


# --- Identifiers ---

class ArticleIdentifier(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["slug", "id", "url"]
    value: str

    def __str__(self) -> str:
        return self.value


# --- Raw records ---

def _rendered(value: Any) -> str:
    """WordPress wraps title/content/excerpt in {"rendered": ...}; accept both forms."""
    if isinstance(value, dict):
        return value.get("rendered") or ""
    if value is None:
        return ""
    return str(value)


class CMSPost(BaseModel):
    """A WordPress post, normalized from the REST payload."""

    shape: Literal["cms"] = "cms"
    id: Optional[Union[int, str]] = None
    slug: str = ""
    link: str = ""
    title: str = ""
    content: str = ""
    excerpt: str = ""
    date: Optional[str] = None
    modified: Optional[str] = None
    author: Optional[Union[int, str]] = None
    categories: List[Any] = Field(default_factory=list)
    tags: List[Any] = Field(default_factory=list)
    featured_media: Optional[Union[int, str]] = None
    status: str = ""
    type: str = ""
    meta: Dict[str, Any] = Field(default_factory=dict)
    yoast_head_json: Optional[Dict[str, Any]] = None
    raw: Dict[str, Any] = Field(default_factory=dict, repr=False)

    @classmethod
    def from_payload(cls, data: Dict[str, Any]) -> "CMSPost":
        # WordPress serializes an empty meta object as []
        meta = data.get("meta")
        yoast = data.get("yoast_head_json")
        return cls(
            id=data.get("id"),
            slug=data.get("slug") or "",
            link=data.get("link") or "",
            title=_rendered(data.get("title")),
            content=_rendered(data.get("content")),
            excerpt=_rendered(data.get("excerpt")),
            date=data.get("date"),
            modified=data.get("modified"),
            author=data.get("author"),
            categories=data.get("categories") or [],
            tags=data.get("tags") or [],
            featured_media=data.get("featured_media"),
            status=data.get("status") or "",
            type=data.get("type") or "",
            meta=meta if isinstance(meta, dict) else {},
            yoast_head_json=yoast if isinstance(yoast, dict) else None,
            raw=data,
        )


class TextBlock(BaseModel):
    rendered: str = ""
    text: str = ""


class Heading(BaseModel):
    level: int
    text: str


class StructuredData(BaseModel):
    raw_schemas: List[Any] = Field(default_factory=list)
    analysis: Optional[Dict[str, Any]] = None


class ScrapedPage(BaseModel):
    """Output of the universal page scraper."""

    model_config = ConfigDict(populate_by_name=True)

    shape: Literal["scrape"] = "scrape"
    id: str = ""
    slug: str = ""
    link: str = ""
    title: str = ""
    content: TextBlock = Field(default_factory=TextBlock)
    excerpt: TextBlock = Field(default_factory=TextBlock)
    meta: Dict[str, str] = Field(default_factory=dict)
    headers: List[Heading] = Field(default_factory=list)
    images: List[Dict[str, str]] = Field(default_factory=list)
    links: List[Dict[str, str]] = Field(default_factory=list)
    structured_data: StructuredData = Field(default_factory=StructuredData, alias="schema")

    @field_validator("structured_data", mode="before")
    @classmethod
    def _wrap_schema_list(cls, value):
        if isinstance(value, list):
            return {"raw_schemas": value}
        return value


RawContentRecord = Union[CMSPost, ScrapedPage, Dict[str, Any]]


# --- Canonical record ---

class CanonicalContentRecord(BaseModel):
    """
    The normalized projection every downstream stage depends on.

    The five essential fields are always set. Optional fields are only set when
    the extraction config enables them; ``to_dict`` omits the rest.
    """

    post_id: Union[int, str]
    slug: str
    url: str
    title: str
    content: str

    content_html: Optional[str] = None
    excerpt: Optional[str] = None
    meta_description: Optional[str] = None
    keywords: Optional[List[str]] = None
    headers: Optional[List[Heading]] = None
    word_count: Optional[int] = None
    estimated_reading_time: Optional[int] = None
    last_modified: Optional[str] = None

    canonical_url: Optional[str] = None
    robots: Optional[str] = None
    og_title: Optional[str] = None
    og_description: Optional[str] = None
    og_image: Optional[str] = None
    twitter_title: Optional[str] = None
    twitter_description: Optional[str] = None
    twitter_image: Optional[str] = None
    focus_keyword: Optional[str] = None
    primary_category: Optional[Union[int, str]] = None

    seo_title: Optional[str] = None
    noindex: Optional[bool] = None
    nofollow: Optional[bool] = None
    seo_score: Optional[Union[int, str]] = None
    readability_score: Optional[Union[int, str]] = None
    post_status: Optional[str] = None
    post_type: Optional[str] = None
    date_published: Optional[str] = None
    date_modified: Optional[str] = None
    author_id: Optional[Union[int, str]] = None
    featured_media_id: Optional[Union[int, str]] = None
    categories: Optional[List[Any]] = None
    tags: Optional[List[Any]] = None

    images: Optional[List[Dict[str, str]]] = None
    links: Optional[List[Dict[str, str]]] = None
    schema_analysis: Optional[Dict[str, Any]] = None
    raw_schemas: Optional[List[Any]] = None
    viewport: Optional[str] = None
    language: Optional[str] = None
    og_type: Optional[str] = None
    og_url: Optional[str] = None
    og_site_name: Optional[str] = None
    twitter_card: Optional[str] = None
    twitter_site: Optional[str] = None
    twitter_creator: Optional[str] = None
    article_author: Optional[str] = None
    article_published_time: Optional[str] = None
    article_modified_time: Optional[str] = None
    article_section: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return self.model_dump(exclude_unset=True)


# --- Evaluation ---

class EvaluationCriterion(BaseModel):
    name: str
    weight: float
    description: str = ""
    baseline_expectations: str = ""


class CriterionConfig(BaseModel):
    name: str
    weight: Optional[float] = None
    description: str = ""
    baseline_expectations: Union[str, List[str], None] = None


class OutputFormat(BaseModel):
    optimization_threshold: float = Field(default=75, ge=0, le=100)
    report_type: Literal["comprehensive", "concise"] = "comprehensive"
    include_raw_data: bool = False
    priority_recommendation_count: int = Field(default=5, ge=1)


class EvaluationConfig(BaseModel):
    name: str = "default"
    evaluation_criteria: List[CriterionConfig]
    output_format: OutputFormat = Field(default_factory=OutputFormat)

    def criteria(self) -> List[EvaluationCriterion]:
        """Criteria in rubric order, always carrying the fixed weights."""
        by_name = {c.name: c for c in self.evaluation_criteria}
        result = []
        for name, weight in CRITERION_WEIGHTS.items():
            configured = by_name.get(name) or CriterionConfig(name=name)
            baseline = configured.baseline_expectations or ""
            if isinstance(baseline, list):
                baseline = "\n".join(f"- {item}" for item in baseline)
            result.append(EvaluationCriterion(
                name=name,
                weight=weight,
                description=configured.description,
                baseline_expectations=baseline.strip(),
            ))
        return result


class CriterionEvaluation(BaseModel):
    score: float = Field(ge=0, le=100)
    analysis: str = ""
    strengths: List[str] = Field(default_factory=list)
    weaknesses: List[str] = Field(default_factory=list)
    recommendations: List[str] = Field(default_factory=list)

    @field_validator("strengths", "weaknesses", "recommendations", mode="before")
    @classmethod
    def _as_list(cls, value):
        if value is None:
            return []
        if isinstance(value, str):
            return [value] if value.strip() else []
        if not isinstance(value, (list, tuple)):
            return [str(value)]
        return [str(item) for item in value]

    @field_validator("analysis", mode="before")
    @classmethod
    def _as_text(cls, value):
        return "" if value is None else str(value)


class ScoredEvaluation(BaseModel):
    eeat_score: CriterionEvaluation
    technical_score: CriterionEvaluation
    relevance_score: CriterionEvaluation
    text_quality_score: CriterionEvaluation
    ai_optimization_score: CriterionEvaluation
    freshness_score: CriterionEvaluation

    overall_score: float
    optimization_recommendation: Literal["Optimize", "Not Optimize"]
    priority: Literal["high", "medium", "low"]
    priority_recommendations: List[str] = Field(default_factory=list)
    summary: str = ""
    timestamp: str
    model: str
    report_type: str = "comprehensive"
    reported_overall_score: Optional[float] = None

    def criteria(self) -> "OrderedDict[str, CriterionEvaluation]":
        return OrderedDict((name, getattr(self, score_field(name))) for name in CRITERION_WEIGHTS)

    @property
    def needs_optimization(self) -> bool:
        return self.optimization_recommendation == "Optimize"


# --- Batch ---

class ArticleSuccess(BaseModel):
    identifier: str
    slug: str
    title: str
    url: str = ""
    overall_score: float
    optimization_recommendation: str
    report_path: str


class ArticleFailure(BaseModel):
    identifier: str
    message: str
    error_type: str = "Error"


class BatchSummary(BaseModel):
    total: int
    succeeded: int
    failed: int
    average_score: Optional[float] = None
    min_score: Optional[float] = None
    max_score: Optional[float] = None
    top_performers: List[ArticleSuccess] = Field(default_factory=list)
    needs_optimization: List[ArticleSuccess] = Field(default_factory=list)
    failures: List[ArticleFailure] = Field(default_factory=list)
    results: List[Union[ArticleSuccess, ArticleFailure]] = Field(default_factory=list)
    elapsed_seconds: float = 0.0
