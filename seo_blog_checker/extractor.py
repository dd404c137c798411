"""
Content extraction: projects CMS posts, scraped pages and ad-hoc JSON into one
CanonicalContentRecord, then applies the extraction config allow-list.
"""

import logging
import math
import re
from typing import Any, Dict, FrozenSet, List, Mapping, Optional

from pydantic import ValidationError as PydanticValidationError

from .schemas import (
    ESSENTIAL_FIELDS,
    CanonicalContentRecord,
    CMSPost,
    Heading,
    RawContentRecord,
    ScrapedPage,
)

logger = logging.getLogger(__name__)

WORDS_PER_MINUTE = 200

TAG_RE = re.compile(r'<[^>]*>')
WHITESPACE_RE = re.compile(r'\s+')
HEADING_RE = re.compile(r'<h([1-6])[^>]*>(.*?)</h\1\s*>', re.IGNORECASE | re.DOTALL)

# Every optional field a canonical record can carry, in output order.
OPTIONAL_FIELDS = tuple(
    name for name in CanonicalContentRecord.model_fields if name not in ESSENTIAL_FIELDS
)

YOAST_FLAG_KEYS = {
    "noindex": "_yoast_wpseo_meta_robots_noindex",
    "nofollow": "_yoast_wpseo_meta_robots_nofollow",
    "noarchive": "_yoast_wpseo_meta_robots_noarchive",
    "nosnippet": "_yoast_wpseo_meta_robots_nosnippet",
}
YOAST_ADVANCED_KEY = "_yoast_wpseo_meta_robots_adv"


def strip_html(html: Optional[str]) -> str:
    """Replace every tag with a space, collapse whitespace, trim."""
    if not html:
        return ""
    return WHITESPACE_RE.sub(' ', TAG_RE.sub(' ', html)).strip()


def word_count(text: Optional[str]) -> int:
    if not text:
        return 0
    return len(text.split())


def reading_time(words: int) -> int:
    return math.ceil(words / WORDS_PER_MINUTE) if words else 0


def extract_headings(html: Optional[str]) -> List[Heading]:
    """Heading tags in document order, inner markup stripped."""
    if not html:
        return []
    return [
        Heading(level=int(level), text=strip_html(inner))
        for level, inner in HEADING_RE.findall(html)
    ]


def coerce_headings(headers: Any) -> List[Heading]:
    """Loose heading lists: bare strings become h2, unusable entries are dropped."""
    if not isinstance(headers, (list, tuple)):
        return []
    headings = []
    for item in headers:
        if isinstance(item, str):
            if item.strip():
                headings.append(Heading(level=2, text=item.strip()))
            continue
        try:
            headings.append(Heading.model_validate(item))
        except PydanticValidationError:
            logger.debug(f"Skipping malformed heading entry: {item!r}")
    return headings


def flatten_config(config: Mapping[str, Any]) -> Dict[str, bool]:
    """Nested groups merge into the same flat namespace as top-level keys."""
    flat: Dict[str, bool] = {}
    for key, value in config.items():
        if isinstance(value, Mapping):
            flat.update(flatten_config(value))
        else:
            flat[key] = bool(value)
    return flat


def build_allow_list(config: Optional[Mapping[str, Any]]) -> Optional[FrozenSet[str]]:
    """The set of enabled field names, or None when every field is allowed."""
    if config is None:
        return None
    return frozenset(name for name, enabled in flatten_config(config).items() if enabled)


def detect_shape(data: Mapping[str, Any]) -> str:
    """
    Classify an untagged mapping. Order matters: a record can satisfy more
    than one predicate and the first match wins.
    """
    if "yoast_head_json" in data or "meta" in data or (
            data.get("id") and data.get("slug") and data.get("link")):
        return "cms"
    content = data.get("content")
    if isinstance(content, Mapping) and "text" in content:
        return "scrape"
    return "generic"


def _first(*values: Any) -> Any:
    """First truthy value, else ''."""
    for value in values:
        if value:
            return value
    return ""


def _flag(value: Any) -> bool:
    return str(value).strip().lower() in ("1", "true", "yes")


def _directive(value: Any, name: str) -> str:
    """Yoast stores e.g. 'max-snippet:-1' or just '-1'."""
    value = str(value)
    return value if value.startswith(f"{name}:") else f"{name}:{value}"


def build_robots_directive(meta: Optional[Mapping[str, Any]], yoast: Optional[Mapping[str, Any]]) -> str:
    """
    Synthesize a robots string. Each sub-directive is resolved on its own:
    the structured Yoast value wins when present, the flat meta key is the
    fallback.
    """
    if not meta and not yoast:
        return ""
    meta = meta or {}
    robots = (yoast or {}).get("robots") or {}

    def resolve(structured_key: str, negative: str, meta_key: str) -> bool:
        if robots.get(structured_key):
            return robots[structured_key] == negative
        return _flag(meta.get(meta_key, ""))

    advanced = [item.strip() for item in str(meta.get(YOAST_ADVANCED_KEY) or "").split(',')]

    directives = [
        "noindex" if resolve("index", "noindex", YOAST_FLAG_KEYS["noindex"]) else "index",
        "nofollow" if resolve("follow", "nofollow", YOAST_FLAG_KEYS["nofollow"]) else "follow",
    ]
    if resolve("archive", "noarchive", YOAST_FLAG_KEYS["noarchive"]) or (
            not robots.get("archive") and "noarchive" in advanced):
        directives.append("noarchive")
    if resolve("snippet", "nosnippet", YOAST_FLAG_KEYS["nosnippet"]) or (
            not robots.get("snippet") and "nosnippet" in advanced):
        directives.append("nosnippet")
    if robots.get("imageindex"):
        if robots["imageindex"] == "noimageindex":
            directives.append("noimageindex")
    elif "noimageindex" in advanced:
        directives.append("noimageindex")

    for name in ("max-snippet", "max-image-preview", "max-video-preview"):
        value = robots.get(name) or robots.get(name.replace('-', '_'))
        if value:
            directives.append(_directive(value, name))

    return ", ".join(directives)


class ContentExtractor:
    """Normalize any supported raw record into a CanonicalContentRecord."""

    def __init__(self, extraction_config: Optional[Mapping[str, Any]] = None):
        self.config = extraction_config
        self.allowed = build_allow_list(extraction_config)

    def extract(self, record: RawContentRecord) -> CanonicalContentRecord:
        if isinstance(record, CMSPost):
            fields = self._from_cms(record)
        elif isinstance(record, ScrapedPage):
            fields = self._from_scrape(record)
        else:
            shape = detect_shape(record)
            logger.debug(f"Detected '{shape}' shape for untagged record")
            if shape == "cms":
                fields = self._from_cms(CMSPost.from_payload(dict(record)))
            elif shape == "scrape":
                fields = self._from_scrape(ScrapedPage.model_validate(record))
            else:
                fields = self._from_generic(record)
        return self.apply_config_filter(fields)

    def apply_config_filter(self, fields: Dict[str, Any]) -> CanonicalContentRecord:
        selected = {name: fields[name] for name in ESSENTIAL_FIELDS}
        for name in OPTIONAL_FIELDS:
            if name in fields and (self.allowed is None or name in self.allowed):
                selected[name] = fields[name]
        return CanonicalContentRecord(**selected)

    def _from_cms(self, post: CMSPost) -> Dict[str, Any]:
        yoast = post.yoast_head_json or {}
        meta = post.meta or {}
        robots = yoast.get("robots") or {}
        og_images = yoast.get("og_image") or []
        og_image = og_images[0].get("url", "") if og_images and isinstance(og_images[0], dict) else ""
        focus_keyword = _first(yoast.get("focus_keywords"), meta.get("_yoast_wpseo_focuskw"))
        keywords = yoast.get("keywords") or ([focus_keyword] if focus_keyword else [])
        if isinstance(keywords, str):
            keywords = [k.strip() for k in keywords.split(',') if k.strip()]
        words = word_count(post.content)

        return {
            "post_id": post.id if post.id is not None else "unknown",
            "slug": post.slug,
            "url": post.link,
            "title": post.title,
            "content": strip_html(post.content),
            "content_html": post.content,
            "excerpt": strip_html(post.excerpt),
            "meta_description": _first(yoast.get("description"), meta.get("_yoast_wpseo_metadesc")),
            "keywords": keywords,
            "headers": extract_headings(post.content),
            "word_count": words,
            "estimated_reading_time": reading_time(words),
            "last_modified": post.modified or "",
            "canonical_url": _first(yoast.get("canonical"), meta.get("_yoast_wpseo_canonical"), post.link),
            "robots": build_robots_directive(meta, yoast),
            "og_title": _first(yoast.get("og_title"), meta.get("_yoast_wpseo_opengraph_title")),
            "og_description": _first(yoast.get("og_description"),
                                     meta.get("_yoast_wpseo_opengraph_description")),
            "og_image": _first(og_image, meta.get("_yoast_wpseo_opengraph_image")),
            "twitter_title": _first(yoast.get("twitter_title"), meta.get("_yoast_wpseo_twitter_title")),
            "twitter_description": _first(yoast.get("twitter_description"),
                                          meta.get("_yoast_wpseo_twitter_description")),
            "twitter_image": _first(yoast.get("twitter_image"), meta.get("_yoast_wpseo_twitter_image")),
            "focus_keyword": focus_keyword,
            "primary_category": _first(yoast.get("primary_category"),
                                       meta.get("_yoast_wpseo_primary_category")),
            "seo_title": _first(yoast.get("title"), meta.get("_yoast_wpseo_title")),
            "noindex": robots.get("index") == "noindex" if robots.get("index")
            else _flag(meta.get(YOAST_FLAG_KEYS["noindex"], "")),
            "nofollow": robots.get("follow") == "nofollow" if robots.get("follow")
            else _flag(meta.get(YOAST_FLAG_KEYS["nofollow"], "")),
            "seo_score": meta.get("_yoast_wpseo_linkdex", ""),
            "readability_score": meta.get("_yoast_wpseo_content_score", ""),
            "post_status": post.status,
            "post_type": post.type,
            "date_published": post.date or "",
            "date_modified": post.modified or "",
            "author_id": post.author if post.author is not None else "",
            "featured_media_id": post.featured_media if post.featured_media is not None else "",
            "categories": list(post.categories),
            "tags": list(post.tags),
        }

    def _from_scrape(self, page: ScrapedPage) -> Dict[str, Any]:
        meta = page.meta
        keywords = [k.strip() for k in meta.get("keywords", "").split(',') if k.strip()]
        words = word_count(page.content.text)
        return {
            "post_id": page.id or "unknown",
            "slug": page.slug or "unknown",
            "url": page.link,
            "title": page.title,
            "content": page.content.text,
            "content_html": page.content.rendered,
            "excerpt": page.excerpt.text,
            "meta_description": meta.get("description", ""),
            "keywords": keywords,
            "headers": list(page.headers) or extract_headings(page.content.rendered),
            "word_count": words,
            "estimated_reading_time": reading_time(words),
            "last_modified": _first(meta.get("article_modified_time"), meta.get("og_updated_time")),
            "canonical_url": meta.get("canonical_url", ""),
            "robots": meta.get("robots", ""),
            "viewport": meta.get("viewport", ""),
            "language": meta.get("language", ""),
            "og_title": meta.get("og_title", ""),
            "og_description": meta.get("og_description", ""),
            "og_image": meta.get("og_image", ""),
            "og_type": meta.get("og_type", ""),
            "og_url": meta.get("og_url", ""),
            "og_site_name": meta.get("og_site_name", ""),
            "article_author": meta.get("article_author", ""),
            "article_published_time": meta.get("article_published_time", ""),
            "article_modified_time": meta.get("article_modified_time", ""),
            "article_section": meta.get("article_section", ""),
            "twitter_title": meta.get("twitter_title", ""),
            "twitter_description": meta.get("twitter_description", ""),
            "twitter_card": meta.get("twitter_card", ""),
            "twitter_site": meta.get("twitter_site", ""),
            "twitter_creator": meta.get("twitter_creator", ""),
            "twitter_image": meta.get("twitter_image", ""),
            "images": page.images,
            "links": page.links,
            "schema_analysis": page.structured_data.analysis,
            "raw_schemas": page.structured_data.raw_schemas,
        }

    def _from_generic(self, data: Mapping[str, Any]) -> Dict[str, Any]:
        content = data.get("content")
        if isinstance(content, Mapping):
            text = content.get("text") or strip_html(content.get("rendered"))
            html = content.get("rendered") or ""
        else:
            text = str(content or "")
            html = ""
        keywords = data.get("keywords")
        words = word_count(text)
        return {
            "post_id": data.get("id") or "unknown",
            "slug": data.get("slug") or "unknown",
            "url": data.get("link") or data.get("url") or "",
            "title": str(data.get("title") or ""),
            "content": text,
            "content_html": html,
            "excerpt": str(data.get("excerpt") or ""),
            "meta_description": str(data.get("meta_description") or ""),
            "keywords": [str(k) for k in keywords] if isinstance(keywords, list) else [],
            "headers": coerce_headings(data.get("headers")),
            "word_count": words,
            "estimated_reading_time": reading_time(words),
            "last_modified": str(data.get("last_modified") or data.get("modified") or ""),
        }
