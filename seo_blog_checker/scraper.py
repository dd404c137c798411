"""
Scrape an arbitrary web page into a ScrapedPage record.

Used for URL identifiers, i.e. content that does not live behind the
WordPress REST API.
"""

import base64
import json
import logging
from collections import Counter
from typing import Any, Dict, List, Optional
from urllib.parse import urlparse

import httpx
from bs4 import BeautifulSoup

from .errors import ApiError, ConnectivityError, GatewayError, NotFoundError
from .schemas import Heading, ScrapedPage, StructuredData, TextBlock

logger = logging.getLogger(__name__)

USER_AGENT = "Mozilla/5.0 (compatible; SEO-Blog-Checker/1.0.0)"
CONTENT_SELECTORS = ["article", "[role=main]", ".content", ".post-content", ".entry-content", "main"]
EXCERPT_SELECTORS = [".excerpt", ".post-excerpt", ".entry-summary"]
EXCERPT_LENGTH = 160

# meta key in ScrapedPage.meta -> (attribute, value) of the <meta> tag
META_TAGS = {
    "description": ("name", "description"),
    "keywords": ("name", "keywords"),
    "robots": ("name", "robots"),
    "viewport": ("name", "viewport"),
    "og_title": ("property", "og:title"),
    "og_description": ("property", "og:description"),
    "og_image": ("property", "og:image"),
    "og_type": ("property", "og:type"),
    "og_url": ("property", "og:url"),
    "og_site_name": ("property", "og:site_name"),
    "og_updated_time": ("property", "og:updated_time"),
    "article_author": ("property", "article:author"),
    "article_published_time": ("property", "article:published_time"),
    "article_modified_time": ("property", "article:modified_time"),
    "article_section": ("property", "article:section"),
    "twitter_card": ("name", "twitter:card"),
    "twitter_site": ("name", "twitter:site"),
    "twitter_creator": ("name", "twitter:creator"),
    "twitter_title": ("name", "twitter:title"),
    "twitter_description": ("name", "twitter:description"),
    "twitter_image": ("name", "twitter:image"),
}


def generate_id(url: str) -> str:
    return base64.b64encode(url.encode("utf-8")).decode("ascii")[:10]


def slug_from_url(url: str) -> str:
    segments = [part for part in urlparse(url).path.split('/') if part]
    return segments[-1] if segments else "homepage"


def _schema_types(schema: Any) -> List[str]:
    """Collect @type values, walking @graph containers."""
    types: List[str] = []
    if isinstance(schema, list):
        for item in schema:
            types.extend(_schema_types(item))
    elif isinstance(schema, dict):
        value = schema.get("@type")
        if isinstance(value, list):
            types.extend(str(v) for v in value)
        elif value:
            types.append(str(value))
        if "@graph" in schema:
            types.extend(_schema_types(schema["@graph"]))
    return types


def analyze_schemas(schemas: List[Any]) -> Dict[str, Any]:
    types = _schema_types(schemas)
    counts = Counter(types)
    return {
        "count": len(schemas),
        "types": sorted(counts),
        "type_counts": dict(counts),
        "has_article": any(t in ("Article", "BlogPosting", "NewsArticle") for t in counts),
        "has_faq": "FAQPage" in counts,
        "has_breadcrumb": "BreadcrumbList" in counts,
    }


class UniversalScraper:
    def __init__(self, timeout: float = 30.0, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.client = httpx.AsyncClient(
            timeout=timeout,
            headers={"User-Agent": USER_AGENT},
            follow_redirects=True,
            transport=transport,
        )

    async def __aenter__(self) -> "UniversalScraper":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    async def close(self):
        await self.client.aclose()

    async def scrape_url(self, url: str) -> ScrapedPage:
        logger.info(f"🌐 Scraping {url}")
        html = await self._fetch(url)
        return self.parse(url, html)

    async def _fetch(self, url: str) -> str:
        try:
            response = await self.client.get(url)
        except httpx.TimeoutException as e:
            raise ConnectivityError(f"Timed out scraping {url}: {e}", identifier=url) from e
        except httpx.TransportError as e:
            raise ConnectivityError(f"Failed to scrape {url}: {e}", identifier=url) from e

        status = response.status_code
        if status == 404:
            raise NotFoundError(f"Page not found: {url}", identifier=url)
        if status >= 500:
            raise GatewayError(f"Failed to scrape {url}: HTTP {status}", identifier=url)
        if status >= 300:
            raise ApiError(f"Failed to scrape {url}: HTTP {status}", status_code=status, identifier=url)
        return response.text

    def parse(self, url: str, html: str) -> ScrapedPage:
        soup = BeautifulSoup(html, "lxml")
        schemas = self.extract_schemas(soup)
        return ScrapedPage(
            id=generate_id(url),
            slug=slug_from_url(url),
            link=url,
            title=self.extract_title(soup),
            content=self.extract_content(soup),
            excerpt=self.extract_excerpt(soup),
            meta=self.extract_meta(soup),
            headers=self.extract_headers(soup),
            images=self.extract_images(soup),
            links=self.extract_links(soup),
            structured_data=StructuredData(raw_schemas=schemas, analysis=analyze_schemas(schemas)),
        )

    def extract_title(self, soup: BeautifulSoup) -> str:
        if soup.title and soup.title.get_text(strip=True):
            return soup.title.get_text(strip=True)
        h1 = soup.find("h1")
        if h1 and h1.get_text(strip=True):
            return h1.get_text(strip=True)
        return "No title found"

    def extract_content(self, soup: BeautifulSoup) -> TextBlock:
        for selector in CONTENT_SELECTORS:
            node = soup.select_one(selector)
            if node is not None:
                return TextBlock(rendered=node.decode_contents(), text=node.get_text(" ", strip=True))
        body = soup.body or soup
        return TextBlock(rendered=body.decode_contents(), text=body.get_text(" ", strip=True))

    def _meta_content(self, soup: BeautifulSoup, attribute: str, value: str) -> str:
        tag = soup.find("meta", attrs={attribute: value})
        if tag is None:
            return ""
        return (tag.get("content") or "").strip()

    def extract_excerpt(self, soup: BeautifulSoup) -> TextBlock:
        for attribute, value in (("name", "description"), ("property", "og:description")):
            content = self._meta_content(soup, attribute, value)
            if content:
                return TextBlock(rendered=content, text=content)

        for selector in EXCERPT_SELECTORS:
            node = soup.select_one(selector)
            if node is not None:
                return TextBlock(rendered=node.decode_contents(), text=node.get_text(" ", strip=True))

        paragraph = soup.find("p")
        text = paragraph.get_text(" ", strip=True) if paragraph else ""
        if len(text) > EXCERPT_LENGTH:
            text = text[:EXCERPT_LENGTH] + "..."
        return TextBlock(rendered=text, text=text)

    def extract_meta(self, soup: BeautifulSoup) -> Dict[str, str]:
        meta = {key: self._meta_content(soup, attribute, value)
                for key, (attribute, value) in META_TAGS.items()}
        canonical = soup.find("link", rel="canonical")
        meta["canonical_url"] = (canonical.get("href") or "").strip() if canonical else ""
        html_tag = soup.find("html")
        meta["language"] = (html_tag.get("lang") or "").strip() if html_tag else ""
        return meta

    def extract_schemas(self, soup: BeautifulSoup) -> List[Any]:
        schemas = []
        for script in soup.find_all("script", type="application/ld+json"):
            try:
                schemas.append(json.loads(script.string or script.get_text()))
            except json.JSONDecodeError:
                logger.debug("Skipping invalid JSON-LD block")
        return schemas

    def extract_headers(self, soup: BeautifulSoup) -> List[Heading]:
        return [
            Heading(level=int(tag.name[1]), text=tag.get_text(" ", strip=True))
            for tag in soup.find_all(["h1", "h2", "h3", "h4", "h5", "h6"])
        ]

    def extract_images(self, soup: BeautifulSoup) -> List[Dict[str, str]]:
        return [{"src": img["src"], "alt": img.get("alt") or ""}
                for img in soup.find_all("img") if img.get("src")]

    def extract_links(self, soup: BeautifulSoup) -> List[Dict[str, str]]:
        links = []
        for anchor in soup.find_all("a", href=True):
            text = anchor.get_text(" ", strip=True)
            if text:
                links.append({"href": anchor["href"], "text": text})
        return links
