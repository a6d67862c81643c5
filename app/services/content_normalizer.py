"""Text and URL normalization plus page-level content selection."""

import logging
import re
from urllib.parse import urljoin, urlparse

from app.core.heuristics import DEFAULT_HEURISTICS, HeuristicsConfig
from app.models import PageMetadata, ScrapedImage, ScrapedLink
from app.services.dom import PageTree

logger = logging.getLogger(__name__)

# Minimum cleaned text length for a content container to be accepted
MIN_CONTENT_LENGTH = 100

# Maximum characters of page content returned to callers
MAX_CONTENT_LENGTH = 5000

TRUNCATION_MARKER = "..."

MAX_LINKS = 100
MAX_LINK_TEXT_LENGTH = 200
MAX_IMAGES = 20

NO_TITLE = "No title found"

_WHITESPACE_RE = re.compile(r"\s+")


def clean_text(raw: str | None) -> str:
    """Collapse whitespace runs (newlines included) to one space and trim.

    Args:
        raw: Text as it came out of the document.

    Returns:
        Cleaned text. Applying the function twice gives the same result.
    """
    if not raw:
        return ""
    return _WHITESPACE_RE.sub(" ", raw).strip()


def normalize_url(candidate: str, base_url: str) -> str:
    """Resolve a link target found on a page into an absolute URL.

    Handles protocol-relative (``//host``), root-relative (``/path``),
    bare-domain (``www.host``) and relative (``page2``) forms. Absolute URLs
    are returned unchanged.

    Args:
        candidate: The href or src value.
        base_url: URL of the page the value was found on.

    Returns:
        Absolute URL, or ``candidate`` unchanged if it cannot be parsed.
    """
    if not candidate:
        return candidate
    value = candidate.strip()
    try:
        if value.startswith("//"):
            return f"https:{value}"
        if value.lower().startswith("www."):
            return f"https://{value}"
        if urlparse(value).scheme:
            return value
        if not base_url:
            return candidate
        return urljoin(base_url, value)
    except ValueError:
        return candidate


def host_of(url: str) -> str:
    """Lowercased hostname of a URL, empty when it has none."""
    try:
        return (urlparse(url).hostname or "").lower()
    except ValueError:
        return ""


def truncate_content(text: str, limit: int = MAX_CONTENT_LENGTH) -> str:
    if len(text) <= limit:
        return text
    return text[:limit] + TRUNCATION_MARKER


def extract_main_content(
    tree: PageTree, config: HeuristicsConfig = DEFAULT_HEURISTICS
) -> str:
    """Pick the main readable content of a page.

    Tries the configured content selectors in order and keeps the first one
    whose cleaned text is long enough. Otherwise noise elements are stripped
    and the remaining body text is used.

    Args:
        tree: Parsed page.
        config: Heuristic vocabulary providing content and noise selectors.

    Returns:
        Cleaned content, truncated with a marker when too long.
    """
    for selector in config.content_selectors:
        node = tree.select_one(selector)
        if node is None:
            continue
        text = clean_text(node.text())
        if len(text) > MIN_CONTENT_LENGTH:
            logger.debug(f"Content selected with {selector!r} ({len(text)} chars)")
            return truncate_content(text)

    stripped = tree.without(config.noise_selectors)
    body = stripped.body
    text = clean_text(body.text() if body is not None else stripped.text())
    return truncate_content(text)


def extract_title(tree: PageTree) -> str:
    """Document title, else the first h1, else a placeholder."""
    title = clean_text(tree.title)
    if title:
        return title
    h1 = tree.select_one("h1")
    if h1 is not None:
        heading = clean_text(h1.text())
        if heading:
            return heading
    return NO_TITLE


def _meta_content(tree: PageTree, selector: str) -> str:
    node = tree.select_one(selector)
    if node is None:
        return ""
    return clean_text(node.attr("content"))


def extract_metadata(tree: PageTree, content: str = "") -> PageMetadata:
    """Collect description, keywords, author and language of a page."""
    description = _meta_content(tree, 'meta[name="description"]') or _meta_content(
        tree, 'meta[property="og:description"]'
    )
    html = tree.select_one("html")
    language = (html.attr("lang") if html is not None else None) or ""
    return PageMetadata(
        description=description,
        keywords=_meta_content(tree, 'meta[name="keywords"]'),
        author=_meta_content(tree, 'meta[name="author"]'),
        language=language,
        word_count=len(content.split()) if content else 0,
    )


def extract_links(
    tree: PageTree, base_url: str, max_links: int = MAX_LINKS
) -> list[ScrapedLink]:
    """Anchors with short, non-empty text, resolved against the page URL."""
    links: list[ScrapedLink] = []
    for anchor in tree.select("a[href]"):
        href = anchor.attr("href") or ""
        text = clean_text(anchor.text())
        if not text or len(text) >= MAX_LINK_TEXT_LENGTH:
            continue
        links.append(ScrapedLink(text=text, url=normalize_url(href, base_url), href=href))
        if len(links) >= max_links:
            break
    return links


def extract_images(
    tree: PageTree, base_url: str, max_images: int = MAX_IMAGES
) -> list[ScrapedImage]:
    images: list[ScrapedImage] = []
    for img in tree.select("img[src]"):
        src = img.attr("src") or ""
        if not src.strip():
            continue
        images.append(
            ScrapedImage(src=normalize_url(src, base_url), alt=clean_text(img.attr("alt")))
        )
        if len(images) >= max_images:
            break
    return images
