"""Ranks anchors on a page by how likely they lead to company content."""

import logging

from app.core.heuristics import DEFAULT_HEURISTICS, HeuristicsConfig
from app.models import LinkData, LinkMetadata, LinkType
from app.services.content_normalizer import clean_text, host_of, normalize_url
from app.services.dom import PageTree

logger = logging.getLogger(__name__)

DEFAULT_MAX_LINKS = 50

MAX_LINK_TEXT = 100

# Links at or below this priority are dropped from the result
MIN_RELEVANT_PRIORITY = 2

BASE_PRIORITIES: dict[LinkType, int] = {
    "company": 8,
    "detail": 7,
    "navigation": 6,
    "external": 3,
    "unknown": 1,
}

KEYWORD_BOOST = 2
GENERIC_PENALTY = 3


def _is_skippable(href: str) -> bool:
    href = href.strip()
    return not href or href.startswith("#") or href.lower().startswith("javascript:")


def classify_link(
    url: str,
    text: str,
    page_host: str,
    config: HeuristicsConfig = DEFAULT_HEURISTICS,
) -> tuple[LinkType, int]:
    """
    Assign a link type and raw priority score.

    Args:
        url: Absolute link target.
        text: Cleaned anchor text.
        page_host: Hostname of the page the link was found on.
        config: Pattern and keyword vocabulary.

    Returns:
        Tuple of (link type, priority before clamping).
    """
    href = url.lower()
    label = text.lower()
    link_host = host_of(url)

    link_type: LinkType
    if any(p in href for p in config.company_link_patterns):
        link_type = "company"
    elif any(p in href for p in config.detail_link_patterns) or any(
        t in label for t in config.detail_link_text
    ):
        link_type = "detail"
    elif any(t in label for t in config.navigation_link_text) or any(
        p in href for p in config.navigation_link_patterns
    ):
        link_type = "navigation"
    elif link_host and page_host and not _same_site(link_host, page_host):
        link_type = "external"
    else:
        link_type = "unknown"

    priority = BASE_PRIORITIES[link_type]
    if any(k in href or k in label for k in config.boost_keywords):
        priority += KEYWORD_BOOST
    if any(term in label for term in config.generic_link_terms):
        priority = max(1, priority - GENERIC_PENALTY)
    return link_type, priority


def _bare_host(host: str) -> str:
    return host[4:] if host.startswith("www.") else host


def _same_site(link_host: str, page_host: str) -> bool:
    a, b = _bare_host(link_host), _bare_host(page_host)
    return a == b or a.endswith("." + b) or b.endswith("." + a)


def extract_relevant_links(
    tree: PageTree,
    page_url: str,
    max_links: int = DEFAULT_MAX_LINKS,
    config: HeuristicsConfig = DEFAULT_HEURISTICS,
) -> list[LinkData]:
    """
    Collect and rank the useful anchors of a page.

    At most ``2 * max_links`` anchors are scanned in document order. Links are
    deduplicated by resolved URL and only those with text and a priority above
    the relevance floor are kept.

    Args:
        tree: Parsed page.
        page_url: URL of the page, used to resolve and classify links.
        max_links: Maximum number of links to return.
        config: Pattern and keyword vocabulary.

    Returns:
        Links sorted by descending priority, document order on ties.
    """
    if max_links <= 0:
        return []

    page_host = host_of(page_url)
    seen: set[str] = set()
    links: list[LinkData] = []

    for anchor in tree.select("a[href]")[: max_links * 2]:
        href = anchor.attr("href") or ""
        if _is_skippable(href):
            continue
        url = normalize_url(href.strip(), page_url)
        if url in seen:
            continue
        seen.add(url)

        text = clean_text(anchor.text())
        if not text:
            continue

        link_type, priority = classify_link(url, text, page_host, config)
        if priority <= MIN_RELEVANT_PRIORITY:
            continue

        link_host = host_of(url)
        short_text = text[:MAX_LINK_TEXT]
        links.append(
            LinkData(
                url=url,
                text=short_text,
                type=link_type,
                priority=priority,
                description=f"{link_type} link: {short_text}",
                metadata=LinkMetadata(
                    is_internal=not link_host or _same_site(link_host, page_host),
                    has_company_keywords=any(
                        hint in url.lower() or hint in text.lower()
                        for hint in config.link_company_hints
                    ),
                ),
            )
        )
        if len(links) >= max_links:
            break

    # sorted() is stable, so equal priorities keep document order
    ranked = sorted(links, key=lambda link: link.priority, reverse=True)
    logger.debug(f"Classified {len(ranked)} relevant links on {page_url}")
    return ranked
