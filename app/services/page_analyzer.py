"""Heuristic page analysis for scraping sessions."""

import logging

from app.core.heuristics import DEFAULT_HEURISTICS, HeuristicsConfig
from app.models import PageAnalysis
from app.services.dom import PageTree

logger = logging.getLogger(__name__)

# Above this many candidate cards the page is worth a systematic pass
MANY_COMPANIES_THRESHOLD = 20

MANY_LINKS_THRESHOLD = 100


def _matches_any(tree: PageTree, selectors: tuple[str, ...]) -> bool:
    return any(tree.select_one(selector) is not None for selector in selectors)


def _recommend(analysis: PageAnalysis) -> list[str]:
    steps: list[str] = []
    if analysis.antie_bot_detection:
        steps.append("Use advanced anti-bot evasion techniques")
    if analysis.loading_indicators:
        steps.append("Wait for dynamic content to load")
        steps.append("Try scrolling to trigger lazy loading")
    if analysis.has_pagination:
        steps.append("Consider navigating through pagination")
        steps.append("Extract links to additional pages")
    if analysis.estimated_company_count > MANY_COMPANIES_THRESHOLD:
        steps.append("Page contains many potential companies - extract systematically")
    elif analysis.estimated_company_count == 0:
        steps.append("No obvious company indicators - try alternative extraction methods")
        steps.append("Look for links to company detail pages")
    if analysis.total_links > MANY_LINKS_THRESHOLD:
        steps.append("Many links found - filter for relevant company/detail pages")
    return steps


def analyze_page(
    tree: PageTree, config: HeuristicsConfig = DEFAULT_HEURISTICS
) -> PageAnalysis:
    """
    Inspect a loaded page for structural signals.

    Pure given the document; never raises for a parsed tree.

    Args:
        tree: Parsed page.
        config: Keyword sets and selectors to look for.

    Returns:
        PageAnalysis with counts, flags and ordered recommendations.
    """
    body = tree.body
    body_text = (body.text() if body is not None else tree.text()).lower()
    title = tree.title.lower()

    analysis = PageAnalysis(
        total_elements=tree.count("*"),
        total_links=tree.count("a[href]"),
        has_company_indicators=any(k in body_text for k in config.company_keywords),
        has_list_structure=_matches_any(tree, config.list_selectors),
        has_pagination=_matches_any(tree, config.pagination_selectors),
        antie_bot_detection=(
            any(marker in body_text for marker in config.anti_bot_body_markers)
            or any(marker in title for marker in config.anti_bot_title_markers)
        ),
        loading_indicators=_matches_any(tree, config.loading_selectors),
        estimated_company_count=max(
            (tree.count(selector) for selector in config.card_count_selectors),
            default=0,
        ),
    )
    analysis.recommended_next_steps = _recommend(analysis)

    logger.debug(
        "Page analysis: %d elements, %d links, ~%d companies, anti-bot=%s",
        analysis.total_elements,
        analysis.total_links,
        analysis.estimated_company_count,
        analysis.antie_bot_detection,
    )
    return analysis
