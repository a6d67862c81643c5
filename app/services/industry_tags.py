"""Industry tag inference from free text."""

import re
from functools import lru_cache

from app.core.heuristics import (
    DEFAULT_HEURISTICS,
    HEALTHCARE_CATEGORY,
    HEALTHCARE_KEYWORDS,
    HEALTHCARE_SUBCATEGORIES,
    HEALTHCARE_SUBCATEGORY_TRIGGERS,
    HeuristicsConfig,
)


@lru_cache(maxsize=512)
def _keyword_pattern(keyword: str) -> re.Pattern[str]:
    # Short keywords such as "ai" must match whole words only
    if len(keyword) <= 3:
        return re.compile(rf"\b{re.escape(keyword)}\b")
    return re.compile(rf"\b{re.escape(keyword)}")


def contains_keyword(text: str, keyword: str) -> bool:
    """Case-insensitive keyword match anchored at a word start."""
    return _keyword_pattern(keyword.lower()).search(text.lower()) is not None


def is_healthcare_related(text: str, keywords: tuple[str, ...] = HEALTHCARE_KEYWORDS) -> bool:
    if not text:
        return False
    lower = text.lower()
    return any(contains_keyword(lower, k) for k in keywords)


def extract_industry_tags(
    text: str, config: HeuristicsConfig = DEFAULT_HEURISTICS
) -> list[str]:
    """
    Derive hashtag-style industry tags from a description.

    A healthcare match also checks for more specific healthcare
    subcategories such as ``#Pharmaceuticals`` or ``#Telemedicine``.

    Args:
        text: Card or description text.
        config: Keyword to category vocabulary.

    Returns:
        Tags in first-found order, without duplicates.
    """
    if not text:
        return []
    lower = text.lower()
    tags: list[str] = []

    def add(tag: str) -> None:
        if tag not in tags:
            tags.append(tag)

    for keyword, category in config.industry_categories.items():
        if contains_keyword(lower, keyword):
            add(f"#{category}")

    if f"#{HEALTHCARE_CATEGORY}" in tags:
        for subcategory in HEALTHCARE_SUBCATEGORIES:
            if subcategory.lower() in lower:
                add(f"#{subcategory}")
        for subcategory, triggers in HEALTHCARE_SUBCATEGORY_TRIGGERS.items():
            if any(trigger in lower for trigger in triggers):
                add(f"#{subcategory}")
    return tags
