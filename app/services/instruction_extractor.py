"""Instruction-driven extraction for interactive sessions.

An operator (a person or an upstream AI planner) describes what they want
in free text, e.g. "Get all product names and prices". Keywords in the
instructions pick candidate selectors; the first selector that yields
records wins.
"""

import logging
import re

from app.models import AvailableLink, ElementInventory, ExtractedItem, ExtractionSummary, ItemMetadata
from app.services.content_normalizer import clean_text, host_of, normalize_url
from app.services.dom import PageTree

logger = logging.getLogger(__name__)

DEFAULT_MAX_RESULTS = 50
MAX_ITEM_TEXT = 200
MAX_FALLBACK_ITEMS = 10
MAX_AVAILABLE_LINKS = 20

PRICE_RE = re.compile(r"[\$€£¥₹]\s?[\d,.]+(?: ?\w+)?|\d+[.,]\d+\s*[\$€£¥₹]")
EMAIL_RE = re.compile(r"[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}")
PHONE_RE = re.compile(r"\+?\d[\d\s\-().]{7,14}\d")

# (instruction keywords, selectors they suggest)
INSTRUCTION_SELECTORS: list[tuple[tuple[str, ...], tuple[str, ...]]] = [
    (
        ("company", "business"),
        (
            ".company", ".company-name", ".business-name", ".organization",
            '[class*="company"]', '[class*="business"]', '[data-testid*="company"]',
            "h1, h2, h3", ".title", ".name", ".brand",
        ),
    ),
    (
        ("product", "item"),
        (
            ".product", ".product-name", ".item", ".item-name",
            '[class*="product"]', '[class*="item"]', ".title", ".name",
        ),
    ),
    (
        ("price", "cost"),
        (
            ".price", ".cost", ".amount", '[class*="price"]', '[class*="cost"]',
            '[data-testid*="price"]', ".currency",
        ),
    ),
    (
        ("contact", "email", "phone"),
        (
            ".contact", ".email", ".phone", ".telephone", '[href^="mailto:"]', '[href^="tel:"]',
            '[class*="contact"]', '[class*="email"]', '[class*="phone"]',
        ),
    ),
    (
        ("job", "career", "position"),
        (
            ".job", ".position", ".role", ".career", '[class*="job"]', '[class*="position"]',
            ".job-title", ".position-title",
        ),
    ),
    (
        ("news", "article", "blog"),
        (
            ".article", ".news", ".blog", ".post", '[class*="article"]', '[class*="news"]',
            ".article-title", ".news-title", ".post-title",
        ),
    ),
]

GENERIC_SELECTORS = (
    ".card", ".item", ".listing", ".entry", '[class*="card"]', '[class*="item"]',
    "article", "section", ".container > div", ".grid > div",
)

ELEMENT_TYPES = (
    ("headings", "h1, h2, h3, h4, h5, h6"),
    ("links", "a[href]"),
    ("images", "img"),
    ("paragraphs", "p"),
    ("lists", "ul, ol"),
    ("tables", "table"),
    ("forms", "form"),
    ("buttons", 'button, input[type="button"], input[type="submit"]'),
    ("cards", '.card, [class*="card"], .item, [class*="item"]'),
    ("containers", '.container, .wrapper, .content, [class*="container"]'),
)


def selectors_for_instructions(instructions: str) -> list[str]:
    """Candidate selectors suggested by the words in the instructions."""
    lower = (instructions or "").lower()
    selectors: list[str] = []
    for keywords, suggested in INSTRUCTION_SELECTORS:
        if any(k in lower for k in keywords):
            selectors.extend(suggested)
    selectors.extend(GENERIC_SELECTORS)
    # dict preserves first-seen order
    return list(dict.fromkeys(selectors))


def _first_match(pattern: re.Pattern[str], text: str) -> str | None:
    match = pattern.search(text)
    return match.group(0).strip() if match else None


def _resolve(value: str | None, page_url: str) -> str | None:
    if not value:
        return None
    return normalize_url(value, page_url)


def extract_with_instructions(
    tree: PageTree,
    page_url: str,
    instructions: str,
    data_selectors: list[str] | None = None,
    max_results: int = DEFAULT_MAX_RESULTS,
) -> list[ExtractedItem]:
    """
    Pull records matching free-text instructions.

    Args:
        tree: Parsed page.
        page_url: URL of the page, for resolving links and images.
        instructions: Operator's description of the wanted data.
        data_selectors: Explicit selectors that replace the generated ones.
        max_results: Maximum number of records.

    Returns:
        Extracted records; falls back to keyword-matching text blocks when
        no selector yields anything.
    """
    selectors = data_selectors or selectors_for_instructions(instructions)
    lower = (instructions or "").lower()
    want_price = "price" in lower
    want_email = "email" in lower
    want_phone = "phone" in lower

    items: list[ExtractedItem] = []
    for selector in selectors:
        elements = tree.select(selector)
        logger.debug(f"Selector {selector!r}: found {len(elements)} elements")
        for index, element in enumerate(elements):
            if len(items) >= max_results:
                break
            raw = clean_text(element.text())
            text = raw[:MAX_ITEM_TEXT] if len(raw) > 2 else ""

            link_node = element if element.tag_name == "a" else element.select_one("a[href]")
            link = _resolve(link_node.attr("href") if link_node is not None else None, page_url)
            img = element.select_one("img")
            image = _resolve(
                (img.attr("src") or img.attr("data-src")) if img is not None else None, page_url
            )

            price = _first_match(PRICE_RE, raw) if want_price else None
            email = _first_match(EMAIL_RE, raw) if want_email else None
            phone = _first_match(PHONE_RE, raw) if want_phone else None

            if not any((text, link, image, price, email, phone)):
                continue
            items.append(
                ExtractedItem(
                    text=text,
                    link=link,
                    image=image,
                    price=price,
                    email=email,
                    phone=phone,
                    metadata=ItemMetadata(
                        selector=selector,
                        tag_name=element.tag_name.upper(),
                        class_name=" ".join(element.classes()),
                        index=index,
                    ),
                )
            )
        if items:
            break

    if not items:
        items = _text_fallback(tree, instructions)
    logger.info(f"Instruction extraction produced {len(items)} items from {page_url}")
    return items


def _text_fallback(tree: PageTree, instructions: str) -> list[ExtractedItem]:
    words = [w for w in (instructions or "").lower().split() if len(w) > 3]
    if not words:
        return []
    blocks: list[str] = []
    for element in tree.select("p, div, span, article, section"):
        text = clean_text(element.text())
        if not 10 < len(text) < 500:
            continue
        lower = text.lower()
        if not any(w in lower for w in words):
            continue
        if any(text in existing for existing in blocks):
            continue
        blocks.append(text)
        if len(blocks) >= MAX_FALLBACK_ITEMS:
            break
    return [
        ExtractedItem(
            text=text[:MAX_ITEM_TEXT],
            metadata=ItemMetadata(
                selector="text-content", index=i, extraction_type="text_fallback"
            ),
        )
        for i, text in enumerate(blocks)
    ]


def summarize_items(items: list[ExtractedItem]) -> ExtractionSummary:
    return ExtractionSummary(
        total_items=len(items),
        with_links=sum(1 for i in items if i.link),
        with_images=sum(1 for i in items if i.image),
        with_prices=sum(1 for i in items if i.price),
        with_emails=sum(1 for i in items if i.email),
        with_phones=sum(1 for i in items if i.phone),
    )


def describe_page_elements(tree: PageTree) -> list[ElementInventory]:
    """Count the element kinds an operator could target, with a text sample."""
    inventory: list[ElementInventory] = []
    for element_type, selector in ELEMENT_TYPES:
        elements = tree.select(selector)
        if not elements:
            continue
        sample = clean_text(elements[0].text())[:100] or None
        inventory.append(
            ElementInventory(
                type=element_type, count=len(elements), selector=selector, sample_text=sample
            )
        )
    return inventory


def list_available_links(tree: PageTree, page_url: str) -> list[AvailableLink]:
    """First anchors of the page typed as internal, external, email or phone."""
    page_host = host_of(page_url)
    links: list[AvailableLink] = []
    for anchor in tree.select("a[href]")[:MAX_AVAILABLE_LINKS]:
        text = clean_text(anchor.text())[:50]
        if not text:
            continue
        href = (anchor.attr("href") or "").strip()
        lower = href.lower()
        if lower.startswith("mailto:"):
            link_type = "email"
        elif lower.startswith("tel:"):
            link_type = "phone"
        elif lower.startswith("http") and host_of(href) != page_host:
            link_type = "external"
        else:
            link_type = "internal"
        links.append(AvailableLink(text=text, href=normalize_url(href, page_url), type=link_type))
    return links
