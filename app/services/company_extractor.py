"""Company extraction from directory-style pages.

Extraction is a cascade of independent strategies. Each one returns the
records it can find; the :class:`CompanyExtractor` merges them in order and
skips names that an earlier strategy already produced.
"""

import logging
import re
from functools import lru_cache
from typing import Protocol
from urllib.parse import urlparse

from pydantic import ValidationError
from rapidfuzz import fuzz

from app.core.heuristics import DEFAULT_HEURISTICS, HeuristicsConfig
from app.models import CompanyData
from app.services.content_normalizer import clean_text, host_of, normalize_url
from app.services.dom import Node, PageTree
from app.services.industry_tags import extract_industry_tags, is_healthcare_related

logger = logging.getLogger(__name__)

MIN_NAME_LENGTH = 3
MAX_NAME_LENGTH = 100

# Stricter bound for names taken from free text rather than name elements
MAX_LOOSE_NAME_LENGTH = 50

MAX_DESCRIPTION_LENGTH = 300
MAX_TAG_LENGTH = 30

# Knowledge base names at or above this similarity count as the same company
FUZZY_NAME_THRESHOLD = 92

EMPLOYEE_PATTERNS = [
    re.compile(r"(\d+(?:[,\s]\d{3})*)\s*employees?", re.I),
    re.compile(r"team\s*of\s*(\d+)", re.I),
    re.compile(r"(\d+)\s*people", re.I),
    re.compile(r"size[:\s]*(\d+)", re.I),
]

COMPANY_SUFFIX_RE = re.compile(r"(group|inc|ltd|llc|corp|sa|gmbh|ag)$")

# Anchor words that describe an action rather than name an organization
ACTION_WORDS = frozenset(
    {"more", "information", "learn", "read", "click", "here", "see", "view", "visit", "website", "download"}
)


@lru_cache(maxsize=32)
def _compile_patterns(patterns: tuple[str, ...]) -> tuple[re.Pattern[str], ...]:
    return tuple(re.compile(p, re.I) for p in patterns)


def is_valid_company_name(
    name: str | None, config: HeuristicsConfig = DEFAULT_HEURISTICS
) -> bool:
    """
    Screen a candidate company name against stoplists.

    Args:
        name: Candidate text.
        config: Stoplist vocabulary.

    Returns:
        True if the name is 3-100 characters and not an article, navigation
        word, number, punctuation run or legal boilerplate.
    """
    if not name:
        return False
    normalized = " ".join(name.split())
    if not MIN_NAME_LENGTH <= len(normalized) <= MAX_NAME_LENGTH:
        return False
    lower = normalized.lower()
    if lower in config.false_positive_names:
        return False
    return not any(p.match(lower) for p in _compile_patterns(config.invalid_name_patterns))


def _looks_like_company_name(text: str, config: HeuristicsConfig) -> bool:
    """Stricter check for names taken from anchor or free text."""
    if not is_valid_company_name(text, config) or len(text) > MAX_LOOSE_NAME_LENGTH:
        return False
    words = text.split()
    if len(words) > 5:
        return False
    if not (text[0].isupper() or text[0].isdigit()):
        return False
    if text.endswith((".", "!", "?", "…", ":")):
        return False
    return not any(w.lower().strip(".,") in ACTION_WORDS for w in words)


def parse_employee_count(text: str) -> int | None:
    """Find an employee head count in free text."""
    if not text:
        return None
    for pattern in EMPLOYEE_PATTERNS:
        match = pattern.search(text)
        if match:
            digits = re.sub(r"[,\s]", "", match.group(1))
            if digits.isdigit():
                return int(digits)
    return None


def company_name_variations(name: str) -> list[str]:
    """Slug forms of a company name used to match against domains."""
    lower = name.lower()
    slug = re.sub(r"\s+", "", re.sub(r"[^\w\s.-]", "", lower)).rstrip(".")
    variations = [slug, COMPANY_SUFFIX_RE.sub("", slug)]
    words = name.split()
    if len(words) > 1:
        variations.append("".join(w[0] for w in words if w).lower())
    variations.append(re.sub(r"\s+", "", re.sub(r"[^\w\s.-]", "", lower.replace("&", "and"))))

    unique: list[str] = []
    for v in variations:
        if len(v) >= 2 and v not in unique:
            unique.append(v)
    return unique


def is_domain_related_to_company(domain: str, company_name: str) -> bool:
    """
    Decide whether a hostname plausibly belongs to a company.

    Args:
        domain: Hostname such as ``www.acme-bio.com``.
        company_name: Company name as displayed on the page.

    Returns:
        True on containment in either direction or a shared 3-character
        prefix between a name variation and the domain's first label.
    """
    if not domain or not company_name:
        return False
    normalized = domain.lower()
    if normalized.startswith("www."):
        normalized = normalized[4:]
    base = normalized.split(".")[0]

    for variation in company_name_variations(company_name):
        if len(variation) >= 3 and variation in normalized:
            return True
        if len(base) >= 3 and base in variation:
            return True
        if len(variation) > 3 and variation[:3] in base:
            return True
    return False


class WebsiteResolver:
    """Finds the website of a company seen on a page.

    Preference order: an outbound anchor inside the company's container,
    the static knowledge base, then domain similarity against every
    outbound link on the page.
    """

    def __init__(
        self,
        page_url: str,
        page_links: list[str],
        config: HeuristicsConfig = DEFAULT_HEURISTICS,
    ):
        self.page_url = page_url
        self.page_host = host_of(page_url)
        self.config = config
        self.page_links = [url for url in page_links if self.is_candidate(url)]

    @classmethod
    def for_tree(
        cls, tree: PageTree, page_url: str, config: HeuristicsConfig = DEFAULT_HEURISTICS
    ) -> "WebsiteResolver":
        links = [
            normalize_url(a.attr("href") or "", page_url) for a in tree.select("a[href]")
        ]
        return cls(page_url, links, config)

    def is_candidate(self, url: str) -> bool:
        """Outbound http(s) link that is neither social media nor the page host."""
        if not url.lower().startswith(("http://", "https://")):
            return False
        host = host_of(url)
        if not host:
            return False
        if any(social in host for social in self.config.social_hosts):
            return False
        bare = host[4:] if host.startswith("www.") else host
        page = self.page_host[4:] if self.page_host.startswith("www.") else self.page_host
        return bare != page

    def from_container(self, node: Node) -> str | None:
        for anchor in node.select("a[href]"):
            url = normalize_url(anchor.attr("href") or "", self.page_url)
            if self.is_candidate(url):
                return url
        return None

    def from_knowledge_base(self, name: str) -> str | None:
        key = " ".join(name.upper().split())
        websites = self.config.known_websites
        if key in websites:
            return websites[key]
        alias = self.config.company_aliases.get(key)
        if alias and alias in websites:
            return websites[alias]

        best_score = 0.0
        best_url = None
        for known_name, url in websites.items():
            score = fuzz.token_sort_ratio(key, known_name)
            if score > best_score:
                best_score, best_url = score, url
        if best_score >= FUZZY_NAME_THRESHOLD:
            return best_url
        return None

    def from_page_links(self, name: str) -> str | None:
        for url in self.page_links:
            if is_domain_related_to_company(host_of(url), name):
                parsed = urlparse(url)
                return f"{parsed.scheme}://{parsed.netloc}"
        return None

    def resolve(self, name: str, node: Node | None = None) -> str | None:
        """
        Resolve a company's website.

        Args:
            name: Validated company name.
            node: Container the company was found in, if any.

        Returns:
            Website URL, or None when nothing plausible was found.
        """
        if node is not None:
            website = self.from_container(node)
            if website:
                return website
        return self.from_knowledge_base(name) or self.from_page_links(name)


class ExtractionStrategy(Protocol):
    """One way of finding companies on a page."""

    name: str

    def try_extract(self, tree: PageTree, source_url: str) -> list[CompanyData]: ...


class _CardStrategyBase:
    """Shared helpers for strategies that read card-like containers."""

    name = "card"
    base_confidence = 0.7

    def __init__(self, config: HeuristicsConfig = DEFAULT_HEURISTICS):
        self.config = config

    def _find_name(self, node: Node, selectors: tuple[str, ...]) -> str | None:
        attr_name = node.attr("data-company") or node.attr("data-partner")
        if attr_name and is_valid_company_name(attr_name, self.config):
            return clean_text(attr_name)
        for selector in selectors:
            child = node.select_one(selector)
            if child is None:
                continue
            text = clean_text(child.text())
            if is_valid_company_name(text, self.config):
                return text
        return None

    def _fallback_name(self, node: Node) -> str | None:
        text = clean_text(node.text())
        if not text or len(text) >= MAX_NAME_LENGTH:
            return None
        if len(text) > MAX_LOOSE_NAME_LENGTH:
            text = " ".join(text.split()[:4])
        return text if is_valid_company_name(text, self.config) else None

    def _collect_tags(self, node: Node, text: str) -> list[str]:
        tags: list[str] = []
        for selector in self.config.tag_selectors:
            for element in node.select(selector):
                label = clean_text(element.text())
                if label and len(label) < MAX_TAG_LENGTH:
                    tag = label if label.startswith("#") else f"#{label}"
                    if tag not in tags:
                        tags.append(tag)
        for tag in extract_industry_tags(text, self.config):
            if tag not in tags:
                tags.append(tag)
        return tags

    def _field_text(self, node: Node, field: str) -> str | None:
        value = node.attr(f"data-{field}")
        if value:
            return clean_text(value)
        child = node.select_one(f"[data-{field}], .{field}, [class*='{field}']")
        if child is not None:
            return clean_text(child.attr(f"data-{field}") or child.text()) or None
        return None

    def _description(self, node: Node, name: str) -> str | None:
        for selector in (".description", "[class*='desc']", "p"):
            child = node.select_one(selector)
            if child is None:
                continue
            text = clean_text(child.text())
            if text and text != name:
                return text[:MAX_DESCRIPTION_LENGTH]
        return None

    def _detail_url(self, node: Node, source_url: str) -> str | None:
        page_host = host_of(source_url)
        for anchor in node.select("a[href]"):
            href = anchor.attr("href") or ""
            if not href or href.startswith("#") or href.lower().startswith("javascript:"):
                continue
            url = normalize_url(href, source_url)
            if host_of(url) == page_host:
                return url
        return None

    def _build_record(
        self,
        node: Node,
        name: str,
        source_url: str,
        resolver: WebsiteResolver,
        extra_tags: tuple[str, ...] = (),
        selector: str | None = None,
    ) -> CompanyData | None:
        text = clean_text(node.text())
        description = self._description(node, name)
        website = resolver.resolve(name, node)
        logo_node = node.select_one("img[src], img[data-src]")
        logo = None
        if logo_node is not None:
            logo = normalize_url(
                logo_node.attr("src") or logo_node.attr("data-src") or "", source_url
            )

        tags = self._collect_tags(node, text)
        for tag in extra_tags:
            if tag not in tags:
                tags.append(tag)

        confidence = self.base_confidence
        if website:
            confidence += 0.1
        if description:
            confidence += 0.1

        try:
            return CompanyData(
                name=name,
                website=website,
                description=description,
                logo=logo or None,
                industry=self._field_text(node, "industry"),
                location=self._field_text(node, "location"),
                employees=parse_employee_count(text),
                linked_detail_url=self._detail_url(node, source_url),
                tags=tags,
                extraction_confidence=min(1.0, confidence),
                additional_data={"strategy": self.name, "selector": selector},
            )
        except ValidationError as e:
            logger.debug(f"Rejected record {name!r}: {e.error_count()} validation errors")
            return None


class CardSelectorStrategy(_CardStrategyBase):
    """Reads company cards matched by the configured container selectors."""

    name = "card_selector"

    # Containers with more headings than this wrap several cards
    MAX_HEADINGS = 2

    def try_extract(self, tree: PageTree, source_url: str) -> list[CompanyData]:
        scope = tree.without(self.config.chrome_selectors)
        resolver = WebsiteResolver.for_tree(tree, source_url, self.config)
        seen_nodes: set[Node] = set()
        seen_names: set[str] = set()
        records: list[CompanyData] = []

        for selector in self.config.company_container_selectors:
            for node in scope.select(selector):
                if node in seen_nodes:
                    continue
                seen_nodes.add(node)

                class_text = " ".join(node.classes()).lower()
                if any(ex in class_text for ex in self.config.container_class_exclusions):
                    continue
                if node.count("h1, h2, h3, h4, h5") > self.MAX_HEADINGS:
                    continue

                name = self._find_name(node, self.config.name_selectors) or self._fallback_name(node)
                if not name or name.lower() in seen_names:
                    continue

                record = self._build_record(node, name, source_url, resolver, selector=selector)
                if record is None:
                    continue
                seen_names.add(name.lower())
                records.append(record)
                if len(records) >= self.config.max_records:
                    return records
        return records


class DomainCardStrategy(_CardStrategyBase):
    """Finds small blocks whose text matches the domain keyword set.

    With the default vocabulary this picks up healthcare exhibitors whose
    markup does not use any recognizable card class.
    """

    name = "domain_card"
    base_confidence = 0.6

    # Blocks with more nested elements than this are layout wrappers
    MAX_DESCENDANTS = 10

    NAME_SELECTORS = ("h2", "h3", "h4", "h5", "strong", "b", "[class*='name']", "[class*='title']")

    def try_extract(self, tree: PageTree, source_url: str) -> list[CompanyData]:
        scope = tree.without(self.config.chrome_selectors)
        resolver = WebsiteResolver.for_tree(tree, source_url, self.config)
        seen_names: set[str] = set()
        records: list[CompanyData] = []

        for node in scope.select("div, article, li, section"):
            if node.count("div, span") > self.MAX_DESCENDANTS:
                continue
            if not is_healthcare_related(node.text(), self.config.domain_keywords):
                continue
            name = self._find_name(node, self.NAME_SELECTORS)
            if not name or len(name) > MAX_LOOSE_NAME_LENGTH or name.lower() in seen_names:
                continue
            record = self._build_record(
                node, name, source_url, resolver, extra_tags=(self.config.domain_tag,)
            )
            if record is None:
                continue
            seen_names.add(name.lower())
            records.append(record)
            if len(records) >= self.config.max_records:
                break
        return records


class ExternalLinkStrategy:
    """Treats outbound anchors whose text reads like a company name as companies."""

    name = "external_link"
    confidence = 0.4

    def __init__(self, config: HeuristicsConfig = DEFAULT_HEURISTICS):
        self.config = config

    def try_extract(self, tree: PageTree, source_url: str) -> list[CompanyData]:
        resolver = WebsiteResolver.for_tree(tree, source_url, self.config)
        scope = tree.without(self.config.chrome_selectors)
        seen: set[str] = set()
        records: list[CompanyData] = []

        for anchor in scope.select("a[href]"):
            url = normalize_url(anchor.attr("href") or "", source_url)
            if not resolver.is_candidate(url):
                continue
            text = clean_text(anchor.text())
            if not _looks_like_company_name(text, self.config) or text.lower() in seen:
                continue
            seen.add(text.lower())
            parsed = urlparse(url)
            records.append(
                CompanyData(
                    name=text,
                    website=f"{parsed.scheme}://{parsed.netloc}",
                    tags=extract_industry_tags(text, self.config),
                    extraction_confidence=self.confidence,
                    additional_data={"strategy": self.name, "link": url},
                )
            )
            if len(records) >= self.config.max_records:
                break
        return records


class SeedListStrategy:
    """Fills known gaps for directories whose markup hides some exhibitors.

    Seeds only apply on the host they were collected from.
    """

    name = "seed_list"
    confidence = 0.3

    def __init__(self, config: HeuristicsConfig = DEFAULT_HEURISTICS):
        self.config = config

    def try_extract(self, tree: PageTree, source_url: str) -> list[CompanyData]:
        host = host_of(source_url)
        resolver = WebsiteResolver.for_tree(tree, source_url, self.config)
        records: list[CompanyData] = []
        for seed_host, seeds in self.config.seed_companies.items():
            if host != seed_host and not host.endswith("." + seed_host):
                continue
            for seed in seeds:
                records.append(
                    CompanyData(
                        name=seed.name,
                        website=seed.website or resolver.from_knowledge_base(seed.name),
                        tags=list(seed.tags),
                        extraction_confidence=self.confidence,
                        additional_data={"strategy": self.name},
                    )
                )
        return records


def default_strategies(config: HeuristicsConfig = DEFAULT_HEURISTICS) -> list[ExtractionStrategy]:
    return [
        CardSelectorStrategy(config),
        DomainCardStrategy(config),
        ExternalLinkStrategy(config),
        SeedListStrategy(config),
    ]


class CompanyExtractor:
    """Runs extraction strategies in order and merges their records."""

    def __init__(
        self,
        config: HeuristicsConfig = DEFAULT_HEURISTICS,
        strategies: list[ExtractionStrategy] | None = None,
    ) -> None:
        self.config = config
        self.strategies = strategies if strategies is not None else default_strategies(config)

    def extract(
        self, tree: PageTree, source_url: str, max_results: int | None = None
    ) -> list[CompanyData]:
        """
        Extract companies from a page.

        Never raises: a failing strategy is logged and skipped, and an empty
        list is a valid outcome.

        Args:
            tree: Parsed page.
            source_url: URL the page was fetched from.
            max_results: Optional cap on returned records.

        Returns:
            Records deduplicated by case-insensitive name, earlier strategies
            taking precedence.
        """
        limit = max_results or self.config.max_records
        found: dict[str, CompanyData] = {}

        for strategy in self.strategies:
            if len(found) >= limit:
                break
            try:
                records = strategy.try_extract(tree, source_url)
            except Exception as e:
                logger.warning(f"Strategy {strategy.name} failed on {source_url}: {e}")
                continue

            added = 0
            for record in records:
                key = record.name.lower()
                if key in found:
                    continue
                found[key] = record
                added += 1
            if added:
                logger.debug(f"{strategy.name} strategy added {added} companies")

        companies = list(found.values())[:limit]
        logger.info(f"Extracted {len(companies)} companies from {source_url}")
        return companies

