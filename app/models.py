"""Pydantic models for the interactive scraping service.

All models serialize with camelCase aliases so the JSON payloads match the
shape consumed by the scraping UI and by AI planning loops.
"""

import time
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, computed_field, field_validator


def to_camel(string: str) -> str:
    """Convert snake_case to camelCase."""
    components = string.split("_")
    return components[0] + "".join(word.capitalize() for word in components[1:])


def now_ms() -> int:
    """Current time as epoch milliseconds."""
    return int(time.time() * 1000)


SessionState = Literal[
    "initialized",
    "analyzing",
    "paused",
    "awaiting_instructions",
    "continuing",
    "completed",
    "error",
]

ExtractionMode = Literal["surface", "deep", "hybrid"]

LinkType = Literal["company", "detail", "navigation", "external", "unknown"]

MIN_LINK_PRIORITY = 1
MAX_LINK_PRIORITY = 10


class CamelModel(BaseModel):
    """Base model with camelCase aliases on input and output."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        serialize_by_alias=True,
    )


class PageAnalysis(CamelModel):
    """Structural signals detected on a loaded page.

    Attributes:
        total_elements: Number of elements in the document.
        total_links: Number of anchors with an href.
        has_company_indicators: Body text mentions company-like keywords.
        has_list_structure: A grid/list/directory container is present.
        has_pagination: Pagination controls are present.
        antie_bot_detection: The page looks like a bot challenge.
        loading_indicators: Spinners or loaders are present.
        estimated_company_count: Max element count across card selectors.
        recommended_next_steps: Advisory strings for the operator.
    """

    total_elements: int = 0
    total_links: int = 0
    has_company_indicators: bool = False
    has_list_structure: bool = False
    has_pagination: bool = False
    antie_bot_detection: bool = False
    loading_indicators: bool = False
    estimated_company_count: int = 0
    recommended_next_steps: list[str] = Field(default_factory=list)


class LinkMetadata(CamelModel):
    """Extra facts about a classified link."""

    is_internal: bool = False
    has_company_keywords: bool = False


class LinkData(CamelModel):
    """One classified anchor."""

    url: str
    text: str = Field(default="", max_length=100)
    type: LinkType = "unknown"
    priority: int = MIN_LINK_PRIORITY
    description: str | None = None
    metadata: LinkMetadata = Field(default_factory=LinkMetadata)

    @field_validator("priority")
    @classmethod
    def clamp_priority(cls, v: int) -> int:
        """Keep priority within the 1-10 band after boosts and penalties."""
        return max(MIN_LINK_PRIORITY, min(MAX_LINK_PRIORITY, v))


class CompanyData(CamelModel):
    """A structured company record extracted from a page.

    Attributes:
        name: Company name, 3-100 characters after trimming.
        website: Resolved company website, if any.
        tags: Hashtag-style descriptors such as ``#Healthcare & Wellness``.
        extraction_confidence: Heuristic confidence between 0 and 1.
    """

    name: str = Field(..., min_length=3, max_length=100)
    website: str | None = None
    description: str | None = None
    logo: str | None = None
    industry: str | None = None
    location: str | None = None
    employees: int | None = None
    linked_detail_url: str | None = None
    tags: list[str] = Field(default_factory=list)
    extraction_confidence: float = Field(default=0.5, ge=0.0, le=1.0)
    additional_data: dict[str, Any] = Field(default_factory=dict)

    @field_validator("name", mode="before")
    @classmethod
    def strip_name(cls, v: Any) -> Any:
        if isinstance(v, str):
            return " ".join(v.split())
        return v


class PageSnapshot(CamelModel):
    """The last analyzed page of a session."""

    url: str
    title: str = ""
    description: str = ""
    found_links: list[LinkData] = Field(default_factory=list)
    found_companies: list[CompanyData] = Field(default_factory=list)
    page_analysis: PageAnalysis = Field(default_factory=PageAnalysis)


class ExtractionResult(CamelModel):
    """Outcome counts of one extraction attempt."""

    companies_found: int = 0
    links_found: int = 0
    errors: list[str] | None = None
    metadata: dict[str, Any] | None = None


class ExtractionStep(BaseModel):
    """One recorded extraction attempt. Immutable once appended."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        serialize_by_alias=True,
        frozen=True,
    )

    step_number: int = Field(..., ge=1)
    action: str
    url: str
    timestamp: int = Field(default_factory=now_ms)
    result: ExtractionResult = Field(default_factory=ExtractionResult)


class ScrapingSession(CamelModel):
    """A stateful multi-step scraping task bound to one target URL."""

    id: str
    url: str
    status: SessionState = "initialized"
    current_page: PageSnapshot | None = None
    extraction_history: list[ExtractionStep] = Field(default_factory=list)
    instructions: str | None = None
    created_at: int = Field(default_factory=now_ms)
    last_updated: int = Field(default_factory=now_ms)
    extraction_mode: ExtractionMode = "surface"
    max_results: int = Field(default=50, ge=1)

    @computed_field
    @property
    def companies_found(self) -> int:
        """Total companies found across all recorded steps."""
        return sum(step.result.companies_found for step in self.extraction_history)


class SessionStatus(CamelModel):
    """Lightweight polling view of a session."""

    exists: bool
    status: SessionState | None = None
    current_page: str | None = None
    extraction_steps: int = 0
    companies_found: int = 0
    last_updated: int | None = None


class ScrapedLink(CamelModel):
    text: str
    url: str
    href: str


class ScrapedImage(CamelModel):
    src: str
    alt: str = ""


class PageMetadata(CamelModel):
    """Document-level metadata of a scraped page."""

    description: str = ""
    keywords: str = ""
    author: str = ""
    language: str = ""
    word_count: int = 0
    companies: list[CompanyData] | None = None


class ScrapedPage(CamelModel):
    """Result of a one-shot scrape."""

    url: str
    title: str
    content: str
    links: list[ScrapedLink] = Field(default_factory=list)
    images: list[ScrapedImage] = Field(default_factory=list)
    metadata: PageMetadata = Field(default_factory=PageMetadata)


class ItemMetadata(CamelModel):
    selector: str
    tag_name: str = ""
    class_name: str = ""
    index: int = 0
    extraction_type: Literal["selector", "text_fallback"] = "selector"


class ExtractedItem(CamelModel):
    """One record pulled by instruction-driven extraction."""

    text: str = ""
    link: str | None = None
    image: str | None = None
    price: str | None = None
    email: str | None = None
    phone: str | None = None
    metadata: ItemMetadata


class ExtractionSummary(CamelModel):
    """Counts describing a batch of extracted items."""

    total_items: int = 0
    with_links: int = 0
    with_images: int = 0
    with_prices: int = 0
    with_emails: int = 0
    with_phones: int = 0


class ElementInventory(CamelModel):
    """Count of one kind of element on a page, with a text sample."""

    type: str
    count: int
    selector: str
    sample_text: str | None = None


class AvailableLink(CamelModel):
    text: str
    href: str
    type: Literal["internal", "external", "email", "phone"] = "internal"
