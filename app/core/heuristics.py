"""Keyword sets, CSS selectors and stoplists used by the page heuristics.

Everything domain-specific lives here so a directory of fintech startups
can be analyzed with a different vocabulary than a healthcare expo, without
touching the analyzer, link classifier or company extractor.
"""

from dataclasses import dataclass, field, replace


COMPANY_KEYWORDS = (
    "company",
    "startup",
    "partner",
    "exhibitor",
    "enterprise",
    "business",
    "corporation",
    "firm",
    "organization",
    "vendor",
)

LIST_SELECTORS = (
    ".grid",
    ".list",
    ".directory",
    ".catalog",
    ".cards",
    '[class*="grid"]',
    '[class*="list"]',
    '[class*="directory"]',
)

PAGINATION_SELECTORS = (
    ".pagination",
    ".pager",
    ".page-nav",
    '[class*="pagination"]',
    'a[href*="page"]',
    'button[aria-label*="page"]',
)

LOADING_SELECTORS = (
    ".loading",
    ".spinner",
    ".loader",
    '[class*="loading"]',
    '[class*="spinner"]',
    '[class*="loader"]',
)

ANTI_BOT_BODY_MARKERS = ("cloudflare", "please wait", "checking your browser")

ANTI_BOT_TITLE_MARKERS = ("just a moment",)

CARD_COUNT_SELECTORS = (
    ".partner-card",
    ".company-card",
    ".exhibitor-card",
    ".startup-card",
    '[data-testid*="partner"]',
    '[data-testid*="company"]',
    ".card",
    ".item",
    ".listing",
    ".entry",
)

# Containers tried by the card extraction strategy, most specific first
COMPANY_CONTAINER_SELECTORS = (
    ".company",
    ".partner",
    ".startup",
    ".exhibitor",
    ".member",
    ".sponsor",
    '[class*="company"]',
    '[class*="partner"]',
    '[class*="startup"]',
    '[class*="exhibitor"]',
    '[class*="card"]',
    '[class*="item"]',
    '[class*="tile"]',
    "[data-company]",
    "[data-partner]",
    "article",
    "li",
)

CONTAINER_CLASS_EXCLUSIONS = ("nav", "menu", "header", "footer", "sidebar")

# Page chrome removed before looking for company cards
CHROME_SELECTORS = ("script", "style", "noscript", "nav", "header", "footer")

NAME_SELECTORS = (
    "h1",
    "h2",
    "h3",
    "h4",
    ".name",
    ".title",
    ".company-name",
    '[class*="name"]',
)

TAG_SELECTORS = ('[class*="tag"]', '[class*="badge"]', '[class*="hashtag"]')

CONTENT_SELECTORS = (
    "main",
    "article",
    ".content",
    "#content",
    ".post-content",
    ".entry-content",
    ".article-content",
    ".partners",
    ".partner-list",
    ".companies",
    ".company-list",
    ".exhibitors",
    ".startups",
    ".sponsors",
    ".members",
    "body",
)

NOISE_SELECTORS = (
    "script",
    "style",
    "nav",
    "header",
    "footer",
    "aside",
    ".sidebar",
    ".menu",
    ".navigation",
)

# Link classification substrings, checked against the lowercased href
COMPANY_LINK_PATTERNS = ("/partner", "/company", "/exhibitor", "/startup")
DETAIL_LINK_PATTERNS = ("/detail", "/profile", "/view/")
DETAIL_LINK_TEXT = ("view details",)
NAVIGATION_LINK_TEXT = ("next", "more", "page")
NAVIGATION_LINK_PATTERNS = ("page=",)
LINK_COMPANY_HINTS = ("company", "partner", "startup")

HEALTHCARE_KEYWORDS = ("health", "medical", "wellness", "biotech", "pharma")

GENERIC_LINK_TERMS = ("home", "about", "contact", "login", "menu", "search")

SOCIAL_HOSTS = ("facebook", "twitter", "linkedin", "instagram", "youtube", "x.com")

INVALID_NAME_PATTERNS = (
    r"^(the|a|an|and|or|but|in|on|at|to|for|of|with|by)$",
    r"^(home|about|contact|services|products|news|blog)$",
    r"^(click|here|more|read|see|view|learn|discover)$",
    r"^(skip to|main|content|navigation|menu|search)$",
    r"^[0-9\s\-\+\.]+$",
    r"^[^\w\s]+$",
    r"^(privacy|policy|terms|conditions|cookies)$",
    r"^(privacy policy|terms of (service|use)|cookie policy|legal notice|all rights reserved)$",
)

FALSE_POSITIVE_NAMES = frozenset(
    {
        "home", "about", "contact", "services", "products", "news", "blog",
        "privacy policy", "terms of service", "cookies", "login", "register",
        "search", "menu", "navigation", "skip to main content", "main content",
        "more info", "learn more", "read more", "click here", "see more",
        "main", "skip", "legal", "press", "faq", "help", "support", "info",
        "tel", "phone", "email", "cookie", "settings", "preferences", "share",
        "follow", "partners", "exhibitors", "sponsors", "twitter", "facebook",
        "linkedin", "instagram", "youtube", "paris", "france", "june", "july",
        "expo", "exhibition",
    }
)

INDUSTRY_CATEGORIES = {
    "health": "Healthcare & Wellness",
    "wellness": "Healthcare & Wellness",
    "medical": "Healthcare & Wellness",
    "pharma": "Healthcare & Wellness",
    "hospital": "Healthcare & Wellness",
    "clinic": "Healthcare & Wellness",
    "biotech": "Healthcare & Wellness",
    "patient": "Healthcare & Wellness",
    "doctor": "Healthcare & Wellness",
    "therapy": "Healthcare & Wellness",
    "ai": "Artificial Intelligence",
    "artificial intelligence": "Artificial Intelligence",
    "machine learning": "Artificial Intelligence",
    "data science": "Artificial Intelligence",
    "neural": "Artificial Intelligence",
    "nlp": "Artificial Intelligence",
    "computer vision": "Artificial Intelligence",
    "deep learning": "Artificial Intelligence",
    "deep tech": "Deep Tech & Quantum Computing",
    "quantum": "Deep Tech & Quantum Computing",
    "robotics": "Deep Tech & Quantum Computing",
    "nanotech": "Deep Tech & Quantum Computing",
    "supply chain": "Industry & Supply Chain",
    "industry": "Industry & Supply Chain",
    "manufacturing": "Industry & Supply Chain",
    "logistics": "Industry & Supply Chain",
    "factory": "Industry & Supply Chain",
    "fintech": "Fintech",
    "finance": "Fintech",
    "banking": "Fintech",
    "payment": "Fintech",
    "investment": "Fintech",
    "insurance": "Fintech",
    "retail": "Retail & E-commerce",
    "e-commerce": "Retail & E-commerce",
    "ecommerce": "Retail & E-commerce",
    "commerce": "Retail & E-commerce",
    "shop": "Retail & E-commerce",
    "marketplace": "Retail & E-commerce",
    "sustainable": "Sustainability",
    "climate": "Sustainability",
    "green": "Sustainability",
    "renewable": "Sustainability",
    "environment": "Sustainability",
    "clean": "Sustainability",
    "mobility": "Mobility",
    "transportation": "Mobility",
    "automotive": "Mobility",
    "vehicle": "Mobility",
    "travel": "Mobility",
    "cyber": "Cybersecurity",
    "security": "Cybersecurity",
    "privacy": "Cybersecurity",
    "encryption": "Cybersecurity",
    "protection": "Cybersecurity",
    "food": "Food & Agriculture",
    "agriculture": "Food & Agriculture",
    "farm": "Food & Agriculture",
    "agtech": "Food & Agriculture",
}

HEALTHCARE_CATEGORY = "Healthcare & Wellness"

HEALTHCARE_SUBCATEGORIES = (
    "Pharmaceuticals",
    "Medical Devices",
    "Diagnostics",
    "Health IT",
    "Digital Health",
    "Biotechnology",
    "Telemedicine",
    "Medical Equipment",
)

# Extra subcategory triggers applied once a healthcare tag is present
HEALTHCARE_SUBCATEGORY_TRIGGERS = {
    "Pharmaceuticals": ("pharma", "drug", "medication"),
    "Medical Devices": ("device", "equipment", "implant"),
    "Biotechnology": ("biotech", "gene", "cell"),
    "Digital Health": ("digital", "platform", "software"),
    "Telemedicine": ("tele", "remote", "virtual"),
}

KNOWN_COMPANY_WEBSITES = {
    "3D BIOTECHNOLOGY SOLUTIONS": "https://3dbiotechnologicalsolutions.com",
    "AALIA.TECH": "https://aalia.tech",
    "AD'OCC - RÉGION OCCITANIE": "https://www.agence-adocc.com",
    "ADCIS - GROUPE EVOLUCARE": "https://www.adcis.net",
    "AMAZE": "https://www.amaze.co",
    "DATEXIM": "https://www.datexim.ai",
    "DEEPGING": "https://deepging.com",
    "FINNOCARE": "https://finnocare.fi",
    "JURATA": "https://jurata.com",
    "MUHCCS": "https://muhc.ca",
    "MEDTRONIC": "https://www.medtronic.com",
    "ABBVIE": "https://www.abbvie.com",
    "NOVARTIS": "https://www.novartis.com",
    "PHILIPS": "https://www.philips.com",
    "ROCHE": "https://www.roche.com",
    "JOHNSON & JOHNSON": "https://www.jnj.com",
    "PFIZER": "https://www.pfizer.com",
    "BAYER": "https://www.bayer.com",
    "SANOFI": "https://www.sanofi.com",
    "SIEMENS HEALTHINEERS": "https://www.siemens-healthineers.com",
    "THERMO FISHER SCIENTIFIC": "https://www.thermofisher.com",
}

COMPANY_ALIASES = {
    "MEDTRONIC INC": "MEDTRONIC",
    "MEDTRONIC PLC": "MEDTRONIC",
    "J&J": "JOHNSON & JOHNSON",
    "J & J": "JOHNSON & JOHNSON",
    "PHILIPS HEALTHCARE": "PHILIPS",
    "ROYAL PHILIPS": "PHILIPS",
    "KONINKLIJKE PHILIPS": "PHILIPS",
    "PFIZER INC": "PFIZER",
    "SANOFI-AVENTIS": "SANOFI",
}


@dataclass(frozen=True)
class SeedCompany:
    """A known exhibitor used to fill gaps on a specific directory host."""

    name: str
    tags: tuple[str, ...] = ()
    website: str | None = None


_HEALTH = "#Healthcare & Wellness"

SEED_COMPANIES: dict[str, tuple[SeedCompany, ...]] = {
    "vivatechnology.com": tuple(
        SeedCompany(name, ("#featured", "#partner"))
        for name in (
            "Accenture", "Accor", "Amazon Web Services", "BNP Paribas", "EDF",
            "Google", "HSBC", "Huawei", "IBM", "JCDecaux", "Kering", "La Poste",
            "LVMH", "Meta", "Microsoft", "Orange", "Publicis Groupe",
            "Renault Group", "SNCF", "TotalEnergies", "Air Liquide", "Airbus",
            "AXA", "Capgemini", "Dassault Systèmes", "L'Oréal", "Sanofi",
            "Schneider Electric", "Thales Group", "Vinci",
        )
    )
    + (
        SeedCompany(
            "3D BIOTECHNOLOGY SOLUTIONS",
            (_HEALTH, "#Deep Tech & Quantum Computing"),
        ),
        SeedCompany("AALIA.TECH", (_HEALTH, "#Artificial Intelligence")),
        SeedCompany("AD'OCC - RÉGION OCCITANIE", (_HEALTH, "#Artificial Intelligence")),
        SeedCompany("ADCIS - GROUPE EVOLUCARE", (_HEALTH, "#Industry & Supply Chain")),
        SeedCompany("AMAZE", (_HEALTH,)),
        SeedCompany("DATEXIM", (_HEALTH,)),
        SeedCompany("DEEPGING", (_HEALTH,)),
        SeedCompany("FINNOCARE", (_HEALTH,)),
        SeedCompany("JURATA", (_HEALTH,)),
        SeedCompany("MUHCCS", (_HEALTH,)),
    ),
}


@dataclass(frozen=True)
class HeuristicsConfig:
    """Vocabulary passed into the analyzer, link classifier and extractor.

    Attributes:
        company_keywords: Body-text words that suggest a company directory.
        boost_keywords: Domain keywords that raise a link's priority by 2.
        domain_keywords: Words that make a card count as in-domain for the
            domain card strategy.
        domain_tag: Tag added to records found by the domain card strategy.
    """

    company_keywords: tuple[str, ...] = COMPANY_KEYWORDS
    list_selectors: tuple[str, ...] = LIST_SELECTORS
    pagination_selectors: tuple[str, ...] = PAGINATION_SELECTORS
    loading_selectors: tuple[str, ...] = LOADING_SELECTORS
    anti_bot_body_markers: tuple[str, ...] = ANTI_BOT_BODY_MARKERS
    anti_bot_title_markers: tuple[str, ...] = ANTI_BOT_TITLE_MARKERS
    card_count_selectors: tuple[str, ...] = CARD_COUNT_SELECTORS
    company_container_selectors: tuple[str, ...] = COMPANY_CONTAINER_SELECTORS
    container_class_exclusions: tuple[str, ...] = CONTAINER_CLASS_EXCLUSIONS
    chrome_selectors: tuple[str, ...] = CHROME_SELECTORS
    name_selectors: tuple[str, ...] = NAME_SELECTORS
    tag_selectors: tuple[str, ...] = TAG_SELECTORS
    content_selectors: tuple[str, ...] = CONTENT_SELECTORS
    noise_selectors: tuple[str, ...] = NOISE_SELECTORS
    company_link_patterns: tuple[str, ...] = COMPANY_LINK_PATTERNS
    detail_link_patterns: tuple[str, ...] = DETAIL_LINK_PATTERNS
    detail_link_text: tuple[str, ...] = DETAIL_LINK_TEXT
    navigation_link_text: tuple[str, ...] = NAVIGATION_LINK_TEXT
    navigation_link_patterns: tuple[str, ...] = NAVIGATION_LINK_PATTERNS
    link_company_hints: tuple[str, ...] = LINK_COMPANY_HINTS
    boost_keywords: tuple[str, ...] = HEALTHCARE_KEYWORDS
    generic_link_terms: tuple[str, ...] = GENERIC_LINK_TERMS
    social_hosts: tuple[str, ...] = SOCIAL_HOSTS
    invalid_name_patterns: tuple[str, ...] = INVALID_NAME_PATTERNS
    false_positive_names: frozenset[str] = FALSE_POSITIVE_NAMES
    domain_keywords: tuple[str, ...] = HEALTHCARE_KEYWORDS
    domain_tag: str = _HEALTH
    industry_categories: dict[str, str] = field(default_factory=lambda: dict(INDUSTRY_CATEGORIES))
    known_websites: dict[str, str] = field(default_factory=lambda: dict(KNOWN_COMPANY_WEBSITES))
    company_aliases: dict[str, str] = field(default_factory=lambda: dict(COMPANY_ALIASES))
    seed_companies: dict[str, tuple[SeedCompany, ...]] = field(
        default_factory=lambda: dict(SEED_COMPANIES)
    )
    max_records: int = 100

    def with_overrides(self, **changes) -> "HeuristicsConfig":
        """Return a copy with the given fields replaced."""
        return replace(self, **changes)


DEFAULT_HEURISTICS = HeuristicsConfig()
