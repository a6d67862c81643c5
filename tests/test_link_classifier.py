"""Tests for link classification and ranking."""

from app.models import LinkData
from app.services.dom import parse_html
from app.services.link_classifier import classify_link, extract_relevant_links

PAGE_URL = "https://expo.test/exhibitors"

RANKING_HTML = """
<html><body>
    <a href="https://other.org/">Other Org</a>
    <a href="/list?page=2">Next</a>
    <a href="/partners/acme">Acme Corp</a>
    <a href="/about">About us</a>
    <a href="#top">Back to top</a>
    <a href="javascript:void(0)">Open</a>
    <a href="/partners/acme">Acme Corp again</a>
    <a href="/partners/empty"> </a>
</body></html>
"""


class TestClassifyLink:
    """Test type detection and priority scoring."""

    def test_company_link(self):
        assert classify_link("https://expo.test/company/acme", "Acme", "expo.test") == ("company", 8)

    def test_detail_link(self):
        assert classify_link("https://expo.test/profile/42", "Acme", "expo.test") == ("detail", 7)
        assert classify_link("https://expo.test/x", "View details", "expo.test") == ("detail", 7)

    def test_navigation_link(self):
        assert classify_link("https://expo.test/?page=3", "3", "expo.test") == ("navigation", 6)
        assert classify_link("https://expo.test/x", "Next", "expo.test") == ("navigation", 6)

    def test_external_link(self):
        assert classify_link("https://acme.com/", "Acme", "expo.test") == ("external", 3)

    def test_subdomain_is_not_external(self):
        """Test subdomains of the page host count as the same site."""
        assert classify_link("https://cdn.expo.test/x", "Acme", "www.expo.test")[0] == "unknown"

    def test_domain_keyword_boost(self):
        """Test healthcare keywords raise priority by two."""
        assert classify_link("https://expo.test/company/medical-co", "Medical Co", "expo.test") == (
            "company",
            10,
        )

    def test_generic_text_penalty(self):
        """Test generic labels lose three points, floored at one."""
        assert classify_link("https://expo.test/company/acme", "Contact", "expo.test") == (
            "company",
            5,
        )
        assert classify_link("https://expo.test/", "Home", "expo.test") == ("unknown", 1)


class TestExtractRelevantLinks:
    """Test link collection, filtering and ordering."""

    def test_ranking_order(self):
        """Test company, navigation and external links sort by priority."""
        links = extract_relevant_links(parse_html(RANKING_HTML), PAGE_URL)
        assert [(link.type, link.priority, link.url) for link in links] == [
            ("company", 8, "https://expo.test/partners/acme"),
            ("navigation", 6, "https://expo.test/list?page=2"),
            ("external", 3, "https://other.org/"),
        ]

    def test_link_fields(self):
        links = extract_relevant_links(parse_html(RANKING_HTML), PAGE_URL)
        company = links[0]
        assert company.text == "Acme Corp"
        assert company.description == "company link: Acme Corp"
        assert company.metadata.is_internal is True
        assert company.metadata.has_company_keywords is True
        assert links[-1].metadata.is_internal is False

    def test_deduplicates_by_url(self):
        links = extract_relevant_links(parse_html(RANKING_HTML), PAGE_URL)
        urls = [link.url for link in links]
        assert len(urls) == len(set(urls))

    def test_empty_document(self):
        assert extract_relevant_links(parse_html(""), PAGE_URL) == []

    def test_max_links_limits_scan(self):
        """Test only the first 2 * max_links anchors are considered."""
        anchors = "".join(f'<a href="/company/{i}">Company {i}</a>' for i in range(20))
        links = extract_relevant_links(parse_html(anchors), PAGE_URL, max_links=3)
        assert len(links) <= 3
        assert all(link.url.endswith(("/0", "/1", "/2", "/3", "/4", "/5")) for link in links)

    def test_zero_max_links(self):
        assert extract_relevant_links(parse_html(RANKING_HTML), PAGE_URL, max_links=0) == []

    def test_priorities_within_bounds(self, directory_tree):
        links = extract_relevant_links(directory_tree, PAGE_URL)
        assert links
        assert all(1 <= link.priority <= 10 for link in links)
        assert all(link.priority > 2 for link in links)
        priorities = [link.priority for link in links]
        assert priorities == sorted(priorities, reverse=True)


class TestLinkDataPriority:
    """Test priority clamping on the model."""

    def test_priority_clamped(self):
        assert LinkData(url="https://a.test", priority=14).priority == 10
        assert LinkData(url="https://a.test", priority=-2).priority == 1
