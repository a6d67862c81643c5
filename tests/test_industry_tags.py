"""Tests for industry tag derivation."""

from app.core.heuristics import DEFAULT_HEURISTICS
from app.services.industry_tags import contains_keyword, extract_industry_tags, is_healthcare_related


class TestContainsKeyword:
    """Test keyword matching rules."""

    def test_short_keywords_need_whole_word(self):
        """Test two-letter keywords do not match inside other words."""
        assert contains_keyword("an ai platform", "ai") is True
        assert contains_keyword("a rainy day in spain", "ai") is False

    def test_long_keywords_match_word_start(self):
        assert contains_keyword("healthcare providers", "health") is True
        assert contains_keyword("stealth mode", "health") is False

    def test_multi_word_keyword(self):
        assert contains_keyword("applied machine learning", "machine learning") is True


class TestIsHealthcareRelated:
    """Test healthcare detection."""

    def test_related(self):
        assert is_healthcare_related("Medical imaging for clinics") is True

    def test_unrelated(self):
        assert is_healthcare_related("Payments for marketplaces") is False

    def test_empty(self):
        assert is_healthcare_related("") is False


class TestExtractIndustryTags:
    """Test hashtag-style tags."""

    def test_single_category(self):
        assert extract_industry_tags("Open banking payments") == ["#Fintech"]

    def test_multiple_categories_in_vocabulary_order(self):
        tags = extract_industry_tags("AI for logistics")
        assert tags == ["#Artificial Intelligence", "#Industry & Supply Chain"]

    def test_healthcare_subcategories(self):
        """Test healthcare matches add specific subcategories."""
        tags = extract_industry_tags("Telemedicine software for remote patient care")
        assert tags[0] == "#Healthcare & Wellness"
        assert "#Telemedicine" in tags
        assert "#Digital Health" in tags

    def test_subcategories_need_healthcare(self):
        """Test trigger words alone do not produce healthcare subcategories."""
        tags = extract_industry_tags("Remote software platform")
        assert "#Telemedicine" not in tags
        assert "#Digital Health" not in tags

    def test_no_duplicates(self):
        tags = extract_industry_tags("Health, wellness and medical services")
        assert tags.count("#Healthcare & Wellness") == 1

    def test_empty_text(self):
        assert extract_industry_tags("") == []

    def test_custom_vocabulary(self):
        config = DEFAULT_HEURISTICS.with_overrides(industry_categories={"space": "Aerospace"})
        assert extract_industry_tags("Space logistics", config) == ["#Aerospace"]
