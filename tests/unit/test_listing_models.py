"""
Unit tests for listing data structures.

Tests lenient decoding of provider JSON, the platform-tagged listing
classes and their wire format.
"""

import pytest

from listing_gateway.models.listing import (
    AmazonListing,
    EbayListing,
    ListingContent,
    Platform,
    ProviderName,
    RetryState,
    parse_markdown_table,
)


class TestFromDict:
    """Test ListingContent.from_dict normalization."""

    def test_well_formed_amazon(self, sample_listing_data):
        """Test a complete Amazon listing decodes field by field."""
        listing = ListingContent.from_dict(sample_listing_data, Platform.AMAZON)

        assert isinstance(listing, AmazonListing)
        assert listing.title == sample_listing_data["title"]
        assert len(listing.bullet_points) == 5
        assert listing.category == ["Home & Kitchen", "Mugs"]
        assert listing.item_specifics == {"Brand": "Acme", "Material": "Ceramic"}

    def test_empty_object_has_no_none_fields(self):
        """Test every field defaults to an empty value."""
        listing = ListingContent.from_dict({}, Platform.EBAY)

        assert listing.title == ""
        assert listing.description == ""
        assert listing.bullet_points == []
        assert listing.keywords == []
        assert listing.category == []
        assert listing.item_specifics == {}
        assert listing.tips == []

    def test_null_values_become_empty(self):
        """Test JSON nulls are treated like missing fields."""
        listing = ListingContent.from_dict(
            {"title": None, "keywords": None, "itemSpecifics": None}, Platform.AMAZON
        )
        assert listing.title == ""
        assert listing.keywords == []
        assert listing.item_specifics == {}

    def test_category_string_becomes_list(self):
        """Test a single category string becomes a one-element list."""
        listing = ListingContent.from_dict({"category": "Toys > Puzzles"}, Platform.AMAZON)
        assert listing.category == ["Toys > Puzzles"]

    def test_scalars_coerced_to_strings(self):
        """Test numbers are coerced to strings."""
        listing = ListingContent.from_dict(
            {"title": 42, "keywords": [1, "two"], "itemSpecifics": {"Weight": 1.5}},
            Platform.AMAZON,
        )
        assert listing.title == "42"
        assert listing.keywords == ["1", "two"]
        assert listing.item_specifics == {"Weight": "1.5"}

    def test_markdown_table_specifics(self, sample_ebay_data):
        """Test an eBay markdown-table itemSpecifics becomes a mapping."""
        listing = ListingContent.from_dict(sample_ebay_data, Platform.EBAY)

        assert isinstance(listing, EbayListing)
        assert listing.item_specifics == {"Brand": "Acme", "MPN": "MUG-350"}
        assert listing.tips == ["Photograph the mug on a neutral background"]
        assert listing.category == ["Home & Garden > Kitchen > Mugs"]

    def test_snake_case_keys_accepted(self):
        """Test snake_case field names decode too."""
        listing = ListingContent.from_dict(
            {"bullet_points": ["a"], "item_specifics": {"Color": "Red"}}, Platform.AMAZON
        )
        assert listing.bullet_points == ["a"]
        assert listing.item_specifics == {"Color": "Red"}

    def test_platform_from_data(self):
        """Test the platform field selects the listing class when none is given."""
        assert isinstance(ListingContent.from_dict({"platform": "ebay"}), EbayListing)
        assert isinstance(ListingContent.from_dict({}), AmazonListing)

    def test_serialized_ebay_listing_keeps_shape(self, sample_ebay_data):
        """Test an eBay listing's own to_dict() output decodes back to eBay."""
        original = ListingContent.from_dict(sample_ebay_data, Platform.EBAY)

        restored = ListingContent.from_dict(original.to_dict())

        assert isinstance(restored, EbayListing)
        assert restored.tips == original.tips

    def test_explicit_platform_wins_over_tips(self, sample_ebay_data):
        listing = ListingContent.from_dict(sample_ebay_data, Platform.AMAZON)
        assert isinstance(listing, AmazonListing)

    def test_rejects_non_mapping(self):
        """Test non-object input is rejected."""
        with pytest.raises(ValueError):
            ListingContent.from_dict(["not", "an", "object"], Platform.AMAZON)


class TestToDict:
    """Test wire serialization."""

    def test_amazon_has_no_tips(self, sample_listing_data):
        """Test Amazon listings serialize without tips."""
        data = ListingContent.from_dict(sample_listing_data, Platform.AMAZON).to_dict()

        assert set(data) == {
            "title",
            "description",
            "bulletPoints",
            "keywords",
            "category",
            "itemSpecifics",
        }

    def test_ebay_includes_tips(self, sample_ebay_data):
        """Test eBay listings serialize tips."""
        data = ListingContent.from_dict(sample_ebay_data, Platform.EBAY).to_dict()
        assert data["tips"] == ["Photograph the mug on a neutral background"]

    def test_round_trip(self, sample_listing_data):
        """Test to_dict output decodes to an equal listing."""
        listing = ListingContent.from_dict(sample_listing_data, Platform.AMAZON)
        assert ListingContent.from_dict(listing.to_dict(), Platform.AMAZON) == listing


class TestMarkdownTable:
    """Test markdown table parsing."""

    def test_skips_header_and_separator(self):
        """Test header and separator rows are ignored."""
        table = "| Attribute | Value |\n|---|---|\n| Color | Red |\n| Size | L |"
        assert parse_markdown_table(table) == {"Color": "Red", "Size": "L"}

    def test_ignores_prose(self):
        """Test non-table lines are ignored."""
        assert parse_markdown_table("Just some text") == {}


class TestEnums:
    """Test platform and provider parsing."""

    def test_parse_case_insensitive(self):
        assert Platform.parse(" EBAY ") is Platform.EBAY
        assert ProviderName.parse("Gemini") is ProviderName.GEMINI

    def test_parse_unknown(self):
        with pytest.raises(ValueError, match="Unknown provider"):
            ProviderName.parse("claude")
        with pytest.raises(ValueError, match="Unknown platform"):
            Platform.parse("etsy")


class TestRetryState:
    """Test retry bookkeeping validation."""

    def test_rejects_negative_attempt(self):
        with pytest.raises(ValueError):
            RetryState(max_attempts=3, base_delay_ms=1000, attempt=-1)
