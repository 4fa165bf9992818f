"""
Unit tests for the prompt library.
"""

import json

import pytest

from listing_gateway.llm.prompt_library import (
    PLATFORM_RULES,
    PromptLibrary,
    PromptNotFoundError,
    PromptRenderError,
    PromptTemplate,
    PromptValidationError,
    language_name,
)
from listing_gateway.models.listing import ListingContent, Platform
from listing_gateway.utils.error_handlers import ListingGatewayError


@pytest.fixture
def library():
    return PromptLibrary()


class TestGenerationPrompt:
    """Test platform-specific generation prompts."""

    def test_amazon_rules(self, library):
        """Test Amazon prompt carries Amazon constraints and no tips field."""
        prompt = library.build_generation_prompt(Platform.AMAZON, "Ceramic mug")

        assert "Amazon" in prompt.system
        assert "150 characters" in prompt.system
        assert '"Model Number"' in prompt.system
        assert '"tips"' not in prompt.system
        assert prompt.user == "Product Description: Ceramic mug"

    def test_ebay_rules(self, library):
        """Test eBay prompt asks for tips and allows a markdown table."""
        prompt = library.build_generation_prompt(Platform.EBAY, "Brass lamp")

        assert "eBay" in prompt.system
        assert "80 characters" in prompt.system
        assert '"tips"' in prompt.system
        assert '"MPN"' in prompt.system
        assert "markdown" in prompt.system

    def test_requests_bare_json(self, library):
        """Test the model is told not to fence its output."""
        prompt = library.build_generation_prompt(Platform.AMAZON, "x")
        assert "bare JSON object" in prompt.system

    def test_names_every_field(self, library):
        """Test the JSON shape names every listing field."""
        system = library.build_generation_prompt(Platform.AMAZON, "x").system
        for key in ("title", "description", "bulletPoints", "keywords", "category", "itemSpecifics"):
            assert f'"{key}"' in system

    def test_deterministic(self, library):
        """Test building twice yields identical prompts."""
        first = library.build_generation_prompt(Platform.EBAY, "Lamp")
        second = library.build_generation_prompt(Platform.EBAY, "Lamp")
        assert first == second

    def test_empty_description(self, library):
        """Test image-only requests still render a description line."""
        prompt = library.build_generation_prompt(Platform.AMAZON, "   ")
        assert prompt.user == "Product Description: (no text provided)"

    def test_braces_in_description(self, library):
        """Test user text containing braces is not treated as a placeholder."""
        prompt = library.build_generation_prompt(Platform.AMAZON, "Set {of} 4")
        assert prompt.user.endswith("Set {of} 4")

    def test_every_platform_has_rules(self):
        assert set(PLATFORM_RULES) == set(Platform)


class TestTranslationPrompt:
    """Test translation prompts."""

    def test_language_and_content(self, library, sample_listing_data):
        """Test the language is expanded and the listing is embedded as JSON."""
        content = ListingContent.from_dict(sample_listing_data, Platform.AMAZON)
        prompt = library.build_translation_prompt(content, "de")

        assert "German" in prompt.system
        assert "Keep all JSON keys" in prompt.system
        assert json.loads(prompt.user) == content.to_dict()

    def test_unknown_language_passes_through(self):
        assert language_name("pt-BR") == "pt-BR"
        assert language_name("JA") == "Japanese"


class TestTemplates:
    """Test template management."""

    def test_get_unknown_prompt(self, library):
        with pytest.raises(PromptNotFoundError):
            library.get_prompt("does_not_exist")

    def test_latest_version(self, library):
        """Test 'latest' resolves to the highest version."""
        library.add_prompt(
            PromptTemplate(
                name="listing_generation_user",
                version="v2.0",
                template="Item: {description_text}",
                variables=["description_text"],
            )
        )
        assert library.get_prompt("listing_generation_user").version == "v2.0"

    def test_latest_version_numeric_order(self, library):
        """Test v1.10 is newer than v1.9."""
        for version in ("v1.9", "v1.10"):
            library.add_prompt(
                PromptTemplate(
                    name="listing_generation_user",
                    version=version,
                    template=f"{version}: {{description_text}}",
                    variables=["description_text"],
                )
            )
        assert library.get_prompt("listing_generation_user").version == "v1.10"

    def test_duplicate_version_rejected(self, library):
        with pytest.raises(PromptValidationError):
            library.add_prompt(
                PromptTemplate(
                    name="listing_generation_user",
                    version="v1.0",
                    template="{description_text}",
                    variables=["description_text"],
                )
            )

    def test_missing_variable(self, library):
        with pytest.raises(PromptRenderError) as exc_info:
            library.render("listing_generation_user", {})
        assert exc_info.value.missing_vars == ["description_text"]

    def test_errors_are_gateway_errors(self, library):
        """Test prompt failures share the gateway error hierarchy."""
        with pytest.raises(ListingGatewayError) as exc_info:
            library.render("listing_generation_user", {})
        assert exc_info.value.stage == "prompt"

    def test_yaml_override(self, tmp_path):
        """Test a YAML prompt file overrides the built-in template."""
        (tmp_path / "user.yaml").write_text(
            "name: listing_generation_user\n"
            "version: v1.1\n"
            "template: 'Describe: {description_text}'\n",
            encoding="utf-8",
        )
        library = PromptLibrary(str(tmp_path))
        prompt = library.build_generation_prompt(Platform.AMAZON, "Mug")
        assert prompt.user == "Describe: Mug"

    def test_text_override(self, tmp_path):
        """Test a TXT prompt file named <name>_<version>.txt is loaded."""
        (tmp_path / "listing_translation_user_v1.5.txt").write_text(
            "Translate this: {content_json}", encoding="utf-8"
        )
        library = PromptLibrary(str(tmp_path))
        assert library.get_prompt("listing_translation_user").version == "v1.5"

    def test_invalid_prompt_file_skipped(self, tmp_path):
        """Test broken prompt files are skipped."""
        (tmp_path / "broken.yaml").write_text("name: only_a_name\n", encoding="utf-8")
        library = PromptLibrary(str(tmp_path))
        with pytest.raises(PromptNotFoundError):
            library.get_prompt("only_a_name")
