"""Prompt library for listing generation and translation.

This module provides the versioned prompt templates sent to the providers and
the builders that turn a platform plus raw inputs into a system/user prompt
pair. Platform-specific constraints live in the PLATFORM_RULES table rather
than in branches at call sites.

The library loads built-in prompts and, optionally, overrides from a prompts
directory (supports .txt and .yaml formats).

Example:
    >>> library = PromptLibrary()
    >>> prompt = library.build_generation_prompt(Platform.EBAY, "Vintage lamp")
    >>> "tips" in prompt.system
    True
"""

import json
import logging
import re
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Set

import yaml
from packaging.version import InvalidVersion, Version

from ..models.listing import ListingContent, Platform
from ..utils.error_handlers import ListingGatewayError

logger = logging.getLogger(__name__)


def _version_key(version_str: str) -> tuple:
    """Sort key for prompt versions; non-PEP 440 versions sort first."""
    try:
        return (1, Version(version_str.lstrip("vV")))
    except InvalidVersion:
        return (0, version_str)


# Custom Exceptions
class PromptLibraryError(ListingGatewayError):
    """Base exception for prompt library errors."""

    def __init__(self, message: str):
        super().__init__(message, stage="prompt")


class PromptNotFoundError(PromptLibraryError):
    """Raised when a requested prompt is not found."""

    def __init__(self, name: str, version: Optional[str] = None):
        self.name = name
        self.version = version
        if version:
            msg = f"Prompt not found: {name} (version: {version})"
        else:
            msg = f"Prompt not found: {name}"
        super().__init__(msg)


class PromptRenderError(PromptLibraryError):
    """Raised when prompt rendering fails."""

    def __init__(
        self, template_name: str, reason: str, missing_vars: Optional[List[str]] = None
    ):
        self.template_name = template_name
        self.reason = reason
        self.missing_vars = missing_vars or []
        msg = f"Failed to render prompt '{template_name}': {reason}"
        if missing_vars:
            msg += f" (missing variables: {missing_vars})"
        super().__init__(msg)


class PromptValidationError(PromptLibraryError):
    """Raised when prompt validation fails."""

    pass


@dataclass(frozen=True)
class PromptTemplate:
    """Prompt template definition with versioning.

    Attributes:
        name: Unique identifier of the prompt (e.g., 'listing_generation_system').
        version: Version string (e.g., 'v1.0').
        template: Prompt text with {variable} placeholders for string formatting.
        variables: Variable names required for rendering.
        metadata: Additional context (e.g., task, role).
        deprecated: Whether this prompt version is deprecated.
    """

    name: str
    version: str
    template: str
    variables: List[str]
    metadata: Dict[str, Any] = field(default_factory=dict)
    deprecated: bool = False

    def __post_init__(self):
        if not self.name or not self.name.strip():
            raise PromptValidationError("Prompt name cannot be empty")
        if not self.version or not self.version.strip():
            raise PromptValidationError("Prompt version cannot be empty")
        if not self.template or not self.template.strip():
            raise PromptValidationError("Prompt template cannot be empty")

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class PlatformRules:
    """Marketplace constraints embedded in the generation prompt.

    Attributes:
        display_name: Marketplace name shown to the model.
        title_length_rule: Title length constraint.
        description_format_rule: Allowed description formatting.
        bullet_points_required: Whether five dedicated bullet points are required.
        keywords_purpose: What the keyword list is used for.
        item_specifics_rule: How thoroughly to fill item specifics.
        model_number_key: Platform name of the model-number attribute.
        weight_key: Platform name of the weight attribute.
        include_tips: Whether the listing carries advisory seller tips.
    """

    display_name: str
    title_length_rule: str
    description_format_rule: str
    bullet_points_required: bool
    keywords_purpose: str
    item_specifics_rule: str
    model_number_key: str
    weight_key: str
    include_tips: bool = False


PLATFORM_RULES: Dict[Platform, PlatformRules] = {
    Platform.AMAZON: PlatformRules(
        display_name="Amazon",
        title_length_rule="Strictly within 150 characters, optimized with core keywords",
        description_format_rule=(
            "Can use simple HTML tags for formatting (e.g., <p>, <ul>, <li>, <b>)"
        ),
        bullet_points_required=True,
        keywords_purpose=(
            "Generate a set of backend search terms to improve visibility within "
            "Amazon search, usually not shown directly to buyers"
        ),
        item_specifics_rule=(
            "Very important, infer and fill as many relevant attributes as possible "
            "based on the provided information"
        ),
        model_number_key="Model Number",
        weight_key="Item Weight",
    ),
    Platform.EBAY: PlatformRules(
        display_name="eBay",
        title_length_rule="Strictly within 80 characters, including the most important keywords",
        description_format_rule="Usually plain text, keep paragraphs clear",
        bullet_points_required=False,
        keywords_purpose=(
            "Generate a set of keywords suitable for embedding in the title and "
            "description to improve search engine visibility"
        ),
        item_specifics_rule=(
            "Important, especially for filtering features, infer based on information"
        ),
        model_number_key="MPN",
        weight_key="Weight",
        include_tips=True,
    ),
}

# Language code to language name, unknown codes are passed through
LANGUAGE_NAMES: Dict[str, str] = {
    "en": "English",
    "de": "German",
    "fr": "French",
    "it": "Italian",
    "es": "Spanish",
    "ja": "Japanese",
    "zh": "Chinese",
}


@dataclass(frozen=True)
class BuiltPrompt:
    """Rendered prompt split into system and user parts."""

    system: str
    user: str

    def combined(self) -> str:
        """Single instruction string for providers without roles."""
        return f"{self.system}\n\n{self.user}"


class PromptLibrary:
    """Manage versioned prompts for listing generation and translation.

    Holds the built-in templates and optional file-based overrides, renders
    templates with {variable} substitution, and builds platform-specific
    prompts from PLATFORM_RULES. Rendering has no side effects.

    Attributes:
        prompts_dir: Optional directory containing override prompt files.
    """

    def __init__(self, prompts_dir: Optional[str] = None) -> None:
        """Initialize prompt library and load all available prompts.

        Args:
            prompts_dir: Optional directory with .yaml/.txt prompt overrides.
        """
        self.prompts_dir: Optional[Path] = Path(prompts_dir) if prompts_dir else None
        self._prompts: Dict[str, Dict[str, PromptTemplate]] = {}

        self._load_builtin_prompts()
        if self.prompts_dir is not None:
            self._load_custom_prompts()

        logger.info(f"PromptLibrary initialized with {len(self._prompts)} prompts")

    def get_prompt(self, name: str, version: str = "latest") -> PromptTemplate:
        """Retrieve prompt template by name and version.

        Args:
            name: Prompt identifier.
            version: Version string or 'latest'.

        Returns:
            PromptTemplate matching name and version.

        Raises:
            PromptNotFoundError: If name or version doesn't exist.
        """
        if name not in self._prompts:
            raise PromptNotFoundError(name)

        versions = self._prompts[name]
        if version == "latest":
            version = max(versions, key=_version_key)

        if version not in versions:
            raise PromptNotFoundError(name, f"{version} (available: {list(versions)})")

        template = versions[version]
        if template.deprecated:
            logger.warning(f"Using deprecated prompt: {name} {version}")
        return template

    def render_prompt(self, template: PromptTemplate, context: Dict[str, Any]) -> str:
        """Render prompt template by substituting variables with context values.

        Args:
            template: PromptTemplate to render.
            context: Mapping of variable names to values.

        Returns:
            Rendered prompt string.

        Raises:
            PromptRenderError: If variables are missing or formatting fails.
        """
        actual_vars = self._extract_variables(template.template)

        missing = sorted(var for var in actual_vars if var not in context)
        if missing:
            raise PromptRenderError(template.name, "Missing required variables", missing)

        try:
            rendered = template.template.format(**context)
        except (KeyError, ValueError, IndexError) as e:
            raise PromptRenderError(template.name, f"Template formatting error: {e}")

        if not rendered.strip():
            raise PromptRenderError(template.name, "Rendered prompt is empty")
        return rendered.strip()

    def render(self, name: str, context: Dict[str, Any], version: str = "latest") -> str:
        """Get and render a prompt in one call."""
        return self.render_prompt(self.get_prompt(name, version), context)

    def add_prompt(self, prompt: PromptTemplate, overwrite: bool = False) -> None:
        """Register a prompt template.

        Raises:
            PromptValidationError: If the version exists and overwrite is False.
        """
        versions = self._prompts.setdefault(prompt.name, {})
        if prompt.version in versions and not overwrite:
            raise PromptValidationError(
                f"Prompt {prompt.name} {prompt.version} already exists"
            )
        versions[prompt.version] = prompt

    def build_generation_prompt(
        self, platform: Platform, description_text: str
    ) -> BuiltPrompt:
        """Build the listing generation prompt for a platform.

        Args:
            platform: Target marketplace.
            description_text: Seller's free-text product description.

        Returns:
            BuiltPrompt with the instructions and the labeled description.
        """
        rules = PLATFORM_RULES[Platform.parse(platform)]
        system = self.render(
            "listing_generation_system",
            {
                "platform_name": rules.display_name,
                "json_shape": self._generation_shape(rules),
            },
        )
        user = self.render(
            "listing_generation_user",
            {"description_text": description_text.strip() or "(no text provided)"},
        )
        return BuiltPrompt(system=system, user=user)

    def build_translation_prompt(
        self, content: ListingContent, target_language: str
    ) -> BuiltPrompt:
        """Build the prompt translating a listing's values into target_language.

        Args:
            content: Listing to translate.
            target_language: Language code (e.g., 'de') or language name.

        Returns:
            BuiltPrompt with the instructions and the listing JSON.
        """
        system = self.render(
            "listing_translation_system",
            {"language_name": language_name(target_language)},
        )
        user = self.render(
            "listing_translation_user",
            {"content_json": json.dumps(content.to_dict(), ensure_ascii=False)},
        )
        return BuiltPrompt(system=system, user=user)

    def _generation_shape(self, rules: PlatformRules) -> str:
        """Describe the output JSON field by field for one platform."""
        if rules.bullet_points_required:
            bullet_points = [
                "Bullet 1: Concisely summarize a core advantage",
                "Bullet 2: Highlight another unique feature or benefit",
                "Bullet 3: Describe material, craftsmanship, or quality-related aspects",
                "Bullet 4: Emphasize ease of use, compatibility, or special design",
                "Bullet 5: Mention packaging, accessories, or after-sales support (if applicable)",
            ]
        else:
            bullet_points = [
                "Generate 3-5 key feature points based on the description to enrich the content"
            ]

        shape: Dict[str, Any] = {
            "title": f"Product title. {rules.title_length_rule}.",
            "description": (
                "Detailed product description. Should include features, benefits, "
                "specifications, uses and applicable scenarios. "
                f"{rules.description_format_rule}."
            ),
            "bulletPoints": bullet_points,
            "keywords": [
                "Generate a list of keywords based on product information and the "
                f"target platform. {rules.keywords_purpose}."
            ],
            "category": [
                f"Suggest 1-3 most relevant {rules.display_name} category paths. "
                "Example: 'Home & Kitchen > Kitchen & Dining > Tableware > Bowls'"
            ],
            "itemSpecifics": {
                "Brand": "Infer from information or fill in 'Unbranded'/'Generic'",
                "Material": "Infer from image and text",
                "Color": "Infer from image and text",
                "Size/Dimensions": "Infer from image and text",
                "Style": "Infer from image and text",
                rules.model_number_key: "Try to infer",
                rules.weight_key: "Try to infer",
            },
        }
        if rules.include_tips:
            shape["tips"] = [
                "Short advisory notes for the seller, e.g. photos to add or "
                "details buyers usually ask about"
            ]

        lines = [json.dumps(shape, indent=2, ensure_ascii=False)]
        lines.append(f"Item specifics importance: {rules.item_specifics_rule}.")
        if rules.include_tips:
            lines.append(
                "itemSpecifics should be a JSON object; a two-column markdown "
                "table string is also accepted."
            )
        return "\n".join(lines)

    def _extract_variables(self, template_str: str) -> Set[str]:
        """Extract {variable} names, ignoring {{escaped}} braces."""
        stripped = template_str.replace("{{", "").replace("}}", "")
        return set(re.findall(r"\{([a-zA-Z_]\w*)(?::[^}]*)?\}", stripped))

    def _load_custom_prompts(self) -> None:
        """Load override prompts from prompts_dir."""
        if not self.prompts_dir.is_dir():
            logger.warning(f"Prompts directory not found: {self.prompts_dir}")
            return

        for prompt_file in sorted(self.prompts_dir.glob("*")):
            try:
                if prompt_file.suffix in [".yaml", ".yml"]:
                    self._load_yaml_prompt(prompt_file)
                elif prompt_file.suffix == ".txt":
                    self._load_text_prompt(prompt_file)
            except (OSError, yaml.YAMLError, PromptLibraryError, TypeError) as e:
                logger.warning(f"Failed to load prompt file {prompt_file.name}: {e}")

    def _load_yaml_prompt(self, prompt_file: Path) -> None:
        """Load prompt from YAML file.

        Expected format:
            name: listing_generation_system
            version: v1.1
            template: |
                Your prompt text here with {variables}
        """
        with open(prompt_file, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)

        if not isinstance(data, dict):
            raise PromptValidationError("YAML prompt must be a mapping")

        missing = [k for k in ("name", "version", "template") if k not in data]
        if missing:
            raise PromptValidationError(f"YAML file missing required fields: {missing}")

        self.add_prompt(
            PromptTemplate(
                name=data["name"],
                version=str(data["version"]),
                template=data["template"],
                variables=sorted(self._extract_variables(data["template"])),
                metadata=data.get("metadata", {}),
                deprecated=data.get("deprecated", False),
            ),
            overwrite=True,
        )

    def _load_text_prompt(self, prompt_file: Path) -> None:
        """Load prompt from {name}_{version}.txt or {name}.txt (v1.0)."""
        stem = prompt_file.stem
        parts = stem.rsplit("_", 1)
        if len(parts) == 2 and parts[1].startswith("v"):
            name, version = parts
        else:
            name, version = stem, "v1.0"

        template_text = prompt_file.read_text(encoding="utf-8")
        if not template_text.strip():
            logger.warning(f"Skipping empty prompt file: {prompt_file.name}")
            return

        self.add_prompt(
            PromptTemplate(
                name=name,
                version=version,
                template=template_text,
                variables=sorted(self._extract_variables(template_text)),
                metadata={"source": "file", "filename": prompt_file.name},
            ),
            overwrite=True,
        )

    def _load_builtin_prompts(self) -> None:
        """Load built-in templates for generation and translation."""
        self.add_prompt(
            PromptTemplate(
                name="listing_generation_system",
                version="v1.0",
                template="""You are a top-tier e-commerce content strategist and copywriter, especially proficient in the rules and best practices of the {platform_name} platform.
Your task is to analyze the provided product text description and product image (if provided), and then generate a product information JSON object that fully complies with {platform_name} platform requirements and possesses marketing appeal.

Core Requirements:
1. Deep Integration of Text and Image Info: analyze visual information from the image such as appearance, details, materials and usage scenarios, and combine it with the provided text description.
2. Platform Rule Compliance: strictly adhere to {platform_name}'s specific requirements, especially regarding title length and description format.
3. Marketing Orientation: the content should be accurate and highlight product selling points.
4. JSON Output: return the result strictly in the following JSON structure. Do not wrap it in markdown code fences or add explanatory text, output the bare JSON object only.

JSON Structure & {platform_name} Specific Requirements:
{json_shape}
""",
                variables=["platform_name", "json_shape"],
                metadata={"task": "generate", "role": "system"},
            )
        )

        self.add_prompt(
            PromptTemplate(
                name="listing_generation_user",
                version="v1.0",
                template="Product Description: {description_text}",
                variables=["description_text"],
                metadata={"task": "generate", "role": "user"},
            )
        )

        self.add_prompt(
            PromptTemplate(
                name="listing_translation_system",
                version="v1.0",
                template="""You are a professional e-commerce translator.
Translate every text value of the JSON object provided by the user into {language_name}.
Keep all JSON keys exactly as they are and keep the structure unchanged: same keys, same nesting, same number of list items.
Translate only values. Keep brand names, model numbers and units unchanged.
Return the bare translated JSON object only, without markdown code fences or commentary.
""",
                variables=["language_name"],
                metadata={"task": "translate", "role": "system"},
            )
        )

        self.add_prompt(
            PromptTemplate(
                name="listing_translation_user",
                version="v1.0",
                template="{content_json}",
                variables=["content_json"],
                metadata={"task": "translate", "role": "user"},
            )
        )


def language_name(code: str) -> str:
    """Expand a language code to its name, passing unknown codes through."""
    return LANGUAGE_NAMES.get(code.strip().lower(), code.strip())
