"""
Listing data structures for the Listing Gateway.

Defines the canonical listing shape returned to callers, the per-request
inputs for generation and translation, and the retry bookkeeping owned by
the gateway for one outbound call.

ListingContent is a tagged union: AmazonListing and EbayListing share the
common fields, EbayListing adds advisory tips. Provider output is validated
leniently at the adapter boundary with ListingContent.from_dict, which
coerces whatever JSON the model produced into the canonical shape.
"""

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, ClassVar, Dict, List, Optional


class Platform(str, Enum):
    """Target marketplace whose rules shape the prompt."""

    AMAZON = "amazon"
    EBAY = "ebay"

    @classmethod
    def parse(cls, value: Any) -> "Platform":
        """Parse a platform name, raising ValueError on unknown values."""
        if isinstance(value, Platform):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            raise ValueError(
                f"Unknown platform: {value}. "
                f"Available: {', '.join(p.value for p in cls)}"
            )


class ProviderName(str, Enum):
    """Remote LLM vendor."""

    OPENAI = "openai"
    GEMINI = "gemini"

    @classmethod
    def parse(cls, value: Any) -> "ProviderName":
        """Parse a provider name, raising ValueError on unknown values."""
        if isinstance(value, ProviderName):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            raise ValueError(
                f"Unknown provider: {value}. "
                f"Available: {', '.join(p.value for p in cls)}"
            )


class TaskKind(str, Enum):
    """Kind of gateway operation."""

    GENERATE = "generate"
    TRANSLATE = "translate"


# Markdown table row: | Name | Value |
_TABLE_ROW = re.compile(r"^\s*\|?(.+?)\|(.+?)\|?\s*$")
_TABLE_SEPARATOR = re.compile(r"^\s*\|?\s*:?-{2,}")


def _to_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    if isinstance(value, (list, tuple)):
        return ", ".join(_to_text(v) for v in value if v is not None)
    return str(value)


def _to_text_list(value: Any) -> List[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [value] if value.strip() else []
    if isinstance(value, (list, tuple)):
        return [_to_text(v) for v in value if v is not None and _to_text(v) != ""]
    if isinstance(value, dict):
        return [f"{k}: {_to_text(v)}" for k, v in value.items()]
    return [str(value)]


def parse_markdown_table(text: str) -> Dict[str, str]:
    """
    Parse a two-column markdown table into a mapping.

    Header rows and separator rows are skipped. Lines that are not table
    rows are ignored.

    Args:
        text: Markdown table text, e.g. "| Brand | Acme |\\n| Color | Red |".

    Returns:
        Mapping from first-column to second-column text.
    """
    result: Dict[str, str] = {}
    for line in text.splitlines():
        if not line.strip() or _TABLE_SEPARATOR.match(line):
            continue
        match = _TABLE_ROW.match(line)
        if not match:
            continue
        name = match.group(1).strip().strip("|").strip()
        value = match.group(2).strip().strip("|").strip()
        if not name or name.lower() in {"attribute", "name", "item specific", "specific"}:
            continue
        result[name] = value
    return result


def _to_specifics(value: Any) -> Dict[str, str]:
    if value is None:
        return {}
    if isinstance(value, dict):
        return {str(k): _to_text(v) for k, v in value.items()}
    if isinstance(value, str):
        return parse_markdown_table(value)
    if isinstance(value, list):
        # [{"name": ..., "value": ...}] pairs
        result: Dict[str, str] = {}
        for item in value:
            if isinstance(item, dict) and "name" in item:
                result[str(item["name"])] = _to_text(item.get("value"))
        return result
    return {}


@dataclass
class ListingContent:
    """
    Canonical structured listing.

    Every field defaults to an empty value so renderers never branch on a
    missing key.

    Attributes:
        title: Listing title.
        description: Listing body text (HTML allowed for Amazon).
        bullet_points: Ordered selling points (5 expected, not enforced).
        keywords: Search keywords.
        category: Suggested category paths, always a sequence.
        item_specifics: Attribute name to attribute value.
    """

    platform: ClassVar[Platform] = Platform.AMAZON

    title: str = ""
    description: str = ""
    bullet_points: List[str] = field(default_factory=list)
    keywords: List[str] = field(default_factory=list)
    category: List[str] = field(default_factory=list)
    item_specifics: Dict[str, str] = field(default_factory=dict)

    @staticmethod
    def class_for(platform: Platform) -> type:
        """Return the listing class for a platform."""
        return EbayListing if Platform.parse(platform) is Platform.EBAY else AmazonListing

    @classmethod
    def from_dict(
        cls, data: Dict[str, Any], platform: Optional[Platform] = None
    ) -> "ListingContent":
        """
        Build a listing from provider or client JSON.

        Accepts camelCase and snake_case keys, coerces scalars and lists to
        strings, turns a single category string into a one-element list and
        parses markdown-table item specifics.

        Args:
            data: Decoded JSON object.
            platform: Listing platform. Defaults to data["platform"], then to
                eBay when the data carries "tips", then to the class's own
                platform.

        Returns:
            AmazonListing or EbayListing.

        Raises:
            ValueError: If data is not a mapping.
        """
        if not isinstance(data, dict):
            raise ValueError(f"Listing must be a JSON object, got {type(data).__name__}")

        if platform is None:
            if data.get("platform"):
                platform = Platform.parse(data["platform"])
            elif cls is ListingContent and "tips" in data:
                # Serialized eBay listings carry tips but no platform tag
                platform = Platform.EBAY
            else:
                platform = cls.platform
        target = ListingContent.class_for(platform)

        def pick(*keys: str) -> Any:
            for key in keys:
                if key in data:
                    return data[key]
            return None

        kwargs: Dict[str, Any] = {
            "title": _to_text(pick("title")),
            "description": _to_text(pick("description")),
            "bullet_points": _to_text_list(pick("bulletPoints", "bullet_points")),
            "keywords": _to_text_list(pick("keywords")),
            "category": _to_text_list(pick("category", "categories")),
            "item_specifics": _to_specifics(pick("itemSpecifics", "item_specifics")),
        }
        if target is EbayListing:
            kwargs["tips"] = _to_text_list(pick("tips"))
        return target(**kwargs)

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to the camelCase wire shape."""
        return {
            "title": self.title,
            "description": self.description,
            "bulletPoints": list(self.bullet_points),
            "keywords": list(self.keywords),
            "category": list(self.category),
            "itemSpecifics": dict(self.item_specifics),
        }


@dataclass
class AmazonListing(ListingContent):
    """Amazon listing: five marketing bullet points, backend search terms."""

    platform: ClassVar[Platform] = Platform.AMAZON


@dataclass
class EbayListing(ListingContent):
    """
    eBay listing.

    Attributes:
        tips: Advisory notes for the seller.
    """

    platform: ClassVar[Platform] = Platform.EBAY

    tips: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        result = super().to_dict()
        result["tips"] = list(self.tips)
        return result


@dataclass
class GenerationRequest:
    """Inputs for one listing generation call."""

    description_text: str
    platform: Platform = Platform.AMAZON
    provider: ProviderName = ProviderName.OPENAI
    image_base64: Optional[str] = None
    model_version: Optional[str] = None


@dataclass
class TranslationRequest:
    """Inputs for one listing translation call."""

    content: ListingContent
    target_language: str
    provider: ProviderName = ProviderName.OPENAI
    model_version: Optional[str] = None

    @property
    def platform(self) -> Platform:
        return self.content.platform


@dataclass
class RetryState:
    """
    Retry bookkeeping for one outbound call.

    Attributes:
        attempt: Number of failed attempts so far (0-based).
        max_attempts: Retry ceiling.
        base_delay_ms: Base delay for exponential backoff.
    """

    max_attempts: int
    base_delay_ms: int
    attempt: int = 0

    def __post_init__(self):
        if self.attempt < 0:
            raise ValueError("attempt must be non-negative")
        if self.max_attempts < 0:
            raise ValueError("max_attempts must be non-negative")
