"""
Page Context Module for CRO Signal Engine

Typed page/business context decoded from loosely-typed external records.
Accepts camelCase or snake_case keys.
"""

import logging
from typing import Any, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic import ValidationError as PydanticValidationError
from pydantic.alias_generators import to_camel

from config import settings
from utils.parsing.json import Payload, load_payload
from .elements import Element
from .errors import DecodeError

logger = logging.getLogger(__name__)

DeviceType = Literal["desktop", "mobile", "tablet"]
TrafficSource = Literal["organic", "paid", "social", "email", "direct", "referral", "linkedin", "unknown"]
Industry = Literal[
    "saas", "ecommerce", "leadgen", "content", "legal", "finance", "technology",
    "automotive", "realestate", "travel", "consumerservices", "education", "healthcare",
]
BusinessType = Literal["b2b", "b2c", "unknown"]
NetworkType = Literal["search", "display", "social", "unknown"]
GeoTier = Literal["tier1", "tier2", "tier3", "unknown"]
CompetitionLevel = Literal["high", "medium", "low", "unknown"]
QualityTier = Literal["excellent", "good", "average", "poor", "unknown"]

# Fields whose explicit presence raises confidence in the predictions
KEY_CONTEXT_FIELDS = [
    "industry",
    "business_type",
    "traffic_source",
    "device_type",
    "load_time",
    "ad_message_match",
    "competition_level",
    "quality_score",
    "total_impressions",
    "brand_recognition",
]


class PageContext(BaseModel):
    """Everything the models know about the page and its traffic."""

    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, extra="ignore", frozen=True
    )

    url: str = ""
    title: str = ""
    device_type: DeviceType = "desktop"
    traffic_source: TrafficSource = "unknown"
    industry: Optional[Industry] = None
    business_type: Optional[BusinessType] = None

    # Temporal tags
    time_of_day: Optional[Literal["morning", "afternoon", "evening", "night"]] = None
    day_of_week: Optional[Literal["weekday", "weekend"]] = None
    seasonality: Optional[Literal["high", "medium", "low"]] = None

    # Competitive signals
    competitor_presence: bool = False
    brand_recognition: float = Field(default=0.5, ge=0.0, le=1.0)

    # Quality signals
    load_time: float = Field(default=3.0, ge=0.0)
    ad_message_match: float = Field(default=0.7, ge=0.0, le=1.0)
    has_ssl: bool = True
    has_trust_badges: bool = False
    has_testimonials: bool = False
    page_complexity: float = Field(default=50.0, ge=0.0, le=100.0)

    viewport_width: int = 1920
    viewport_height: int = 1080
    fold_line: int = Field(default_factory=lambda: settings.DEFAULT_FOLD_LINE)
    total_impressions: int = Field(
        default_factory=lambda: settings.DEFAULT_TOTAL_IMPRESSIONS, gt=0
    )

    network_type: Optional[NetworkType] = None
    geo_tier: Optional[GeoTier] = None
    competition_level: Optional[CompetitionLevel] = None
    quality_score: Optional[QualityTier] = None

    elements: List[Element] = Field(default_factory=list)
    is_form_related: bool = False
    form_field_count: int = Field(default=0, ge=0)

    # Raw page text used for industry/business-type detection
    content_text: str = ""

    @field_validator("industry", mode="before")
    @classmethod
    def normalize_industry(cls, value: Any) -> Any:
        if isinstance(value, str):
            value = value.strip().lower().replace(" ", "").replace("-", "").replace("_", "")
            return value or None
        return value

    @field_validator("device_type", "traffic_source", "business_type", mode="before")
    @classmethod
    def lowercase_tags(cls, value: Any) -> Any:
        if isinstance(value, str):
            return value.strip().lower()
        return value

    def explicit_fields(self) -> List[str]:
        """Key context fields the caller actually supplied."""
        return [name for name in KEY_CONTEXT_FIELDS if name in self.model_fields_set]


def decode_page_context(record: Optional[Payload]) -> PageContext:
    """
    Decode a context record at the request boundary.

    Raises:
        DecodeError: malformed context; a bad context fails the whole request
    """
    data = load_payload(record) if record is not None else {}
    try:
        return PageContext.model_validate(data)
    except PydanticValidationError as e:
        first = e.errors()[0]
        location = ".".join(str(part) for part in first["loc"])
        logger.warning(f"⚠️ Invalid page context at {location}: {first['msg']}")
        raise DecodeError(first["msg"], field=f"context.{location}") from e
