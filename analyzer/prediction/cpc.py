"""
CPC Estimator Module for CRO Signal Engine

Fills in context the caller did not supply (industry, business type, network,
competition and quality tiers) and estimates cost-per-click from it.
"""

import logging
import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from pydantic import BaseModel

from config import settings
from ..context import KEY_CONTEXT_FIELDS, PageContext
from ..errors import DegradedInputWarning
from . import constants as C

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ContextResolution:
    """Enriched context plus where each detected value came from."""

    context: PageContext
    industry_source: str
    business_type_source: str
    explicitness: float
    warnings: List[DegradedInputWarning] = field(default_factory=list)


class CPCEstimate(BaseModel):
    estimated_cpc: float
    breakdown: Dict[str, float]


def keyword_density(text: str, keywords: List[str]) -> float:
    """Word-boundary keyword hits; phrase hits count 1.5 each."""
    matches = 0.0
    for keyword in keywords:
        pattern = r"\b" + r"\s+".join(re.escape(part) for part in keyword.split()) + r"\b"
        hits = len(re.findall(pattern, text, flags=re.IGNORECASE))
        matches += hits
        if " " in keyword and hits:
            matches += hits * 0.5
    return matches


def extract_page_text(dom_data: Dict[str, Any]) -> str:
    """Collect visible text from a raw capture for content-based detection."""
    parts: List[str] = []
    for key in ("buttons", "links", "headings", "textBlocks"):
        for item in dom_data.get(key) or []:
            if isinstance(item, dict) and item.get("text"):
                parts.append(str(item["text"]))
    for item in dom_data.get("formFields") or []:
        if not isinstance(item, dict):
            continue
        placeholder = (item.get("attributes") or {}).get("placeholder") or item.get("placeholder")
        if placeholder:
            parts.append(str(placeholder))
        if item.get("label"):
            parts.append(str(item["label"]))
    for key in ("title", "description"):
        if dom_data.get(key):
            parts.append(str(dom_data[key]))
    for image in dom_data.get("images") or []:
        if isinstance(image, dict) and image.get("alt"):
            parts.append(str(image["alt"]))
    return " ".join(parts)


def _url_matches(url: str, keywords: List[str]) -> bool:
    lowered = url.lower()
    tokens = set(re.split(r"[^a-z0-9]+", lowered))
    for keyword in keywords:
        # Short keywords ("ai", "app", "law") only match whole URL tokens
        if len(keyword) <= 3:
            if keyword in tokens:
                return True
        elif keyword in lowered:
            return True
    return False


class CPCEstimator:
    """Stateless context enrichment and CPC estimation."""

    @staticmethod
    def detect_industry_from_url(url: str) -> Optional[str]:
        if not url:
            return None
        for industry, keywords in C.INDUSTRY_URL_KEYWORDS:
            if _url_matches(url, keywords):
                return industry
        return None

    @staticmethod
    def detect_industry_from_content(text: str) -> Optional[str]:
        if not text:
            return None
        best_industry = None
        best_score = 0.0
        # First strict maximum wins, in table order
        for industry, keywords in C.INDUSTRY_CONTENT_KEYWORDS.items():
            score = keyword_density(text, keywords)
            if score > best_score:
                best_industry, best_score = industry, score
        if best_score >= 3:
            return best_industry
        return None

    @staticmethod
    def detect_business_type(
        industry: Optional[str], traffic_source: str, url: str, text: str
    ) -> str:
        if industry in C.B2B_INDUSTRIES:
            return "b2b"
        if industry in C.B2C_INDUSTRIES:
            return "b2c"
        if traffic_source == "linkedin":
            return "b2b"
        if traffic_source == "social":
            return "b2c"
        if url:
            lowered = url.lower()
            if any(keyword in lowered for keyword in C.B2B_URL_KEYWORDS):
                return "b2b"
            if any(keyword in lowered for keyword in C.B2C_URL_KEYWORDS):
                return "b2c"
        if text:
            b2b_score = keyword_density(text, C.B2B_CONTENT_KEYWORDS)
            b2c_score = keyword_density(text, C.B2C_CONTENT_KEYWORDS)
            if b2b_score > b2c_score and b2b_score >= 2:
                return "b2b"
            if b2c_score > b2b_score and b2c_score >= 2:
                return "b2c"
        return "unknown"

    @staticmethod
    def detect_network_type(traffic_source: str) -> str:
        if traffic_source == "paid":
            return "search"
        if traffic_source in ("social", "linkedin"):
            return "social"
        if traffic_source == "referral":
            return "display"
        return "unknown"

    @staticmethod
    def estimate_competition_level(industry: Optional[str], competitor_presence: bool) -> str:
        if industry in C.HIGH_COMPETITION_INDUSTRIES:
            return "high"
        if industry in C.MEDIUM_COMPETITION_INDUSTRIES:
            return "medium"
        if industry in C.LOW_COMPETITION_INDUSTRIES:
            return "low"
        if competitor_presence:
            return "high"
        return "medium"

    @staticmethod
    def estimate_quality_score(context: PageContext) -> str:
        score = 0.0
        if context.load_time:
            if context.load_time <= 2:
                score += 2
            elif context.load_time <= 3:
                score += 1
            elif context.load_time >= 5:
                score -= 1
        if context.has_ssl:
            score += 1
        if context.has_trust_badges:
            score += 1
        if context.has_testimonials:
            score += 1
        score += context.brand_recognition * 2

        if score >= 6:
            return "excellent"
        if score >= 4:
            return "good"
        if score >= 2:
            return "average"
        return "poor"

    @classmethod
    def estimate_context(cls, context: PageContext) -> ContextResolution:
        """
        Resolve every context tier the caller left out.

        Industry: explicit, else URL keywords, else page-text density,
        else left unset with a DegradedInputWarning.
        """
        explicit = context.explicit_fields()
        explicitness = len(explicit) / len(KEY_CONTEXT_FIELDS)
        warnings: List[DegradedInputWarning] = []
        updates: Dict[str, Any] = {}

        industry = context.industry
        industry_source = "explicit"
        if industry is None:
            industry = cls.detect_industry_from_url(context.url)
            industry_source = "url"
        if industry is None:
            industry = cls.detect_industry_from_content(context.content_text)
            industry_source = "content"
        if industry is None:
            industry_source = "default"
            warnings.append(DegradedInputWarning(
                "industry_not_detected",
                "Industry could not be detected; using general industry defaults",
            ))
        elif industry_source != "explicit":
            updates["industry"] = industry
            logger.info(f"🔍 Detected industry '{industry}' from {industry_source}")

        business_type = context.business_type
        business_type_source = "explicit"
        if business_type is None:
            business_type = cls.detect_business_type(
                industry, context.traffic_source, context.url, context.content_text
            )
            business_type_source = "detected"
            updates["business_type"] = business_type
            if business_type == "unknown":
                business_type_source = "default"
                warnings.append(DegradedInputWarning(
                    "business_type_not_detected",
                    "Business type could not be detected; assuming consumer pricing",
                ))

        if context.network_type is None:
            updates["network_type"] = cls.detect_network_type(context.traffic_source)
        if context.competition_level is None:
            updates["competition_level"] = cls.estimate_competition_level(
                industry, context.competitor_presence
            )
        if context.quality_score is None:
            updates["quality_score"] = cls.estimate_quality_score(context)
        if context.geo_tier is None:
            updates["geo_tier"] = "tier1"

        for warning in warnings:
            logger.warning(f"⚠️ {warning}")

        return ContextResolution(
            context=context.model_copy(update=updates),
            industry_source=industry_source,
            business_type_source=business_type_source,
            explicitness=explicitness,
            warnings=warnings,
        )

    @staticmethod
    def calculate_estimated_cpc(context: PageContext) -> CPCEstimate:
        industry = context.industry
        industry_cpc = C.BASE_CPC
        if industry and industry in C.INDUSTRY_MODIFIERS:
            industry_cpc = max(C.INDUSTRY_MODIFIERS[industry]["avg_cpc"], C.BASE_CPC)

        business_type_multiplier = (
            C.B2B_CPC_MULTIPLIER if context.business_type == "b2b" else C.B2C_CPC_MULTIPLIER
        )
        traffic_source_multiplier = C.TRAFFIC_SOURCE_CPC.get(context.traffic_source, 0.3)
        device_multiplier = C.DEVICE_CPC_MODIFIERS.get(context.device_type, 1.0)
        competition_multiplier = C.COMPETITION_MODIFIERS[context.competition_level or "medium"]
        quality_multiplier = C.QUALITY_SCORE_MODIFIERS[context.quality_score or "unknown"]
        geo_multiplier = C.GEO_MODIFIERS[context.geo_tier or "tier1"]

        time_multiplier = 1.0
        if context.time_of_day in ("morning", "afternoon"):
            time_multiplier *= 1.1
        if context.seasonality == "high":
            time_multiplier *= 1.2
        elif context.seasonality == "low":
            time_multiplier *= 0.85

        raw_cpc = (
            industry_cpc
            * business_type_multiplier
            * traffic_source_multiplier
            * device_multiplier
            * competition_multiplier
            * quality_multiplier
            * geo_multiplier
            * time_multiplier
        )
        estimated_cpc = max(raw_cpc, settings.MIN_CPC)

        return CPCEstimate(
            estimated_cpc=round(estimated_cpc, 2),
            breakdown={
                "base_cpc": C.BASE_CPC,
                "industry_multiplier": industry_cpc / C.BASE_CPC,
                "business_type_multiplier": business_type_multiplier,
                "traffic_source_multiplier": traffic_source_multiplier,
                "device_multiplier": device_multiplier,
                "competition_multiplier": competition_multiplier,
                "quality_multiplier": quality_multiplier,
                "geo_multiplier": geo_multiplier,
                "time_multiplier": time_multiplier,
            },
        )
