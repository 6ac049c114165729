"""
Risk Assessment Module for CRO Signal Engine

Risk-factor tags, discrete confidence tiers, prediction reliability and
page-level warnings.
"""

from typing import List, Sequence

from pydantic import BaseModel, Field

from ..context import PageContext
from ..elements import ElementBase, FormField, element_href
from .scoring import ScoredElement

TIERS = ["low", "medium", "high"]


class ReliabilityAssessment(BaseModel):
    level: str
    score: float
    factors: List[str] = Field(default_factory=list)


def tier_for(score: float, high: float = 0.7, medium: float = 0.4) -> str:
    if score >= high:
        return "high"
    if score >= medium:
        return "medium"
    return "low"


def lower_tier(first: str, second: str) -> str:
    return first if TIERS.index(first) <= TIERS.index(second) else second


def context_confidence_tier(explicitness: float) -> str:
    """How much of the context was supplied rather than detected or defaulted."""
    return tier_for(explicitness, high=0.5, medium=0.2)


class RiskAssessment:
    """Stateless risk and confidence heuristics."""

    MAX_RISK_FACTORS = 5
    MAX_WARNINGS = 3
    CONVERSION_KEYWORDS = ["buy", "purchase", "sign up", "subscribe", "download", "get started"]

    TRAFFIC_RELIABILITY = {
        "organic": 0.1,
        "paid": 0.15,
        "email": 0.1,
        "direct": 0.05,
        "social": -0.05,
        "referral": 0.0,
        "linkedin": 0.0,
        "unknown": -0.1,
    }

    def risk_factors(self, element: ElementBase, context: PageContext) -> List[str]:
        risks = []
        text = element.text or ""
        if not element.is_visible:
            risks.append("Element is not visible")
        if not element.is_above_fold:
            risks.append("Element is below the fold")
        if not element.is_interactive:
            risks.append("Element is not interactive")
        if not element.has_button_styling and element.is_interactive:
            risks.append("Poor visual affordance")
        if len(text) < 3:
            risks.append("Insufficient text content")
        if len(text) > 50:
            risks.append("Text content may be too long")
        if isinstance(element, FormField):
            if element.required and not element.label:
                risks.append("Required field without clear label")
            if element.input_type == "password" and not context.has_ssl:
                risks.append("Password field without SSL")
            if self._is_complex_field(element):
                risks.append("Complex field may cause abandonment")
        if context.load_time > 5.0:
            risks.append("Slow page load time may affect engagement")
        if context.traffic_source == "social":
            risks.append("Social traffic typically has lower engagement")
        if context.traffic_source == "paid" and context.ad_message_match < 0.5:
            risks.append("Poor ad-to-page message match")
        if context.device_type == "mobile" and (
            element.geometry.width < 44 or element.geometry.height < 44
        ):
            risks.append("Touch target too small for mobile")
        if element.distance_from_top > 2000:
            risks.append("Element requires significant scrolling")
        if element_href(element) in ("#", "javascript:void(0)"):
            risks.append("Non-functional link")
        if not context.has_ssl:
            risks.append("Page lacks SSL security")
        if not context.has_trust_badges and self._is_conversion_element(element):
            risks.append("Lack of trust signals for conversion element")
        return risks[: self.MAX_RISK_FACTORS]

    def confidence_tier(
        self,
        element: ElementBase,
        score: float,
        context: PageContext,
        industry_source: str,
        explicitness: float,
    ) -> str:
        """
        Discrete confidence for one prediction.

        The element-level tier is capped by the context tier, so a well-formed
        element on a mostly defaulted context never reports high confidence.
        """
        confidence = 0.0
        if score > 0.7:
            confidence += 0.4
        elif score > 0.4:
            confidence += 0.2
        if element.is_interactive:
            confidence += 0.3
        if element.has_button_styling:
            confidence += 0.2
        if element.is_visible and element.is_above_fold:
            confidence += 0.3
        if context.total_impressions > 1000:
            confidence += 0.1
        if context.traffic_source != "unknown":
            confidence += 0.1
        if 5 < len(element.text or "") < 30:
            confidence += 0.1
        if context.has_ssl:
            confidence += 0.05
        if context.load_time < 3.0:
            confidence += 0.05
        if industry_source == "explicit":
            confidence += 0.1
        elif industry_source in ("url", "content"):
            confidence += 0.05
        confidence -= len(self.risk_factors(element, context)) * 0.05

        return lower_tier(tier_for(confidence), context_confidence_tier(explicitness))

    def assess_reliability(
        self, scored: Sequence[ScoredElement], context: PageContext
    ) -> ReliabilityAssessment:
        score = 0.5
        factors = []

        if context.total_impressions > 10000:
            score += 0.2
            factors.append("High impression volume")
        elif context.total_impressions < 100:
            score -= 0.2
            factors.append("Low impression volume")

        total = len(scored)
        interactive = sum(1 for entry in scored if entry.element.is_interactive)
        ratio = interactive / total if total else 0.0
        if ratio > 0.7:
            score += 0.15
            factors.append("High proportion of interactive elements")
        elif ratio < 0.3:
            score -= 0.15
            factors.append("Low proportion of interactive elements")

        if _variance([entry.score for entry in scored]) > 0.1:
            score += 0.1
            factors.append("Good score differentiation")
        else:
            score -= 0.1
            factors.append("Poor score differentiation")

        score += self.TRAFFIC_RELIABILITY.get(context.traffic_source, 0.0)

        if context.load_time < 3.0:
            score += 0.05
            factors.append("Fast page load time")
        elif context.load_time > 5.0:
            score -= 0.1
            factors.append("Slow page load time")
        if context.has_ssl:
            score += 0.05
            factors.append("SSL security present")

        score = max(0.0, min(1.0, score))
        return ReliabilityAssessment(level=tier_for(score), score=score, factors=factors)

    def prediction_warnings(
        self, scored: Sequence[ScoredElement], context: PageContext
    ) -> List[str]:
        warnings = []
        if context.total_impressions < 1000:
            warnings.append("Low impression volume may affect prediction accuracy")
        if context.traffic_source in ("social", "paid"):
            warnings.append("Traffic source typically has higher bounce rates")
        if context.load_time > 5.0:
            warnings.append("Slow page load may significantly impact actual performance")
        if context.device_type == "mobile":
            small = sum(
                1
                for entry in scored
                if entry.element.geometry.width < 44 or entry.element.geometry.height < 44
            )
            if small:
                warnings.append(f"{small} elements may be too small for mobile interaction")
        poor_text = sum(1 for entry in scored if len(entry.element.text or "") < 3)
        if poor_text > len(scored) * 0.3:
            warnings.append("Many elements lack sufficient text content")
        non_interactive = sum(1 for entry in scored if not entry.element.is_interactive)
        if non_interactive > len(scored) * 0.5:
            warnings.append("High proportion of non-interactive elements detected")
        return warnings[: self.MAX_WARNINGS]

    def _is_complex_field(self, element: FormField) -> bool:
        return (
            element.input_type in ("password", "email")
            or element.required
            or bool(element.pattern or element.min_length or element.max_length)
        )

    def _is_conversion_element(self, element: ElementBase) -> bool:
        lowered = (element.text or "").lower()
        return any(keyword in lowered for keyword in self.CONVERSION_KEYWORDS)


def _variance(values: List[float]) -> float:
    if not values:
        return 0.0
    mean = sum(values) / len(values)
    return sum((value - mean) ** 2 for value in values) / len(values)
