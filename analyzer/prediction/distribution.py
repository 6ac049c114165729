"""
Click Distribution Module for CRO Signal Engine

Allocates engaged clicks across scored elements, redistributes toward top
performers and estimates the share of each element's clicks that is wasted.
"""

import logging
import math
from typing import Dict, List, Optional, Sequence, Tuple
from urllib.parse import urlparse

from pydantic import BaseModel, Field, computed_field

from ..context import PageContext
from ..elements import ElementBase, element_href
from . import constants as C
from .scoring import ScoredElement, is_call_to_action
from .traffic import TrafficAnalyzer

logger = logging.getLogger(__name__)


class WasteBreakdown(BaseModel):
    element_category: str = "unknown"
    element_classification: float = 0.0
    attention_ratio_waste: float = 0.0
    attention_ratio: Optional[float] = None
    visual_emphasis: float = 0.0
    content_clutter: float = 0.0
    quality_factors: float = 0.0
    total_waste_rate: float = 0.0
    capped_waste_rate: float = 0.0
    visual_factors: List[str] = Field(default_factory=list)
    clutter_factors: List[str] = Field(default_factory=list)
    quality_factor_tags: List[str] = Field(default_factory=list)


class ClickPrediction(BaseModel):
    """Predicted performance of one element; percentages are 0-100."""

    element_id: str
    element_kind: str
    text: str
    predicted_clicks: float
    estimated_clicks: int
    ctr: float
    click_share: float
    click_probability: float
    raw_score: float
    wasted_clicks: int = 0
    wasted_spend: float = 0.0
    avg_cpc: float = 0.0
    confidence: str = "low"
    risk_factors: List[str] = Field(default_factory=list)
    waste_breakdown: Optional[WasteBreakdown] = None

    # Form-associated elements only
    completion_rate: Optional[float] = None
    lead_count: Optional[int] = None
    bottleneck_field: Optional[str] = None

    @computed_field
    @property
    def ctr_decimal(self) -> float:
        return self.ctr / 100

    @computed_field
    @property
    def click_share_decimal(self) -> float:
        return self.click_share / 100


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


class ClickDistributor:
    """Turns scores into click allocations."""

    NAVIGATION_CLASS_HINTS = ["nav", "menu", "header", "breadcrumb"]
    SOCIAL_HINTS = ["facebook", "twitter", "instagram", "linkedin", "youtube", "tiktok"]
    INTERRUPTIVE_CLASS_HINTS = ["modal", "popup", "overlay", "notification", "alert", "banner", "toast"]
    COMPETING_CTA_HINTS = ["learn more", "read more", "explore", "discover", "see more"]
    PRIMARY_CTA_HINTS = [
        "buy", "purchase", "order", "subscribe", "sign up", "get started", "download", "try free",
    ]
    SUPPORTING_HINTS = ["help", "support", "faq", "contact", "about", "terms", "privacy"]
    TRUST_TEXT_HINTS = ["testimonial", "review", "guarantee", "secure", "certified", "verified"]
    TRUST_CLASS_HINTS = ["trust", "badge", "seal"]

    def __init__(self, traffic: Optional[TrafficAnalyzer] = None):
        self.traffic = traffic or TrafficAnalyzer()

    def allocate(self, scored: List[ScoredElement], context: PageContext) -> List[float]:
        """
        Predicted clicks per scored element, in input order.

        Probability is the traffic-adjusted score over the adjusted total.
        """
        if not scored:
            return []

        total_clicks = self.traffic.calculate_total_clicks(context)
        for entry in scored:
            entry.adjusted_score = self.traffic.apply_traffic_adjustments(
                entry.score, context, is_call_to_action(entry.element)
            )
        total_score = sum(entry.adjusted_score for entry in scored)
        if total_score <= 0:
            return [C.MIN_CLICKS for _ in scored]

        clicks = []
        for entry in scored:
            entry.probability = entry.adjusted_score / total_score
            clicks.append(entry.probability * total_clicks)
        return clicks

    def apply_pareto_redistribution(self, clicks: List[float]) -> List[float]:
        """
        Shift 10% of all clicks to the top 20% of elements.

        Top performers are ranked by clicks, earlier elements first on ties.
        Everyone else loses an equal share, floored at the minimum click count.
        """
        count = len(clicks)
        if count < 2:
            return list(clicks)

        top_count = math.ceil(count * C.PARETO_TOP_SHARE)
        if top_count >= count:
            return list(clicks)

        ranked = sorted(range(count), key=lambda i: (-clicks[i], i))
        top = set(ranked[:top_count])
        redistribution = sum(clicks) * C.PARETO_BOOST
        boost = redistribution / top_count
        reduction = redistribution / (count - top_count)

        return [
            value + boost if i in top else max(C.MIN_CLICKS, value - reduction)
            for i, value in enumerate(clicks)
        ]

    # ======================
    # Waste rate phases
    # ======================

    def waste_rate(
        self,
        element: ElementBase,
        context: PageContext,
        all_elements: Sequence[ElementBase],
    ) -> Tuple[float, WasteBreakdown]:
        """Share of an element's clicks that do not advance the conversion."""
        breakdown = WasteBreakdown()

        category, rate = self.classify_element(element, context)
        breakdown.element_category = category
        breakdown.element_classification = rate

        ratio_waste, ratio = self._attention_ratio(all_elements)
        breakdown.attention_ratio_waste = ratio_waste
        breakdown.attention_ratio = ratio

        breakdown.visual_emphasis, breakdown.visual_factors = self._visual_emphasis(element)
        breakdown.content_clutter, breakdown.clutter_factors = self._content_clutter(element, all_elements)
        breakdown.quality_factors, breakdown.quality_factor_tags = self._quality_factors(element)

        total = (
            rate
            + ratio_waste
            + breakdown.visual_emphasis
            + breakdown.content_clutter
            + breakdown.quality_factors
        )
        breakdown.total_waste_rate = total
        breakdown.capped_waste_rate = max(0.0, min(total, C.MAX_WASTE_RATE))
        return breakdown.capped_waste_rate, breakdown

    def classify_element(self, element: ElementBase, context: PageContext) -> Tuple[str, float]:
        text = (element.text or "").lower()
        class_name = (element.class_name or "").lower()
        href = (element_href(element) or "").lower()
        rates = C.ELEMENT_WASTE_RATES

        if element.is_form_field or element.kind == "form":
            return "supporting_content", rates["supporting_content"]
        if element.kind == "navigation" or element.tag_name == "nav" or _has(class_name, self.NAVIGATION_CLASS_HINTS):
            return "navigation", rates["navigation"]
        if _has(href, self.SOCIAL_HINTS) or "social" in class_name or "follow" in text or "share" in text:
            return "social_media", rates["social_media"]
        if is_external_link(href, context.url):
            return "external_link", rates["external_link"]
        if _has(class_name, self.INTERRUPTIVE_CLASS_HINTS):
            return "interruptive", rates["interruptive"]
        if element.is_autoplay or "autoplay" in class_name or "auto-play" in class_name:
            return "autoplay_media", rates["autoplay_media"]
        if (_has(text, self.COMPETING_CTA_HINTS) or "secondary" in class_name) and not self.looks_like_primary(element):
            return "competing_cta", rates["competing_cta"]
        if href.startswith("/") or href.startswith("#") or (href and not is_external_link(href, context.url)):
            return "internal_navigation", rates["internal_navigation"]
        if _has(text, self.TRUST_TEXT_HINTS) or _has(class_name, self.TRUST_CLASS_HINTS):
            return "trust_indicator", rates["trust_indicator"]
        if _has(text, self.SUPPORTING_HINTS):
            return "supporting_content", rates["supporting_content"]
        return "unknown", rates["unknown"]

    def looks_like_primary(self, element: ElementBase) -> bool:
        text = (element.text or "").lower()
        class_name = (element.class_name or "").lower()
        return _has(text, self.PRIMARY_CTA_HINTS) or "primary" in class_name or "cta" in class_name

    def _attention_ratio(self, all_elements: Sequence[ElementBase]) -> Tuple[float, Optional[float]]:
        if not all_elements:
            return 0.0, None
        clickable = sum(1 for element in all_elements if element.is_interactive)
        ctas = sum(1 for element in all_elements if self.looks_like_primary(element)) or 1
        ratio = clickable / ctas
        for threshold, rate in C.ATTENTION_RATIO_WASTE:
            if ratio > threshold:
                return rate, ratio
        return 0.0, ratio

    def _visual_emphasis(self, element: ElementBase) -> Tuple[float, List[str]]:
        waste = 0.0
        factors = []
        weights = C.VISUAL_EMPHASIS_WASTE
        if element.has_high_contrast:
            waste += weights["high_contrast_distraction"]
            factors.append("High contrast distraction")
        if element.is_auto_rotating:
            waste += weights["auto_rotating"]
            factors.append("Auto-rotating component")
        if element.z_index is not None and element.z_index > 1000:
            waste += weights["high_z_index_overlay"]
            factors.append("High z-index overlay")
        if element.is_sticky:
            if self.looks_like_primary(element):
                waste += weights["sticky_cta"]
                factors.append("Sticky CTA (beneficial)")
            else:
                waste += weights["sticky_navigation"]
                factors.append("Sticky navigation")
        return waste, factors

    def _content_clutter(
        self, element: ElementBase, all_elements: Sequence[ElementBase]
    ) -> Tuple[float, List[str]]:
        waste = 0.0
        factors = []
        weights = C.CONTENT_CLUTTER_WASTE
        if len(element.text or "") > 500:
            waste += weights["long_text"]
            factors.append("Long text without nearby CTA")
        if element.is_decorative:
            waste += weights["decorative"]
            factors.append("Decorative element")
        if element.has_visual_noise:
            waste += weights["visual_noise"]
            factors.append("Visual noise/animation")
        competing = sum(1 for other in all_elements if is_call_to_action(other))
        if competing > 3 and is_call_to_action(element):
            waste += weights["competing_elements"]
            factors.append("Multiple competing elements")
        return waste, factors

    def _quality_factors(self, element: ElementBase) -> Tuple[float, List[str]]:
        waste = 0.0
        factors = []
        weights = C.LEGACY_QUALITY_WASTE
        if not element.is_interactive:
            waste += weights["non_interactive"]
            factors.append("Non-interactive element")
        if element.is_interactive and not element.has_button_styling and not element.is_form_field:
            waste += weights["missing_button_styling"]
            factors.append("Missing button styling")
        if not element.is_above_fold:
            waste += weights["below_fold"]
            factors.append("Below the fold")
        if element.text and len(element.text) < 3:
            waste += weights["minimal_text"]
            factors.append("Minimal text content")
        return waste, factors


def _has(value: str, hints: List[str]) -> bool:
    return any(hint in value for hint in hints)


def is_external_link(href: str, page_url: str) -> bool:
    if not href or not href.startswith("http"):
        return False
    host = urlparse(href).hostname or ""
    if page_url:
        return host != (urlparse(page_url).hostname or "")
    return host not in ("localhost", "127.0.0.1")


def consistent_shares(clicks: List[float], impressions: int) -> List[Dict[str, float]]:
    """
    CTR and click share (percent) recomputed from final click counts.

    Click shares sum to 100 whenever there is at least one click.
    """
    total = sum(clicks)
    return [
        {
            "ctr": value / impressions * 100 if impressions else 0.0,
            "click_share": value / total * 100 if total else 0.0,
        }
        for value in clicks
    ]
