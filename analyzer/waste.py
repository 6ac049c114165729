"""
Wasted-Click Classification Module for CRO Signal Engine

Scores every non-primary interactive element for how much attention it pulls
away from the primary call-to-action. The score is a configurable weighted
sum of five components, each in [0, 1]:

- prominence: size relative to the primary CTA, button styling, fold, contrast
- proximity: closeness to the primary CTA
- intent_overlap: text/intent similarity with the primary CTA
- noise: autoplay, sticky, decorative, visual noise, rotation, overlays
- attention: predicted clicks relative to the primary CTA's

The primary CTA is never scored.
"""

import logging
import math
import re
from typing import Dict, List, Optional, Sequence

from pydantic import BaseModel, Field

from config import get_waste_thresholds, get_waste_weights, settings
from .elements import Element, ElementBase, element_href
from .errors import ValidationError
from .prediction.constants import HIGH_INTENT_KEYWORDS, SOCIAL_DOMAINS
from .prediction.distribution import ClickPrediction, is_external_link
from .prediction.scoring import is_call_to_action

logger = logging.getLogger(__name__)

STOPWORDS = {
    "the", "and", "for", "are", "but", "not", "you", "all", "can", "our", "your",
    "with", "this", "that", "from", "now", "get",
}


class PrimaryCTA(BaseModel):
    """The chosen primary CTA element with its own predicted performance."""

    element: Element
    prediction: Optional[ClickPrediction] = None

    @property
    def id(self) -> str:
        return self.element.id

    @property
    def text(self) -> str:
        return self.element.text


class FormContext(BaseModel):
    cta_type: str
    is_form_related: bool
    form_field_count: int = 0
    primary_form_action: Optional[str] = None


class WasteScore(BaseModel):
    element_id: str
    element_kind: str
    text: str
    wasted_click_score: float
    classification: str
    factors: Dict[str, float] = Field(default_factory=dict)
    recommendation: str = ""


class ProjectedImprovements(BaseModel):
    ctr_improvement: float = 0.0
    conversion_improvement: float = 0.0
    implementation_difficulty: str = "easy"


class WasteAnalysis(BaseModel):
    primary_cta_id: str
    primary_cta_text: str
    form_context: FormContext
    total_wasted_elements: int = 0
    average_wasted_score: float = 0.0
    high_risk_elements: List[WasteScore] = Field(default_factory=list)
    scores: List[WasteScore] = Field(default_factory=list)
    recommendations: List[str] = Field(default_factory=list)
    projected_improvements: ProjectedImprovements = Field(default_factory=ProjectedImprovements)
    low_risk_threshold: float = 0.0
    high_risk_threshold: float = 0.0


def keywords(text: str) -> List[str]:
    words = re.sub(r"[^\w\s]", " ", (text or "").lower()).split()
    return [word for word in words if len(word) > 2 and word not in STOPWORDS]


class WastedClickModel:
    """
    Deterministic, pure wasted-click scorer.

    Weights and thresholds default to the configured settings and are held
    immutable for the life of the model.
    """

    FORM_CTA_KEYWORDS = [
        "sign up", "register", "subscribe", "join", "create account", "get started",
        "submit", "send", "contact us", "request", "apply", "book", "schedule", "reserve",
    ]
    FORM_CTA_HREF_HINTS = ["signup", "register", "contact", "subscribe"]

    NOISE_FLAG_WEIGHTS = {
        "autoplay": 0.35,
        "sticky": 0.25,
        "visual_noise": 0.25,
        "auto_rotating": 0.2,
        "decorative": 0.2,
        "overlay": 0.15,
    }

    SUPPORTIVE_TEXT_HINTS = ["privacy", "terms", "secure", "guarantee"]

    FORM_CONTEXT_RECOMMENDATIONS = {
        "competing-cta": "Remove competing CTAs from form pages - focus on single conversion",
        "navigational-noise": "Minimize navigation on form pages - use breadcrumbs instead",
        "social-link": "Hide social links during form completion - save for thank you page",
        "external-link": "Remove all external links from form pages",
        "decorative": "Remove animated or decorative elements around the form",
    }
    NON_FORM_RECOMMENDATIONS = {
        "competing-cta": "Remove competing CTAs or merge with primary CTA",
        "navigational-noise": "Simplify navigation or make less prominent",
        "social-link": "Relocate social links to footer or sidebar",
        "external-link": "Remove external links or open in new tab with warning",
        "decorative": "Replace auto-playing or animated elements with static content",
        "form-distraction": "Move secondary forms (newsletter, contact) to post-conversion flow",
    }

    def __init__(
        self,
        weights: Optional[Dict[str, float]] = None,
        low_risk_threshold: Optional[float] = None,
        high_risk_threshold: Optional[float] = None,
        proximity_radius: Optional[float] = None,
    ):
        default_low, default_high = get_waste_thresholds()
        self.weights = dict(weights or get_waste_weights())
        self.low_risk_threshold = default_low if low_risk_threshold is None else low_risk_threshold
        self.high_risk_threshold = default_high if high_risk_threshold is None else high_risk_threshold
        self.proximity_radius = proximity_radius or settings.WASTE_PROXIMITY_RADIUS_PX

        unknown = set(self.weights) - set(get_waste_weights())
        if unknown:
            raise ValidationError(f"Unknown waste weight(s): {', '.join(sorted(unknown))}")
        if any(value < 0 for value in self.weights.values()):
            raise ValidationError("Waste weights must be non-negative")
        if self.high_risk_threshold < self.low_risk_threshold:
            raise ValidationError("High-risk threshold must not be below the low-risk threshold")

    # ======================
    # Public API
    # ======================

    def analyze(
        self,
        elements: Sequence[ElementBase],
        primary_cta: Optional[PrimaryCTA],
        predictions: Sequence[ClickPrediction] = (),
    ) -> WasteAnalysis:
        """
        Score every interactive element other than the primary CTA.

        Raises:
            ValidationError: no primary CTA was supplied
        """
        if primary_cta is None:
            raise ValidationError("A primary CTA is required for wasted-click analysis")

        primary = primary_cta.element
        form_context = self.detect_form_context(primary, elements)
        by_id = {prediction.element_id: prediction for prediction in predictions}
        primary_prediction = primary_cta.prediction or by_id.get(primary.id)

        scores = []
        for element in elements:
            if element.id == primary.id or not element.is_interactive:
                continue
            scores.append(self.score_element(element, primary, primary_prediction, by_id.get(element.id), form_context))

        analysis = self.aggregate(scores, primary, form_context)
        logger.info(
            f"🧹 Wasted-click analysis: {analysis.total_wasted_elements} wasted, "
            f"{len(analysis.high_risk_elements)} high-risk of {len(scores)} scored"
        )
        return analysis

    def detect_form_context(self, primary: ElementBase, elements: Sequence[ElementBase]) -> FormContext:
        text = (primary.text or "").lower()
        href = (element_href(primary) or "").lower()
        field_count = sum(1 for element in elements if element.is_form_field)

        is_form_cta = (
            primary.is_form_field
            or primary.kind == "form"
            or bool(getattr(primary, "form_action", None))
            or any(keyword in text for keyword in self.FORM_CTA_KEYWORDS)
            or any(hint in href for hint in self.FORM_CTA_HREF_HINTS)
            or field_count > 2
        )
        return FormContext(
            cta_type="form-cta" if is_form_cta else "non-form-cta",
            is_form_related=is_form_cta,
            form_field_count=field_count,
            primary_form_action=getattr(primary, "form_action", None) or element_href(primary),
        )

    def score_element(
        self,
        element: ElementBase,
        primary: ElementBase,
        primary_prediction: Optional[ClickPrediction],
        prediction: Optional[ClickPrediction],
        form_context: FormContext,
    ) -> WasteScore:
        components = {
            "prominence": self.prominence(element, primary),
            "proximity": self.proximity(element, primary),
            "intent_overlap": self.intent_overlap(element, primary),
            "noise": self.noise(element),
            "attention": self.attention(prediction, primary_prediction),
        }
        total_weight = sum(self.weights.values())
        contributions = {
            name: self.weights.get(name, 0.0) * value for name, value in components.items()
        }
        score = sum(contributions.values()) / total_weight if total_weight > 0 else 0.0
        score *= self.context_multiplier(element, form_context)
        score = max(0.0, min(1.0, score))

        classification = self.classify(element, score, contributions, form_context)
        return WasteScore(
            element_id=element.id,
            element_kind=element.kind,
            text=element.text,
            wasted_click_score=score,
            classification=classification,
            factors=contributions,
            recommendation=self.recommendation(classification, score, form_context),
        )

    # ======================
    # Components
    # ======================

    def prominence(self, element: ElementBase, primary: ElementBase) -> float:
        primary_area = primary.geometry.area
        size = min(element.geometry.area / primary_area, 1.0) if primary_area > 0 else 0.0
        score = 0.4 * size
        if element.has_button_styling:
            score += 0.3
        if element.is_above_fold:
            score += 0.2
        if element.has_high_contrast:
            score += 0.1
        return min(score, 1.0)

    def proximity(self, element: ElementBase, primary: ElementBase) -> float:
        ex, ey = element.geometry.center
        px, py = primary.geometry.center
        distance = math.hypot(ex - px, ey - py)
        return max(0.0, 1.0 - distance / self.proximity_radius)

    def intent_overlap(self, element: ElementBase, primary: ElementBase) -> float:
        text = (element.text or "").strip().lower()
        primary_text = (primary.text or "").strip().lower()
        if not text or not primary_text:
            return 0.0
        if text == primary_text:
            return 1.0

        words, primary_words = set(keywords(text)), set(keywords(primary_text))
        union = words | primary_words
        overlap = len(words & primary_words) / len(union) if union else 0.0

        shared_intent = [
            keyword for keyword in HIGH_INTENT_KEYWORDS if keyword in text and keyword in primary_text
        ]
        if shared_intent:
            overlap = max(overlap, 0.6)
        return overlap

    def noise(self, element: ElementBase) -> float:
        flags = {
            "autoplay": element.is_autoplay,
            "sticky": element.is_sticky,
            "visual_noise": element.has_visual_noise,
            "auto_rotating": element.is_auto_rotating,
            "decorative": element.is_decorative,
            "overlay": element.z_index is not None and element.z_index > 1000,
        }
        return min(sum(self.NOISE_FLAG_WEIGHTS[name] for name, on in flags.items() if on), 1.0)

    def attention(
        self, prediction: Optional[ClickPrediction], primary_prediction: Optional[ClickPrediction]
    ) -> float:
        if prediction is None:
            return 0.0
        if primary_prediction is None or primary_prediction.predicted_clicks <= 0:
            return min(prediction.click_share_decimal, 1.0)
        return min(prediction.predicted_clicks / primary_prediction.predicted_clicks, 1.0)

    def context_multiplier(self, element: ElementBase, form_context: FormContext) -> float:
        if element.is_form_field or element.kind == "form":
            return 0.2 if form_context.is_form_related else 1.1
        text = (element.text or "").lower()
        if any(hint in text for hint in self.SUPPORTIVE_TEXT_HINTS):
            return 0.5
        return 1.0

    # ======================
    # Classification
    # ======================

    def classify(
        self,
        element: ElementBase,
        score: float,
        contributions: Dict[str, float],
        form_context: FormContext,
    ) -> str:
        if score <= self.low_risk_threshold:
            return "low-risk"

        href = (element_href(element) or "").lower()
        class_name = (element.class_name or "").lower()
        if any(domain in href for domain in SOCIAL_DOMAINS) or "social" in class_name:
            return "social-link"
        if is_external_link(href, ""):
            return "external-link"
        if element.is_form_field and not form_context.is_form_related:
            return "form-distraction"

        # Dominant contribution, first in component order on ties
        dominant = max(contributions, key=lambda name: contributions[name])
        if dominant == "noise":
            return "decorative"
        if dominant in ("prominence", "intent_overlap") and (
            is_call_to_action(element) or element.kind in ("button", "form")
        ):
            return "competing-cta"
        return "navigational-noise"

    def recommendation(self, classification: str, score: float, form_context: FormContext) -> str:
        if classification == "low-risk":
            return "Low priority - monitor for changes"
        table = (
            self.FORM_CONTEXT_RECOMMENDATIONS
            if form_context.is_form_related
            else self.NON_FORM_RECOMMENDATIONS
        )
        text = table.get(classification, "Review element necessity and placement")
        if score > self.high_risk_threshold:
            return f"HIGH PRIORITY: {text}"
        return text

    # ======================
    # Aggregation
    # ======================

    def aggregate(
        self, scores: List[WasteScore], primary: ElementBase, form_context: FormContext
    ) -> WasteAnalysis:
        wasted = [score for score in scores if score.wasted_click_score > self.low_risk_threshold]
        average = sum(s.wasted_click_score for s in wasted) / len(wasted) if wasted else 0.0

        order = {score.element_id: index for index, score in enumerate(scores)}
        high_risk = sorted(
            (score for score in scores if score.wasted_click_score > self.high_risk_threshold),
            key=lambda s: (-s.wasted_click_score, order[s.element_id]),
        )

        return WasteAnalysis(
            primary_cta_id=primary.id,
            primary_cta_text=primary.text,
            form_context=form_context,
            total_wasted_elements=len(wasted),
            average_wasted_score=average,
            high_risk_elements=high_risk,
            scores=scores,
            recommendations=self.page_recommendations(scores, form_context),
            projected_improvements=self.projected_improvements(high_risk, form_context),
            low_risk_threshold=self.low_risk_threshold,
            high_risk_threshold=self.high_risk_threshold,
        )

    def page_recommendations(self, scores: List[WasteScore], form_context: FormContext) -> List[str]:
        recommendations = []
        tags = [score.classification for score in scores]
        if form_context.is_form_related:
            if "social-link" in tags:
                recommendations.append("Remove social media links from form pages to reduce abandonment")
            if tags.count("navigational-noise") > 2:
                recommendations.append("Simplify navigation during form completion - use progress indicators instead")
            if form_context.form_field_count > 5:
                recommendations.append("Consider a multi-step form to reduce cognitive load")
        else:
            if "form-distraction" in tags:
                recommendations.append("Remove competing newsletter/contact forms from the conversion page")
            if tags.count("competing-cta") > 1:
                recommendations.append("Consolidate competing calls-to-action into the primary CTA")
        return recommendations

    def projected_improvements(
        self, high_risk: List[WasteScore], form_context: FormContext
    ) -> ProjectedImprovements:
        total = sum(score.wasted_click_score for score in high_risk)
        ctr_improvement = min(total * 0.15, 0.5)
        multiplier = 1.2 if form_context.is_form_related else 0.8
        if len(high_risk) > 10:
            difficulty = "hard"
        elif len(high_risk) > 5:
            difficulty = "moderate"
        else:
            difficulty = "easy"
        return ProjectedImprovements(
            ctr_improvement=ctr_improvement,
            conversion_improvement=min(ctr_improvement * multiplier, 0.6),
            implementation_difficulty=difficulty,
        )


def analyze_wasted_clicks(
    elements: Sequence[ElementBase],
    primary_cta: Optional[PrimaryCTA],
    predictions: Sequence[ClickPrediction] = (),
    weights: Optional[Dict[str, float]] = None,
) -> WasteAnalysis:
    """Run the wasted-click model with configured (or overridden) weights."""
    return WastedClickModel(weights=weights).analyze(elements, primary_cta, predictions)
