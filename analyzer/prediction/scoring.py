"""
Scoring Module for CRO Signal Engine

Weighted-attention scoring: each element gets a feature vector (prominence,
position, affordance, intent, page-level quality) and a weighted score.
"""

import logging
import re
from dataclasses import dataclass
from typing import Dict, List, Optional

from ..context import PageContext
from ..elements import ElementBase, FormField, element_href
from . import constants as C

logger = logging.getLogger(__name__)


def _contains_any(text: str, keywords: List[str]) -> bool:
    lowered = (text or "").lower()
    return any(keyword in lowered for keyword in keywords)


def is_call_to_action(element: ElementBase) -> bool:
    if element.is_form_field:
        return False
    return element.has_button_styling or _contains_any(element.text, C.CTA_PATTERNS)


@dataclass
class ScoredElement:
    element: ElementBase
    index: int
    features: Dict[str, float]
    score: float
    adjusted_score: float = 0.0
    probability: float = 0.0


class FeatureExtractor:
    """Computes the weighted feature vector for one element."""

    def extract_features(self, element: ElementBase, context: PageContext) -> Dict[str, float]:
        text = element.text or ""
        class_name = (element.class_name or "").lower()
        return {
            "visibility": self.visibility(element),
            "information_scent": min(len(text) / 50 * 0.7 + (0.3 if _contains_any(text, C.HIGH_INTENT_KEYWORDS) else 0.0), 1.0),
            "friction": self.friction(element),
            "interactivity": self.interactivity(element),
            "heatmap_attention": self.heatmap_attention(element),
            "size_prominence": self.size_prominence(element, context),
            "contrast": 1.0 if element.has_high_contrast else (0.6 if element.has_button_styling else 0.3),
            "credibility": self.credibility(context),
            "content_depth": min(len(text) / 100, 1.0),
            "intent": self.intent(element),
            "visual_affordance": self.visual_affordance(element, class_name),
            "scroll_depth": 1.0 if element.is_above_fold else max(0.2, 1.0 - element.distance_from_top / 3000),
            "performance": max(0.0, 1.0 - (context.load_time - 2.0) / 10.0),
            "ad_match": context.ad_message_match if is_call_to_action(element) else context.ad_message_match * 0.5,
            "trust_boost": self.trust_boost(text),
            "social_proof_boost": self.social_proof_boost(text, class_name),
            "progress_indication": min(
                (0.5 if "progress" in class_name else 0.0) + (0.5 if "step" in class_name else 0.0), 1.0
            ),
            "urgency_boost": self.urgency_boost(text, class_name),
            "auto_completion": 0.8 if isinstance(element, FormField) and element.has_autocomplete else 0.2,
            "field_grouping": 0.7 if ("group" in class_name or "fieldset" in class_name) else 0.3,
            "cross_device_priming": self.cross_device_priming(element, context, class_name),
            "dead_click_risk": self.dead_click_risk(element),
            "cognitive_load_penalty": max(0.5, 1.0 - context.page_complexity / 100),
            "field_complexity": field_complexity(element) if element.is_form_field else 0.0,
        }

    def visibility(self, element: ElementBase) -> float:
        if not element.is_visible:
            return 0.0
        return 0.8 if element.is_above_fold else 0.4

    def friction(self, element: ElementBase) -> float:
        score = 0.8
        if element.is_form_field:
            score -= 0.2
            if element.required:
                score -= 0.15
        if getattr(element, "form_action", None) or getattr(element, "input_type", None) == "submit":
            score -= 0.1
        return max(score, 0.0)

    def interactivity(self, element: ElementBase) -> float:
        if not element.is_interactive:
            return 0.2
        return 0.8 if element.has_button_styling else 0.6

    def heatmap_attention(self, element: ElementBase) -> float:
        if element.is_above_fold:
            return max(0.3, 1.0 - element.distance_from_top / 1000)
        return max(0.1, 0.5 - element.distance_from_top / 2000)

    def size_prominence(self, element: ElementBase, context: PageContext) -> float:
        viewport_area = max(context.viewport_width * context.viewport_height, 1)
        return min(element.geometry.area / (viewport_area * 0.02), 1.0)

    def credibility(self, context: PageContext) -> float:
        score = 0.0
        if context.has_ssl:
            score += 0.2
        if context.has_trust_badges:
            score += 0.3
        if context.has_testimonials:
            score += 0.2
        score += context.brand_recognition * 0.3
        return min(score, 1.0)

    def intent(self, element: ElementBase) -> float:
        score = 0.0
        if _contains_any(element.text, C.HIGH_INTENT_KEYWORDS):
            score += 0.4
        if _contains_any(element.text, C.CTA_PATTERNS):
            score += 0.6
        return min(score, 1.0)

    def visual_affordance(self, element: ElementBase, class_name: str) -> float:
        score = 0.0
        if element.has_button_styling:
            score += 0.4
        if "hover" in class_name or element.has_button_styling:
            score += 0.2
        if element.is_interactive:
            score += 0.2
        if element.has_button_styling or "cta" in class_name:
            score += 0.2
        return min(score, 1.0)

    def trust_boost(self, text: str) -> float:
        lowered = text.lower()
        boost = 1.0
        if "secure" in lowered:
            boost *= 1.2
        if "guarantee" in lowered:
            boost *= 1.15
        if "contact" in lowered:
            boost *= 1.1
        return boost

    def social_proof_boost(self, text: str, class_name: str) -> float:
        boost = 1.0
        if "review" in text.lower():
            boost *= 1.2
        if re.search(r"\d+.*users?", text, flags=re.IGNORECASE):
            boost *= 1.1
        if "share" in class_name or "social" in class_name:
            boost *= 1.05
        return boost

    def urgency_boost(self, text: str, class_name: str) -> float:
        boost = 1.0
        if _contains_any(text, C.URGENCY_KEYWORDS):
            boost *= 1.3
        if "countdown" in class_name or re.search(r"\d+:\d+", text):
            boost *= 1.4
        if "limited" in text.lower():
            boost *= 1.2
        return boost

    def cross_device_priming(self, element: ElementBase, context: PageContext, class_name: str) -> float:
        boost = 1.0
        if context.device_type == "mobile" and element.geometry.width >= 44:
            boost *= 1.1
        if "responsive" in class_name or "mobile" in class_name:
            boost *= 1.05
        return boost

    def dead_click_risk(self, element: ElementBase) -> float:
        risk = 0.0
        if not element.is_interactive:
            risk += 0.7
        if element_href(element) in ("#", "javascript:void(0)"):
            risk += 0.3
        return risk


def field_complexity(element: ElementBase) -> float:
    """Completion difficulty of a form field in [0, 1]."""
    if not isinstance(element, FormField):
        return 0.5
    complexity = 0.2
    complexity += C.FIELD_TYPE_COMPLEXITY.get(element.input_type, C.DEFAULT_FIELD_COMPLEXITY)
    if element.required:
        complexity += 0.2
    if element.pattern or element.min_length or element.max_length:
        complexity += 0.1
    return min(complexity, 1.0)


class ElementScorer:
    """Turns feature vectors into a single non-negative attention score."""

    def __init__(self, weights: Optional[Dict[str, float]] = None):
        self.weights = weights or C.FEATURE_WEIGHTS
        self.feature_extractor = FeatureExtractor()

    def score_element(self, element: ElementBase, context: PageContext, index: int = 0) -> ScoredElement:
        features = self.feature_extractor.extract_features(element, context)
        score = sum(value * self.weights.get(name, 0.0) for name, value in features.items())

        score *= 1.0 if element.is_visible else C.INVISIBLE_MULTIPLIER
        score *= C.ABOVE_FOLD_MULTIPLIER if element.is_above_fold else C.BELOW_FOLD_MULTIPLIER
        if element.is_form_field:
            score *= C.FORM_FIELD_MULTIPLIER
        if element.has_button_styling:
            score *= C.BUTTON_STYLING_MULTIPLIER
        if element.is_interactive:
            score *= C.INTERACTIVE_MULTIPLIER
        score = max(score, C.MIN_SCORE)

        return ScoredElement(element=element, index=index, features=features, score=score, adjusted_score=score)

    def score_elements(self, elements: List[ElementBase], context: PageContext) -> List[ScoredElement]:
        scored = [
            self.score_element(element, context, index)
            for index, element in enumerate(elements)
        ]
        logger.debug(f"Scored {len(scored)} elements")
        return scored
