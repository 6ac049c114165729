"""
Capture Factor Scoring Module for CRO Signal Engine

Derives post-click factor scores from captured page data instead of taking
them from the caller. Every heuristic starts from a base score, moves it by
fixed steps for what it finds in the DOM and clamps to its own range.

A capture is the loosely-typed record produced by the page capture:
{"domData": {"buttons": [...], "links": [...], "forms": [...], "headings": [...],
"images": [...], "scripts": [...], "meta": [...], "styles": [...]},
"primaryCTAPrediction": {...}}

Captures are decoded into CaptureResult at the boundary; the heuristics only
ever see the decoded shape.
"""

import logging
import re
from typing import Any, Dict, List, Optional, Sequence, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

from ..errors import ValidationError
from .model import (
    DEFAULT_CONFIG,
    DEFAULT_FACTORS,
    AudienceWarmth,
    PostClickFactor,
    PostClickPrediction,
    PostClickStep,
    decode_record,
    predict_step_rate,
)

logger = logging.getLogger(__name__)

ACTION_WORDS = ["submit", "continue", "next", "complete", "finish", "proceed", "confirm"]
TRUST_KEYWORDS = [
    "secure", "ssl", "guarantee", "certified", "verified", "trusted",
    "testimonial", "review", "award", "badge", "privacy", "security",
]
BADGE_ALT_HINTS = ["badge", "secure", "certified"]
PROGRESS_KEYWORDS = [
    "step", "progress", "complete", "finish", "continue", "next",
    "almost", "final", "last", "stage", "phase",
]
MOMENTUM_WORDS = ["continue", "next", "complete", "finish", "finalize", "proceed"]
INVESTMENT_KEYWORDS = ["review", "confirm", "summary", "details", "information"]

STOPWORDS = {
    "the", "and", "or", "but", "in", "on", "at", "to", "for", "of", "with",
    "by", "a", "an", "is", "are", "was", "were", "be", "been", "have", "has",
    "had", "do", "does", "did", "will", "would", "could", "should", "may",
    "might", "can", "this", "that", "these", "those", "i", "you", "he", "she",
    "it", "we", "they", "me", "him", "her", "us", "them", "my", "your", "his",
    "its", "our", "their",
}
MAX_KEYWORDS = 10


def _clamp(value: float, low: float, high: float = 1.0) -> float:
    return max(low, min(high, value))


# ======================
# Capture records
# ======================

class CaptureCoordinates(BaseModel):
    model_config = ConfigDict(allow_inf_nan=False)

    x: float = 0.0
    y: float = 0.0
    width: float = 0.0
    height: float = 0.0


class CaptureNode(BaseModel):
    """A button, link, heading, image or meta tag from the capture."""

    model_config = ConfigDict(extra="ignore")

    text: Optional[str] = None
    coordinates: Optional[CaptureCoordinates] = None
    loading: Optional[str] = None
    alt: Optional[str] = None
    name: Optional[str] = None


class CaptureInput(BaseModel):
    model_config = ConfigDict(extra="ignore")

    type: Optional[str] = None
    required: bool = False
    placeholder: Optional[str] = None


class CaptureForm(BaseModel):
    model_config = ConfigDict(extra="ignore")

    method: Optional[str] = None
    inputs: List[CaptureInput] = Field(default_factory=list)

    @field_validator("inputs", mode="before")
    @classmethod
    def null_inputs(cls, value: Any) -> Any:
        return [] if value is None else value


class CaptureDom(BaseModel):
    model_config = ConfigDict(extra="ignore")

    buttons: List[CaptureNode] = Field(default_factory=list)
    links: List[CaptureNode] = Field(default_factory=list)
    headings: List[CaptureNode] = Field(default_factory=list)
    images: List[CaptureNode] = Field(default_factory=list)
    meta: List[CaptureNode] = Field(default_factory=list)
    forms: List[CaptureForm] = Field(default_factory=list)
    scripts: List[Any] = Field(default_factory=list)
    styles: List[str] = Field(default_factory=list)

    @field_validator("*", mode="before")
    @classmethod
    def null_lists(cls, value: Any) -> Any:
        return [] if value is None else value


class CapturePrimaryCTA(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, extra="ignore", allow_inf_nan=False
    )

    text: Optional[str] = None
    coordinates: Optional[CaptureCoordinates] = None
    confidence: Optional[float] = None
    is_form_related: bool = False
    has_form: bool = False


class CaptureResult(BaseModel):
    """Decoded page capture: DOM summary plus the predicted primary CTA."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    dom_data: CaptureDom = Field(alias="domData")
    primary_cta: CapturePrimaryCTA = Field(
        default_factory=CapturePrimaryCTA, alias="primaryCTAPrediction"
    )

    @model_validator(mode="before")
    @classmethod
    def primary_fallback(cls, data: Any) -> Any:
        # Older captures carry the primary CTA under ctaInsight
        if isinstance(data, dict) and not data.get("primaryCTAPrediction") and "primary_cta" not in data:
            data = {**data, "primaryCTAPrediction": data.get("ctaInsight") or {}}
        return data


CaptureInputData = Union[CaptureResult, Dict[str, Any], None]


def require_capture(capture: CaptureInputData, label: str) -> None:
    if isinstance(capture, CaptureResult):
        return
    if not capture or not isinstance(capture, dict) or not capture.get("domData"):
        raise ValidationError(f"{label} with domData is required")


def decode_capture(capture: CaptureInputData, label: str = "capture") -> CaptureResult:
    """
    Decode a raw capture record.

    Raises:
        ValidationError: no capture or no domData
        DecodeError: domData or the primary CTA has the wrong shape
    """
    require_capture(capture, label)
    if isinstance(capture, CaptureResult):
        return capture
    return decode_record(CaptureResult, capture, label)


def _texts(items: Sequence[CaptureNode]) -> List[str]:
    return [item.text or "" for item in items]


def extract_keywords(text: str) -> List[str]:
    """First ten meaningful words of a text, in order."""
    words = re.sub(r"[^\w\s]", " ", text.lower()).split()
    return [word for word in words if len(word) > 2 and word not in STOPWORDS][:MAX_KEYWORDS]


# ======================
# Factor heuristics
# ======================

def score_page_speed(capture: CaptureResult) -> float:
    dom = capture.dom_data
    score = 0.80
    if len(dom.images) > 20:
        score -= 0.15
    if len(dom.scripts) > 15:
        score -= 0.10
    if any(image.loading == "lazy" for image in dom.images):
        score += 0.05
    return _clamp(score, 0.3)


def score_mobile_optimization(capture: CaptureResult) -> float:
    dom = capture.dom_data
    primary = capture.primary_cta
    score = 0.70

    if any(meta.name == "viewport" for meta in dom.meta):
        score += 0.15
    if any("media" in style and "max-width" in style for style in dom.styles):
        score += 0.10

    coordinates = primary.coordinates
    if coordinates:
        # 44x44pt minimum touch target
        if coordinates.width >= 44 and coordinates.height >= 44:
            score += 0.15
        elif coordinates.width < 32 or coordinates.height < 32:
            score -= 0.20

    small_buttons = any(
        button.coordinates
        and button.text != primary.text
        and (button.coordinates.width < 44 or button.coordinates.height < 44)
        for button in dom.buttons
    )
    if small_buttons:
        score -= 0.10
    return _clamp(score, 0.2)


def score_cta_clarity(capture: CaptureResult) -> float:
    dom = capture.dom_data
    primary = capture.primary_cta
    score = 0.60

    total_ctas = len(dom.buttons) + len(dom.links)
    if total_ctas <= 3:
        score += 0.20
    elif total_ctas <= 7:
        score += 0.10
    elif total_ctas > 15:
        score -= 0.20

    confidence = primary.confidence
    if confidence:
        if confidence > 0.8:
            score += 0.15
        elif confidence < 0.5:
            score -= 0.15

    text = (primary.text or "").lower()
    if text and any(word in text for word in ACTION_WORDS):
        score += 0.10
    return _clamp(score, 0.2)


def score_trust_signals(capture: CaptureResult) -> float:
    dom = capture.dom_data
    score = 0.40

    page_text = " ".join(_texts(dom.buttons) + _texts(dom.links) + _texts(dom.headings)).lower()
    score += 0.08 * sum(1 for keyword in TRUST_KEYWORDS if keyword in page_text)

    text = (capture.primary_cta.text or "").lower()
    if "secure" in text or "protected" in text:
        score += 0.10

    if any(
        any(hint in (image.alt or "").lower() for hint in BADGE_ALT_HINTS)
        for image in dom.images
    ):
        score += 0.10
    return _clamp(score, 0.1)


def score_form_friction(capture: CaptureResult) -> float:
    dom = capture.dom_data
    primary = capture.primary_cta
    score = 0.70

    if not primary.is_form_related and not primary.has_form:
        # Non-form CTA: page simplicity stands in for friction
        interactive = len(dom.buttons) + len(dom.links)
        if interactive <= 5:
            score += 0.15
        elif interactive > 15:
            score -= 0.15
        return _clamp(score, 0.3)

    if not dom.forms:
        return score

    inputs = dom.forms[0].inputs
    if len(inputs) <= 2:
        score += 0.20
    elif len(inputs) <= 4:
        score += 0.10
    elif len(inputs) > 8:
        score -= 0.25

    if any(field.required for field in inputs):
        score -= 0.05
    if any(field.placeholder for field in inputs):
        score += 0.05

    headings = " ".join(_texts(dom.headings)).lower()
    if "step" in headings or "progress" in headings:
        score += 0.10
    return _clamp(score, 0.2)


def score_commitment_momentum(capture: CaptureResult) -> float:
    dom = capture.dom_data
    score = 0.40

    page_text = " ".join(_texts(dom.headings) + _texts(dom.buttons)).lower()
    score += 0.08 * sum(1 for keyword in PROGRESS_KEYWORDS if keyword in page_text)

    text = (capture.primary_cta.text or "").lower()
    if text and any(word in text for word in MOMENTUM_WORDS):
        score += 0.15

    # Stateful forms carry the visitor's progress between steps
    for form in dom.forms:
        if (form.method or "").upper() == "POST" or any(
            field.type == "hidden" for field in form.inputs
        ):
            score += 0.10
            break

    score += 0.05 * sum(1 for keyword in INVESTMENT_KEYWORDS if keyword in page_text)
    return _clamp(score, 0.1)


def score_message_match(step1: CaptureResult, step2: CaptureResult) -> float:
    """Keyword overlap between step 1's CTA/content and step 2's content."""
    score = 0.60
    step1_cta = step1.primary_cta.text or ""

    dom1, dom2 = step1.dom_data, step2.dom_data
    step1_content = " ".join(_texts(dom1.headings) + _texts(dom1.buttons))
    step2_content = " ".join(_texts(dom2.headings) + _texts(dom2.buttons))

    step1_keywords = extract_keywords(f"{step1_cta} {step1_content}")
    step2_keywords = set(extract_keywords(step2_content))
    overlap = [keyword for keyword in step1_keywords if keyword in step2_keywords]
    ratio = len(overlap) / max(len(step1_keywords), 1)

    score += min(0.30, ratio * 0.40)
    return _clamp(score, 0.2)


FACTOR_HEURISTICS = {
    "page_speed_ux": score_page_speed,
    "mobile_cta_optimization": score_mobile_optimization,
    "cta_clarity_focus": score_cta_clarity,
    "trust_signals_cta": score_trust_signals,
    "cta_form_friction": score_form_friction,
    "commitment_momentum_cta": score_commitment_momentum,
}


def analyze_factors_from_capture(
    capture: CaptureInputData,
    base_factors: Sequence[PostClickFactor] = DEFAULT_FACTORS,
) -> List[PostClickFactor]:
    """
    Re-score factors from one capture.

    Factors without a heuristic (message match needs two pages) keep their
    base score.
    """
    decoded = decode_capture(capture, "capture")
    factors = []
    for factor in base_factors:
        heuristic = FACTOR_HEURISTICS.get(factor.factor)
        score = heuristic(decoded) if heuristic else factor.score
        factors.append(factor.model_copy(update={"score": _clamp(score, 0.0)}))
    return factors


def create_step2_prediction(
    step1_capture: CaptureInputData,
    step2_capture: CaptureInputData,
    audience: AudienceWarmth = "warm",
) -> PostClickPrediction:
    """Two-step variant: factors scored from the captures of both steps."""
    step1 = decode_capture(step1_capture, "step1 capture")
    step2 = decode_capture(step2_capture, "step2 capture")

    message_match = score_message_match(step1, step2)
    factors = [
        factor.model_copy(update={"score": message_match})
        if factor.factor == "message_match_scent"
        else factor
        for factor in analyze_factors_from_capture(step2)
    ]
    logger.info(f"🔗 Message match between steps: {message_match:.2f}")

    step = PostClickStep(
        step_name="Step 2 (Post-Click)", cold_base_rate=0.10, audience=audience, upper_cap=0.65
    )
    return predict_step_rate(step, DEFAULT_CONFIG, factors)
