"""
Post-Click Funnel Model for CRO Signal Engine

Predicts the conversion rate of a funnel step from its cold base rate, the
audience warmth and a set of weighted qualitative factors.

Two combination modes:
- multiplicative: product of (1 + score * max_lift)
- logit: lifts are added in log-odds space so the rate stays inside [0, 1]
"""

import logging
import math
from typing import Any, Dict, List, Literal, Optional, Sequence, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic import ValidationError as PydanticValidationError
from pydantic.alias_generators import to_camel

from config import get_warmth_multipliers, settings
from ..errors import DecodeError, DegradedInputWarning, ValidationError

logger = logging.getLogger(__name__)

AudienceWarmth = Literal["cold", "warm", "hot"]
PredictionMode = Literal["multiplicative", "logit"]


class PostClickFactor(BaseModel):
    """How well the page implements one conversion factor."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    factor: str
    score: float = Field(ge=0.0, le=1.0)
    max_lift: float = Field(ge=0.0)
    note: Optional[str] = None


class PostClickStep(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    step_name: str
    cold_base_rate: float = Field(ge=0.0, le=1.0)
    audience: AudienceWarmth = "warm"
    upper_cap: Optional[float] = Field(default=None, ge=0.0, le=1.0)


class PostClickConfig(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    mode: PredictionMode = "multiplicative"
    apply_cap: bool = True
    audience_multipliers: Optional[Dict[str, float]] = None

    @field_validator("audience_multipliers")
    @classmethod
    def check_multipliers(cls, value: Optional[Dict[str, float]]) -> Optional[Dict[str, float]]:
        if value is None:
            return value
        merged = {**get_warmth_multipliers(), **value}
        if not (merged["cold"] <= merged["warm"] < merged["hot"]):
            raise ValueError("audience multipliers must satisfy cold <= warm < hot")
        return merged

    def warmth_multiplier(self, audience: str) -> float:
        multipliers = self.audience_multipliers or get_warmth_multipliers()
        return multipliers[audience]


class PostClickPrediction(BaseModel):
    step_name: str
    audience: AudienceWarmth
    cold_base_rate: float
    warmth_multiplier_applied: float
    combined_factor_multiplier: float
    upper_cap: Optional[float] = None
    predicted_rate: float
    capped: bool = False
    mode: PredictionMode = "multiplicative"
    confidence: float = 0.0
    factors_analyzed: List[PostClickFactor] = Field(default_factory=list)
    warnings: List[str] = Field(default_factory=list)


# Research-backed defaults, primary CTA focused
DEFAULT_FACTORS: List[PostClickFactor] = [
    PostClickFactor(
        factor="message_match_scent", score=0.80, max_lift=0.40,
        note="Primary CTA message consistency between pages (copy/design/offer)",
    ),
    PostClickFactor(
        factor="cta_form_friction", score=0.60, max_lift=0.70,
        note="Primary CTA friction: form fields, steps, validation ease",
    ),
    PostClickFactor(
        factor="page_speed_ux", score=0.90, max_lift=0.10,
        note="Page load speed affecting primary CTA accessibility",
    ),
    PostClickFactor(
        factor="mobile_cta_optimization", score=0.70, max_lift=0.20,
        note="Primary CTA mobile UX: touch targets, visibility",
    ),
    PostClickFactor(
        factor="cta_clarity_focus", score=0.75, max_lift=0.35,
        note="Primary CTA visual hierarchy and clarity vs distractions",
    ),
    PostClickFactor(
        factor="trust_signals_cta", score=0.50, max_lift=0.15,
        note="Trust elements near/in primary CTA (badges, security)",
    ),
    PostClickFactor(
        factor="commitment_momentum_cta", score=0.50, max_lift=0.25,
        note="Progress indication and momentum toward primary CTA",
    ),
]

DEFAULT_STEP = PostClickStep(
    step_name="Step 2 (Post-Click)", cold_base_rate=0.10, audience="warm", upper_cap=0.65
)

DEFAULT_CONFIG = PostClickConfig()


def factor_multiplier(score: float, max_lift: float) -> float:
    """1 + score * max_lift, with the score clamped to [0, 1]."""
    clamped = max(0.0, min(1.0, score))
    return 1.0 + clamped * max_lift


def _logit(p: float) -> float:
    return math.log(p / (1.0 - p))


def _sigmoid(x: float) -> float:
    if x >= 0:
        return 1.0 / (1.0 + math.exp(-x))
    z = math.exp(x)
    return z / (1.0 + z)


def logit_rate(base_rate: float, factors: Sequence[PostClickFactor]) -> float:
    """
    Combine factor lifts in log-odds space.

    Each factor adds ln(1 + s*L) / (1 - p) to logit(p). For a single small lift
    this matches p * (1 + s*L) to first order; the sigmoid keeps the result in
    [0, 1] without any cap.
    """
    if base_rate <= 0.0:
        return 0.0
    if base_rate >= 1.0:
        return 1.0

    eps = settings.LOGIT_EPSILON
    p = min(max(base_rate, eps), 1.0 - eps)
    delta = sum(math.log(factor_multiplier(f.score, f.max_lift)) / (1.0 - p) for f in factors)
    return _sigmoid(_logit(p) + delta)


def combine_factor_multipliers(
    factors: Sequence[PostClickFactor],
    mode: PredictionMode = "multiplicative",
    base_rate: Optional[float] = None,
) -> float:
    """
    Combined factor multiplier; the empty factor list is the identity (1.0).

    In logit mode the multiplier depends on the rate it is applied to and is
    reported as the effective ratio predicted / base.
    """
    if not factors:
        return 1.0

    if mode == "multiplicative":
        product = 1.0
        for factor in factors:
            product *= factor_multiplier(factor.score, factor.max_lift)
        return product

    rate = 0.10 if base_rate is None else base_rate
    if rate <= 0.0:
        return 1.0
    return logit_rate(rate, factors) / rate


def prediction_confidence(prediction: PostClickPrediction) -> float:
    confidence = 0.7

    factors = prediction.factors_analyzed
    if factors:
        well_implemented = sum(1 for factor in factors if factor.score > 0.7)
        confidence += well_implemented / len(factors) * 0.2

    if prediction.upper_cap is not None and prediction.predicted_rate >= prediction.upper_cap:
        confidence -= 0.15

    if prediction.audience in ("warm", "hot"):
        confidence += 0.05
    elif prediction.audience == "cold":
        confidence -= 0.10

    return max(0.3, min(1.0, confidence))


def resolve_factors(
    factors: Optional[Sequence[PostClickFactor]],
) -> Tuple[List[PostClickFactor], List[DegradedInputWarning]]:
    """Supplied factors, or the defaults plus a degraded-input warning."""
    if factors is not None:
        return list(factors), []
    warning = DegradedInputWarning(
        "factors_not_supplied", "Post-click factors not supplied; default factor scores assumed"
    )
    logger.warning(f"⚠️ {warning}")
    return list(DEFAULT_FACTORS), [warning]


def predict_step_rate(
    step: PostClickStep,
    config: Optional[PostClickConfig] = None,
    factors: Optional[Sequence[PostClickFactor]] = None,
) -> PostClickPrediction:
    """
    Predict a funnel step's conversion rate.

    predicted = cold_base_rate * warmth * combined multiplier, clamped to the
    step's upper cap when capping is enabled and never above 1.0.
    """
    config = config or DEFAULT_CONFIG
    analyzed, warnings = resolve_factors(factors)

    warmth = config.warmth_multiplier(step.audience)
    adjusted_base = step.cold_base_rate * warmth

    if config.mode == "multiplicative":
        combined = combine_factor_multipliers(analyzed, "multiplicative")
        rate = adjusted_base * combined
    else:
        rate = logit_rate(adjusted_base, analyzed) if analyzed else min(adjusted_base, 1.0)
        combined = rate / adjusted_base if adjusted_base > 0 else 1.0

    capped = False
    if config.apply_cap and step.upper_cap is not None and rate > step.upper_cap:
        rate = step.upper_cap
        capped = True
    if rate > 1.0:
        rate = 1.0
        capped = True

    prediction = PostClickPrediction(
        step_name=step.step_name,
        audience=step.audience,
        cold_base_rate=step.cold_base_rate,
        warmth_multiplier_applied=warmth,
        combined_factor_multiplier=combined,
        upper_cap=step.upper_cap,
        predicted_rate=rate,
        capped=capped,
        mode=config.mode,
        factors_analyzed=analyzed,
        warnings=[str(w) for w in warnings],
    )
    prediction.confidence = prediction_confidence(prediction)

    logger.info(
        f"📈 {step.step_name}: predicted rate {rate:.3f} "
        f"(warmth x{warmth}, factors x{combined:.3f}{', capped' if capped else ''})"
    )
    return prediction


def predict_all_steps(
    steps: Sequence[PostClickStep],
    config: Optional[PostClickConfig] = None,
    factors: Optional[Sequence[PostClickFactor]] = None,
) -> List[PostClickPrediction]:
    if not steps:
        raise ValidationError("At least one funnel step is required")
    return [predict_step_rate(step, config, factors) for step in steps]


def decode_record(model: Any, record: Any, field: str):
    """Validate a loose record into model; failures become a DecodeError naming the field path."""
    try:
        return model.model_validate(record)
    except PydanticValidationError as e:
        first = e.errors()[0]
        location = ".".join(str(part) for part in first["loc"])
        raise DecodeError(first["msg"], field=f"{field}.{location}" if location else field) from e


def decode_factors(records: Optional[Sequence[Any]]) -> Optional[List[PostClickFactor]]:
    """Decode factor records; a malformed factor fails the request."""
    if records is None:
        return None
    return [decode_record(PostClickFactor, record, f"factors[{i}]") for i, record in enumerate(records)]


def decode_step(record: Any) -> PostClickStep:
    if record is None:
        return DEFAULT_STEP
    return decode_record(PostClickStep, record, "step")


def decode_config(record: Any) -> PostClickConfig:
    if record is None:
        return DEFAULT_CONFIG
    return decode_record(PostClickConfig, record, "config")
