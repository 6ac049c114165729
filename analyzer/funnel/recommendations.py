"""
Factor Recommendation Module for CRO Signal Engine

Ranks post-click factors by improvement opportunity ((1 - score) * max_lift)
and maps the top ones to fixed recommendations.
"""

from typing import Dict, List, Sequence, Tuple

from pydantic import BaseModel

from .model import PostClickFactor

MAX_RECOMMENDATIONS = 3
MIN_OPPORTUNITY = 0.05

# factor -> (recommendation, opportunity above which it is the higher tier, (higher, lower))
FACTOR_RECOMMENDATIONS: Dict[str, Tuple[str, float, Tuple[str, str]]] = {
    "message_match_scent": ("Improve messaging consistency between pages", 0.15, ("high", "medium")),
    "cta_form_friction": ("Simplify form fields and add progress indicators", 0.20, ("high", "medium")),
    "page_speed_ux": ("Optimize page loading speed and performance", 0.05, ("medium", "low")),
    "mobile_cta_optimization": ("Enhance mobile user experience and touch targets", 0.10, ("high", "medium")),
    "cta_clarity_focus": ("Clarify primary call-to-action and reduce distractions", 0.12, ("high", "medium")),
    "trust_signals_cta": ("Add security badges and trust indicators", 0.08, ("medium", "low")),
    "commitment_momentum_cta": ("Add progress indicators and build on user investment", 0.10, ("medium", "low")),
}

FACTOR_ALIASES = {
    "form_friction_reduction": "cta_form_friction",
    "mobile_optimization": "mobile_cta_optimization",
    "trust_signals": "trust_signals_cta",
    "commitment_momentum": "commitment_momentum_cta",
}


class FactorRecommendation(BaseModel):
    factor: str
    recommendation: str
    priority: str
    current_score: float
    max_lift: float
    opportunity: float
    estimated_impact: str


def opportunity(factor: PostClickFactor) -> float:
    return (1.0 - factor.score) * factor.max_lift


def generate_factor_recommendations(
    factors: Sequence[PostClickFactor],
) -> List[FactorRecommendation]:
    """Up to three recommendations, largest opportunity first (input order on ties)."""
    ranked = sorted(
        ((opportunity(factor), index, factor) for index, factor in enumerate(factors)),
        key=lambda item: (-item[0], item[1]),
    )

    recommendations = []
    for value, _, factor in ranked:
        if value <= MIN_OPPORTUNITY:
            continue
        key = FACTOR_ALIASES.get(factor.factor, factor.factor)
        if key in FACTOR_RECOMMENDATIONS:
            text, threshold, (higher, lower) = FACTOR_RECOMMENDATIONS[key]
            priority = higher if value > threshold else lower
        else:
            text = f"Optimize {factor.factor.replace('_', ' ')}"
            priority = "low"

        recommendations.append(FactorRecommendation(
            factor=factor.factor,
            recommendation=text,
            priority=priority,
            current_score=factor.score,
            max_lift=factor.max_lift,
            opportunity=value,
            estimated_impact=f"+{value * 100:.1f}% conversion lift",
        ))
        if len(recommendations) == MAX_RECOMMENDATIONS:
            break
    return recommendations


def factor_impacts(factors: Sequence[PostClickFactor]) -> List[Dict[str, object]]:
    """Per-factor lift breakdown for display."""
    return [
        {
            "factor": factor.factor,
            "score": factor.score,
            "max_lift": factor.max_lift,
            "actual_lift": factor.score * factor.max_lift,
            "multiplier": 1 + factor.score * factor.max_lift,
            "note": factor.note,
        }
        for factor in factors
    ]
