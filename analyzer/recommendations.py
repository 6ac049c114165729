"""
Recommendation Synthesizer Module for CRO Signal Engine

Turns the wasted-click analysis into human-readable recommendations:
- single mode: one highest-impact recommendation naming the high-risk
  elements to remove
- multi mode: Quick Wins / Form Fixes / Structural Changes, ranked by priority
"""

import logging
from typing import Dict, List, Optional, Sequence, Tuple

from pydantic import BaseModel, Field

from .elements import ElementBase, FormField
from .errors import DegradedInputWarning, ValidationError
from .prediction.scoring import is_call_to_action
from .waste import WasteAnalysis, WasteScore

logger = logging.getLogger(__name__)

# Default rates (decimals) when the caller has no measured baseline
BASELINE_RATES: Dict[str, Dict[str, float]] = {
    "saas": {"ctr": 0.038, "conversion": 0.030},
    "ecommerce": {"ctr": 0.028, "conversion": 0.025},
    "leadgen": {"ctr": 0.035, "conversion": 0.045},
    "content": {"ctr": 0.025, "conversion": 0.015},
    "legal": {"ctr": 0.030, "conversion": 0.070},
    "finance": {"ctr": 0.027, "conversion": 0.050},
    "technology": {"ctr": 0.032, "conversion": 0.028},
    "automotive": {"ctr": 0.041, "conversion": 0.060},
    "realestate": {"ctr": 0.037, "conversion": 0.030},
    "travel": {"ctr": 0.047, "conversion": 0.040},
    "consumerservices": {"ctr": 0.026, "conversion": 0.066},
    "education": {"ctr": 0.038, "conversion": 0.034},
    "healthcare": {"ctr": 0.031, "conversion": 0.035},
}
DEFAULT_BASELINE_RATES = {"ctr": 0.032, "conversion": 0.030}

MAX_TOTAL_IMPROVEMENT = 60.0


class Baseline(BaseModel):
    """Current and projected rate of the primary CTA, as decimals."""

    current_rate: float
    projected_rate: float
    label: str = "CTR"
    source: str = "supplied"
    warnings: List[str] = Field(default_factory=list)


class Recommendation(BaseModel):
    id: str
    category: str
    title: str
    description: str
    effort: str
    impact: str
    priority: str
    confidence: str
    priority_score: float = 0.0
    estimated_uplift: Tuple[float, float] = (0.0, 0.0)
    elements_to_remove: Optional[List[str]] = None


class SingleRecommendation(Recommendation):
    action: str
    projected_result: str
    why_it_works: str
    roi_insight: str
    current_rate: float
    projected_rate: float
    improvement_percent: float
    difficulty: str
    timeframe: str
    warnings: List[str] = Field(default_factory=list)


class RecommendationSet(BaseModel):
    recommendations: List[Recommendation] = Field(default_factory=list)
    total_projected_improvement: float = 0.0
    baseline: Baseline
    warnings: List[str] = Field(default_factory=list)

    def by_category(self, category: str) -> List[Recommendation]:
        return [r for r in self.recommendations if r.category == category]


# ======================
# Baseline resolution
# ======================

def resolve_baseline(
    current_rate: Optional[float] = None,
    projected_rate: Optional[float] = None,
    industry: Optional[str] = None,
    is_form_related: bool = False,
    waste_analysis: Optional[WasteAnalysis] = None,
) -> Baseline:
    """
    Fill in whatever the caller did not supply.

    The current rate falls back to the industry default (CTR for click CTAs,
    conversion rate for form CTAs); an unknown industry falls back to a general
    default with a degraded-input warning. The projected rate falls back to the
    waste analysis' projected improvement.
    """
    key = "conversion" if is_form_related else "ctr"
    label = "Conversion rate" if is_form_related else "CTR"
    warnings = []
    source = "supplied"

    if current_rate is None:
        if industry in BASELINE_RATES:
            current_rate = BASELINE_RATES[industry][key]
            source = "industry"
        else:
            current_rate = DEFAULT_BASELINE_RATES[key]
            source = "default"
            warning = DegradedInputWarning(
                "industry_not_detected",
                "Industry not detected; general baseline rates assumed",
            )
            logger.warning(f"⚠️ {warning}")
            warnings.append(str(warning))

    if projected_rate is None:
        lift = 0.0
        if waste_analysis is not None:
            improvements = waste_analysis.projected_improvements
            lift = improvements.conversion_improvement if is_form_related else improvements.ctr_improvement
        projected_rate = current_rate * (1 + lift)

    return Baseline(
        current_rate=current_rate,
        projected_rate=projected_rate,
        label=label,
        source=source,
        warnings=warnings,
    )


def _pct(rate: float) -> str:
    return f"{rate * 100:.1f}%"


def describe_element(score: WasteScore) -> str:
    kind = {
        "navigational-noise": "navigation link",
        "social-link": "social media link",
        "competing-cta": "competing CTA",
        "external-link": "external link",
        "form-distraction": "form field",
        "decorative": "decorative element",
    }.get(score.classification, "clickable element")
    text = score.text or f"{score.element_kind} element"
    return f'"{text}" ({kind})'


def _require_primary(waste_analysis: Optional[WasteAnalysis], primary_cta_text: Optional[str]) -> None:
    if waste_analysis is None or not waste_analysis.primary_cta_id:
        raise ValidationError("Cannot generate recommendations without a primary CTA")
    if not primary_cta_text or not primary_cta_text.strip():
        raise ValidationError("Primary CTA text is required to generate recommendations")


# ======================
# Single mode
# ======================

class SingleRecommendationEngine:
    """Picks the one change with the largest projected impact."""

    # Fixed order; earlier patterns win ties
    PATTERNS = [
        "competing-cta",
        "navigational-noise",
        "social-link",
        "external-link",
        "form-distraction",
        "decorative",
    ]

    TEMPLATES = {
        "competing-cta": {
            "title": "Too many buttons confuse visitors",
            "action": "REMOVE these {count} competing CTAs: {elements}. Focus entirely on \"{cta}\" "
                      "and convert the rest to text links or remove them completely.",
            "why": "Multiple calls-to-action create choice overload. When visitors see several "
                   "options they often choose none.",
            "roi": "Single-CTA pages typically convert 30-50% better.",
        },
        "navigational-noise": {
            "title": "Navigation links reduce conversions",
            "action": "REMOVE these {count} navigation elements: {elements}. Hide them or move them "
                      "to the footer so attention stays on \"{cta}\".",
            "why": "Visitors who leave through navigation rarely come back to the primary CTA.",
            "roi": "Navigation simplification typically lifts {label} by 25-45%.",
        },
        "social-link": {
            "title": "Social media links reduce conversions",
            "action": "REMOVE these {count} social media elements: {elements}. Move them to the "
                      "footer or the thank-you page.",
            "why": "Social links take visitors off-site with a near-zero return rate.",
            "roi": "Removing social links typically increases {label} by 20-40%.",
        },
        "external-link": {
            "title": "External links take visitors away",
            "action": "REMOVE these {count} external elements: {elements}. Remove them completely "
                      "or open them in a new tab.",
            "why": "Once visitors leave the site they rarely return to convert.",
            "roi": "Removing external links can improve {label} by 25-50%.",
        },
        "form-distraction": {
            "title": "Secondary forms compete with your main goal",
            "action": "REMOVE these {count} form elements: {elements}. Move newsletter and contact "
                      "forms to the post-conversion flow.",
            "why": "Every extra field asks for effort that does not lead to \"{cta}\".",
            "roi": "Form reduction typically increases completion by 20-60%.",
        },
        "decorative": {
            "title": "Moving elements pull attention from your CTA",
            "action": "REMOVE or freeze these {count} animated or decorative elements: {elements}.",
            "why": "Motion and visual noise win attention that belongs to \"{cta}\".",
            "roi": "Removing visual noise typically improves {label} by 10-20%.",
        },
    }

    def generate(
        self,
        waste_analysis: WasteAnalysis,
        primary_cta_text: str,
        baseline: Optional[Baseline] = None,
        is_form_related: bool = False,
        device_type: str = "desktop",
    ) -> SingleRecommendation:
        _require_primary(waste_analysis, primary_cta_text)
        baseline = baseline or resolve_baseline(
            is_form_related=is_form_related, waste_analysis=waste_analysis
        )

        to_remove = list(waste_analysis.high_risk_elements)
        if not to_remove:
            return self.fallback(primary_cta_text, baseline)

        pattern = self.dominant_pattern(to_remove)
        template = self.TEMPLATES[pattern]
        count = len(to_remove)
        names = ", ".join(describe_element(score) for score in to_remove[:5])
        values = {"count": count, "elements": names, "cta": primary_cta_text, "label": baseline.label}

        action = template["action"].format(**values)
        if device_type == "mobile":
            action += " On mobile, keep the primary CTA as the only action in the first viewport."

        improvement = improvement_percent(baseline)
        difficulty, timeframe = difficulty_for(count)
        recommendation = SingleRecommendation(
            id="SR-01",
            category=self.category_for(pattern, difficulty),
            title=template["title"],
            description=action,
            effort=timeframe,
            impact=impact_tier(improvement),
            priority=priority_tier_for_score(min(round(improvement * 2), 100)),
            confidence="high" if count <= 3 else "medium",
            priority_score=min(round(improvement * 2), 100),
            estimated_uplift=(improvement, improvement),
            elements_to_remove=[score.element_id for score in to_remove],
            action=action,
            projected_result=(
                f"{baseline.label} uplift from {_pct(baseline.current_rate)} to "
                f"{_pct(baseline.projected_rate)} by removing the high-risk elements."
            ),
            why_it_works=template["why"].format(**values),
            roi_insight=template["roi"].format(**values),
            current_rate=baseline.current_rate,
            projected_rate=baseline.projected_rate,
            improvement_percent=improvement,
            difficulty=difficulty,
            timeframe=timeframe,
            warnings=baseline.warnings,
        )
        logger.info(f"💡 Recommendation: {recommendation.title} ({count} elements, +{improvement:.1f}%)")
        return recommendation

    def dominant_pattern(self, scores: Sequence[WasteScore]) -> str:
        best, best_count = self.PATTERNS[0], -1
        for pattern in self.PATTERNS:
            count = sum(1 for score in scores if score.classification == pattern)
            if count > best_count:
                best, best_count = pattern, count
        return best

    def category_for(self, pattern: str, difficulty: str) -> str:
        if pattern == "form-distraction":
            return "Form Fixes"
        return "Quick Wins" if difficulty == "easy" else "Structural Changes"

    def fallback(self, primary_cta_text: str, baseline: Baseline) -> SingleRecommendation:
        improvement = improvement_percent(baseline)
        return SingleRecommendation(
            id="SR-00",
            category="Quick Wins",
            title=f'Optimize "{primary_cta_text}" for maximum impact',
            description=(
                f'Increase the visual prominence of "{primary_cta_text}" with high-contrast '
                "colors, a larger size and more white space around it."
            ),
            effort="1-2 hrs",
            impact=impact_tier(improvement),
            priority="high",
            confidence="medium",
            priority_score=75,
            estimated_uplift=(improvement, improvement),
            elements_to_remove=[],
            action=(
                f'Increase the visual prominence of "{primary_cta_text}" with high-contrast '
                "colors, a larger size and more white space around it."
            ),
            projected_result=(
                f"{baseline.label} uplift from {_pct(baseline.current_rate)} to "
                f"{_pct(baseline.projected_rate)} through improved CTA visibility."
            ),
            why_it_works=(
                "Visual hierarchy drives attention. A more prominent CTA captures clicks from "
                "visitors who are interested but might miss a subtle button."
            ),
            roi_insight=f"CTA optimization typically improves {baseline.label} by 15-30%.",
            current_rate=baseline.current_rate,
            projected_rate=baseline.projected_rate,
            improvement_percent=improvement,
            difficulty="easy",
            timeframe="1-2 hrs",
            warnings=baseline.warnings,
        )


def improvement_percent(baseline: Baseline) -> float:
    if baseline.current_rate <= 0:
        return 0.0
    return (baseline.projected_rate - baseline.current_rate) / baseline.current_rate * 100


def difficulty_for(count: int) -> Tuple[str, str]:
    if count <= 3:
        return "easy", "1-2 hrs"
    if count <= 6:
        return "medium", "Half day"
    return "hard", "1-2 days"


def impact_tier(percent: float) -> str:
    if percent >= 10:
        return "high"
    if percent >= 5:
        return "medium"
    return "low"


def priority_tier_for_score(score: float) -> str:
    if score >= 60:
        return "high"
    if score >= 30:
        return "medium"
    return "low"


# ======================
# Multi mode
# ======================

class RecommendationEngine:
    """
    Rule-based recommendations grouped into Quick Wins, Form Fixes and
    Structural Changes.
    """

    HEADER_ZONE_PX = 200
    HEADER_CTA_TARGET = 3
    IDEAL_FORM_FIELDS = 1
    ACCEPTABLE_FORM_FIELDS = 3
    PROBLEMATIC_FORM_FIELDS = 5
    CLICKABLES_TARGET = 25
    TAP_MIN_PX = 44
    AUTOCOMPLETE_TYPES = ["email", "tel", "text", "name"]

    EFFORT = {
        "Quick Wins": ("1-2 hrs", 1.5),
        "Form Fixes": ("3-5 hrs", 4.0),
        "Structural Changes": ("1-2 days", 16.0),
    }

    def generate(
        self,
        waste_analysis: WasteAnalysis,
        elements: Sequence[ElementBase],
        primary_cta_text: str,
        baseline: Optional[Baseline] = None,
        is_form_related: bool = False,
        device_type: str = "desktop",
    ) -> RecommendationSet:
        _require_primary(waste_analysis, primary_cta_text)
        baseline = baseline or resolve_baseline(
            is_form_related=is_form_related, waste_analysis=waste_analysis
        )
        primary = next((e for e in elements if e.id == waste_analysis.primary_cta_id), None)
        others = [e for e in elements if e.id != waste_analysis.primary_cta_id]

        recommendations = []
        recommendations.extend(self.quick_wins(waste_analysis, primary, others, device_type))
        recommendations.extend(self.form_fixes(elements))
        recommendations.extend(self.structural_changes(waste_analysis, primary, others, elements))

        # Stable sort keeps rule order on equal priority
        recommendations.sort(key=lambda r: -r.priority_score)

        total = sum((low + high) / 2 for low, high in (r.estimated_uplift for r in recommendations))
        result = RecommendationSet(
            recommendations=recommendations,
            total_projected_improvement=min(total, MAX_TOTAL_IMPROVEMENT),
            baseline=baseline,
            warnings=list(baseline.warnings),
        )
        logger.info(
            f"✅ Generated {len(recommendations)} recommendations "
            f"(+{result.total_projected_improvement:.1f}% projected)"
        )
        return result

    def build(
        self,
        rule_id: str,
        category: str,
        title: str,
        description: str,
        uplift: Tuple[float, float],
        confidence: float,
        elements_to_remove: Optional[List[str]] = None,
    ) -> Recommendation:
        effort, hours = self.EFFORT[category]
        midpoint = (uplift[0] + uplift[1]) / 2
        score = midpoint * confidence / (hours * 100)
        return Recommendation(
            id=rule_id,
            category=category,
            title=title,
            description=description,
            effort=effort,
            impact=impact_tier(uplift[1]),
            priority="high" if score >= 2.0 else "medium" if score >= 1.0 else "low",
            confidence="high" if confidence >= 85 else "medium" if confidence >= 75 else "low",
            priority_score=score,
            estimated_uplift=uplift,
            elements_to_remove=elements_to_remove,
        )

    def quick_wins(
        self,
        waste_analysis: WasteAnalysis,
        primary: Optional[ElementBase],
        others: Sequence[ElementBase],
        device_type: str,
    ) -> List[Recommendation]:
        recommendations = []

        header = [e for e in others if e.is_interactive and e.geometry.y < self.HEADER_ZONE_PX]
        if len(header) > self.HEADER_CTA_TARGET:
            recommendations.append(self.build(
                "QW-01", "Quick Wins", "Header Distractions",
                f"Reduce header actions from {len(header)} to {self.HEADER_CTA_TARGET}; "
                f"the top {self.HEADER_ZONE_PX}px should lead to the primary CTA.",
                (3, 5), 85,
                elements_to_remove=[e.id for e in header[self.HEADER_CTA_TARGET:]],
            ))

        duplicates = duplicate_ctas(primary, others)
        if duplicates:
            recommendations.append(self.build(
                "QW-02", "Quick Wins", "Duplicate CTAs",
                f"Remove {len(duplicates)} duplicate calls-to-action so each action appears once.",
                (3, 5), 90,
                elements_to_remove=[e.id for e in duplicates],
            ))

        noisy = [s for s in waste_analysis.scores if s.classification == "decorative"]
        if noisy:
            recommendations.append(self.build(
                "QW-03", "Quick Wins", "Visual Noise",
                f"Disable autoplay, rotation and animation on {len(noisy)} elements "
                "competing with the primary CTA.",
                (2, 5), 75,
                elements_to_remove=[s.element_id for s in noisy],
            ))

        if device_type == "mobile" and primary is not None and (
            primary.geometry.width < self.TAP_MIN_PX or primary.geometry.height < self.TAP_MIN_PX
        ):
            recommendations.append(self.build(
                "QW-04", "Quick Wins", "Tap Target Size (Mobile)",
                f"Increase the primary CTA tap area {primary.geometry.width:.0f}x"
                f"{primary.geometry.height:.0f} to at least {self.TAP_MIN_PX}px.",
                (2, 6), 70,
            ))
        return recommendations

    def form_fixes(self, elements: Sequence[ElementBase]) -> List[Recommendation]:
        fields = [e for e in elements if isinstance(e, FormField)]
        if not fields:
            return []

        recommendations = []
        count = len(fields)
        if count > self.PROBLEMATIC_FORM_FIELDS:
            recommendations.append(self.build(
                "FF-01", "Form Fixes", "Form Complexity",
                f"Cut the form from {count} fields to {self.ACCEPTABLE_FORM_FIELDS} or fewer "
                "(ideally a single field) or split it into steps.",
                (15, 25), 90,
            ))
        elif count > self.ACCEPTABLE_FORM_FIELDS:
            recommendations.append(self.build(
                "FF-01", "Form Fixes", "Form Complexity",
                f"Reduce the form from {count} fields to {self.ACCEPTABLE_FORM_FIELDS}.",
                (5, 10), 85,
            ))

        required = [f for f in fields if f.required]
        if len(required) > self.ACCEPTABLE_FORM_FIELDS:
            recommendations.append(self.build(
                "FF-02", "Form Fixes", "Required Fields",
                f"Make only essential fields required ({len(required)} today, "
                f"target {self.ACCEPTABLE_FORM_FIELDS}).",
                (5, 8), 85,
            ))

        missing = [f for f in fields if not f.has_autocomplete and f.input_type in self.AUTOCOMPLETE_TYPES]
        if missing:
            recommendations.append(self.build(
                "FF-03", "Form Fixes", "Autofill & Autocomplete",
                "Add autocomplete for " + ", ".join(f.text for f in missing) + ".",
                (3, 7), 85,
            ))

        placeholder_only = [f for f in fields if f.placeholder and not f.label]
        if placeholder_only:
            recommendations.append(self.build(
                "FF-04", "Form Fixes", "Persistent Labels",
                "Convert placeholder-only fields ("
                + ", ".join(f.placeholder for f in placeholder_only)
                + ") to visible labels.",
                (3, 6), 80,
            ))
        return recommendations

    def structural_changes(
        self,
        waste_analysis: WasteAnalysis,
        primary: Optional[ElementBase],
        others: Sequence[ElementBase],
        elements: Sequence[ElementBase],
    ) -> List[Recommendation]:
        recommendations = []

        if primary is not None and not primary.is_above_fold:
            recommendations.append(self.build(
                "ST-01", "Structural Changes", "Above-the-Fold CTA",
                f"Move the primary CTA from {primary.geometry.y:.0f}px into the first viewport.",
                (10, 15), 95,
            ))

        if primary is not None:
            louder = [
                e for e in others
                if e.has_button_styling and e.geometry.area >= primary.geometry.area
            ]
            if louder:
                recommendations.append(self.build(
                    "ST-02", "Structural Changes", "Visual Hierarchy",
                    f"{len(louder)} styled elements are as large as the primary CTA; "
                    "make the primary CTA the most prominent element on the page.",
                    (5, 15), 85,
                ))

        if waste_analysis.high_risk_elements:
            high_risk = waste_analysis.high_risk_elements
            recommendations.append(self.build(
                "ST-03", "Structural Changes", "Remove High-Risk Distractions",
                "Remove " + ", ".join(describe_element(s) for s in high_risk[:5])
                + (f" and {len(high_risk) - 5} more" if len(high_risk) > 5 else "") + ".",
                (6, 12), 80,
                elements_to_remove=[s.element_id for s in high_risk],
            ))

        clickables = sum(1 for e in elements if e.is_interactive)
        if clickables > self.CLICKABLES_TARGET:
            recommendations.append(self.build(
                "ST-04", "Structural Changes", "Clickable Element Reduction",
                f"Reduce total clickables {clickables} to {self.CLICKABLES_TARGET}; "
                "move tertiary links to the footer.",
                (6, 12), 80,
            ))
        return recommendations


def duplicate_ctas(
    primary: Optional[ElementBase], others: Sequence[ElementBase]
) -> List[ElementBase]:
    """CTA-like elements repeating the primary's text or an earlier CTA's text."""
    seen = set()
    if primary is not None and primary.text:
        seen.add(primary.text.strip().lower())
    duplicates = []
    for element in others:
        if not is_call_to_action(element):
            continue
        text = (element.text or "").strip().lower()
        if not text:
            continue
        if text in seen:
            duplicates.append(element)
        else:
            seen.add(text)
    return duplicates


def generate_recommendation(
    waste_analysis: Optional[WasteAnalysis],
    primary_cta_text: Optional[str],
    baseline: Optional[Baseline] = None,
    is_form_related: bool = False,
    device_type: str = "desktop",
) -> SingleRecommendation:
    """
    Single-recommendation mode.

    Raises:
        ValidationError: no resolvable primary CTA
    """
    _require_primary(waste_analysis, primary_cta_text)
    return SingleRecommendationEngine().generate(
        waste_analysis, primary_cta_text, baseline, is_form_related, device_type
    )


def generate_recommendations(
    waste_analysis: Optional[WasteAnalysis],
    elements: Sequence[ElementBase],
    primary_cta_text: Optional[str],
    baseline: Optional[Baseline] = None,
    is_form_related: bool = False,
    device_type: str = "desktop",
) -> RecommendationSet:
    """Multi-recommendation mode."""
    _require_primary(waste_analysis, primary_cta_text)
    return RecommendationEngine().generate(
        waste_analysis, elements, primary_cta_text, baseline, is_form_related, device_type
    )
