"""Tests for single and multi recommendation synthesis."""

import pytest

from analyzer.errors import ValidationError
from analyzer.recommendations import (
    BASELINE_RATES,
    DEFAULT_BASELINE_RATES,
    MAX_TOTAL_IMPROVEMENT,
    duplicate_ctas,
    generate_recommendation,
    generate_recommendations,
    resolve_baseline,
)
from analyzer.waste import PrimaryCTA, WastedClickModel


@pytest.fixture
def primary(build_element):
    return build_element("button", "cta", "Start free trial", 100, 300, has_button_styling=True)


@pytest.fixture
def elements(build_element, primary):
    return [
        build_element("link", "social", "Follow us", 100, 360, href="https://facebook.com/acme",
                      has_button_styling=True),
        primary,
        build_element("button", "competing", "Start now", 400, 300, has_button_styling=True),
        build_element("link", "about", "About", 100, 2000, 50, 20, href="/about"),
    ]


@pytest.fixture
def waste(elements, primary):
    return WastedClickModel().analyze(elements, PrimaryCTA(element=primary))


class TestResolveBaseline:
    def test_supplied_rates_are_kept(self):
        baseline = resolve_baseline(current_rate=0.05, projected_rate=0.06)
        assert (baseline.current_rate, baseline.projected_rate) == (0.05, 0.06)
        assert baseline.source == "supplied"
        assert baseline.warnings == []

    def test_industry_default(self):
        baseline = resolve_baseline(industry="saas", is_form_related=True)
        assert baseline.current_rate == BASELINE_RATES["saas"]["conversion"]
        assert baseline.label == "Conversion rate"
        assert baseline.source == "industry"

    def test_unknown_industry_degrades(self):
        baseline = resolve_baseline(industry=None)
        assert baseline.current_rate == DEFAULT_BASELINE_RATES["ctr"]
        assert baseline.source == "default"
        assert baseline.warnings == ["Industry not detected; general baseline rates assumed"]

    def test_projection_from_waste(self, waste):
        baseline = resolve_baseline(current_rate=0.04, waste_analysis=waste)
        lift = waste.projected_improvements.ctr_improvement
        assert baseline.projected_rate == pytest.approx(0.04 * (1 + lift))


class TestSingleRecommendation:
    def test_requires_primary(self, waste):
        with pytest.raises(ValidationError):
            generate_recommendation(None, "Start free trial")
        with pytest.raises(ValidationError):
            generate_recommendation(waste, "   ")

    def test_succeeds_without_industry(self, waste):
        recommendation = generate_recommendation(waste, "Start free trial")
        assert recommendation.current_rate == DEFAULT_BASELINE_RATES["ctr"]
        assert "Industry not detected; general baseline rates assumed" in recommendation.warnings

    def test_names_exactly_the_high_risk_elements(self, waste):
        recommendation = generate_recommendation(waste, "Start free trial")
        assert recommendation.elements_to_remove == [s.element_id for s in waste.high_risk_elements]
        assert set(recommendation.elements_to_remove) == {"social", "competing"}

    def test_pattern_ties_use_fixed_order(self, waste):
        recommendation = generate_recommendation(waste, "Start free trial")
        assert recommendation.title == "Too many buttons confuse visitors"
        assert '"Start free trial"' in recommendation.action
        assert recommendation.difficulty == "easy"
        assert recommendation.category == "Quick Wins"

    def test_improvement_percent(self, waste):
        recommendation = generate_recommendation(waste, "Start free trial")
        expected = waste.projected_improvements.ctr_improvement * 100
        assert recommendation.improvement_percent == pytest.approx(expected)

    def test_mobile_guidance(self, waste):
        recommendation = generate_recommendation(waste, "Start free trial", device_type="mobile")
        assert "On mobile" in recommendation.action

    def test_fallback_without_high_risk(self, build_element, primary):
        quiet = [primary, build_element("link", "about", "About", 100, 2000, 50, 20, href="/about")]
        analysis = WastedClickModel().analyze(quiet, PrimaryCTA(element=primary))
        baseline = resolve_baseline(current_rate=0.03, projected_rate=0.036)
        recommendation = generate_recommendation(analysis, "Start free trial", baseline)
        assert recommendation.id == "SR-00"
        assert recommendation.elements_to_remove == []
        assert recommendation.priority_score == 75
        assert recommendation.improvement_percent == pytest.approx(20.0)


class TestRecommendationSet:
    def test_requires_primary(self, elements):
        with pytest.raises(ValidationError):
            generate_recommendations(None, elements, "Start free trial")

    def test_ranked_by_priority(self, waste, elements):
        result = generate_recommendations(waste, elements, "Start free trial")
        scores = [r.priority_score for r in result.recommendations]
        assert scores == sorted(scores, reverse=True)
        assert {r.category for r in result.recommendations} <= {
            "Quick Wins", "Form Fixes", "Structural Changes",
        }

    def test_high_risk_removal(self, waste, elements):
        result = generate_recommendations(waste, elements, "Start free trial")
        removal = next(r for r in result.recommendations if r.id == "ST-03")
        assert removal.elements_to_remove == [s.element_id for s in waste.high_risk_elements]

    def test_form_fixes(self, build_element, waste, elements):
        fields = [
            build_element("form_field", f"field-{i}", f"Field {i}", 100, 400 + i * 60,
                          input_type="text", required=True, placeholder=f"Field {i}")
            for i in range(6)
        ]
        result = generate_recommendations(waste, elements + fields, "Start free trial")
        ids = [r.id for r in result.by_category("Form Fixes")]
        assert set(ids) == {"FF-01", "FF-02", "FF-03", "FF-04"}
        complexity = next(r for r in result.recommendations if r.id == "FF-01")
        assert complexity.estimated_uplift == (15, 25)

    def test_total_is_capped(self, build_element, waste, elements):
        extra = [
            build_element("link", f"header-{i}", f"Header {i}", 10 + i * 60, 10, 40, 20, href=f"/h{i}")
            for i in range(30)
        ]
        fields = [
            build_element("form_field", f"field-{i}", f"Field {i}", 100, 900 + i * 60,
                          input_type="email", required=True, placeholder="Email")
            for i in range(6)
        ]
        result = generate_recommendations(waste, elements + extra + fields, "Start free trial")
        total = sum((low + high) / 2 for low, high in (r.estimated_uplift for r in result.recommendations))
        assert total > MAX_TOTAL_IMPROVEMENT
        assert result.total_projected_improvement == MAX_TOTAL_IMPROVEMENT

    def test_duplicate_ctas(self, build_element, primary):
        copy = build_element("button", "copy", "start free trial", 100, 900, has_button_styling=True)
        other = build_element("button", "other", "Book a demo", 100, 1000, has_button_styling=True)
        assert duplicate_ctas(primary, [copy, other]) == [copy]
