"""Tests for wasted-click scoring, classification and aggregation."""

import pytest

from analyzer.errors import ValidationError
from analyzer.normalizer import normalize_elements
from analyzer.prediction.distribution import ClickPrediction
from analyzer.waste import PrimaryCTA, WastedClickModel, analyze_wasted_clicks


def prediction(element_id, predicted_clicks):
    return ClickPrediction(
        element_id=element_id,
        element_kind="button",
        text=element_id,
        predicted_clicks=predicted_clicks,
        estimated_clicks=int(predicted_clicks),
        ctr=predicted_clicks / 10,
        click_share=0.0,
        click_probability=0.0,
        raw_score=0.0,
    )


@pytest.fixture
def primary(build_element):
    return build_element("button", "cta", "Start free trial", 100, 300, has_button_styling=True)


@pytest.fixture
def page(build_element, primary):
    return [
        build_element("link", "social", "Follow us", 100, 360, href="https://facebook.com/acme",
                      has_button_styling=True),
        primary,
        build_element("button", "competing", "Start now", 400, 300, has_button_styling=True),
        build_element("clickable", "slider", "Slide", 100, 1200, is_autoplay=True, is_sticky=True,
                      has_visual_noise=True, is_auto_rotating=True),
        build_element("link", "about", "About", 100, 2000, 50, 20, href="/about"),
    ]


def by_id(analysis):
    return {score.element_id: score for score in analysis.scores}


class TestAnalyze:
    def test_requires_primary(self, page):
        with pytest.raises(ValidationError):
            WastedClickModel().analyze(page, None)

    def test_primary_is_never_scored(self, page, primary):
        analysis = WastedClickModel().analyze(page, PrimaryCTA(element=primary))
        assert "cta" not in by_id(analysis)
        assert all(s.element_id != "cta" for s in analysis.high_risk_elements)
        assert len(analysis.scores) == 4

    def test_classifications(self, page, primary):
        scores = by_id(WastedClickModel().analyze(page, PrimaryCTA(element=primary)))
        assert scores["social"].classification == "social-link"
        assert scores["competing"].classification == "competing-cta"
        assert scores["slider"].classification == "decorative"
        assert scores["about"].classification == "low-risk"

    def test_component_math(self, page, primary):
        social = by_id(WastedClickModel().analyze(page, PrimaryCTA(element=primary)))["social"]
        assert social.factors["prominence"] == pytest.approx(0.30 * 0.9)
        assert social.factors["proximity"] == pytest.approx(0.20 * 0.85)
        assert social.factors["intent_overlap"] == 0.0
        assert social.wasted_click_score == pytest.approx(0.44)

    def test_high_risk_sorted_by_score(self, page, primary):
        analysis = WastedClickModel().analyze(page, PrimaryCTA(element=primary))
        values = [s.wasted_click_score for s in analysis.high_risk_elements]
        assert values == sorted(values, reverse=True)
        assert {s.element_id for s in analysis.high_risk_elements} == {"social", "competing"}
        assert analysis.high_risk_elements[0].recommendation.startswith("HIGH PRIORITY: ")

    def test_totals(self, page, primary):
        analysis = WastedClickModel().analyze(page, PrimaryCTA(element=primary))
        assert analysis.total_wasted_elements == 3
        assert analysis.total_wasted_elements >= len(analysis.high_risk_elements)
        assert 0.15 < analysis.average_wasted_score <= 1.0
        assert analysis.form_context.cta_type == "non-form-cta"

    def test_non_interactive_elements_skipped(self, build_element, primary):
        elements = [primary, build_element("link", "text", "Terms", 100, 400, is_interactive=False)]
        assert WastedClickModel().analyze(elements, PrimaryCTA(element=primary)).scores == []

    def test_deterministic(self, page, primary):
        model = WastedClickModel()
        first = model.analyze(page, PrimaryCTA(element=primary))
        second = model.analyze(list(page), PrimaryCTA(element=primary))
        assert first.model_dump() == second.model_dump()

    @pytest.mark.parametrize("low,high", [(0.0, 0.0), (0.15, 0.30), (0.3, 0.3), (0.0, 1.0), (1.0, 1.0)])
    def test_wasted_count_covers_high_risk(self, page, primary, low, high):
        model = WastedClickModel(low_risk_threshold=low, high_risk_threshold=high)
        analysis = model.analyze(page, PrimaryCTA(element=primary))
        assert analysis.total_wasted_elements >= len(analysis.high_risk_elements)


class TestComponents:
    def test_attention_from_predictions(self, page, primary):
        predictions = [prediction("cta", 100.0), prediction("competing", 50.0)]
        scores = by_id(WastedClickModel().analyze(page, PrimaryCTA(element=primary), predictions))
        assert scores["competing"].factors["attention"] == pytest.approx(0.15 * 0.5)
        assert scores["social"].factors["attention"] == 0.0

    def test_attention_is_capped(self, page, primary):
        predictions = [prediction("cta", 10.0), prediction("competing", 50.0)]
        scores = by_id(WastedClickModel().analyze(page, PrimaryCTA(element=primary), predictions))
        assert scores["competing"].factors["attention"] == pytest.approx(0.15)

    def test_supportive_text_is_discounted(self, build_element, primary):
        near = dict(has_button_styling=True, href="/x")
        elements = [
            primary,
            build_element("link", "plain", "Details", 100, 360, **near),
            build_element("link", "privacy", "Privacy", 100, 360, **near),
        ]
        scores = by_id(WastedClickModel().analyze(elements, PrimaryCTA(element=primary)))
        assert scores["privacy"].wasted_click_score == pytest.approx(scores["plain"].wasted_click_score * 0.5)


class TestFormContext:
    def test_form_field_distracts_on_click_page(self, build_element, primary):
        field = build_element("form_field", "newsletter", "Newsletter email", 100, 400, input_type="email")
        analysis = WastedClickModel().analyze([primary, field], PrimaryCTA(element=primary))
        assert analysis.scores[0].classification == "form-distraction"

    def test_form_field_belongs_on_form_page(self, build_element):
        signup = build_element("button", "signup", "Sign up", 100, 300, has_button_styling=True)
        field = build_element("form_field", "email", "Email Field", 100, 400, input_type="email")
        analysis = WastedClickModel().analyze([signup, field], PrimaryCTA(element=signup))
        assert analysis.form_context.is_form_related is True
        assert analysis.scores[0].classification == "low-risk"


class TestConfiguration:
    def test_unknown_weight(self):
        with pytest.raises(ValidationError):
            WastedClickModel(weights={"bogus": 1.0})

    def test_negative_weight(self):
        with pytest.raises(ValidationError):
            WastedClickModel(weights={"noise": -0.1})

    def test_inverted_thresholds(self):
        with pytest.raises(ValidationError):
            WastedClickModel(low_risk_threshold=0.5, high_risk_threshold=0.2)

    def test_noise_only_weights(self, page, primary):
        analysis = analyze_wasted_clicks(page, PrimaryCTA(element=primary), weights={"noise": 1.0})
        scores = by_id(analysis)
        assert scores["slider"].wasted_click_score == pytest.approx(1.0)
        assert scores["social"].wasted_click_score == 0.0


class TestNormalizedPage:
    def test_landing_page(self, landing_page):
        elements = normalize_elements(landing_page).elements
        primary = next(e for e in elements if e.text == "Start free trial")
        analysis = analyze_wasted_clicks(elements, PrimaryCTA(element=primary))
        assert analysis.primary_cta_id == primary.id
        assert primary.id not in by_id(analysis)
        assert by_id(analysis)["link-100-380"].classification == "social-link"
