"""Tests for click prediction and primary CTA selection."""

import pytest

from analyzer.context import PageContext
from analyzer.normalizer import normalize_elements
from analyzer.prediction.distribution import ClickDistributor, ClickPrediction, consistent_shares, is_external_link
from analyzer.prediction.engine import ClickPredictionEngine, predict_clicks, select_primary_cta
from analyzer.prediction.traffic import TrafficAnalyzer


def prediction(element_id, estimated_clicks, predicted_clicks=None):
    predicted = float(estimated_clicks) if predicted_clicks is None else predicted_clicks
    return ClickPrediction(
        element_id=element_id,
        element_kind="button",
        text=element_id,
        predicted_clicks=predicted,
        estimated_clicks=estimated_clicks,
        ctr=0.0,
        click_share=0.0,
        click_probability=0.0,
        raw_score=0.0,
    )


class TestSelectPrimaryCTA:
    def test_earliest_wins_ties(self):
        predictions = [prediction("a", 10), prediction("b", 12), prediction("c", 12)]
        for _ in range(5):
            assert select_primary_cta(predictions).element_id == "b"

    def test_strict_maximum(self):
        predictions = [prediction("a", 3), prediction("b", 9), prediction("c", 4)]
        assert select_primary_cta(predictions).element_id == "b"

    def test_empty(self):
        assert select_primary_cta([]) is None


class TestPredictClicks:
    @pytest.fixture
    def report(self, landing_page):
        elements = normalize_elements(landing_page).elements
        context = PageContext(url="https://acme-software.com", traffic_source="paid")
        return predict_clicks(elements, context)

    def test_one_prediction_per_element(self, report, landing_page):
        ids = [e.id for e in normalize_elements(landing_page).elements]
        assert [p.element_id for p in report.predictions] == ids

    def test_click_shares_sum_to_100(self, report):
        assert sum(p.click_share for p in report.predictions) == pytest.approx(100.0)

    def test_ctr_matches_clicks(self, report):
        for p in report.predictions:
            assert p.ctr == pytest.approx(p.predicted_clicks / 1000 * 100)
            assert p.ctr_decimal == pytest.approx(p.ctr / 100)

    def test_primary_has_no_waste(self, report):
        primary = report.primary_prediction()
        assert primary is not None
        assert primary.element_id == report.metadata.primary_cta_id
        assert primary.wasted_clicks == 0
        assert primary.waste_breakdown is None
        assert all(p.waste_breakdown is not None for p in report.predictions if p is not primary)

    def test_primary_has_most_clicks(self, report):
        primary = report.primary_prediction()
        assert primary.estimated_clicks == max(p.estimated_clicks for p in report.predictions)

    def test_industry_from_url(self, report):
        assert report.metadata.industry == "saas"
        assert report.metadata.industry_source == "url"
        assert report.metadata.estimated_cpc > 0

    def test_confidence_tiers(self, report):
        assert {p.confidence for p in report.predictions} <= {"high", "medium", "low"}

    def test_deterministic(self, landing_page):
        elements = normalize_elements(landing_page).elements
        first = ClickPredictionEngine().predict_clicks(elements, PageContext())
        second = ClickPredictionEngine().predict_clicks(elements, PageContext())
        assert first.model_dump() == second.model_dump()

    def test_empty_element_list(self):
        report = predict_clicks([], PageContext(industry="saas"))
        assert report.predictions == []
        assert report.metadata.primary_cta_id is None
        assert report.primary_prediction() is None

    def test_undetected_industry_warns(self, landing_page):
        elements = normalize_elements(landing_page).elements
        report = predict_clicks(elements, PageContext(url="https://example.com"))
        assert "industry_not_detected" in report.degraded_inputs
        assert report.predictions


class TestDistribution:
    def test_pareto_keeps_total(self):
        clicks = [40.0, 30.0, 20.0, 10.0, 5.0]
        redistributed = ClickDistributor().apply_pareto_redistribution(clicks)
        assert redistributed[0] > clicks[0]
        assert sum(redistributed) == pytest.approx(sum(clicks))

    def test_pareto_ties_favor_earlier(self):
        redistributed = ClickDistributor().apply_pareto_redistribution([10.0] * 5)
        assert redistributed[0] > redistributed[1]

    def test_consistent_shares(self):
        shares = consistent_shares([30.0, 10.0], 1000)
        assert shares[0] == {"ctr": 3.0, "click_share": 75.0}
        assert consistent_shares([0.0], 1000) == [{"ctr": 0.0, "click_share": 0.0}]

    def test_external_link(self):
        assert is_external_link("https://other.com/x", "https://acme.com")
        assert not is_external_link("https://acme.com/x", "https://acme.com")
        assert not is_external_link("/pricing", "https://acme.com")


class TestTraffic:
    def test_bounce_rate(self):
        context = PageContext(traffic_source="email", load_time=3.0, ad_message_match=0.7)
        assert TrafficAnalyzer().bounce_rate_for(context) == pytest.approx(0.35 * (1 - 0.14))

    def test_bounce_rate_is_clamped(self):
        context = PageContext(traffic_source="paid", load_time=10.0, ad_message_match=0.0)
        assert TrafficAnalyzer().bounce_rate_for(context) == 0.9

    def test_total_clicks(self):
        context = PageContext(traffic_source="email", load_time=3.0, ad_message_match=0.7)
        expected = 1000 * (1 - 0.35 * 0.86) * 2.3
        assert TrafficAnalyzer().calculate_total_clicks(context) == pytest.approx(expected)

    def test_industry_boost_only_for_ctas(self):
        traffic = TrafficAnalyzer()
        context = PageContext(industry="saas", traffic_source="direct")
        assert traffic.apply_traffic_adjustments(1.0, context, is_cta=True) == pytest.approx(0.9 * 1.2)
        assert traffic.apply_traffic_adjustments(1.0, context, is_cta=False) == pytest.approx(0.9)


class TestReportLimits:
    def test_warning_and_risk_caps(self, landing_page):
        elements = normalize_elements(landing_page).elements
        context = PageContext(device_type="mobile", load_time=8.0, ad_message_match=0.1, total_impressions=50)
        report = predict_clicks(elements, context)
        assert len(report.warnings) - len(report.degraded_inputs) <= 3
        assert all(len(p.risk_factors) <= 5 for p in report.predictions)
        assert report.reliability is not None
