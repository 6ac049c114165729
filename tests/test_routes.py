"""API tests for the CRO Signal Engine service."""

import pytest
from fastapi.testclient import TestClient

from main import app


@pytest.fixture
def client():
    return TestClient(app)


class TestService:
    def test_root(self, client):
        response = client.get("/")
        assert response.status_code == 200
        assert response.json()["service"] == "CRO Signal Engine"

    def test_health(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json() == {"status": "healthy"}


class TestFunnelEndpoints:
    def test_step_rate_with_defaults(self, client):
        response = client.post("/predict-step-rate", json={})
        assert response.status_code == 200
        body = response.json()
        assert body["step_name"] == "Step 2 (Post-Click)"
        assert body["capped"] is True
        assert len(body["warnings"]) == 1

    def test_step_rate_fixture(self, client):
        response = client.post("/predict-step-rate", json={
            "step": {"stepName": "Step 2", "coldBaseRate": 0.10, "audience": "warm", "upperCap": 0.65},
            "factors": [
                {"factor": "a", "score": 0.8, "maxLift": 0.4},
                {"factor": "b", "score": 0.6, "maxLift": 0.7},
                {"factor": "c", "score": 0.9, "maxLift": 0.1},
            ],
        })
        assert response.status_code == 200
        body = response.json()
        assert 0.45 <= body["predicted_rate"] <= 0.60
        assert body["capped"] is False

    def test_malformed_factor_is_422(self, client):
        response = client.post("/predict-step-rate", json={
            "factors": [{"factor": "a", "score": 2.0, "maxLift": 0.4}],
        })
        assert response.status_code == 422
        assert response.json()["detail"].startswith("Malformed input: factors[0].score")

    def test_post_click_requires_step2(self, client):
        response = client.post("/analyze-post-click", json={"audienceWarmth": "warm"})
        assert response.status_code == 400
        assert "domData" in response.json()["detail"]

    def test_post_click_single_capture(self, client):
        response = client.post("/analyze-post-click", json={
            "step2CaptureResult": {"domData": {"buttons": [{"text": "Continue"}]}},
            "step1Ctr": 4.0,
            "visitors": 2000,
        })
        assert response.status_code == 200
        body = response.json()
        assert body["metrics"]["funnel"]["n2"] == 80
        assert body["metrics"]["final_rate"] == body["prediction"]["predicted_rate"]
        assert len(body["recommendations"]) <= 3

    @pytest.mark.parametrize("capture", [
        {"domData": {"images": ["hero.png"]}},
        {"domData": {"buttons": []}, "primaryCTAPrediction": {"confidence": "high"}},
    ])
    def test_malformed_capture_is_422(self, client, capture):
        response = client.post("/analyze-post-click", json={"step2CaptureResult": capture})
        assert response.status_code == 422
        assert response.json()["detail"].startswith("Malformed input: step2CaptureResult.")

    def test_malformed_step1_capture_is_422(self, client):
        response = client.post("/analyze-post-click", json={
            "step1CaptureResult": {"domData": {"headings": "Welcome"}},
            "step2CaptureResult": {"domData": {"buttons": [{"text": "Continue"}]}},
        })
        assert response.status_code == 422

    def test_two_step_reports_ignored_options(self, client):
        response = client.post("/analyze-post-click", json={
            "step1CaptureResult": {"domData": {"buttons": [{"text": "Get a quote"}]}},
            "step2CaptureResult": {"domData": {"headings": [{"text": "Your quote"}]}},
            "mode": "logit",
            "customFactors": [{"factor": "a", "score": 0.5, "maxLift": 0.2}],
        })
        assert response.status_code == 200
        body = response.json()
        assert body["prediction"]["mode"] == "multiplicative"
        assert body["prediction"]["warnings"] == ["Two-step analysis ignores customFactors, mode"]

    def test_two_step_without_extra_options_has_no_warning(self, client):
        response = client.post("/analyze-post-click", json={
            "step1CaptureResult": {"domData": {"buttons": [{"text": "Get a quote"}]}},
            "step2CaptureResult": {"domData": {"headings": [{"text": "Your quote"}]}},
        })
        assert response.status_code == 200
        assert response.json()["prediction"]["warnings"] == []


class TestPageEndpoints:
    def test_predict_clicks(self, client, landing_page):
        response = client.post("/predict-clicks", json={"domData": landing_page})
        assert response.status_code == 200
        body = response.json()
        assert len(body["predictions"]) == 7
        assert body["metadata"]["primary_cta_id"] is not None

    def test_analyze(self, client, landing_page):
        response = client.post("/analyze", json={
            "domData": landing_page,
            "context": {"url": "https://acme-software.com", "trafficSource": "paid"},
        })
        assert response.status_code == 200
        body = response.json()
        assert body["primary_cta_id"] is not None
        assert body["waste_analysis"]["primary_cta_id"] == body["primary_cta_id"]
        scored = [s["element_id"] for s in body["waste_analysis"]["scores"]]
        assert body["primary_cta_id"] not in scored
        assert body["recommendation"]["elements_to_remove"] == [
            s["element_id"] for s in body["waste_analysis"]["high_risk_elements"]
        ]

    def test_analyze_without_elements(self, client):
        response = client.post("/analyze", json={"domData": {}})
        assert response.status_code == 200
        body = response.json()
        assert body["waste_analysis"] is None
        assert any("No primary CTA" in w for w in body["warnings"])

    def test_bad_context_is_422(self, client, landing_page):
        response = client.post("/analyze", json={
            "domData": landing_page,
            "context": {"deviceType": "watch"},
        })
        assert response.status_code == 422

    def test_unknown_primary_is_400(self, client, landing_page):
        response = client.post("/analyze-wasted-clicks", json={
            "domData": landing_page,
            "primaryCtaId": "button-0-0",
        })
        assert response.status_code == 400

    def test_recommendations(self, client, landing_page):
        response = client.post("/recommendations", json={"domData": landing_page})
        assert response.status_code == 200
        body = response.json()
        assert body["total_projected_improvement"] <= 60
        assert body["baseline"]["current_rate"] > 0
