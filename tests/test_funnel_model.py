"""Tests for the post-click funnel model: multipliers, modes, caps and confidence."""

import pytest
from pydantic import ValidationError as PydanticValidationError

from analyzer.errors import DecodeError, ValidationError
from analyzer.funnel.model import (
    DEFAULT_FACTORS,
    DEFAULT_STEP,
    PostClickConfig,
    PostClickFactor,
    PostClickStep,
    combine_factor_multipliers,
    decode_config,
    decode_factors,
    decode_step,
    factor_multiplier,
    logit_rate,
    predict_all_steps,
    predict_step_rate,
)


def factors(*pairs):
    return [
        PostClickFactor(factor=f"factor_{i}", score=score, max_lift=lift)
        for i, (score, lift) in enumerate(pairs)
    ]


FIXTURE_FACTORS = [(0.8, 0.4), (0.6, 0.7), (0.9, 0.1)]


# ---------------------------------------------------------------------------
# Factor multipliers
# ---------------------------------------------------------------------------

class TestFactorMultiplier:
    def test_zero_score_is_identity(self):
        assert factor_multiplier(0.0, 0.7) == 1.0

    def test_full_score_is_one_plus_max_lift(self):
        assert factor_multiplier(1.0, 0.35) == 1.35

    def test_monotonic_in_score(self):
        values = [factor_multiplier(s / 10, 0.4) for s in range(11)]
        assert values == sorted(values)

    def test_score_is_clamped(self):
        assert factor_multiplier(1.7, 0.5) == 1.5
        assert factor_multiplier(-0.2, 0.5) == 1.0


class TestCombineFactorMultipliers:
    def test_empty_list_is_identity(self):
        assert combine_factor_multipliers([], "multiplicative") == 1.0
        assert combine_factor_multipliers([], "logit") == 1.0

    def test_fixture_product(self):
        combined = combine_factor_multipliers(factors(*FIXTURE_FACTORS), "multiplicative")
        assert combined == pytest.approx(1.32 * 1.42 * 1.09)
        assert combined == pytest.approx(2.043, abs=1e-3)

    def test_zero_and_full_scores(self):
        assert combine_factor_multipliers(factors((0, 1.0), (1, 0.5))) == 1.5


# ---------------------------------------------------------------------------
# Logit mode
# ---------------------------------------------------------------------------

class TestLogitMode:
    def test_single_small_lift_matches_multiplicative(self):
        single = factors((1.0, 0.01))
        assert logit_rate(0.01, single) == pytest.approx(0.01 * 1.01, rel=1e-3)

    def test_stays_inside_unit_interval_without_cap(self):
        big = factors((1.0, 5.0), (1.0, 5.0), (1.0, 5.0))
        rate = logit_rate(0.9, big)
        assert 0.0 < rate <= 1.0

    def test_degenerate_base_rates(self):
        single = factors((1.0, 0.5))
        assert logit_rate(0.0, single) == 0.0
        assert logit_rate(1.0, single) == 1.0

    def test_prediction_never_exceeds_one_without_cap(self):
        step = PostClickStep(step_name="Checkout", cold_base_rate=0.25, audience="hot")
        config = PostClickConfig(mode="logit", apply_cap=False)
        prediction = predict_step_rate(step, config, factors((1.0, 2.0), (1.0, 2.0)))
        assert 0.0 <= prediction.predicted_rate <= 1.0
        assert prediction.mode == "logit"


# ---------------------------------------------------------------------------
# Step rate prediction
# ---------------------------------------------------------------------------

class TestPredictStepRate:
    def test_warm_fixture_is_uncapped(self):
        step = PostClickStep(step_name="Step 2", cold_base_rate=0.10, audience="warm", upper_cap=0.65)
        prediction = predict_step_rate(step, factors=factors(*FIXTURE_FACTORS))
        assert 0.45 <= prediction.predicted_rate <= 0.60
        assert prediction.capped is False
        assert prediction.warmth_multiplier_applied == 2.5
        assert prediction.warnings == []

    def test_cap_is_applied_and_flagged(self):
        step = PostClickStep(step_name="Step 2", cold_base_rate=0.30, audience="warm", upper_cap=0.65)
        prediction = predict_step_rate(step, factors=factors(*FIXTURE_FACTORS))
        assert prediction.predicted_rate == 0.65
        assert prediction.capped is True

    def test_cap_can_be_disabled(self):
        step = PostClickStep(step_name="Step 2", cold_base_rate=0.15, audience="warm", upper_cap=0.65)
        config = PostClickConfig(apply_cap=False)
        prediction = predict_step_rate(step, config, factors(*FIXTURE_FACTORS))
        assert prediction.predicted_rate > 0.65
        assert prediction.capped is False

    def test_rate_never_exceeds_one(self):
        step = PostClickStep(step_name="Step 2", cold_base_rate=0.50, audience="hot")
        prediction = predict_step_rate(step, factors=factors(*FIXTURE_FACTORS))
        assert prediction.predicted_rate == 1.0
        assert prediction.capped is True

    def test_cold_audience_has_no_boost(self):
        step = PostClickStep(step_name="Landing", cold_base_rate=0.10, audience="cold")
        prediction = predict_step_rate(step, factors=[])
        assert prediction.predicted_rate == pytest.approx(0.10)
        assert prediction.combined_factor_multiplier == 1.0

    def test_hot_exceeds_warm(self):
        warm = PostClickStep(step_name="s", cold_base_rate=0.05, audience="warm")
        hot = PostClickStep(step_name="s", cold_base_rate=0.05, audience="hot")
        assert predict_step_rate(hot, factors=[]).predicted_rate > predict_step_rate(warm, factors=[]).predicted_rate

    def test_missing_factors_fall_back_to_defaults_with_warning(self):
        prediction = predict_step_rate(DEFAULT_STEP)
        assert len(prediction.factors_analyzed) == len(DEFAULT_FACTORS)
        assert len(prediction.warnings) == 1
        assert "default" in prediction.warnings[0]

    def test_custom_audience_multipliers(self):
        config = PostClickConfig(audience_multipliers={"warm": 2.0})
        step = PostClickStep(step_name="s", cold_base_rate=0.10, audience="warm")
        prediction = predict_step_rate(step, config, [])
        assert prediction.predicted_rate == pytest.approx(0.20)

    def test_unordered_audience_multipliers_rejected(self):
        with pytest.raises(PydanticValidationError):
            PostClickConfig(audience_multipliers={"hot": 2.0})

    def test_predict_all_steps_requires_a_step(self):
        with pytest.raises(ValidationError):
            predict_all_steps([])

    def test_predict_all_steps_keeps_order(self):
        steps = [
            PostClickStep(step_name="first", cold_base_rate=0.1, audience="cold"),
            PostClickStep(step_name="second", cold_base_rate=0.2, audience="cold"),
        ]
        predictions = predict_all_steps(steps, factors=[])
        assert [p.step_name for p in predictions] == ["first", "second"]


# ---------------------------------------------------------------------------
# Confidence
# ---------------------------------------------------------------------------

class TestConfidence:
    def test_warm_well_implemented(self):
        step = PostClickStep(step_name="s", cold_base_rate=0.01, audience="warm")
        prediction = predict_step_rate(step, factors=factors((0.9, 0.1), (0.8, 0.1)))
        assert prediction.confidence == pytest.approx(0.7 + 0.2 + 0.05)

    def test_cold_penalty(self):
        step = PostClickStep(step_name="s", cold_base_rate=0.01, audience="cold")
        prediction = predict_step_rate(step, factors=factors((0.2, 0.1)))
        assert prediction.confidence == pytest.approx(0.6)

    def test_capped_penalty(self):
        prediction = predict_step_rate(DEFAULT_STEP)
        assert prediction.capped is True
        assert prediction.confidence == pytest.approx(0.7 + 0.2 * 3 / 7 - 0.15 + 0.05)

    def test_clamped_to_range(self):
        step = PostClickStep(step_name="s", cold_base_rate=0.01, audience="hot")
        prediction = predict_step_rate(step, factors=factors((1.0, 0.1)))
        assert 0.3 <= prediction.confidence <= 1.0


# ---------------------------------------------------------------------------
# Decoding
# ---------------------------------------------------------------------------

class TestDecoding:
    def test_camel_case_factors(self):
        decoded = decode_factors([{"factor": "trust", "score": 0.5, "maxLift": 0.2}])
        assert decoded[0].max_lift == 0.2

    def test_none_factors_stay_none(self):
        assert decode_factors(None) is None

    def test_out_of_range_score(self):
        with pytest.raises(DecodeError) as exc_info:
            decode_factors([
                {"factor": "ok", "score": 0.5, "maxLift": 0.2},
                {"factor": "bad", "score": 1.5, "maxLift": 0.2},
            ])
        assert exc_info.value.field == "factors[1].score"

    def test_step_defaults_and_errors(self):
        assert decode_step(None) == DEFAULT_STEP
        step = decode_step({"stepName": "Checkout", "coldBaseRate": 0.2, "audience": "hot"})
        assert step.audience == "hot"
        with pytest.raises(DecodeError):
            decode_step({"stepName": "Checkout", "coldBaseRate": 0.2, "audience": "lukewarm"})

    def test_config_errors(self):
        assert decode_config({"mode": "logit"}).mode == "logit"
        with pytest.raises(DecodeError) as exc_info:
            decode_config({"mode": "additive"})
        assert exc_info.value.field.startswith("config")
