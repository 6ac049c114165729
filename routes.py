import logging
from datetime import datetime, timezone
from typing import List, Tuple

from fastapi import APIRouter, HTTPException
from pydantic.alias_generators import to_camel

from analyzer.context import PageContext
from analyzer.elements import ElementBase
from analyzer.errors import DecodeError, ValidationError
from analyzer.funnel.capture_factors import (
    analyze_factors_from_capture,
    create_step2_prediction,
    decode_capture,
)
from analyzer.funnel.metrics import calculate_funnel_metrics
from analyzer.funnel.model import (
    DEFAULT_CONFIG,
    PostClickConfig,
    PostClickPrediction,
    PostClickStep,
    decode_config,
    decode_factors,
    decode_step,
    predict_step_rate,
)
from analyzer.funnel.recommendations import factor_impacts, generate_factor_recommendations
from analyzer.normalizer import ElementNormalizer
from analyzer.pipeline import PageAnalysis, analyze_page, prepare_context
from analyzer.prediction.engine import ClickPredictionEngine, ClickPredictionReport
from analyzer.recommendations import (
    RecommendationSet,
    SingleRecommendation,
    generate_recommendation,
    generate_recommendations,
    resolve_baseline,
)
from analyzer.waste import PrimaryCTA, WasteAnalysis, WastedClickModel
from models import (
    PageRequest,
    PostClickMetrics,
    PostClickRequest,
    PostClickResponse,
    RecommendationRequest,
    StepRateRequest,
    WastedClicksRequest,
)

logger = logging.getLogger(__name__)

# Create router
router = APIRouter()


def _http_error(e: Exception, label: str) -> HTTPException:
    """Map analyzer errors onto HTTP status codes."""
    if isinstance(e, ValidationError):
        logger.warning(f"⚠️ {label}: {e}")
        return HTTPException(status_code=400, detail=str(e))
    if isinstance(e, DecodeError):
        logger.warning(f"⚠️ {label}: malformed input {e}")
        return HTTPException(status_code=422, detail=f"Malformed input: {e}")
    logger.exception(f"❌ {label} failed: {e}")
    return HTTPException(status_code=500, detail=f"{label} failed: {e}")


def _predict(request: PageRequest) -> Tuple[List[ElementBase], PageContext, ClickPredictionReport]:
    context = prepare_context(request.context, request.dom_data)
    elements = list(ElementNormalizer(fold_line=context.fold_line).normalize(request.dom_data).elements)
    report = ClickPredictionEngine().predict_clicks(elements, context)
    return elements, context, report


def _waste(
    request: WastedClicksRequest,
) -> Tuple[List[ElementBase], PageContext, ClickPredictionReport, WasteAnalysis]:
    elements, context, report = _predict(request)

    primary_id = request.primary_cta_id or report.metadata.primary_cta_id
    element = next((e for e in elements if primary_id and e.id == primary_id), None)
    if element is None:
        if request.primary_cta_id:
            raise ValidationError(f"Primary CTA '{request.primary_cta_id}' not found among page elements")
        raise ValidationError("No primary CTA could be resolved for this page")

    prediction = next((p for p in report.predictions if p.element_id == element.id), None)
    waste = WastedClickModel().analyze(
        elements, PrimaryCTA(element=element, prediction=prediction), report.predictions
    )
    return elements, context, report, waste


@router.get("/")
async def root():
    return {
        "service": "CRO Signal Engine",
        "status": "running",
        "endpoints": {
            "predict_clicks": "/predict-clicks (POST)",
            "analyze_wasted_clicks": "/analyze-wasted-clicks (POST)",
            "predict_step_rate": "/predict-step-rate (POST)",
            "analyze_post_click": "/analyze-post-click (POST)",
            "recommendation": "/recommendation (POST)",
            "recommendations": "/recommendations (POST)",
            "analyze": "/analyze (POST)",
        },
    }


@router.get("/health")
async def health_check():
    return {"status": "healthy"}


@router.post("/predict-clicks", response_model=ClickPredictionReport)
async def predict_clicks(request: PageRequest):
    """
    Predicts CTR, click share, wasted clicks and confidence for every element
    of a captured page.
    """
    try:
        _, _, report = _predict(request)
        return report
    except Exception as e:
        raise _http_error(e, "Click prediction")


@router.post("/analyze-wasted-clicks", response_model=WasteAnalysis)
async def analyze_wasted_clicks(request: WastedClicksRequest):
    """
    Scores every non-primary element for the attention it pulls away from the
    primary CTA. The primary CTA defaults to the predicted one.
    """
    try:
        _, _, _, waste = _waste(request)
        return waste
    except Exception as e:
        raise _http_error(e, "Wasted-click analysis")


@router.post("/predict-step-rate", response_model=PostClickPrediction)
async def predict_step_rate_endpoint(request: StepRateRequest):
    """
    Predicts a funnel step's conversion rate from its base rate, audience
    warmth and factor scores. Missing factors fall back to defaults.
    """
    try:
        return predict_step_rate(
            decode_step(request.step),
            decode_config(request.config),
            decode_factors(request.factors),
        )
    except Exception as e:
        raise _http_error(e, "Step rate prediction")


@router.post("/analyze-post-click", response_model=PostClickResponse)
async def analyze_post_click(request: PostClickRequest):
    """
    Post-click analysis of a funnel's second step.

    With both captures, factors are scored by comparing the two pages; with
    step 2 only, custom factors or single-capture heuristics are used.

    The two-step path always uses the default step and multiplicative mode:
    customFactors, stepConfig and mode are ignored there and reported in the
    prediction's warnings.
    """
    try:
        step2 = decode_capture(request.step2_capture_result, "step2CaptureResult")

        if request.step1_capture_result:
            step1 = decode_capture(request.step1_capture_result, "step1CaptureResult")
            prediction = create_step2_prediction(step1, step2, request.audience_warmth)
            ignored = sorted(
                request.model_fields_set & {"custom_factors", "step_config", "mode"}
            )
            if ignored:
                message = (
                    "Two-step analysis ignores "
                    f"{', '.join(to_camel(name) for name in ignored)}"
                )
                logger.warning(f"⚠️ {message}")
                prediction = prediction.model_copy(
                    update={"warnings": prediction.warnings + [message]}
                )
        else:
            factors = decode_factors(request.custom_factors)
            if factors is None:
                factors = analyze_factors_from_capture(step2)
            step = (
                decode_step(request.step_config)
                if request.step_config
                else PostClickStep(
                    step_name="Step 2 (Post-Click)",
                    cold_base_rate=0.10,
                    audience=request.audience_warmth,
                    upper_cap=0.65,
                )
            )
            config = PostClickConfig(mode=request.mode, apply_cap=DEFAULT_CONFIG.apply_cap)
            prediction = predict_step_rate(step, config, factors)

        metrics = PostClickMetrics(
            predicted_ctr=prediction.predicted_rate * 100,
            predicted_clicks=int(request.visitors * prediction.predicted_rate + 0.5),
            factor_impacts=factor_impacts(prediction.factors_analyzed),
            total_factor_lift=prediction.combined_factor_multiplier - 1,
            base_rate_contribution=prediction.cold_base_rate,
            warmth_contribution=prediction.warmth_multiplier_applied - 1,
            final_rate=prediction.predicted_rate,
            confidence=prediction.confidence,
            funnel=calculate_funnel_metrics(
                request.step1_ctr, prediction.predicted_rate, request.visitors
            ),
            analysis_timestamp=datetime.now(timezone.utc).isoformat(),
        )
        return PostClickResponse(
            prediction=prediction,
            metrics=metrics,
            recommendations=generate_factor_recommendations(prediction.factors_analyzed),
        )
    except Exception as e:
        raise _http_error(e, "Post-click analysis")


def _baseline(
    request: RecommendationRequest,
    report: ClickPredictionReport,
    waste: WasteAnalysis,
    context: PageContext,
):
    is_form_related = context.is_form_related or waste.form_context.is_form_related
    baseline = resolve_baseline(
        current_rate=request.current_rate,
        projected_rate=request.projected_rate,
        industry=report.metadata.industry,
        is_form_related=is_form_related,
        waste_analysis=waste,
    )
    return baseline, is_form_related


@router.post("/recommendation", response_model=SingleRecommendation)
async def recommendation(request: RecommendationRequest):
    """
    Returns the single highest-impact recommendation, naming the high-risk
    elements to remove.
    """
    try:
        _, context, report, waste = _waste(request)
        baseline, is_form_related = _baseline(request, report, waste, context)
        return generate_recommendation(
            waste, waste.primary_cta_text, baseline, is_form_related, context.device_type
        )
    except Exception as e:
        raise _http_error(e, "Recommendation")


@router.post("/recommendations", response_model=RecommendationSet)
async def recommendations(request: RecommendationRequest):
    """Ranked Quick Wins, Form Fixes and Structural Changes."""
    try:
        elements, context, report, waste = _waste(request)
        baseline, is_form_related = _baseline(request, report, waste, context)
        return generate_recommendations(
            waste, elements, waste.primary_cta_text, baseline, is_form_related, context.device_type
        )
    except Exception as e:
        raise _http_error(e, "Recommendations")


@router.post("/analyze", response_model=PageAnalysis)
async def analyze(request: PageRequest):
    """
    Full pipeline: normalization, click prediction, primary CTA selection,
    wasted-click analysis and recommendations.
    """
    try:
        return analyze_page(request.dom_data, request.context)
    except Exception as e:
        raise _http_error(e, "Page analysis")
