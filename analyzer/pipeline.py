"""
Analysis Pipeline for CRO Signal Engine

Orchestrates a full page analysis:
1. Normalizes raw page elements
2. Predicts clicks and selects the primary CTA
3. Scores wasted clicks against the primary CTA
4. Synthesizes recommendations
"""

import logging
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, Field

from utils.parsing.json import Payload, load_payload
from .context import PageContext, decode_page_context
from .elements import ElementBase
from .normalizer import ElementNormalizer, SkippedRecord
from .prediction.cpc import extract_page_text
from .prediction.engine import ClickPredictionEngine, ClickPredictionReport
from .recommendations import (
    RecommendationSet,
    SingleRecommendation,
    generate_recommendation,
    generate_recommendations,
    resolve_baseline,
)
from .waste import PrimaryCTA, WasteAnalysis, WastedClickModel

logger = logging.getLogger(__name__)


class PageAnalysis(BaseModel):
    elements: List[Dict[str, Any]] = Field(default_factory=list)
    skipped: List[SkippedRecord] = Field(default_factory=list)
    prediction: ClickPredictionReport
    primary_cta_id: Optional[str] = None
    waste_analysis: Optional[WasteAnalysis] = None
    recommendation: Optional[SingleRecommendation] = None
    recommendations: Optional[RecommendationSet] = None
    warnings: List[str] = Field(default_factory=list)
    degraded_inputs: List[str] = Field(default_factory=list)


def prepare_context(
    context: Union[PageContext, Payload, None], dom_data: Dict[str, Any]
) -> PageContext:
    """Decode the context and fill the page text used for industry detection."""
    if not isinstance(context, PageContext):
        context = decode_page_context(context)
    if not context.content_text:
        context = context.model_copy(update={"content_text": extract_page_text(dom_data)})
    return context


def analyze_page(
    dom_data: Payload,
    context: Union[PageContext, Payload, None] = None,
    current_rate: Optional[float] = None,
) -> PageAnalysis:
    """
    Run the full pipeline on one captured page.

    A page without a resolvable primary CTA returns its predictions with a
    warning and no waste analysis or recommendations.

    Raises:
        DecodeError: malformed payload or context
    """
    data = load_payload(dom_data)
    ctx = prepare_context(context, data)

    normalized = ElementNormalizer(fold_line=ctx.fold_line).normalize(data)
    elements: List[ElementBase] = list(normalized.elements)
    fields = [e for e in elements if e.is_form_field]
    ctx = ctx.model_copy(update={
        "form_field_count": ctx.form_field_count or len(fields),
    })

    report = ClickPredictionEngine().predict_clicks(elements, ctx)
    analysis = PageAnalysis(
        elements=[e.model_dump() for e in elements],
        skipped=normalized.skipped,
        prediction=report,
        warnings=list(report.warnings),
        degraded_inputs=list(report.degraded_inputs),
    )

    primary_prediction = report.primary_prediction()
    primary_element = next(
        (e for e in elements if primary_prediction and e.id == primary_prediction.element_id), None
    )
    if primary_element is None:
        message = "No primary CTA could be resolved; skipping wasted-click analysis"
        logger.warning(f"⚠️ {message}")
        analysis.warnings.append(message)
        return analysis

    analysis.primary_cta_id = primary_element.id
    primary = PrimaryCTA(element=primary_element, prediction=primary_prediction)
    waste = WastedClickModel().analyze(elements, primary, report.predictions)
    analysis.waste_analysis = waste

    is_form_related = ctx.is_form_related or waste.form_context.is_form_related
    if current_rate is None and primary_prediction.ctr > 0:
        current_rate = primary_prediction.ctr_decimal
        if is_form_related and primary_prediction.completion_rate:
            current_rate *= primary_prediction.completion_rate
    baseline = resolve_baseline(
        current_rate=current_rate,
        industry=report.metadata.industry,
        is_form_related=is_form_related,
        waste_analysis=waste,
    )
    analysis.warnings.extend(w for w in baseline.warnings if w not in analysis.warnings)

    analysis.recommendation = generate_recommendation(
        waste, primary_element.text, baseline, is_form_related, ctx.device_type
    )
    analysis.recommendations = generate_recommendations(
        waste, elements, primary_element.text, baseline, is_form_related, ctx.device_type
    )

    logger.info(
        f"✅ Page analysis complete: {len(elements)} elements, primary CTA "
        f"'{primary_element.text}', {waste.total_wasted_elements} wasted"
    )
    return analysis
