"""
Click Prediction Engine for CRO Signal Engine

Pipeline:
1. Resolve context (industry, business type, tiers) and estimate CPC
2. Filter valid elements
3. Score elements and allocate engaged clicks
4. Redistribute toward top performers
5. Select the primary CTA (first strict maximum of estimated clicks)
6. Estimate wasted clicks/spend for every other element
7. Form bottleneck analysis, reliability and warnings
"""

import logging
from typing import Dict, List, Optional, Sequence

from pydantic import BaseModel, Field

from config import settings
from ..context import PageContext
from ..elements import ElementBase
from .cpc import CPCEstimator
from .distribution import ClickDistributor, ClickPrediction, consistent_shares, round_half_up
from .forms import FormAnalyzer, FormBottleneckAnalysis, form_fields_of, is_form_associated, lead_count
from .risk import ReliabilityAssessment, RiskAssessment
from .scoring import ElementScorer

logger = logging.getLogger(__name__)


class PredictionMetadata(BaseModel):
    total_elements: int = 0
    interactive_elements: int = 0
    form_fields: int = 0
    estimated_cpc: float = 0.0
    cpc_breakdown: Dict[str, float] = Field(default_factory=dict)
    total_clicks: float = 0.0
    bounce_rate: float = 0.0
    industry: Optional[str] = None
    industry_source: str = "default"
    business_type: Optional[str] = None
    business_type_source: str = "default"
    context_explicitness: float = 0.0
    primary_cta_id: Optional[str] = None


class ClickPredictionReport(BaseModel):
    predictions: List[ClickPrediction] = Field(default_factory=list)
    metadata: PredictionMetadata = Field(default_factory=PredictionMetadata)
    reliability: Optional[ReliabilityAssessment] = None
    form_analysis: Optional[FormBottleneckAnalysis] = None
    warnings: List[str] = Field(default_factory=list)
    degraded_inputs: List[str] = Field(default_factory=list)

    def primary_prediction(self) -> Optional[ClickPrediction]:
        primary_id = self.metadata.primary_cta_id
        for prediction in self.predictions:
            if prediction.element_id == primary_id:
                return prediction
        return None


def select_primary_cta(predictions: Sequence[ClickPrediction]) -> Optional[ClickPrediction]:
    """
    Element with the strictly largest estimated clicks.

    Scans in the given (canonical) order and only replaces the current best on
    a strictly greater value, so the earliest element wins ties.
    """
    best = None
    for prediction in predictions:
        if best is None or prediction.estimated_clicks > best.estimated_clicks:
            best = prediction
    return best


def filter_valid_elements(elements: Sequence[ElementBase]) -> List[ElementBase]:
    valid = []
    for element in elements:
        geometry = element.geometry
        if geometry.x < 0 or geometry.y < 0 or not geometry.is_valid():
            continue
        if element.is_form_field:
            valid.append(element)
            continue
        if not element.is_visible and not element.is_interactive:
            continue
        valid.append(element)
    return valid[: settings.MAX_ANALYZED_ELEMENTS]


class ClickPredictionEngine:
    """
    Stateless click prediction service.

    Collaborators are built once per engine and hold no per-request state.
    """

    def __init__(self):
        self.scorer = ElementScorer()
        self.distributor = ClickDistributor()
        self.forms = FormAnalyzer()
        self.risk = RiskAssessment()

    def predict_clicks(
        self, elements: Sequence[ElementBase], context: PageContext
    ) -> ClickPredictionReport:
        resolution = CPCEstimator.estimate_context(context)
        ctx = resolution.context
        cpc = CPCEstimator.calculate_estimated_cpc(ctx)
        report = ClickPredictionReport(
            warnings=[str(w) for w in resolution.warnings],
            degraded_inputs=[w.code for w in resolution.warnings],
        )

        valid = filter_valid_elements(elements)
        fields = form_fields_of(valid)
        traffic = self.distributor.traffic.summary(ctx)
        report.metadata = PredictionMetadata(
            total_elements=len(valid),
            interactive_elements=sum(1 for element in valid if element.is_interactive),
            form_fields=len(fields),
            estimated_cpc=cpc.estimated_cpc,
            cpc_breakdown=cpc.breakdown,
            total_clicks=traffic["total_clicks"],
            bounce_rate=traffic["bounce_rate"],
            industry=ctx.industry,
            industry_source=resolution.industry_source,
            business_type=ctx.business_type,
            business_type_source=resolution.business_type_source,
            context_explicitness=resolution.explicitness,
        )

        if not valid:
            logger.info("No valid elements to score; returning empty prediction set")
            return report

        scored = self.scorer.score_elements(valid, ctx)
        clicks = self.distributor.apply_pareto_redistribution(self.distributor.allocate(scored, ctx))
        shares = consistent_shares(clicks, ctx.total_impressions)

        predictions = []
        for entry, predicted, share in zip(scored, clicks, shares):
            predictions.append(ClickPrediction(
                element_id=entry.element.id,
                element_kind=entry.element.kind,
                text=entry.element.text,
                predicted_clicks=predicted,
                estimated_clicks=round_half_up(predicted),
                ctr=share["ctr"],
                click_share=share["click_share"],
                click_probability=entry.probability,
                raw_score=entry.score,
                avg_cpc=cpc.estimated_cpc,
                confidence=self.risk.confidence_tier(
                    entry.element, entry.score, ctx,
                    resolution.industry_source, resolution.explicitness,
                ),
                risk_factors=self.risk.risk_factors(entry.element, ctx),
            ))

        primary = select_primary_cta(predictions)
        report.metadata.primary_cta_id = primary.element_id if primary else None
        logger.info(
            f"🎯 Primary CTA: {primary.element_id} ({primary.estimated_clicks} est. clicks)"
            if primary else "No primary CTA selected"
        )

        for entry, prediction in zip(scored, predictions):
            if primary and prediction.element_id == primary.element_id:
                continue
            rate, breakdown = self.distributor.waste_rate(entry.element, ctx, valid)
            prediction.wasted_clicks = round_half_up(prediction.predicted_clicks * rate)
            prediction.wasted_spend = round(prediction.wasted_clicks * cpc.estimated_cpc, 2)
            prediction.waste_breakdown = breakdown

        form_analysis = self.forms.analyze(fields, ctx)
        if form_analysis is not None:
            for entry, prediction in zip(scored, predictions):
                if is_form_associated(entry.element):
                    prediction.completion_rate = form_analysis.completion_rate
                    prediction.lead_count = lead_count(prediction.predicted_clicks, form_analysis.completion_rate)
                    prediction.bottleneck_field = form_analysis.bottleneck_field

        report.predictions = predictions
        report.form_analysis = form_analysis
        report.reliability = self.risk.assess_reliability(scored, ctx)
        report.warnings.extend(self.risk.prediction_warnings(scored, ctx))

        logger.info(
            f"✅ Predicted clicks for {len(predictions)} elements "
            f"(CPC ${cpc.estimated_cpc:.2f}, reliability {report.reliability.level})"
        )
        return report


def predict_clicks(elements: Sequence[ElementBase], context: PageContext) -> ClickPredictionReport:
    """Run click prediction with a fresh engine."""
    return ClickPredictionEngine().predict_clicks(elements, context)
