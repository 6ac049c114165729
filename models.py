from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from analyzer.funnel.metrics import FunnelMetrics
from analyzer.funnel.model import PostClickPrediction
from analyzer.funnel.recommendations import FactorRecommendation


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# Page models
class PageRequest(CamelModel):
    """Raw page capture plus optional page/business context."""

    dom_data: Dict[str, Any]
    context: Optional[Dict[str, Any]] = None


class WastedClicksRequest(PageRequest):
    primary_cta_id: Optional[str] = None


class RecommendationRequest(WastedClicksRequest):
    current_rate: Optional[float] = Field(default=None, ge=0.0, le=1.0)
    projected_rate: Optional[float] = Field(default=None, ge=0.0, le=1.0)


# Funnel models
class StepRateRequest(CamelModel):
    step: Optional[Dict[str, Any]] = None
    config: Optional[Dict[str, Any]] = None
    factors: Optional[List[Dict[str, Any]]] = None


class PostClickRequest(CamelModel):
    step1_capture_result: Optional[Dict[str, Any]] = None
    step2_capture_result: Optional[Dict[str, Any]] = None
    audience_warmth: Literal["cold", "warm", "hot"] = "warm"
    step_config: Optional[Dict[str, Any]] = None
    custom_factors: Optional[List[Dict[str, Any]]] = None
    mode: Literal["multiplicative", "logit"] = "multiplicative"
    visitors: int = Field(default=1000, gt=0)
    step1_ctr: Optional[float] = Field(default=None, ge=0.0, le=100.0)


class PostClickMetrics(BaseModel):
    predicted_ctr: float
    predicted_clicks: int
    factor_impacts: List[Dict[str, Any]]
    total_factor_lift: float
    base_rate_contribution: float
    warmth_contribution: float
    final_rate: float
    confidence: float
    funnel: FunnelMetrics
    analysis_timestamp: str


class PostClickResponse(BaseModel):
    prediction: PostClickPrediction
    metrics: PostClickMetrics
    recommendations: List[FactorRecommendation]
