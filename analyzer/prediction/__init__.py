# Prediction subpackage - click prediction model
from .cpc import CPCEstimator, ContextResolution, CPCEstimate
from .distribution import ClickPrediction, WasteBreakdown
from .engine import (
    ClickPredictionEngine,
    ClickPredictionReport,
    PredictionMetadata,
    predict_clicks,
    select_primary_cta,
)

__all__ = [
    "CPCEstimator",
    "ContextResolution",
    "CPCEstimate",
    "ClickPrediction",
    "WasteBreakdown",
    "ClickPredictionEngine",
    "ClickPredictionReport",
    "PredictionMetadata",
    "predict_clicks",
    "select_primary_cta",
]
