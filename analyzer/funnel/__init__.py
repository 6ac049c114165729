# Funnel subpackage - post-click conversion model
from .capture_factors import (
    CaptureResult,
    analyze_factors_from_capture,
    create_step2_prediction,
    decode_capture,
)
from .metrics import FunnelMetrics, calculate_funnel_metrics
from .model import (
    DEFAULT_CONFIG,
    DEFAULT_FACTORS,
    DEFAULT_STEP,
    PostClickConfig,
    PostClickFactor,
    PostClickPrediction,
    PostClickStep,
    combine_factor_multipliers,
    factor_multiplier,
    predict_all_steps,
    predict_step_rate,
)
from .recommendations import FactorRecommendation, generate_factor_recommendations

__all__ = [
    "CaptureResult",
    "analyze_factors_from_capture",
    "create_step2_prediction",
    "decode_capture",
    "FunnelMetrics",
    "calculate_funnel_metrics",
    "DEFAULT_CONFIG",
    "DEFAULT_FACTORS",
    "DEFAULT_STEP",
    "PostClickConfig",
    "PostClickFactor",
    "PostClickPrediction",
    "PostClickStep",
    "combine_factor_multipliers",
    "factor_multiplier",
    "predict_all_steps",
    "predict_step_rate",
    "FactorRecommendation",
    "generate_factor_recommendations",
]
