"""
Centralized configuration for CRO Signal Engine
All model tunables and service settings are defined here
"""

from typing import Dict, Tuple
from pydantic_settings import BaseSettings
from pydantic import Field, model_validator


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.
    Provides centralized configuration with validation and defaults.
    """

    # ======================
    # Click Prediction Configuration
    # ======================
    DEFAULT_TOTAL_IMPRESSIONS: int = Field(
        default=1000,
        description="Impressions assumed when the context does not supply them"
    )
    DEFAULT_FOLD_LINE: int = Field(
        default=800,
        description="Fold line offset in pixels"
    )
    DEDUP_GRID_PX: int = Field(
        default=50,
        description="Grid size used to merge near-identical form fields"
    )
    MAX_ANALYZED_ELEMENTS: int = Field(
        default=100,
        description="Max elements scored per analysis"
    )
    MAX_CLASSIFIED_FIELDS: int = Field(
        default=20,
        description="Max form fields classified per analysis"
    )
    MIN_CPC: float = Field(
        default=2.93,
        description="Floor for estimated cost-per-click (USD)"
    )

    # ======================
    # Post-Click Funnel Configuration
    # ======================
    WARMTH_MULTIPLIER_COLD: float = Field(default=1.0, description="Cold audience multiplier")
    WARMTH_MULTIPLIER_WARM: float = Field(default=2.5, description="Warm audience multiplier")
    WARMTH_MULTIPLIER_HOT: float = Field(default=3.5, description="Hot audience multiplier")
    LOGIT_EPSILON: float = Field(
        default=1e-6,
        description="Rates are clamped to (eps, 1 - eps) before the log-odds transform"
    )

    # ======================
    # Wasted-Click Configuration
    # ======================
    WASTE_WEIGHT_PROMINENCE: float = Field(default=0.30, description="Competing prominence weight")
    WASTE_WEIGHT_PROXIMITY: float = Field(default=0.20, description="Proximity to primary CTA weight")
    WASTE_WEIGHT_INTENT_OVERLAP: float = Field(default=0.20, description="Text/intent overlap weight")
    WASTE_WEIGHT_NOISE: float = Field(default=0.15, description="Noise flag weight")
    WASTE_WEIGHT_ATTENTION: float = Field(default=0.15, description="Predicted click share weight")
    WASTE_PROXIMITY_RADIUS_PX: float = Field(
        default=400.0,
        description="Distance at which proximity to the primary CTA stops contributing"
    )
    WASTE_LOW_RISK_THRESHOLD: float = Field(
        default=0.15,
        description="Scores above this count as wasted elements"
    )
    WASTE_HIGH_RISK_THRESHOLD: float = Field(
        default=0.30,
        description="Scores above this are high-risk elements"
    )

    # ======================
    # Logging Configuration
    # ======================
    LOG_LEVEL: str = Field(
        default="INFO",
        description="Logging level"
    )

    @model_validator(mode="after")
    def check_ordering(self) -> "Settings":
        if not (self.WARMTH_MULTIPLIER_COLD <= self.WARMTH_MULTIPLIER_WARM < self.WARMTH_MULTIPLIER_HOT):
            raise ValueError("warmth multipliers must satisfy cold <= warm < hot")
        if self.WASTE_HIGH_RISK_THRESHOLD < self.WASTE_LOW_RISK_THRESHOLD:
            raise ValueError("WASTE_HIGH_RISK_THRESHOLD must be >= WASTE_LOW_RISK_THRESHOLD")
        return self

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = True
        extra = "ignore"  # Allow extra env vars in .env file


# Global settings instance
settings = Settings()


# ======================
# Convenience Functions
# ======================

def get_warmth_multipliers() -> Dict[str, float]:
    """Get audience warmth multipliers keyed by tier"""
    return {
        "cold": settings.WARMTH_MULTIPLIER_COLD,
        "warm": settings.WARMTH_MULTIPLIER_WARM,
        "hot": settings.WARMTH_MULTIPLIER_HOT,
    }


def get_waste_weights() -> Dict[str, float]:
    """Get wasted-click component weights"""
    return {
        "prominence": settings.WASTE_WEIGHT_PROMINENCE,
        "proximity": settings.WASTE_WEIGHT_PROXIMITY,
        "intent_overlap": settings.WASTE_WEIGHT_INTENT_OVERLAP,
        "noise": settings.WASTE_WEIGHT_NOISE,
        "attention": settings.WASTE_WEIGHT_ATTENTION,
    }


def get_waste_thresholds() -> Tuple[float, float]:
    """Get (low-risk, high-risk) waste score thresholds"""
    return settings.WASTE_LOW_RISK_THRESHOLD, settings.WASTE_HIGH_RISK_THRESHOLD


def get_log_level() -> str:
    """Get logging level name"""
    return settings.LOG_LEVEL
