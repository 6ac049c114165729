"""
Traffic Module for CRO Signal Engine

Page-level priors: bounce rate, engaged clicks and traffic/device/industry
modifiers applied to element scores.
"""

from typing import Dict, Optional

from ..context import PageContext
from . import constants as C


class TrafficAnalyzer:
    """Stateless traffic priors."""

    def calculate_bounce_rate(
        self, traffic_source: str, device_type: str, load_time: float, ad_message_match: float
    ) -> float:
        bounce_rate = C.BASE_BOUNCE_RATES.get(traffic_source, C.DEFAULT_BOUNCE_RATE)
        bounce_rate *= C.DEVICE_MODIFIERS.get(device_type, 1.0)
        if load_time > 3.0:
            bounce_rate *= 1 + (load_time - 3.0) * 0.1
        bounce_rate *= 1 - ad_message_match * 0.2
        return min(max(bounce_rate, 0.1), 0.9)

    def bounce_rate_for(self, context: PageContext) -> float:
        return self.calculate_bounce_rate(
            context.traffic_source, context.device_type, context.load_time, context.ad_message_match
        )

    def calculate_total_clicks(self, context: PageContext) -> float:
        """Engaged visitors times average clicks per engaged visitor."""
        engagement_rate = 1 - self.bounce_rate_for(context)
        return context.total_impressions * engagement_rate * C.AVG_CLICKS_PER_ENGAGED_USER

    def traffic_source_modifier(self, traffic_source: str) -> float:
        return C.TRAFFIC_SOURCE_MODIFIERS.get(traffic_source, C.TRAFFIC_SOURCE_MODIFIERS["unknown"])

    def device_modifier(self, device_type: str) -> float:
        return C.DEVICE_MODIFIERS.get(device_type, 1.0)

    def industry_modifier(self, industry: Optional[str], key: str) -> float:
        if not industry or industry not in C.INDUSTRY_MODIFIERS:
            return 1.0
        return C.INDUSTRY_MODIFIERS[industry][key]

    def apply_traffic_adjustments(self, score: float, context: PageContext, is_cta: bool) -> float:
        """
        Scale an element score by traffic priors.

        The industry CTA click rate only applies to call-to-action elements, so
        industries with strong CTA response shift share toward them.
        """
        adjusted = score * self.traffic_source_modifier(context.traffic_source)
        adjusted *= self.device_modifier(context.device_type)
        if is_cta:
            adjusted *= self.industry_modifier(context.industry, "cta_click_rate")
        return adjusted

    def summary(self, context: PageContext) -> Dict[str, float]:
        bounce_rate = self.bounce_rate_for(context)
        return {
            "traffic_source_modifier": self.traffic_source_modifier(context.traffic_source),
            "device_modifier": self.device_modifier(context.device_type),
            "bounce_rate": bounce_rate,
            "engagement_rate": 1 - bounce_rate,
            "total_clicks": self.calculate_total_clicks(context),
        }
