"""
Funnel Metrics Module for CRO Signal Engine

Visitor and conversion counts through a one- or two-step funnel. Rates are
decimals; CTR inputs are percentages as produced by click prediction.
"""

import math
from typing import Optional

from pydantic import BaseModel

DEFAULT_VISITORS = 1000


class FunnelMetrics(BaseModel):
    n1: int
    p1: float = 0.0
    n2: int = 0
    p2: float = 0.0
    p_total: float = 0.0
    n_conv: int = 0


def _round(value: float) -> int:
    return int(math.floor(value + 0.5))


def calculate_funnel_metrics(
    step1_ctr: Optional[float],
    step2_rate: Optional[float] = None,
    visitors: int = DEFAULT_VISITORS,
) -> FunnelMetrics:
    """
    Args:
        step1_ctr: step 1 primary CTA CTR in percent, None when step 1 is unknown
        step2_rate: step 2 conversion rate as a decimal, None for a single-step funnel
        visitors: initial visitors (n1)
    """
    if step1_ctr is None:
        return FunnelMetrics(n1=visitors)

    p1 = step1_ctr / 100
    if step2_rate is None:
        # Single step: every visitor sees the CTA and the step rate is the total rate
        return FunnelMetrics(
            n1=visitors, p1=p1, n2=visitors, p2=p1, p_total=p1, n_conv=_round(visitors * p1)
        )

    n2 = _round(visitors * p1)
    return FunnelMetrics(
        n1=visitors,
        p1=p1,
        n2=n2,
        p2=step2_rate,
        p_total=p1 * step2_rate,
        n_conv=_round(n2 * step2_rate),
    )
