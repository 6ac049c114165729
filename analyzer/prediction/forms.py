"""
Form Analysis Module for CRO Signal Engine

Per-field completion rates, the bottleneck field and the industry-adjusted
form completion rate.
"""

from typing import List, Optional

from pydantic import BaseModel, Field

from config import settings
from ..context import PageContext
from ..elements import ElementBase, FormField
from . import constants as C
from .scoring import field_complexity


class FieldCompletion(BaseModel):
    field_id: str
    completion_rate: float
    dropoff_rate: float
    reasons: List[str] = Field(default_factory=list)


class FormBottleneckAnalysis(BaseModel):
    completion_rate: float
    bottleneck_field: Optional[str] = None
    field_breakdown: List[FieldCompletion] = Field(default_factory=list)
    above_fold_fields: int = 0
    below_fold_fields: int = 0


def label_clarity(element: FormField) -> float:
    clarity = 0.0
    if element.label:
        clarity += 0.5
    if element.placeholder:
        clarity += 0.3
    if element.label and 5 < len(element.label) < 20:
        clarity += 0.2
    return min(clarity, 1.0)


class FormAnalyzer:
    """Stateless form funnel math."""

    def field_completion(self, element: FormField) -> FieldCompletion:
        complexity = field_complexity(element)
        position = 0.9 if element.is_above_fold else 0.6
        clarity = label_clarity(element)
        completion_rate = max(
            0.1, 0.9 - complexity * 0.3 - (1 - position) * 0.2 - (1 - clarity) * 0.1
        )

        reasons = []
        if complexity > 0.6:
            reasons.append("High field complexity")
        if clarity < 0.4:
            reasons.append("Poor label clarity")
        if not element.is_above_fold:
            reasons.append("Below fold position")
        if element.required and not element.label:
            reasons.append("Required field without label")

        return FieldCompletion(
            field_id=element.id,
            completion_rate=completion_rate,
            dropoff_rate=1 - completion_rate,
            reasons=reasons,
        )

    def analyze(self, fields: List[FormField], context: PageContext) -> Optional[FormBottleneckAnalysis]:
        """
        Bottleneck analysis across all form fields.

        Returns None when the page has no form fields.
        """
        if not fields:
            return None

        breakdown = [self.field_completion(element) for element in fields]

        # Lowest completion rate; first one wins on ties
        bottleneck = breakdown[0]
        for entry in breakdown[1:]:
            if entry.completion_rate < bottleneck.completion_rate:
                bottleneck = entry

        cumulative = 1.0
        for entry in breakdown:
            cumulative *= entry.completion_rate
        if context.industry in C.INDUSTRY_MODIFIERS:
            cumulative *= C.INDUSTRY_MODIFIERS[context.industry]["form_completion_rate"]

        above = sum(1 for element in fields if element.is_above_fold)
        return FormBottleneckAnalysis(
            completion_rate=cumulative,
            bottleneck_field=bottleneck.field_id,
            field_breakdown=breakdown,
            above_fold_fields=above,
            below_fold_fields=len(fields) - above,
        )


def is_form_associated(element: ElementBase) -> bool:
    if element.is_form_field or element.kind == "form":
        return True
    return bool(getattr(element, "form_action", None))


def lead_count(clicks: float, completion_rate: float) -> int:
    return int(clicks * completion_rate + 0.5)


def form_fields_of(elements: List[ElementBase]) -> List[FormField]:
    return [element for element in elements if isinstance(element, FormField)][: settings.MAX_CLASSIFIED_FIELDS]

