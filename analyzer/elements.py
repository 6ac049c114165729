"""
Element Module for CRO Signal Engine

A closed set of page element variants sharing common geometry, visibility and
text fields. Variants are immutable and built through make_element().
"""

import math
from typing import Any, Dict, Literal, Optional, Union
from typing_extensions import Annotated
from pydantic import BaseModel, ConfigDict, Field
from pydantic import ValidationError as PydanticValidationError

from .errors import DecodeError


class Geometry(BaseModel):
    model_config = ConfigDict(frozen=True)

    x: float
    y: float
    width: float
    height: float

    @property
    def area(self) -> float:
        return self.width * self.height

    @property
    def center(self) -> tuple:
        return (self.x + self.width / 2, self.y + self.height / 2)

    def is_valid(self) -> bool:
        finite = all(math.isfinite(v) for v in (self.x, self.y, self.width, self.height))
        return finite and self.width > 0 and self.height > 0


class ElementBase(BaseModel):
    """Fields shared by every element variant."""

    model_config = ConfigDict(frozen=True)

    id: str
    text: str
    tag_name: str
    class_name: str = ""
    geometry: Geometry
    is_visible: bool = True
    is_above_fold: bool = False
    is_interactive: bool = True
    distance_from_top: float = 0.0
    has_button_styling: bool = False

    # Stacking and noise hints
    z_index: Optional[int] = None
    is_sticky: bool = False
    is_autoplay: bool = False
    is_decorative: bool = False
    has_visual_noise: bool = False
    has_high_contrast: bool = False
    is_auto_rotating: bool = False

    @property
    def is_form_field(self) -> bool:
        return False


class Button(ElementBase):
    kind: Literal["button"] = "button"
    form_action: Optional[str] = None


class Link(ElementBase):
    kind: Literal["link"] = "link"
    href: Optional[str] = None


class NavigationLink(ElementBase):
    kind: Literal["navigation"] = "navigation"
    href: Optional[str] = None


class Form(ElementBase):
    kind: Literal["form"] = "form"
    input_count: int = 0
    has_submit: bool = False


class FormField(ElementBase):
    kind: Literal["form_field"] = "form_field"
    input_type: str = "text"
    name: str = ""
    required: bool = False
    placeholder: Optional[str] = None
    pattern: Optional[str] = None
    min_length: Optional[int] = None
    max_length: Optional[int] = None
    has_autocomplete: bool = False
    label: Optional[str] = None

    @property
    def is_form_field(self) -> bool:
        return True


class GenericClickable(ElementBase):
    kind: Literal["clickable"] = "clickable"


Element = Annotated[
    Union[Button, Link, NavigationLink, Form, FormField, GenericClickable],
    Field(discriminator="kind"),
]

ELEMENT_KINDS: Dict[str, type] = {
    "button": Button,
    "link": Link,
    "navigation": NavigationLink,
    "form": Form,
    "form_field": FormField,
    "clickable": GenericClickable,
}


def make_element(kind: str, **fields: Any) -> ElementBase:
    """
    Build an element variant by kind name.

    Raises:
        DecodeError: unknown kind or invalid field values
    """
    element_cls = ELEMENT_KINDS.get(kind)
    if element_cls is None:
        raise DecodeError(f"unknown element kind '{kind}'", field="kind")
    try:
        return element_cls(**fields)
    except PydanticValidationError as e:
        raise DecodeError(str(e), field=kind) from e


def element_href(element: ElementBase) -> Optional[str]:
    """Link target for Link/NavigationLink variants, None for the rest."""
    return getattr(element, "href", None)
