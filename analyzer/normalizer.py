"""
Element Normalizer Module for CRO Signal Engine

Turns heterogeneous raw capture records (buttons, links, forms, form fields,
navigation, generic clickables) into the uniform Element variant set.
Pure transform: malformed records are skipped and reported, never fatal.
"""

import logging
import math
from typing import Any, Dict, List, Optional, Tuple
from urllib.parse import urlparse

from pydantic import BaseModel, ConfigDict, Field
from pydantic import ValidationError as PydanticValidationError
from pydantic.alias_generators import to_camel

from config import settings
from utils.parsing.json import Payload, load_payload
from .elements import ElementBase, Element, Geometry, make_element
from .errors import DecodeError

logger = logging.getLogger(__name__)


# ======================
# Raw capture records
# ======================

class RawCoordinates(BaseModel):
    model_config = ConfigDict(allow_inf_nan=False)

    x: float
    y: float
    width: float
    height: float


class RawElementRecord(BaseModel):
    """One element as emitted by the page capture (camelCase keys)."""

    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, extra="ignore"
    )

    coordinates: RawCoordinates
    text: Optional[str] = None
    text_content: Optional[str] = None
    tag_name: Optional[str] = None
    class_name: str = ""
    href: Optional[str] = None
    form_action: Optional[str] = None
    is_visible: Optional[bool] = None
    is_above_fold: Optional[bool] = None
    is_interactive: Optional[bool] = None
    has_button_styling: Optional[bool] = None

    z_index: Optional[int] = None
    is_sticky: bool = False
    autoplay: bool = False
    is_decorative: bool = False
    has_visual_noise: bool = False
    has_high_contrast: bool = False
    is_auto_rotating: bool = False

    # Forms
    inputs: List[Any] = Field(default_factory=list)
    input_count: Optional[int] = None
    has_submit_button: bool = False
    submit_button_text: Optional[str] = None

    # Form fields
    input_type: Optional[str] = Field(default=None, alias="type")
    name: Optional[str] = None
    placeholder: Optional[str] = None
    required: bool = False
    pattern: Optional[str] = None
    min_length: Optional[int] = None
    max_length: Optional[int] = None
    autocomplete: Optional[str] = None
    label: Optional[str] = None
    attributes: Dict[str, Any] = Field(default_factory=dict)


class SkippedRecord(BaseModel):
    source: str
    index: int
    reason: str


class NormalizationResult(BaseModel):
    elements: List[Element] = Field(default_factory=list)
    skipped: List[SkippedRecord] = Field(default_factory=list)


# ======================
# Helpers
# ======================

def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def snap_to_grid(value: float, grid: int) -> int:
    return round_half_up(value / grid) * grid


def _field_name(record: Dict[str, Any]) -> str:
    attributes = record.get("attributes") or {}
    name = record.get("name") or attributes.get("name") or attributes.get("id") or ""
    return str(name).strip().lower()


def _coordinate(record: Dict[str, Any], axis: str) -> Optional[float]:
    coordinates = record.get("coordinates") or {}
    try:
        value = float(coordinates.get(axis))
    except (TypeError, ValueError):
        return None
    return value if math.isfinite(value) else None


def deduplicate_form_fields(
    fields: List[Dict[str, Any]], grid: Optional[int] = None
) -> List[Dict[str, Any]]:
    """
    Drop form fields that repeat an already-seen logical field.

    Two keys are tracked: (name, type, x, y snapped to the grid) and, for
    named fields, (name, type) alone. A field matching either is dropped.
    Every kept named field has a distinct (name, type), and every kept
    unnamed field a distinct grid cell, so a second pass keeps everything.
    """
    grid = grid or settings.DEDUP_GRID_PX
    seen_positions = set()
    seen_names = set()
    unique_fields = []

    for field in fields:
        if not isinstance(field, dict):
            unique_fields.append(field)
            continue

        name = _field_name(field)
        field_type = str(field.get("type") or "text").lower()
        x = _coordinate(field, "x")
        y = _coordinate(field, "y")

        position_key = None
        if x is not None and y is not None:
            position_key = (name, field_type, snap_to_grid(x, grid), snap_to_grid(y, grid))
        name_key = (name, field_type) if name else None

        if position_key in seen_positions or (name_key and name_key in seen_names):
            logger.debug(f"Dropping duplicate form field '{name}' ({field_type})")
            continue

        if position_key is not None:
            seen_positions.add(position_key)
        if name_key:
            seen_names.add(name_key)
        unique_fields.append(field)

    return unique_fields


def _href_segment(href: Optional[str]) -> Optional[str]:
    if not href:
        return None
    path = urlparse(href).path.rstrip("/")
    segment = path.split("/")[-1] if path else ""
    return segment or None


def resolve_text(record: RawElementRecord, kind_label: str) -> Tuple[str, bool]:
    """
    Resolve display text through the fallback chain.

    Returns (text, found) where found is False when only the generic
    "<type> element" label was available.
    """
    for candidate in (record.text, record.text_content, record.placeholder, record.name):
        if candidate and candidate.strip():
            return candidate.strip(), True

    segment = _href_segment(record.href)
    if segment:
        return segment, True

    return f"{kind_label} element", False


class ElementNormalizer:
    """
    Canonicalizes raw capture records into Element variants.

    Holds only immutable configuration; safe to share between threads.
    """

    FIELD_LABEL_PATTERNS = [
        (("first", "fname"), "First Name Field"),
        (("last", "lname"), "Last Name Field"),
        (("email",), "Email Field"),
        (("phone", "tel"), "Phone Field"),
        (("company", "organization"), "Company Field"),
        (("country",), "Country Field"),
        (("message", "description"), "Message Field"),
        (("job",), "Job Title Field"),
        (("privacy", "optin"), "Privacy Consent"),
    ]

    STICKY_CLASS_HINTS = ["sticky", "fixed"]
    ROTATING_CLASS_HINTS = ["carousel", "slider", "swiper", "rotat"]
    NOISE_CLASS_HINTS = ["animate", "blink", "flash", "pulse", "shake"]
    DECORATIVE_CLASS_HINTS = ["decor", "ornament"]
    BUTTON_CLASS_HINTS = ["btn", "button", "cta"]

    # capture key -> (element kind, id prefix)
    SOURCES = [
        ("buttons", "button", "button"),
        ("links", "link", "link"),
        ("navigation", "navigation", "nav"),
        ("forms", "form", "form"),
        ("formFields", "form_field", "field"),
        ("clickables", "clickable", "clickable"),
    ]

    def __init__(self, fold_line: Optional[int] = None, grid: Optional[int] = None):
        self.fold_line = fold_line if fold_line is not None else settings.DEFAULT_FOLD_LINE
        self.grid = grid or settings.DEDUP_GRID_PX

    def normalize(self, dom_data: Payload) -> NormalizationResult:
        """
        Normalize a capture payload.

        Raises:
            DecodeError: the payload itself is not an object
        """
        data = load_payload(dom_data)
        result = NormalizationResult()
        used_ids = set()

        for source, kind, prefix in self.SOURCES:
            records = data.get(source)
            if records is None and source == "formFields":
                records = data.get("form_fields")
            if not records:
                continue
            if not isinstance(records, list):
                raise DecodeError(f"expected a list, got {type(records).__name__}", field=source)

            decoded = []
            for index, raw in enumerate(records):
                try:
                    record = self._decode_record(raw, source)
                except DecodeError as e:
                    logger.warning(f"⚠️ Skipping malformed {source}[{index}]: {e}")
                    result.skipped.append(SkippedRecord(source=source, index=index, reason=str(e)))
                    continue
                decoded.append((index, raw, record))

            if kind == "form_field":
                decoded = self._unique_fields(decoded, source, result)

            for index, _, record in decoded:
                element, reason = self._build(kind, prefix, record, used_ids)
                if element is None:
                    logger.debug(f"Skipping {source}[{index}]: {reason}")
                    result.skipped.append(SkippedRecord(source=source, index=index, reason=reason))
                    continue
                result.elements.append(element)

        logger.info(
            f"✅ Normalized {len(result.elements)} elements "
            f"({len(result.skipped)} skipped)"
        )
        return result

    def _decode_record(self, raw: Any, source: str) -> RawElementRecord:
        if not isinstance(raw, dict):
            raise DecodeError("record must be an object", field=source)
        try:
            return RawElementRecord.model_validate(raw)
        except PydanticValidationError as e:
            first = e.errors()[0]
            location = ".".join(str(part) for part in first["loc"])
            raise DecodeError(first["msg"], field=f"{source}.{location}") from e

    def _unique_fields(
        self,
        decoded: List[Tuple[int, Dict[str, Any], RawElementRecord]],
        source: str,
        result: NormalizationResult,
    ) -> List[Tuple[int, Dict[str, Any], RawElementRecord]]:
        """Deduplicate form fields; invalid geometry never claims a dedup key."""
        valid = []
        for index, raw, record in decoded:
            if not _geometry(record).is_valid():
                logger.debug(f"Skipping {source}[{index}]: invalid-geometry")
                result.skipped.append(SkippedRecord(source=source, index=index, reason="invalid-geometry"))
                continue
            valid.append((index, raw, record))

        # deduplicate_form_fields returns an ordered subsequence of its input
        kept = deduplicate_form_fields([raw for _, raw, _ in valid], self.grid)
        unique = []
        for entry in valid:
            if len(unique) < len(kept) and entry[1] is kept[len(unique)]:
                unique.append(entry)
        return unique

    def _build(
        self, kind: str, prefix: str, record: RawElementRecord, used_ids: set
    ) -> Tuple[Optional[ElementBase], str]:
        coords = record.coordinates
        geometry = _geometry(record)
        if not geometry.is_valid():
            return None, "invalid-geometry"

        input_type = (record.input_type or "text").lower()
        if kind == "form_field" and input_type == "hidden":
            return None, "hidden-field"

        is_visible = record.is_visible if record.is_visible is not None else True
        if kind in ("button", "link", "navigation", "clickable") and not is_visible:
            return None, "not-visible"

        if kind == "form_field":
            text = self.field_label(record, input_type)
        elif kind == "form":
            text = (record.submit_button_text or "").strip() or "Submit"
        else:
            text, found = resolve_text(record, kind)
            if not found and kind != "clickable":
                return None, "no-visible-text"

        base_id = f"{prefix}-{round_half_up(coords.x)}-{round_half_up(coords.y)}"
        if kind == "form_field":
            base_id = f"{base_id}-{input_type}"
        element_id = self._unique_id(base_id, used_ids)

        class_name = record.class_name or ""
        lowered = class_name.lower()
        fields: Dict[str, Any] = {
            "id": element_id,
            "text": text,
            "tag_name": self._tag_name(kind, record, input_type),
            "class_name": class_name,
            "geometry": geometry,
            "is_visible": is_visible,
            "is_above_fold": (
                record.is_above_fold
                if record.is_above_fold is not None
                else coords.y < self.fold_line
            ),
            "is_interactive": record.is_interactive if record.is_interactive is not None else True,
            "distance_from_top": coords.y,
            "has_button_styling": self._button_styling(kind, record, lowered),
            "z_index": record.z_index,
            "is_sticky": record.is_sticky or _has_hint(lowered, self.STICKY_CLASS_HINTS),
            "is_autoplay": record.autoplay,
            "is_decorative": record.is_decorative or _has_hint(lowered, self.DECORATIVE_CLASS_HINTS),
            "has_visual_noise": record.has_visual_noise or _has_hint(lowered, self.NOISE_CLASS_HINTS),
            "has_high_contrast": record.has_high_contrast,
            "is_auto_rotating": record.is_auto_rotating or _has_hint(lowered, self.ROTATING_CLASS_HINTS),
        }

        if kind == "button":
            fields["form_action"] = record.form_action
        elif kind in ("link", "navigation"):
            fields["href"] = record.href
        elif kind == "form":
            fields["input_count"] = (
                record.input_count if record.input_count is not None else len(record.inputs)
            )
            fields["has_submit"] = record.has_submit_button
        elif kind == "form_field":
            attributes = record.attributes or {}
            fields.update(
                input_type=input_type,
                name=record.name or attributes.get("name") or attributes.get("id") or "",
                required=record.required,
                placeholder=record.placeholder,
                pattern=record.pattern,
                min_length=record.min_length,
                max_length=record.max_length,
                has_autocomplete=bool(record.autocomplete) and record.autocomplete != "off",
                label=record.label,
            )

        return make_element(kind, **fields), ""

    def field_label(self, record: RawElementRecord, input_type: str) -> str:
        """Human-readable label for a form field from its name and placeholder."""
        attributes = record.attributes or {}
        name = (record.name or attributes.get("name") or "").lower()
        placeholder = record.placeholder or ""

        label = (
            (record.label or "").strip()
            or placeholder
            or record.name
            or attributes.get("id")
            or f"{input_type} field"
        )

        matched = self._match_label(name)
        if matched:
            label = matched
        if placeholder and "Field" not in label:
            matched = self._match_label(placeholder.lower())
            if matched:
                label = matched
        return label

    def _match_label(self, value: str) -> Optional[str]:
        if not value:
            return None
        for needles, label in self.FIELD_LABEL_PATTERNS:
            if any(needle in value for needle in needles):
                return label
        return None

    def _tag_name(self, kind: str, record: RawElementRecord, input_type: str) -> str:
        if kind == "form_field":
            if input_type in ("textarea", "select"):
                return input_type
            return "input"
        if kind in ("link", "navigation"):
            return "a"
        if kind in ("button", "form"):
            return kind
        return (record.tag_name or "div").lower()

    def _button_styling(self, kind: str, record: RawElementRecord, class_name: str) -> bool:
        if kind == "button":
            return True
        if kind == "form":
            return record.has_submit_button
        if record.has_button_styling is not None:
            return record.has_button_styling
        return _has_hint(class_name, self.BUTTON_CLASS_HINTS)

    @staticmethod
    def _unique_id(base_id: str, used_ids: set) -> str:
        element_id = base_id
        suffix = 2
        while element_id in used_ids:
            element_id = f"{base_id}-{suffix}"
            suffix += 1
        used_ids.add(element_id)
        return element_id


def _geometry(record: RawElementRecord) -> Geometry:
    coords = record.coordinates
    return Geometry(x=coords.x, y=coords.y, width=coords.width, height=coords.height)


def _has_hint(class_name: str, hints: List[str]) -> bool:
    return any(hint in class_name for hint in hints)


def normalize_elements(dom_data: Payload, fold_line: Optional[int] = None) -> NormalizationResult:
    """Normalize a capture payload with a fresh ElementNormalizer."""
    return ElementNormalizer(fold_line=fold_line).normalize(dom_data)
