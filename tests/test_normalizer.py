"""Tests for raw capture normalization and form field deduplication."""

import pytest

from analyzer.errors import DecodeError
from analyzer.normalizer import ElementNormalizer, deduplicate_form_fields, normalize_elements


def box(x, y, width=200, height=50):
    return {"x": x, "y": y, "width": width, "height": height}


# ---------------------------------------------------------------------------
# Form field deduplication
# ---------------------------------------------------------------------------

class TestDeduplicateFormFields:
    def test_nearby_duplicates_collapse(self):
        fields = [
            {"name": "email", "type": "email", "coordinates": box(100, 200)},
            {"name": "email", "type": "email", "coordinates": box(104, 203)},
        ]
        unique = deduplicate_form_fields(fields)
        assert len(unique) == 1
        assert unique[0]["coordinates"]["x"] == 100

    def test_second_pass_is_a_no_op(self):
        fields = [
            {"name": "email", "type": "email", "coordinates": box(100, 200)},
            {"name": "email", "type": "email", "coordinates": box(104, 203)},
            {"name": "phone", "type": "tel", "coordinates": box(100, 300)},
            {"type": "text", "coordinates": box(100, 400)},
            {"type": "text", "coordinates": box(100, 600)},
        ]
        once = deduplicate_form_fields(fields)
        assert deduplicate_form_fields(once) == once
        assert len(once) == 4

    def test_same_name_different_type_kept(self):
        fields = [
            {"name": "contact", "type": "email", "coordinates": box(100, 200)},
            {"name": "contact", "type": "tel", "coordinates": box(100, 200)},
        ]
        assert len(deduplicate_form_fields(fields)) == 2

    def test_named_field_repeated_far_away_dropped(self):
        fields = [
            {"name": "email", "type": "email", "coordinates": box(100, 200)},
            {"name": "Email", "type": "email", "coordinates": box(100, 1200)},
        ]
        assert len(deduplicate_form_fields(fields)) == 1


# ---------------------------------------------------------------------------
# Normalization
# ---------------------------------------------------------------------------

class TestNormalize:
    def test_landing_page_elements(self, landing_page):
        result = normalize_elements(landing_page)
        ids = [e.id for e in result.elements]
        assert ids == [
            "button-100-300",
            "button-900-20",
            "link-100-380",
            "link-300-1500",
            "nav-20-20",
            "nav-120-20",
            "field-100-200-email",
        ]
        assert result.skipped == []

    def test_variant_kinds_and_fields(self, landing_page):
        elements = {e.id: e for e in normalize_elements(landing_page).elements}
        assert elements["button-100-300"].kind == "button"
        assert elements["button-100-300"].has_button_styling is True
        assert elements["link-100-380"].href == "https://facebook.com/acme"
        assert elements["nav-20-20"].kind == "navigation"
        field = elements["field-100-200-email"]
        assert field.is_form_field
        assert field.text == "Email Field"
        assert field.input_type == "email"

    def test_fold_line(self, landing_page):
        elements = {e.id: e for e in ElementNormalizer(fold_line=1000).normalize(landing_page).elements}
        assert elements["button-100-300"].is_above_fold is True
        assert elements["link-300-1500"].is_above_fold is False

    def test_explicit_fold_flag_wins(self):
        data = {"buttons": [{"coordinates": box(10, 10), "text": "Go", "isAboveFold": False}]}
        assert normalize_elements(data).elements[0].is_above_fold is False

    def test_ids_round_half_up(self):
        data = {"buttons": [{"coordinates": box(100.5, 20.49), "text": "Go"}]}
        assert normalize_elements(data).elements[0].id == "button-101-20"

    def test_duplicate_ids_get_suffixes(self):
        data = {"buttons": [
            {"coordinates": box(10, 10), "text": "One"},
            {"coordinates": box(10, 10), "text": "Two"},
            {"coordinates": box(10, 10), "text": "Three"},
        ]}
        ids = [e.id for e in normalize_elements(data).elements]
        assert ids == ["button-10-10", "button-10-10-2", "button-10-10-3"]

    def test_form_text_defaults_to_submit(self):
        data = {"forms": [
            {"coordinates": box(0, 0), "inputs": [{}, {}]},
            {"coordinates": box(0, 100), "submitButtonText": "Send", "hasSubmitButton": True},
        ]}
        first, second = normalize_elements(data).elements
        assert first.text == "Submit"
        assert first.input_count == 2
        assert second.text == "Send"
        assert second.has_button_styling is True

    def test_payload_can_be_json_text(self):
        text = '{"buttons": [{"coordinates": {"x": 1, "y": 2, "width": 3, "height": 4}, "text": "Go",}]}'
        assert normalize_elements(text).elements[0].id == "button-1-2"


class TestTextFallback:
    def test_text_content_then_placeholder(self):
        data = {"buttons": [
            {"coordinates": box(0, 0), "textContent": "  Buy now  "},
            {"coordinates": box(0, 100), "placeholder": "Search"},
        ]}
        texts = [e.text for e in normalize_elements(data).elements]
        assert texts == ["Buy now", "Search"]

    def test_href_segment(self):
        data = {"links": [{"coordinates": box(0, 0), "href": "https://example.com/pricing/"}]}
        assert normalize_elements(data).elements[0].text == "pricing"

    def test_generic_clickable_label(self):
        data = {"clickables": [{"coordinates": box(0, 0), "tagName": "DIV"}]}
        element = normalize_elements(data).elements[0]
        assert element.text == "clickable element"
        assert element.tag_name == "div"

    def test_field_label_from_placeholder(self):
        data = {"formFields": [{"coordinates": box(0, 0), "type": "tel", "placeholder": "Your phone number"}]}
        assert normalize_elements(data).elements[0].text == "Phone Field"

    @pytest.mark.parametrize("name,label", [
        ("job_title", "Job Title Field"),
        ("jobtitle", "Job Title Field"),
        ("page_title", "page_title"),
        ("subtitle", "subtitle"),
    ])
    def test_job_title_label(self, name, label):
        data = {"formFields": [{"coordinates": box(0, 0), "name": name}]}
        assert normalize_elements(data).elements[0].text == label


class TestSkipped:
    def test_skip_reasons(self):
        data = {
            "buttons": [
                {"coordinates": box(0, 0, 0, 50), "text": "Zero width"},
                {"coordinates": box(0, 100), "text": "Hidden", "isVisible": False},
            ],
            "links": [{"coordinates": box(0, 200)}],
            "formFields": [{"coordinates": box(0, 300), "type": "hidden", "name": "token"}],
        }
        result = normalize_elements(data)
        assert result.elements == []
        reasons = [(s.source, s.index, s.reason) for s in result.skipped]
        assert reasons == [
            ("buttons", 0, "invalid-geometry"),
            ("buttons", 1, "not-visible"),
            ("links", 0, "no-visible-text"),
            ("formFields", 0, "hidden-field"),
        ]

    def test_malformed_record_is_skipped(self):
        data = {"buttons": [{"text": "No coordinates"}, {"coordinates": box(0, 0), "text": "Ok"}]}
        result = normalize_elements(data)
        assert [e.text for e in result.elements] == ["Ok"]
        assert result.skipped[0].reason.startswith("buttons.coordinates")

    @pytest.mark.parametrize("bad", [float("nan"), float("inf"), float("-inf")])
    def test_non_finite_coordinates_are_skipped(self, bad):
        data = {
            "buttons": [
                {"coordinates": box(bad, 0), "text": "Broken"},
                {"coordinates": box(0, 100), "text": "Ok"},
            ],
            "formFields": [{"coordinates": {**box(0, 200), "width": bad}, "name": "email", "type": "email"}],
        }
        result = normalize_elements(data)
        assert [e.text for e in result.elements] == ["Ok"]
        assert [(s.source, s.index) for s in result.skipped] == [("buttons", 0), ("formFields", 0)]
        assert result.skipped[0].reason.startswith("buttons.coordinates.x")

    def test_invalid_field_does_not_shadow_valid_duplicate(self):
        data = {"formFields": [
            {"coordinates": box(100, 200, 0, 40), "name": "email", "type": "email"},
            {"coordinates": box(104, 203), "name": "email", "type": "email"},
        ]}
        result = normalize_elements(data)
        assert [e.id for e in result.elements] == ["field-104-203-email"]
        assert [(s.index, s.reason) for s in result.skipped] == [(0, "invalid-geometry")]

    def test_malformed_field_does_not_shadow_valid_duplicate(self):
        data = {"formFields": [
            {"coordinates": {"x": 100, "y": 200}, "name": "email", "type": "email"},
            {"coordinates": box(104, 203), "name": "email", "type": "email"},
        ]}
        result = normalize_elements(data)
        assert len(result.elements) == 1
        assert result.skipped[0].index == 0

    def test_non_list_source_fails(self):
        with pytest.raises(DecodeError) as exc_info:
            normalize_elements({"buttons": {"text": "Go"}})
        assert exc_info.value.field == "buttons"
