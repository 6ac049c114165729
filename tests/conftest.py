import pytest

from analyzer.elements import Geometry, make_element


def element(kind, element_id, text, x, y, width=200, height=50, **fields):
    """Build an element variant with sensible defaults for tests."""
    tag_name = {"link": "a", "navigation": "a", "form_field": "input"}.get(kind, kind)
    return make_element(
        kind,
        id=element_id,
        text=text,
        tag_name=fields.pop("tag_name", tag_name),
        geometry=Geometry(x=x, y=y, width=width, height=height),
        distance_from_top=y,
        is_above_fold=fields.pop("is_above_fold", y < 800),
        **fields,
    )


@pytest.fixture
def landing_page():
    """Raw capture of a small SaaS landing page."""
    return {
        "title": "Acme analytics software",
        "buttons": [
            {"coordinates": {"x": 100, "y": 300, "width": 240, "height": 60}, "text": "Start free trial"},
            {"coordinates": {"x": 900, "y": 20, "width": 120, "height": 40}, "text": "Log in"},
        ],
        "links": [
            {
                "coordinates": {"x": 100, "y": 380, "width": 120, "height": 30},
                "text": "Follow us",
                "href": "https://facebook.com/acme",
            },
            {
                "coordinates": {"x": 300, "y": 1500, "width": 80, "height": 20},
                "text": "Privacy policy",
                "href": "/privacy",
            },
        ],
        "navigation": [
            {"coordinates": {"x": 20, "y": 20, "width": 80, "height": 30}, "text": "Pricing", "href": "/pricing"},
            {"coordinates": {"x": 120, "y": 20, "width": 80, "height": 30}, "text": "Blog", "href": "/blog"},
        ],
        "formFields": [
            {
                "coordinates": {"x": 100, "y": 200, "width": 240, "height": 40},
                "name": "email",
                "type": "email",
                "placeholder": "Work email",
            },
        ],
    }


@pytest.fixture
def primary_button():
    return element("button", "button-100-300", "Start free trial", 100, 300, 240, 60, has_button_styling=True)


@pytest.fixture
def build_element():
    return element
