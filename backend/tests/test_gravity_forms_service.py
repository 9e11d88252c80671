"""
Tests for the Gravity Forms adapter: request signing, field mapping and
response interpretation.
"""

import base64
import hashlib
import hmac
from datetime import date
from urllib.parse import parse_qs, unquote, urlsplit

import pytest

from conftest import failing_transport, json_transport, request_json
from leadwidget.services.gravity_forms_service import (
    GravityFormsError,
    GravityFormsService,
    normalize_move_size,
)


BASE_URL = "https://forms.example.com/gravityformsapi"
FIXED_NOW = 1_700_000_000


def make_service(transport=None, **overrides):
    options = {
        "base_url": BASE_URL,
        "public_key": "pub-key",
        "private_key": "priv-key",
        "form_id": "3",
        "source_url": "https://leads.example.com",
        "transport": transport,
        "clock": lambda: FIXED_NOW,
    }
    options.update(overrides)
    return GravityFormsService(**options)


class TestSignature:
    """Expiring HMAC-SHA1 URL signatures"""

    def test_signed_url_layout(self):
        auth = make_service().build_authenticated_url("/forms/3/submissions", "POST")
        assert auth["expires"] == FIXED_NOW + 3600

        parts = urlsplit(auth["url"])
        assert f"{parts.scheme}://{parts.netloc}{parts.path}" == f"{BASE_URL}/forms/3/submissions"
        query = parse_qs(parts.query)
        assert query["api_key"] == ["pub-key"]
        assert query["expires"] == [str(FIXED_NOW + 3600)]

    def test_signature_matches_hmac_of_canonical_string(self):
        auth = make_service().build_authenticated_url("/forms/3/submissions", "POST")
        expires = FIXED_NOW + 3600
        canonical = f"pub-key:POST:{BASE_URL}/forms/3/submissions:{expires}"
        expected = base64.b64encode(
            hmac.new(b"priv-key", canonical.encode(), hashlib.sha1).digest()
        ).decode()

        raw_signature = auth["url"].split("signature=")[1].split("&")[0]
        assert unquote(raw_signature) == expected
        # base64 padding and '+' / '/' are percent-encoded
        assert "=" not in raw_signature and "/" not in raw_signature and "+" not in raw_signature

    def test_method_is_part_of_signature(self):
        service = make_service()
        assert service.sign("GET", "u", 1) != service.sign("POST", "u", 1)


class TestFieldMapping:
    """Captured answers mapped onto form inputs"""

    def test_full_mapping(self):
        mapped = make_service().map_form_data({
            "widget_key": "k",
            "data": {
                "contact-name": "Jane Doe",
                "contact-email": "  jane@example.com ",
                "contact-phone": "(404) 555-0100",
                "origin-location": "123 Main St, Atlanta, GA 30301",
                "target-location": "9 Elm St, Decatur, GA 30030",
                "date-selection": "2025-09-15",
                "project-scope": "2 bedroom apartment",
            },
        })
        values = mapped["input_values"]
        assert mapped["source_url"] == "https://leads.example.com"
        assert values["input_1"] == "Jane Doe"
        assert values["input_1.3"] == "Jane"
        assert values["input_1.6"] == "Doe"
        assert values["input_3"] == "jane@example.com"
        assert values["input_4"] == "4045550100"
        assert values["input_8"] == "30301"
        assert values["input_9"] == "30030"
        assert values["input_5"] == "09/15/2025"
        assert values["input_6"] == "2 Bedroom House"

    def test_numeric_aliases(self):
        values = make_service().map_form_data({"data": {"name": "Jo"}})["input_values"]
        assert values["1"] == "Jo"
        assert values["1.3"] == "Jo"
        assert values["1.6"] == "Customer"

    def test_blank_fields_dropped(self):
        values = make_service().map_form_data({"data": {"name": "Jo"}})["input_values"]
        assert "input_3" not in values
        assert "input_4" not in values
        assert "input_8" not in values

    def test_move_date_partial_and_fallback(self):
        service = make_service()
        values = service.map_form_data({"data": {"name": "Jane Doe", "moveDate": "March 5"}})["input_values"]
        assert values["input_5"] == date(date.today().year, 3, 5).strftime("%m/%d/%Y")

        values = service.map_form_data({"data": {"name": "Jane Doe", "moveDate": "whenever works"}})["input_values"]
        assert values["input_5"] == date.today().strftime("%m/%d/%Y")

        values = service.map_form_data({"data": {"name": "Jane Doe"}})["input_values"]
        assert values["input_5"] == date.today().strftime("%m/%d/%Y")

    def test_zip_from_distance_calculation(self):
        values = make_service().map_form_data({"data": {
            "distance-calculation": {"origin": "Atlanta, GA 30303", "destination": "Macon, GA 31201"},
        }})["input_values"]
        assert values["input_8"] == "30303"
        assert values["input_9"] == "31201"

    def test_zip_keyword_search(self):
        values = make_service().map_form_data({"data": {
            "pickup_street": "1 Peachtree St 30303",
            "delivery_street": "2 Main St 31201",
        }})["input_values"]
        assert values["input_8"] == "30303"
        assert values["input_9"] == "31201"

    def test_single_zip_reused_for_destination(self):
        values = make_service().map_form_data({"data": {"address": "Somewhere 30305"}})["input_values"]
        assert values["input_8"] == "30305"
        assert values["input_9"] == "30305"

    def test_payload_without_data_key(self):
        values = make_service().map_form_data({"email": "jo@example.com"})["input_values"]
        assert values["input_3"] == "jo@example.com"

    def test_move_size_table(self):
        assert normalize_move_size("Cozy STUDIO") == "Studio Apartment"
        assert normalize_move_size("1 Bedroom") == "1 Bedroom Apartment"
        assert normalize_move_size("5 bedroom estate") == "5 Bedroom House"
        assert normalize_move_size("Office") == "Office"
        assert normalize_move_size(None) is None


class TestSubmitForm:
    """Response interpretation, including failures reported with HTTP 200"""

    def test_success(self):
        calls = []
        body = {"status": 200, "response": {"is_valid": True, "entry_id": 42}}
        result = make_service(json_transport(200, body, calls)).submit_form({"data": {"name": "Jane Doe"}})

        assert result == body
        assert len(calls) == 1
        assert calls[0].method == "POST"
        assert calls[0].url.path == "/gravityformsapi/forms/3/submissions"
        assert request_json(calls[0])["input_values"]["input_1"] == "Jane Doe"

    def test_absent_is_valid_is_not_a_failure(self):
        body = {"status": 200, "response": {"entry_id": 42}}
        assert make_service(json_transport(200, body)).submit_form({"data": {}}) == body

    def test_validation_failure_inside_http_200(self):
        body = {
            "status": 200,
            "response": {"is_valid": False, "validation_messages": {"8": "This field is required."}},
        }
        with pytest.raises(GravityFormsError) as excinfo:
            make_service(json_transport(200, body)).submit_form({"data": {}})
        assert "This field is required." in str(excinfo.value)

    def test_body_status_takes_precedence(self):
        with pytest.raises(GravityFormsError) as excinfo:
            make_service(json_transport(200, {"status": 401, "response": "Not authorized"})).submit_form({"data": {}})
        assert "401" in str(excinfo.value)

    def test_http_error_status(self):
        with pytest.raises(GravityFormsError):
            make_service(json_transport(500, {"response": "boom"})).submit_form({"data": {}})

    def test_non_object_body(self):
        with pytest.raises(GravityFormsError):
            make_service(json_transport(200, text="<html>oops</html>")).submit_form({"data": {}})
        with pytest.raises(GravityFormsError):
            make_service(json_transport(200, {})).submit_form({"data": {}})

    def test_transport_error_wrapped(self):
        with pytest.raises(GravityFormsError):
            make_service(failing_transport()).submit_form({"data": {}})


class TestConnectionCheck:
    """Signed GET of the configured form"""

    def test_connection_ok(self):
        calls = []
        assert make_service(json_transport(200, {"id": 3}, calls)).test_connection() is True
        assert calls[0].method == "GET"
        assert calls[0].url.path == "/gravityformsapi/forms/3"

    def test_connection_failures(self):
        assert make_service(json_transport(403, {})).test_connection() is False
        assert make_service(failing_transport()).test_connection() is False
