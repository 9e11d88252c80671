"""
Tests for the SmartMoving adapter.
"""

import json

import pytest

from conftest import failing_transport, json_transport, request_json
from leadwidget.services.smart_moving_service import SmartMovingError, SmartMovingService


ENDPOINT = "https://api.smartmoving.example/leads"


def make_service(transport=None, **overrides):
    options = {
        "base_url": ENDPOINT,
        "api_key": "sm-token",
        "company_id": "",
        "lead_source": "Chalk Leads Widget",
        "transport": transport,
    }
    options.update(overrides)
    return SmartMovingService(**options)


SUBMISSION = {
    "widget_key": "wk-1",
    "data": {
        "contact-name": "Jane Q Public",
        "contact-email": "jane@example.com ",
        "contact-phone": "404.555.0100",
        "origin-location": "123 Main St, Atlanta, GA 30301",
        "target-location": "9 Elm St, Decatur, GA 30030",
        "fromZip": "30301",
        "to-zip": "GA 30030-1111",
        "date-selection": "September 15, 2025",
        "project-scope": "2 Bedroom",
        "distance-calculation": {"miles": 12.4},
    },
}


class TestPayloadMapping:
    """Flat lead schema"""

    def test_maps_contact_and_move_fields(self):
        payload = make_service().map_payload(SUBMISSION)
        assert payload["lead_source"] == "Chalk Leads Widget"
        assert payload["first_name"] == "Jane"
        assert payload["last_name"] == "Q Public"
        assert payload["email"] == "jane@example.com"
        assert payload["phone"] == "4045550100"
        assert payload["from_address"] == "123 Main St, Atlanta, GA 30301"
        assert payload["to_address"] == "9 Elm St, Decatur, GA 30030"
        assert payload["from_zip"] == "30301"
        assert payload["to_zip"] == "30030"
        assert payload["move_date"] == "2025-09-15"
        assert payload["move_size"] == "2 Bedroom"
        assert payload["estimated_miles"] == 12.4
        assert payload["widget_key"] == "wk-1"
        assert "company_id" not in payload

    def test_blank_values_dropped(self):
        payload = make_service().map_payload({"data": {"name": "Jo"}})
        for key in ("email", "phone", "from_zip", "move_date", "estimated_miles", "affiliateName"):
            assert key not in payload
        assert payload["last_name"] == "Customer"

    def test_company_id_when_configured(self):
        payload = make_service(company_id="c-77").map_payload({"data": {}})
        assert payload["company_id"] == "c-77"

    def test_notes_hold_full_answer_document(self):
        payload = make_service().map_payload(SUBMISSION)
        assert json.loads(payload["notes"]) == SUBMISSION["data"]

    def test_explicit_note_prepended_and_tags_affiliate(self):
        submission = {**SUBMISSION, "smart_moving_note": "  Discount code SPRING  "}
        payload = make_service().map_payload(submission)
        note, dump = payload["notes"].split("\n\n", 1)
        assert note == "Discount code SPRING"
        assert json.loads(dump) == SUBMISSION["data"]
        assert payload["affiliateName"] == "discount web form"


class TestSubmitLead:
    """Bearer-authenticated submission"""

    def test_success(self):
        calls = []
        result = make_service(json_transport(201, {"id": "lead-9"}, calls)).submit_lead(SUBMISSION)
        assert result == {"id": "lead-9"}
        assert str(calls[0].url) == ENDPOINT
        assert calls[0].headers["Authorization"] == "Bearer sm-token"
        assert calls[0].headers["Accept"] == "application/json"
        assert request_json(calls[0])["first_name"] == "Jane"

    def test_not_configured(self):
        calls = []
        with pytest.raises(SmartMovingError, match="SmartMoving API not configured."):
            make_service(json_transport(200, {}, calls), api_key="").submit_lead(SUBMISSION)
        assert calls == []

    def test_non_2xx(self):
        with pytest.raises(SmartMovingError) as excinfo:
            make_service(json_transport(422, {"message": "bad"})).submit_lead(SUBMISSION)
        assert "422" in str(excinfo.value)

    def test_non_object_body(self):
        with pytest.raises(SmartMovingError):
            make_service(json_transport(200, ["ok"])).submit_lead(SUBMISSION)

    def test_transport_error(self):
        with pytest.raises(SmartMovingError):
            make_service(failing_transport()).submit_lead(SUBMISSION)
