"""
Tests for the quote notification email.
"""

import pytest

from conftest import failing_transport, json_transport, request_json
from leadwidget.services.quote_email_service import (
    QuoteEmailError,
    QuoteEmailNotConfiguredError,
    QuoteEmailService,
    format_amount,
    render_quote_email,
)


def make_service(transport=None, **overrides):
    options = {
        "api_key": "re_test",
        "api_url": "https://mail.example.com/emails",
        "from_address": "no-reply@example.com",
        "from_name": "Chalk Leads",
        "recipient": "service@example.com",
        "transport": transport,
    }
    options.update(overrides)
    return QuoteEmailService(**options)


class TestRendering:
    """HTML body"""

    def test_amount_format(self):
        assert format_amount(1234.5) == "1,234.50"
        assert format_amount("99") == "99.00"
        assert format_amount("n/a") == "0.00"

    def test_summary_lines(self):
        html = render_quote_email(
            {"contact-name": "Jane"},
            {
                "items": [{"label": "Movers", "amount": 1234.5, "meta": "3 hours"}],
                "subtotal": 1234.5,
                "total": 1500,
                "minimumJobPrice": 300,
                "appliedMinimum": False,
            },
            "wk-1",
        )
        assert "wk-1" in html
        assert "Movers" in html
        assert "$1,234.50" in html
        assert "3 hours" in html
        assert "$1,500.00" in html
        assert "Minimum job price" not in html

    def test_applied_minimum_shown(self):
        html = render_quote_email({}, {"minimumJobPrice": 300, "appliedMinimum": True, "total": 300})
        assert "Minimum job price applied" in html
        assert "$300.00" in html

    def test_values_are_escaped(self):
        html = render_quote_email({"notes": "<script>alert(1)</script>"}, None, "<b>key</b>")
        assert "<script>" not in html
        assert "<b>key</b>" not in html
        assert "&lt;script&gt;" in html


class TestSending:
    """Resend API calls"""

    def test_sends_json_message(self):
        calls = []
        result = make_service(json_transport(200, {"id": "email-1"}, calls)).send_quote_email(
            {"contact-name": "Jane"}, {"total": 850}, "wk-1",
        )
        assert result == {"id": "email-1"}

        sent = request_json(calls[0])
        assert sent["from"] == "Chalk Leads <no-reply@example.com>"
        assert sent["to"] == ["service@example.com"]
        assert sent["subject"] == "New moving quote request"
        assert "$850.00" in sent["html"]
        assert calls[0].headers["Authorization"] == "Bearer re_test"

    def test_missing_key(self):
        calls = []
        with pytest.raises(QuoteEmailNotConfiguredError):
            make_service(json_transport(200, {}, calls), api_key="").send_quote_email({})
        assert calls == []

    def test_error_status(self):
        with pytest.raises(QuoteEmailError):
            make_service(json_transport(422, {"message": "invalid from"})).send_quote_email({})

    def test_transport_error(self):
        with pytest.raises(QuoteEmailError):
            make_service(failing_transport()).send_quote_email({})
