"""
Shared fixtures for the Chalk Leads backend tests.

Points the app at a shared in-memory SQLite database before anything from
``leadwidget`` is imported, and provides helpers for faking outbound HTTP
with ``httpx.MockTransport``.
"""

import os

os.environ["DATABASE_URL"] = "sqlite://"
os.environ["ENVIRONMENT"] = "test"
os.environ["RESEND_API_KEY"] = ""
os.environ["GOOGLE_MAPS_API_KEY"] = ""
os.environ["SMART_MOVING_TRIGGER_HOSTS"] = "furniture-taxi-7l6l.vercel.app"

import json
from typing import Any, List, Optional

import httpx
import pytest
from fastapi.testclient import TestClient

from leadwidget import models  # noqa: F401  (registers tables)
from leadwidget.core.database import Base, SessionLocal, engine, get_db
from leadwidget.main import app
from leadwidget.models import Widget, WidgetPricing, WidgetStatus, WidgetStep


# =============================================================================
# Database
# =============================================================================

@pytest.fixture(autouse=True)
def database():
    """Fresh schema for every test."""
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def db_session():
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def client():
    def override_get_db():
        session = SessionLocal()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def make_widget(db_session):
    """Factory persisting a widget (committed, so API requests can see it)."""

    def _make_widget(
        status: WidgetStatus = WidgetStatus.PUBLISHED,
        steps: Optional[List[dict]] = None,
        pricing: Optional[dict] = None,
        **fields: Any,
    ) -> Widget:
        fields.setdefault("name", "Moving Quote")
        fields.setdefault("company_name", "Furniture Taxi")
        widget = Widget(status=status, **fields)
        db_session.add(widget)
        db_session.flush()
        for step in steps or []:
            db_session.add(WidgetStep(widget_id=widget.id, **step))
        for category, rules in (pricing or {}).items():
            db_session.add(WidgetPricing(widget_id=widget.id, category=category, pricing_rules=rules))
        db_session.commit()
        db_session.refresh(widget)
        return widget

    return _make_widget


# =============================================================================
# Outbound HTTP
# =============================================================================

def json_transport(
    status_code: int = 200,
    body: Any = None,
    calls: Optional[List[httpx.Request]] = None,
    text: Optional[str] = None,
) -> httpx.MockTransport:
    """MockTransport answering every request with one canned response."""

    def handler(request: httpx.Request) -> httpx.Response:
        if calls is not None:
            calls.append(request)
        if text is not None:
            return httpx.Response(status_code, text=text)
        return httpx.Response(status_code, json=body)

    return httpx.MockTransport(handler)


def failing_transport(calls: Optional[List[httpx.Request]] = None) -> httpx.MockTransport:
    """MockTransport that fails every request at the connection level."""

    def handler(request: httpx.Request) -> httpx.Response:
        if calls is not None:
            calls.append(request)
        raise httpx.ConnectError("connection refused", request=request)

    return httpx.MockTransport(handler)


def request_json(request: httpx.Request) -> Any:
    return json.loads(request.content.decode("utf-8"))

