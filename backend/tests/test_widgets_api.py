"""
Tests for the public configuration endpoint and the widget management
endpoints.
"""

from leadwidget.models import LeadStatus, WidgetLead, WidgetStatus


MODULES = {
    "enabled_modules": ["service-selection", "project-scope", "contact-info"],
    "module_configs": {
        "service-selection": {"title": "What are you moving?", "options": [{"title": "Home"}]},
        "project-scope": {"options": [{"title": "Studio", "base_price": "199"}]},
        "contact-info": {},
    },
}


def _create_widget(client, **fields):
    body = {"name": "Atlanta Movers", "company_name": "Furniture Taxi", **MODULES, **fields}
    response = client.post("/api/widgets", json=body)
    assert response.status_code == 201
    return response.json()


class TestPublicConfig:
    """GET /api/widget/{widget_key}/config"""

    def test_published_widget_served(self, client, make_widget):
        widget = make_widget(
            branding={"primary_color": "#F4C443"},
            settings={"tax_rate": 0.07},
            **MODULES,
        )
        response = client.get(f"/api/widget/{widget.widget_key}/config")

        assert response.status_code == 200
        document = response.json()
        assert document["widget_id"] == widget.widget_key
        assert document["step_order"] == ["service-selection", "project-scope", "contact-info"]
        assert document["steps_data"]["service-selection"]["prompt"]["type"] == "avatar"
        assert document["steps_data"]["project-scope"]["options"][0]["estimation"]["base_price"] == 199.0
        assert document["branding"] == {"primary_color": "#F4C443"}
        assert document["estimation_settings"]["tax_rate"] == 0.07
        assert document["estimation_settings"]["service_area_miles"] == 100

    def test_non_finite_numbers_served_as_zero(self, client, make_widget):
        widget = make_widget(
            enabled_modules=["project-scope"],
            module_configs={"project-scope": {"options": [{"title": "Studio", "base_price": "NaN"}]}},
            settings={"tax_rate": "Infinity", "service_area_miles": "inf"},
        )
        response = client.get(f"/api/widget/{widget.widget_key}/config")

        assert response.status_code == 200
        document = response.json()
        assert document["steps_data"]["project-scope"]["options"][0]["estimation"]["base_price"] == 0.0
        assert document["estimation_settings"]["tax_rate"] == 0.0
        assert document["estimation_settings"]["service_area_miles"] == 0

    def test_unknown_key(self, client):
        response = client.get("/api/widget/nope/config")
        assert response.status_code == 404
        assert response.json() == {"error": "Widget not found"}

    def test_draft_and_paused_hidden(self, client, make_widget):
        for status in (WidgetStatus.DRAFT, WidgetStatus.PAUSED):
            widget = make_widget(status=status, **MODULES)
            response = client.get(f"/api/widget/{widget.widget_key}/config")
            assert response.status_code == 404
            assert response.json() == {"error": "Widget not found"}

    def test_publishing_makes_same_key_retrievable(self, client):
        created = _create_widget(client)
        url = f"/api/widget/{created['widget_key']}/config"
        assert client.get(url).status_code == 404

        assert client.post(f"/api/widgets/{created['id']}/publish").status_code == 200
        assert client.get(url).status_code == 200

        assert client.post(f"/api/widgets/{created['id']}/pause").status_code == 200
        assert client.get(url).status_code == 404

    def test_explicit_steps_replace_synthesis(self, client, make_widget):
        widget = make_widget(
            steps=[
                {"step_key": "contact", "title": "Contact", "order_index": 2},
                {"step_key": "welcome", "title": "Welcome", "order_index": 1},
            ],
            **MODULES,
        )
        document = client.get(f"/api/widget/{widget.widget_key}/config").json()
        assert document["step_order"] == ["welcome", "contact"]
        assert "project-scope" not in document["steps_data"]


class TestWidgetCrud:
    """Create, read, update, delete"""

    def test_create_starts_as_draft_with_key(self, client):
        created = _create_widget(client)
        assert created["status"] == "draft"
        assert len(created["widget_key"]) == 32
        assert created["enabled_modules"] == MODULES["enabled_modules"]

    def test_keys_are_unique(self, client):
        assert _create_widget(client)["widget_key"] != _create_widget(client)["widget_key"]

    def test_list_and_get(self, client):
        first = _create_widget(client, name="First")
        _create_widget(client, name="Second")

        listed = client.get("/api/widgets").json()
        assert [w["name"] for w in listed] == ["First", "Second"]
        assert client.get(f"/api/widgets/{first['id']}").json()["name"] == "First"
        assert client.get("/api/widgets/999").status_code == 404

    def test_patch_updates_only_given_fields(self, client):
        created = _create_widget(client)
        response = client.patch(
            f"/api/widgets/{created['id']}",
            json={"name": "Renamed", "settings": {"minimum_job_price": 150}},
        )
        assert response.status_code == 200
        updated = response.json()
        assert updated["name"] == "Renamed"
        assert updated["settings"] == {"minimum_job_price": 150}
        assert updated["enabled_modules"] == MODULES["enabled_modules"]
        assert updated["widget_key"] == created["widget_key"]

    def test_patch_status(self, client):
        created = _create_widget(client)
        response = client.patch(f"/api/widgets/{created['id']}", json={"status": "published"})
        assert response.json()["status"] == "published"
        assert client.patch(f"/api/widgets/{created['id']}", json={"status": "archived"}).status_code == 422

    def test_delete_cascades(self, client, make_widget, db_session):
        widget = make_widget(
            steps=[{"step_key": "welcome", "title": "Welcome", "order_index": 0}],
            pricing={"moveSize": {"studio": {"basePrice": 350}}},
        )
        db_session.add(WidgetLead(widget_id=widget.id, lead_data={}, contact_info={}))
        db_session.commit()
        widget_id = widget.id

        assert client.delete(f"/api/widgets/{widget_id}").status_code == 204
        assert client.get(f"/api/widgets/{widget_id}").status_code == 404
        db_session.expire_all()
        assert db_session.query(WidgetLead).count() == 0


class TestStepsAndPricing:
    """Explicit steps and pricing rules"""

    def test_replace_steps_then_clear(self, client):
        created = _create_widget(client)
        steps = [
            {"step_key": "b", "title": "B", "order_index": 1, "options": [{"id": "x"}]},
            {"step_key": "a", "title": "A", "order_index": 0},
        ]
        response = client.put(f"/api/widgets/{created['id']}/steps", json={"steps": steps})
        assert response.status_code == 200
        assert response.json()["steps"] == 2

        preview = client.get(f"/api/widgets/{created['id']}/preview").json()
        assert preview["step_order"] == ["a", "b"]
        assert preview["steps_data"]["b"]["options"] == [{"id": "x"}]

        response = client.put(
            f"/api/widgets/{created['id']}/steps",
            json={"steps": [{"step_key": "c", "title": "C", "order_index": 0}]},
        )
        assert client.get(f"/api/widgets/{created['id']}/preview").json()["step_order"] == ["c"]

        client.put(f"/api/widgets/{created['id']}/steps", json={"steps": []})
        preview = client.get(f"/api/widgets/{created['id']}/preview").json()
        assert preview["step_order"] == MODULES["enabled_modules"]

    def test_duplicate_step_keys_rejected(self, client):
        created = _create_widget(client)
        steps = [
            {"step_key": "a", "title": "A", "order_index": 0},
            {"step_key": "a", "title": "Again", "order_index": 1},
        ]
        assert client.put(f"/api/widgets/{created['id']}/steps", json={"steps": steps}).status_code == 422

    def test_pricing_round_trip(self, client):
        created = _create_widget(client)
        rules = {"studio": {"basePrice": 350}}
        response = client.put(
            f"/api/widgets/{created['id']}/pricing/moveSize",
            json={"pricing_rules": rules},
        )
        assert response.status_code == 200
        assert response.json() == {"category": "moveSize", "pricing_rules": rules}

        client.post(f"/api/widgets/{created['id']}/publish")
        document = client.get(f"/api/widget/{created['widget_key']}/config").json()
        assert document["pricing"]["moveSize"]["studio"]["basePrice"] == 350

    def test_pricing_upsert_replaces(self, client):
        created = _create_widget(client)
        url = f"/api/widgets/{created['id']}/pricing/moveSize"
        client.put(url, json={"pricing_rules": {"studio": {"basePrice": 350}}})
        client.put(url, json={"pricing_rules": {"studio": {"basePrice": 400}}})

        preview = client.get(f"/api/widgets/{created['id']}/preview").json()
        assert preview["pricing"] == {"moveSize": {"studio": {"basePrice": 400}}}

    def test_preview_ignores_status(self, client):
        created = _create_widget(client)
        response = client.get(f"/api/widgets/{created['id']}/preview")
        assert response.status_code == 200
        assert response.json()["widget_id"] == created["widget_key"]
        assert client.get("/api/widgets/999/preview").status_code == 404


class TestLeads:
    """Lead listing and follow-up status"""

    def test_list_and_update_status(self, client, make_widget, db_session):
        widget = make_widget()
        lead = WidgetLead(
            widget_id=widget.id,
            lead_data={"contact-name": "Jane Doe"},
            contact_info={"name": "Jane Doe", "email": "jane@example.com"},
            estimated_value=850,
        )
        db_session.add(lead)
        db_session.commit()

        listed = client.get(f"/api/widgets/{widget.id}/leads").json()
        assert len(listed) == 1
        assert listed[0]["status"] == "new"
        assert listed[0]["contact_info"]["name"] == "Jane Doe"
        assert float(listed[0]["estimated_value"]) == 850.0

        for status in ("contacted", "lost", "new", "converted"):
            response = client.patch(f"/api/leads/{lead.id}/status", json={"status": status})
            assert response.status_code == 200
            assert response.json()["status"] == status

        db_session.expire_all()
        assert db_session.get(WidgetLead, lead.id).status == LeadStatus.CONVERTED

    def test_invalid_status_and_unknown_lead(self, client, make_widget):
        assert client.patch("/api/leads/999/status", json={"status": "contacted"}).status_code == 404
        widget = make_widget()
        assert client.get(f"/api/widgets/{widget.id}/leads").json() == []
        assert client.patch("/api/leads/1/status", json={"status": "won"}).status_code == 422
