# tests/test_webhook_registry.py
"""
Test webhook registration and its per-integration invariants.
"""

import pytest
from sqlalchemy import text
from sqlalchemy.exc import IntegrityError

from fuelogic.db.engine import next_position
from fuelogic.errors import NotFoundError, ValidationError
from fuelogic.webhooks import IntegrationType, WebhookEventType, WebhookRegistry, WebhookValidator
from fuelogic.webhooks.validation import validate_webhook_url

from conftest import OWNER


def generic(name="ERP", url="https://hooks.example.com/erp", **extra):
    return {"name": name, "url": url, "integration": "generic", "event_type": "inspection_alert", **extra}


def slingflow(contact_ids, url="https://api.slingflow.example/hooks/abc", **extra):
    return {
        "name": "SlingFlow WhatsApp",
        "url": url,
        "integration": "slingflow",
        "event_type": "inspection_alert",
        "contact_ids": contact_ids,
        **extra,
    }


def sophia(url, **extra):
    return {
        "name": "Sophia",
        "url": url,
        "integration": "sophia_ai",
        "event_type": "inspection_alert",
        **extra,
    }


class TestRegistration:
    """Tests for WebhookRegistry.register()."""

    def test_generic_registration(self, registry):
        webhook = registry.register(generic(headers={"Authorization": "Bearer x"}), OWNER)

        assert webhook.integration is IntegrationType.GENERIC
        assert webhook.event_type is WebhookEventType.INSPECTION_ALERT
        assert webhook.active
        assert webhook.owner_id == OWNER
        assert registry.get(webhook.id) == webhook

    def test_slingflow_requires_contacts(self, registry):
        """SlingFlow without contacts fails on contact_ids."""
        with pytest.raises(ValidationError) as exc_info:
            registry.register(slingflow([]), OWNER)
        assert exc_info.value.field == "contact_ids"
        assert registry.list_all() == []

    def test_slingflow_with_one_contact(self, registry):
        webhook = registry.register(slingflow(["c-1"]), OWNER)
        assert webhook.contact_ids == ("c-1",)

    def test_slingflow_selection_map(self, registry):
        """The dashboard's {id: true} selection map is accepted."""
        webhook = registry.register(slingflow({"c-1": True, "c-2": False, "c-4": True}), OWNER)
        assert webhook.contact_ids == ("c-1", "c-4")

    def test_slingflow_rejects_inactive_contact(self, registry):
        with pytest.raises(ValidationError) as exc_info:
            registry.register(slingflow(["c-1", "c-3"]), OWNER)
        assert exc_info.value.field == "contact_ids"
        assert "c-3" in exc_info.value.message

    def test_slingflow_rejects_unknown_contact(self, registry):
        with pytest.raises(ValidationError) as exc_info:
            registry.register(slingflow(["nope"]), OWNER)
        assert exc_info.value.field == "contact_ids"

    def test_sophia_requires_url(self, registry):
        """Sophia AI with an empty url fails on url."""
        with pytest.raises(ValidationError) as exc_info:
            registry.register(sophia(""), OWNER)
        assert exc_info.value.field == "url"

    def test_sophia_with_url(self, registry):
        webhook = registry.register(sophia("https://sophia.example/alerts"), OWNER)
        assert webhook.integration is IntegrationType.SOPHIA_AI

    def test_name_required(self, registry):
        with pytest.raises(ValidationError) as exc_info:
            registry.register(generic(name="   "), OWNER)
        assert exc_info.value.field == "name"

    def test_unknown_integration(self, registry):
        with pytest.raises(ValidationError) as exc_info:
            registry.register(generic(integration="telegram"), OWNER)
        assert exc_info.value.field == "integration"

    def test_unknown_event_type(self, registry):
        with pytest.raises(ValidationError) as exc_info:
            registry.register(generic(event_type="tank_empty"), OWNER)
        assert exc_info.value.field == "event_type"


class TestUpdate:
    """Tests for WebhookRegistry.update()."""

    def test_partial_update_keeps_other_fields(self, registry):
        webhook = registry.register(generic(), OWNER)
        updated = registry.update(webhook.id, {"name": "ERP v2"})

        assert updated.name == "ERP v2"
        assert updated.url == webhook.url
        assert registry.get(webhook.id).name == "ERP v2"

    def test_merged_record_is_revalidated(self, registry):
        """Switching a generic webhook to SlingFlow needs contacts."""
        webhook = registry.register(generic(), OWNER)

        with pytest.raises(ValidationError) as exc_info:
            registry.update(webhook.id, {"integration": "slingflow"})
        assert exc_info.value.field == "contact_ids"
        assert registry.get(webhook.id).integration is IntegrationType.GENERIC

    def test_update_with_contacts_switches_integration(self, registry):
        webhook = registry.register(generic(), OWNER)
        updated = registry.update(webhook.id, {"integration": "slingflow", "contact_ids": ["c-2"]})

        assert updated.integration is IntegrationType.SLINGFLOW
        assert registry.get(webhook.id).contact_ids == ("c-2",)

    def test_update_unknown(self, registry):
        with pytest.raises(NotFoundError):
            registry.update("missing", {"name": "x"})


class TestLifecycle:
    """Tests for disable/enable."""

    def test_disable_is_idempotent(self, registry):
        webhook = registry.register(generic(), OWNER)

        first = registry.disable(webhook.id)
        second = registry.disable(webhook.id)

        assert not first.active
        assert second == first

    def test_disable_unknown(self, registry):
        with pytest.raises(NotFoundError):
            registry.disable("missing")

    def test_enable_restores(self, registry):
        webhook = registry.register(generic(), OWNER)
        registry.disable(webhook.id)

        assert registry.enable(webhook.id).active
        assert [w.id for w in registry.list_active_for("inspection_alert")] == [webhook.id]

    def test_enable_rechecks_contacts(self, registry, engine):
        """Contacts deactivated while disabled block re-enabling."""
        webhook = registry.register(slingflow(["c-1"]), OWNER)
        registry.disable(webhook.id)
        with engine.begin() as conn:
            conn.execute(text("UPDATE contacts SET active = :a WHERE id = 'c-1'"), {"a": False})

        with pytest.raises(ValidationError) as exc_info:
            registry.enable(webhook.id)
        assert exc_info.value.field == "contact_ids"
        assert not registry.get(webhook.id).active


class TestListing:
    """Tests for list_all/list_active_for."""

    def test_active_for_filters_and_keeps_order(self, registry):
        first = registry.register(generic(name="A"), OWNER)
        registry.register(generic(name="B", event_type="order_placed"), OWNER)
        third = registry.register(sophia("https://sophia.example/a"), OWNER)
        fourth = registry.register(generic(name="D"), OWNER)
        registry.disable(fourth.id)

        active = registry.list_active_for(WebhookEventType.INSPECTION_ALERT)
        assert [w.id for w in active] == [first.id, third.id]

    def test_list_all_by_owner(self, registry):
        mine = registry.register(generic(), OWNER)
        registry.register(generic(), "someone-else")

        assert [w.id for w in registry.list_all(owner_id=OWNER)] == [mine.id]
        assert len(registry.list_all()) == 2


class TestUrlValidation:
    """Tests for outbound URL checks."""

    @pytest.mark.parametrize("url", [
        "http://localhost:8080/hook",
        "http://127.0.0.1/hook",
        "http://169.254.169.254/latest/meta-data",
        "http://10.0.0.5/hook",
        "http://192.168.1.20/hook",
    ])
    def test_internal_destinations_blocked(self, url):
        with pytest.raises(ValidationError) as exc_info:
            validate_webhook_url(url)
        assert exc_info.value.field == "url"

    @pytest.mark.parametrize("url", ["ftp://example.com/x", "file:///etc/passwd", "example.com/x"])
    def test_bad_scheme(self, url):
        with pytest.raises(ValidationError):
            validate_webhook_url(url)

    def test_internal_allowed_when_configured(self):
        validate_webhook_url("http://localhost:8080/hook", allow_internal=True)

    def test_registry_blocks_internal(self, session_factory, contacts):
        strict = WebhookRegistry(session_factory, WebhookValidator(contacts))
        with pytest.raises(ValidationError) as exc_info:
            strict.register(generic(url="http://localhost/hook"), OWNER)
        assert exc_info.value.field == "url"


class TestPositions:
    """Listing positions stay unique."""

    def test_duplicate_position_rejected(self, registry, engine):
        webhook = registry.register(generic(), OWNER)

        with pytest.raises(IntegrityError):
            with engine.begin() as conn:
                conn.execute(
                    text("""
                        INSERT INTO webhooks (id, position, owner_id, name, url, integration,
                                              event_type, contact_ids, headers, active,
                                              created_at, updated_at)
                        SELECT 'copy', position, owner_id, name, url, integration,
                               event_type, contact_ids, headers, active,
                               created_at, updated_at
                        FROM webhooks WHERE id = :id
                    """),
                    {"id": webhook.id},
                )

    def test_register_retries_taken_position(self, registry, monkeypatch):
        """A register that read a position another insert already took gets the next one."""
        first = registry.register(generic(name="A"), OWNER)
        calls = []

        def stale_position(session, table):
            calls.append(table)
            if len(calls) == 1:
                return 1  # computed before the first insert committed
            return next_position(session, table)

        monkeypatch.setattr("fuelogic.webhooks.registry.next_position", stale_position)
        second = registry.register(generic(name="B"), OWNER)

        assert len(calls) == 2
        assert [w.id for w in registry.list_all()] == [first.id, second.id]

    def test_register_gives_up(self, registry, monkeypatch):
        registry.register(generic(name="A"), OWNER)
        monkeypatch.setattr("fuelogic.webhooks.registry.next_position", lambda session, table: 1)

        with pytest.raises(IntegrityError):
            registry.register(generic(name="B"), OWNER)
        assert len(registry.list_all()) == 1
