# fuelogic/webhooks/registry.py
"""
Webhook registry - manages configured webhook destinations.

Registrations are never deleted here; disabling keeps the record so past
dispatch results stay attributable. Lifecycle:

    created -> active <-> disabled

Every write (register, update, enable) validates the full resulting record
through WebhookValidator.
"""

import json
from dataclasses import dataclass, replace
from datetime import datetime, timezone
from typing import Any, Dict, List, Mapping, Optional, Tuple
from uuid import uuid4

from sqlalchemy import text
from sqlalchemy.exc import IntegrityError

from ..db.engine import SessionFactory, next_position, session_scope
from ..errors import NotFoundError
from ..logging import get_logger
from .validation import (
    IntegrationType,
    WebhookEventType,
    WebhookValidator,
    parse_event_type,
    parse_integration,
)

logger = get_logger(__name__)

_COLUMNS = (
    "id, owner_id, name, url, integration, event_type, "
    "contact_ids, headers, active, created_at, updated_at"
)

# Inserts that lost the race for a listing position are retried this often
POSITION_RETRIES = 3

# Fields a caller may set through register/update
_MUTABLE_FIELDS = ("name", "url", "integration", "event_type", "contact_ids", "headers", "active")


@dataclass(frozen=True)
class WebhookRegistration:
    """A registered webhook destination."""
    id: str
    owner_id: str
    name: str
    url: str
    integration: IntegrationType
    event_type: WebhookEventType
    contact_ids: Tuple[str, ...]
    headers: Dict[str, str]
    active: bool
    created_at: str
    updated_at: str

    def to_api(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "owner_id": self.owner_id,
            "name": self.name,
            "url": self.url,
            "integration": self.integration.value,
            "event_type": self.event_type.value,
            "contact_ids": list(self.contact_ids),
            "headers": dict(self.headers),
            "active": self.active,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }


class WebhookRegistry:
    """Validated storage of webhook registrations."""

    def __init__(self, session_factory: SessionFactory, validator: WebhookValidator):
        self.session_factory = session_factory
        self.validator = validator

    def register(self, data: Mapping[str, Any], owner_id: str) -> WebhookRegistration:
        """
        Register a new webhook destination.

        Args:
            data: name, url, integration, event_type, optional contact_ids,
                headers and active (defaults to True)
            owner_id: Owner of the registration

        Returns:
            Stored registration

        Raises:
            ValidationError: naming the offending field
        """
        now = _now()
        webhook = WebhookRegistration(
            id=str(uuid4()),
            owner_id=owner_id,
            name=(data.get("name") or "").strip(),
            url=(data.get("url") or "").strip(),
            integration=parse_integration(data.get("integration", IntegrationType.GENERIC.value)),
            event_type=parse_event_type(data.get("event_type")),
            contact_ids=_normalize_contacts(data.get("contact_ids")),
            headers=dict(data.get("headers") or {}),
            active=bool(data.get("active", True)),
            created_at=now,
            updated_at=now,
        )
        self.validator.validate(webhook)

        self._insert(webhook)

        logger.info(
            "webhook_registered",
            webhook_id=webhook.id,
            integration=webhook.integration.value,
            event_type=webhook.event_type.value,
        )
        return webhook

    def update(self, webhook_id: str, data: Mapping[str, Any]) -> WebhookRegistration:
        """
        Apply a partial update and re-validate the merged record.

        Fields absent from data keep their stored value.
        """
        current = self.get(webhook_id)
        changes: Dict[str, Any] = {}
        for key in _MUTABLE_FIELDS:
            if key not in data or data[key] is None:
                continue
            value = data[key]
            if key == "integration":
                value = parse_integration(value)
            elif key == "event_type":
                value = parse_event_type(value)
            elif key == "contact_ids":
                value = _normalize_contacts(value)
            elif key == "headers":
                value = dict(value)
            elif key == "active":
                value = bool(value)
            elif isinstance(value, str):
                value = value.strip()
            changes[key] = value

        merged = replace(current, updated_at=_now(), **changes)
        self.validator.validate(merged)
        self._save(merged)

        logger.info(
            "webhook_updated",
            webhook_id=webhook_id,
            fields=sorted(changes),
        )
        return merged

    def disable(self, webhook_id: str) -> WebhookRegistration:
        """Stop firing a webhook but keep its registration. Idempotent."""
        current = self.get(webhook_id)
        if not current.active:
            return current

        disabled = replace(current, active=False, updated_at=_now())
        self._save(disabled)
        logger.info("webhook_disabled", webhook_id=webhook_id)
        return disabled

    def enable(self, webhook_id: str) -> WebhookRegistration:
        """
        Re-activate a webhook.

        The record is validated again: contacts referenced by a SlingFlow
        registration may have been removed while it was disabled.
        """
        current = self.get(webhook_id)
        self.validator.validate(current)
        if current.active:
            return current

        enabled = replace(current, active=True, updated_at=_now())
        self._save(enabled)
        logger.info("webhook_enabled", webhook_id=webhook_id)
        return enabled

    def get(self, webhook_id: str) -> WebhookRegistration:
        with session_scope(self.session_factory) as session:
            row = session.execute(
                text(f"SELECT {_COLUMNS} FROM webhooks WHERE id = :id"),
                {"id": webhook_id},
            ).fetchone()

        if row is None:
            raise NotFoundError(f"Webhook não encontrado: {webhook_id}")
        return _from_row(row)

    def list_all(self, owner_id: Optional[str] = None) -> List[WebhookRegistration]:
        """All registrations (optionally of one owner), in insertion order."""
        query = f"SELECT {_COLUMNS} FROM webhooks"
        params: Dict[str, Any] = {}
        if owner_id is not None:
            query += " WHERE owner_id = :owner_id"
            params["owner_id"] = owner_id
        query += " ORDER BY position ASC"

        with session_scope(self.session_factory) as session:
            rows = session.execute(text(query), params).fetchall()
        return [_from_row(row) for row in rows]

    def list_active_for(self, event_type, owner_id: Optional[str] = None) -> List[WebhookRegistration]:
        """Active registrations subscribed to event_type, in insertion order."""
        event = parse_event_type(
            event_type.value if isinstance(event_type, WebhookEventType) else event_type
        )
        query = f"""
            SELECT {_COLUMNS} FROM webhooks
            WHERE event_type = :event_type AND active = :active
        """
        params: Dict[str, Any] = {"event_type": event.value, "active": True}
        if owner_id is not None:
            query += " AND owner_id = :owner_id"
            params["owner_id"] = owner_id
        query += " ORDER BY position ASC"

        with session_scope(self.session_factory) as session:
            rows = session.execute(text(query), params).fetchall()
        return [_from_row(row) for row in rows]

    def _insert(self, webhook: WebhookRegistration) -> None:
        """Insert at the next listing position, retrying when a concurrent register took it."""
        for attempt in range(1, POSITION_RETRIES + 1):
            try:
                with session_scope(self.session_factory) as session:
                    session.execute(
                        text(f"""
                            INSERT INTO webhooks (position, {_COLUMNS})
                            VALUES (:position, :id, :owner_id, :name, :url, :integration,
                                    :event_type, :contact_ids, :headers, :active,
                                    :created_at, :updated_at)
                        """),
                        {"position": next_position(session, "webhooks"), **_to_row(webhook)},
                    )
                return
            except IntegrityError:
                if attempt == POSITION_RETRIES:
                    raise
                logger.warning("webhook_position_collision", webhook_id=webhook.id, attempt=attempt)

    def _save(self, webhook: WebhookRegistration) -> None:
        with session_scope(self.session_factory) as session:
            session.execute(
                text("""
                    UPDATE webhooks
                    SET name = :name,
                        url = :url,
                        integration = :integration,
                        event_type = :event_type,
                        contact_ids = :contact_ids,
                        headers = :headers,
                        active = :active,
                        updated_at = :updated_at
                    WHERE id = :id
                """),
                _to_row(webhook),
            )


def _normalize_contacts(value) -> Tuple[str, ...]:
    """
    Contact ids as a tuple of strings.

    Also accepts the {id: true} mapping the dashboard sends for selections.
    """
    if not value:
        return ()
    if isinstance(value, Mapping):
        value = [key for key, selected in value.items() if selected]
    return tuple(str(v) for v in value)


def _to_row(webhook: WebhookRegistration) -> Dict[str, Any]:
    return {
        "id": webhook.id,
        "owner_id": webhook.owner_id,
        "name": webhook.name,
        "url": webhook.url,
        "integration": webhook.integration.value,
        "event_type": webhook.event_type.value,
        "contact_ids": json.dumps(list(webhook.contact_ids)),
        "headers": json.dumps(webhook.headers),
        "active": webhook.active,
        "created_at": webhook.created_at,
        "updated_at": webhook.updated_at,
    }


def _from_row(row) -> WebhookRegistration:
    return WebhookRegistration(
        id=str(row[0]),
        owner_id=str(row[1]),
        name=row[2],
        url=row[3],
        integration=IntegrationType(row[4]),
        event_type=WebhookEventType(row[5]),
        contact_ids=tuple(json.loads(row[6] or "[]")),
        headers=json.loads(row[7] or "{}"),
        active=bool(row[8]),
        created_at=row[9],
        updated_at=row[10],
    )


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()
