# fuelogic/api/routes_webhooks.py
"""
Webhook API routes.

Endpoints for registering webhook destinations, enabling/disabling them
and sending test deliveries. Invariant violations answer 400 with the
offending field.
"""

from typing import Any, Dict, List, Optional, Union

from fastapi import APIRouter, Depends
from pydantic import AliasChoices, BaseModel, ConfigDict, Field

from ..contacts import ContactDirectory
from ..errors import NotFoundError
from ..security import Principal
from ..webhooks import AlertDispatcher, WebhookRegistration, WebhookRegistry
from ..webhooks.validation import IntegrationType, WebhookEventType, parse_event_type
from .deps import get_contacts, get_dispatcher, get_principal, get_registry

router = APIRouter(prefix="/webhooks", tags=["webhooks"])


class WebhookRequest(BaseModel):
    """
    Webhook registration or partial update.

    Every field is optional at this layer; the registry decides what is
    required for the resulting record.
    """
    model_config = ConfigDict(populate_by_name=True)

    name: Optional[str] = None
    url: Optional[str] = None
    integration: Optional[str] = None
    event_type: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("event_type", "eventType", "type"),
    )
    # List of ids, or the {id: true} selection map sent by the dashboard
    contact_ids: Optional[Union[List[Union[str, int]], Dict[str, Any]]] = Field(
        default=None,
        validation_alias=AliasChoices("contact_ids", "contactIds", "selected_contacts"),
    )
    headers: Optional[Dict[str, str]] = None
    active: Optional[bool] = None


def _owned(registry: WebhookRegistry, webhook_id: str, principal: Principal) -> WebhookRegistration:
    """Registration of the caller; other owners' ids look unknown."""
    webhook = registry.get(webhook_id)
    if webhook.owner_id != principal.owner_id:
        raise NotFoundError(f"Webhook não encontrado: {webhook_id}")
    return webhook


@router.get("")
def list_webhooks(
    principal: Principal = Depends(get_principal),
    registry: WebhookRegistry = Depends(get_registry),
) -> Dict[str, Any]:
    """List the caller's webhooks with the supported integrations and events."""
    webhooks = registry.list_all(owner_id=principal.owner_id)
    return {
        "webhooks": [w.to_api() for w in webhooks],
        "count": len(webhooks),
        "supported_integrations": [i.value for i in IntegrationType],
        "supported_event_types": [e.value for e in WebhookEventType],
    }


@router.post("", status_code=201)
def register_webhook(
    request: WebhookRequest,
    principal: Principal = Depends(get_principal),
    registry: WebhookRegistry = Depends(get_registry),
) -> Dict[str, Any]:
    """
    Register a webhook destination.

    - generic: needs a valid url
    - slingflow: needs a url and at least one active contact in contact_ids
    - sophia_ai: needs a url
    """
    webhook = registry.register(request.model_dump(exclude_none=True), principal.owner_id)
    return webhook.to_api()


@router.get("/contacts/internal")
def list_internal_contacts(
    principal: Principal = Depends(get_principal),
    contacts: ContactDirectory = Depends(get_contacts),
) -> List[Dict[str, Any]]:
    """Contacts that can be selected as SlingFlow recipients."""
    return [c.as_recipient() for c in contacts.list_internal(principal.owner_id)]


@router.get("/event/{event_type}")
def list_webhooks_for_event(
    event_type: str,
    principal: Principal = Depends(get_principal),
    registry: WebhookRegistry = Depends(get_registry),
) -> List[Dict[str, Any]]:
    """The caller's webhooks subscribed to an event type."""
    event = parse_event_type(event_type)
    return [
        w.to_api()
        for w in registry.list_all(owner_id=principal.owner_id)
        if w.event_type is event
    ]


@router.get("/{webhook_id}")
def get_webhook(
    webhook_id: str,
    principal: Principal = Depends(get_principal),
    registry: WebhookRegistry = Depends(get_registry),
) -> Dict[str, Any]:
    return _owned(registry, webhook_id, principal).to_api()


@router.put("/{webhook_id}")
def update_webhook(
    webhook_id: str,
    request: WebhookRequest,
    principal: Principal = Depends(get_principal),
    registry: WebhookRegistry = Depends(get_registry),
) -> Dict[str, Any]:
    """Partial update; the merged record must satisfy its integration's rules."""
    _owned(registry, webhook_id, principal)
    webhook = registry.update(webhook_id, request.model_dump(exclude_none=True))
    return webhook.to_api()


@router.post("/{webhook_id}/disable")
def disable_webhook(
    webhook_id: str,
    principal: Principal = Depends(get_principal),
    registry: WebhookRegistry = Depends(get_registry),
) -> Dict[str, Any]:
    """Disable a webhook (stops firing but keeps registration)."""
    _owned(registry, webhook_id, principal)
    return registry.disable(webhook_id).to_api()


@router.post("/{webhook_id}/enable")
def enable_webhook(
    webhook_id: str,
    principal: Principal = Depends(get_principal),
    registry: WebhookRegistry = Depends(get_registry),
) -> Dict[str, Any]:
    """Re-enable a webhook after checking it is still valid."""
    _owned(registry, webhook_id, principal)
    return registry.enable(webhook_id).to_api()


@router.post("/{webhook_id}/test")
def test_webhook(
    webhook_id: str,
    principal: Principal = Depends(get_principal),
    registry: WebhookRegistry = Depends(get_registry),
    dispatcher: AlertDispatcher = Depends(get_dispatcher),
) -> Dict[str, Any]:
    """
    Send a sample inspection alert to one webhook.

    Delivery failures are reported in the body, not as HTTP errors.
    """
    webhook = _owned(registry, webhook_id, principal)
    result = dispatcher.test_webhook(webhook)
    return {
        "success": result.success,
        "message": (
            f"Teste enviado com sucesso. Status: {result.status_code}"
            if result.success
            else f"Falha no teste do webhook: {result.error_message}"
        ),
        "result": result.to_api(),
    }
