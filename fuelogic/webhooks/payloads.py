# fuelogic/webhooks/payloads.py
"""
Inspection alert payloads, one builder per integration.

All integrations share the same inspection envelope:

{
    "event_id": "inspection_alert_<hex>",
    "event_type": "inspection_alert",
    "timestamp": "2025-06-01T12:00:00+00:00",
    "inspection": {
        "report_id": "INS-1A2B3C4D",
        "description": "Foi detectada água em 2 tanque(s) ...",
        "severity": "high",
        "alerta_tipo": "agua_no_tanque",
        "alertas": [{"cliente": ..., "tanque": 6, "quantidade_agua": "29.6L", ...}]
    },
    "metadata": {"source": "Fuelogic Enterprise", "version": "1.0"}
}

and each integration adds its own fields on top.

Order events carry "order" (order_placed) or "pedido" (sophia_ai_order,
orders grouped per station) instead of "inspection"; SlingFlow
registrations also get their recipients.
"""

from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Sequence
from uuid import uuid4

from ..contacts import ContactDirectory
from ..orders import FuelOrder, group_by_station
from ..tanks.models import TankReading, format_measurement_date
from .registry import WebhookRegistration
from .validation import IntegrationType, WebhookEventType

INSPECTOR = "Sistema de Monitoramento FueLogic"
METADATA = {"source": "Fuelogic Enterprise", "version": "1.0"}

PayloadBuilder = Callable[
    [Dict[str, Any], Sequence[TankReading], WebhookRegistration, ContactDirectory],
    Dict[str, Any],
]


def build_envelope(tanks: Sequence[TankReading], test: bool = False) -> Dict[str, Any]:
    """Shared inspection envelope for tanks with water."""
    timestamp = datetime.now(timezone.utc).isoformat()
    envelope = {
        "event_id": f"inspection_alert_{uuid4().hex}",
        "event_type": "inspection_alert",
        "timestamp": timestamp,
        "inspection": {
            "report_id": f"INS-{uuid4().hex[:8].upper()}",
            "timestamp": timestamp,
            "inspector": INSPECTOR,
            "description": (
                f"Foi detectada água em {len(tanks)} tanque(s) "
                f"que requerem atenção imediata"
            ),
            "severity": "high",
            "alerta_tipo": "agua_no_tanque",
            "alertas": [_alert_line(tank) for tank in tanks],
        },
        "metadata": dict(METADATA),
    }
    if test:
        envelope["test"] = True
    return envelope


def _alert_line(tank: TankReading) -> Dict[str, Any]:
    return {
        "cliente": tank.client_name,
        "unidade": tank.station_name,
        "tanque": tank.raw.get("Tanque", tank.tank_id),
        "produto": tank.product_name,
        "quantidade_agua": f"{tank.water_amount:.1f}L",
        "data_medicao": format_measurement_date(tank.measured_at),
    }


def _generic(envelope, tanks, webhook, contacts) -> Dict[str, Any]:
    # Raw telemetry records, passthrough fields included
    return {**envelope, "tanques": [dict(tank.raw) for tank in tanks]}


def _slingflow(envelope, tanks, webhook, contacts) -> Dict[str, Any]:
    recipients = contacts.resolve(webhook.contact_ids)
    return {
        **envelope,
        "integration": IntegrationType.SLINGFLOW.value,
        "template": "inspection_alert",
        "message": envelope["inspection"]["description"],
        "recipients": [contact.as_recipient() for contact in recipients],
        "details": {"webhook_id": webhook.id, "webhook_name": webhook.name},
    }


def _sophia_ai(envelope, tanks, webhook, contacts) -> Dict[str, Any]:
    stations = sorted({tank.station_name for tank in tanks if tank.station_name})
    lines = [
        f"{line['unidade']} tanque {line['tanque']} ({line['produto']}): "
        f"{line['quantidade_agua']} de água"
        for line in envelope["inspection"]["alertas"]
    ]
    return {
        **envelope,
        "integration": IntegrationType.SOPHIA_AI.value,
        "tanques": [dict(tank.raw) for tank in tanks],
        "conversa": {
            "canal": "webhook",
            "idioma": "pt-BR",
            "intencao": "alerta_agua_tanque",
            "mensagem": envelope["inspection"]["description"] + ": " + "; ".join(lines),
            "contexto": {
                "total_tanques": len(tanks),
                "postos": stations,
            },
        },
    }


PAYLOAD_BUILDERS: Dict[IntegrationType, PayloadBuilder] = {
    IntegrationType.GENERIC: _generic,
    IntegrationType.SLINGFLOW: _slingflow,
    IntegrationType.SOPHIA_AI: _sophia_ai,
}


def build_payload(
    webhook: WebhookRegistration,
    tanks: Sequence[TankReading],
    contacts: ContactDirectory,
    test: bool = False,
) -> Dict[str, Any]:
    """Inspection alert payload in the dialect of webhook.integration."""
    envelope = build_envelope(tanks, test=test)
    return PAYLOAD_BUILDERS[webhook.integration](envelope, tanks, webhook, contacts)


def sample_tanks() -> List[TankReading]:
    """Two contaminated tanks used by webhook test deliveries."""
    measured_at = datetime.now(timezone.utc).isoformat()
    records = [
        {
            "Cliente": "REDE SLING",
            "Unidade": "POSTO SLING 2",
            "IdUnidade": 776,
            "Tanque": 6,
            "Produto": "GASOLINA GRID",
            "QuantidadeAtual": 5791.7,
            "CapacidadeDoTanque": 15627.7,
            "QuantidadeDeAgua": 29.6,
            "DataMedicao": measured_at,
        },
        {
            "Cliente": "REDE SLING",
            "Unidade": "POSTO SLING 3",
            "IdUnidade": 781,
            "Tanque": 1,
            "Produto": "GASOLINA COMUM",
            "QuantidadeAtual": 9424.7,
            "CapacidadeDoTanque": 15320.0,
            "QuantidadeDeAgua": 25.1,
            "DataMedicao": measured_at,
        },
    ]
    return [TankReading.from_telemetry(record) for record in records]


def _order_envelope(event_type: WebhookEventType) -> Dict[str, Any]:
    return {
        "event_id": f"{event_type.value}_{uuid4().hex}",
        "event_type": event_type.value,
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "metadata": dict(METADATA),
    }


def _with_recipients(payload, webhook, contacts, template: str) -> Dict[str, Any]:
    """SlingFlow variant of an order payload: adds recipients and template."""
    if webhook.integration is not IntegrationType.SLINGFLOW:
        return payload
    recipients = contacts.resolve(webhook.contact_ids)
    return {
        **payload,
        "integration": IntegrationType.SLINGFLOW.value,
        "template": template,
        "recipients": [contact.as_recipient() for contact in recipients],
    }


def build_order_payload(
    webhook: WebhookRegistration,
    order: FuelOrder,
    contacts: ContactDirectory,
) -> Dict[str, Any]:
    """order_placed payload for a single order."""
    payload = {**_order_envelope(WebhookEventType.ORDER_PLACED), "order": order.to_payload()}
    return _with_recipients(payload, webhook, contacts, "order_notification")


def build_sophia_order_payload(
    webhook: WebhookRegistration,
    orders: Sequence[FuelOrder],
    contacts: ContactDirectory,
) -> Dict[str, Any]:
    """sophia_ai_order payload: the batch grouped per station."""
    envelope = _order_envelope(WebhookEventType.SOPHIA_AI_ORDER)
    envelope["metadata"].update({
        "gerado_por": "Sistema de Pedidos Automatizados",
        "interface": "Webhook Sophia AI",
    })
    payload = {
        **envelope,
        "pedido": {
            "data_solicitacao": envelope["timestamp"],
            "status": "pendente",
            **group_by_station(orders),
        },
    }
    return _with_recipients(payload, webhook, contacts, "sophia_ai_order")
