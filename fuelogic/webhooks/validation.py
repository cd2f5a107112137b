# fuelogic/webhooks/validation.py
"""
Webhook integration types and their invariants.

Each integration has exactly one validation function. The registry runs it
on every write (register, update, enable) against the complete record, so a
partial update can never leave a registration that would have been refused
at creation.

Adding an integration means adding an IntegrationType member, a validator
here and a payload builder in payloads.py.
"""

import ipaddress
import socket
from enum import Enum
from typing import TYPE_CHECKING, Callable, Dict
from urllib.parse import urlparse

from ..contacts import ContactDirectory
from ..errors import ValidationError

if TYPE_CHECKING:
    from .registry import WebhookRegistration


class IntegrationType(Enum):
    """Payload dialect expected by a webhook endpoint."""
    GENERIC = "generic"
    SLINGFLOW = "slingflow"
    SOPHIA_AI = "sophia_ai"


class WebhookEventType(Enum):
    """Events a webhook can subscribe to."""
    INSPECTION_ALERT = "inspection_alert"
    ORDER_PLACED = "order_placed"
    SOPHIA = "sophia"
    SOPHIA_AI_ORDER = "sophia_ai_order"


# SSRF protection - block private/internal IP addresses
BLOCKED_IP_RANGES = [
    ipaddress.ip_network("10.0.0.0/8"),       # Private
    ipaddress.ip_network("172.16.0.0/12"),    # Private
    ipaddress.ip_network("192.168.0.0/16"),   # Private
    ipaddress.ip_network("127.0.0.0/8"),      # Loopback
    ipaddress.ip_network("169.254.0.0/16"),   # Link-local
    ipaddress.ip_network("::1/128"),          # IPv6 loopback
    ipaddress.ip_network("fc00::/7"),         # IPv6 unique local
    ipaddress.ip_network("fe80::/10"),        # IPv6 link-local
]

BLOCKED_HOSTNAMES = [
    "localhost",
    "127.0.0.1",
    "0.0.0.0",
    "metadata.google.internal",  # GCP metadata
    "169.254.169.254",           # AWS/Azure metadata
]


def parse_integration(value) -> IntegrationType:
    try:
        return IntegrationType(value)
    except ValueError:
        valid = ", ".join(i.value for i in IntegrationType)
        raise ValidationError(
            "integration",
            f"Tipo de integração inválido: {value}. Tipos válidos: {valid}",
        )


def parse_event_type(value) -> WebhookEventType:
    try:
        return WebhookEventType(value)
    except ValueError:
        valid = ", ".join(e.value for e in WebhookEventType)
        raise ValidationError(
            "event_type",
            f"Tipo de evento inválido: {value}. Tipos válidos: {valid}",
        )


def validate_webhook_url(url: str, allow_internal: bool = False) -> None:
    """
    Validate a webhook URL and refuse internal destinations.

    Raises ValidationError(field="url") on any problem.
    """
    parsed = urlparse(url)

    if parsed.scheme not in ("http", "https"):
        raise ValidationError(
            "url",
            f"Esquema de URL inválido: {parsed.scheme or '(vazio)'}. Apenas http/https são permitidos.",
        )

    hostname = parsed.hostname
    if not hostname:
        raise ValidationError("url", "URL inválida: hostname ausente")

    if allow_internal:
        return

    if hostname.lower() in BLOCKED_HOSTNAMES:
        raise ValidationError(
            "url",
            f"Hostname bloqueado: {hostname}. Endereços internos não são permitidos.",
        )

    try:
        ip_str = socket.gethostbyname(hostname)
    except socket.gaierror:
        # Unresolvable from here; may still be a valid external host
        return

    ip = ipaddress.ip_address(ip_str)
    for blocked_range in BLOCKED_IP_RANGES:
        if ip in blocked_range:
            raise ValidationError(
                "url",
                f"Faixa de IP bloqueada: {hostname} resolve para {ip_str}. "
                f"Endereços internos não são permitidos para webhooks.",
            )


class WebhookValidator:
    """Runs the invariant set of a registration's integration type."""

    def __init__(self, contacts: ContactDirectory, allow_internal: bool = False):
        self.contacts = contacts
        self.allow_internal = allow_internal
        self._validators: Dict[IntegrationType, Callable[["WebhookRegistration"], None]] = {
            IntegrationType.GENERIC: self._validate_generic,
            IntegrationType.SLINGFLOW: self._validate_slingflow,
            IntegrationType.SOPHIA_AI: self._validate_sophia_ai,
        }

    def validate(self, webhook: "WebhookRegistration") -> None:
        if not webhook.name or not webhook.name.strip():
            raise ValidationError("name", "Nome é obrigatório")
        self._validators[webhook.integration](webhook)

    def _validate_generic(self, webhook: "WebhookRegistration") -> None:
        if not webhook.url:
            raise ValidationError("url", "URL é obrigatória para webhooks genéricos")
        validate_webhook_url(webhook.url, self.allow_internal)

    def _validate_slingflow(self, webhook: "WebhookRegistration") -> None:
        if not webhook.contact_ids:
            raise ValidationError(
                "contact_ids",
                "É necessário selecionar pelo menos um contato para SlingFlow",
            )
        missing = self.contacts.missing(webhook.contact_ids)
        if missing:
            raise ValidationError(
                "contact_ids",
                f"Contatos inexistentes ou inativos: {', '.join(missing)}",
            )
        if not webhook.url:
            raise ValidationError("url", "URL é obrigatória para webhooks SlingFlow")
        validate_webhook_url(webhook.url, self.allow_internal)

    def _validate_sophia_ai(self, webhook: "WebhookRegistration") -> None:
        if not webhook.url:
            raise ValidationError("url", "URL é obrigatória para webhooks da IA Sophia")
        validate_webhook_url(webhook.url, self.allow_internal)
