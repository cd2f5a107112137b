"""
Webhook module for outbound notifications.

Registers webhook destinations and fires HTTP POST requests when tanks
need inspection and when fuel orders are placed.
"""

from .executor import AlertDispatcher, DispatchReport, DispatchResult
from .registry import WebhookRegistration, WebhookRegistry
from .validation import IntegrationType, WebhookEventType, WebhookValidator

__all__ = [
    "AlertDispatcher",
    "DispatchReport",
    "DispatchResult",
    "WebhookRegistration",
    "WebhookRegistry",
    "IntegrationType",
    "WebhookEventType",
    "WebhookValidator",
]
