# fuelogic/webhooks/executor.py
"""
Alert dispatcher - fans events out to registered webhooks.

One HTTP POST per active registration, all in parallel: the thread pool of
a dispatch has one worker per registration, so every attempt starts right
away. Each attempt has its own timeout, counted from when it starts, and
its own outcome; a slow or failing endpoint never delays or fails the
others. No retries: one attempt per dispatch.

Events:
- inspection_alert: tanks with water (send_inspection_alerts)
- order_placed: a single fuel order (send_order_notification)
- sophia_ai_order: a batch of orders grouped per station (send_orders_to_sophia)
"""

import threading
import time
from concurrent.futures import FIRST_COMPLETED, Future, ThreadPoolExecutor, wait
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Sequence, Set

import httpx

from ..contacts import ContactDirectory
from ..errors import DeliveryError
from ..logging import get_logger
from ..orders import FuelOrder
from ..tanks.models import TankReading
from .payloads import build_order_payload, build_payload, build_sophia_order_payload, sample_tanks
from .registry import WebhookRegistration, WebhookRegistry
from .validation import WebhookEventType

logger = get_logger(__name__)

USER_AGENT = "FueLogic-Webhook/1.0"

# Extra wait on top of the request timeout before an attempt is abandoned
DEADLINE_GRACE_SECONDS = 1.0

# How often the fan-out loop checks running attempts against their deadline
POLL_SECONDS = 0.05


@dataclass
class DispatchResult:
    """Outcome of one delivery attempt."""
    webhook_id: str
    name: str
    integration: str
    success: bool
    status_code: Optional[int] = None
    response_body: Optional[str] = None
    error_message: Optional[str] = None
    error_kind: Optional[str] = None  # None, "http_status" or "network"

    def to_api(self) -> Dict[str, Any]:
        return {
            "webhook_id": self.webhook_id,
            "name": self.name,
            "integration": self.integration,
            "success": self.success,
            "status_code": self.status_code,
            "response_body": self.response_body,
            "error_message": self.error_message,
            "error_kind": self.error_kind,
        }


@dataclass
class DispatchReport:
    """
    Aggregated outcome of a dispatch.

    overall_success is True when at least one endpoint accepted the event;
    partial failures are itemized in results. An empty results list means
    nothing was sent (skipped_reason says why).
    """
    results: List[DispatchResult] = field(default_factory=list)
    tank_count: int = 0
    order_count: int = 0
    skipped_reason: Optional[str] = None

    @property
    def overall_success(self) -> bool:
        return any(r.success for r in self.results)

    @property
    def success_count(self) -> int:
        return sum(1 for r in self.results if r.success)


class AlertDispatcher:
    """
    Delivers events to every active webhook subscribed to them.

    Usage:
        with AlertDispatcher(registry, contacts, timeout_seconds=10) as dispatcher:
            report = dispatcher.send_inspection_alerts(readings)
    """

    NO_CONTAMINATED_TANKS = "no_contaminated_tanks"
    NO_ORDERS = "no_orders"
    NO_ACTIVE_WEBHOOKS = "no_active_webhooks"

    def __init__(
        self,
        registry: WebhookRegistry,
        contacts: ContactDirectory,
        timeout_seconds: float = 10.0,
        client: Optional[httpx.Client] = None,
    ):
        self.registry = registry
        self.contacts = contacts
        self.timeout = timeout_seconds
        self.client = client or httpx.Client(timeout=timeout_seconds)
        # Attempts past their deadline that are still running; close() waits for them
        self._abandoned: Set[Future] = set()
        self._lock = threading.Lock()

    def send_inspection_alerts(
        self,
        readings: Iterable[TankReading],
        owner_id: Optional[str] = None,
    ) -> DispatchReport:
        """
        Send one alert batch for the readings that have water.

        Args:
            readings: Tank readings; those without water are ignored
            owner_id: Only use this owner's registrations (all owners if None)

        Returns a report in every case; delivery failures are recorded per
        endpoint and never raised.
        """
        event = WebhookEventType.INSPECTION_ALERT
        tanks = [reading for reading in readings if reading.has_water]
        if not tanks:
            logger.info("dispatch_skipped", event_type=event.value, reason=self.NO_CONTAMINATED_TANKS)
            return DispatchReport(skipped_reason=self.NO_CONTAMINATED_TANKS)

        # Snapshot: registrations changed from here on do not affect this batch
        webhooks = self.registry.list_active_for(event, owner_id=owner_id)
        payloads = [build_payload(webhook, tanks, self.contacts) for webhook in webhooks]
        return self._dispatch(event, webhooks, payloads, DispatchReport(tank_count=len(tanks)))

    def send_order_notification(
        self,
        order: FuelOrder,
        owner_id: Optional[str] = None,
    ) -> DispatchReport:
        """Announce one order to the active order_placed webhooks."""
        event = WebhookEventType.ORDER_PLACED
        webhooks = self.registry.list_active_for(event, owner_id=owner_id)
        payloads = [build_order_payload(webhook, order, self.contacts) for webhook in webhooks]
        return self._dispatch(event, webhooks, payloads, DispatchReport(order_count=1))

    def send_orders_to_sophia(
        self,
        orders: Iterable[FuelOrder],
        owner_id: Optional[str] = None,
    ) -> DispatchReport:
        """Send a batch of orders, grouped per station, to the active sophia_ai_order webhooks."""
        event = WebhookEventType.SOPHIA_AI_ORDER
        orders = list(orders)
        if not orders:
            logger.info("dispatch_skipped", event_type=event.value, reason=self.NO_ORDERS)
            return DispatchReport(skipped_reason=self.NO_ORDERS)

        webhooks = self.registry.list_active_for(event, owner_id=owner_id)
        payloads = [build_sophia_order_payload(webhook, orders, self.contacts) for webhook in webhooks]
        return self._dispatch(event, webhooks, payloads, DispatchReport(order_count=len(orders)))

    def test_webhook(self, webhook: WebhookRegistration) -> DispatchResult:
        """Send a sample inspection alert to a single registration."""
        payload = build_payload(webhook, sample_tanks(), self.contacts, test=True)
        return self._deliver(webhook, payload, test=True)

    def _dispatch(
        self,
        event: WebhookEventType,
        webhooks: Sequence[WebhookRegistration],
        payloads: Sequence[Dict[str, Any]],
        report: DispatchReport,
    ) -> DispatchReport:
        if not webhooks:
            logger.info("dispatch_skipped", event_type=event.value, reason=self.NO_ACTIVE_WEBHOOKS)
            report.skipped_reason = self.NO_ACTIVE_WEBHOOKS
            return report

        logger.info(
            "firing_webhooks",
            event_type=event.value,
            webhook_count=len(webhooks),
            tank_count=report.tank_count,
            order_count=report.order_count,
        )
        report.results = self._fan_out(webhooks, payloads)

        logger.info(
            "dispatch_complete",
            event_type=event.value,
            webhook_count=len(report.results),
            success_count=report.success_count,
            overall_success=report.overall_success,
        )
        return report

    def _fan_out(
        self,
        webhooks: Sequence[WebhookRegistration],
        payloads: Sequence[Dict[str, Any]],
    ) -> List[DispatchResult]:
        """
        Deliver all payloads in parallel; results follow registration order.

        An attempt still running timeout + grace after it started is
        abandoned and reported as a network failure. Attempts that have not
        started are never abandoned.
        """
        budget = self.timeout + DEADLINE_GRACE_SECONDS
        started: Dict[int, float] = {}

        def attempt(index: int, webhook: WebhookRegistration, payload: Dict[str, Any]):
            started[index] = time.monotonic()
            return self._deliver(webhook, payload)

        executor = ThreadPoolExecutor(
            max_workers=len(webhooks),
            thread_name_prefix="webhook-dispatch",
        )
        try:
            futures = {
                executor.submit(attempt, index, webhook, payload): index
                for index, (webhook, payload) in enumerate(zip(webhooks, payloads))
            }
            results: List[Optional[DispatchResult]] = [None] * len(webhooks)
            pending = set(futures)

            while pending:
                done, pending = wait(pending, timeout=POLL_SECONDS, return_when=FIRST_COMPLETED)
                for future in done:
                    index = futures[future]
                    results[index] = self._collect(webhooks[index], future)

                now = time.monotonic()
                for future in list(pending):
                    index = futures[future]
                    start = started.get(index)
                    if start is None or now - start < budget:
                        continue
                    pending.discard(future)
                    self._abandon(future)
                    logger.warning(
                        "webhook_delivery_abandoned",
                        webhook_id=webhooks[index].id,
                        webhook_name=webhooks[index].name,
                    )
                    results[index] = _network_failure(
                        webhooks[index], f"Timeout: no response within {self.timeout}s"
                    )
            return results
        finally:
            # Abandoned attempts are tracked in self._abandoned and joined by close()
            executor.shutdown(wait=False)

    def _collect(self, webhook: WebhookRegistration, future: Future) -> DispatchResult:
        try:
            return future.result()
        except Exception as e:
            # _deliver records its own failures; this is a bug path
            logger.exception(
                "webhook_delivery_crashed",
                webhook_id=webhook.id,
                error=str(e),
            )
            return _network_failure(webhook, str(e))

    def _abandon(self, future: Future) -> None:
        with self._lock:
            self._abandoned.add(future)
        future.add_done_callback(self._forget)

    def _forget(self, future: Future) -> None:
        with self._lock:
            self._abandoned.discard(future)

    def _deliver(
        self,
        webhook: WebhookRegistration,
        payload: Dict[str, Any],
        test: bool = False,
    ) -> DispatchResult:
        """Deliver payload to one webhook; every outcome becomes a DispatchResult."""
        try:
            response = self._post(webhook, payload, test=test)
        except DeliveryError as e:
            log = logger.warning if e.kind == "http_status" else logger.error
            log(
                "webhook_delivery_failed",
                webhook_id=webhook.id,
                webhook_name=webhook.name,
                url=webhook.url,
                kind=e.kind,
                status_code=e.http_status,
                error=e.message,
            )
            return DispatchResult(
                webhook_id=webhook.id,
                name=webhook.name,
                integration=webhook.integration.value,
                success=False,
                status_code=e.http_status,
                response_body=e.response_body,
                error_message=e.message,
                error_kind=e.kind,
            )

        logger.info(
            "webhook_delivery_complete",
            webhook_id=webhook.id,
            webhook_name=webhook.name,
            status_code=response.status_code,
        )
        return DispatchResult(
            webhook_id=webhook.id,
            name=webhook.name,
            integration=webhook.integration.value,
            success=True,
            status_code=response.status_code,
            response_body=_truncate(response.text),
        )

    def _post(
        self,
        webhook: WebhookRegistration,
        payload: Dict[str, Any],
        test: bool = False,
    ) -> httpx.Response:
        """
        POST payload to webhook.url.

        Raises:
            DeliveryError: non-2xx answer ("http_status") or transport
                failure/timeout ("network")
        """
        headers = {
            "Content-Type": "application/json",
            "User-Agent": USER_AGENT,
            "X-Webhook-Event": payload.get("event_type", ""),
            "X-Webhook-Integration": webhook.integration.value,
            **webhook.headers,  # Custom headers (e.g., Authorization)
        }
        if test:
            headers["X-Webhook-Test"] = "true"

        logger.info(
            "webhook_delivery_attempt",
            webhook_id=webhook.id,
            webhook_name=webhook.name,
            url=webhook.url,
            integration=webhook.integration.value,
        )

        try:
            response = self.client.post(
                webhook.url,
                json=payload,
                headers=headers,
                timeout=self.timeout,
            )
        except httpx.TimeoutException as e:
            raise DeliveryError("network", f"Timeout: {e}")
        except httpx.HTTPError as e:
            raise DeliveryError("network", str(e) or e.__class__.__name__)

        if not 200 <= response.status_code < 300:
            raise DeliveryError(
                "http_status",
                f"HTTP {response.status_code}",
                status_code=response.status_code,
                response_body=_truncate(response.text),
            )
        return response

    def close(self, timeout: Optional[float] = None):
        """
        Wait for abandoned attempts, then close the HTTP client.

        Args:
            timeout: Longest wait for abandoned attempts (default: the
                request timeout plus grace)
        """
        with self._lock:
            abandoned = list(self._abandoned)
        if abandoned:
            logger.info("waiting_for_abandoned_deliveries", count=len(abandoned))
            wait(abandoned, timeout=self.timeout + DEADLINE_GRACE_SECONDS if timeout is None else timeout)
        self.client.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()


def _network_failure(webhook: WebhookRegistration, message: str) -> DispatchResult:
    return DispatchResult(
        webhook_id=webhook.id,
        name=webhook.name,
        integration=webhook.integration.value,
        success=False,
        error_message=message,
        error_kind="network",
    )


def _truncate(body: Optional[str], limit: int = 500) -> Optional[str]:
    return body[:limit] if body else None
