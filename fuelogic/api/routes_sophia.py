# fuelogic/api/routes_sophia.py
"""
Sophia AI routes.

- /sophia/chat forwards chat messages from the dashboard widget to the
  configured Sophia endpoint, so the browser never talks to it directly
- /sophia/orders hands order batches to sophia_ai_order webhooks
"""

from typing import Any, Dict, List, Optional

import httpx
from fastapi import APIRouter, Depends, HTTPException, Request
from pydantic import BaseModel

from ..errors import ConfigurationError
from ..logging import get_api_logger
from ..orders import FuelOrder
from ..security import Principal
from ..settings import Settings
from ..webhooks import AlertDispatcher
from .deps import get_dispatcher, get_principal, get_settings
from .routes_orders import order_report_message

router = APIRouter(prefix="/sophia", tags=["sophia"])
logger = get_api_logger()


class ChatRequest(BaseModel):
    """A message typed in the chat widget."""
    message: str
    session_id: Optional[str] = None


@router.post("/chat")
def chat(
    request: ChatRequest,
    http_request: Request,
    principal: Principal = Depends(get_principal),
    settings: Settings = Depends(get_settings),
) -> Dict[str, Any]:
    """
    Relay a message to Sophia and return its answer.

    503 when no Sophia endpoint is configured, 502 when it fails.
    """
    if not settings.sophia_chat_url:
        raise ConfigurationError("Endpoint da IA Sophia não configurado (SOPHIA_CHAT_URL)")

    client: httpx.Client = http_request.app.state.http_client
    body = {
        "message": request.message,
        "session_id": request.session_id or principal.owner_id,
        "user_id": principal.owner_id,
    }

    try:
        response = client.post(
            settings.sophia_chat_url,
            json=body,
            timeout=settings.sophia_timeout_seconds,
        )
    except httpx.HTTPError as e:
        logger.error("sophia_chat_failed", owner_id=principal.owner_id, error=str(e))
        raise HTTPException(status_code=502, detail=f"Falha ao contatar a IA Sophia: {e}")

    if not 200 <= response.status_code < 300:
        logger.warning(
            "sophia_chat_rejected",
            owner_id=principal.owner_id,
            status_code=response.status_code,
        )
        raise HTTPException(
            status_code=502,
            detail=f"IA Sophia respondeu com erro: Status {response.status_code}",
        )

    try:
        return {"success": True, "data": response.json()}
    except ValueError:
        return {"success": True, "data": {"reply": response.text}}


class SophiaOrdersRequest(BaseModel):
    """Orders to hand to the Sophia ordering assistant."""
    orders: List[Dict[str, Any]]


@router.post("/orders")
def send_orders(
    request: SophiaOrdersRequest,
    principal: Principal = Depends(get_principal),
    dispatcher: AlertDispatcher = Depends(get_dispatcher),
) -> Dict[str, Any]:
    """
    Send a batch of orders, grouped per station, to the caller's
    sophia_ai_order webhooks.
    """
    orders = [FuelOrder.from_request(order) for order in request.orders]
    logger.info("sophia_orders_requested", owner_id=principal.owner_id, order_count=len(orders))

    report = dispatcher.send_orders_to_sophia(orders, owner_id=principal.owner_id)
    return {
        "success": report.overall_success,
        "message": order_report_message(report),
        "resultados": [result.to_api() for result in report.results],
    }
