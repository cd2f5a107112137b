# fuelogic/api/routes_orders.py
"""
Order notification API routes.

Announces a placed fuel order to the caller's order_placed webhooks.
"""

from typing import Any, Dict

from fastapi import APIRouter, Body, Depends

from ..logging import get_api_logger
from ..orders import FuelOrder
from ..security import Principal
from ..webhooks import AlertDispatcher, DispatchReport
from .deps import get_dispatcher, get_principal

router = APIRouter(prefix="/orders", tags=["orders"])
logger = get_api_logger()


def order_report_message(report: DispatchReport) -> str:
    if report.skipped_reason == AlertDispatcher.NO_ORDERS:
        return "Nenhum pedido informado"
    if report.skipped_reason == AlertDispatcher.NO_ACTIVE_WEBHOOKS:
        return "Nenhum webhook de pedidos configurado"
    return (
        f"Pedido notificado para {report.success_count} de "
        f"{len(report.results)} webhooks configurados"
    )


@router.post("/notify")
def notify_order(
    order: Dict[str, Any] = Body(...),
    principal: Principal = Depends(get_principal),
    dispatcher: AlertDispatcher = Depends(get_dispatcher),
) -> Dict[str, Any]:
    """
    Send an order_placed event for one order.

    Body: {"id": 42, "station_id": 776, "tank_id": 6,
           "product_type": "GASOLINA COMUM", "quantity": 5000,
           "scheduled_date": "2025-06-03T08:00:00Z", "notes": "..."}
    """
    parsed = FuelOrder.from_request(order)
    logger.bind(owner_id=principal.owner_id).info("order_notification_requested", order_id=parsed.id)

    report = dispatcher.send_order_notification(parsed, owner_id=principal.owner_id)
    return {
        "success": report.overall_success,
        "message": order_report_message(report),
        "resultados": [result.to_api() for result in report.results],
    }
