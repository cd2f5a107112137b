# fuelogic/api/routes_alerts.py
"""
Inspection alert API routes.

Sends water-contamination alerts for a batch of tank readings to every
active inspection_alert webhook.
"""

from typing import Any, Dict, List

from fastapi import APIRouter, Body, Depends

from ..logging import get_api_logger
from ..security import Principal
from ..tanks import TankReading
from ..webhooks import AlertDispatcher, DispatchReport
from .deps import get_dispatcher, get_principal

router = APIRouter(prefix="/inspection-alerts", tags=["inspection-alerts"])
logger = get_api_logger()

SKIPPED_MESSAGES = {
    AlertDispatcher.NO_CONTAMINATED_TANKS: "Nenhum tanque com água detectada",
    AlertDispatcher.NO_ACTIVE_WEBHOOKS: "Nenhum webhook de alerta de inspeção configurado",
}


def report_message(report: DispatchReport) -> str:
    if report.skipped_reason:
        return SKIPPED_MESSAGES[report.skipped_reason]
    return (
        f"Alertas enviados para {report.success_count} de "
        f"{len(report.results)} webhooks configurados"
    )


@router.post("/send")
def send_inspection_alerts(
    tanks: List[Dict[str, Any]] = Body(...),
    principal: Principal = Depends(get_principal),
    dispatcher: AlertDispatcher = Depends(get_dispatcher),
) -> Dict[str, Any]:
    """
    Send inspection alerts for tanks with water.

    Body: JSON array of telemetry records, for example

        [{"Cliente": "REDE SLING", "Unidade": "POSTO SLING 2", "Tanque": 6,
          "Produto": "GASOLINA GRID", "QuantidadeDeAgua": 29.6,
          "DataMedicao": "2025-06-01T10:00:00Z"}]

    Tanks without water are ignored. The response lists one result per
    webhook; success is true when at least one webhook accepted the alert.
    """
    request_log = logger.bind(owner_id=principal.owner_id)
    readings = [TankReading.from_telemetry(record) for record in tanks]

    request_log.info("inspection_alert_requested", reading_count=len(readings))
    report = dispatcher.send_inspection_alerts(readings, owner_id=principal.owner_id)
    if not report.overall_success:
        request_log.warning(
            "inspection_alert_not_delivered",
            reason=report.skipped_reason or "all_failed",
            webhook_count=len(report.results),
        )

    return {
        "success": report.overall_success,
        "message": report_message(report),
        "resultados": [result.to_api() for result in report.results],
    }
