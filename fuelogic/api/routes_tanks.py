# fuelogic/api/routes_tanks.py
"""
Tank classification API routes.
"""

from typing import Any, Dict, List

from fastapi import APIRouter, Body, Depends

from ..security import Principal
from ..tanks import ConfigurationStore, TankReading, classify, summarize
from .deps import get_config_store, get_principal

router = APIRouter(prefix="/tanks", tags=["tanks"])


@router.post("/classify")
def classify_tanks(
    tanks: List[Dict[str, Any]] = Body(...),
    principal: Principal = Depends(get_principal),
    store: ConfigurationStore = Depends(get_config_store),
) -> Dict[str, Any]:
    """
    Classify telemetry records under the caller's thresholds.

    Returns the status of each tank and the count per status.
    """
    config = store.get(principal.owner_id)
    readings = [TankReading.from_telemetry(record) for record in tanks]

    items = []
    for reading in readings:
        status = classify(reading, config)
        items.append({
            "tank_id": reading.tank_id,
            "station_id": reading.station_id,
            "station_name": reading.station_name,
            "product_name": reading.product_name,
            "fill_percent": (
                round(reading.fill_percent, 2)
                if reading.capacity and reading.capacity > 0 else None
            ),
            "water_amount": reading.water_amount,
            "status": status.value,
        })

    return {
        "thresholds": config.to_api(),
        "tanks": items,
        "counts": summarize(readings, config),
    }
