# fuelogic/api/routes_configurations.py
"""
Threshold configuration API routes.
"""

from typing import Any, Dict

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel

from ..security import Principal
from ..tanks import ConfigurationStore, ThresholdConfig, classify_percent
from .deps import get_config_store, get_principal

router = APIRouter(prefix="/configurations", tags=["configurations"])


class ThresholdRequest(BaseModel):
    """Threshold values in percent."""
    threshold_critico: float
    threshold_atencao: float


@router.get("")
def get_configuration(
    principal: Principal = Depends(get_principal),
    store: ConfigurationStore = Depends(get_config_store),
) -> Dict[str, Any]:
    """Current thresholds of the caller (20/50 if never set)."""
    return store.get(principal.owner_id).to_api()


@router.put("")
def update_configuration(
    request: ThresholdRequest,
    principal: Principal = Depends(get_principal),
    store: ConfigurationStore = Depends(get_config_store),
) -> Dict[str, Any]:
    """Replace the caller's thresholds; 400 unless 0 <= critico < atencao <= 100."""
    config = ThresholdConfig(
        critical_percent=request.threshold_critico,
        attention_percent=request.threshold_atencao,
    )
    return store.update(principal.owner_id, config).to_api()


@router.get("/status")
def get_status(
    percentual: float = Query(..., description="Fill level in percent"),
    principal: Principal = Depends(get_principal),
    store: ConfigurationStore = Depends(get_config_store),
) -> Dict[str, Any]:
    """Status band of a fill percentage under the caller's thresholds."""
    config = store.get(principal.owner_id)
    return {"status": classify_percent(percentual, config).value}
