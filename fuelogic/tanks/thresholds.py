# fuelogic/tanks/thresholds.py
"""
Tank status classification.

Status bands, first match wins:
- ALERTA: water detected in the tank, whatever the fill level
- CRITICO: fill below the critical threshold
- ATENCAO: fill below the attention threshold
- OPERACIONAL: everything else
"""

from dataclasses import dataclass
from enum import Enum
from typing import Dict, Iterable

from ..errors import ValidationError
from .models import TankReading

DEFAULT_CRITICAL_PERCENT = 20.0
DEFAULT_ATTENTION_PERCENT = 50.0


class TankStatus(Enum):
    """Dashboard status of a tank."""
    ALERTA = "alerta"
    CRITICO = "critico"
    ATENCAO = "atencao"
    OPERACIONAL = "operacional"


@dataclass(frozen=True)
class ThresholdConfig:
    """Fill-percentage cutoffs. 0 <= critical < attention <= 100."""
    critical_percent: float = DEFAULT_CRITICAL_PERCENT
    attention_percent: float = DEFAULT_ATTENTION_PERCENT

    def validate(self) -> "ThresholdConfig":
        """Raise ValidationError unless the invariant holds; return self."""
        if not 0 <= self.critical_percent <= 100:
            raise ValidationError(
                "threshold_critico",
                "Threshold crítico deve estar entre 0 e 100%",
            )
        if not 0 <= self.attention_percent <= 100:
            raise ValidationError(
                "threshold_atencao",
                "Threshold de atenção deve estar entre 0 e 100%",
            )
        if self.critical_percent >= self.attention_percent:
            raise ValidationError(
                "threshold_critico",
                "Threshold crítico deve ser menor que threshold de atenção",
            )
        return self

    def to_api(self) -> Dict[str, float]:
        return {
            "threshold_critico": self.critical_percent,
            "threshold_atencao": self.attention_percent,
        }


def classify_percent(fill_percent: float, config: ThresholdConfig) -> TankStatus:
    """Classify a bare fill percentage (no water information)."""
    if fill_percent < config.critical_percent:
        return TankStatus.CRITICO
    if fill_percent < config.attention_percent:
        return TankStatus.ATENCAO
    return TankStatus.OPERACIONAL


def classify(reading: TankReading, config: ThresholdConfig) -> TankStatus:
    """
    Classify a tank reading.

    Water contamination takes precedence over fill level, so a full tank
    with water is still ALERTA. Raises ValidationError for readings without
    a positive capacity when the fill level is needed.
    """
    if reading.has_water:
        return TankStatus.ALERTA
    return classify_percent(reading.fill_percent, config)


def summarize(
    readings: Iterable[TankReading],
    config: ThresholdConfig,
) -> Dict[str, int]:
    """Count readings per status; every status is present in the result."""
    counts = {status.value: 0 for status in TankStatus}
    for reading in readings:
        counts[classify(reading, config).value] += 1
    return counts
