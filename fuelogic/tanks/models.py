# fuelogic/tanks/models.py
"""
Tank reading snapshot.

Readings arrive from the telemetry poller in its own field naming
(Cliente, Unidade, Tanque, QuantidadeDeAgua, ...). They are parsed once
into TankReading; the original mapping is kept in `raw` so integrations
that want the untouched record can forward it.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Optional

from ..errors import ValidationError


@dataclass(frozen=True)
class TankReading:
    """Point-in-time measurement of one tank."""
    tank_id: str
    station_id: Optional[str]
    station_name: Optional[str]
    client_name: Optional[str]
    product_name: Optional[str]
    current_volume: float
    capacity: Optional[float]
    water_amount: float
    measured_at: Optional[str] = None
    raw: Dict[str, Any] = field(default_factory=dict, compare=False)

    @property
    def has_water(self) -> bool:
        return self.water_amount > 0

    @property
    def fill_percent(self) -> float:
        """current_volume / capacity * 100. Requires a positive capacity."""
        if not self.capacity or self.capacity <= 0:
            raise ValidationError(
                "capacity",
                f"Tank {self.tank_id} has no positive capacity; fill level is undefined",
            )
        return self.current_volume / self.capacity * 100

    @classmethod
    def from_telemetry(cls, data: Dict[str, Any]) -> "TankReading":
        """
        Build a reading from a telemetry record.

        Accepts both the telemetry names (Tanque, QuantidadeDeAgua, ...) and
        snake_case names (tank_id, water_amount, ...).
        """
        tank_id = _first(data, "Tanque", "NumeroDoTanque", "tank_id", "Id")
        if tank_id is None:
            raise ValidationError("Tanque", "Tank reading is missing its tank identifier")

        return cls(
            tank_id=str(tank_id),
            station_id=_as_str(_first(data, "IdUnidade", "station_id")),
            station_name=_as_str(_first(data, "Unidade", "station_name")),
            client_name=_as_str(_first(data, "Cliente", "client_name")),
            product_name=_as_str(_first(data, "Produto", "product_name")),
            current_volume=_as_float(
                _first(data, "QuantidadeAtual", "current_volume"), "QuantidadeAtual"
            ),
            capacity=_as_optional_float(
                _first(data, "CapacidadeDoTanque", "capacity"), "CapacidadeDoTanque"
            ),
            water_amount=_as_float(
                _first(data, "QuantidadeDeAgua", "water_amount"), "QuantidadeDeAgua"
            ),
            measured_at=_as_str(_first(data, "DataMedicao", "measured_at")),
            raw=dict(data),
        )


def format_measurement_date(value: Optional[str]) -> Optional[str]:
    """Render an ISO timestamp as dd/mm/yyyy; unparseable values pass through."""
    if not value:
        return value
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return value
    return parsed.strftime("%d/%m/%Y")


def _first(data: Dict[str, Any], *keys: str) -> Any:
    for key in keys:
        if data.get(key) is not None:
            return data[key]
    return None


def _as_str(value: Any) -> Optional[str]:
    return None if value is None else str(value)


def _as_float(value: Any, field_name: str) -> float:
    if value is None or value == "":
        return 0.0
    try:
        return float(value)
    except (TypeError, ValueError):
        raise ValidationError(field_name, f"{field_name} must be numeric, got {value!r}")


def _as_optional_float(value: Any, field_name: str) -> Optional[float]:
    if value is None or value == "":
        return None
    return _as_float(value, field_name)
