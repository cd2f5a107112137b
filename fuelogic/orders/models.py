# fuelogic/orders/models.py
"""
Fuel orders placed for stations.

Orders are created by the ordering screens and handed to this service only
to be announced: a single order goes to order_placed webhooks, a batch is
grouped per station for the Sophia AI ordering assistant.
"""

from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Mapping, Optional

from ..errors import ValidationError

UNKNOWN_STATION = "Posto não identificado"


@dataclass(frozen=True)
class FuelOrder:
    """A refill order for one tank."""
    id: str
    station_id: Optional[str]
    station_name: Optional[str]
    tank_id: Optional[str]
    product_type: str
    quantity: float
    status: str = "pending"
    notes: Optional[str] = None
    scheduled_date: Optional[str] = None

    @classmethod
    def from_request(cls, data: Mapping[str, Any]) -> "FuelOrder":
        """
        Build an order from a request body.

        Raises ValidationError for a missing id or product, or a quantity
        that is not a positive number.
        """
        if data.get("id") in (None, ""):
            raise ValidationError("id", "Pedido sem identificador")
        if not data.get("product_type"):
            raise ValidationError("product_type", "Tipo de combustível é obrigatório")

        try:
            quantity = float(data.get("quantity"))
        except (TypeError, ValueError):
            raise ValidationError("quantity", f"Quantidade inválida: {data.get('quantity')!r}")
        if quantity <= 0:
            raise ValidationError("quantity", "Quantidade deve ser maior que zero")

        return cls(
            id=str(data["id"]),
            station_id=_as_str(data.get("station_id")),
            station_name=_as_str(data.get("station_name")),
            tank_id=_as_str(data.get("tank_id")),
            product_type=str(data["product_type"]),
            quantity=quantity,
            status=str(data.get("status") or "pending"),
            notes=data.get("notes"),
            scheduled_date=_as_str(data.get("scheduled_date")),
        )

    def to_payload(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "station_id": self.station_id,
            "tank_id": self.tank_id,
            "product_type": self.product_type,
            "quantity": self.quantity,
            "status": self.status,
            "notes": self.notes,
            "scheduled_date": self.scheduled_date,
        }


def group_by_station(orders: Iterable[FuelOrder]) -> Dict[str, Any]:
    """
    Orders grouped per station with fuel totals.

    Stations keep the order in which they first appear. Returns
    {"postos": [...], "resumo_geral": {total_postos, total_pedidos,
    totais_combustiveis, quantidade_total}}.
    """
    stations: Dict[Optional[str], Dict[str, Any]] = {}
    totals: Dict[str, float] = {}
    count = 0

    for order in orders:
        count += 1
        station = stations.get(order.station_id)
        if station is None:
            station = stations[order.station_id] = {
                "nome": order.station_name or UNKNOWN_STATION,
                "id_unidade": order.station_id,
                "pedidos": [],
                "totais_por_combustivel": {},
            }
        station["pedidos"].append({
            "id": order.id,
            "tank_id": order.tank_id,
            "product_type": order.product_type,
            "quantity": order.quantity,
            "scheduled_date": order.scheduled_date,
            "notes": order.notes,
        })
        per_station = station["totais_por_combustivel"]
        per_station[order.product_type] = per_station.get(order.product_type, 0.0) + order.quantity
        totals[order.product_type] = totals.get(order.product_type, 0.0) + order.quantity

    postos: List[Dict[str, Any]] = list(stations.values())
    return {
        "postos": postos,
        "resumo_geral": {
            "total_postos": len(postos),
            "total_pedidos": count,
            "totais_combustiveis": totals,
            "quantidade_total": sum(totals.values()),
        },
    }


def _as_str(value: Any) -> Optional[str]:
    return None if value is None else str(value)
