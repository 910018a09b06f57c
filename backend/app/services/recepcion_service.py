"""Recepción de mercancía y campos derivados del pedido (total, estado, fechas).

Invariantes que mantiene este módulo:
- total == Σ cantidad × pvp de las líneas actuales.
- estado == "recibido" si y solo si todas las líneas están completas.
- recepción parcial: "parcial" y fecha_recibido = None salvo que se complete.

Las funciones trabajan sobre la sesión actual y no hacen commit; el commit
lo hace pedido_service para que la secuencia leer-escribir-recalcular quede
en una sola transacción con el pedido bloqueado.
"""

from datetime import datetime
from decimal import Decimal, ROUND_HALF_UP
from typing import Iterable

from app.extensions.db import db
from app.models.purchase_order import PurchaseOrder
from app.models.purchase_order_line import PurchaseOrderLine
from app.utils.errors import InvalidRequestError


CENTIMOS = Decimal("0.01")


def calcular_total(lineas: Iterable) -> Decimal:
    total = Decimal("0")
    for linea in lineas:
        total += Decimal(int(linea.cantidad)) * Decimal(str(linea.pvp))
    return total.quantize(CENTIMOS, rounding=ROUND_HALF_UP)


def lineas_actuales(pedido: PurchaseOrder) -> list[PurchaseOrderLine]:
    """Relee las líneas desde la BD (no usa la colección cacheada del pedido)."""
    db.session.flush()
    return (
        PurchaseOrderLine.query.filter_by(purchase_order_id=pedido.id)
        .order_by(PurchaseOrderLine.id)
        .populate_existing()
        .all()
    )


def recalcular_total(pedido: PurchaseOrder) -> Decimal:
    pedido.total = calcular_total(lineas_actuales(pedido))
    return pedido.total


def estado_recepcion(lineas: list[PurchaseOrderLine]) -> str:
    return "recibido" if all(l.completa for l in lineas) else "parcial"


def recibir_completo(pedido: PurchaseOrder, ahora: datetime | None = None) -> PurchaseOrder:
    ahora = ahora or datetime.utcnow()

    for linea in lineas_actuales(pedido):
        linea.cantidad_recibida = linea.cantidad

    pedido.estado = "recibido"
    pedido.fecha_recibido = ahora
    pedido.fecha_ultima_recepcion = ahora
    return pedido


def recibir_parcial(
    pedido: PurchaseOrder,
    linea: PurchaseOrderLine,
    cantidad: int,
    ahora: datetime | None = None,
) -> PurchaseOrder:
    if cantidad is None or int(cantidad) <= 0:
        raise InvalidRequestError("La cantidad recibida debe ser mayor que 0")

    nueva = (linea.cantidad_recibida or 0) + int(cantidad)
    if nueva > linea.cantidad:
        raise InvalidRequestError(
            "La cantidad recibida no puede exceder la cantidad pedida",
            payload={
                "linea_id": linea.id,
                "cantidad": linea.cantidad,
                "cantidad_recibida": linea.cantidad_recibida,
                "solicitada": int(cantidad),
            },
        )

    ahora = ahora or datetime.utcnow()
    linea.cantidad_recibida = nueva

    # Estado a partir del conjunto completo y actual de líneas
    estado = estado_recepcion(lineas_actuales(pedido))

    pedido.estado = estado
    pedido.fecha_ultima_recepcion = ahora
    pedido.fecha_recibido = ahora if estado == "recibido" else None
    return pedido
