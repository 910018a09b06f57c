from datetime import datetime
from decimal import Decimal

from flask import current_app
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm.exc import StaleDataError

from app.extensions import db
from app.models.purchase_order import PurchaseOrder
from app.models.purchase_order_line import PurchaseOrderLine
from app.services import recepcion_service
from app.services.transicion import detectar, snapshot
from app.utils.errors import ConflictError, InvalidRequestError, NotFoundError


# Transiciones que se pueden pedir por PUT; parcial/recibido solo por recepción
TRANSICIONES_MANUALES = {
    "borrador": {"cursado", "cancelado"},
    "cursado": {"cancelado"},
}

ESTADOS_EDITABLES = ("borrador", "cursado")
ESTADOS_ELIMINABLES = ("borrador", "cancelado")


def _iso(dt: datetime | None) -> str | None:
    return dt.isoformat() if dt else None


def _num(valor) -> float:
    return float(valor) if isinstance(valor, Decimal) else float(valor or 0)


def linea_to_dict(linea: PurchaseOrderLine) -> dict:
    return {
        "id": linea.id,
        "purchase_order_id": linea.purchase_order_id,
        "pieza_id": linea.pieza_id,
        "codigo": linea.codigo,
        "nombre": linea.nombre,
        "unidad": linea.unidad,
        "cantidad": linea.cantidad,
        "cantidad_recibida": linea.cantidad_recibida,
        "pvp": _num(linea.pvp),
    }


def pedido_to_dict(pedido: PurchaseOrder) -> dict:
    return {
        "id": pedido.id,
        "numero": pedido.numero,
        "estado": pedido.estado,
        "total": _num(pedido.total),
        "notas": pedido.notas,
        "created_by": pedido.created_by,
        "fecha_creacion": _iso(pedido.fecha_creacion),
        "fecha_cursado": _iso(pedido.fecha_cursado),
        "fecha_recibido": _iso(pedido.fecha_recibido),
        "fecha_ultima_recepcion": _iso(pedido.fecha_ultima_recepcion),
        "version": pedido.version,
        "lineas": [linea_to_dict(l) for l in pedido.lineas],
    }


def _get_or_404(id_pedido: str, bloquear: bool = False) -> PurchaseOrder:
    q = PurchaseOrder.query.filter_by(id=id_pedido)
    if bloquear:
        # Serializa recepciones concurrentes sobre el mismo pedido
        q = q.with_for_update()
    pedido = q.first()
    if not pedido:
        raise NotFoundError("Pedido no encontrado")
    return pedido


def _linea_or_404(pedido: PurchaseOrder, id_linea: int) -> PurchaseOrderLine:
    linea = PurchaseOrderLine.query.filter_by(id=id_linea, purchase_order_id=pedido.id).first()
    if not linea:
        raise NotFoundError("Línea no encontrada")
    return linea


def _commit(mensaje_conflicto: str) -> None:
    try:
        db.session.commit()
    except StaleDataError:
        db.session.rollback()
        raise ConflictError(mensaje_conflicto)
    except IntegrityError:
        db.session.rollback()
        raise ConflictError(mensaje_conflicto)


def _siguiente_numero() -> str:
    n = PurchaseOrder.query.count() + 1
    numero = f"PO-{n:05d}"
    # Huecos por pedidos eliminados
    while PurchaseOrder.query.filter_by(numero=numero).first():
        n += 1
        numero = f"PO-{n:05d}"
    return numero


def listar_pedidos(estado: str | None = None) -> list[dict]:
    q = PurchaseOrder.query
    if estado:
        q = q.filter_by(estado=estado)
    pedidos = q.order_by(PurchaseOrder.fecha_creacion.desc()).all()
    return [pedido_to_dict(p) for p in pedidos]


def obtener_pedido(id_pedido: str) -> dict:
    return pedido_to_dict(_get_or_404(id_pedido))


def crear_pedido(data: dict, creado_por: str | None) -> dict:
    pedido = PurchaseOrder(
        numero=_siguiente_numero(),
        notas=data.get("notas") or None,
        created_by=creado_por,
        estado="borrador",
        total=Decimal("0.00"),
    )
    db.session.add(pedido)
    _commit("Ya existe un pedido con ese número")

    current_app.logger.info("[pedidos] creado %s por=%s", pedido.numero, creado_por)
    return pedido_to_dict(pedido)


def actualizar_pedido(id_pedido: str, data: dict) -> dict:
    pedido = _get_or_404(id_pedido)
    previo = snapshot(pedido, ("estado",))

    nuevo_estado = data.get("estado")
    if nuevo_estado and nuevo_estado != pedido.estado:
        permitidos = TRANSICIONES_MANUALES.get(pedido.estado, set())
        if nuevo_estado not in permitidos:
            raise InvalidRequestError(
                f"No se puede pasar de '{pedido.estado}' a '{nuevo_estado}'",
                payload={"estado": pedido.estado, "permitidos": sorted(permitidos)},
            )
        pedido.estado = nuevo_estado

    if "notas" in data:
        pedido.notas = data["notas"] or None

    if detectar(previo, {"estado": pedido.estado}, "estado", "cursado").cruzo and pedido.fecha_cursado is None:
        pedido.fecha_cursado = datetime.utcnow()

    _commit("El pedido fue modificado por otra operación. Recarga e inténtalo de nuevo.")
    return pedido_to_dict(pedido)


def eliminar_pedido(id_pedido: str) -> None:
    pedido = _get_or_404(id_pedido)

    if pedido.estado not in ESTADOS_ELIMINABLES:
        raise InvalidRequestError(
            "No se puede eliminar un pedido cursado o recibido. Cancélalo primero.",
            payload={"estado": pedido.estado},
        )

    numero = pedido.numero
    # las líneas caen por cascade
    db.session.delete(pedido)
    _commit("El pedido fue modificado por otra operación.")
    current_app.logger.info("[pedidos] eliminado %s", numero)


def _exigir_editable(pedido: PurchaseOrder) -> None:
    if pedido.estado not in ESTADOS_EDITABLES:
        raise InvalidRequestError(
            "Solo se pueden modificar líneas de pedidos en borrador o cursados",
            payload={"estado": pedido.estado},
        )


def agregar_linea(id_pedido: str, data: dict) -> dict:
    pedido = _get_or_404(id_pedido, bloquear=True)
    _exigir_editable(pedido)

    linea = PurchaseOrderLine(
        purchase_order_id=pedido.id,
        pieza_id=data["pieza_id"],
        codigo=data["codigo"],
        nombre=data["nombre"],
        unidad=data.get("unidad"),
        cantidad=data["cantidad"],
        cantidad_recibida=0,
        pvp=data["pvp"],
    )
    db.session.add(linea)
    recepcion_service.recalcular_total(pedido)

    _commit("El pedido fue modificado por otra operación. Recarga e inténtalo de nuevo.")
    return linea_to_dict(linea)


def actualizar_linea(id_pedido: str, id_linea: int, data: dict) -> dict:
    pedido = _get_or_404(id_pedido, bloquear=True)
    _exigir_editable(pedido)
    linea = _linea_or_404(pedido, id_linea)

    cantidad = data.get("cantidad", linea.cantidad)
    if cantidad < (linea.cantidad_recibida or 0):
        raise InvalidRequestError(
            "La cantidad no puede ser menor que la ya recibida",
            payload={"cantidad_recibida": linea.cantidad_recibida},
        )

    for campo in ("nombre", "unidad", "cantidad", "pvp"):
        if campo in data:
            setattr(linea, campo, data[campo])

    recepcion_service.recalcular_total(pedido)

    _commit("El pedido fue modificado por otra operación. Recarga e inténtalo de nuevo.")
    return linea_to_dict(linea)


def eliminar_linea(id_pedido: str, id_linea: int) -> dict:
    pedido = _get_or_404(id_pedido, bloquear=True)
    _exigir_editable(pedido)
    linea = _linea_or_404(pedido, id_linea)

    db.session.delete(linea)
    recepcion_service.recalcular_total(pedido)

    _commit("El pedido fue modificado por otra operación. Recarga e inténtalo de nuevo.")
    db.session.refresh(pedido)
    return pedido_to_dict(pedido)


def recibir_completo(id_pedido: str) -> dict:
    pedido = _get_or_404(id_pedido, bloquear=True)
    if pedido.estado == "cancelado":
        raise InvalidRequestError("No se puede recibir un pedido cancelado")
    if pedido.estado == "recibido":
        # No hay nada pendiente; no se re-sellan las fechas de recepción
        raise InvalidRequestError("El pedido ya está recibido", payload={"fecha_recibido": _iso(pedido.fecha_recibido)})

    recepcion_service.recibir_completo(pedido)
    _commit("El pedido fue modificado por otra recepción. Recarga e inténtalo de nuevo.")

    current_app.logger.info("[pedidos] %s recibido completo", pedido.numero)
    db.session.refresh(pedido)
    return pedido_to_dict(pedido)


def recibir_parcial(id_pedido: str, id_linea: int, cantidad: int) -> dict:
    pedido = _get_or_404(id_pedido, bloquear=True)
    if pedido.estado == "cancelado":
        raise InvalidRequestError("No se puede recibir un pedido cancelado")

    linea = _linea_or_404(pedido, id_linea)
    recepcion_service.recibir_parcial(pedido, linea, cantidad)
    _commit("El pedido fue modificado por otra recepción. Recarga e inténtalo de nuevo.")

    current_app.logger.info(
        "[pedidos] %s recepción parcial linea=%s +%s -> %s",
        pedido.numero,
        linea.id,
        cantidad,
        pedido.estado,
    )
    db.session.refresh(pedido)
    return pedido_to_dict(pedido)
