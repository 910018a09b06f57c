from flask import Blueprint, request
from flask_jwt_extended import jwt_required

from app.schemas.pedido_schemas import (
    PedidoCreateSchema,
    PedidoUpdateSchema,
    LineaCreateSchema,
    LineaUpdateSchema,
    RecepcionParcialSchema,
)
from app.services import pedido_service
from app.utils.responses import success_response
from app.utils.security import actor_actual

bp = Blueprint("pedidos", __name__)

pedido_create_schema = PedidoCreateSchema()
pedido_update_schema = PedidoUpdateSchema()
linea_create_schema = LineaCreateSchema()
linea_update_schema = LineaUpdateSchema()
recepcion_parcial_schema = RecepcionParcialSchema()


@bp.get("/ping")
def ping():
    return success_response(message="pedidos ok")


@bp.get("")
@jwt_required()
def listar_pedidos():
    data = pedido_service.listar_pedidos(estado=request.args.get("estado"))
    return success_response(data=data, message="OK")


@bp.get("/<string:id_pedido>")
@jwt_required()
def obtener_pedido(id_pedido: str):
    data = pedido_service.obtener_pedido(id_pedido)
    return success_response(data=data, message="OK")


@bp.post("")
@jwt_required()
def crear_pedido():
    data = pedido_create_schema.load(request.get_json() or {})
    pedido = pedido_service.crear_pedido(data, creado_por=actor_actual())
    return success_response(data=pedido, message="Pedido creado", status_code=201)


@bp.put("/<string:id_pedido>")
@jwt_required()
def actualizar_pedido(id_pedido: str):
    data = pedido_update_schema.load(request.get_json() or {})
    pedido = pedido_service.actualizar_pedido(id_pedido, data)
    return success_response(data=pedido, message="Pedido actualizado")


@bp.delete("/<string:id_pedido>")
@jwt_required()
def eliminar_pedido(id_pedido: str):
    """Solo pedidos en borrador o cancelados."""
    pedido_service.eliminar_pedido(id_pedido)
    return success_response(data={"id": id_pedido}, message="Pedido eliminado correctamente")


@bp.post("/<string:id_pedido>/lineas")
@jwt_required()
def agregar_linea(id_pedido: str):
    data = linea_create_schema.load(request.get_json() or {})
    linea = pedido_service.agregar_linea(id_pedido, data)
    return success_response(data=linea, message="Línea añadida", status_code=201)


@bp.put("/<string:id_pedido>/lineas/<int:id_linea>")
@jwt_required()
def actualizar_linea(id_pedido: str, id_linea: int):
    data = linea_update_schema.load(request.get_json() or {})
    linea = pedido_service.actualizar_linea(id_pedido, id_linea, data)
    return success_response(data=linea, message="Línea actualizada")


@bp.delete("/<string:id_pedido>/lineas/<int:id_linea>")
@jwt_required()
def eliminar_linea(id_pedido: str, id_linea: int):
    pedido = pedido_service.eliminar_linea(id_pedido, id_linea)
    return success_response(data=pedido, message="Línea eliminada correctamente")


@bp.post("/<string:id_pedido>/recibir-completo")
@jwt_required()
def recibir_completo(id_pedido: str):
    """Marca todas las líneas como recibidas y el pedido como recibido."""
    pedido = pedido_service.recibir_completo(id_pedido)
    return success_response(data=pedido, message="Mercancía recibida")


@bp.post("/<string:id_pedido>/recibir-parcial")
@jwt_required()
def recibir_parcial(id_pedido: str):
    """
    Body JSON:
    {
      "lineaId": 12,
      "cantidad": 3
    }
    """
    data = recepcion_parcial_schema.load(request.get_json() or {})
    pedido = pedido_service.recibir_parcial(id_pedido, data["linea_id"], data["cantidad"])
    return success_response(data=pedido, message="Recepción parcial registrada")
