from flask import Blueprint, request
from flask_jwt_extended import jwt_required

from app.schemas.incident_schemas import (
    IncidentCreateSchema,
    IncidentUpdateSchema,
    IncidentNoteCreateSchema,
)
from app.services import incident_service
from app.utils.responses import success_response
from app.utils.security import actor_actual

bp = Blueprint("incidents", __name__)

incident_create_schema = IncidentCreateSchema()
incident_update_schema = IncidentUpdateSchema()
note_create_schema = IncidentNoteCreateSchema()


@bp.get("/ping")
def ping_incidents():
    return success_response(message="incidents ok")


@bp.get("")
@jwt_required()
def listar_incidencias():
    """
    Query params opcionales:
    - status, priority, category, assigned_to, requires_pickup
    - sort: campo (asc) o -campo (desc). Default: -created_date
    - limit: default 100
    """
    data = incident_service.listar_incidencias(
        filtros=request.args,
        sort=request.args.get("sort"),
        limit=request.args.get("limit"),
    )
    return success_response(data=data, message="OK")


@bp.get("/numero/<string:numero>")
@jwt_required()
def obtener_por_numero(numero: str):
    data = incident_service.obtener_por_numero(numero)
    return success_response(data=data, message="OK")


@bp.get("/<string:id_incidente>")
@jwt_required()
def obtener_incidencia(id_incidente: str):
    data = incident_service.obtener_incidencia(id_incidente)
    return success_response(data=data, message="OK")


@bp.post("")
@jwt_required()
def crear_incidencia():
    data = incident_create_schema.load(request.get_json() or {})
    incidente = incident_service.crear_incidencia(data, creado_por=actor_actual())
    return success_response(
        data=incidente,
        message="Incidencia creada correctamente",
        status_code=201,
    )


@bp.put("/<string:id_incidente>")
@jwt_required()
def actualizar_incidencia(id_incidente: str):
    """
    Actualización parcial. Si status pasa a "resolved" se dispara
    (en segundo plano) el webhook del canal de su categoría.
    """
    data = incident_update_schema.load(request.get_json() or {})
    incidente = incident_service.actualizar_incidencia(id_incidente, data, actor=actor_actual())
    return success_response(data=incidente, message="Incidencia actualizada")


@bp.delete("/<string:id_incidente>")
@jwt_required()
def eliminar_incidencia(id_incidente: str):
    incident_service.eliminar_incidencia(id_incidente)
    return success_response(data={"id": id_incidente}, message="Incidencia eliminada")


@bp.get("/<string:id_incidente>/notes")
@jwt_required()
def listar_notas(id_incidente: str):
    data = incident_service.listar_notas(id_incidente)
    return success_response(data=data, message="OK")


@bp.post("/<string:id_incidente>/notes")
@jwt_required()
def agregar_nota(id_incidente: str):
    data = note_create_schema.load(request.get_json() or {})
    nota = incident_service.agregar_nota(id_incidente, data["body"], actor=actor_actual())
    return success_response(data=nota, message="Nota añadida", status_code=201)


@bp.get("/<string:id_incidente>/history")
@jwt_required()
def listar_historial(id_incidente: str):
    data = incident_service.listar_historial(id_incidente)
    return success_response(data=data, message="OK")
