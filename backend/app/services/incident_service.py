import random
from datetime import datetime
from decimal import Decimal

from flask import current_app
from sqlalchemy.exc import IntegrityError

from app.extensions import db, dispatcher
from app.models.incident import Incident, ESTADO_RESUELTO
from app.models.incident_history import IncidentHistory
from app.models.incident_note import IncidentNote
from app.schemas.incident_schemas import IncidentHistorySchema, IncidentNoteSchema
from app.services import webhook_router
from app.services.transicion import ContextoTransicion, snapshot
from app.utils.errors import ApiError, ConflictError, InvalidRequestError, NotFoundError


CAMPOS_INCIDENTE = (
    "id",
    "number",
    "title",
    "description",
    "category",
    "priority",
    "status",
    "source",
    "scooter_id",
    "trip_id",
    "location",
    "user_phone",
    "reported_by",
    "assigned_to",
    "requires_pickup",
    "estimated_cost",
    "resolution_notes",
    "resolution_date",
    "created_by",
    "created_date",
    "updated_date",
)

# Campos que dejan rastro en incident_history al cambiar
CAMPOS_HISTORIAL = ("status", "priority", "category", "assigned_to")

CAMPOS_NOTA = ("id", "body", "created_by", "created_at")

CAMPOS_ORDENABLES = {
    "created_date",
    "updated_date",
    "resolution_date",
    "number",
    "title",
    "status",
    "priority",
    "category",
    "assigned_to",
}

FILTROS = ("status", "priority", "category", "assigned_to")

_INTENTOS_NUMERO = 5


def _iso(dt: datetime | None) -> str | None:
    return dt.isoformat() if dt else None


def _texto(valor) -> str | None:
    return None if valor is None else str(valor)


def incident_to_dict(incidente: Incident) -> dict:
    data = snapshot(incidente, CAMPOS_INCIDENTE)
    for campo in ("resolution_date", "created_date", "updated_date"):
        data[campo] = _iso(data[campo])
    if isinstance(data["estimated_cost"], Decimal):
        data["estimated_cost"] = float(data["estimated_cost"])
    data["requires_pickup"] = bool(data["requires_pickup"])
    return data


_note_schema = IncidentNoteSchema()
_history_schema = IncidentHistorySchema()


def note_to_dict(nota: IncidentNote) -> dict:
    return _note_schema.dump(nota)


def history_to_dict(h: IncidentHistory) -> dict:
    return _history_schema.dump(h)


def _consulta(id_incidente: str, bloquear: bool = False):
    q = Incident.query.filter_by(id=id_incidente)
    if bloquear:
        # Dos PUT concurrentes a "resolved" no pueden leer ambos el estado previo
        q = q.with_for_update().populate_existing()
    return q


def _get_or_404(id_incidente: str, bloquear: bool = False) -> Incident:
    incidente = _consulta(id_incidente, bloquear).first()
    if not incidente:
        raise NotFoundError("Incidencia no encontrada")
    return incidente


def _generar_numero(ahora: datetime | None = None) -> str:
    d = ahora or datetime.utcnow()
    return f"PSP-{d:%y%m%d}-{random.randint(1000, 9999)}"


def _numero_libre() -> str:
    for _ in range(_INTENTOS_NUMERO):
        numero = _generar_numero()
        if not Incident.query.filter_by(number=numero).first():
            return numero
    raise ConflictError("No se pudo generar un número de incidencia único. Reintenta.")


def _parse_bool(valor) -> bool | None:
    if valor is None or valor == "":
        return None
    return str(valor).strip().lower() in ("1", "true", "yes", "si")


def _parse_limit(valor) -> int:
    default = int(current_app.config.get("INCIDENTS_LIMIT_DEFAULT", 100))
    maximo = int(current_app.config.get("INCIDENTS_LIMIT_MAX", 500))
    try:
        limit = int(valor) if valor not in (None, "") else default
    except (TypeError, ValueError):
        raise InvalidRequestError("limit inválido")
    return max(1, min(limit, maximo))


def listar_incidencias(filtros: dict, sort: str | None = None, limit=None) -> list[dict]:
    q = Incident.query

    for campo in FILTROS:
        valor = filtros.get(campo)
        if valor:
            q = q.filter(getattr(Incident, campo) == valor)

    requires_pickup = _parse_bool(filtros.get("requires_pickup"))
    if requires_pickup is not None:
        q = q.filter(Incident.requires_pickup.is_(requires_pickup))

    sort = (sort or "-created_date").strip()
    desc = sort.startswith("-")
    campo_orden = sort[1:] if desc else sort
    if campo_orden not in CAMPOS_ORDENABLES:
        raise InvalidRequestError(
            f"No se puede ordenar por '{campo_orden}'",
            payload={"ordenables": sorted(CAMPOS_ORDENABLES)},
        )
    columna = getattr(Incident, campo_orden)
    q = q.order_by(columna.desc() if desc else columna.asc())

    return [incident_to_dict(i) for i in q.limit(_parse_limit(limit)).all()]


def obtener_incidencia(id_incidente: str) -> dict:
    return incident_to_dict(_get_or_404(id_incidente))


def obtener_por_numero(numero: str) -> dict:
    incidente = Incident.query.filter_by(number=(numero or "").strip()).first()
    if not incidente:
        raise NotFoundError("Incidencia no encontrada")
    return incident_to_dict(incidente)


def crear_incidencia(data: dict, creado_por: str | None) -> dict:
    ahora = datetime.utcnow()
    incidente = Incident(
        number=_numero_libre(),
        created_by=creado_por or "bot@system",
        created_date=ahora,
        **data,
    )
    incidente.title = incidente.title.strip()
    if incidente.status == ESTADO_RESUELTO:
        incidente.resolution_date = ahora

    db.session.add(incidente)
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise ConflictError("Ya existe una incidencia con ese número")

    current_app.logger.info(
        "[incidencias] creada %s categoria=%s por=%s",
        incidente.number,
        incidente.category,
        incidente.created_by,
    )
    return incident_to_dict(incidente)


def actualizar_incidencia(id_incidente: str, data: dict, actor: str | None) -> dict:
    """
    Aplica la actualización y, si la incidencia pasa a "resolved",
    programa el webhook del canal que corresponda a su categoría.

    El snapshot previo se toma antes de mutar; el posterior tras el commit.
    La respuesta no espera al envío del webhook.
    """
    incidente = _get_or_404(id_incidente, bloquear=True)
    previo = snapshot(incidente, CAMPOS_INCIDENTE)
    ahora = datetime.utcnow()

    if "title" in data:
        data["title"] = data["title"].strip()

    for campo, valor in data.items():
        setattr(incidente, campo, valor)

    # Primera transición a resuelto: fecha de resolución (una sola vez)
    if (
        incidente.status == ESTADO_RESUELTO
        and previo["status"] != ESTADO_RESUELTO
        and incidente.resolution_date is None
    ):
        incidente.resolution_date = ahora

    pendiente = ContextoTransicion(previo=previo, nuevo=snapshot(incidente, CAMPOS_HISTORIAL), actor=actor)
    for cambio in pendiente.cambios(CAMPOS_HISTORIAL):
        db.session.add(
            IncidentHistory(
                incident_id=incidente.id,
                field=cambio.campo,
                old_value=_texto(cambio.desde),
                new_value=_texto(cambio.hacia),
                changed_by=actor,
                changed_at=ahora,
            )
        )

    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise ConflictError("Conflicto al actualizar la incidencia")

    contexto = ContextoTransicion(previo=previo, nuevo=snapshot(incidente, CAMPOS_INCIDENTE), actor=actor)

    current_app.logger.debug(
        "[incidencias] actualizada %s status %s -> %s categoria=%s",
        incidente.number,
        previo["status"],
        incidente.status,
        incidente.category,
    )

    _disparar_webhooks(incidente, contexto, resuelto_en=ahora)

    return incident_to_dict(incidente)


def _disparar_webhooks(incidente: Incident, contexto: ContextoTransicion, resuelto_en: datetime | None = None) -> None:
    # Nada de lo que ocurra aquí debe afectar a la actualización ya confirmada.
    try:
        notas = [snapshot(n, CAMPOS_NOTA) for n in incidente.notes]
        for saliente in webhook_router.resolver(contexto, notas=notas, resuelto_en=resuelto_en):
            dispatcher.despachar(saliente.canal, saliente.payload)
    except Exception:
        current_app.logger.exception("[webhooks] error preparando envío incidente=%s", incidente.number)


def eliminar_incidencia(id_incidente: str) -> None:
    incidente = _get_or_404(id_incidente)
    numero = incidente.number

    # notas e historial caen por cascade
    db.session.delete(incidente)
    db.session.commit()

    current_app.logger.info("[incidencias] eliminada %s", numero)


def listar_notas(id_incidente: str) -> list[dict]:
    _get_or_404(id_incidente)
    notas = (
        IncidentNote.query.filter_by(incident_id=id_incidente)
        .order_by(IncidentNote.created_at.asc(), IncidentNote.id.asc())
        .all()
    )
    return [note_to_dict(n) for n in notas]


def agregar_nota(id_incidente: str, body: str, actor: str | None) -> dict:
    incidente = _get_or_404(id_incidente)

    nota = IncidentNote(incident_id=incidente.id, body=body.strip(), created_by=actor or "sistema")
    db.session.add(nota)
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise ApiError("Error al añadir nota", 500)

    return note_to_dict(nota)


def listar_historial(id_incidente: str) -> list[dict]:
    _get_or_404(id_incidente)
    items = (
        IncidentHistory.query.filter_by(incident_id=id_incidente)
        .order_by(IncidentHistory.changed_at.asc(), IncidentHistory.id.asc())
        .all()
    )
    return [history_to_dict(h) for h in items]
