"""Enrutado de webhooks de incidencias resueltas por categoría.

Cada canal decide de forma independiente si dispara; los conjuntos de
categorías son disjuntos, así que como mucho dispara uno por actualización.
El router solo elige el canal y arma el payload, nunca envía.
"""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal

from app.models.incident import ESTADO_RESUELTO
from app.services.transicion import ContextoTransicion


@dataclass(frozen=True)
class Canal:
    nombre: str
    tipo_evento: str
    config_url: str
    categorias: frozenset
    requiere_notas: bool = False
    normalizar_categoria: bool = False
    incluir_notas_operador: bool = False

    def acepta_categoria(self, categoria: str | None) -> bool:
        if categoria is None:
            return False
        if self.normalizar_categoria:
            categoria = categoria.strip().lower()
        return categoria in self.categorias


@dataclass(frozen=True)
class WebhookSaliente:
    canal: Canal
    payload: dict


CANAL_FACTURACION = Canal(
    nombre="billing",
    tipo_evento="billing_resolved",
    config_url="BILLING_WEBHOOK_URL",
    categorias=frozenset({"billing_issue"}),
    incluir_notas_operador=True,
)

CANAL_MECANICO = Canal(
    nombre="mechanical",
    tipo_evento="mechanical_resolved",
    config_url="MECHANICAL_WEBHOOK_URL",
    categorias=frozenset({
        "mechanical_failure",
        "flat_tire",
        "battery_issue",
        "electrical_problem",
        "accident",
        "theft",
    }),
    requiere_notas=True,
)

CANAL_OTROS = Canal(
    nombre="other",
    tipo_evento="other_resolved",
    config_url="OTHER_WEBHOOK_URL",
    categorias=frozenset({"other", "user_error"}),
    requiere_notas=True,
    normalizar_categoria=True,
)

CANALES = (CANAL_FACTURACION, CANAL_MECANICO, CANAL_OTROS)


def _tiene_notas(valor) -> bool:
    return bool(str(valor or "").strip())


def debe_disparar(canal: Canal, contexto: ContextoTransicion) -> bool:
    if not contexto.detectar("status", ESTADO_RESUELTO).cruzo:
        return False
    if not canal.acepta_categoria(contexto.nuevo.get("category")):
        return False
    if canal.requiere_notas and not _tiene_notas(contexto.nuevo.get("resolution_notes")):
        return False
    return True


def _iso(dt: datetime | None) -> str | None:
    if dt is None:
        return None
    return dt.replace(microsecond=0).isoformat() + "Z"


def construir_payload(
    canal: Canal,
    incidente: dict,
    notas: list[dict] | None = None,
    resuelto_en: datetime | None = None,
) -> dict:
    coste = incidente.get("estimated_cost")
    if isinstance(coste, Decimal):
        coste = float(coste)

    payload = {
        "type": canal.tipo_evento,
        "incident_id": incidente.get("id"),
        "incident_number": incidente.get("number"),
        "trip_id": incidente.get("trip_id"),
        "title": incidente.get("title"),
        "description": incidente.get("description"),
        "resolution_notes": incidente.get("resolution_notes"),
        # momento de esta resolución; resolution_date solo refleja la primera
        "resolved_at": _iso(resuelto_en or datetime.utcnow()),
        "reported_by": incidente.get("reported_by"),
        "user_phone": incidente.get("user_phone"),
        "scooter_id": incidente.get("scooter_id"),
        "location": incidente.get("location"),
        "estimated_cost": coste,
        "category": incidente.get("category"),
        "created_by": incidente.get("created_by"),
    }

    if canal.incluir_notas_operador:
        payload["operator_notes"] = [
            {
                "id": n.get("id"),
                "body": n.get("body"),
                "created_by": n.get("created_by"),
                "created_at": _iso(n.get("created_at")),
            }
            for n in (notas or [])
        ]

    return payload


def resolver(
    contexto: ContextoTransicion,
    notas: list[dict] | None = None,
    resuelto_en: datetime | None = None,
) -> list[WebhookSaliente]:
    """Webhooks que deben salir para esta actualización (0 o 1 en la práctica)."""
    return [
        WebhookSaliente(canal=canal, payload=construir_payload(canal, contexto.nuevo, notas, resuelto_en))
        for canal in CANALES
        if debe_disparar(canal, contexto)
    ]
