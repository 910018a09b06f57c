"""Detección de transiciones de estado entre dos snapshots de un agregado.

Los snapshots son diccionarios planos tomados antes y después de la escritura.
El detector no consulta la BD: si `previo` ya refleja la escritura, simplemente
no verá la transición.
"""

from dataclasses import dataclass
from typing import Any, Iterable


@dataclass(frozen=True)
class Transicion:
    campo: str
    desde: Any
    hacia: Any
    cruzo: bool


def detectar(previo: dict | None, nuevo: dict | None, campo: str, destino: Any = None) -> Transicion:
    desde = (previo or {}).get(campo)
    hacia = (nuevo or {}).get(campo)

    if destino is None:
        cruzo = desde != hacia
    else:
        cruzo = desde != destino and hacia == destino

    return Transicion(campo=campo, desde=desde, hacia=hacia, cruzo=cruzo)


def snapshot(obj, campos: Iterable[str]) -> dict:
    return {c: getattr(obj, c, None) for c in campos}


@dataclass(frozen=True)
class ContextoTransicion:
    """Par (antes, después) de una única petición de actualización."""

    previo: dict
    nuevo: dict
    actor: str | None = None

    def detectar(self, campo: str, destino: Any = None) -> Transicion:
        return detectar(self.previo, self.nuevo, campo, destino)

    def cambios(self, campos: Iterable[str]) -> list[Transicion]:
        return [t for t in (self.detectar(c) for c in campos) if t.cruzo]
