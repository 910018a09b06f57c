"""Envío best-effort de webhooks fuera del ciclo de la petición.

Un único POST por webhook, sin reintentos. Cualquier fallo (red, timeout,
status no 2xx) se registra y se descarta: nunca llega al llamador ni revierte
la transición que lo originó.

El hilo de envío no toca la BD ni el app context; todo lo que necesita
(url, payload, cabeceras, timeout, logger) se captura en el hilo de la petición.
"""

import atexit
import threading
from collections import deque
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass
from datetime import datetime

import requests
from flask import current_app

from app.utils.errors import DispatchFailure


@dataclass(frozen=True)
class Envio:
    canal: str
    url: str
    payload: dict
    headers: dict
    timeout: float
    logger: object


class WebhookDispatcher:
    def __init__(self, app=None):
        self._executor: ThreadPoolExecutor | None = None
        self._sincrono = False
        self._resultados: deque = deque(maxlen=100)
        self._pendientes: set[Future] = set()
        self._lock = threading.Lock()
        if app is not None:
            self.init_app(app)

    def init_app(self, app) -> None:
        self._sincrono = bool(app.config.get("WEBHOOKS_SINCRONOS", False))
        self._resultados = deque(maxlen=max(1, int(app.config.get("WEBHOOK_HISTORIAL_MAX", 100))))

        if self._executor is None and not self._sincrono:
            self._executor = ThreadPoolExecutor(
                max_workers=max(1, int(app.config.get("WEBHOOK_MAX_WORKERS", 4))),
                thread_name_prefix="webhooks",
            )
            atexit.register(self.shutdown)

        app.extensions["webhook_dispatcher"] = self

    # ------------------------------------------------------------------
    # API pública
    # ------------------------------------------------------------------

    def despachar(self, canal, payload: dict) -> Future | None:
        """Programa el envío y retorna sin esperar. Debe llamarse con app context."""
        cfg = current_app.config
        url = (cfg.get(canal.config_url) or "").strip()
        numero = payload.get("incident_number")

        if not url:
            current_app.logger.warning(
                "[webhooks] %s sin configurar; se omite envío incidente=%s",
                canal.config_url,
                numero,
            )
            self._registrar(canal.nombre, numero, ok=False, error="sin_url")
            return None

        envio = Envio(
            canal=canal.nombre,
            url=url,
            payload=payload,
            headers={
                "Content-Type": "application/json",
                "X-Webhook-Source": cfg.get("WEBHOOK_SOURCE") or "pispas-incident-system",
            },
            timeout=float(cfg.get("WEBHOOK_TIMEOUT_SECONDS", 10)),
            logger=current_app.logger,
        )

        current_app.logger.info("[webhooks] disparando %s incidente=%s", canal.nombre, numero)

        if self._sincrono:
            self._entregar(envio)
            return None

        if self._executor is None:
            # Proceso apagándose: no se bloquea la petición esperando la red
            current_app.logger.warning(
                "[webhooks] dispatcher detenido; se descarta %s incidente=%s",
                canal.nombre,
                numero,
            )
            self._registrar(canal.nombre, numero, ok=False, error="dispatcher_detenido")
            return None

        future = self._executor.submit(self._entregar, envio)
        with self._lock:
            self._pendientes.add(future)
        future.add_done_callback(self._descartar)
        return future

    def resultados(self) -> list[dict]:
        return list(self._resultados)

    def limpiar(self) -> None:
        self._resultados.clear()

    @property
    def pendientes(self) -> int:
        with self._lock:
            return len(self._pendientes)

    def shutdown(self) -> None:
        # Los envíos en vuelo pueden perderse al apagar el proceso.
        if self._executor is not None:
            self._executor.shutdown(wait=False, cancel_futures=True)
            self._executor = None

    # ------------------------------------------------------------------
    # Interno
    # ------------------------------------------------------------------

    def _entregar(self, envio: Envio) -> None:
        numero = envio.payload.get("incident_number")
        try:
            status = self._post(envio)
        except DispatchFailure as err:
            envio.logger.error(
                "[webhooks] fallo %s incidente=%s: %s",
                envio.canal,
                numero,
                err.message,
            )
            self._registrar(envio.canal, numero, ok=False, status_code=err.status_code, error=err.message)
            return
        except Exception as err:
            envio.logger.exception("[webhooks] error inesperado %s incidente=%s", envio.canal, numero)
            self._registrar(envio.canal, numero, ok=False, error=str(err))
            return

        envio.logger.info("[webhooks] %s enviado incidente=%s status=%s", envio.canal, numero, status)
        self._registrar(envio.canal, numero, ok=True, status_code=status)

    def _post(self, envio: Envio) -> int:
        try:
            resp = requests.post(
                envio.url,
                json=envio.payload,
                headers=envio.headers,
                timeout=envio.timeout,
            )
        except requests.Timeout:
            raise DispatchFailure(envio.canal, f"timeout tras {envio.timeout}s")
        except requests.RequestException as err:
            raise DispatchFailure(envio.canal, f"error de red: {err}")

        if not resp.ok:
            raise DispatchFailure(
                envio.canal,
                f"respuesta HTTP {resp.status_code}",
                status_code=resp.status_code,
            )
        return resp.status_code

    def _registrar(self, canal: str, numero, ok: bool, status_code=None, error=None) -> None:
        self._resultados.append(
            {
                "canal": canal,
                "incident_number": numero,
                "ok": ok,
                "status_code": status_code,
                "error": error,
                "at": datetime.utcnow().replace(microsecond=0).isoformat() + "Z",
            }
        )

    def _descartar(self, future: Future) -> None:
        with self._lock:
            self._pendientes.discard(future)
