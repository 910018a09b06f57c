from flask import jsonify
from werkzeug.exceptions import HTTPException
from marshmallow import ValidationError


class ApiError(Exception):
    """
    Excepción genérica para errores de negocio.
    """
    def __init__(self, message, status_code=400, errors=None, payload=None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.errors = errors or {}
        self.payload = payload or {}


class InvalidRequestError(ApiError):
    """Regla de negocio violada; el agregado queda sin cambios."""

    def __init__(self, message, errors=None, payload=None):
        super().__init__(message, status_code=400, errors=errors, payload=payload)


class NotFoundError(ApiError):
    def __init__(self, message="Recurso no encontrado", payload=None):
        super().__init__(message, status_code=404, payload=payload)


class ConflictError(ApiError):
    """Clave natural duplicada o versión concurrente obsoleta."""

    def __init__(self, message, payload=None):
        super().__init__(message, status_code=409, payload=payload)


class DispatchFailure(Exception):
    """
    Fallo al entregar un webhook. Nunca sale del dispatcher:
    se registra en el log y se descarta.
    """
    def __init__(self, canal, message, status_code=None):
        super().__init__(message)
        self.canal = canal
        self.message = message
        self.status_code = status_code


def register_error_handlers(app):

    @app.errorhandler(ApiError)
    def handle_api_error(err: ApiError):
        response = {
            "success": False,
            "message": err.message,
        }
        if err.errors:
            response["errors"] = err.errors
        if getattr(err, "payload", None):
            response["payload"] = err.payload

        return jsonify(response), err.status_code

    @app.errorhandler(ValidationError)
    def handle_marshmallow_validation(err: ValidationError):
        response = {
            "success": False,
            "message": "Datos inválidos",
            "errors": err.messages if hasattr(err, "messages") else str(err),
        }
        return jsonify(response), 400

    @app.errorhandler(HTTPException)
    def handle_http_exception(err: HTTPException):
        response = {
            "success": False,
            "message": err.description or "Error HTTP",
        }
        return jsonify(response), err.code

    @app.errorhandler(Exception)
    def handle_unexpected_error(err: Exception):
        # Traza completa en la consola
        app.logger.exception(err)

        response = {
            "success": False,
            "message": "Error interno del servidor",
        }
        return jsonify(response), 500
