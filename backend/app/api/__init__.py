from .incident_routes import bp as incidents_bp
from .pedido_routes import bp as pedidos_bp

__all__ = [
    "incidents_bp",
    "pedidos_bp",
]
