import pymysql
pymysql.install_as_MySQLdb()
from flask import Flask
from flask_cors import CORS

from .config import DevConfig
from .extensions import db, migrate, jwt, ma, dispatcher
from .utils.errors import register_error_handlers
from .api import incidents_bp, pedidos_bp


def create_app(config_class=DevConfig) -> Flask:
    app = Flask(__name__)
    app.config.from_object(config_class)

    app.logger.setLevel(app.config.get("LOG_LEVEL", "INFO"))

    CORS(
        app,
        resources={r"/api/*": {"origins": app.config.get("CORS_ORIGINS", "*")}},
        supports_credentials=True,
    )

    # Inicializar extensiones
    db.init_app(app)
    migrate.init_app(app, db)
    jwt.init_app(app)
    ma.init_app(app)
    dispatcher.init_app(app)

    # Registrar blueprints
    app.register_blueprint(incidents_bp, url_prefix="/api/incidents")
    app.register_blueprint(pedidos_bp, url_prefix="/api/purchase-orders")

    # Manejadores de errores
    register_error_handlers(app)

    @app.get("/api/health")
    def health_check():
        return {
            "status": "ok",
            "service": "pispas-flota-backend",
            "webhooks_pendientes": dispatcher.pendientes,
        }

    return app
