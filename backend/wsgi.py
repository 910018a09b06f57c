import os

from app import create_app
from app.config import DevConfig, ProdConfig


def _es_produccion() -> bool:
    if os.getenv("APP_ENV", "").strip().lower() in ("prod", "production"):
        return True
    # Railway no define APP_ENV; basta con sus variables de proyecto
    return any(
        os.getenv(k)
        for k in (
            "RAILWAY_PROJECT_ID",
            "RAILWAY_SERVICE_ID",
            "RAILWAY_ENVIRONMENT",
        )
    )


app = create_app(ProdConfig if _es_produccion() else DevConfig)

if __name__ == "__main__":
    app.run(host="0.0.0.0", port=int(os.getenv("PORT", "5000")))
