import pytest

from sqlalchemy.pool import StaticPool
from flask_jwt_extended import create_access_token

from app import create_app
from app.config import TestConfig as BaseTestConfig
from app.extensions import db, dispatcher

# Importar modelos para que SQLAlchemy registre mappers/tablas
import app.models  # noqa: F401
from app.services import webhook_dispatcher as webhook_dispatcher_mod


class PytestConfig(BaseTestConfig):
	SQLALCHEMY_DATABASE_URI = "sqlite://"
	SQLALCHEMY_ENGINE_OPTIONS = {
		"connect_args": {"check_same_thread": False},
		"poolclass": StaticPool,
	}
	JWT_SECRET_KEY = "test-secret"

	BILLING_WEBHOOK_URL = "https://hooks.test/billing"
	MECHANICAL_WEBHOOK_URL = "https://hooks.test/mechanical"
	OTHER_WEBHOOK_URL = "https://hooks.test/other"
	WEBHOOKS_SINCRONOS = True


@pytest.fixture(scope="session")
def app():
	app = create_app(PytestConfig)
	with app.app_context():
		db.create_all()
		yield app
		db.session.remove()
		db.drop_all()


@pytest.fixture()
def client(app):
	return app.test_client()


@pytest.fixture()
def db_session(app):
	with app.app_context():
		yield db.session
		db.session.rollback()


@pytest.fixture()
def make_token(app):
	def _make_token(email: str = "operador@pispas.test") -> str:
		with app.app_context():
			return create_access_token(identity=email, additional_claims={"email": email})

	return _make_token


@pytest.fixture()
def auth_header(make_token):
	def _auth_header(email: str = "operador@pispas.test") -> dict:
		token = make_token(email)
		return {"Authorization": f"Bearer {token}"}

	return _auth_header


class _Respuesta:
	def __init__(self, status_code: int):
		self.status_code = status_code
		self.ok = 200 <= status_code < 400


@pytest.fixture()
def webhooks(monkeypatch):
	"""
	Sustituye requests.post del dispatcher y guarda cada llamada.
	`webhooks.status` o `webhooks.error` controlan la respuesta simulada.
	"""

	class _Registro:
		def __init__(self):
			self.llamadas: list[dict] = []
			self.status = 200
			self.error: Exception | None = None

		def post(self, url, json=None, headers=None, timeout=None):
			self.llamadas.append({"url": url, "json": json, "headers": headers, "timeout": timeout})
			if self.error is not None:
				raise self.error
			return _Respuesta(self.status)

		def por_url(self, url: str) -> list[dict]:
			return [c for c in self.llamadas if c["url"] == url]

	registro = _Registro()
	monkeypatch.setattr(webhook_dispatcher_mod.requests, "post", registro.post)
	dispatcher.limpiar()
	yield registro
	dispatcher.limpiar()


@pytest.fixture()
def make_incident(client, auth_header):
	def _make_incident(**campos) -> dict:
		body = {
			"title": "Patinete no arranca",
			"description": "El usuario reporta que el patinete no enciende",
			"category": "mechanical_failure",
			"trip_id": "trip-001",
			"scooter_id": "SC-042",
			"user_phone": "+34600000000",
			"reported_by": "cliente@pispas.test",
			"location": "Calle Mayor 1",
		}
		body.update(campos)
		resp = client.post("/api/incidents", json=body, headers=auth_header())
		assert resp.status_code == 201, resp.get_json()
		return resp.get_json()["data"]

	return _make_incident


@pytest.fixture()
def make_pedido(client, auth_header):
	def _make_pedido(lineas: list[dict] | None = None, notas: str | None = None) -> dict:
		resp = client.post("/api/purchase-orders", json={"notas": notas}, headers=auth_header())
		assert resp.status_code == 201, resp.get_json()
		pedido = resp.get_json()["data"]

		for i, linea in enumerate(lineas or [], start=1):
			body = {
				"pieza_id": f"P-{i}",
				"codigo": f"COD-{i}",
				"nombre": f"Pieza {i}",
				"unidad": "ud",
			}
			body.update(linea)
			r = client.post(f"/api/purchase-orders/{pedido['id']}/lineas", json=body, headers=auth_header())
			assert r.status_code == 201, r.get_json()

		resp = client.get(f"/api/purchase-orders/{pedido['id']}", headers=auth_header())
		return resp.get_json()["data"]

	return _make_pedido
