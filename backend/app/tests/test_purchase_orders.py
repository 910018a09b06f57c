from __future__ import annotations

import re

import pytest
from sqlalchemy import text

from app.models.purchase_order import PurchaseOrder
from app.services import pedido_service
from app.utils.errors import ConflictError


BASE = "/api/purchase-orders"


def _cursar(client, auth_header, pedido: dict) -> dict:
	resp = client.put(f"{BASE}/{pedido['id']}", json={"estado": "cursado"}, headers=auth_header())
	assert resp.status_code == 200, resp.get_json()
	return resp.get_json()["data"]


def _recibir(client, auth_header, pedido: dict, linea_id: int, cantidad: int):
	return client.post(
		f"{BASE}/{pedido['id']}/recibir-parcial",
		json={"lineaId": linea_id, "cantidad": cantidad},
		headers=auth_header(),
	)


def test_crear_pedido_en_borrador(client, auth_header):
	resp = client.post(BASE, json={"notas": "Reposición semanal"}, headers=auth_header())
	assert resp.status_code == 201
	data = resp.get_json()["data"]

	assert re.match(r"^PO-\d{5}$", data["numero"])
	assert data["estado"] == "borrador"
	assert data["total"] == 0
	assert data["lineas"] == []
	assert data["created_by"] == "operador@pispas.test"


def test_recepcion_parcial_hasta_completar(client, auth_header, make_pedido):
	pedido = make_pedido([{"cantidad": 5, "pvp": 10}, {"cantidad": 3, "pvp": 20}])
	assert pedido["total"] == 110.0
	pedido = _cursar(client, auth_header, pedido)
	l1, l2 = pedido["lineas"]

	resp = _recibir(client, auth_header, pedido, l1["id"], 5)
	assert resp.status_code == 200
	data = resp.get_json()["data"]
	assert data["estado"] == "parcial"
	assert data["fecha_recibido"] is None
	assert data["fecha_ultima_recepcion"] is not None
	assert [l["cantidad_recibida"] for l in data["lineas"]] == [5, 0]

	resp = _recibir(client, auth_header, pedido, l2["id"], 3)
	assert resp.status_code == 200
	data = resp.get_json()["data"]
	assert data["estado"] == "recibido"
	assert data["fecha_recibido"] is not None
	assert [l["cantidad_recibida"] for l in data["lineas"]] == [5, 3]
	assert data["total"] == 110.0


def test_recepcion_en_varias_entregas_de_una_linea(client, auth_header, make_pedido):
	pedido = _cursar(client, auth_header, make_pedido([{"cantidad": 4, "pvp": "2.50"}]))
	linea = pedido["lineas"][0]

	data = _recibir(client, auth_header, pedido, linea["id"], 1).get_json()["data"]
	assert data["estado"] == "parcial"

	data = _recibir(client, auth_header, pedido, linea["id"], 3).get_json()["data"]
	assert data["estado"] == "recibido"
	assert data["lineas"][0]["cantidad_recibida"] == 4


def test_exceso_de_recepcion_rechazado_sin_cambios(client, auth_header, make_pedido):
	pedido = _cursar(client, auth_header, make_pedido([{"cantidad": 5, "pvp": 10}]))
	linea = pedido["lineas"][0]

	assert _recibir(client, auth_header, pedido, linea["id"], 3).status_code == 200

	resp = _recibir(client, auth_header, pedido, linea["id"], 3)
	assert resp.status_code == 400
	body = resp.get_json()
	assert body["message"] == "La cantidad recibida no puede exceder la cantidad pedida"
	assert body["payload"]["cantidad_recibida"] == 3

	data = client.get(f"{BASE}/{pedido['id']}", headers=auth_header()).get_json()["data"]
	assert data["estado"] == "parcial"
	assert data["lineas"][0]["cantidad_recibida"] == 3


def test_recepcion_parcial_cantidad_no_positiva(client, auth_header, make_pedido):
	pedido = _cursar(client, auth_header, make_pedido([{"cantidad": 2, "pvp": 1}]))
	linea = pedido["lineas"][0]

	for cantidad in (0, -1):
		resp = _recibir(client, auth_header, pedido, linea["id"], cantidad)
		assert resp.status_code == 400

	data = client.get(f"{BASE}/{pedido['id']}", headers=auth_header()).get_json()["data"]
	assert data["estado"] == "cursado"


def test_recepcion_linea_de_otro_pedido_404(client, auth_header, make_pedido):
	a = _cursar(client, auth_header, make_pedido([{"cantidad": 1, "pvp": 1}]))
	b = _cursar(client, auth_header, make_pedido([{"cantidad": 1, "pvp": 1}]))

	resp = _recibir(client, auth_header, a, b["lineas"][0]["id"], 1)
	assert resp.status_code == 404


def test_recibir_completo(client, auth_header, make_pedido):
	pedido = _cursar(client, auth_header, make_pedido([{"cantidad": 5, "pvp": 10}, {"cantidad": 3, "pvp": 20}]))
	_recibir(client, auth_header, pedido, pedido["lineas"][0]["id"], 2)

	resp = client.post(f"{BASE}/{pedido['id']}/recibir-completo", headers=auth_header())
	assert resp.status_code == 200
	data = resp.get_json()["data"]
	assert data["estado"] == "recibido"
	assert data["fecha_recibido"] is not None
	assert all(l["cantidad_recibida"] == l["cantidad"] for l in data["lineas"])


def test_no_se_recibe_un_pedido_cancelado(client, auth_header, make_pedido):
	pedido = make_pedido([{"cantidad": 1, "pvp": 1}])
	client.put(f"{BASE}/{pedido['id']}", json={"estado": "cancelado"}, headers=auth_header())

	resp = client.post(f"{BASE}/{pedido['id']}/recibir-completo", headers=auth_header())
	assert resp.status_code == 400
	resp = _recibir(client, auth_header, pedido, pedido["lineas"][0]["id"], 1)
	assert resp.status_code == 400


def test_total_se_recalcula_con_las_lineas(client, auth_header, make_pedido):
	pedido = make_pedido([{"cantidad": 5, "pvp": 10}, {"cantidad": 3, "pvp": 20}])
	l1, l2 = pedido["lineas"]

	resp = client.put(f"{BASE}/{pedido['id']}/lineas/{l1['id']}", json={"cantidad": 2, "pvp": "7.25"}, headers=auth_header())
	assert resp.status_code == 200
	data = client.get(f"{BASE}/{pedido['id']}", headers=auth_header()).get_json()["data"]
	assert data["total"] == 74.5

	resp = client.delete(f"{BASE}/{pedido['id']}/lineas/{l2['id']}", headers=auth_header())
	assert resp.status_code == 200
	data = resp.get_json()["data"]
	assert data["total"] == 14.5
	assert [l["id"] for l in data["lineas"]] == [l1["id"]]


def test_linea_no_baja_de_lo_recibido(client, auth_header, make_pedido):
	pedido = _cursar(client, auth_header, make_pedido([{"cantidad": 5, "pvp": 1}, {"cantidad": 1, "pvp": 1}]))
	linea = pedido["lineas"][0]
	_recibir(client, auth_header, pedido, linea["id"], 4)

	resp = client.put(f"{BASE}/{pedido['id']}/lineas/{linea['id']}", json={"cantidad": 3}, headers=auth_header())
	assert resp.status_code == 400


def test_linea_con_cantidad_cero_rechazada(client, auth_header, make_pedido):
	pedido = make_pedido()
	resp = client.post(
		f"{BASE}/{pedido['id']}/lineas",
		json={"pieza_id": 77, "codigo": "X", "nombre": "Freno", "cantidad": 0, "pvp": 5},
		headers=auth_header(),
	)
	assert resp.status_code == 400
	assert "cantidad" in resp.get_json()["errors"]


def test_pieza_id_numerico_se_guarda_como_texto(client, auth_header, make_pedido):
	pedido = make_pedido([{"pieza_id": 77, "cantidad": 1, "pvp": 5}])
	assert pedido["lineas"][0]["pieza_id"] == "77"


def test_transiciones_manuales(client, auth_header, make_pedido):
	pedido = make_pedido([{"cantidad": 1, "pvp": 1}])
	assert pedido["fecha_cursado"] is None

	data = _cursar(client, auth_header, pedido)
	assert data["estado"] == "cursado"
	assert data["fecha_cursado"] is not None

	resp = client.put(f"{BASE}/{pedido['id']}", json={"estado": "borrador", "notas": "no"}, headers=auth_header())
	assert resp.status_code == 400
	assert resp.get_json()["payload"]["permitidos"] == ["cancelado"]

	resp = client.put(f"{BASE}/{pedido['id']}", json={"estado": "recibido"}, headers=auth_header())
	assert resp.status_code == 400

	data = client.get(f"{BASE}/{pedido['id']}", headers=auth_header()).get_json()["data"]
	assert data["estado"] == "cursado"
	assert data["notas"] is None


def test_eliminar_solo_borrador_o_cancelado(client, auth_header, make_pedido):
	pedido = _cursar(client, auth_header, make_pedido([{"cantidad": 1, "pvp": 1}]))

	resp = client.delete(f"{BASE}/{pedido['id']}", headers=auth_header())
	assert resp.status_code == 400

	client.put(f"{BASE}/{pedido['id']}", json={"estado": "cancelado"}, headers=auth_header())
	resp = client.delete(f"{BASE}/{pedido['id']}", headers=auth_header())
	assert resp.status_code == 200

	resp = client.get(f"{BASE}/{pedido['id']}", headers=auth_header())
	assert resp.status_code == 404


def test_listado_por_estado(client, auth_header, make_pedido):
	pedido = make_pedido()
	client.put(f"{BASE}/{pedido['id']}", json={"estado": "cancelado"}, headers=auth_header())

	resp = client.get(f"{BASE}?estado=cancelado", headers=auth_header())
	assert resp.status_code == 200
	data = resp.get_json()["data"]
	assert pedido["id"] in [p["id"] for p in data]
	assert all(p["estado"] == "cancelado" for p in data)


def test_version_obsoleta_es_conflicto(app, db_session, make_pedido):
	pedido = make_pedido()
	obj = db_session.get(PurchaseOrder, pedido["id"])
	assert obj.version == pedido["version"]

	# Otra transacción ya escribió el pedido
	db_session.execute(
		text("UPDATE purchase_orders SET version = version + 1 WHERE id = :id"),
		{"id": pedido["id"]},
	)

	with pytest.raises(ConflictError):
		pedido_service.actualizar_pedido(pedido["id"], {"notas": "tarde"})


def test_recibir_completo_dos_veces_no_cambia_fechas(client, auth_header, make_pedido):
	pedido = _cursar(client, auth_header, make_pedido([{"cantidad": 2, "pvp": 3}]))

	primera = client.post(f"{BASE}/{pedido['id']}/recibir-completo", headers=auth_header()).get_json()["data"]
	assert primera["estado"] == "recibido"

	resp = client.post(f"{BASE}/{pedido['id']}/recibir-completo", headers=auth_header())
	assert resp.status_code == 400
	assert resp.get_json()["message"] == "El pedido ya está recibido"

	data = client.get(f"{BASE}/{pedido['id']}", headers=auth_header()).get_json()["data"]
	assert data["fecha_recibido"] == primera["fecha_recibido"]
	assert data["fecha_ultima_recepcion"] == primera["fecha_ultima_recepcion"]
