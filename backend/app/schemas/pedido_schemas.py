from marshmallow import fields, validate, pre_load, EXCLUDE

from app.extensions.ma import ma


class PedidoCreateSchema(ma.Schema):
    class Meta:
        unknown = EXCLUDE

    notas = fields.String(required=False, allow_none=True, load_default=None)


class PedidoUpdateSchema(ma.Schema):
    """
    Solo notas y transiciones manuales de estado.
    parcial/recibido se alcanzan exclusivamente por recepción.
    """

    class Meta:
        unknown = EXCLUDE

    notas = fields.String(allow_none=True)
    estado = fields.String(validate=validate.OneOf(["borrador", "cursado", "cancelado"]))


class LineaCreateSchema(ma.Schema):
    class Meta:
        unknown = EXCLUDE

    pieza_id = fields.String(required=True, validate=validate.Length(min=1))
    codigo = fields.String(required=True, validate=validate.Length(min=1))
    nombre = fields.String(required=True, validate=validate.Length(min=1))
    unidad = fields.String(required=False, allow_none=True, load_default=None)
    cantidad = fields.Integer(required=True, strict=False, validate=validate.Range(min=1))
    pvp = fields.Decimal(required=True, places=2, validate=validate.Range(min=0))

    @pre_load
    def normalizar_pieza(self, data, **kwargs):
        # pieza_id puede llegar como número desde el catálogo de stock
        if isinstance(data, dict) and data.get("pieza_id") is not None:
            data = dict(data)
            data["pieza_id"] = str(data["pieza_id"])
        return data


class LineaUpdateSchema(ma.Schema):
    class Meta:
        unknown = EXCLUDE

    nombre = fields.String(validate=validate.Length(min=1))
    unidad = fields.String(allow_none=True)
    cantidad = fields.Integer(validate=validate.Range(min=1))
    pvp = fields.Decimal(places=2, validate=validate.Range(min=0))


class RecepcionParcialSchema(ma.Schema):
    class Meta:
        unknown = EXCLUDE

    linea_id = fields.Integer(required=True, data_key="lineaId")
    cantidad = fields.Integer(required=True, validate=validate.Range(min=1))
