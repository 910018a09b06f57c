from marshmallow import fields, validate, validates, ValidationError, EXCLUDE

from app.extensions.ma import ma
from app.models import IncidentHistory, IncidentNote


PRIORIDADES = ("low", "medium", "high", "critical")


class IncidentCreateSchema(ma.Schema):
    """
    Alta de incidencia (operador o bot de intake).
    number, created_by y resolution_date los pone el servicio.
    """

    class Meta:
        unknown = EXCLUDE

    title = fields.String(required=True, validate=validate.Length(min=1, max=255))
    description = fields.String(required=True, validate=validate.Length(min=1))
    category = fields.String(required=False, allow_none=True, validate=validate.Length(max=60))
    priority = fields.String(required=False, load_default="medium", validate=validate.OneOf(PRIORIDADES))
    status = fields.String(required=False, load_default="open", validate=validate.Length(min=1, max=30))
    source = fields.String(required=False, allow_none=True)

    scooter_id = fields.String(required=False, allow_none=True)
    trip_id = fields.String(required=False, allow_none=True)
    location = fields.String(required=False, allow_none=True)
    user_phone = fields.String(required=False, allow_none=True)
    reported_by = fields.String(required=False, allow_none=True)
    assigned_to = fields.String(required=False, allow_none=True)
    requires_pickup = fields.Boolean(required=False, load_default=False)
    estimated_cost = fields.Decimal(required=False, allow_none=True, places=2, validate=validate.Range(min=0))
    resolution_notes = fields.String(required=False, allow_none=True)

    @validates("title")
    def validar_titulo(self, value, **kwargs):
        if not value.strip():
            raise ValidationError("El título no puede estar vacío.")


class IncidentUpdateSchema(ma.Schema):
    """Actualización parcial: solo se aplican los campos presentes."""

    class Meta:
        unknown = EXCLUDE

    title = fields.String(validate=validate.Length(min=1, max=255))
    description = fields.String(validate=validate.Length(min=1))
    category = fields.String(allow_none=True, validate=validate.Length(max=60))
    priority = fields.String(validate=validate.OneOf(PRIORIDADES))
    status = fields.String(validate=validate.Length(min=1, max=30))
    source = fields.String(allow_none=True)

    scooter_id = fields.String(allow_none=True)
    trip_id = fields.String(allow_none=True)
    location = fields.String(allow_none=True)
    user_phone = fields.String(allow_none=True)
    reported_by = fields.String(allow_none=True)
    assigned_to = fields.String(allow_none=True)
    requires_pickup = fields.Boolean()
    estimated_cost = fields.Decimal(allow_none=True, places=2, validate=validate.Range(min=0))
    resolution_notes = fields.String(allow_none=True)

    @validates("title")
    def validar_titulo(self, value, **kwargs):
        if not value.strip():
            raise ValidationError("El título no puede estar vacío.")


class IncidentNoteCreateSchema(ma.Schema):
    body = fields.String(required=True, validate=validate.Length(min=1))

    @validates("body")
    def validar_body(self, value, **kwargs):
        if not value.strip():
            raise ValidationError("La nota no puede estar vacía.")


class IncidentNoteSchema(ma.SQLAlchemyAutoSchema):
    class Meta:
        model = IncidentNote
        include_fk = True


class IncidentHistorySchema(ma.SQLAlchemyAutoSchema):
    class Meta:
        model = IncidentHistory
        include_fk = True
