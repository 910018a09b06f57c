import uuid
from datetime import datetime

from app.extensions import db


ESTADO_RESUELTO = "resolved"


class Incident(db.Model):
    __tablename__ = "incidents"

    id = db.Column(db.String(36), primary_key=True, default=lambda: str(uuid.uuid4()))

    # Código legible del ticket (PSP-YYMMDD-NNNN)
    number = db.Column(db.String(32), unique=True, nullable=False, index=True)

    title = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text, nullable=False)

    # billing_issue, mechanical_failure, flat_tire, battery_issue, electrical_problem,
    # accident, theft, other, user_error, ... (texto libre, lo define el operador)
    category = db.Column(db.String(60), nullable=True, index=True)
    priority = db.Column(db.String(20), nullable=False, default="medium")

    # open -> in_progress -> resolved (+ estados intermedios del operador)
    status = db.Column(db.String(30), nullable=False, default="open", index=True)
    source = db.Column(db.String(60), nullable=True)

    # Datos denormalizados del viaje / patinete / usuario
    scooter_id = db.Column(db.String(64), nullable=True)
    trip_id = db.Column(db.String(64), nullable=True)
    location = db.Column(db.String(255), nullable=True)
    user_phone = db.Column(db.String(32), nullable=True)
    reported_by = db.Column(db.String(255), nullable=True)
    assigned_to = db.Column(db.String(255), nullable=True, index=True)
    requires_pickup = db.Column(db.Boolean, nullable=False, default=False)
    estimated_cost = db.Column(db.Numeric(10, 2), nullable=True)

    resolution_notes = db.Column(db.Text, nullable=True)
    # Se fija una sola vez, en la primera transición a "resolved"
    resolution_date = db.Column(db.DateTime, nullable=True)

    created_by = db.Column(db.String(255), nullable=True)
    created_date = db.Column(db.DateTime, nullable=False, default=datetime.utcnow, index=True)
    updated_date = db.Column(
        db.DateTime,
        nullable=False,
        default=datetime.utcnow,
        onupdate=datetime.utcnow,
    )

    notes = db.relationship(
        "IncidentNote",
        back_populates="incident",
        cascade="all, delete-orphan",
        order_by="IncidentNote.created_at",
    )
    history = db.relationship(
        "IncidentHistory",
        back_populates="incident",
        cascade="all, delete-orphan",
        order_by="IncidentHistory.changed_at",
    )

    @property
    def is_resolved(self) -> bool:
        return self.status == ESTADO_RESUELTO

    def __repr__(self) -> str:
        return f"<Incident id={self.id} number={self.number} status={self.status}>"
