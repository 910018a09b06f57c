import uuid
from datetime import datetime

from app.extensions import db


# borrador -> cursado -> parcial -> recibido; cancelado desde borrador/cursado
ESTADOS_PEDIDO = ("borrador", "cursado", "parcial", "recibido", "cancelado")


class PurchaseOrder(db.Model):
    __tablename__ = "purchase_orders"

    id = db.Column(db.String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    numero = db.Column(db.String(20), unique=True, nullable=False)

    estado = db.Column(db.String(20), nullable=False, default="borrador", index=True)

    # Derivado: siempre Σ cantidad × pvp de las líneas
    total = db.Column(db.Numeric(12, 2), nullable=False, default=0)

    notas = db.Column(db.Text, nullable=True)
    created_by = db.Column(db.String(255), nullable=True)

    fecha_creacion = db.Column(db.DateTime, nullable=False, default=datetime.utcnow, index=True)
    fecha_cursado = db.Column(db.DateTime, nullable=True)
    fecha_recibido = db.Column(db.DateTime, nullable=True)
    fecha_ultima_recepcion = db.Column(db.DateTime, nullable=True)

    # Control optimista de concurrencia en recepciones
    version = db.Column(db.Integer, nullable=False, default=1)

    lineas = db.relationship(
        "PurchaseOrderLine",
        back_populates="pedido",
        cascade="all, delete-orphan",
        order_by="PurchaseOrderLine.id",
    )

    __mapper_args__ = {"version_id_col": version}

    def __repr__(self) -> str:
        return f"<PurchaseOrder id={self.id} numero={self.numero} estado={self.estado}>"
