from app.extensions import db


class PurchaseOrderLine(db.Model):
    __tablename__ = "purchase_order_lines"

    id = db.Column(db.Integer, primary_key=True, autoincrement=True)
    purchase_order_id = db.Column(
        db.String(36),
        db.ForeignKey("purchase_orders.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    pieza_id = db.Column(db.String(64), nullable=False)
    codigo = db.Column(db.String(64), nullable=False)
    nombre = db.Column(db.String(255), nullable=False)
    unidad = db.Column(db.String(20), nullable=True)

    cantidad = db.Column(db.Integer, nullable=False)
    cantidad_recibida = db.Column(db.Integer, nullable=False, default=0)
    pvp = db.Column(db.Numeric(10, 2), nullable=False)

    pedido = db.relationship("PurchaseOrder", back_populates="lineas")

    __table_args__ = (
        db.CheckConstraint("cantidad > 0", name="ck_po_lines_cantidad_positiva"),
        db.CheckConstraint(
            "cantidad_recibida >= 0 AND cantidad_recibida <= cantidad",
            name="ck_po_lines_recibida_rango",
        ),
    )

    @property
    def completa(self) -> bool:
        return (self.cantidad_recibida or 0) >= (self.cantidad or 0)

    def __repr__(self) -> str:
        return f"<PurchaseOrderLine id={self.id} pedido={self.purchase_order_id} {self.cantidad_recibida}/{self.cantidad}>"
