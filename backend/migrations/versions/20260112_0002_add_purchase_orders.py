"""add purchase_orders y purchase_order_lines

Revision ID: 20260112_0002
Revises: 20260110_0001
Create Date: 2026-01-12

"""

from alembic import op
import sqlalchemy as sa
from sqlalchemy import inspect


revision = "20260112_0002"
down_revision = "20260110_0001"
branch_labels = None
depends_on = None


def upgrade():
    bind = op.get_bind()
    insp = inspect(bind)
    tables = set(insp.get_table_names())

    if "purchase_orders" not in tables:
        op.create_table(
            "purchase_orders",
            sa.Column("id", sa.String(length=36), primary_key=True),
            sa.Column("numero", sa.String(length=20), nullable=False),
            sa.Column("estado", sa.String(length=20), server_default="borrador", nullable=False),
            sa.Column("total", sa.Numeric(12, 2), server_default="0.00", nullable=False),
            sa.Column("notas", sa.Text(), nullable=True),
            sa.Column("created_by", sa.String(length=255), nullable=True),
            sa.Column("fecha_creacion", sa.DateTime(), server_default=sa.text("CURRENT_TIMESTAMP"), nullable=False),
            sa.Column("fecha_cursado", sa.DateTime(), nullable=True),
            sa.Column("fecha_recibido", sa.DateTime(), nullable=True),
            sa.Column("fecha_ultima_recepcion", sa.DateTime(), nullable=True),
            sa.Column("version", sa.Integer(), server_default=sa.text("1"), nullable=False),
            sa.UniqueConstraint("numero", name="uq_purchase_orders_numero"),
        )
        op.create_index("ix_purchase_orders_estado", "purchase_orders", ["estado"], unique=False)
        op.create_index("ix_purchase_orders_fecha_creacion", "purchase_orders", ["fecha_creacion"], unique=False)

    if "purchase_order_lines" not in tables:
        op.create_table(
            "purchase_order_lines",
            sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
            sa.Column("purchase_order_id", sa.String(length=36), nullable=False),
            sa.Column("pieza_id", sa.String(length=64), nullable=False),
            sa.Column("codigo", sa.String(length=64), nullable=False),
            sa.Column("nombre", sa.String(length=255), nullable=False),
            sa.Column("unidad", sa.String(length=20), nullable=True),
            sa.Column("cantidad", sa.Integer(), nullable=False),
            sa.Column("cantidad_recibida", sa.Integer(), server_default=sa.text("0"), nullable=False),
            sa.Column("pvp", sa.Numeric(10, 2), nullable=False),
            sa.ForeignKeyConstraint(["purchase_order_id"], ["purchase_orders.id"], ondelete="CASCADE"),
            sa.CheckConstraint("cantidad > 0", name="ck_po_lines_cantidad_positiva"),
            sa.CheckConstraint(
                "cantidad_recibida >= 0 AND cantidad_recibida <= cantidad",
                name="ck_po_lines_recibida_rango",
            ),
        )
        op.create_index(
            "ix_purchase_order_lines_purchase_order_id",
            "purchase_order_lines",
            ["purchase_order_id"],
            unique=False,
        )


def downgrade():
    bind = op.get_bind()
    insp = inspect(bind)
    tables = set(insp.get_table_names())

    if "purchase_order_lines" in tables:
        op.drop_table("purchase_order_lines")
    if "purchase_orders" in tables:
        op.drop_table("purchase_orders")
