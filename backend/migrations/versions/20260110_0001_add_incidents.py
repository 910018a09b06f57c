"""add incidents, incident_notes, incident_history

Revision ID: 20260110_0001
Revises:
Create Date: 2026-01-10

"""

from alembic import op
import sqlalchemy as sa
from sqlalchemy import inspect


revision = "20260110_0001"
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    bind = op.get_bind()
    insp = inspect(bind)
    tables = set(insp.get_table_names())

    if "incidents" not in tables:
        op.create_table(
            "incidents",
            sa.Column("id", sa.String(length=36), primary_key=True),
            sa.Column("number", sa.String(length=32), nullable=False),
            sa.Column("title", sa.String(length=255), nullable=False),
            sa.Column("description", sa.Text(), nullable=False),
            sa.Column("category", sa.String(length=60), nullable=True),
            sa.Column("priority", sa.String(length=20), server_default="medium", nullable=False),
            sa.Column("status", sa.String(length=30), server_default="open", nullable=False),
            sa.Column("source", sa.String(length=60), nullable=True),
            sa.Column("scooter_id", sa.String(length=64), nullable=True),
            sa.Column("trip_id", sa.String(length=64), nullable=True),
            sa.Column("location", sa.String(length=255), nullable=True),
            sa.Column("user_phone", sa.String(length=32), nullable=True),
            sa.Column("reported_by", sa.String(length=255), nullable=True),
            sa.Column("assigned_to", sa.String(length=255), nullable=True),
            sa.Column("requires_pickup", sa.Boolean(), server_default=sa.text("0"), nullable=False),
            sa.Column("estimated_cost", sa.Numeric(10, 2), nullable=True),
            sa.Column("resolution_notes", sa.Text(), nullable=True),
            sa.Column("resolution_date", sa.DateTime(), nullable=True),
            sa.Column("created_by", sa.String(length=255), nullable=True),
            sa.Column("created_date", sa.DateTime(), server_default=sa.text("CURRENT_TIMESTAMP"), nullable=False),
            sa.Column("updated_date", sa.DateTime(), server_default=sa.text("CURRENT_TIMESTAMP"), nullable=False),
            sa.UniqueConstraint("number", name="uq_incidents_number"),
        )
        op.create_index("ix_incidents_number", "incidents", ["number"], unique=False)
        op.create_index("ix_incidents_category", "incidents", ["category"], unique=False)
        op.create_index("ix_incidents_status", "incidents", ["status"], unique=False)
        op.create_index("ix_incidents_assigned_to", "incidents", ["assigned_to"], unique=False)
        op.create_index("ix_incidents_created_date", "incidents", ["created_date"], unique=False)

    if "incident_notes" not in tables:
        op.create_table(
            "incident_notes",
            sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
            sa.Column("incident_id", sa.String(length=36), nullable=False),
            sa.Column("body", sa.Text(), nullable=False),
            sa.Column("created_by", sa.String(length=255), nullable=True),
            sa.Column("created_at", sa.DateTime(), server_default=sa.text("CURRENT_TIMESTAMP"), nullable=False),
            sa.ForeignKeyConstraint(["incident_id"], ["incidents.id"], ondelete="CASCADE"),
        )
        op.create_index("ix_incident_notes_incident_id", "incident_notes", ["incident_id"], unique=False)

    if "incident_history" not in tables:
        op.create_table(
            "incident_history",
            sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
            sa.Column("incident_id", sa.String(length=36), nullable=False),
            sa.Column("field", sa.String(length=60), nullable=False),
            sa.Column("old_value", sa.Text(), nullable=True),
            sa.Column("new_value", sa.Text(), nullable=True),
            sa.Column("changed_by", sa.String(length=255), nullable=True),
            sa.Column("changed_at", sa.DateTime(), server_default=sa.text("CURRENT_TIMESTAMP"), nullable=False),
            sa.ForeignKeyConstraint(["incident_id"], ["incidents.id"], ondelete="CASCADE"),
        )
        op.create_index("ix_incident_history_incident_id", "incident_history", ["incident_id"], unique=False)


def downgrade():
    bind = op.get_bind()
    insp = inspect(bind)
    tables = set(insp.get_table_names())

    for tabla in ("incident_history", "incident_notes", "incidents"):
        if tabla in tables:
            op.drop_table(tabla)
