from datetime import datetime

from app.extensions import db


class IncidentNote(db.Model):
    __tablename__ = "incident_notes"

    id = db.Column(db.Integer, primary_key=True, autoincrement=True)
    incident_id = db.Column(
        db.String(36),
        db.ForeignKey("incidents.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    body = db.Column(db.Text, nullable=False)
    created_by = db.Column(db.String(255), nullable=True)
    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)

    incident = db.relationship("Incident", back_populates="notes")
