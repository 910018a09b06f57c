from datetime import datetime

from app.extensions import db


class IncidentHistory(db.Model):
    __tablename__ = "incident_history"

    id = db.Column(db.Integer, primary_key=True, autoincrement=True)
    incident_id = db.Column(
        db.String(36),
        db.ForeignKey("incidents.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    field = db.Column(db.String(60), nullable=False)
    old_value = db.Column(db.Text, nullable=True)
    new_value = db.Column(db.Text, nullable=True)
    changed_by = db.Column(db.String(255), nullable=True)
    changed_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)

    incident = db.relationship("Incident", back_populates="history")

    def __repr__(self) -> str:
        return f"<IncidentHistory incident={self.incident_id} field={self.field}>"
