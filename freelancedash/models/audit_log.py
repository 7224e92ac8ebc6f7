from freelancedash.extensions import db
from freelancedash.utils.transactions import utcnow


class AuditLog(db.Model):
    """Append-only record of lifecycle transitions."""

    __tablename__ = "audit_logs"

    id = db.Column(db.Integer, primary_key=True, autoincrement=True)
    entity_type = db.Column(db.String(50), nullable=False, index=True)
    entity_id = db.Column(db.String(50), nullable=False, index=True)
    action = db.Column(db.String(50), nullable=False)
    actor_id = db.Column(db.String(50), nullable=True)
    details = db.Column(db.JSON, nullable=True)
    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)

    def to_dict(self):
        return {
            "id": self.id,
            "entityType": self.entity_type,
            "entityId": self.entity_id,
            "action": self.action,
            "actorId": self.actor_id,
            "details": self.details or {},
            "createdAt": self.created_at.isoformat() + "Z",
        }
