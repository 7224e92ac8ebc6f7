from freelancedash.extensions import db
from freelancedash.utils.transactions import utcnow
import uuid


def gen_notif_id():
    return f"notif-{str(uuid.uuid4())[:8]}"


class Notification(db.Model):
    __tablename__ = "notifications"

    id = db.Column(db.String(50), primary_key=True, default=gen_notif_id)
    user_id = db.Column(db.String(50), db.ForeignKey("users.id"), nullable=False, index=True)
    sender_id = db.Column(db.String(50), db.ForeignKey("users.id"), nullable=True)

    type = db.Column(db.String(50), default="info")
    title = db.Column(db.String(255), nullable=False)
    message = db.Column(db.Text, nullable=False)
    details = db.Column(db.JSON, nullable=True)

    is_read = db.Column(db.Boolean, nullable=False, default=False)
    created_at = db.Column(db.DateTime, default=utcnow)

    recipient = db.relationship("User", foreign_keys=[user_id], backref="notifications", lazy=True)
    sender = db.relationship("User", foreign_keys=[sender_id], backref="sent_notifications", lazy=True)

    def to_dict(self):
        return {
            "id": self.id,
            "userId": self.user_id,
            "senderId": self.sender_id,
            "type": self.type,
            "title": self.title,
            "message": self.message,
            "details": self.details or {},
            "isRead": self.is_read,
            "createdAt": self.created_at.isoformat() + "Z" if self.created_at else None,
        }
