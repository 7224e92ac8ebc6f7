from freelancedash.extensions import db
from freelancedash.utils.transactions import utcnow
import secrets
import uuid

INVITATION_STATUSES = ("pending", "accepted", "rejected", "expired")


def gen_invitation_id():
    return f"inv-{uuid.uuid4().hex[:12]}"


def gen_invitation_token():
    return secrets.token_urlsafe(32)


class Invitation(db.Model):
    __tablename__ = "invitations"

    __table_args__ = (
        db.Index("idx_invitations_project_email_status", "project_id", "client_email", "status"),
    )

    id = db.Column(db.String(50), primary_key=True, default=gen_invitation_id)
    token = db.Column(db.String(64), unique=True, nullable=False, default=gen_invitation_token)

    project_id = db.Column(db.String(50), db.ForeignKey("projects.id"), nullable=False, index=True)
    freelancer_id = db.Column(db.String(50), db.ForeignKey("users.id"), nullable=False)
    client_email = db.Column(db.String(255), nullable=False, index=True)
    client_id = db.Column(db.String(50), db.ForeignKey("users.id"), nullable=True)

    status = db.Column(db.String(20), nullable=False, default="pending")
    expires_at = db.Column(db.DateTime, nullable=False)
    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)
    responded_at = db.Column(db.DateTime, nullable=True)

    project = db.relationship(
        "Project",
        backref=db.backref("invitations", lazy=True, cascade="all, delete"),
    )
    freelancer = db.relationship("User", foreign_keys=[freelancer_id], lazy=True)

    def is_expired(self, now=None):
        return (now or utcnow()) >= self.expires_at

    def effective_status(self, now=None):
        """
        Status as callers must see it. A stored ``pending`` past its expiry
        reads as ``expired``; accepted/rejected are terminal and kept.
        """
        if self.status == "pending" and self.is_expired(now):
            return "expired"
        return self.status

    def to_dict(self, now=None):
        status = self.effective_status(now)
        return {
            "id": self.id,
            "token": self.token,
            "projectId": self.project_id,
            "freelancerId": self.freelancer_id,
            "clientEmail": self.client_email,
            "clientId": self.client_id,
            "status": status,
            "expired": status == "expired",
            "expiresAt": self.expires_at.isoformat() + "Z",
            "createdAt": self.created_at.isoformat() + "Z" if self.created_at else None,
            "respondedAt": self.responded_at.isoformat() + "Z" if self.responded_at else None,
        }
