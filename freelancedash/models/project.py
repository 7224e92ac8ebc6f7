from freelancedash.extensions import db
from freelancedash.utils.money import format_money
from freelancedash.utils.transactions import utcnow
import uuid

PROJECT_STATUSES = ("active", "pending_approval", "completed", "cancelled", "rejected")

# statuses in which the project is still open to a new client invitation
INVITABLE_STATUSES = ("active", "pending_approval", "rejected")


def gen_project_id():
    return f"prj-{uuid.uuid4().hex[:12]}"


def _iso(value):
    return value.isoformat() if value else None


class Project(db.Model):
    __tablename__ = "projects"

    __table_args__ = (
        db.Index("idx_projects_client_email", "client_email"),
    )

    id = db.Column(db.String(50), primary_key=True, default=gen_project_id)

    title = db.Column(db.String(100), nullable=False)
    description = db.Column(db.Text)

    freelancer_id = db.Column(db.String(50), db.ForeignKey("users.id"), nullable=False, index=True)
    client_id = db.Column(db.String(50), db.ForeignKey("users.id"), nullable=True, index=True)
    client_email = db.Column(db.String(255), nullable=True)

    status = db.Column(db.String(30), nullable=False, default="active")

    # false once the client archives the project; the row is kept
    client_visible = db.Column(db.Boolean, nullable=False, default=True)
    archived_by_client_at = db.Column(db.DateTime, nullable=True)

    # ordered [{title, percentage, amount, dueDate, status}]
    milestones = db.Column(db.JSON, nullable=False, default=list)

    hourly_rate = db.Column(db.Numeric(10, 2), nullable=True)
    budget = db.Column(db.Numeric(12, 2), nullable=True)
    deposit_amount = db.Column(db.Numeric(12, 2), nullable=True)
    payment_terms = db.Column(db.String(255), nullable=True)

    enable_billable_hours = db.Column(db.Boolean, nullable=False, default=False)
    max_billable_hours = db.Column(db.Float, nullable=True)

    start_date = db.Column(db.Date, nullable=True)
    end_date = db.Column(db.Date, nullable=True)

    created_at = db.Column(db.DateTime, default=utcnow)
    updated_at = db.Column(db.DateTime, default=utcnow, onupdate=utcnow)

    freelancer = db.relationship("User", foreign_keys=[freelancer_id], backref="freelancer_projects", lazy=True)
    client = db.relationship("User", foreign_keys=[client_id], backref="client_projects", lazy=True)

    def to_dict(self):
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "freelancerId": self.freelancer_id,
            "clientId": self.client_id,
            "clientEmail": self.client_email,
            "status": self.status,
            "clientVisible": self.client_visible,
            "archivedByClientAt": self.archived_by_client_at.isoformat() + "Z" if self.archived_by_client_at else None,
            "milestones": list(self.milestones or []),
            "hourlyRate": format_money(self.hourly_rate),
            "budget": format_money(self.budget),
            "depositAmount": format_money(self.deposit_amount),
            "paymentTerms": self.payment_terms,
            "enableBillableHours": self.enable_billable_hours,
            "maxBillableHours": self.max_billable_hours,
            "startDate": _iso(self.start_date),
            "endDate": _iso(self.end_date),
            "createdAt": self.created_at.isoformat() + "Z" if self.created_at else None,
            "updatedAt": self.updated_at.isoformat() + "Z" if self.updated_at else None,
        }
