from freelancedash.extensions import db
from freelancedash.utils.money import format_money
from freelancedash.utils.transactions import utcnow
import uuid

INVOICE_STATUSES = ("pending", "paid", "overdue", "cancelled")


def gen_invoice_id():
    return f"invc-{uuid.uuid4().hex[:12]}"


def gen_invoice_number(now=None):
    stamp = (now or utcnow()).strftime("%Y%m%d")
    return f"INV-{stamp}-{uuid.uuid4().hex[:6].upper()}"


class Invoice(db.Model):
    __tablename__ = "invoices"

    __table_args__ = (
        db.UniqueConstraint("contract_id", "milestone_index", name="uq_invoices_contract_milestone"),
    )

    id = db.Column(db.String(50), primary_key=True, default=gen_invoice_id)
    invoice_number = db.Column(db.String(40), unique=True, nullable=False, default=lambda: gen_invoice_number())

    project_id = db.Column(db.String(50), db.ForeignKey("projects.id"), nullable=False, index=True)
    contract_id = db.Column(db.String(50), db.ForeignKey("contracts.id"), nullable=True)
    freelancer_id = db.Column(db.String(50), db.ForeignKey("users.id"), nullable=False)
    client_id = db.Column(db.String(50), db.ForeignKey("users.id"), nullable=True)

    milestone_index = db.Column(db.Integer, nullable=True)
    milestone_title = db.Column(db.String(255), nullable=True)
    amount = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    currency = db.Column(db.String(10), nullable=False, default="RM")
    status = db.Column(db.String(20), nullable=False, default="pending")

    issue_date = db.Column(db.Date, nullable=False)
    due_date = db.Column(db.Date, nullable=False)
    auto_generated = db.Column(db.Boolean, nullable=False, default=False)

    created_at = db.Column(db.DateTime, default=utcnow)

    project = db.relationship(
        "Project",
        backref=db.backref("invoices", lazy=True, cascade="all, delete"),
    )
    contract = db.relationship("Contract", lazy=True)

    def to_dict(self):
        return {
            "id": self.id,
            "invoiceNumber": self.invoice_number,
            "projectId": self.project_id,
            "contractId": self.contract_id,
            "freelancerId": self.freelancer_id,
            "clientId": self.client_id,
            "milestoneIndex": self.milestone_index,
            "milestoneTitle": self.milestone_title,
            "amount": format_money(self.amount),
            "currency": self.currency,
            "status": self.status,
            "issueDate": self.issue_date.isoformat(),
            "dueDate": self.due_date.isoformat(),
            "autoGenerated": self.auto_generated,
            "createdAt": self.created_at.isoformat() + "Z" if self.created_at else None,
        }
