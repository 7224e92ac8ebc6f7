from freelancedash.extensions import db
from freelancedash.utils.money import format_money
from freelancedash.utils.transactions import utcnow
import uuid

CONTRACT_STATUSES = ("pending", "active")

DEFAULT_CLAUSES = {
    "revision_policy": "Standard revisions included as per project requirements",
    "invoicing_terms": "Payment due within 7 days of invoice issuance",
    "late_fee_policy": "5% late fee applied after 14 days overdue",
    "termination_clause": (
        "This contract may be terminated by the client if the freelancer fails to "
        "complete the project as agreed, miss deadlines, or key project milestones."
    ),
    "confidentiality_clause": (
        "Both parties agree to maintain confidentiality of all project information and materials."
    ),
    "intellectual_property_clause": (
        "Upon receipt of full payment, all intellectual property rights for work "
        "created under this contract transfer to the client."
    ),
}


def gen_contract_id():
    return f"ctr-{uuid.uuid4().hex[:12]}"


def _ts(value):
    return value.isoformat() + "Z" if value else None


class Contract(db.Model):
    __tablename__ = "contracts"

    id = db.Column(db.String(50), primary_key=True, default=gen_contract_id)
    # one contract per project, created from its accepted invitation
    project_id = db.Column(db.String(50), db.ForeignKey("projects.id"), nullable=False, unique=True)
    invitation_id = db.Column(db.String(50), db.ForeignKey("invitations.id"), nullable=False, unique=True)

    freelancer_id = db.Column(db.String(50), db.ForeignKey("users.id"), nullable=False)
    client_id = db.Column(db.String(50), db.ForeignKey("users.id"), nullable=False)

    title = db.Column(db.String(100), nullable=False)
    scope = db.Column(db.Text)

    hourly_rate = db.Column(db.Numeric(10, 2), nullable=True)
    fixed_price = db.Column(db.Numeric(12, 2), nullable=True)
    deposit_amount = db.Column(db.Numeric(12, 2), nullable=True)
    payment_terms = db.Column(db.String(255))
    start_date = db.Column(db.Date, nullable=True)
    end_date = db.Column(db.Date, nullable=True)

    # snapshot of the project milestones at acceptance time
    milestones = db.Column(db.JSON, nullable=False, default=list)

    enable_billable_hours = db.Column(db.Boolean, nullable=False, default=False)
    max_billable_hours = db.Column(db.Float, nullable=True)

    revision_policy = db.Column(db.Text, default=DEFAULT_CLAUSES["revision_policy"])
    invoicing_terms = db.Column(db.Text, default=DEFAULT_CLAUSES["invoicing_terms"])
    late_fee_policy = db.Column(db.Text, default=DEFAULT_CLAUSES["late_fee_policy"])
    termination_clause = db.Column(db.Text, default=DEFAULT_CLAUSES["termination_clause"])
    confidentiality_clause = db.Column(db.Text, default=DEFAULT_CLAUSES["confidentiality_clause"])
    intellectual_property_clause = db.Column(db.Text, default=DEFAULT_CLAUSES["intellectual_property_clause"])

    status = db.Column(db.String(20), nullable=False, default="pending")

    freelancer_signature = db.Column(db.String(255), nullable=True)
    freelancer_signed_at = db.Column(db.DateTime, nullable=True)
    client_signature = db.Column(db.String(255), nullable=True)
    client_signed_at = db.Column(db.DateTime, nullable=True)

    created_at = db.Column(db.DateTime, default=utcnow)
    updated_at = db.Column(db.DateTime, default=utcnow, onupdate=utcnow)

    project = db.relationship(
        "Project",
        backref=db.backref("contract", uselist=False, lazy=True, cascade="all, delete"),
    )
    invitation = db.relationship(
        "Invitation",
        backref=db.backref("contract", uselist=False, lazy=True, cascade="all, delete"),
    )

    @property
    def fully_executed(self):
        return bool(self.freelancer_signature and self.client_signature)

    def to_dict(self):
        return {
            "id": self.id,
            "projectId": self.project_id,
            "invitationId": self.invitation_id,
            "freelancerId": self.freelancer_id,
            "clientId": self.client_id,
            "title": self.title,
            "scope": self.scope,
            "hourlyRate": format_money(self.hourly_rate),
            "fixedPrice": format_money(self.fixed_price),
            "depositAmount": format_money(self.deposit_amount),
            "paymentTerms": self.payment_terms,
            "startDate": self.start_date.isoformat() if self.start_date else None,
            "endDate": self.end_date.isoformat() if self.end_date else None,
            "milestones": list(self.milestones or []),
            "enableBillableHours": self.enable_billable_hours,
            "maxBillableHours": self.max_billable_hours,
            "revisionPolicy": self.revision_policy,
            "invoicingTerms": self.invoicing_terms,
            "lateFeePolicy": self.late_fee_policy,
            "terminationClause": self.termination_clause,
            "confidentialityClause": self.confidentiality_clause,
            "intellectualPropertyClause": self.intellectual_property_clause,
            "status": self.status,
            "fullyExecuted": self.fully_executed,
            "freelancerSignature": self.freelancer_signature,
            "freelancerSignedAt": _ts(self.freelancer_signed_at),
            "clientSignature": self.client_signature,
            "clientSignedAt": _ts(self.client_signed_at),
            "createdAt": _ts(self.created_at),
        }
