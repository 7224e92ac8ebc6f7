import logging
from datetime import date, timedelta
from decimal import Decimal

from freelancedash.models.invoice import Invoice, gen_invoice_number
from freelancedash.utils.money import to_decimal
from freelancedash.utils.transactions import config_value, utcnow

logger = logging.getLogger(__name__)


def milestone_amount(contract, milestone):
    """Explicit milestone amount, else its share of the fixed price."""
    if milestone.get("amount") is not None:
        return to_decimal(milestone["amount"])
    if contract.fixed_price is not None:
        share = Decimal(str(milestone.get("percentage") or 0)) / Decimal("100")
        return to_decimal(Decimal(contract.fixed_price) * share)
    return Decimal("0.00")


def _due_date(milestone, today):
    raw = milestone.get("dueDate")
    if raw:
        return date.fromisoformat(raw)
    return today + timedelta(days=config_value("INVOICE_DUE_DAYS", 30))


def create_milestone_invoice(session, contract, index=0, now=None):
    """
    Queue the invoice for ``contract.milestones[index]`` on the caller's
    transaction. Returns None when the contract has no such milestone.
    """
    milestones = contract.milestones or []
    if index >= len(milestones):
        return None

    now = now or utcnow()
    milestone = milestones[index]
    today = now.date()
    invoice = Invoice(
        invoice_number=gen_invoice_number(now),
        project_id=contract.project_id,
        contract_id=contract.id,
        freelancer_id=contract.freelancer_id,
        client_id=contract.client_id,
        milestone_index=index,
        milestone_title=milestone.get("title"),
        amount=milestone_amount(contract, milestone),
        currency=config_value("INVOICE_CURRENCY", "RM"),
        status="pending",
        issue_date=today,
        due_date=_due_date(milestone, today),
        auto_generated=True,
        created_at=now,
    )
    session.add(invoice)
    logger.info(
        "Queued invoice %s for milestone %r of contract %s",
        invoice.invoice_number, invoice.milestone_title, contract.id,
    )
    return invoice


def list_invoices_for_project(session, project_id):
    return (
        session.query(Invoice)
        .filter_by(project_id=project_id)
        .order_by(Invoice.issue_date.asc(), Invoice.created_at.asc())
        .all()
    )


def get_milestone_invoice(session, contract, index):
    return (
        session.query(Invoice)
        .filter_by(contract_id=contract.id, milestone_index=index)
        .one_or_none()
    )
