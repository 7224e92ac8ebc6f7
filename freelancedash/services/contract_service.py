import logging

from freelancedash.models.contract import Contract
from freelancedash.models.project import Project
from freelancedash.services.audit_service import record_event
from freelancedash.services.change_feed import publish
from freelancedash.services.invoice_service import create_milestone_invoice
from freelancedash.services.notification_service import notify_user
from freelancedash.utils.exceptions import AlreadySigned, NotFound, PermissionDenied, ValidationError
from freelancedash.utils.transactions import atomic, retry_transient, utcnow

logger = logging.getLogger(__name__)


def _check_party(contract, user_id):
    if user_id not in (contract.freelancer_id, contract.client_id):
        raise PermissionDenied("You are not a party to this contract")


def get_contract(session, contract_id, user_id):
    contract = session.get(Contract, contract_id)
    if not contract:
        raise NotFound("Contract not found", details={"contractId": contract_id})
    _check_party(contract, user_id)
    return contract


def get_contract_for_project(session, project_id, user_id):
    contract = session.query(Contract).filter_by(project_id=project_id).one_or_none()
    if not contract:
        raise NotFound("No contract for this project", details={"projectId": project_id})
    _check_party(contract, user_id)
    return contract


@retry_transient()
def sign_contract(session, contract_id, client_id, signature, now=None, feed=None):
    """
    Record the client counter-signature.

    The write is conditional on ``client_signature IS NULL`` so a second
    signer gets ``AlreadySigned``. A fully executed contract activates the
    project and raises the first milestone invoice.
    """
    now = now or utcnow()
    signature = (signature or "").strip()
    if not signature:
        raise ValidationError("Signature is required", details={"fields": {"signature": ["Missing data for required field."]}})

    invoice = None
    with atomic(session):
        contract = session.get(Contract, contract_id)
        if not contract:
            raise NotFound("Contract not found", details={"contractId": contract_id})
        if contract.client_id != client_id:
            raise PermissionDenied("Only the contract's client can sign it")

        signed = (
            session.query(Contract)
            .filter(Contract.id == contract_id, Contract.client_signature.is_(None))
            .update(
                {"client_signature": signature, "client_signed_at": now},
                synchronize_session=False,
            )
        )
        if not signed:
            raise AlreadySigned(details={"contractId": contract_id})

        contract = session.query(Contract).populate_existing().filter_by(id=contract_id).one()
        if contract.fully_executed:
            contract.status = "active"
            project = (
                session.query(Project)
                .filter(Project.id == contract.project_id)
                .with_for_update()
                .one()
            )
            project.status = "active"
            project.client_visible = True
            invoice = create_milestone_invoice(session, contract, index=0, now=now)

            notify_user(
                session,
                contract.freelancer_id,
                title="Contract signed",
                message=f"Your contract for {contract.title} is now active",
                notif_type="contract_signed",
                details={"contractId": contract.id, "projectId": contract.project_id},
                sender_id=client_id,
            )

        record_event(
            session, "contract", contract.id, "client_signed",
            actor_id=client_id,
            details={"fullyExecuted": contract.fully_executed},
        )

    logger.info("Contract %s signed by client %s", contract.id, client_id)
    publish(feed, "contracts", "updated", contract.to_dict())
    if invoice is not None:
        publish(feed, "invoices", "created", invoice.to_dict())
    return contract, invoice
