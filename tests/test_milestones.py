"""Tests for milestone submission, client approval and revision requests."""
from decimal import Decimal

import pytest

from freelancedash.models.invoice import Invoice
from freelancedash.models.notification import Notification
from freelancedash.models.project_comment import ProjectComment
from freelancedash.services.audit_service import list_project_events
from freelancedash.services.contract_service import sign_contract
from freelancedash.services.milestone_service import (
    approve_milestone,
    list_pending_approvals,
    request_milestone_revision,
    submit_milestone,
)
from freelancedash.utils.exceptions import InvalidState, NotFound, PermissionDenied, ValidationError


@pytest.fixture
def signed(session, accepted, client_user):
    """(project, contract, first milestone invoice) once the client has signed."""
    _, contract, project = accepted
    contract, invoice = sign_contract(session, contract.id, client_user.id, "Carl Client")
    return project, contract, invoice


class TestSubmitMilestone:

    def test_marks_completed_and_asks_client(self, session, signed, freelancer, client_user):
        project, _, _ = signed
        project, milestone = submit_milestone(session, project.id, 1, freelancer.id, evidence=" staging link ")

        assert milestone["status"] == "completed"
        assert milestone["evidence"] == "staging link"
        assert milestone["completedAt"].endswith("Z")
        session.refresh(project)
        assert project.milestones[1]["status"] == "completed"
        assert project.milestones[0]["status"] == "pending"
        assert session.query(Notification).filter_by(
            user_id=client_user.id, type="milestone_submitted"
        ).count() == 1

    def test_needs_executed_contract(self, session, accepted, freelancer):
        _, _, project = accepted
        with pytest.raises(InvalidState):
            submit_milestone(session, project.id, 0, freelancer.id)

    def test_only_owner_submits(self, session, signed, other_freelancer):
        project, _, _ = signed
        with pytest.raises(PermissionDenied):
            submit_milestone(session, project.id, 0, other_freelancer.id)

    def test_unknown_milestone(self, session, signed, freelancer):
        project, _, _ = signed
        with pytest.raises(NotFound):
            submit_milestone(session, project.id, 7, freelancer.id)

    def test_cannot_resubmit_while_waiting(self, session, signed, freelancer):
        project, _, _ = signed
        submit_milestone(session, project.id, 0, freelancer.id)
        with pytest.raises(InvalidState) as exc:
            submit_milestone(session, project.id, 0, freelancer.id)
        assert exc.value.details["status"] == "completed"


class TestApproveMilestone:

    def test_first_milestone_reuses_signing_invoice(self, session, signed, freelancer, client_user):
        project, _, signing_invoice = signed
        submit_milestone(session, project.id, 0, freelancer.id)

        _, milestone, invoice = approve_milestone(session, project.id, 0, client_user.id)

        assert invoice.id == signing_invoice.id
        assert milestone["status"] == "invoiced"
        assert milestone["invoiceId"] == invoice.id
        assert milestone["approvedBy"] == client_user.id
        assert session.query(Invoice).count() == 1

    def test_later_milestone_raises_its_own_invoice(self, session, signed, freelancer, client_user):
        project, contract, _ = signed
        submit_milestone(session, project.id, 1, freelancer.id)

        _, _, invoice = approve_milestone(session, project.id, 1, client_user.id)

        assert invoice.contract_id == contract.id
        assert invoice.milestone_index == 1
        assert invoice.milestone_title == "Build"
        assert invoice.amount == Decimal("2000")
        assert session.query(Invoice).filter_by(project_id=project.id).count() == 2

    def test_second_approval_is_invalid_state(self, session, signed, freelancer, client_user):
        project, _, _ = signed
        submit_milestone(session, project.id, 1, freelancer.id)
        approve_milestone(session, project.id, 1, client_user.id)

        with pytest.raises(InvalidState) as exc:
            approve_milestone(session, project.id, 1, client_user.id)

        assert exc.value.details["status"] == "invoiced"
        assert session.query(Invoice).filter_by(milestone_index=1).count() == 1

    def test_unsubmitted_milestone_cannot_be_approved(self, session, signed, client_user):
        project, _, _ = signed
        with pytest.raises(InvalidState):
            approve_milestone(session, project.id, 2, client_user.id)

    def test_only_client_approves(self, session, signed, freelancer, other_client):
        project, _, _ = signed
        submit_milestone(session, project.id, 0, freelancer.id)
        for user in (freelancer, other_client):
            with pytest.raises(PermissionDenied):
                approve_milestone(session, project.id, 0, user.id)

    def test_last_sign_off_completes_project(self, session, signed, freelancer, client_user):
        project, _, _ = signed
        for index in range(3):
            submit_milestone(session, project.id, index, freelancer.id)
            project, _, _ = approve_milestone(session, project.id, index, client_user.id)
            if index < 2:
                assert project.status == "active"

        assert project.status == "completed"
        assert session.query(Invoice).filter_by(project_id=project.id).count() == 3
        assert session.query(Notification).filter_by(
            user_id=freelancer.id, type="milestone_approved"
        ).count() == 3


class TestRequestRevision:

    def test_sends_milestone_back(self, session, signed, freelancer, client_user):
        project, _, _ = signed
        submit_milestone(session, project.id, 0, freelancer.id)

        _, milestone = request_milestone_revision(session, project.id, 0, client_user.id, "Needs a darker palette")

        assert milestone["status"] == "revision_requested"
        assert milestone["revisionCount"] == 1
        assert milestone["revisionHistory"][0]["comment"] == "Needs a darker palette"
        comment = session.query(ProjectComment).filter_by(project_id=project.id).one()
        assert comment.kind == "client_feedback"
        assert session.query(Notification).filter_by(
            user_id=freelancer.id, type="milestone_revision_requested"
        ).count() == 1

        _, milestone = submit_milestone(session, project.id, 0, freelancer.id)
        assert milestone["status"] == "completed"
        assert milestone["revisionCount"] == 1

    def test_revision_limit(self, session, signed, freelancer, client_user):
        project, _, _ = signed
        for _ in range(2):
            submit_milestone(session, project.id, 0, freelancer.id)
            request_milestone_revision(session, project.id, 0, client_user.id, "Again")

        submit_milestone(session, project.id, 0, freelancer.id)
        with pytest.raises(InvalidState) as exc:
            request_milestone_revision(session, project.id, 0, client_user.id, "One more")

        assert exc.value.details["revisionCount"] == 2
        session.refresh(project)
        assert project.milestones[0]["status"] == "completed"

    def test_comment_required(self, session, signed, freelancer, client_user):
        project, _, _ = signed
        submit_milestone(session, project.id, 0, freelancer.id)
        with pytest.raises(ValidationError):
            request_milestone_revision(session, project.id, 0, client_user.id, "   ")


class TestPendingApprovals:

    def test_lists_submitted_milestones_for_client(self, session, signed, freelancer, client_user, other_client):
        project, _, _ = signed
        submit_milestone(session, project.id, 1, freelancer.id)

        pending = list_pending_approvals(session, client_user.id)

        assert [(p["projectId"], p["milestoneIndex"], p["milestoneTitle"]) for p in pending] == [
            (project.id, 1, "Build")
        ]
        assert pending[0]["maxRevisions"] == 2
        assert list_pending_approvals(session, other_client.id) == []

    def test_sign_off_is_audited(self, session, signed, freelancer, client_user):
        project, contract, _ = signed
        submit_milestone(session, project.id, 0, freelancer.id)
        approve_milestone(session, project.id, 0, client_user.id)

        actions = [(e.entity_type, e.action) for e in list_project_events(session, project)]

        assert actions == [
            ("project", "created"),
            ("invitation", "issued"),
            ("invitation", "accepted"),
            ("contract", "client_signed"),
            ("project", "milestone_submitted"),
            ("project", "milestone_approved"),
        ]
