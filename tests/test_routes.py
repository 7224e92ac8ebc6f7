"""Tests for the HTTP API."""
import smtplib
from datetime import timedelta

from freelancedash.models.invitation import Invitation
from freelancedash.routes import invitation_routes
from freelancedash.services.contract_service import sign_contract
from freelancedash.services.invitation_service import issue_invitation
from freelancedash.utils.transactions import utcnow


class TestAuthEndpoints:

    def test_register_login_me(self, api):
        resp = api.post("/api/auth/register", json={
            "email": "New@Example.com",
            "password": "supersecret",
            "fullName": "New Person",
            "role": "freelancer",
        })
        assert resp.status_code == 201
        assert resp.get_json()["user"]["email"] == "new@example.com"

        resp = api.post("/api/auth/login", json={"email": "new@example.com", "password": "supersecret"})
        assert resp.status_code == 200
        token = resp.get_json()["access_token"]

        resp = api.get("/api/auth/me", headers={"Authorization": f"Bearer {token}"})
        assert resp.get_json()["user"]["fullName"] == "New Person"

    def test_bad_login(self, api, freelancer):
        resp = api.post("/api/auth/login", json={"email": freelancer.email, "password": "wrong-password"})
        assert resp.status_code == 401
        assert resp.get_json()["error"]["code"] == "AUTH_FAILED"

    def test_duplicate_register(self, api, freelancer):
        resp = api.post("/api/auth/register", json={
            "email": freelancer.email, "password": "password123", "role": "client",
        })
        assert resp.status_code == 409

    def test_missing_token_uses_envelope(self, api):
        resp = api.get("/api/projects")
        body = resp.get_json()
        assert resp.status_code == 401
        assert body["success"] is False
        assert body["error"]["code"] == "UNAUTHORIZED"


class TestProjectEndpoints:

    def test_create_and_read(self, api, auth_headers, freelancer, project_payload):
        resp = api.post("/api/projects", json=project_payload, headers=auth_headers(freelancer))
        assert resp.status_code == 201
        project = resp.get_json()["project"]
        assert project["status"] == "active"
        assert project["hourlyRate"] == 85.0

        resp = api.get(f"/api/projects/{project['id']}", headers=auth_headers(freelancer))
        assert resp.get_json()["project"]["title"] == "Website Redesign"

    def test_bad_milestones_rejected(self, api, auth_headers, freelancer, project_payload):
        project_payload["milestones"][0]["percentage"] = 10
        resp = api.post("/api/projects", json=project_payload, headers=auth_headers(freelancer))
        body = resp.get_json()
        assert resp.status_code == 422
        assert body["error"]["code"] == "VALIDATION_ERROR"
        assert "milestones" in body["error"]["details"]["fields"]

    def test_list_paginated(self, api, auth_headers, freelancer, project):
        resp = api.get("/api/projects?limit=5", headers=auth_headers(freelancer))
        body = resp.get_json()
        assert [p["id"] for p in body["projects"]] == [project.id]
        assert body["pagination"]["total"] == 1

    def test_outsider_forbidden(self, api, auth_headers, other_freelancer, project):
        resp = api.get(f"/api/projects/{project.id}", headers=auth_headers(other_freelancer))
        assert resp.status_code == 403

    def test_delete_needs_title(self, api, auth_headers, freelancer, project):
        resp = api.delete(f"/api/projects/{project.id}", json={"confirm": True}, headers=auth_headers(freelancer))
        assert resp.status_code == 422

        resp = api.delete(
            f"/api/projects/{project.id}",
            json={"confirm": True, "confirmTitle": "Website Redesign"},
            headers=auth_headers(freelancer),
        )
        assert resp.status_code == 200
        assert api.get(f"/api/projects/{project.id}", headers=auth_headers(freelancer)).status_code == 404

    def test_tasks_progress_and_history(self, api, auth_headers, freelancer, project):
        headers = auth_headers(freelancer)
        resp = api.post(f"/api/projects/{project.id}/tasks", json={"title": "Wireframes"}, headers=headers)
        assert resp.status_code == 201
        task_id = resp.get_json()["task"]["id"]

        resp = api.post(f"/api/tasks/{task_id}/progress", json={"progress": 100, "notes": "done", "hours": 4}, headers=headers)
        body = resp.get_json()
        assert resp.status_code == 201
        assert body["task"]["status"] == "completed"
        assert body["projectStatus"] == "completed"

        resp = api.get(f"/api/projects/{project.id}/progress", headers=headers)
        assert resp.get_json()["progress"]["completionPercentage"] == 100

        resp = api.get(f"/api/projects/{project.id}/progress-updates?since=2000-01-01T00:00:00Z", headers=headers)
        assert len(resp.get_json()["progressUpdates"]) == 1

    def test_progress_out_of_range(self, api, auth_headers, freelancer, project):
        headers = auth_headers(freelancer)
        task_id = api.post(f"/api/projects/{project.id}/tasks", json={"title": "Wireframes"}, headers=headers).get_json()["task"]["id"]
        resp = api.post(f"/api/tasks/{task_id}/progress", json={"progress": 150}, headers=headers)
        assert resp.status_code == 422


class TestInvitationEndpoints:

    def test_create_invitation(self, api, auth_headers, freelancer, project):
        resp = api.post("/api/invitations/create", json={
            "projectId": project.id,
            "freelancerId": freelancer.id,
            "clientEmail": "carl@example.com",
        }, headers=auth_headers(freelancer))
        body = resp.get_json()

        assert resp.status_code == 201
        assert body["success"] is True
        assert body["emailSent"] is True
        assert body["invitationLink"].endswith(body["token"])

    def test_duplicate_create_is_conflict(self, api, auth_headers, freelancer, project, invitation):
        resp = api.post("/api/invitations/create", json={
            "projectId": project.id, "clientEmail": invitation.client_email,
        }, headers=auth_headers(freelancer))
        assert resp.status_code == 409
        assert resp.get_json()["error"]["code"] == "CONFLICT"

    def test_cannot_issue_for_someone_else(self, api, auth_headers, other_freelancer, freelancer, project):
        resp = api.post("/api/invitations/create", json={
            "projectId": project.id, "freelancerId": freelancer.id, "clientEmail": "carl@example.com",
        }, headers=auth_headers(other_freelancer))
        assert resp.status_code == 403

    def test_email_failure_keeps_invitation(self, api, auth_headers, freelancer, project, monkeypatch):
        def smtp_down(*args, **kwargs):
            raise smtplib.SMTPServerDisconnected("connection lost")

        monkeypatch.setattr(invitation_routes, "send_invitation_email", smtp_down)
        resp = api.post("/api/invitations/create", json={
            "projectId": project.id, "clientEmail": "carl@example.com",
        }, headers=auth_headers(freelancer))
        body = resp.get_json()

        assert resp.status_code == 201
        assert body["emailSent"] is False
        assert Invitation.query.filter_by(id=body["invitationId"]).count() == 1

    def test_read_invitation_and_project(self, api, invitation, freelancer):
        resp = api.get(f"/api/invitations/{invitation.token}")
        assert resp.get_json()["invitation"]["status"] == "pending"

        resp = api.get(f"/api/invitations/{invitation.token}/project")
        body = resp.get_json()
        assert body["project"]["title"] == "Website Redesign"
        assert body["freelancer"]["email"] == freelancer.email

    def test_read_expired_invitation_shows_expired(self, api, session, project, freelancer):
        inv = issue_invitation(session, project.id, freelancer.id, "carl@example.com", now=utcnow() - timedelta(days=10))
        body = api.get(f"/api/invitations/{inv.token}").get_json()
        assert body["invitation"]["status"] == "expired"
        assert body["invitation"]["expired"] is True

    def test_unknown_token_is_404(self, api):
        resp = api.get("/api/invitations/does-not-exist")
        assert resp.status_code == 404
        assert resp.get_json()["error"]["code"] == "NOT_FOUND"

    def test_check_client(self, api, client_user):
        body = api.post("/api/invitations/check-client", json={"email": client_user.email}).get_json()
        assert body["exists"] is True
        assert body["client"]["id"] == client_user.id

        body = api.post("/api/invitations/check-client", json={"email": "nobody@example.com"}).get_json()
        assert body["exists"] is False

    def test_accept_then_double_accept(self, api, auth_headers, invitation, client_user):
        payload = {"token": invitation.token, "clientId": client_user.id}

        resp = api.post("/api/invitations/accept", json=payload, headers=auth_headers(client_user))
        data = resp.get_json()["data"]
        assert resp.status_code == 200
        assert data["projectStatus"] == "pending_approval"
        assert data["contract"]["milestones"][0]["title"] == "Design"

        resp = api.post("/api/invitations/accept", json=payload, headers=auth_headers(client_user))
        body = resp.get_json()
        assert resp.status_code == 409
        assert body["error"]["code"] == "INVALID_STATE"
        assert body["retryable"] is False

    def test_reject(self, api, invitation, project):
        resp = api.post("/api/invitations/reject", json={"token": invitation.token})
        assert resp.status_code == 200
        assert resp.get_json()["success"] is True
        assert project.status == "active"

    def test_by_email_only_for_owner(self, api, auth_headers, invitation, client_user, other_client):
        resp = api.get(f"/api/invitations/by-email/{client_user.email}", headers=auth_headers(client_user))
        items = resp.get_json()["invitations"]
        assert [i["id"] for i in items] == [invitation.id]
        assert items[0]["projectTitle"] == "Website Redesign"

        resp = api.get(f"/api/invitations/by-email/{client_user.email}", headers=auth_headers(other_client))
        assert resp.status_code == 403

    def test_send_invitation_email(self, api, auth_headers, freelancer):
        resp = api.post("/api/email/send-invitation", json={
            "clientEmail": "carl@example.com",
            "invitationLink": "http://localhost:3000/invite/abc",
            "projectTitle": "Website Redesign",
            "freelancerName": "Fiona Freelancer",
            "freelancerEmail": freelancer.email,
        }, headers=auth_headers(freelancer))
        assert resp.status_code == 200
        assert resp.get_json()["messageId"].startswith("<")


class TestContractAndNotificationEndpoints:

    def test_sign_contract(self, api, auth_headers, accepted, client_user, freelancer):
        _, contract, project = accepted
        resp = api.post(f"/api/contracts/{contract.id}/sign", json={"signature": "Carl Client"}, headers=auth_headers(client_user))
        body = resp.get_json()
        assert resp.status_code == 200
        assert body["contract"]["status"] == "active"
        assert body["invoice"]["amount"] == 1500.0

        resp = api.post(f"/api/contracts/{contract.id}/sign", json={"signature": "Carl Client"}, headers=auth_headers(client_user))
        assert resp.status_code == 409
        assert resp.get_json()["error"]["code"] == "ALREADY_SIGNED"

        resp = api.get(f"/api/projects/{project.id}/invoices", headers=auth_headers(freelancer))
        assert len(resp.get_json()["invoices"]) == 1

    def test_contract_by_project(self, api, auth_headers, accepted, freelancer):
        _, contract, project = accepted
        resp = api.get(f"/api/contracts/project/{project.id}", headers=auth_headers(freelancer))
        assert resp.get_json()["contract"]["id"] == contract.id

    def test_archive_restore(self, api, auth_headers, accepted, client_user):
        _, _, project = accepted
        headers = auth_headers(client_user)

        assert api.post(f"/api/projects/{project.id}/archive", headers=headers).get_json()["project"]["clientVisible"] is False
        assert api.get("/api/projects", headers=headers).get_json()["projects"] == []
        assert len(api.get("/api/projects?archived=true", headers=headers).get_json()["projects"]) == 1
        assert api.post(f"/api/projects/{project.id}/restore", headers=headers).get_json()["project"]["clientVisible"] is True

    def test_legacy_comment_payload(self, api, auth_headers, accepted, client_user):
        _, _, project = accepted
        resp = api.post(f"/api/projects/{project.id}/comments", json={"comment": "Love it"}, headers=auth_headers(client_user))
        assert resp.status_code == 201
        assert resp.get_json()["comment"]["body"] == "Love it"

        comments = api.get(f"/api/projects/{project.id}/comments", headers=auth_headers(client_user)).get_json()["comments"]
        assert [c["body"] for c in comments] == ["Love it"]

    def test_notifications(self, api, auth_headers, accepted, freelancer, client_user):
        headers = auth_headers(freelancer)
        body = api.get("/api/notifications", headers=headers).get_json()
        assert body["unread"] == 1
        notif_id = body["notifications"][0]["id"]

        resp = api.patch(f"/api/notifications/{notif_id}/read", headers=headers)
        assert resp.get_json()["notification"]["isRead"] is True
        assert api.get("/api/notifications", headers=headers).get_json()["unread"] == 0

        resp = api.patch(f"/api/notifications/{notif_id}/read", headers=auth_headers(client_user))
        assert resp.status_code == 403

    def test_read_all(self, api, auth_headers, accepted, client_user, freelancer):
        _, _, project = accepted
        api.post(f"/api/projects/{project.id}/comments", json={"body": "Hi"}, headers=auth_headers(client_user))
        headers = auth_headers(freelancer)

        assert api.get("/api/notifications", headers=headers).get_json()["unread"] == 2
        assert api.patch("/api/notifications/read-all", headers=headers).get_json()["updated"] == 2
        assert api.get("/api/notifications?isRead=false", headers=headers).get_json()["notifications"] == []


class TestMilestoneEndpoints:

    def test_submit_approve_and_revise(self, api, session, auth_headers, accepted, client_user, freelancer):
        _, contract, project = accepted
        project_id = project.id
        sign_contract(session, contract.id, client_user.id, "Carl Client")

        resp = api.post(f"/api/projects/{project_id}/milestones/1/submit", json={"evidence": "staging link"},
                        headers=auth_headers(freelancer))
        assert resp.status_code == 200
        assert resp.get_json()["milestone"]["status"] == "completed"

        body = api.get("/api/approvals/pending", headers=auth_headers(client_user)).get_json()
        assert body["totalPending"] == 1
        assert body["milestones"][0]["milestoneTitle"] == "Build"

        resp = api.post(f"/api/approvals/projects/{project_id}/milestones/1/approve", headers=auth_headers(client_user))
        body = resp.get_json()
        assert resp.status_code == 200
        assert body["milestone"]["status"] == "invoiced"
        assert body["invoice"]["milestoneIndex"] == 1
        assert body["invoice"]["amount"] == 2000.0

        resp = api.post(f"/api/approvals/projects/{project_id}/milestones/1/approve", headers=auth_headers(client_user))
        assert resp.status_code == 409
        assert resp.get_json()["error"]["code"] == "INVALID_STATE"

        api.post(f"/api/projects/{project_id}/milestones/2/submit", headers=auth_headers(freelancer))
        resp = api.post(f"/api/approvals/projects/{project_id}/milestones/2/reject", json={},
                        headers=auth_headers(client_user))
        assert resp.status_code == 422

        resp = api.post(f"/api/approvals/projects/{project_id}/milestones/2/reject",
                        json={"revisionComment": "Copy is out of date"}, headers=auth_headers(client_user))
        assert resp.get_json()["milestone"]["status"] == "revision_requested"

    def test_freelancer_cannot_approve(self, api, session, auth_headers, accepted, client_user, freelancer):
        _, contract, project = accepted
        project_id = project.id
        sign_contract(session, contract.id, client_user.id, "Carl Client")
        api.post(f"/api/projects/{project_id}/milestones/0/submit", headers=auth_headers(freelancer))

        resp = api.post(f"/api/approvals/projects/{project_id}/milestones/0/approve", headers=auth_headers(freelancer))
        assert resp.status_code == 403


class TestAuditEndpoint:

    def test_project_trail_for_parties_only(self, api, auth_headers, accepted, freelancer, client_user, other_freelancer):
        _, _, project = accepted
        project_id = project.id

        body = api.get(f"/api/projects/{project_id}/audit", headers=auth_headers(client_user)).get_json()
        assert [(e["entityType"], e["action"]) for e in body["events"]] == [
            ("project", "created"),
            ("invitation", "issued"),
            ("invitation", "accepted"),
        ]

        resp = api.get(f"/api/projects/{project_id}/audit", headers=auth_headers(other_freelancer))
        assert resp.status_code == 403
