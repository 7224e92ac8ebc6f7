"""
FreelanceDash Test Configuration

Every test gets a fresh app on an in-memory database.
"""
import pytest
from flask_jwt_extended import create_access_token

from freelancedash.extensions import db
from freelancedash.main import create_app
from freelancedash.schemas.project_schema import ProjectCreateSchema
from freelancedash.services.auth_service import register_user
from freelancedash.services.invitation_service import accept_invitation, issue_invitation
from freelancedash.services.project_service import create_project


# =============================================================================
# FIXTURES: Application
# =============================================================================

@pytest.fixture
def app():
    app = create_app("testing")
    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def session(app):
    return db.session


@pytest.fixture
def api(app):
    return app.test_client()


@pytest.fixture
def auth_headers(app):
    def _headers(user):
        return {"Authorization": f"Bearer {create_access_token(identity=user.id)}"}
    return _headers


# =============================================================================
# FIXTURES: Users
# =============================================================================

@pytest.fixture
def freelancer(session):
    return register_user(session, "fiona@example.com", "password123", full_name="Fiona Freelancer", role="freelancer")


@pytest.fixture
def other_freelancer(session):
    return register_user(session, "frank@example.com", "password123", full_name="Frank Freelancer", role="freelancer")


@pytest.fixture
def client_user(session):
    return register_user(session, "carl@example.com", "password123", full_name="Carl Client", role="client")


@pytest.fixture
def other_client(session):
    return register_user(session, "olga@example.com", "password123", full_name="Olga Other", role="client")


# =============================================================================
# FIXTURES: Projects and invitations
# =============================================================================

@pytest.fixture
def project_payload():
    return {
        "title": "Website Redesign",
        "description": "Redesign of the marketing site",
        "hourlyRate": 85,
        "budget": 5000,
        "paymentTerms": "Net 7",
        "startDate": "2026-01-05",
        "endDate": "2026-03-31",
        "milestones": [
            {"title": "Design", "percentage": 30, "amount": 1500, "dueDate": "2026-01-31"},
            {"title": "Build", "percentage": 40, "amount": 2000, "dueDate": "2026-02-28"},
            {"title": "Launch", "percentage": 30, "amount": 1500, "dueDate": "2026-03-31"},
        ],
    }


@pytest.fixture
def make_project(session, freelancer):
    def _make(payload, owner=None):
        data = ProjectCreateSchema().load(payload)
        return create_project(session, (owner or freelancer).id, data)
    return _make


@pytest.fixture
def project(make_project, project_payload):
    return make_project(project_payload)


@pytest.fixture
def invitation(session, project, freelancer, client_user):
    return issue_invitation(session, project.id, freelancer.id, client_user.email)


@pytest.fixture
def accepted(session, invitation, client_user):
    """(invitation, contract, project) after the client accepted."""
    return accept_invitation(session, invitation.token, client_user.id)
