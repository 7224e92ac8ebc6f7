import logging

from freelancedash.models.project import Project
from freelancedash.models.user import User
from freelancedash.schemas.project_schema import MilestoneSchema
from freelancedash.services.audit_service import record_event
from freelancedash.services.change_feed import publish
from freelancedash.utils.exceptions import NotFound, PermissionDenied, ValidationError
from freelancedash.utils.money import to_decimal
from freelancedash.utils.transactions import atomic, retry_transient, utcnow

logger = logging.getLogger(__name__)

_milestone_dump = MilestoneSchema(many=True)


def serialize_milestones(milestones):
    """Loaded milestone dicts -> the camelCase JSON stored on the row."""
    return _milestone_dump.dump(milestones or [])


def get_project(session, project_id):
    project = session.get(Project, project_id)
    if not project:
        raise NotFound("Project not found", details={"projectId": project_id})
    return project


def is_party(project, user_id):
    return user_id is not None and user_id in (project.freelancer_id, project.client_id)


def get_project_for_user(session, project_id, user_id):
    project = get_project(session, project_id)
    if not is_party(project, user_id):
        raise PermissionDenied("You do not have access to this project")
    return project


@retry_transient()
def create_project(session, freelancer_id, data, feed=None):
    """``data`` is the output of ProjectCreateSchema.load."""
    freelancer = session.get(User, freelancer_id)
    if not freelancer:
        raise NotFound("User not found", details={"userId": freelancer_id})
    if freelancer.role != "freelancer":
        raise PermissionDenied("Only freelancers can create projects")

    client_email = data.get("client_email")
    # a named client still has to accept and sign before work starts
    status = "pending_approval" if client_email else "active"
    project = Project(
        title=data["title"].strip(),
        description=data.get("description"),
        freelancer_id=freelancer.id,
        client_email=client_email.strip().lower() if client_email else None,
        status=status,
        client_visible=True,
        milestones=serialize_milestones(data.get("milestones")),
        hourly_rate=to_decimal(data.get("hourly_rate")),
        budget=to_decimal(data.get("budget")),
        deposit_amount=to_decimal(data.get("deposit_amount")),
        payment_terms=data.get("payment_terms"),
        enable_billable_hours=data.get("enable_billable_hours", False),
        max_billable_hours=data.get("max_billable_hours"),
        start_date=data.get("start_date"),
        end_date=data.get("end_date"),
    )

    with atomic(session):
        session.add(project)
        session.flush()
        record_event(session, "project", project.id, "created", actor_id=freelancer.id)

    logger.info("Project %s created by %s", project.id, freelancer.id)
    publish(feed, "projects", "created", project.to_dict())
    return project


def list_projects_for_user(session, user, archived=False, status=None):
    q = session.query(Project)
    if user.role == "freelancer":
        q = q.filter(Project.freelancer_id == user.id)
    else:
        # archived projects are only hidden from the client
        q = q.filter(Project.client_id == user.id, Project.client_visible == (not archived))

    if status:
        q = q.filter(Project.status == status)
    return q.order_by(Project.created_at.desc())


def _set_client_visibility(session, project_id, client_id, visible, feed=None):
    project = get_project(session, project_id)
    if project.client_id != client_id:
        raise PermissionDenied("Only the project's client can archive or restore it")

    with atomic(session):
        project.client_visible = visible
        project.archived_by_client_at = None if visible else utcnow()
        record_event(
            session, "project", project.id,
            "restored" if visible else "archived",
            actor_id=client_id,
        )

    publish(feed, "projects", "updated", project.to_dict())
    return project


@retry_transient()
def archive_project(session, project_id, client_id, feed=None):
    return _set_client_visibility(session, project_id, client_id, False, feed=feed)


@retry_transient()
def restore_project(session, project_id, client_id, feed=None):
    return _set_client_visibility(session, project_id, client_id, True, feed=feed)


@retry_transient()
def delete_project(session, project_id, user_id, confirm=False, confirm_title=None, feed=None):
    """
    Hard delete with every dependent row. The caller must pass
    ``confirm=True`` and repeat the exact project title.
    """
    project = get_project(session, project_id)
    if project.freelancer_id != user_id:
        raise PermissionDenied("Only the project owner can delete it")
    if not confirm or confirm_title != project.title:
        raise ValidationError(
            "Deletion must be confirmed with the exact project title",
            details={"fields": {"confirmTitle": ["Does not match the project title"]}},
        )

    snapshot = project.to_dict()
    with atomic(session):
        session.delete(project)
        record_event(
            session, "project", project_id, "deleted",
            actor_id=user_id, details={"title": snapshot["title"]},
        )

    logger.info("Project %s deleted by %s", project_id, user_id)
    publish(feed, "projects", "deleted", snapshot)
