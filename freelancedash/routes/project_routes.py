from datetime import timezone

from dateutil import parser
from flask import Blueprint, request, current_app
from flask_jwt_extended import jwt_required, get_jwt_identity

from freelancedash.extensions import db
from freelancedash.schemas.comment_schema import CommentCreateSchema
from freelancedash.schemas.milestone_schema import MilestoneSubmitSchema
from freelancedash.schemas.project_schema import ProjectCreateSchema, ProjectDeleteSchema
from freelancedash.schemas.task_schema import TaskCreateSchema
from freelancedash.services.audit_service import list_project_events
from freelancedash.services.auth_service import get_user
from freelancedash.services.comment_service import add_comment, list_comments
from freelancedash.services.invoice_service import list_invoices_for_project
from freelancedash.services.milestone_service import submit_milestone
from freelancedash.services.progress_service import (
    create_task,
    list_progress_updates,
    list_tasks,
    project_progress,
)
from freelancedash.services.project_service import (
    archive_project,
    create_project,
    delete_project,
    get_project_for_user,
    list_projects_for_user,
    restore_project,
)
from freelancedash.utils.exceptions import ValidationError
from freelancedash.utils.pagination import paginate_query
from freelancedash.utils.response_formatter import success_response
from freelancedash.utils.validation import load_or_raise

bp = Blueprint("projects", __name__, url_prefix="/api/projects")


def _parse_since(value):
    if not value:
        return None
    try:
        since = parser.isoparse(value)
    except ValueError as e:
        raise ValidationError("Invalid 'since' timestamp", details={"fields": {"since": [str(e)]}}) from e
    if since.tzinfo is not None:
        since = since.astimezone(timezone.utc).replace(tzinfo=None)
    return since


# ------------------------------------------------------------
#  Projects
# ------------------------------------------------------------
@bp.route("", methods=["POST"])
@jwt_required()
def create():
    data = load_or_raise(ProjectCreateSchema(), request.get_json(silent=True))
    project = create_project(db.session, get_jwt_identity(), data)
    return success_response({"project": project.to_dict()}, status=201)


@bp.route("", methods=["GET"])
@jwt_required()
def list_projects():
    user = get_user(db.session, get_jwt_identity())
    archived = request.args.get("archived", "false").lower() == "true"
    q = list_projects_for_user(db.session, user, archived=archived, status=request.args.get("status"))

    page = request.args.get("page", 1, type=int)
    limit = request.args.get("limit", 20, type=int)
    items, pagination = paginate_query(q, page, limit)
    return success_response({
        "projects": [p.to_dict() for p in items],
        "pagination": pagination,
    })


@bp.route("/<project_id>", methods=["GET"])
@jwt_required()
def read_project(project_id):
    project = get_project_for_user(db.session, project_id, get_jwt_identity())
    return success_response({"project": project.to_dict()})


@bp.route("/<project_id>", methods=["DELETE"])
@jwt_required()
def remove_project(project_id):
    data = load_or_raise(ProjectDeleteSchema(), request.get_json(silent=True) or request.args.to_dict())
    delete_project(
        db.session,
        project_id,
        get_jwt_identity(),
        confirm=data["confirm"],
        confirm_title=data.get("confirm_title"),
    )
    current_app.logger.info("Project %s deleted", project_id)
    return success_response(message="Project deleted")


@bp.route("/<project_id>/archive", methods=["POST"])
@jwt_required()
def archive(project_id):
    project = archive_project(db.session, project_id, get_jwt_identity())
    return success_response({"project": project.to_dict()})


@bp.route("/<project_id>/restore", methods=["POST"])
@jwt_required()
def restore(project_id):
    project = restore_project(db.session, project_id, get_jwt_identity())
    return success_response({"project": project.to_dict()})


@bp.route("/<project_id>/progress", methods=["GET"])
@jwt_required()
def progress(project_id):
    return success_response({"progress": project_progress(db.session, project_id, get_jwt_identity())})


# ------------------------------------------------------------
#  Milestones
# ------------------------------------------------------------
@bp.route("/<project_id>/milestones/<int:index>/submit", methods=["POST"])
@jwt_required()
def submit(project_id, index):
    data = load_or_raise(MilestoneSubmitSchema(), request.get_json(silent=True))
    project, milestone = submit_milestone(
        db.session, project_id, index, get_jwt_identity(), evidence=data.get("evidence")
    )
    return success_response({"milestone": milestone, "project": project.to_dict()})


# ------------------------------------------------------------
#  Tasks and progress history
# ------------------------------------------------------------
@bp.route("/<project_id>/tasks", methods=["POST"])
@jwt_required()
def add_task(project_id):
    data = load_or_raise(TaskCreateSchema(), request.get_json(silent=True))
    task = create_task(db.session, project_id, get_jwt_identity(), data)
    return success_response({"task": task.to_dict()}, status=201)


@bp.route("/<project_id>/tasks", methods=["GET"])
@jwt_required()
def tasks(project_id):
    items = list_tasks(db.session, project_id, get_jwt_identity())
    return success_response({"tasks": [t.to_dict() for t in items]})


@bp.route("/<project_id>/progress-updates", methods=["GET"])
@jwt_required()
def progress_updates(project_id):
    since = _parse_since(request.args.get("since"))
    items = list_progress_updates(db.session, project_id, get_jwt_identity(), since=since)
    return success_response({"progressUpdates": [u.to_dict() for u in items]})


# ------------------------------------------------------------
#  Comments and invoices
# ------------------------------------------------------------
@bp.route("/<project_id>/comments", methods=["POST"])
@jwt_required()
def comment(project_id):
    data = load_or_raise(CommentCreateSchema(), request.get_json(silent=True))
    item = add_comment(
        db.session,
        project_id,
        get_jwt_identity(),
        data["body"],
        kind=data["kind"],
        progress_update_id=data.get("progress_update_id"),
    )
    return success_response({"comment": item.to_dict()}, status=201)


@bp.route("/<project_id>/comments", methods=["GET"])
@jwt_required()
def comments(project_id):
    items = list_comments(db.session, project_id, get_jwt_identity())
    return success_response({"comments": [c.to_dict() for c in items]})


@bp.route("/<project_id>/invoices", methods=["GET"])
@jwt_required()
def invoices(project_id):
    project = get_project_for_user(db.session, project_id, get_jwt_identity())
    items = list_invoices_for_project(db.session, project.id)
    return success_response({"invoices": [i.to_dict() for i in items]})


@bp.route("/<project_id>/audit", methods=["GET"])
@jwt_required()
def audit_trail(project_id):
    project = get_project_for_user(db.session, project_id, get_jwt_identity())
    events = list_project_events(db.session, project)
    return success_response({"events": [e.to_dict() for e in events]})
