from flask import Blueprint, request
from flask_jwt_extended import jwt_required, get_jwt_identity

from freelancedash.extensions import db
from freelancedash.schemas.task_schema import ProgressLogSchema
from freelancedash.services.progress_service import log_progress
from freelancedash.utils.response_formatter import success_response
from freelancedash.utils.validation import load_or_raise

bp = Blueprint("tasks", __name__, url_prefix="/api/tasks")


@bp.route("/<task_id>/progress", methods=["POST"])
@jwt_required()
def update_progress(task_id):
    data = load_or_raise(ProgressLogSchema(), request.get_json(silent=True))
    update, task, project = log_progress(
        db.session,
        task_id,
        get_jwt_identity(),
        data["progress"],
        notes=data.get("notes") or "",
        hours=data.get("hours") or 0,
    )
    return success_response({
        "progressUpdate": update.to_dict(),
        "task": task.to_dict(),
        "projectStatus": project.status,
    }, status=201)
