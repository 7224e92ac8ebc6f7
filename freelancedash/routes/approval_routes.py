from flask import Blueprint, request
from flask_jwt_extended import jwt_required, get_jwt_identity

from freelancedash.extensions import db
from freelancedash.schemas.milestone_schema import MilestoneRevisionSchema
from freelancedash.services.milestone_service import (
    approve_milestone,
    list_pending_approvals,
    request_milestone_revision,
)
from freelancedash.utils.response_formatter import success_response
from freelancedash.utils.validation import load_or_raise

bp = Blueprint("approvals", __name__, url_prefix="/api/approvals")


@bp.route("/pending", methods=["GET"])
@jwt_required()
def pending():
    items = list_pending_approvals(db.session, get_jwt_identity())
    return success_response({"milestones": items, "totalPending": len(items)})


@bp.route("/projects/<project_id>/milestones/<int:index>/approve", methods=["POST"])
@jwt_required()
def approve(project_id, index):
    project, milestone, invoice = approve_milestone(db.session, project_id, index, get_jwt_identity())
    return success_response({
        "milestone": milestone,
        "projectStatus": project.status,
        "invoice": invoice.to_dict() if invoice else None,
    })


@bp.route("/projects/<project_id>/milestones/<int:index>/reject", methods=["POST"])
@jwt_required()
def reject(project_id, index):
    data = load_or_raise(MilestoneRevisionSchema(), request.get_json(silent=True))
    _, milestone = request_milestone_revision(
        db.session, project_id, index, get_jwt_identity(), data["comment"]
    )
    return success_response({"milestone": milestone})
