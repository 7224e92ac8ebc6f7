from flask import Blueprint, request
from flask_jwt_extended import jwt_required, get_jwt_identity

from freelancedash.extensions import db
from freelancedash.services.notification_service import (
    get_user_notifications,
    mark_all_read_for_user,
    mark_notification_read,
)
from freelancedash.utils.pagination import paginate_query
from freelancedash.utils.response_formatter import success_response

bp = Blueprint("notifications", __name__, url_prefix="/api/notifications")


@bp.route("", methods=["GET"])
@jwt_required()
def get_notifications():
    uid = get_jwt_identity()
    is_read = request.args.get("isRead")
    if is_read is not None:
        is_read = is_read.lower() == "true"

    q = get_user_notifications(db.session, uid, is_read=is_read)
    items, pagination = paginate_query(
        q, request.args.get("page", 1, type=int), request.args.get("limit", 20, type=int)
    )
    return success_response({
        "notifications": [n.to_dict() for n in items],
        "unread": get_user_notifications(db.session, uid, is_read=False).count(),
        "pagination": pagination,
    })


@bp.route("/<notification_id>/read", methods=["PATCH"])
@jwt_required()
def read(notification_id):
    notif = mark_notification_read(db.session, notification_id, get_jwt_identity())
    return success_response({"notification": notif.to_dict()})


@bp.route("/read-all", methods=["PATCH"])
@jwt_required()
def read_all():
    updated = mark_all_read_for_user(db.session, get_jwt_identity())
    return success_response({"updated": updated})
