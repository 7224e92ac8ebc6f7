from flask import Blueprint, request, current_app
from flask_jwt_extended import jwt_required, get_jwt_identity

from freelancedash.extensions import db
from freelancedash.schemas.auth_schema import LoginSchema, RegisterSchema
from freelancedash.services.auth_service import (
    authenticate_user,
    generate_access_token,
    get_user,
    register_user,
)
from freelancedash.utils.response_formatter import success_response
from freelancedash.utils.validation import load_or_raise

bp = Blueprint("auth", __name__, url_prefix="/api/auth")


@bp.route("/register", methods=["POST"])
def register():
    data = load_or_raise(RegisterSchema(), request.get_json(silent=True))
    user = register_user(
        db.session,
        data["email"],
        data["password"],
        full_name=data.get("full_name"),
        role=data["role"],
        phone=data.get("phone"),
        address=data.get("address"),
    )
    current_app.logger.info("Registered %s user %s", user.role, user.id)
    return success_response({
        "user": user.to_dict(),
        "access_token": generate_access_token(user),
    }, status=201)


@bp.route("/login", methods=["POST"])
def login():
    data = load_or_raise(LoginSchema(), request.get_json(silent=True))
    user = authenticate_user(db.session, data["email"], data["password"])
    return success_response({
        "user": user.to_dict(),
        "access_token": generate_access_token(user),
    })


@bp.route("/me", methods=["GET"])
@jwt_required()
def me():
    user = get_user(db.session, get_jwt_identity())
    return success_response({"user": user.to_dict()})
