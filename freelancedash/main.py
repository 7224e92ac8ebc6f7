import logging
import os

from flask import Flask
from flask_cors import CORS

from freelancedash.config import CONFIGS
from freelancedash.extensions import db, migrate, jwt, ma, bcrypt
from freelancedash.services.change_feed import ChangeFeed
from freelancedash.utils.exceptions import ServiceError
from freelancedash.utils.response_formatter import error_response, service_error_response


def create_app(config_name=None):
    app = Flask(__name__, instance_relative_config=False)
    env = config_name or os.getenv("FLASK_ENV", "development")
    app.config.from_object(CONFIGS.get(env, CONFIGS["development"]))

    app.logger.setLevel(getattr(logging, app.config["LOG_LEVEL"], logging.INFO))
    logging.getLogger("freelancedash").setLevel(app.logger.level)

    # initialize extensions
    db.init_app(app)
    migrate.init_app(app, db)
    jwt.init_app(app)
    ma.init_app(app)
    origins = [o.strip() for o in app.config["CORS_ORIGINS"].split(",")]
    CORS(
        app,
        resources={r"/api/*": {"origins": origins}},
        supports_credentials=True,
        allow_headers=["Content-Type", "Authorization"],
        methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
    )
    bcrypt.init_app(app)

    app.extensions["change_feed"] = ChangeFeed()

    # tables must be mapped before create_all / migrations run
    from freelancedash.models import (  # noqa: F401
        audit_log, contract, invitation, invoice, notification,
        progress_update, project, project_comment, task, user,
    )

    # register blueprints
    from freelancedash.routes.auth_routes import bp as auth_bp
    from freelancedash.routes.invitation_routes import bp as invitation_bp
    from freelancedash.routes.email_routes import bp as email_bp
    from freelancedash.routes.contract_routes import bp as contract_bp
    from freelancedash.routes.project_routes import bp as project_bp
    from freelancedash.routes.task_routes import bp as task_bp
    from freelancedash.routes.notification_routes import bp as notification_bp
    from freelancedash.routes.approval_routes import bp as approval_bp

    app.register_blueprint(auth_bp)
    app.register_blueprint(invitation_bp)
    app.register_blueprint(email_bp)
    app.register_blueprint(contract_bp)
    app.register_blueprint(project_bp)
    app.register_blueprint(task_bp)
    app.register_blueprint(notification_bp)
    app.register_blueprint(approval_bp)

    # every failure leaves in the same envelope
    @app.errorhandler(ServiceError)
    def handle_service_error(e):
        level = logging.WARNING if e.status < 500 else logging.ERROR
        app.logger.log(level, "%s: %s %s", e.code, e.message, e.details)
        return service_error_response(e)

    @app.errorhandler(400)
    def bad_request(e):
        return error_response("BAD_REQUEST", str(e), status=400)

    @app.errorhandler(401)
    def unauthorized(e):
        return error_response("UNAUTHORIZED", str(e), status=401)

    @app.errorhandler(404)
    def not_found(e):
        return error_response("NOT_FOUND", "Resource not found", status=404)

    @app.errorhandler(405)
    def method_not_allowed(e):
        return error_response("METHOD_NOT_ALLOWED", str(e), status=405)

    @app.errorhandler(500)
    def server_error(e):
        return error_response("SERVER_ERROR", "Internal server error", status=500)

    @jwt.unauthorized_loader
    def missing_token(reason):
        return error_response("UNAUTHORIZED", reason, status=401)

    @jwt.invalid_token_loader
    def invalid_token(reason):
        return error_response("UNAUTHORIZED", reason, status=401)

    @jwt.expired_token_loader
    def expired_token(jwt_header, jwt_payload):
        return error_response("TOKEN_EXPIRED", "Token has expired", status=401)

    return app
