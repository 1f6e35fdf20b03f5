"""Application factory."""

import json
import logging
import os
import uuid
from http import HTTPStatus

from flask import Flask, g, jsonify, request, send_from_directory
from flask_cors import CORS
from flask_jwt_extended import JWTManager
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address
from flask_migrate import Migrate
from werkzeug.exceptions import HTTPException

from config import Config
from errors import ProvisioningError
from models import db
from routes.auth import auth_bp
from routes.users import users_bp
from services.notifications import MailGateway, build_transport
from services.passwords import PasswordHasher
from services.provisioning import UserProvisioningService
from services.user_store import FallbackUserStore, SqlUserStore

migrate = Migrate()
jwt = JWTManager()


def create_app(config_class: type[Config] = Config) -> Flask:
    """Create and configure the Flask application."""
    app = Flask(__name__)
    app.config.from_object(config_class)
    _configure_logging(app)

    # Core subsystems
    db.init_app(app)
    migrate.init_app(app, db)
    jwt.init_app(app)

    # CORS
    CORS(
        app,
        resources={r"/*": {"origins": app.config.get("CORS_ORIGINS", "*")}},
        supports_credentials=True,
    )

    # Rate limiting
    limiter = Limiter(
        key_func=get_remote_address,
        default_limits=[lambda: app.config.get("RATE_LIMIT", "60 per minute")],
        storage_uri=app.config.get("RATELIMIT_STORAGE_URI", "memory://"),
        headers_enabled=app.config.get("RATELIMIT_HEADERS_ENABLED", True),
        key_prefix=str(uuid.uuid4()),
    )
    limiter.init_app(app)

    # Uploads
    upload_dir = os.path.abspath(app.config["UPLOAD_DIR"])
    app.config["UPLOAD_DIR"] = upload_dir
    os.makedirs(upload_dir, exist_ok=True)

    # One provisioning service, and one fallback cache, per process
    app.extensions["provisioning"] = _build_provisioning_service(app)

    # Blueprints
    app.register_blueprint(auth_bp, url_prefix="/auth")
    app.register_blueprint(users_bp, url_prefix="/users")

    @app.route("/uploads/<path:filename>", methods=["GET"])
    def uploaded_file(filename: str):
        return send_from_directory(app.config["UPLOAD_DIR"], filename)

    # Health
    @app.route("/health", methods=["GET"])
    def health_check():
        return jsonify({"status": "ok"})

    # Errors
    _register_error_handlers(app)

    return app


def _configure_logging(app: Flask) -> None:
    level = app.config.get("LOG_LEVEL", "INFO")
    app.logger.setLevel(level)
    for name in ("services", "routes"):
        logging.getLogger(name).setLevel(level)


def _build_provisioning_service(app: Flask) -> UserProvisioningService:
    notifier = MailGateway(
        build_transport(app.config),
        sender=app.config["MAIL_DEFAULT_SENDER"],
        frontend_url=app.config.get("FRONTEND_URL", "http://localhost:3000"),
    )
    return UserProvisioningService(
        store=SqlUserStore(db),
        fallback=FallbackUserStore.with_default_admin(),
        notifier=notifier,
        hasher=PasswordHasher(app.config.get("PASSWORD_HASH_METHOD", "scrypt")),
        password_length=int(app.config.get("TEMP_PASSWORD_LENGTH", 10)),
    )


def _error_response(status: int, detail: str):
    request_id = g.get("request_id") or str(uuid.uuid4())
    payload = {
        "error": HTTPStatus(status).phrase,
        "detail": detail,
        "request_id": request_id,
    }
    response = jsonify(payload)
    response.status_code = status
    response.headers.setdefault("X-Request-ID", request_id)
    return response


def _register_error_handlers(app: Flask) -> None:
    """Register JSON error handlers with request IDs."""

    @app.before_request
    def _assign_request_id():  # pragma: no cover
        g.request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())

    @app.after_request
    def _add_request_id_header(response):  # pragma: no cover
        request_id = g.get("request_id")
        if request_id:
            response.headers.setdefault("X-Request-ID", request_id)
        return response

    @app.errorhandler(HTTPException)
    def _handle_http_exception(error: HTTPException):
        request_id = g.get("request_id") or str(uuid.uuid4())
        response = error.get_response()
        payload = {
            "error": getattr(error, "name", "Error"),
            "detail": error.description,
            "request_id": request_id,
        }
        response.data = json.dumps(payload)
        response.content_type = "application/json"
        response.headers.setdefault("X-Request-ID", request_id)
        return response

    @app.errorhandler(ProvisioningError)
    def _handle_provisioning_error(error: ProvisioningError):
        status = int(error.status_code)
        if status >= 500:
            app.logger.error("Request failed: %s", error.message)
        return _error_response(status, error.message)

    @app.errorhandler(Exception)
    def _handle_unexpected(error: Exception):  # pragma: no cover
        app.logger.exception("Unhandled application error", exc_info=error)
        return _error_response(500, "An unexpected error occurred.")


if __name__ == "__main__":
    logging.basicConfig(level=Config.LOG_LEVEL)
    application = create_app()
    application.run(host="0.0.0.0", port=int(os.environ.get("PORT", 5000)))
