"""Authentication and user-management blueprint."""

from __future__ import annotations

import logging
from datetime import timedelta
from http import HTTPStatus

from flask import Blueprint, current_app, jsonify, request
from flask_jwt_extended import create_access_token, decode_token
from flask_jwt_extended.exceptions import JWTExtendedException
from jwt import PyJWTError
from werkzeug.exceptions import BadRequest, Unauthorized

from errors import NotFoundError
from services.provisioning import UserPatch, UserProvisioningService
from utils.request_validation import parse_json_request

logger = logging.getLogger(__name__)

PASSWORD_RESET_PURPOSE = "password_reset"
auth_bp = Blueprint("auth", __name__)


def _service() -> UserProvisioningService:
    return current_app.extensions["provisioning"]


@auth_bp.route("/register", methods=["POST"])
def register() -> tuple:
    """Provision a user with a temporary password emailed to them."""
    payload = parse_json_request(request, required_keys=("email",))
    result = _service().create_user(payload)

    return (
        jsonify(
            {
                "message": "User registered successfully.",
                "user": result.user,
                "mode": result.mode,
                "notified": result.notified,
            }
        ),
        HTTPStatus.CREATED,
    )


@auth_bp.route("/login", methods=["POST"])
def login() -> tuple:
    """Authenticate a user and return a JWT access token."""
    payload = parse_json_request(request, required_keys=("email", "password"))

    user = _service().authenticate(payload["email"], payload["password"])
    if user is None:
        raise Unauthorized("Invalid email or password.")

    token = create_access_token(identity=str(user["id"]), additional_claims={"role": user["role"]})
    return jsonify({"access_token": token, "user": user}), HTTPStatus.OK


@auth_bp.route("", methods=["GET"])
def list_users():
    return jsonify({"success": True, "data": _service().find_all()})


@auth_bp.route("/<int:user_id>", methods=["GET"])
def get_user(user_id: int):
    return jsonify(_service().find_one(user_id))


@auth_bp.route("/<int:user_id>", methods=["PATCH"])
def update_user(user_id: int):
    """Apply a partial update; keys absent from the body are left untouched."""
    payload = parse_json_request(request, allow_empty=True)
    return jsonify(_service().update(user_id, UserPatch.from_payload(payload)))


@auth_bp.route("/users/<int:user_id>", methods=["DELETE"])
def remove_user(user_id: int):
    removed = _service().remove(user_id)
    return jsonify({"message": "User deleted successfully.", "user": removed})


@auth_bp.route("/forgot-password", methods=["POST"])
def forgot_password():
    """Email a short-lived reset token when the account exists."""
    payload = parse_json_request(request, required_keys=("email",))

    try:
        user = _service().find_by_email(payload["email"])
    except NotFoundError:
        logger.info("Password reset requested for an unknown email")
    else:
        minutes = current_app.config.get("PASSWORD_RESET_MINUTES", 15)
        # "pwd" ties the token to the current password so it stops working once used.
        token = create_access_token(
            identity=str(user["id"]),
            additional_claims={
                "purpose": PASSWORD_RESET_PURPOSE,
                "pwd": _service().reset_fingerprint(user["id"]),
            },
            expires_delta=timedelta(minutes=minutes),
        )
        _service().notify_password_reset(user["email"], token)

    return jsonify({"message": "If the account exists, a reset email has been sent."})


@auth_bp.route("/reset-password", methods=["POST"])
def reset_password():
    payload = parse_json_request(request, required_keys=("token", "password"))

    try:
        claims = decode_token(payload["token"])
    except (PyJWTError, JWTExtendedException) as exc:
        raise BadRequest("Reset token is invalid or has expired.") from exc
    if claims.get("purpose") != PASSWORD_RESET_PURPOSE:
        raise BadRequest("Reset token is invalid or has expired.")

    user = _service().reset_password(int(claims["sub"]), claims.get("pwd"), payload["password"])
    return jsonify({"message": "Password updated successfully.", "user": user})


@auth_bp.route("/verification-code", methods=["POST"])
def send_verification_code():
    payload = parse_json_request(request, required_keys=("email",))
    notified = _service().issue_verification_code(payload["email"])
    return jsonify({"message": "Verification code issued.", "notified": notified})


@auth_bp.route("/verify-email", methods=["POST"])
def verify_email():
    payload = parse_json_request(request, required_keys=("email", "code"))
    user = _service().confirm_verification_code(payload["email"], payload["code"])
    return jsonify({"message": "Email verified.", "user": user})
