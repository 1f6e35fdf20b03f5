"""Profile endpoints keyed by email."""

from __future__ import annotations

from flask import Blueprint, current_app, jsonify, request
from werkzeug.datastructures import FileStorage

from services.provisioning import UserPatch, UserProvisioningService
from storage.local_storage import LocalStorage
from utils.request_validation import parse_profile_request

users_bp = Blueprint("users", __name__)


def _service() -> UserProvisioningService:
    return current_app.extensions["provisioning"]


@users_bp.route("/<email>", methods=["GET"])
def get_profile(email: str):
    return jsonify(_service().find_by_email(email))


@users_bp.route("/<email>", methods=["PATCH"])
def update_profile(email: str):
    """Update profile fields, storing an uploaded ``profilePic`` file if present."""

    patch = UserPatch.from_payload(parse_profile_request(request))

    upload = request.files.get("profilePic")
    if isinstance(upload, FileStorage) and upload.filename:
        _service().find_by_email(email)
        storage = LocalStorage(current_app.config.get("UPLOAD_DIR"))
        stored_name = storage.save(upload, upload.filename)
        patch = patch.with_profile_pic(storage.public_path(stored_name))

    return jsonify(_service().update_by_email(email, patch))
