"""Utilities for validating incoming Flask requests."""

from __future__ import annotations

from typing import Iterable

from flask import Request
from werkzeug.exceptions import BadRequest


def parse_json_request(
    req: Request,
    *,
    required_keys: Iterable[str] | None = None,
    allow_empty: bool = False,
) -> dict:
    """Return the parsed JSON body or raise a 400 error."""

    if not req.is_json:
        raise BadRequest("Request content type must be application/json.")

    data = req.get_json(silent=True)
    if data is None:
        raise BadRequest("Request JSON body is required.")

    if not isinstance(data, dict):
        raise BadRequest("Request JSON payload must be an object.")

    return _check_payload(data, required_keys, allow_empty)


def parse_profile_request(req: Request) -> dict:
    """Return profile fields from a JSON body or a multipart/url-encoded form.

    Form submissions carry every value as a string; repeated ``skills``
    fields are collected into a list.
    """

    if req.is_json:
        return parse_json_request(req, allow_empty=True)

    if req.mimetype not in {"multipart/form-data", "application/x-www-form-urlencoded"}:
        raise BadRequest("Request must be JSON or a form submission.")

    data: dict = {key: req.form.get(key) for key in req.form.keys()}
    skills = req.form.getlist("skills")
    if len(skills) > 1:
        data["skills"] = skills
    return data


def _check_payload(data: dict, required_keys: Iterable[str] | None, allow_empty: bool) -> dict:
    if not data and not allow_empty:
        raise BadRequest("Request JSON body must not be empty.")

    if required_keys:
        missing = [key for key in required_keys if not data.get(key)]
        if missing:
            raise BadRequest(
                "Missing required fields: {}.".format(
                    ", ".join(sorted(missing))
                )
            )

    return data
