"""User provisioning: credential issuance, persistence with fallback, notification."""

from __future__ import annotations

import hashlib
import hmac
import json
import logging
import re
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any, Callable, Mapping

from errors import InvalidInput, NotFoundError, ProvisioningFailed, StoreUnavailable
from models.user import DEFAULT_ROLE, USER_ROLES
from services.credentials import generate_temporary_password, generate_verification_code
from services.user_store import redact_record

logger = logging.getLogger(__name__)

DURABLE = "durable"
FALLBACK = "fallback"

EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
TEXT_FIELDS = ("name", "phone", "location", "about", "profilePic")
PATCHABLE_FIELDS = TEXT_FIELDS + ("skills", "role")
MIN_PASSWORD_LENGTH = 8


def normalize_skills(value: Any) -> list:
    """Coerce an incoming skills value into a list; never rejects input."""

    if isinstance(value, (list, tuple)):
        return list(value)
    if isinstance(value, str):
        text = value.strip()
        if text.startswith("[") and text.endswith("]"):
            try:
                parsed = json.loads(text)
            except ValueError:
                logger.warning("Could not parse skills value %r", value)
                return []
            if not isinstance(parsed, list):
                return []
            return [item if isinstance(item, str) else json.dumps(item) for item in parsed if item is not None]
        return [value] if text else []
    return []


def password_fingerprint(password_hash: str) -> str:
    """Short digest that changes whenever the stored password hash changes."""

    return hashlib.sha256(password_hash.encode("utf-8")).hexdigest()[:16]


def normalize_email(raw_email: Any) -> str:
    if not isinstance(raw_email, str):
        return ""
    return raw_email.strip().lower()


def validate_role(raw_role: Any) -> str:
    """Return the canonical role name or raise ``InvalidInput``."""

    if raw_role is None or raw_role == "":
        return DEFAULT_ROLE
    if isinstance(raw_role, str):
        for role in USER_ROLES:
            if role.lower() == raw_role.strip().lower():
                return role
    raise InvalidInput(f"Role must be one of: {', '.join(USER_ROLES)}.")


def _text_value(key: str, value: Any) -> str | None:
    if value is not None and not isinstance(value, str):
        raise InvalidInput(f"{key} must be a string.")
    return value


def parse_new_user(payload: Mapping[str, Any]) -> dict:
    """Validate a registration payload into store fields."""

    email = normalize_email(payload.get("email"))
    if not email:
        raise InvalidInput("Email is required.")
    if not EMAIL_PATTERN.match(email):
        raise InvalidInput("Email address is not valid.")

    fields = {"email": email, "role": validate_role(payload.get("role"))}
    for key in TEXT_FIELDS:
        fields[key] = _text_value(key, payload.get(key))
    fields["skills"] = normalize_skills(payload.get("skills"))
    return fields


@dataclass(frozen=True)
class UserPatch:
    """Field changes for an existing user; only present keys are applied."""

    changes: dict = field(default_factory=dict)

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> "UserPatch":
        changes = {}
        for key in PATCHABLE_FIELDS:
            if key not in payload:
                continue
            value = payload[key]
            if key == "skills":
                changes[key] = normalize_skills(value)
            elif key == "role":
                changes[key] = validate_role(value)
            else:
                changes[key] = _text_value(key, value)
        return cls(changes)

    def with_profile_pic(self, path: str) -> "UserPatch":
        return UserPatch({**self.changes, "profilePic": path})

    def __bool__(self) -> bool:
        return bool(self.changes)


@dataclass
class ProvisioningResult:
    """Outcome of a user creation."""

    user: dict
    mode: str
    notified: bool
    notify_error: str | None = None


class UserProvisioningService:
    """Create and manage users on top of a durable store and its fallback."""

    def __init__(
        self,
        store,
        fallback,
        notifier,
        hasher,
        *,
        password_length: int = 10,
        code_ttl: timedelta = timedelta(minutes=5),
    ):
        self.store = store
        self.fallback = fallback
        self.notifier = notifier
        self.hasher = hasher
        self.password_length = password_length
        self.code_ttl = code_ttl

    def _notify(self, send: Callable[..., Any], recipient: str, *args: Any) -> tuple[bool, str | None]:
        try:
            send(recipient, *args)
        except Exception as exc:
            logger.warning("Email to %s could not be sent: %s", recipient, exc, exc_info=True)
            return False, str(exc)
        return True, None

    def _fallback_fields(self, fields: dict) -> dict:
        record = dict(fields)
        record["name"] = fields.get("name") or fields["email"].split("@", 1)[0]
        for key in ("phone", "location", "about", "profilePic"):
            record.setdefault(key, None)
        record["skills"] = fields.get("skills") or []
        return record

    def create_user(self, payload: Mapping[str, Any]) -> ProvisioningResult:
        """Provision a user with a temporary password and send the welcome email."""

        fields = parse_new_user(payload)
        temp_password = generate_temporary_password(self.password_length)

        try:
            fields["password_hash"] = self.hasher.hash(temp_password)
        except Exception as exc:
            logger.exception("Hashing the temporary password failed for %s", fields["email"])
            raise ProvisioningFailed("Could not secure the temporary password.") from exc

        try:
            user = self.store.create(fields)
            mode = DURABLE
        except StoreUnavailable as exc:
            logger.warning("Durable store unavailable, keeping %s in the fallback cache: %s", fields["email"], exc)
            user = self.fallback.create(self._fallback_fields(fields))
            mode = FALLBACK

        notified, notify_error = self._notify(
            self.notifier.send_welcome, user["email"], temp_password, user["role"]
        )
        logger.info("Provisioned user %s (%s, notified=%s)", user["id"], mode, notified)
        return ProvisioningResult(user=user, mode=mode, notified=notified, notify_error=notify_error)

    def find_all(self) -> list[dict]:
        try:
            return self.store.find_many()
        except StoreUnavailable as exc:
            logger.warning("Durable store unavailable, listing the fallback cache: %s", exc)
            return self.fallback.find_many()

    def find_one(self, user_id: int) -> dict:
        user = self.store.find_unique(id=user_id)
        if user is None:
            raise NotFoundError(f"User with id {user_id} not found.")
        return user

    def find_by_email(self, email: str) -> dict:
        user = self.store.find_unique(email=normalize_email(email))
        if user is None:
            raise NotFoundError("User not found.")
        return user

    def update(self, user_id: int, patch: UserPatch) -> dict:
        if not patch:
            return self.find_one(user_id)
        return self.store.update({"id": user_id}, patch.changes)

    def update_by_email(self, email: str, patch: UserPatch) -> dict:
        if not patch:
            return self.find_by_email(email)
        return self.store.update({"email": normalize_email(email)}, patch.changes)

    def remove(self, user_id: int) -> dict:
        try:
            removed = self.store.delete(user_id)
        except StoreUnavailable as exc:
            logger.warning("Durable store unavailable, deleting %s from the fallback cache: %s", user_id, exc)
            removed = self.fallback.delete(user_id)
        logger.info("Removed user %s", user_id)
        return removed

    def authenticate(self, email: str, password: str) -> dict | None:
        """Return the user when ``password`` matches, otherwise None."""

        record = self.store.find_unique(email=normalize_email(email), redact=False)
        if record is None or not self.hasher.verify(password, record.get("password_hash")):
            return None
        return redact_record(record)

    def _hash_chosen_password(self, password: str) -> str:
        if not isinstance(password, str) or len(password) < MIN_PASSWORD_LENGTH:
            raise InvalidInput(f"Password must be at least {MIN_PASSWORD_LENGTH} characters.")
        return self.hasher.hash(password)

    def create_with_password(self, payload: Mapping[str, Any], password: str) -> dict:
        """Create a user in the durable store with a chosen password and no welcome email."""

        fields = parse_new_user(payload)
        fields["password_hash"] = self._hash_chosen_password(password)
        user = self.store.create(fields)
        logger.info("Created user %s with a preset password", user["id"])
        return user

    def change_password(self, user_id: int, new_password: str) -> dict:
        return self.store.update({"id": user_id}, {"password_hash": self._hash_chosen_password(new_password)})

    def reset_fingerprint(self, user_id: int) -> str:
        record = self.store.find_unique(id=user_id, redact=False)
        if record is None:
            raise NotFoundError(f"User with id {user_id} not found.")
        return password_fingerprint(record["password_hash"])

    def reset_password(self, user_id: int, fingerprint: Any, new_password: str) -> dict:
        """Set a new password if ``fingerprint`` still matches the current one."""

        if not isinstance(fingerprint, str) or not hmac.compare_digest(
            fingerprint, self.reset_fingerprint(user_id)
        ):
            raise InvalidInput("Reset token is invalid or has expired.")
        return self.change_password(user_id, new_password)

    def notify_password_reset(self, email: str, token: str) -> bool:
        notified, _ = self._notify(self.notifier.send_password_reset, normalize_email(email), token)
        return notified

    def issue_verification_code(self, email: str) -> bool:
        """Store a fresh one-time code for ``email`` and send it."""

        user = self.find_by_email(email)
        code = generate_verification_code()
        self.store.update(
            {"email": user["email"]},
            {
                "verification_code_hash": self.hasher.hash(code),
                "verification_code_expires_at": datetime.utcnow() + self.code_ttl,
            },
        )
        valid_minutes = int(self.code_ttl.total_seconds() // 60)
        notified, _ = self._notify(self.notifier.send_verification_code, user["email"], code, valid_minutes)
        return notified

    def confirm_verification_code(self, email: str, code: str) -> dict:
        record = self.store.find_unique(email=normalize_email(email), redact=False)
        if record is None:
            raise NotFoundError("User not found.")

        expires_at = record.get("verification_code_expires_at")
        if (
            not record.get("verification_code_hash")
            or expires_at is None
            or expires_at < datetime.utcnow()
            or not self.hasher.verify(str(code), record["verification_code_hash"])
        ):
            raise InvalidInput("Invalid or expired verification code.")

        return self.store.update(
            {"email": record["email"]},
            {
                "isVerified": True,
                "verification_code_hash": None,
                "verification_code_expires_at": None,
            },
        )
