"""Durable and in-memory user stores sharing one create/read/update/delete contract."""

from __future__ import annotations

import logging
import random
import threading
from contextlib import contextmanager
from copy import deepcopy
from datetime import datetime
from typing import Any, Iterator

from sqlalchemy import func
from sqlalchemy.exc import DBAPIError, IntegrityError, InterfaceError, OperationalError, SQLAlchemyError

from errors import ConflictError, InvalidInput, NotFoundError, StoreUnavailable
from models.user import User

logger = logging.getLogger(__name__)

SECRET_FIELDS = ("password_hash", "verification_code_hash", "verification_code_expires_at")

# Record keys that differ from the model's column names.
COLUMN_NAMES = {"profilePic": "profile_pic", "isVerified": "is_verified"}
WRITABLE_FIELDS = (
    "email",
    "role",
    "name",
    "phone",
    "location",
    "about",
    "skills",
    "profilePic",
    "isVerified",
) + SECRET_FIELDS

FALLBACK_ID_RANGE = (2, 2**31 - 1)


def redact_record(record: dict) -> dict:
    """Return a copy of ``record`` without credential material."""

    return {key: deepcopy(value) for key, value in record.items() if key not in SECRET_FIELDS}


def _conflict(email: str) -> ConflictError:
    return ConflictError(f"A user with email {email} already exists.")


def _check_key(key: dict) -> tuple[str, Any]:
    if len(key) != 1 or not set(key) <= {"id", "email"}:
        raise InvalidInput("Lookup key must be exactly one of id or email.")
    ((name, value),) = key.items()
    return name, value


class SqlUserStore:
    """User records persisted through Flask-SQLAlchemy."""

    def __init__(self, database):
        self.db = database

    @contextmanager
    def _translate_errors(self) -> Iterator[None]:
        try:
            yield
        except IntegrityError as exc:
            self._rollback()
            raise ConflictError("A user with that email already exists.") from exc
        except (OperationalError, InterfaceError) as exc:
            self._rollback()
            raise StoreUnavailable(f"User store unavailable: {exc.orig or exc}") from exc
        except DBAPIError as exc:
            self._rollback()
            if exc.connection_invalidated:
                raise StoreUnavailable("User store connection was invalidated.") from exc
            raise

    def _rollback(self) -> None:
        try:
            self.db.session.rollback()
        except SQLAlchemyError:
            logger.exception("Rollback failed while handling a store error")

    def _get_by_key(self, key: dict) -> User | None:
        name, value = _check_key(key)
        if name == "id":
            return self.db.session.get(User, value)
        return User.query.filter(func.lower(User.email) == str(value).strip().lower()).first()

    def _apply(self, user: User, changes: dict) -> None:
        for field, value in changes.items():
            if field not in WRITABLE_FIELDS:
                raise InvalidInput(f"Field {field} cannot be written.")
            setattr(user, COLUMN_NAMES.get(field, field), value)

    def create(self, fields: dict) -> dict:
        with self._translate_errors():
            email = fields["email"]
            if self._get_by_key({"email": email}) is not None:
                raise _conflict(email)

            user = User()
            self._apply(user, fields)
            self.db.session.add(user)
            self.db.session.commit()
            return user.to_dict()

    def find_many(self) -> list[dict]:
        with self._translate_errors():
            return [user.to_dict() for user in User.query.order_by(User.id).all()]

    def find_unique(self, *, redact: bool = True, **key) -> dict | None:
        with self._translate_errors():
            user = self._get_by_key(key)
            if user is None:
                return None
            return user.to_dict() if redact else user.to_record()

    def update(self, key: dict, changes: dict) -> dict:
        with self._translate_errors():
            user = self._get_by_key(key)
            if user is None:
                raise NotFoundError("User not found.")
            self._apply(user, changes)
            self.db.session.commit()
            return user.to_dict()

    def delete(self, user_id: int) -> dict:
        with self._translate_errors():
            user = self.db.session.get(User, user_id)
            if user is None:
                raise NotFoundError(f"User with id {user_id} not found.")
            record = user.to_dict()
            self.db.session.delete(user)
            self.db.session.commit()
            return record


class FallbackUserStore:
    """Process-local ordered list of user records.

    Only consulted while the durable store is unreachable; never persisted
    and never reconciled with the durable store.
    """

    def __init__(self, records: list[dict] | None = None, rng: random.Random | None = None):
        self._records: list[dict] = [deepcopy(record) for record in records or []]
        self._lock = threading.Lock()
        self._rng = rng or random.Random()

    @classmethod
    def with_default_admin(cls, password_hash: str | None = None) -> "FallbackUserStore":
        admin = {
            "id": 1,
            "email": "khalil@gmail.com",
            "role": "Admin",
            "name": "khalil",
            "phone": None,
            "location": None,
            "about": None,
            "skills": [],
            "profilePic": None,
            "isVerified": True,
            "createdAt": None,
            "password_hash": password_hash,
            "verification_code_hash": None,
            "verification_code_expires_at": None,
        }
        return cls([admin])

    def __len__(self) -> int:
        return len(self._records)

    def _index_of(self, key: dict) -> int | None:
        name, value = _check_key(key)
        for index, record in enumerate(self._records):
            if name == "email":
                if str(record["email"]).lower() == str(value).strip().lower():
                    return index
            elif record["id"] == value:
                return index
        return None

    def next_id(self) -> int:
        """Draw a random id not already used in this cache."""

        taken = {record["id"] for record in self._records}
        while True:
            candidate = self._rng.randint(*FALLBACK_ID_RANGE)
            if candidate not in taken:
                return candidate

    def create(self, fields: dict) -> dict:
        with self._lock:
            if self._index_of({"email": fields["email"]}) is not None:
                raise _conflict(fields["email"])

            record = {"id": None}
            record.update({field: None for field in WRITABLE_FIELDS})
            record.update({"skills": [], "isVerified": False})
            record.update(deepcopy(fields))
            record["id"] = fields.get("id") or self.next_id()
            record["createdAt"] = datetime.utcnow().isoformat()
            self._records.append(record)
            return redact_record(record)

    def find_many(self) -> list[dict]:
        with self._lock:
            return [redact_record(record) for record in self._records]

    def find_unique(self, *, redact: bool = True, **key) -> dict | None:
        with self._lock:
            index = self._index_of(key)
            if index is None:
                return None
            record = self._records[index]
            return redact_record(record) if redact else deepcopy(record)

    def update(self, key: dict, changes: dict) -> dict:
        with self._lock:
            index = self._index_of(key)
            if index is None:
                raise NotFoundError("User not found.")
            for field in changes:
                if field not in WRITABLE_FIELDS:
                    raise InvalidInput(f"Field {field} cannot be written.")
            self._records[index].update(deepcopy(changes))
            return redact_record(self._records[index])

    def delete(self, user_id: int) -> dict:
        with self._lock:
            index = self._index_of({"id": user_id})
            if index is None:
                raise NotFoundError(f"User with id {user_id} not found.")
            return redact_record(self._records.pop(index))
