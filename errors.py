"""Domain error taxonomy shared by the services and the HTTP layer."""

from __future__ import annotations

from http import HTTPStatus


class ProvisioningError(Exception):
    """Base class for user-management errors."""

    status_code = HTTPStatus.INTERNAL_SERVER_ERROR

    def __init__(self, message: str | None = None):
        super().__init__(message or self.__class__.__name__)
        self.message = message or self.__class__.__name__


class InvalidInput(ProvisioningError, ValueError):
    """Malformed request data."""

    status_code = HTTPStatus.BAD_REQUEST


class ConflictError(ProvisioningError):
    """A uniqueness constraint would be violated."""

    status_code = HTTPStatus.CONFLICT


class NotFoundError(ProvisioningError):
    """No record exists at the given key."""

    status_code = HTTPStatus.NOT_FOUND


class StoreUnavailable(ProvisioningError):
    """The durable store could not be reached."""


class TransportError(ProvisioningError):
    """An email could not be dispatched."""

    status_code = HTTPStatus.BAD_GATEWAY


class ProvisioningFailed(ProvisioningError):
    """Account creation aborted before anything was stored."""
