"""Errors raised by the todo service, each knowing the HTTP answer it turns into."""

from __future__ import annotations

import logging
from http import HTTPStatus

log = logging.getLogger(__name__)


class AppError(Exception):
    """Base of every error the todo service reports to a client."""

    status: HTTPStatus = HTTPStatus.INTERNAL_SERVER_ERROR
    _template = "{}"
    _public: str | None = None
    _logged_as: str | None = None

    def __init__(self, detail: str = "") -> None:
        self.detail = detail
        super().__init__(self._template.format(detail))

    def response(self) -> tuple[int, str]:
        """Return the status code and the message a client is shown."""
        if self._logged_as is not None:
            log.error("%s: %s", self._logged_as, self.detail)
        message = self.detail if self._public is None else self._public
        return int(self.status), message


class DatabaseError(AppError):
    """A query or connection failed; the details stay in the log."""

    _template = "Database error: {}"
    _public = "Database error occurred"
    _logged_as = "Database error"

    def __init__(self, cause: BaseException) -> None:
        self.cause = cause
        super().__init__(str(cause))
        self.__cause__ = cause


class AuthError(AppError):
    """Credentials were wrong or the account cannot be used."""

    status = HTTPStatus.UNAUTHORIZED
    _template = "Authentication error: {}"


class ValidationError(AppError):
    """Submitted data failed a check."""

    status = HTTPStatus.BAD_REQUEST
    _template = "Validation error: {}"


class NotFoundError(AppError):
    """The requested resource does not exist or is not the caller's."""

    status = HTTPStatus.NOT_FOUND
    _template = "Not found"
    _public = "Resource not found"

    def __init__(self) -> None:
        super().__init__("")


class UnauthorizedError(AppError):
    """No user is signed in."""

    status = HTTPStatus.UNAUTHORIZED
    _template = "Unauthorized"
    _public = "Unauthorized"

    def __init__(self) -> None:
        super().__init__("")


class BadRequestError(AppError):
    """The request could not be read."""

    status = HTTPStatus.BAD_REQUEST
    _template = "Bad request: {}"


class InternalError(AppError):
    """Something went wrong on the server; the details stay in the log."""

    _template = "Internal server error"
    _public = "Internal server error"
    _logged_as = "Internal error"


class TenantProvisioningError(AppError):
    """Creating the user's tenant app or machine failed."""

    status = HTTPStatus.SERVICE_UNAVAILABLE
    _template = "Tenant provisioning error: {}"
    _logged_as = "Tenant provisioning error"