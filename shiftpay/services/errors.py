"""Service-layer exceptions; the app's exception handler maps each to its HTTP status."""


class ServiceError(Exception):
    """Base class for errors raised by services and request guards."""

    status_code: int = 400

    def __init__(self, message: str, status_code: int | None = None) -> None:
        self.message = message
        if status_code is not None:
            self.status_code = status_code
        super().__init__(message)


class BadRequestError(ServiceError):
    """Request is well-formed but cannot be applied (e.g. duplicate username)."""

    status_code = 400


class UnauthorizedError(ServiceError):
    """Bad credentials or an invalid, expired or already-rotated token."""

    status_code = 401


class ForbiddenError(ServiceError):
    """Authenticated but not entitled to the resource."""

    status_code = 403


class NotFoundError(ServiceError):
    """A referenced entity does not exist."""

    status_code = 404
