"""Control-plane error types, each carrying the HTTP status it maps to."""


class GenerationError(Exception):
    """Base class for errors reported synchronously to control-plane callers."""

    status_code = 400

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ConflictError(GenerationError):
    """Generation is already running (or a concurrent claim won)."""

    status_code = 409


class PreconditionError(GenerationError):
    """The record is not in a status that allows the request."""

    status_code = 400


class NotFoundError(GenerationError):
    """Unknown trip or generation record."""

    status_code = 404


class ForbiddenError(GenerationError):
    """The trip belongs to another user."""

    status_code = 403
