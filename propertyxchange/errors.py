"""Error types raised by services and rendered by the API."""


class PropertyXchangeError(Exception):
    """Base exception for the marketplace backend."""

    status_code = 500

    def __init__(self, message: str, **extra: object) -> None:
        super().__init__(message)
        self.message = message
        self.extra = extra

    def to_payload(self) -> dict[str, object]:
        return {"message": self.message, **self.extra}


class BadRequestError(PropertyXchangeError):
    """Request data is invalid for the requested operation."""

    status_code = 400


class AuthenticationError(PropertyXchangeError):
    """Caller identity is missing or invalid."""

    status_code = 401


class PermissionDeniedError(PropertyXchangeError):
    """Caller may not act on the target record."""

    status_code = 403


class NotFoundError(PropertyXchangeError):
    """Target record does not exist."""

    status_code = 404


class SlugConflictError(PropertyXchangeError):
    """No free slug could be claimed within the retry budget."""

    status_code = 409


class RateLimitedError(PropertyXchangeError):
    """Caller exceeded the allowed request rate."""

    status_code = 429
