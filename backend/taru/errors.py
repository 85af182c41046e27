class TaruError(Exception):
    """Base class for errors surfaced to API callers as `{"error": message}`."""

    status_code: int = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class AuthenticationError(TaruError):
    """Missing or invalid auth token."""

    status_code = 401


class AuthorizationError(TaruError):
    """Authenticated, but the caller's role may not use this resource."""

    status_code = 403


class NotFoundError(TaruError):
    status_code = 404


class ValidationError(TaruError):
    """Missing or malformed input, raised before any store access."""

    status_code = 400


class DataAccessError(TaruError):
    """The document store is unreachable or the operation failed."""

    status_code = 500


def require(**identifiers) -> None:
    """Fail fast when any named identifier is missing or blank."""
    missing = [
        name
        for name, value in identifiers.items()
        if value is None or (isinstance(value, str) and not value.strip())
    ]
    if missing:
        raise ValidationError(f"{', '.join(missing)} required")
