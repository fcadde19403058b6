"""
Error taxonomy for the auth layer.

Every error carries a user-safe message, the HTTP status it maps to and a
short machine code. api.errors turns them into the JSON envelope.
"""
from __future__ import annotations


class AuthError(Exception):
    status_code = 500
    code = "INTERNAL_ERROR"

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code

    @property
    def status(self) -> str:
        """'fail' for client errors, 'error' for server errors."""
        return "fail" if 400 <= self.status_code < 500 else "error"


class BadRequest(AuthError):
    status_code = 400
    code = "BAD_REQUEST"


class Unauthorized(AuthError):
    status_code = 401
    code = "UNAUTHORIZED"


class Forbidden(AuthError):
    status_code = 403
    code = "FORBIDDEN"


class NotFound(AuthError):
    status_code = 404
    code = "NOT_FOUND"


class Conflict(AuthError):
    status_code = 409
    code = "CONFLICT"


class InvalidOrExpired(AuthError):
    status_code = 400
    code = "INVALID_OR_EXPIRED"

    def __init__(self, message: str = "Token is invalid or has expired"):
        super().__init__(message)


class EmailDeliveryError(AuthError):
    status_code = 500
    code = "EMAIL_DELIVERY_ERROR"

    def __init__(self, message: str = "There was an error sending the email. Try again later!"):
        super().__init__(message)


class InvalidToken(Exception):
    """Raised by the token codec; guards translate it to Unauthorized."""
