"""
auth/errors.py -- Exception taxonomy for the authentication subsystem.

Every failure the session manager, profile helpers and guard can report is a
UserAuthError subclass carrying a stable machine code, a human message and
the HTTP status the API layer should use. api/main.py registers one handler
for UserAuthError that renders the shared ErrorResponse envelope, so route
handlers never build error responses by hand.

Families:
  ValidationError      400  missing or malformed input
  ConflictError        400  duplicate unique field
  AuthenticationError  400/401/403  unknown user, bad password, token failures
  NotFoundError        404
  StoreError           500  any persistence failure (detail redacted)

TokenError and its subclasses are raised by auth/tokens.py. They are not
HTTP errors: callers translate them into the AuthenticationError that fits
their flow (refresh -> InvalidOrExpiredToken, guard -> InvalidToken).

Layer rule: stdlib only.
"""

from __future__ import annotations


class UserAuthError(Exception):
    """Base class for errors surfaced to API callers."""

    status_code: int = 500
    code: str = "internal_error"
    message: str = "An unexpected error occurred."

    def __init__(self, message: str | None = None, *, status_code: int | None = None, detail: str | None = None):
        self.message = message or self.message
        if status_code is not None:
            self.status_code = status_code
        self.detail = detail
        super().__init__(self.message)


# ---------------------------------------------------------------------------
# 400 -- validation
# ---------------------------------------------------------------------------


class ValidationError(UserAuthError):
    status_code = 400
    code = "validation_error"
    message = "Request is invalid."


class MissingField(ValidationError):
    code = "missing_field"
    message = "Some required fields are missing."


class NoFileUploaded(ValidationError):
    code = "no_file"
    message = "File not uploaded."


class UnsupportedMediaType(ValidationError):
    code = "unsupported_media_type"
    message = "Only image uploads are accepted."


class FileTooLarge(ValidationError):
    code = "file_too_large"
    message = "Uploaded file is too large."


# ---------------------------------------------------------------------------
# 400 -- conflicts
# ---------------------------------------------------------------------------


class ConflictError(UserAuthError):
    status_code = 400
    code = "conflict"
    message = "A user with those details already exists."


class DuplicateEmail(ConflictError):
    code = "duplicate_email"
    message = "Email already in use."


class DuplicateUsername(ConflictError):
    code = "duplicate_username"
    message = "Username already in use."


# ---------------------------------------------------------------------------
# 400 / 401 / 403 -- authentication
# ---------------------------------------------------------------------------


class AuthenticationError(UserAuthError):
    status_code = 401
    code = "unauthorized"
    message = "Authentication failed."


class UnknownUser(AuthenticationError):
    status_code = 400
    code = "unknown_user"
    message = "Username does not exist."


class InvalidPassword(AuthenticationError):
    status_code = 400
    code = "invalid_password"
    message = "Password invalid."


class MissingToken(AuthenticationError):
    status_code = 401
    code = "missing_token"
    message = "Refresh token is required."


class UnknownToken(AuthenticationError):
    status_code = 403
    code = "unknown_token"
    message = "Invalid refresh token."


class InvalidOrExpiredToken(AuthenticationError):
    status_code = 403
    code = "invalid_or_expired_token"
    message = "Invalid or expired refresh token."


class InvalidToken(AuthenticationError):
    status_code = 403
    code = "invalid_token"
    message = "Invalid token."


class NoToken(AuthenticationError):
    status_code = 403
    code = "no_token"
    message = "Access denied. No token provided."


class Forbidden(AuthenticationError):
    status_code = 403
    code = "forbidden"
    message = "Token does not grant access to this user."


# ---------------------------------------------------------------------------
# 404
# ---------------------------------------------------------------------------


class NotFoundError(UserAuthError):
    status_code = 404
    code = "not_found"
    message = "Resource not found."


class UserNotFound(NotFoundError):
    message = "User not found."


# ---------------------------------------------------------------------------
# 500
# ---------------------------------------------------------------------------


class StoreError(UserAuthError):
    """Persistence failure. detail holds the exception class name only."""

    status_code = 500
    code = "store_error"
    message = "Server error."


# ---------------------------------------------------------------------------
# Token verification (not HTTP errors)
# ---------------------------------------------------------------------------


class TokenError(Exception):
    """A token could not be verified."""


class InvalidSignature(TokenError):
    """Signature mismatch, wrong secret, or a malformed token."""


class TokenExpired(TokenError):
    """The token's exp claim is in the past."""
