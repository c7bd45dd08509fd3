"""Centralised error handling and custom exceptions.

This module defines custom exception classes and provides
Flask error handlers that serialise them into JSON responses.
By using custom exceptions, the service layer can signal
specific error conditions without coupling itself to HTTP
response codes. The Flask app will register these handlers
during application factory initialisation.

It also owns the mapping from backend error codes and messages
(Postgres SQLSTATEs, PostgREST codes, auth provider messages)
to the user-facing strings shown in the client.
"""
from __future__ import annotations

from flask import jsonify

GENERIC_ERROR_MESSAGE = "An unexpected error occurred. Please try again or contact support."

# Ordered: the first fragment found in the message wins.
MESSAGE_FRAGMENTS = (
    ("over_email_send_rate_limit", "Too many signup attempts. Please wait a moment before trying again."),
    ("rate_limit", "Rate limit exceeded. Please wait a moment before trying again."),
    ("User already registered", "An account with this email already exists. Please sign in instead."),
    ("Invalid login credentials", "Invalid email or password. Please check your credentials and try again."),
    ("Email not confirmed", "Please check your email and click the confirmation link before signing in."),
    ("signup_disabled", "New user registration is currently disabled."),
)

ERROR_CODES = {
    "PGRST301": "Resource not found",
    "23505": "This item already exists",
    "42501": "Permission denied - please check your account permissions",
    "23503": "Database constraint violation - please contact support",
}


def friendly_message(code: str | None = None, message: str | None = None) -> str:
    """Return the user-facing message for a backend error.

    Known message fragments are checked first, then known error
    codes. Anything else falls back to the raw message, or to a
    generic message when there is nothing usable.
    """
    if message:
        for fragment, friendly in MESSAGE_FRAGMENTS:
            if fragment in message:
                return friendly
    if code and code in ERROR_CODES:
        return ERROR_CODES[code]
    if message:
        return message
    return GENERIC_ERROR_MESSAGE


class AppError(Exception):
    """Base class for errors that map onto an HTTP response."""

    code = "ERROR"
    status_code = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def payload(self) -> dict:
        return {"code": self.code, "message": self.message}

    def to_response(self, status_code: int | None = None):
        response = {"error": self.payload()}
        return jsonify(response), status_code or self.status_code


class ValidationError(AppError):
    """Raised when input validation fails."""

    code = "VALIDATION_ERROR"
    status_code = 400

    def __init__(self, message: str, fields: dict | None = None) -> None:
        super().__init__(message)
        self.fields = fields or {}

    def payload(self) -> dict:
        return {"code": self.code, "message": self.message, "fields": self.fields}


class AuthenticationError(AppError):
    """Raised when credentials are missing or invalid."""

    code = "AUTHENTICATION_REQUIRED"
    status_code = 401


class PermissionDeniedError(AppError):
    """Raised when the caller does not own the resource it is changing."""

    code = "PERMISSION_DENIED"
    status_code = 403

    def __init__(self, message: str = ERROR_CODES["42501"]) -> None:
        super().__init__(message)


class NotFoundError(AppError):
    """Raised when a requested resource cannot be found."""

    code = "NOT_FOUND"
    status_code = 404


class ConflictError(AppError):
    """Raised when a uniqueness or resource conflict occurs."""

    code = "CONFLICT"
    status_code = 409


class RateLimitError(AppError):
    """Raised when a caller exceeds an allowed request rate."""

    code = "RATE_LIMITED"
    status_code = 429

    def __init__(self, message: str = MESSAGE_FRAGMENTS[1][1], retry_after: int | None = None) -> None:
        super().__init__(message)
        self.retry_after = retry_after

    def to_response(self, status_code: int | None = None):
        response, status = super().to_response(status_code)
        if self.retry_after:
            response.headers["Retry-After"] = str(self.retry_after)
        return response, status


class ServiceUnavailableError(AppError):
    """Raised when an external collaborator cannot be reached or is not configured."""

    code = "SERVICE_UNAVAILABLE"
    status_code = 503


def _sqlstate(exc) -> str | None:
    orig = getattr(exc, "orig", None)
    for attr in ("pgcode", "sqlstate"):
        value = getattr(orig, attr, None)
        if value:
            return value
    diag = getattr(orig, "diag", None)
    return getattr(diag, "sqlstate", None)


def translate_db_error(exc) -> AppError:
    """Translate a SQLAlchemy ``IntegrityError`` into an application error.

    Postgres drivers expose the SQLSTATE directly; SQLite only gives a
    message, so the constraint kind is recovered from its text.
    """
    code = _sqlstate(exc)
    text = str(getattr(exc, "orig", exc))
    if code is None:
        if "UNIQUE constraint failed" in text:
            code = "23505"
        elif "FOREIGN KEY constraint failed" in text:
            code = "23503"
    if code == "23505":
        return ConflictError(friendly_message(code))
    if code == "23503":
        return ValidationError(friendly_message(code))
    return ValidationError(friendly_message(code, text))


def register_error_handlers(app) -> None:
    """Register custom error handlers on the given Flask app."""
    @app.errorhandler(AppError)
    def handle_app_error(err: AppError):
        return err.to_response()

    @app.errorhandler(413)
    def handle_too_large(err):
        return ValidationError("Uploaded file is too large.").to_response(413)
