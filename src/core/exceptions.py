"""
Application error taxonomy.

Services raise these; the API layer maps them to response envelopes via
status_code. Messages are safe to show to clients.
"""


class AppError(Exception):
    """Base class for errors surfaced to API clients"""

    status_code: int = 500
    default_message: str = "Internal Server Error"

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(AppError):
    """Missing or invalid input"""

    status_code = 400
    default_message = "Invalid request"


class UnknownCarrierError(AppError):
    """MSISDN prefix does not belong to a supported carrier"""

    status_code = 400
    default_message = "Unknown carrier"


class AuthError(AppError):
    """Missing, invalid or expired session"""

    status_code = 401
    default_message = "Missing or invalid token"


class SessionExpiredError(AuthError):
    default_message = "Session expired"


class NotFoundError(AppError):
    status_code = 404
    default_message = "Not found"


class ConflictError(AppError):
    """Integrity violation reported by the store"""

    status_code = 409
    default_message = "Conflict"


class TransientStoreError(AppError):
    """Connection-level failure that persisted through the retry"""

    status_code = 500
    default_message = "Database connection was interrupted. Please retry your request."


class UnhandledStoreError(AppError):
    """Any other database failure. Raw driver text stays in the logs."""

    status_code = 500
    default_message = "A database error occurred."
