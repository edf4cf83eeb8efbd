"""
Error taxonomy for MindMoney.

Every failure a request can end in is one of these.
Each error knows the HTTP status it maps to; the router catches
them once and turns them into a {success: false, error} envelope.

The message of an error IS what the caller sees, so it must stay
short and free of internal detail. Driver errors, provider payloads
and tracebacks belong in the log, attached via exception chaining.
"""


class MindMoneyError(Exception):
    """Base exception for all expected request failures."""

    status_code = 500
    default_message = "Internal server error"

    def __init__(self, message: str = None):
        super().__init__(message or self.default_message)

    @property
    def message(self) -> str:
        return str(self)


class AuthenticationError(MindMoneyError):
    """Missing, malformed, expired or otherwise invalid credential."""

    status_code = 401
    default_message = "Invalid token"


class AuthorizationError(MindMoneyError):
    """Authenticated caller asked for another user's data."""

    status_code = 403
    default_message = "Unauthorized"


class NotFoundError(MindMoneyError):
    """Requested resource is absent or not owned by the caller."""

    status_code = 404
    default_message = "Not found"


class ValidationError(MindMoneyError):
    """Request body or query parameters do not match the expected shape."""

    status_code = 400
    default_message = "Invalid request"


class GenerationError(MindMoneyError):
    """The external text-generation call failed."""

    status_code = 500
    default_message = "Text generation request failed"


class StorageError(MindMoneyError):
    """A relational store call failed."""

    status_code = 500
    default_message = "Database error"
