"""
core/errors.py -- Error taxonomy shared by the stores, the auth gate and the API.

Each error carries a human-readable message, a machine-readable code and the
HTTP status the API layer answers with. Stores and the gate raise these; the
single AppError handler in api/main.py turns them into the response envelope:

    {"error": "<message>", "code": "<code>"}

Resolution order within a request:
  ValidationError, AuthenticationError, AuthorizationError -- before any store call
  ConflictError, ConstraintError, NotFoundError              -- from the store outcome
  UnexpectedError                                            -- logged, generic message out

Layer rule: core/ is the kernel. No imports from api/, auth/ or records/.
"""

from __future__ import annotations


class AppError(Exception):
    """Root of every error the API knows how to render."""

    status_code: int = 500
    code: str = "error"

    def __init__(self, message: str, code: str | None = None) -> None:
        self.message = message
        if code is not None:
            self.code = code
        super().__init__(message)

    def to_dict(self) -> dict:
        return {"error": self.message, "code": self.code}


class ValidationError(AppError):
    """Missing or malformed input, rejected before reaching the store."""

    status_code = 400
    code = "validation_error"


class AuthenticationError(AppError):
    """No credential presented, or the token is malformed, forged or expired."""

    status_code = 401
    code = "unauthorized"


class AuthorizationError(AppError):
    """Valid identity whose role is not on the endpoint's allow-list."""

    status_code = 403
    code = "forbidden"


class NotFoundError(AppError):
    status_code = 404
    code = "not_found"


class ConflictError(AppError):
    """Duplicate key: username, service ID or equipment ID already taken."""

    status_code = 409
    code = "conflict"


class ConstraintError(AppError):
    """Referential or value constraint rejected by the data store."""

    status_code = 400
    code = "constraint_violation"


class AgeRangeError(ConstraintError):
    """Serving personnel age at insert is outside [18, 60)."""

    code = "age_out_of_range"


class LastAdminError(ConstraintError):
    """Mutation would leave the system without any admin account."""

    code = "last_admin"


class UnexpectedError(AppError):
    status_code = 500
    code = "internal_error"


class StoreUnavailableError(UnexpectedError):
    """The data store could not be reached. Fatal at startup."""

    code = "store_unavailable"
