"""
core/errors.py -- Domain failure taxonomy shared by the auth and directory services.

Services raise these; api/main.py maps every subclass of ServiceError onto the
common ErrorResponse envelope using the class's status_code and code. Services
never import FastAPI, so the same rules run unchanged from the CLI (main.py).

Kind           HTTP  Trigger
-------------  ----  -------------------------------------------------------
ValidationFailed 400 malformed input caught outside pydantic
BadRequest      400  well-formed but unacceptable request (wrong password, ...)
Unauthorized    401  missing/invalid token, failed login
Forbidden       403  authenticated but insufficient role or ownership
NotFound        404  target identifier absent
Conflict        409  duplicate email on register/create

Layer rule: core/ is the kernel and imports nothing from the project.
"""

from __future__ import annotations


class ServiceError(Exception):
    """Base class for failures that map to a client-facing HTTP status."""

    status_code: int = 500
    code: str = "internal_error"

    def __init__(self, message: str, code: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        if code is not None:
            self.code = code


class ValidationFailed(ServiceError):
    status_code = 400
    code = "validation_error"


class BadRequest(ServiceError):
    status_code = 400
    code = "bad_request"


class Unauthorized(ServiceError):
    status_code = 401
    code = "unauthorized"


class Forbidden(ServiceError):
    status_code = 403
    code = "forbidden"


class NotFound(ServiceError):
    status_code = 404
    code = "not_found"


class Conflict(ServiceError):
    status_code = 409
    code = "conflict"
