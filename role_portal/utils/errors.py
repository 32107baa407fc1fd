"""Standardised API error responses.

Usage
-----
    from role_portal.utils.errors import api_error, E

    return api_error(E.NOT_FOUND, "Request not found")
    return api_error(E.VALIDATION_REQUIRED, "employee_name is required")

Blueprints that call the service layer register the shared handlers once:

    register_service_error_handlers(requests_bp)
"""

from __future__ import annotations

import logging

from flask import jsonify, request

from role_portal.core.exceptions import (
    NotFoundError,
    PersistenceError,
    PreconditionError,
    ValidationError,
)

logger = logging.getLogger(__name__)


# ── Error code constants ──────────────────────────────────────────────
class E:
    """Machine-readable error code constants."""

    # Malformed input – HTTP 400
    VALIDATION_REQUIRED = "ERR_VALIDATION_REQUIRED"
    VALIDATION_INVALID = "ERR_VALIDATION_INVALID"

    # Business-rule validation – HTTP 422
    VALIDATION_CONSTRAINT = "ERR_VALIDATION_CONSTRAINT"

    # Not-found – HTTP 404
    NOT_FOUND = "ERR_NOT_FOUND"

    # Gate not satisfied – HTTP 409
    PRECONDITION = "ERR_PRECONDITION"

    # Server – HTTP 500
    DATABASE = "ERR_DATABASE"
    INTERNAL = "ERR_INTERNAL"


# ── Default HTTP status mapping ───────────────────────────────────────
_DEFAULT_STATUS: dict[str, int] = {
    E.VALIDATION_REQUIRED: 400,
    E.VALIDATION_INVALID: 400,
    E.VALIDATION_CONSTRAINT: 422,
    E.NOT_FOUND: 404,
    E.PRECONDITION: 409,
    E.DATABASE: 500,
    E.INTERNAL: 500,
}


def api_error(
    code: str,
    message: str,
    *,
    status: int | None = None,
    details: dict | None = None,
):
    """Return a standard JSON error response.

    Parameters
    ----------
    code : str
        Machine-readable error code (use ``E.*`` constants).
    message : str
        Short human-readable text, shown to the user as a notification.
    status : int, optional
        HTTP status override.  Falls back to ``_DEFAULT_STATUS[code]``,
        then to ``400``.
    details : dict, optional
        Field-level breakdown of validation failures.

    Returns
    -------
    tuple[Response, int]
        ``(jsonify(body), http_status)`` – drop-in for Flask views.
    """

    http_status = status or _DEFAULT_STATUS.get(code, 400)

    body: dict = {
        "error": message,
        "code": code,
    }
    if details:
        body["details"] = details

    return jsonify(body), http_status


def register_service_error_handlers(bp) -> None:
    """Map the service-layer exception hierarchy onto HTTP responses for *bp*."""

    @bp.errorhandler(NotFoundError)
    def _handle_not_found(error: NotFoundError):
        return api_error(E.NOT_FOUND, str(error))

    @bp.errorhandler(ValidationError)
    def _handle_validation(error: ValidationError):
        return api_error(E.VALIDATION_CONSTRAINT, str(error), details=error.details)

    @bp.errorhandler(PreconditionError)
    def _handle_precondition(error: PreconditionError):
        return api_error(E.PRECONDITION, str(error))

    @bp.errorhandler(PersistenceError)
    def _handle_persistence(error: PersistenceError):
        logger.error("Store write failed endpoint=%s: %s", request.endpoint, error)
        return api_error(E.DATABASE, str(error))
