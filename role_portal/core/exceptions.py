"""
Portal-wide exception hierarchy.

Services raise these types; blueprints register handlers against them once
and get consistent HTTP status codes everywhere.

Usage:
    from role_portal.core.exceptions import NotFoundError, ValidationError

    raise NotFoundError(resource="SecurityRoleRequest", resource_id=request_id)
    raise ValidationError("Start date is required", details={"start_date": "..."})
"""


class NotFoundError(Exception):
    """Raised when a referenced request or approval id does not resolve to a record.

    Maps to HTTP 404 in blueprint error handlers.

    Args:
        resource: Human-readable model/entity name (e.g. "SecurityRoleRequest").
        resource_id: The key that was looked up. Included in logs and message.
    """

    def __init__(self, resource: str, resource_id: int | str | None = None) -> None:
        self.resource = resource
        self.resource_id = resource_id
        msg = f"{resource}"
        if resource_id is not None:
            msg += f" id={resource_id}"
        msg += " not found"
        super().__init__(msg)


class ValidationError(Exception):
    """Raised when a required field is missing or malformed.

    Always raised before any store call is made. Maps to HTTP 422.

    Args:
        message: Human-readable explanation of what failed.
        details: Optional field-level breakdown for structured API responses.
                 Keys are field names; values are error descriptions.
    """

    def __init__(self, message: str, details: dict | None = None) -> None:
        self.details = details or {}
        super().__init__(message)


class PreconditionError(Exception):
    """Raised when an action is attempted while its gating condition is false.

    Examples: completing a request before every approval is in, editing a
    request that is no longer pending, deciding an approval twice.
    Maps to HTTP 409.
    """


class PersistenceError(Exception):
    """Raised when the record store rejects a write.

    The service layer has already rolled the session back when this is
    raised, so no partial multi-step change is left behind. Maps to HTTP 500.
    """
