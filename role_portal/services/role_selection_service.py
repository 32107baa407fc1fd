"""
Role Selection Recorder.

Persists the role choices made on an area sub-form. Exactly one
security_role_selections row exists per request: saving again overwrites it
and clears every column the submitting area does not own.
"""

from __future__ import annotations

import logging

from sqlalchemy import select

from role_portal.core.exceptions import NotFoundError, PreconditionError, ValidationError
from role_portal.models import db
from role_portal.models.request import SecurityRoleRequest
from role_portal.models.role_selection import BOOKKEEPING_COLUMNS, SecurityRoleSelection
from role_portal.services.role_catalog import VARIANTS, format_field_name, variant_for
from role_portal.utils.helpers import commit_or_raise

logger = logging.getLogger(__name__)

COPIED_JUSTIFICATION = "Copied from existing user access"


def _get_request(request_id: str) -> SecurityRoleRequest:
    req = db.session.get(SecurityRoleRequest, request_id)
    if req is None:
        raise NotFoundError(resource="SecurityRoleRequest", resource_id=request_id)
    return req


def _selection_for(request_id: str) -> SecurityRoleSelection | None:
    return db.session.execute(
        select(SecurityRoleSelection).where(SecurityRoleSelection.request_id == request_id)
    ).scalar_one_or_none()


def save_selections(request_id: str, area_type: str, form: dict) -> tuple[SecurityRoleSelection, list[str]]:
    """Validate and upsert the role choices for *request_id*.

    Returns the stored row and any notices the area attaches to the chosen
    roles (e.g. the ELM high-risk acknowledgment).

    Raises:
        NotFoundError:   request does not exist.
        PreconditionError: the request is no longer pending.
        ValidationError: unknown area, an area other than the request's, or
                         the choices break the area's rules.
        PersistenceError: the store rejected the write.
    """
    req = _get_request(request_id)
    if req.status != "pending":
        raise PreconditionError(f"Only pending requests can change roles (status: {req.status})")
    area = req.primary_area
    if area is not None and area.area_type != area_type:
        raise ValidationError(
            f"This request is for {area.area_type}, not {area_type}",
            details={"area_type": area_type},
        )
    variant = variant_for(area_type).from_form(form, request=req)
    variant.validate()

    row = _selection_for(request_id)
    if row is None:
        row = SecurityRoleSelection(request_id=request_id)
        db.session.add(row)
    row.clear()
    for column, value in variant.to_columns(req).items():
        setattr(row, column, value)

    commit_or_raise("save role selections")
    logger.info(
        "Saved %d role choices",
        len(variant.active_fields()),
        extra={"request_id": request_id, "area_type": area_type},
    )
    return row, variant.notices()


def load_existing_selections(request_id: str, area_type: str) -> dict | None:
    """Stored choices as UI form values, or None when nothing was saved yet."""
    row = _selection_for(request_id)
    if row is None:
        return None
    return variant_for(area_type).from_columns(row).to_form()


def copy_from_user(new_request_id: str, source_employee_id: str | None) -> SecurityRoleSelection | None:
    """Duplicate the roles of an existing user onto a new request.

    The source is the most recent *completed* request for the employee id.
    Missing source request or missing source selection is a silent no-op.
    Staged on the session; the caller commits.
    """
    source_employee_id = (source_employee_id or "").strip()
    if not source_employee_id:
        return None

    source = db.session.execute(
        select(SecurityRoleRequest)
        .where(
            SecurityRoleRequest.employee_id == source_employee_id,
            SecurityRoleRequest.status == "completed",
        )
        .order_by(SecurityRoleRequest.created_at.desc())
        .limit(1)
    ).scalar_one_or_none()
    if source is None:
        logger.info("No completed request to copy roles from",
                    extra={"request_id": new_request_id})
        return None

    source_row = _selection_for(source.id)
    if source_row is None:
        logger.info("Source request has no role selections",
                    extra={"request_id": new_request_id})
        return None

    existing = _selection_for(new_request_id)
    if existing is not None:
        db.session.delete(existing)
        db.session.flush()

    copy = SecurityRoleSelection(request_id=new_request_id)
    for column, _ in SecurityRoleSelection.data_columns():
        setattr(copy, column, getattr(source_row, column))
    copy.role_justification = source_row.role_justification or COPIED_JUSTIFICATION
    db.session.add(copy)

    logger.info("Copied role selections from request %s", source.id,
                extra={"request_id": new_request_id})
    return copy


def copy_roles_for_request(request_id: str, source_employee_id: str | None) -> SecurityRoleSelection | None:
    """Standalone copy operation: run copy_from_user and commit."""
    _get_request(request_id)
    copy = copy_from_user(request_id, source_employee_id)
    if copy is not None:
        commit_or_raise("copy role selections")
    return copy


def describe_selection(row: SecurityRoleSelection | None, area_type: str | None = None) -> dict | None:
    """Human-readable summary of a stored selection for the details view.

    Lists selected boolean roles by label and every filled-in text value.
    Labels follow the area's sub-form when *area_type* is known, otherwise
    the column names are formatted.
    """
    if row is None:
        return None

    if area_type in VARIANTS:
        variant = VARIANTS[area_type].from_columns(row)
        roles = variant.active_labels(booleans_only=True)
    else:
        roles = [
            format_field_name(name)
            for name, is_bool in SecurityRoleSelection.role_columns()
            if is_bool and getattr(row, name)
        ]

    values = {}
    for name, is_bool in SecurityRoleSelection.data_columns():
        if is_bool or name in BOOKKEEPING_COLUMNS or name == "role_justification":
            continue
        value = getattr(row, name)
        if value:
            values[format_field_name(name)] = value

    return {
        "roles": roles,
        "values": values,
        "role_justification": row.role_justification,
    }
