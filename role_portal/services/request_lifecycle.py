"""
Request Lifecycle Manager.

Creates, edits and deletes security role requests and decides where the
user goes next.

    create  -> persist request + one security area + approval steps
               (+ copy-user details and copied roles on the copy path)
    edit    -> only while pending; replaces the area when it changes, drops
               the saved role selection and resets approvals
    delete  -> idempotent, removes every dependent row

Create and edit each run as a single transaction; a store failure rolls the
whole operation back and raises PersistenceError.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date

from sqlalchemy import select

from role_portal.core.exceptions import NotFoundError, PreconditionError, ValidationError
from role_portal.models import db
from role_portal.models.request import (
    AREA_TYPES,
    CopyUserDetails,
    SecurityArea,
    SecurityRoleRequest,
)
from role_portal.models.role_selection import SecurityRoleSelection
from role_portal.services import approval_engine
from role_portal.services.role_selection_service import copy_from_user, describe_selection
from role_portal.utils.helpers import (
    as_bool,
    atomic,
    digits_only,
    email_domain,
    email_to_username,
    is_valid_email,
    is_valid_username,
    pad_code,
    parse_date,
    username_to_email,
)

logger = logging.getLogger(__name__)


# ── Navigation ───────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class Destination:
    name: str
    path: str

    def to_dict(self, request_id: str | None = None) -> dict:
        return {"name": self.name, "path": self.path, "request_id": request_id}


ELM_ROLES = Destination("elm_roles", "/elm-roles")
EPM_DWH_ROLES = Destination("epm_dwh_roles", "/epm-dwh-roles")
HR_PAYROLL_ROLES = Destination("hr_payroll_roles", "/hr-payroll-roles")
SELECT_ROLES = Destination("select_roles", "/select-roles")
SUCCESS = Destination("success", "/success")
REQUEST_LIST = Destination("request_list", "/requests")

_AREA_ROUTES = {
    "elm": ELM_ROLES,
    "epm_data_warehouse": EPM_DWH_ROLES,
    "hr_payroll": HR_PAYROLL_ROLES,
}


def route_after_create_or_edit(area_type: str | None) -> Destination:
    """Role page for *area_type*; accounting and anything unknown use the generic one."""
    return _AREA_ROUTES.get(area_type, SELECT_ROLES)


def destination_after_create(area_type: str | None, copy: bool) -> Destination:
    return SUCCESS if copy else route_after_create_or_edit(area_type)


def destination_after_edit(area_type: str | None, copy: bool) -> Destination:
    return REQUEST_LIST if copy else route_after_create_or_edit(area_type)


# ── Form validation ──────────────────────────────────────────────────────────


def hr_access_email(view_statewide: bool) -> str:
    mailbox = "hr_statewide_access" if view_statewide else "hr_standard_access"
    return f"{mailbox}@{email_domain()}"


def _text(form: dict, key: str) -> str:
    value = form.get(key)
    return str(value).strip() if value is not None else ""


def _flag(form: dict, key: str) -> bool:
    return as_bool(form.get(key))


def validate_request_form(form: dict, today: date | None = None) -> dict:
    """Check the main form and return normalised values.

    Raises ValidationError with a field -> message map before anything is
    written.
    """
    form = form or {}
    today = today or date.today()
    errors = {}

    def required(key, label):
        value = _text(form, key)
        if not value:
            errors[key] = f"{label} is required"
        return value

    raw_start = form.get("start_date")
    start_date = parse_date(raw_start)
    if not raw_start:
        errors["start_date"] = "Start date is required"
    elif start_date is None:
        errors["start_date"] = "Start date must be a valid date"
    elif start_date <= today:
        errors["start_date"] = "Start date must be in the future"

    is_non_employee = _flag(form, "is_non_employee")
    employee_name = required("employee_name", "Employee name")
    employee_id = _text(form, "employee_id")
    if not employee_id and not is_non_employee:
        errors["employee_id"] = "Employee ID is required"

    email = required("email", "Email")
    if email and not is_valid_email(email):
        errors["email"] = "Email must be a valid email address"

    agency_name = required("agency_name", "Agency name")
    agency_code = required("agency_code", "Agency code")

    submitter_name = required("submitter_name", "Submitter name")
    submitter_email = required("submitter_email", "Submitter email")
    if submitter_email and not is_valid_email(submitter_email):
        errors["submitter_email"] = "Submitter email must be a valid email address"

    def person(name_key, name_label, user_key, user_label):
        name = required(name_key, name_label)
        username = required(user_key, user_label)
        if username and not is_valid_username(username):
            errors[user_key] = f"{user_label} is not a valid username"
        return name, username

    supervisor_name, supervisor_username = person(
        "supervisor_name", "Supervisor name", "supervisor_username", "Supervisor username")
    security_admin_name, security_admin_username = person(
        "security_admin_name", "Security administrator name",
        "security_admin_username", "Security administrator username")

    area_type = _text(form, "security_area")
    director_name = director_email = None
    if area_type not in AREA_TYPES:
        errors["security_area"] = "Please select a security area"
    elif area_type == "accounting_procurement":
        director_name, username = person(
            "accounting_director", "Accounting director",
            "accounting_director_username", "Accounting director username")
        director_email = username_to_email(username)
    elif area_type == "elm":
        director_name, username = person(
            "elm_key_admin", "ELM key administrator",
            "elm_key_admin_username", "ELM key administrator username")
        director_email = username_to_email(username)
    elif area_type == "hr_payroll":
        director_name = required("hr_mainframe_logon_id", "Mainframe logon ID")
        director_email = hr_access_email(_flag(form, "hr_view_statewide"))

    copy = _text(form, "selection_option") == "copy"
    copy_user_name = copy_user_employee_id = copy_user_sema4_id = None
    if copy:
        copy_user_name = required("copy_user_name", "Name of the user to copy")
        copy_user_employee_id = required("copy_user_employee_id", "Employee ID of the user to copy")
        copy_user_sema4_id = _text(form, "copy_user_sema4_id") or None

    if errors:
        raise ValidationError("Please fill in all required fields", details=errors)

    return {
        "request": {
            "start_date": start_date,
            "employee_name": employee_name,
            "employee_id": employee_id or None,
            "is_non_employee": is_non_employee,
            "work_location": _text(form, "work_location") or None,
            "work_phone": digits_only(form.get("work_phone")),
            "email": email,
            "agency_name": agency_name,
            "agency_code": pad_code(agency_code, 3),
            "justification": _text(form, "justification") or None,
            "submitter_name": submitter_name,
            "submitter_email": submitter_email,
            "supervisor_name": supervisor_name,
            "supervisor_email": username_to_email(supervisor_username),
            "security_admin_name": security_admin_name,
            "security_admin_email": username_to_email(security_admin_username),
        },
        "area": {
            "area_type": area_type,
            "director_name": director_name or None,
            "director_email": director_email,
        },
        "copy": {
            "copy_user_name": copy_user_name,
            "copy_user_employee_id": copy_user_employee_id,
            "copy_user_sema4_id": copy_user_sema4_id,
        } if copy else None,
    }


# ── Lookups ──────────────────────────────────────────────────────────────────


def get_request(request_id: str) -> SecurityRoleRequest:
    req = db.session.get(SecurityRoleRequest, request_id)
    if req is None:
        raise NotFoundError(resource="SecurityRoleRequest", resource_id=request_id)
    return req


def _require_pending(req: SecurityRoleRequest) -> None:
    if req.status != "pending":
        raise PreconditionError(f"Only pending requests can be edited (status: {req.status})")


# ── Create / edit / delete ───────────────────────────────────────────────────


def create_request(form: dict, ctx, today: date | None = None) -> tuple[SecurityRoleRequest, Destination]:
    """Persist a new request from the main form.

    Returns the request and the page the user should be sent to next.
    """
    poc_user = ctx.require_user()
    data = validate_request_form(form, today=today)

    with atomic("create request"):
        req = SecurityRoleRequest(**data["request"], status="pending", poc_user=poc_user)
        area = SecurityArea(**data["area"])
        req.security_areas.append(area)
        db.session.add(req)
        db.session.flush()

        approval_engine.ensure_approval_steps(req, area)

        if data["copy"]:
            req.copy_user_details = CopyUserDetails(**data["copy"])
            db.session.flush()
            copy_from_user(req.id, data["copy"]["copy_user_employee_id"])

    logger.info(
        "Request created",
        extra={"request_id": req.id, "poc_user": poc_user, "area_type": area.area_type},
    )
    return req, destination_after_create(area.area_type, bool(data["copy"]))


def edit_request(request_id: str, form: dict, ctx=None, today: date | None = None) -> tuple[SecurityRoleRequest, Destination]:
    """Apply the edit form to a pending request.

    A changed security area replaces the old area row and its director
    step; the saved role selection is always discarded (re-copied on the copy
    path) and every approval except the user's signature starts over.
    """
    req = get_request(request_id)
    _require_pending(req)
    data = validate_request_form(form, today=today)
    new_area = data["area"]

    with atomic("update request"):
        for key, value in data["request"].items():
            setattr(req, key, value)

        area = req.primary_area
        if area is not None and area.area_type == new_area["area_type"]:
            area.director_name = new_area["director_name"]
            area.director_email = new_area["director_email"]
        else:
            req.security_areas.clear()
            approval_engine.delete_area_specific_approvals(req.id)
            db.session.flush()
            area = SecurityArea(**new_area)
            req.security_areas.append(area)
        db.session.flush()

        approval_engine.ensure_approval_steps(req, area)

        if data["copy"]:
            if req.copy_user_details is None:
                req.copy_user_details = CopyUserDetails(**data["copy"])
            else:
                for key, value in data["copy"].items():
                    setattr(req.copy_user_details, key, value)
        else:
            req.copy_user_details = None

        selection = db.session.execute(
            select(SecurityRoleSelection).where(SecurityRoleSelection.request_id == req.id)
        ).scalar_one_or_none()
        if selection is not None:
            db.session.delete(selection)
        db.session.flush()

        if data["copy"]:
            copy_from_user(req.id, data["copy"]["copy_user_employee_id"])

        approval_engine.reset_approvals_after_edit(req.id)

    logger.info(
        "Request updated",
        extra={
            "request_id": req.id,
            "poc_user": getattr(ctx, "current_user", None),
            "area_type": area.area_type,
        },
    )
    return req, destination_after_edit(area.area_type, bool(data["copy"]))


def delete_request(request_id: str) -> bool:
    """Delete a request and everything hanging off it.

    Returns False when the id is already gone.
    """
    req = db.session.get(SecurityRoleRequest, request_id)
    if req is None:
        return False
    with atomic("delete request"):
        db.session.delete(req)
    logger.info("Request deleted", extra={"request_id": request_id})
    return True


# ── Read models ──────────────────────────────────────────────────────────────


def load_request_for_edit(request_id: str) -> dict:
    """Main-form values for the edit page."""
    req = get_request(request_id)
    _require_pending(req)

    form = {
        "start_date": req.start_date.isoformat() if req.start_date else "",
        "employee_name": req.employee_name,
        "employee_id": req.employee_id or "",
        "is_non_employee": bool(req.is_non_employee),
        "work_location": req.work_location or "",
        "work_phone": req.work_phone or "",
        "email": req.email,
        "agency_name": req.agency_name,
        "agency_code": req.agency_code,
        "justification": req.justification or "",
        "submitter_name": req.submitter_name,
        "submitter_email": req.submitter_email,
        "supervisor_name": req.supervisor_name,
        "supervisor_username": email_to_username(req.supervisor_email),
        "security_admin_name": req.security_admin_name,
        "security_admin_username": email_to_username(req.security_admin_email),
        "security_area": "",
        "selection_option": "select",
    }

    area = req.primary_area
    if area is not None:
        form["security_area"] = area.area_type
        if area.area_type == "accounting_procurement":
            form["accounting_director"] = area.director_name or ""
            form["accounting_director_username"] = email_to_username(area.director_email)
        elif area.area_type == "elm":
            form["elm_key_admin"] = area.director_name or ""
            form["elm_key_admin_username"] = email_to_username(area.director_email)
        elif area.area_type == "hr_payroll":
            form["hr_mainframe_logon_id"] = area.director_name or ""
            form["hr_view_statewide"] = area.director_email == hr_access_email(True)

    details = req.copy_user_details
    if details is not None:
        form["selection_option"] = "copy"
        form["copy_user_name"] = details.copy_user_name
        form["copy_user_employee_id"] = details.copy_user_employee_id
        form["copy_user_sema4_id"] = details.copy_user_sema4_id or ""

    return form


def get_request_details(request_id: str) -> dict:
    """Everything the details page shows for one request."""
    req = get_request(request_id)
    area = req.primary_area
    approvals = approval_engine.list_approvals(req.id)
    next_step = next((a for a in approvals if a.status == "pending"), None)
    all_approved = bool(approvals) and all(a.status == "approved" for a in approvals)

    return {
        "request": req.to_dict(),
        "security_areas": [a.to_dict() for a in req.security_areas],
        "copy_user_details": req.copy_user_details.to_dict() if req.copy_user_details else None,
        "role_selection": describe_selection(req.role_selection, area.area_type if area else None),
        "approvals": [
            {**a.to_dict(), "review_link": approval_engine.review_link(req.id, a.id)}
            for a in approvals
        ],
        "next_pending_step": next_step.to_dict() if next_step else None,
        "all_approved": all_approved,
        "can_complete": all_approved and req.status != "completed",
    }
