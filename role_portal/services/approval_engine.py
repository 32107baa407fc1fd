"""
Approval Workflow Engine.

Each request carries an ordered chain of approval steps:

    user_signature (1) < supervisor_approval (2) < area step (3) < security_admin_approval (4)

The area step is accounting_director_approval, hr_director_approval or
elm_admin_approval depending on the request's security area; EPM Data
Warehouse requests have none. Unknown steps rank with the area steps; ties
are broken by creation time, then id.

Per-row state machine:
    pending --approve(signature)--> approved
    pending --deny(comments)-->     denied
    (edit) any non-signature step --> pending

A request can be completed only when it has at least one approval row, every
row is approved, and it is not already completed.

Functions here stage changes on db.session. Callers that own a larger unit
of work (request_lifecycle) commit once; the public approve/deny/complete
operations commit themselves via commit_or_raise.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from flask import current_app, has_app_context
from sqlalchemy import select

from role_portal.core.exceptions import NotFoundError, PreconditionError, ValidationError
from role_portal.models import db
from role_portal.models.approval import AREA_SPECIFIC_STEPS, RequestApproval
from role_portal.models.request import SecurityArea, SecurityRoleRequest
from role_portal.utils.helpers import commit_or_raise

logger = logging.getLogger(__name__)

AUTO_SIGNATURE = "Test Mode Auto-Signature"

STEP_ORDER = {
    "user_signature": 1,
    "supervisor_approval": 2,
    "accounting_director_approval": 3,
    "hr_director_approval": 3,
    "elm_admin_approval": 3,
    "security_admin_approval": 4,
}
_DEFAULT_RANK = 3

AREA_STEP = {
    "accounting_procurement": "accounting_director_approval",
    "hr_payroll": "hr_director_approval",
    "elm": "elm_admin_approval",
    "epm_data_warehouse": None,
}


def _utcnow():
    return datetime.now(timezone.utc)


def _sortable_ts(value):
    """created_at may come back naive from SQLite; compare on a common basis."""
    if value is None:
        return datetime.min
    return value.replace(tzinfo=None)


# ── Ordering ─────────────────────────────────────────────────────────────────


def step_rank(step: str) -> int:
    return STEP_ORDER.get(step, _DEFAULT_RANK)


def sort_approvals(rows):
    """Return *rows* in canonical workflow order (stable, deterministic)."""
    return sorted(
        rows,
        key=lambda a: (step_rank(a.step), _sortable_ts(a.created_at), a.id or ""),
    )


def list_approvals(request_id: str) -> list[RequestApproval]:
    rows = db.session.execute(
        select(RequestApproval).where(RequestApproval.request_id == request_id)
    ).scalars().all()
    return sort_approvals(rows)


def get_approval(request_id: str, approval_id: str) -> RequestApproval:
    """Fetch one approval, insisting that it belongs to *request_id*."""
    approval = db.session.get(RequestApproval, approval_id)
    if approval is None or approval.request_id != request_id:
        raise NotFoundError(resource="RequestApproval", resource_id=approval_id)
    return approval


def review_link(request_id: str, approval_id: str) -> str:
    """Direct link an approver follows to sign a step."""
    return f"/signature/{request_id}/{approval_id}?mode=review"


# ── Step expansion ───────────────────────────────────────────────────────────


def steps_for_area(area_type: str | None) -> list[str]:
    steps = ["user_signature", "supervisor_approval"]
    area_step = AREA_STEP.get(area_type)
    if area_step:
        steps.append(area_step)
    steps.append("security_admin_approval")
    return steps


def _approver_for(step: str, req: SecurityRoleRequest, area: SecurityArea | None) -> str | None:
    if step == "user_signature":
        return req.email
    if step == "supervisor_approval":
        return req.supervisor_email
    if step == "security_admin_approval":
        return req.security_admin_email
    if step in AREA_SPECIFIC_STEPS:
        return area.director_email if area is not None else None
    return None


def ensure_approval_steps(req: SecurityRoleRequest, area: SecurityArea | None) -> list[RequestApproval]:
    """Make sure *req* has a row for every step its area requires.

    Existing rows are kept and only get their approver email refreshed, so
    calling this again after an edit never duplicates steps. Returns the
    rows that were newly created.
    """
    existing = {}
    if req.id is not None:
        for row in db.session.execute(
            select(RequestApproval).where(RequestApproval.request_id == req.id)
        ).scalars():
            existing.setdefault(row.step, row)

    created = []
    for step in steps_for_area(area.area_type if area is not None else None):
        approver = _approver_for(step, req, area)
        row = existing.get(step)
        if row is not None:
            row.approver_email = approver
            continue
        row = RequestApproval(step=step, approver_email=approver, status="pending")
        req.approvals.append(row)
        created.append(row)

    if created:
        logger.debug(
            "Expanded %d approval steps",
            len(created),
            extra={"request_id": req.id, "area_type": area.area_type if area else None},
        )
    return created


def delete_area_specific_approvals(request_id: str) -> int:
    """Remove the director/admin steps tied to a (replaced) security area."""
    rows = db.session.execute(
        select(RequestApproval).where(
            RequestApproval.request_id == request_id,
            RequestApproval.step.in_(AREA_SPECIFIC_STEPS),
        )
    ).scalars().all()
    if rows:
        req = db.session.get(SecurityRoleRequest, request_id)
        for row in rows:
            req.approvals.remove(row)
    return len(rows)


def reset_approvals_after_edit(request_id: str) -> int:
    """Send every step except the user's own signature back to pending."""
    count = 0
    for row in list_approvals(request_id):
        if row.step == "user_signature":
            continue
        row.status = "pending"
        row.signature_data = None
        row.approved_at = None
        count += 1
    return count


# ── Queries ──────────────────────────────────────────────────────────────────


def next_pending_step(request_id: str) -> RequestApproval | None:
    for row in list_approvals(request_id):
        if row.status == "pending":
            return row
    return None


def is_fully_approved(request_id: str) -> bool:
    rows = list_approvals(request_id)
    return bool(rows) and all(row.status == "approved" for row in rows)


def can_complete(request_id: str) -> bool:
    req = db.session.get(SecurityRoleRequest, request_id)
    if req is None or req.status == "completed":
        return False
    return is_fully_approved(request_id)


# ── Transitions ──────────────────────────────────────────────────────────────


def _require_pending(approval: RequestApproval) -> None:
    if approval.status != "pending":
        raise PreconditionError(
            f"Approval step '{approval.step}' is already {approval.status}"
        )


def approve_step(request_id: str, approval_id: str, signature_data: str,
                 comments: str | None = None) -> RequestApproval:
    """Sign a pending step."""
    approval = get_approval(request_id, approval_id)
    _require_pending(approval)
    if not (signature_data or "").strip():
        raise ValidationError("A signature is required to approve",
                              details={"signature_data": "required"})

    approval.status = "approved"
    approval.signature_data = signature_data
    approval.approved_at = _utcnow()
    if comments:
        approval.comments = comments
    commit_or_raise("approve this step")

    logger.info("Approval step signed",
                extra={"request_id": request_id, "step": approval.step})
    return approval


def deny_step(request_id: str, approval_id: str, comments: str) -> RequestApproval:
    """Deny a pending step; a reason is mandatory."""
    approval = get_approval(request_id, approval_id)
    _require_pending(approval)
    if not (comments or "").strip():
        raise ValidationError("A reason is required to deny",
                              details={"comments": "required"})

    approval.status = "denied"
    approval.comments = comments.strip()
    commit_or_raise("deny this step")

    logger.info("Approval step denied",
                extra={"request_id": request_id, "step": approval.step})
    return approval


def auto_approve_permitted() -> bool:
    if has_app_context():
        return bool(current_app.config.get("TEST_MODE_ENABLED", False))
    return False


def auto_approve_all_pending(request_id: str, ctx) -> int:
    """Approve every pending step at once (test mode shortcut).

    Returns the number of rows changed; 0 when nothing is pending.
    """
    if not (ctx is not None and ctx.test_mode and auto_approve_permitted()):
        raise PreconditionError("Auto-approve is only available in test mode")

    if db.session.get(SecurityRoleRequest, request_id) is None:
        raise NotFoundError(resource="SecurityRoleRequest", resource_id=request_id)

    now = _utcnow()
    count = 0
    for row in list_approvals(request_id):
        if row.status != "pending":
            continue
        row.status = "approved"
        row.signature_data = AUTO_SIGNATURE
        row.approved_at = now
        count += 1

    if count:
        commit_or_raise("auto-approve the pending steps")
        logger.warning("Auto-approved %d steps in test mode", count,
                       extra={"request_id": request_id, "poc_user": ctx.current_user})
    return count


def complete_request(request_id: str, completed_by: str) -> SecurityRoleRequest:
    """Mark a fully approved request as completed by a named person."""
    completed_by = (completed_by or "").strip()
    if not completed_by:
        raise ValidationError("Please enter the name of the person completing this request",
                              details={"completed_by": "required"})

    req = db.session.get(SecurityRoleRequest, request_id)
    if req is None:
        raise NotFoundError(resource="SecurityRoleRequest", resource_id=request_id)
    if req.status == "completed":
        raise PreconditionError("Request is already completed")
    if not is_fully_approved(request_id):
        raise PreconditionError("All approval steps must be approved before completion")

    req.status = "completed"
    req.completed_by = completed_by
    req.completed_at = _utcnow()
    commit_or_raise("complete the request")

    logger.info("Request completed", extra={"request_id": request_id})
    return req
