"""
Request list for the point-of-contact dashboard.

Requests are scoped to the POC user who created them, newest first, with an
optional exact employee-name filter. Each row carries its status badge and
the next approval still waiting, with the link the approver follows.
"""

from __future__ import annotations

import logging

from sqlalchemy import select

from role_portal.models import db
from role_portal.models.approval import RequestApproval
from role_portal.models.request import SecurityRoleRequest
from role_portal.services.approval_engine import review_link, sort_approvals

logger = logging.getLogger(__name__)

STATUS_BADGES = {
    "pending": ("Pending", "yellow"),
    "approved": ("Approved", "green"),
    "completed": ("Completed", "blue"),
    "rejected": ("Rejected", "gray"),
}


def status_badge(status: str) -> dict:
    label, tone = STATUS_BADGES.get(status, (status.title() if status else "Unknown", "gray"))
    return {"label": label, "tone": tone}


def _scoped_query(ctx):
    stmt = select(SecurityRoleRequest)
    user = getattr(ctx, "current_user", None)
    if user:
        stmt = stmt.where(SecurityRoleRequest.poc_user == user)
    return stmt


def list_requests(ctx, employee_name: str | None = None) -> list[dict]:
    stmt = _scoped_query(ctx)
    employee_name = (employee_name or "").strip()
    if employee_name:
        stmt = stmt.where(SecurityRoleRequest.employee_name == employee_name)
    stmt = stmt.order_by(SecurityRoleRequest.created_at.desc(), SecurityRoleRequest.id)
    requests = db.session.execute(stmt).scalars().all()

    pending_by_request = _next_pending_steps([r.id for r in requests])

    rows = []
    for req in requests:
        next_step = pending_by_request.get(req.id)
        rows.append({
            **req.to_dict(),
            "area_types": [a.area_type for a in req.security_areas],
            "badge": status_badge(req.status),
            "next_pending_step": {
                **next_step.to_dict(),
                "review_link": review_link(req.id, next_step.id),
            } if next_step else None,
        })

    logger.debug("Listed %d requests", len(rows),
                 extra={"poc_user": getattr(ctx, "current_user", None)})
    return rows


def _next_pending_steps(request_ids: list[str]) -> dict[str, RequestApproval]:
    """First pending approval (canonical order) per request, in one query."""
    if not request_ids:
        return {}
    pending = db.session.execute(
        select(RequestApproval).where(
            RequestApproval.request_id.in_(request_ids),
            RequestApproval.status == "pending",
        )
    ).scalars().all()

    result = {}
    for approval in sort_approvals(pending):
        result.setdefault(approval.request_id, approval)
    return result


def employee_options(ctx) -> list[dict]:
    """Distinct employee names (sorted) for the filter dropdown."""
    stmt = _scoped_query(ctx).with_only_columns(SecurityRoleRequest.employee_name).distinct()
    names = sorted({name for name in db.session.execute(stmt).scalars() if name})
    return [{"value": name, "label": name} for name in names]
