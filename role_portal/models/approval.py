"""
Approval step model.

One RequestApproval row per signoff step of a request. Rows are created by
approval_engine.ensure_approval_steps whenever a SecurityArea is inserted and
are mutated by approvers (approve/deny) or by the test-mode auto-approve.
"""

import uuid
from datetime import datetime, timezone

from role_portal.models import db


def _uuid():
    return str(uuid.uuid4())


def _utcnow():
    return datetime.now(timezone.utc)


# ── Constants ─────────────────────────────────────────────────────────────────

APPROVAL_STEPS = (
    "user_signature",
    "supervisor_approval",
    "accounting_director_approval",
    "hr_director_approval",
    "elm_admin_approval",
    "security_admin_approval",
)

AREA_SPECIFIC_STEPS = frozenset({
    "accounting_director_approval",
    "hr_director_approval",
    "elm_admin_approval",
})

APPROVAL_STATUSES = frozenset({"pending", "approved", "denied"})

STEP_LABELS = {
    "user_signature": "User Signature",
    "supervisor_approval": "Supervisor Approval",
    "accounting_director_approval": "Accounting Director Approval",
    "hr_director_approval": "HR Director Approval",
    "elm_admin_approval": "ELM Key Administrator Approval",
    "security_admin_approval": "Security Administrator Approval",
}


class RequestApproval(db.Model):
    """
    One approval step of a request.

    State machine:
        pending --approve (signature)--> approved
        pending --deny (comments)-->     denied
    Editing the request moves every step except user_signature back to
    pending and clears its signature.
    """

    __tablename__ = "request_approvals"
    __table_args__ = (
        db.Index("ix_request_approvals_request_step", "request_id", "step"),
    )

    id = db.Column(db.String(36), primary_key=True, default=_uuid)
    request_id = db.Column(
        db.String(36),
        db.ForeignKey("security_role_requests.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    step = db.Column(
        db.String(40),
        nullable=False,
        comment="user_signature | supervisor_approval | <area>_approval | security_admin_approval",
    )
    approver_email = db.Column(db.String(255), nullable=True)
    status = db.Column(
        db.String(20),
        nullable=False,
        default="pending",
        comment="pending | approved | denied",
    )
    signature_data = db.Column(db.Text, nullable=True)
    approved_at = db.Column(db.DateTime(timezone=True), nullable=True)
    comments = db.Column(db.Text, nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=_utcnow)

    request = db.relationship("SecurityRoleRequest", back_populates="approvals")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "request_id": self.request_id,
            "step": self.step,
            "label": STEP_LABELS.get(self.step, self.step.replace("_", " ").title()),
            "approver_email": self.approver_email,
            "status": self.status,
            "signature_data": self.signature_data,
            "approved_at": self.approved_at.isoformat() if self.approved_at else None,
            "comments": self.comments,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }

    def __repr__(self) -> str:
        return f"<RequestApproval {self.step} {self.status} request={self.request_id}>"
