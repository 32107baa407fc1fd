"""
Security role request models.

Three models:
  SecurityRoleRequest: one row per access request (the workflow instance).
  SecurityArea       : the access domain the request targets.
  CopyUserDetails    : the existing user whose access is to be replicated.

Role selections and approval steps live in role_selection.py / approval.py.
Deleting a request removes every dependent row (ORM cascade plus
ON DELETE CASCADE foreign keys).
"""

import uuid
from datetime import datetime, timezone

from role_portal.models import db


def _uuid():
    return str(uuid.uuid4())


def _utcnow():
    return datetime.now(timezone.utc)


# ── Constants ─────────────────────────────────────────────────────────────────

REQUEST_STATUSES = frozenset({"pending", "approved", "completed", "rejected"})

AREA_TYPES = (
    "accounting_procurement",
    "hr_payroll",
    "epm_data_warehouse",
    "elm",
)

AREA_LABELS = {
    "accounting_procurement": "Accounting/Procurement",
    "hr_payroll": "HR/Payroll",
    "epm_data_warehouse": "EPM Data Warehouse",
    "elm": "ELM",
}


class SecurityRoleRequest(db.Model):
    """
    Top-level access request for one person.

    Business rules:
    - Created on main-form submission with status "pending".
    - Editable only while pending.
    - pending → completed is the only status change driven by the portal;
      "approved" / "rejected" exist for data compatibility.
    - poc_user is the self-reported display name of the point of contact who
      created the request; the request list is scoped by it.
    """

    __tablename__ = "security_role_requests"
    __table_args__ = (
        db.Index("ix_srr_poc_created", "poc_user", "created_at"),
        db.Index("ix_srr_employee_status", "employee_id", "status"),
    )

    id = db.Column(db.String(36), primary_key=True, default=_uuid)

    start_date = db.Column(db.Date, nullable=False)

    # Employee identity
    employee_name = db.Column(db.String(255), nullable=False)
    employee_id = db.Column(db.String(50), nullable=True)
    is_non_employee = db.Column(db.Boolean, nullable=False, default=False)

    # Contact
    work_location = db.Column(db.String(255), nullable=True)
    work_phone = db.Column(db.String(30), nullable=True, comment="Digits only")
    email = db.Column(db.String(255), nullable=False)

    # Agency
    agency_name = db.Column(db.String(255), nullable=False)
    agency_code = db.Column(db.String(3), nullable=False, comment="3-character agency code")

    justification = db.Column(db.Text, nullable=True)

    # People in the approval chain
    submitter_name = db.Column(db.String(255), nullable=False)
    submitter_email = db.Column(db.String(255), nullable=False)
    supervisor_name = db.Column(db.String(255), nullable=False)
    supervisor_email = db.Column(db.String(255), nullable=False)
    security_admin_name = db.Column(db.String(255), nullable=False)
    security_admin_email = db.Column(db.String(255), nullable=False)

    status = db.Column(
        db.String(20),
        nullable=False,
        default="pending",
        index=True,
        comment="pending | approved | completed | rejected",
    )
    completed_by = db.Column(db.String(255), nullable=True)
    completed_at = db.Column(db.DateTime(timezone=True), nullable=True)

    poc_user = db.Column(db.String(255), nullable=True, index=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=_utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow)

    # Relationships
    security_areas = db.relationship(
        "SecurityArea",
        back_populates="request",
        lazy="select",
        cascade="all, delete-orphan",
        order_by="SecurityArea.created_at",
    )
    role_selection = db.relationship(
        "SecurityRoleSelection",
        back_populates="request",
        uselist=False,
        lazy="select",
        cascade="all, delete-orphan",
    )
    copy_user_details = db.relationship(
        "CopyUserDetails",
        back_populates="request",
        uselist=False,
        lazy="select",
        cascade="all, delete-orphan",
    )
    approvals = db.relationship(
        "RequestApproval",
        back_populates="request",
        lazy="select",
        cascade="all, delete-orphan",
    )

    @property
    def primary_area(self):
        """The active security area (the edit flow keeps exactly one)."""
        return self.security_areas[0] if self.security_areas else None

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "start_date": self.start_date.isoformat() if self.start_date else None,
            "employee_name": self.employee_name,
            "employee_id": self.employee_id,
            "is_non_employee": self.is_non_employee,
            "work_location": self.work_location,
            "work_phone": self.work_phone,
            "email": self.email,
            "agency_name": self.agency_name,
            "agency_code": self.agency_code,
            "justification": self.justification,
            "submitter_name": self.submitter_name,
            "submitter_email": self.submitter_email,
            "supervisor_name": self.supervisor_name,
            "supervisor_email": self.supervisor_email,
            "security_admin_name": self.security_admin_name,
            "security_admin_email": self.security_admin_email,
            "status": self.status,
            "completed_by": self.completed_by,
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
            "poc_user": self.poc_user,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }

    def __repr__(self) -> str:
        return f"<SecurityRoleRequest {self.id} {self.employee_name!r} {self.status}>"


class SecurityArea(db.Model):
    """
    Access domain targeted by a request.

    director_name / director_email meaning depends on area_type:
      accounting_procurement  accounting director
      elm                     ELM key administrator
      hr_payroll              mainframe logon id / statewide-access mailbox
      epm_data_warehouse      unused
    """

    __tablename__ = "security_areas"

    id = db.Column(db.String(36), primary_key=True, default=_uuid)
    request_id = db.Column(
        db.String(36),
        db.ForeignKey("security_role_requests.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    area_type = db.Column(
        db.String(30),
        nullable=False,
        comment="accounting_procurement | hr_payroll | epm_data_warehouse | elm",
    )
    director_name = db.Column(db.String(255), nullable=True)
    director_email = db.Column(db.String(255), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=_utcnow)

    request = db.relationship("SecurityRoleRequest", back_populates="security_areas")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "request_id": self.request_id,
            "area_type": self.area_type,
            "label": AREA_LABELS.get(self.area_type, self.area_type),
            "director_name": self.director_name,
            "director_email": self.director_email,
        }

    def __repr__(self) -> str:
        return f"<SecurityArea {self.area_type} request={self.request_id}>"


class CopyUserDetails(db.Model):
    """Existing user whose access should be duplicated onto the request."""

    __tablename__ = "copy_user_details"

    id = db.Column(db.String(36), primary_key=True, default=_uuid)
    request_id = db.Column(
        db.String(36),
        db.ForeignKey("security_role_requests.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    copy_user_name = db.Column(db.String(255), nullable=False)
    copy_user_employee_id = db.Column(db.String(50), nullable=False)
    copy_user_sema4_id = db.Column(db.String(50), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=_utcnow)

    request = db.relationship("SecurityRoleRequest", back_populates="copy_user_details")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "request_id": self.request_id,
            "copy_user_name": self.copy_user_name,
            "copy_user_employee_id": self.copy_user_employee_id,
            "copy_user_sema4_id": self.copy_user_sema4_id,
        }
