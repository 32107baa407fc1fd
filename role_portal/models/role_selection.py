"""
Role selection model.

A single wide table holds the role choices for every area. Each area's
sub-form owns a subset of the columns (see services/role_catalog.py):

  accounting_procurement  dedicated accounting columns
  hr_payroll              18 shared generic columns + 22 payroll columns + scope
  epm_data_warehouse      7 shared generic columns + raps_sema4_codes
  elm                     8 shared generic columns

At most one row exists per request (request_id is unique); saving a sub-form
overwrites the row and clears the columns the area does not own.
"""

import uuid
from datetime import datetime, timezone

from role_portal.models import db


def _uuid():
    return str(uuid.uuid4())


def _utcnow():
    return datetime.now(timezone.utc)


def _flag(comment=None):
    return db.Column(db.Boolean, nullable=False, default=False, comment=comment)


# Columns that describe the row rather than a role choice.
BOOKKEEPING_COLUMNS = frozenset({"id", "request_id", "created_at", "updated_at"})

# Columns stored for every area but never counted as a role choice.
NON_ROLE_COLUMNS = frozenset({
    "home_business_unit",
    "other_business_units",
    "role_justification",
    "hr_access_type",
    "prohibited_department_ids",
    "delete_access_codes",
})


class SecurityRoleSelection(db.Model):
    __tablename__ = "security_role_selections"

    id = db.Column(db.String(36), primary_key=True, default=_uuid)
    request_id = db.Column(
        db.String(36),
        db.ForeignKey("security_role_requests.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
        index=True,
    )

    home_business_unit = db.Column(db.String(5), nullable=True)
    other_business_units = db.Column(db.Text, nullable=True)

    # ── Accounts Payable ─────────────────────────────────────────────────
    voucher_entry = _flag()
    voucher_approver_1 = db.Column(db.String(255), nullable=True)
    voucher_approver_2 = db.Column(db.String(255), nullable=True)
    voucher_approver_3 = db.Column(db.String(255), nullable=True)
    maintenance_voucher_build_errors = _flag()
    match_override = _flag()
    ap_inquiry_only = _flag()

    # ── Accounts Receivable / Cash Management ────────────────────────────
    cash_maintenance = _flag()
    receivable_specialist = _flag()
    receivable_supervisor = _flag()
    writeoff_approval_business_units = db.Column(db.Text, nullable=True)
    billing_create = _flag()
    billing_specialist = _flag()
    billing_supervisor = _flag()
    credit_invoice_approval_business_units = db.Column(db.Text, nullable=True)
    customer_maintenance_specialist = _flag()
    ar_billing_setup = _flag()
    ar_billing_inquiry_only = _flag()
    cash_management_inquiry_only = _flag()

    # ── Budgets / Commitment Control ─────────────────────────────────────
    budget_journal_entry_online = _flag()
    budget_journal_load = _flag()
    journal_approver = _flag()
    appropriation_sources = db.Column(db.Text, nullable=True)
    expense_budget_source = db.Column(db.Text, nullable=True)
    revenue_budget_source = db.Column(db.Text, nullable=True)
    budget_transfer_entry_online = _flag()
    transfer_approver = _flag()
    transfer_appropriation_sources = db.Column(db.Text, nullable=True)
    budget_inquiry_only = _flag()

    # ── General Ledger / NVISION ─────────────────────────────────────────
    journal_entry_online = _flag()
    journal_load = _flag()
    agency_chartfield_maintenance = _flag()
    gl_agency_approver = _flag()
    gl_agency_approver_sources = db.Column(db.Text, nullable=True)
    general_ledger_inquiry_only = _flag()
    nvision_reporting_agency_user = _flag()
    needs_daily_receipts_report = _flag()

    # ── Grants ───────────────────────────────────────────────────────────
    award_data_entry = _flag()
    grant_fiscal_manager = _flag()
    program_manager = _flag()
    gm_agency_setup = _flag()
    grants_inquiry_only = _flag()

    # ── Project Costing ──────────────────────────────────────────────────
    federal_project_initiator = _flag()
    oim_initiator = _flag()
    project_initiator = _flag()
    project_manager = _flag()
    capital_programs_office = _flag()
    project_cost_accountant = _flag()
    project_fixed_asset = _flag()
    category_subcategory_manager = _flag()
    project_control_dates = _flag()
    project_accounting_systems = _flag()
    mndot_projects_inquiry = _flag()
    projects_inquiry_only = _flag()
    mndot_project_approver = _flag()
    route_control = db.Column(db.Text, nullable=True)

    # ── Cost Allocation / Asset Management ───────────────────────────────
    cost_allocation_inquiry_only = _flag()
    financial_accountant_assets = _flag()
    asset_management_inquiry_only = _flag()
    physical_inventory_approval_1 = _flag()
    physical_inventory_business_units = db.Column(db.Text, nullable=True)
    physical_inventory_approval_2 = _flag()
    physical_inventory_department_ids = db.Column(db.Text, nullable=True)

    # ── Shared generic columns (reused by ELM, EPM and HR sub-forms) ─────
    elm_system_administrator = _flag("ELM: learning administrator")
    elm_key_administrator = _flag("ELM: external learner security administrator")
    elm_course_administrator = _flag("ELM: learning catalog administrator")
    elm_reporting_administrator = _flag("ELM: roster administrator")
    manage_user_accounts = _flag("ELM: profile administrator / HR: data entry")
    assign_user_roles = _flag("ELM: enrollment administrator / HR: supervisor")
    view_user_progress = _flag("ELM: maintain approvals / EPM: SSN view / HR: data inquiry")
    system_backup_access = _flag("ELM: sandbox access")
    generate_user_reports = _flag("EPM: payroll deductions / HR: director")
    access_system_reports = _flag("EPM: HR data excluded employees / HR: statewide")
    create_custom_reports = _flag("EPM: BI author / HR: payroll data update")
    export_report_data = _flag("EPM: M_EPM_HCM_LOOKUP / HR: payroll data view")
    view_analytics_dashboard = _flag("EPM: M_RAPS_LINK / HR: mass time entry update")
    data_import_export = _flag("EPM: RAPS new user")
    create_learning_paths = _flag("HR: mass time entry view")
    edit_learning_paths = _flag("HR: self service time entry admin")
    manage_certifications = _flag("HR: benefits adjustments base")
    issue_certificates = _flag("HR: benefits adjustments auto")
    track_certification_status = _flag("HR: benefits billing")
    renew_certifications = _flag("HR: ACA eligibility update")
    configure_system_settings = _flag("HR: recruiter")
    manage_integrations = _flag("HR: recruiter limited")
    setup_notifications = _flag("HR: affirmative action")
    manage_security_settings = _flag("HR: hiring manager")

    # ── HR/Payroll dedicated columns ─────────────────────────────────────
    adjustments_retro_pay_update = _flag()
    adjustments_retro_pay_view = _flag()
    adjustments_retro_pay_view_inquire = _flag()
    balances_paycheck_view = _flag()
    business_expense_update = _flag()
    business_expense_view = _flag()
    business_expense_view_inquire = _flag()
    direct_deposit_update_correct = _flag()
    direct_deposit_view = _flag()
    dept_tbl_payroll_view = _flag()
    expense_transfers_update = _flag()
    expense_transfers_view = _flag()
    expense_transfers_view_inquire = _flag()
    garnishment_view = _flag()
    labor_distribution_update = _flag()
    labor_distribution_view = _flag()
    leave_update = _flag()
    leave_view = _flag()
    schedules_update = _flag()
    schedules_view = _flag()
    self_service_time_entry_view = _flag()
    mn_state_college_bene_reports = _flag()
    hr_access_type = db.Column(db.String(20), nullable=True, comment="agency | department")
    prohibited_department_ids = db.Column(db.Text, nullable=True)
    delete_access_codes = db.Column(db.Text, nullable=True)

    # ── EPM dedicated columns ────────────────────────────────────────────
    raps_sema4_codes = db.Column(db.Text, nullable=True, comment="Required when RAPS new user")

    role_justification = db.Column(db.Text, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=_utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow)

    request = db.relationship("SecurityRoleRequest", back_populates="role_selection")

    @classmethod
    def data_columns(cls):
        """(name, is_boolean) for every column except the bookkeeping ones."""
        return [
            (col.name, isinstance(col.type, db.Boolean))
            for col in cls.__table__.columns
            if col.name not in BOOKKEEPING_COLUMNS
        ]

    @classmethod
    def role_columns(cls):
        """Columns that represent an actual role choice."""
        return [(name, is_bool) for name, is_bool in cls.data_columns() if name not in NON_ROLE_COLUMNS]

    def clear(self):
        """Reset every data column to its empty value."""
        for name, is_bool in self.data_columns():
            setattr(self, name, False if is_bool else None)

    def to_dict(self) -> dict:
        result = {
            "id": self.id,
            "request_id": self.request_id,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }
        for name, _ in self.data_columns():
            result[name] = getattr(self, name)
        return result

    def __repr__(self) -> str:
        return f"<SecurityRoleSelection request={self.request_id}>"
