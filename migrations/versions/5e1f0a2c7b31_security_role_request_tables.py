"""security_role_request_tables

Creates the security role request workflow tables:
  - security_role_requests    access requests (one per person per submission)
  - security_areas            the area a request targets (one active row)
  - copy_user_details         existing user whose access is duplicated
  - security_role_selections  role choices, one row per request
  - request_approvals         ordered signoff steps

Tables created conditionally (IF NOT EXISTS semantics) to support idempotent
execution against databases that already received these tables via
db.create_all() in a development environment.

Revision ID: 5e1f0a2c7b31
Revises:
Create Date: 2026-10-17 09:12:44.218530
"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy import inspect as sa_inspect


# revision identifiers, used by Alembic.
revision = '5e1f0a2c7b31'
down_revision = None
branch_labels = None
depends_on = None


# Boolean role columns of security_role_selections, in table order.
_ROLE_FLAGS = (
    # Accounting / Procurement
    "voucher_entry", "maintenance_voucher_build_errors", "match_override", "ap_inquiry_only",
    "cash_maintenance", "receivable_specialist", "receivable_supervisor", "billing_create",
    "billing_specialist", "billing_supervisor", "customer_maintenance_specialist",
    "ar_billing_setup", "ar_billing_inquiry_only", "cash_management_inquiry_only",
    "budget_journal_entry_online", "budget_journal_load", "journal_approver",
    "budget_transfer_entry_online", "transfer_approver", "budget_inquiry_only",
    "journal_entry_online", "journal_load", "agency_chartfield_maintenance",
    "gl_agency_approver", "general_ledger_inquiry_only", "nvision_reporting_agency_user",
    "needs_daily_receipts_report", "award_data_entry", "grant_fiscal_manager",
    "program_manager", "gm_agency_setup", "grants_inquiry_only", "federal_project_initiator",
    "oim_initiator", "project_initiator", "project_manager", "capital_programs_office",
    "project_cost_accountant", "project_fixed_asset", "category_subcategory_manager",
    "project_control_dates", "project_accounting_systems", "mndot_projects_inquiry",
    "projects_inquiry_only", "mndot_project_approver", "cost_allocation_inquiry_only",
    "financial_accountant_assets", "asset_management_inquiry_only",
    "physical_inventory_approval_1", "physical_inventory_approval_2",
    # Shared generic columns (ELM / EPM / HR)
    "elm_system_administrator", "elm_key_administrator", "elm_course_administrator",
    "elm_reporting_administrator", "manage_user_accounts", "assign_user_roles",
    "view_user_progress", "system_backup_access", "generate_user_reports",
    "access_system_reports", "create_custom_reports", "export_report_data",
    "view_analytics_dashboard", "data_import_export", "create_learning_paths",
    "edit_learning_paths", "manage_certifications", "issue_certificates",
    "track_certification_status", "renew_certifications", "configure_system_settings",
    "manage_integrations", "setup_notifications", "manage_security_settings",
    # HR / Payroll
    "adjustments_retro_pay_update", "adjustments_retro_pay_view",
    "adjustments_retro_pay_view_inquire", "balances_paycheck_view", "business_expense_update",
    "business_expense_view", "business_expense_view_inquire", "direct_deposit_update_correct",
    "direct_deposit_view", "dept_tbl_payroll_view", "expense_transfers_update",
    "expense_transfers_view", "expense_transfers_view_inquire", "garnishment_view",
    "labor_distribution_update", "labor_distribution_view", "leave_update", "leave_view",
    "schedules_update", "schedules_view", "self_service_time_entry_view",
    "mn_state_college_bene_reports",
)

_TEXT_VALUES = (
    "other_business_units", "writeoff_approval_business_units",
    "credit_invoice_approval_business_units", "appropriation_sources",
    "expense_budget_source", "revenue_budget_source", "transfer_appropriation_sources",
    "gl_agency_approver_sources", "route_control", "physical_inventory_business_units",
    "physical_inventory_department_ids", "prohibited_department_ids", "delete_access_codes",
    "raps_sema4_codes", "role_justification",
)


def upgrade():
    bind = op.get_bind()
    inspector = sa_inspect(bind)
    existing = set(inspector.get_table_names())

    # ── SecurityRoleRequest ───────────────────────────────────────────────
    if "security_role_requests" not in existing:
        op.create_table(
            "security_role_requests",
            sa.Column("id", sa.String(length=36), nullable=False),
            sa.Column("start_date", sa.Date(), nullable=False),
            sa.Column("employee_name", sa.String(length=255), nullable=False),
            sa.Column("employee_id", sa.String(length=50), nullable=True),
            sa.Column("is_non_employee", sa.Boolean(), nullable=False, server_default=sa.false()),
            sa.Column("work_location", sa.String(length=255), nullable=True),
            sa.Column("work_phone", sa.String(length=30), nullable=True, comment="Digits only"),
            sa.Column("email", sa.String(length=255), nullable=False),
            sa.Column("agency_name", sa.String(length=255), nullable=False),
            sa.Column(
                "agency_code", sa.String(length=3), nullable=False,
                comment="3-character agency code",
            ),
            sa.Column("justification", sa.Text(), nullable=True),
            sa.Column("submitter_name", sa.String(length=255), nullable=False),
            sa.Column("submitter_email", sa.String(length=255), nullable=False),
            sa.Column("supervisor_name", sa.String(length=255), nullable=False),
            sa.Column("supervisor_email", sa.String(length=255), nullable=False),
            sa.Column("security_admin_name", sa.String(length=255), nullable=False),
            sa.Column("security_admin_email", sa.String(length=255), nullable=False),
            sa.Column(
                "status", sa.String(length=20), nullable=False,
                server_default="pending",
                comment="pending | approved | completed | rejected",
            ),
            sa.Column("completed_by", sa.String(length=255), nullable=True),
            sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
            sa.Column("poc_user", sa.String(length=255), nullable=True),
            sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
            sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
            sa.PrimaryKeyConstraint("id"),
        )
        op.create_index("ix_srr_poc_created", "security_role_requests", ["poc_user", "created_at"])
        op.create_index("ix_srr_employee_status", "security_role_requests", ["employee_id", "status"])
        op.create_index("ix_security_role_requests_status", "security_role_requests", ["status"])
        op.create_index("ix_security_role_requests_poc_user", "security_role_requests", ["poc_user"])

    # ── SecurityArea ──────────────────────────────────────────────────────
    if "security_areas" not in existing:
        op.create_table(
            "security_areas",
            sa.Column("id", sa.String(length=36), nullable=False),
            sa.Column("request_id", sa.String(length=36), nullable=False),
            sa.Column(
                "area_type", sa.String(length=30), nullable=False,
                comment="accounting_procurement | hr_payroll | epm_data_warehouse | elm",
            ),
            sa.Column("director_name", sa.String(length=255), nullable=True),
            sa.Column("director_email", sa.String(length=255), nullable=True),
            sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
            sa.ForeignKeyConstraint(
                ["request_id"], ["security_role_requests.id"], ondelete="CASCADE"
            ),
            sa.PrimaryKeyConstraint("id"),
        )
        op.create_index("ix_security_areas_request_id", "security_areas", ["request_id"])

    # ── CopyUserDetails ───────────────────────────────────────────────────
    if "copy_user_details" not in existing:
        op.create_table(
            "copy_user_details",
            sa.Column("id", sa.String(length=36), nullable=False),
            sa.Column("request_id", sa.String(length=36), nullable=False),
            sa.Column("copy_user_name", sa.String(length=255), nullable=False),
            sa.Column("copy_user_employee_id", sa.String(length=50), nullable=False),
            sa.Column("copy_user_sema4_id", sa.String(length=50), nullable=True),
            sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
            sa.ForeignKeyConstraint(
                ["request_id"], ["security_role_requests.id"], ondelete="CASCADE"
            ),
            sa.PrimaryKeyConstraint("id"),
        )
        op.create_index("ix_copy_user_details_request_id", "copy_user_details", ["request_id"])

    # ── SecurityRoleSelection ─────────────────────────────────────────────
    if "security_role_selections" not in existing:
        op.create_table(
            "security_role_selections",
            sa.Column("id", sa.String(length=36), nullable=False),
            sa.Column("request_id", sa.String(length=36), nullable=False),
            sa.Column("home_business_unit", sa.String(length=5), nullable=True),
            sa.Column("voucher_approver_1", sa.String(length=255), nullable=True),
            sa.Column("voucher_approver_2", sa.String(length=255), nullable=True),
            sa.Column("voucher_approver_3", sa.String(length=255), nullable=True),
            sa.Column(
                "hr_access_type", sa.String(length=20), nullable=True,
                comment="agency | department",
            ),
            *[
                sa.Column(name, sa.Boolean(), nullable=False, server_default=sa.false())
                for name in _ROLE_FLAGS
            ],
            *[sa.Column(name, sa.Text(), nullable=True) for name in _TEXT_VALUES],
            sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
            sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
            sa.ForeignKeyConstraint(
                ["request_id"], ["security_role_requests.id"], ondelete="CASCADE"
            ),
            sa.PrimaryKeyConstraint("id"),
            sa.UniqueConstraint("request_id", name="uq_security_role_selections_request"),
        )

    # ── RequestApproval ───────────────────────────────────────────────────
    if "request_approvals" not in existing:
        op.create_table(
            "request_approvals",
            sa.Column("id", sa.String(length=36), nullable=False),
            sa.Column("request_id", sa.String(length=36), nullable=False),
            sa.Column("step", sa.String(length=40), nullable=False),
            sa.Column("approver_email", sa.String(length=255), nullable=True),
            sa.Column(
                "status", sa.String(length=20), nullable=False,
                server_default="pending",
                comment="pending | approved | denied",
            ),
            sa.Column("signature_data", sa.Text(), nullable=True),
            sa.Column("approved_at", sa.DateTime(timezone=True), nullable=True),
            sa.Column("comments", sa.Text(), nullable=True),
            sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
            sa.ForeignKeyConstraint(
                ["request_id"], ["security_role_requests.id"], ondelete="CASCADE"
            ),
            sa.PrimaryKeyConstraint("id"),
        )
        op.create_index("ix_request_approvals_request_id", "request_approvals", ["request_id"])
        op.create_index(
            "ix_request_approvals_request_step", "request_approvals", ["request_id", "step"]
        )


def downgrade():
    bind = op.get_bind()
    inspector = sa_inspect(bind)
    existing = set(inspector.get_table_names())

    if "request_approvals" in existing:
        op.drop_index("ix_request_approvals_request_step", table_name="request_approvals")
        op.drop_index("ix_request_approvals_request_id", table_name="request_approvals")
        op.drop_table("request_approvals")

    if "security_role_selections" in existing:
        op.drop_table("security_role_selections")

    if "copy_user_details" in existing:
        op.drop_index("ix_copy_user_details_request_id", table_name="copy_user_details")
        op.drop_table("copy_user_details")

    if "security_areas" in existing:
        op.drop_index("ix_security_areas_request_id", table_name="security_areas")
        op.drop_table("security_areas")

    if "security_role_requests" in existing:
        for name in (
            "ix_security_role_requests_poc_user",
            "ix_security_role_requests_status",
            "ix_srr_employee_status",
            "ix_srr_poc_created",
        ):
            op.drop_index(name, table_name="security_role_requests")
        op.drop_table("security_role_requests")
