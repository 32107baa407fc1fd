"""
Role catalog: one typed record per security area.

Each area's sub-form is modelled as a dataclass whose fields are the choices
shown to the user. Field metadata says where a value is stored:

    role(...)       boolean role choice, counts towards "at least one role"
    role_text(...)  free-text role choice (approver ids, source lists, ...)
    setting(...)    stored, but never counts as a role (justification, scope)
    form_only(...)  accepted from the form, never stored (acknowledgments)

The column defaults to the attribute name; ELM, EPM and part of HR reuse the
shared generic columns of security_role_selections and name them explicitly.
UI field names are the camelCase form of the attribute names; snake_case is
accepted as well.

Usage:
    variant = variant_for("elm").from_form(payload, request=req)
    variant.validate()                 # ValidationError on failure
    columns = variant.to_columns(req)  # {column: value}
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, fields
from typing import ClassVar

from role_portal.core.exceptions import ValidationError
from role_portal.utils.helpers import as_bool, pad_code

logger = logging.getLogger(__name__)

NO_ROLE_MESSAGE = "Please select at least one role."

_ACRONYMS = {
    "ap": "AP", "ar": "AR", "gl": "GL", "gm": "GM", "hr": "HR", "elm": "ELM",
    "epm": "EPM", "bi": "BI", "raps": "RAPS", "ssn": "SSN", "oim": "OIM",
    "mndot": "MnDOT", "aca": "ACA", "id": "ID", "ids": "IDs", "hcm": "HCM",
    "tbl": "Tbl", "mn": "MN", "nvision": "nVision", "sema4": "SEMA4",
}


def format_field_name(name: str) -> str:
    """``ap_inquiry_only`` -> ``AP Inquiry Only``."""
    words = []
    for part in name.split("_"):
        if not part:
            continue
        words.append(_ACRONYMS.get(part, part[:1].upper() + part[1:]))
    return " ".join(words)


def to_camel(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(p[:1].upper() + p[1:] for p in rest)


# ── Field factories ──────────────────────────────────────────────────────────


def role(column=None, *, label=None, ui=None, locked=False, high_risk=False):
    return field(default=locked, metadata={
        "kind": "role", "column": column, "label": label, "ui": ui,
        "locked": locked, "high_risk": high_risk,
    })


def role_text(column=None, *, label=None, ui=None):
    return field(default="", metadata={"kind": "role", "column": column, "label": label, "ui": ui})


def setting(column=None, *, default="", ui=None, stored=True):
    return field(default=default, metadata={
        "kind": "setting", "column": column, "ui": ui, "stored": stored,
    })


def form_only(default=False, *, ui=None):
    return field(default=default, metadata={"kind": "form", "column": None, "ui": ui})


# ── Base record ──────────────────────────────────────────────────────────────


@dataclass
class RoleVariant:
    """Behaviour shared by every area record."""

    area_type: ClassVar[str] = ""
    area_label: ClassVar[str] = ""
    requires_supervisor_ack: ClassVar[bool] = True

    # ── Field introspection ──────────────────────────────────────────────

    @classmethod
    def _fields(cls, kind=None):
        return [f for f in fields(cls) if kind is None or f.metadata.get("kind") == kind]

    @staticmethod
    def column_of(f) -> str | None:
        if f.metadata.get("kind") == "form" or f.metadata.get("stored") is False:
            return None
        return f.metadata.get("column") or f.name

    @staticmethod
    def label_of(f) -> str:
        return f.metadata.get("label") or format_field_name(f.name)

    @classmethod
    def ui_keys(cls, f) -> list[str]:
        keys = []
        if f.metadata.get("ui"):
            keys.append(f.metadata["ui"])
        keys.extend([to_camel(f.name), f.name])
        return keys

    @classmethod
    def column_map(cls) -> dict[str, str]:
        """UI field name -> stored column."""
        return {
            to_camel(f.name): cls.column_of(f)
            for f in fields(cls)
            if cls.column_of(f) is not None
        }

    # ── Construction ─────────────────────────────────────────────────────

    @classmethod
    def from_form(cls, form: dict, request=None):
        form = form or {}
        kwargs = {}
        for f in fields(cls):
            raw = None
            for key in cls.ui_keys(f):
                if key in form:
                    raw = form[key]
                    break
            if f.metadata.get("locked"):
                kwargs[f.name] = True
            elif raw is None:
                continue
            elif isinstance(f.default, bool):
                kwargs[f.name] = as_bool(raw)
            else:
                kwargs[f.name] = str(raw).strip()
        return cls(**kwargs)

    @classmethod
    def from_columns(cls, row):
        kwargs = {}
        for f in fields(cls):
            column = cls.column_of(f)
            if column is None:
                continue
            value = getattr(row, column, None)
            kwargs[f.name] = bool(value) if isinstance(f.default, bool) else (value or "")
        record = cls(**kwargs)
        record._restore_derived(row)
        return record

    def _restore_derived(self, row) -> None:
        """Hook for variants whose form fields are derived from stored columns."""

    # ── Mapping ──────────────────────────────────────────────────────────

    def to_columns(self, request=None) -> dict:
        columns = {}
        for f in fields(self):
            column = self.column_of(f)
            if column is None:
                continue
            value = getattr(self, f.name)
            if isinstance(value, str):
                value = value or None
            columns[column] = value
        columns.update(self._derived_columns(request))
        return columns

    def _derived_columns(self, request) -> dict:
        return {}

    def to_form(self) -> dict:
        return {to_camel(f.name): getattr(self, f.name) for f in fields(self)}

    # ── Rules ────────────────────────────────────────────────────────────

    def active_fields(self) -> list[str]:
        """Names of the role fields that are selected or filled in."""
        active = []
        for f in self._fields("role"):
            value = getattr(self, f.name)
            if (isinstance(value, bool) and value) or (isinstance(value, str) and value.strip()):
                active.append(f.name)
        return active

    def active_labels(self, booleans_only=False) -> list[str]:
        by_name = {f.name: f for f in fields(self)}
        return [
            self.label_of(by_name[name])
            for name in self.active_fields()
            if not booleans_only or isinstance(getattr(self, name), bool)
        ]

    def _extra_errors(self) -> dict:
        return {}

    def validate(self) -> None:
        errors = {}
        if self.requires_supervisor_ack and not getattr(self, "supervisor_approval", False):
            errors["supervisorApproval"] = (
                f"Supervisor approval acknowledgment is required for {self.area_label} access."
            )
        if not self.active_fields():
            errors["roles"] = NO_ROLE_MESSAGE
        errors.update(self._extra_errors())
        if errors:
            message = errors.get("roles") or next(iter(errors.values()))
            raise ValidationError(message, details=errors)

    def notices(self) -> list[str]:
        return []


# ── Accounting / Procurement ─────────────────────────────────────────────────


@dataclass
class AccountingProcurementRoles(RoleVariant):
    area_type: ClassVar[str] = "accounting_procurement"
    area_label: ClassVar[str] = "Accounting/Procurement"
    requires_supervisor_ack: ClassVar[bool] = False

    home_business_unit: str = setting()
    other_business_units: str = setting()

    # Accounts Payable
    voucher_entry: bool = role()
    voucher_approver_1: str = role_text()
    voucher_approver_2: str = role_text()
    voucher_approver_3: str = role_text()
    maintenance_voucher_build_errors: bool = role()
    match_override: bool = role()
    ap_inquiry_only: bool = role()

    # Accounts Receivable / Cash Management
    cash_maintenance: bool = role()
    receivable_specialist: bool = role()
    receivable_supervisor: bool = role()
    writeoff_approval_business_units: str = role_text()
    billing_create: bool = role()
    billing_specialist: bool = role()
    billing_supervisor: bool = role()
    credit_invoice_approval_business_units: str = role_text()
    customer_maintenance_specialist: bool = role()
    ar_billing_setup: bool = role()
    ar_billing_inquiry_only: bool = role()
    cash_management_inquiry_only: bool = role()

    # Budgets / Commitment Control
    budget_journal_entry_online: bool = role()
    budget_journal_load: bool = role()
    journal_approver: bool = role()
    appropriation_sources: str = role_text()
    expense_budget_source: str = role_text()
    revenue_budget_source: str = role_text()
    budget_transfer_entry_online: bool = role()
    transfer_approver: bool = role()
    transfer_appropriation_sources: str = role_text()
    budget_inquiry_only: bool = role()

    # General Ledger / NVISION
    journal_entry_online: bool = role()
    journal_load: bool = role()
    agency_chartfield_maintenance: bool = role()
    gl_agency_approver: bool = role()
    gl_agency_approver_sources: str = role_text()
    general_ledger_inquiry_only: bool = role()
    nvision_reporting_agency_user: bool = role()
    needs_daily_receipts_report: bool = role()

    # Grants
    award_data_entry: bool = role()
    grant_fiscal_manager: bool = role()
    program_manager: bool = role()
    gm_agency_setup: bool = role()
    grants_inquiry_only: bool = role()

    # Project Costing
    federal_project_initiator: bool = role()
    oim_initiator: bool = role()
    project_initiator: bool = role()
    project_manager: bool = role()
    capital_programs_office: bool = role()
    project_cost_accountant: bool = role()
    project_fixed_asset: bool = role()
    category_subcategory_manager: bool = role()
    project_control_dates: bool = role()
    project_accounting_systems: bool = role()
    mndot_projects_inquiry: bool = role()
    projects_inquiry_only: bool = role()
    mndot_project_approver: bool = role()
    route_control: str = role_text()

    # Cost Allocation
    cost_allocation_inquiry_only: bool = role()

    # Asset Management
    financial_accountant_assets: bool = role()
    asset_management_inquiry_only: bool = role()
    physical_inventory_approval_1: bool = role()
    physical_inventory_business_units: str = role_text()
    physical_inventory_approval_2: bool = role()
    physical_inventory_department_ids: str = role_text()

    role_justification: str = setting()


# ── HR / Payroll ─────────────────────────────────────────────────────────────


@dataclass
class HrPayrollRoles(RoleVariant):
    area_type: ClassVar[str] = "hr_payroll"
    area_label: ClassVar[str] = "HR/Payroll"

    # Access scope; agency and department are mutually exclusive
    add_access_type: str = setting("hr_access_type", default="agency")
    agency_codes: str = setting(stored=False)
    department_id: str = setting(stored=False)
    prohibited_department_ids: str = setting()
    delete_access_codes: str = setting()

    # SEMA4 HR roles
    hr_data_entry: bool = role("manage_user_accounts")
    hr_data_inquiry: bool = role("view_user_progress")
    hr_supervisor: bool = role("assign_user_roles")
    hr_director: bool = role("generate_user_reports")
    hr_statewide: bool = role("access_system_reports")

    # Payroll components
    adjustments_retro_pay_update: bool = role()
    adjustments_retro_pay_view: bool = role()
    adjustments_retro_pay_view_inquire: bool = role()
    balances_paycheck_view: bool = role()
    business_expense_update: bool = role()
    business_expense_view: bool = role()
    business_expense_view_inquire: bool = role()
    direct_deposit_update_correct: bool = role()
    direct_deposit_view: bool = role()
    dept_tbl_payroll_view: bool = role()
    expense_transfers_update: bool = role()
    expense_transfers_view: bool = role()
    expense_transfers_view_inquire: bool = role()
    garnishment_view: bool = role()
    labor_distribution_update: bool = role()
    labor_distribution_view: bool = role()
    leave_update: bool = role()
    leave_view: bool = role()
    mass_time_entry_update_correct: bool = role("view_analytics_dashboard")
    mass_time_entry_view: bool = role("create_learning_paths")
    payroll_data_update_correct: bool = role("create_custom_reports")
    payroll_data_view: bool = role("export_report_data")
    schedules_update: bool = role()
    schedules_view: bool = role()
    self_service_time_entry_admin: bool = role("edit_learning_paths")
    self_service_time_entry_view: bool = role()

    # Benefits administration
    adjustments_bene_adm_base: bool = role("manage_certifications")
    adjustments_bene_adm_auto: bool = role("issue_certificates")
    adjustments_bene_billing: bool = role("track_certification_status")
    bene_aca_eligibility_update: bool = role("renew_certifications", ui="beneACAEligibilityUpdate")
    mn_state_college_bene_reports: bool = role()

    # Recruiting solutions
    recruit_recruiter: bool = role("configure_system_settings")
    recruit_recruiter_limited: bool = role("manage_integrations")
    recruit_affirmative_action: bool = role("setup_notifications")
    recruit_hiring_manager: bool = role("manage_security_settings")

    role_justification: str = setting()
    supervisor_approval: bool = form_only()

    def _extra_errors(self) -> dict:
        errors = {}
        if self.add_access_type not in ("agency", "department"):
            errors["addAccessType"] = "Access type must be 'agency' or 'department'."
        elif self.add_access_type == "agency" and not self.agency_codes:
            errors["agencyCodes"] = "Agency code is required for agency access."
        elif self.add_access_type == "department" and not self.department_id:
            errors["departmentId"] = "Department ID is required for department access."
        return errors

    def _derived_columns(self, request) -> dict:
        agency_code = request.agency_code if request is not None else None
        by_agency = self.add_access_type == "agency"
        return {
            "home_business_unit": pad_code(agency_code, 5),
            "other_business_units": (self.agency_codes if by_agency else self.department_id) or None,
            "prohibited_department_ids": None if by_agency else (self.prohibited_department_ids or None),
        }

    def _restore_derived(self, row) -> None:
        self.add_access_type = row.hr_access_type or "agency"
        if self.add_access_type == "department":
            self.department_id = row.other_business_units or ""
        else:
            self.agency_codes = row.other_business_units or ""


# ── EPM Data Warehouse ───────────────────────────────────────────────────────


@dataclass
class EpmDataWarehouseRoles(RoleVariant):
    area_type: ClassVar[str] = "epm_data_warehouse"
    area_label: ClassVar[str] = "EPM Data Warehouse"

    home_business_unit: str = setting()
    other_business_units: str = setting()

    # Restricted HR/Payroll warehouse roles
    ssn_view: bool = role("view_user_progress", label="SSN View")
    payroll_deductions: bool = role("generate_user_reports")
    hr_data_excluded_employees: bool = role("access_system_reports", label="HR Data for Excluded Employees")

    # RAPS; the first two are always granted
    bi_author: bool = role("create_custom_reports", locked=True)
    m_epm_hcm_lookup: bool = role("export_report_data", label="M_EPM_HCM_LOOKUP", locked=True)
    m_raps_link: bool = role("view_analytics_dashboard", label="M_RAPS_LINK")
    raps_new_user: bool = role("data_import_export", label="RAPS New User")
    raps_sema4_codes: str = setting()

    role_justification: str = setting()
    supervisor_approval: bool = form_only()

    def _extra_errors(self) -> dict:
        if self.raps_new_user and not self.raps_sema4_codes:
            return {"rapsSema4Codes": "SEMA4 codes are required for new RAPS users."}
        return {}

    def _derived_columns(self, request) -> dict:
        agency_code = request.agency_code if request is not None else None
        return {
            "home_business_unit": pad_code(self.home_business_unit or agency_code or "000", 5),
            "raps_sema4_codes": (self.raps_sema4_codes or None) if self.raps_new_user else None,
        }

    def notices(self) -> list[str]:
        return ["BI Author and M_EPM_HCM_LOOKUP are granted to every EPM Data Warehouse user."]


# ── ELM ──────────────────────────────────────────────────────────────────────


ELM_HIGH_RISK_NOTICE = (
    "High-risk ELM roles selected: additional security review and approval may be required."
)
ELM_SANDBOX_NOTICE = (
    "Sandbox access is granted in the parallel ELM environments (ELM92UQ / ELM92AP)."
)


@dataclass
class ElmRoles(RoleVariant):
    area_type: ClassVar[str] = "elm"
    area_label: ClassVar[str] = "ELM administrative"

    learning_administrator: bool = role("elm_system_administrator", high_risk=True)
    external_learner_security_administrator: bool = role("elm_key_administrator", high_risk=True)
    learning_catalog_administrator: bool = role("elm_course_administrator")
    roster_administrator: bool = role("elm_reporting_administrator")
    profile_administrator: bool = role("manage_user_accounts")
    enrollment_administrator: bool = role("assign_user_roles")
    maintain_approvals: bool = role("view_user_progress")
    sandbox_access: bool = role("system_backup_access")

    role_justification: str = setting()
    supervisor_approval: bool = form_only()

    def _derived_columns(self, request) -> dict:
        agency_code = request.agency_code if request is not None else None
        return {"home_business_unit": pad_code(agency_code, 5)}

    def notices(self) -> list[str]:
        notes = []
        if any(getattr(self, f.name) for f in self._fields("role") if f.metadata.get("high_risk")):
            notes.append(ELM_HIGH_RISK_NOTICE)
        if self.sandbox_access:
            notes.append(ELM_SANDBOX_NOTICE)
        return notes


VARIANTS: dict[str, type[RoleVariant]] = {
    cls.area_type: cls
    for cls in (AccountingProcurementRoles, HrPayrollRoles, EpmDataWarehouseRoles, ElmRoles)
}


def variant_for(area_type: str) -> type[RoleVariant]:
    try:
        return VARIANTS[area_type]
    except KeyError:
        raise ValidationError(
            f"Unknown security area '{area_type}'",
            details={"area_type": f"must be one of: {', '.join(VARIANTS)}"},
        ) from None
